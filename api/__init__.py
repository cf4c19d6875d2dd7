"""
Generation provider client layer

HTTP clients for the language-model APIs behind draft recommendations.
"""
from .client import (
    GenerationClient,
    AnthropicClient,
    OpenAIClient,
    create_generation_client,
    get_global_client,
    cleanup_global_client,
)

__all__ = [
    'GenerationClient',
    'AnthropicClient',
    'OpenAIClient',
    'create_generation_client',
    'get_global_client',
    'cleanup_global_client',
]
