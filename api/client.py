"""
Generation provider clients for the Draft Assistant

aiohttp-based clients for the hosted language-model APIs that back draft
recommendations. Every failure mode (network, HTTP status, timeout, unexpected
body) surfaces as ProviderUnavailableError.
"""
import asyncio
import logging
from typing import Any, Dict, Optional

import aiohttp

from config import get_config
from exceptions import ProviderUnavailableError

logger = logging.getLogger(f'{__name__}.GenerationClient')


class GenerationClient:
    """
    Async HTTP client for one generation provider.

    Features:
    - Connection pooling with lazy session creation
    - Per-request timeout override
    - Uniform error mapping to ProviderUnavailableError
    - Debug logging with response truncation

    Subclasses supply the request body, headers and text extraction.
    """

    provider_name = "generic"

    def __init__(self, api_url: str, api_key: str, model: str):
        """
        Initialize client.

        Args:
            api_url: Full endpoint URL
            api_key: Provider API key
            model: Provider model identifier

        Raises:
            ValueError: If required configuration is missing
        """
        if not api_url:
            raise ValueError("Provider API URL must be configured")
        if not api_key:
            raise ValueError("Provider API key must be configured")

        self.api_url = api_url
        self.api_key = api_key
        self.model = model
        self._session: Optional[aiohttp.ClientSession] = None

        logger.debug(f"{self.__class__.__name__} initialized for model {model}")

    @property
    def headers(self) -> Dict[str, str]:
        return {'Content-Type': 'application/json'}

    def build_payload(self, prompt: str, max_tokens: int, temperature: float) -> Dict[str, Any]:
        raise NotImplementedError

    def extract_text(self, data: Dict[str, Any]) -> str:
        raise NotImplementedError

    async def _ensure_session(self) -> None:
        """Ensure aiohttp session exists and is not closed."""
        if self._session is None or self._session.closed:
            connector = aiohttp.TCPConnector(limit=20, ttl_dns_cache=300)
            self._session = aiohttp.ClientSession(
                headers=self.headers,
                connector=connector,
                timeout=aiohttp.ClientTimeout(total=60, connect=10)
            )
            logger.debug(f"Created new aiohttp session for {self.provider_name}")

    async def generate(
        self,
        prompt: str,
        max_tokens: int,
        temperature: float,
        timeout: float
    ) -> str:
        """
        Generate text for a prompt.

        Args:
            prompt: Complete prompt text
            max_tokens: Upper bound on generated tokens
            temperature: Sampling temperature
            timeout: Total request timeout in seconds

        Returns:
            Generated text

        Raises:
            ProviderUnavailableError: For HTTP errors, network issues,
                timeouts or an unexpected response body
        """
        await self._ensure_session()
        payload = self.build_payload(prompt, max_tokens, temperature)

        try:
            logger.debug(f"POST {self.provider_name}: model={self.model} max_tokens={max_tokens}")

            request_timeout = aiohttp.ClientTimeout(total=timeout)
            async with self._session.post(self.api_url, json=payload, timeout=request_timeout) as response:
                if response.status in (401, 403):
                    logger.error(f"{self.provider_name} rejected credentials ({response.status})")
                    raise ProviderUnavailableError(f"{self.provider_name} authentication failed")
                elif response.status == 429:
                    logger.warning(f"{self.provider_name} is rate limiting requests")
                    raise ProviderUnavailableError(f"{self.provider_name} rate limited the request")
                elif response.status >= 400:
                    error_text = await response.text()
                    logger.error(f"{self.provider_name} error {response.status}: {error_text[:500]}")
                    raise ProviderUnavailableError(
                        f"{self.provider_name} request failed with status {response.status}"
                    )

                data = await response.json()

        except asyncio.TimeoutError:
            logger.warning(f"{self.provider_name} request timed out after {timeout}s")
            raise ProviderUnavailableError(f"{self.provider_name} request timed out")
        except aiohttp.ClientError as e:
            logger.error(f"HTTP client error for {self.provider_name}: {e}")
            raise ProviderUnavailableError(f"Network error: {e}")

        try:
            text = self.extract_text(data)
        except (KeyError, IndexError, TypeError) as e:
            logger.error(f"Unexpected {self.provider_name} response shape: {str(data)[:500]}")
            raise ProviderUnavailableError(f"Unexpected response from {self.provider_name}: {e}")

        logger.debug(f"{self.provider_name} response: {text[:1200]}")
        return text

    async def close(self) -> None:
        """Close the HTTP session and clean up resources."""
        if self._session and not self._session.closed:
            await self._session.close()
            logger.debug(f"Closed aiohttp session for {self.provider_name}")

    async def __aenter__(self):
        await self._ensure_session()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()


class AnthropicClient(GenerationClient):
    """Client for the Anthropic Messages API."""

    provider_name = "anthropic"

    def __init__(self, api_url: str, api_key: str, model: str, api_version: str):
        self.api_version = api_version
        super().__init__(api_url, api_key, model)

    @property
    def headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'x-api-key': self.api_key,
            'anthropic-version': self.api_version,
        }

    def build_payload(self, prompt: str, max_tokens: int, temperature: float) -> Dict[str, Any]:
        return {
            'model': self.model,
            'max_tokens': max_tokens,
            'temperature': temperature,
            'messages': [{'role': 'user', 'content': prompt}],
        }

    def extract_text(self, data: Dict[str, Any]) -> str:
        parts = [block['text'] for block in data['content'] if block.get('type') == 'text']
        if not parts:
            raise KeyError('text')
        return "".join(parts)


class OpenAIClient(GenerationClient):
    """Client for the OpenAI Chat Completions API."""

    provider_name = "openai"

    @property
    def headers(self) -> Dict[str, str]:
        return {
            'Content-Type': 'application/json',
            'Authorization': f'Bearer {self.api_key}',
        }

    def build_payload(self, prompt: str, max_tokens: int, temperature: float) -> Dict[str, Any]:
        return {
            'model': self.model,
            'max_tokens': max_tokens,
            'temperature': temperature,
            'messages': [{'role': 'user', 'content': prompt}],
        }

    def extract_text(self, data: Dict[str, Any]) -> str:
        content = data['choices'][0]['message']['content']
        if not isinstance(content, str):
            raise TypeError("message content is not text")
        return content


def create_generation_client() -> Optional[GenerationClient]:
    """
    Build a client for whichever provider is configured.

    Anthropic is preferred when both keys are present.

    Returns:
        GenerationClient or None when no provider key is configured
    """
    config = get_config()
    if config.anthropic_api_key:
        return AnthropicClient(
            api_url=config.anthropic_api_url,
            api_key=config.anthropic_api_key,
            model=config.anthropic_model,
            api_version=config.anthropic_api_version,
        )
    if config.openai_api_key:
        return OpenAIClient(
            api_url=config.openai_api_url,
            api_key=config.openai_api_key,
            model=config.openai_model,
        )
    return None


# Global client instance for reuse
_global_client: Optional[GenerationClient] = None


def get_global_client() -> Optional[GenerationClient]:
    """
    Get the shared generation client.

    Returns:
        Shared GenerationClient, or None when no provider is configured
    """
    global _global_client
    if _global_client is None:
        _global_client = create_generation_client()
    return _global_client


async def cleanup_global_client() -> None:
    """Clean up the shared generation client. Call during shutdown."""
    global _global_client
    if _global_client:
        await _global_client.close()
    _global_client = None
