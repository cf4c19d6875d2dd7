"""
Configuration management for the Draft Assistant
"""
from pydantic_settings import BaseSettings, SettingsConfigDict


class DraftAssistantConfig(BaseSettings):
    """Application configuration with environment variable support."""

    # Database settings
    database_url: str = "sqlite+aiosqlite:///./draft_assistant.db"
    database_echo: bool = False

    # Generation provider settings (Anthropic is preferred when both keys are set)
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-3-5-sonnet-20241022"
    anthropic_api_url: str = "https://api.anthropic.com/v1/messages"
    anthropic_api_version: str = "2023-06-01"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    openai_api_url: str = "https://api.openai.com/v1/chat/completions"

    # Generation request limits
    ai_max_tokens: int = 1000
    ai_temperature: float = 0.7
    ai_timeout_seconds: float = 15.0

    # Provider rate budget (process-wide)
    ai_rate_limit_requests: int = 20
    ai_rate_limit_window_seconds: int = 60

    # Recommendation Constants
    recommendation_limit: int = 5
    recommendation_candidate_limit: int = 30
    fallback_base_score: int = 80
    fallback_score_step: int = 5

    # Optional Redis settings for a shared rate-limit window
    redis_url: str = ""  # Empty string means in-process counting

    # Application settings
    log_level: str = "INFO"
    log_dir: str = "logs"
    environment: str = "development"
    testing: bool = False

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Ignore extra environment variables
    )

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"

    @property
    def is_testing(self) -> bool:
        """Check if running in test mode."""
        return self.testing

    @property
    def has_ai_provider(self) -> bool:
        """Check whether any generation provider key is configured."""
        return bool(self.anthropic_api_key or self.openai_api_key)


# Global configuration instance - lazily initialized to avoid import-time errors
_config = None

def get_config() -> DraftAssistantConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = DraftAssistantConfig()
    return _config
