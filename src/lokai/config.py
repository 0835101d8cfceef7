"""Configuration settings for the application."""

from pydantic_settings import (
    BaseSettings,
    SettingsConfigDict,
)


class Settings(BaseSettings):
    """Pydantic settings class for the application."""

    # These will be loaded from environment variables or a .env file if not provided
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    API_PORT: int = 8000
    DEBUG: bool = False
    LOG_LEVEL: str = "info"  # Options: debug, info, warning, error, critical

    # Inference endpoint
    OLLAMA_BASE_URL: str = "http://localhost:11434"
    DEFAULT_MODEL: str = "qwen2.5:1.5b"
    REQUEST_TIMEOUT: float = 120.0  # seconds, per chat call
    TEMPERATURE: float = 0.7

    # Agent loop
    MAX_AGENT_LOOPS: int = 8
    CONTEXT_WINDOW: int = 8192  # tokens, used for usage estimates
    TOOL_MAX_OUTPUT: int = 8192  # characters kept from a single tool result


settings = Settings()
