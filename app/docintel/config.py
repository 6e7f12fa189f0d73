"""
Application configuration using Pydantic Settings.

Automatically loads environment variables from .env files. Settings are
frozen once loaded so every request sees the same configuration.
"""

from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # AI Foundry (Azure OpenAI)
    aifoundry_api_key: str | None = None
    aifoundry_api_url: str | None = None
    # Optional fixed deployment / API version; unset means probe the defaults
    aifoundry_deployment_name: str | None = None
    aifoundry_api_version: str | None = None

    ai_timeout_seconds: float = 30.0
    ai_max_text_chars: int = 8000

    # Storage
    output_dir: Path = Path("outputs")
    upload_dir: Path = Path("uploads")
    max_upload_size_mb: int = 10

    # Debug flags
    debug: bool = False

    model_config = SettingsConfigDict(
        # .env next to this module
        env_file=Path(__file__).parent / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
        frozen=True,
    )

    @property
    def ai_configured(self) -> bool:
        """True when both the API key and the endpoint URL are present."""
        return bool(self.aifoundry_api_key and self.aifoundry_api_url)

    @property
    def max_upload_size_bytes(self) -> int:
        return self.max_upload_size_mb * 1024 * 1024


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns:
        Settings: Application configuration loaded from environment.
    """
    return Settings()
