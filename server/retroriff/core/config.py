import logging
import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict

# Look for .env in project root (parent of server/)
_env_file = Path(__file__).resolve().parent.parent.parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=_env_file, extra="ignore")

    # Environment
    env: Literal["development", "production"] = "development"

    # Server
    port: int = 8000

    # Trusted proxy IPs for X-Forwarded-For (comma-separated)
    # Set to nginx/load balancer IPs in production; empty = trust direct connection only
    trusted_proxies: str = "127.0.0.1,::1"

    # CORS - comma-separated origins or "*" for all (dev only)
    cors_origins: str = "*"

    # Rate limiting (disabled by default in dev, enable in prod)
    rate_limit_enabled: bool | None = None  # None = auto (disabled in dev, enabled in prod)
    harvest_rate_limit_per_minute: int = 10
    archive_rate_limit_per_minute: int = 5

    @property
    def is_rate_limit_enabled(self) -> bool:
        """Check if rate limiting is enabled (auto-detect based on env if not set)."""
        if self.rate_limit_enabled is not None:
            return self.rate_limit_enabled
        return self.is_production

    # Anthropic API (search strategy prioritization)
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-haiku-4-5-20251001"
    anthropic_max_tokens: int = 512
    anthropic_timeout_seconds: float = 30

    # Harvest pipeline
    # mock = deterministic ids + placeholder audio, youtube = yt-dlp search + real audio stream
    harvest_mode: Literal["mock", "youtube"] = "mock"
    # Artificial pause after prioritization and after each song (0 disables)
    harvest_step_delay_seconds: float = 0.0
    download_timeout_seconds: float = 60
    max_audio_bytes: int = 50 * 1024 * 1024

    # Cosmetic progress ticker
    progress_interval_seconds: float = 1.5

    @property
    def is_production(self) -> bool:
        return self.env == "production"


def validate_settings(settings: Settings) -> None:
    """Validate required settings and print helpful error messages."""
    errors = []

    if settings.is_production:
        if settings.cors_origins == "*":
            errors.append(
                "CORS_ORIGINS should not be '*' in production - "
                "set to your frontend domain (e.g., https://riffs.example.com)"
            )
        if not settings.anthropic_api_key:
            errors.append("ANTHROPIC_API_KEY must be set in production")

    if not settings.anthropic_api_key:
        logging.warning("ANTHROPIC_API_KEY not set - search prioritization will not work")

    if settings.harvest_mode == "youtube":
        logging.warning(
            "HARVEST_MODE=youtube - songs are fetched from YouTube, harvests will be slow"
        )

    if errors:
        for error in errors:
            logging.error("Configuration error: %s", error)
        sys.exit(1)


@lru_cache
def get_settings() -> Settings:
    settings = Settings()
    validate_settings(settings)
    return settings
