"""Application configuration."""

import logging

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from relay.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a helpful assistant."


class Settings(BaseSettings):
    """Process-wide settings, read once and passed around explicitly."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    whatsapp_verify_token: str | None = None
    openai_api_key: str | None = None
    whatsapp_token: str | None = None

    openai_model: str = "gpt-4o"
    graph_api_url: str = "https://graph.facebook.com/v19.0"
    default_system_prompt: str = DEFAULT_SYSTEM_PROMPT

    database_url: str = "sqlite:///./local.db"
    db_pool_size: int = 20
    db_max_overflow: int = 0
    auto_migrate: bool = True

    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 8000

    @field_validator(
        "whatsapp_verify_token", "openai_api_key", "whatsapp_token", mode="before"
    )
    @classmethod
    def blank_to_none(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator("database_url", mode="after")
    @classmethod
    def normalize_db_url(cls, v: str) -> str:
        """Heroku/Render style URLs use postgres://, SQLAlchemy wants postgresql://."""
        if v.startswith("postgres://"):
            return v.replace("postgres://", "postgresql://", 1)
        return v

    @property
    def completion_enabled(self) -> bool:
        return self.openai_api_key is not None


def load_settings(**overrides) -> Settings:
    """
    Build settings from the environment (and .env), then check them.

    Raises ConfigurationError when the webhook verification secret is
    missing. Missing provider credentials only produce warnings.
    """
    settings = Settings(**overrides)
    if not settings.whatsapp_verify_token:
        raise ConfigurationError("Missing WHATSAPP_VERIFY_TOKEN")
    if not settings.openai_api_key:
        logger.warning("Missing OPENAI_API_KEY: replies will not be generated")
    if not settings.whatsapp_token:
        logger.warning(
            "Missing WHATSAPP_TOKEN: only tenants with their own token get replies"
        )
    return settings
