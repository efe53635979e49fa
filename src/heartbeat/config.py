from __future__ import annotations

from pathlib import Path
from functools import lru_cache

import yaml
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, ValidationInfo, field_validator


ROOT_DIR = Path(__file__).resolve().parent.parent.parent

# In Docker, the package is installed to site-packages but config lives at /app/config.
# Fall back to the source-tree-relative path for local development.
_docker_config = Path("/app/config")
CONFIG_DIR = _docker_config if _docker_config.exists() else ROOT_DIR / "config"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        extra="ignore",
    )

    # Server
    port: int = Field(default=8080, ge=1, le=65535)
    cors_origin: str = "*"

    # Project datastore (Supabase REST)
    supabase_url: str = Field(min_length=1)
    supabase_anon_key: str = Field(min_length=1)

    # Probing
    ping_timeout_ms: int = Field(default=5000, gt=0)
    ping_retries: int = Field(default=1, ge=1, le=5)
    ping_retry_delay_ms: int = Field(default=200, ge=0, le=10_000)
    degraded_latency_ms: int = Field(default=1200, gt=0)

    # Notification sinks, blank = disabled
    webhook_url: str = ""
    slack_webhook_url: str = ""
    discord_webhook_url: str = ""

    # Email confirmation
    confirm_base_url: str = "http://localhost:5173"
    confirm_token_ttl_minutes: int = Field(default=30, ge=5, le=24 * 60)
    confirm_token_secret: str = "dev-only-change-me"
    confirm_store_path: str = ".confirm_store.json"

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @field_validator(
        "supabase_url",
        "supabase_anon_key",
        "webhook_url",
        "slack_webhook_url",
        "discord_webhook_url",
        "cors_origin",
        "confirm_base_url",
        "confirm_token_secret",
        "confirm_store_path",
        mode="before",
    )
    @classmethod
    def _strip(cls, value, info: ValidationInfo):
        if not isinstance(value, str):
            return value
        value = value.strip()
        if not value:
            # Whitespace-only counts as unset, like an empty variable
            default = cls.model_fields[info.field_name].default
            if isinstance(default, str):
                return default
        return value

    @field_validator("supabase_url", "confirm_base_url", mode="after")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.strip().rstrip("/")

    @property
    def ping_timeout(self) -> float:
        return self.ping_timeout_ms / 1000

    @property
    def ping_retry_delay(self) -> float:
        return self.ping_retry_delay_ms / 1000

    def load_yaml_config(self) -> dict:
        settings_path = CONFIG_DIR / "settings.yaml"
        if settings_path.exists():
            with open(settings_path) as f:
                return yaml.safe_load(f) or {}
        return {}


@lru_cache
def get_settings() -> Settings:
    return Settings()
