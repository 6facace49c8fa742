import logging
import os
from functools import lru_cache
from typing import Annotated

from pydantic import AliasChoices, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_MAX_BODY_BYTES = 10 * 1024 * 1024

_KNOWN_RELAY_ENV_KEYS = {
    "RELAY_HOST",
    "RELAY_PORT",
    "RELAY_DATA_FILE",
    "RELAY_MAX_BODY_BYTES",
    "RELAY_CORS_ORIGINS",
    "RELAY_TRUST_FORWARDED_FOR",
    "RELAY_LOG_FILE",
}


def _warn_unknown_prefixed_env(prefix: str, known_keys: set[str]) -> None:
    unknown = sorted(key for key in os.environ if key.startswith(prefix) and key not in known_keys)
    if unknown:
        logger.warning("Unknown %s env vars ignored: %s", prefix, ", ".join(unknown))


class Settings(BaseSettings):
    """Relay settings sourced from environment variables."""

    host: str = Field(default="0.0.0.0", validation_alias=AliasChoices("relay_host", "RELAY_HOST"))
    port: int = Field(default=3001, ge=1, le=65535, validation_alias=AliasChoices("relay_port", "RELAY_PORT"))
    data_file: str = Field(
        default="./data/relay_store.json",
        validation_alias=AliasChoices("relay_data_file", "RELAY_DATA_FILE", "data_file"),
    )
    rate_limit_window_ms: int = Field(
        default=1000,
        ge=1,
        validation_alias=AliasChoices("rate_limit_window_ms", "RATE_LIMIT_WINDOW_MS"),
    )
    rate_limit_max_requests: int = Field(
        default=5,
        ge=1,
        validation_alias=AliasChoices("rate_limit_max_requests", "RATE_LIMIT_MAX_REQUESTS", "rate_limit_max"),
    )
    rate_limit_sweep_seconds: float = Field(
        default=60.0,
        gt=0,
        validation_alias=AliasChoices("rate_limit_sweep_seconds", "RATE_LIMIT_SWEEP_SECONDS"),
    )
    max_body_bytes: int = Field(
        default=DEFAULT_MAX_BODY_BYTES,
        ge=1,
        validation_alias=AliasChoices("relay_max_body_bytes", "RELAY_MAX_BODY_BYTES", "max_body_bytes"),
    )
    cors_allow_origins: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: ["*"],
        validation_alias=AliasChoices("relay_cors_origins", "RELAY_CORS_ORIGINS", "cors_allow_origins"),
    )
    trust_forwarded_for: bool = Field(
        default=False,
        validation_alias=AliasChoices("relay_trust_forwarded_for", "RELAY_TRUST_FORWARDED_FOR"),
    )
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("log_level", "LOG_LEVEL"))
    log_file: str | None = Field(
        default=None,
        validation_alias=AliasChoices("relay_log_file", "RELAY_LOG_FILE", "log_file"),
    )

    @field_validator("cors_allow_origins", mode="before")
    @classmethod
    def _split_origins(cls, value: object) -> object:
        if isinstance(value, str):
            return [item.strip() for item in value.split(",") if item.strip()]
        return value

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in logging.getLevelNamesMapping():
            logger.warning("LOG_LEVEL=%s is unknown; falling back to INFO", value)
            return "INFO"
        return level

    @field_validator("log_file")
    @classmethod
    def _blank_log_file(cls, value: str | None) -> str | None:
        if value is not None and not value.strip():
            return None
        return value

    @model_validator(mode="after")
    def _warn_unknown_env(self) -> "Settings":
        if not self.data_file:
            logger.warning("RELAY_DATA_FILE is empty; snapshots will not survive a restart")
        _warn_unknown_prefixed_env("RELAY_", _KNOWN_RELAY_ENV_KEYS)
        return self

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", env_prefix="", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    """Cached accessor so we only load settings once per process."""
    return Settings()
