"""Application configuration using Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class AppSettings(BaseSettings):
    """Service configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GOBD_",
        extra="ignore",
    )

    environment: Literal["local", "test", "staging", "production"] = Field(default="local")
    service_name: str = Field(default="gobd-governance-core")
    database_url: str = Field(default="sqlite:///./data/gobd.db")
    sql_echo: bool = Field(default=False)
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=True)
    log_redact_pii: bool = Field(default=True)
    http_host: str = Field(default="0.0.0.0")
    http_port: int = Field(default=8000)
    ai_model_version: str = Field(default="v1")
    ai_feature_flag: str = Field(default="default")
    ai_policy_version: str = Field(default="10.0.0")
    ai_disclaimer: str = Field(default="Suggestion only - not binding")
    schema_cache_ttl_seconds: int = Field(default=60)

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        return value.upper()

    @field_validator("schema_cache_ttl_seconds", mode="before")
    @classmethod
    def ensure_int_ttl(cls, value: int | str | None) -> int | str | None:
        if value in (None, ""):
            return 60
        return value


@lru_cache
def get_settings() -> AppSettings:
    """Return cached application settings instance."""

    return AppSettings()
