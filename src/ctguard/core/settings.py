"""
Central configuration for ctguard.

This module provides a single, typed configuration object that reads from
environment variables (12-factor style) using pydantic-settings.

Usage:

    from ctguard.core.runtime import CTGuardRuntime
    from ctguard.core.settings import get_settings

    settings = get_settings()
    runtime = CTGuardRuntime.from_settings(settings)
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LogSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CTGUARD_")

    log_name: str = Field(
        default="ctguard-log",
        description="Name of this log; its log id is derived from it.",
    )
    sct_key: str = Field(
        default="",
        description="HMAC secret for SCTs. Generated at startup when empty.",
    )
    sth_key: str = Field(
        default="",
        description="Hex 32-byte Ed25519 seed for tree heads. Generated when empty.",
    )
    bootstrap_file: Optional[str] = Field(
        default=None,
        description="JSON file of [{domain, certificate}] appended at startup.",
    )

    @field_validator("sth_key")
    @classmethod
    def _validate_sth_key(cls, v: str) -> str:
        v = v.strip()
        if not v:
            return v
        try:
            raw = bytes.fromhex(v)
        except ValueError as e:
            raise ValueError("CTGUARD_STH_KEY must be hex") from e
        if len(raw) != 32:
            raise ValueError("CTGUARD_STH_KEY must be 32 bytes (64 hex chars)")
        return v


class GatewaySettings(BaseSettings):
    """
    HTTP gateway settings (bind address, live certificate fetch timeout).
    """

    model_config = SettingsConfigDict(env_prefix="CTGUARD_HTTP_")

    host: str = Field(
        default="127.0.0.1",
        description="HTTP bind host for the FastAPI/Uvicorn gateway.",
    )
    port: int = Field(
        default=4000,
        description="HTTP bind port for the FastAPI/Uvicorn gateway.",
    )
    fetch_timeout: float = Field(
        default=5.0,
        gt=0,
        description="Seconds allowed for fetching a live certificate.",
    )
    fetch_live: bool = Field(
        default=True,
        description="Fetch the certificate from the domain when a check supplies none.",
    )


class RuntimeSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CTGUARD_")

    log_level: str = Field(
        default="INFO",
        description="Root log level (DEBUG/INFO/WARNING/ERROR).",
    )

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, v: str) -> str:
        v = (v or "INFO").upper()
        if v == "WARN":
            v = "WARNING"
        if v not in _LOG_LEVELS:
            return "INFO"
        return v


class CTGuardSettings(BaseSettings):
    """
    Root configuration object for ctguard.

    Aggregates:
      - Log (identity, keys, bootstrap)
      - Gateway
      - Runtime
    """

    model_config = SettingsConfigDict(env_prefix="CTGUARD_SETTINGS_")

    log: LogSettings = Field(default_factory=LogSettings)
    gateway: GatewaySettings = Field(default_factory=GatewaySettings)
    runtime: RuntimeSettings = Field(default_factory=RuntimeSettings)


@lru_cache(maxsize=1)
def get_settings() -> CTGuardSettings:
    """
    Cached accessor for CTGuardSettings.

    Usage:
        from ctguard.core.settings import get_settings
        settings = get_settings()
    """
    return CTGuardSettings()
