"""
camunda8_sdk.tier0_core.config
────────────────────────────────
Typed SDK configuration with env layering. Reads from .env → environment
variables → keyword overrides. All fields are typed via Pydantic and use the
same variable names as the other Camunda 8 SDKs, so one environment file
works for every client.

Minimal stack: pydantic-settings + python-dotenv
Configure via: ZEEBE_*, CAMUNDA_* environment variables
"""
from __future__ import annotations

from functools import lru_cache
from typing import Any, TypeVar

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from camunda8_sdk.tier0_core.errors import MissingConfigurationError

T = TypeVar("T")

_LOG_LEVELS = {"error", "warn", "info", "debug", "trace"}
_AUTH_STRATEGIES = {"OAUTH", "BASIC", "NONE"}


class CamundaSdkConfig(BaseSettings):
    """
    Typed Camunda 8 client configuration.

    Fields are populated from environment variables by their upper-case
    names; pass the same names as keyword arguments to override, e.g.
    ``CamundaSdkConfig(ZEEBE_REST_ADDRESS="http://gateway:8080")``.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    # ── Gateway ───────────────────────────────────────────────────────────────
    zeebe_rest_address: str = Field(
        default="http://localhost:8080", alias="ZEEBE_REST_ADDRESS"
    )
    tenant_id: str | None = Field(default=None, alias="CAMUNDA_TENANT_ID")

    # ── Credentials ───────────────────────────────────────────────────────────
    client_id: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ZEEBE_CLIENT_ID", "CAMUNDA_CLIENT_ID"),
    )
    client_secret: str | None = Field(
        default=None,
        validation_alias=AliasChoices("ZEEBE_CLIENT_SECRET", "CAMUNDA_CLIENT_SECRET"),
    )
    console_client_id: str | None = Field(
        default=None, alias="CAMUNDA_CONSOLE_CLIENT_ID"
    )
    console_client_secret: str | None = Field(
        default=None, alias="CAMUNDA_CONSOLE_CLIENT_SECRET"
    )
    basic_auth_username: str | None = Field(
        default=None, alias="CAMUNDA_BASIC_AUTH_USERNAME"
    )
    basic_auth_password: str | None = Field(
        default=None, alias="CAMUNDA_BASIC_AUTH_PASSWORD"
    )

    # ── OAuth ─────────────────────────────────────────────────────────────────
    auth_strategy: str = Field(default="OAUTH", alias="CAMUNDA_AUTH_STRATEGY")
    oauth_disabled: bool = Field(default=False, alias="CAMUNDA_OAUTH_DISABLED")
    oauth_url: str | None = Field(default=None, alias="CAMUNDA_OAUTH_URL")
    token_scope: str | None = Field(default=None, alias="CAMUNDA_TOKEN_SCOPE")
    token_refresh_threshold_ms: int = Field(
        default=1000, alias="CAMUNDA_OAUTH_TOKEN_REFRESH_THRESHOLD_MS"
    )
    zeebe_audience: str = Field(
        default="zeebe.camunda.io", alias="CAMUNDA_ZEEBE_OAUTH_AUDIENCE"
    )
    operate_audience: str = Field(
        default="operate.camunda.io", alias="CAMUNDA_OPERATE_OAUTH_AUDIENCE"
    )
    tasklist_audience: str = Field(
        default="tasklist.camunda.io", alias="CAMUNDA_TASKLIST_OAUTH_AUDIENCE"
    )
    optimize_audience: str = Field(
        default="optimize.camunda.io", alias="CAMUNDA_OPTIMIZE_OAUTH_AUDIENCE"
    )
    console_audience: str = Field(
        default="api.cloud.camunda.io", alias="CAMUNDA_CONSOLE_OAUTH_AUDIENCE"
    )
    modeler_audience: str | None = Field(
        default=None, alias="CAMUNDA_MODELER_OAUTH_AUDIENCE"
    )

    # ── Token cache ───────────────────────────────────────────────────────────
    token_cache_dir: str = Field(default="~/.camunda", alias="CAMUNDA_TOKEN_CACHE_DIR")
    token_disk_cache_disable: bool = Field(
        default=False, alias="CAMUNDA_TOKEN_DISK_CACHE_DISABLE"
    )
    token_cache_redis_url: str | None = Field(
        default=None, alias="CAMUNDA_TOKEN_CACHE_REDIS_URL"
    )

    # ── TLS ───────────────────────────────────────────────────────────────────
    custom_root_cert_path: str | None = Field(
        default=None, alias="CAMUNDA_CUSTOM_ROOT_CERT_PATH"
    )
    custom_cert_chain_path: str | None = Field(
        default=None, alias="CAMUNDA_CUSTOM_CERT_CHAIN_PATH"
    )
    custom_private_key_path: str | None = Field(
        default=None, alias="CAMUNDA_CUSTOM_PRIVATE_KEY_PATH"
    )

    # ── Misc ──────────────────────────────────────────────────────────────────
    custom_user_agent_string: str | None = Field(
        default=None, alias="CAMUNDA_CUSTOM_USER_AGENT_STRING"
    )
    log_level: str = Field(default="info", alias="CAMUNDA_LOG_LEVEL")
    log_format: str = Field(default="json", alias="CAMUNDA_LOG_FORMAT")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        v = v.lower()
        if v == "warning":
            v = "warn"
        if v not in _LOG_LEVELS:
            raise ValueError(f"log level must be one of {sorted(_LOG_LEVELS)}, got {v!r}")
        return v

    @field_validator("auth_strategy")
    @classmethod
    def validate_auth_strategy(cls, v: str) -> str:
        v = v.upper()
        if v not in _AUTH_STRATEGIES:
            raise ValueError(
                f"auth strategy must be one of {sorted(_AUTH_STRATEGIES)}, got {v!r}"
            )
        return v

    @field_validator("zeebe_rest_address")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @property
    def rest_base_url(self) -> str:
        """Prefix of every REST API v2 route."""
        return f"{self.zeebe_rest_address}/v2/"


@lru_cache(maxsize=1)
def get_config() -> CamundaSdkConfig:
    """
    Return the singleton SDK config. Cached after first call.
    Call _reset_config() in tests to pick up new env vars.
    """
    return CamundaSdkConfig()


def _reset_config() -> None:
    """For tests: clear the config cache."""
    get_config.cache_clear()


def require_configuration(value: T | None, key: str) -> T:
    """Return *value*, or raise MissingConfigurationError naming *key*."""
    if value is None or value == "":
        raise MissingConfigurationError(key)
    return value


def load_config(config: CamundaSdkConfig | None = None, **overrides: Any) -> CamundaSdkConfig:
    """
    Resolve an explicit config, else keyword overrides (env names) layered
    over the environment, else the cached singleton.
    """
    if config is not None:
        return config
    if overrides:
        return CamundaSdkConfig(**overrides)
    return get_config()


__all__ = [
    "CamundaSdkConfig", "get_config", "load_config", "require_configuration",
]
