"""
Application configuration models and helpers.

Centralizes settings management so the FastAPI routes, the provider clients and
the operator scripts share a consistent configuration surface.
"""

import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "idverse-default-secret-key-change-in-production"
_PLACEHOLDER_VALUES = {"your_client_id_here", "your_client_secret_here"}


def _load_env_file(path: str = ".env") -> None:
    """Best-effort load key=value pairs from a .env file without extra deps."""
    env_path = Path(path)
    if not env_path.exists():
        return
    for raw_line in env_path.read_text().splitlines():
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        key, sep, value = line.partition("=")
        if not sep:
            continue
        key = key.strip()
        if not key or key in os.environ:
            continue
        cleaned = value.strip().strip('"').strip("'")
        os.environ[key] = cleaned


_load_env_file()


class _EnvSettings(BaseSettings):
    model_config = SettingsConfigDict(populate_by_name=True, extra="ignore")


class ProviderSettings(_EnvSettings):
    """Credentials and endpoints for the identity-verification provider."""

    client_id: str = Field(
        "",
        validation_alias=AliasChoices("IDVERSE_CLIENT_ID", "client_id"),
        validate_default=True,
    )
    client_secret: str = Field(
        "",
        validation_alias=AliasChoices("IDVERSE_CLIENT_SECRET", "client_secret"),
        validate_default=True,
    )
    oauth_url: str = Field(
        "https://usdemo.idkit.co/api/3.5/oauthToken",
        validation_alias=AliasChoices("IDVERSE_OAUTH_URL", "oauth_url"),
    )
    api_url: str = Field(
        "https://usdemo.idkit.co/api/3.5/sendSms",
        validation_alias=AliasChoices("IDVERSE_API_URL", "api_url"),
    )
    timeout_seconds: float = Field(
        30.0,
        validation_alias=AliasChoices("PROVIDER_TIMEOUT_SECONDS", "timeout_seconds"),
        description="Timeout applied to both the token and the verification call.",
    )
    token_renewal_margin_seconds: int = Field(
        60,
        validation_alias=AliasChoices(
            "TOKEN_RENEWAL_MARGIN", "token_renewal_margin_seconds"
        ),
        description="Cached tokens expiring within this window are renewed.",
    )
    mock_oauth_token: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("OAUTHTOKEN", "mock_oauth_token"),
        description="Token handed out by the local mock OAuth endpoint.",
    )

    @field_validator("client_id")
    @classmethod
    def _demo_client_id(cls, value: str) -> str:
        if not value or value in _PLACEHOLDER_VALUES:
            logger.warning(
                "IDVERSE_CLIENT_ID not configured - running in DEMO MODE. "
                "API calls will fail."
            )
            return "demo_client_id"
        return value

    @field_validator("client_secret")
    @classmethod
    def _demo_client_secret(cls, value: str) -> str:
        if not value or value in _PLACEHOLDER_VALUES:
            logger.warning(
                "IDVERSE_CLIENT_SECRET not configured - running in DEMO MODE. "
                "API calls will fail."
            )
            return "demo_client_secret"
        return value


class WebhookSettings(_EnvSettings):
    """Callback URLs the provider should notify about transaction progress."""

    notify_url_complete: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("NOTIFY_URL_COMPLETE", "notify_url_complete"),
    )
    notify_url_event: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("NOTIFY_URL_EVENT", "notify_url_event"),
    )


class SecuritySettings(_EnvSettings):
    """Security-related configuration."""

    jwt_secret_key: str = Field(
        DEFAULT_JWT_SECRET,
        validation_alias=AliasChoices("JWT_SECRET_KEY", "jwt_secret_key"),
        validate_default=True,
        description="HMAC secret used to sign webhook and session tokens.",
    )
    auth_key: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("AUTH_KEY", "auth_key"),
        description="Shared secret required by /getAuth to issue exchange keys.",
    )
    exchange_key_ttl_seconds: int = Field(
        3600,
        validation_alias=AliasChoices(
            "EXCHANGE_KEY_TTL_SECONDS", "exchange_key_ttl_seconds"
        ),
    )
    session_token_ttl_seconds: int = Field(
        86400,
        validation_alias=AliasChoices(
            "SESSION_TOKEN_TTL_SECONDS", "session_token_ttl_seconds"
        ),
    )

    @field_validator("jwt_secret_key")
    @classmethod
    def _warn_default_secret(cls, value: str) -> str:
        if not value:
            value = DEFAULT_JWT_SECRET
        if value == DEFAULT_JWT_SECRET:
            logger.warning(
                "JWT_SECRET_KEY not configured - using default "
                "(INSECURE for production)"
            )
        return value


class FormDefaults(_EnvSettings):
    """Pre-filled values offered to operators starting a verification."""

    phone_code: Optional[str] = Field(
        None, validation_alias=AliasChoices("PHONE_CODE", "phone_code")
    )
    phone_number: Optional[str] = Field(
        None, validation_alias=AliasChoices("PHONE_NUMBER", "phone_number")
    )
    reference_id: Optional[str] = Field(
        None, validation_alias=AliasChoices("REFERENCE_ID", "reference_id")
    )
    transaction: Optional[str] = Field(
        None, validation_alias=AliasChoices("TRANSACTION", "transaction")
    )
    name: Optional[str] = Field(None, validation_alias=AliasChoices("NAME", "name"))
    supplied_first_name: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("SUPPLIED_FIRST_NAME", "supplied_first_name"),
    )


class AppSettings(BaseSettings):
    """Root settings object for the FastAPI application."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        populate_by_name=True,
        extra="ignore",
    )

    environment: str = Field(
        "development", validation_alias=AliasChoices("APP_ENV", "environment")
    )
    log_level: str = Field(
        "INFO",
        validation_alias=AliasChoices("APP_LOG_LEVEL", "VERBOSE", "log_level"),
    )
    database_path: str = Field(
        "data/verifications.db",
        validation_alias=AliasChoices("DATABASE_PATH", "database_path"),
        description="SQLite file holding the verification record log.",
    )
    provider: ProviderSettings = Field(default_factory=ProviderSettings)
    webhooks: WebhookSettings = Field(default_factory=WebhookSettings)
    security: SecuritySettings = Field(default_factory=SecuritySettings)
    form_defaults: FormDefaults = Field(default_factory=FormDefaults)

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        """Fall back to INFO for names the logging module does not know."""
        level = (value or "").strip().upper()
        if level not in logging.getLevelNamesMapping():
            return "INFO"
        return level


@lru_cache()
def get_settings() -> AppSettings:
    """Return a cached settings object."""
    return AppSettings()


__all__ = [
    "AppSettings",
    "FormDefaults",
    "ProviderSettings",
    "SecuritySettings",
    "WebhookSettings",
    "get_settings",
]
