"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_auth_session_service,
    get_provider_api_client,
    get_provider_oauth_client,
    get_record_store,
    get_signed_token_service,
    get_status_reconciler,
    get_token_cache,
    get_verification_service,
)
from .config import get_app_settings

__all__ = [
    "get_app_settings",
    "get_auth_session_service",
    "get_provider_api_client",
    "get_provider_oauth_client",
    "get_record_store",
    "get_signed_token_service",
    "get_status_reconciler",
    "get_token_cache",
    "get_verification_service",
]
