"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from datetime import timedelta
from functools import lru_cache

from idverify.clients import (
    ProviderApiClient,
    ProviderOAuthClient,
    VerificationRecordStore,
)
from idverify.core.config import get_settings
from idverify.services import (
    AccessTokenCache,
    AuthSessionService,
    SignedTokenService,
    StatusReconciler,
    VerificationService,
)


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_record_store() -> VerificationRecordStore:
    """Provide shared SQLite verification record store."""
    settings = _settings()
    return VerificationRecordStore(settings.database_path)


@lru_cache()
def get_provider_oauth_client() -> ProviderOAuthClient:
    """Create a singleton client for the provider token endpoint."""
    return ProviderOAuthClient(_settings().provider)


@lru_cache()
def get_provider_api_client() -> ProviderApiClient:
    """Create a singleton client for the provider verification endpoint."""
    return ProviderApiClient(_settings().provider)


@lru_cache()
def get_token_cache() -> AccessTokenCache:
    """Provide the process-wide provider access token cache."""
    settings = _settings()
    return AccessTokenCache(
        get_provider_oauth_client(),
        renewal_margin=timedelta(
            seconds=settings.provider.token_renewal_margin_seconds
        ),
    )


@lru_cache()
def get_signed_token_service() -> SignedTokenService:
    """Provide the signer for webhook and session tokens."""
    settings = _settings()
    return SignedTokenService(
        secret_key=settings.security.jwt_secret_key,
        default_ttl=timedelta(seconds=settings.security.session_token_ttl_seconds),
    )


@lru_cache()
def get_auth_session_service() -> AuthSessionService:
    """Provide the process-local exchange key registry."""
    settings = _settings()
    return AuthSessionService(
        get_signed_token_service(),
        exchange_key_ttl=timedelta(
            seconds=settings.security.exchange_key_ttl_seconds
        ),
        session_ttl=timedelta(seconds=settings.security.session_token_ttl_seconds),
    )


def get_verification_service() -> VerificationService:
    """Build a verification service over the shared clients."""
    return VerificationService(
        store=get_record_store(),
        api_client=get_provider_api_client(),
        token_cache=get_token_cache(),
        token_service=get_signed_token_service(),
        webhook_settings=_settings().webhooks,
    )


def get_status_reconciler() -> StatusReconciler:
    """Build a reconciler writing to the shared record store."""
    return StatusReconciler(get_record_store())


__all__ = [
    "get_auth_session_service",
    "get_provider_api_client",
    "get_provider_oauth_client",
    "get_record_store",
    "get_signed_token_service",
    "get_status_reconciler",
    "get_token_cache",
    "get_verification_service",
]
