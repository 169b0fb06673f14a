"""Expose constructed client wrappers."""

from .provider_api import ProviderApiClient, ProviderCallError
from .provider_oauth import ProviderAuthError, ProviderOAuthClient, TokenGrant
from .sqlite_store import VerificationRecordStore

__all__ = [
    "ProviderApiClient",
    "ProviderAuthError",
    "ProviderCallError",
    "ProviderOAuthClient",
    "TokenGrant",
    "VerificationRecordStore",
]
