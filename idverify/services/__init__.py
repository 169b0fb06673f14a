"""Service layer exports."""

from .auth_sessions import AuthSessionService, TokenPair
from .reconciliation import StatusReconciler, StatusUpdateValidationError, UpdateChannel
from .signed_tokens import ExpiredTokenError, InvalidTokenError, SignedTokenService
from .token_cache import AccessTokenCache, CachedToken
from .verification import VerificationService

__all__ = [
    "AccessTokenCache",
    "AuthSessionService",
    "CachedToken",
    "ExpiredTokenError",
    "InvalidTokenError",
    "SignedTokenService",
    "StatusReconciler",
    "StatusUpdateValidationError",
    "TokenPair",
    "UpdateChannel",
    "VerificationService",
]
