"""Public schema exports."""

from .oauth import OAuthTokenResponse
from .status import UpdateStatusRequest, WebhookPayload
from .verification import (
    FormDefaultsResponse,
    StatusResponse,
    VerificationRequest,
    VerificationResponse,
)

__all__ = [
    "FormDefaultsResponse",
    "OAuthTokenResponse",
    "StatusResponse",
    "UpdateStatusRequest",
    "VerificationRequest",
    "VerificationResponse",
    "WebhookPayload",
]
