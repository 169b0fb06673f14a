"""
Signed, time-limited bearer tokens.

Tokens are ``urlsafe_b64(hmac_sha256(payload) + payload)`` where the payload is
compact JSON carrying ``sub``, ``iat`` and ``exp``. They authenticate provider
webhooks and operator sessions.
"""

from __future__ import annotations

import base64
import binascii
import hmac
import json
from datetime import datetime, timedelta, timezone
from hashlib import sha256
from typing import Any, Callable, Dict

_SIGNATURE_LENGTH = 32
_MIN_SECRET_LENGTH = 32


class InvalidTokenError(Exception):
    """Raised when a token is malformed or its signature does not match."""


class ExpiredTokenError(InvalidTokenError):
    """Raised when a correctly signed token is past its expiry."""


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _pad_secret(secret: str) -> str:
    if not secret:
        raise ValueError("Token signing secret must be provided.")
    return secret.ljust(_MIN_SECRET_LENGTH, "0")


class SignedTokenService:
    """Issue and verify HMAC-signed tokens."""

    DEFAULT_TTL = timedelta(hours=24)

    def __init__(
        self,
        secret_key: str,
        *,
        default_ttl: timedelta | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._secret_key = _pad_secret(secret_key).encode("utf-8")
        self._default_ttl = default_ttl or self.DEFAULT_TTL
        self._clock = clock or _utcnow

    def issue(self, subject: str, ttl: timedelta | None = None) -> str:
        now = self._clock()
        payload = {
            "sub": subject,
            "iat": int(now.timestamp()),
            "exp": int((now + (ttl or self._default_ttl)).timestamp()),
        }
        serialized = json.dumps(payload, separators=(",", ":"), sort_keys=True).encode(
            "utf-8"
        )
        signature = hmac.new(self._secret_key, serialized, sha256).digest()
        return base64.urlsafe_b64encode(signature + serialized).decode("utf-8")

    def verify(self, token: str) -> Dict[str, Any]:
        """Return the claims of a valid token or raise ``InvalidTokenError``."""
        try:
            decoded = base64.urlsafe_b64decode(token.encode("utf-8"))
        except (binascii.Error, ValueError) as exc:
            raise InvalidTokenError("Token is not valid base64.") from exc
        if len(decoded) <= _SIGNATURE_LENGTH:
            raise InvalidTokenError("Token is too short.")

        signature, serialized = decoded[:_SIGNATURE_LENGTH], decoded[_SIGNATURE_LENGTH:]
        expected_signature = hmac.new(self._secret_key, serialized, sha256).digest()
        if not hmac.compare_digest(signature, expected_signature):
            raise InvalidTokenError("Token signature does not match.")

        try:
            claims = json.loads(serialized)
        except ValueError as exc:
            raise InvalidTokenError("Token payload is not valid JSON.") from exc
        if not isinstance(claims, dict) or not isinstance(claims.get("exp"), int):
            raise InvalidTokenError("Token payload is missing its expiry.")

        if self._clock().timestamp() >= claims["exp"]:
            raise ExpiredTokenError("Token has expired.")
        return claims

    def is_valid(self, token: str | None) -> bool:
        if not token:
            return False
        try:
            self.verify(token)
        except InvalidTokenError:
            return False
        return True


__all__ = ["ExpiredTokenError", "InvalidTokenError", "SignedTokenService"]
