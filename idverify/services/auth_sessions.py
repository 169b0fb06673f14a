"""One-time exchange keys that unlock an operator session token."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, Optional

from idverify.core.logging import mask_key
from idverify.services.identifiers import generate_exchange_key
from idverify.services.signed_tokens import SignedTokenService

logger = logging.getLogger(__name__)

SESSION_SUBJECT = "authenticated-user"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class TokenPair:
    exchange_key: str
    session_token: str


@dataclass(frozen=True)
class _ExchangeEntry:
    session_token: str
    expires_at: datetime


class AuthSessionService:
    """Maps short exchange keys to session tokens for a single redemption.

    The session token itself stays verifiable by signature until its own
    expiry; the exchange key only controls who gets to receive it, once.
    """

    def __init__(
        self,
        token_service: SignedTokenService,
        *,
        exchange_key_ttl: timedelta = timedelta(hours=1),
        session_ttl: timedelta = timedelta(hours=24),
        clock: Callable[[], datetime] | None = None,
        key_factory: Callable[[], str] = generate_exchange_key,
    ) -> None:
        self._tokens = token_service
        self._exchange_key_ttl = exchange_key_ttl
        self._session_ttl = session_ttl
        self._clock = clock or _utcnow
        self._key_factory = key_factory
        self._entries: Dict[str, _ExchangeEntry] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._entries)

    def issue(self) -> TokenPair:
        """Create a session token and an exchange key that redeems it."""
        session_token = self._tokens.issue(SESSION_SUBJECT, ttl=self._session_ttl)
        now = self._clock()
        with self._lock:
            exchange_key = self._key_factory()
            while exchange_key in self._entries:
                exchange_key = self._key_factory()
            self._entries[exchange_key] = _ExchangeEntry(
                session_token=session_token,
                expires_at=now + self._exchange_key_ttl,
            )
            removed = self._sweep_locked(now)

        logger.info("Issued exchange key %s", mask_key(exchange_key))
        if removed:
            logger.info("Cleaned up %d expired exchange key(s)", removed)
        return TokenPair(exchange_key=exchange_key, session_token=session_token)

    def redeem(self, exchange_key: str | None) -> Optional[str]:
        """Trade an exchange key for its session token, at most once."""
        if not exchange_key:
            logger.warning("Attempted to redeem an empty exchange key")
            return None

        with self._lock:
            entry = self._entries.pop(exchange_key, None)

        if entry is None:
            logger.warning("Exchange key not found: %s", mask_key(exchange_key))
            return None
        if self._clock() > entry.expires_at:
            logger.warning("Exchange key has expired: %s", mask_key(exchange_key))
            return None

        logger.info("Exchange key redeemed: %s", mask_key(exchange_key))
        return entry.session_token

    def validate_session_token(self, session_token: str | None) -> bool:
        return self._tokens.is_valid(session_token)

    def _sweep_locked(self, now: datetime) -> int:
        expired = [key for key, entry in self._entries.items() if now > entry.expires_at]
        for key in expired:
            del self._entries[key]
        return len(expired)


__all__ = ["AuthSessionService", "SESSION_SUBJECT", "TokenPair"]
