"""
In-process cache for the provider's client-credentials access token.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from idverify.clients.provider_oauth import ProviderOAuthClient
from idverify.core.logging import preview_token

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class CachedToken:
    """A bearer token together with the instant it stops being valid."""

    value: str
    expires_at: datetime


class AccessTokenCache:
    """Hands out a cached bearer token, renewing it shortly before expiry.

    Reads of a fresh token never wait on the lock. Renewals are serialized and
    re-check the cache once the lock is held, so callers that queued up behind
    a renewal reuse its result instead of issuing their own token request.
    """

    _RENEWAL_MARGIN = timedelta(seconds=60)

    def __init__(
        self,
        oauth_client: ProviderOAuthClient,
        *,
        renewal_margin: timedelta | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._oauth = oauth_client
        self._margin = renewal_margin if renewal_margin is not None else self._RENEWAL_MARGIN
        self._clock = clock or _utcnow
        self._cached: Optional[CachedToken] = None
        self._lock = asyncio.Lock()

    @property
    def cached(self) -> Optional[CachedToken]:
        return self._cached

    def _is_fresh(self, cached: Optional[CachedToken]) -> bool:
        return cached is not None and self._clock() + self._margin < cached.expires_at

    async def get_token(self) -> str:
        """Return a usable access token, fetching one when needed."""
        cached = self._cached
        if self._is_fresh(cached):
            logger.debug(
                "Using cached access token %s (expires at %s)",
                preview_token(cached.value),
                cached.expires_at.isoformat(),
            )
            return cached.value

        async with self._lock:
            cached = self._cached
            if self._is_fresh(cached):
                return cached.value

            if cached is not None:
                logger.info("Cached token expired or expiring soon, fetching new token")
            else:
                logger.info("No cached token found, fetching new token")

            # A failed renewal must not leave the expired token behind.
            self._cached = None
            requested_at = self._clock()
            grant = await self._oauth.request_token()
            refreshed = CachedToken(
                value=grant.access_token,
                expires_at=requested_at + timedelta(seconds=grant.expires_in),
            )
            self._cached = refreshed

        logger.info(
            "Obtained access token (type=%s, expires in %ss at %s)",
            grant.token_type,
            grant.expires_in,
            refreshed.expires_at.isoformat(),
        )
        return refreshed.value

    def clear(self) -> None:
        """Forget the cached token so the next call fetches a new one."""
        if self._cached is not None:
            logger.info(
                "Clearing cached access token %s", preview_token(self._cached.value)
            )
        self._cached = None


__all__ = ["AccessTokenCache", "CachedToken"]
