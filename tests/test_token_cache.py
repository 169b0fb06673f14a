from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone

import pytest

from idverify.clients.provider_oauth import ProviderAuthError, TokenGrant
from idverify.services.token_cache import AccessTokenCache

pytestmark = pytest.mark.anyio


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


class CountingOAuthClient:
    def __init__(self, *, expires_in: int = 900) -> None:
        self.calls = 0
        self.expires_in = expires_in
        self.fail_with: Exception | None = None

    async def request_token(self) -> TokenGrant:
        self.calls += 1
        # Let other waiters pile up behind the lock before answering.
        await asyncio.sleep(0.01)
        if self.fail_with is not None:
            raise self.fail_with
        return TokenGrant(
            access_token=f"token-{self.calls}",
            expires_in=self.expires_in,
            token_type="Bearer",
        )


async def test_token_is_reused_until_renewal_margin() -> None:
    clock = FakeClock()
    client = CountingOAuthClient(expires_in=900)
    cache = AccessTokenCache(client, clock=clock)

    assert await cache.get_token() == "token-1"
    clock.advance(800)
    assert await cache.get_token() == "token-1"
    assert client.calls == 1

    # 900 - 60 second margin: a token this close to expiry is renewed.
    clock.advance(45)
    assert await cache.get_token() == "token-2"
    assert client.calls == 2


async def test_expires_at_is_request_time_plus_lifetime() -> None:
    clock = FakeClock()
    cache = AccessTokenCache(CountingOAuthClient(expires_in=300), clock=clock)

    await cache.get_token()

    assert cache.cached is not None
    assert cache.cached.expires_at == clock.now + timedelta(seconds=300)


async def test_concurrent_callers_share_one_fetch() -> None:
    client = CountingOAuthClient()
    cache = AccessTokenCache(client, clock=FakeClock())

    tokens = await asyncio.gather(*(cache.get_token() for _ in range(10)))

    assert set(tokens) == {"token-1"}
    assert client.calls == 1


async def test_failed_refresh_leaves_cache_empty() -> None:
    clock = FakeClock()
    client = CountingOAuthClient(expires_in=120)
    cache = AccessTokenCache(client, clock=clock)
    await cache.get_token()

    clock.advance(100)
    client.fail_with = ProviderAuthError("Failed to obtain OAuth token: 401 - nope")
    with pytest.raises(ProviderAuthError):
        await cache.get_token()
    assert cache.cached is None

    client.fail_with = None
    assert await cache.get_token() == "token-3"


async def test_clear_forces_refetch() -> None:
    client = CountingOAuthClient()
    cache = AccessTokenCache(client, clock=FakeClock())
    await cache.get_token()

    cache.clear()

    assert cache.cached is None
    assert await cache.get_token() == "token-2"


async def test_custom_renewal_margin() -> None:
    clock = FakeClock()
    client = CountingOAuthClient(expires_in=900)
    cache = AccessTokenCache(
        client, renewal_margin=timedelta(seconds=600), clock=clock
    )

    await cache.get_token()
    clock.advance(301)
    await cache.get_token()

    assert client.calls == 2
