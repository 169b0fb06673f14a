from __future__ import annotations

import base64
from datetime import datetime, timedelta, timezone

import pytest

from idverify.services.signed_tokens import (
    ExpiredTokenError,
    InvalidTokenError,
    SignedTokenService,
)


class FakeClock:
    def __init__(self) -> None:
        self.now = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


def test_issue_and_verify_round_trip() -> None:
    service = SignedTokenService("short-secret")

    claims = service.verify(service.issue("webhook-event"))

    assert claims["sub"] == "webhook-event"
    assert claims["exp"] - claims["iat"] == int(timedelta(hours=24).total_seconds())


def test_expired_token_is_rejected() -> None:
    clock = FakeClock()
    service = SignedTokenService("secret", clock=clock)
    token = service.issue("authenticated-user", ttl=timedelta(minutes=5))

    clock.now += timedelta(minutes=5)

    with pytest.raises(ExpiredTokenError):
        service.verify(token)
    assert service.is_valid(token) is False


def test_token_from_other_secret_is_rejected() -> None:
    token = SignedTokenService("secret-one").issue("webhook-complete")

    with pytest.raises(InvalidTokenError):
        SignedTokenService("secret-two").verify(token)


def test_tampered_payload_is_rejected() -> None:
    service = SignedTokenService("secret")
    raw = bytearray(base64.urlsafe_b64decode(service.issue("webhook-complete")))
    raw[-2] ^= 0x01

    tampered = base64.urlsafe_b64encode(bytes(raw)).decode("utf-8")

    assert service.is_valid(tampered) is False


@pytest.mark.parametrize("token", [None, "", "not-base64!!", "c2hvcnQ="])
def test_malformed_tokens_are_invalid(token) -> None:
    assert SignedTokenService("secret").is_valid(token) is False


def test_empty_secret_is_refused() -> None:
    with pytest.raises(ValueError):
        SignedTokenService("")
