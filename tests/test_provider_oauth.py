from __future__ import annotations

from urllib.parse import parse_qs

import httpx
import pytest

from idverify.clients.provider_oauth import (
    DEFAULT_EXPIRES_IN,
    ProviderAuthError,
    ProviderOAuthClient,
)
from idverify.core.config import ProviderSettings

pytestmark = pytest.mark.anyio

OAUTH_URL = "https://provider.test/api/3.5/oauthToken"


def _client(handler) -> ProviderOAuthClient:
    settings = ProviderSettings(
        client_id="client-123",
        client_secret="super-secret-value",
        oauth_url=OAUTH_URL,
    )
    return ProviderOAuthClient(settings, transport=httpx.MockTransport(handler))


async def test_request_token_posts_client_credentials_form() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={"access_token": "abc", "expires_in": 600, "token_type": "Bearer"},
        )

    grant = await _client(handler).request_token()

    assert grant.access_token == "abc"
    assert grant.expires_in == 600
    assert grant.token_type == "Bearer"
    form = parse_qs(seen[0].content.decode("utf-8"))
    assert form == {
        "grant_type": ["client_credentials"],
        "client_id": ["client-123"],
        "client_secret": ["super-secret-value"],
    }
    assert seen[0].headers["content-type"] == "application/x-www-form-urlencoded"


async def test_missing_expires_in_defaults() -> None:
    grant = await _client(
        lambda request: httpx.Response(200, json={"access_token": "abc"})
    ).request_token()

    assert grant.expires_in == DEFAULT_EXPIRES_IN


@pytest.mark.parametrize(
    "response, message",
    [
        (httpx.Response(401, text="denied"), "Failed to obtain OAuth token: 401 - denied"),
        (httpx.Response(200, text="<html></html>"), "not valid JSON"),
        (httpx.Response(200, json={"error": "invalid_client"}), "OAuth error: invalid_client"),
        (httpx.Response(200, json={"token_type": "Bearer"}), "does not contain access_token"),
    ],
)
async def test_request_token_failures(response: httpx.Response, message: str) -> None:
    with pytest.raises(ProviderAuthError) as excinfo:
        await _client(lambda request: response).request_token()

    assert message in str(excinfo.value)


async def test_connection_check_reports_success_with_preview() -> None:
    token = "a" * 40
    result = await _client(
        lambda request: httpx.Response(
            200, json={"access_token": token, "expires_in": 900, "token_type": "Bearer"}
        )
    ).check_connection()

    assert result["status"] == "SUCCESS"
    assert result["access_token_preview"] == "a" * 20 + "..."
    assert "request" not in result


async def test_verbose_connection_check_masks_secret() -> None:
    result = await _client(
        lambda request: httpx.Response(400, json={"error": "invalid_client"})
    ).check_connection(verbose=True)

    assert result["status"] == "FAILURE"
    assert result["http_status"] == 400
    assert result["request"]["parameters"]["client_secret"] == "supe****alue"


async def test_connection_check_reports_transport_errors() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("no route", request=request)

    result = await _client(handler).check_connection()

    assert result["status"] == "ERROR"
    assert result["exception_type"] == "ConnectError"


async def test_malformed_token_url_raises_auth_error() -> None:
    settings = ProviderSettings(
        client_id="client-123",
        client_secret="super-secret-value",
        oauth_url="https://provider.test:notaport/oauthToken",
    )
    client = ProviderOAuthClient(settings)

    with pytest.raises(ProviderAuthError) as excinfo:
        await client.request_token()
    check_result = await client.check_connection()

    assert str(excinfo.value).startswith("Failed to obtain OAuth token:")
    assert check_result["status"] == "ERROR"
    assert check_result["exception_type"] == "InvalidURL"
