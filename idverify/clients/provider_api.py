"""
HTTP client for the provider's send-verification endpoint.

Successful calls return the raw response text. Anything the caller must not
treat as success (transport errors, timeouts, non-2xx responses and HTML pages
served with a 200) is raised as ``ProviderCallError`` carrying a message that is
safe to store and show to users.
"""

from __future__ import annotations

import logging
from typing import Any, Dict

import httpx

from idverify.core.config import ProviderSettings

logger = logging.getLogger(__name__)

HTML_ERROR_MESSAGE = "API returned HTML error page instead of JSON response"
CDN_BLOCK_MESSAGE = (
    "Request blocked by CDN (HTTP 403). "
    "Check the provider allow-list for this server."
)
TRUNCATION_MARKER = "... (truncated)"
MAX_UNPROCESSABLE_BODY = 200

_HTML_MARKERS = ("<!doctype", "<html")
_CDN_SIGNATURES = ("cloudflare", "attention required", "cf-ray")


class ProviderCallError(Exception):
    """Raised when the verification call cannot be treated as a success."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


def looks_like_html(body: str | None) -> bool:
    """True when the body starts like an HTML document, in any case."""
    if not body:
        return False
    head = body.lstrip()[:16].lower()
    return head.startswith(_HTML_MARKERS)


def classify_body(body: str | None) -> str:
    """Return the body to store for a 2xx response, or raise for HTML pages."""
    if body is None or not body.strip():
        return "{}"
    if looks_like_html(body):
        raise ProviderCallError(HTML_ERROR_MESSAGE)
    return body


def describe_http_error(status_code: int, body: str | None) -> str:
    """Turn a non-2xx provider response into a user-facing message."""
    body = body or ""
    if status_code == 422:
        if len(body) > MAX_UNPROCESSABLE_BODY:
            body = body[:MAX_UNPROCESSABLE_BODY] + TRUNCATION_MARKER
        return f"HTTP 422: {body}"
    if status_code == 403 and any(sig in body.lower() for sig in _CDN_SIGNATURES):
        return CDN_BLOCK_MESSAGE
    if looks_like_html(body):
        return (
            f"Provider returned an HTML error page (HTTP {status_code}). "
            "Please contact support."
        )
    return f"HTTP {status_code}: {body}"


class ProviderApiClient:
    """POST verification payloads to the provider."""

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def send_verification(
        self, payload: Dict[str, Any], *, access_token: str
    ) -> str:
        headers = {
            "Authorization": f"Bearer {access_token}",
            "Accept": "application/json",
        }
        timeout = self._settings.timeout_seconds
        try:
            async with httpx.AsyncClient(
                timeout=timeout, transport=self._transport
            ) as client:
                response = await client.post(
                    self._settings.api_url, json=payload, headers=headers
                )
        except httpx.TimeoutException as exc:
            raise ProviderCallError(
                f"Request to verification provider timed out after {timeout:g} seconds"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            detail = str(exc) or type(exc).__name__
            raise ProviderCallError(
                f"Request to verification provider failed: {detail}"
            ) from exc

        if not response.is_success:
            logger.error(
                "Provider returned HTTP %s (%d bytes)",
                response.status_code,
                len(response.content),
            )
            raise ProviderCallError(
                describe_http_error(response.status_code, response.text),
                status_code=response.status_code,
            )

        body = classify_body(response.text)
        logger.debug("Provider response: %s", body)
        return body


__all__ = [
    "CDN_BLOCK_MESSAGE",
    "HTML_ERROR_MESSAGE",
    "ProviderApiClient",
    "ProviderCallError",
    "classify_body",
    "describe_http_error",
    "looks_like_html",
]
