"""
OAuth client-credentials access to the verification provider.

The provider issues short-lived bearer tokens from a form-encoded token
endpoint; this module only talks to that endpoint. Caching lives in
``idverify.services.token_cache``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict

import httpx

from idverify.core.config import ProviderSettings
from idverify.core.logging import mask_secret, preview_token

logger = logging.getLogger(__name__)

DEFAULT_EXPIRES_IN = 900


class ProviderAuthError(Exception):
    """Raised when the token endpoint does not hand out an access token."""


@dataclass(frozen=True)
class TokenGrant:
    access_token: str
    expires_in: int
    token_type: str | None = None


class ProviderOAuthClient:
    """Request client-credentials tokens from the provider."""

    def __init__(
        self,
        settings: ProviderSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def _form(self) -> Dict[str, str]:
        return {
            "grant_type": "client_credentials",
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
        }

    async def _post(self) -> httpx.Response:
        async with httpx.AsyncClient(
            timeout=self._settings.timeout_seconds, transport=self._transport
        ) as client:
            return await client.post(
                self._settings.oauth_url,
                data=self._form(),
                headers={"Accept": "application/json"},
            )

    async def request_token(self) -> TokenGrant:
        """
        Fetch a fresh access token.

        Raises ``ProviderAuthError`` on transport failures, non-2xx responses,
        non-JSON bodies and error payloads.
        """
        logger.debug(
            "Requesting OAuth token from %s (client_id=%s, client_secret=%s)",
            self._settings.oauth_url,
            self._settings.client_id,
            mask_secret(self._settings.client_secret),
        )
        try:
            response = await self._post()
        except httpx.TimeoutException as exc:
            raise ProviderAuthError(
                "Failed to obtain OAuth token: request timed out after "
                f"{self._settings.timeout_seconds:g} seconds"
            ) from exc
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            detail = str(exc) or type(exc).__name__
            raise ProviderAuthError(f"Failed to obtain OAuth token: {detail}") from exc

        if not response.is_success:
            logger.error(
                "OAuth request failed with HTTP %s: %s",
                response.status_code,
                response.text,
            )
            raise ProviderAuthError(
                f"Failed to obtain OAuth token: {response.status_code} - {response.text}"
            )

        payload = _parse_json(response)
        if payload.get("error") is not None or payload.get("message") is not None:
            raise ProviderAuthError(
                "OAuth error: {error} - {description} (hint: {hint}, message: {message})".format(
                    error=payload.get("error"),
                    description=payload.get("error_description"),
                    hint=payload.get("hint"),
                    message=payload.get("message"),
                )
            )

        access_token = payload.get("access_token")
        if not access_token:
            raise ProviderAuthError(
                "OAuth token response does not contain access_token"
            )

        expires_in = payload.get("expires_in")
        try:
            expires_in = int(expires_in) if expires_in is not None else DEFAULT_EXPIRES_IN
        except (TypeError, ValueError) as exc:
            raise ProviderAuthError(
                f"OAuth token response has an invalid expires_in: {expires_in!r}"
            ) from exc

        return TokenGrant(
            access_token=access_token,
            expires_in=expires_in,
            token_type=payload.get("token_type"),
        )

    async def check_connection(self, *, verbose: bool = False) -> Dict[str, Any]:
        """Run a token request outside the cache and describe the outcome."""
        result: Dict[str, Any] = {}
        if verbose:
            result["request"] = {
                "url": self._settings.oauth_url,
                "method": "POST",
                "content_type": "application/x-www-form-urlencoded",
                "parameters": {
                    "grant_type": "client_credentials",
                    "client_id": self._settings.client_id,
                    "client_secret": mask_secret(self._settings.client_secret),
                },
            }

        try:
            response = await self._post()
        except (httpx.HTTPError, httpx.InvalidURL) as exc:
            result.update(
                status="ERROR",
                error="exception",
                exception_type=type(exc).__name__,
                message=str(exc) or type(exc).__name__,
            )
            return result

        if verbose:
            result["raw_response"] = response.text
            result["http_status"] = response.status_code

        if not response.is_success:
            result.update(
                status="FAILURE",
                error="http_error",
                message=f"HTTP {response.status_code}: {response.text}",
            )
            return result

        try:
            payload = _parse_json(response)
        except ProviderAuthError as exc:
            result.update(status="FAILURE", error="invalid_response", message=str(exc))
            return result

        access_token = payload.get("access_token")
        if access_token:
            result.update(
                status="SUCCESS",
                message="OAuth token obtained successfully",
                token_type=payload.get("token_type"),
                expires_in=payload.get("expires_in"),
                access_token_preview=preview_token(access_token),
            )
        else:
            result.update(
                status="FAILURE",
                error=payload.get("error"),
                error_description=payload.get("error_description"),
                hint=payload.get("hint"),
                message=payload.get("message"),
            )
        return result


def _parse_json(response: httpx.Response) -> Dict[str, Any]:
    try:
        payload = response.json()
    except ValueError as exc:
        raise ProviderAuthError("OAuth token response is not valid JSON") from exc
    if not isinstance(payload, dict):
        raise ProviderAuthError("OAuth token response is not a JSON object")
    return payload


__all__ = [
    "DEFAULT_EXPIRES_IN",
    "ProviderAuthError",
    "ProviderOAuthClient",
    "TokenGrant",
]
