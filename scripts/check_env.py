"""Pre-flight check for the verification proxy's provider configuration.

Loads ``AppSettings`` from a ``.env`` file the same way the service does, then
checks what would otherwise only fail on the first ``/api/verify`` call:

* the provider token and API endpoints, and any webhook notify URLs, must be
  absolute ``http``/``https`` URLs that httpx can send to;
* demo credentials, the built-in JWT secret and a missing ``AUTH_KEY`` are
  reported as warnings;
* with ``--connect`` a token is requested from the provider and the outcome is
  printed with the token masked.

Example usages::

    python -m scripts.check_env --env-file /opt/idverify/.env
    python -m scripts.check_env --env-file /opt/idverify/.env --connect
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

import httpx
from pydantic import ValidationError

from idverify.clients.provider_oauth import ProviderOAuthClient
from idverify.core.config import DEFAULT_JWT_SECRET, AppSettings, _load_env_file

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_ENDPOINT_ERROR = 3
EXIT_CONNECTION_ERROR = 4
EXIT_RUNTIME_ERROR = 5

_ALLOWED_SCHEMES = ("http", "https")


def _load_settings(env_file: Path) -> AppSettings:
    _load_env_file(str(env_file))
    return AppSettings(_env_file=env_file)  # type: ignore[call-arg]


def endpoint_problem(value: str) -> Optional[str]:
    """Return why ``value`` cannot be used as a provider endpoint, or None."""
    try:
        url = httpx.URL(value)
    except httpx.InvalidURL as exc:
        return str(exc)
    if url.scheme not in _ALLOWED_SCHEMES:
        return f"scheme must be http or https, got {url.scheme or 'none'!r}"
    if not url.host:
        return "URL has no host"
    return None


def endpoint_errors(settings: AppSettings) -> list[str]:
    """List every configured endpoint that httpx would refuse to call."""
    endpoints = {
        "IDVERSE_OAUTH_URL": settings.provider.oauth_url,
        "IDVERSE_API_URL": settings.provider.api_url,
        "NOTIFY_URL_COMPLETE": settings.webhooks.notify_url_complete,
        "NOTIFY_URL_EVENT": settings.webhooks.notify_url_event,
    }
    errors = []
    for name, value in endpoints.items():
        if value is None:
            continue
        problem = endpoint_problem(value)
        if problem:
            errors.append(f"{name}={value!r}: {problem}")
    return errors


def configuration_warnings(settings: AppSettings) -> list[str]:
    warnings = []
    if settings.provider.client_id == "demo_client_id":
        warnings.append("IDVERSE_CLIENT_ID is not set; provider calls will fail.")
    if settings.provider.client_secret == "demo_client_secret":
        warnings.append("IDVERSE_CLIENT_SECRET is not set; provider calls will fail.")
    if settings.security.jwt_secret_key == DEFAULT_JWT_SECRET:
        warnings.append("JWT_SECRET_KEY uses the built-in default.")
    if not settings.security.auth_key:
        warnings.append("AUTH_KEY is not set; /api/getAuth will reject every caller.")
    if not (settings.webhooks.notify_url_complete or settings.webhooks.notify_url_event):
        warnings.append(
            "No NOTIFY_URL_* is set; transaction status will only change "
            "through /api/updateStatus."
        )
    return warnings


def check_connection(
    settings: AppSettings, transport: httpx.AsyncBaseTransport | None = None
) -> int:
    """Request one token from the provider and print the masked outcome."""
    client = ProviderOAuthClient(settings.provider, transport=transport)
    result = asyncio.run(client.check_connection())
    print(json.dumps(result, indent=2))
    if result.get("status") == "SUCCESS":
        return EXIT_OK
    return EXIT_CONNECTION_ERROR


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate provider configuration before starting the proxy."
    )
    parser.add_argument(
        "--env-file",
        default=".env",
        type=Path,
        help="Path to the environment file (default: .env in the repo root).",
    )
    parser.add_argument(
        "--connect",
        action="store_true",
        help="Also request an OAuth token from the configured provider.",
    )
    return parser


def main(
    argv: list[str] | None = None,
    *,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    args = _build_parser().parse_args(argv)
    env_file: Path = args.env_file

    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    for warning in configuration_warnings(settings):
        print(f"Warning: {warning}", file=sys.stderr)

    errors = endpoint_errors(settings)
    if errors:
        print("Unusable endpoint configuration:", file=sys.stderr)
        for error in errors:
            print(f"  {error}", file=sys.stderr)
        return EXIT_ENDPOINT_ERROR

    if args.connect:
        return check_connection(settings, transport)

    print("Configuration OK.")
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
