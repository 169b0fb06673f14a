"""Tests for the provider configuration pre-flight script."""

from __future__ import annotations

import os
from pathlib import Path

import httpx
import pytest

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback when run as script
    import _bootstrap  # type: ignore # noqa: F401

from scripts import check_env

ENV_KEYS = [
    "IDVERSE_CLIENT_ID",
    "IDVERSE_CLIENT_SECRET",
    "IDVERSE_OAUTH_URL",
    "IDVERSE_API_URL",
    "NOTIFY_URL_COMPLETE",
    "NOTIFY_URL_EVENT",
    "JWT_SECRET_KEY",
    "AUTH_KEY",
    "PROVIDER_TIMEOUT_SECONDS",
]

CONFIGURED = {
    "IDVERSE_CLIENT_ID": "client-abc",
    "IDVERSE_CLIENT_SECRET": "secret-abc",
    "IDVERSE_OAUTH_URL": "https://provider.test/api/3.5/oauthToken",
    "IDVERSE_API_URL": "https://provider.test/api/3.5/sendSms",
    "NOTIFY_URL_COMPLETE": "https://proxy.test/api/webhook",
    "JWT_SECRET_KEY": "a-very-long-signing-secret",
    "AUTH_KEY": "operator-key",
}


def _write_env(env_path: Path, **values: str) -> Path:
    contents = "\n".join(f"{key}={value}" for key, value in values.items())
    env_path.write_text(contents + "\n", encoding="utf-8")
    return env_path


@pytest.fixture(autouse=True)
def isolated_environ(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep values loaded from temporary env files out of the real environment."""
    environ = {key: value for key, value in os.environ.items() if key not in ENV_KEYS}
    monkeypatch.setattr(os, "environ", environ)


def test_missing_env_file_is_runtime_error(tmp_path: Path) -> None:
    exit_code = check_env.main(["--env-file", str(tmp_path / ".missing-env")])
    assert exit_code == check_env.EXIT_RUNTIME_ERROR


def test_complete_configuration_passes(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    env_file = _write_env(tmp_path / ".env", **CONFIGURED)

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_OK
    captured = capsys.readouterr()
    assert "Configuration OK." in captured.out
    assert "Warning: " not in captured.err


def test_malformed_timeout_is_validation_error(tmp_path: Path) -> None:
    env_file = _write_env(
        tmp_path / ".env", **CONFIGURED, PROVIDER_TIMEOUT_SECONDS="not-a-number"
    )

    exit_code = check_env.main(["--env-file", str(env_file)])
    assert exit_code == check_env.EXIT_VALIDATION_ERROR


def test_invalid_port_in_api_url_is_reported(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    values = dict(CONFIGURED, IDVERSE_API_URL="https://provider.test:notaport/send")
    env_file = _write_env(tmp_path / ".env", **values)

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_ENDPOINT_ERROR
    err = capsys.readouterr().err
    assert "IDVERSE_API_URL='https://provider.test:notaport/send'" in err
    assert "port" in err.lower()


@pytest.mark.parametrize(
    ("value", "fragment"),
    [
        ("ftp://provider.test/token", "scheme must be http or https"),
        ("provider.test/token", "scheme must be http or https"),
        ("https://provider.test:notaport/token", "port"),
    ],
)
def test_endpoint_problem_rejects_unusable_urls(value: str, fragment: str) -> None:
    problem = check_env.endpoint_problem(value)
    assert problem is not None
    assert fragment in problem.lower()


def test_endpoint_problem_accepts_http_and_https() -> None:
    assert check_env.endpoint_problem("http://localhost:8080/api/webhook") is None
    assert check_env.endpoint_problem(CONFIGURED["IDVERSE_OAUTH_URL"]) is None


def test_bad_notify_url_is_reported(tmp_path: Path) -> None:
    values = dict(CONFIGURED, NOTIFY_URL_EVENT="mailto:ops@example.test")
    env_file = _write_env(tmp_path / ".env", **values)

    exit_code = check_env.main(["--env-file", str(env_file)])
    assert exit_code == check_env.EXIT_ENDPOINT_ERROR


def test_warns_about_demo_credentials(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    env_file = _write_env(tmp_path / ".env", APP_ENV="staging")

    exit_code = check_env.main(["--env-file", str(env_file)])

    assert exit_code == check_env.EXIT_OK
    err = capsys.readouterr().err
    assert "IDVERSE_CLIENT_ID is not set" in err
    assert "JWT_SECRET_KEY uses the built-in default" in err
    assert "AUTH_KEY is not set" in err
    assert "No NOTIFY_URL_* is set" in err


def test_connect_reports_masked_token(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    env_file = _write_env(tmp_path / ".env", **CONFIGURED)
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "access_token": "token-value-0123456789abcdef",
                "expires_in": 900,
                "token_type": "Bearer",
            },
        )

    exit_code = check_env.main(
        ["--env-file", str(env_file), "--connect"],
        transport=httpx.MockTransport(handler),
    )

    assert exit_code == check_env.EXIT_OK
    assert str(seen[0].url) == CONFIGURED["IDVERSE_OAUTH_URL"]
    out = capsys.readouterr().out
    assert '"status": "SUCCESS"' in out
    assert "token-value-0123456789abcdef" not in out


def test_connect_failure_sets_exit_code(tmp_path: Path) -> None:
    env_file = _write_env(tmp_path / ".env", **CONFIGURED)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401, json={"error": "invalid_client"})

    exit_code = check_env.main(
        ["--env-file", str(env_file), "--connect"],
        transport=httpx.MockTransport(handler),
    )
    assert exit_code == check_env.EXIT_CONNECTION_ERROR
