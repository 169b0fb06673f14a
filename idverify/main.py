"""
FastAPI application entrypoint for the phone identity-verification proxy.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Any, Dict, Sequence

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from idverify.api.routes import router as api_router
from idverify.core.config import get_settings
from idverify.core.logging import configure_logging

logger = logging.getLogger(__name__)

_VALUE_ERROR_PREFIX = "Value error, "


def _field_name(loc: Sequence[Any]) -> str:
    parts = [str(part) for part in loc if part not in ("body", "query", "header")]
    return ".".join(parts) or "request"


def format_validation_errors(errors: Sequence[Dict[str, Any]]) -> str:
    """Render pydantic errors as ``field: message`` pairs joined by ``; ``."""
    messages = []
    for error in errors:
        message = str(error.get("msg", "Invalid value"))
        if message.startswith(_VALUE_ERROR_PREFIX):
            message = message[len(_VALUE_ERROR_PREFIX):]
        messages.append(f"{_field_name(error.get('loc', ()))}: {message}")
    return "; ".join(messages)


async def _validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    message = format_validation_errors(exc.errors())
    logger.warning("Rejected %s %s: %s", request.method, request.url.path, message)
    return JSONResponse(
        status_code=HTTPStatus.BAD_REQUEST,
        content={"status": "error", "error": "Validation Error", "message": message},
    )


def create_app() -> FastAPI:
    """Factory for the FastAPI application."""
    settings = get_settings()
    configure_logging(settings.log_level)

    app = FastAPI(
        title="Phone Identity Verification Proxy",
        version="0.1.0",
        description=(
            "Proxies phone verification requests to the identity provider and "
            "tracks their status through provider webhooks."
        ),
    )
    app.add_exception_handler(RequestValidationError, _validation_exception_handler)
    app.include_router(api_router, prefix="/api")
    return app


app = create_app()

__all__ = ["app", "create_app", "format_validation_errors"]
