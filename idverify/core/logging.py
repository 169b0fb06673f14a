"""
Logging utilities for the verification proxy.

Provides a consistent logging format and keeps credentials out of log lines.
"""

import logging
import sys

_NOISY_LIBRARIES = ("httpx", "httpcore")


def configure_logging(level: str = "INFO") -> None:
    """Configure root logging with a sensible default format."""
    level = level.upper()
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        stream=sys.stdout,
    )
    # httpx logs every request line at INFO; only surface it when debugging.
    library_level = logging.DEBUG if level == "DEBUG" else logging.WARNING
    for name in _NOISY_LIBRARIES:
        logging.getLogger(name).setLevel(library_level)


def mask_secret(secret: str | None) -> str:
    """Show only the first and last four characters of a secret."""
    if not secret or len(secret) <= 8:
        return "****"
    return f"{secret[:4]}****{secret[-4:]}"


def preview_token(token: str | None, length: int = 20) -> str:
    """Return a truncated preview of a bearer token."""
    if not token:
        return ""
    return f"{token[:length]}..."


def mask_key(key: str | None) -> str:
    """Mask a short exchange key, keeping its first and last character."""
    if not key or len(key) <= 2:
        return "***"
    return f"{key[0]}***{key[-1]}"


__all__ = ["configure_logging", "mask_key", "mask_secret", "preview_token"]
