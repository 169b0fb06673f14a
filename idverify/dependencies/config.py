"""
Settings dependency shared by the API routes.
"""

from idverify.core.config import AppSettings, get_settings


def get_app_settings() -> AppSettings:
    """Return the process-wide settings; tests override this dependency."""
    return get_settings()


__all__ = ["get_app_settings"]
