"""Schemas related to the provider's OAuth token endpoint."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class OAuthTokenResponse(BaseModel):
    """Token endpoint body, either a grant or an error description."""

    token_type: Optional[str] = Field(None, description="Usually 'Bearer'.")
    expires_in: Optional[int] = Field(None, description="Lifetime in seconds.")
    access_token: Optional[str] = None
    error: Optional[str] = None
    error_description: Optional[str] = None
    hint: Optional[str] = None
    message: Optional[str] = None


__all__ = ["OAuthTokenResponse"]
