"""Schemas for asynchronous status callbacks."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _not_blank(value: str, field_name: str) -> str:
    if not value or not value.strip():
        raise ValueError(f"{field_name} is required")
    return value


class UpdateStatusRequest(BaseModel):
    """Body of the unauthenticated status-update endpoint.

    ``event`` is a camelCase provider event name and takes precedence over an
    explicit ``status`` when both are given.
    """

    model_config = ConfigDict(populate_by_name=True)

    transaction_id: str = Field(..., alias="transactionId")
    event: Optional[str] = Field(
        None, description="Provider event name, e.g. completedPass."
    )
    status: Optional[str] = Field(
        None, description="Explicit status label, used when no event is given."
    )

    @field_validator("transaction_id")
    @classmethod
    def _require_transaction_id(cls, value: str) -> str:
        return _not_blank(value, "transactionId")


class WebhookPayload(BaseModel):
    """Notification sent by the provider to the event and completion webhooks."""

    model_config = ConfigDict(populate_by_name=True)

    transaction_id: str = Field(..., alias="transactionId")
    event: str = Field(
        ...,
        description=(
            "Transaction stage: pending, termsAndConditions, idSelection, "
            "personalDetails, liveness, expired, cancelled, completedPass or "
            "completedFlagged."
        ),
    )

    @field_validator("transaction_id")
    @classmethod
    def _require_transaction_id(cls, value: str) -> str:
        return _not_blank(value, "transactionId")

    @field_validator("event")
    @classmethod
    def _require_event(cls, value: str) -> str:
        return _not_blank(value, "event")


__all__ = ["UpdateStatusRequest", "WebhookPayload"]
