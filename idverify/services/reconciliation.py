"""
Apply asynchronous status updates to the verification log.

Provider webhooks and the unauthenticated update endpoint both land here. An
update never modifies an existing row: it appends a new one that inherits the
phone number and reference id of the latest record it belongs to.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from typing import Any, Dict, Optional

from idverify.clients.sqlite_store import VerificationRecordStore
from idverify.models.verification import (
    STATUS_FAILURE,
    STATUS_SMS_SENT,
    VerificationRecord,
)

logger = logging.getLogger(__name__)

_EVENT_DESCRIPTIONS = {
    "pending": (logging.INFO, "Transaction link sent to end-user"),
    "termsandconditions": (logging.INFO, "End-user reviewing Terms and Conditions"),
    "idselection": (logging.INFO, "End-user selecting ID for verification"),
    "personaldetails": (logging.INFO, "End-user checking extracted information"),
    "liveness": (logging.INFO, "End-user at liveness attempt phase"),
    "completedpass": (logging.INFO, "Verification completed - PASSED"),
    "completedflagged": (
        logging.WARNING,
        "Verification completed - FLAGGED (conflicts detected)",
    ),
    "expired": (logging.WARNING, "Transaction EXPIRED"),
    "cancelled": (logging.WARNING, "Transaction CANCELLED"),
}


class StatusUpdateValidationError(ValueError):
    """Raised when an update carries neither an event nor a status."""


class UpdateChannel(str, Enum):
    """Where an update came from; decides the not-found message."""

    STATUS_UPDATE = "status_update"
    WEBHOOK = "webhook"

    @property
    def not_found_message(self) -> str:
        if self is UpdateChannel.WEBHOOK:
            return "Transaction ID not found in database at time of webhook receipt"
        return "Transaction ID not found at time of status update"


def event_to_status(event: str | None) -> str:
    """Convert a camelCase event name into an upper-case status label.

    ``completedPass`` becomes ``COMPLETED PASS``.
    """
    if not event:
        return ""
    parts = []
    for index, char in enumerate(event):
        if index > 0 and char.isupper():
            parts.append(" ")
        parts.append(char.upper())
    return "".join(parts)


def _present(value: Optional[str]) -> bool:
    return value is not None and bool(value.strip())


def resolve_status(event: Optional[str], status: Optional[str]) -> str:
    """Pick the status label for an update; the event name wins when both are set."""
    if _present(event):
        return event_to_status(event.strip())
    if _present(status):
        return status.strip()
    raise StatusUpdateValidationError(
        "At least one of 'event' or 'status' must be provided"
    )


class StatusReconciler:
    """Append status records for callbacks keyed by transaction id."""

    def __init__(self, store: VerificationRecordStore) -> None:
        self._store = store

    def find_origin(self, transaction_id: str) -> Optional[VerificationRecord]:
        """Latest record a callback should inherit its phone and reference from."""
        for status in (STATUS_SMS_SENT, STATUS_FAILURE):
            record = self._store.latest_by_transaction_and_status(
                transaction_id, status
            )
            if record is not None:
                return record
        return None

    def handle_event(
        self,
        *,
        transaction_id: str,
        event: Optional[str] = None,
        status: Optional[str] = None,
        payload: Optional[Dict[str, Any]] = None,
        channel: UpdateChannel = UpdateChannel.STATUS_UPDATE,
    ) -> VerificationRecord:
        if not _present(transaction_id):
            raise StatusUpdateValidationError("transactionId is required")
        resolved_status = resolve_status(event, status)
        transaction_id = transaction_id.strip()

        if _present(event):
            _log_event(event.strip())

        if payload is None:
            payload = {"transactionId": transaction_id, "event": event, "status": status}
        raw_payload = json.dumps(payload, separators=(",", ":"))

        origin = self.find_origin(transaction_id)
        if origin is not None:
            logger.info(
                "Found record %s for transaction %s; copying phone number and reference id",
                origin.id,
                transaction_id,
            )
            record = self._store.append(
                transaction_id=transaction_id,
                status=resolved_status,
                phone_number=origin.phone_number,
                reference_id=origin.reference_id,
                api_response=raw_payload,
            )
        else:
            logger.warning(
                "Transaction ID %s not found with status '%s' or '%s' (%s)",
                transaction_id,
                STATUS_SMS_SENT,
                STATUS_FAILURE,
                channel.value,
            )
            record = self._store.append(
                transaction_id=transaction_id,
                status=resolved_status,
                api_response=raw_payload,
                error_message=channel.not_found_message,
            )

        logger.info(
            "Saved record %s with status '%s' for transaction %s",
            record.id,
            resolved_status,
            transaction_id,
        )
        return record


def _log_event(event: str) -> None:
    level, description = _EVENT_DESCRIPTIONS.get(
        event.lower(), (logging.WARNING, f"Unknown event type: {event}")
    )
    logger.log(level, description)


__all__ = [
    "StatusReconciler",
    "StatusUpdateValidationError",
    "UpdateChannel",
    "event_to_status",
    "resolve_status",
]
