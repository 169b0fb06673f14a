"""
Domain models for the verification record log.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

STATUS_SMS_SENT = "SMS SENT"
STATUS_FAILURE = "FAILURE"

TRANSACTION_ID_MIN_LENGTH = 10
TRANSACTION_ID_MAX_LENGTH = 128
TRANSACTION_ID_PATTERN = re.compile(r"^[A-Za-z0-9 _-]*$")


class VerificationRecord(BaseModel):
    """One immutable row of the append-only verification log.

    Status changes never update a row; the current state of a transaction or
    reference is the row with the greatest timestamp (then greatest id).
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    phone_number: str = Field("", alias="phoneNumber")
    reference_id: str = Field("", alias="referenceId")
    transaction_id: str = Field(..., alias="transactionId")
    api_response: Optional[str] = Field(None, alias="apiResponse")
    status: str
    error_message: Optional[str] = Field(None, alias="errorMessage")
    timestamp: datetime

    @property
    def succeeded(self) -> bool:
        return self.status == STATUS_SMS_SENT


__all__ = [
    "STATUS_FAILURE",
    "STATUS_SMS_SENT",
    "TRANSACTION_ID_MAX_LENGTH",
    "TRANSACTION_ID_MIN_LENGTH",
    "TRANSACTION_ID_PATTERN",
    "VerificationRecord",
]
