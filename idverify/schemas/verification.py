"""
Pydantic models for verification requests and the records returned to callers.
"""

import re
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from idverify.models.verification import (
    TRANSACTION_ID_MAX_LENGTH,
    TRANSACTION_ID_MIN_LENGTH,
    TRANSACTION_ID_PATTERN,
)

_PHONE_CODE_PATTERN = re.compile(r"^\+?[1-9]\d{0,3}$")
_PHONE_NUMBER_PATTERN = re.compile(r"^\d{4,15}$")


class VerificationRequest(BaseModel):
    """Incoming payload asking the provider to verify a phone number."""

    model_config = ConfigDict(populate_by_name=True)

    phone_code: str = Field(
        ..., alias="phoneCode", description="Country dialling code, e.g. +1."
    )
    phone_number: str = Field(
        ..., alias="phoneNumber", description="Subscriber number, digits only."
    )
    reference_id: str = Field(
        ...,
        alias="referenceId",
        description="Caller-side business identifier for this verification.",
    )
    transaction_id: Optional[str] = Field(
        None,
        alias="transactionId",
        description="Correlates provider callbacks; generated when left blank.",
    )
    name: Optional[str] = Field(None, description="Optional full name.")
    supplied_first_name: Optional[str] = Field(
        None, alias="suppliedFirstName", description="Optional first name."
    )

    @field_validator("phone_code")
    @classmethod
    def _check_phone_code(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Phone code is required")
        if not _PHONE_CODE_PATTERN.match(value):
            raise ValueError("Invalid phone code format (e.g., +1)")
        return value

    @field_validator("phone_number")
    @classmethod
    def _check_phone_number(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("Phone number is required")
        if not _PHONE_NUMBER_PATTERN.match(value):
            raise ValueError("Invalid phone number format (4-15 digits)")
        return value

    @field_validator("reference_id")
    @classmethod
    def _check_reference_id(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Reference ID is required")
        return value

    @field_validator("transaction_id")
    @classmethod
    def _check_transaction_id(cls, value: Optional[str]) -> Optional[str]:
        if value is None or not value.strip():
            return value
        if not TRANSACTION_ID_MIN_LENGTH <= len(value) <= TRANSACTION_ID_MAX_LENGTH:
            raise ValueError(
                "Transaction ID must be between "
                f"{TRANSACTION_ID_MIN_LENGTH} and {TRANSACTION_ID_MAX_LENGTH} characters"
            )
        if not TRANSACTION_ID_PATTERN.match(value):
            raise ValueError(
                "Transaction ID can only contain alphanumeric characters, "
                "spaces, hyphens, and underscores"
            )
        return value


class VerificationResponse(BaseModel):
    """A persisted verification record as returned by the API."""

    model_config = ConfigDict(populate_by_name=True, from_attributes=True)

    id: int
    phone_number: str = Field("", alias="phoneNumber")
    reference_id: str = Field("", alias="referenceId")
    transaction_id: str = Field(..., alias="transactionId")
    api_response: Optional[str] = Field(None, alias="apiResponse")
    status: str
    timestamp: datetime
    error_message: Optional[str] = Field(None, alias="errorMessage")


class StatusResponse(BaseModel):
    """Latest status for a reference or transaction id."""

    model_config = ConfigDict(populate_by_name=True)

    status: str
    timestamp: datetime
    error_message: Optional[str] = Field(None, alias="errorMessage")


class FormDefaultsResponse(BaseModel):
    """Pre-filled values for starting a verification."""

    model_config = ConfigDict(populate_by_name=True)

    phone_code: str = Field(..., alias="phoneCode")
    phone_number: str = Field(..., alias="phoneNumber")
    reference_id: str = Field(..., alias="referenceId")
    transaction_id: Optional[str] = Field(None, alias="transactionId")
    name: Optional[str] = None
    supplied_first_name: Optional[str] = Field(None, alias="suppliedFirstName")


__all__ = [
    "FormDefaultsResponse",
    "StatusResponse",
    "VerificationRequest",
    "VerificationResponse",
]
