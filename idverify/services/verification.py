"""
Verification orchestration: assign ids, call the provider, record the outcome.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from idverify.clients.provider_api import ProviderApiClient, ProviderCallError
from idverify.clients.provider_oauth import ProviderAuthError
from idverify.clients.sqlite_store import VerificationRecordStore
from idverify.core.config import WebhookSettings
from idverify.models.verification import (
    STATUS_FAILURE,
    STATUS_SMS_SENT,
    VerificationRecord,
)
from idverify.schemas import VerificationRequest
from idverify.services.identifiers import ensure_transaction_id
from idverify.services.signed_tokens import SignedTokenService
from idverify.services.token_cache import AccessTokenCache

logger = logging.getLogger(__name__)

DRY_RUN_RESPONSE = '{"mock":true,"status":"success"}'
WEBHOOK_COMPLETE_SUBJECT = "webhook-complete"
WEBHOOK_EVENT_SUBJECT = "webhook-event"


class VerificationService:
    """Run single verification attempts against the provider.

    Every call to :meth:`verify` writes exactly one record. Provider and
    token failures become ``FAILURE`` records; they are never raised.
    """

    def __init__(
        self,
        *,
        store: VerificationRecordStore,
        api_client: ProviderApiClient,
        token_cache: AccessTokenCache,
        token_service: SignedTokenService,
        webhook_settings: WebhookSettings,
    ) -> None:
        self._store = store
        self._api = api_client
        self._tokens = token_cache
        self._signer = token_service
        self._webhooks = webhook_settings

    def build_payload(self, request: VerificationRequest) -> Dict[str, Any]:
        """Build the provider request body; expects a transaction id to be set."""
        payload: Dict[str, Any] = {
            "phoneCode": request.phone_code,
            "phoneNumber": request.phone_number,
            "referenceId": request.reference_id,
            "transactionId": request.transaction_id,
        }
        if request.name:
            payload["name"] = request.name
        if request.supplied_first_name:
            payload["suppliedFirstName"] = request.supplied_first_name

        if self._webhooks.notify_url_complete:
            payload["notifyUrlComplete"] = self._webhooks.notify_url_complete
            payload["notifyCompleteToken"] = self._signer.issue(
                WEBHOOK_COMPLETE_SUBJECT
            )
        if self._webhooks.notify_url_event:
            payload["notifyUrlEvent"] = self._webhooks.notify_url_event
            payload["notifyEventToken"] = self._signer.issue(WEBHOOK_EVENT_SUBJECT)
        return payload

    async def verify(
        self, request: VerificationRequest, *, dry_run: bool = False
    ) -> VerificationRecord:
        transaction_id = ensure_transaction_id(request)
        logger.info(
            "Starting verification for reference %s (transaction %s, dry_run=%s)",
            request.reference_id,
            transaction_id,
            dry_run,
        )

        api_response: Optional[str] = None
        error_message: Optional[str] = None
        if dry_run:
            api_response = DRY_RUN_RESPONSE
        else:
            try:
                payload = self.build_payload(request)
                access_token = await self._tokens.get_token()
                api_response = await self._api.send_verification(
                    payload, access_token=access_token
                )
            except (ProviderAuthError, ProviderCallError) as exc:
                error_message = str(exc)
                logger.error(
                    "Verification failed for reference %s: %s",
                    request.reference_id,
                    error_message,
                )
            except Exception as exc:  # pylint: disable=broad-except
                detail = str(exc) or type(exc).__name__
                error_message = f"Unexpected error during verification: {detail}"
                logger.exception(
                    "Unexpected verification error for reference %s",
                    request.reference_id,
                )

        record = self._store.append(
            phone_number=f"{request.phone_code}{request.phone_number}",
            reference_id=request.reference_id,
            transaction_id=transaction_id,
            status=STATUS_FAILURE if error_message else STATUS_SMS_SENT,
            api_response=None if error_message else api_response,
            error_message=error_message,
        )
        logger.info(
            "Verification record %s saved with status '%s'", record.id, record.status
        )
        return record

    def list_verifications(self) -> List[VerificationRecord]:
        return self._store.list_all()

    def get_verification(self, record_id: int) -> Optional[VerificationRecord]:
        return self._store.get(record_id)

    def latest_status_by_reference(
        self, reference_id: str
    ) -> Optional[VerificationRecord]:
        return self._store.latest_by_reference(reference_id)

    def latest_status_by_transaction(
        self, transaction_id: str
    ) -> Optional[VerificationRecord]:
        return self._store.latest_by_transaction(transaction_id)


__all__ = ["DRY_RUN_RESPONSE", "VerificationService"]
