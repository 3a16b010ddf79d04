from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional
from urllib.parse import urlencode

from signflow.auth.service import CredentialService
from signflow.core.config import Settings
from signflow.core.errors import (
    AuthenticationFailed,
    ConfigurationMissing,
    EnvelopeSendFailed,
    InvalidCurrency,
    WorkflowError,
)
from signflow.core.logging import get_logger
from signflow.core.result import Result
from signflow.integrations.esignature import (
    AnchorTab,
    DocumentInfo,
    DocuSignAdapter,
    EnvelopeStatusInfo,
    RecipientInfo,
)
from signflow.schemas.agreement import AgreementParty
from signflow.services.handoff_store import HandoffRecord, HandoffStore
from signflow.services.payment_service import normalize_currency
from signflow.services.state_machine import NO_ENVELOPE_ID, Envelope, EnvelopeState, advance

logger = get_logger(__name__)

# Anchor strings embedded in the contract template.
APPROVER_SIGN_ANCHOR = "/s1/"
APPROVER_DATE_ANCHOR = "/d1/"
CLIENT_SIGN_ANCHOR = "/s2/"
CLIENT_DATE_ANCHOR = "/d2/"

CLIENT_RECIPIENT_ID = "1"
APPROVER_RECIPIENT_ID = "2"
DOCUMENT_ID = "1"

CLIENT_EMAIL_BODY = (
    "Your contract is ready! Please complete the required signature field, then click Finish to finalize "
    "the agreement and proceed immediately to the secure payment page. Contact us if you have any questions."
)

AdapterFactory = Callable[..., DocuSignAdapter]


@dataclass
class AgreementResult:
    success: bool
    message: str
    envelope_id: str = NO_ENVELOPE_ID
    signing_link: Optional[str] = None
    completion_url: Optional[str] = None
    state: EnvelopeState = EnvelopeState.UNSENT
    error: Optional[WorkflowError] = None


class EnvelopeService:
    """
    Sends the agreement envelope and hands the client an embedded signing link.

    Owns the envelope state machine up to VIEW_GENERATED; the completion
    callback takes it from there.
    """

    def __init__(
        self,
        settings: Settings,
        credentials: CredentialService,
        handoff_store: HandoffStore,
        adapter_factory: Optional[AdapterFactory] = None,
    ):
        self.settings = settings
        self.credentials = credentials
        self.handoff_store = handoff_store
        self.adapter_factory = adapter_factory or DocuSignAdapter

    def validate_configuration(self) -> Result[None]:
        missing = self.settings.missing_docusign_settings()
        if missing:
            return Result.fail(ConfigurationMissing(missing))
        return Result.ok()

    def completion_url(self, envelope_id: str) -> str:
        return f"{self.settings.base_url}/docusign/complete?{urlencode({'envelope_id': envelope_id})}"

    def normalize_party(self, party: AgreementParty, amount_minor_units: int) -> Envelope:
        return Envelope(
            company_name=party.company_name,
            client_name=party.contact_name,
            client_email=party.contact_email,
            payment_amount=amount_minor_units,
            currency=normalize_currency(party.payment_currency),
        )

    def build_recipients(self, envelope: Envelope) -> list[RecipientInfo]:
        client = RecipientInfo(
            name=envelope.client_name,
            email=envelope.client_email,
            recipient_id=CLIENT_RECIPIENT_ID,
            routing_order=1,
            client_user_id=self.settings.docusign_client_user_id,
            sign_here_tabs=[AnchorTab(CLIENT_SIGN_ANCHOR, DOCUMENT_ID)],
            date_signed_tabs=[AnchorTab(CLIENT_DATE_ANCHOR, DOCUMENT_ID)],
            email_subject=f"ACTION REQUIRED: Please Review and Sign Your {envelope.company_name} Agreement",
            email_body=CLIENT_EMAIL_BODY,
        )
        approver = RecipientInfo(
            name=self.settings.docusign_admin_name,
            email=self.settings.docusign_admin_email,
            recipient_id=APPROVER_RECIPIENT_ID,
            routing_order=2,
            sign_here_tabs=[AnchorTab(APPROVER_SIGN_ANCHOR, DOCUMENT_ID)],
            date_signed_tabs=[AnchorTab(APPROVER_DATE_ANCHOR, DOCUMENT_ID)],
            email_subject=f"Envelope Sent: {envelope.company_name} Agreement (Admin Copy)",
            email_body=f"Admin copy: Please review and sign the agreement for {envelope.company_name}.",
        )
        return [client, approver]

    def build_envelope_definition(self, adapter: DocuSignAdapter, envelope: Envelope, contract_document: str) -> dict:
        document = DocumentInfo(
            name=f"Agreement ({envelope.company_name})",
            content=contract_document.encode("utf-8"),
            document_id=DOCUMENT_ID,
            file_type="html",
        )
        return adapter.build_envelope_definition(
            email_subject=f"Services Agreement for {envelope.company_name}",
            documents=[document],
            recipients=self.build_recipients(envelope),
        )

    async def send_agreement(
        self,
        party: AgreementParty,
        amount_minor_units: int,
        contract_document: str,
    ) -> AgreementResult:
        config_check = self.validate_configuration()
        if not config_check.succeeded:
            logger.error("envelope.config.invalid", error=config_check.error.error_message)
            return self._failure(config_check.error)

        try:
            envelope = self.normalize_party(party, amount_minor_units)
        except InvalidCurrency as exc:
            return self._failure(exc)

        credential = await self.credentials.get_credential()
        if not credential.succeeded:
            return self._failure(AuthenticationFailed(credential.error))

        adapter = self.adapter_factory(
            base_path=credential.value.base_path,
            account_id=credential.value.account_id,
            access_token=credential.value.access_token,
            metadata_timeout_seconds=self.settings.docusign_metadata_timeout_seconds,
            envelope_timeout_seconds=self.settings.docusign_envelope_timeout_seconds,
        )
        try:
            async with adapter:
                return await self._deliver(adapter, envelope, contract_document)
        except Exception as exc:  # noqa: BLE001
            logger.exception("envelope.send.unexpected", envelope_id=envelope.envelope_id)
            return AgreementResult(
                success=False,
                message=f"WARNING: A critical error occurred during contract sending: {exc}",
                envelope_id=NO_ENVELOPE_ID,
                state=envelope.state,
            )

    async def _deliver(self, adapter: DocuSignAdapter, envelope: Envelope, contract_document: str) -> AgreementResult:
        definition = self.build_envelope_definition(adapter, envelope, contract_document)

        try:
            submission = await adapter.create_envelope(definition)
        except EnvelopeSendFailed as exc:
            envelope.envelope_id = exc.envelope_id
            advance(envelope, EnvelopeState.SEND_FAILED)
            logger.error("envelope.send.failed", envelope_id=exc.envelope_id, error=exc.error_message)
            return self._failure(exc, envelope_id=exc.envelope_id, state=envelope.state)

        envelope.envelope_id = submission.envelope_id
        advance(envelope, EnvelopeState.SENT)
        logger.info("envelope.sent", envelope_id=envelope.envelope_id)

        await self.handoff_store.put(
            envelope.envelope_id,
            HandoffRecord(
                company_name=envelope.company_name,
                amount=envelope.payment_amount,
                currency=envelope.currency,
                client_email=envelope.client_email,
                client_name=envelope.client_name,
            ),
            ttl=self.settings.handoff_ttl_seconds,
        )

        completion_url = self.completion_url(envelope.envelope_id)
        client = self.build_recipients(envelope)[0]
        try:
            signing = await adapter.get_signing_url(envelope.envelope_id, client, return_url=completion_url)
        except WorkflowError as exc:
            logger.error("envelope.view.failed", envelope_id=envelope.envelope_id, error=exc.error_message)
            return self._failure(exc, envelope_id=envelope.envelope_id, state=envelope.state)

        advance(envelope, EnvelopeState.VIEW_GENERATED)
        return AgreementResult(
            success=True,
            message=f"The retainer agreement has been successfully sent to {envelope.client_email} via DocuSign.",
            envelope_id=envelope.envelope_id,
            signing_link=signing.url,
            completion_url=completion_url,
            state=envelope.state,
        )

    async def get_envelope_status(self, envelope_id: str) -> Result[EnvelopeStatusInfo]:
        credential = await self.credentials.get_credential()
        if not credential.succeeded:
            return Result.fail(AuthenticationFailed(credential.error))

        adapter = self.adapter_factory(
            base_path=credential.value.base_path,
            account_id=credential.value.account_id,
            access_token=credential.value.access_token,
            metadata_timeout_seconds=self.settings.docusign_metadata_timeout_seconds,
            envelope_timeout_seconds=self.settings.docusign_envelope_timeout_seconds,
        )
        try:
            async with adapter:
                status = await adapter.get_envelope_status(envelope_id)
        except WorkflowError as exc:
            logger.warning("envelope.status.failed", envelope_id=envelope_id, error=exc.error_message)
            return Result.fail(exc)
        return Result.ok(status)

    def _failure(
        self,
        error: WorkflowError,
        envelope_id: str = NO_ENVELOPE_ID,
        state: EnvelopeState = EnvelopeState.UNSENT,
    ) -> AgreementResult:
        return AgreementResult(
            success=False,
            message=error.error_message,
            envelope_id=envelope_id or NO_ENVELOPE_ID,
            state=state,
            error=error,
        )
