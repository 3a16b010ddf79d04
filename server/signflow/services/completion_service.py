"""
Completion coordinator.

Picks the workflow back up when the signer returns from DocuSign and again
when the payer returns from Stripe Checkout.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping, Optional
from urllib.parse import urlencode

from signflow.core.config import Settings
from signflow.core.errors import (
    ContractDataNotFound,
    MissingPaymentData,
    SigningNotCompleted,
    WorkflowError,
)
from signflow.core.logging import get_logger
from signflow.integrations.payment_gateways import PaymentVerification
from signflow.services.envelope_service import EnvelopeService
from signflow.services.handoff_store import HandoffRecord, HandoffStore
from signflow.services.payment_service import PaymentSessionManager
from signflow.services.state_machine import Envelope, EnvelopeState, advance

logger = get_logger(__name__)

VERIFICATION_FAILED_CODE = "verification_failed"


class PaymentOutcome(str, Enum):
    PAID = "paid"
    CANCELLED = "cancelled"
    VERIFICATION_FAILED = "verification_failed"
    FATAL = "fatal"


@dataclass
class SigningCompletion:
    success: bool
    envelope_id: str
    redirect_url: Optional[str] = None
    state: EnvelopeState = EnvelopeState.SENT
    error: Optional[WorkflowError] = None


@dataclass
class PaymentReturn:
    outcome: PaymentOutcome
    envelope_id: str = ""
    redirect_url: Optional[str] = None
    verification: Optional[PaymentVerification] = None
    error: Optional[WorkflowError] = None


def _parse_amount(raw: object) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return 0


def is_payable(record: Optional[HandoffRecord]) -> bool:
    return record is not None and bool((record.company_name or "").strip()) and record.amount > 0


def record_from_query(query: Mapping[str, str]) -> Optional[HandoffRecord]:
    """Rebuild payment parameters from redirect query fields, or None if unusable."""
    record = HandoffRecord(
        company_name=(query.get("company") or "").strip(),
        amount=_parse_amount(query.get("amount")),
        currency=(query.get("currency") or "USD").strip() or "USD",
        client_email=(query.get("client_email") or "").strip().lower(),
    )
    return record if is_payable(record) else None


class CompletionService:
    def __init__(
        self,
        settings: Settings,
        handoff_store: HandoffStore,
        payments: PaymentSessionManager,
        envelopes: Optional[EnvelopeService] = None,
    ):
        self.settings = settings
        self.handoff_store = handoff_store
        self.payments = payments
        self.envelopes = envelopes
        self.verify_completion = settings.docusign_verify_completion

    async def on_signing_complete(
        self,
        envelope_id: str,
        query_fallback: Optional[Mapping[str, str]] = None,
    ) -> SigningCompletion:
        record = await self.handoff_store.get(envelope_id)
        if record is not None and not is_payable(record):
            logger.warning(
                "completion.handoff.unpayable",
                envelope_id=envelope_id,
                amount=record.amount,
                has_company=bool(record.company_name),
            )
            record = None
        if record is None:
            record = record_from_query(query_fallback or {})
            if record is not None:
                logger.info("completion.handoff.query_fallback", envelope_id=envelope_id)

        if record is None:
            logger.error("completion.handoff.missing", envelope_id=envelope_id)
            return SigningCompletion(
                success=False,
                envelope_id=envelope_id,
                error=ContractDataNotFound(
                    "Could not retrieve contract data for payment. "
                    f"Please contact support with Envelope ID: {envelope_id}"
                ),
            )

        envelope = Envelope(
            company_name=record.company_name,
            client_name=record.client_name,
            client_email=record.client_email,
            payment_amount=record.amount,
            currency=record.currency,
            envelope_id=envelope_id,
            state=EnvelopeState.SENT,
        )

        if self.verify_completion:
            error = await self._confirm_signed(envelope_id)
            if error is not None:
                return SigningCompletion(False, envelope_id, state=envelope.state, error=error)

        advance(envelope, EnvelopeState.COMPLETED)

        checkout = await self.payments.create_checkout(
            company_name=record.company_name,
            amount_minor_units=record.amount,
            currency_code=record.currency,
            client_email=record.client_email,
            envelope_id=envelope_id,
        )
        if not checkout.succeeded:
            logger.error(
                "completion.checkout.failed",
                envelope_id=envelope_id,
                error_code=checkout.error.error_code,
                error=checkout.error.error_message,
            )
            return SigningCompletion(False, envelope_id, state=envelope.state, error=checkout.error)

        advance(envelope, EnvelopeState.HANDOFF_CONSUMED)
        logger.info("completion.redirect", envelope_id=envelope_id, session_id=checkout.value.session_id)
        return SigningCompletion(
            success=True,
            envelope_id=envelope_id,
            redirect_url=checkout.value.url,
            state=envelope.state,
        )

    async def on_payment_return(
        self,
        session_id: Optional[str],
        status: Optional[str],
        envelope_id: Optional[str] = None,
    ) -> PaymentReturn:
        envelope_id = envelope_id or ""

        if status == "success" and session_id:
            verification = await self.payments.verify(session_id)
            if verification.succeeded:
                logger.info("completion.payment.paid", envelope_id=envelope_id, session_id=session_id)
                return PaymentReturn(PaymentOutcome.PAID, envelope_id, verification=verification.value)
            return PaymentReturn(
                PaymentOutcome.VERIFICATION_FAILED,
                envelope_id,
                redirect_url=self.verification_failed_url(verification.error, envelope_id),
                error=verification.error,
            )

        if status == "cancelled":
            logger.info("completion.payment.cancelled", envelope_id=envelope_id)
            return PaymentReturn(PaymentOutcome.CANCELLED, envelope_id)

        return PaymentReturn(
            PaymentOutcome.FATAL,
            envelope_id,
            error=MissingPaymentData("Missing payment information. Please contact support."),
        )

    def verification_failed_url(self, error: WorkflowError, envelope_id: str) -> str:
        query = urlencode(
            {
                "error_code": VERIFICATION_FAILED_CODE,
                "message": error.error_message,
                "envelope_id": envelope_id,
            }
        )
        return f"{self.settings.base_url}/payment-cancelled/?{query}"

    async def _confirm_signed(self, envelope_id: str) -> Optional[WorkflowError]:
        if self.envelopes is None:
            return SigningNotCompleted("Envelope status cannot be confirmed.", details={"envelope_id": envelope_id})
        status = await self.envelopes.get_envelope_status(envelope_id)
        if not status.succeeded:
            return status.error
        if not status.value.is_completed:
            logger.warning("completion.not_signed", envelope_id=envelope_id, status=status.value.status)
            return SigningNotCompleted(
                f"The agreement has not been fully signed yet. Current status: {status.value.status}",
                provider="docusign",
                details={"envelope_id": envelope_id},
            )
        return None
