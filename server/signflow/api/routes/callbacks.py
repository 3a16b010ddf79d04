from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import RedirectResponse

from signflow.api.dependencies.services import get_completion_service
from signflow.api.pages import render_error, render_page
from signflow.core.errors import ContractDataNotFound, SigningNotCompleted
from signflow.core.logging import get_logger
from signflow.services import CompletionService, PaymentOutcome
from signflow.services.completion_service import VERIFICATION_FAILED_CODE

logger = get_logger(__name__)

router = APIRouter(tags=["callbacks"])

ENVELOPE_ID_PARAMS = ("envelope_id", "envelopeId", "source_envelope_id")


@router.get("/docusign/complete")
async def docusign_complete_endpoint(
    request: Request,
    completion: CompletionService = Depends(get_completion_service),
):
    params = request.query_params
    envelope_id = next((params[name] for name in ENVELOPE_ID_PARAMS if params.get(name)), None)
    if not envelope_id:
        logger.warning("callback.docusign.missing_envelope_id", params=sorted(params.keys()))
        return render_error(
            "We could not identify your signed agreement. Please contact support.",
            status.HTTP_400_BAD_REQUEST,
        )

    outcome = await completion.on_signing_complete(envelope_id, query_fallback=dict(params))
    if outcome.success:
        return RedirectResponse(outcome.redirect_url, status_code=status.HTTP_303_SEE_OTHER)

    if isinstance(outcome.error, ContractDataNotFound):
        status_code = status.HTTP_404_NOT_FOUND
    elif isinstance(outcome.error, SigningNotCompleted):
        status_code = status.HTTP_400_BAD_REQUEST
    else:
        status_code = status.HTTP_502_BAD_GATEWAY
    return render_error(outcome.error.error_message, status_code, envelope_id)


@router.get("/payment-success/")
async def payment_success_endpoint(
    payment_status: str | None = None,
    session_id: str | None = None,
    envelope_id: str | None = None,
    completion: CompletionService = Depends(get_completion_service),
):
    result = await completion.on_payment_return(session_id, payment_status, envelope_id)
    if result.outcome is PaymentOutcome.PAID:
        return render_page(
            "Payment received",
            "Thank you! Your payment was successful and your agreement is complete.",
            envelope_id=result.envelope_id,
            css_class="success",
        )
    if result.outcome is PaymentOutcome.VERIFICATION_FAILED:
        return RedirectResponse(result.redirect_url, status_code=status.HTTP_303_SEE_OTHER)
    if result.outcome is PaymentOutcome.CANCELLED:
        return _cancelled_page(result.envelope_id)
    return render_error(result.error.error_message, status.HTTP_400_BAD_REQUEST, result.envelope_id)


@router.get("/payment-cancelled/")
async def payment_cancelled_endpoint(
    payment_status: str | None = None,
    envelope_id: str | None = None,
    error_code: str | None = None,
    message: str | None = None,
    completion: CompletionService = Depends(get_completion_service),
):
    if error_code == VERIFICATION_FAILED_CODE:
        return render_page(
            "Payment could not be confirmed",
            f"Your payment could not be confirmed. {message or ''}".strip(),
            envelope_id=envelope_id,
            css_class="warning",
        )
    result = await completion.on_payment_return(None, payment_status or "cancelled", envelope_id)
    return _cancelled_page(result.envelope_id)


def _cancelled_page(envelope_id: str | None):
    return render_page(
        "Payment cancelled",
        "Your payment was cancelled. Your signed agreement is on file; contact us to complete payment.",
        envelope_id=envelope_id,
        css_class="warning",
    )
