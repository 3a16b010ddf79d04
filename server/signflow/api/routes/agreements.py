from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from signflow.api.dependencies.services import get_envelope_service
from signflow.core.errors import ConfigurationMissing, InvalidAmount, InvalidCurrency, WorkflowError
from signflow.schemas import AgreementCreate, AgreementRead, EnvelopeStatusRead, ErrorRead
from signflow.services import EnvelopeService

router = APIRouter(prefix="/agreements", tags=["agreements"])

CLIENT_ERRORS = (ConfigurationMissing, InvalidAmount, InvalidCurrency)


def _failure_status(error: WorkflowError | None) -> int:
    if isinstance(error, CLIENT_ERRORS):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    return status.HTTP_502_BAD_GATEWAY


@router.post("", response_model=AgreementRead, status_code=status.HTTP_201_CREATED)
async def create_agreement_endpoint(
    payload: AgreementCreate,
    envelopes: EnvelopeService = Depends(get_envelope_service),
):
    result = await envelopes.send_agreement(
        payload.to_party(),
        amount_minor_units=payload.payment_amount,
        contract_document=payload.contract_html,
    )
    body = AgreementRead(
        success=result.success,
        message=result.message,
        envelope_id=result.envelope_id,
        state=result.state.value,
        signing_link=result.signing_link,
        completion_url=result.completion_url,
        error=ErrorRead.from_error(result.error),
    )
    if not result.success:
        return JSONResponse(status_code=_failure_status(result.error), content=body.model_dump(mode="json"))
    return body


@router.get("/{envelope_id}/status", response_model=EnvelopeStatusRead)
async def get_agreement_status_endpoint(
    envelope_id: str,
    envelopes: EnvelopeService = Depends(get_envelope_service),
):
    result = await envelopes.get_envelope_status(envelope_id)
    if not result.succeeded:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=ErrorRead.from_error(result.error).model_dump(mode="json"),
        )
    return EnvelopeStatusRead.model_validate(result.value)
