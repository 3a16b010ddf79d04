from fastapi import APIRouter, Depends

from signflow.api.dependencies.auth import get_current_operator
from signflow.api.dependencies.services import get_credential_service, get_payment_manager
from signflow.api.pages import render_page
from signflow.auth import CredentialService
from signflow.core.logging import get_logger
from signflow.schemas import ConnectionStatusRead, CredentialCheckRead, ErrorRead
from signflow.services import PaymentSessionManager

logger = get_logger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/docusign/credentials/flush")
async def flush_credentials_endpoint(
    credentials: CredentialService = Depends(get_credential_service),
    operator: str = Depends(get_current_operator),
) -> dict:
    await credentials.invalidate()
    logger.info("admin.credentials.flushed", operator=operator)
    return {"flushed": True}


@router.get("/docusign/consent-url")
async def consent_url_endpoint(
    credentials: CredentialService = Depends(get_credential_service),
    operator: str = Depends(get_current_operator),  # noqa: ARG001
) -> dict:
    return {"consent_url": credentials.consent_url()}


@router.get("/docusign/credentials/check", response_model=CredentialCheckRead)
async def check_credentials_endpoint(
    credentials: CredentialService = Depends(get_credential_service),
    operator: str = Depends(get_current_operator),  # noqa: ARG001
) -> CredentialCheckRead:
    result = await credentials.get_credential()
    if not result.succeeded:
        return CredentialCheckRead(ok=False, error=ErrorRead.from_error(result.error))
    return CredentialCheckRead(ok=True, account_id=result.value.account_id, base_path=result.value.base_path)


@router.get("/docusign/consent")
async def consent_landing_endpoint():
    return render_page("Consent recorded", "DocuSign consent was granted. You can close this window.")


@router.get("/stripe/connection", response_model=ConnectionStatusRead)
async def stripe_connection_endpoint(
    payments: PaymentSessionManager = Depends(get_payment_manager),
    operator: str = Depends(get_current_operator),  # noqa: ARG001
) -> ConnectionStatusRead:
    connection = await payments.test_connection()
    return ConnectionStatusRead(ok=connection.ok, mode=connection.mode.value, message=connection.message)
