from fastapi import APIRouter, Depends

from signflow.api.dependencies.services import ServiceContainer, get_container

router = APIRouter(tags=["health"])


@router.get("/health")
async def health_endpoint(container: ServiceContainer = Depends(get_container)) -> dict:
    settings = container.settings
    missing = settings.missing_docusign_settings()
    stripe_error = container.payments.validate_configuration()
    return {
        "status": "ok",
        "environment": settings.environment,
        "docusign_configured": not missing,
        "docusign_missing": missing,
        "stripe_mode": container.payments.mode.value,
        "stripe_configured": stripe_error is None,
    }
