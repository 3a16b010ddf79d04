from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from signflow.api.dependencies.redis import open_redis_client
from signflow.api.dependencies.services import build_container
from signflow.api.routes import admin, agreements, callbacks, health
from signflow.core.config import Settings, get_settings
from signflow.core.logging import configure_logging, get_logger

configure_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(application: FastAPI) -> AsyncIterator[None]:
    settings: Settings = application.state.settings
    async with open_redis_client(settings) as redis_client:
        container = build_container(settings, redis_client)
        application.state.services = container
        logger.info(
            "application.startup",
            environment=settings.environment,
            cache_backend=settings.cache_backend,
            stripe_mode=settings.stripe_mode,
        )
        try:
            yield
        finally:
            await container.close()
            logger.info("application.shutdown")


def create_application(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    application = FastAPI(title=settings.app_name, lifespan=lifespan)
    application.state.settings = settings
    application.include_router(health.router)
    application.include_router(agreements.router)
    application.include_router(callbacks.router)
    application.include_router(admin.router)

    if settings.allowed_origins:
        application.add_middleware(
            CORSMiddleware,
            allow_origins=[str(origin).rstrip("/") for origin in settings.allowed_origins],
            allow_credentials=True,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    return application


app = create_application()
