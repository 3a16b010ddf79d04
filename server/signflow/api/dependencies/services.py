from __future__ import annotations

from dataclasses import dataclass

from fastapi import Depends, Request
from redis.asyncio import Redis

from signflow.auth import (
    CredentialService,
    InMemoryCredentialCache,
    RedisCredentialCache,
    SettingsKeyProvider,
)
from signflow.core.config import Settings
from signflow.services import (
    CompletionService,
    EnvelopeService,
    InMemoryHandoffStore,
    PaymentSessionManager,
    RedisHandoffStore,
)


@dataclass
class ServiceContainer:
    settings: Settings
    credentials: CredentialService
    envelopes: EnvelopeService
    payments: PaymentSessionManager
    completion: CompletionService

    async def close(self) -> None:
        try:
            await self.credentials.close()
        finally:
            await self.payments.close()


def build_container(settings: Settings, redis_client: Redis | None = None) -> ServiceContainer:
    if redis_client is not None:
        cache = RedisCredentialCache(redis_client)
        handoff_store = RedisHandoffStore(redis_client)
    else:
        cache = InMemoryCredentialCache()
        handoff_store = InMemoryHandoffStore()

    credentials = CredentialService(settings, cache=cache, key_provider=SettingsKeyProvider(settings))
    envelopes = EnvelopeService(settings, credentials=credentials, handoff_store=handoff_store)
    payments = PaymentSessionManager(settings)
    completion = CompletionService(settings, handoff_store=handoff_store, payments=payments, envelopes=envelopes)
    return ServiceContainer(settings, credentials, envelopes, payments, completion)


def get_container(request: Request) -> ServiceContainer:
    return request.app.state.services


def get_app_settings(container: ServiceContainer = Depends(get_container)) -> Settings:
    return container.settings


def get_credential_service(container: ServiceContainer = Depends(get_container)) -> CredentialService:
    return container.credentials


def get_envelope_service(container: ServiceContainer = Depends(get_container)) -> EnvelopeService:
    return container.envelopes


def get_payment_manager(container: ServiceContainer = Depends(get_container)) -> PaymentSessionManager:
    return container.payments


def get_completion_service(container: ServiceContainer = Depends(get_container)) -> CompletionService:
    return container.completion
