from __future__ import annotations

import asyncio
import weakref
from typing import Optional

from signflow.auth.assertion import SignedAssertionBuilder
from signflow.auth.cache import CredentialCache
from signflow.auth.exchange import CredentialExchangeClient
from signflow.auth.keys import KeyProvider
from signflow.auth.models import Credential
from signflow.core.config import Settings
from signflow.core.errors import WorkflowError
from signflow.core.logging import get_logger
from signflow.core.result import Result

logger = get_logger(__name__)

# Cached tokens are dropped at least this long before DocuSign says they expire.
EXPIRY_MARGIN_SECONDS = 60


class CredentialService:
    """
    The only entry point for obtaining DocuSign credentials.

    cache lookup -> (miss) key -> assertion -> token -> userinfo -> cache store.
    Concurrent misses for one principal are collapsed behind a per-principal
    lock; the exchange itself is side-effect free, so this only saves calls.
    """

    def __init__(
        self,
        settings: Settings,
        cache: CredentialCache,
        key_provider: KeyProvider,
        exchange_client: Optional[CredentialExchangeClient] = None,
        assertion_builder: Optional[SignedAssertionBuilder] = None,
    ):
        self.default_principal = settings.docusign_user_id
        self.integration_key = settings.docusign_integration_key
        self.auth_server = settings.docusign_auth_server
        self.cache_ttl = settings.docusign_token_cache_ttl_seconds

        self.cache = cache
        self.key_provider = key_provider
        self.exchange_client = exchange_client or CredentialExchangeClient(
            auth_server=settings.docusign_auth_server,
            integration_key=settings.docusign_integration_key,
            consent_redirect_uri=settings.consent_redirect_uri,
            scope=settings.docusign_scope,
            timeout_seconds=settings.docusign_metadata_timeout_seconds,
        )
        self.assertion_builder = assertion_builder or SignedAssertionBuilder(
            lifetime_seconds=settings.docusign_assertion_lifetime_seconds,
            scope=settings.docusign_scope,
        )
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    def consent_url(self) -> str:
        return self.exchange_client.consent_url()

    def _lock_for(self, principal: str) -> asyncio.Lock:
        # entries drop out once no refresh holds or waits on the lock
        lock = self._locks.get(principal)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[principal] = lock
        return lock

    def ttl_for(self, expires_in: Optional[int]) -> int:
        if expires_in is None:
            return self.cache_ttl
        return min(self.cache_ttl, expires_in - EXPIRY_MARGIN_SECONDS)

    async def get_credential(self, principal: Optional[str] = None) -> Result[Credential]:
        principal = principal or self.default_principal

        cached = await self.cache.get(principal)
        if cached is not None:
            return Result.ok(cached)

        async with self._lock_for(principal):
            cached = await self.cache.get(principal)
            if cached is not None:
                return Result.ok(cached)

            try:
                credential = await self._refresh(principal)
            except WorkflowError as exc:
                logger.warning(
                    "docusign.credential.failed",
                    error_code=exc.error_code,
                    error=exc.error_message,
                )
                return Result.fail(exc)

        return Result.ok(credential)

    async def invalidate(self, principal: Optional[str] = None) -> None:
        principal = principal or self.default_principal
        await self.cache.invalidate(principal)
        logger.info("docusign.credential.invalidated")

    async def _refresh(self, principal: str) -> Credential:
        private_key = await self.key_provider.get_private_key(principal)
        assertion = self.assertion_builder.build(
            principal=principal,
            integration_key=self.integration_key,
            audience=self.auth_server,
            private_key=private_key,
        )
        token = await self.exchange_client.exchange(assertion)
        account = await self.exchange_client.resolve_account(token.access_token)

        credential = Credential(
            access_token=token.access_token,
            base_path=account.base_path,
            account_id=account.account_id,
            expires_in=token.expires_in,
        )
        ttl = self.ttl_for(token.expires_in)
        await self.cache.put(principal, credential, ttl)
        logger.info("docusign.credential.refreshed", account_id=account.account_id, ttl=ttl)
        return credential

    async def close(self) -> None:
        await self.exchange_client.close()
