"""
Credential service: cache composition, TTL and failure reporting.
"""

import asyncio
from pathlib import Path
from unittest.mock import AsyncMock, Mock

import pytest

from signflow.auth import CredentialService, InMemoryCredentialCache, SettingsKeyProvider, SignedAssertionBuilder
from signflow.auth.models import AccountInfo, TokenResponse
from signflow.core.errors import ConsentRequired, KeyUnavailable
from tests.conftest import make_settings


@pytest.fixture
def exchange_client():
    client = Mock()
    client.exchange = AsyncMock(return_value=TokenResponse(access_token="token-xyz", expires_in=3600))
    client.resolve_account = AsyncMock(
        return_value=AccountInfo(account_id="acct-2", base_path="https://na3.docusign.net/restapi")
    )
    client.consent_url = Mock(return_value="https://account-d.docusign.com/oauth/auth?consent")
    client.close = AsyncMock()
    return client


@pytest.fixture
def service(settings, clock, exchange_client):
    return CredentialService(
        settings,
        cache=InMemoryCredentialCache(clock=clock),
        key_provider=SettingsKeyProvider(settings),
        exchange_client=exchange_client,
        assertion_builder=SignedAssertionBuilder(clock=lambda: 1_700_000_000),
    )


class TestCredentialService:
    @pytest.mark.asyncio
    async def test_first_call_exchanges_then_caches(self, service, exchange_client):
        first = await service.get_credential()
        second = await service.get_credential()

        assert first.succeeded
        assert first.value.access_token == "token-xyz"
        assert first.value.account_id == "acct-2"
        assert second.value == first.value
        exchange_client.exchange.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_cached_credential_expires_before_token(self, service, clock, exchange_client):
        await service.get_credential()

        clock.advance(2999)
        await service.get_credential()
        assert exchange_client.exchange.await_count == 1

        clock.advance(1)
        await service.get_credential()
        assert exchange_client.exchange.await_count == 2

    def test_ttl_respects_short_token_lifetime(self, service):
        assert service.ttl_for(3600) == 3000
        assert service.ttl_for(600) == 540
        assert service.ttl_for(None) == 3000

    @pytest.mark.asyncio
    async def test_consent_required_returned_not_raised(self, service, exchange_client):
        exchange_client.exchange.side_effect = ConsentRequired("https://account-d.docusign.com/oauth/auth?consent")

        result = await service.get_credential()

        assert not result.succeeded
        assert isinstance(result.error, ConsentRequired)
        assert result.error.consent_url.endswith("consent")

    @pytest.mark.asyncio
    async def test_missing_key_reported(self, clock, exchange_client):
        settings = make_settings(private_key=None)
        service = CredentialService(
            settings,
            cache=InMemoryCredentialCache(clock=clock),
            key_provider=SettingsKeyProvider(settings),
            exchange_client=exchange_client,
        )

        result = await service.get_credential()

        assert isinstance(result.error, KeyUnavailable)
        exchange_client.exchange.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_concurrent_misses_exchange_once(self, service, exchange_client):
        results = await asyncio.gather(*(service.get_credential() for _ in range(5)))

        assert all(result.succeeded for result in results)
        exchange_client.exchange.assert_awaited_once()

    @pytest.mark.asyncio
    async def test_refresh_locks_are_not_retained(self, service):
        for principal in ("user-a", "user-b", "user-c"):
            await service.get_credential(principal)

        assert len(service._locks) == 0

    @pytest.mark.asyncio
    async def test_invalidate_forces_refresh(self, service, exchange_client):
        await service.get_credential()
        await service.invalidate()
        await service.get_credential()

        assert exchange_client.exchange.await_count == 2

    def test_consent_url_delegates_to_exchange_client(self, service):
        assert service.consent_url() == "https://account-d.docusign.com/oauth/auth?consent"


class TestSettingsKeyProvider:
    @pytest.mark.asyncio
    async def test_inline_key_with_escaped_newlines(self):
        settings = make_settings(private_key="-----BEGIN KEY-----\\nabc\\n-----END KEY-----")
        key = await SettingsKeyProvider(settings).get_private_key("user-guid")
        assert key == "-----BEGIN KEY-----\nabc\n-----END KEY-----"

    @pytest.mark.asyncio
    async def test_key_file_is_read(self, tmp_path: Path, rsa_private_key_pem):
        key_file = tmp_path / "docusign.pem"
        key_file.write_text(rsa_private_key_pem)
        settings = make_settings(private_key=None, docusign_private_key_path=str(key_file))

        key = await SettingsKeyProvider(settings).get_private_key("user-guid")

        assert key == rsa_private_key_pem.strip()

    @pytest.mark.asyncio
    async def test_unreadable_key_file(self, tmp_path: Path):
        settings = make_settings(private_key=None, docusign_private_key_path=str(tmp_path / "missing.pem"))
        with pytest.raises(KeyUnavailable):
            await SettingsKeyProvider(settings).get_private_key("user-guid")
