"""
Shared test configuration and fixtures for the signflow test suite.
"""

from typing import Optional
from unittest.mock import AsyncMock, Mock

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from signflow.auth.models import Credential
from signflow.core.config import Settings, clear_settings_cache
from signflow.core.result import Result


class FakeClock:
    """Manually advanced clock for expiry tests."""

    def __init__(self, start: float = 1_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture(scope="session")
def rsa_key():
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


@pytest.fixture(scope="session")
def rsa_private_key_pem(rsa_key) -> str:
    return rsa_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")


@pytest.fixture(scope="session")
def rsa_public_key_pem(rsa_key) -> str:
    return rsa_key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")


def make_settings(private_key: Optional[str] = None, **overrides) -> Settings:
    values = {
        "secret_key": "operator-secret-for-tests",
        "public_base_url": "https://agreements.example.com/",
        "cache_backend": "memory",
        "docusign_integration_key": "ik-1234",
        "docusign_user_id": "user-guid-5678",
        "docusign_auth_server": "https://account-d.docusign.com",
        "docusign_gateway_account_id": "gateway-1",
        "docusign_admin_email": "approver@example.com",
        "docusign_admin_name": "Ada Approver",
        "docusign_private_key": private_key,
        "stripe_mode": "test",
        "stripe_test_secret_key": "sk_test_123",
        "stripe_test_publishable_key": "pk_test_123",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def settings(rsa_private_key_pem) -> Settings:
    return make_settings(rsa_private_key_pem)


@pytest.fixture(autouse=True)
def reset_settings_cache():
    yield
    clear_settings_cache()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def credential() -> Credential:
    return Credential(
        access_token="access-token-abc",
        base_path="https://demo.docusign.net/restapi",
        account_id="account-123",
        expires_in=3600,
    )


@pytest.fixture
def credential_service(credential):
    service = Mock()
    service.get_credential = AsyncMock(return_value=Result.ok(credential))
    service.invalidate = AsyncMock()
    service.consent_url = Mock(return_value="https://account-d.docusign.com/oauth/auth?response_type=code")
    service.close = AsyncMock()
    return service
