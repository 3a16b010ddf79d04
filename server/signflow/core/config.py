from functools import lru_cache
from typing import List, Optional

from pydantic import AnyHttpUrl, Field, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# DocuSign rejects assertions whose exp - iat exceeds one hour.
MAX_ASSERTION_LIFETIME_SECONDS = 3600

# Fields that must be present before any envelope can be sent, with the
# display name surfaced to operators when they are missing.
REQUIRED_DOCUSIGN_SETTINGS = {
    "docusign_integration_key": "DocuSign Integrator Key",
    "docusign_user_id": "DocuSign User ID (Impersonation User)",
    "docusign_auth_server": "DocuSign Auth Server (Account Server)",
    "docusign_gateway_account_id": "DocuSign Payment Gateway Account ID",
    "docusign_admin_email": "DocuSign Admin Email (Sender/Recipient)",
    "docusign_admin_name": "DocuSign Admin Name (Sender/Recipient)",
}


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        frozen=True,
    )

    app_name: str = Field(default="Signflow")
    environment: str = Field(default="development")
    secret_key: str = Field(default="change-me-in-production", min_length=12)
    public_base_url: str = Field(default="http://localhost:8000", description="Externally reachable base URL used in redirects")
    allowed_origins: List[AnyHttpUrl] = Field(default_factory=list)
    redis_url: str = Field(default="redis://localhost:6379/0")
    cache_backend: str = Field(default="memory", description="Credential cache / handoff store backend: 'memory' or 'redis'")

    # DocuSign JWT grant
    docusign_integration_key: str = Field(default="")
    docusign_user_id: str = Field(default="")
    docusign_auth_server: str = Field(default="https://account-d.docusign.com")
    docusign_gateway_account_id: str = Field(default="")
    docusign_admin_email: str = Field(default="")
    docusign_admin_name: str = Field(default="")
    docusign_private_key: Optional[SecretStr] = Field(default=None, description="PEM encoded RSA private key")
    docusign_private_key_path: Optional[str] = Field(default=None, description="Path to a PEM encoded RSA private key")
    docusign_scope: str = Field(default="signature impersonation")
    docusign_assertion_lifetime_seconds: int = Field(default=3600, gt=0)
    docusign_token_cache_ttl_seconds: int = Field(default=3000, gt=0)
    docusign_consent_redirect_uri: Optional[str] = Field(default=None)
    docusign_client_user_id: str = Field(default="1", description="clientUserId binding the client signer to embedded signing")
    docusign_metadata_timeout_seconds: int = Field(default=15, gt=0)
    docusign_envelope_timeout_seconds: int = Field(default=190, gt=0)
    docusign_verify_completion: bool = Field(
        default=False,
        description="Confirm the envelope is completed with DocuSign before creating a checkout",
    )

    handoff_ttl_seconds: int = Field(default=24 * 60 * 60, gt=0)

    # Stripe
    stripe_mode: str = Field(default="test")
    stripe_test_secret_key: Optional[str] = Field(default=None)
    stripe_test_publishable_key: Optional[str] = Field(default=None)
    stripe_live_secret_key: Optional[str] = Field(default=None)
    stripe_live_publishable_key: Optional[str] = Field(default=None)
    stripe_timeout_seconds: int = Field(default=15, gt=0)

    @model_validator(mode="after")
    def validate_provider_configuration(self) -> "Settings":
        """
        Reject settings the providers would refuse at runtime.

        The credential cache must expire before the assertion window so a
        cached token is never presented after DocuSign has stopped honouring it.
        """
        if self.docusign_assertion_lifetime_seconds > MAX_ASSERTION_LIFETIME_SECONDS:
            raise ValueError(
                f"docusign_assertion_lifetime_seconds must not exceed {MAX_ASSERTION_LIFETIME_SECONDS}"
            )
        if self.docusign_token_cache_ttl_seconds >= self.docusign_assertion_lifetime_seconds:
            raise ValueError(
                "docusign_token_cache_ttl_seconds must be strictly less than docusign_assertion_lifetime_seconds"
            )

        allowed_modes = {"test", "live"}
        if self.stripe_mode not in allowed_modes:
            raise ValueError(f"stripe_mode must be one of {allowed_modes}, got '{self.stripe_mode}'")

        allowed_backends = {"memory", "redis"}
        if self.cache_backend not in allowed_backends:
            raise ValueError(f"cache_backend must be one of {allowed_backends}, got '{self.cache_backend}'")

        return self

    @property
    def base_url(self) -> str:
        return self.public_base_url.rstrip("/")

    @property
    def consent_redirect_uri(self) -> str:
        return self.docusign_consent_redirect_uri or f"{self.base_url}/admin/docusign/consent"

    def missing_docusign_settings(self) -> List[str]:
        """Return display names of every required DocuSign setting that is unset or blank."""
        missing = []
        for field_name, display_name in REQUIRED_DOCUSIGN_SETTINGS.items():
            value = getattr(self, field_name)
            if not value or (isinstance(value, str) and value.strip() == ""):
                missing.append(display_name)
        return missing


@lru_cache(maxsize=None)
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Components receive this instance at construction and keep it for their
    lifetime, so configuration never changes underneath an in-flight request.

    Returns:
        Settings: The cached settings instance
    """
    return Settings()


def clear_settings_cache() -> None:
    """
    Clear the cached settings instance.

    Useful for testing or when configuration needs to be reloaded.
    """
    get_settings.cache_clear()
