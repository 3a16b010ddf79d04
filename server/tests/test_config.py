"""
Settings validation tests.
"""

import pytest
from pydantic import ValidationError

from tests.conftest import make_settings


class TestSettings:
    def test_base_url_strips_trailing_slash(self, settings):
        assert settings.base_url == "https://agreements.example.com"

    def test_consent_redirect_defaults_to_admin_landing(self, settings):
        assert settings.consent_redirect_uri == "https://agreements.example.com/admin/docusign/consent"

    def test_explicit_consent_redirect_wins(self):
        settings = make_settings(docusign_consent_redirect_uri="https://ops.example.com/consent")
        assert settings.consent_redirect_uri == "https://ops.example.com/consent"

    def test_defaults_keep_cache_ttl_below_token_lifetime(self):
        settings = make_settings()
        assert settings.docusign_token_cache_ttl_seconds == 3000
        assert settings.docusign_assertion_lifetime_seconds == 3600
        assert settings.handoff_ttl_seconds == 86400

    def test_assertion_lifetime_over_one_hour_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(docusign_assertion_lifetime_seconds=3601)

    def test_cache_ttl_not_below_lifetime_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(docusign_token_cache_ttl_seconds=3600)

    def test_unknown_stripe_mode_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(stripe_mode="sandbox")

    def test_unknown_cache_backend_rejected(self):
        with pytest.raises(ValidationError):
            make_settings(cache_backend="memcached")

    def test_settings_are_immutable(self, settings):
        with pytest.raises(ValidationError):
            settings.stripe_mode = "live"


class TestMissingDocuSignSettings:
    def test_complete_configuration_reports_nothing(self, settings):
        assert settings.missing_docusign_settings() == []

    def test_lists_exactly_the_missing_fields(self):
        settings = make_settings(docusign_integration_key="", docusign_admin_name="   ")
        assert settings.missing_docusign_settings() == [
            "DocuSign Integrator Key",
            "DocuSign Admin Name (Sender/Recipient)",
        ]
