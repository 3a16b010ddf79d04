"""
Workflow error taxonomy.

Adapters raise these; services catch them at their boundary and hand them
back inside a ``Result`` so nothing escapes an operation as an unchecked fault.
"""

from typing import Any, Dict, List, Optional


class WorkflowError(Exception):
    """Base class for every failure the signing/payment workflow can report."""

    default_code = "workflow_error"

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        provider: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.error_message = message
        self.error_code = error_code or self.default_code
        self.provider = provider
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error_code": self.error_code,
            "message": self.error_message,
            "provider": self.provider,
        }


class ConfigurationMissing(WorkflowError):
    default_code = "docusign_config_missing"

    def __init__(self, fields: List[str]):
        message = (
            "DocuSign Configuration Error: The following required settings are missing or empty: "
            f"{', '.join(fields)}. Please check your plugin settings."
        )
        super().__init__(message, details={"fields": list(fields)})
        self.fields = list(fields)


class SigningUnavailable(WorkflowError):
    default_code = "jwt_error"


class KeyUnavailable(WorkflowError):
    default_code = "docusign_private_key_missing"


class ConsentRequired(WorkflowError):
    """The impersonated user has not granted consent to the integration key."""

    default_code = "docusign_consent_required"

    def __init__(self, consent_url: str):
        message = (
            "JWT Authorization Failed. The DocuSign Admin user must grant consent to this application. "
            f"Please visit the following URL once to grant permission: {consent_url}"
        )
        super().__init__(message, provider="docusign", details={"consent_url": consent_url})
        self.consent_url = consent_url


class TokenExchangeFailed(WorkflowError):
    default_code = "docusign_token_fail"

    def __init__(self, upstream_code: str, description: str, error_code: Optional[str] = None):
        message = f"Access Token retrieval failed: Error: {upstream_code} | Description: {description}"
        super().__init__(
            message,
            error_code=error_code,
            provider="docusign",
            details={"upstream_code": upstream_code, "description": description},
        )
        self.upstream_code = upstream_code
        self.description = description


class AccountResolutionFailed(WorkflowError):
    default_code = "docusign_userinfo_error"


class AuthenticationFailed(WorkflowError):
    """Wraps whatever stopped a credential from being obtained."""

    default_code = "docusign_auth_failed"

    def __init__(self, cause: WorkflowError):
        super().__init__(
            f"FATAL ERROR: DocuSign authentication failed. {cause.error_message}",
            provider="docusign",
            details={"cause": cause.error_code},
        )
        self.cause = cause

    @property
    def consent_url(self) -> Optional[str]:
        return getattr(self.cause, "consent_url", None)


class EnvelopeSendFailed(WorkflowError):
    default_code = "envelope_send_error"

    def __init__(self, message: str, envelope_id: str = "N/A", error_code: Optional[str] = None):
        super().__init__(message, error_code=error_code, provider="docusign", details={"envelope_id": envelope_id})
        self.envelope_id = envelope_id


class ViewGenerationFailed(WorkflowError):
    default_code = "recipient_view_fail"


class EnvelopeStatusFailed(WorkflowError):
    default_code = "status_check_error"


class SigningNotCompleted(WorkflowError):
    default_code = "signing_not_completed"


class InvalidAmount(WorkflowError):
    default_code = "stripe_amount_error"


class InvalidCurrency(WorkflowError):
    default_code = "stripe_currency_error"


class PaymentProviderError(WorkflowError):
    default_code = "stripe_api_error"


class PaymentNotCompleted(WorkflowError):
    default_code = "payment_not_paid"


class ContractDataNotFound(WorkflowError):
    default_code = "contract_data_not_found"


class MissingPaymentData(WorkflowError):
    default_code = "missing_payment_data"
