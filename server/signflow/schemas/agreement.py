import html
import re
from typing import Optional

from pydantic import EmailStr, Field, field_validator

from signflow.schemas.common import ErrorRead, ORMModel

_TAG_RE = re.compile(r"<[^>]*>")
_WHITESPACE_RE = re.compile(r"\s+")


def sanitize_text(value: Optional[str]) -> str:
    """Strip markup and collapse whitespace in a free-text form field."""
    text = _TAG_RE.sub("", value or "")
    return _WHITESPACE_RE.sub(" ", html.unescape(text)).strip()


class AgreementParty(ORMModel):
    """
    The client side of an agreement, normalized on construction.

    The currency is only upper-cased here; the envelope service validates
    its shape so a bad code comes back as a failed result rather than a
    validation error.
    """

    company_name: str = "Client Company"
    contact_name: str = "Client Contact"
    contact_email: str = ""
    payment_currency: str = "USD"

    @field_validator("company_name")
    @classmethod
    def default_company(cls, v: Optional[str]) -> str:
        return sanitize_text(v) or "Client Company"

    @field_validator("contact_name")
    @classmethod
    def default_contact(cls, v: Optional[str]) -> str:
        return sanitize_text(v) or "Client Contact"

    @field_validator("contact_email")
    @classmethod
    def normalize_email(cls, v: Optional[str]) -> str:
        return (v or "").strip().lower()

    @field_validator("payment_currency")
    @classmethod
    def upper_currency(cls, v: Optional[str]) -> str:
        return sanitize_text(v).upper() or "USD"


class AgreementCreate(ORMModel):
    company_name: str = Field(default="", max_length=255)
    contact_name: str = Field(default="", max_length=255)
    contact_email: EmailStr
    payment_currency: str = Field(default="USD", max_length=8)
    payment_amount: int = Field(gt=0, description="Amount in the currency's minor units")
    contract_html: str = Field(min_length=1)

    def to_party(self) -> AgreementParty:
        return AgreementParty(
            company_name=self.company_name,
            contact_name=self.contact_name,
            contact_email=self.contact_email,
            payment_currency=self.payment_currency,
        )


class AgreementRead(ORMModel):
    success: bool
    message: str
    envelope_id: str
    state: str
    signing_link: str | None = None
    completion_url: str | None = None
    error: ErrorRead | None = None


class EnvelopeStatusRead(ORMModel):
    envelope_id: str
    status: str
    created_date: str = ""
    sent_date: str = ""
    completed_date: str = ""


class ConnectionStatusRead(ORMModel):
    ok: bool
    mode: str
    message: str


class CredentialCheckRead(ORMModel):
    ok: bool
    account_id: str | None = None
    base_path: str | None = None
    error: ErrorRead | None = None
