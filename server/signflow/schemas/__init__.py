from signflow.schemas.agreement import (
    AgreementCreate,
    AgreementParty,
    AgreementRead,
    ConnectionStatusRead,
    CredentialCheckRead,
    EnvelopeStatusRead,
)
from signflow.schemas.common import ErrorRead

__all__ = [
    "AgreementCreate",
    "AgreementParty",
    "AgreementRead",
    "ConnectionStatusRead",
    "CredentialCheckRead",
    "EnvelopeStatusRead",
    "ErrorRead",
]
