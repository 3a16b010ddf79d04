"""
E-signature integration modules

Provides the DocuSign adapter used for envelope delivery,
embedded signing and status checks.
"""

from .base import (
    AnchorTab,
    DocumentInfo,
    EnvelopeStatus,
    EnvelopeStatusInfo,
    EnvelopeSubmission,
    RecipientInfo,
    RecipientType,
    SigningUrlInfo,
)
from .docusign_adapter import DocuSignAdapter

__all__ = [
    "AnchorTab",
    "DocumentInfo",
    "DocuSignAdapter",
    "EnvelopeStatus",
    "EnvelopeStatusInfo",
    "EnvelopeSubmission",
    "RecipientInfo",
    "RecipientType",
    "SigningUrlInfo",
]
