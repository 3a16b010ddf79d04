"""
E-signature data structures

Provider-neutral descriptions of the documents, recipients and envelope
states exchanged with the DocuSign adapter.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class EnvelopeStatus(str, Enum):
    """Envelope status as reported by the provider."""
    CREATED = "created"
    SENT = "sent"
    DELIVERED = "delivered"
    SIGNED = "signed"
    COMPLETED = "completed"
    DECLINED = "declined"
    VOIDED = "voided"
    DELETED = "deleted"
    TIMED_OUT = "timed_out"
    EXPIRED = "expired"
    UNKNOWN = "unknown"


class RecipientType(str, Enum):
    """Recipient type enumeration."""
    SIGNER = "signer"
    CC = "cc"


@dataclass
class DocumentInfo:
    """Document information for signing."""
    name: str
    content: bytes
    document_id: str = "1"
    file_type: str = "html"


@dataclass
class AnchorTab:
    """A tab placed wherever ``anchor_string`` appears in the document."""
    anchor_string: str
    document_id: str = "1"
    required: bool = True

    def to_payload(self) -> Dict[str, Any]:
        return {
            "anchorString": self.anchor_string,
            "documentId": self.document_id,
            "required": self.required,
        }


@dataclass
class RecipientInfo:
    """Recipient information."""
    name: str
    email: str
    recipient_id: str
    routing_order: int = 1
    type: RecipientType = RecipientType.SIGNER
    sign_here_tabs: List[AnchorTab] = field(default_factory=list)
    date_signed_tabs: List[AnchorTab] = field(default_factory=list)
    client_user_id: Optional[str] = None  # set for embedded signing
    email_subject: Optional[str] = None
    email_body: Optional[str] = None


@dataclass
class SigningUrlInfo:
    """Information for embedded signing."""
    url: str
    envelope_id: str
    recipient_email: Optional[str] = None
    expires_at: Optional[datetime] = None


@dataclass
class EnvelopeSubmission:
    """Result of envelope creation."""
    envelope_id: str
    status: EnvelopeStatus
    provider_response: Optional[Dict[str, Any]] = None


@dataclass
class EnvelopeStatusInfo:
    """Read-only envelope status snapshot."""
    envelope_id: str
    status: str = "unknown"
    created_date: str = ""
    sent_date: str = ""
    completed_date: str = ""

    @property
    def is_completed(self) -> bool:
        return self.status.lower() == EnvelopeStatus.COMPLETED.value
