"""
Payment gateway data structures

Normalized views of the Stripe Checkout objects the workflow creates and
verifies. Sessions are never persisted locally; these are read models only.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class StripeMode(str, Enum):
    TEST = "test"
    LIVE = "live"


class CheckoutPaymentStatus(str, Enum):
    """Checkout Session ``payment_status`` values."""
    PAID = "paid"
    UNPAID = "unpaid"
    NO_PAYMENT_REQUIRED = "no_payment_required"


@dataclass(frozen=True)
class StripeCredentials:
    mode: StripeMode
    secret_key: Optional[str]
    publishable_key: Optional[str]


@dataclass
class CheckoutSession:
    """A freshly created Checkout Session."""
    session_id: str
    url: str
    price_id: str
    product_id: str
    amount: int
    currency: str  # upper-case display form
    mode: StripeMode


@dataclass
class PaymentVerification:
    """Normalized fields of a paid Checkout Session."""
    session_id: str
    status: str
    amount_total: Optional[int]
    currency: Optional[str]
    customer_email: str
    payment_intent_id: Optional[str]
    mode: StripeMode


@dataclass
class ConnectionStatus:
    ok: bool
    mode: StripeMode
    message: str
