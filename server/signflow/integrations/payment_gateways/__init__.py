"""
Payment gateway integration modules

Provides the Stripe Checkout adapter and the normalized
session/verification structures it returns.
"""

from .base import (
    CheckoutPaymentStatus,
    CheckoutSession,
    ConnectionStatus,
    PaymentVerification,
    StripeCredentials,
    StripeMode,
)
from .stripe_adapter import StripeAdapter

__all__ = [
    "CheckoutPaymentStatus",
    "CheckoutSession",
    "ConnectionStatus",
    "PaymentVerification",
    "StripeAdapter",
    "StripeCredentials",
    "StripeMode",
]
