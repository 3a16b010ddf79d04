from __future__ import annotations

import re
from typing import Dict, Optional
from urllib.parse import urlencode

from signflow.core.config import Settings
from signflow.core.errors import (
    InvalidAmount,
    InvalidCurrency,
    PaymentNotCompleted,
    PaymentProviderError,
    WorkflowError,
)
from signflow.core.logging import get_logger
from signflow.core.result import Result
from signflow.integrations.payment_gateways import (
    CheckoutPaymentStatus,
    CheckoutSession,
    ConnectionStatus,
    PaymentVerification,
    StripeAdapter,
    StripeCredentials,
    StripeMode,
)

logger = get_logger(__name__)

CURRENCY_PATTERN = re.compile(r"^[A-Z]{3}$")
# Stripe substitutes this literal into success_url at redirect time; it must not be URL-encoded.
CHECKOUT_SESSION_PLACEHOLDER = "{CHECKOUT_SESSION_ID}"
SUBMIT_MESSAGE = (
    "Thank you for your business! After payment, you will receive your service activation details via email."
)


def resolve_stripe_credentials(settings: Settings) -> StripeCredentials:
    mode = StripeMode(settings.stripe_mode)
    if mode is StripeMode.LIVE:
        return StripeCredentials(mode, settings.stripe_live_secret_key, settings.stripe_live_publishable_key)
    return StripeCredentials(mode, settings.stripe_test_secret_key, settings.stripe_test_publishable_key)


def normalize_currency(currency: str) -> str:
    """Upper-case and validate an ISO 4217 code, raising InvalidCurrency otherwise."""
    validated = (currency or "").strip().upper()
    if not CURRENCY_PATTERN.match(validated):
        raise InvalidCurrency(
            f"Invalid currency code provided: {currency}. Must be a 3-letter ISO code (e.g., USD)."
        )
    return validated


class PaymentSessionManager:
    """
    Prices a signed agreement in Stripe and verifies the resulting payment.

    Mode and keys are fixed for the lifetime of an instance; switching
    between test and live requires a new manager.
    """

    def __init__(self, settings: Settings, gateway: Optional[StripeAdapter] = None):
        self.credentials = resolve_stripe_credentials(settings)
        self.mode = self.credentials.mode
        self.base_url = settings.base_url
        self._timeout_seconds = settings.stripe_timeout_seconds
        self._gateway = gateway

    @property
    def publishable_key(self) -> Optional[str]:
        return self.credentials.publishable_key

    @property
    def gateway(self) -> StripeAdapter:
        if self._gateway is None:
            self._gateway = StripeAdapter(self.credentials.secret_key or "", timeout_seconds=self._timeout_seconds)
        return self._gateway

    def validate_configuration(self) -> Optional[PaymentProviderError]:
        mode_display = "Live" if self.mode is StripeMode.LIVE else "Test"
        if not self.credentials.secret_key:
            return PaymentProviderError(
                f"Stripe {mode_display} Secret Key is not configured.", error_code="stripe_config_error", provider="stripe"
            )
        if not self.credentials.publishable_key:
            return PaymentProviderError(
                f"Stripe {mode_display} Publishable Key is not configured.", error_code="stripe_config_error", provider="stripe"
            )
        return None

    def success_url(self, envelope_id: str) -> str:
        query = urlencode({"payment_status": "success", "envelope_id": envelope_id})
        return f"{self.base_url}/payment-success/?{query}&session_id={CHECKOUT_SESSION_PLACEHOLDER}"

    def cancel_url(self, envelope_id: str) -> str:
        query = urlencode({"payment_status": "cancelled", "envelope_id": envelope_id})
        return f"{self.base_url}/payment-cancelled/?{query}"

    async def create_checkout(
        self,
        company_name: str,
        amount_minor_units: int,
        currency_code: str,
        client_email: str,
        envelope_id: str,
    ) -> Result[CheckoutSession]:
        if amount_minor_units <= 0:
            return Result.fail(
                InvalidAmount(
                    f"Payment amount must be greater than zero. Calculated amount was: {amount_minor_units}."
                )
            )
        try:
            display_currency = normalize_currency(currency_code)
        except InvalidCurrency as exc:
            return Result.fail(exc)

        config_error = self.validate_configuration()
        if config_error is not None:
            return Result.fail(config_error)

        stripe_currency = display_currency.lower()
        product_metadata = self._metadata(envelope_id, company_name, created_via="docusign_integration")

        try:
            product_id = await self.gateway.create_product(
                name=f"IT Services Agreement - {company_name}",
                description=f"Services Agreement for {company_name}",
                metadata=product_metadata,
            )
            price_id = await self.gateway.create_price(
                unit_amount=amount_minor_units,
                currency=stripe_currency,
                product_id=product_id,
                metadata={"company_name": company_name, "envelope_id": envelope_id, "stripe_mode": self.mode.value},
            )
            session = await self.gateway.create_checkout_session(
                self._checkout_params(price_id, company_name, client_email, envelope_id)
            )
        except WorkflowError as exc:
            logger.error(
                "payment.checkout.failed",
                envelope_id=envelope_id,
                error_code=exc.error_code,
                error=exc.error_message,
            )
            return Result.fail(exc)

        logger.info(
            "payment.checkout.created",
            envelope_id=envelope_id,
            session_id=session.id,
            amount=amount_minor_units,
            currency=stripe_currency,
            mode=self.mode.value,
        )
        return Result.ok(
            CheckoutSession(
                session_id=session.id,
                url=session.url,
                price_id=price_id,
                product_id=product_id,
                amount=amount_minor_units,
                currency=display_currency,
                mode=self.mode,
            )
        )

    async def verify(self, session_id: str) -> Result[PaymentVerification]:
        try:
            session = await self.gateway.retrieve_checkout_session(session_id)
        except WorkflowError as exc:
            logger.error("payment.verify.failed", session_id=session_id, error=exc.error_message)
            return Result.fail(exc)

        payment_status = getattr(session, "payment_status", None)
        if payment_status != CheckoutPaymentStatus.PAID.value:
            logger.warning("payment.verify.not_paid", session_id=session_id, payment_status=payment_status)
            return Result.fail(
                PaymentNotCompleted(
                    f"Payment was not successfully completed. Status: {payment_status}",
                    provider="stripe",
                    details={"session_id": session_id, "payment_status": payment_status},
                )
            )

        customer_email = getattr(session, "customer_email", None)
        if not customer_email:
            customer_details = getattr(session, "customer_details", None)
            customer_email = getattr(customer_details, "email", None) if customer_details else None

        return Result.ok(
            PaymentVerification(
                session_id=session_id,
                status=payment_status,
                amount_total=getattr(session, "amount_total", None),
                currency=getattr(session, "currency", None),
                customer_email=customer_email or "",
                payment_intent_id=getattr(session, "payment_intent", None),
                mode=self.mode,
            )
        )

    async def test_connection(self) -> ConnectionStatus:
        try:
            await self.gateway.retrieve_balance()
        except WorkflowError as exc:
            return ConnectionStatus(ok=False, mode=self.mode, message=f"Stripe connection failed: {exc.error_message}")
        except Exception as exc:  # noqa: BLE001
            return ConnectionStatus(ok=False, mode=self.mode, message=f"Stripe connection failed: {exc}")
        return ConnectionStatus(
            ok=True,
            mode=self.mode,
            message=f"Stripe connection successful in {self.mode.value} mode",
        )

    async def close(self) -> None:
        if self._gateway is not None:
            await self._gateway.close()

    def _metadata(self, envelope_id: str, company_name: str, **extra: str) -> Dict[str, str]:
        metadata = {
            "docusign_envelope_id": envelope_id,
            "company_name": company_name,
            "stripe_mode": self.mode.value,
        }
        metadata.update(extra)
        return metadata

    def _checkout_params(self, price_id: str, company_name: str, client_email: str, envelope_id: str) -> dict:
        params = {
            "payment_method_types": ["card"],
            "line_items": [{"price": price_id, "quantity": 1}],
            "mode": "payment",
            "success_url": self.success_url(envelope_id),
            "cancel_url": self.cancel_url(envelope_id),
            "metadata": self._metadata(envelope_id, company_name, client_email=client_email),
            "allow_promotion_codes": True,
            "billing_address_collection": "required",
            "custom_text": {"submit": {"message": SUBMIT_MESSAGE}},
        }
        if client_email:
            params["customer_email"] = client_email
        return params
