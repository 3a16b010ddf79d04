"""
Stripe Payment Gateway Adapter

Thin async wrapper over the Stripe objects a signed agreement is paid
through: a one-off Product and Price, a Checkout Session, and the account
balance used as a reachability probe.
"""

import logging
from typing import Any, Dict, Optional

import stripe
from stripe import StripeClient, StripeError

from signflow.core.errors import PaymentProviderError

logger = logging.getLogger(__name__)


class StripeAdapter:
    """Stripe payment gateway adapter."""

    def __init__(
        self,
        api_key: str,
        timeout_seconds: int = 15,
        client: Optional[StripeClient] = None,
    ):
        """
        Initialize Stripe adapter.

        Args:
            api_key: Stripe secret API key for the active mode
            timeout_seconds: Per-request network timeout
            client: Preconfigured client, mainly for tests
        """
        self._http_client: Optional[stripe.AIOHTTPClient] = None
        if client is None:
            self._http_client = stripe.AIOHTTPClient(timeout=timeout_seconds)
            client = StripeClient(api_key, http_client=self._http_client)
        self.client = client

    async def create_product(self, name: str, description: str, metadata: Dict[str, str]) -> str:
        try:
            product = await self.client.v1.products.create_async(
                params={"name": name, "description": description, "metadata": metadata}
            )
            return product.id
        except StripeError as e:
            logger.error(f"Stripe product creation error: {e}")
            raise self._wrap(e, "stripe_product_error")

    async def create_price(self, unit_amount: int, currency: str, product_id: str, metadata: Dict[str, str]) -> str:
        try:
            price = await self.client.v1.prices.create_async(
                params={
                    "unit_amount": unit_amount,
                    "currency": currency,
                    "product": product_id,
                    "metadata": metadata,
                }
            )
            return price.id
        except StripeError as e:
            logger.error(f"Stripe price creation error: {e}")
            raise self._wrap(e, "stripe_price_error")

    async def create_checkout_session(self, params: Dict[str, Any]) -> Any:
        try:
            return await self.client.v1.checkout.sessions.create_async(params=params)
        except StripeError as e:
            logger.error(f"Stripe checkout session error: {e}")
            raise self._wrap(e, "stripe_checkout_error")

    async def retrieve_checkout_session(self, session_id: str) -> Any:
        try:
            return await self.client.v1.checkout.sessions.retrieve_async(session_id)
        except StripeError as e:
            logger.error(f"Stripe checkout session retrieval error: {e}")
            raise PaymentProviderError(
                message=f"Could not verify payment status: {self._message(e)}",
                error_code="payment_verification_error",
                provider="stripe",
            )

    async def retrieve_balance(self) -> Any:
        try:
            return await self.client.v1.balance.retrieve_async()
        except StripeError as e:
            logger.warning(f"Stripe balance retrieval failed: {e}")
            raise self._wrap(e, "stripe_connection_error")

    def _message(self, error: StripeError) -> str:
        return error.user_message or str(error)

    def _wrap(self, error: StripeError, error_code: str) -> PaymentProviderError:
        return PaymentProviderError(
            message=f"Stripe payment link creation failed: {self._message(error)}",
            error_code=error_code,
            provider="stripe",
            details={"stripe_code": getattr(error, "code", None)},
        )

    async def close(self):
        """Close the aiohttp session owned by the Stripe HTTP client."""
        if self._http_client is not None:
            await self._http_client.close_async()
            self._http_client = None
