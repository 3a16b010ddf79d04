"""
Completion coordinator tests: signing return and payment return.
"""

from unittest.mock import AsyncMock, Mock

import pytest

from signflow.core.errors import ContractDataNotFound, MissingPaymentData, PaymentProviderError, SigningNotCompleted
from signflow.core.result import Result
from signflow.integrations.esignature import EnvelopeStatusInfo
from signflow.services import (
    CompletionService,
    EnvelopeState,
    HandoffRecord,
    InMemoryHandoffStore,
    PaymentOutcome,
    PaymentSessionManager,
)
from tests.conftest import make_settings


@pytest.fixture
def gateway():
    gateway = Mock()
    gateway.create_product = AsyncMock(return_value="prod_123")
    gateway.create_price = AsyncMock(return_value="price_123")
    gateway.create_checkout_session = AsyncMock(
        return_value=Mock(id="cs_test_123", url="https://checkout.stripe.com/c/pay/cs_test_123")
    )
    gateway.retrieve_checkout_session = AsyncMock()
    return gateway


@pytest.fixture
def handoff_store(clock):
    return InMemoryHandoffStore(clock=clock)


@pytest.fixture
def payments(settings, gateway):
    return PaymentSessionManager(settings, gateway=gateway)


@pytest.fixture
def completion(settings, handoff_store, payments):
    return CompletionService(settings, handoff_store, payments)


@pytest.fixture
def acme_record():
    return HandoffRecord(
        company_name="Acme Corp",
        amount=5000,
        currency="USD",
        client_email="john@acme.com",
        client_name="John Smith",
    )


class TestSigningComplete:
    @pytest.mark.asyncio
    async def test_handoff_record_prices_checkout(self, completion, handoff_store, acme_record, gateway):
        await handoff_store.put("env_123", acme_record)

        outcome = await completion.on_signing_complete("env_123")

        assert outcome.success
        assert outcome.redirect_url == "https://checkout.stripe.com/c/pay/cs_test_123"
        assert outcome.state == EnvelopeState.HANDOFF_CONSUMED
        price_kwargs = gateway.create_price.await_args.kwargs
        assert price_kwargs["unit_amount"] == 5000
        assert price_kwargs["currency"] == "usd"
        params = gateway.create_checkout_session.await_args.args[0]
        assert params["customer_email"] == "john@acme.com"
        assert params["metadata"]["docusign_envelope_id"] == "env_123"

    @pytest.mark.asyncio
    async def test_query_fallback_on_miss(self, completion, gateway):
        outcome = await completion.on_signing_complete(
            "env_456",
            {"company": "Globex", "amount": "12000", "currency": "eur", "client_email": "Hank@Globex.com"},
        )

        assert outcome.success
        assert gateway.create_price.await_args.kwargs["unit_amount"] == 12000
        assert gateway.create_price.await_args.kwargs["currency"] == "eur"
        assert gateway.create_checkout_session.await_args.args[0]["customer_email"] == "hank@globex.com"

    @pytest.mark.asyncio
    async def test_fallback_currency_defaults_to_usd(self, completion, gateway):
        await completion.on_signing_complete("env_456", {"company": "Globex", "amount": "100"})
        assert gateway.create_price.await_args.kwargs["currency"] == "usd"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "query",
        [{}, {"company": "Globex"}, {"company": "Globex", "amount": "0"}, {"amount": "5000"}, {"company": "G", "amount": "ten"}],
    )
    async def test_unrecoverable_data_is_fatal(self, completion, gateway, query):
        outcome = await completion.on_signing_complete("env_789", query)

        assert not outcome.success
        assert isinstance(outcome.error, ContractDataNotFound)
        assert "env_789" in outcome.error.error_message
        gateway.create_product.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "stored",
        [HandoffRecord("Acme Corp", 0, "USD", "john@acme.com"), HandoffRecord("", 5000, "USD", "john@acme.com")],
    )
    async def test_unpayable_stored_record_is_fatal(self, completion, handoff_store, gateway, stored):
        await handoff_store.put("env_000", stored)

        outcome = await completion.on_signing_complete("env_000", {})

        assert not outcome.success
        assert isinstance(outcome.error, ContractDataNotFound)
        assert "env_000" in outcome.error.error_message
        gateway.create_product.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unpayable_stored_record_falls_back_to_query(self, completion, handoff_store, gateway):
        await handoff_store.put("env_000", HandoffRecord("Acme Corp", 0, "USD", "john@acme.com"))

        outcome = await completion.on_signing_complete("env_000", {"company": "Acme Corp", "amount": "5000"})

        assert outcome.success
        assert gateway.create_price.await_args.kwargs["unit_amount"] == 5000

    @pytest.mark.asyncio
    async def test_checkout_failure_is_terminal(self, completion, handoff_store, acme_record, gateway):
        await handoff_store.put("env_123", acme_record)
        gateway.create_product.side_effect = PaymentProviderError("Stripe payment link creation failed: bad key")

        outcome = await completion.on_signing_complete("env_123")

        assert not outcome.success
        assert outcome.redirect_url is None
        assert outcome.error.error_message == "Stripe payment link creation failed: bad key"
        assert outcome.state == EnvelopeState.COMPLETED


class TestVerifiedCompletion:
    @pytest.fixture
    def envelopes(self):
        envelopes = Mock()
        envelopes.get_envelope_status = AsyncMock(
            return_value=Result.ok(EnvelopeStatusInfo(envelope_id="env_123", status="completed"))
        )
        return envelopes

    @pytest.fixture
    def strict_completion(self, rsa_private_key_pem, handoff_store, gateway, envelopes):
        settings = make_settings(rsa_private_key_pem, docusign_verify_completion=True)
        payments = PaymentSessionManager(settings, gateway=gateway)
        return CompletionService(settings, handoff_store, payments, envelopes=envelopes)

    @pytest.mark.asyncio
    async def test_completed_envelope_proceeds(self, strict_completion, handoff_store, acme_record, envelopes):
        await handoff_store.put("env_123", acme_record)

        outcome = await strict_completion.on_signing_complete("env_123")

        assert outcome.success
        envelopes.get_envelope_status.assert_awaited_once_with("env_123")

    @pytest.mark.asyncio
    async def test_unsigned_envelope_rejected(self, strict_completion, handoff_store, acme_record, envelopes, gateway):
        await handoff_store.put("env_123", acme_record)
        envelopes.get_envelope_status.return_value = Result.ok(
            EnvelopeStatusInfo(envelope_id="env_123", status="delivered")
        )

        outcome = await strict_completion.on_signing_complete("env_123")

        assert isinstance(outcome.error, SigningNotCompleted)
        assert "delivered" in outcome.error.error_message
        gateway.create_product.assert_not_awaited()


class TestPaymentReturn:
    @pytest.mark.asyncio
    async def test_paid(self, completion, gateway):
        gateway.retrieve_checkout_session.return_value = Mock(
            payment_status="paid",
            amount_total=5000,
            currency="usd",
            customer_email="john@acme.com",
            payment_intent="pi_123",
        )

        result = await completion.on_payment_return("sess_abc", "success", "env_123")

        assert result.outcome is PaymentOutcome.PAID
        assert result.verification.customer_email == "john@acme.com"
        assert result.redirect_url is None

    @pytest.mark.asyncio
    async def test_unpaid_redirects_with_confirmation_failure(self, completion, gateway):
        gateway.retrieve_checkout_session.return_value = Mock(payment_status="unpaid")

        result = await completion.on_payment_return("sess_abc", "success", "env_123")

        assert result.outcome is PaymentOutcome.VERIFICATION_FAILED
        assert result.redirect_url.startswith(
            "https://agreements.example.com/payment-cancelled/?error_code=verification_failed&message="
        )
        assert result.redirect_url.endswith("&envelope_id=env_123")

    @pytest.mark.asyncio
    async def test_cancelled_makes_no_verification_call(self, completion, gateway):
        result = await completion.on_payment_return(None, "cancelled", "env_123")

        assert result.outcome is PaymentOutcome.CANCELLED
        gateway.retrieve_checkout_session.assert_not_awaited()

    @pytest.mark.asyncio
    @pytest.mark.parametrize("session_id,status", [(None, "success"), ("sess_abc", None), (None, "weird")])
    async def test_anything_else_is_fatal(self, completion, gateway, session_id, status):
        result = await completion.on_payment_return(session_id, status, "env_123")

        assert result.outcome is PaymentOutcome.FATAL
        assert isinstance(result.error, MissingPaymentData)
        gateway.retrieve_checkout_session.assert_not_awaited()
