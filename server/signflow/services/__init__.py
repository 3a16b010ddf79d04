from signflow.services.completion_service import (
    CompletionService,
    PaymentOutcome,
    PaymentReturn,
    SigningCompletion,
)
from signflow.services.envelope_service import AgreementResult, EnvelopeService
from signflow.services.handoff_store import (
    HandoffRecord,
    HandoffStore,
    InMemoryHandoffStore,
    RedisHandoffStore,
)
from signflow.services.payment_service import PaymentSessionManager
from signflow.services.state_machine import Envelope, EnvelopeState

__all__ = [
    "AgreementResult",
    "CompletionService",
    "Envelope",
    "EnvelopeService",
    "EnvelopeState",
    "HandoffRecord",
    "HandoffStore",
    "InMemoryHandoffStore",
    "PaymentOutcome",
    "PaymentReturn",
    "PaymentSessionManager",
    "RedisHandoffStore",
    "SigningCompletion",
]
