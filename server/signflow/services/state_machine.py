from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Iterable

from signflow.integrations.esignature.docusign_adapter import NO_ENVELOPE_ID


class EnvelopeState(str, Enum):
    UNSENT = "unsent"
    SENT = "sent"
    VIEW_GENERATED = "view_generated"
    SEND_FAILED = "send_failed"
    COMPLETED = "completed"
    HANDOFF_CONSUMED = "handoff_consumed"


ALLOWED_TRANSITIONS: dict[EnvelopeState, tuple[EnvelopeState, ...]] = {
    EnvelopeState.UNSENT: (EnvelopeState.SENT, EnvelopeState.SEND_FAILED),
    EnvelopeState.SENT: (EnvelopeState.VIEW_GENERATED, EnvelopeState.SEND_FAILED, EnvelopeState.COMPLETED),
    EnvelopeState.VIEW_GENERATED: (EnvelopeState.COMPLETED,),
    EnvelopeState.SEND_FAILED: (),
    EnvelopeState.COMPLETED: (EnvelopeState.HANDOFF_CONSUMED,),
    EnvelopeState.HANDOFF_CONSUMED: (),
}


@dataclass(slots=True)
class TransitionResult:
    succeeded: bool
    reason: str | None = None


@dataclass(slots=True)
class Envelope:
    company_name: str
    client_name: str
    client_email: str
    payment_amount: int
    currency: str
    envelope_id: str = NO_ENVELOPE_ID
    state: EnvelopeState = EnvelopeState.UNSENT
    history: list[tuple[EnvelopeState, datetime]] = field(default_factory=list)

    @property
    def has_id(self) -> bool:
        return bool(self.envelope_id) and self.envelope_id != NO_ENVELOPE_ID


def _can_transition(current: EnvelopeState, target: EnvelopeState) -> bool:
    allowed: Iterable[EnvelopeState] | None = ALLOWED_TRANSITIONS.get(current)
    return allowed is not None and target in allowed


def advance(envelope: Envelope, target: EnvelopeState) -> TransitionResult:
    if envelope.state == target:
        return TransitionResult(succeeded=True)

    if not _can_transition(envelope.state, target):
        return TransitionResult(False, f"envelope transition {envelope.state.value} → {target.value} not permitted")

    if target == EnvelopeState.SENT and not envelope.has_id:
        return TransitionResult(False, "envelope cannot be sent without a provider-assigned id")

    envelope.history.append((envelope.state, datetime.now(timezone.utc)))
    envelope.state = target
    return TransitionResult(succeeded=True)
