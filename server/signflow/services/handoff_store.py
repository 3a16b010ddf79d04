"""
Handoff store.

Carries the payment parameters for an envelope across the signer's trip
through DocuSign and back. Records are written once after a successful send
and may be read any number of times until they expire; a miss is never fatal
because the completion callback has its own query-string fallback.
"""

from __future__ import annotations

import json
import time
from dataclasses import asdict, dataclass
from typing import Callable, Dict, Optional, Protocol, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

from signflow.core.logging import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "docusign_envelope_"
DEFAULT_TTL_SECONDS = 24 * 60 * 60


@dataclass(frozen=True, slots=True)
class HandoffRecord:
    company_name: str
    amount: int
    currency: str
    client_email: str
    client_name: str = ""

    def to_dict(self) -> Dict[str, object]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, object]) -> "HandoffRecord":
        return cls(
            company_name=str(data["company_name"]),
            amount=int(data["amount"]),
            currency=str(data["currency"]),
            client_email=str(data.get("client_email") or ""),
            client_name=str(data.get("client_name") or ""),
        )


def handoff_key(envelope_id: str) -> str:
    return f"{KEY_PREFIX}{envelope_id}"


class HandoffStore(Protocol):
    async def put(self, envelope_id: str, record: HandoffRecord, ttl: int = DEFAULT_TTL_SECONDS) -> None:
        ...

    async def get(self, envelope_id: str) -> Optional[HandoffRecord]:
        ...


class InMemoryHandoffStore:
    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._records: Dict[str, Tuple[float, HandoffRecord]] = {}

    async def put(self, envelope_id: str, record: HandoffRecord, ttl: int = DEFAULT_TTL_SECONDS) -> None:
        self._records[handoff_key(envelope_id)] = (self._clock() + ttl, record)

    async def get(self, envelope_id: str) -> Optional[HandoffRecord]:
        key = handoff_key(envelope_id)
        entry = self._records.get(key)
        if entry is None:
            return None
        expires_at, record = entry
        if self._clock() >= expires_at:
            self._records.pop(key, None)
            return None
        return record


class RedisHandoffStore:
    def __init__(self, redis_client: Redis):
        self._redis = redis_client

    async def put(self, envelope_id: str, record: HandoffRecord, ttl: int = DEFAULT_TTL_SECONDS) -> None:
        key = handoff_key(envelope_id)
        try:
            await self._redis.setex(key, ttl, json.dumps(record.to_dict()))
        except RedisError as exc:
            logger.error("handoff.write_failed", envelope_id=envelope_id, error=str(exc))

    async def get(self, envelope_id: str) -> Optional[HandoffRecord]:
        key = handoff_key(envelope_id)
        try:
            cached = await self._redis.get(key)
        except RedisError as exc:
            logger.warning("handoff.read_failed", envelope_id=envelope_id, error=str(exc))
            return None
        if not cached:
            return None
        try:
            return HandoffRecord.from_dict(json.loads(cached))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("handoff.corrupt_record", envelope_id=envelope_id, error=str(exc))
            return None
