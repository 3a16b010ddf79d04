"""
Credential cache backends.

Entries are keyed by an md5 digest of the principal so a record issued to one
impersonated user is never served to another. Redis is optional; when it is
unreachable the cache degrades to a miss and the caller re-authenticates.
"""

from __future__ import annotations

import hashlib
import json
import time
from typing import Callable, Dict, Optional, Protocol, Tuple

from redis.asyncio import Redis
from redis.exceptions import RedisError

from signflow.auth.models import Credential
from signflow.core.logging import get_logger

logger = get_logger(__name__)

KEY_PREFIX = "docusign_auth_"


def cache_key(principal: str) -> str:
    return f"{KEY_PREFIX}{hashlib.md5(principal.encode('utf-8')).hexdigest()}"


class CredentialCache(Protocol):
    async def get(self, principal: str) -> Optional[Credential]:
        ...

    async def put(self, principal: str, credential: Credential, ttl: int) -> None:
        ...

    async def invalidate(self, principal: str) -> None:
        ...


class InMemoryCredentialCache:
    """Process-local cache with absolute expiry on a monotonic clock."""

    def __init__(self, clock: Optional[Callable[[], float]] = None):
        self._clock = clock or time.monotonic
        self._entries: Dict[str, Tuple[float, Credential]] = {}

    async def get(self, principal: str) -> Optional[Credential]:
        key = cache_key(principal)
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, credential = entry
        if self._clock() >= expires_at:
            self._entries.pop(key, None)
            return None
        return credential

    async def put(self, principal: str, credential: Credential, ttl: int) -> None:
        if ttl <= 0:
            return
        self._entries[cache_key(principal)] = (self._clock() + ttl, credential)

    async def invalidate(self, principal: str) -> None:
        self._entries.pop(cache_key(principal), None)


class RedisCredentialCache:
    """Redis backed cache; expiry is delegated to SETEX."""

    def __init__(self, redis_client: Redis):
        self._redis = redis_client

    async def get(self, principal: str) -> Optional[Credential]:
        key = cache_key(principal)
        try:
            cached = await self._redis.get(key)
        except RedisError as exc:
            logger.warning("credential_cache.read_failed", cache_key=key, error=str(exc))
            return None
        if not cached:
            return None
        try:
            return Credential.from_dict(json.loads(cached))
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("credential_cache.corrupt_entry", cache_key=key, error=str(exc))
            return None

    async def put(self, principal: str, credential: Credential, ttl: int) -> None:
        if ttl <= 0:
            return
        key = cache_key(principal)
        try:
            await self._redis.setex(key, ttl, json.dumps(credential.to_dict()))
        except RedisError as exc:
            logger.warning("credential_cache.write_failed", cache_key=key, error=str(exc))

    async def invalidate(self, principal: str) -> None:
        key = cache_key(principal)
        try:
            await self._redis.delete(key)
        except RedisError as exc:
            logger.warning("credential_cache.invalidate_failed", cache_key=key, error=str(exc))
