from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from redis.asyncio import Redis

from signflow.core.config import Settings
from signflow.core.logging import get_logger

logger = get_logger(__name__)


@asynccontextmanager
async def open_redis_client(settings: Settings) -> AsyncIterator[Redis | None]:
    """Yield a client when the redis backend is selected, else None."""
    if settings.cache_backend != "redis":
        yield None
        return

    client: Redis | None = None
    try:
        client = Redis.from_url(settings.redis_url)
        yield client
    finally:
        if client is not None:
            await client.aclose()
