"""Async Redis client, shared across the application.

Used for:
- short-lived embedding cache (repeated descriptions are expensive to embed)
- Celery broker / result backend (configured separately in the tasks package)
"""

import json
from typing import AsyncGenerator, Optional

import redis.asyncio as aioredis

from pagewise.core.config import settings

# Redis key prefix for cached embeddings, suffixed with the SHA-256 of the text
EMBEDDING_CACHE_PREFIX = "embedding:"


def create_redis() -> aioredis.Redis:
    return aioredis.from_url(settings.redis_url, decode_responses=True)


async def get_redis() -> AsyncGenerator[aioredis.Redis, None]:
    """FastAPI dependency: yield a connected Redis client, close on teardown."""
    client = create_redis()
    try:
        yield client
    finally:
        await client.aclose()


async def get_cached_embedding(client: aioredis.Redis, text_hash: str) -> Optional[list[float]]:
    """Return the cached vector for *text_hash*, or None on a miss."""
    raw = await client.get(f"{EMBEDDING_CACHE_PREFIX}{text_hash}")
    if raw is None:
        return None
    return json.loads(raw)


async def cache_embedding(
    client: aioredis.Redis, text_hash: str, embedding: list[float], ttl_seconds: int
) -> None:
    """Write a vector to the cache with a TTL."""
    await client.setex(f"{EMBEDDING_CACHE_PREFIX}{text_hash}", ttl_seconds, json.dumps(embedding))
