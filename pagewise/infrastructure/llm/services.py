"""Text-generation and embedding provider implementations.

Every public call returns an :mod:`pagewise.domain.outcomes` value instead of
raising, so callers can degrade explicitly:

  * missing credential            -> Failure(ConfigurationError)
  * transport / status / payload  -> Failure(ServiceUnavailableError)
"""

import hashlib
import logging
import re

import numpy as np
import openai
import redis.asyncio as aioredis
from redis.exceptions import RedisError

from pagewise.core.redis_client import cache_embedding, get_cached_embedding
from pagewise.domain.exceptions import ConfigurationError, ServiceUnavailableError
from pagewise.domain.outcomes import Failure, Outcome, Success
from pagewise.domain.repositories import IEmbeddingService, ITextGenerationService

logger = logging.getLogger(__name__)

MOCK_EMBEDDING_DIM = 1536


def _missing_key(provider: str) -> Failure:
    error = ConfigurationError(f"{provider} API key is not configured")
    return Failure(reason=str(error), error=error)


# ---------------------------------------------------------------------------
# Mock (development / testing)
# ---------------------------------------------------------------------------
class MockTextGenerationService(ITextGenerationService):
    """Deterministic completions, useful for tests and offline dev.

    Answers with the distinct words longer than three letters from the user
    message, comma separated, which is a passable stand-in for both keyword
    and theme extraction.
    """

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 256,
        temperature: float = 0.2,
    ) -> Outcome[str]:
        user_text = next(
            (m["content"] for m in reversed(messages) if m.get("role") == "user"), ""
        )
        words: list[str] = []
        for word in re.sub(r"[^a-z0-9 ]", "", user_text.lower()).split():
            if len(word) > 3 and word not in words:
                words.append(word)
        return Success(", ".join(words[:5]))


class MockEmbeddingService(IEmbeddingService):
    """Deterministic unit vectors seeded from the md5 of the text."""

    def __init__(self, dimensions: int = MOCK_EMBEDDING_DIM):
        self.dimensions = dimensions

    async def embed(self, text: str) -> Outcome[list[float]]:
        seed = int(hashlib.md5(text.encode()).hexdigest(), 16) % (2**32)
        rng = np.random.RandomState(seed)
        embedding = rng.randn(self.dimensions).astype(float)
        embedding = embedding / np.linalg.norm(embedding)
        return Success(embedding.tolist())


# ---------------------------------------------------------------------------
# OpenAI (remote API)
# ---------------------------------------------------------------------------
class OpenAITextGenerationService(ITextGenerationService):
    """OpenAI chat-completions provider.

    Constructor args:
        api_key:  OpenAI key; an empty key makes every call a configuration Failure.
        model:    Chat model (default ``gpt-4o-mini``).
        timeout:  Per-request timeout in seconds.
    """

    def __init__(self, api_key: str, model: str = "gpt-4o-mini", timeout: float = 10.0):
        self.api_key = api_key
        self.model = model
        self._client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout) if api_key else None

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 256,
        temperature: float = 0.2,
    ) -> Outcome[str]:
        if self._client is None:
            return _missing_key("OpenAI")
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=messages,  # type: ignore[arg-type]
                temperature=temperature,
                max_tokens=max_tokens,
            )
            content = response.choices[0].message.content or ""
        except openai.OpenAIError as exc:
            logger.warning("OpenAI chat call failed (%s)", exc)
            error = ServiceUnavailableError(f"OpenAI chat call failed: {exc}")
            return Failure(reason=str(error), error=error)
        except (IndexError, AttributeError) as exc:
            logger.warning("OpenAI chat response malformed (%s)", exc)
            error = ServiceUnavailableError("OpenAI chat response malformed")
            return Failure(reason=str(error), error=error)
        return Success(content.strip())


class OpenAIEmbeddingService(IEmbeddingService):
    """OpenAI embeddings provider (``text-embedding-3-small`` by default, 1536-dim)."""

    def __init__(
        self, api_key: str, model: str = "text-embedding-3-small", timeout: float = 10.0
    ):
        self.api_key = api_key
        self.model = model
        self._client = openai.AsyncOpenAI(api_key=api_key, timeout=timeout) if api_key else None

    async def embed(self, text: str) -> Outcome[list[float]]:
        if self._client is None:
            return _missing_key("OpenAI")
        try:
            response = await self._client.embeddings.create(model=self.model, input=text)
            embedding = list(response.data[0].embedding)
        except openai.OpenAIError as exc:
            logger.warning("OpenAI embedding call failed (%s)", exc)
            error = ServiceUnavailableError(f"OpenAI embedding call failed: {exc}")
            return Failure(reason=str(error), error=error)
        except (IndexError, AttributeError, TypeError) as exc:
            logger.warning("OpenAI embedding response malformed (%s)", exc)
            error = ServiceUnavailableError("OpenAI embedding response malformed")
            return Failure(reason=str(error), error=error)
        if not embedding:
            error = ServiceUnavailableError("OpenAI returned an empty embedding")
            return Failure(reason=str(error), error=error)
        return Success(embedding)


# ---------------------------------------------------------------------------
# Redis-backed cache
# ---------------------------------------------------------------------------
class CachedEmbeddingService(IEmbeddingService):
    """Short-lived cache in front of another embedding provider.

    Keys are the SHA-256 of the text, so nothing readable is written to
    Redis.  Cache errors are logged and skipped; only successes are cached.
    """

    def __init__(self, inner: IEmbeddingService, redis_client: aioredis.Redis, ttl_seconds: int):
        self.inner = inner
        self.redis = redis_client
        self.ttl_seconds = ttl_seconds

    async def embed(self, text: str) -> Outcome[list[float]]:
        text_hash = hashlib.sha256(text.encode("utf-8")).hexdigest()
        try:
            cached = await get_cached_embedding(self.redis, text_hash)
        except (RedisError, ValueError) as exc:
            logger.warning("Embedding cache read failed (%s)", exc)
            cached = None
        if cached:
            return Success(cached)
        logger.debug("Embedding cache miss for %s", text_hash[:12])

        outcome = await self.inner.embed(text)
        if isinstance(outcome, Success):
            try:
                await cache_embedding(self.redis, text_hash, outcome.value, self.ttl_seconds)
            except RedisError as exc:
                logger.warning("Embedding cache write failed (%s)", exc)
        return outcome
