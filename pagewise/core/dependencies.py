"""Dependency injection container."""

import redis.asyncio as aioredis
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from pagewise.core.config import settings
from pagewise.core.redis_client import get_redis
from pagewise.domain.repositories import (
    IBookIndexRepository,
    ICatalogClient,
    ICatalogSearchService,
    IEmbeddingService,
    IInteractionRepository,
    IPromptEmbeddingRepository,
    IRecommendationService,
    ITextGenerationService,
    IUserProfileRepository,
)
from pagewise.domain.services import ITrackingService
from pagewise.infrastructure.catalog.google_books import GoogleBooksCatalog
from pagewise.infrastructure.database.connection import get_db
from pagewise.infrastructure.database.repository import (
    BookIndexRepository,
    InteractionRepository,
    PromptEmbeddingRepository,
    UserProfileRepository,
)
from pagewise.infrastructure.llm.services import (
    CachedEmbeddingService,
    MockEmbeddingService,
    MockTextGenerationService,
    OpenAIEmbeddingService,
    OpenAITextGenerationService,
)
from pagewise.services.catalog_search import CatalogSearchService
from pagewise.services.recommendation import RecommendationService
from pagewise.services.tracking_service import TrackingService


# ---------------------------------------------------------------------------
# Infrastructure providers
# ---------------------------------------------------------------------------
def get_text_generation_service() -> ITextGenerationService:
    """Return the configured text-generation provider."""
    if settings.llm_provider == "mock":
        return MockTextGenerationService()
    elif settings.llm_provider == "openai":
        return OpenAITextGenerationService(
            api_key=settings.openai_api_key,
            model=settings.chat_model,
            timeout=settings.http_timeout_seconds,
        )
    raise ValueError(f"Unknown LLM provider: {settings.llm_provider}")


def get_base_embedding_service() -> IEmbeddingService:
    """Return the configured embedding provider, uncached."""
    if settings.llm_provider == "mock":
        return MockEmbeddingService()
    elif settings.llm_provider == "openai":
        return OpenAIEmbeddingService(
            api_key=settings.openai_api_key,
            model=settings.embedding_model,
            timeout=settings.http_timeout_seconds,
        )
    raise ValueError(f"Unknown LLM provider: {settings.llm_provider}")


async def get_embedding_service(
    redis_client: aioredis.Redis = Depends(get_redis),
) -> IEmbeddingService:
    """Embedding provider, wrapped in the Redis cache when a TTL is configured."""
    inner = get_base_embedding_service()
    if settings.embedding_cache_ttl_seconds > 0:
        return CachedEmbeddingService(inner, redis_client, settings.embedding_cache_ttl_seconds)
    return inner


def get_catalog_client() -> ICatalogClient:
    return GoogleBooksCatalog(
        api_key=settings.google_books_api_key,
        base_url=settings.google_books_base_url,
        max_results=settings.catalog_max_results,
        timeout=settings.http_timeout_seconds,
    )


# ---------------------------------------------------------------------------
# Repository providers
# ---------------------------------------------------------------------------
async def get_book_index_repository(
    session: AsyncSession = Depends(get_db),
) -> IBookIndexRepository:
    return BookIndexRepository(session)


async def get_interaction_repository(
    session: AsyncSession = Depends(get_db),
) -> IInteractionRepository:
    return InteractionRepository(session)


async def get_user_profile_repository(
    session: AsyncSession = Depends(get_db),
) -> IUserProfileRepository:
    return UserProfileRepository(session)


async def get_prompt_embedding_repository(
    session: AsyncSession = Depends(get_db),
) -> IPromptEmbeddingRepository:
    return PromptEmbeddingRepository(session)


# ---------------------------------------------------------------------------
# Service providers
# ---------------------------------------------------------------------------
async def get_catalog_search_service(
    catalog: ICatalogClient = Depends(get_catalog_client),
    text_service: ITextGenerationService = Depends(get_text_generation_service),
) -> ICatalogSearchService:
    return CatalogSearchService(
        catalog=catalog,
        text_service=text_service,
        result_limit=settings.catalog_result_limit,
    )


async def get_recommendation_service(
    catalog_search: ICatalogSearchService = Depends(get_catalog_search_service),
    embedding_service: IEmbeddingService = Depends(get_embedding_service),
    text_service: ITextGenerationService = Depends(get_text_generation_service),
    interaction_repo: IInteractionRepository = Depends(get_interaction_repository),
    book_index_repo: IBookIndexRepository = Depends(get_book_index_repository),
    prompt_embedding_repo: IPromptEmbeddingRepository = Depends(get_prompt_embedding_repository),
) -> IRecommendationService:
    return RecommendationService(
        catalog_search=catalog_search,
        embedding_service=embedding_service,
        text_service=text_service,
        interaction_repository=interaction_repo,
        book_index_repository=book_index_repo,
        prompt_embedding_repository=prompt_embedding_repo,
        personalized_limit=settings.personalized_result_limit,
    )


async def get_tracking_service(
    interaction_repo: IInteractionRepository = Depends(get_interaction_repository),
    book_index_repo: IBookIndexRepository = Depends(get_book_index_repository),
    profile_repo: IUserProfileRepository = Depends(get_user_profile_repository),
) -> ITrackingService:
    return TrackingService(
        interaction_repository=interaction_repo,
        book_index_repository=book_index_repo,
        user_profile_repository=profile_repo,
    )
