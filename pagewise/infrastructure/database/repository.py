"""Repository implementations."""

from contextlib import asynccontextmanager
from typing import Optional

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from pagewise.domain.entities import BookIndexEntry, Interaction, PromptEmbedding, UserProfile, utcnow
from pagewise.domain.repositories import (
    IBookIndexRepository,
    IInteractionRepository,
    IPromptEmbeddingRepository,
    IUserProfileRepository,
)
from pagewise.infrastructure.database.models import (
    BookIndexModel,
    PromptEmbeddingModel,
    UserInteractionModel,
    UserProfileModel,
)

_BOOK_INDEX_FIELDS = (
    "isbn_10",
    "google_books_id",
    "title",
    "subtitle",
    "authors",
    "primary_author",
    "genre",
    "categories",
    "description",
    "page_count",
    "published_date",
    "publisher",
    "average_rating",
    "thumbnail_url",
    "cover_image_url",
    "content_embedding",
    "tags",
    "quality_score",
    "popularity_score",
    "is_active",
    "is_available",
)


@asynccontextmanager
async def rollback_on_error(session: AsyncSession):
    """Roll *session* back when a statement fails, then re-raise.

    Repositories in one request share a session, so a failed write must not
    leave it unusable for the reads that follow.
    """
    try:
        yield
    except SQLAlchemyError:
        await session.rollback()
        raise


def insert_if_absent_statement(entry: BookIndexEntry):
    """INSERT ... ON CONFLICT (isbn_13) DO NOTHING for one book-index row."""
    return (
        pg_insert(BookIndexModel)
        .values(
            isbn_13=entry.isbn_13,
            created_at=entry.created_at,
            updated_at=utcnow(),
            **{name: getattr(entry, name) for name in _BOOK_INDEX_FIELDS},
        )
        .on_conflict_do_nothing(index_elements=["isbn_13"])
    )


# ---------------------------------------------------------------------------
# User Profile Repository
# ---------------------------------------------------------------------------
class UserProfileRepository(IUserProfileRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        async with rollback_on_error(self.session):
            result = await self.session.execute(
                select(UserProfileModel).where(UserProfileModel.id == user_id)
            )
        db_profile = result.scalar_one_or_none()
        return self._to_entity(db_profile) if db_profile else None

    @staticmethod
    def _to_entity(model: UserProfileModel) -> UserProfile:
        return UserProfile(
            id=model.id,
            email=model.email,
            smart_mode_enabled=model.smart_mode_enabled,
            preferred_discovery_mode=model.preferred_discovery_mode,
            created_at=model.created_at,
            updated_at=model.updated_at,
        )


# ---------------------------------------------------------------------------
# Book Index Repository
# ---------------------------------------------------------------------------
class BookIndexRepository(IBookIndexRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_by_isbn(self, isbn_13: str) -> Optional[BookIndexEntry]:
        async with rollback_on_error(self.session):
            result = await self.session.execute(
                select(BookIndexModel).where(BookIndexModel.isbn_13 == isbn_13)
            )
        db_entry = result.scalar_one_or_none()
        return self._to_entity(db_entry) if db_entry else None

    async def get_many_by_isbn(self, isbns: list[str]) -> dict[str, BookIndexEntry]:
        if not isbns:
            return {}
        async with rollback_on_error(self.session):
            result = await self.session.execute(
                select(BookIndexModel).where(BookIndexModel.isbn_13.in_(isbns))
            )
        return {row.isbn_13: self._to_entity(row) for row in result.scalars().all()}

    async def insert_if_absent(self, entry: BookIndexEntry) -> bool:
        async with rollback_on_error(self.session):
            result = await self.session.execute(insert_if_absent_statement(entry))
            await self.session.commit()
        return bool(result.rowcount)

    @staticmethod
    def _to_entity(model: BookIndexModel) -> BookIndexEntry:
        return BookIndexEntry(
            isbn_13=model.isbn_13,
            created_at=model.created_at,
            updated_at=model.updated_at,
            **{name: getattr(model, name) for name in _BOOK_INDEX_FIELDS},
        )


# ---------------------------------------------------------------------------
# Interaction Repository (append-only)
# ---------------------------------------------------------------------------
class InteractionRepository(IInteractionRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def record(self, interaction: Interaction) -> Interaction:
        db_interaction = UserInteractionModel(
            id=interaction.id,
            user_id=interaction.user_id,
            book_isbn=interaction.book_isbn,
            session_id=interaction.session_id,
            interaction_type=interaction.interaction_type,
            signal_strength=interaction.signal_strength,
            book_title=interaction.book_title,
            book_author=interaction.book_author,
            book_genre=interaction.book_genre,
            book_categories=interaction.book_categories,
            position_in_results=interaction.position_in_results,
            view_duration_ms=interaction.view_duration_ms,
            scroll_depth_percent=interaction.scroll_depth_percent,
            discovery_context=interaction.discovery_context,
            created_at=interaction.created_at,
        )
        async with rollback_on_error(self.session):
            self.session.add(db_interaction)
            await self.session.commit()
            await self.session.refresh(db_interaction)
        return self._to_entity(db_interaction)

    async def get_user_interactions(self, user_id: str, limit: int = 1000) -> list[Interaction]:
        stmt = (
            select(UserInteractionModel)
            .where(
                UserInteractionModel.user_id == user_id,
                UserInteractionModel.deleted_at.is_(None),
            )
            .order_by(UserInteractionModel.created_at.desc())
            .limit(limit)
        )
        async with rollback_on_error(self.session):
            result = await self.session.execute(stmt)
        return [self._to_entity(r) for r in result.scalars().all()]

    @staticmethod
    def _to_entity(model: UserInteractionModel) -> Interaction:
        return Interaction(
            id=model.id,
            user_id=model.user_id,
            book_isbn=model.book_isbn,
            interaction_type=model.interaction_type,
            signal_strength=model.signal_strength,
            session_id=model.session_id,
            book_title=model.book_title,
            book_author=model.book_author,
            book_genre=model.book_genre,
            book_categories=model.book_categories,
            position_in_results=model.position_in_results,
            view_duration_ms=model.view_duration_ms,
            scroll_depth_percent=model.scroll_depth_percent,
            discovery_context=model.discovery_context,
            created_at=model.created_at,
            deleted_at=model.deleted_at,
        )


# ---------------------------------------------------------------------------
# Prompt Embedding Repository (Smart-mode audit trail)
# ---------------------------------------------------------------------------
class PromptEmbeddingRepository(IPromptEmbeddingRepository):

    def __init__(self, session: AsyncSession):
        self.session = session

    async def store(self, record: PromptEmbedding) -> PromptEmbedding:
        db_record = PromptEmbeddingModel(
            id=record.id,
            user_id=record.user_id,
            prompt_hash=record.prompt_hash,
            embedding_vector=list(record.embedding_vector),
            created_at=record.created_at,
        )
        async with rollback_on_error(self.session):
            self.session.add(db_record)
            await self.session.commit()
        return record


# ---------------------------------------------------------------------------
# Session-per-call wrappers
#
# An AsyncSession must not be shared by concurrently running coroutines, so
# fan-out writers (the viewport batch) get repositories that open a fresh
# session for every call.
# ---------------------------------------------------------------------------
class SessionPerCallBookIndexRepository(IBookIndexRepository):

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def get_by_isbn(self, isbn_13: str) -> Optional[BookIndexEntry]:
        async with self.session_maker() as session:
            return await BookIndexRepository(session).get_by_isbn(isbn_13)

    async def get_many_by_isbn(self, isbns: list[str]) -> dict[str, BookIndexEntry]:
        async with self.session_maker() as session:
            return await BookIndexRepository(session).get_many_by_isbn(isbns)

    async def insert_if_absent(self, entry: BookIndexEntry) -> bool:
        async with self.session_maker() as session:
            return await BookIndexRepository(session).insert_if_absent(entry)


class SessionPerCallInteractionRepository(IInteractionRepository):

    def __init__(self, session_maker: async_sessionmaker):
        self.session_maker = session_maker

    async def record(self, interaction: Interaction) -> Interaction:
        async with self.session_maker() as session:
            return await InteractionRepository(session).record(interaction)

    async def get_user_interactions(self, user_id: str, limit: int = 1000) -> list[Interaction]:
        async with self.session_maker() as session:
            return await InteractionRepository(session).get_user_interactions(user_id, limit)
