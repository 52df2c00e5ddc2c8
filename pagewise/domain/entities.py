"""Domain entities for Pagewise."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Mapping, Optional
from uuid import UUID


FRESH_MODE = "fresh"  # zero-retention: nothing about the request is stored
SMART_MODE = "smart"  # personalizing: hashed prompt + embedding stored, history used
DISCOVERY_MODES = (FRESH_MODE, SMART_MODE)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _empty_map() -> Mapping[str, float]:
    return MappingProxyType({})


@dataclass(frozen=True)
class Book:
    """External-facing book record, built fresh on every catalog fetch."""

    isbn_13: str
    title: str
    isbn_10: Optional[str] = None
    google_books_id: Optional[str] = None
    subtitle: Optional[str] = None
    authors: Optional[tuple[str, ...]] = None
    genre: Optional[str] = None
    categories: Optional[tuple[str, ...]] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    published_date: Optional[str] = None
    publisher: Optional[str] = None
    average_rating: Optional[float] = None
    thumbnail_url: Optional[str] = None
    cover_image_url: Optional[str] = None

    @property
    def primary_author(self) -> Optional[str]:
        return self.authors[0] if self.authors else None


@dataclass
class BookIndexEntry:
    """Stored superset of :class:`Book` used for scoring.

    ``tags`` come from the store, never from the catalog.  ``content_embedding``
    must share its dimensionality with whatever it is compared against; a
    mismatch means "no similarity", not an error.
    """

    isbn_13: str
    title: str
    isbn_10: Optional[str] = None
    google_books_id: Optional[str] = None
    subtitle: Optional[str] = None
    authors: Optional[list[str]] = None
    primary_author: Optional[str] = None
    genre: Optional[str] = None
    categories: Optional[list[str]] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    published_date: Optional[str] = None
    publisher: Optional[str] = None
    average_rating: Optional[float] = None
    thumbnail_url: Optional[str] = None
    cover_image_url: Optional[str] = None
    content_embedding: Optional[list[float]] = None
    tags: Optional[list[str]] = None
    quality_score: Optional[float] = None
    popularity_score: Optional[float] = None
    is_active: bool = True
    is_available: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    @classmethod
    def from_book(
        cls,
        book: Book,
        content_embedding: Optional[list[float]] = None,
        tags: Optional[list[str]] = None,
    ) -> "BookIndexEntry":
        return cls(
            isbn_13=book.isbn_13,
            title=book.title,
            isbn_10=book.isbn_10,
            google_books_id=book.google_books_id,
            subtitle=book.subtitle,
            authors=list(book.authors) if book.authors else None,
            primary_author=book.primary_author,
            genre=book.genre,
            categories=list(book.categories) if book.categories else None,
            description=book.description,
            page_count=book.page_count,
            published_date=book.published_date,
            publisher=book.publisher,
            average_rating=book.average_rating,
            thumbnail_url=book.thumbnail_url,
            cover_image_url=book.cover_image_url,
            content_embedding=content_embedding,
            tags=tags,
        )

    def to_book(self) -> Book:
        return Book(
            isbn_13=self.isbn_13,
            title=self.title,
            isbn_10=self.isbn_10,
            google_books_id=self.google_books_id,
            subtitle=self.subtitle,
            authors=tuple(self.authors) if self.authors else None,
            genre=self.genre,
            categories=tuple(self.categories) if self.categories else None,
            description=self.description,
            page_count=self.page_count,
            published_date=self.published_date,
            publisher=self.publisher,
            average_rating=self.average_rating,
            thumbnail_url=self.thumbnail_url,
            cover_image_url=self.cover_image_url,
        )


@dataclass
class Interaction:
    """One observed user action against one book.

    Append-only: created by the tracking boundary, never updated.  The
    ``book_*`` fields are snapshots taken at interaction time so preference
    analysis never needs a join.  A ``signal_strength`` of exactly zero is
    ignored by the analyzer.
    """

    id: UUID
    user_id: str
    book_isbn: str
    interaction_type: str  # saved | liked | dismissed | clicked | viewed …
    signal_strength: float = 0.0
    session_id: Optional[str] = None
    book_title: Optional[str] = None
    book_author: Optional[str] = None
    book_genre: Optional[str] = None
    book_categories: Optional[list[str]] = None
    position_in_results: Optional[int] = None
    view_duration_ms: Optional[int] = None
    scroll_depth_percent: Optional[float] = None
    discovery_context: Optional[dict] = None
    created_at: datetime = field(default_factory=utcnow)
    deleted_at: Optional[datetime] = None


@dataclass(frozen=True)
class UserPreferenceProfile:
    """Preference profile derived from one user's interaction history.

    Never persisted: recomputed on demand.  Every map goes from a label to an
    accumulated non-negative weight.  ``taste_embedding`` is ``None`` when no
    positively-signaled book had an embedding (distinct from an all-zero
    vector).
    """

    liked_genres: Mapping[str, float] = field(default_factory=_empty_map)
    disliked_genres: Mapping[str, float] = field(default_factory=_empty_map)
    liked_authors: Mapping[str, float] = field(default_factory=_empty_map)
    disliked_authors: Mapping[str, float] = field(default_factory=_empty_map)
    liked_categories: Mapping[str, float] = field(default_factory=_empty_map)
    disliked_categories: Mapping[str, float] = field(default_factory=_empty_map)
    liked_tags: Mapping[str, float] = field(default_factory=_empty_map)
    disliked_tags: Mapping[str, float] = field(default_factory=_empty_map)
    taste_embedding: Optional[tuple[float, ...]] = None

    @property
    def is_empty(self) -> bool:
        maps = (
            self.liked_genres,
            self.disliked_genres,
            self.liked_authors,
            self.disliked_authors,
            self.liked_categories,
            self.disliked_categories,
            self.liked_tags,
            self.disliked_tags,
        )
        return self.taste_embedding is None and not any(maps)


@dataclass
class UserProfile:
    """Per-user consent and mode flags (owned by the profile store)."""

    id: str
    email: Optional[str] = None
    smart_mode_enabled: bool = False
    preferred_discovery_mode: str = "fresh"  # fresh | smart
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass
class PromptEmbedding:
    """Audit row for a Smart-mode prompt: hash plus vector, never the text."""

    id: UUID
    user_id: str
    prompt_hash: str
    embedding_vector: list[float]
    created_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True)
class ViewportEvent:
    """One passive "book was on screen" event from the client."""

    book_isbn: str
    book: Book
    duration_ms: Optional[int] = None
    scroll_depth_percent: Optional[float] = None
    position_in_results: Optional[int] = None


@dataclass(frozen=True)
class RecommendationResult:
    books: list[Book]
    prompt_vector_available: bool = False
    themes_used: Optional[str] = None


@dataclass(frozen=True)
class BatchResult:
    """Outcome of a fan-out write: counts, never all-or-nothing."""

    processed: int
    failed: int

    @property
    def total(self) -> int:
        return self.processed + self.failed

