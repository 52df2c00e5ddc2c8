"""Pydantic schemas for API requests and responses."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from pagewise.domain.entities import DISCOVERY_MODES, Book, ViewportEvent


# ---------------------------------------------------------------------------
# Books
# ---------------------------------------------------------------------------
class BookPayload(BaseModel):
    """A book as the client received it from ``/recommend`` and sends it back."""

    isbn_13: str = Field(..., min_length=1, max_length=13)
    title: str = Field(..., min_length=1)
    isbn_10: Optional[str] = None
    google_books_id: Optional[str] = None
    subtitle: Optional[str] = None
    authors: Optional[list[str]] = None
    genre: Optional[str] = None
    categories: Optional[list[str]] = None
    description: Optional[str] = None
    page_count: Optional[int] = None
    published_date: Optional[str] = None
    publisher: Optional[str] = None
    average_rating: Optional[float] = None
    thumbnail_url: Optional[str] = None
    cover_image_url: Optional[str] = None

    def to_entity(self) -> Book:
        data = self.model_dump()
        data["authors"] = tuple(self.authors) if self.authors else None
        data["categories"] = tuple(self.categories) if self.categories else None
        return Book(**data)


class BookResponse(BaseModel):
    """A recommended book.  ISBN and title may be empty when the catalog omits them."""

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

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_entity(cls, book: Book) -> "BookResponse":
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
        )


# ---------------------------------------------------------------------------
# Recommendations
# ---------------------------------------------------------------------------
def _normalize_mode(value: str) -> str:
    mode = value.strip().lower()
    if mode not in DISCOVERY_MODES:
        raise ValueError(f"mode must be one of: {', '.join(DISCOVERY_MODES)}")
    return mode


class RecommendRequest(BaseModel):
    prompt: str = Field(..., min_length=1)
    mode: str = "fresh"
    user_id: Optional[str] = None

    @field_validator("prompt")
    @classmethod
    def prompt_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("prompt must not be blank")
        return value.strip()

    @field_validator("mode")
    @classmethod
    def mode_is_known(cls, value: str) -> str:
        return _normalize_mode(value)


class RecommendResponse(BaseModel):
    books: list[BookResponse]
    prompt_vector_available: bool = False
    themes_used: Optional[str] = None


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------
class InteractionCreateRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    book_isbn: str = Field(..., min_length=1, max_length=13)
    action: str = Field(..., min_length=1)  # add_to_list | show_more_like | hide_similar | clicked
    book: BookPayload
    position_in_results: Optional[int] = Field(None, ge=0)
    session_id: Optional[str] = None
    discovery_context: Optional[dict[str, Any]] = None


class InteractionResponse(BaseModel):
    id: UUID
    user_id: str
    book_isbn: str
    interaction_type: str
    signal_strength: float
    session_id: Optional[str] = None
    position_in_results: Optional[int] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ViewportEventRequest(BaseModel):
    book_isbn: str = Field(..., min_length=1, max_length=13)
    book: BookPayload
    duration_ms: Optional[int] = Field(None, ge=0)
    scroll_depth_percent: Optional[float] = Field(None, ge=0, le=100)
    position_in_results: Optional[int] = Field(None, ge=0)

    def to_entity(self) -> ViewportEvent:
        return ViewportEvent(
            book_isbn=self.book_isbn,
            book=self.book.to_entity(),
            duration_ms=self.duration_ms,
            scroll_depth_percent=self.scroll_depth_percent,
            position_in_results=self.position_in_results,
        )


class ViewportBatchRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    session_id: str = Field(..., min_length=1)
    mode: str
    events: list[ViewportEventRequest]


class QueuedBatchResponse(BaseModel):
    task_id: str
    queued: int


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------
class TaskStatusResponse(BaseModel):
    """Background task status response."""

    task_id: str
    status: str  # PENDING | STARTED | SUCCESS | FAILURE | RETRY
    result: Optional[dict[str, Any]] = None
    error: Optional[str] = None
