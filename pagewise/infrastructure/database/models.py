"""SQLAlchemy database models."""

import uuid
from datetime import datetime

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSON, UUID
from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    pass


class UserProfileModel(Base):
    """Consent and mode flags; ``id`` is the auth provider's user id."""

    __tablename__ = "user_profiles"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=True, index=True)
    smart_mode_enabled = Column(Boolean, default=False, nullable=False)
    preferred_discovery_mode = Column(String(10), default="fresh", nullable=False)  # fresh|smart
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class BookIndexModel(Base):
    """Books the system has seen, keyed by ISBN-13."""

    __tablename__ = "book_index"

    isbn_13 = Column(String(13), primary_key=True)
    isbn_10 = Column(String(10), nullable=True)
    google_books_id = Column(String(64), nullable=True, index=True)
    title = Column(String(512), nullable=False)
    subtitle = Column(String(512), nullable=True)
    authors = Column(ARRAY(String), nullable=True)
    primary_author = Column(String(255), nullable=True, index=True)
    genre = Column(String(100), nullable=True, index=True)
    categories = Column(ARRAY(String), nullable=True)
    description = Column(Text, nullable=True)
    page_count = Column(Integer, nullable=True)
    published_date = Column(String(32), nullable=True)
    publisher = Column(String(255), nullable=True)
    average_rating = Column(Float, nullable=True)
    thumbnail_url = Column(String(1024), nullable=True)
    cover_image_url = Column(String(1024), nullable=True)
    content_embedding = Column(ARRAY(Float), nullable=True)
    tags = Column(ARRAY(String), nullable=True)
    quality_score = Column(Float, nullable=True)
    popularity_score = Column(Float, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False
    )


class UserInteractionModel(Base):
    """Append-only log of user <-> book interactions.

    ``book_*`` columns are snapshots taken when the interaction happened.
    Rows are never updated; a user's "delete my data" sets ``deleted_at``.
    """

    __tablename__ = "user_interactions"
    __table_args__ = (
        Index("ix_interactions_user_created", "user_id", "created_at"),
        Index("ix_interactions_user_type", "user_id", "interaction_type"),
        Index("ix_interactions_book", "book_isbn"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), ForeignKey("user_profiles.id"), nullable=False)
    book_isbn = Column(String(13), ForeignKey("book_index.isbn_13"), nullable=False)
    session_id = Column(String(128), nullable=True)
    interaction_type = Column(String(30), nullable=False)  # saved|liked|dismissed|clicked|viewed …
    signal_strength = Column(Float, default=0.0, nullable=False)
    book_title = Column(String(512), nullable=True)
    book_author = Column(String(255), nullable=True)
    book_genre = Column(String(100), nullable=True)
    book_categories = Column(ARRAY(String), nullable=True)
    position_in_results = Column(Integer, nullable=True)
    view_duration_ms = Column(Integer, nullable=True)
    scroll_depth_percent = Column(Float, nullable=True)
    discovery_context = Column(JSON, nullable=True)  # {tracking_type, batch_size, timestamp …}
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
    deleted_at = Column(DateTime(timezone=True), nullable=True)


class PromptEmbeddingModel(Base):
    """Smart-mode audit trail: prompt hash and vector, never the prompt text."""

    __tablename__ = "smart_prompt_embeddings"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(String(64), ForeignKey("user_profiles.id"), nullable=False, index=True)
    prompt_hash = Column(String(64), nullable=False, index=True)
    embedding_vector = Column(ARRAY(Float), nullable=False)
    created_at = Column(DateTime(timezone=True), default=datetime.utcnow, nullable=False)
