"""Pytest configuration for Pagewise tests.

Nothing here touches Postgres, Redis or a real provider: every port is
replaced by an in-memory fake from ``fakes.py``.
"""
from uuid import uuid4

import pytest

from fakes import (
    InMemoryBookIndexRepository,
    InMemoryInteractionRepository,
    InMemoryPromptEmbeddingRepository,
    InMemoryUserProfileRepository,
)
from pagewise.domain.entities import Interaction, UserProfile


@pytest.fixture
def user_id() -> str:
    return "user-123"


@pytest.fixture
def book_index() -> InMemoryBookIndexRepository:
    return InMemoryBookIndexRepository()


@pytest.fixture
def interactions() -> InMemoryInteractionRepository:
    return InMemoryInteractionRepository()


@pytest.fixture
def prompt_embeddings() -> InMemoryPromptEmbeddingRepository:
    return InMemoryPromptEmbeddingRepository()


@pytest.fixture
def profiles(user_id) -> InMemoryUserProfileRepository:
    return InMemoryUserProfileRepository(
        [UserProfile(id=user_id, smart_mode_enabled=True, preferred_discovery_mode="smart")]
    )


@pytest.fixture
def make_interaction(user_id):
    """Factory for a stored interaction with snapshot fields."""

    def _make(book_isbn: str, interaction_type: str = "saved", signal_strength: float = 1.0, **fields):
        return Interaction(
            id=uuid4(),
            user_id=fields.pop("user_id", user_id),
            book_isbn=book_isbn,
            interaction_type=interaction_type,
            signal_strength=signal_strength,
            **fields,
        )

    return _make
