"""Repository and provider interfaces (ports) for dependency inversion."""

from abc import ABC, abstractmethod
from typing import Optional

from pagewise.domain.entities import (
    Book,
    BookIndexEntry,
    Interaction,
    PromptEmbedding,
    RecommendationResult,
    UserProfile,
)
from pagewise.domain.outcomes import Outcome


class IBookIndexRepository(ABC):

    @abstractmethod
    async def get_by_isbn(self, isbn_13: str) -> Optional[BookIndexEntry]:
        pass

    @abstractmethod
    async def get_many_by_isbn(self, isbns: list[str]) -> dict[str, BookIndexEntry]:
        """Return the stored entries for *isbns*, keyed by ISBN-13 (missing ones omitted)."""
        pass

    @abstractmethod
    async def insert_if_absent(self, entry: BookIndexEntry) -> bool:
        """Add *entry* unless its ISBN-13 is already indexed; True if it was added.

        A stored row is never overwritten, and concurrent callers adding the
        same ISBN must not fail.
        """
        pass


class IInteractionRepository(ABC):

    @abstractmethod
    async def record(self, interaction: Interaction) -> Interaction:
        """Append a new interaction.  Interactions are never updated."""
        pass

    @abstractmethod
    async def get_user_interactions(
        self, user_id: str, limit: int = 1000
    ) -> list[Interaction]:
        """Return a user's non-deleted interactions, newest first."""
        pass


class IUserProfileRepository(ABC):

    @abstractmethod
    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        pass


class IPromptEmbeddingRepository(ABC):

    @abstractmethod
    async def store(self, record: PromptEmbedding) -> PromptEmbedding:
        pass


class IEmbeddingService(ABC):

    @abstractmethod
    async def embed(self, text: str) -> Outcome[list[float]]:
        """Return a fixed-dimension vector for *text*, or a Failure."""
        pass


class ITextGenerationService(ABC):

    @abstractmethod
    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 256,
        temperature: float = 0.2,
    ) -> Outcome[str]:
        """Return a free-text completion for an OpenAI-style message list."""
        pass


class ICatalogClient(ABC):

    @abstractmethod
    async def search_volumes(self, keywords: str) -> Outcome[list[dict]]:
        """Return one page of raw catalog items for *keywords*."""
        pass


class IRecommendationService(ABC):

    @abstractmethod
    async def recommend(
        self, prompt: str, mode: str, user_id: Optional[str] = None
    ) -> RecommendationResult:
        """Answer a natural-language reading request in ``fresh`` or ``smart`` mode."""
        pass


class ICatalogSearchService(ABC):

    @abstractmethod
    async def search(self, prompt: str, mode: str) -> list[Book]:
        pass
