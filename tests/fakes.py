"""In-memory stand-ins for the external providers and the store."""

import asyncio
from typing import Optional

from pagewise.domain.entities import (
    Book,
    BookIndexEntry,
    Interaction,
    PromptEmbedding,
    UserProfile,
)
from pagewise.domain.exceptions import ServiceUnavailableError
from pagewise.domain.outcomes import Failure, Outcome, Success
from pagewise.domain.repositories import (
    IBookIndexRepository,
    ICatalogClient,
    IEmbeddingService,
    IInteractionRepository,
    IPromptEmbeddingRepository,
    ITextGenerationService,
    IUserProfileRepository,
)
from pagewise.infrastructure.llm.prompts import KEYWORD_EXTRACTION_PROMPT


def unavailable(reason: str = "provider down") -> Failure:
    error = ServiceUnavailableError(reason)
    return Failure(reason=reason, error=error)


def make_book(isbn: str, **overrides) -> Book:
    fields = {
        "isbn_13": isbn,
        "title": f"Book {isbn}",
        "authors": ("Some Author",),
        "description": f"Description of {isbn}",
        "cover_image_url": f"https://covers.example/{isbn}.jpg",
        "thumbnail_url": f"https://covers.example/{isbn}-small.jpg",
    }
    fields.update(overrides)
    return Book(**fields)


def make_volume(
    isbn: str,
    title: Optional[str] = None,
    language: str = "en",
    image_links: Optional[dict] = None,
    **volume_info,
) -> dict:
    """A raw Google Books ``items[]`` element."""
    info = {
        "title": title or f"Volume {isbn}",
        "language": language,
        "industryIdentifiers": [{"type": "ISBN_13", "identifier": isbn}],
        "imageLinks": (
            image_links
            if image_links is not None
            else {"thumbnail": f"http://books.example/{isbn}/thumb"}
        ),
    }
    info.update(volume_info)
    return {"id": f"gb-{isbn}", "volumeInfo": info}


class FakeCatalogClient(ICatalogClient):

    def __init__(self, items: Optional[list] = None, outcome: Optional[Outcome] = None):
        self.outcome = outcome if outcome is not None else Success(items or [])
        self.queries: list[str] = []

    async def search_volumes(self, keywords: str) -> Outcome[list[dict]]:
        self.queries.append(keywords)
        return self.outcome


class FakeTextService(ITextGenerationService):
    """Answers keyword prompts with ``keywords`` and everything else with ``themes``."""

    def __init__(self, keywords: str = "", themes: str = "", fail: bool = False):
        self.keywords = keywords
        self.themes = themes
        self.fail = fail
        self.calls: list[list[dict[str, str]]] = []

    async def complete(
        self,
        messages: list[dict[str, str]],
        max_tokens: int = 256,
        temperature: float = 0.2,
    ) -> Outcome[str]:
        self.calls.append(messages)
        if self.fail:
            return unavailable("text generation down")
        if messages[0]["content"] == KEYWORD_EXTRACTION_PROMPT.system:
            return Success(self.keywords)
        return Success(self.themes)


class FakeEmbeddingService(IEmbeddingService):
    """Looks texts up in a fixed table; unknown texts fail."""

    def __init__(self, vectors: Optional[dict[str, list[float]]] = None, fail_all: bool = False):
        self.vectors = vectors or {}
        self.fail_all = fail_all
        self.calls: list[str] = []

    async def embed(self, text: str) -> Outcome[list[float]]:
        self.calls.append(text)
        if self.fail_all or text not in self.vectors:
            return unavailable("embedding down")
        return Success(list(self.vectors[text]))


class InMemoryBookIndexRepository(IBookIndexRepository):
    """With ``round_trips`` every call yields to the event loop first, so
    concurrent callers interleave the way separate database sessions do."""

    def __init__(
        self,
        entries: Optional[list[BookIndexEntry]] = None,
        fail_reads: bool = False,
        round_trips: bool = False,
    ):
        self.entries = {entry.isbn_13: entry for entry in entries or []}
        self.fail_reads = fail_reads
        self.round_trips = round_trips
        self.inserts: list[BookIndexEntry] = []

    async def _round_trip(self) -> None:
        if self.round_trips:
            await asyncio.sleep(0)

    async def get_by_isbn(self, isbn_13: str) -> Optional[BookIndexEntry]:
        await self._round_trip()
        if self.fail_reads:
            raise ConnectionError("book index unavailable")
        return self.entries.get(isbn_13)

    async def get_many_by_isbn(self, isbns: list[str]) -> dict[str, BookIndexEntry]:
        if self.fail_reads:
            raise ConnectionError("book index unavailable")
        return {isbn: self.entries[isbn] for isbn in isbns if isbn in self.entries}

    async def insert_if_absent(self, entry: BookIndexEntry) -> bool:
        await self._round_trip()
        if entry.isbn_13 in self.entries:
            return False
        self.entries[entry.isbn_13] = entry
        self.inserts.append(entry)
        return True


class InMemoryInteractionRepository(IInteractionRepository):

    def __init__(
        self,
        interactions: Optional[list[Interaction]] = None,
        fail_reads: bool = False,
        fail_for_isbns: Optional[set[str]] = None,
    ):
        self.interactions = list(interactions or [])
        self.fail_reads = fail_reads
        self.fail_for_isbns = fail_for_isbns or set()

    async def record(self, interaction: Interaction) -> Interaction:
        if interaction.book_isbn in self.fail_for_isbns:
            raise ConnectionError(f"write failed for {interaction.book_isbn}")
        self.interactions.append(interaction)
        return interaction

    async def get_user_interactions(self, user_id: str, limit: int = 1000) -> list[Interaction]:
        if self.fail_reads:
            raise ConnectionError("interaction store unavailable")
        rows = [
            ix for ix in self.interactions if ix.user_id == user_id and ix.deleted_at is None
        ]
        rows.sort(key=lambda ix: ix.created_at, reverse=True)
        return rows[:limit]


class InMemoryUserProfileRepository(IUserProfileRepository):

    def __init__(self, profiles: Optional[list[UserProfile]] = None):
        self.profiles = {profile.id: profile for profile in profiles or []}

    async def get_by_id(self, user_id: str) -> Optional[UserProfile]:
        return self.profiles.get(user_id)


class InMemoryPromptEmbeddingRepository(IPromptEmbeddingRepository):

    def __init__(self, fail: bool = False):
        self.records: list[PromptEmbedding] = []
        self.fail = fail

    async def store(self, record: PromptEmbedding) -> PromptEmbedding:
        if self.fail:
            raise ConnectionError("audit store unavailable")
        self.records.append(record)
        return record
