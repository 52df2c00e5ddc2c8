"""Catalog search adapter: prompt -> keywords -> catalog page -> a few Books.

Two keyword strategies:

  * stop-word filtering (Fresh mode, no external call)
  * AI-assisted extraction (Smart mode), silently falling back to stop words
"""

import logging

from pagewise.domain.entities import SMART_MODE, Book
from pagewise.domain.outcomes import Degraded, Outcome, Success
from pagewise.domain.repositories import ICatalogClient, ICatalogSearchService, ITextGenerationService
from pagewise.infrastructure.catalog.google_books import map_volume_to_book
from pagewise.infrastructure.llm.prompts import KEYWORD_EXTRACTION_PROMPT

logger = logging.getLogger(__name__)

STOP_WORDS = frozenset(
    {
        "the", "a", "an", "of", "for", "to", "and", "in", "on", "with", "by",
        "about", "from", "at", "as", "is", "are", "was", "were", "be", "this",
        "that", "it", "you", "your", "my", "me", "i", "we", "us", "our", "they",
        "them", "their", "he", "she", "his", "her", "but", "or", "so", "if",
        "then", "than", "too", "very", "just", "can", "will", "would", "should",
        "could", "do", "does", "did", "have", "has", "had", "not", "no", "yes",
        "all", "any", "some", "more", "most", "many", "few", "which", "what",
        "who", "whom", "whose", "how", "when", "where", "why", "because",
        "while", "during", "after", "before", "over", "under", "again", "once",
        "here", "there", "out", "up", "down", "off", "above", "below", "into",
        "through", "between", "among", "each", "other", "such", "only", "own",
        "same", "want",
    }
)

ENGLISH = "en"


def extract_keywords(prompt: str) -> str:
    """Drop stop words (case-insensitive), keep the rest in their original order."""
    return " ".join(word for word in prompt.split() if word.lower() not in STOP_WORDS)


async def extract_keywords_with_ai(
    prompt: str, text_service: ITextGenerationService
) -> Outcome[str]:
    """Ask the text-generation provider for search terms.

    Never fails: an unavailable provider or an empty answer gives
    ``Degraded`` with the stop-word keywords.
    """
    outcome = await text_service.complete(
        KEYWORD_EXTRACTION_PROMPT.render(prompt=prompt),
        max_tokens=KEYWORD_EXTRACTION_PROMPT.max_tokens,
        temperature=KEYWORD_EXTRACTION_PROMPT.temperature,
    )
    if not outcome.ok:
        return Degraded(extract_keywords(prompt), reason=outcome.reason)
    keywords = (outcome.value or "").strip()
    if not keywords:
        return Degraded(extract_keywords(prompt), reason="empty keyword answer")
    return Success(keywords)


class CatalogSearchService(ICatalogSearchService):
    """Turns a prompt into at most ``result_limit`` English books with covers."""

    def __init__(
        self,
        catalog: ICatalogClient,
        text_service: ITextGenerationService,
        result_limit: int = 3,
    ):
        self.catalog = catalog
        self.text_service = text_service
        self.result_limit = result_limit

    async def search(self, prompt: str, mode: str) -> list[Book]:
        if mode == SMART_MODE:
            resolved = await extract_keywords_with_ai(prompt, self.text_service)
            if isinstance(resolved, Degraded):
                logger.warning(
                    "Prompt %s unavailable (%s); using stop-word filter",
                    KEYWORD_EXTRACTION_PROMPT.name,
                    resolved.reason,
                )
            keywords = resolved.value
        else:
            keywords = extract_keywords(prompt)

        outcome = await self.catalog.search_volumes(keywords)
        if not outcome.ok:
            logger.warning("Catalog fetch failed (%s); returning no books", outcome.reason)
            return []

        books: list[Book] = []
        try:
            for item in outcome.value:
                if not isinstance(item, dict):
                    continue
                if (item.get("volumeInfo") or {}).get("language") != ENGLISH:
                    continue
                book = map_volume_to_book(item)
                if not book.cover_image_url:
                    continue
                books.append(book)
                if len(books) >= self.result_limit:
                    break
        except (AttributeError, TypeError) as exc:
            logger.warning("Malformed catalog payload (%s); returning no books", exc)
            return []

        logger.info("Catalog search (%s): %d of %d items kept", mode, len(books), len(outcome.value))
        return books
