"""Google Books catalog client.

Talks to the public ``volumes`` endpoint over HTTP using **httpx** and maps
raw volume items into :class:`~pagewise.domain.entities.Book` records.
"""

import logging
from typing import Any, Optional

import httpx

from pagewise.domain.entities import Book
from pagewise.domain.exceptions import ConfigurationError, ServiceUnavailableError
from pagewise.domain.outcomes import Failure, Outcome, Success
from pagewise.domain.repositories import ICatalogClient

logger = logging.getLogger(__name__)

GOOGLE_BOOKS_BASE_URL = "https://www.googleapis.com/books/v1/volumes"


class GoogleBooksCatalog(ICatalogClient):
    """Google Books ``volumes`` search.

    Constructor args:
        api_key:      Google Books key; an empty key is a configuration Failure.
        base_url:     Endpoint URL (default :data:`GOOGLE_BOOKS_BASE_URL`).
        max_results:  Page size requested per search (default 40).
        timeout:      Per-request timeout in seconds.
        transport:    Optional httpx transport (tests use ``httpx.MockTransport``).
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = GOOGLE_BOOKS_BASE_URL,
        max_results: int = 40,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.base_url = base_url
        self.max_results = max_results
        self.timeout = timeout
        self._transport = transport

    def _params(self, keywords: str) -> dict[str, Any]:
        return {
            "q": keywords,
            "maxResults": self.max_results,
            "orderBy": "relevance",
            "printType": "books",
            "key": self.api_key,
        }

    async def search_volumes(self, keywords: str) -> Outcome[list[dict]]:
        """Return the raw ``items`` of one relevance-ordered result page."""
        if not self.api_key:
            error = ConfigurationError("GOOGLE_BOOKS_API_KEY is not set")
            logger.error("%s", error)
            return Failure(reason=str(error), error=error)

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                resp = await client.get(self.base_url, params=self._params(keywords))
                resp.raise_for_status()
                data = resp.json()
        except httpx.HTTPStatusError as exc:
            logger.warning("Google Books API error: %s", exc.response.status_code)
            error = ServiceUnavailableError(f"Google Books returned {exc.response.status_code}")
            return Failure(reason=str(error), error=error)
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Error fetching from Google Books API: %s", exc)
            error = ServiceUnavailableError(f"Google Books request failed: {exc}")
            return Failure(reason=str(error), error=error)

        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            return Success([])
        return Success(items)


def _identifier(volume_info: dict, kind: str) -> Optional[str]:
    for ident in volume_info.get("industryIdentifiers") or []:
        if ident.get("type") == kind:
            return ident.get("identifier")
    return None


def map_volume_to_book(item: dict) -> Book:
    """Map one raw Google Books item to a :class:`Book`.

    Cover preference is ``large`` > ``extraLarge`` > ``thumbnail``; the
    thumbnail falls back to the cover.  Both are ``None`` without any image.
    """
    volume_info = item.get("volumeInfo") or {}
    image_links = volume_info.get("imageLinks") or {}
    cover_image_url = (
        image_links.get("large")
        or image_links.get("extraLarge")
        or image_links.get("thumbnail")
        or None
    )
    thumbnail_url = image_links.get("thumbnail") or cover_image_url or None
    authors = volume_info.get("authors") or None
    categories = volume_info.get("categories") or None

    return Book(
        isbn_13=_identifier(volume_info, "ISBN_13") or "",
        isbn_10=_identifier(volume_info, "ISBN_10"),
        google_books_id=item.get("id") or None,
        title=volume_info.get("title") or "",
        subtitle=volume_info.get("subtitle") or None,
        authors=tuple(authors) if authors else None,
        genre=categories[0] if categories else None,
        categories=tuple(categories) if categories else None,
        description=volume_info.get("description") or None,
        page_count=volume_info.get("pageCount") or None,
        published_date=volume_info.get("publishedDate") or None,
        publisher=volume_info.get("publisher") or None,
        average_rating=volume_info.get("averageRating") or None,
        thumbnail_url=thumbnail_url,
        cover_image_url=cover_image_url,
    )
