"""Interaction tracking: explicit actions and passive viewport batches.

Explicit actions come from buttons on a result card and carry a fixed
signal:

  add_to_list     -> saved      +1.0
  show_more_like  -> liked      +0.8
  hide_similar    -> dismissed  -0.5
  clicked         -> clicked    +0.1

Viewport events ("this card was on screen") are Smart-mode only and carry a
very weak positive signal.  Every interaction stores snapshots of the book's
genre, primary author, categories and title so preference analysis never
needs a join back to the book index.
"""

import asyncio
import logging
from typing import NamedTuple, Optional
from uuid import uuid4

from pagewise.domain.entities import (
    SMART_MODE,
    BatchResult,
    Book,
    BookIndexEntry,
    Interaction,
    ViewportEvent,
    utcnow,
)
from pagewise.domain.repositories import (
    IBookIndexRepository,
    IInteractionRepository,
    IUserProfileRepository,
)
from pagewise.domain.services import ITrackingService

logger = logging.getLogger(__name__)


class ActionSignal(NamedTuple):
    interaction_type: str
    signal_strength: float


ACTION_MAP = {
    "add_to_list": ActionSignal("saved", 1.0),
    "show_more_like": ActionSignal("liked", 0.8),
    "hide_similar": ActionSignal("dismissed", -0.5),
    "clicked": ActionSignal("clicked", 0.1),
}

VIEWPORT_INTERACTION_TYPE = "viewed"
VIEWPORT_SIGNAL = 0.05


class TrackingService(ITrackingService):

    def __init__(
        self,
        interaction_repository: IInteractionRepository,
        book_index_repository: IBookIndexRepository,
        user_profile_repository: Optional[IUserProfileRepository] = None,
    ):
        self.interaction_repository = interaction_repository
        self.book_index_repository = book_index_repository
        self.user_profile_repository = user_profile_repository

    async def record_interaction(
        self,
        user_id: str,
        book_isbn: str,
        action: str,
        book: Book,
        *,
        position_in_results: Optional[int] = None,
        session_id: Optional[str] = None,
        discovery_context: Optional[dict] = None,
    ) -> Interaction:
        mapped = ACTION_MAP.get(action)
        if mapped is None:
            raise ValueError(
                f"Unknown interaction type {action!r}; expected one of: {', '.join(ACTION_MAP)}"
            )

        await self._ensure_indexed(book_isbn, book)
        interaction = self._snapshot(
            user_id,
            book_isbn,
            book,
            interaction_type=mapped.interaction_type,
            signal_strength=mapped.signal_strength,
            session_id=session_id,
            position_in_results=position_in_results,
            discovery_context=discovery_context,
        )
        stored = await self.interaction_repository.record(interaction)
        logger.info(
            "Recorded %s (%+.2f) for user %s on %s",
            mapped.interaction_type,
            mapped.signal_strength,
            user_id,
            book_isbn,
        )
        return stored

    async def validate_viewport_batch(
        self, user_id: str, mode: str, events: list[ViewportEvent]
    ) -> None:
        """Reject a batch before any write: empty, unknown user, or not Smart mode."""
        if not events:
            raise ValueError("Viewport batch must contain at least one event")
        if self.user_profile_repository is not None:
            profile = await self.user_profile_repository.get_by_id(user_id)
            if profile is None:
                raise LookupError(f"User {user_id} not found")
        if (mode or "").strip().lower() != SMART_MODE:
            raise PermissionError("Viewport tracking is only allowed in Smart mode")

    async def record_viewport_batch(
        self,
        user_id: str,
        session_id: str,
        mode: str,
        events: list[ViewportEvent],
    ) -> BatchResult:
        await self.validate_viewport_batch(user_id, mode, events)

        context = {
            "tracking_type": "viewport",
            "batch_size": len(events),
            "timestamp": utcnow().isoformat(),
        }
        results = await asyncio.gather(
            *(self._log_viewport_event(user_id, session_id, event, context) for event in events),
            return_exceptions=True,
        )

        failed = 0
        for event, result in zip(events, results):
            if isinstance(result, Exception):
                failed += 1
                logger.warning("Viewport event for %s failed: %s", event.book_isbn, result)

        batch = BatchResult(processed=len(events) - failed, failed=failed)
        logger.info(
            "Viewport batch for user %s: %d processed, %d failed",
            user_id,
            batch.processed,
            batch.failed,
        )
        return batch

    async def _log_viewport_event(
        self, user_id: str, session_id: str, event: ViewportEvent, context: dict
    ) -> Interaction:
        await self._ensure_indexed(event.book_isbn, event.book)
        interaction = self._snapshot(
            user_id,
            event.book_isbn,
            event.book,
            interaction_type=VIEWPORT_INTERACTION_TYPE,
            signal_strength=VIEWPORT_SIGNAL,
            session_id=session_id,
            position_in_results=event.position_in_results,
            discovery_context=dict(context),
        )
        interaction.view_duration_ms = event.duration_ms
        interaction.scroll_depth_percent = event.scroll_depth_percent
        return await self.interaction_repository.record(interaction)

    async def _ensure_indexed(self, book_isbn: str, book: Book) -> None:
        existing = await self.book_index_repository.get_by_isbn(book_isbn)
        if existing is None:
            entry = BookIndexEntry.from_book(book)
            entry.isbn_13 = book_isbn
            if await self.book_index_repository.insert_if_absent(entry):
                logger.debug("Indexed new book %s", book_isbn)

    @staticmethod
    def _snapshot(
        user_id: str,
        book_isbn: str,
        book: Book,
        *,
        interaction_type: str,
        signal_strength: float,
        session_id: Optional[str],
        position_in_results: Optional[int],
        discovery_context: Optional[dict],
    ) -> Interaction:
        return Interaction(
            id=uuid4(),
            user_id=user_id,
            book_isbn=book_isbn,
            interaction_type=interaction_type,
            signal_strength=signal_strength,
            session_id=session_id,
            book_title=book.title,
            book_author=book.primary_author,
            book_genre=book.genre,
            book_categories=list(book.categories) if book.categories else None,
            position_in_results=position_in_results,
            discovery_context=discovery_context,
        )
