"""Domain-level application service interfaces (ports).

Route handlers depend on these abstractions only; concrete implementations
live in ``pagewise/services/`` and are wired by the composition root in
``pagewise/core/dependencies.py``.  Every service can be swapped for a test
double via FastAPI's ``app.dependency_overrides``.
"""

from abc import ABC, abstractmethod
from typing import Optional

from pagewise.domain.entities import BatchResult, Book, Interaction, ViewportEvent


class ITrackingService(ABC):

    @abstractmethod
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
        """Record an explicit action (add_to_list, show_more_like, hide_similar, clicked).

        Raises ``ValueError`` for an unknown action.
        """
        pass

    @abstractmethod
    async def validate_viewport_batch(
        self, user_id: str, mode: str, events: list[ViewportEvent]
    ) -> None:
        """Raise ``ValueError`` / ``LookupError`` / ``PermissionError`` for a batch that must not be logged."""
        pass

    @abstractmethod
    async def record_viewport_batch(
        self,
        user_id: str,
        session_id: str,
        mode: str,
        events: list[ViewportEvent],
    ) -> BatchResult:
        """Log a batch of passive viewport events, one independent write per event.

        Raises ``ValueError`` for an empty batch, ``LookupError`` for an
        unknown user and ``PermissionError`` outside Smart mode.
        """
        pass
