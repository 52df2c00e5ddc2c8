"""Async implementations of tracking background work.

These coroutines hold the logic executed by Celery workers.  Each one opens
its own DB sessions (independent of any request lifecycle) and needs no
FastAPI DI.

The Celery wrappers in ``pagewise.infrastructure.tasks.tracking_tasks`` call
these with ``asyncio.run()``, which is safe because each worker process runs
its own event loop.
"""

import logging

from pagewise.api.schemas import ViewportEventRequest
from pagewise.infrastructure.database.connection import worker_session_maker
from pagewise.infrastructure.database.repository import (
    SessionPerCallBookIndexRepository,
    SessionPerCallInteractionRepository,
    UserProfileRepository,
)
from pagewise.services.tracking_service import TrackingService

logger = logging.getLogger(__name__)


async def log_viewport_batch_task(
    user_id: str, session_id: str, mode: str, raw_events: list[dict]
) -> dict:
    """Log one viewport batch and return ``{processed, failed, total}``.

    Events are written concurrently, so every write gets its own session.
    """
    events = [ViewportEventRequest.model_validate(raw).to_entity() for raw in raw_events]
    logger.info("BG-TASK: logging %d viewport events for user %s", len(events), user_id)

    async with worker_session_maker() as session:
        service = TrackingService(
            interaction_repository=SessionPerCallInteractionRepository(worker_session_maker),
            book_index_repository=SessionPerCallBookIndexRepository(worker_session_maker),
            user_profile_repository=UserProfileRepository(session),
        )
        batch = await service.record_viewport_batch(user_id, session_id, mode, events)

    if batch.failed:
        logger.warning(
            "BG-TASK: %d of %d viewport events failed for user %s",
            batch.failed,
            batch.total,
            user_id,
        )
    return {"processed": batch.processed, "failed": batch.failed, "total": batch.total}
