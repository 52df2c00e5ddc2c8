"""Celery task wrappers for tracking background work.

Each task is a thin synchronous wrapper around an async coroutine in
``pagewise.services.background_tasks``.

Retry policy:
  - max_retries=3   up to 3 additional attempts when the store is unreachable
  - countdown=30    wait 30 s before each retry
A batch the boundary would reject (empty, unknown user, not Smart mode) is
never retried.
"""

import asyncio
import logging

from pagewise.infrastructure.tasks.celery_app import celery_app
from pagewise.services.background_tasks import log_viewport_batch_task

logger = logging.getLogger(__name__)


@celery_app.task(bind=True, name="tracking.log_viewport_batch", max_retries=3)
def log_viewport_batch(self, user_id: str, session_id: str, mode: str, events: list[dict]) -> dict:
    """Celery task: log one batch of passive viewport events."""
    try:
        return asyncio.run(log_viewport_batch_task(user_id, session_id, mode, events))
    except (ValueError, LookupError, PermissionError) as exc:
        logger.error("log_viewport_batch rejected for user %s: %s", user_id, exc)
        return {"processed": 0, "failed": len(events), "total": len(events), "error": str(exc)}
    except Exception as exc:
        logger.warning(
            "log_viewport_batch failed (attempt %d/%d): %s",
            self.request.retries + 1,
            self.max_retries + 1,
            exc,
        )
        raise self.retry(exc=exc, countdown=30)
