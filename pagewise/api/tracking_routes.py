"""Interaction tracking API routes.

  POST /track-interaction      explicit action on a result card (201)
  POST /track-viewport-batch   passive viewport events, queued to Celery (202)
"""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from pagewise.api.schemas import (
    InteractionCreateRequest,
    InteractionResponse,
    QueuedBatchResponse,
    ViewportBatchRequest,
)
from pagewise.core.dependencies import get_tracking_service
from pagewise.domain.services import ITrackingService
from pagewise.infrastructure.tasks.tracking_tasks import log_viewport_batch

logger = logging.getLogger(__name__)
router = APIRouter(tags=["tracking"])


@router.post(
    "/track-interaction",
    response_model=InteractionResponse,
    status_code=status.HTTP_201_CREATED,
)
async def track_interaction(
    request: InteractionCreateRequest,
    tracking_service: Annotated[ITrackingService, Depends(get_tracking_service)],
) -> InteractionResponse:
    """Record ``add_to_list``, ``show_more_like``, ``hide_similar`` or ``clicked``."""
    try:
        interaction = await tracking_service.record_interaction(
            request.user_id,
            request.book_isbn,
            request.action,
            request.book.to_entity(),
            position_in_results=request.position_in_results,
            session_id=request.session_id,
            discovery_context=request.discovery_context,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return InteractionResponse.model_validate(interaction)


@router.post(
    "/track-viewport-batch",
    response_model=QueuedBatchResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
async def track_viewport_batch(
    request: ViewportBatchRequest,
    tracking_service: Annotated[ITrackingService, Depends(get_tracking_service)],
) -> QueuedBatchResponse:
    """Validate a viewport batch and hand it to a Celery worker.

    Poll ``GET /tasks/{task_id}`` for the processed / failed counts.
    """
    events = [event.to_entity() for event in request.events]
    try:
        await tracking_service.validate_viewport_batch(request.user_id, request.mode, events)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except LookupError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))
    except PermissionError as e:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(e))

    task = log_viewport_batch.delay(
        request.user_id,
        request.session_id,
        request.mode,
        [event.model_dump() for event in request.events],
    )
    logger.info(
        "Queued viewport batch of %d events for user %s (task %s)",
        len(events),
        request.user_id,
        task.id,
    )
    return QueuedBatchResponse(task_id=task.id, queued=len(events))
