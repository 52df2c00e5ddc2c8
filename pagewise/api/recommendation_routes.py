"""Recommendation API routes."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from pagewise.api.schemas import BookResponse, RecommendRequest, RecommendResponse
from pagewise.core.dependencies import get_recommendation_service
from pagewise.domain.repositories import IRecommendationService

logger = logging.getLogger(__name__)
router = APIRouter(tags=["recommendations"])


@router.post("/recommend", response_model=RecommendResponse)
async def recommend(
    request: RecommendRequest,
    recommendation_service: Annotated[IRecommendationService, Depends(get_recommendation_service)],
) -> RecommendResponse:
    """Answer a natural-language reading request.

    ``fresh`` runs a stop-word keyword search and stores nothing.  ``smart``
    uses AI keyword extraction, ranks candidates by embedding similarity and,
    when ``user_id`` has interaction history, re-ranks them against the
    user's preference profile.  Provider outages degrade the result rather
    than fail the request.
    """
    try:
        result = await recommendation_service.recommend(
            request.prompt, request.mode, user_id=request.user_id
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return RecommendResponse(
        books=[BookResponse.from_entity(book) for book in result.books],
        prompt_vector_available=result.prompt_vector_available,
        themes_used=result.themes_used,
    )
