"""Adaptive learning path endpoint."""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from .api_models import ApiResponse, respond
from .dependencies import get_recommendation_service
from .errors import UserNotFoundError
from .recommendations import MAX_LIMIT, MIN_LIMIT, AdaptiveLearningPath, RecommendationService


router = APIRouter(prefix="/api/recommendations", tags=["recommendations"])


@router.get("", response_model=ApiResponse[AdaptiveLearningPath], status_code=status.HTTP_200_OK)
def get_recommendations(
    user_id: str = Query(..., min_length=1),
    limit: Optional[int] = Query(
        default=None,
        ge=MIN_LIMIT,
        le=MAX_LIMIT,
        description="Number of lessons to return. Defaults to the configured limit.",
    ),
    service: RecommendationService = Depends(get_recommendation_service),
) -> ApiResponse[AdaptiveLearningPath]:
    try:
        path = service.generate(user_id, limit)
    except UserNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return respond(path, "Recommendations generated successfully")


__all__ = ["router"]
