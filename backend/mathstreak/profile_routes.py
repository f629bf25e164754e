"""Learner profile statistics endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from .api_models import ApiResponse, respond
from .dependencies import get_progress_store
from .progress import ProfileSummary
from .repositories.progress_store import ProgressStore


router = APIRouter(prefix="/api/profile", tags=["profile"])


@router.get("/{user_id}", response_model=ApiResponse[ProfileSummary], status_code=status.HTTP_200_OK)
def get_profile(user_id: str, store: ProgressStore = Depends(get_progress_store)) -> ApiResponse[ProfileSummary]:
    summary = store.run_readonly(lambda session: store.profile_summary(session, user_id))
    if summary is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"User '{user_id}' was not found.",
        )
    return respond(summary, "Profile retrieved successfully")


__all__ = ["router"]
