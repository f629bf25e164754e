"""Lesson catalog and submission REST endpoints."""

from __future__ import annotations

import logging
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from .api_models import ApiResponse, respond
from .dependencies import get_progress_store, get_submission_processor
from .errors import InvalidSubmissionError, TransactionConflictError
from .lessons import Lesson
from .progress import SubmittedAnswer
from .repositories.lesson_catalog import lesson_catalog
from .repositories.progress_store import ProgressStore
from .submission_processor import SubmissionProcessor
from .submission_result import SubmissionResult


router = APIRouter(prefix="/api/lessons", tags=["lessons"])
logger = logging.getLogger(__name__)

RETRY_AFTER_SECONDS = "1"


class SubmitLessonRequest(BaseModel):
    user_id: str = Field(..., min_length=1)
    attempt_id: str = Field(..., min_length=1, max_length=128)
    answers: List[SubmittedAnswer] = Field(default_factory=list)
    time_spent_seconds: Optional[int] = Field(default=None, ge=0)


@router.get("", response_model=ApiResponse[List[Lesson]], status_code=status.HTTP_200_OK)
def list_lessons(
    user_id: Optional[str] = Query(default=None, description="Annotate lessons with this user's progress."),
    store: ProgressStore = Depends(get_progress_store),
) -> ApiResponse[List[Lesson]]:
    lessons = store.run_readonly(lambda session: lesson_catalog.list_lessons(session, user_id))
    return respond(lessons, "Lessons retrieved successfully")


@router.get("/{lesson_id}", response_model=ApiResponse[Lesson], status_code=status.HTTP_200_OK)
def get_lesson(lesson_id: str, store: ProgressStore = Depends(get_progress_store)) -> ApiResponse[Lesson]:
    lesson = store.run_readonly(lambda session: lesson_catalog.get_lesson_with_problems(session, lesson_id))
    if lesson is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Lesson '{lesson_id}' was not found.",
        )
    return respond(lesson, "Lesson retrieved successfully")


@router.post(
    "/{lesson_id}/submit",
    response_model=ApiResponse[SubmissionResult],
    status_code=status.HTTP_200_OK,
)
def submit_lesson(
    lesson_id: str,
    payload: SubmitLessonRequest,
    processor: SubmissionProcessor = Depends(get_submission_processor),
) -> ApiResponse[SubmissionResult]:
    try:
        result = processor.submit(
            payload.user_id,
            lesson_id,
            payload.attempt_id,
            payload.answers,
            time_spent_seconds=payload.time_spent_seconds,
        )
    except InvalidSubmissionError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except TransactionConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="The submission could not be recorded because of a concurrent update. Retry shortly.",
            headers={"Retry-After": RETRY_AFTER_SECONDS},
        ) from exc
    return respond(result, "Lesson submitted successfully")


__all__ = ["SubmitLessonRequest", "router"]
