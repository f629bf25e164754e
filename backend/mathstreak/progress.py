"""Learner progress domain models: XP aggregate, submissions, answers."""

from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .lessons import Difficulty
from .submission_result import SubmissionResult


class UserProgress(BaseModel):
    user_id: str
    username: str
    display_name: Optional[str] = None
    total_xp: int = Field(default=0, ge=0)
    current_streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    last_activity_date: Optional[datetime] = None


class SubmittedAnswer(BaseModel):
    problem_id: str = Field(..., min_length=1)
    answer: str


class GradedAnswer(BaseModel):
    problem_id: str
    answer: str
    is_correct: bool
    xp_earned: int = Field(default=0, ge=0)
    difficulty: Difficulty = "easy"


class SubmissionRecord(BaseModel):
    submission_id: str
    user_id: str
    lesson_id: str
    attempt_id: str
    answers: List[GradedAnswer] = Field(default_factory=list)
    is_correct: bool
    xp_earned: int = Field(default=0, ge=0)
    time_spent_seconds: Optional[int] = Field(default=None, ge=0)
    created_at: datetime
    result: SubmissionResult


class ProfileSummary(BaseModel):
    user_id: str
    username: str
    display_name: Optional[str] = None
    total_xp: int
    current_streak: int
    best_streak: int
    last_activity_date: Optional[datetime] = None
    completed_lessons: int
    total_lessons: int
    progress_percentage: int = Field(ge=0, le=100)


__all__ = [
    "GradedAnswer",
    "ProfileSummary",
    "SubmissionRecord",
    "SubmittedAnswer",
    "UserProgress",
]
