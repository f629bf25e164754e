"""Result models returned to clients after a lesson attempt."""

from __future__ import annotations

from datetime import datetime
from typing import List

from pydantic import BaseModel, Field


class ProblemResult(BaseModel):
    problem_id: str
    user_answer: str
    is_correct: bool
    correct_answer: str = ""
    explanation: str = ""
    xp_earned: int = Field(default=0, ge=0)


class StreakSummary(BaseModel):
    current: int = Field(ge=0)
    best: int = Field(ge=0)
    updated: bool


class SubmissionResult(BaseModel):
    attempt_id: str
    user_id: str
    lesson_id: str
    xp_earned: int = Field(ge=0)
    total_xp: int = Field(ge=0)
    streak: StreakSummary
    lesson_completed: bool
    score: int = Field(ge=0, le=100)
    best_score: int = Field(ge=0, le=100)
    results: List[ProblemResult] = Field(default_factory=list)
    submitted_at: datetime


__all__ = ["ProblemResult", "StreakSummary", "SubmissionResult"]
