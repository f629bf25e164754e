"""Lesson catalog domain models."""

from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, Field

Difficulty = Literal["easy", "medium", "hard"]
ProblemType = Literal["multiple_choice", "input"]

DIFFICULTY_TIERS: tuple[Difficulty, ...] = ("easy", "medium", "hard")


class ProblemOption(BaseModel):
    option_id: str
    option_text: str
    order: int
    # None when the answer key was withheld from the caller.
    is_correct: Optional[bool] = None


class Problem(BaseModel):
    problem_id: str
    lesson_id: str
    question: str
    problem_type: ProblemType
    order: int
    difficulty: Difficulty = "easy"
    correct_answer: Optional[str] = None
    explanation: Optional[str] = None
    options: List[ProblemOption] = Field(default_factory=list)


class LessonProgress(BaseModel):
    is_completed: bool = False
    score: float = Field(default=0, ge=0, le=100)
    best_score: float = Field(default=0, ge=0, le=100)
    attempts_count: int = Field(default=0, ge=0)
    total_xp_earned: int = Field(default=0, ge=0)
    completion_date: Optional[datetime] = None
    last_attempt_at: Optional[datetime] = None


class Lesson(BaseModel):
    lesson_id: str
    title: str
    description: Optional[str] = None
    order: int = Field(ge=1)
    xp_reward: int = Field(default=10, ge=0)
    is_active: bool = True
    problems: List[Problem] = Field(default_factory=list)
    progress: Optional[LessonProgress] = None


def lesson_difficulty(order: int) -> Difficulty:
    """Coarse difficulty tier of a lesson derived from its position in the sequence."""
    if order <= 2:
        return "easy"
    if order <= 4:
        return "medium"
    return "hard"


__all__ = [
    "DIFFICULTY_TIERS",
    "Difficulty",
    "Lesson",
    "LessonProgress",
    "Problem",
    "ProblemOption",
    "ProblemType",
    "lesson_difficulty",
]
