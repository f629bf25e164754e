"""Answer grading for lesson problems."""

from __future__ import annotations

import math
from dataclasses import dataclass

from .lessons import Problem

XP_PER_CORRECT_ANSWER = 10


@dataclass(frozen=True)
class AnswerGrade:
    is_correct: bool
    xp_earned: int
    canonical_answer: str


def round_half_up(value: float) -> int:
    """Round .5 away from zero for the non-negative values used in scoring (12.5 -> 13)."""
    return int(math.floor(value + 0.5))


def canonical_answer(problem: Problem) -> str:
    if problem.problem_type == "multiple_choice":
        correct = next((option for option in problem.options if option.is_correct), None)
        return correct.option_text if correct else ""
    return problem.correct_answer or ""


def _normalize_free_input(value: str) -> str:
    return value.strip().lower()


def is_answer_correct(problem: Problem, answer: str) -> bool:
    if problem.problem_type == "multiple_choice":
        correct = next((option for option in problem.options if option.is_correct), None)
        if correct is None:
            return False
        return answer == correct.option_text
    if problem.problem_type == "input":
        if problem.correct_answer is None:
            return False
        return _normalize_free_input(answer) == _normalize_free_input(problem.correct_answer)
    return False


def grade_answer(problem: Problem, answer: str) -> AnswerGrade:
    correct = is_answer_correct(problem, answer)
    return AnswerGrade(
        is_correct=correct,
        xp_earned=XP_PER_CORRECT_ANSWER if correct else 0,
        canonical_answer=canonical_answer(problem),
    )


__all__ = [
    "AnswerGrade",
    "XP_PER_CORRECT_ANSWER",
    "canonical_answer",
    "grade_answer",
    "is_answer_correct",
    "round_half_up",
]
