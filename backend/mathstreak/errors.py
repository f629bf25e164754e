"""Exception taxonomy for the submission and recommendation engine."""

from __future__ import annotations

from typing import Optional


class InvalidSubmissionError(ValueError):
    """Client supplied an answer set that does not match the lesson."""

    def __init__(self, message: str, *, lesson_id: str, problem_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.lesson_id = lesson_id
        self.problem_id = problem_id


class MissingAnswerError(InvalidSubmissionError):
    def __init__(self, lesson_id: str, problem_id: str) -> None:
        super().__init__(
            f"Answer required for problem: {problem_id}",
            lesson_id=lesson_id,
            problem_id=problem_id,
        )


class DuplicateAnswerError(InvalidSubmissionError):
    def __init__(self, lesson_id: str, problem_id: str) -> None:
        super().__init__(
            f"Problem {problem_id} was answered more than once.",
            lesson_id=lesson_id,
            problem_id=problem_id,
        )


class UnknownProblemError(InvalidSubmissionError):
    def __init__(self, lesson_id: str, problem_id: str) -> None:
        super().__init__(
            f"Problem {problem_id} does not belong to lesson {lesson_id}.",
            lesson_id=lesson_id,
            problem_id=problem_id,
        )


class UserNotFoundError(LookupError):
    def __init__(self, user_id: str) -> None:
        super().__init__(f"User '{user_id}' was not found.")
        self.user_id = user_id


class LessonNotFoundError(LookupError):
    def __init__(self, lesson_id: str) -> None:
        super().__init__(f"Lesson '{lesson_id}' was not found.")
        self.lesson_id = lesson_id


class TransactionConflictError(RuntimeError):
    """The database aborted the unit of work; the caller may retry it."""


__all__ = [
    "DuplicateAnswerError",
    "InvalidSubmissionError",
    "LessonNotFoundError",
    "MissingAnswerError",
    "TransactionConflictError",
    "UnknownProblemError",
    "UserNotFoundError",
]
