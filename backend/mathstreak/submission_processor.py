"""Idempotent, atomic processing of lesson attempts into XP, streak and progress state."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from typing import Callable, List, Optional, Sequence, Tuple

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from .config import get_settings
from .errors import (
    DuplicateAnswerError,
    InvalidSubmissionError,
    LessonNotFoundError,
    MissingAnswerError,
    TransactionConflictError,
    UnknownProblemError,
    UserNotFoundError,
)
from .grading import grade_answer, round_half_up
from .lessons import Lesson, Problem
from .progress import GradedAnswer, SubmissionRecord, SubmittedAnswer
from .repositories.lesson_catalog import LessonCatalog, lesson_catalog
from .repositories.progress_store import ProgressStore
from .streaks import calculate_streak, resolve_timezone
from .submission_result import ProblemResult, StreakSummary, SubmissionResult
from .telemetry import emit_event

logger = logging.getLogger(__name__)


Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class _Attempt:
    user_id: str
    lesson: Lesson
    attempt_id: str
    pairs: Tuple[Tuple[Problem, SubmittedAnswer], ...]
    submitted_at: datetime
    time_spent_seconds: Optional[int]


class SubmissionProcessor:
    """Turns one lesson attempt into a stored submission exactly once."""

    def __init__(
        self,
        store: ProgressStore,
        catalog: LessonCatalog,
        *,
        clock: Optional[Clock] = None,
        streak_timezone: Optional[tzinfo] = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._clock = clock or _utcnow
        self._tz = streak_timezone or timezone.utc

    def submit(
        self,
        user_id: str,
        lesson_id: str,
        attempt_id: str,
        answers: Sequence[SubmittedAnswer],
        *,
        time_spent_seconds: Optional[int] = None,
    ) -> SubmissionResult:
        try:
            existing = self._find(user_id, lesson_id, attempt_id)
            if existing is not None:
                return self._replay(existing)

            lesson = self._store.run_readonly(
                lambda session: self._catalog.get_lesson_with_problems(
                    session, lesson_id, include_answer_key=True
                )
            )
            if lesson is None:
                raise LessonNotFoundError(lesson_id)

            attempt = _Attempt(
                user_id=user_id,
                lesson=lesson,
                attempt_id=attempt_id,
                pairs=tuple(self._match_answers(lesson, answers)),
                submitted_at=self._clock(),
                time_spent_seconds=time_spent_seconds,
            )
            try:
                result, existing = self._store.run_atomic(
                    lambda session: self._apply_attempt(session, attempt)
                )
            except (IntegrityError, TransactionConflictError):
                # A concurrent request with the same key committed first. Serializable
                # isolation reports that as a serialization failure, not a unique violation.
                winner = self._find(user_id, lesson_id, attempt_id)
                if winner is None:
                    raise
                return self._replay(winner)
        except (InvalidSubmissionError, LookupError) as exc:
            logger.warning(
                "Rejected submission user=%s lesson=%s attempt=%s: %s",
                user_id,
                lesson_id,
                attempt_id,
                exc,
            )
            raise
        except Exception:  # noqa: BLE001
            logger.exception(
                "Failed to process submission user=%s lesson=%s attempt=%s",
                user_id,
                lesson_id,
                attempt_id,
            )
            raise

        if existing is not None:
            return self._replay(existing)

        logger.info(
            "Submission processed user=%s lesson=%s attempt=%s xp=%d streak=%d score=%d",
            user_id,
            lesson_id,
            attempt_id,
            result.xp_earned,
            result.streak.current,
            result.score,
        )
        emit_event(
            "lesson_submission_recorded",
            user_id=user_id,
            lesson_id=lesson_id,
            attempt_id=attempt_id,
            xp_earned=result.xp_earned,
            score=result.score,
            lesson_completed=result.lesson_completed,
            streak=result.streak.current,
            streak_updated=result.streak.updated,
        )
        return result

    # ------------------------------------------------------------------
    # Unit of work
    # ------------------------------------------------------------------

    def _apply_attempt(
        self, session: Session, attempt: _Attempt
    ) -> Tuple[SubmissionResult, Optional[SubmissionRecord]]:
        lesson_id = attempt.lesson.lesson_id
        existing = self._store.find_submission(session, attempt.user_id, lesson_id, attempt.attempt_id)
        if existing is not None:
            return existing.result, existing

        user = self._store.get_user(session, attempt.user_id, for_update=True)
        if user is None:
            raise UserNotFoundError(attempt.user_id)

        graded: List[GradedAnswer] = []
        results: List[ProblemResult] = []
        for problem, submitted in attempt.pairs:
            grade = grade_answer(problem, submitted.answer)
            graded.append(
                GradedAnswer(
                    problem_id=problem.problem_id,
                    answer=submitted.answer,
                    is_correct=grade.is_correct,
                    xp_earned=grade.xp_earned,
                    difficulty=problem.difficulty,
                )
            )
            results.append(
                ProblemResult(
                    problem_id=problem.problem_id,
                    user_answer=submitted.answer,
                    is_correct=grade.is_correct,
                    correct_answer=grade.canonical_answer,
                    explanation=problem.explanation or "",
                    xp_earned=grade.xp_earned,
                )
            )

        xp_earned = sum(answer.xp_earned for answer in graded)
        correct_count = sum(1 for answer in graded if answer.is_correct)
        score = round_half_up(correct_count / len(graded) * 100)
        completed = correct_count == len(graded)

        streak = calculate_streak(
            user.current_streak,
            user.best_streak,
            user.last_activity_date,
            attempt.submitted_at,
            self._tz,
        )
        previous = self._store.get_lesson_progress(session, attempt.user_id, lesson_id)
        best_score = max(round_half_up(previous.best_score), score) if previous else score

        result = SubmissionResult(
            attempt_id=attempt.attempt_id,
            user_id=attempt.user_id,
            lesson_id=lesson_id,
            xp_earned=xp_earned,
            total_xp=user.total_xp + xp_earned,
            streak=StreakSummary(current=streak.current, best=streak.best, updated=streak.updated),
            lesson_completed=completed,
            score=score,
            best_score=best_score,
            results=results,
            submitted_at=attempt.submitted_at,
        )

        # The insert goes first so the unique attempt key arbitrates concurrent duplicates.
        self._store.create_submission(
            session,
            user_id=attempt.user_id,
            lesson_id=lesson_id,
            attempt_id=attempt.attempt_id,
            answers=graded,
            xp_earned=xp_earned,
            result=result,
            created_at=attempt.submitted_at,
            time_spent_seconds=attempt.time_spent_seconds,
        )
        self._store.update_user(
            session,
            user.model_copy(
                update={
                    "total_xp": result.total_xp,
                    "current_streak": streak.current,
                    "best_streak": streak.best,
                    "last_activity_date": attempt.submitted_at,
                }
            ),
        )
        self._store.upsert_lesson_progress(
            session,
            user_id=attempt.user_id,
            lesson_id=lesson_id,
            score=score,
            completed=completed,
            xp_earned=xp_earned,
            attempted_at=attempt.submitted_at,
        )
        return result, None

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _find(self, user_id: str, lesson_id: str, attempt_id: str) -> SubmissionRecord | None:
        return self._store.run_readonly(
            lambda session: self._store.find_submission(session, user_id, lesson_id, attempt_id)
        )

    def _replay(self, existing: SubmissionRecord) -> SubmissionResult:
        logger.info(
            "Returning existing submission (idempotent) user=%s lesson=%s attempt=%s",
            existing.user_id,
            existing.lesson_id,
            existing.attempt_id,
        )
        emit_event(
            "lesson_submission_replayed",
            user_id=existing.user_id,
            lesson_id=existing.lesson_id,
            attempt_id=existing.attempt_id,
        )
        return existing.result

    def _match_answers(
        self,
        lesson: Lesson,
        answers: Sequence[SubmittedAnswer],
    ) -> List[Tuple[Problem, SubmittedAnswer]]:
        if not lesson.problems:
            raise InvalidSubmissionError(
                f"Lesson {lesson.lesson_id} has no problems to answer.",
                lesson_id=lesson.lesson_id,
            )
        problems = {problem.problem_id: problem for problem in lesson.problems}
        answered = {answer.problem_id for answer in answers}
        for problem in lesson.problems:
            if problem.problem_id not in answered:
                raise MissingAnswerError(lesson.lesson_id, problem.problem_id)

        pairs: List[Tuple[Problem, SubmittedAnswer]] = []
        seen: set[str] = set()
        for answer in answers:
            problem = problems.get(answer.problem_id)
            if problem is None:
                raise UnknownProblemError(lesson.lesson_id, answer.problem_id)
            if answer.problem_id in seen:
                raise DuplicateAnswerError(lesson.lesson_id, answer.problem_id)
            seen.add(answer.problem_id)
            pairs.append((problem, answer))
        return pairs


def build_submission_processor(
    session_factory: Optional[sessionmaker[Session]] = None,
    *,
    clock: Optional[Clock] = None,
) -> SubmissionProcessor:
    settings = get_settings()
    return SubmissionProcessor(
        ProgressStore(session_factory),
        lesson_catalog,
        clock=clock,
        streak_timezone=resolve_timezone(settings.streak_timezone),
    )


__all__ = ["Clock", "SubmissionProcessor", "build_submission_processor"]
