"""Database-backed store for users, submissions and per-lesson progress."""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Callable, List, Optional, Sequence, TypeVar

from sqlalchemy import func, select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker

from ..db.models import LessonModel, LessonProgressModel, SubmissionModel, UserModel
from ..db.session import session_scope
from ..errors import TransactionConflictError
from ..grading import round_half_up
from ..lessons import LessonProgress
from ..progress import GradedAnswer, ProfileSummary, SubmissionRecord, UserProgress
from ..submission_result import SubmissionResult
from .lesson_catalog import progress_to_domain

logger = logging.getLogger(__name__)

T = TypeVar("T")

# SQLSTATE codes for serialization failure and deadlock.
_CONFLICT_SQLSTATES = {"40001", "40P01"}


def is_transaction_conflict(exc: DBAPIError) -> bool:
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code in _CONFLICT_SQLSTATES:
        return True
    return "database is locked" in str(orig).lower()


class ProgressStore:
    """Persistence boundary for the submission processor and the pattern analyzer.

    Record-level methods take the active ``Session`` so that several of them can run
    inside one ``run_atomic`` unit of work.
    """

    def __init__(self, session_factory: Optional[sessionmaker[Session]] = None) -> None:
        self._session_factory = session_factory

    # ------------------------------------------------------------------
    # Units of work
    # ------------------------------------------------------------------

    def run_atomic(self, fn: Callable[[Session], T]) -> T:
        """Run ``fn`` in one transaction; commit on success, roll back everything on error."""
        try:
            with session_scope(self._session_factory) as session:
                return fn(session)
        except DBAPIError as exc:
            if is_transaction_conflict(exc):
                raise TransactionConflictError(f"Transaction aborted by the database: {exc.orig}") from exc
            raise

    def run_readonly(self, fn: Callable[[Session], T]) -> T:
        with session_scope(self._session_factory, commit=False) as session:
            return fn(session)

    # ------------------------------------------------------------------
    # Users
    # ------------------------------------------------------------------

    def get_user(self, session: Session, user_id: str, *, for_update: bool = False) -> UserProgress | None:
        model = self._get_user_model(session, user_id, for_update=for_update)
        return self._user_to_domain(model) if model is not None else None

    def create_user(
        self,
        session: Session,
        username: str,
        *,
        user_id: Optional[str] = None,
        email: Optional[str] = None,
        display_name: Optional[str] = None,
    ) -> UserProgress:
        normalized = username.strip().lower()
        if not normalized:
            raise ValueError("Username cannot be empty.")
        model = UserModel(username=normalized, email=email, display_name=display_name)
        if user_id:
            model.id = user_id
        session.add(model)
        session.flush()
        logger.info("Created user %s (%s)", model.id, normalized)
        return self._user_to_domain(model)

    def update_user(self, session: Session, progress: UserProgress) -> UserProgress:
        model = self._get_user_model(session, progress.user_id)
        if model is None:
            raise LookupError(f"User '{progress.user_id}' does not exist.")
        model.total_xp = progress.total_xp
        model.current_streak = progress.current_streak
        model.best_streak = progress.best_streak
        model.last_activity_date = progress.last_activity_date
        session.flush()
        return self._user_to_domain(model)

    # ------------------------------------------------------------------
    # Submissions
    # ------------------------------------------------------------------

    def find_submission(
        self,
        session: Session,
        user_id: str,
        lesson_id: str,
        attempt_id: str,
    ) -> SubmissionRecord | None:
        stmt = select(SubmissionModel).where(
            SubmissionModel.user_id == user_id,
            SubmissionModel.lesson_id == lesson_id,
            SubmissionModel.attempt_id == attempt_id,
        )
        model = session.execute(stmt).scalar_one_or_none()
        return self._submission_to_domain(model) if model is not None else None

    def create_submission(
        self,
        session: Session,
        *,
        user_id: str,
        lesson_id: str,
        attempt_id: str,
        answers: Sequence[GradedAnswer],
        xp_earned: int,
        result: SubmissionResult,
        created_at: datetime,
        time_spent_seconds: Optional[int] = None,
    ) -> SubmissionRecord:
        """Insert the immutable submission row and flush it so uniqueness is checked now."""
        model = SubmissionModel(
            user_id=user_id,
            lesson_id=lesson_id,
            attempt_id=attempt_id,
            answers=[answer.model_dump(mode="json") for answer in answers],
            is_correct=all(answer.is_correct for answer in answers),
            xp_earned=xp_earned,
            time_spent_seconds=time_spent_seconds,
            result=result.model_dump(mode="json"),
            created_at=created_at,
        )
        session.add(model)
        session.flush()
        return self._submission_to_domain(model)

    def list_submissions(self, session: Session, user_id: str) -> List[SubmissionRecord]:
        """Full submission history of a user, oldest first."""
        stmt = (
            select(SubmissionModel)
            .where(SubmissionModel.user_id == user_id)
            .order_by(SubmissionModel.created_at.asc(), SubmissionModel.id.asc())
        )
        return [self._submission_to_domain(row) for row in session.execute(stmt).scalars()]

    # ------------------------------------------------------------------
    # Lesson progress
    # ------------------------------------------------------------------

    def get_lesson_progress(self, session: Session, user_id: str, lesson_id: str) -> LessonProgress | None:
        model = self._get_progress_model(session, user_id, lesson_id)
        return progress_to_domain(model) if model is not None else None

    def upsert_lesson_progress(
        self,
        session: Session,
        *,
        user_id: str,
        lesson_id: str,
        score: int,
        completed: bool,
        xp_earned: int,
        attempted_at: datetime,
    ) -> LessonProgress:
        model = self._get_progress_model(session, user_id, lesson_id)
        if model is None:
            model = LessonProgressModel(
                user_id=user_id,
                lesson_id=lesson_id,
                is_completed=False,
                score=0,
                best_score=0,
                attempts_count=0,
                total_xp_earned=0,
                started_at=attempted_at,
            )
            session.add(model)

        # Completion is one-way; a later imperfect attempt never clears it.
        if completed and not model.is_completed:
            model.is_completed = True
            model.completion_date = attempted_at
        model.score = score
        model.best_score = max(model.best_score or 0, score)
        model.attempts_count = (model.attempts_count or 0) + 1
        model.total_xp_earned = (model.total_xp_earned or 0) + xp_earned
        model.last_attempt_at = attempted_at
        session.flush()
        return progress_to_domain(model)

    def list_lesson_progress(self, session: Session, user_id: str) -> List[LessonProgress]:
        stmt = (
            select(LessonProgressModel)
            .where(LessonProgressModel.user_id == user_id)
            .order_by(LessonProgressModel.started_at.asc())
        )
        return [progress_to_domain(row) for row in session.execute(stmt).scalars()]

    def profile_summary(self, session: Session, user_id: str) -> ProfileSummary | None:
        user = self._get_user_model(session, user_id)
        if user is None:
            return None
        completed = session.execute(
            select(func.count())
            .select_from(LessonProgressModel)
            .where(LessonProgressModel.user_id == user_id, LessonProgressModel.is_completed.is_(True))
        ).scalar_one()
        total = session.execute(
            select(func.count()).select_from(LessonModel).where(LessonModel.is_active.is_(True))
        ).scalar_one()
        percentage = round_half_up(completed / total * 100) if total else 0
        return ProfileSummary(
            user_id=user.id,
            username=user.username,
            display_name=user.display_name,
            total_xp=user.total_xp,
            current_streak=user.current_streak,
            best_streak=user.best_streak,
            last_activity_date=user.last_activity_date,
            completed_lessons=int(completed),
            total_lessons=int(total),
            progress_percentage=min(100, percentage),
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_user_model(self, session: Session, user_id: str, *, for_update: bool = False) -> UserModel | None:
        stmt = select(UserModel).where(UserModel.id == user_id)
        if for_update:
            stmt = stmt.with_for_update()
        return session.execute(stmt).scalar_one_or_none()

    def _get_progress_model(self, session: Session, user_id: str, lesson_id: str) -> LessonProgressModel | None:
        stmt = select(LessonProgressModel).where(
            LessonProgressModel.user_id == user_id,
            LessonProgressModel.lesson_id == lesson_id,
        )
        return session.execute(stmt).scalar_one_or_none()

    def _user_to_domain(self, model: UserModel) -> UserProgress:
        return UserProgress(
            user_id=model.id,
            username=model.username,
            display_name=model.display_name,
            total_xp=model.total_xp,
            current_streak=model.current_streak,
            best_streak=model.best_streak,
            last_activity_date=model.last_activity_date,
        )

    def _submission_to_domain(self, model: SubmissionModel) -> SubmissionRecord:
        return SubmissionRecord(
            submission_id=model.id,
            user_id=model.user_id,
            lesson_id=model.lesson_id,
            attempt_id=model.attempt_id,
            answers=[GradedAnswer.model_validate(payload) for payload in model.answers or []],
            is_correct=model.is_correct,
            xp_earned=model.xp_earned,
            time_spent_seconds=model.time_spent_seconds,
            created_at=model.created_at,
            result=SubmissionResult.model_validate(model.result),
        )


__all__ = ["ProgressStore", "is_transaction_conflict"]
