"""Database-backed lesson catalog."""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from sqlalchemy import func, select
from sqlalchemy.orm import Session, selectinload

from ..db.models import LessonModel, LessonProgressModel, ProblemModel, ProblemOptionModel
from ..lessons import Lesson, LessonProgress, Problem, ProblemOption

logger = logging.getLogger(__name__)


class LessonCatalog:
    """Read access to lessons and problems, plus the upsert used for seeding."""

    def get_lesson_with_problems(
        self,
        session: Session,
        lesson_id: str,
        *,
        include_answer_key: bool = False,
    ) -> Lesson | None:
        stmt = (
            select(LessonModel)
            .options(selectinload(LessonModel.problems).selectinload(ProblemModel.options))
            .where(LessonModel.id == lesson_id, LessonModel.is_active.is_(True))
        )
        model = session.execute(stmt).scalar_one_or_none()
        if model is None:
            return None
        lesson = self._lesson_to_domain(model)
        lesson.problems = [
            self._problem_to_domain(problem, include_answer_key) for problem in model.problems
        ]
        return lesson

    def list_lessons(self, session: Session, user_id: Optional[str] = None) -> List[Lesson]:
        """Active lessons in sequence order, annotated with the user's progress when known."""
        stmt = select(LessonModel).where(LessonModel.is_active.is_(True)).order_by(LessonModel.order.asc())
        models = session.execute(stmt).scalars().all()

        progress_by_lesson: Dict[str, LessonProgressModel] = {}
        if user_id:
            rows = session.execute(
                select(LessonProgressModel).where(LessonProgressModel.user_id == user_id)
            ).scalars()
            progress_by_lesson = {row.lesson_id: row for row in rows}

        lessons: List[Lesson] = []
        for model in models:
            lesson = self._lesson_to_domain(model)
            progress = progress_by_lesson.get(model.id)
            if progress is not None:
                lesson.progress = progress_to_domain(progress)
            lessons.append(lesson)
        return lessons

    def count_active(self, session: Session) -> int:
        stmt = select(func.count()).select_from(LessonModel).where(LessonModel.is_active.is_(True))
        return int(session.execute(stmt).scalar_one())

    def upsert_lesson(self, session: Session, lesson: Lesson) -> Lesson:
        model = session.get(LessonModel, lesson.lesson_id)
        if model is None:
            model = LessonModel(id=lesson.lesson_id, order=lesson.order, title=lesson.title)
            session.add(model)
        model.title = lesson.title
        model.description = lesson.description
        model.order = lesson.order
        model.xp_reward = lesson.xp_reward
        model.is_active = lesson.is_active

        existing = {problem.id: problem for problem in model.problems}
        incoming_ids = {problem.problem_id for problem in lesson.problems}
        for stale_id in set(existing) - incoming_ids:
            model.problems.remove(existing[stale_id])
        session.flush()

        for problem in lesson.problems:
            problem_model = existing.get(problem.problem_id)
            if problem_model is None:
                problem_model = ProblemModel(id=problem.problem_id)
                model.problems.append(problem_model)
            problem_model.question = problem.question
            problem_model.problem_type = problem.problem_type
            problem_model.order = problem.order
            problem_model.correct_answer = problem.correct_answer
            problem_model.explanation = problem.explanation
            problem_model.difficulty = problem.difficulty
            problem_model.options.clear()
            session.flush()
            problem_model.options.extend(
                ProblemOptionModel(
                    id=option.option_id,
                    option_text=option.option_text,
                    order=option.order,
                    is_correct=bool(option.is_correct),
                )
                for option in problem.options
            )
        session.flush()
        logger.info("Upserted lesson %s with %d problems", model.id, len(lesson.problems))
        stored = self.get_lesson_with_problems(session, model.id, include_answer_key=True)
        return stored if stored is not None else lesson

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _lesson_to_domain(self, model: LessonModel) -> Lesson:
        return Lesson(
            lesson_id=model.id,
            title=model.title,
            description=model.description,
            order=model.order,
            xp_reward=model.xp_reward,
            is_active=model.is_active,
        )

    def _problem_to_domain(self, model: ProblemModel, include_answer_key: bool) -> Problem:
        return Problem(
            problem_id=model.id,
            lesson_id=model.lesson_id,
            question=model.question,
            problem_type=model.problem_type,  # type: ignore[arg-type]
            order=model.order,
            difficulty=model.difficulty,  # type: ignore[arg-type]
            correct_answer=model.correct_answer if include_answer_key else None,
            explanation=model.explanation if include_answer_key else None,
            options=[
                ProblemOption(
                    option_id=option.id,
                    option_text=option.option_text,
                    order=option.order,
                    is_correct=option.is_correct if include_answer_key else None,
                )
                for option in model.options
            ],
        )


def progress_to_domain(model: LessonProgressModel) -> LessonProgress:
    return LessonProgress(
        is_completed=model.is_completed,
        score=model.score,
        best_score=model.best_score,
        attempts_count=model.attempts_count,
        total_xp_earned=model.total_xp_earned,
        completion_date=model.completion_date,
        last_attempt_at=model.last_attempt_at,
    )


lesson_catalog = LessonCatalog()

__all__ = ["LessonCatalog", "lesson_catalog", "progress_to_domain"]
