from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterator, List

import pytest
from sqlalchemy.orm import Session, sessionmaker

import mathstreak.db.models  # noqa: F401
from mathstreak.config import get_settings
from mathstreak.db.base import Base
from mathstreak.db.session import dispose_engine, get_engine, get_session_factory
from mathstreak.dependencies import reset_dependencies
from mathstreak.lessons import Difficulty, Lesson, Problem, ProblemOption
from mathstreak.progress import SubmittedAnswer
from mathstreak.repositories.lesson_catalog import lesson_catalog
from mathstreak.repositories.progress_store import ProgressStore
from mathstreak.telemetry import TelemetryEvent, clear_listeners, register_listener

USER_ID = "user-1"
LESSON_TIERS: List[Difficulty] = ["easy", "easy", "medium", "medium", "hard"]


@dataclass
class FixedClock:
    now: datetime

    def __call__(self) -> datetime:
        return self.now


def build_lesson(
    lesson_id: str,
    order: int,
    *,
    difficulty: Difficulty = "easy",
    problem_count: int = 4,
    title: str | None = None,
) -> Lesson:
    """A lesson whose first problem is multiple choice and the rest free input."""
    problems: List[Problem] = []
    for index in range(1, problem_count + 1):
        problem_id = f"{lesson_id}-p{index}"
        if index == 1:
            problems.append(
                Problem(
                    problem_id=problem_id,
                    lesson_id=lesson_id,
                    question="What is 2 + 3?",
                    problem_type="multiple_choice",
                    order=index,
                    difficulty=difficulty,
                    explanation="Two plus three is five.",
                    options=[
                        ProblemOption(option_id=f"{problem_id}-a", option_text="4", order=1, is_correct=False),
                        ProblemOption(option_id=f"{problem_id}-b", option_text="5", order=2, is_correct=True),
                    ],
                )
            )
        else:
            problems.append(
                Problem(
                    problem_id=problem_id,
                    lesson_id=lesson_id,
                    question=f"What is {index} + {index}?",
                    problem_type="input",
                    order=index,
                    difficulty=difficulty,
                    correct_answer=str(index * 2),
                    explanation=f"{index} doubled is {index * 2}.",
                )
            )
    return Lesson(
        lesson_id=lesson_id,
        title=title or f"Lesson {order}",
        description=f"Practice set {order}.",
        order=order,
        problems=problems,
    )


def correct_answers(lesson: Lesson) -> List[SubmittedAnswer]:
    answers: List[SubmittedAnswer] = []
    for problem in lesson.problems:
        if problem.problem_type == "multiple_choice":
            answers.append(SubmittedAnswer(problem_id=problem.problem_id, answer="5"))
        else:
            answers.append(SubmittedAnswer(problem_id=problem.problem_id, answer=problem.correct_answer or ""))
    return answers


def with_wrong_last(lesson: Lesson) -> List[SubmittedAnswer]:
    answers = correct_answers(lesson)
    answers[-1] = SubmittedAnswer(problem_id=answers[-1].problem_id, answer="wrong")
    return answers


@pytest.fixture
def session_factory(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Iterator[sessionmaker[Session]]:
    monkeypatch.setenv("MATHSTREAK_DATABASE_URL", f"sqlite:///{tmp_path / 'mathstreak.db'}")
    get_settings.cache_clear()
    dispose_engine()
    reset_dependencies()
    engine = get_engine()
    Base.metadata.drop_all(engine)
    Base.metadata.create_all(engine)
    yield get_session_factory()
    clear_listeners()
    dispose_engine()
    reset_dependencies()
    get_settings.cache_clear()


@pytest.fixture
def store(session_factory: sessionmaker[Session]) -> ProgressStore:
    return ProgressStore(session_factory)


@pytest.fixture
def lessons(store: ProgressStore) -> List[Lesson]:
    catalog = [
        build_lesson(f"lesson-{order}", order, difficulty=tier)
        for order, tier in enumerate(LESSON_TIERS, start=1)
    ]

    def _seed(session: Session) -> None:
        for lesson in catalog:
            lesson_catalog.upsert_lesson(session, lesson)
        store.create_user(session, "Learner", user_id=USER_ID, display_name="Learner One")

    store.run_atomic(_seed)
    return catalog


@pytest.fixture
def clock() -> FixedClock:
    return FixedClock(datetime(2024, 3, 4, 15, 0, tzinfo=timezone.utc))


@pytest.fixture
def events() -> Iterator[List[TelemetryEvent]]:
    recorded: List[TelemetryEvent] = []
    register_listener(recorded.append)
    yield recorded
    clear_listeners()
