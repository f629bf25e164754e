"""Adaptive next-lesson recommendations.

Lessons are scored with a fixed additive decision table driven by the learner's
:class:`~mathstreak.learning_pattern.LearningPattern`, then explained, ranked and wrapped
into an :class:`AdaptiveLearningPath` together with learning goals and a short
personalised message. Everything here is deterministic: the same history and catalog
always produce the same list.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone, tzinfo
from typing import Callable, Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from .config import get_settings
from .errors import UserNotFoundError
from .grading import round_half_up
from .learning_pattern import (
    LearningAnalytics,
    LearningPattern,
    analyze_learning_history,
    create_learning_pattern,
)
from .lessons import Difficulty, Lesson, LessonProgress, lesson_difficulty
from .repositories.lesson_catalog import LessonCatalog, lesson_catalog
from .repositories.progress_store import ProgressStore
from .streaks import resolve_timezone
from .telemetry import emit_event

logger = logging.getLogger(__name__)

MIN_LIMIT = 1
MAX_LIMIT = 10
MAX_GOALS = 3
BASE_SCORE = 50.0
MASTERED_SCORE = 90
BASE_MINUTES = 15
DIFFICULTY_MULTIPLIER: Dict[Difficulty, float] = {"easy": 1.0, "medium": 1.2, "hard": 1.5}


class LessonRecommendation(BaseModel):
    lesson_id: str
    title: str
    description: str = ""
    recommendation_reason: str
    confidence_score: int = Field(ge=0, le=100)
    estimated_completion_time: int = Field(ge=0)
    difficulty: Difficulty
    xp_reward: int
    order: int
    is_unlocked: bool
    prerequisites: List[str] = Field(default_factory=list)


class AdaptiveLearningPath(BaseModel):
    user_id: str
    generated_at: datetime
    learning_pattern: LearningPattern
    recommendations: List[LessonRecommendation] = Field(default_factory=list)
    next_suggested_lesson: Optional[LessonRecommendation] = None
    personalized_message: str
    learning_goals: List[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Scoring
# ---------------------------------------------------------------------------


def score_lesson(
    lesson: Lesson,
    pattern: LearningPattern,
    analytics: LearningAnalytics,
) -> float:
    tier = lesson_difficulty(lesson.order)
    progress = lesson.progress
    score = BASE_SCORE

    if pattern.average_score >= 85:
        if tier == "hard":
            score += 30
        elif tier == "medium":
            score += 15
    elif pattern.average_score < 60:
        if tier == "easy":
            score += 30
        elif tier == "medium":
            score += 10
        else:
            score -= 20

    if tier == pattern.preferred_difficulty:
        score += 25

    if progress is not None:
        if progress.is_completed and progress.score < 80:
            score += 20
        elif progress.attempts_count > 0 and not progress.is_completed:
            score += 35
    else:
        score += 15

    if lesson.order == analytics.total_lessons_completed + 1:
        score += 20

    if pattern.consistency_score > 70:
        score += 10

    return max(0.0, min(100.0, score))


def recommendation_reason(lesson: Lesson, pattern: LearningPattern) -> str:
    tier = lesson_difficulty(lesson.order)
    progress = lesson.progress
    if progress is not None and progress.is_completed and progress.score < 80:
        return f"Revisit this lesson to improve your score from {round_half_up(progress.score)}%"
    if progress is not None and progress.attempts_count > 0 and not progress.is_completed:
        return "Continue where you left off to complete this lesson"
    if pattern.average_score >= 85 and tier == "hard":
        return "Challenge yourself with this advanced topic"
    if pattern.average_score < 60 and tier == "easy":
        return "Build confidence with this fundamental lesson"
    if tier in pattern.struggling_areas:
        return f"Strengthen your {tier} level skills"
    return "Next in your learning sequence"


def estimate_completion_minutes(lesson: Lesson, pattern: LearningPattern) -> int:
    tier = lesson_difficulty(lesson.order)
    if pattern.learning_speed > 0:
        pace = max(0.5, 2 / pattern.learning_speed)
    else:
        pace = 1.5
    return round_half_up(BASE_MINUTES * DIFFICULTY_MULTIPLIER[tier] * pace)


def _previous_lesson(lesson: Lesson, by_order: Dict[int, Lesson]) -> Lesson | None:
    if lesson.order == 1:
        return None
    return by_order.get(lesson.order - 1)


def is_lesson_unlocked(lesson: Lesson, by_order: Dict[int, Lesson]) -> bool:
    if lesson.order == 1:
        return True
    previous = _previous_lesson(lesson, by_order)
    return bool(previous and previous.progress and previous.progress.is_completed)


def rank_lessons(
    lessons: Sequence[Lesson],
    pattern: LearningPattern,
    analytics: LearningAnalytics,
    limit: int,
) -> List[LessonRecommendation]:
    """Score every candidate lesson and return the best ``limit`` of them."""
    by_order = {lesson.order: lesson for lesson in lessons}
    recommendations: List[LessonRecommendation] = []
    for lesson in lessons:
        progress: LessonProgress | None = lesson.progress
        if progress is not None and progress.is_completed and progress.score >= MASTERED_SCORE:
            continue
        previous = _previous_lesson(lesson, by_order)
        recommendations.append(
            LessonRecommendation(
                lesson_id=lesson.lesson_id,
                title=lesson.title,
                description=lesson.description or "",
                recommendation_reason=recommendation_reason(lesson, pattern),
                confidence_score=round_half_up(score_lesson(lesson, pattern, analytics)),
                estimated_completion_time=estimate_completion_minutes(lesson, pattern),
                difficulty=lesson_difficulty(lesson.order),
                xp_reward=lesson.xp_reward,
                order=lesson.order,
                is_unlocked=is_lesson_unlocked(lesson, by_order),
                prerequisites=[previous.title] if previous is not None else [],
            )
        )
    # sorted() is stable, so equal scores keep catalog order.
    recommendations = sorted(recommendations, key=lambda rec: rec.confidence_score, reverse=True)
    return recommendations[:limit]


# ---------------------------------------------------------------------------
# Goals and messaging
# ---------------------------------------------------------------------------


def learning_goals(pattern: LearningPattern, analytics: LearningAnalytics) -> List[str]:
    goals: List[str] = []

    if pattern.average_score < 70:
        goals.append("Improve accuracy to 70% or higher")
    elif pattern.average_score < 85:
        goals.append("Achieve 85% accuracy consistently")
    else:
        goals.append("Maintain excellent performance while tackling harder challenges")

    if pattern.learning_speed < 1:
        goals.append("Build confidence and speed in problem-solving")
    elif pattern.learning_speed > 3:
        goals.append("Balance speed with accuracy for deeper understanding")

    if pattern.consistency_score < 60:
        goals.append("Practice regularly to build a strong learning habit")
    elif analytics.streak.current < analytics.streak.best:
        goals.append(f"Work towards beating your best streak of {analytics.streak.best} days")

    if pattern.struggling_areas:
        goals.append(f"Focus on strengthening skills in: {', '.join(pattern.struggling_areas)}")

    return goals[:MAX_GOALS]


def personalized_message(pattern: LearningPattern, next_lesson: Optional[LessonRecommendation]) -> str:
    parts: List[str] = []

    if pattern.average_score >= 90:
        parts.append("Excellent work! You're mastering the concepts brilliantly.")
    elif pattern.average_score >= 75:
        parts.append("Great progress! You're building strong foundations.")
    elif pattern.average_score >= 60:
        parts.append("Good effort! Keep practicing to strengthen your skills.")
    else:
        parts.append("Don't worry! Every expert was once a beginner. Let's build up gradually.")

    if pattern.learning_speed > 2:
        parts.append("You're learning at an impressive pace!")
    elif pattern.learning_speed < 0.5:
        parts.append("Take your time to understand each concept thoroughly.")

    if pattern.consistency_score >= 80:
        parts.append("Your consistent practice is paying off!")
    elif pattern.consistency_score < 50:
        parts.append("Try to practice a little bit each day for better results.")

    if next_lesson is not None:
        parts.append(f"Based on your progress, we recommend focusing on '{next_lesson.title}' next.")
        parts.append(next_lesson.recommendation_reason)

    return " ".join(parts)


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class RecommendationService:
    """Builds an adaptive learning path from stored history and the lesson catalog."""

    def __init__(
        self,
        store: ProgressStore,
        catalog: LessonCatalog,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        streak_timezone: Optional[tzinfo] = None,
        default_limit: int = 5,
    ) -> None:
        self._store = store
        self._catalog = catalog
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._tz = streak_timezone or timezone.utc
        self._default_limit = default_limit

    def generate(self, user_id: str, limit: Optional[int] = None) -> AdaptiveLearningPath:
        limit = self._default_limit if limit is None else limit
        if not MIN_LIMIT <= limit <= MAX_LIMIT:
            raise ValueError(f"limit must be between {MIN_LIMIT} and {MAX_LIMIT}, got {limit}.")

        now = self._clock()
        try:
            analytics, lessons = self._store.run_readonly(lambda session: self._load(session, user_id, now))
        except UserNotFoundError:
            logger.warning("Recommendations requested for unknown user %s", user_id)
            raise
        except Exception:  # noqa: BLE001
            logger.exception("Failed to generate recommendations for user %s", user_id)
            raise

        pattern = create_learning_pattern(analytics)
        recommendations = rank_lessons(lessons, pattern, analytics, limit)
        next_lesson = recommendations[0] if recommendations else None
        path = AdaptiveLearningPath(
            user_id=user_id,
            generated_at=now,
            learning_pattern=pattern,
            recommendations=recommendations,
            next_suggested_lesson=next_lesson,
            personalized_message=personalized_message(pattern, next_lesson),
            learning_goals=learning_goals(pattern, analytics),
        )
        logger.info(
            "Learning path generated for user=%s recommendations=%d next=%s average_score=%.1f",
            user_id,
            len(recommendations),
            next_lesson.lesson_id if next_lesson else None,
            pattern.average_score,
        )
        emit_event(
            "recommendations_generated",
            user_id=user_id,
            count=len(recommendations),
            next_lesson_id=next_lesson.lesson_id if next_lesson else None,
            average_score=pattern.average_score,
            preferred_difficulty=pattern.preferred_difficulty,
        )
        return path

    def _load(self, session, user_id: str, now: datetime):
        user = self._store.get_user(session, user_id)
        if user is None:
            raise UserNotFoundError(user_id)
        analytics = analyze_learning_history(
            user,
            self._store.list_submissions(session, user_id),
            self._store.list_lesson_progress(session, user_id),
            now,
            self._tz,
        )
        return analytics, self._catalog.list_lessons(session, user_id)


def build_recommendation_service(session_factory=None) -> RecommendationService:
    settings = get_settings()
    return RecommendationService(
        ProgressStore(session_factory),
        lesson_catalog,
        streak_timezone=resolve_timezone(settings.streak_timezone),
        default_limit=settings.default_recommendation_limit,
    )


__all__ = [
    "AdaptiveLearningPath",
    "LessonRecommendation",
    "RecommendationService",
    "build_recommendation_service",
    "estimate_completion_minutes",
    "is_lesson_unlocked",
    "learning_goals",
    "personalized_message",
    "rank_lessons",
    "recommendation_reason",
    "score_lesson",
]
