"""Derive a learner's performance profile from their submission history."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Dict, List, Optional, Sequence

from pydantic import BaseModel, Field

from .lessons import DIFFICULTY_TIERS, Difficulty, LessonProgress
from .progress import SubmissionRecord, UserProgress
from .streaks import calendar_day

STRUGGLING_THRESHOLD = 0.6
STRONG_THRESHOLD = 0.8
PREFERRED_THRESHOLD = 0.7
STREAK_CONSISTENCY_DAYS = 7
RECENT_WINDOW = timedelta(days=7)


class DifficultyPerformance(BaseModel):
    attempted: int = 0
    correct: int = 0
    avg_minutes: float = 0.0

    @property
    def accuracy(self) -> float:
        return self.correct / self.attempted if self.attempted else 0.0


class StreakData(BaseModel):
    current: int = 0
    best: int = 0
    # Fraction of a full week the current streak covers, 0..1.
    consistency: float = Field(default=0.0, ge=0, le=1)


class RecentActivity(BaseModel):
    last_active: Optional[datetime] = None
    active_days_this_week: int = Field(default=0, ge=0, le=7)
    sessions_this_week: int = Field(default=0, ge=0)


class LearningAnalytics(BaseModel):
    total_lessons_completed: int = 0
    total_problems_attempted: int = 0
    total_correct_answers: int = 0
    average_accuracy: float = Field(default=0.0, ge=0, le=1)
    total_minutes_spent: float = 0.0
    # Problems from submissions that reported time_spent_seconds.
    timed_problems_attempted: int = 0
    streak: StreakData = Field(default_factory=StreakData)
    performance_by_difficulty: Dict[Difficulty, DifficultyPerformance] = Field(
        default_factory=lambda: {tier: DifficultyPerformance() for tier in DIFFICULTY_TIERS}
    )
    recent_activity: RecentActivity = Field(default_factory=RecentActivity)


class LearningPattern(BaseModel):
    average_score: float = Field(ge=0, le=100)
    learning_speed: float = Field(ge=0)
    struggling_areas: List[Difficulty] = Field(default_factory=list)
    strong_areas: List[Difficulty] = Field(default_factory=list)
    preferred_difficulty: Difficulty = "easy"
    consistency_score: float = Field(ge=0, le=100)


def analyze_learning_history(
    user: UserProgress,
    submissions: Sequence[SubmissionRecord],
    progress_records: Sequence[LessonProgress],
    now: datetime,
    tz: tzinfo = timezone.utc,
) -> LearningAnalytics:
    """Summarise a user's history; a user without submissions gets the zero-state."""
    buckets: Dict[Difficulty, DifficultyPerformance] = {
        tier: DifficultyPerformance() for tier in DIFFICULTY_TIERS
    }
    bucket_minutes: Dict[Difficulty, float] = {tier: 0.0 for tier in DIFFICULTY_TIERS}
    bucket_timed: Dict[Difficulty, int] = {tier: 0 for tier in DIFFICULTY_TIERS}
    attempted = 0
    timed = 0
    correct = 0
    minutes = 0.0

    for submission in submissions:
        answers = submission.answers
        if not answers:
            continue
        is_timed = submission.time_spent_seconds is not None
        spent = (submission.time_spent_seconds or 0) / 60
        minutes += spent
        if is_timed:
            timed += len(answers)
        for answer in answers:
            bucket = buckets[answer.difficulty]
            bucket.attempted += 1
            if is_timed:
                bucket_minutes[answer.difficulty] += spent / len(answers)
                bucket_timed[answer.difficulty] += 1
            attempted += 1
            if answer.is_correct:
                bucket.correct += 1
                correct += 1

    for tier, bucket in buckets.items():
        if bucket_timed[tier]:
            bucket.avg_minutes = bucket_minutes[tier] / bucket_timed[tier]

    today = calendar_day(now, tz)
    window_start = _aware(now) - RECENT_WINDOW
    recent = [s for s in submissions if _aware(s.created_at) >= window_start]
    active_days = {calendar_day(s.created_at, tz) for s in recent}
    # Clock skew can put a submission "after" today; it still counts as today.
    active_days = {min(day, today) for day in active_days}

    return LearningAnalytics(
        total_lessons_completed=sum(1 for record in progress_records if record.is_completed),
        total_problems_attempted=attempted,
        total_correct_answers=correct,
        average_accuracy=correct / attempted if attempted else 0.0,
        total_minutes_spent=minutes,
        timed_problems_attempted=timed,
        streak=StreakData(
            current=user.current_streak,
            best=user.best_streak,
            consistency=min(1.0, user.current_streak / STREAK_CONSISTENCY_DAYS),
        ),
        performance_by_difficulty=buckets,
        recent_activity=RecentActivity(
            last_active=submissions[-1].created_at if submissions else user.last_activity_date,
            active_days_this_week=min(7, len(active_days)),
            sessions_this_week=len(recent),
        ),
    )


def create_learning_pattern(analytics: LearningAnalytics) -> LearningPattern:
    struggling: List[Difficulty] = []
    strong: List[Difficulty] = []
    preferred: Difficulty = "easy"

    for tier in DIFFICULTY_TIERS:
        bucket = analytics.performance_by_difficulty.get(tier)
        if bucket is None or not bucket.attempted:
            continue
        accuracy = bucket.accuracy
        if accuracy < STRUGGLING_THRESHOLD:
            struggling.append(tier)
        if accuracy > STRONG_THRESHOLD:
            strong.append(tier)
        # Tiers are walked easy → hard, so the hardest qualifying tier wins.
        if accuracy > PREFERRED_THRESHOLD:
            preferred = tier

    speed = (
        analytics.timed_problems_attempted / analytics.total_minutes_spent
        if analytics.total_minutes_spent > 0
        else 0.0
    )
    consistency = (
        analytics.streak.consistency * 40
        + analytics.recent_activity.active_days_this_week * 10
        + analytics.average_accuracy * 50
    )
    return LearningPattern(
        average_score=analytics.average_accuracy * 100,
        learning_speed=speed,
        struggling_areas=struggling,
        strong_areas=strong,
        preferred_difficulty=preferred,
        consistency_score=max(0.0, min(100.0, consistency)),
    )


def _aware(moment: datetime) -> datetime:
    return moment if moment.tzinfo is not None else moment.replace(tzinfo=timezone.utc)


__all__ = [
    "DifficultyPerformance",
    "LearningAnalytics",
    "LearningPattern",
    "RecentActivity",
    "StreakData",
    "analyze_learning_history",
    "create_learning_pattern",
]
