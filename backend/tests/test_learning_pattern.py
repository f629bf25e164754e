from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import List, Sequence, Tuple

import pytest

from mathstreak.learning_pattern import analyze_learning_history, create_learning_pattern
from mathstreak.lessons import LessonProgress
from mathstreak.progress import GradedAnswer, SubmissionRecord, UserProgress
from mathstreak.submission_result import StreakSummary, SubmissionResult

NOW = datetime(2024, 3, 10, 18, 0, tzinfo=timezone.utc)


def _user(current: int = 0, best: int = 0) -> UserProgress:
    return UserProgress(user_id="u1", username="learner", current_streak=current, best_streak=best)


def _record(
    answers: Sequence[Tuple[str, bool]],
    *,
    at: datetime,
    seconds: int | None = None,
    attempt: str = "a",
) -> SubmissionRecord:
    graded = [
        GradedAnswer(
            problem_id=f"p{index}",
            answer="x",
            is_correct=correct,
            xp_earned=10 if correct else 0,
            difficulty=difficulty,  # type: ignore[arg-type]
        )
        for index, (difficulty, correct) in enumerate(answers)
    ]
    xp = sum(answer.xp_earned for answer in graded)
    return SubmissionRecord(
        submission_id=f"s-{attempt}",
        user_id="u1",
        lesson_id="lesson-1",
        attempt_id=attempt,
        answers=graded,
        is_correct=all(answer.is_correct for answer in graded),
        xp_earned=xp,
        time_spent_seconds=seconds,
        created_at=at,
        result=SubmissionResult(
            attempt_id=attempt,
            user_id="u1",
            lesson_id="lesson-1",
            xp_earned=xp,
            total_xp=xp,
            streak=StreakSummary(current=1, best=1, updated=True),
            lesson_completed=False,
            score=0,
            best_score=0,
            submitted_at=at,
        ),
    )


def test_zero_history_yields_explicit_zero_state() -> None:
    analytics = analyze_learning_history(_user(), [], [], NOW)
    pattern = create_learning_pattern(analytics)

    assert analytics.total_problems_attempted == 0
    assert analytics.average_accuracy == 0
    assert analytics.recent_activity.active_days_this_week == 0
    assert pattern.average_score == 0
    assert pattern.learning_speed == 0
    assert pattern.preferred_difficulty == "easy"
    assert pattern.struggling_areas == []
    assert pattern.strong_areas == []
    assert pattern.consistency_score == 0


def test_accuracy_is_counted_per_answered_problem() -> None:
    submissions = [
        _record([("easy", True), ("easy", True), ("easy", True), ("easy", False)], at=NOW - timedelta(days=1)),
        _record([("easy", True), ("easy", False)], at=NOW, attempt="b"),
    ]
    analytics = analyze_learning_history(_user(), submissions, [], NOW)

    assert analytics.total_problems_attempted == 6
    assert analytics.total_correct_answers == 4
    assert analytics.average_accuracy == pytest.approx(4 / 6)
    assert create_learning_pattern(analytics).average_score == pytest.approx(400 / 6)


def test_difficulty_buckets_classify_areas_and_preference() -> None:
    answers: List[Tuple[str, bool]] = (
        [("easy", True)] * 10
        + [("medium", True)] * 3 + [("medium", False)]
        + [("hard", True)] + [("hard", False)]
    )
    analytics = analyze_learning_history(_user(), [_record(answers, at=NOW)], [], NOW)
    pattern = create_learning_pattern(analytics)

    assert pattern.strong_areas == ["easy"]
    assert pattern.struggling_areas == ["hard"]
    # Medium (75%) is the hardest tier above 70%.
    assert pattern.preferred_difficulty == "medium"


def test_untried_tiers_are_neither_strong_nor_struggling() -> None:
    analytics = analyze_learning_history(_user(), [_record([("hard", True)] * 4, at=NOW)], [], NOW)
    pattern = create_learning_pattern(analytics)

    assert pattern.struggling_areas == []
    assert pattern.strong_areas == ["hard"]
    assert pattern.preferred_difficulty == "hard"


def test_learning_speed_uses_recorded_minutes() -> None:
    submissions = [
        _record([("easy", True)] * 6, at=NOW, seconds=180),
        _record([("easy", True)] * 4, at=NOW, seconds=120, attempt="b"),
    ]
    analytics = analyze_learning_history(_user(), submissions, [], NOW)

    assert analytics.total_minutes_spent == pytest.approx(5)
    assert create_learning_pattern(analytics).learning_speed == pytest.approx(2)


def test_untimed_submissions_do_not_inflate_learning_speed() -> None:
    submissions = [_record([("easy", True)] * 4, at=NOW, seconds=60)]
    submissions += [_record([("medium", True)] * 4, at=NOW, attempt=f"u{index}") for index in range(9)]
    analytics = analyze_learning_history(_user(), submissions, [], NOW)

    assert analytics.total_problems_attempted == 40
    assert analytics.timed_problems_attempted == 4
    assert create_learning_pattern(analytics).learning_speed == pytest.approx(4)
    assert analytics.performance_by_difficulty["easy"].avg_minutes == pytest.approx(0.25)
    assert analytics.performance_by_difficulty["medium"].avg_minutes == 0


def test_learning_speed_is_zero_without_recorded_time() -> None:
    analytics = analyze_learning_history(_user(), [_record([("easy", True)], at=NOW)], [], NOW)
    assert create_learning_pattern(analytics).learning_speed == 0


def test_recent_activity_and_consistency() -> None:
    submissions = [
        _record([("easy", True)], at=NOW - timedelta(days=10), attempt="old"),
        _record([("easy", True)], at=NOW - timedelta(days=2), attempt="a"),
        _record([("easy", True)], at=NOW - timedelta(days=1), attempt="b"),
        _record([("easy", True)], at=NOW - timedelta(hours=2), attempt="c"),
        _record([("easy", False)], at=NOW - timedelta(hours=1), attempt="d"),
    ]
    progress = [LessonProgress(is_completed=True, score=100), LessonProgress(is_completed=False, score=50)]
    analytics = analyze_learning_history(_user(current=3, best=4), submissions, progress, NOW)

    assert analytics.total_lessons_completed == 1
    assert analytics.recent_activity.active_days_this_week == 3
    assert analytics.recent_activity.sessions_this_week == 4
    assert analytics.recent_activity.last_active == NOW - timedelta(hours=1)
    assert analytics.streak.consistency == pytest.approx(3 / 7)

    pattern = create_learning_pattern(analytics)
    expected = 40 * (3 / 7) + 10 * 3 + 50 * (4 / 5)
    assert pattern.consistency_score == pytest.approx(expected)


def test_consistency_score_is_capped() -> None:
    submissions = [
        _record([("easy", True)], at=NOW - timedelta(days=offset), attempt=str(offset)) for offset in range(7)
    ]
    analytics = analyze_learning_history(_user(current=10, best=10), submissions, [], NOW)

    assert analytics.streak.consistency == 1
    assert create_learning_pattern(analytics).consistency_score == 100
