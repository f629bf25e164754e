from __future__ import annotations

import pytest

from mathstreak.grading import XP_PER_CORRECT_ANSWER, grade_answer, round_half_up
from mathstreak.lessons import Problem, ProblemOption


def _input_problem(correct_answer: str | None = "six") -> Problem:
    return Problem(
        problem_id="p-input",
        lesson_id="lesson-1",
        question="Spell the number after five.",
        problem_type="input",
        order=1,
        correct_answer=correct_answer,
    )


def _choice_problem(*, flag_correct: bool = True) -> Problem:
    return Problem(
        problem_id="p-choice",
        lesson_id="lesson-1",
        question="What is 2 + 3?",
        problem_type="multiple_choice",
        order=2,
        options=[
            ProblemOption(option_id="o1", option_text="4", order=1, is_correct=False),
            ProblemOption(option_id="o2", option_text="5", order=2, is_correct=flag_correct),
        ],
    )


@pytest.mark.parametrize(
    ("answer", "expected"),
    [("six", True), ("SIX", True), (" six ", True), ("Six.", False), ("", False)],
)
def test_free_input_is_trimmed_and_case_insensitive(answer: str, expected: bool) -> None:
    grade = grade_answer(_input_problem(), answer)
    assert grade.is_correct is expected
    assert grade.xp_earned == (XP_PER_CORRECT_ANSWER if expected else 0)
    assert grade.canonical_answer == "six"


def test_free_input_without_canonical_answer_is_incorrect() -> None:
    grade = grade_answer(_input_problem(None), "six")
    assert grade.is_correct is False
    assert grade.canonical_answer == ""


def test_multiple_choice_requires_exact_option_text() -> None:
    problem = _choice_problem()
    assert grade_answer(problem, "5").is_correct is True
    assert grade_answer(problem, " 5").is_correct is False
    assert grade_answer(problem, "4").is_correct is False
    assert grade_answer(problem, "4").canonical_answer == "5"


def test_multiple_choice_without_flagged_option_never_raises() -> None:
    grade = grade_answer(_choice_problem(flag_correct=False), "5")
    assert grade.is_correct is False
    assert grade.xp_earned == 0
    assert grade.canonical_answer == ""


@pytest.mark.parametrize(("value", "expected"), [(12.5, 13), (22.5, 23), (74.9, 75), (75.0, 75), (0.4, 0)])
def test_round_half_up(value: float, expected: int) -> None:
    assert round_half_up(value) == expected
