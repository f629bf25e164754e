from __future__ import annotations

import json
from pathlib import Path

import pytest

from mathstreak.repositories.lesson_catalog import lesson_catalog
from scripts import seed_catalog


def test_bundled_catalog_seeds_lessons_and_demo_user(store) -> None:  # type: ignore[no-untyped-def]
    lessons, users = seed_catalog.load_catalog(seed_catalog.DEFAULT_CATALOG)
    summary = seed_catalog.seed(lessons, users, store=store)

    assert summary.lessons == 5
    assert summary.users_created == 1
    stored = store.run_readonly(lambda session: lesson_catalog.list_lessons(session))
    assert [lesson.order for lesson in stored] == [1, 2, 3, 4, 5]
    demo = store.run_readonly(lambda session: store.get_user(session, users[0].id))
    assert demo is not None
    assert demo.username == "demo"

    again = seed_catalog.seed(lessons, users, store=store)
    assert again.users_created == 0
    assert again.users_skipped == 1
    assert store.run_readonly(lambda session: lesson_catalog.count_active(session)) == 5


def test_reseeding_replaces_stale_problems(store, tmp_path: Path) -> None:  # type: ignore[no-untyped-def]
    lessons, _ = seed_catalog.load_catalog(seed_catalog.DEFAULT_CATALOG)
    seed_catalog.seed(lessons, [], store=store)

    raw = json.loads(seed_catalog.DEFAULT_CATALOG.read_text(encoding="utf-8"))
    first = raw["lessons"][0]
    first["problems"] = first["problems"][:1]
    first["title"] = "Arithmetic Warm-up"
    edited = tmp_path / "catalog.json"
    edited.write_text(json.dumps(raw), encoding="utf-8")

    updated, _ = seed_catalog.load_catalog(edited)
    seed_catalog.seed(updated, [], store=store)

    lesson = store.run_readonly(
        lambda session: lesson_catalog.get_lesson_with_problems(session, first["id"], include_answer_key=True)
    )
    assert lesson.title == "Arithmetic Warm-up"
    assert [problem.problem_id for problem in lesson.problems] == [first["problems"][0]["id"]]
    assert [option.is_correct for option in lesson.problems[0].options] == [False, True, False]


def test_malformed_catalog_is_rejected(tmp_path: Path) -> None:
    path = tmp_path / "broken.json"
    path.write_text(json.dumps({"lessons": [{"id": "x", "title": "No order"}]}), encoding="utf-8")
    with pytest.raises(ValueError):
        seed_catalog.load_catalog(path)
