"""Load a JSON lesson catalog (and optional demo users) into the database.

The file holds ``{"lessons": [...], "users": [...]}``. Lessons are upserted by id so the
script can be re-run after editing the catalog; users that already exist are skipped.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field, ValidationError

from mathstreak.lessons import Lesson
from mathstreak.repositories.lesson_catalog import LessonCatalog, lesson_catalog
from mathstreak.repositories.progress_store import ProgressStore

LOGGER = logging.getLogger("mathstreak.seed")
DEFAULT_CATALOG = Path(__file__).resolve().parent / "data" / "sample_catalog.json"


class SeedUser(BaseModel):
    id: Optional[str] = None
    username: str = Field(..., min_length=1)
    email: Optional[str] = None
    display_name: Optional[str] = None


class SeedSummary(BaseModel):
    lessons: int = 0
    problems: int = 0
    users_created: int = 0
    users_skipped: int = 0


def _lesson_from_payload(payload: Dict[str, Any]) -> Lesson:
    lesson_id = payload["id"]
    problems = []
    for problem in payload.get("problems", []):
        problems.append(
            {
                "problem_id": problem["id"],
                "lesson_id": lesson_id,
                "question": problem["question"],
                "problem_type": problem["problem_type"],
                "order": problem["order"],
                "difficulty": problem.get("difficulty", "easy"),
                "correct_answer": problem.get("correct_answer"),
                "explanation": problem.get("explanation"),
                "options": [
                    {
                        "option_id": option["id"],
                        "option_text": option["option_text"],
                        "order": option["order"],
                        "is_correct": option.get("is_correct", False),
                    }
                    for option in problem.get("options", [])
                ],
            }
        )
    return Lesson.model_validate(
        {
            "lesson_id": lesson_id,
            "title": payload["title"],
            "description": payload.get("description"),
            "order": payload["order"],
            "xp_reward": payload.get("xp_reward", 10),
            "is_active": payload.get("is_active", True),
            "problems": problems,
        }
    )


def load_catalog(path: Path) -> tuple[List[Lesson], List[SeedUser]]:
    raw = json.loads(path.read_text(encoding="utf-8"))
    try:
        lessons = [_lesson_from_payload(entry) for entry in raw.get("lessons", [])]
        users = [SeedUser.model_validate(entry) for entry in raw.get("users", [])]
    except (KeyError, ValidationError) as exc:
        raise ValueError(f"Catalog {path} is malformed: {exc}") from exc
    return lessons, users


def seed(
    lessons: List[Lesson],
    users: List[SeedUser],
    *,
    store: Optional[ProgressStore] = None,
    catalog: LessonCatalog = lesson_catalog,
) -> SeedSummary:
    store = store or ProgressStore()
    summary = SeedSummary()

    def _apply(session) -> None:  # type: ignore[no-untyped-def]
        for lesson in sorted(lessons, key=lambda item: item.order):
            catalog.upsert_lesson(session, lesson)
            summary.lessons += 1
            summary.problems += len(lesson.problems)
        for user in users:
            if user.id and store.get_user(session, user.id) is not None:
                summary.users_skipped += 1
                continue
            store.create_user(
                session,
                user.username,
                user_id=user.id,
                email=user.email,
                display_name=user.display_name,
            )
            summary.users_created += 1

    store.run_atomic(_apply)
    LOGGER.info(
        "Seeded %d lessons (%d problems); users created=%d skipped=%d",
        summary.lessons,
        summary.problems,
        summary.users_created,
        summary.users_skipped,
    )
    return summary


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Seed the MathStreak lesson catalog.")
    parser.add_argument(
        "catalog",
        nargs="?",
        default=str(DEFAULT_CATALOG),
        help="Path to the JSON catalog (default: bundled sample catalog).",
    )
    parser.add_argument(
        "--skip-users",
        action="store_true",
        help="Only load lessons; ignore the users section.",
    )
    return parser.parse_args(argv)


def main(argv: Optional[list[str]] = None) -> int:
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    args = parse_args(argv)
    try:
        lessons, users = load_catalog(Path(args.catalog))
        seed(lessons, [] if args.skip_users else users)
    except Exception as exc:  # noqa: BLE001
        LOGGER.exception("Seeding failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
