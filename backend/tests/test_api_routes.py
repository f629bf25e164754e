"""HTTP surface for lessons, submissions, recommendations and profiles."""

from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from conftest import USER_ID, correct_answers, with_wrong_last
from mathstreak.dependencies import get_submission_processor
from mathstreak.errors import TransactionConflictError
from mathstreak.main import app


@pytest.fixture
def client(session_factory) -> Iterator[TestClient]:  # type: ignore[no-untyped-def]
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _submit_body(answers, attempt_id: str = "attempt-1", **extra):  # type: ignore[no-untyped-def]
    return {
        "user_id": USER_ID,
        "attempt_id": attempt_id,
        "answers": [answer.model_dump() for answer in answers],
        **extra,
    }


def test_list_lessons_with_progress(client: TestClient, lessons) -> None:
    client.post(f"/api/lessons/{lessons[0].lesson_id}/submit", json=_submit_body(correct_answers(lessons[0])))

    response = client.get("/api/lessons", params={"user_id": USER_ID})
    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert "timestamp" in payload
    data = payload["data"]
    assert [entry["order"] for entry in data] == [1, 2, 3, 4, 5]
    assert data[0]["progress"]["is_completed"] is True
    assert data[1]["progress"] is None


def test_get_lesson_hides_answer_key(client: TestClient, lessons) -> None:
    response = client.get(f"/api/lessons/{lessons[0].lesson_id}")
    assert response.status_code == 200
    problems = response.json()["data"]["problems"]
    assert len(problems) == 4
    assert all(problem["correct_answer"] is None for problem in problems)
    assert all(problem["explanation"] is None for problem in problems)
    assert all(option["is_correct"] is None for option in problems[0]["options"])
    assert [option["option_text"] for option in problems[0]["options"]] == ["4", "5"]


def test_get_unknown_lesson_returns_404(client: TestClient, lessons) -> None:
    response = client.get("/api/lessons/lesson-missing")
    assert response.status_code == 404


def test_submit_and_replay(client: TestClient, lessons) -> None:
    url = f"/api/lessons/{lessons[0].lesson_id}/submit"
    first = client.post(url, json=_submit_body(with_wrong_last(lessons[0]), time_spent_seconds=90))
    assert first.status_code == 200
    data = first.json()["data"]
    assert data["xp_earned"] == 30
    assert data["score"] == 75
    assert data["lesson_completed"] is False
    assert data["streak"]["current"] == 1
    assert len(data["results"]) == 4

    replay = client.post(url, json=_submit_body(correct_answers(lessons[0])))
    assert replay.status_code == 200
    assert replay.json()["data"] == data


def test_submit_with_missing_answer_returns_400(client: TestClient, lessons) -> None:
    answers = correct_answers(lessons[0])[:2]
    response = client.post(f"/api/lessons/{lessons[0].lesson_id}/submit", json=_submit_body(answers))
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Answer required for problem:")


def test_submit_for_unknown_user_or_lesson_returns_404(client: TestClient, lessons) -> None:
    body = _submit_body(correct_answers(lessons[0]))
    body["user_id"] = "nobody"
    assert client.post(f"/api/lessons/{lessons[0].lesson_id}/submit", json=body).status_code == 404
    assert client.post("/api/lessons/lesson-missing/submit", json=_submit_body([])).status_code == 404


def test_submit_conflict_returns_503_with_retry_after(client: TestClient, lessons) -> None:
    class ConflictingProcessor:
        def submit(self, *args, **kwargs):  # type: ignore[no-untyped-def]
            raise TransactionConflictError("could not serialize access")

    app.dependency_overrides[get_submission_processor] = lambda: ConflictingProcessor()
    response = client.post(f"/api/lessons/{lessons[0].lesson_id}/submit", json=_submit_body(correct_answers(lessons[0])))
    assert response.status_code == 503
    assert response.headers["retry-after"] == "1"


def test_submit_rejects_malformed_body(client: TestClient, lessons) -> None:
    response = client.post(f"/api/lessons/{lessons[0].lesson_id}/submit", json={"user_id": USER_ID, "answers": []})
    assert response.status_code == 422


def test_recommendations_endpoint(client: TestClient, lessons) -> None:
    response = client.get("/api/recommendations", params={"user_id": USER_ID, "limit": 2})
    assert response.status_code == 200
    data = response.json()["data"]
    assert len(data["recommendations"]) == 2
    assert data["next_suggested_lesson"]["lesson_id"] == "lesson-1"
    assert data["learning_pattern"]["preferred_difficulty"] == "easy"
    assert data["personalized_message"]

    assert client.get("/api/recommendations", params={"user_id": USER_ID, "limit": 11}).status_code == 422
    assert client.get("/api/recommendations", params={"user_id": "nobody"}).status_code == 404


def test_profile_endpoint(client: TestClient, lessons) -> None:
    client.post(f"/api/lessons/{lessons[0].lesson_id}/submit", json=_submit_body(correct_answers(lessons[0])))

    response = client.get(f"/api/profile/{USER_ID}")
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["username"] == "learner"
    assert data["total_xp"] == 40
    assert data["current_streak"] == 1
    assert data["completed_lessons"] == 1
    assert data["total_lessons"] == 5
    assert data["progress_percentage"] == 20

    assert client.get("/api/profile/nobody").status_code == 404
