from __future__ import annotations

from fastapi.testclient import TestClient

from mathstreak.main import app


def test_health_endpoint() -> None:
    response = TestClient(app).get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_database_health_endpoint_success(session_factory) -> None:  # type: ignore[no-untyped-def]
    response = TestClient(app).get("/healthz/database")
    assert response.status_code == 200
    payload = response.json()
    assert payload["status"] == "ok"
    assert "status" in payload["pool"]
    assert "checkouts" in payload["pool"]


def test_database_health_endpoint_failure(monkeypatch) -> None:  # type: ignore[no-untyped-def]
    def raise_runtime_error():  # type: ignore[no-untyped-def]
        raise RuntimeError("MATHSTREAK_DATABASE_URL must be configured before using the database.")

    monkeypatch.setattr("mathstreak.main.get_engine", raise_runtime_error)
    response = TestClient(app).get("/healthz/database")
    assert response.status_code == 503
    assert response.json()["detail"] == "Database is unavailable."
