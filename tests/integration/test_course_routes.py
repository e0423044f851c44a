from __future__ import annotations

import json
from collections.abc import Iterator
from dataclasses import replace

import pytest
from fastapi.testclient import TestClient

from skillsprint.api.deps import get_generation_repo, get_text_model
from skillsprint.config import get_settings
from skillsprint.main import app

COURSE_REQUEST = {"topic": "Rust", "audience": "Backend developers", "level": "beginner", "duration": "2 weeks", "goals": "Ship a CLI"}

OUTLINE = {
  "title": "Rust for Backend Developers",
  "description": "From ownership to async.",
  "modules": [{"title": "Foundations", "sprints": [{"title": "Ownership"}]}],
}

SPRINT = {
  "title": "Ownership",
  "introduction": "Welcome.",
  "content": [{"type": "text", "value": "Moves and copies."}],
  "quiz": [{"question": "Who owns a value?", "options": ["one binding", "everyone", "the heap", "nobody"], "correctAnswer": 0, "explanation": "Single owner."}],
}


def _configured_settings():
  return replace(get_settings(), pg_dsn="postgresql://app@localhost/skillsprint", gemini_api_key="test-key", events_poll_seconds=0.01)


@pytest.fixture
def client(generation_repo, scripted_model) -> Iterator[TestClient]:
  model = scripted_model([json.dumps(OUTLINE), json.dumps(SPRINT)])
  app.dependency_overrides[get_generation_repo] = lambda: generation_repo
  app.dependency_overrides[get_text_model] = lambda: model
  app.dependency_overrides[get_settings] = _configured_settings
  try:
    yield TestClient(app)
  finally:
    app.dependency_overrides.clear()


def test_generate_accepts_request_and_runs_pipeline(client: TestClient, generation_repo) -> None:
  response = client.post("/v1/courses/generate", json={"requestId": "req-1", "courseRequest": COURSE_REQUEST, "userId": "user-1"})

  assert response.status_code == 202
  assert response.json() == {"message": "Course generation started", "requestId": "req-1", "status": "pending"}
  # TestClient runs background tasks before returning.
  record = generation_repo.records["req-1"]
  assert record.status == "completed"
  assert record.user_id == "user-1"
  assert record.request_data["topic"] == "Rust"
  assert record.course_data["modules"][0]["sprints"][0]["content"]["title"] == "Ownership"


def test_generate_assigns_request_id_when_absent(client: TestClient, generation_repo) -> None:
  response = client.post("/v1/courses/generate", json={"courseRequest": COURSE_REQUEST})

  assert response.status_code == 202
  assert response.json()["requestId"] in generation_repo.records


def test_generate_reports_missing_configuration(client: TestClient, generation_repo) -> None:
  app.dependency_overrides[get_settings] = lambda: replace(get_settings(), pg_dsn=None, gemini_api_key=None)

  response = client.post("/v1/courses/generate", json={"courseRequest": COURSE_REQUEST})

  assert response.status_code == 500
  body = response.json()
  assert body["error"] == "Server configuration error: Missing environment variables"
  assert body["details"] == "Missing: GEMINI_API_KEY, SKILLSPRINT_PG_DSN"
  assert generation_repo.records == {}


def test_generate_requires_course_request(client: TestClient) -> None:
  response = client.post("/v1/courses/generate", json={"requestId": "req-1"})

  assert response.status_code == 400
  assert response.json()["error"] == "Invalid request data: missing courseRequest"


def test_generate_rejects_blank_course_fields(client: TestClient) -> None:
  response = client.post("/v1/courses/generate", json={"courseRequest": {**COURSE_REQUEST, "topic": "  "}})

  assert response.status_code == 422
  body = response.json()
  assert body["error"] == "Invalid request data"
  assert all("input" not in detail for detail in body["details"])


def test_cancel_pending_request(client: TestClient, generation_repo) -> None:
  generation_repo.seed("req-1", status="processing", progress=40)

  response = client.post("/v1/courses/req-1/cancel")

  assert response.status_code == 200
  assert response.json() == {"message": "Course generation cancellation requested successfully.", "requestId": "req-1", "newStatus": "cancelled"}
  record = generation_repo.records["req-1"]
  assert record.status == "cancelled"
  assert record.status_message.startswith("Cancellation requested by user at ")


def test_cancel_terminal_request_is_rejected(client: TestClient, generation_repo) -> None:
  generation_repo.seed("req-1", status="completed", progress=100)

  response = client.post("/v1/courses/req-1/cancel")

  assert response.status_code == 400
  assert response.json() == {"message": "Request req-1 is already completed and cannot be cancelled.", "currentStatus": "completed"}
  assert generation_repo.records["req-1"].status == "completed"


def test_cancel_unknown_request(client: TestClient) -> None:
  response = client.post("/v1/courses/missing/cancel")

  assert response.status_code == 404
  assert response.json()["error"] == "Request not found"


def test_list_returns_newest_first(client: TestClient, generation_repo) -> None:
  generation_repo.seed("old", created_at="2025-01-01T00:00:00+00:00")
  generation_repo.seed("new", status="completed", progress=100, created_at="2025-02-01T00:00:00+00:00")

  response = client.get("/v1/courses")

  assert response.status_code == 200
  assert [item["id"] for item in response.json()] == ["new", "old"]
  assert set(response.json()[0]) == {"id", "status", "status_message", "created_at", "request_data"}


def test_detail_includes_sprint_contents(client: TestClient, generation_repo) -> None:
  client.post("/v1/courses/generate", json={"requestId": "req-1", "courseRequest": COURSE_REQUEST})

  response = client.get("/v1/courses/req-1")

  assert response.status_code == 200
  body = response.json()
  assert body["course"]["status"] == "completed"
  assert [(item["module_index"], item["sprint_index"]) for item in body["sprintContents"]] == [(0, 0)]
  assert client.get("/v1/courses/missing").status_code == 404


def test_events_stream_ends_after_terminal_status(client: TestClient, generation_repo) -> None:
  generation_repo.seed("req-1", status="completed", progress=100)

  with client.stream("GET", "/v1/courses/req-1/events") as response:
    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    assert response.headers["cache-control"] == "no-cache"
    body = "".join(response.iter_text())

  frames = [frame for frame in body.split("\n\n") if frame]
  assert len(frames) == 1
  event, data = frames[0].split("\n")
  assert event == "event: status"
  assert json.loads(data.removeprefix("data: "))["status"] == "completed"


def test_events_for_unknown_request(client: TestClient) -> None:
  assert client.get("/v1/courses/missing/events").status_code == 404


def test_cors_preflight_and_request_id_header(client: TestClient) -> None:
  preflight = client.options(
    "/v1/courses/generate",
    headers={"Origin": "http://localhost:3000", "Access-Control-Request-Method": "POST", "Access-Control-Request-Headers": "content-type,apikey"},
  )
  assert preflight.status_code == 200
  assert preflight.headers["access-control-allow-origin"] == "*"
  assert "POST" in preflight.headers["access-control-allow-methods"]

  response = client.get("/health", headers={"x-request-id": "trace-123"})
  assert response.json() == {"status": "ok"}
  assert response.headers["x-request-id"] == "trace-123"
