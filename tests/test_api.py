"""Tests for API routes."""
from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest
from fastapi.testclient import TestClient
from sse_starlette.sse import AppStatus

from interviewiq.models.events import Stage
from interviewiq.models.research import ResearchMode, ResearchReport
from interviewiq.models.schemas import QuestionsResponse
from interviewiq.services import streaming, users
from interviewiq.services.progress_board import SSEFrameDecoder


@pytest.fixture
def app():
    AppStatus.should_exit_event = None
    from interviewiq.main import app
    yield app


@pytest.fixture
def client(app):
    return TestClient(app)


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {users.issue_token('user-1')}"}


class FakeOrchestrator:
    last_request = None

    def __init__(self, *args, **kwargs):
        self.run_id = "test-run"

    async def research(self, request):
        FakeOrchestrator.last_request = request
        yield streaming.active(Stage.START, f"Starting deep research on {request.subject_name}...")
        yield streaming.done(Stage.NAME_CHECK, f"Confirmed: {request.subject_name}")
        yield streaming.result(
            ResearchReport(subject_name=request.subject_name, original_query=request.subject_name)
        )


def read_stream(response) -> list[dict]:
    decoder = SSEFrameDecoder()
    return decoder.feed(response.text) + decoder.flush()


def test_health(client):
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok", "service": "interviewiq"}


def test_list_models(client):
    response = client.get("/api/models")
    assert response.status_code == 200
    models = response.json()["models"]
    assert [m["id"] for m in models] == ["gemini-2.5-flash", "gemini-2.0-flash", "gemini-2.0-flash-lite"]
    assert [m["rank"] for m in models] == [1, 2, 3]


def test_research_requires_bearer_token(client):
    response = client.post("/api/research-guest", json={"guestName": "Jane Doe"})
    assert response.status_code == 401


def test_research_rejects_bad_token(client):
    response = client.post(
        "/api/research-guest",
        json={"guestName": "Jane Doe"},
        headers={"Authorization": "Bearer not-a-jwt"},
    )
    assert response.status_code == 401


def test_research_rejects_empty_guest_name(client, auth_headers):
    with patch("interviewiq.api.deps.users.get_api_keys", return_value={"youtubeApiKey": "", "geminiApiKey": ""}):
        response = client.post("/api/research-guest", json={"guestName": "  "}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"] == "Guest name is required"


def test_research_streams_progress_then_result(client, auth_headers):
    with (
        patch("interviewiq.api.deps.users.get_api_keys", return_value={"youtubeApiKey": "", "geminiApiKey": ""}),
        patch("interviewiq.api.routes.research.ResearchOrchestrator", FakeOrchestrator),
    ):
        response = client.post(
            "/api/research-guest",
            json={"guestName": "Jane Doe", "context": "her novels"},
            headers=auth_headers,
        )

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/event-stream")
    payloads = read_stream(response)
    assert [p["type"] for p in payloads] == ["progress", "progress", "result"]
    assert payloads[0]["stage"] == "start"
    assert payloads[-1]["data"]["subjectName"] == "Jane Doe"
    assert FakeOrchestrator.last_request.context == "her novels"
    assert FakeOrchestrator.last_request.mode == ResearchMode.FREE
    assert FakeOrchestrator.last_request.search_api_key is None


def test_user_with_both_keys_runs_pro_mode(client, auth_headers):
    keys = {"youtubeApiKey": "yt-user", "geminiApiKey": "gm-user"}
    with (
        patch("interviewiq.api.deps.users.get_api_keys", return_value=keys),
        patch("interviewiq.api.routes.research.ResearchOrchestrator", FakeOrchestrator),
    ):
        response = client.post("/api/research-guest", json={"guestName": "Jane Doe"}, headers=auth_headers)

    assert response.status_code == 200
    assert FakeOrchestrator.last_request.mode == ResearchMode.PRO
    assert FakeOrchestrator.last_request.search_api_key == "yt-user"
    assert FakeOrchestrator.last_request.llm_api_key == "gm-user"


def test_generate_questions_returns_structured_result(client, auth_headers):
    result = QuestionsResponse(success=True, data={"categories": []})
    with (
        patch("interviewiq.api.deps.users.get_api_keys", return_value={"youtubeApiKey": "", "geminiApiKey": "gm"}),
        patch(
            "interviewiq.api.routes.questions.QuestionGenerator.generate",
            new=AsyncMock(return_value=result),
        ) as generate,
    ):
        response = client.post(
            "/api/generate-questions",
            json={"interviewerName": "Sam", "guestName": "Jane Doe", "pastInterviewsSummary": "notes"},
            headers=auth_headers,
        )

    assert response.status_code == 200
    assert response.json() == {"success": True, "data": {"categories": []}, "error": None}
    sent = generate.await_args.args[0]
    assert sent.questionCount == 15


def test_generate_questions_without_any_key_is_400(client, auth_headers):
    from interviewiq.config import settings

    with (
        patch.object(settings, "gemini_api_key", ""),
        patch("interviewiq.api.deps.users.get_api_keys", return_value={"youtubeApiKey": "", "geminiApiKey": ""}),
    ):
        response = client.post(
            "/api/generate-questions",
            json={"interviewerName": "Sam", "guestName": "Jane Doe"},
            headers=auth_headers,
        )

    assert response.status_code == 400
    assert "Gemini API key is missing" in response.json()["detail"]


def test_provider_quota_error_maps_to_429(client, auth_headers):
    from interviewiq.errors import QuotaExhausted

    with (
        patch("interviewiq.api.deps.users.get_api_keys", return_value={"youtubeApiKey": "", "geminiApiKey": "gm"}),
        patch(
            "interviewiq.api.routes.questions.QuestionGenerator.generate",
            new=AsyncMock(side_effect=QuotaExhausted("Gemini quota exhausted")),
        ),
    ):
        response = client.post(
            "/api/generate-questions",
            json={"interviewerName": "Sam", "guestName": "Jane Doe"},
            headers=auth_headers,
        )

    assert response.status_code == 429
    assert response.json() == {"error": "Gemini quota exhausted"}
