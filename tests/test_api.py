# =============================================================================
# API Tests — FastAPI TestClient
# =============================================================================
#
# End-to-end through the HTTP layer with plain-text uploads and no LLM
# provider, so every utterance comes from the deterministic fallbacks.
#
# The client is used as a context manager: sessions run on background
# tasks of the client's event loop, which must outlive single requests.
# =============================================================================

from __future__ import annotations

import time

import pytest
from fastapi.testclient import TestClient

from app.agents.registry import SessionRegistry
from app.config import Settings
from app.main import create_app
from app.services.documents import DocumentStore

ANNUAL_REPORT = (
    "2024年度の売上高は1,200億円となり、前年比8%の増収となりました。"
    "営業利益は150億円で過去最高を更新しました。"
    "配当につきましては、1株当たり年間50円を予定しております。"
)


@pytest.fixture
def client(tmp_path):
    settings = Settings(
        upload_dir=str(tmp_path),
        answer_delay_seconds=0,
        next_turn_delay_seconds=0,
        random_seed=42,
    )
    app = create_app(
        settings=settings,
        document_store=DocumentStore(settings=settings),
        registry=SessionRegistry(settings=settings, llm=None),
    )
    with TestClient(app) as test_client:
        yield test_client


def _upload(client, name: str = "annual_report.txt", text: str = ANNUAL_REPORT):
    return client.post(
        "/documents",
        files=[("files", (name, text.encode("utf-8"), "text/plain"))],
    )


def _wait_until_done(client, session_id: str, timeout: float = 5.0) -> dict:
    deadline = time.monotonic() + timeout
    while True:
        body = client.get(f"/simulations/{session_id}").json()
        if body["status"] in ("completed", "error"):
            return body
        if time.monotonic() > deadline:
            raise AssertionError(f"session still {body['status']}")
        time.sleep(0.05)


# ---------------------------------------------------------------------------
# Test: Health
# ---------------------------------------------------------------------------


def test_health_check(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["generation_available"] is False


# ---------------------------------------------------------------------------
# Test: Documents
# ---------------------------------------------------------------------------


class TestDocumentsAPI:
    def test_upload_and_list(self, client):
        response = _upload(client)
        assert response.status_code == 200
        files = response.json()["files"]
        assert files[0]["original_name"] == "annual_report.txt"
        assert files[0]["topics"]
        assert "text_content" not in files[0]

        listing = client.get("/documents").json()
        assert listing["message"] == "Found 1 uploaded documents"
        assert listing["documents"][0]["id"] == files[0]["id"]

    def test_upload_unsupported_only(self, client):
        response = client.post(
            "/documents",
            files=[("files", ("tool.exe", b"MZ", "application/octet-stream"))],
        )
        assert response.status_code == 400
        assert "error" in response.json()

    def test_faq_for_uploaded_document(self, client):
        doc_id = _upload(client).json()["files"][0]["id"]
        response = client.post("/documents/faq", json={"document_ids": [doc_id]})
        assert response.status_code == 200
        body = response.json()
        assert len(body["faqs"]) == 5
        assert body["document_count"] == 1

    def test_faq_without_ids(self, client):
        response = client.post("/documents/faq", json={"document_ids": []})
        assert response.status_code == 400
        assert response.json()["error"] == "No document IDs provided"

    def test_faq_unknown_ids(self, client):
        response = client.post("/documents/faq", json={"document_ids": ["nope"]})
        assert response.status_code == 400
        assert response.json()["error"] == "No valid documents found"


# ---------------------------------------------------------------------------
# Test: Simulations
# ---------------------------------------------------------------------------


class TestSimulationsAPI:
    def test_session_runs_to_completion(self, client):
        _upload(client)
        response = client.post("/simulations", json={"documents": ["annual_report.txt"]})
        assert response.status_code == 200
        session_id = response.json()["session_id"]

        body = _wait_until_done(client, session_id)
        assert body["status"] == "completed"
        assert body["message_count"] == 2
        assert body["max_messages"] == 2
        assert [m["type"] for m in body["messages"]] == ["shareholder", "company"]
        assert [m["voice_profile"] for m in body["messages"]] == ["shareholder", "company"]
        assert len(body["messages"][1]["content"]) <= 600

    def test_expected_question_used_first(self, client):
        _upload(client)
        response = client.post(
            "/simulations",
            json={
                "documents": ["annual_report.txt"],
                "expected_questions": ["・配当方針について教えてください", "  "],
            },
        )
        body = _wait_until_done(client, response.json()["session_id"])
        assert body["messages"][0]["content"] == "配当方針について教えてください"
        assert body["expected_question_count"] == 1

    def test_create_without_auto_start(self, client):
        _upload(client)
        response = client.post(
            "/simulations",
            json={"documents": ["annual_report.txt"], "auto_start": False},
        )
        session_id = response.json()["session_id"]
        assert response.json()["status"] == "starting"
        assert client.get(f"/simulations/{session_id}").json()["message_count"] == 0

        started = client.post(f"/simulations/{session_id}/start")
        assert started.status_code == 200
        assert _wait_until_done(client, session_id)["status"] == "completed"

        again = client.post(f"/simulations/{session_id}/start")
        assert again.status_code == 400

    def test_unknown_documents(self, client):
        response = client.post("/simulations", json={"documents": ["missing.pdf"]})
        assert response.status_code == 400
        assert response.json()["error"] == "No valid documents found"

    def test_empty_document_list_rejected(self, client):
        response = client.post("/simulations", json={"documents": []})
        assert response.status_code == 422

    def test_unknown_session(self, client):
        assert client.get("/simulations/missing").status_code == 404
        response = client.post("/simulations/missing/actions", json={"action": "end"})
        assert response.status_code == 404

    def test_actions_on_completed_session(self, client):
        _upload(client)
        session_id = client.post(
            "/simulations", json={"documents": ["annual_report.txt"]},
        ).json()["session_id"]
        _wait_until_done(client, session_id)

        response = client.post(
            f"/simulations/{session_id}/actions", json={"action": "next_question"},
        )
        assert response.status_code == 400

        response = client.post(f"/simulations/{session_id}/actions", json={"action": "end"})
        assert response.status_code == 200
        assert response.json()["status"] == "completed"

    def test_invalid_action(self, client):
        _upload(client)
        session_id = client.post(
            "/simulations", json={"documents": ["annual_report.txt"]},
        ).json()["session_id"]
        response = client.post(
            f"/simulations/{session_id}/actions", json={"action": "pause"},
        )
        assert response.status_code == 422


# ---------------------------------------------------------------------------
# Test: Sessions
# ---------------------------------------------------------------------------


class TestSessionsAPI:
    def test_list_and_export(self, client):
        _upload(client)
        session_id = client.post(
            "/simulations", json={"documents": ["annual_report.txt"]},
        ).json()["session_id"]
        _wait_until_done(client, session_id)

        sessions = client.get("/sessions").json()
        assert sessions[0]["id"] == session_id
        assert sessions[0]["document_names"] == ["annual_report.txt"]

        response = client.get(f"/sessions/{session_id}/export")
        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert f"qa-session-{session_id}.txt" in response.headers["content-disposition"]
        assert f"セッション ID: {session_id}" in response.text
        assert "エクスポート完了" in response.text

    def test_export_unknown_session(self, client):
        assert client.get("/sessions/missing/export").status_code == 404
