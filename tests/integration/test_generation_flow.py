"""End-to-end flows through the assembled application."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from src.contentgen.config import AppConfig, QueueSettings
from src.contentgen.main import create_app
from tests.conftest import TEST_MASTER_KEY, TEST_SIGNING_KEY, bearer
from tests.mocks.providers import (
    DummyAsyncClient,
    apiframe_task,
    dalle_image_response,
    install_client,
)


@pytest.fixture
def app_client(engine, session_factory) -> TestClient:
    config = AppConfig(
        database_url="sqlite://",
        engine=engine,
        session_factory=session_factory,
        queue=QueueSettings(redis_url=None, queue_name="ai-jobs", poll_timeout_seconds=1),
        jwt_signing_key=TEST_SIGNING_KEY,
        api_key_encryption_key=TEST_MASTER_KEY,
        provider_timeout_seconds=5,
        seed_model_configs=True,
    )
    return TestClient(create_app(config))


@pytest.fixture
def headers(app_client) -> dict[str, str]:
    return bearer(app_client.app.state.auth_service, "user-1")


def test_health(app_client) -> None:
    assert app_client.get("/health").json() == {"status": "ok"}


def test_synchronous_dalle_flow(monkeypatch, app_client, headers) -> None:
    monkeypatch.setenv("DALLE_3_API_KEY", "sk-dalle")
    client = install_client(
        monkeypatch,
        DummyAsyncClient([dalle_image_response("https://img.test/1.png", "https://img.test/2.png")]),
    )

    created = app_client.post(
        "/api/ai/generate",
        json={"model_id": "dalle-3", "prompt": "a lighthouse", "options": {"n": 2}},
        headers=headers,
    ).json()
    status = app_client.get(f"/api/ai/status/{created['job_id']}", headers=headers).json()
    results = app_client.get(f"/api/ai/results/{created['job_id']}", headers=headers).json()

    assert created["status"] == "completed"
    assert (status["status"], status["progress"]) == ("completed", 100)
    assert [asset["url"] for asset in results["assets"]] == ["https://img.test/1.png", "https://img.test/2.png"]
    assert len(client.requests) == 1


def test_asynchronous_apiframe_flow(monkeypatch, app_client, headers) -> None:
    saved = app_client.post(
        "/api/user-api-keys/keys",
        json={"model_id": "mj-v6", "api_key": "af-user-secret"},
        headers=headers,
    )
    assert saved.status_code == 201

    client = install_client(
        monkeypatch,
        DummyAsyncClient(
            [
                apiframe_task("processing"),
                apiframe_task("processing", progress=30),
                apiframe_task("processing", progress=70),
                apiframe_task("finished"),
                apiframe_task("finished", image_urls=["https://cdn.apiframe.test/1.png"]),
            ]
        ),
    )

    created = app_client.post(
        "/api/ai/generate",
        json={"model_id": "mj-v6", "prompt": "a lighthouse", "options": {"aspectRatio": "16:9"}},
        headers=headers,
    ).json()
    job_id = created["job_id"]
    assert created["status"] == "processing"
    assert created["estimated_time"] == 90

    progress = [
        app_client.get(f"/api/ai/status/{job_id}", headers=headers).json()["progress"]
        for _ in range(3)
    ]
    first = app_client.get(f"/api/ai/results/{job_id}", headers=headers).json()
    second = app_client.get(f"/api/ai/results/{job_id}", headers=headers).json()

    assert progress == [30, 70, 100]
    assert [asset["url"] for asset in first["assets"]] == ["https://cdn.apiframe.test/1.png"]
    assert second == first
    assert client.urls == [
        "https://api.apiframe.pro/imagine",
        "https://api.apiframe.pro/fetch",
        "https://api.apiframe.pro/fetch",
        "https://api.apiframe.pro/fetch",
        "https://api.apiframe.pro/fetch",
    ]
    assert client.requests[0]["headers"]["Authorization"] == "af-user-secret"
    assert client.requests[0]["json"]["aspect_ratio"] == "16:9"


def test_jobs_are_private_across_users(monkeypatch, app_client, headers) -> None:
    monkeypatch.setenv("DALLE_3_API_KEY", "sk-dalle")
    install_client(monkeypatch, DummyAsyncClient([dalle_image_response("https://img.test/1.png")]))
    job_id = app_client.post(
        "/api/ai/generate", json={"model_id": "dalle-3", "prompt": "fox"}, headers=headers
    ).json()["job_id"]
    other = bearer(app_client.app.state.auth_service, "user-2")

    assert app_client.get(f"/api/ai/status/{job_id}", headers=other).status_code == 404
    assert app_client.get("/api/ai/jobs", headers=other).json()["total"] == 0
    assert app_client.get("/api/ai/jobs", headers=headers).json()["total"] == 1


def test_queue_routes_report_disabled_queue(app_client, headers) -> None:
    response = app_client.get("/api/ai/queue/stats", headers=headers)

    assert response.status_code == 503
    assert response.json()["detail"]["failure_reason"] == "queue_unavailable"
