from __future__ import annotations

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from src.contentgen.queue.queue_api import router
from src.contentgen.queue.redis_queue import RedisJobQueue
from tests.conftest import bearer
from tests.mocks.redis import FakeRedis


def build_client(auth_service, queue: RedisJobQueue | None) -> TestClient:
    app = FastAPI()
    app.include_router(router)
    app.state.auth_service = auth_service
    app.state.job_queue = queue
    return TestClient(app)


@pytest.fixture
def queue() -> RedisJobQueue:
    return RedisJobQueue(FakeRedis())


def test_enqueue_and_read_status(auth_service, queue) -> None:
    client = build_client(auth_service, queue)
    headers = bearer(auth_service, "user-1")

    created = client.post(
        "/api/ai/queue/jobs",
        json={"type": "content-generation", "prompt": "spring sale post", "parameters": {"tone": "playful"}},
        headers=headers,
    )

    assert created.status_code == 202
    job_id = created.json()["job_id"]
    assert created.json()["status"] == "queued"

    status = client.get(f"/api/ai/queue/jobs/{job_id}", headers=headers)
    assert status.status_code == 200
    assert status.json()["status"] == "queued"

    stats = client.get("/api/ai/queue/stats", headers=headers).json()
    assert stats == {"queued": 1, "processing": 0, "completed": 0, "failed": 0}


def test_queue_status_is_owner_only(auth_service, queue) -> None:
    client = build_client(auth_service, queue)
    created = client.post(
        "/api/ai/queue/jobs",
        json={"type": "content-generation", "prompt": "post"},
        headers=bearer(auth_service, "user-1"),
    )

    response = client.get(
        f"/api/ai/queue/jobs/{created.json()['job_id']}",
        headers=bearer(auth_service, "user-2"),
    )

    assert response.status_code == 404


def test_unknown_job_type_is_rejected(auth_service, queue) -> None:
    client = build_client(auth_service, queue)

    response = client.post(
        "/api/ai/queue/jobs",
        json={"type": "video-generation", "prompt": "post"},
        headers=bearer(auth_service, "user-1"),
    )

    assert response.status_code == 422


def test_queue_disabled_returns_503(auth_service) -> None:
    client = build_client(auth_service, None)

    response = client.get("/api/ai/queue/stats", headers=bearer(auth_service, "user-1"))

    assert response.status_code == 503
    assert response.json()["detail"]["failure_reason"] == "queue_unavailable"


def test_job_type_without_worker_is_rejected(auth_service, queue) -> None:
    client = build_client(auth_service, queue)

    response = client.post(
        "/api/ai/queue/jobs",
        json={"type": "image-generation", "prompt": "a fox"},
        headers=bearer(auth_service, "user-1"),
    )

    assert response.status_code == 400
    assert response.json()["detail"]["failure_reason"] == "unsupported_job_type"
    assert queue.get_queue_stats().queued == 0
