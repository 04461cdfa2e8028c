from __future__ import annotations

import json

import pytest

from src.contentgen.exceptions import JobNotFoundError
from src.contentgen.queue.redis_queue import (
    QueuedJob,
    QueueJobType,
    QueuePriority,
    RedisJobQueue,
)
from tests.mocks.redis import FakeRedis


@pytest.fixture
def redis_client() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def queue(redis_client) -> RedisJobQueue:
    return RedisJobQueue(redis_client, queue_name="ai-jobs")


def add(queue: RedisJobQueue, prompt: str = "write a slogan") -> QueuedJob:
    return queue.add_job(
        job_type=QueueJobType.CONTENT_GENERATION,
        user_id="user-1",
        prompt=prompt,
        priority=QueuePriority.HIGH,
        parameters={"tone": "playful"},
    )


def test_add_job_pushes_payload_and_status(queue, redis_client) -> None:
    job = add(queue)

    assert job.id.startswith("ai-job-")
    payload = json.loads(redis_client.lists["ai-jobs"][0])
    assert payload["id"] == job.id
    assert payload["type"] == "content-generation"
    assert payload["priority"] == "high"
    assert payload["status"] == "queued"
    assert payload["parameters"] == {"tone": "playful"}

    status = queue.get_job_status(job.id)
    assert status["status"] == "queued"
    assert status["userId"] == "user-1"
    assert status["type"] == "content-generation"


def test_jobs_are_served_in_fifo_order(queue) -> None:
    first = add(queue, "first")
    second = add(queue, "second")

    assert queue.get_next_job(timeout_seconds=1).id == first.id
    assert queue.get_next_job(timeout_seconds=1).id == second.id


def test_next_job_moves_to_processing(queue, redis_client) -> None:
    job = add(queue)

    taken = queue.get_next_job(timeout_seconds=3)

    assert taken.prompt == "write a slogan"
    assert taken.parameters == {"tone": "playful"}
    assert redis_client.brpop_timeouts == [3]
    assert queue.get_queue_stats().queued == 0
    assert queue.get_queue_stats().processing == 1
    assert queue.get_job_status(job.id)["status"] == "processing"
    assert "startedAt" in queue.get_job_status(job.id)


def test_empty_queue_returns_none(queue) -> None:
    assert queue.get_next_job(timeout_seconds=1) is None


def test_complete_job_records_result(queue, redis_client) -> None:
    add(queue)
    job = queue.get_next_job(timeout_seconds=1)

    queue.complete_job(job, {"content": "Fresh ideas daily"})

    stats = queue.get_queue_stats()
    assert (stats.processing, stats.completed) == (0, 1)
    status = queue.get_job_status(job.id)
    assert status["status"] == "completed"
    assert json.loads(status["result"]) == {"content": "Fresh ideas daily"}
    record = json.loads(redis_client.lists["ai-jobs-completed"][0])
    assert record["result"] == {"content": "Fresh ideas daily"}


def test_fail_job_records_error(queue) -> None:
    add(queue)
    job = queue.get_next_job(timeout_seconds=1)

    queue.fail_job(job, "provider timeout")

    stats = queue.get_queue_stats()
    assert (stats.processing, stats.failed) == (0, 1)
    status = queue.get_job_status(job.id)
    assert status["status"] == "failed"
    assert status["error"] == "provider timeout"


def test_finishing_unknown_job_raises(queue) -> None:
    stray = QueuedJob(id="ai-job-0-missing", type=QueueJobType.CONTENT_GENERATION, user_id="u", prompt="p")

    with pytest.raises(JobNotFoundError):
        queue.complete_job(stray, {})
    with pytest.raises(JobNotFoundError):
        queue.fail_job(stray, "boom")


def test_cleanup_keeps_newest_finished_jobs(queue, redis_client) -> None:
    redis_client.lists["ai-jobs-completed"] = [f"done-{i}" for i in range(150)]
    redis_client.lists["ai-jobs-failed"] = [f"failed-{i}" for i in range(5)]

    queue.cleanup_old_jobs()

    stats = queue.get_queue_stats()
    assert (stats.completed, stats.failed) == (100, 5)
    assert redis_client.lists["ai-jobs-completed"][0] == "done-0"


def test_unknown_status_is_none(queue) -> None:
    assert queue.get_job_status("ai-job-404") is None
