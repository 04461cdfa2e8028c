"""Best-effort job queue over Redis lists.

Jobs are JSON documents moved between four lists (queued, processing,
completed, failed) with a status hash per job at ``job:<id>``. Ordering is
FIFO per list and there is no at-most-once guarantee: a worker that dies
after popping a job leaves it stranded in the processing list. This queue is
not a system of record for billable generation jobs.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import StrEnum
from typing import Any

from redis import ConnectionPool, Redis

from ..exceptions import JobNotFoundError

logger = logging.getLogger(__name__)

KEEP_FINISHED_JOBS = 100


class QueueJobType(StrEnum):
    CONTENT_GENERATION = "content-generation"
    IMAGE_GENERATION = "image-generation"
    CONTENT_OPTIMIZATION = "content-optimization"


# Types the bundled worker has handlers for; image generation goes through /api/ai/generate.
WORKER_JOB_TYPES = frozenset({QueueJobType.CONTENT_GENERATION, QueueJobType.CONTENT_OPTIMIZATION})


class QueuePriority(StrEnum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class QueueJobStatus(StrEnum):
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def new_queue_job_id() -> str:
    return f"ai-job-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


@dataclass(slots=True)
class QueuedJob:
    """Raw job description carried through the queue lists."""

    id: str
    type: QueueJobType
    user_id: str
    prompt: str
    priority: QueuePriority = QueuePriority.MEDIUM
    project_id: str | None = None
    organization_id: str | None = None
    parameters: dict[str, Any] = field(default_factory=dict)
    created_at: str = field(default_factory=_utcnow_iso)
    raw: str | None = field(default=None, repr=False, compare=False)

    def to_json(self) -> str:
        return json.dumps(
            {
                "id": self.id,
                "type": self.type.value,
                "user_id": self.user_id,
                "prompt": self.prompt,
                "priority": self.priority.value,
                "project_id": self.project_id,
                "organization_id": self.organization_id,
                "parameters": self.parameters,
                "created_at": self.created_at,
                "status": QueueJobStatus.QUEUED.value,
            },
            sort_keys=True,
        )

    @classmethod
    def from_json(cls, raw: str) -> "QueuedJob":
        data = json.loads(raw)
        return cls(
            id=data["id"],
            type=QueueJobType(data["type"]),
            user_id=data.get("user_id") or "",
            prompt=data.get("prompt") or "",
            priority=QueuePriority(data.get("priority") or QueuePriority.MEDIUM.value),
            project_id=data.get("project_id"),
            organization_id=data.get("organization_id"),
            parameters=dict(data.get("parameters") or {}),
            created_at=data.get("created_at") or _utcnow_iso(),
            raw=raw,
        )


@dataclass(slots=True)
class QueueStats:
    queued: int
    processing: int
    completed: int
    failed: int


def create_redis_client(url: str) -> Redis:
    pool = ConnectionPool.from_url(
        url,
        max_connections=10,
        socket_connect_timeout=5,
        retry_on_timeout=True,
        decode_responses=True,
    )
    return Redis(connection_pool=pool)


class RedisJobQueue:
    """LPUSH/BRPOP queue with per-job status hashes."""

    def __init__(self, client: Redis, *, queue_name: str = "ai-jobs") -> None:
        self._client = client
        self.queue_name = queue_name
        self.processing_list = f"{queue_name}-processing"
        self.completed_list = f"{queue_name}-completed"
        self.failed_list = f"{queue_name}-failed"

    @staticmethod
    def status_key(job_id: str) -> str:
        return f"job:{job_id}"

    def add_job(
        self,
        *,
        job_type: QueueJobType,
        user_id: str,
        prompt: str,
        priority: QueuePriority = QueuePriority.MEDIUM,
        project_id: str | None = None,
        organization_id: str | None = None,
        parameters: dict[str, Any] | None = None,
    ) -> QueuedJob:
        job = QueuedJob(
            id=new_queue_job_id(),
            type=job_type,
            user_id=user_id,
            prompt=prompt,
            priority=priority,
            project_id=project_id,
            organization_id=organization_id,
            parameters=dict(parameters or {}),
        )
        self._client.lpush(self.queue_name, job.to_json())
        self._client.hset(
            self.status_key(job.id),
            mapping={
                "status": QueueJobStatus.QUEUED.value,
                "createdAt": job.created_at,
                "type": job.type.value,
                "userId": user_id,
            },
        )
        logger.info("queue.job.added", extra={"queue_job_id": job.id, "type": job.type.value})
        return job

    def get_next_job(self, timeout_seconds: int = 10) -> QueuedJob | None:
        """Block up to ``timeout_seconds`` for the oldest queued job."""
        popped = self._client.brpop([self.queue_name], timeout=timeout_seconds)
        if not popped:
            return None
        _, raw = popped
        job = QueuedJob.from_json(raw)
        self._client.lpush(self.processing_list, raw)
        self._client.hset(
            self.status_key(job.id),
            mapping={"status": QueueJobStatus.PROCESSING.value, "startedAt": _utcnow_iso()},
        )
        return job

    def complete_job(self, job: QueuedJob, result: dict[str, Any]) -> None:
        self._require_known(job.id)
        finished_at = _utcnow_iso()
        record = json.loads(job.raw or job.to_json())
        record.update({"status": QueueJobStatus.COMPLETED.value, "result": result, "completedAt": finished_at})
        self._client.lpush(self.completed_list, json.dumps(record, sort_keys=True))
        self._client.lrem(self.processing_list, 1, job.raw or job.to_json())
        self._client.hset(
            self.status_key(job.id),
            mapping={
                "status": QueueJobStatus.COMPLETED.value,
                "result": json.dumps(result),
                "completedAt": finished_at,
            },
        )
        logger.info("queue.job.completed", extra={"queue_job_id": job.id})

    def fail_job(self, job: QueuedJob, error: str) -> None:
        self._require_known(job.id)
        failed_at = _utcnow_iso()
        record = json.loads(job.raw or job.to_json())
        record.update({"status": QueueJobStatus.FAILED.value, "error": error, "failedAt": failed_at})
        self._client.lpush(self.failed_list, json.dumps(record, sort_keys=True))
        self._client.lrem(self.processing_list, 1, job.raw or job.to_json())
        self._client.hset(
            self.status_key(job.id),
            mapping={"status": QueueJobStatus.FAILED.value, "error": error, "failedAt": failed_at},
        )
        logger.warning("queue.job.failed", extra={"queue_job_id": job.id, "error": error})

    def get_job_status(self, job_id: str) -> dict[str, str] | None:
        data = self._client.hgetall(self.status_key(job_id))
        return dict(data) if data else None

    def get_queue_stats(self) -> QueueStats:
        return QueueStats(
            queued=int(self._client.llen(self.queue_name)),
            processing=int(self._client.llen(self.processing_list)),
            completed=int(self._client.llen(self.completed_list)),
            failed=int(self._client.llen(self.failed_list)),
        )

    def cleanup_old_jobs(self) -> None:
        """Keep only the newest finished jobs in the completed and failed lists."""
        self._client.ltrim(self.completed_list, 0, KEEP_FINISHED_JOBS - 1)
        self._client.ltrim(self.failed_list, 0, KEEP_FINISHED_JOBS - 1)

    def _require_known(self, job_id: str) -> None:
        if not self._client.hgetall(self.status_key(job_id)):
            raise JobNotFoundError(job_id)
