"""HTTP routes for the best-effort Redis queue."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field
from redis.exceptions import RedisError

from ..auth.auth_dependencies import require_user
from ..auth.auth_service import UserIdentity
from .redis_queue import WORKER_JOB_TYPES, QueueJobType, QueuePriority, RedisJobQueue

router = APIRouter(prefix="/api/ai/queue", tags=["queue"])
logger = logging.getLogger(__name__)


class EnqueueRequest(BaseModel):
    type: QueueJobType
    prompt: str = Field(..., min_length=1)
    priority: QueuePriority = QueuePriority.MEDIUM
    parameters: dict[str, Any] = Field(default_factory=dict)
    project_id: str | None = None
    organization_id: str | None = None


class EnqueueResponse(BaseModel):
    job_id: str
    status: str
    created_at: str


class QueueJobStatusResponse(BaseModel):
    job_id: str
    status: str
    details: dict[str, str]


class QueueStatsResponse(BaseModel):
    queued: int
    processing: int
    completed: int
    failed: int


def get_job_queue(request: Request) -> RedisJobQueue:
    queue = getattr(request.app.state, "job_queue", None)
    if queue is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail={"status": "error", "failure_reason": "queue_unavailable"},
        )
    return queue


def _queue_error(exc: RedisError) -> HTTPException:
    logger.error("queue.api.redis_error", extra={"error": str(exc)})
    return HTTPException(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        detail={"status": "error", "failure_reason": "queue_unavailable", "message": str(exc)},
    )


@router.post("/jobs", response_model=EnqueueResponse, status_code=status.HTTP_202_ACCEPTED)
def enqueue_job(
    payload: EnqueueRequest,
    user: UserIdentity = Depends(require_user),
    queue: RedisJobQueue = Depends(get_job_queue),
) -> EnqueueResponse:
    if payload.type not in WORKER_JOB_TYPES:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={
                "status": "error",
                "failure_reason": "unsupported_job_type",
                "message": f"No queue worker handles {payload.type.value} jobs",
            },
        )
    try:
        job = queue.add_job(
            job_type=payload.type,
            user_id=user.user_id,
            prompt=payload.prompt,
            priority=payload.priority,
            project_id=payload.project_id or user.project_id,
            organization_id=payload.organization_id or user.organization_id,
            parameters=payload.parameters,
        )
    except RedisError as exc:
        raise _queue_error(exc) from exc
    return EnqueueResponse(job_id=job.id, status="queued", created_at=job.created_at)


@router.get("/jobs/{job_id}", response_model=QueueJobStatusResponse)
def get_queue_job(
    job_id: str,
    user: UserIdentity = Depends(require_user),
    queue: RedisJobQueue = Depends(get_job_queue),
) -> QueueJobStatusResponse:
    try:
        data = queue.get_job_status(job_id)
    except RedisError as exc:
        raise _queue_error(exc) from exc
    if not data or data.get("userId") not in (None, user.user_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail={"status": "error", "failure_reason": "job_not_found"},
        )
    return QueueJobStatusResponse(job_id=job_id, status=data.get("status", "unknown"), details=data)


@router.get("/stats", response_model=QueueStatsResponse)
def get_queue_stats(
    _: UserIdentity = Depends(require_user),
    queue: RedisJobQueue = Depends(get_job_queue),
) -> QueueStatsResponse:
    try:
        stats = queue.get_queue_stats()
    except RedisError as exc:
        raise _queue_error(exc) from exc
    return QueueStatsResponse(
        queued=stats.queued,
        processing=stats.processing,
        completed=stats.completed,
        failed=stats.failed,
    )
