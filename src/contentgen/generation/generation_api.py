"""HTTP routes for generation jobs."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status

from ..auth.auth_dependencies import require_user
from ..auth.auth_service import UserIdentity
from ..exceptions import (
    AppError,
    ConfigurationError,
    CredentialError,
    JobNotFoundError,
    JobNotReadyError,
    ModelNotFoundError,
    ModelUnavailableError,
    ProviderError,
    ProviderErrorKind,
)
from .generation_models import GenerationRequest, JobStatus
from .generation_schemas import (
    AssetPayload,
    GenerateRequest,
    JobListResponse,
    JobResultsResponse,
    JobStatusResponse,
    JobSummary,
    ModelListResponse,
    ModelSummaryPayload,
)
from .generation_service import GenerationService

router = APIRouter(prefix="/api/ai", tags=["generation"])
logger = logging.getLogger(__name__)


def get_generation_service(request: Request) -> GenerationService:
    """Fetch generation service from application state."""
    try:
        return request.app.state.generation_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - service not wired
        raise RuntimeError("GenerationService is not configured") from exc


def _error(status_code: int, failure_reason: str, message: str, **extra: Any) -> HTTPException:
    detail: dict[str, Any] = {"status": "error", "failure_reason": failure_reason, "message": message}
    detail.update(extra)
    return HTTPException(status_code=status_code, detail=detail)


def to_http_error(exc: AppError) -> HTTPException:
    """Translate a domain error category into an HTTP response."""
    message = str(exc)
    if isinstance(exc, ModelNotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, "model_not_found", message)
    if isinstance(exc, ModelUnavailableError):
        return _error(status.HTTP_409_CONFLICT, "model_unavailable", message)
    if isinstance(exc, ConfigurationError):
        return _error(status.HTTP_400_BAD_REQUEST, "invalid_model_config", message)
    if isinstance(exc, CredentialError):
        return _error(status.HTTP_403_FORBIDDEN, "missing_api_key", message)
    if isinstance(exc, JobNotFoundError):
        return _error(status.HTTP_404_NOT_FOUND, "job_not_found", message)
    if isinstance(exc, JobNotReadyError):
        return _error(status.HTTP_409_CONFLICT, "not_ready", message, job_status=exc.status)
    if isinstance(exc, ProviderError):
        if exc.kind is ProviderErrorKind.RATE_LIMITED:
            return _error(status.HTTP_429_TOO_MANY_REQUESTS, "rate_limited", message, provider=exc.provider)
        return _error(
            status.HTTP_502_BAD_GATEWAY,
            "provider_error",
            message,
            provider=exc.provider,
            kind=exc.kind.value,
        )
    return _error(status.HTTP_500_INTERNAL_SERVER_ERROR, "internal_error", message)


@router.get("/models", response_model=ModelListResponse)
def list_models(
    model_type: str | None = Query(default=None, alias="type"),
    active_only: bool = Query(default=True),
    service: GenerationService = Depends(get_generation_service),
) -> ModelListResponse:
    models = service.get_available_models(model_type=model_type, active_only=active_only)
    return ModelListResponse(models=[ModelSummaryPayload.from_domain(item) for item in models])


@router.post("/generate")
async def generate_content(
    payload: GenerateRequest,
    user: UserIdentity = Depends(require_user),
    service: GenerationService = Depends(get_generation_service),
) -> dict[str, Any]:
    if not payload.prompt.strip():
        raise _error(status.HTTP_400_BAD_REQUEST, "invalid_request", "Prompt is required")

    request = GenerationRequest(
        model_id=payload.model_id,
        prompt=payload.prompt,
        user_id=user.user_id,
        options=payload.options,
        organization_id=payload.organization_id or user.organization_id,
        project_id=payload.project_id or user.project_id,
    )
    try:
        receipt = await service.generate_content(request)
    except AppError as exc:
        logger.warning(
            "generation.api.generate.rejected",
            extra={"model_id": payload.model_id, "user_id": user.user_id, "error": type(exc).__name__},
        )
        raise to_http_error(exc) from exc

    body: dict[str, Any] = dict(receipt.metadata)
    body.update(
        {
            "job_id": receipt.job_id,
            "status": receipt.status.value,
            "estimated_time": receipt.estimated_time,
        }
    )
    return body


@router.get("/status/{job_id}", response_model=JobStatusResponse)
async def get_job_status(
    job_id: str,
    user: UserIdentity = Depends(require_user),
    service: GenerationService = Depends(get_generation_service),
) -> JobStatusResponse:
    try:
        view = await service.check_job_status(job_id, user.user_id)
    except AppError as exc:
        raise to_http_error(exc) from exc
    return JobStatusResponse.from_view(view)


@router.get("/results/{job_id}", response_model=JobResultsResponse)
async def get_job_results(
    job_id: str,
    user: UserIdentity = Depends(require_user),
    service: GenerationService = Depends(get_generation_service),
) -> JobResultsResponse:
    try:
        assets = await service.get_job_results(job_id, user.user_id)
    except AppError as exc:
        raise to_http_error(exc) from exc
    return JobResultsResponse(
        job_id=job_id,
        assets=[AssetPayload.from_domain(asset) for asset in assets],
    )


@router.get("/jobs", response_model=JobListResponse)
def list_jobs(
    limit: int = Query(default=20, ge=1, le=100),
    offset: int = Query(default=0, ge=0),
    job_status: JobStatus | None = Query(default=None, alias="status"),
    user: UserIdentity = Depends(require_user),
    service: GenerationService = Depends(get_generation_service),
) -> JobListResponse:
    page = service.get_user_jobs(user.user_id, limit=limit, offset=offset, status=job_status)
    return JobListResponse(
        jobs=[JobSummary.from_domain(job) for job in page.jobs],
        total=page.total,
        limit=page.limit,
        offset=page.offset,
    )


@router.delete("/jobs/{job_id}", response_model=JobSummary)
def cancel_job(
    job_id: str,
    user: UserIdentity = Depends(require_user),
    service: GenerationService = Depends(get_generation_service),
) -> JobSummary:
    try:
        job = service.cancel_job(job_id, user.user_id)
    except AppError as exc:
        raise to_http_error(exc) from exc
    return JobSummary.from_domain(job)
