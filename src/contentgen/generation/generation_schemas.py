"""Pydantic schemas for the generation API."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .generation_models import Asset, GenerationJob, JobStatusView, ModelSummary


class GenerateRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str = Field(..., min_length=1)
    prompt: str
    options: dict[str, Any] = Field(default_factory=dict)
    organization_id: str | None = None
    project_id: str | None = None


class AssetPayload(BaseModel):
    url: str
    type: str
    metadata: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def from_domain(cls, asset: Asset) -> "AssetPayload":
        return cls(url=asset.url, type=asset.type, metadata=asset.metadata)


class JobStatusResponse(BaseModel):
    job_id: str
    status: str
    progress: int
    message: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_view(cls, view: JobStatusView) -> "JobStatusResponse":
        return cls(
            job_id=view.job_id,
            status=view.status.value,
            progress=view.progress,
            message=view.message,
            error_message=view.error_message,
            created_at=view.created_at,
            completed_at=view.completed_at,
        )


class JobResultsResponse(BaseModel):
    job_id: str
    assets: list[AssetPayload]


class JobSummary(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    job_id: str
    model_id: str
    status: str
    progress: int
    prompt: str
    provider_job_id: str | None = None
    error_message: str | None = None
    has_results: bool = False
    created_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_domain(cls, job: GenerationJob) -> "JobSummary":
        return cls(
            job_id=job.job_id,
            model_id=job.model_id,
            status=job.status.value,
            progress=job.progress,
            prompt=job.prompt,
            provider_job_id=job.provider_job_id,
            error_message=job.error_message,
            has_results=job.result_assets is not None,
            created_at=job.created_at,
            completed_at=job.completed_at,
        )


class JobListResponse(BaseModel):
    jobs: list[JobSummary]
    total: int
    limit: int
    offset: int


class ModelSummaryPayload(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    provider_name: str
    model_type: str
    description: str | None = None
    api_key_type: str
    estimated_time: int | None = None
    cost_per_generation: float | None = None

    @classmethod
    def from_domain(cls, summary: ModelSummary) -> "ModelSummaryPayload":
        cost = summary.cost_per_generation
        return cls(
            model_id=summary.model_id,
            provider_name=summary.provider_name,
            model_type=summary.model_type,
            description=summary.description,
            api_key_type=summary.api_key_type,
            estimated_time=summary.estimated_time,
            cost_per_generation=float(cost) if cost is not None else None,
        )


class ModelListResponse(BaseModel):
    models: list[ModelSummaryPayload]
