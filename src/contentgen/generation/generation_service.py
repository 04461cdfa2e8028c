"""Orchestrates generation jobs across the model catalog, credentials and adapters."""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime

from ..adapters.adapters_base import GenerationAdapter
from ..adapters.adapters_registry import AdapterRegistry
from ..credentials.api_key_resolver import ApiKeyResolver
from ..exceptions import (
    JobNotFoundError,
    JobNotReadyError,
    ModelNotFoundError,
    ModelUnavailableError,
)
from ..repositories.generation_job_repository import GenerationJobRepository
from ..repositories.model_config_repository import ModelConfigRepository
from .generation_models import (
    OUTCOME_METADATA_KEY,
    Asset,
    AuthContext,
    CompletedOutcome,
    GenerationJob,
    GenerationReceipt,
    GenerationRequest,
    JobPage,
    JobStatus,
    JobStatusView,
    ModelConfig,
    ModelSummary,
    advance_status,
    clamp_progress,
    outcome_from_metadata,
)

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100
PROMPT_LOG_CHARS = 50


@dataclass(slots=True)
class GenerationService:
    """Stateless job orchestrator; every call re-resolves config, key and adapter."""

    model_repo: ModelConfigRepository
    job_repo: GenerationJobRepository
    key_resolver: ApiKeyResolver
    registry: AdapterRegistry
    log: logging.Logger = field(default_factory=lambda: logger)

    async def generate_content(self, request: GenerationRequest) -> GenerationReceipt:
        if not request.prompt or not request.prompt.strip():
            raise ValueError("Prompt is required")

        config = self._active_config(request.model_id)
        api_key = self.key_resolver.resolve(config, request.user_id)
        adapter = self.registry.get_adapter(config)
        auth = AuthContext(
            user_id=request.user_id,
            api_key=api_key,
            organization_id=request.organization_id,
            project_id=request.project_id,
        )

        self.log.info(
            "generation.job.submit",
            extra={
                "model_id": config.model_id,
                "user_id": request.user_id,
                "adapter": config.adapter_module,
                "prompt_preview": request.prompt[:PROMPT_LOG_CHARS],
            },
        )
        provider_job = await adapter.generate_job(config, request.prompt, dict(request.options), auth)

        provider_metadata = dict(provider_job.metadata)
        provider_metadata[OUTCOME_METADATA_KEY] = provider_job.outcome.to_dict()
        status = provider_job.status
        job = self.job_repo.create(
            GenerationJob(
                job_id=uuid.uuid4().hex,
                model_id=config.model_id,
                user_id=request.user_id,
                prompt=request.prompt,
                status=status,
                options=dict(request.options),
                organization_id=request.organization_id,
                project_id=request.project_id,
                provider_job_id=provider_job.provider_job_id,
                progress=100 if status is JobStatus.COMPLETED else 0,
                provider_metadata=provider_metadata,
            )
        )
        self.log.info(
            "generation.job.created",
            extra={
                "job_id": job.job_id,
                "model_id": config.model_id,
                "status": status.value,
                "provider_job_id": provider_job.provider_job_id,
            },
        )
        return GenerationReceipt(
            job_id=job.job_id,
            status=status,
            estimated_time=config.estimated_time_seconds,
            metadata=dict(provider_job.metadata),
        )

    async def check_job_status(self, job_id: str, user_id: str) -> JobStatusView:
        job = self._owned_job(job_id, user_id)
        if job.status.is_terminal:
            return _status_view(job)

        config = self._known_config(job.model_id)
        adapter, auth = self._adapter_for(config, job)
        reported = await adapter.check_status(job.job_id, job.provider_job_id or "", config, auth)

        status = advance_status(job.status, reported.status)
        progress = clamp_progress(reported.progress)
        if status == job.status:
            progress = max(progress, job.progress)
        if status != job.status or progress != job.progress:
            job = self.job_repo.update_status(
                job.job_id,
                status=status,
                progress=progress,
                error_message=reported.message if status is JobStatus.FAILED else None,
                completed_at=datetime.utcnow() if status.is_terminal else None,
            )
            if job.status != status:
                self.log.info(
                    "generation.job.update_skipped",
                    extra={"job_id": job.job_id, "stored_status": job.status.value, "status": status.value},
                )
                return _status_view(job)
            self.log.info(
                "generation.job.status_changed",
                extra={"job_id": job.job_id, "status": status.value, "progress": progress},
            )
        return _status_view(job, message=reported.message)

    async def get_job_results(self, job_id: str, user_id: str) -> list[Asset]:
        job = self._owned_job(job_id, user_id)
        if job.status is not JobStatus.COMPLETED:
            raise JobNotReadyError(job.status.value)
        if job.result_assets is not None:
            return job.result_assets

        outcome = outcome_from_metadata(job.provider_metadata)
        if isinstance(outcome, CompletedOutcome):
            assets = outcome.assets
            source = "inline"
        else:
            config = self._known_config(job.model_id)
            adapter, auth = self._adapter_for(config, job)
            assets = await adapter.get_results(job.job_id, job.provider_job_id or "", config, auth)
            source = "provider"

        stored = self.job_repo.set_result_assets(job.job_id, assets)
        self.log.info(
            "generation.job.results_cached",
            extra={"job_id": job.job_id, "count": len(assets), "source": source},
        )
        return stored.result_assets or []

    def get_user_jobs(
        self,
        user_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
        status: JobStatus | None = None,
    ) -> JobPage:
        limit = max(1, min(limit, MAX_PAGE_SIZE))
        offset = max(0, offset)
        jobs, total = self.job_repo.list_for_user(user_id, limit=limit, offset=offset, status=status)
        return JobPage(jobs=jobs, total=total, limit=limit, offset=offset)

    def get_available_models(
        self, *, model_type: str | None = None, active_only: bool = True
    ) -> list[ModelSummary]:
        return [
            ModelSummary(
                model_id=config.model_id,
                provider_name=config.provider_name,
                model_type=config.model_type,
                description=config.description,
                api_key_type=config.api_key_type,
                estimated_time=config.estimated_time_seconds,
                cost_per_generation=config.cost_per_generation,
            )
            for config in self.model_repo.list_models(model_type=model_type, active_only=active_only)
        ]

    def cancel_job(self, job_id: str, user_id: str) -> GenerationJob:
        """Mark an in-flight job cancelled locally; the provider is not contacted."""
        job = self._owned_job(job_id, user_id)
        if job.status.is_terminal:
            return job
        cancelled = self.job_repo.update_status(
            job.job_id,
            status=JobStatus.CANCELLED,
            progress=job.progress,
            completed_at=datetime.utcnow(),
        )
        if cancelled.status is JobStatus.CANCELLED:
            self.log.info("generation.job.cancelled", extra={"job_id": job.job_id, "user_id": user_id})
        return cancelled

    def _owned_job(self, job_id: str, user_id: str) -> GenerationJob:
        job = self.job_repo.get_for_user(job_id, user_id)
        if job is None:
            raise JobNotFoundError(job_id)
        return job

    def _known_config(self, model_id: str) -> ModelConfig:
        config = self.model_repo.get(model_id)
        if config is None:
            raise ModelNotFoundError(model_id)
        return config

    def _active_config(self, model_id: str) -> ModelConfig:
        config = self._known_config(model_id)
        if not config.is_active:
            self.log.warning("generation.model.inactive", extra={"model_id": model_id})
            raise ModelUnavailableError(model_id)
        return config

    def _adapter_for(
        self, config: ModelConfig, job: GenerationJob
    ) -> tuple[GenerationAdapter, AuthContext]:
        api_key = self.key_resolver.resolve(config, job.user_id)
        adapter = self.registry.get_adapter(config)
        auth = AuthContext(
            user_id=job.user_id,
            api_key=api_key,
            organization_id=job.organization_id,
            project_id=job.project_id,
        )
        return adapter, auth


def _status_view(job: GenerationJob, *, message: str | None = None) -> JobStatusView:
    return JobStatusView(
        job_id=job.job_id,
        status=job.status,
        progress=job.progress,
        message=message,
        error_message=job.error_message,
        created_at=job.created_at,
        completed_at=job.completed_at,
    )
