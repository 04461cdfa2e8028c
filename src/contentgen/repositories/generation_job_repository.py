"""Persistence layer for generation jobs."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from datetime import datetime

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from ..db.db_models import GenerationJobModel
from ..exceptions import handle_sqlalchemy_errors
from ..generation.generation_models import TERMINAL_STATUSES, Asset, GenerationJob, JobStatus

TERMINAL_STATUS_VALUES = sorted(status.value for status in TERMINAL_STATUSES)


class GenerationJobRepository:
    """Manage ai_generation_jobs records."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def create(self, job: GenerationJob) -> GenerationJob:
        now = datetime.utcnow()
        model = GenerationJobModel(
            job_id=job.job_id,
            model_id=job.model_id,
            user_id=job.user_id,
            organization_id=job.organization_id,
            project_id=job.project_id,
            prompt=job.prompt,
            options=dict(job.options),
            provider_job_id=job.provider_job_id,
            status=job.status.value,
            progress=job.progress,
            provider_metadata=dict(job.provider_metadata),
            result_assets=_dump_assets(job.result_assets),
            error_message=job.error_message,
            created_at=job.created_at or now,
            updated_at=now,
            completed_at=job.completed_at or (now if job.status.is_terminal else None),
        )
        with handle_sqlalchemy_errors(entity="generation_job"), self._session_factory() as session:
            session.add(model)
            session.commit()
            return _to_domain(model)

    def get_for_user(self, job_id: str, user_id: str) -> GenerationJob | None:
        """Return the job only when it belongs to ``user_id``."""
        with self._session_factory() as session:
            model = session.get(GenerationJobModel, job_id)
            if model is None or model.user_id != user_id:
                return None
            return _to_domain(model)

    def update_status(
        self,
        job_id: str,
        *,
        status: JobStatus,
        progress: int,
        error_message: str | None = None,
        completed_at: datetime | None = None,
    ) -> GenerationJob:
        """Write a new status unless the stored row is already terminal.

        The check and the write are one UPDATE, so a job cancelled while a poll
        was waiting on the provider stays cancelled. The stored row is returned
        either way.
        """
        values: dict[str, object] = {
            "status": status.value,
            "progress": progress,
            "updated_at": datetime.utcnow(),
        }
        if error_message is not None:
            values["error_message"] = error_message
        if completed_at is not None:
            values["completed_at"] = completed_at
        stmt = (
            update(GenerationJobModel)
            .where(
                GenerationJobModel.job_id == job_id,
                GenerationJobModel.status.not_in(TERMINAL_STATUS_VALUES),
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        with handle_sqlalchemy_errors(entity="generation_job"), self._session_factory() as session:
            session.execute(stmt)
            session.commit()
            model = session.get(GenerationJobModel, job_id)
            if model is None:
                raise KeyError(f"Job '{job_id}' not found")
            return _to_domain(model)

    def set_result_assets(self, job_id: str, assets: Sequence[Asset]) -> GenerationJob:
        """Write result assets once; an existing cache is left untouched."""
        with handle_sqlalchemy_errors(entity="generation_job"), self._session_factory() as session:
            model = session.get(GenerationJobModel, job_id)
            if model is None:
                raise KeyError(f"Job '{job_id}' not found")
            if model.result_assets is None:
                model.result_assets = _dump_assets(assets)
                model.updated_at = datetime.utcnow()
                session.commit()
            return _to_domain(model)

    def list_for_user(
        self,
        user_id: str,
        *,
        limit: int = 20,
        offset: int = 0,
        status: JobStatus | None = None,
    ) -> tuple[list[GenerationJob], int]:
        filters = [GenerationJobModel.user_id == user_id]
        if status is not None:
            filters.append(GenerationJobModel.status == status.value)
        stmt = (
            select(GenerationJobModel)
            .where(*filters)
            .order_by(GenerationJobModel.created_at.desc(), GenerationJobModel.job_id.desc())
            .limit(limit)
            .offset(offset)
        )
        count_stmt = select(func.count()).select_from(GenerationJobModel).where(*filters)
        with self._session_factory() as session:
            jobs = [_to_domain(model) for model in session.scalars(stmt)]
            total = session.scalar(count_stmt) or 0
        return jobs, int(total)


def _dump_assets(assets: Sequence[Asset] | None) -> list[dict] | None:
    if assets is None:
        return None
    return [asset.to_dict() for asset in assets]


def _to_domain(model: GenerationJobModel) -> GenerationJob:
    assets = None
    if model.result_assets is not None:
        assets = [Asset.from_dict(item) for item in model.result_assets]
    return GenerationJob(
        job_id=model.job_id,
        model_id=model.model_id,
        user_id=model.user_id,
        prompt=model.prompt,
        status=JobStatus(model.status),
        options=dict(model.options or {}),
        organization_id=model.organization_id,
        project_id=model.project_id,
        provider_job_id=model.provider_job_id,
        progress=model.progress,
        provider_metadata=dict(model.provider_metadata or {}),
        result_assets=assets,
        error_message=model.error_message,
        created_at=model.created_at,
        updated_at=model.updated_at,
        completed_at=model.completed_at,
    )
