"""Data structures shared by the generation pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import StrEnum
from typing import Any


class JobStatus(StrEnum):
    """Lifecycle statuses for ai_generation_jobs records."""

    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED, JobStatus.CANCELLED})

_STATUS_RANK = {
    JobStatus.PENDING: 0,
    JobStatus.PROCESSING: 1,
    JobStatus.COMPLETED: 2,
    JobStatus.FAILED: 2,
    JobStatus.CANCELLED: 2,
}


def advance_status(current: JobStatus, reported: JobStatus) -> JobStatus:
    """Return the status a job moves to; a job never steps back to an earlier state."""
    if current.is_terminal:
        return current
    if _STATUS_RANK[reported] < _STATUS_RANK[current]:
        return current
    return reported


def clamp_progress(value: Any) -> int:
    try:
        progress = int(value)
    except (TypeError, ValueError):
        return 0
    return max(0, min(progress, 100))


class ModelType(StrEnum):
    IMAGE = "image"
    VIDEO = "video"
    TEXT = "text"


class ApiKeyType(StrEnum):
    """Where the provider credential for a model comes from."""

    GLOBAL = "global"
    USER_SPECIFIC = "user_specific"


@dataclass(slots=True)
class ModelConfig:
    """Catalog entry describing one generation model."""

    model_id: str
    provider_name: str
    model_type: str
    adapter_module: str
    api_endpoint: str
    api_key_type: str
    config_options: dict[str, Any] = field(default_factory=dict)
    estimated_time_seconds: int | None = None
    cost_per_generation: Decimal | None = None
    is_active: bool = True
    description: str | None = None


@dataclass(slots=True)
class Asset:
    """Generated artifact reference."""

    url: str
    type: str = ModelType.IMAGE.value
    metadata: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "type": self.type, "metadata": dict(self.metadata)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Asset":
        return cls(
            url=str(data["url"]),
            type=str(data.get("type") or ModelType.IMAGE.value),
            metadata=dict(data.get("metadata") or {}),
        )


@dataclass(slots=True)
class AuthContext:
    """Per-call identity plus the resolved provider credential."""

    user_id: str
    api_key: str
    organization_id: str | None = None
    project_id: str | None = None


@dataclass(slots=True)
class PendingOutcome:
    """Results live at the provider and must be fetched once the job completes."""

    kind: str = field(default="pending", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind}


@dataclass(slots=True)
class CompletedOutcome:
    """Results were returned inline by a synchronous provider."""

    assets: list[Asset] = field(default_factory=list)
    kind: str = field(default="completed", init=False)

    def to_dict(self) -> dict[str, Any]:
        return {"kind": self.kind, "assets": [asset.to_dict() for asset in self.assets]}


GenerationOutcome = PendingOutcome | CompletedOutcome

OUTCOME_METADATA_KEY = "outcome"


def outcome_from_metadata(metadata: dict[str, Any] | None) -> GenerationOutcome:
    """Rebuild the stored outcome variant from a job's provider metadata."""
    raw = (metadata or {}).get(OUTCOME_METADATA_KEY)
    if isinstance(raw, dict) and raw.get("kind") == "completed":
        return CompletedOutcome(
            assets=[Asset.from_dict(item) for item in raw.get("assets") or []]
        )
    return PendingOutcome()


@dataclass(slots=True)
class GenerationRequest:
    model_id: str
    prompt: str
    user_id: str
    options: dict[str, Any] = field(default_factory=dict)
    organization_id: str | None = None
    project_id: str | None = None


@dataclass(slots=True)
class GenerationJob:
    """Persisted generation job record."""

    job_id: str
    model_id: str
    user_id: str
    prompt: str
    status: JobStatus
    options: dict[str, Any] = field(default_factory=dict)
    organization_id: str | None = None
    project_id: str | None = None
    provider_job_id: str | None = None
    progress: int = 0
    provider_metadata: dict[str, Any] = field(default_factory=dict)
    result_assets: list[Asset] | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(slots=True)
class GenerationReceipt:
    """Immediate answer to a generation request; never waits for completion."""

    job_id: str
    status: JobStatus
    estimated_time: int | None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class JobStatusView:
    """Status snapshot returned to pollers."""

    job_id: str
    status: JobStatus
    progress: int
    message: str | None = None
    error_message: str | None = None
    created_at: datetime | None = None
    completed_at: datetime | None = None


@dataclass(slots=True)
class JobPage:
    jobs: list[GenerationJob]
    total: int
    limit: int
    offset: int


@dataclass(slots=True)
class ModelSummary:
    """Public view of a catalog entry (no options, no credentials)."""

    model_id: str
    provider_name: str
    model_type: str
    description: str | None
    api_key_type: str
    estimated_time: int | None
    cost_per_generation: Decimal | None
