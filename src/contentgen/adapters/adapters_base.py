"""Abstract generation adapter definition."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

from ..exceptions import AppError, ProviderError, ProviderErrorKind
from ..generation.generation_models import (
    Asset,
    AuthContext,
    CompletedOutcome,
    GenerationOutcome,
    JobStatus,
    ModelConfig,
    PendingOutcome,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class AdapterJob:
    """Provider acknowledgement of a new generation job."""

    provider_job_id: str
    status: JobStatus
    metadata: dict[str, Any] = field(default_factory=dict)
    outcome: GenerationOutcome = field(default_factory=PendingOutcome)

    @property
    def is_synchronous(self) -> bool:
        return isinstance(self.outcome, CompletedOutcome)


@dataclass(slots=True)
class AdapterStatus:
    status: JobStatus
    progress: int
    message: str | None = None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ConfigValidation:
    valid: bool
    errors: list[str] = field(default_factory=list)


class GenerationAdapter(ABC):
    """Base interface for provider adapters.

    One instance is built per call by the registry, so adapters may keep
    per-request state but must not rely on it across calls.
    """

    adapter_name: ClassVar[str] = ""

    def __init__(self, *, timeout_seconds: float = 60.0, log: logging.Logger | None = None) -> None:
        self.timeout_seconds = timeout_seconds
        self.log = log or logger

    @abstractmethod
    async def generate_job(
        self,
        model_config: ModelConfig,
        prompt: str,
        options: dict[str, Any],
        auth: AuthContext,
    ) -> AdapterJob:
        """Submit a generation request to the provider."""

    @abstractmethod
    async def check_status(
        self,
        job_id: str,
        provider_job_id: str,
        model_config: ModelConfig,
        auth: AuthContext,
    ) -> AdapterStatus:
        """Map the provider's current job state onto platform statuses."""

    @abstractmethod
    async def get_results(
        self,
        job_id: str,
        provider_job_id: str,
        model_config: ModelConfig,
        auth: AuthContext,
    ) -> list[Asset]:
        """Fetch generated assets for a completed provider job."""

    def validate_config(self, model_config: ModelConfig) -> ConfigValidation:
        errors: list[str] = []
        if not model_config.model_id:
            errors.append("model_id is required")
        if not model_config.adapter_module:
            errors.append("adapter_module is required")
        if not model_config.api_endpoint:
            errors.append("api_endpoint is required")
        if not model_config.api_key_type:
            errors.append("api_key_type is required")
        return ConfigValidation(valid=not errors, errors=errors)

    def normalize_error(self, exc: Exception) -> AppError:
        if isinstance(exc, AppError):
            return exc
        return ProviderError(
            f"{type(self).__name__} error: {exc}",
            kind=ProviderErrorKind.UNKNOWN,
            provider=self.adapter_name or None,
        )


def pick_option(options: dict[str, Any], *names: str) -> Any:
    """Return the first present option among camelCase/snake_case spellings."""
    for name in names:
        value = options.get(name)
        if value not in (None, ""):
            return value
    return None
