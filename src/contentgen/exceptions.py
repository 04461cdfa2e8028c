"""Domain level exceptions and helpers shared by services and repositories."""

from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from enum import StrEnum
from typing import Iterator, Sequence

from sqlalchemy import exc as sa_exc

__all__ = [
    "AppError",
    "ConfigurationError",
    "ModelNotFoundError",
    "ModelUnavailableError",
    "AdapterNotFoundError",
    "InvalidModelConfigError",
    "CredentialError",
    "ProviderErrorKind",
    "ProviderError",
    "StateError",
    "JobNotFoundError",
    "JobNotReadyError",
    "RepositoryError",
    "IntegrityConstraintViolation",
    "DatabaseOperationError",
    "handle_sqlalchemy_errors",
]


class AppError(Exception):
    """Base class for application specific errors."""


class ConfigurationError(AppError):
    """Model catalog or adapter wiring is wrong; fix the configuration."""


class ModelNotFoundError(ConfigurationError):
    """Raised when a model id is absent from the catalog."""

    def __init__(self, model_id: str) -> None:
        super().__init__(f'Model "{model_id}" not found')
        self.model_id = model_id


class ModelUnavailableError(ConfigurationError):
    """Raised when a model exists but is switched off."""

    def __init__(self, model_id: str) -> None:
        super().__init__(f'Model "{model_id}" is not currently available')
        self.model_id = model_id


class AdapterNotFoundError(ConfigurationError):
    """Raised when ``adapter_module`` does not name a registered adapter."""

    def __init__(self, adapter_module: str | None, available: Sequence[str]) -> None:
        self.adapter_module = adapter_module
        self.available = list(available)
        if not adapter_module:
            message = "Model configuration missing adapter_module"
        else:
            message = (
                f'Adapter "{adapter_module}" not found. '
                f"Available adapters: {', '.join(self.available)}"
            )
        super().__init__(message)


class InvalidModelConfigError(ConfigurationError):
    """Raised when an adapter rejects a model configuration."""

    def __init__(self, adapter_module: str, errors: Sequence[str]) -> None:
        self.adapter_module = adapter_module
        self.errors = list(errors)
        super().__init__(
            f"Invalid configuration for {adapter_module}: {', '.join(self.errors)}"
        )


class CredentialError(AppError):
    """Raised when no usable API key can be resolved."""


class ProviderErrorKind(StrEnum):
    """Normalized provider failure categories."""

    INVALID_KEY = "invalid_key"
    RATE_LIMITED = "rate_limited"
    INSUFFICIENT_CREDITS = "insufficient_credits"
    BAD_REQUEST = "bad_request"
    NOT_FOUND = "not_found"
    UNAVAILABLE = "unavailable"
    UNKNOWN = "unknown"


class ProviderError(AppError):
    """Failure reported by (or while talking to) an AI provider."""

    def __init__(
        self,
        message: str,
        *,
        kind: ProviderErrorKind = ProviderErrorKind.UNKNOWN,
        provider: str | None = None,
        status_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.provider = provider
        self.status_code = status_code


class StateError(AppError):
    """Operation is not valid for the current job state."""


class JobNotFoundError(StateError):
    """Raised when a job is absent or not owned by the caller."""

    def __init__(self, job_id: str) -> None:
        super().__init__(f"Job {job_id} not found")
        self.job_id = job_id


class JobNotReadyError(StateError):
    """Raised when results are requested before completion."""

    def __init__(self, status: str) -> None:
        super().__init__(f"Job is not completed yet. Current status: {status}")
        self.status = status


class RepositoryError(AppError):
    """Base class for persistence layer failures."""


class IntegrityConstraintViolation(RepositoryError):
    """Raised when a database constraint is violated."""


class DatabaseOperationError(RepositoryError):
    """Raised for unexpected database errors."""


@dataclass(slots=True)
class _EntityContext:
    """Internal helper describing the entity for error messages."""

    entity: str | None = None

    def format(self, message: str) -> str:
        if self.entity:
            return f"{self.entity}: {message}"
        return message


def _translate_sqlalchemy_error(exc: sa_exc.DBAPIError, *, context: _EntityContext) -> RepositoryError:
    if isinstance(exc, sa_exc.IntegrityError):
        return IntegrityConstraintViolation(context.format("integrity constraint violated"))
    return DatabaseOperationError(context.format("database operation failed"))


@contextmanager
def handle_sqlalchemy_errors(*, entity: str | None = None) -> Iterator[None]:
    """Translate SQLAlchemy errors into domain specific ones."""

    context = _EntityContext(entity)
    try:
        yield
    except (sa_exc.IntegrityError, sa_exc.DBAPIError) as exc:
        raise _translate_sqlalchemy_error(exc, context=context) from exc
