"""HTTP routes for managing a user's own provider keys."""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel, ConfigDict, Field

from ..auth.auth_dependencies import require_user
from ..auth.auth_service import UserIdentity
from ..exceptions import AppError
from ..generation.generation_api import to_http_error
from .credentials_service import StoredKeyView, UserKeyService

router = APIRouter(prefix="/api/user-api-keys", tags=["credentials"])


class SaveKeyRequest(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str = Field(..., min_length=1)
    api_key: str = Field(..., min_length=1)


class StoredKeyResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    has_key: bool
    is_valid: bool
    masked_key: str | None = None
    provider_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_view(cls, view: StoredKeyView) -> "StoredKeyResponse":
        return cls(
            model_id=view.model_id,
            has_key=view.has_key,
            is_valid=view.is_valid,
            masked_key=view.masked_key,
            provider_name=view.provider_name,
            created_at=view.created_at,
            updated_at=view.updated_at,
        )


class StoredKeyListResponse(BaseModel):
    keys: list[StoredKeyResponse]


class KeyTestResponse(BaseModel):
    model_config = ConfigDict(protected_namespaces=())

    model_id: str
    valid: bool


def get_user_key_service(request: Request) -> UserKeyService:
    try:
        return request.app.state.user_key_service  # type: ignore[attr-defined]
    except AttributeError as exc:  # pragma: no cover - service not wired
        raise RuntimeError("UserKeyService is not configured") from exc


def _not_found(model_id: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail={
            "status": "error",
            "failure_reason": "api_key_not_found",
            "message": f"API key for {model_id} not found",
        },
    )


@router.get("/keys", response_model=StoredKeyListResponse)
def list_keys(
    user: UserIdentity = Depends(require_user),
    service: UserKeyService = Depends(get_user_key_service),
) -> StoredKeyListResponse:
    views = service.list_keys(user.user_id)
    return StoredKeyListResponse(keys=[StoredKeyResponse.from_view(view) for view in views])


@router.get("/keys/{model_id}", response_model=StoredKeyResponse)
def get_key_status(
    model_id: str,
    user: UserIdentity = Depends(require_user),
    service: UserKeyService = Depends(get_user_key_service),
) -> StoredKeyResponse:
    return StoredKeyResponse.from_view(service.key_status(user.user_id, model_id))


@router.post("/keys", response_model=StoredKeyResponse, status_code=status.HTTP_201_CREATED)
def save_key(
    payload: SaveKeyRequest,
    user: UserIdentity = Depends(require_user),
    service: UserKeyService = Depends(get_user_key_service),
) -> StoredKeyResponse:
    try:
        view = service.save_key(user.user_id, payload.model_id, payload.api_key)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"status": "error", "failure_reason": "invalid_request", "message": str(exc)},
        ) from exc
    except AppError as exc:
        raise to_http_error(exc) from exc
    return StoredKeyResponse.from_view(view)


@router.delete("/keys/{model_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_key(
    model_id: str,
    user: UserIdentity = Depends(require_user),
    service: UserKeyService = Depends(get_user_key_service),
) -> Response:
    if not service.delete_key(user.user_id, model_id):
        raise _not_found(model_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/keys/{model_id}/test", response_model=KeyTestResponse)
def test_key(
    model_id: str,
    user: UserIdentity = Depends(require_user),
    service: UserKeyService = Depends(get_user_key_service),
) -> KeyTestResponse:
    try:
        valid = service.test_key(user.user_id, model_id)
    except KeyError as exc:
        raise _not_found(model_id) from exc
    except AppError as exc:
        raise to_http_error(exc) from exc
    return KeyTestResponse(model_id=model_id, valid=valid)
