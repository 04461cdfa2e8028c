"""Persistence layer for per-user provider keys (ciphertext only)."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.db_models import UserApiKeyModel
from ..exceptions import handle_sqlalchemy_errors


@dataclass(slots=True)
class UserApiKeyRecord:
    user_id: str
    model_id: str
    encrypted_key: bytes
    key_nonce: bytes
    key_fingerprint: str
    is_valid: bool
    created_at: datetime
    updated_at: datetime


class UserApiKeyRepository:
    """Manage user_api_keys records."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, user_id: str, model_id: str) -> UserApiKeyRecord | None:
        with self._session_factory() as session:
            model = session.scalars(_by_owner(user_id, model_id)).first()
            return _to_record(model) if model is not None else None

    def list_for_user(self, user_id: str) -> list[UserApiKeyRecord]:
        stmt = (
            select(UserApiKeyModel)
            .where(UserApiKeyModel.user_id == user_id)
            .order_by(UserApiKeyModel.model_id)
        )
        with self._session_factory() as session:
            return [_to_record(model) for model in session.scalars(stmt)]

    def upsert(
        self,
        *,
        user_id: str,
        model_id: str,
        encrypted_key: bytes,
        key_nonce: bytes,
        key_fingerprint: str = "",
        is_valid: bool = True,
    ) -> UserApiKeyRecord:
        now = datetime.utcnow()
        with handle_sqlalchemy_errors(entity="user_api_key"), self._session_factory() as session:
            model = session.scalars(_by_owner(user_id, model_id)).first()
            if model is None:
                model = UserApiKeyModel(user_id=user_id, model_id=model_id, created_at=now)
                session.add(model)
            model.encrypted_key = encrypted_key
            model.key_nonce = key_nonce
            model.key_fingerprint = key_fingerprint
            model.is_valid = is_valid
            model.updated_at = now
            session.commit()
            return _to_record(model)

    def set_validity(self, user_id: str, model_id: str, is_valid: bool) -> None:
        with handle_sqlalchemy_errors(entity="user_api_key"), self._session_factory() as session:
            model = session.scalars(_by_owner(user_id, model_id)).first()
            if model is None:
                raise KeyError(f"API key for model '{model_id}' not found")
            model.is_valid = is_valid
            model.updated_at = datetime.utcnow()
            session.commit()

    def delete(self, user_id: str, model_id: str) -> bool:
        with handle_sqlalchemy_errors(entity="user_api_key"), self._session_factory() as session:
            model = session.scalars(_by_owner(user_id, model_id)).first()
            if model is None:
                return False
            session.delete(model)
            session.commit()
            return True


def _by_owner(user_id: str, model_id: str):
    return select(UserApiKeyModel).where(
        UserApiKeyModel.user_id == user_id,
        UserApiKeyModel.model_id == model_id,
    )


def _to_record(model: UserApiKeyModel) -> UserApiKeyRecord:
    return UserApiKeyRecord(
        user_id=model.user_id,
        model_id=model.model_id,
        encrypted_key=model.encrypted_key,
        key_nonce=model.key_nonce,
        key_fingerprint=model.key_fingerprint or "",
        is_valid=model.is_valid,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
