"""Manage per-user provider keys without ever returning them in plaintext."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from ..exceptions import CredentialError, ModelNotFoundError
from ..generation.generation_models import ApiKeyType
from ..repositories.model_config_repository import ModelConfigRepository
from ..repositories.user_api_key_repository import UserApiKeyRecord, UserApiKeyRepository
from .key_crypto import CryptoError, KeyCipher, key_fingerprint, mask_fingerprint

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class StoredKeyView:
    model_id: str
    has_key: bool
    is_valid: bool = False
    masked_key: str | None = None
    provider_name: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass(slots=True)
class UserKeyService:
    key_repo: UserApiKeyRepository
    model_repo: ModelConfigRepository
    cipher: KeyCipher | None
    log: logging.Logger = field(default_factory=lambda: logger)

    def list_keys(self, user_id: str) -> list[StoredKeyView]:
        return [self._view(record) for record in self.key_repo.list_for_user(user_id)]

    def key_status(self, user_id: str, model_id: str) -> StoredKeyView:
        record = self.key_repo.get(user_id, model_id)
        if record is None:
            return StoredKeyView(model_id=model_id, has_key=False)
        return self._view(record)

    def save_key(self, user_id: str, model_id: str, api_key: str) -> StoredKeyView:
        api_key = api_key.strip()
        if not api_key:
            raise ValueError("API key is required")
        config = self.model_repo.get(model_id)
        if config is None:
            raise ModelNotFoundError(model_id)
        if config.api_key_type != ApiKeyType.USER_SPECIFIC:
            raise ValueError(f"Model {model_id} does not support user-specific API keys")

        ciphertext, nonce = self._require_cipher().encrypt(api_key)
        record = self.key_repo.upsert(
            user_id=user_id,
            model_id=model_id,
            encrypted_key=ciphertext,
            key_nonce=nonce,
            key_fingerprint=key_fingerprint(api_key),
        )
        self.log.info("credentials.user_key.saved", extra={"user_id": user_id, "model_id": model_id})
        return self._view(record)

    def delete_key(self, user_id: str, model_id: str) -> bool:
        deleted = self.key_repo.delete(user_id, model_id)
        if deleted:
            self.log.info("credentials.user_key.deleted", extra={"user_id": user_id, "model_id": model_id})
        return deleted

    def test_key(self, user_id: str, model_id: str) -> bool:
        """Check the stored key is still readable; unreadable keys are marked invalid."""
        record = self.key_repo.get(user_id, model_id)
        if record is None or not record.is_valid:
            raise KeyError(f"API key for model '{model_id}' not found")
        try:
            self._require_cipher().decrypt(record.encrypted_key, record.key_nonce)
        except CryptoError:
            self.key_repo.set_validity(user_id, model_id, False)
            self.log.warning(
                "credentials.user_key.invalidated",
                extra={"user_id": user_id, "model_id": model_id},
            )
            return False
        return True

    def _require_cipher(self) -> KeyCipher:
        if self.cipher is None:
            raise CredentialError("API key encryption is not configured")
        return self.cipher

    def _view(self, record: UserApiKeyRecord) -> StoredKeyView:
        config = self.model_repo.get(record.model_id)
        return StoredKeyView(
            model_id=record.model_id,
            has_key=True,
            is_valid=record.is_valid,
            masked_key=mask_fingerprint(record.key_fingerprint),
            provider_name=config.provider_name if config else None,
            created_at=record.created_at,
            updated_at=record.updated_at,
        )
