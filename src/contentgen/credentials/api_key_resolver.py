"""Resolve the provider credential for a model and caller."""

from __future__ import annotations

import logging
import os
import re
from collections.abc import Mapping

from ..exceptions import CredentialError
from ..generation.generation_models import ApiKeyType, ModelConfig
from ..repositories.user_api_key_repository import UserApiKeyRepository
from .key_crypto import CryptoError, KeyCipher

logger = logging.getLogger(__name__)

_NON_ALNUM = re.compile(r"[^A-Za-z0-9]")


def env_var_name(model_id: str) -> str:
    """``my-model-v2`` -> ``MY_MODEL_V2_API_KEY``."""
    return f"{_NON_ALNUM.sub('_', model_id).upper()}_API_KEY"


class ApiKeyResolver:
    """Pick the global environment key or the caller's stored key."""

    def __init__(
        self,
        key_repo: UserApiKeyRepository,
        cipher: KeyCipher | None = None,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self._key_repo = key_repo
        self._cipher = cipher
        self._environ = environ if environ is not None else os.environ

    def resolve(self, model_config: ModelConfig, user_id: str) -> str:
        key_type = model_config.api_key_type
        if key_type == ApiKeyType.GLOBAL:
            return self._resolve_global(model_config)
        if key_type == ApiKeyType.USER_SPECIFIC:
            return self._resolve_user(model_config, user_id)
        raise CredentialError(f"Invalid api_key_type: {key_type}")

    def _resolve_global(self, model_config: ModelConfig) -> str:
        name = env_var_name(model_config.model_id)
        api_key = self._environ.get(name)
        if not api_key:
            raise CredentialError(
                f"Global API key not configured for {model_config.model_id}. "
                f"Set {name} in environment."
            )
        return api_key

    def _resolve_user(self, model_config: ModelConfig, user_id: str) -> str:
        missing = CredentialError(
            f"No API key found for {model_config.provider_name}. "
            "Please add your API key in Settings."
        )
        record = self._key_repo.get(user_id, model_config.model_id)
        if record is None or not record.is_valid:
            raise missing
        if self._cipher is None:
            logger.error(
                "credentials.cipher.missing",
                extra={"model_id": model_config.model_id},
            )
            raise missing
        try:
            return self._cipher.decrypt(record.encrypted_key, record.key_nonce)
        except CryptoError as exc:
            logger.warning(
                "credentials.user_key.unreadable",
                extra={"user_id": user_id, "model_id": model_config.model_id},
            )
            raise missing from exc
