"""Dependency wiring helpers."""

from __future__ import annotations

import logging

from fastapi import FastAPI

from .adapters.adapters_registry import AdapterRegistry
from .auth.auth_service import AuthService
from .config import AppConfig
from .credentials.api_key_resolver import ApiKeyResolver
from .credentials.credentials_api import router as credentials_router
from .credentials.credentials_service import UserKeyService
from .credentials.key_crypto import KeyCipher
from .generation.generation_api import router as generation_router
from .generation.generation_service import GenerationService
from .queue.queue_api import router as queue_router
from .queue.redis_queue import RedisJobQueue, create_redis_client
from .repositories.generation_job_repository import GenerationJobRepository
from .repositories.model_config_repository import ModelConfigRepository
from .repositories.user_api_key_repository import UserApiKeyRepository

logger = logging.getLogger(__name__)


def build_job_queue(config: AppConfig) -> RedisJobQueue | None:
    if not config.queue.redis_url:
        logger.info("queue.disabled", extra={"reason": "REDIS_URL not set"})
        return None
    client = create_redis_client(config.queue.redis_url)
    return RedisJobQueue(client, queue_name=config.queue.queue_name)


def include_routers(app: FastAPI, config: AppConfig) -> None:
    """Mount module routers and attach services."""
    model_repo = ModelConfigRepository(config.session_factory)
    job_repo = GenerationJobRepository(config.session_factory)
    key_repo = UserApiKeyRepository(config.session_factory)

    cipher = None
    if config.api_key_encryption_key:
        cipher = KeyCipher.from_base64(config.api_key_encryption_key)
    else:
        logger.warning("credentials.cipher.disabled", extra={"reason": "API_KEY_ENCRYPTION_KEY not set"})

    registry = AdapterRegistry(timeout_seconds=config.provider_timeout_seconds)
    generation_service = GenerationService(
        model_repo=model_repo,
        job_repo=job_repo,
        key_resolver=ApiKeyResolver(key_repo, cipher=cipher),
        registry=registry,
    )
    user_key_service = UserKeyService(key_repo=key_repo, model_repo=model_repo, cipher=cipher)

    app.state.config = config
    app.state.model_repo = model_repo
    app.state.job_repo = job_repo
    app.state.adapter_registry = registry
    app.state.generation_service = generation_service
    app.state.user_key_service = user_key_service
    app.state.auth_service = AuthService(signing_key=config.jwt_signing_key)
    app.state.job_queue = build_job_queue(config)

    app.include_router(generation_router)
    app.include_router(credentials_router)
    app.include_router(queue_router)
