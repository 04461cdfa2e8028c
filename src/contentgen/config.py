"""Application configuration builder."""

from __future__ import annotations

import os
from dataclasses import dataclass

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db.db_init import init_db


@dataclass(slots=True)
class QueueSettings:
    redis_url: str | None
    queue_name: str
    poll_timeout_seconds: int


@dataclass(slots=True)
class AppConfig:
    database_url: str
    engine: Engine
    session_factory: sessionmaker[Session]
    queue: QueueSettings
    jwt_signing_key: str
    api_key_encryption_key: str | None
    provider_timeout_seconds: float
    seed_model_configs: bool


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def load_config() -> AppConfig:
    """Load configuration from environment (SQLite by default)."""
    database_url = os.getenv("DATABASE_URL", "sqlite:///contentgen.db")
    engine = create_engine(database_url, future=True)
    session_factory: sessionmaker[Session] = sessionmaker(bind=engine, expire_on_commit=False)

    queue = QueueSettings(
        redis_url=os.getenv("REDIS_URL") or None,
        queue_name=os.getenv("QUEUE_NAME", "ai-jobs"),
        poll_timeout_seconds=int(os.getenv("QUEUE_POLL_TIMEOUT_SECONDS", 10)),
    )

    seed_model_configs = _env_flag("SEED_MODEL_CONFIGS", True)
    init_db(engine, session_factory, seed=seed_model_configs)

    return AppConfig(
        database_url=database_url,
        engine=engine,
        session_factory=session_factory,
        queue=queue,
        jwt_signing_key=os.getenv("JWT_SIGNING_KEY", ""),
        api_key_encryption_key=os.getenv("API_KEY_ENCRYPTION_KEY") or None,
        provider_timeout_seconds=float(os.getenv("PROVIDER_TIMEOUT_SECONDS", 120)),
        seed_model_configs=seed_model_configs,
    )
