from __future__ import annotations

import base64
import os

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("JWT_SIGNING_KEY", "test-signing-key-with-enough-length-0123")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")

from src.contentgen.auth.auth_service import AuthService  # noqa: E402
from src.contentgen.credentials.key_crypto import KeyCipher  # noqa: E402
from src.contentgen.db.db_init import init_db  # noqa: E402
from src.contentgen.repositories.generation_job_repository import GenerationJobRepository  # noqa: E402
from src.contentgen.repositories.model_config_repository import ModelConfigRepository  # noqa: E402
from src.contentgen.repositories.user_api_key_repository import UserApiKeyRepository  # noqa: E402

TEST_SIGNING_KEY = "test-signing-key-with-enough-length-0123"
TEST_MASTER_KEY = base64.b64encode(bytes(range(32))).decode("ascii")


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        future=True,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    init_db(engine, factory, seed=True)
    return factory


@pytest.fixture
def empty_session_factory(engine):
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    init_db(engine, factory, seed=False)
    return factory


@pytest.fixture
def model_repo(session_factory) -> ModelConfigRepository:
    return ModelConfigRepository(session_factory)


@pytest.fixture
def job_repo(session_factory) -> GenerationJobRepository:
    return GenerationJobRepository(session_factory)


@pytest.fixture
def key_repo(session_factory) -> UserApiKeyRepository:
    return UserApiKeyRepository(session_factory)


@pytest.fixture
def cipher() -> KeyCipher:
    return KeyCipher.from_base64(TEST_MASTER_KEY)


@pytest.fixture
def auth_service() -> AuthService:
    return AuthService(signing_key=TEST_SIGNING_KEY)


def bearer(auth_service: AuthService, user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {auth_service.issue_token(user_id)}"}
