"""Database initialization helpers."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

from sqlalchemy import func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from .db_models import Base, ModelConfigModel

DEFAULT_MODEL_CONFIGS = [
    {
        "model_id": "dalle-3",
        "provider_name": "openai",
        "model_type": "image",
        "adapter_module": "DalleAdapter",
        "api_endpoint": "https://api.openai.com/v1",
        "api_key_type": "global",
        "description": "OpenAI DALL-E 3, synchronous image generation",
        "config_options": {"sizes": ["1024x1024", "1792x1024", "1024x1792"], "quality": ["standard", "hd"]},
        "estimated_time_seconds": 30,
        "cost_per_generation": Decimal("0.0400"),
    },
    {
        "model_id": "dalle-2",
        "provider_name": "openai",
        "model_type": "image",
        "adapter_module": "DalleAdapter",
        "api_endpoint": "https://api.openai.com/v1",
        "api_key_type": "global",
        "description": "OpenAI DALL-E 2, synchronous image generation",
        "config_options": {"sizes": ["256x256", "512x512", "1024x1024"]},
        "estimated_time_seconds": 20,
        "cost_per_generation": Decimal("0.0200"),
    },
    {
        "model_id": "mj-v6",
        "provider_name": "apiframe",
        "model_type": "image",
        "adapter_module": "ApiframeAdapter",
        "api_endpoint": "https://api.apiframe.pro",
        "api_key_type": "user_specific",
        "description": "Midjourney v6 through Apiframe (bring your own key)",
        "config_options": {"aspect_ratios": ["1:1", "16:9", "9:16", "4:3"]},
        "estimated_time_seconds": 90,
        "cost_per_generation": Decimal("0.0500"),
    },
]


def init_db(engine: Engine, session_factory: sessionmaker[Session], *, seed: bool = True) -> None:
    """Create tables and seed the default model catalog when it is empty."""
    Base.metadata.create_all(engine)
    if not seed:
        return
    with session_factory() as session:
        _seed_model_configs(session)
        session.commit()


def _seed_model_configs(session: Session) -> None:
    if session.scalar(select(func.count()).select_from(ModelConfigModel)):
        return
    now = datetime.now(timezone.utc)
    for entry in DEFAULT_MODEL_CONFIGS:
        session.add(ModelConfigModel(**entry, is_active=True, created_at=now, updated_at=now))
