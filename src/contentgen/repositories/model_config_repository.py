"""Read access to the model catalog."""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..db.db_models import ModelConfigModel
from ..exceptions import handle_sqlalchemy_errors
from ..generation.generation_models import ModelConfig


class ModelConfigRepository:
    """Manage model_configs records."""

    def __init__(self, session_factory: Callable[[], Session]) -> None:
        self._session_factory = session_factory

    def get(self, model_id: str) -> ModelConfig | None:
        with self._session_factory() as session:
            model = session.scalars(
                select(ModelConfigModel).where(ModelConfigModel.model_id == model_id)
            ).first()
            return _to_domain(model) if model is not None else None

    def list_models(self, *, model_type: str | None = None, active_only: bool = True) -> list[ModelConfig]:
        stmt = select(ModelConfigModel)
        if model_type:
            stmt = stmt.where(ModelConfigModel.model_type == model_type)
        if active_only:
            stmt = stmt.where(ModelConfigModel.is_active.is_(True))
        stmt = stmt.order_by(ModelConfigModel.provider_name, ModelConfigModel.model_id)
        with self._session_factory() as session:
            return [_to_domain(model) for model in session.scalars(stmt)]

    def upsert(self, config: ModelConfig) -> None:
        now = datetime.utcnow()
        with handle_sqlalchemy_errors(entity="model_config"), self._session_factory() as session:
            model = session.scalars(
                select(ModelConfigModel).where(ModelConfigModel.model_id == config.model_id)
            ).first()
            if model is None:
                model = ModelConfigModel(model_id=config.model_id, created_at=now)
                session.add(model)
            model.provider_name = config.provider_name
            model.model_type = config.model_type
            model.adapter_module = config.adapter_module
            model.api_endpoint = config.api_endpoint
            model.api_key_type = config.api_key_type
            model.description = config.description
            model.config_options = dict(config.config_options)
            model.estimated_time_seconds = config.estimated_time_seconds
            model.cost_per_generation = config.cost_per_generation
            model.is_active = config.is_active
            model.updated_at = now
            session.commit()

    def set_active(self, model_id: str, is_active: bool) -> None:
        with handle_sqlalchemy_errors(entity="model_config"), self._session_factory() as session:
            model = session.scalars(
                select(ModelConfigModel).where(ModelConfigModel.model_id == model_id)
            ).first()
            if model is None:
                raise KeyError(f"Model '{model_id}' not found")
            model.is_active = is_active
            model.updated_at = datetime.utcnow()
            session.commit()


def _to_domain(model: ModelConfigModel) -> ModelConfig:
    return ModelConfig(
        model_id=model.model_id,
        provider_name=model.provider_name,
        model_type=model.model_type,
        adapter_module=model.adapter_module,
        api_endpoint=model.api_endpoint,
        api_key_type=model.api_key_type,
        config_options=dict(model.config_options or {}),
        estimated_time_seconds=model.estimated_time_seconds,
        cost_per_generation=model.cost_per_generation,
        is_active=model.is_active,
        description=model.description,
    )
