"""Name to adapter-class registry used to resolve ``adapter_module``."""

from __future__ import annotations

import logging
from typing import Iterable

from ..exceptions import AdapterNotFoundError, InvalidModelConfigError
from ..generation.generation_models import ModelConfig
from .adapters_apiframe import ApiframeAdapter
from .adapters_base import GenerationAdapter
from .adapters_dalle import DalleAdapter

logger = logging.getLogger(__name__)

DEFAULT_ADAPTERS: tuple[type[GenerationAdapter], ...] = (ApiframeAdapter, DalleAdapter)


class AdapterRegistry:
    """Map adapter names to classes and hand out validated instances."""

    def __init__(
        self,
        adapters: Iterable[type[GenerationAdapter]] | None = None,
        *,
        timeout_seconds: float = 60.0,
    ) -> None:
        self._adapters: dict[str, type[GenerationAdapter]] = {}
        self._timeout_seconds = timeout_seconds
        for adapter_type in DEFAULT_ADAPTERS if adapters is None else adapters:
            self.register(adapter_type.adapter_name, adapter_type)

    def register(self, name: str, adapter_type: type[GenerationAdapter]) -> None:
        if not isinstance(adapter_type, type) or not issubclass(adapter_type, GenerationAdapter):
            raise TypeError(f"Adapter {name} must extend GenerationAdapter")
        self._adapters[name] = adapter_type
        logger.debug("adapters.registered", extra={"adapter": name})

    def unregister(self, name: str) -> bool:
        return self._adapters.pop(name, None) is not None

    def has_adapter(self, name: str) -> bool:
        return name in self._adapters

    def list_adapters(self) -> list[str]:
        return list(self._adapters)

    def get_adapter(self, model_config: ModelConfig) -> GenerationAdapter:
        name = model_config.adapter_module
        adapter_type = self._adapters.get(name) if name else None
        if adapter_type is None:
            raise AdapterNotFoundError(name, self.list_adapters())

        adapter = adapter_type(timeout_seconds=self._timeout_seconds)
        validation = adapter.validate_config(model_config)
        if not validation.valid:
            logger.warning(
                "adapters.config.invalid",
                extra={"adapter": name, "model_id": model_config.model_id, "errors": validation.errors},
            )
            raise InvalidModelConfigError(name, validation.errors)
        return adapter
