from __future__ import annotations

import pytest

from src.contentgen.adapters import AdapterRegistry, ApiframeAdapter, DalleAdapter, GenerationAdapter
from src.contentgen.exceptions import AdapterNotFoundError, InvalidModelConfigError
from src.contentgen.generation.generation_models import ModelConfig


class EchoAdapter(GenerationAdapter):
    adapter_name = "EchoAdapter"

    async def generate_job(self, model_config, prompt, options, auth):  # pragma: no cover
        raise NotImplementedError

    async def check_status(self, job_id, provider_job_id, model_config, auth):  # pragma: no cover
        raise NotImplementedError

    async def get_results(self, job_id, provider_job_id, model_config, auth):  # pragma: no cover
        raise NotImplementedError


def make_config(adapter_module: str, **overrides) -> ModelConfig:
    values = {
        "model_id": "dalle-3",
        "provider_name": "openai",
        "model_type": "image",
        "adapter_module": adapter_module,
        "api_endpoint": "https://api.openai.com/v1",
        "api_key_type": "global",
    }
    values.update(overrides)
    return ModelConfig(**values)


def test_default_registry_knows_builtin_adapters() -> None:
    registry = AdapterRegistry()

    assert registry.list_adapters() == ["ApiframeAdapter", "DalleAdapter"]
    assert registry.has_adapter("DalleAdapter")


def test_get_adapter_returns_fresh_instance() -> None:
    registry = AdapterRegistry(timeout_seconds=5)

    first = registry.get_adapter(make_config("DalleAdapter"))
    second = registry.get_adapter(make_config("DalleAdapter"))

    assert isinstance(first, DalleAdapter)
    assert first is not second
    assert first.timeout_seconds == 5


def test_unknown_adapter_lists_every_registered_name() -> None:
    registry = AdapterRegistry()
    registry.register("EchoAdapter", EchoAdapter)

    with pytest.raises(AdapterNotFoundError) as excinfo:
        registry.get_adapter(make_config("NopeAdapter"))

    message = str(excinfo.value)
    assert '"NopeAdapter"' in message
    for name in ("ApiframeAdapter", "DalleAdapter", "EchoAdapter"):
        assert name in message
    assert excinfo.value.available == ["ApiframeAdapter", "DalleAdapter", "EchoAdapter"]


def test_missing_adapter_module_is_rejected() -> None:
    with pytest.raises(AdapterNotFoundError, match="missing adapter_module"):
        AdapterRegistry().get_adapter(make_config(""))


def test_invalid_config_names_adapter_and_errors() -> None:
    config = make_config("ApiframeAdapter", model_id="mj-v6", api_endpoint="https://example.com")

    with pytest.raises(InvalidModelConfigError) as excinfo:
        AdapterRegistry().get_adapter(config)

    assert str(excinfo.value) == (
        "Invalid configuration for ApiframeAdapter: api_endpoint must be an Apiframe URL"
    )


def test_register_rejects_non_adapters() -> None:
    registry = AdapterRegistry(adapters=[])

    with pytest.raises(TypeError, match="must extend GenerationAdapter"):
        registry.register("Broken", object)  # type: ignore[arg-type]


def test_unregister() -> None:
    registry = AdapterRegistry(adapters=[ApiframeAdapter])

    assert registry.unregister("ApiframeAdapter") is True
    assert registry.unregister("ApiframeAdapter") is False
    assert registry.list_adapters() == []
