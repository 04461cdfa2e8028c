from __future__ import annotations

import pytest

from src.contentgen.adapters.adapters_dalle import DalleAdapter, map_size
from src.contentgen.exceptions import ProviderError, ProviderErrorKind
from src.contentgen.generation.generation_models import (
    AuthContext,
    CompletedOutcome,
    JobStatus,
    ModelConfig,
)
from tests.mocks.providers import (
    DummyAsyncClient,
    DummyResponse,
    dalle_image_response,
    install_client,
)


def make_config(model_id: str = "dalle-3") -> ModelConfig:
    return ModelConfig(
        model_id=model_id,
        provider_name="openai",
        model_type="image",
        adapter_module="DalleAdapter",
        api_endpoint="https://api.openai.com/v1",
        api_key_type="global",
    )


AUTH = AuthContext(user_id="user-1", api_key="sk-test")


@pytest.mark.asyncio
async def test_generate_job_returns_inline_assets(monkeypatch) -> None:
    client = install_client(
        monkeypatch, DummyAsyncClient([dalle_image_response("https://img.test/a.png")])
    )

    job = await DalleAdapter().generate_job(
        make_config(), "a red fox", {"aspectRatio": "16:9", "quality": "hd"}, AUTH
    )

    assert job.status is JobStatus.COMPLETED
    assert job.provider_job_id.startswith("dalle-")
    assert job.is_synchronous
    assert isinstance(job.outcome, CompletedOutcome)
    assert [asset.url for asset in job.outcome.assets] == ["https://img.test/a.png"]
    asset = job.outcome.assets[0]
    assert asset.metadata["provider"] == "openai"
    assert asset.metadata["format"] == "png"
    assert asset.metadata["revisedPrompt"] == "revised 0"
    assert job.metadata["syncGeneration"] is True

    request = client.requests[0]
    assert request["url"] == "https://api.openai.com/v1/images/generations"
    assert request["headers"]["Authorization"] == "Bearer sk-test"
    assert request["json"]["model"] == "dall-e-3"
    assert request["json"]["size"] == "1792x1024"
    assert request["json"]["quality"] == "hd"


@pytest.mark.asyncio
async def test_dalle2_ignores_quality_and_style(monkeypatch) -> None:
    client = install_client(
        monkeypatch, DummyAsyncClient([dalle_image_response("https://img.test/b.png")])
    )

    await DalleAdapter().generate_job(
        make_config("dalle-2"), "a red fox", {"size": "512x512", "style": "natural"}, AUTH
    )

    payload = client.requests[0]["json"]
    assert payload["model"] == "dall-e-2"
    assert payload["size"] == "512x512"
    assert "style" not in payload
    assert "quality" not in payload


@pytest.mark.parametrize(
    ("status_code", "kind", "message"),
    [
        (401, ProviderErrorKind.INVALID_KEY, "OpenAI API key is invalid or expired"),
        (429, ProviderErrorKind.RATE_LIMITED, "OpenAI rate limit exceeded. Please try again later."),
        (400, ProviderErrorKind.BAD_REQUEST, "OpenAI API error: prompt rejected"),
        (
            402,
            ProviderErrorKind.INSUFFICIENT_CREDITS,
            "OpenAI account has insufficient credits or billing not setup",
        ),
        (503, ProviderErrorKind.UNKNOWN, "OpenAI API error: prompt rejected"),
    ],
)
@pytest.mark.asyncio
async def test_generate_job_translates_errors(monkeypatch, status_code, kind, message) -> None:
    install_client(
        monkeypatch,
        DummyAsyncClient([DummyResponse(status_code, {"error": {"message": "prompt rejected"}})]),
    )

    with pytest.raises(ProviderError) as excinfo:
        await DalleAdapter().generate_job(make_config(), "prompt", {}, AUTH)

    assert excinfo.value.kind is kind
    assert str(excinfo.value) == message
    assert excinfo.value.provider == "openai"


@pytest.mark.asyncio
async def test_generate_job_without_images_fails(monkeypatch) -> None:
    install_client(monkeypatch, DummyAsyncClient([DummyResponse(200, {"data": []})]))

    with pytest.raises(ProviderError, match="did not return any images"):
        await DalleAdapter().generate_job(make_config(), "prompt", {}, AUTH)


@pytest.mark.asyncio
async def test_check_status_is_always_completed() -> None:
    status = await DalleAdapter().check_status("job", "dalle-1", make_config(), AUTH)

    assert status.status is JobStatus.COMPLETED
    assert status.progress == 100


@pytest.mark.asyncio
async def test_get_results_is_not_supported() -> None:
    with pytest.raises(ProviderError) as excinfo:
        await DalleAdapter().get_results("job", "dalle-1", make_config(), AUTH)

    assert excinfo.value.kind is ProviderErrorKind.BAD_REQUEST


def test_extract_results_skips_entries_without_url() -> None:
    assets = DalleAdapter.extract_results_from_metadata(
        {"model": "dall-e-3", "images": [{"url": "https://img.test/a.png"}, {"url": None}]}
    )

    assert len(assets) == 1
    assert assets[0].metadata["prompt"] == "N/A"


@pytest.mark.parametrize(
    ("requested", "is_dalle3", "expected"),
    [
        (None, True, "1024x1024"),
        ("9:16", True, "1024x1792"),
        ("landscape", True, "1792x1024"),
        ("640x480", True, "1024x1024"),
        ("256x256", False, "256x256"),
        ("16:9", False, "1024x1024"),
    ],
)
def test_map_size(requested, is_dalle3, expected) -> None:
    assert map_size(requested, is_dalle3=is_dalle3) == expected


def test_validate_config_requires_openai_endpoint() -> None:
    config = make_config()
    config.api_endpoint = "https://proxy.example.com"

    result = DalleAdapter().validate_config(config)

    assert not result.valid
    assert result.errors == ["api_endpoint must be an OpenAI URL"]


@pytest.mark.asyncio
@pytest.mark.parametrize("count", ["many", 0, -2])
async def test_generate_job_rejects_bad_image_count(monkeypatch, count) -> None:
    client = install_client(monkeypatch, DummyAsyncClient([]))

    with pytest.raises(ProviderError) as excinfo:
        await DalleAdapter().generate_job(make_config(), "fox", {"n": count}, AUTH)

    assert excinfo.value.kind is ProviderErrorKind.BAD_REQUEST
    assert client.requests == []


@pytest.mark.asyncio
async def test_generate_job_passes_numeric_image_count(monkeypatch) -> None:
    client = install_client(
        monkeypatch,
        DummyAsyncClient([dalle_image_response("https://img.test/a.png", "https://img.test/b.png")]),
    )

    await DalleAdapter().generate_job(make_config(), "fox", {"n": "2"}, AUTH)

    assert client.requests[0]["json"]["n"] == 2


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [[{"url": "https://img.test/a.png"}], {"data": "nope"}, {"data": ["x"]}])
async def test_generate_job_rejects_malformed_body(monkeypatch, body) -> None:
    install_client(monkeypatch, DummyAsyncClient([DummyResponse(200, body)]))

    with pytest.raises(ProviderError) as excinfo:
        await DalleAdapter().generate_job(make_config(), "fox", {}, AUTH)

    assert excinfo.value.kind is ProviderErrorKind.UNKNOWN


def test_validate_config_checks_key_type() -> None:
    config = make_config()
    config.api_key_type = "shared"

    result = DalleAdapter().validate_config(config)

    assert not result.valid
    assert result.errors == ['api_key_type must be either "global" or "user_specific"']
