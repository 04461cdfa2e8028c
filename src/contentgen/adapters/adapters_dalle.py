"""OpenAI DALL-E adapter: synchronous generation with inline results."""

from __future__ import annotations

import time
import uuid
from datetime import datetime, timezone
from typing import Any

import httpx

from ..exceptions import ProviderError, ProviderErrorKind
from ..generation.generation_models import (
    ApiKeyType,
    Asset,
    AuthContext,
    CompletedOutcome,
    JobStatus,
    ModelConfig,
    ModelType,
)
from .adapters_base import (
    AdapterJob,
    AdapterStatus,
    ConfigValidation,
    GenerationAdapter,
    pick_option,
)
from .adapters_errors import OPENAI_ERRORS

DALLE3_SIZES = ("1024x1024", "1792x1024", "1024x1792")
DALLE2_SIZES = ("256x256", "512x512", "1024x1024")
DEFAULT_SIZE = "1024x1024"


def map_size(requested: str | None, *, is_dalle3: bool) -> str:
    """Map a requested size or aspect ratio onto a size the model accepts."""
    if not requested:
        return DEFAULT_SIZE
    requested = str(requested).strip().lower()
    if is_dalle3:
        if requested in ("16:9", "landscape"):
            return "1792x1024"
        if requested in ("9:16", "portrait"):
            return "1024x1792"
        return requested if requested in DALLE3_SIZES else DEFAULT_SIZE
    if requested in DALLE2_SIZES:
        return requested
    if "256" in requested:
        return "256x256"
    if "512" in requested:
        return "512x512"
    return DEFAULT_SIZE


def _synthetic_job_id() -> str:
    return f"dalle-{int(time.time() * 1000)}-{uuid.uuid4().hex[:9]}"


def parse_image_count(raw: Any) -> int:
    """Read the ``n`` option; anything but a positive integer is a bad request."""
    if raw in (None, ""):
        return 1
    try:
        count = int(raw)
    except (TypeError, ValueError):
        count = 0
    if count < 1:
        raise ProviderError(
            f"Invalid image count: {raw!r}",
            kind=ProviderErrorKind.BAD_REQUEST,
            provider=OPENAI_ERRORS.provider,
        )
    return count


class DalleAdapter(GenerationAdapter):
    """Call the OpenAI image generation endpoint; results come back inline."""

    adapter_name = "DalleAdapter"

    async def generate_job(
        self,
        model_config: ModelConfig,
        prompt: str,
        options: dict[str, Any],
        auth: AuthContext,
    ) -> AdapterJob:
        is_dalle3 = "dalle-3" in model_config.model_id
        model = "dall-e-3" if is_dalle3 else "dall-e-2"
        size_option = pick_option(options, "size") or pick_option(options, "aspectRatio", "aspect_ratio")

        payload: dict[str, Any] = {
            "model": model,
            "prompt": prompt,
            "n": parse_image_count(options.get("n")),
            "size": map_size(size_option, is_dalle3=is_dalle3),
            "response_format": "url",
        }
        if is_dalle3:
            quality = pick_option(options, "quality")
            if quality:
                payload["quality"] = "hd" if quality == "hd" else "standard"
            style = pick_option(options, "style")
            if style:
                payload["style"] = "natural" if style == "natural" else "vivid"

        self.log.info(
            "dalle.generate.start",
            extra={"user_id": auth.user_id, "model": model, "prompt_preview": prompt[:50]},
        )
        url = f"{model_config.api_endpoint.rstrip('/')}/images/generations"
        headers = {
            "Authorization": f"Bearer {auth.api_key}",
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise OPENAI_ERRORS.from_transport(exc) from exc

        if response.status_code != 200:
            error = OPENAI_ERRORS.from_response(response)
            self.log.error(
                "dalle.response.error",
                extra={"http_status": response.status_code, "model": model, "kind": error.kind.value},
            )
            raise error

        try:
            body = response.json()
        except ValueError as exc:
            raise self.normalize_error(exc) from exc
        data = body.get("data") if isinstance(body, dict) else None
        images = [item for item in data if isinstance(item, dict)] if isinstance(data, list) else []
        if not images:
            raise ProviderError(
                "OpenAI did not return any images",
                kind=ProviderErrorKind.UNKNOWN,
                provider=OPENAI_ERRORS.provider,
            )

        metadata: dict[str, Any] = {
            "provider": "openai",
            "model": model,
            "prompt": prompt,
            "size": payload["size"],
            "quality": payload.get("quality", "standard"),
            "style": payload.get("style", "vivid"),
            "syncGeneration": True,
            "images": [
                {"url": image.get("url"), "revised_prompt": image.get("revised_prompt")}
                for image in images
            ],
        }
        self.log.info("dalle.generate.completed", extra={"model": model, "count": len(images)})
        return AdapterJob(
            provider_job_id=_synthetic_job_id(),
            status=JobStatus.COMPLETED,
            metadata=metadata,
            outcome=CompletedOutcome(assets=self.extract_results_from_metadata(metadata)),
        )

    async def check_status(
        self,
        job_id: str,
        provider_job_id: str,
        model_config: ModelConfig,
        auth: AuthContext,
    ) -> AdapterStatus:
        return AdapterStatus(
            status=JobStatus.COMPLETED,
            progress=100,
            message="DALL-E generation completed (synchronous)",
            metadata={"provider": "openai", "syncGeneration": True},
        )

    async def get_results(
        self,
        job_id: str,
        provider_job_id: str,
        model_config: ModelConfig,
        auth: AuthContext,
    ) -> list[Asset]:
        raise ProviderError(
            "DALL-E results are returned at generation time; read them from the job metadata",
            kind=ProviderErrorKind.BAD_REQUEST,
            provider=OPENAI_ERRORS.provider,
        )

    @staticmethod
    def extract_results_from_metadata(metadata: dict[str, Any]) -> list[Asset]:
        images = metadata.get("images")
        if not isinstance(images, list):
            return []
        generated_at = datetime.now(timezone.utc).isoformat()
        return [
            Asset(
                url=image["url"],
                type=ModelType.IMAGE.value,
                metadata={
                    "provider": "openai",
                    "model": metadata.get("model"),
                    "prompt": metadata.get("prompt") or "N/A",
                    "revisedPrompt": image.get("revised_prompt"),
                    "format": "png",
                    "size": metadata.get("size"),
                    "quality": metadata.get("quality"),
                    "style": metadata.get("style"),
                    "index": index,
                    "generatedAt": generated_at,
                },
            )
            for index, image in enumerate(images)
            if image.get("url")
        ]

    def validate_config(self, model_config: ModelConfig) -> ConfigValidation:
        base = super().validate_config(model_config)
        if not base.valid:
            return base
        errors: list[str] = []
        if "openai.com" not in model_config.api_endpoint:
            errors.append("api_endpoint must be an OpenAI URL")
        if "dalle" not in model_config.model_id:
            errors.append("model_id should indicate DALL-E model")
        if model_config.api_key_type not in {item.value for item in ApiKeyType}:
            errors.append('api_key_type must be either "global" or "user_specific"')
        return ConfigValidation(valid=not errors, errors=errors)
