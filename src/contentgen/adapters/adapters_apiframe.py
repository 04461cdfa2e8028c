"""Apiframe (Midjourney v6) adapter: asynchronous task-id polling."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx

from ..exceptions import JobNotReadyError, ProviderError, ProviderErrorKind
from ..generation.generation_models import (
    ApiKeyType,
    Asset,
    AuthContext,
    JobStatus,
    ModelConfig,
    ModelType,
    PendingOutcome,
    clamp_progress,
)
from .adapters_base import (
    AdapterJob,
    AdapterStatus,
    ConfigValidation,
    GenerationAdapter,
    pick_option,
)
from .adapters_errors import APIFRAME_ERRORS

MODEL_NAME = "midjourney-v6"
PROCESSING_PROGRESS_CAP = 95

STATUS_MAP: dict[str, JobStatus] = {
    "pending": JobStatus.PENDING,
    "queued": JobStatus.PENDING,
    "staged": JobStatus.PENDING,
    "processing": JobStatus.PROCESSING,
    "generating": JobStatus.PROCESSING,
    "starting": JobStatus.PROCESSING,
    "completed": JobStatus.COMPLETED,
    "done": JobStatus.COMPLETED,
    "success": JobStatus.COMPLETED,
    "finished": JobStatus.COMPLETED,
    "failed": JobStatus.FAILED,
    "error": JobStatus.FAILED,
    "retry_failed": JobStatus.FAILED,
    "cancelled": JobStatus.CANCELLED,
    "canceled": JobStatus.CANCELLED,
}


def map_provider_status(provider_status: str | None, raw_progress: Any) -> tuple[JobStatus, int]:
    """Translate an Apiframe task status into a platform status and progress."""
    status = STATUS_MAP.get((provider_status or "").strip().lower(), JobStatus.PROCESSING)
    if status is JobStatus.PENDING:
        return status, 0
    if status is JobStatus.COMPLETED:
        return status, 100
    if status in (JobStatus.FAILED, JobStatus.CANCELLED):
        return status, 0
    return status, min(clamp_progress(raw_progress), PROCESSING_PROGRESS_CAP)


def _utcnow_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class ApiframeAdapter(GenerationAdapter):
    """Submit Midjourney prompts through Apiframe and poll by task id."""

    adapter_name = "ApiframeAdapter"

    async def generate_job(
        self,
        model_config: ModelConfig,
        prompt: str,
        options: dict[str, Any],
        auth: AuthContext,
    ) -> AdapterJob:
        if not auth.api_key:
            raise ProviderError(
                "APIFRAME API key is required",
                kind=ProviderErrorKind.INVALID_KEY,
                provider=APIFRAME_ERRORS.provider,
            )

        payload: dict[str, Any] = {"prompt": prompt, "model": "v6"}
        aspect_ratio = pick_option(options, "aspectRatio", "aspect_ratio")
        if aspect_ratio:
            payload["aspect_ratio"] = aspect_ratio
        negative_prompt = pick_option(options, "negativePrompt", "negative_prompt")
        if negative_prompt:
            payload["negative_prompt"] = negative_prompt
        for name in ("style", "quality"):
            value = pick_option(options, name)
            if value:
                payload[name] = value

        self.log.info(
            "apiframe.generate.start",
            extra={"user_id": auth.user_id, "prompt_preview": prompt[:50]},
        )
        body = await self._post(model_config, "imagine", auth=auth, json=payload)
        provider_job_id = body.get("task_id") or body.get("id")
        if not provider_job_id:
            raise ProviderError(
                "APIFRAME did not return a job ID",
                kind=ProviderErrorKind.UNKNOWN,
                provider=APIFRAME_ERRORS.provider,
            )

        self.log.info("apiframe.generate.created", extra={"provider_job_id": provider_job_id})
        return AdapterJob(
            provider_job_id=str(provider_job_id),
            status=JobStatus.PROCESSING,
            metadata={
                "provider": "apiframe",
                "model": MODEL_NAME,
                "prompt": prompt,
                "options": dict(options),
                "generatedAt": _utcnow_iso(),
            },
            outcome=PendingOutcome(),
        )

    async def check_status(
        self,
        job_id: str,
        provider_job_id: str,
        model_config: ModelConfig,
        auth: AuthContext,
    ) -> AdapterStatus:
        body = await self._fetch_task(model_config, provider_job_id, auth=auth)
        provider_status = body.get("status")
        raw_progress = body.get("progress", body.get("percentage"))
        status, progress = map_provider_status(provider_status, raw_progress)
        self.log.debug(
            "apiframe.status.check",
            extra={
                "job_id": job_id,
                "provider_job_id": provider_job_id,
                "provider_status": provider_status,
                "status": status.value,
            },
        )
        return AdapterStatus(
            status=status,
            progress=progress,
            message=body.get("message") or f"Job is {status.value}",
            metadata={
                "apiframeStatus": provider_status,
                "provider": "apiframe",
                "updatedAt": _utcnow_iso(),
            },
        )

    async def get_results(
        self,
        job_id: str,
        provider_job_id: str,
        model_config: ModelConfig,
        auth: AuthContext,
    ) -> list[Asset]:
        body = await self._fetch_task(model_config, provider_job_id, auth=auth)
        provider_status = body.get("status")
        if STATUS_MAP.get(str(provider_status or "").lower()) is not JobStatus.COMPLETED:
            raise JobNotReadyError(str(provider_status))

        image_urls = body.get("image_urls") or []
        if not image_urls:
            raise ProviderError(
                "No images found in Apiframe response",
                kind=ProviderErrorKind.UNKNOWN,
                provider=APIFRAME_ERRORS.provider,
            )

        generated_at = body.get("created_at") or _utcnow_iso()
        assets = [
            Asset(
                url=url,
                type=ModelType.IMAGE.value,
                metadata={
                    "provider": "apiframe",
                    "model": MODEL_NAME,
                    "prompt": body.get("prompt") or "N/A",
                    "format": "png",
                    "width": body.get("width") or 1024,
                    "height": body.get("height") or 1024,
                    "index": index,
                    "providerJobId": provider_job_id,
                    "generatedAt": generated_at,
                    "seed": body.get("seed"),
                    "aspectRatio": body.get("aspect_ratio"),
                },
            )
            for index, url in enumerate(image_urls)
        ]
        self.log.info(
            "apiframe.results.fetched",
            extra={"job_id": job_id, "provider_job_id": provider_job_id, "count": len(assets)},
        )
        return assets

    def validate_config(self, model_config: ModelConfig) -> ConfigValidation:
        base = super().validate_config(model_config)
        if not base.valid:
            return base
        errors: list[str] = []
        if "apiframe" not in model_config.api_endpoint:
            errors.append("api_endpoint must be an Apiframe URL")
        if model_config.api_key_type not in {item.value for item in ApiKeyType}:
            errors.append('api_key_type must be either "global" or "user_specific"')
        return ConfigValidation(valid=not errors, errors=errors)

    async def _fetch_task(
        self, model_config: ModelConfig, provider_job_id: str, *, auth: AuthContext
    ) -> dict[str, Any]:
        return await self._post(
            model_config,
            "fetch",
            auth=auth,
            json={"task_id": provider_job_id},
            provider_job_id=provider_job_id,
        )

    async def _post(
        self,
        model_config: ModelConfig,
        path: str,
        *,
        auth: AuthContext,
        json: dict[str, Any],
        provider_job_id: str | None = None,
    ) -> dict[str, Any]:
        url = f"{model_config.api_endpoint.rstrip('/')}/{path}"
        headers = {"Authorization": auth.api_key, "Content-Type": "application/json"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(url, headers=headers, json=json)
        except httpx.HTTPError as exc:
            raise APIFRAME_ERRORS.from_transport(exc) from exc

        if response.status_code != 200:
            error = APIFRAME_ERRORS.from_response(response, provider_job_id=provider_job_id)
            self.log.error(
                "apiframe.response.error",
                extra={
                    "path": path,
                    "http_status": response.status_code,
                    "provider_job_id": provider_job_id,
                    "kind": error.kind.value,
                },
            )
            raise error
        try:
            body = response.json()
        except ValueError as exc:
            raise self.normalize_error(exc) from exc
        if not isinstance(body, dict):
            raise ProviderError(
                "APIFRAME returned an unexpected response",
                kind=ProviderErrorKind.UNKNOWN,
                provider=APIFRAME_ERRORS.provider,
            )
        return body
