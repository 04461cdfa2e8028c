"""Queue worker popping best-effort jobs and running text handlers."""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

import httpx

from ..exceptions import CredentialError, ProviderError, ProviderErrorKind
from ..adapters.adapters_errors import OPENAI_ERRORS
from ..queue.redis_queue import QueuedJob, QueueJobType, RedisJobQueue

logger = logging.getLogger(__name__)

JobHandler = Callable[[QueuedJob], Awaitable[dict[str, Any]]]

CHAT_COMPLETIONS_URL = "https://api.openai.com/v1/chat/completions"


def build_content_system_prompt(parameters: Mapping[str, Any]) -> str:
    prompt = f"You are a professional content creator for {parameters.get('platform') or 'social media'}."
    if parameters.get("tone"):
        prompt += f" Write in a {parameters['tone']} tone."
    if parameters.get("length"):
        prompt += f" Keep it {parameters['length']}."
    if parameters.get("style"):
        prompt += f" Use a {parameters['style']} style."
    target_audience = parameters.get("targetAudience") or parameters.get("target_audience")
    if target_audience:
        prompt += f" Target audience: {target_audience}."
    prompt += "\n\nCreate engaging, high-quality content that drives engagement and conversions."
    return prompt


@dataclass(slots=True)
class OpenAIChatHandler:
    """Text generation and optimization through the chat completions endpoint."""

    api_key: str | None
    api_url: str = CHAT_COMPLETIONS_URL
    model: str = "gpt-4"
    timeout_seconds: float = 60.0
    max_tokens: int = 1000
    temperature: float = 0.7
    log: logging.Logger = field(default_factory=lambda: logger)

    async def generate_content(self, job: QueuedJob) -> dict[str, Any]:
        system_prompt = build_content_system_prompt(job.parameters)
        content, tokens = await self._complete(system_prompt, job.prompt)
        return {
            "content": content,
            "metadata": {
                "model": self.model,
                "tokens": tokens,
                "generatedAt": datetime.now(timezone.utc).isoformat(),
            },
        }

    async def optimize_content(self, job: QueuedJob) -> dict[str, Any]:
        original = job.parameters.get("originalContent") or job.parameters.get("original_content") or ""
        goals = (
            job.parameters.get("optimizationGoals")
            or job.parameters.get("optimization_goals")
            or "improve engagement and readability"
        )
        system_prompt = (
            "You are a content optimization expert. Optimize the following content "
            f"based on these goals: {goals}."
        )
        user_prompt = f"Original content: {original}\n\nOptimization request: {job.prompt}"
        content, tokens = await self._complete(system_prompt, user_prompt)
        return {
            "optimizedContent": content,
            "originalContent": original,
            "metadata": {
                "model": self.model,
                "tokens": tokens,
                "optimizedAt": datetime.now(timezone.utc).isoformat(),
            },
        }

    async def _complete(self, system_prompt: str, user_prompt: str) -> tuple[str, int | None]:
        if not self.api_key:
            raise CredentialError("Environment variable OPENAI_API_KEY is not set")
        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": self.max_tokens,
            "temperature": self.temperature,
        }
        headers = {"Authorization": f"Bearer {self.api_key}"}
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                response = await client.post(self.api_url, headers=headers, json=payload)
        except httpx.HTTPError as exc:
            raise OPENAI_ERRORS.from_transport(exc) from exc
        if response.status_code != 200:
            raise OPENAI_ERRORS.from_response(response)

        body = response.json()
        choices = body.get("choices") or []
        if not choices:
            raise ProviderError(
                "OpenAI returned no completion choices",
                kind=ProviderErrorKind.UNKNOWN,
                provider="openai",
            )
        content = (choices[0].get("message") or {}).get("content") or ""
        tokens = (body.get("usage") or {}).get("total_tokens")
        return content, tokens


def default_handlers(chat: OpenAIChatHandler) -> dict[str, JobHandler]:
    return {
        QueueJobType.CONTENT_GENERATION.value: chat.generate_content,
        QueueJobType.CONTENT_OPTIMIZATION.value: chat.optimize_content,
    }


class QueueWorker:
    """Pops one job at a time, routes it by type and records the outcome."""

    def __init__(
        self,
        *,
        queue: RedisJobQueue,
        handlers: Mapping[str, JobHandler],
        poll_timeout_seconds: int = 10,
        error_backoff_seconds: float = 10.0,
        sleep: Callable[[float], Any] | None = None,
    ) -> None:
        self._queue = queue
        self._handlers = dict(handlers)
        self._poll_timeout_seconds = poll_timeout_seconds
        self._error_backoff_seconds = error_backoff_seconds
        self._sleep = self._wrap_sleep(sleep)
        self._logger = logging.getLogger(__name__)

    @staticmethod
    def _wrap_sleep(
        sleep: Callable[[float], Any] | None,
    ) -> Callable[[float], Awaitable[None]]:
        if sleep is None:
            return asyncio.sleep

        async def _async_sleep(seconds: float) -> None:
            result = sleep(seconds)
            if inspect.isawaitable(result):
                await result  # type: ignore[no-any-return]

        return _async_sleep

    async def run_once(self) -> bool:
        """Process at most one job; return ``False`` when the queue stayed empty."""
        job = await asyncio.to_thread(self._queue.get_next_job, self._poll_timeout_seconds)
        if job is None:
            return False

        handler = self._handlers.get(job.type.value)
        if handler is None:
            await asyncio.to_thread(self._queue.fail_job, job, f"Unknown job type: {job.type.value}")
            return True

        self._logger.info("queue.worker.job.start", extra={"queue_job_id": job.id, "type": job.type.value})
        try:
            result = await handler(job)
        except asyncio.CancelledError:
            await asyncio.to_thread(self._queue.fail_job, job, "Worker cancelled")
            raise
        except Exception as exc:  # noqa: BLE001
            self._logger.exception(
                "queue.worker.job.failed",
                extra={"queue_job_id": job.id, "type": job.type.value},
            )
            await asyncio.to_thread(self._queue.fail_job, job, str(exc))
            return True

        await asyncio.to_thread(self._queue.complete_job, job, result)
        return True

    async def run_forever(self, *, shutdown_event: asyncio.Event) -> None:
        """Continuously process jobs until ``shutdown_event`` is set."""
        while not shutdown_event.is_set():
            try:
                await self.run_once()
            except asyncio.CancelledError:
                self._logger.debug("queue.worker.cancelled")
                raise
            except Exception:  # noqa: BLE001
                self._logger.exception("queue.worker.poll.failed")
                await self._sleep(self._error_backoff_seconds)
        self._logger.info("queue.worker.stopped")
