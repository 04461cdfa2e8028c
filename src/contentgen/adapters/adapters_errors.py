"""Provider HTTP error translation tables.

Each adapter declares a mapping of HTTP status code to an :class:`ErrorRule`.
Unlisted statuses fall back to the adapter's generic template, and transport
failures (timeouts, refused connections) are reported as ``UNAVAILABLE``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Mapping

import httpx

from ..exceptions import ProviderError, ProviderErrorKind


@dataclass(slots=True, frozen=True)
class ErrorRule:
    kind: ProviderErrorKind
    message: str


@dataclass(slots=True, frozen=True)
class ErrorTable:
    """Declared status-code translation for one provider."""

    provider: str
    rules: Mapping[int, ErrorRule]
    fallback: str

    def translate(self, status_code: int, detail: str, **context: Any) -> ProviderError:
        rule = self.rules.get(status_code)
        if rule is None:
            return ProviderError(
                _render(self.fallback, detail=detail or "Unknown error", **context),
                kind=ProviderErrorKind.UNKNOWN,
                provider=self.provider,
                status_code=status_code,
            )
        return ProviderError(
            _render(rule.message, detail=detail or "Invalid request", **context),
            kind=rule.kind,
            provider=self.provider,
            status_code=status_code,
        )

    def from_response(self, response: httpx.Response, **context: Any) -> ProviderError:
        return self.translate(response.status_code, extract_error_detail(response), **context)

    def from_transport(self, exc: httpx.HTTPError) -> ProviderError:
        return ProviderError(
            f"{self.provider} is unreachable: {exc}",
            kind=ProviderErrorKind.UNAVAILABLE,
            provider=self.provider,
        )


APIFRAME_ERRORS = ErrorTable(
    provider="apiframe",
    rules={
        401: ErrorRule(ProviderErrorKind.INVALID_KEY, "Invalid APIFRAME API key"),
        429: ErrorRule(ProviderErrorKind.RATE_LIMITED, "APIFRAME rate limit exceeded"),
        402: ErrorRule(ProviderErrorKind.INSUFFICIENT_CREDITS, "APIFRAME insufficient credits"),
        404: ErrorRule(ProviderErrorKind.NOT_FOUND, "Apiframe job {provider_job_id} not found"),
    },
    fallback="APIFRAME API error: {detail}",
)

OPENAI_ERRORS = ErrorTable(
    provider="openai",
    rules={
        401: ErrorRule(ProviderErrorKind.INVALID_KEY, "OpenAI API key is invalid or expired"),
        429: ErrorRule(
            ProviderErrorKind.RATE_LIMITED,
            "OpenAI rate limit exceeded. Please try again later.",
        ),
        400: ErrorRule(ProviderErrorKind.BAD_REQUEST, "OpenAI API error: {detail}"),
        402: ErrorRule(
            ProviderErrorKind.INSUFFICIENT_CREDITS,
            "OpenAI account has insufficient credits or billing not setup",
        ),
    },
    fallback="OpenAI API error: {detail}",
)


class _Placeholders(dict):
    def __missing__(self, key: str) -> str:
        return "unknown"


def _render(template: str, **values: Any) -> str:
    return template.format_map(_Placeholders(values))


def extract_error_detail(response: httpx.Response) -> str:
    """Pull a human readable message out of a provider error body."""
    try:
        data = response.json()
    except ValueError:
        return response.text[:500]
    if not isinstance(data, dict):
        return str(data)
    error = data.get("error")
    if isinstance(error, dict):
        return str(error.get("message") or "").strip()
    if isinstance(error, str) and error:
        return error
    message = data.get("message") or data.get("detail")
    return str(message) if message else ""
