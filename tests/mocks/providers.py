"""HTTP stand-ins for provider calls made through ``httpx.AsyncClient``."""

from __future__ import annotations

from typing import Any

import httpx


class DummyResponse:
    def __init__(
        self, status_code: int = 200, json_data: Any = None, text: str = ""
    ) -> None:
        self.status_code = status_code
        self._json_data = json_data
        self.text = text

    def json(self) -> Any:
        if self._json_data is None:
            raise ValueError("no json body")
        return self._json_data


class DummyAsyncClient:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, responses: list[DummyResponse | Exception]) -> None:
        self._responses = list(responses)
        self.requests: list[dict[str, Any]] = []

    async def __aenter__(self) -> "DummyAsyncClient":
        return self

    async def __aexit__(self, exc_type, exc_value, traceback) -> None:
        return None

    async def post(
        self, url: str, headers: dict[str, str], json: dict[str, Any]
    ) -> DummyResponse:
        self.requests.append({"url": url, "headers": headers, "json": json})
        if not self._responses:
            raise RuntimeError("No more responses queued")
        response = self._responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    @property
    def urls(self) -> list[str]:
        return [request["url"] for request in self.requests]


def install_client(monkeypatch, client: DummyAsyncClient) -> DummyAsyncClient:
    monkeypatch.setattr("httpx.AsyncClient", lambda timeout: client)
    return client


def connect_error(message: str = "connection refused") -> httpx.ConnectError:
    return httpx.ConnectError(message)


def dalle_image_response(*urls: str) -> DummyResponse:
    return DummyResponse(
        200,
        {
            "created": 1700000000,
            "data": [
                {"url": url, "revised_prompt": f"revised {index}"}
                for index, url in enumerate(urls)
            ],
        },
    )


def apiframe_task(status: str, **extra: Any) -> DummyResponse:
    body: dict[str, Any] = {"task_id": "task-1", "status": status}
    body.update(extra)
    return DummyResponse(200, body)
