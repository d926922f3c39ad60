"""Shared fixtures: fake model endpoints behind an httpx transport."""

from __future__ import annotations

import json
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
import pytest

from modelmesh.drivers.http_client import HttpClientDriver
from modelmesh.drivers.model_directory import InMemoryModelDirectory
from modelmesh.kernel.domain.models import ModelMetadata, ModelStatus
from modelmesh.kernel.orchestration import InvocationPolicy, Invoker

BASE_URL = "https://models.test"

Handler = Callable[[httpx.Request], Awaitable[httpx.Response]]
# A reply is a JSON body (200), a (status, body) pair, an exception to raise,
# or an async handler receiving the request.
Reply = Any


def json_response(body: Any, status: int = 200) -> httpx.Response:
    # Encoded by hand so a null body is still sent as JSON
    return httpx.Response(
        status_code=status,
        content=json.dumps(body).encode(),
        headers={"content-type": "application/json"},
    )


class ModelServer(httpx.AsyncBaseTransport):
    """Transport serving fake model endpoints keyed by URL path.

    Each path holds a sequence of replies; calls consume them in order and
    the last one repeats.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list[Reply]] = {}
        self.requests: list[httpx.Request] = []

    def route(self, path: str, *replies: Reply) -> None:
        self.routes[path] = list(replies)

    def calls(self, path: str) -> list[httpx.Request]:
        return [request for request in self.requests if request.url.path == path]

    def bodies(self, path: str) -> list[Any]:
        return [json.loads(request.content) for request in self.calls(path)]

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self.routes.get(request.url.path)
        if not replies:
            return json_response({"error": "no such route"}, status=404)
        reply = replies.pop(0) if len(replies) > 1 else replies[0]

        if isinstance(reply, Exception):
            raise reply
        if callable(reply):
            return await reply(request)
        if isinstance(reply, tuple):
            status, body = reply
            return json_response(body, status=status)
        return json_response(reply)


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records backoff delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def _make_model(model_id: str, **overrides: Any) -> ModelMetadata:
    fields: dict[str, Any] = {
        "id": model_id,
        "name": model_id.title(),
        "endpoint": f"{BASE_URL}/{model_id}",
        "status": ModelStatus.ONLINE,
        "latency_ms": 100,
    }
    fields.update(overrides)
    return ModelMetadata(**fields)


@pytest.fixture
def make_model() -> Callable[..., ModelMetadata]:
    """Factory for online models served under ``BASE_URL/<id>``."""
    return _make_model


@pytest.fixture
def model_server() -> ModelServer:
    return ModelServer()


@pytest.fixture
def http_client(model_server: ModelServer) -> HttpClientDriver:
    driver = HttpClientDriver(raise_for_status=False)
    driver._transport = model_server
    return driver


@pytest.fixture
def sleeps() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def directory() -> InMemoryModelDirectory:
    return InMemoryModelDirectory()


@pytest.fixture
def policy() -> InvocationPolicy:
    return InvocationPolicy(timeout_ms=1000, max_retries=2, backoff_base_ms=100)


@pytest.fixture
def invoker(
    directory: InMemoryModelDirectory,
    http_client: HttpClientDriver,
    sleeps: SleepRecorder,
    policy: InvocationPolicy,
) -> Invoker:
    return Invoker(directory, http_client=http_client, default_policy=policy, sleep=sleeps)
