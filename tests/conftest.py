from __future__ import annotations

import asyncio
import json
import time
from typing import Any, Callable

import httpx
import pytest
from jose import jwt

from inventory_client_sdk.api_client import AuthenticatedApiClient
from inventory_client_sdk.config import ClientConfig

BASE_URL = "https://api.example.com"

Route = Callable[[httpx.Request], Any]


def make_token(expires_in: int | None = 3600, **claims: Any) -> str:
    payload: dict[str, Any] = {"sub": "user-1", **claims}
    if expires_in is not None:
        payload["exp"] = int(time.time()) + expires_in
    return jwt.encode(payload, "test-secret", algorithm="HS256")


def reply(status_code: int = 200, json_body: Any = None, **kwargs: Any) -> Route:
    def _build(request: httpx.Request) -> httpx.Response:
        if json_body is not None:
            return httpx.Response(status_code, json=json_body, **kwargs)
        return httpx.Response(status_code, **kwargs)

    return _build


def body_of(request: httpx.Request) -> Any:
    return json.loads(request.content) if request.content else None


class FakeApi:
    """Scripted server: each route pops its next reply, the last one repeats."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[Route]] = {}
        self.calls: list[httpx.Request] = []

    def add(self, method: str, path: str, *routes: Route) -> None:
        self.routes.setdefault((method, path), []).extend(routes)

    def calls_to(self, method: str, path: str) -> list[httpx.Request]:
        return [call for call in self.calls if call.method == method and call.url.path == path]

    async def handler(self, request: httpx.Request) -> httpx.Response:
        self.calls.append(request)
        await asyncio.sleep(0)
        queue = self.routes.get((request.method, request.url.path))
        if not queue:
            return httpx.Response(404, json={"message": f"no route for {request.method} {request.url.path}"})
        route = queue.pop(0) if len(queue) > 1 else queue[0]
        result = route(request)
        if asyncio.iscoroutine(result):
            result = await result
        return result


@pytest.fixture()
def config() -> ClientConfig:
    return ClientConfig(env_name="test", api_base_url=f"{BASE_URL}/")


@pytest.fixture()
def api() -> FakeApi:
    return FakeApi()


@pytest.fixture()
def http(api: FakeApi) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(api.handler))


@pytest.fixture()
def client(config: ClientConfig, http: httpx.AsyncClient) -> AuthenticatedApiClient:
    return AuthenticatedApiClient(config, http)


USER = {"id": "user-1", "email": "demo@example.com", "avatarUrl": None}
