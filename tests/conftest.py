from collections.abc import Iterator
import json
from typing import Any

import httpx
import pytest

from ragflow_bridge.config import Settings, get_settings
from ragflow_bridge.services.knowledge import RemoteClient, SourceReadError


class FakeRagflow:
    """In-memory stand-in for the RAGFlow HTTP API, served through httpx.MockTransport."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self._routes: dict[tuple[str, str], list[Any]] = {}

    def on(
        self,
        method: str,
        path: str,
        payload: Any = None,
        *,
        status_code: int = 200,
        content: bytes | None = None,
        error: Exception | None = None,
    ) -> None:
        if error is not None:
            reply: Any = error
        elif content is not None:
            reply = httpx.Response(status_code, content=content)
        else:
            reply = httpx.Response(status_code, json=payload)
        self._routes.setdefault((method, path), []).append(reply)

    def ok(self, method: str, path: str, data: Any = None) -> None:
        self.on(method, path, {"code": 0, "data": data})

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        replies = self._routes.get((request.method, request.url.path))
        if not replies:
            return httpx.Response(
                404,
                json={"code": 404, "message": f"unexpected {request.method} {request.url.path}"},
            )
        reply = replies.pop(0) if len(replies) > 1 else replies[0]
        if isinstance(reply, Exception):
            raise reply
        return reply

    def client(self, settings: Settings) -> RemoteClient:
        return RemoteClient(settings, transport=httpx.MockTransport(self.handler))

    def paths(self, method: str | None = None) -> list[str]:
        return [
            request.url.path
            for request in self.requests
            if method is None or request.method == method
        ]

    def json_bodies(self, path: str) -> list[dict[str, Any]]:
        return [json.loads(request.content) for request in self.requests if request.url.path == path]


class FakeFileSource:
    def __init__(self, contents: dict[str, bytes]) -> None:
        self._contents = contents
        self.reads: list[str] = []

    async def read_bytes(self, path: str) -> bytes:
        self.reads.append(path)
        if path not in self._contents:
            raise SourceReadError(f"Could not read {path}: no such file")
        return self._contents[path]


@pytest.fixture(autouse=True)
def reset_settings_cache() -> Iterator[None]:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(ragflow_base_url="http://ragflow.test/", ragflow_api_key="test-key")


@pytest.fixture
def fake_ragflow() -> FakeRagflow:
    return FakeRagflow()


@pytest.fixture
def file_source() -> FakeFileSource:
    return FakeFileSource(
        {
            "/docs/a.pdf": b"%PDF-1.7 alpha",
            "/docs/b.pdf": b"%PDF-1.7 beta",
            "/docs/c.pdf": b"%PDF-1.7 gamma",
        }
    )
