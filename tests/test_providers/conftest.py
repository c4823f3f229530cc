"""Fake HTTP plumbing for provider adapter tests: no real network calls."""

from __future__ import annotations

import json
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

import httpx
import pytest


class TrackingStream(httpx.AsyncByteStream):
    """Response body that yields pre-split byte chunks and records closing."""

    def __init__(self, chunks: list[bytes], fail_after: int | None = None) -> None:
        self._chunks = chunks
        self._fail_after = fail_after
        self.closed = False
        self.chunks_read = 0

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk in self._chunks:
            if self._fail_after is not None and self.chunks_read >= self._fail_after:
                raise httpx.ReadError("connection reset")
            self.chunks_read += 1
            yield chunk

    async def aclose(self) -> None:
        self.closed = True


@dataclass
class FakeServer:
    """Answers every request with a JSON body, a streamed body or a raised error."""

    status: int = 200
    json_body: Any = None
    text_body: str | None = None
    chunks: list[bytes] = field(default_factory=list)
    headers: dict[str, str] = field(default_factory=dict)
    fail_after: int | None = None
    error: Exception | None = None
    requests: list[httpx.Request] = field(default_factory=list)
    streams: list[TrackingStream] = field(default_factory=list)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.error is not None:
            raise self.error
        if self.json_body is not None:
            return httpx.Response(self.status, json=self.json_body)
        if self.text_body is not None:
            return httpx.Response(self.status, text=self.text_body)
        stream = TrackingStream(self.chunks, fail_after=self.fail_after)
        self.streams.append(stream)
        return httpx.Response(self.status, headers=self.headers, stream=stream)

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    @property
    def last_body(self) -> dict[str, Any]:
        return json.loads(self.requests[-1].content)


def _sse(*events: Any) -> bytes:
    """Encode events as an SSE body. Strings are sent as raw payloads."""
    lines = []
    for event in events:
        payload = event if isinstance(event, str) else json.dumps(event)
        lines.append(f"data: {payload}\n\n")
    return "".join(lines).encode("utf-8")


def _split_every(data: bytes, size: int) -> list[bytes]:
    """Split *data* into chunks of *size* bytes, ignoring line boundaries."""
    return [data[i : i + size] for i in range(0, len(data), size)]


@pytest.fixture
def server() -> FakeServer:
    return FakeServer()


@pytest.fixture
def sse():
    return _sse


@pytest.fixture
def split_every():
    return _split_every
