"""Tests for providers/openai.py: all network calls go to a fake transport."""

from __future__ import annotations

import json
from contextlib import aclosing

import httpx
import pytest

from switchboard.errors import ProviderHttpError
from switchboard.models import (
    ChunkType,
    CompletionRequest,
    HealthStatus,
    Message,
    Role,
    StopReason,
    StreamChunk,
    ToolCall,
    ToolDefinition,
)
from switchboard.providers.openai import OpenAIAdapter

_LONG_KEY = "sk-test-0123456789abcdefghij"


def _delta(content: str | None = None, finish_reason: str | None = None, **delta: object) -> dict:
    if content is not None:
        delta["content"] = content
    return {"choices": [{"index": 0, "delta": delta, "finish_reason": finish_reason}]}


def _request(**kwargs: object) -> CompletionRequest:
    return CompletionRequest(messages=[Message(role=Role.USER, content="Hi")], **kwargs)  # type: ignore[arg-type]


async def _consume(adapter: OpenAIAdapter, request: CompletionRequest) -> list[StreamChunk]:
    async with aclosing(adapter.stream(request)) as stream:
        return [chunk async for chunk in stream]


class TestOpenAIAdapter:
    def _make_adapter(self, server=None) -> OpenAIAdapter:
        client = server.client() if server is not None else None
        return OpenAIAdapter(api_key="sk-test", env={}, client=client)

    # --- configuration ---

    def test_env_fallback(self) -> None:
        adapter = OpenAIAdapter(env={"OPENAI_API_KEY_CONTEXT": "sk-ctx"})
        assert adapter.is_configured() is True
        assert adapter.headers()["Authorization"] == "Bearer sk-ctx"

    def test_unrelated_env_ignored(self) -> None:
        assert OpenAIAdapter(env={"ANTHROPIC_API_KEY": "x"}).is_configured() is False

    # --- request formatting ---

    def test_system_prompt_is_leading_message(self) -> None:
        adapter = self._make_adapter()
        body = adapter.build_body(_request(system_prompt="Be helpful."), stream=False)
        assert body["messages"] == [
            {"role": "system", "content": "Be helpful."},
            {"role": "user", "content": "Hi"},
        ]
        assert body["model"] == "gpt-4o"

    def test_no_system_prompt(self) -> None:
        adapter = self._make_adapter()
        body = adapter.build_body(_request(), stream=True)
        assert body["messages"] == [{"role": "user", "content": "Hi"}]
        assert body["stream"] is True

    def test_consecutive_same_role_messages(self) -> None:
        adapter = self._make_adapter()
        msgs = [Message(role=Role.USER, content="a"), Message(role=Role.USER, content="b")]
        assert adapter.format_messages(msgs) == [
            {"role": "user", "content": "a"},
            {"role": "user", "content": "b"},
        ]

    def test_format_tools(self) -> None:
        adapter = self._make_adapter()
        td = ToolDefinition(
            name="think",
            description="Reason step-by-step",
            parameters={"type": "object", "properties": {}},
        )
        result = adapter.format_tools([td])
        assert result[0]["type"] == "function"
        assert result[0]["function"]["name"] == "think"
        assert result[0]["function"]["description"] == "Reason step-by-step"

    # --- complete ---

    async def test_complete_with_tool_call(self, server) -> None:
        server.json_body = {
            "choices": [
                {
                    "message": {
                        "content": None,
                        "tool_calls": [
                            {
                                "id": "call_1",
                                "type": "function",
                                "function": {
                                    "name": "read_file",
                                    "arguments": json.dumps({"path": "/tmp/foo.txt"}),
                                },
                            }
                        ],
                    },
                    "finish_reason": "tool_calls",
                }
            ],
            "usage": {"prompt_tokens": 20, "completion_tokens": 10},
        }
        adapter = self._make_adapter(server)

        result = await adapter.complete(_request())

        assert result.content == ""
        assert result.tool_calls == [
            ToolCall(id="call_1", name="read_file", arguments={"path": "/tmp/foo.txt"})
        ]
        assert result.stop_reason is StopReason.TOOL_USE
        assert result.usage is not None and result.usage.total == 30
        assert server.requests[0].headers["Authorization"] == "Bearer sk-test"

    def test_invalid_tool_arguments_become_empty(self) -> None:
        adapter = self._make_adapter()
        result = adapter.parse_response(
            {
                "choices": [
                    {
                        "message": {
                            "content": "",
                            "tool_calls": [
                                {"id": "c", "function": {"name": "f", "arguments": "{oops"}}
                            ],
                        },
                        "finish_reason": "tool_calls",
                    }
                ]
            }
        )
        assert result.tool_calls == [ToolCall(id="c", name="f", arguments={})]

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("stop", StopReason.END),
            ("length", StopReason.MAX_TOKENS),
            ("tool_calls", StopReason.TOOL_USE),
            ("content_filter", StopReason.END),
        ],
    )
    def test_stop_reason_mapping(self, raw: str, expected: StopReason) -> None:
        adapter = self._make_adapter()
        result = adapter.parse_response(
            {"choices": [{"message": {"content": "x"}, "finish_reason": raw}]}
        )
        assert result.stop_reason is expected
        assert result.content == "x"

    async def test_complete_http_error(self, server) -> None:
        server.status = 429
        server.text_body = "rate limited"
        adapter = self._make_adapter(server)
        with pytest.raises(ProviderHttpError) as excinfo:
            await adapter.complete(_request())
        assert excinfo.value.status == 429
        assert excinfo.value.body == "rate limited"

    # --- stream ---

    async def test_stream_text_and_done_marker(self, server, sse) -> None:
        server.chunks = [
            sse(
                _delta(role="assistant", content=""),
                _delta("Hello"),
                _delta(" world"),
                "[DONE]",
            )
        ]
        adapter = self._make_adapter(server)
        chunks = await _consume(adapter, _request())
        assert chunks == [
            StreamChunk.text_delta("Hello"),
            StreamChunk.text_delta(" world"),
            StreamChunk.done(),
        ]

    async def test_stream_finish_reason_ends_stream(self, server, sse) -> None:
        server.chunks = [
            sse(
                _delta("Hi"),
                _delta(finish_reason="stop"),
                {"choices": [], "usage": {"prompt_tokens": 1, "completion_tokens": 1}},
                "[DONE]",
            )
        ]
        adapter = self._make_adapter(server)
        chunks = await _consume(adapter, _request())
        assert [c.type for c in chunks] == [ChunkType.TEXT, ChunkType.DONE]
        assert server.streams[0].closed is True

    async def test_stream_tool_call_start(self, server, sse) -> None:
        server.chunks = [
            sse(
                _delta(
                    tool_calls=[
                        {
                            "index": 0,
                            "id": "call_7",
                            "type": "function",
                            "function": {"name": "search_files", "arguments": ""},
                        }
                    ]
                ),
                _delta(tool_calls=[{"index": 0, "function": {"arguments": '{"q": '}}]),
                _delta(finish_reason="tool_calls"),
            )
        ]
        adapter = self._make_adapter(server)
        chunks = await _consume(adapter, _request())
        assert chunks == [
            StreamChunk.tool_call_start(ToolCall(id="call_7", name="search_files")),
            StreamChunk.done(),
        ]

    async def test_stream_split_reads(self, server, sse, split_every) -> None:
        body = sse(_delta("Hé"), _delta("llo"), _delta(finish_reason="stop"))
        server.chunks = split_every(body, 5)
        adapter = self._make_adapter(server)
        chunks = await _consume(adapter, _request())
        assert "".join(c.text or "" for c in chunks) == "Héllo"
        assert chunks[-1] == StreamChunk.done()
        assert sum(c.type is ChunkType.DONE for c in chunks) == 1

    # --- health check ---

    def _make_keyed_adapter(self, server) -> OpenAIAdapter:
        return OpenAIAdapter(api_key=_LONG_KEY, env={}, client=server.client())

    async def test_health_without_key(self, server) -> None:
        health = await OpenAIAdapter(env={}, client=server.client()).check_health()
        assert health.status is HealthStatus.RED
        assert health.has_api_key is False
        assert server.requests == []

    async def test_health_short_key(self, server) -> None:
        health = await self._make_adapter(server).check_health()
        assert health.status is HealthStatus.YELLOW
        assert "too short" in health.message
        assert server.requests == []

    async def test_health_connected(self, server) -> None:
        server.json_body = {"choices": [{"message": {"content": "Hi"}, "finish_reason": "stop"}]}
        health = await self._make_keyed_adapter(server).check_health()
        assert health.status is HealthStatus.GREEN
        assert health.message.startswith("Connected (")
        assert health.latency_ms is not None
        assert server.last_body["max_tokens"] == 10

    async def test_health_invalid_key(self, server) -> None:
        server.status = 401
        server.text_body = "unauthorized"
        health = await self._make_keyed_adapter(server).check_health()
        assert health.status is HealthStatus.RED
        assert health.message == "Invalid API key"
        assert health.model_available is False

    async def test_health_rate_limited(self, server) -> None:
        server.status = 429
        server.text_body = "slow down"
        health = await self._make_keyed_adapter(server).check_health()
        assert health.status is HealthStatus.YELLOW
        assert health.message == "Rate limited"

    async def test_health_other_status(self, server) -> None:
        server.status = 503
        server.text_body = "overloaded"
        health = await self._make_keyed_adapter(server).check_health()
        assert health.status is HealthStatus.YELLOW
        assert health.message == "API error: 503"

    async def test_health_connect_error(self, server) -> None:
        server.error = httpx.ConnectError("name resolution failed")
        health = await self._make_keyed_adapter(server).check_health()
        assert health.status is HealthStatus.RED
        assert health.message == "Connection failed: name resolution failed"

    def test_is_configured_makes_no_request(self, server) -> None:
        adapter = self._make_keyed_adapter(server)
        assert adapter.is_configured() is True
        assert server.requests == []
