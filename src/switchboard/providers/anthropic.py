"""Anthropic Messages API adapter."""

import json
import logging
from typing import Any

from switchboard.models import (
    CompletionRequest,
    CompletionResult,
    Message,
    ProviderName,
    Role,
    StopReason,
    StreamChunk,
    ToolCall,
    ToolDefinition,
    Usage,
)
from switchboard.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

_API_URL = "https://api.anthropic.com/v1/messages"
_API_VERSION = "2023-06-01"

_STOP_REASONS = {
    "tool_use": StopReason.TOOL_USE,
    "max_tokens": StopReason.MAX_TOKENS,
}


class AnthropicAdapter(ProviderAdapter):
    """Provider adapter for Anthropic's Messages API.

    The system prompt goes in the top-level ``system`` field; streamed
    responses arrive as typed SSE events (``content_block_delta``,
    ``message_stop``, ...).
    """

    name = ProviderName.ANTHROPIC
    default_model = "claude-sonnet-4-20250514"
    api_key_env_vars = ("ANTHROPIC_API_KEY", "CLAUDE_API_KEY", "ANTHROPIC_API_KEY_CONTEXT")

    def endpoint(self, stream: bool) -> str:
        return _API_URL

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "x-api-key": self._api_key,
            "anthropic-version": _API_VERSION,
        }

    # ------------------------------------------------------------------
    # Request formatting
    # ------------------------------------------------------------------

    def format_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        return [
            {
                "role": "assistant" if m.role == Role.ASSISTANT else "user",
                "content": m.content,
            }
            for m in self.conversation_messages(messages)
        ]

    def format_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.parameters,
            }
            for tool in tools
        ]

    def build_body(self, request: CompletionRequest, stream: bool) -> dict[str, Any]:
        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": self.format_messages(request.messages),
            "stream": stream,
        }
        if request.system_prompt:
            body["system"] = request.system_prompt
        if request.tools:
            body["tools"] = self.format_tools(request.tools)
        return body

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    def parse_response(self, data: dict[str, Any]) -> CompletionResult:
        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []

        for block in data.get("content") or []:
            block_type = block.get("type")
            if block_type == "text" and block.get("text"):
                text_parts.append(block["text"])
            elif block_type == "tool_use" and block.get("id") and block.get("name"):
                tool_calls.append(
                    ToolCall(
                        id=block["id"],
                        name=block["name"],
                        arguments=block.get("input") or {},
                    )
                )

        usage = None
        if raw_usage := data.get("usage"):
            usage = Usage(
                input_tokens=raw_usage.get("input_tokens", 0),
                output_tokens=raw_usage.get("output_tokens", 0),
            )

        return CompletionResult(
            content="".join(text_parts),
            tool_calls=tool_calls or None,
            usage=usage,
            stop_reason=_STOP_REASONS.get(data.get("stop_reason") or "", StopReason.END),
        )

    def parse_stream_event(self, event: Any) -> list[StreamChunk]:
        if not isinstance(event, dict):
            return []
        event_type = event.get("type")

        if event_type == "content_block_delta":
            delta = event.get("delta") or {}
            if delta.get("type") == "text_delta" and delta.get("text"):
                return [StreamChunk.text_delta(delta["text"])]
            return []

        if event_type == "content_block_start":
            block = event.get("content_block") or {}
            if block.get("type") == "tool_use":
                return [
                    StreamChunk.tool_call_start(
                        ToolCall(id=block.get("id", ""), name=block.get("name", ""))
                    )
                ]
            return []

        if event_type == "message_stop":
            return [StreamChunk.done()]

        if event_type == "error":
            logger.debug("anthropic: error event in stream: %s", event)
            return [StreamChunk.failure(json.dumps(event))]

        return []
