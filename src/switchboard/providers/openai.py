"""OpenAI Chat Completions adapter."""

import json
import logging
from typing import Any

from switchboard.models import (
    CompletionRequest,
    CompletionResult,
    Message,
    ProviderName,
    StopReason,
    StreamChunk,
    ToolCall,
    ToolDefinition,
    Usage,
)
from switchboard.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

_API_URL = "https://api.openai.com/v1/chat/completions"

_STOP_REASONS = {
    "tool_calls": StopReason.TOOL_USE,
    "length": StopReason.MAX_TOKENS,
}


class OpenAIAdapter(ProviderAdapter):
    """Provider adapter for OpenAI's Chat Completions API.

    The system prompt is sent as a leading ``system`` message.
    """

    name = ProviderName.OPENAI
    default_model = "gpt-4o"
    api_key_env_vars = ("OPENAI_API_KEY", "OPENAI_API_KEY_CONTEXT")

    def endpoint(self, stream: bool) -> str:
        return _API_URL

    def headers(self) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }

    # ------------------------------------------------------------------
    # Request formatting
    # ------------------------------------------------------------------

    def format_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        return [
            {"role": m.role.value, "content": m.content}
            for m in self.conversation_messages(messages)
        ]

    def format_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                },
            }
            for tool in tools
        ]

    def build_body(self, request: CompletionRequest, stream: bool) -> dict[str, Any]:
        wire_messages: list[dict[str, Any]] = []
        if request.system_prompt:
            wire_messages.append({"role": "system", "content": request.system_prompt})
        wire_messages.extend(self.format_messages(request.messages))

        body: dict[str, Any] = {
            "model": self.model,
            "max_tokens": request.max_tokens,
            "temperature": request.temperature,
            "messages": wire_messages,
            "stream": stream,
        }
        if request.tools:
            body["tools"] = self.format_tools(request.tools)
        return body

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    def parse_response(self, data: dict[str, Any]) -> CompletionResult:
        choices = data.get("choices") or [{}]
        choice = choices[0]
        message = choice.get("message") or {}

        tool_calls: list[ToolCall] = []
        for raw in message.get("tool_calls") or []:
            function = raw.get("function") or {}
            raw_args = function.get("arguments") or ""
            try:
                arguments = json.loads(raw_args) if raw_args else {}
            except json.JSONDecodeError:
                logger.warning("Failed to parse tool call arguments: %s", raw_args)
                arguments = {}
            tool_calls.append(
                ToolCall(id=raw.get("id", ""), name=function.get("name", ""), arguments=arguments)
            )

        usage = None
        if raw_usage := data.get("usage"):
            usage = Usage(
                input_tokens=raw_usage.get("prompt_tokens", 0),
                output_tokens=raw_usage.get("completion_tokens", 0),
            )

        return CompletionResult(
            content=message.get("content") or "",
            tool_calls=tool_calls or None,
            usage=usage,
            stop_reason=_STOP_REASONS.get(choice.get("finish_reason") or "", StopReason.END),
        )

    def parse_stream_event(self, event: Any) -> list[StreamChunk]:
        if not isinstance(event, dict) or not event.get("choices"):
            return []
        choice = event["choices"][0]
        delta = choice.get("delta") or {}
        chunks: list[StreamChunk] = []

        if delta.get("content"):
            chunks.append(StreamChunk.text_delta(delta["content"]))

        # Later deltas for the same call only carry argument fragments.
        tc_deltas = delta.get("tool_calls") or []
        if tc_deltas:
            tc = tc_deltas[0]
            function = tc.get("function") or {}
            if tc.get("id") and function.get("name"):
                chunks.append(
                    StreamChunk.tool_call_start(ToolCall(id=tc["id"], name=function["name"]))
                )

        if choice.get("finish_reason"):
            chunks.append(StreamChunk.done())
        return chunks
