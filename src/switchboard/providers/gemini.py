"""Google Gemini ``generateContent`` adapter."""

import logging
import uuid
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

_API_BASE = "https://generativelanguage.googleapis.com/v1beta/models"


def _synthesize_call_id() -> str:
    # Gemini does not assign IDs to function calls.
    return f"call_{uuid.uuid4().hex}"


class GeminiAdapter(ProviderAdapter):
    """Provider adapter for the Gemini API.

    Messages become ``contents`` with ``parts``, the assistant role is called
    ``model``, and the system prompt goes in a ``systemInstruction`` block.
    The API key is passed as the ``key`` query parameter.
    """

    name = ProviderName.GEMINI
    default_model = "gemini-1.5-pro"
    api_key_env_vars = ("GEMINI_API_KEY", "GOOGLE_API_KEY", "GEMINI_API_KEY_CONTEXT")

    def endpoint(self, stream: bool) -> str:
        method = "streamGenerateContent" if stream else "generateContent"
        return f"{_API_BASE}/{self.model}:{method}"

    def query_params(self, stream: bool) -> dict[str, str]:
        params = {"key": self._api_key}
        if stream:
            params["alt"] = "sse"
        return params

    def headers(self) -> dict[str, str]:
        return {"Content-Type": "application/json"}

    # ------------------------------------------------------------------
    # Request formatting
    # ------------------------------------------------------------------

    def format_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        return [
            {
                "role": "model" if m.role == Role.ASSISTANT else "user",
                "parts": [{"text": m.content}],
            }
            for m in self.conversation_messages(messages)
        ]

    def format_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "parameters": tool.parameters,
            }
            for tool in tools
        ]

    def build_body(self, request: CompletionRequest, stream: bool) -> dict[str, Any]:
        body: dict[str, Any] = {
            "contents": self.format_messages(request.messages),
            "generationConfig": {
                "maxOutputTokens": request.max_tokens,
                "temperature": request.temperature,
            },
        }
        if request.system_prompt:
            body["systemInstruction"] = {"parts": [{"text": request.system_prompt}]}
        if request.tools:
            body["tools"] = [{"functionDeclarations": self.format_tools(request.tools)}]
        return body

    # ------------------------------------------------------------------
    # Response parsing
    # ------------------------------------------------------------------

    def parse_response(self, data: dict[str, Any]) -> CompletionResult:
        candidate = (data.get("candidates") or [{}])[0]
        parts = (candidate.get("content") or {}).get("parts") or []

        text_parts: list[str] = []
        tool_calls: list[ToolCall] = []
        for part in parts:
            if part.get("text"):
                text_parts.append(part["text"])
            if function_call := part.get("functionCall"):
                tool_calls.append(
                    ToolCall(
                        id=function_call.get("id") or _synthesize_call_id(),
                        name=function_call.get("name", ""),
                        arguments=function_call.get("args") or {},
                    )
                )

        usage = None
        if raw_usage := data.get("usageMetadata"):
            usage = Usage(
                input_tokens=raw_usage.get("promptTokenCount", 0),
                output_tokens=raw_usage.get("candidatesTokenCount", 0),
            )

        finish_reason = candidate.get("finishReason")
        if finish_reason == "MAX_TOKENS":
            stop_reason = StopReason.MAX_TOKENS
        elif finish_reason == "STOP" and tool_calls:
            stop_reason = StopReason.TOOL_USE
        else:
            stop_reason = StopReason.END

        return CompletionResult(
            content="".join(text_parts),
            tool_calls=tool_calls or None,
            usage=usage,
            stop_reason=stop_reason,
        )

    def parse_stream_event(self, event: Any) -> list[StreamChunk]:
        if not isinstance(event, dict) or not event.get("candidates"):
            return []
        candidate = event["candidates"][0]
        chunks: list[StreamChunk] = []

        for part in (candidate.get("content") or {}).get("parts") or []:
            if part.get("text"):
                chunks.append(StreamChunk.text_delta(part["text"]))
            if function_call := part.get("functionCall"):
                chunks.append(
                    StreamChunk.tool_call_start(
                        ToolCall(
                            id=function_call.get("id") or _synthesize_call_id(),
                            name=function_call.get("name", ""),
                            arguments=function_call.get("args") or {},
                        )
                    )
                )

        # The final event often carries the last text alongside finishReason.
        if candidate.get("finishReason"):
            chunks.append(StreamChunk.done())
        return chunks
