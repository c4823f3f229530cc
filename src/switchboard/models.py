"""Shared dataclasses and enums for the conversation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import StrEnum
from typing import Any


class Role(StrEnum):
    """Message role in a conversation."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ProviderName(StrEnum):
    """Backends the engine can talk to."""

    ANTHROPIC = "anthropic"
    GEMINI = "gemini"
    OPENAI = "openai"


class StopReason(StrEnum):
    """Why a completion ended, normalized across providers."""

    END = "end"
    MAX_TOKENS = "max_tokens"
    TOOL_USE = "tool_use"


class ChunkType(StrEnum):
    """Kind of a :class:`StreamChunk`."""

    TEXT = "text"
    TOOL_CALL = "tool_call"
    DONE = "done"
    ERROR = "error"


class ContextStatus(StrEnum):
    """How full the context window is relative to the configured thresholds."""

    OK = "ok"
    WARNING = "warning"
    HANDOFF = "handoff"
    STOP = "stop"


class HealthStatus(StrEnum):
    """Traffic-light verdict of a provider health check."""

    GREEN = "green"
    YELLOW = "yellow"
    RED = "red"


@dataclass(frozen=True)
class Message:
    """A single message in the conversation history.

    Args:
        role: Who produced this message.
        content: Text content of the message.
    """

    role: Role
    content: str


@dataclass
class ToolCall:
    """A tool invocation requested by the assistant.

    Args:
        id: Identifier for this tool call (provider-supplied or synthesized).
        name: Name of the tool to invoke.
        arguments: Parsed arguments dict for the tool. May be empty for
            tool calls observed mid-stream.
    """

    id: str
    name: str
    arguments: dict[str, Any] = field(default_factory=dict)


@dataclass
class ToolDefinition:
    """Schema definition for a tool exposed to the model.

    Args:
        name: Tool name (used by the model to invoke it).
        description: Human/model-readable description of what the tool does.
        parameters: JSON Schema describing the tool's parameters.
    """

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class Usage:
    """Token usage, either for one completion or accumulated.

    Args:
        input_tokens: Number of tokens in the prompt.
        output_tokens: Number of tokens in the completion.
    """

    input_tokens: int = 0
    output_tokens: int = 0

    @property
    def total(self) -> int:
        """Total tokens consumed."""
        return self.input_tokens + self.output_tokens


@dataclass
class CompletionRequest:
    """Provider-independent request shape.

    Args:
        messages: Conversation history. Never contains system-role entries;
            the system prompt travels in *system_prompt*.
        system_prompt: Instructions merged in by each adapter.
        max_tokens: Maximum output tokens.
        temperature: Sampling temperature.
        tools: Optional tools exposed to the model.
    """

    messages: list[Message]
    system_prompt: str = ""
    max_tokens: int = 4096
    temperature: float = 0.7
    tools: list[ToolDefinition] | None = None


@dataclass(frozen=True)
class CompletionResult:
    """Normalized result of a non-streaming completion."""

    content: str
    tool_calls: list[ToolCall] | None = None
    usage: Usage | None = None
    stop_reason: StopReason = StopReason.END


@dataclass(frozen=True)
class StreamChunk:
    """One normalized unit of a streamed response.

    Exactly one of the payload fields is set, matching *type*; ``done``
    chunks carry none.
    """

    type: ChunkType
    text: str | None = None
    tool_call: ToolCall | None = None
    error: str | None = None

    @classmethod
    def text_delta(cls, text: str) -> StreamChunk:
        return cls(type=ChunkType.TEXT, text=text)

    @classmethod
    def tool_call_start(cls, tool_call: ToolCall) -> StreamChunk:
        return cls(type=ChunkType.TOOL_CALL, tool_call=tool_call)

    @classmethod
    def done(cls) -> StreamChunk:
        return cls(type=ChunkType.DONE)

    @classmethod
    def failure(cls, error: str) -> StreamChunk:
        return cls(type=ChunkType.ERROR, error=error)


@dataclass(frozen=True)
class HealthCheckResult:
    """Outcome of :meth:`~switchboard.providers.base.ProviderAdapter.check_health`.

    Args:
        status: Overall verdict.
        message: Short human-readable explanation.
        has_api_key: Whether a key was configured at all.
        model_available: Whether the model answered, when known.
        latency_ms: Round-trip time of the ping, when it succeeded.
    """

    status: HealthStatus
    message: str
    has_api_key: bool
    model_available: bool | None = None
    latency_ms: int | None = None


@dataclass(frozen=True)
class ConversationState:
    """Immutable snapshot of a conversation, suitable for serialization.

    Args:
        provider: Name of the active provider.
        messages: History at snapshot time.
        total_input_tokens: Accumulated input token count.
        total_output_tokens: Accumulated output token count.
        system_prompt: System prompt in effect.
    """

    provider: ProviderName
    messages: tuple[Message, ...] = ()
    total_input_tokens: int = 0
    total_output_tokens: int = 0
    system_prompt: str = ""

    def to_dict(self) -> dict[str, Any]:
        """Return plain JSON-compatible data."""
        return {
            "provider": self.provider.value,
            "messages": [
                {"role": m.role.value, "content": m.content} for m in self.messages
            ],
            "total_input_tokens": self.total_input_tokens,
            "total_output_tokens": self.total_output_tokens,
            "system_prompt": self.system_prompt,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ConversationState:
        """Rebuild a snapshot from :meth:`to_dict` output.

        Raises:
            ValueError: If the provider name or a message role is unknown.
        """
        return cls(
            provider=ProviderName(data["provider"]),
            messages=tuple(
                Message(role=Role(m["role"]), content=str(m["content"]))
                for m in data.get("messages", [])
            ),
            total_input_tokens=int(data.get("total_input_tokens", 0)),
            total_output_tokens=int(data.get("total_output_tokens", 0)),
            system_prompt=str(data.get("system_prompt", "")),
        )


@dataclass(frozen=True)
class ContextThresholds:
    """Context-window percentages at which the user is nudged.

    Args:
        warning: Start warning that the context is filling up.
        handoff: Suggest compacting or switching providers.
        stop: Context is effectively exhausted.
    """

    warning: int = 70
    handoff: int = 85
    stop: int = 90

    def classify(self, percentage: int) -> ContextStatus:
        """Map a context percentage onto a :class:`ContextStatus`."""
        if percentage >= self.stop:
            return ContextStatus.STOP
        if percentage >= self.handoff:
            return ContextStatus.HANDOFF
        if percentage >= self.warning:
            return ContextStatus.WARNING
        return ContextStatus.OK


@dataclass
class Config:
    """Runtime configuration for the assistant.

    Args:
        provider: Provider to start with.
        max_tokens: Maximum tokens per completion.
        temperature: Sampling temperature for conversation turns.
        max_context_tokens: Context window used for the percentage estimate.
        system_prompt: System prompt; empty means the per-provider default.
        models: Optional per-provider model overrides.
        thresholds: Context warning thresholds.
    """

    provider: ProviderName = ProviderName.ANTHROPIC
    max_tokens: int = 4096
    temperature: float = 0.7
    max_context_tokens: int = 100_000
    system_prompt: str = ""
    models: dict[str, str] = field(default_factory=dict)
    thresholds: ContextThresholds = field(default_factory=ContextThresholds)
