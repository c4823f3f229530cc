"""Conversation state: history, token accounting, provider switching and compaction."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Callable, Mapping
from contextlib import aclosing

from switchboard.handoff import generate_handoff_summary
from switchboard.models import (
    ChunkType,
    CompletionRequest,
    CompletionResult,
    ContextStatus,
    ContextThresholds,
    ConversationState,
    Message,
    ProviderName,
    Role,
    StreamChunk,
    Usage,
)
from switchboard.prompts import build_system_prompt, is_default_system_prompt
from switchboard.providers import create_provider
from switchboard.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

ProviderFactory = Callable[..., ProviderAdapter]

NOT_ENOUGH_TO_COMPACT = "Not enough messages to compact"

# Compacting shorter histories would waste a provider call.
_MIN_MESSAGES_TO_COMPACT = 4

_HANDOFF_TEMPLATE = (
    "[CONTEXT HANDOFF] Previous conversation summary:\n\n{summary}\n\n"
    "Please continue from this context."
)
_HANDOFF_ACK = (
    "I understand. I've received the context from the previous conversation "
    "and I'm ready to continue helping you."
)
_COMPACT_TEMPLATE = (
    "[CONTEXT SUMMARY] Conversation summary:\n\n{summary}\n\n"
    "Please continue from this context."
)
_COMPACT_ACK = "I understand. I've reviewed the context and I'm ready to continue."


class Conversation:
    """A running conversation against one active provider.

    Owns the message history and the token counters. At most one operation
    may be in flight at a time; the caller must await each call (or finish
    iterating a stream) before starting the next.

    Args:
        provider: Name of the provider to start with.
        system_prompt: System prompt; ``None`` means the active provider's
            default, rebuilt on every switch.
        max_context_tokens: Context window used by :attr:`context_percentage`.
        max_tokens: Maximum output tokens per turn.
        temperature: Sampling temperature per turn.
        thresholds: Context thresholds for :attr:`context_status`.
        env: Mapping used by adapters for credential lookup.
        models: Optional per-provider model overrides.
        provider_factory: Callable building adapters by name.

    Raises:
        UnknownProviderError: If *provider* is not a known provider.
    """

    def __init__(
        self,
        provider: str,
        *,
        system_prompt: str | None = None,
        max_context_tokens: int = 100_000,
        max_tokens: int = 4096,
        temperature: float = 0.7,
        thresholds: ContextThresholds | None = None,
        env: Mapping[str, str] | None = None,
        models: Mapping[str, str] | None = None,
        provider_factory: ProviderFactory = create_provider,
    ) -> None:
        self._env = env
        self._models = dict(models or {})
        self._factory = provider_factory
        self._provider = self._build_provider(provider)
        # A default prompt follows the active provider's persona across switches.
        self._default_prompt = system_prompt is None
        self._system_prompt = (
            system_prompt if system_prompt is not None else build_system_prompt(provider)
        )
        self.max_context_tokens = max_context_tokens
        self.max_tokens = max_tokens
        self.temperature = temperature
        self.thresholds = thresholds or ContextThresholds()
        self._messages: list[Message] = []
        self._usage = Usage()

    # ------------------------------------------------------------------
    # Inspection
    # ------------------------------------------------------------------

    @property
    def current_provider(self) -> ProviderName:
        """Name of the active provider."""
        return ProviderName(self._provider.name)

    @property
    def provider(self) -> ProviderAdapter:
        """The active provider adapter."""
        return self._provider

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @property
    def message_history(self) -> list[Message]:
        """Copy of the current message list."""
        return list(self._messages)

    @property
    def token_usage(self) -> Usage:
        """Accumulated token usage (exact for ``send``, estimated for streams)."""
        return Usage(
            input_tokens=self._usage.input_tokens,
            output_tokens=self._usage.output_tokens,
        )

    @property
    def context_percentage(self) -> int:
        """Estimated share of the context window used by prompt plus history."""
        return round(self._estimate_current_tokens() / self.max_context_tokens * 100)

    @property
    def context_status(self) -> ContextStatus:
        return self.thresholds.classify(self.context_percentage)

    # ------------------------------------------------------------------
    # Turns
    # ------------------------------------------------------------------

    async def send(self, user_text: str) -> CompletionResult:
        """Send a user message and wait for the full reply.

        If the provider call fails the user message stays in the history,
        no assistant message is added and the counters are untouched.

        Args:
            user_text: The user's message.

        Returns:
            The provider's completion result.
        """
        self._messages.append(Message(role=Role.USER, content=user_text))

        result = await self._provider.complete(self._request())

        self._messages.append(Message(role=Role.ASSISTANT, content=result.content))
        if result.usage is not None:
            self._usage.input_tokens += result.usage.input_tokens
            self._usage.output_tokens += result.usage.output_tokens
        return result

    async def send_streaming(self, user_text: str) -> AsyncIterator[StreamChunk]:
        """Send a user message and stream the reply chunk by chunk.

        Once the stream completes, the concatenated text is appended as the
        assistant message and the counters grow by the local token estimates
        of the user text and the reply. Providers may omit usage on streams,
        so streamed accounting is approximate.

        Args:
            user_text: The user's message.

        Yields:
            Chunks from the active provider, in transport order.
        """
        self._messages.append(Message(role=Role.USER, content=user_text))

        parts: list[str] = []
        async with aclosing(self._provider.stream(self._request())) as stream:
            async for chunk in stream:
                if chunk.type is ChunkType.TEXT and chunk.text:
                    parts.append(chunk.text)
                yield chunk

        response = "".join(parts)
        self._messages.append(Message(role=Role.ASSISTANT, content=response))
        self._usage.input_tokens += self._provider.count_tokens(user_text)
        self._usage.output_tokens += self._provider.count_tokens(response)

    # ------------------------------------------------------------------
    # Provider switching and compaction
    # ------------------------------------------------------------------

    async def switch_provider(self, new_provider: str, compact: bool = True) -> str | None:
        """Make *new_provider* the active provider.

        With *compact* and a non-empty history, the outgoing provider first
        summarises the conversation and the history is replaced by a two
        message handoff seed. Without *compact* the history is kept as is.
        A default system prompt is rebuilt for the incoming provider.

        Args:
            new_provider: Name of the provider to switch to.
            compact: Whether to summarise the history for the handoff.

        Returns:
            The handoff summary, or ``None`` if no summary was produced.

        Raises:
            UnknownProviderError: If *new_provider* is unknown. Nothing changes.
        """
        if str(new_provider) == str(self._provider.name):
            return None

        incoming = self._build_provider(new_provider)

        summary: str | None = None
        if compact and self._messages:
            summary = await generate_handoff_summary(self.message_history, self._provider)
            self._messages = [
                Message(role=Role.USER, content=_HANDOFF_TEMPLATE.format(summary=summary)),
                Message(role=Role.ASSISTANT, content=_HANDOFF_ACK),
            ]

        logger.info("Switched provider %s -> %s", self._provider.name, incoming.name)
        self._provider = incoming
        if self._default_prompt:
            self._system_prompt = build_system_prompt(incoming.name)
        return summary

    async def compact(self) -> str:
        """Replace the history with a summary to free context.

        Histories shorter than four messages are left alone and the
        ``"Not enough messages to compact"`` sentinel is returned without
        calling the provider. Otherwise the counters are reset to the local
        estimates of the two replacement messages.

        Returns:
            The summary text, or the sentinel.
        """
        if len(self._messages) < _MIN_MESSAGES_TO_COMPACT:
            logger.debug("compact() skipped: only %d messages", len(self._messages))
            return NOT_ENOUGH_TO_COMPACT

        logger.info("Compacting history (%d messages)", len(self._messages))
        summary = await generate_handoff_summary(self.message_history, self._provider)

        self._messages = [
            Message(role=Role.USER, content=_COMPACT_TEMPLATE.format(summary=summary)),
            Message(role=Role.ASSISTANT, content=_COMPACT_ACK),
        ]
        self._usage = Usage(
            input_tokens=self._provider.count_tokens(self._messages[0].content),
            output_tokens=self._provider.count_tokens(self._messages[1].content),
        )
        logger.info("History compacted to summary")
        return summary

    def clear(self) -> None:
        """Wipe the history and reset usage counters."""
        self._messages = []
        self._usage = Usage()

    # ------------------------------------------------------------------
    # Snapshot / restore
    # ------------------------------------------------------------------

    def get_state(self) -> ConversationState:
        """Return an immutable snapshot of the conversation."""
        return ConversationState(
            provider=self.current_provider,
            messages=tuple(self._messages),
            total_input_tokens=self._usage.input_tokens,
            total_output_tokens=self._usage.output_tokens,
            system_prompt=self._system_prompt,
        )

    def load_state(self, state: ConversationState) -> None:
        """Replace the whole conversation with *state*.

        The adapter is rebuilt from the stored provider name before anything
        else changes, so a failure leaves the conversation untouched.

        Raises:
            UnknownProviderError: If the stored provider name is unknown.
        """
        provider = self._build_provider(state.provider)
        self._provider = provider
        self._messages = list(state.messages)
        self._usage = Usage(
            input_tokens=state.total_input_tokens,
            output_tokens=state.total_output_tokens,
        )
        self._system_prompt = state.system_prompt
        self._default_prompt = is_default_system_prompt(state.system_prompt)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _build_provider(self, name: str) -> ProviderAdapter:
        return self._factory(name, env=self._env, model=self._models.get(str(name)))

    def _request(self) -> CompletionRequest:
        return CompletionRequest(
            messages=list(self._messages),
            system_prompt=self._system_prompt,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )

    def _estimate_current_tokens(self) -> int:
        tokens = self._provider.count_tokens(self._system_prompt)
        for msg in self._messages:
            tokens += self._provider.count_tokens(msg.content)
        return tokens
