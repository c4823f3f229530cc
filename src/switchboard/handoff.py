"""Conversation summaries used to seed a fresh context or a new provider."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from switchboard.models import CompletionRequest, Message, Role

if TYPE_CHECKING:
    from switchboard.providers.base import ProviderAdapter

logger = logging.getLogger(__name__)

_SUMMARIZER_SYSTEM_PROMPT = (
    "You are a helpful assistant that creates concise conversation summaries "
    "for handoff to another AI. Focus on preserving context and task state."
)

_SUMMARY_REQUEST = (
    "Summarize this conversation concisely, capturing key context, decisions "
    "made, and current task state. Keep it under 500 words.\n\n"
    "CONVERSATION:\n{conversation}"
)

_SUMMARY_MAX_TOKENS = 1000
_SUMMARY_TEMPERATURE = 0.3


async def generate_handoff_summary(messages: list[Message], provider: ProviderAdapter) -> str:
    """Ask *provider* for a compact digest of *messages*.

    The history is rendered as ``ROLE: content`` blocks inside a single user
    message. *messages* is not modified. Provider errors propagate unchanged.

    Args:
        messages: The history to summarise.
        provider: Adapter that produces the summary.

    Returns:
        The provider's summary text, verbatim.
    """
    conversation = "\n\n".join(f"{m.role.value.upper()}: {m.content}" for m in messages)
    request = CompletionRequest(
        messages=[
            Message(role=Role.USER, content=_SUMMARY_REQUEST.format(conversation=conversation))
        ],
        system_prompt=_SUMMARIZER_SYSTEM_PROMPT,
        max_tokens=_SUMMARY_MAX_TOKENS,
        temperature=_SUMMARY_TEMPERATURE,
    )
    logger.debug("Requesting handoff summary of %d messages from %s", len(messages), provider.name)
    result = await provider.complete(request)
    logger.debug("handoff summary: %d chars", len(result.content))
    return result.content
