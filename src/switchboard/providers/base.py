"""Abstract base class for LLM provider adapters."""

from __future__ import annotations

import logging
import math
import os
import time
from abc import ABC, abstractmethod
from collections.abc import AsyncIterator, Mapping
from contextlib import aclosing, asynccontextmanager
from typing import Any, ClassVar

import httpx

from switchboard.errors import ProviderHttpError, TransportError
from switchboard.models import (
    ChunkType,
    CompletionRequest,
    CompletionResult,
    HealthCheckResult,
    HealthStatus,
    Message,
    ProviderName,
    Role,
    StreamChunk,
    ToolDefinition,
)
from switchboard.providers.sse import iter_sse_data

logger = logging.getLogger(__name__)

# Rough approximation: ~4 characters per token for English text.
_CHARS_PER_TOKEN = 4

_DEFAULT_TIMEOUT = httpx.Timeout(120.0, connect=10.0)

# Real keys from every supported provider are longer than this.
_MIN_PLAUSIBLE_KEY_LENGTH = 20
_HEALTH_CHECK_MAX_TOKENS = 10


class ProviderAdapter(ABC):
    """Interface that every LLM provider adapter must implement.

    Concrete subclasses wrap one backend's API: they format the unified
    request into the provider's JSON body and translate its response and
    stream events back into :class:`~switchboard.models.CompletionResult`
    and :class:`~switchboard.models.StreamChunk` objects. HTTP transport,
    status checking and SSE line decoding live here.

    Args:
        api_key: Explicit API key. When omitted, the first non-empty value
            among :attr:`api_key_env_vars` in *env* is used.
        model: Model identifier; defaults to :attr:`default_model`.
        env: Mapping used for credential lookup. Defaults to ``os.environ``.
        client: Optional shared ``httpx.AsyncClient``. When omitted, each call
            opens and closes its own client.
    """

    name: ClassVar[ProviderName]
    default_model: ClassVar[str]
    api_key_env_vars: ClassVar[tuple[str, ...]]

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        *,
        env: Mapping[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        source = os.environ if env is None else env
        self._api_key = api_key or _first_set(source, self.api_key_env_vars)
        self.model = model or self.default_model
        self._client = client

    # ------------------------------------------------------------------
    # Public contract
    # ------------------------------------------------------------------

    def is_configured(self) -> bool:
        """True if an API key was resolved at construction. No network check."""
        return bool(self._api_key)

    def count_tokens(self, text: str) -> int:
        """Cheap local token estimate used for budget bookkeeping only."""
        return math.ceil(len(text) / _CHARS_PER_TOKEN)

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Run one non-streaming completion.

        Args:
            request: The unified request.

        Returns:
            The normalized result.

        Raises:
            ProviderHttpError: If the provider answers with a non-2xx status.
        """
        logger.debug(
            "%s: complete (%d messages, model=%s)",
            self.name, len(request.messages), self.model,
        )
        async with self._http_client() as client:
            response = await client.post(
                self.endpoint(stream=False),
                params=self.query_params(stream=False),
                headers=self.headers(),
                json=self.build_body(request, stream=False),
            )
            await self._raise_for_status(response)
        return self.parse_response(response.json())

    async def stream(self, request: CompletionRequest) -> AsyncIterator[StreamChunk]:
        """Stream a completion as normalized chunks.

        The sequence always ends with exactly one ``done`` chunk unless an
        exception is raised. The HTTP response is closed on every exit path,
        including the consumer closing the generator early.

        Args:
            request: The unified request.

        Yields:
            :class:`~switchboard.models.StreamChunk` objects in transport order.

        Raises:
            ProviderHttpError: If the provider answers with a non-2xx status.
            TransportError: If the response has no body or the connection
                breaks while reading it.
        """
        logger.debug(
            "%s: stream (%d messages, model=%s)",
            self.name, len(request.messages), self.model,
        )
        async with self._http_client() as client:
            async with client.stream(
                "POST",
                self.endpoint(stream=True),
                params=self.query_params(stream=True),
                headers=self.headers(),
                json=self.build_body(request, stream=True),
            ) as response:
                await self._raise_for_status(response)
                if response.status_code == 204 or response.headers.get("content-length") == "0":
                    raise TransportError(self.name, "No response body")

                try:
                    async with aclosing(iter_sse_data(response.aiter_text())) as events:
                        async for event in events:
                            for chunk in self.parse_stream_event(event):
                                yield chunk
                                if chunk.type is ChunkType.DONE:
                                    return
                except httpx.TransportError as exc:
                    raise TransportError(self.name, f"Stream interrupted: {exc}") from exc

                # The body ended without a terminal event.
                yield StreamChunk.done()

    async def check_health(self) -> HealthCheckResult:
        """Ping the provider with a tiny completion and grade the answer.

        Never raises for provider or network failures; they are reported in
        the result instead.

        Returns:
            A :class:`~switchboard.models.HealthCheckResult`.
        """
        if not self._api_key:
            return HealthCheckResult(HealthStatus.RED, "No API key configured", has_api_key=False)
        if len(self._api_key) < _MIN_PLAUSIBLE_KEY_LENGTH:
            return HealthCheckResult(
                HealthStatus.YELLOW, "API key appears invalid (too short)", has_api_key=True
            )

        ping = CompletionRequest(
            messages=[Message(role=Role.USER, content="Hi")],
            max_tokens=_HEALTH_CHECK_MAX_TOKENS,
        )
        start = time.monotonic()
        try:
            await self.complete(ping)
        except ProviderHttpError as exc:
            logger.debug("%s: health check got HTTP %d", self.name, exc.status)
            if exc.status in (401, 403):
                return HealthCheckResult(
                    HealthStatus.RED, "Invalid API key", has_api_key=True, model_available=False
                )
            if exc.status == 429:
                return HealthCheckResult(
                    HealthStatus.YELLOW, "Rate limited", has_api_key=True, model_available=True
                )
            return HealthCheckResult(
                HealthStatus.YELLOW, f"API error: {exc.status}", has_api_key=True
            )
        except httpx.HTTPError as exc:
            logger.debug("%s: health check failed: %s", self.name, exc)
            return HealthCheckResult(
                HealthStatus.RED, f"Connection failed: {exc}", has_api_key=True
            )

        latency_ms = round((time.monotonic() - start) * 1000)
        return HealthCheckResult(
            HealthStatus.GREEN,
            f"Connected ({latency_ms}ms)",
            has_api_key=True,
            model_available=True,
            latency_ms=latency_ms,
        )

    # ------------------------------------------------------------------
    # Provider-specific translation
    # ------------------------------------------------------------------

    @abstractmethod
    def endpoint(self, stream: bool) -> str:
        """URL of the completion endpoint."""

    def query_params(self, stream: bool) -> dict[str, str]:
        """Query string parameters for the request."""
        return {}

    @abstractmethod
    def headers(self) -> dict[str, str]:
        """HTTP headers, including authentication."""

    @abstractmethod
    def format_messages(self, messages: list[Message]) -> list[dict[str, Any]]:
        """Convert internal :class:`~switchboard.models.Message` objects to the API wire format.

        Args:
            messages: Conversation history in internal representation.

        Returns:
            List of dicts ready to send to the API.
        """

    @abstractmethod
    def format_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        """Convert :class:`~switchboard.models.ToolDefinition` objects to the API tool schema."""

    @abstractmethod
    def build_body(self, request: CompletionRequest, stream: bool) -> dict[str, Any]:
        """Build the JSON request body."""

    @abstractmethod
    def parse_response(self, data: dict[str, Any]) -> CompletionResult:
        """Translate a non-streaming JSON body into a result."""

    @abstractmethod
    def parse_stream_event(self, event: Any) -> list[StreamChunk]:
        """Translate one decoded SSE payload into zero or more chunks."""

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def conversation_messages(self, messages: list[Message]) -> list[Message]:
        """Drop system-role entries; the system prompt travels separately."""
        kept = [m for m in messages if m.role != Role.SYSTEM]
        if len(kept) != len(messages):
            logger.debug(
                "%s: dropped %d system-role message(s) from history",
                self.name, len(messages) - len(kept),
            )
        return kept

    @asynccontextmanager
    async def _http_client(self) -> AsyncIterator[httpx.AsyncClient]:
        if self._client is not None:
            yield self._client
            return
        async with httpx.AsyncClient(timeout=_DEFAULT_TIMEOUT) as client:
            yield client

    async def _raise_for_status(self, response: httpx.Response) -> None:
        if response.is_success:
            return
        await response.aread()
        raise ProviderHttpError(self.name, response.status_code, response.text)


def _first_set(env: Mapping[str, str], names: tuple[str, ...]) -> str:
    for name in names:
        value = env.get(name, "")
        if value:
            return value
    return ""
