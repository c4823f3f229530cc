"""Exception hierarchy for the conversation engine."""

from __future__ import annotations


class SwitchboardError(Exception):
    """Base class for all engine errors."""


class ProviderError(SwitchboardError):
    """An error raised while talking to a provider.

    Args:
        provider: Name of the provider that failed.
        message: Human-readable description.
    """

    def __init__(self, provider: str, message: str) -> None:
        super().__init__(message)
        self.provider = provider


class ProviderHttpError(ProviderError):
    """The provider answered with a non-2xx HTTP status."""

    def __init__(self, provider: str, status: int, body: str) -> None:
        super().__init__(
            provider, f"{provider.capitalize()} API error: {status} - {body}"
        )
        self.status = status
        self.body = body


class TransportError(ProviderError):
    """A streaming response had no readable body, or the body broke mid-read."""


class UnknownProviderError(SwitchboardError, ValueError):
    """Raised by the provider factory for an unrecognized provider name."""

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown provider: {name!r}")
        self.name = name
