"""Providers package: factory functions for provider adapters."""

from collections.abc import Mapping

from switchboard.errors import UnknownProviderError
from switchboard.models import ProviderName
from switchboard.providers.anthropic import AnthropicAdapter
from switchboard.providers.base import ProviderAdapter
from switchboard.providers.gemini import GeminiAdapter
from switchboard.providers.openai import OpenAIAdapter

PROVIDERS: dict[ProviderName, type[ProviderAdapter]] = {
    ProviderName.ANTHROPIC: AnthropicAdapter,
    ProviderName.OPENAI: OpenAIAdapter,
    ProviderName.GEMINI: GeminiAdapter,
}


def create_provider(
    name: str,
    *,
    env: Mapping[str, str] | None = None,
    api_key: str | None = None,
    model: str | None = None,
) -> ProviderAdapter:
    """Return a new adapter for the provider called *name*.

    Construction is pure: no network calls are made. Each adapter resolves
    its own credential from *env*.

    Args:
        name: Provider name (``"anthropic"``, ``"openai"`` or ``"gemini"``).
        env: Mapping used for credential lookup. Defaults to ``os.environ``.
        api_key: Explicit API key, overriding *env*.
        model: Model override for the adapter.

    Returns:
        A :class:`~switchboard.providers.base.ProviderAdapter` instance.

    Raises:
        UnknownProviderError: If *name* is not a known provider.
    """
    try:
        adapter_cls = PROVIDERS[ProviderName(name)]
    except ValueError:
        raise UnknownProviderError(name) from None
    return adapter_cls(api_key=api_key, model=model, env=env)


def get_configured_providers(env: Mapping[str, str] | None = None) -> list[ProviderAdapter]:
    """Return an adapter for every provider that has a credential available."""
    adapters = [create_provider(name, env=env) for name in PROVIDERS]
    return [adapter for adapter in adapters if adapter.is_configured()]


__all__ = [
    "PROVIDERS",
    "AnthropicAdapter",
    "GeminiAdapter",
    "OpenAIAdapter",
    "ProviderAdapter",
    "create_provider",
    "get_configured_providers",
]
