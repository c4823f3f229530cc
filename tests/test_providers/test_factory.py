"""Tests for the provider factory in providers/__init__.py."""

from __future__ import annotations

import pytest

from switchboard.errors import UnknownProviderError
from switchboard.models import ProviderName
from switchboard.providers import (
    PROVIDERS,
    AnthropicAdapter,
    GeminiAdapter,
    OpenAIAdapter,
    create_provider,
    get_configured_providers,
)


class TestCreateProvider:
    @pytest.mark.parametrize(
        ("name", "cls"),
        [("anthropic", AnthropicAdapter), ("openai", OpenAIAdapter), ("gemini", GeminiAdapter)],
    )
    def test_known_names(self, name: str, cls: type) -> None:
        adapter = create_provider(name, env={})
        assert isinstance(adapter, cls)
        assert adapter.name == name

    def test_accepts_enum(self) -> None:
        assert isinstance(create_provider(ProviderName.GEMINI, env={}), GeminiAdapter)

    def test_registry_is_exhaustive(self) -> None:
        assert set(PROVIDERS) == set(ProviderName)

    def test_unknown_provider_raises(self) -> None:
        with pytest.raises(UnknownProviderError, match="Unknown provider"):
            create_provider("mistral", env={})

    def test_unknown_provider_is_value_error(self) -> None:
        with pytest.raises(ValueError):
            create_provider("", env={})

    def test_credentials_resolved_per_adapter(self) -> None:
        env = {"OPENAI_API_KEY": "sk-openai"}
        assert create_provider("openai", env=env).is_configured() is True
        assert create_provider("anthropic", env=env).is_configured() is False

    def test_explicit_key_and_model(self) -> None:
        adapter = create_provider("openai", env={}, api_key="sk-x", model="gpt-4o-mini")
        assert adapter.is_configured() is True
        assert adapter.model == "gpt-4o-mini"


class TestGetConfiguredProviders:
    def test_filters_unconfigured(self) -> None:
        env = {"GEMINI_API_KEY": "g", "CLAUDE_API_KEY": "c"}
        names = [p.name for p in get_configured_providers(env)]
        assert names == [ProviderName.ANTHROPIC, ProviderName.GEMINI]

    def test_none_configured(self) -> None:
        assert get_configured_providers({}) == []
