"""Configuration loader: reads TOML defaults then applies env-var overrides."""

from __future__ import annotations

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from switchboard.models import Config, ContextThresholds, ProviderName

logger = logging.getLogger(__name__)

_DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "default.toml"


def load_config(config_path: Path | None = None) -> Config:
    """Load assistant configuration from a TOML file with env-var overrides.

    Resolution order (later wins):
    1. Hard-coded defaults in ``config/default.toml``
    2. Values in *config_path* (if provided)
    3. Environment variables: ``SWITCHBOARD_PROVIDER``,
       ``SWITCHBOARD_MAX_TOKENS``, ``SWITCHBOARD_MAX_CONTEXT_TOKENS``,
       ``SWITCHBOARD_SYSTEM_PROMPT``

    API keys are not part of the config; each provider adapter reads its
    own environment variables.

    Args:
        config_path: Optional path to an additional TOML config file.

    Returns:
        Populated :class:`~switchboard.models.Config` instance.

    Raises:
        FileNotFoundError: If *config_path* is given but does not exist.
        ValueError: If the provider is unknown or the context thresholds
            are out of order.
    """
    data: dict[str, Any] = {}

    # 1. Load built-in defaults.
    if _DEFAULT_CONFIG_PATH.exists():
        with _DEFAULT_CONFIG_PATH.open("rb") as fh:
            _merge(data, tomllib.load(fh))
        logger.debug("Loaded default config from %s", _DEFAULT_CONFIG_PATH)

    # 2. Overlay user-supplied config file.
    if config_path is not None:
        if not config_path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
        with config_path.open("rb") as fh:
            _merge(data, tomllib.load(fh))
        logger.debug("Overlaid config from %s", config_path)

    # 3. Environment variable overrides.
    if provider_env := os.environ.get("SWITCHBOARD_PROVIDER"):
        data["provider"] = provider_env

    if max_tokens_env := os.environ.get("SWITCHBOARD_MAX_TOKENS"):
        data["max_tokens"] = int(max_tokens_env)

    if context_env := os.environ.get("SWITCHBOARD_MAX_CONTEXT_TOKENS"):
        data["max_context_tokens"] = int(context_env)

    if system_prompt_env := os.environ.get("SWITCHBOARD_SYSTEM_PROMPT"):
        data["system_prompt"] = system_prompt_env

    # Validate.
    provider = str(data.get("provider", ProviderName.ANTHROPIC))
    try:
        provider_name = ProviderName(provider)
    except ValueError:
        raise ValueError(
            f"Unknown provider {provider!r}. "
            f"Choose one of: {', '.join(p.value for p in ProviderName)}."
        ) from None

    context = data.get("context", {})
    thresholds = ContextThresholds(
        warning=int(context.get("warning", 70)),
        handoff=int(context.get("handoff", 85)),
        stop=int(context.get("stop", 90)),
    )
    if not 0 < thresholds.warning <= thresholds.handoff <= thresholds.stop <= 100:
        raise ValueError(
            "Context thresholds must satisfy 0 < warning <= handoff <= stop <= 100, "
            f"got {thresholds.warning}/{thresholds.handoff}/{thresholds.stop}."
        )

    max_context_tokens = int(data.get("max_context_tokens", 100_000))
    if max_context_tokens <= 0:
        raise ValueError("max_context_tokens must be positive.")

    return Config(
        provider=provider_name,
        max_tokens=int(data.get("max_tokens", 4096)),
        temperature=float(data.get("temperature", 0.7)),
        max_context_tokens=max_context_tokens,
        system_prompt=str(data.get("system_prompt", "")),
        models={str(k): str(v) for k, v in data.get("models", {}).items()},
        thresholds=thresholds,
    )


def _merge(target: dict[str, Any], overlay: dict[str, Any]) -> None:
    """Shallow-merge *overlay* into *target*, merging nested tables one level deep."""
    for key, value in overlay.items():
        if isinstance(value, dict) and isinstance(target.get(key), dict):
            target[key] = {**target[key], **value}
        else:
            target[key] = value
