"""Entry point: parses CLI arguments, loads config, boots the REPL."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path


def _setup_logging(verbose: bool) -> None:
    """Configure root logger.

    Args:
        verbose: If True, set level to DEBUG; otherwise WARNING.
    """
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main() -> None:
    """CLI entry point for the assistant."""
    parser = argparse.ArgumentParser(
        prog="switchboard",
        description="Terminal AI assistant that can hand a conversation between providers.",
    )
    parser.add_argument(
        "--config",
        metavar="PATH",
        help="Path to a TOML config file (overrides default.toml).",
    )
    parser.add_argument(
        "--provider",
        metavar="NAME",
        help="Provider to start with (anthropic, openai, gemini).",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Enable debug logging.",
    )
    args = parser.parse_args()

    _setup_logging(args.verbose)

    # Lazy imports so startup is fast when --help is used.
    from switchboard.config import load_config
    from switchboard.conversation import Conversation
    from switchboard.repl import run_repl

    config_path = Path(args.config) if args.config else None

    try:
        config = load_config(config_path=config_path)
        conversation = Conversation(
            args.provider or config.provider,
            system_prompt=config.system_prompt or None,
            max_context_tokens=config.max_context_tokens,
            max_tokens=config.max_tokens,
            temperature=config.temperature,
            thresholds=config.thresholds,
            models=config.models,
        )
    except (ValueError, FileNotFoundError) as exc:
        # UnknownProviderError is a ValueError.
        print(f"Configuration error: {exc}", file=sys.stderr)
        sys.exit(1)

    asyncio.run(run_repl(conversation))


if __name__ == "__main__":
    main()
