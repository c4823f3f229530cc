"""Async interactive REPL over a :class:`~switchboard.conversation.Conversation`."""

from __future__ import annotations

import asyncio
import logging
from contextlib import aclosing

from rich.console import Console
from rich.live import Live
from rich.markdown import Markdown
from rich.markup import escape
from rich.spinner import Spinner

from switchboard.conversation import Conversation
from switchboard.errors import UnknownProviderError
from switchboard.models import ChunkType, ContextStatus, HealthStatus
from switchboard.providers import PROVIDERS, create_provider, get_configured_providers

logger = logging.getLogger(__name__)

console = Console()

_WELCOME = """\
[bold green]switchboard[/bold green]  [dim]talking to {provider}[/dim]
Type your message and press Enter. Special commands:
  [bold]/switch NAME [--no-compact][/bold]  switch provider (with context handoff)
  [bold]/compact[/bold]     summarise and compress conversation history
  [bold]/clear[/bold]       forget the conversation
  [bold]/status[/bold]      show provider, token usage and context
  [bold]/health[/bold]      ping every provider and report its health
  [bold]/providers[/bold]   list providers with credentials
  [bold]/quit[/bold]        exit
"""

_PROMPT = "> "

_STATUS_STYLES = {
    ContextStatus.WARNING: "yellow",
    ContextStatus.HANDOFF: "bold yellow",
    ContextStatus.STOP: "bold red",
}

_HEALTH_MARKS = {
    HealthStatus.GREEN: "[green]●[/green]",
    HealthStatus.YELLOW: "[yellow]●[/yellow]",
    HealthStatus.RED: "[red]●[/red]",
}


async def run_repl(conversation: Conversation) -> None:
    """Run the interactive REPL loop until the user quits.

    Reads user input off the event loop (via ``run_in_executor``) to keep the
    async event loop free for streaming completions.

    Args:
        conversation: The conversation to drive.
    """
    loop = asyncio.get_running_loop()

    console.print(_WELCOME.format(provider=conversation.current_provider))
    if not conversation.provider.is_configured():
        console.print(
            f"[yellow]No API key found for {conversation.current_provider}. "
            "Requests will fail until one is set.[/yellow]"
        )

    while True:
        try:
            user_input: str = await loop.run_in_executor(None, input, _PROMPT)
        except (EOFError, KeyboardInterrupt):
            console.print("\n[dim]Bye![/dim]")
            break

        user_input = user_input.strip()
        if not user_input:
            continue

        if user_input.lower() in {"/quit", "/exit", "quit", "exit"}:
            console.print("[dim]Bye![/dim]")
            break

        if user_input.startswith("/"):
            await _run_command(conversation, user_input)
            continue

        try:
            await _stream_turn(conversation, user_input)
        except KeyboardInterrupt:
            console.print("\n[dim](interrupted)[/dim]")
        except Exception as exc:
            logger.exception("Unhandled error during turn")
            console.print(f"[red]Error: {escape(str(exc))}[/red]")

        _print_usage(conversation)


async def _stream_turn(conversation: Conversation, user_input: str) -> None:
    """Stream one reply, rendering markdown live."""
    accumulated = ""
    with Live(
        Spinner("dots", text=" Thinking…"),
        console=console,
        refresh_per_second=15,
        auto_refresh=True,
    ) as live:
        async with aclosing(conversation.send_streaming(user_input)) as stream:
            async for chunk in stream:
                if chunk.type is ChunkType.TEXT and chunk.text:
                    accumulated += chunk.text
                    live.update(Markdown(accumulated, code_theme="github-dark"), refresh=True)
                elif chunk.type is ChunkType.TOOL_CALL and chunk.tool_call:
                    console.print(f"[dim]  tool requested: {chunk.tool_call.name}[/dim]")
                elif chunk.type is ChunkType.ERROR:
                    console.print(f"[red]Provider error: {escape(chunk.error or '')}[/red]")


async def _run_command(conversation: Conversation, command: str) -> None:
    name, *args = command.split()
    name = name.lower()

    try:
        if name == "/switch":
            await _do_switch(conversation, args)
        elif name == "/compact":
            console.print("[dim]Compacting history...[/dim]")
            summary = await conversation.compact()
            console.print(f"[green]{escape(summary)}[/green]")
        elif name == "/clear":
            conversation.clear()
            console.print("[green]Conversation cleared.[/green]")
        elif name == "/status":
            _print_usage(conversation)
        elif name == "/health":
            await _print_health(conversation)
        elif name == "/providers":
            configured = {p.name for p in get_configured_providers()}
            for provider_name in PROVIDERS:
                mark = "[green]✓[/green]" if provider_name in configured else "[red]✗[/red]"
                console.print(f"  {mark} {provider_name}")
        else:
            console.print(f"[yellow]Unknown command: {name}[/yellow]")
    except Exception as exc:
        logger.exception("Command %s failed", name)
        console.print(f"[red]{name} failed: {escape(str(exc))}[/red]")


async def _do_switch(conversation: Conversation, args: list[str]) -> None:
    if not args:
        console.print("[yellow]Usage: /switch NAME [--no-compact][/yellow]")
        return
    compact = "--no-compact" not in args[1:]
    try:
        summary = await conversation.switch_provider(args[0], compact=compact)
    except UnknownProviderError as exc:
        console.print(f"[red]{escape(str(exc))}[/red]")
        return

    console.print(f"[green]Now talking to {conversation.current_provider}.[/green]")
    if summary:
        console.print("[dim]Context handed off with summary:[/dim]")
        console.print(Markdown(summary))


def _print_usage(conversation: Conversation) -> None:
    u = conversation.token_usage
    percentage = conversation.context_percentage
    console.print(
        f"[dim]  {conversation.current_provider} · tokens: {u.input_tokens} in / "
        f"{u.output_tokens} out (total {u.total}) · context {percentage}%[/dim]"
    )
    status = conversation.context_status
    if status in _STATUS_STYLES:
        console.print(
            f"[{_STATUS_STYLES[status]}]Context is {percentage}% full. Consider running "
            "/compact or /switch to hand off the conversation.[/]"
        )


async def _print_health(conversation: Conversation) -> None:
    """Ping each provider in turn; the active one reuses the conversation's adapter."""
    console.print("[dim]Checking provider health...[/dim]")
    for provider_name in PROVIDERS:
        active = provider_name == conversation.current_provider
        adapter = conversation.provider if active else create_provider(provider_name)
        health = await adapter.check_health()
        suffix = " (active)" if active else ""
        console.print(
            f"  {_HEALTH_MARKS[health.status]} {provider_name}{suffix}: {escape(health.message)}"
        )
