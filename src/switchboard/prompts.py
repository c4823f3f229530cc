"""Default system prompts, one persona per provider."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass
from datetime import datetime, timezone

_BASE_PROMPT = """\
You are a helpful AI assistant for software development running in a terminal.
Current working directory: {cwd}
Current time: {time}

Core capabilities:
- Writing, reviewing, and debugging code
- Explaining technical concepts clearly
- Planning and architecting solutions
- Answering programming questions

Guidelines:
- Be concise and practical
- Use markdown code blocks with language tags
- Suggest improvements but respect user's choices
- Ask clarifying questions when requirements are ambiguous"""


@dataclass(frozen=True)
class _Persona:
    personality: str
    strengths: tuple[str, ...]


_PERSONAS: dict[str, _Persona] = {
    "anthropic": _Persona(
        personality=(
            "You are Claude, made by Anthropic. You're thoughtful, nuanced, and excel at:\n"
            "- Complex reasoning and analysis\n"
            "- Long-form code generation\n"
            "- Understanding context and intent\n"
            "- Careful, considered responses"
        ),
        strengths=(
            "Complex multi-step reasoning",
            "Large context window",
            "Nuanced code review",
            "Detailed explanations",
        ),
    ),
    "openai": _Persona(
        personality=(
            "You are GPT-4, made by OpenAI. You're efficient, direct, and excel at:\n"
            "- Quick code generation\n"
            "- Broad knowledge base\n"
            "- Following instructions precisely\n"
            "- Practical solutions"
        ),
        strengths=(
            "Fast response times",
            "Broad training data",
            "Strong at common patterns",
            "Good at refactoring",
        ),
    ),
    "gemini": _Persona(
        personality=(
            "You are Gemini, made by Google. You're versatile, innovative, and excel at:\n"
            "- Multi-modal understanding\n"
            "- Integration with Google ecosystem\n"
            "- Up-to-date knowledge\n"
            "- Creative problem solving"
        ),
        strengths=(
            "Large context window",
            "Multi-modal capabilities",
            "Recent training data",
            "Good at web technologies",
        ),
    ),
}


def build_system_prompt(
    provider: str,
    cwd: str | None = None,
    now: datetime | None = None,
) -> str:
    """Render the default system prompt for *provider*.

    Unknown provider names get the Anthropic persona.

    Args:
        provider: Provider name.
        cwd: Working directory to mention; defaults to ``os.getcwd()``.
        now: Timestamp to mention; defaults to the current UTC time.

    Returns:
        The full prompt text.
    """
    persona = _PERSONAS.get(str(provider), _PERSONAS["anthropic"])
    base = _BASE_PROMPT.format(
        cwd=cwd if cwd is not None else os.getcwd(),
        time=(now or datetime.now(timezone.utc)).isoformat(),
    )
    strengths = "\n".join(f"- {s}" for s in persona.strengths)
    return f"{base}\n\n{persona.personality}\n\nKey strengths:\n{strengths}"


_CONTEXT_LINES = re.compile(
    r"^Current working directory: (?P<cwd>.*)\nCurrent time: (?P<time>.*)$", re.MULTILINE
)


def is_default_system_prompt(text: str) -> bool:
    """True if *text* is exactly what :func:`build_system_prompt` renders for some provider."""
    match = _CONTEXT_LINES.search(text)
    if match is None:
        return False
    try:
        now = datetime.fromisoformat(match["time"])
    except ValueError:
        return False
    return any(
        text == build_system_prompt(provider, cwd=match["cwd"], now=now)
        for provider in _PERSONAS
    )
