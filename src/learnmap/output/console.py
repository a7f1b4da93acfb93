"""Rich Console factory and theme for learnmap output.

Creates Console instances that render to a StringIO buffer, preserving
the ``format_result() -> str`` contract.  In non-TTY environments
(tests, pipes) Rich automatically disables color codes.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

LM_THEME = Theme(
    {
        "lm.ok": "bold green",
        "lm.error": "bold red",
        "lm.warning": "bold yellow",
        "lm.op": "bold cyan",
        "lm.key": "dim",
        "lm.id": "bold blue",
        "lm.path": "dim",
        "lm.label": "bold",
        "lm.level.beginner": "green",
        "lm.level.intermediate": "yellow",
        "lm.level.advanced": "red",
        "lm.flag": "magenta",
    }
)

_LEVEL_STYLES: dict[str, str] = {
    "Beginner": "lm.level.beginner",
    "Intermediate": "lm.level.intermediate",
    "Advanced": "lm.level.advanced",
}


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=LM_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 120,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_level(level: str) -> str:
    """Return the Rich style name for a difficulty level."""
    return _LEVEL_STYLES.get(level, "")
