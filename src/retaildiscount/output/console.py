"""Rich Console factory and theme for retaildiscount output.

Consoles render to a StringIO buffer so ``format_result() -> str`` stays
a pure function. In non-TTY environments (tests, pipes) Rich disables
color codes on its own.
"""

from __future__ import annotations

from io import StringIO

from rich.console import Console
from rich.theme import Theme

DISCOUNT_THEME = Theme(
    {
        "rd.ok": "bold green",
        "rd.error": "bold red",
        "rd.warning": "bold yellow",
        "rd.op": "bold cyan",
        "rd.key": "dim",
        "rd.id": "bold blue",
        "rd.money": "bold",
        "rd.discount": "green",
        "rd.net": "bold magenta",
        "rd.tier.employee": "cyan",
        "rd.tier.affiliate": "blue",
        "rd.tier.long_term_customer": "green",
        "rd.tier.regular": "dim",
    }
)


def create_console(*, no_color: bool = False, width: int | None = None) -> Console:
    """Create a Console that renders to a StringIO buffer.

    Args:
        no_color: Disable ANSI escape codes (used in tests).
        width: Override terminal width (useful for consistent test output).
    """
    return Console(
        file=StringIO(),
        theme=DISCOUNT_THEME,
        no_color=no_color,
        highlight=False,
        width=width or 100,
    )


def get_output(console: Console) -> str:
    """Extract rendered text from a StringIO-backed Console."""
    assert isinstance(console.file, StringIO)
    return console.file.getvalue()


def style_for_tier(tier: str) -> str:
    """Rich style name for a customer tier value (``""`` if unknown)."""
    style = f"rd.tier.{tier}"
    return style if style in DISCOUNT_THEME.styles else ""
