"""Rich rendering shared by the review and library commands."""

from __future__ import annotations

from datetime import datetime

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.syntax import Syntax

from codepilot_core.errors import BackendOverloaded, CodePilotError, TruncationExceeded
from codepilot_core.feedback import parse_feedback_sections

_SECTION_STYLE = {"bugs": "red", "style": "blue", "security": "yellow", "optimizations": "green"}


def format_timestamp(timestamp_ms: int) -> str:
    return datetime.fromtimestamp(timestamp_ms / 1000).strftime("%Y-%m-%d %H:%M")


def print_feedback(console: Console, feedback: str | None) -> None:
    sections = parse_feedback_sections(feedback)
    if not sections:
        if feedback:
            console.print(Panel(Markdown(feedback), title="Feedback", border_style="cyan"))
        else:
            console.print("[dim]No feedback returned.[/dim]")
        return
    for section in sections:
        style = _SECTION_STYLE.get(section.id, "white")
        console.print(
            Panel(
                Markdown(section.text),
                title=f"[bold]{section.title}[/bold] [dim]({section.id})[/dim]",
                title_align="left",
                border_style=style,
            )
        )


def print_code(console: Console, code: str | None, language: str, title: str = "Improved Code") -> None:
    if not code:
        console.print("[dim]No corrected code was needed.[/dim]")
        return
    console.print(Panel(Syntax(code, language, line_numbers=True, word_wrap=True), title=title, title_align="left"))


def print_error(console: Console, error: CodePilotError | None, message: str | None = None) -> None:
    if isinstance(error, BackendOverloaded):
        title = "Service busy"
    elif isinstance(error, TruncationExceeded):
        title = "Improved code incomplete"
    else:
        title = "Review failed"
    console.print(Panel(message or str(error), title=f"[bold]{title}[/bold]", border_style="red"))
