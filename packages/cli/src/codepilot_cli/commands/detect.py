"""detect command: guess the programming language of a code file."""

from __future__ import annotations

import click
from rich.console import Console

from codepilot_cli.helpers import get_config, require_reviewer
from codepilot_core.assistant import detect_language
from codepilot_core.utils.code import language_from_filename, language_label

console = Console()


@click.command("detect")
@click.argument("source", type=click.File("r", encoding="utf-8", errors="replace"))
@click.option("--no-extension", is_flag=True, help="Ignore the file extension and always ask the AI.")
@click.pass_context
def detect_cmd(ctx, source, no_extension: bool):
    """Detect the language of SOURCE ("-" for stdin)."""
    language = None
    name = getattr(source, "name", "<stdin>")
    if not no_extension and name != "<stdin>":
        language = language_from_filename(name)

    if language is None:
        reviewer = require_reviewer(get_config(ctx))
        with console.status("Detecting language..."):
            language = detect_language(reviewer, source.read())

    if language is None:
        console.print("[yellow]Could not detect the language. Please select it manually.[/yellow]")
        ctx.exit(1)
    console.print(f"{language}  [dim]({language_label(language)})[/dim]")
