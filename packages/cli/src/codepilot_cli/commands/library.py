"""library commands: browse and manage saved reviews."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from codepilot_cli.helpers import get_store
from codepilot_cli.render import format_timestamp, print_code, print_feedback
from codepilot_store.base import ReviewNotFound

console = Console()

_STRICTNESS_STYLE = {"lenient": "green", "moderate": "yellow", "strict": "red"}


def _get_record(store, review_id: int):
    record = store.get_review(review_id)
    if record is None:
        raise click.ClickException(f"No review with id {review_id}.")
    return record


@click.group("library")
def library_cmd():
    """Browse and manage your saved reviews."""


@library_cmd.command("list")
@click.option("--language", "-l", default=None, help="Only show reviews of this language.")
@click.option("--limit", default=20, show_default=True, help="Maximum number of records to show.")
@click.pass_context
def list_cmd(ctx, language: str | None, limit: int):
    """List saved reviews, newest first."""
    store = get_store(ctx, require_history=True)

    records = store.list_reviews()
    if language:
        records = [r for r in records if r.language == language.lower()]
    if not records:
        console.print("[yellow]No review records found.[/yellow]")
        return

    records = records[:limit]

    table = Table(title="Review Library", show_header=True, header_style="bold cyan")
    table.add_column("ID", style="bold", no_wrap=True)
    table.add_column("Title", max_width=40)
    table.add_column("Language", width=12)
    table.add_column("Strictness", width=10)
    table.add_column("Lines", justify="right", width=6)
    table.add_column("Reviewed At", width=16)

    for r in records:
        style = _STRICTNESS_STYLE.get(r.strictness, "white")
        table.add_row(
            str(r.id),
            r.title[:40],
            r.language,
            f"[{style}]{r.strictness}[/{style}]",
            str(r.code.count("\n") + 1),
            format_timestamp(r.timestamp),
        )

    console.print(table)


@library_cmd.command("show")
@click.argument("review_id", type=int)
@click.option("--original", is_flag=True, help="Also print the original code.")
@click.pass_context
def show_cmd(ctx, review_id: int, original: bool):
    """Show a saved review's feedback and improved code."""
    store = get_store(ctx, require_history=True)
    record = _get_record(store, review_id)

    console.print(f"\n[bold]{record.title}[/bold]  [dim]{record.language} · {record.strictness} · "
                  f"{format_timestamp(record.timestamp)}[/dim]\n")
    if original:
        print_code(console, record.code, record.language, title="Original Code")
    print_feedback(console, record.feedback)
    print_code(console, record.corrected_code, record.language)


@library_cmd.command("rename")
@click.argument("review_id", type=int)
@click.argument("title")
@click.pass_context
def rename_cmd(ctx, review_id: int, title: str):
    """Change a saved review's title."""
    store = get_store(ctx, require_history=True)
    try:
        store.rename_review(review_id, title)
    except ReviewNotFound as e:
        raise click.ClickException(str(e))
    except ValueError as e:
        raise click.UsageError(str(e))
    console.print("[green]Title updated.[/green]")


@library_cmd.command("delete")
@click.argument("review_id", type=int)
@click.option("--yes", "-y", is_flag=True, help="Skip the confirmation prompt.")
@click.pass_context
def delete_cmd(ctx, review_id: int, yes: bool):
    """Delete a saved review."""
    store = get_store(ctx, require_history=True)
    record = _get_record(store, review_id)
    if not yes and not click.confirm(f"Delete '{record.title}'?", default=False):
        console.print("[yellow]Cancelled.[/yellow]")
        return
    store.delete_review(review_id)
    console.print("[green]Review deleted.[/green]")
