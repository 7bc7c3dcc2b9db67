"""search command: natural-language search over the review library."""

from __future__ import annotations

import click
from rich.console import Console
from rich.table import Table

from codepilot_cli.helpers import get_config, get_store, require_reviewer
from codepilot_cli.render import format_timestamp, print_error
from codepilot_core.assistant import search_reviews
from codepilot_core.errors import BackendError, ValidationError

console = Console()


@click.command("search")
@click.argument("query", nargs=-1, required=True)
@click.option("--limit", default=10, show_default=True, help="Maximum number of matches to show.")
@click.pass_context
def search_cmd(ctx, query: tuple[str, ...], limit: int):
    """Find saved reviews matching a plain-English QUERY.

    Example: codepilot search sql injection in python
    """
    store = get_store(ctx, require_history=True)
    text = " ".join(query)
    if not text.strip():
        raise click.UsageError("Search query cannot be empty.")

    records = store.list_reviews()
    if not records:
        console.print("[yellow]No review records found.[/yellow]")
        return

    reviewer = require_reviewer(get_config(ctx))
    try:
        with console.status("Searching your library..."):
            ids = search_reviews(reviewer, text, [r.to_dict() for r in records])
    except ValidationError as e:
        raise click.UsageError(str(e))
    except BackendError as e:
        print_error(console, e)
        ctx.exit(1)

    if not ids:
        console.print("[yellow]No relevant reviews found.[/yellow]")
        return

    by_id = {r.id: r for r in records}
    table = Table(title=f"Results for “{text}”", show_header=True, header_style="bold cyan")
    table.add_column("Rank", justify="right", width=5)
    table.add_column("ID", style="bold", no_wrap=True)
    table.add_column("Title", max_width=40)
    table.add_column("Language", width=12)
    table.add_column("Reviewed At", width=16)
    for rank, review_id in enumerate(ids[:limit], 1):
        r = by_id[review_id]
        table.add_row(str(rank), str(r.id), r.title[:40], r.language, format_timestamp(r.timestamp))
    console.print(table)
