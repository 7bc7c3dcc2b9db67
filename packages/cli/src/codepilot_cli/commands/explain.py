"""explain command: explain a saved review's feedback in plain language."""

from __future__ import annotations

import click
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel

from codepilot_cli.helpers import get_config, get_store, require_reviewer
from codepilot_cli.render import print_error
from codepilot_core.assistant import explain_feedback
from codepilot_core.errors import BackendError, ValidationError
from codepilot_core.feedback import FEEDBACK_CATEGORIES, find_section

console = Console()


@click.command("explain")
@click.argument("review_id", type=int)
@click.option(
    "--section",
    type=click.Choice([cat[0] for cat in FEEDBACK_CATEGORIES]),
    default=None,
    help="Explain only this part of the feedback.",
)
@click.pass_context
def explain_cmd(ctx, review_id: int, section: str | None):
    """Explain why a saved review's feedback matters and how to act on it."""
    store = get_store(ctx, require_history=True)
    record = store.get_review(review_id)
    if record is None:
        raise click.ClickException(f"No review with id {review_id}.")

    feedback = record.feedback or ""
    if section:
        found = find_section(feedback, section)
        if found is None:
            raise click.ClickException(f"The review has no '{section}' feedback.")
        feedback = f"{found.title}:\n{found.text}"

    reviewer = require_reviewer(get_config(ctx))
    try:
        with console.status("Explaining..."):
            explanation = explain_feedback(reviewer, record.code, feedback, record.language)
    except ValidationError as e:
        raise click.UsageError(str(e))
    except BackendError as e:
        print_error(console, e)
        ctx.exit(1)

    console.print(Panel(Markdown(explanation), title="Explanation", title_align="left", border_style="cyan"))
