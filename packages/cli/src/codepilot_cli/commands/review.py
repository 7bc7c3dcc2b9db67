"""review command: AI review of a code snippet or file."""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from codepilot_cli.helpers import get_config, get_store, require_reviewer
from codepilot_cli.render import print_code, print_error, print_feedback
from codepilot_core.assistant import check_language, detect_language
from codepilot_core.completion import ReviewRequest, Strictness
from codepilot_core.errors import ValidationError
from codepilot_core.reviewer import ProgressKind, ReviewSummary, review
from codepilot_core.utils.code import SUPPORTED_LANGUAGES, is_code_file, language_from_filename
from codepilot_store.models import ReviewRecord

console = Console()


def _summary_to_record(summary: ReviewSummary) -> ReviewRecord:
    """Map a ReviewSummary produced by review() to a ReviewRecord for the store.

    The CLI layer owns this mapping: codepilot_core has no store knowledge and
    codepilot_store has no core knowledge. The CLI bridges the two.
    """
    return ReviewRecord(
        id=summary.id,
        timestamp=summary.timestamp,
        title=summary.title,
        code=summary.code,
        language=summary.language,
        strictness=summary.strictness,
        feedback=summary.feedback,
        corrected_code=summary.corrected_code,
    )


def _read_source(source: str | None, max_bytes: int) -> tuple[str, str | None]:
    """Return (code, file name) from a path, or from stdin for None / "-"."""
    if source is None or source == "-":
        return click.get_text_stream("stdin").read(), None

    path = Path(source)
    if not is_code_file(path.name):
        raise click.UsageError(f"{source} does not look like a code file.")
    if path.stat().st_size > max_bytes:
        raise click.UsageError(f"{source} is too large. Please use a file smaller than {max_bytes // 1024}KB.")
    return path.read_text(encoding="utf-8", errors="replace"), path.name


@click.command("review")
@click.argument("source", required=False, type=click.Path(exists=True, dir_okay=False, allow_dash=True))
@click.option(
    "--language",
    "-l",
    type=click.Choice(list(SUPPORTED_LANGUAGES), case_sensitive=False),
    default=None,
    help="Language of the code. Guessed from the file name, then by the AI, when omitted.",
)
@click.option(
    "--strictness",
    "-s",
    type=click.Choice([s.value for s in Strictness]),
    default=None,
    help="How thorough the review should be. Overrides config file.",
)
@click.option(
    "--model",
    type=click.Choice(["anthropic", "openai"]),
    default=None,
    help="AI model provider. Overrides config file.",
)
@click.option("--no-save", is_flag=True, help="Do not add this review to the library.")
@click.option(
    "--check-language",
    "check_language_flag",
    is_flag=True,
    help="Ask the AI to confirm the code matches --language before reviewing.",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Also write the improved code to this file.",
)
@click.pass_context
def review_cmd(
    ctx,
    source: str | None,
    language: str | None,
    strictness: str | None,
    model: str | None,
    no_save: bool,
    check_language_flag: bool,
    output: str | None,
):
    """Review code and produce an improved version.

    SOURCE is a code file, or "-" / nothing to read from stdin. Long files are
    reviewed in chunks and the improved code is reassembled across as many
    model responses as it takes.

    \b
    Required environment variables:
      ANTHROPIC_API_KEY    Required when using --model anthropic
      OPENAI_API_KEY       Required when using --model openai
    """
    config = get_config(ctx)
    if model:
        config["model"] = model
    strictness = strictness or config.get("strictness", "moderate")

    code, file_name = _read_source(source, config.get("max_file_bytes", 200 * 1024))
    if not code.strip():
        raise click.UsageError("Code snippet cannot be empty.")

    language = language.lower() if language else None
    if language is None and file_name:
        language = language_from_filename(file_name)

    reviewer = require_reviewer(config)

    if language is None:
        with console.status("Detecting language..."):
            language = detect_language(reviewer, code)
        if language is None:
            raise click.UsageError("Could not detect the language of your code. Please pass --language.")
        console.print(f"[dim]Detected language: {language}[/dim]")

    if check_language_flag:
        with console.status("Checking language..."):
            matches = check_language(reviewer, code, language)
        if not matches:
            raise click.UsageError(
                f"The code does not appear to be {language}. Please select the correct language."
            )

    store = get_store(ctx)

    def _persist(summary: ReviewSummary) -> None:
        store.save(_summary_to_record(summary))

    try:
        states = review(
            ReviewRequest(code=code, language=language, strictness=Strictness.parse(strictness)),
            reviewer,
            on_complete=None if no_save else _persist,
            max_lines_per_chunk=config.get("max_lines_per_chunk", 600),
            max_continuations=config.get("max_continuations", 50),
        )
    except ValidationError as e:
        raise click.UsageError(str(e))

    final = None
    with console.status("Reviewing your code...") as status:
        for state in states:
            if state.kind is ProgressKind.LOADING_FIRST:
                status.update("Reviewing your code...")
            elif state.kind is ProgressKind.LOADING_CONTINUATION:
                status.update(f"Writing improved code (part {state.chunk_index + 1}/{state.chunk_count})...")
            elif state.kind is ProgressKind.PARTIAL:
                lines = state.code.count("\n") + 1 if state.code else 0
                status.update(
                    f"Writing improved code (part {state.chunk_index + 1}/{state.chunk_count}, {lines} line(s) so far)..."
                )
            elif state.kind is ProgressKind.SAVED:
                console.print(f"[green]Review saved to your library (id {state.summary.id}).[/green]")
            else:
                final = state

    if final is None:
        return

    if final.kind is ProgressKind.ERROR:
        print_error(console, final.error, final.message)
        ctx.exit(1)

    print_feedback(console, final.feedback)
    print_code(console, final.code, language)
    if final.message:
        console.print(final.message, style="yellow", markup=False)

    if output and final.code:
        Path(output).write_text(final.code, encoding="utf-8")
        console.print(f"[green]Improved code written to {output}[/green]")
