"""CLI entry point for codepilot.

Commands:
  review   AI review of a code snippet or file, with an improved rewrite
  library  list, show, rename and delete saved reviews
  search   natural-language search over the library
  explain  explain one piece of a saved review's feedback
  detect   guess the language of a code file
  init     interactive setup wizard
"""

from __future__ import annotations

import importlib.metadata
import logging

import click
import yaml
from rich.console import Console

from codepilot_cli.commands.detect import detect_cmd
from codepilot_cli.commands.explain import explain_cmd
from codepilot_cli.commands.init import init_cmd
from codepilot_cli.commands.library import library_cmd
from codepilot_cli.commands.review import review_cmd
from codepilot_cli.commands.search import search_cmd

console = Console()


def _build_store(config: dict):
    """Instantiate the configured store from .codepilot.yml settings.

    Store selection hierarchy:
      store: json   → JsonFileStore (store_path or ~/.codepilot/history.json), the default
      store: sqlite → SQLiteStore   (store_path or ~/.codepilot/history.db)
      store: none   → NoOpStore     (history switched off)

    This factory lives in cli.py so neither codepilot_core nor codepilot_store
    know about the CLI config format.
    """
    from codepilot_core.config import resolve_store_path
    from codepilot_store.noop import NoOpStore

    store_type = config.get("store", "json")

    if store_type in ("none", "noop", None):
        return NoOpStore()

    if store_type == "sqlite":
        from codepilot_store.sqlite import SQLiteStore

        return SQLiteStore(db_path=resolve_store_path(config))

    if store_type != "json":
        console.print(f"[yellow]Unknown store {store_type!r}; using the JSON file store.[/yellow]")

    from codepilot_store.json_file import JsonFileStore

    return JsonFileStore(resolve_store_path({**config, "store": "json"}))


def _configure_logging(verbose: bool) -> None:
    from rich.logging import RichHandler

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


@click.group()
@click.version_option(
    version=importlib.metadata.version("codepilot"),
    prog_name="codepilot",
)
@click.option(
    "--config",
    "config_path",
    default=".codepilot.yml",
    show_default=True,
    help="Path to the configuration file.",
    envvar="CODEPILOT_CONFIG",
)
@click.option("--verbose", "-v", is_flag=True, help="Log backend calls and continuation progress.")
@click.pass_context
def main(ctx: click.Context, config_path: str, verbose: bool):
    """AI code review assistant with a local review library."""
    from codepilot_core.config import load_config

    _configure_logging(verbose)
    ctx.ensure_object(dict)

    try:
        config = load_config(config_path)
    except (ValueError, yaml.YAMLError) as e:
        raise click.UsageError(f"Invalid configuration: {e}")

    store = _build_store(config)
    ctx.obj["store"] = store
    ctx.obj["config"] = config
    ctx.obj["config_path"] = config_path
    ctx.call_on_close(store.close)


main.add_command(review_cmd)
main.add_command(library_cmd)
main.add_command(search_cmd)
main.add_command(explain_cmd)
main.add_command(detect_cmd)
main.add_command(init_cmd)
