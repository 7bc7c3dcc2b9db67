"""init command: interactive setup wizard.

Writes .codepilot.yml with the AI provider, default strictness and where the
review library lives, so later runs need no flags.
"""

from __future__ import annotations

from pathlib import Path

import click
import yaml
from rich.console import Console

from codepilot_core.completion import Strictness
from codepilot_core.config import DEFAULT_JSON_STORE_PATH, DEFAULT_SQLITE_STORE_PATH

console = Console()

_API_KEY_ENV = {"anthropic": "ANTHROPIC_API_KEY", "openai": "OPENAI_API_KEY"}


@click.command("init")
@click.pass_context
def init_cmd(ctx):
    """Set up codepilot in the current directory.

    Creates (or updates) the configuration file chosen with --config.
    """
    config_path = Path((ctx.obj or {}).get("config_path") or ".codepilot.yml")
    console.print("\n[bold cyan]codepilot init[/bold cyan]: setup wizard\n")

    provider = click.prompt(
        "AI provider",
        type=click.Choice(list(_API_KEY_ENV)),
        default="anthropic",
    )
    strictness = click.prompt(
        "Default strictness",
        type=click.Choice([s.value for s in Strictness]),
        default=Strictness.MODERATE.value,
    )

    console.print("\nReview library:")
    console.print("  [bold]json[/bold]    a JSON file in your home directory (default)")
    console.print("  [bold]sqlite[/bold]  a local SQLite database")
    console.print("  [bold]none[/bold]    do not keep a history")
    store_type = click.prompt(
        "Store backend",
        type=click.Choice(["json", "sqlite", "none"]),
        default="json",
    )

    config: dict = {"model": provider, "strictness": strictness, "store": store_type}

    if store_type in ("json", "sqlite"):
        default_path = str(DEFAULT_JSON_STORE_PATH if store_type == "json" else DEFAULT_SQLITE_STORE_PATH)
        store_path = click.prompt("Library path", default=default_path)
        if store_path != default_path:
            config["store_path"] = store_path
        console.print(f"[green]{store_type} store configured at {store_path}[/green]")

    _write_config(config_path, config)
    console.print(f"[green]Wrote {config_path}[/green]")

    api_key_env = _API_KEY_ENV[provider]
    console.print(f"\n[yellow]Remember to export [bold]{api_key_env}[/bold] before running a review.[/yellow]")
    console.print("\n[bold green]Setup complete![/bold green]")
    console.print("Run a review with: [bold]codepilot review path/to/file.py[/bold]")


def _write_config(path: Path, config: dict) -> None:
    """Write or update the config file, preserving any existing keys."""
    existing: dict = {}
    if path.exists():
        existing = yaml.safe_load(path.read_text()) or {}
    existing.update(config)
    if "store_path" not in config:
        existing.pop("store_path", None)
    path.write_text(yaml.dump(existing, default_flow_style=False, sort_keys=False))
