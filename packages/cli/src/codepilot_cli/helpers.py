"""Helpers shared by several commands: store lookup and reviewer construction."""

from __future__ import annotations

import click

_API_KEY_ENV = {"anthropic": "ANTHROPIC_API_KEY", "openai": "OPENAI_API_KEY"}


def get_store(ctx: click.Context, require_history: bool = False):
    """Return the store built by the root command.

    With ``require_history`` a NoOpStore is rejected: commands that read the
    library are meaningless when history is switched off.
    """
    from codepilot_store.noop import NoOpStore

    store = ctx.obj.get("store") if ctx.obj else None
    if store is None:
        store = NoOpStore()
    if require_history and isinstance(store, NoOpStore):
        raise click.UsageError(
            "Review history is switched off. Set 'store: json' or 'store: sqlite' in .codepilot.yml, "
            "or run `codepilot init` to set one up."
        )
    return store


def get_config(ctx: click.Context) -> dict:
    return dict(ctx.obj.get("config") or {}) if ctx.obj else {}


def require_reviewer(config: dict):
    """Build the configured provider, or fail with a usage error naming the missing key."""
    from codepilot_core.reviewer import get_reviewer

    model = config.get("model", "anthropic")
    env_var = _API_KEY_ENV.get(model)
    if env_var is None:
        raise click.UsageError(f"Unknown model provider: {model!r}. Choose 'anthropic' or 'openai'.")
    if not config.get(f"{model}_api_key"):
        raise click.UsageError(f"{env_var} environment variable is not set.")
    try:
        return get_reviewer(config)
    except ImportError as e:
        raise click.UsageError(str(e))
