from __future__ import annotations

import asyncio
import json
from pathlib import Path

import typer

from .app import listen as app_listen
from .app import run as app_run
from .config import Settings
from .flow.runtime import FlowRuntime
from .nodes.registry import NODE_TYPES

app = typer.Typer(help="Push-to-talk flow runner")


def _settings(overrides: dict[str, object], verbose: bool) -> Settings:
    settings = Settings(**overrides)
    if verbose:
        typer.echo(settings.model_dump_json(indent=2, exclude={"password"}))
    return settings


@app.command()
def run(
    flow: Path = typer.Argument(..., exists=True, dir_okay=False, help="Flow document (JSON)"),
    client_factory: str | None = typer.Option(None, help="Client SDK as module:factory"),
    log_level: str | None = typer.Option(None, help="Logging level"),
    verbose: bool = typer.Option(False, help="Print effective settings"),
) -> None:
    """Run a flow until interrupted."""
    overrides: dict[str, object] = {}
    if client_factory is not None:
        overrides["client_factory"] = client_factory
    if log_level is not None:
        overrides["log_level"] = log_level
    settings = _settings(overrides, verbose)
    try:
        asyncio.run(app_run(settings=settings, flow=flow))
    except KeyboardInterrupt:  # pragma: no cover - interactive
        pass


@app.command()
def rx(
    client_factory: str | None = typer.Option(None, help="Client SDK as module:factory"),
    group_ids: str | None = typer.Option(None, help="Comma separated group ids, or ALL"),
    ignore_self: bool = typer.Option(False, help="Drop the account's own events"),
    verbose: bool = typer.Option(False, help="Print effective settings"),
) -> None:
    """Print received events as JSON lines."""
    overrides: dict[str, object] = {}
    if client_factory is not None:
        overrides["client_factory"] = client_factory
    if group_ids is not None:
        overrides["group_ids"] = group_ids
    if ignore_self:
        overrides["ignore_self"] = True
    settings = _settings(overrides, verbose)

    def echo(event: dict) -> None:
        typer.echo(json.dumps(event, default=str))

    try:
        asyncio.run(app_listen(settings=settings, on_event=echo))
    except KeyboardInterrupt:  # pragma: no cover - interactive
        pass


@app.command("types")
def list_types() -> None:
    """Print the available node types."""
    runtime = FlowRuntime(node_types=NODE_TYPES)
    for name in runtime.types():
        typer.echo(name)


if __name__ == "__main__":  # pragma: no cover
    app()
