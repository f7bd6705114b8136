"""Typer-based CLI entry point."""

from __future__ import annotations

import asyncio
import functools
import json
from pathlib import Path
from typing import Any, Optional

import typer
from rich import print
from rich.console import Console
from rich.table import Table

from .appctx import AppContext, create_headless_context
from .application.services.change_decoder import decode_change_event
from .application.services.row_cache import enrich_record
from .config import ROW_ACTIONS, TABLE_COLUMNS
from .domain.models import Owner
from .errors import DecodeFailure, SeedFormatError, SettingsError, ShipDeskError
from .infrastructure.memory_store import load_seed
from .settings.manager import SettingsManager
from .utils.logging import configure_logging

app = typer.Typer(help="Live-synchronised shipment request table (headless harness)")
console = Console()


def _handle_errors(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except (DecodeFailure, SeedFormatError, SettingsError) as exc:
            typer.echo(f"Error: {exc}", err=True)
            raise typer.Exit(1) from exc
        except ShipDeskError as exc:
            typer.echo(f"Unexpected error: {exc}", err=True)
            raise typer.Exit(1) from exc

    return wrapper


def _render(rows, title: str = "Shipment Requests") -> Table:
    table = Table(title=title)
    table.add_column("Id", style="dim")
    for label, _field in TABLE_COLUMNS:
        table.add_column(label)
    for row in rows:
        cells = [row.id]
        for _label, field_name in TABLE_COLUMNS:
            value = row.get(field_name)
            cells.append("" if value is None else str(value))
        table.add_row(*cells)
    return table


def _load_settings(path: Optional[Path]) -> SettingsManager:
    manager = SettingsManager(path)
    manager.load(write_defaults=False)
    return manager


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        raise SeedFormatError(f"cannot read {path}: {exc}") from exc


@app.command()
@_handle_errors
def show(seed: Path = typer.Argument(..., exists=True, dir_okay=False)) -> None:
    """Print the rows a seed file would display."""

    rows = [enrich_record(record) for record in load_seed(seed)]
    console.print(_render(rows))


@app.command()
@_handle_errors
def decode(payload: Path = typer.Argument(..., exists=True, dir_okay=False)) -> None:
    """Decode a raw change event and print its notification."""

    notification = decode_change_event(_read_json(payload))
    print(f"[green]{notification.kind.value}[/green] {', '.join(sorted(notification.affected_ids))}")
    if notification.entity_name:
        print(f"Entity: {notification.entity_name}")
    if notification.replay_id is not None:
        print(f"Replay id: {notification.replay_id}")


@app.command()
@_handle_errors
def simulate(
    seed: Path = typer.Argument(..., exists=True, dir_okay=False),
    events: Path = typer.Argument(..., exists=True, dir_okay=False),
    settings: Optional[Path] = typer.Option(None, "--settings", help="Settings JSON file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log at DEBUG level"),
) -> None:
    """Attach the table to an in-memory backend and replay a script of steps.

    Each step is an object with an ``op`` of ``create``, ``update``,
    ``reassign``, ``delete``, ``undelete``, ``view``, ``edit``, ``save`` or
    ``refresh``.
    """

    manager = _load_settings(settings)
    configure_logging(
        "DEBUG" if verbose else manager.get("logging.level", "INFO"),
        manager.get("logging.json"),
    )
    steps = _read_json(events)
    if isinstance(steps, dict):
        steps = steps.get("steps")
    if not isinstance(steps, list):
        raise SeedFormatError(f"{events} must contain a list of steps")

    context = create_headless_context(load_seed(seed), settings=manager)
    asyncio.run(_run_script(context, steps))


async def _run_script(context: AppContext, steps: list) -> None:
    viewmodel = context.viewmodel
    await viewmodel.attach()
    console.print(_render(viewmodel.rows.value, title="Initial load"))
    try:
        for index, step in enumerate(steps, start=1):
            if not isinstance(step, dict) or "op" not in step:
                raise SeedFormatError(f"step {index} has no 'op'")
            await _apply_step(context, step)
            await context.controller.wait_idle()
            print(f"[cyan]{index}. {step['op']}[/cyan] -> {viewmodel.row_count} row(s)")
    finally:
        await viewmodel.detach()
    console.print(_render(viewmodel.rows.value, title="Final state"))
    print(f"Refresh fetches issued: {context.controller.fetches_issued}")


async def _apply_step(context: AppContext, step: dict) -> None:
    store = context.fetch_service
    viewmodel = context.viewmodel
    op = step["op"]
    if op == "create":
        await store.create(step.get("fields", {}), _owner(step.get("owner")))
    elif op == "update":
        await store.update(step.get("id"), step.get("fields", {}))
    elif op == "reassign":
        await store.reassign(step.get("id"), _owner(step.get("owner")))
    elif op == "delete":
        await store.delete(step.get("id"))
    elif op == "undelete":
        await store.undelete(step.get("id"))
    elif op in {name for _label, name in ROW_ACTIONS}:
        await viewmodel.handle_row_action(op, step.get("id"))
    elif op == "save":
        for record_id, fields in step.get("edits", {}).items():
            for field_name, value in fields.items():
                viewmodel.stage_edit(record_id, field_name, value)
        result = await viewmodel.save()
        for outcome in result.failed:
            print(f"[red]{outcome.error}[/red]")
    elif op == "refresh":
        viewmodel.refresh()
    else:
        raise SeedFormatError(f"unknown step op {op!r}")


def _owner(payload: Any) -> Optional[Owner]:
    if not isinstance(payload, dict):
        return None
    return Owner(id=payload.get("Id"), name=payload.get("Name"))


if __name__ == "__main__":  # pragma: no cover
    app()
