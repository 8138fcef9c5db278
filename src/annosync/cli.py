#!/usr/bin/env python3
"""
annosync: merge reading-app highlights into a Markdown vault

Usage:
    annosync sync export.json          # Write notebooks, link new annotations
    annosync files                     # List managed notebook files
    annosync daily-path 2024-03-01     # Show the daily note path for a day
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, NoReturn

import click
import pendulum
from pydantic import ValidationError

from . import __version__ as ANNOSYNC_VERSION


def run_async(coro):
    """Run async function synchronously."""
    return asyncio.run(coro)


def _fail(message: str) -> NoReturn:
    raise click.ClickException(message)


def _echo_notice(message: str) -> None:
    from ._logging import is_quiet_mode

    if not is_quiet_mode():
        click.echo(f"Notice: {message}", err=True)


def _open_vault(ctx: click.Context):
    """Resolve the vault and take a settings snapshot for this command."""
    from .config import SettingsStore, get_vault_root, load_settings
    from .errors import ConfigurationError
    from .store import FrontmatterIndex, LocalFileStore

    try:
        root = get_vault_root(ctx.obj.get("vault"))
        settings = SettingsStore(load_settings(root)).snapshot()
    except ConfigurationError as e:
        _fail(str(e))

    store = LocalFileStore(root)
    return store, FrontmatterIndex(store), settings


def _load_export(path: Path) -> list[Any]:
    from .models import Notebook

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as e:
        _fail(f"Cannot read export {path}: {e}")

    if isinstance(data, dict):
        data = data.get("notebooks", [])
    if not isinstance(data, list):
        _fail(f"{path}: expected a list of notebooks")

    notebooks = []
    for i, item in enumerate(data):
        try:
            notebooks.append(Notebook.model_validate(item))
        except ValidationError as e:
            errors = []
            for error in e.errors():
                loc = ".".join(str(x) for x in error["loc"])
                errors.append(f"  - {loc}: {error['msg']}")
            _fail(f"{path}: notebook #{i} is invalid:\n" + "\n".join(errors))
    return notebooks


# ─────────────────────────────────────────────────────────────────────────────
# Main CLI Group
# ─────────────────────────────────────────────────────────────────────────────


@click.group()
@click.version_option(version=ANNOSYNC_VERSION, prog_name="annosync")
@click.option(
    "--vault",
    type=click.Path(file_okay=False),
    envvar="ANNOSYNC_VAULT_ROOT",
    help="Vault directory (default: $ANNOSYNC_VAULT_ROOT)",
)
@click.option(
    "--quiet",
    "-q",
    is_flag=True,
    envvar="ANNOSYNC_QUIET",
    help="Suppress notices, show only errors and essential output",
)
@click.pass_context
def cli(ctx: click.Context, vault: str | None, quiet: bool):
    """annosync: merge reading-app highlights and reviews into a Markdown vault.

    \b
    Settings are read from <vault>/.annosync.yaml.
    """
    from ._logging import configure_logging, set_quiet_mode

    ctx.ensure_object(dict)
    ctx.obj["vault"] = vault
    set_quiet_mode(quiet)
    configure_logging()


@cli.command()
@click.argument("export", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--since",
    type=int,
    default=None,
    help="Epoch seconds of the last sync; older annotations are not added to daily notes",
)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def sync(ctx: click.Context, export: Path, since: int | None, as_json: bool):
    """Write notebooks from a JSON export into the vault.

    \b
    Examples:
      annosync sync export.json
      annosync sync export.json --since 1700000000
    """
    from .core import sync as run_sync
    from .errors import AnnosyncError

    store, index, settings = _open_vault(ctx)
    notebooks = _load_export(export)

    try:
        summary = run_async(
            run_sync(
                notebooks,
                store=store,
                index=index,
                settings=settings,
                notify=_echo_notice,
                since=since,
            )
        )
    except AnnosyncError as e:
        _fail(str(e))

    if as_json:
        click.echo(summary.model_dump_json(indent=2))
        return

    for path in summary.created:
        click.echo(f"Created: {path}")
    for path in summary.updated:
        click.echo(f"Updated: {path}")
    for path in summary.daily_notes:
        click.echo(f"Daily note: {path}")
    for failure in summary.failures:
        click.echo(f"Failed: {failure}", err=True)
    click.echo(
        f"{len(summary.created)} created, {len(summary.updated)} updated, "
        f"{len(summary.skipped)} unchanged"
    )


@cli.command()
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_context
def files(ctx: click.Context, as_json: bool):
    """List notebook files managed by annosync."""
    from .resolver import get_notebook_files

    store, index, _ = _open_vault(ctx)
    found = sorted(get_notebook_files(store, index), key=lambda f: f.file or "")

    if as_json:
        click.echo(
            json.dumps(
                [f.model_dump(mode="json", exclude={"state"}) for f in found],
                indent=2,
                ensure_ascii=False,
            )
        )
        return

    if not found:
        click.echo("No managed notebook files found.")
        return
    for f in found:
        click.echo(f"{f.book_id}\t{f.note_count or 0} notes\t{f.review_count or 0} reviews\t{f.file}")


@cli.command("daily-path")
@click.argument("day", required=False)
@click.pass_context
def daily_path(ctx: click.Context, day: str | None):
    """Show the daily note path for DAY (YYYY-MM-DD, default today)."""
    from .daily import get_daily_note_path
    from .errors import ConfigurationError

    _, _, settings = _open_vault(ctx)
    if day:
        try:
            moment = pendulum.parse(day, tz=settings.tz())
        except ValueError as e:
            _fail(f"Invalid date {day!r}: {e}")
    else:
        moment = pendulum.now(settings.tz())

    try:
        click.echo(get_daily_note_path(moment, settings, notify=_echo_notice))
    except ConfigurationError as e:
        _fail(str(e))


if __name__ == "__main__":
    cli()
