"""logsync CLI: write log entries and inspect lock directories."""

from __future__ import annotations

from typing import Optional

import typer

from logsync.cli import _exitcodes as ec
from logsync.cli import info, locks, write_cmd
from logsync.cli._output import print_error

app = typer.Typer(
    name="logsync",
    help="logsync — serialized transaction log writes on object stores.",
    no_args_is_help=True,
)


class _State:
    """Global CLI state shared across subcommands."""

    storage_uri: str = "."
    config: str | None = None
    json_output: bool = False
    log_level: str | None = None


state = _State()


def _version_callback(value: bool) -> None:
    if value:
        try:
            from importlib.metadata import version

            v = version("logsync")
        except Exception:
            v = "unknown"
        print(f"logsync {v}")
        raise typer.Exit()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    storage_uri: Optional[str] = typer.Option(
        None,
        "--storage-uri",
        envvar="LOGSYNC_STORAGE_URI",
        help="Object store URI (e.g. s3://bucket/prefix or file:///data/tables)",
    ),
    config: Optional[str] = typer.Option(
        None,
        "--config",
        "-c",
        envvar="LOGSYNC_CONFIG",
        help="YAML config file path",
    ),
    json_output: bool = typer.Option(False, "--json", help="JSON output when supported"),
    log_level: Optional[str] = typer.Option(
        None, "--log-level", help="Log level override (DEBUG, INFO, WARNING, ...)"
    ),
    version: bool = typer.Option(
        False, "--version", help="Show version", is_eager=True, callback=_version_callback
    ),
) -> None:
    """Global options for all logsync commands."""
    from logsync.cli._storage import resolve_config
    from logsync.errors import ConfigError, StorageBackendError
    from logsync.logging import configure_logging
    from logsync.store import parse_storage_target

    state.storage_uri = storage_uri or "."
    state.config = config
    state.json_output = json_output
    state.log_level = log_level

    try:
        parse_storage_target(state.storage_uri)
    except StorageBackendError as e:
        raise typer.BadParameter(str(e))

    try:
        cfg = resolve_config()
    except ConfigError as e:
        print_error(str(e))
        raise typer.Exit(ec.CONFIG_ERROR)
    configure_logging(cfg.log_level, cfg.log_format)

    if ctx.invoked_subcommand is None and not version:
        print(ctx.get_help())
        raise typer.Exit()


app.add_typer(locks.app, name="locks", help="Inspect and clean lock directories")

app.command(name="write")(write_cmd.write_cmd)
app.command(name="info")(info.info_cmd)


def main() -> None:
    """Entry point for the logsync CLI."""
    app()
