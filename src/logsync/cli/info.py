"""logsync info — show the resolved store and lock settings."""

from __future__ import annotations

import typer

from logsync.cli import _exitcodes as ec
from logsync.cli._output import print_error, print_object
from logsync.cli._storage import open_store, resolve_config
from logsync.errors import StorageBackendError


def info_cmd() -> None:
    """Show backend, storage URI and lock configuration."""
    from logsync.cli import state

    config = resolve_config()
    try:
        store = open_store(config)
    except StorageBackendError as e:
        print_error(f"Cannot open storage backend: {e}")
        raise typer.Exit(ec.STORAGE_ERROR)

    data = {
        "storage_uri": state.storage_uri,
        **store.describe(),
        "lock_directory": config.lock_directory,
        "lock_infix": config.lock_infix,
        "lock_ttl_ms": config.lock_ttl_ms,
    }
    print_object(data, json_mode=state.json_output)
