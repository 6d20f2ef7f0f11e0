"""logsync locks — inspect and garbage-collect lock directories."""

from __future__ import annotations

from datetime import datetime, timezone

import typer

from logsync.cli import _exitcodes as ec
from logsync.cli._output import print_error, print_object, print_table
from logsync.cli._storage import open_lock_synchronizer
from logsync.errors import StorageBackendError

app = typer.Typer(no_args_is_help=True)

_HEADERS = ["lock_filename", "entry_filename", "cluster_id", "owning_query", "expires_at", "state"]


@app.command("list")
def list_cmd(
    log_dir: str = typer.Argument(..., help="Directory holding the log entries"),
) -> None:
    """List lock files for LOG_DIR with their live/expired state."""
    from logsync.cli import state

    try:
        locks = open_lock_synchronizer().list_locks(log_dir)
    except StorageBackendError as e:
        print_error(str(e))
        raise typer.Exit(ec.STORAGE_ERROR)

    now = datetime.now(timezone.utc)
    rows = [
        [
            lock.lock_filename,
            lock.entry_filename,
            lock.cluster_id,
            lock.owning_query,
            lock.expiration_time.isoformat(),
            "expired" if lock.is_expired(now) else "live",
        ]
        for lock in locks
    ]
    if not rows and not state.json_output:
        print("No locks.")
        return
    print_table(_HEADERS, rows, json_mode=state.json_output)


@app.command("gc")
def gc_cmd(
    log_dir: str = typer.Argument(..., help="Directory holding the log entries"),
    apply: bool = typer.Option(False, "--apply", help="Delete expired locks (default: dry run)"),
) -> None:
    """Remove expired lock files for LOG_DIR."""
    from logsync.cli import state

    try:
        expired = open_lock_synchronizer().cleanup_expired_locks(log_dir, apply=apply)
    except StorageBackendError as e:
        print_error(str(e))
        raise typer.Exit(ec.STORAGE_ERROR)

    result = {
        "applied": apply,
        "expired_locks": [lock.lock_filename for lock in expired],
    }
    if state.json_output:
        print_object(result, json_mode=True)
        return

    verb = "Deleted" if apply else "Would delete"
    if not expired:
        print("No expired locks.")
        return
    for lock in expired:
        print(f"{verb} {lock.lock_filename} (expired {lock.expiration_time.isoformat()})")
