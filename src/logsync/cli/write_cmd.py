"""logsync write — create one transaction log entry."""

from __future__ import annotations

import sys
import uuid
from typing import Optional

import typer

from logsync.cli import _exitcodes as ec
from logsync.cli._output import print_error, print_object
from logsync.cli._storage import ISOLATION_LEVELS, open_synchronizer
from logsync.errors import (
    LockInvariantError,
    StorageBackendError,
    TransactionConflictError,
)
from logsync.synchronizer import WriteContext


def write_cmd(
    entry_path: str = typer.Argument(..., help="Log entry path relative to the storage URI"),
    file: Optional[str] = typer.Option(
        None, "--file", "-f", help="Read entry contents from this file (default: stdin)"
    ),
    cluster_id: str = typer.Option(
        ..., "--cluster-id", envvar="LOGSYNC_CLUSTER_ID", help="Identity of this writer's cluster"
    ),
    query_id: Optional[str] = typer.Option(
        None, "--query-id", help="Identity of this write attempt (default: random)"
    ),
    isolation: str = typer.Option(
        "lockfile", "--isolation", help="Synchronization: lockfile or none"
    ),
) -> None:
    """Create ENTRY_PATH unless another writer already owns or wrote it."""
    from logsync.cli import state

    if isolation not in ISOLATION_LEVELS:
        print_error(f"Unknown isolation '{isolation}'; expected one of {list(ISOLATION_LEVELS)}")
        raise typer.Exit(ec.USAGE_ERROR)

    if file is not None:
        try:
            with open(file, "rb") as f:
                contents = f.read()
        except OSError as e:
            print_error(f"Cannot read {file}: {e}")
            raise typer.Exit(ec.USAGE_ERROR)
    else:
        contents = sys.stdin.buffer.read()

    try:
        context = WriteContext(query_id=query_id or uuid.uuid4().hex)
    except ValueError as e:
        print_error(str(e))
        raise typer.Exit(ec.USAGE_ERROR)

    try:
        synchronizer = open_synchronizer(isolation)
        synchronizer.write(context, cluster_id, entry_path, contents)
    except TransactionConflictError as e:
        print_error(f"Conflict: {e}")
        raise typer.Exit(ec.CONFLICT)
    except LockInvariantError as e:
        print_error(str(e))
        raise typer.Exit(ec.LOCK_INVARIANT_VIOLATION)
    except StorageBackendError as e:
        print_error(str(e))
        raise typer.Exit(ec.STORAGE_ERROR)

    result = {
        "entry_path": entry_path,
        "bytes_written": len(contents),
        "cluster_id": cluster_id,
        "query_id": context.query_id,
        "isolation": isolation,
        "unsafe": synchronizer.is_unsafe(),
    }
    if state.json_output:
        print_object(result, json_mode=True)
    else:
        print(f"Wrote {entry_path} ({len(contents)} bytes)")
