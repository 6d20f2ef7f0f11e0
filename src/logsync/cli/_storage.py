"""CLI helpers for config resolution and store/synchronizer construction."""

from __future__ import annotations

import os

from logsync.config import SyncConfig, load_config
from logsync.store import ObjectStore, open_object_store
from logsync.synchronizer import (
    LockFileSynchronizer,
    NoIsolationSynchronizer,
    TransactionLogSynchronizer,
)

ISOLATION_LEVELS = ("lockfile", "none")


def resolve_config() -> SyncConfig:
    """Config file from CLI state, with environment and --log-level on top."""
    from logsync.cli import state

    endpoint = os.getenv("LOGSYNC_S3_ENDPOINT_URL") or os.getenv("LOGSYNC_S3_ENDPOINT")
    region = os.getenv("LOGSYNC_S3_REGION")
    return load_config(
        state.config,
        s3_region=region,
        s3_endpoint_url=endpoint,
        log_level=state.log_level,
    )


def open_store(config: SyncConfig | None = None) -> ObjectStore:
    """Open the object store selected by the global --storage-uri."""
    from logsync.cli import state

    return open_object_store(state.storage_uri, config or resolve_config())


def open_synchronizer(isolation: str = "lockfile") -> TransactionLogSynchronizer:
    config = resolve_config()
    store = open_store(config)
    if isolation == "lockfile":
        return LockFileSynchronizer(store, config)
    if isolation == "none":
        return NoIsolationSynchronizer(store)
    raise ValueError(f"Unknown isolation '{isolation}'; expected one of {ISOLATION_LEVELS}")


def open_lock_synchronizer() -> LockFileSynchronizer:
    config = resolve_config()
    return LockFileSynchronizer(open_store(config), config)
