"""Shared test fixtures for logsync tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from logsync.config import SyncConfig
from logsync.lock_record import LockFileContents, encode_lock_contents, epoch_millis, lock_filename
from logsync.store import InMemoryObjectStore
from logsync.synchronizer import LockFileSynchronizer

LOG_DIR = "warehouse/orders/_delta_log"
ENTRY_T = "00000000000000000005.json"
ENTRY_U = "00000000000000000004.json"


class FakeClock:
    """Settable UTC clock."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs: float) -> None:
        self.now = self.now + timedelta(**kwargs)


def put_lock(
    store: InMemoryObjectStore,
    entry_filename: str,
    query_id: str,
    expires_at: datetime,
    *,
    cluster_id: str = "cluster-x",
    log_dir: str = LOG_DIR,
) -> str:
    """Place a lock file as another writer would; returns its path."""
    path = f"{log_dir}/_sb_lock/{lock_filename(entry_filename, query_id)}"
    contents = LockFileContents(
        cluster_id=cluster_id,
        owning_query=query_id,
        expiration_epoch_millis=epoch_millis(expires_at),
    )
    store.create_exclusive(path, encode_lock_contents(contents))
    return path


def lock_paths(store: InMemoryObjectStore, log_dir: str = LOG_DIR) -> list[str]:
    return [obj.path for obj in store.list_directory(f"{log_dir}/_sb_lock")]


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 12, 0, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> InMemoryObjectStore:
    return InMemoryObjectStore()


@pytest.fixture
def config() -> SyncConfig:
    return SyncConfig(lock_ttl_ms=5 * 60 * 1000)


@pytest.fixture
def sync(store, config, clock) -> LockFileSynchronizer:
    return LockFileSynchronizer(store, config, clock=clock)
