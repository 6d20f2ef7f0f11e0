"""Transaction log synchronizers: serialized creation of log entries on object stores."""

from __future__ import annotations

import base64
import posixpath
from abc import ABC, abstractmethod
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Callable, Iterator

from logsync.config import SyncConfig
from logsync.errors import (
    LockInvariantError,
    MalformedLockRecordError,
    ObjectNotFoundError,
    StorageBackendError,
    TransactionConflictError,
)
from logsync.lock_record import (
    LockInfo,
    decode_lock_contents,
    encode_lock_contents,
    is_lock_filename,
    lock_filename,
    new_lock_contents,
    partition_locks,
)
from logsync.logging import get_logger
from logsync.store import ObjectStore, join_path, normalize_path

logger = get_logger(__name__)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class WriteContext:
    """Identity of the logical operation performing a write.

    ``query_id`` must be unique among concurrent attempts of one cluster; it
    is embedded in the lock filename, so it may not be empty or contain ``/``.
    """

    query_id: str

    def __post_init__(self) -> None:
        if not self.query_id or "/" in self.query_id:
            raise ValueError(f"Invalid query_id '{self.query_id}': must be non-empty without '/'")


class TransactionLogSynchronizer(ABC):
    """Contract for writing one new transaction log entry."""

    @abstractmethod
    def write(
        self,
        context: WriteContext,
        cluster_id: str,
        entry_path: str,
        contents: bytes,
    ) -> None:
        """Create ``entry_path`` with ``contents``.

        Raises:
            TransactionConflictError: another writer owns or committed the entry.
            StorageBackendError: the store failed for reasons unrelated to contention.
        """

    @abstractmethod
    def is_unsafe(self) -> bool:
        """Whether exclusivity cannot be guaranteed linearizably."""


class NoIsolationSynchronizer(TransactionLogSynchronizer):
    """Writes the entry directly, trusting the store to reject duplicate creates."""

    def __init__(self, store: ObjectStore) -> None:
        self._store = store

    def write(
        self,
        context: WriteContext,
        cluster_id: str,
        entry_path: str,
        contents: bytes,
    ) -> None:
        self._store.create_exclusive(entry_path, contents)

    def is_unsafe(self) -> bool:
        return True


class LockFileSynchronizer(TransactionLogSynchronizer):
    """Serializes writers of a log entry through lock files in a sibling directory.

    Every attempt checks the entry is absent, scans the lock directory
    (removing expired locks), writes its own lock, rescans to make sure it is
    the only live claimant, checks the entry again and only then creates it.
    The writer's lock is removed on every exit path.

    The store is only eventually consistent, so a successful write is
    "probably exclusive". Expiration relies on clock skew between writers
    staying well below the lock TTL, and the TTL is not extended while an
    attempt is in progress.
    """

    def __init__(
        self,
        store: ObjectStore,
        config: SyncConfig | None = None,
        *,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        cfg = config or SyncConfig()
        self._store = store
        self._ttl = timedelta(milliseconds=cfg.lock_ttl_ms)
        self._lock_directory_name = cfg.lock_directory
        self._lock_infix = cfg.lock_infix
        self._clock = clock

    def is_unsafe(self) -> bool:
        return True

    def lock_directory(self, log_directory: str) -> str:
        return join_path(log_directory, self._lock_directory_name)

    def write(
        self,
        context: WriteContext,
        cluster_id: str,
        entry_path: str,
        contents: bytes,
    ) -> None:
        entry_path = normalize_path(entry_path)
        entry_filename = posixpath.basename(entry_path)
        lock_dir = self.lock_directory(posixpath.dirname(entry_path))
        log = logger.bind(entry_path=entry_path, cluster_id=cluster_id, query_id=context.query_id)

        if self._store.exists(entry_path):
            raise TransactionConflictError(f"{entry_path} already exists", entry_path=entry_path)

        current = self._find_live_lock(lock_dir, entry_path, entry_filename)
        if current is not None:
            raise self._locked_error(entry_path, current, phase=1)

        with self._held_lock(lock_dir, entry_filename, cluster_id, context.query_id) as my_lock:
            competing = self._find_competing_lock(lock_dir, entry_filename, my_lock)
            if competing is not None:
                raise self._locked_error(entry_path, competing, phase=2)

            # The entry may come from a writer using another synchronization mechanism.
            if self._store.exists(entry_path):
                raise TransactionConflictError(
                    f"Target file {entry_path} was created during locking",
                    entry_path=entry_path,
                )

            self._store.create_exclusive(entry_path, contents)
            log.info("transaction_log_entry_written", size=len(contents))

    def list_locks(self, log_directory: str) -> list[LockInfo]:
        """Parseable lock records currently in the lock directory of ``log_directory``."""
        return self._list_lock_infos(self.lock_directory(log_directory))

    def cleanup_expired_locks(self, log_directory: str, *, apply: bool = False) -> list[LockInfo]:
        """Plan or perform removal of expired locks; returns the expired locks found."""
        lock_dir = self.lock_directory(log_directory)
        expired, _live = partition_locks(self._list_lock_infos(lock_dir), self._clock())
        if apply:
            for lock in expired:
                self._remove_expired_lock(lock_dir, lock)
        return expired

    # --- Lock directory scanning ---

    def _find_live_lock(
        self, lock_dir: str, entry_path: str, entry_filename: str
    ) -> LockInfo | None:
        expired, live = partition_locks(self._list_lock_infos(lock_dir), self._clock())
        for lock in expired:
            self._remove_expired_lock(lock_dir, lock)

        claims = [lock for lock in live if lock.entry_filename == entry_filename]
        if len(claims) > 1:
            raise LockInvariantError(entry_path, [lock.lock_filename for lock in claims])
        return claims[0] if claims else None

    def _find_competing_lock(
        self, lock_dir: str, entry_filename: str, my_lock: LockInfo
    ) -> LockInfo | None:
        _expired, live = partition_locks(self._list_lock_infos(lock_dir), self._clock())
        for lock in live:
            if lock.entry_filename != entry_filename:
                continue
            if lock.lock_filename != my_lock.lock_filename:
                return lock
        return None

    def _list_lock_infos(self, lock_dir: str) -> list[LockInfo]:
        infos: list[LockInfo] = []
        for obj in self._store.list_directory(lock_dir):
            if not is_lock_filename(obj.name, self._lock_infix):
                continue
            try:
                data = obj.read()
            except ObjectNotFoundError:
                # Listed but already gone: deleted by its owner or another writer.
                continue
            try:
                contents = decode_lock_contents(data)
            except MalformedLockRecordError as e:
                logger.warning(
                    "lock_file_unparseable",
                    lock_path=obj.path,
                    contents=base64.b64encode(data).decode("ascii"),
                    error=e.detail,
                )
                continue
            infos.append(LockInfo.from_contents(obj.name, contents, self._lock_infix))
        return infos

    # --- Lock lifecycle ---

    @contextmanager
    def _held_lock(
        self,
        lock_dir: str,
        entry_filename: str,
        cluster_id: str,
        query_id: str,
    ) -> Iterator[LockInfo]:
        """Create this writer's lock and remove it on exit without masking the outcome."""
        name = lock_filename(entry_filename, query_id, self._lock_infix)
        contents = new_lock_contents(cluster_id, query_id, now=self._clock(), ttl=self._ttl)
        self._store.create_exclusive(join_path(lock_dir, name), encode_lock_contents(contents))
        my_lock = LockInfo.from_contents(name, contents, self._lock_infix)
        logger.debug(
            "lock_acquired",
            lock_filename=name,
            expires_at=my_lock.expiration_time.isoformat(),
        )
        try:
            yield my_lock
        finally:
            try:
                self._delete_lock(lock_dir, my_lock)
                logger.debug("lock_released", lock_filename=name)
            except StorageBackendError as e:
                # Left to expire; a later writer removes it.
                logger.warning("lock_release_failed", lock_filename=name, error=str(e))

    def _delete_lock(self, lock_dir: str, lock: LockInfo) -> None:
        self._store.delete(join_path(lock_dir, lock.lock_filename))

    def _remove_expired_lock(self, lock_dir: str, lock: LockInfo) -> None:
        self._delete_lock(lock_dir, lock)
        logger.info(
            "expired_lock_removed",
            lock_filename=lock.lock_filename,
            cluster_id=lock.cluster_id,
            owning_query=lock.owning_query,
            expired_at=lock.expiration_time.isoformat(),
        )

    @staticmethod
    def _locked_error(entry_path: str, lock: LockInfo, *, phase: int) -> TransactionConflictError:
        return TransactionConflictError(
            f"Transaction log locked({phase}); lockingCluster={lock.cluster_id}; "
            f"lockingQuery={lock.owning_query}; expires={lock.expiration_time.isoformat()}",
            entry_path=entry_path,
            competing_lock=lock,
        )
