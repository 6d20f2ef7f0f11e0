"""Structured error types for logsync."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from logsync.lock_record import LockInfo


class LogSyncError(Exception):
    """Base error for all logsync errors."""


class ConfigError(LogSyncError):
    """Raised when a configuration file cannot be used."""


class TransactionConflictError(LogSyncError):
    """Raised when another writer owns or already committed the log entry.

    Callers recover by retrying their whole transaction against the next
    entry version.
    """

    def __init__(
        self,
        message: str,
        *,
        entry_path: str,
        competing_lock: LockInfo | None = None,
    ) -> None:
        self.entry_path = entry_path
        self.competing_lock = competing_lock
        super().__init__(message)


class LockInvariantError(LogSyncError):
    """Raised when more than one live lock claims the same log entry."""

    def __init__(self, entry_path: str, lock_filenames: list[str]) -> None:
        self.entry_path = entry_path
        self.lock_filenames = lock_filenames
        super().__init__(
            f"Multiple live locks found for: {entry_path}; locks: {', '.join(lock_filenames)}"
        )


class MalformedLockRecordError(LogSyncError):
    """Raised when lock file bytes cannot be decoded."""

    def __init__(self, detail: str, data: bytes | None = None) -> None:
        self.detail = detail
        self.data = data
        super().__init__(f"Malformed lock record: {detail}")


class StorageBackendError(LogSyncError):
    """Raised when backend storage operations fail."""

    def __init__(self, operation: str, detail: str) -> None:
        self.operation = operation
        self.detail = detail
        super().__init__(f"Storage backend error during {operation}: {detail}")


class ObjectAlreadyExistsError(StorageBackendError):
    """Raised by an exclusive create when the path is already taken."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__("create_exclusive", f"'{path}' already exists")


class ObjectNotFoundError(StorageBackendError):
    """Raised when reading a path that does not exist."""

    def __init__(self, path: str) -> None:
        self.path = path
        super().__init__("read", f"'{path}' does not exist")
