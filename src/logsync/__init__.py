"""logsync: serialized creation of transaction log entries on object stores."""

__version__ = "0.1.0"

from logsync.config import SyncConfig, load_config
from logsync.errors import (
    ConfigError,
    LockInvariantError,
    LogSyncError,
    MalformedLockRecordError,
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    StorageBackendError,
    TransactionConflictError,
)
from logsync.lock_record import LockFileContents, LockInfo
from logsync.store import (
    InMemoryObjectStore,
    ListedObject,
    LocalObjectStore,
    ObjectStore,
    open_object_store,
    parse_storage_target,
)
from logsync.synchronizer import (
    LockFileSynchronizer,
    NoIsolationSynchronizer,
    TransactionLogSynchronizer,
    WriteContext,
)

__all__ = [
    "__version__",
    "SyncConfig",
    "load_config",
    "LogSyncError",
    "ConfigError",
    "TransactionConflictError",
    "LockInvariantError",
    "MalformedLockRecordError",
    "StorageBackendError",
    "ObjectAlreadyExistsError",
    "ObjectNotFoundError",
    "LockFileContents",
    "LockInfo",
    "ObjectStore",
    "ListedObject",
    "InMemoryObjectStore",
    "LocalObjectStore",
    "parse_storage_target",
    "open_object_store",
    "TransactionLogSynchronizer",
    "NoIsolationSynchronizer",
    "LockFileSynchronizer",
    "WriteContext",
]
