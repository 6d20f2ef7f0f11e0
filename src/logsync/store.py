"""Object store contract, in-memory/local adapters and storage URI binding."""

from __future__ import annotations

import contextlib
import os
import posixpath
import threading
from dataclasses import dataclass
from typing import Callable, Iterator, Protocol
from urllib.parse import urlparse

from logsync.config import SyncConfig
from logsync.errors import (
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    StorageBackendError,
)


@dataclass(frozen=True)
class ListedObject:
    """One entry of a directory listing; bytes are fetched lazily on read()."""

    name: str
    path: str
    opener: Callable[[], bytes]

    def read(self) -> bytes:
        return self.opener()


class ObjectStore(Protocol):
    """Minimal path-addressed blob store used by the synchronizers.

    Paths are ``/``-separated and relative to the store root. Listings are a
    snapshot that may be stale, and reads may transiently miss objects that a
    listing just returned.
    """

    def exists(self, path: str) -> bool: ...

    def create_exclusive(self, path: str, data: bytes) -> None: ...

    def read(self, path: str) -> bytes: ...

    def delete(self, path: str) -> None: ...

    def list_directory(self, directory: str) -> Iterator[ListedObject]: ...

    def describe(self) -> dict[str, object]: ...


def normalize_path(path: str) -> str:
    stripped = path.strip("/")
    if not stripped:
        return ""
    clean = posixpath.normpath(stripped)
    if clean == ".":
        return ""
    if clean == ".." or clean.startswith("../"):
        raise StorageBackendError("resolve_path", f"Path escapes store root: '{path}'")
    return clean


def join_path(*parts: str) -> str:
    return normalize_path("/".join(p for p in parts if p))


class InMemoryObjectStore:
    """Thread-safe dict-backed store, used for tests and embedding."""

    def __init__(self) -> None:
        self._objects: dict[str, bytes] = {}
        self._mutex = threading.Lock()

    def exists(self, path: str) -> bool:
        key = normalize_path(path)
        with self._mutex:
            return key in self._objects

    def create_exclusive(self, path: str, data: bytes) -> None:
        key = normalize_path(path)
        with self._mutex:
            if key in self._objects:
                raise ObjectAlreadyExistsError(key)
            self._objects[key] = bytes(data)

    def read(self, path: str) -> bytes:
        key = normalize_path(path)
        with self._mutex:
            try:
                return self._objects[key]
            except KeyError:
                raise ObjectNotFoundError(key) from None

    def delete(self, path: str) -> None:
        key = normalize_path(path)
        with self._mutex:
            self._objects.pop(key, None)

    def list_directory(self, directory: str) -> Iterator[ListedObject]:
        prefix = normalize_path(directory)
        with self._mutex:
            keys = sorted(k for k in self._objects if posixpath.dirname(k) == prefix)
        for key in keys:
            yield ListedObject(
                name=posixpath.basename(key),
                path=key,
                opener=lambda key=key: self.read(key),
            )

    def describe(self) -> dict[str, object]:
        with self._mutex:
            count = len(self._objects)
        return {"backend": "memory", "object_count": count}


class LocalObjectStore:
    """Store rooted at a local directory.

    Exclusive create relies on ``O_EXCL`` semantics of the local filesystem.
    """

    def __init__(self, root: str) -> None:
        self.root = os.path.abspath(root)

    def _os_path(self, path: str) -> str:
        rel = normalize_path(path)
        if not rel:
            return self.root
        return os.path.join(self.root, *rel.split("/"))

    def exists(self, path: str) -> bool:
        return os.path.isfile(self._os_path(path))

    def create_exclusive(self, path: str, data: bytes) -> None:
        target = self._os_path(path)
        try:
            os.makedirs(os.path.dirname(target), exist_ok=True)
            f = open(target, "xb")
        except FileExistsError as e:
            raise ObjectAlreadyExistsError(normalize_path(path)) from e
        except OSError as e:
            raise StorageBackendError("create_exclusive", f"{target}: {e}") from e
        try:
            with f:
                f.write(data)
        except OSError as e:
            # A truncated file would read as a complete object.
            with contextlib.suppress(OSError):
                os.remove(target)
            raise StorageBackendError("create_exclusive", f"{target}: {e}") from e

    def read(self, path: str) -> bytes:
        target = self._os_path(path)
        try:
            with open(target, "rb") as f:
                return f.read()
        except FileNotFoundError as e:
            raise ObjectNotFoundError(normalize_path(path)) from e
        except OSError as e:
            raise StorageBackendError("read", f"{target}: {e}") from e

    def delete(self, path: str) -> None:
        target = self._os_path(path)
        try:
            os.remove(target)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageBackendError("delete", f"{target}: {e}") from e

    def list_directory(self, directory: str) -> Iterator[ListedObject]:
        rel_dir = normalize_path(directory)
        target = self._os_path(rel_dir)
        try:
            entries = os.scandir(target)
        except FileNotFoundError:
            return
        except OSError as e:
            raise StorageBackendError("list_directory", f"{target}: {e}") from e
        with entries:
            for entry in entries:
                if not entry.is_file():
                    continue
                rel = join_path(rel_dir, entry.name)
                yield ListedObject(
                    name=entry.name,
                    path=rel,
                    opener=lambda rel=rel: self.read(rel),
                )

    def describe(self) -> dict[str, object]:
        return {"backend": "file", "root": self.root}


@dataclass(frozen=True)
class StorageTarget:
    """Resolved storage target from a storage URI."""

    backend: str
    uri: str
    root: str | None = None
    bucket: str | None = None
    prefix: str | None = None


def parse_storage_target(storage_uri: str) -> StorageTarget:
    """Resolve ``s3://bucket/prefix``, ``file:///dir``, ``memory://`` or a bare path."""
    parsed = urlparse(storage_uri)

    if parsed.scheme == "s3":
        bucket = parsed.netloc
        prefix = parsed.path.lstrip("/").rstrip("/")
        if not bucket:
            raise StorageBackendError("parse_storage_uri", f"Invalid s3 URI: {storage_uri}")
        return StorageTarget(backend="s3", uri=storage_uri, bucket=bucket, prefix=prefix)

    if parsed.scheme == "file":
        root = parsed.path
        if parsed.netloc:
            root = f"{parsed.netloc}{root}"
        if not root:
            raise StorageBackendError("parse_storage_uri", f"Invalid file URI: {storage_uri}")
        return StorageTarget(backend="file", uri=storage_uri, root=root)

    if parsed.scheme == "memory":
        return StorageTarget(backend="memory", uri=storage_uri)

    # Windows drive letters parse as one-letter schemes.
    if parsed.scheme == "" or len(parsed.scheme) == 1:
        if not storage_uri:
            raise StorageBackendError("parse_storage_uri", "Empty storage URI")
        return StorageTarget(
            backend="file",
            uri=f"file://{os.path.abspath(storage_uri)}",
            root=storage_uri,
        )

    raise StorageBackendError(
        "parse_storage_uri", f"Unsupported storage URI scheme '{parsed.scheme}'"
    )


def open_object_store(storage_uri: str, config: SyncConfig | None = None) -> ObjectStore:
    """Open the object store a storage URI points at."""
    target = parse_storage_target(storage_uri)
    if target.backend == "file":
        assert target.root is not None
        return LocalObjectStore(target.root)
    if target.backend == "memory":
        return InMemoryObjectStore()
    if target.backend == "s3":
        from logsync.store_s3 import S3ObjectStore

        assert target.bucket is not None
        return S3ObjectStore(
            bucket=target.bucket,
            prefix=target.prefix or "",
            config=config or SyncConfig(),
        )
    raise StorageBackendError("open_object_store", f"Unsupported backend '{target.backend}'")
