"""Tests for in-memory and local object stores and storage URI binding."""

from __future__ import annotations

import pytest

from logsync.errors import ObjectAlreadyExistsError, ObjectNotFoundError, StorageBackendError
from logsync.store import (
    InMemoryObjectStore,
    LocalObjectStore,
    join_path,
    normalize_path,
    open_object_store,
    parse_storage_target,
)


@pytest.fixture(params=["memory", "local"])
def any_store(request, tmp_path):
    if request.param == "memory":
        return InMemoryObjectStore()
    return LocalObjectStore(str(tmp_path / "root"))


def test_create_read_delete(any_store) -> None:
    assert not any_store.exists("log/0001.json")
    any_store.create_exclusive("log/0001.json", b"entry")
    assert any_store.exists("log/0001.json")
    assert any_store.read("log/0001.json") == b"entry"

    any_store.delete("log/0001.json")
    assert not any_store.exists("log/0001.json")


def test_create_exclusive_refuses_existing_path(any_store) -> None:
    any_store.create_exclusive("log/0001.json", b"first")
    with pytest.raises(ObjectAlreadyExistsError):
        any_store.create_exclusive("log/0001.json", b"second")
    assert any_store.read("log/0001.json") == b"first"


def test_read_missing_raises_not_found(any_store) -> None:
    with pytest.raises(ObjectNotFoundError):
        any_store.read("log/missing.json")


def test_delete_missing_is_not_an_error(any_store) -> None:
    any_store.delete("log/missing.json")


def test_list_directory_is_not_recursive(any_store) -> None:
    any_store.create_exclusive("log/0001.json", b"1")
    any_store.create_exclusive("log/0002.json", b"2")
    any_store.create_exclusive("log/_sb_lock/0003.json.sb-lock_q", b"{}")
    any_store.create_exclusive("other/0001.json", b"x")

    listed = sorted(any_store.list_directory("log"), key=lambda o: o.name)

    assert [o.name for o in listed] == ["0001.json", "0002.json"]
    assert [o.path for o in listed] == ["log/0001.json", "log/0002.json"]
    assert listed[1].read() == b"2"


def test_list_missing_directory_is_empty(any_store) -> None:
    assert list(any_store.list_directory("nothing/here")) == []


def test_listed_object_read_after_delete_raises_not_found(any_store) -> None:
    any_store.create_exclusive("log/0001.json", b"1")
    listed = list(any_store.list_directory("log"))
    any_store.delete("log/0001.json")
    with pytest.raises(ObjectNotFoundError):
        listed[0].read()


def test_normalize_and_join_paths() -> None:
    assert normalize_path("/a/b/") == "a/b"
    assert normalize_path("a/./b") == "a/b"
    assert normalize_path("") == ""
    assert join_path("a", "", "b") == "a/b"
    assert join_path("", "b") == "b"
    with pytest.raises(StorageBackendError):
        normalize_path("../outside")


def test_local_store_writes_under_root(tmp_path) -> None:
    store = LocalObjectStore(str(tmp_path))
    store.create_exclusive("t/_delta_log/0001.json", b"e")
    assert (tmp_path / "t" / "_delta_log" / "0001.json").read_bytes() == b"e"
    assert store.describe() == {"backend": "file", "root": str(tmp_path)}


def test_parse_storage_target_s3() -> None:
    target = parse_storage_target("s3://bucket/warehouse/")
    assert target.backend == "s3"
    assert target.bucket == "bucket"
    assert target.prefix == "warehouse"


def test_parse_storage_target_file_uri_and_bare_path(tmp_path) -> None:
    target = parse_storage_target(f"file://{tmp_path}")
    assert target.backend == "file"
    assert target.root == str(tmp_path)

    bare = parse_storage_target(str(tmp_path))
    assert bare.backend == "file"
    assert bare.root == str(tmp_path)


@pytest.mark.parametrize("uri", ["s3:///prefix-only", "gs://bucket/x", ""])
def test_parse_storage_target_rejects_invalid(uri: str) -> None:
    with pytest.raises(StorageBackendError):
        parse_storage_target(uri)


def test_open_object_store_file_and_memory(tmp_path) -> None:
    assert isinstance(open_object_store(str(tmp_path)), LocalObjectStore)
    assert isinstance(open_object_store("memory://"), InMemoryObjectStore)


class _FullDiskFile:
    def __init__(self, f) -> None:
        self._f = f

    def __enter__(self):
        return self

    def __exit__(self, *exc) -> None:
        self._f.close()

    def write(self, data: bytes) -> int:
        raise OSError(28, "No space left on device")


def test_local_store_removes_partial_file_on_failed_write(tmp_path, monkeypatch) -> None:
    real_open = open

    def failing_open(path, mode="r", *args, **kwargs):
        f = real_open(path, mode, *args, **kwargs)
        return _FullDiskFile(f) if "x" in mode else f

    monkeypatch.setattr("builtins.open", failing_open)
    store = LocalObjectStore(str(tmp_path))

    with pytest.raises(StorageBackendError) as exc_info:
        store.create_exclusive("t/_delta_log/0001.json", b"entry")
    assert not isinstance(exc_info.value, ObjectAlreadyExistsError)

    monkeypatch.undo()
    assert not (tmp_path / "t" / "_delta_log" / "0001.json").exists()
    store.create_exclusive("t/_delta_log/0001.json", b"entry")
    assert store.read("t/_delta_log/0001.json") == b"entry"
