"""Tests for logsync locks list / gc."""

import json
from datetime import datetime, timedelta, timezone

from logsync.lock_record import LockFileContents, encode_lock_contents, epoch_millis
from tests.cli.conftest import invoke

LOG_DIR = "orders/_delta_log"


def _seed_locks(storage_root):
    lock_dir = storage_root / LOG_DIR / "_sb_lock"
    lock_dir.mkdir(parents=True)
    now = datetime.now(timezone.utc)
    for entry, query, expires in [
        ("00000000000000000002.json", "live-q", now + timedelta(minutes=3)),
        ("00000000000000000001.json", "stale-q", now - timedelta(minutes=30)),
    ]:
        contents = LockFileContents(
            cluster_id="c1", owning_query=query, expiration_epoch_millis=epoch_millis(expires)
        )
        (lock_dir / f"{entry}.sb-lock_{query}").write_bytes(encode_lock_contents(contents))
    (lock_dir / "00000000000000000003.json.sb-lock_junk").write_bytes(b"junk")
    return lock_dir


def test_locks_list_empty(runner, storage_root):
    result = invoke(runner, ["locks", "list", LOG_DIR], storage_root)
    assert result.exit_code == 0
    assert "No locks." in result.output


def test_locks_list_json(runner, storage_root):
    _seed_locks(storage_root)
    result = invoke(runner, ["--json", "locks", "list", LOG_DIR], storage_root)
    assert result.exit_code == 0
    rows = {row["owning_query"]: row for row in json.loads(result.output)}
    assert set(rows) == {"live-q", "stale-q"}
    assert rows["live-q"]["state"] == "live"
    assert rows["stale-q"]["state"] == "expired"
    assert rows["stale-q"]["entry_filename"] == "00000000000000000001.json"


def test_locks_list_table(runner, storage_root):
    _seed_locks(storage_root)
    result = invoke(runner, ["locks", "list", LOG_DIR], storage_root)
    assert result.exit_code == 0
    assert "lock_filename" in result.output
    assert "live-q" in result.output


def test_locks_gc_dry_run_keeps_files(runner, storage_root):
    lock_dir = _seed_locks(storage_root)
    result = invoke(runner, ["locks", "gc", LOG_DIR], storage_root)
    assert result.exit_code == 0
    assert "Would delete 00000000000000000001.json.sb-lock_stale-q" in result.output
    assert (lock_dir / "00000000000000000001.json.sb-lock_stale-q").exists()


def test_locks_gc_apply(runner, storage_root):
    lock_dir = _seed_locks(storage_root)
    result = invoke(runner, ["--json", "locks", "gc", LOG_DIR, "--apply"], storage_root)
    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data == {
        "applied": True,
        "expired_locks": ["00000000000000000001.json.sb-lock_stale-q"],
    }
    remaining = sorted(p.name for p in lock_dir.iterdir())
    assert remaining == [
        "00000000000000000002.json.sb-lock_live-q",
        "00000000000000000003.json.sb-lock_junk",
    ]
