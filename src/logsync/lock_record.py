"""Lock record model, JSON codec and lock filename helpers."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator
from pydantic import ValidationError as PydanticValidationError

from logsync.errors import MalformedLockRecordError

DEFAULT_LOCK_INFIX = "sb-lock_"

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)
_MILLISECOND = timedelta(milliseconds=1)
# Range of instants a datetime can represent.
MIN_EXPIRATION_MILLIS = (datetime.min.replace(tzinfo=timezone.utc) - _EPOCH) // _MILLISECOND
MAX_EXPIRATION_MILLIS = (datetime.max.replace(tzinfo=timezone.utc) - _EPOCH) // _MILLISECOND


class LockFileContents(BaseModel):
    """Body of a lock file: who holds the claim and until when."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="ignore")

    cluster_id: StrictStr = Field(alias="clusterId")
    owning_query: StrictStr = Field(alias="owningQuery")
    expiration_epoch_millis: StrictInt = Field(alias="expirationEpochMillis")

    @field_validator("expiration_epoch_millis")
    @classmethod
    def _representable_expiration(cls, value: int) -> int:
        if not MIN_EXPIRATION_MILLIS <= value <= MAX_EXPIRATION_MILLIS:
            raise ValueError(f"expiration {value} is outside the representable time range")
        return value

    @property
    def expiration_time(self) -> datetime:
        return _EPOCH + self.expiration_epoch_millis * _MILLISECOND


def encode_lock_contents(contents: LockFileContents) -> bytes:
    obj = contents.model_dump(by_alias=True)
    return json.dumps(obj, sort_keys=True, separators=(",", ":")).encode("utf-8")


def decode_lock_contents(data: bytes) -> LockFileContents:
    try:
        return LockFileContents.model_validate_json(data)
    except PydanticValidationError as e:
        raise MalformedLockRecordError(str(e), data) from e


def epoch_millis(value: datetime) -> int:
    return int(value.timestamp() * 1000)


def new_lock_contents(
    cluster_id: str,
    query_id: str,
    *,
    now: datetime,
    ttl: timedelta,
) -> LockFileContents:
    return LockFileContents(
        cluster_id=cluster_id,
        owning_query=query_id,
        expiration_epoch_millis=epoch_millis(now + ttl),
    )


def _lock_filename_pattern(infix: str) -> re.Pattern[str]:
    return re.compile(r"(.*)\." + re.escape(infix) + r".*", re.DOTALL)


def lock_filename(entry_filename: str, query_id: str, infix: str = DEFAULT_LOCK_INFIX) -> str:
    """Name of the lock file a query uses to claim ``entry_filename``."""
    return f"{entry_filename}.{infix}{query_id}"


def is_lock_filename(name: str, infix: str = DEFAULT_LOCK_INFIX) -> bool:
    return _lock_filename_pattern(infix).fullmatch(name) is not None


def parse_entry_filename(name: str, infix: str = DEFAULT_LOCK_INFIX) -> str:
    """Recover the log entry filename a lock file claims."""
    match = _lock_filename_pattern(infix).fullmatch(name)
    if match is None:
        raise ValueError(f"Lock filename {name} does not match expected pattern")
    return match.group(1)


@dataclass(frozen=True)
class LockInfo:
    """A lock file as found in the lock directory."""

    lock_filename: str
    entry_filename: str
    contents: LockFileContents

    @classmethod
    def from_contents(
        cls,
        lock_filename: str,
        contents: LockFileContents,
        infix: str = DEFAULT_LOCK_INFIX,
    ) -> LockInfo:
        return cls(
            lock_filename=lock_filename,
            entry_filename=parse_entry_filename(lock_filename, infix),
            contents=contents,
        )

    @property
    def cluster_id(self) -> str:
        return self.contents.cluster_id

    @property
    def owning_query(self) -> str:
        return self.contents.owning_query

    @property
    def expiration_time(self) -> datetime:
        return self.contents.expiration_time

    def is_expired(self, now: datetime) -> bool:
        return self.expiration_time < now

    def to_dict(self) -> dict[str, object]:
        return {
            "lock_filename": self.lock_filename,
            "entry_filename": self.entry_filename,
            "cluster_id": self.cluster_id,
            "owning_query": self.owning_query,
            "expires_at": self.expiration_time.isoformat(),
        }


def partition_locks(
    locks: list[LockInfo], now: datetime
) -> tuple[list[LockInfo], list[LockInfo]]:
    """Split a lock directory snapshot into (expired, live) lock lists."""
    expired: list[LockInfo] = []
    live: list[LockInfo] = []
    for lock in locks:
        if lock.is_expired(now):
            expired.append(lock)
        else:
            live.append(lock)
    return expired, live
