"""S3 object store adapter."""

from __future__ import annotations

from typing import Any, Iterator

import boto3
from botocore.config import Config as BotoConfig
from botocore.exceptions import BotoCoreError, ClientError, ParamValidationError

from logsync.config import SyncConfig
from logsync.errors import (
    ObjectAlreadyExistsError,
    ObjectNotFoundError,
    StorageBackendError,
)
from logsync.store import ListedObject, join_path, normalize_path


def _error_code(err: Exception) -> str:
    if isinstance(err, ClientError):
        return str(err.response.get("Error", {}).get("Code", ""))
    return ""


def _is_not_found(err: Exception) -> bool:
    return _error_code(err) in {"NoSuchKey", "404", "NotFound"}


def _is_precondition_failed(err: Exception) -> bool:
    return _error_code(err) in {"PreconditionFailed", "412"}


def create_s3_client(config: SyncConfig) -> Any:
    session = boto3.Session(region_name=config.s3_region)
    return session.client(
        "s3",
        region_name=config.s3_region,
        endpoint_url=config.s3_endpoint_url,
        config=BotoConfig(
            connect_timeout=config.s3_request_timeout_s,
            read_timeout=config.s3_request_timeout_s,
            retries={"max_attempts": 5, "mode": "standard"},
        ),
    )


class S3ObjectStore:
    """Object store over one bucket prefix.

    Without conditional writes, ``create_exclusive`` is a head-then-put and is
    not atomic; the lock-file synchronizer exists to serialize writers on top
    of exactly that.
    """

    def __init__(
        self,
        *,
        bucket: str,
        prefix: str,
        config: SyncConfig,
        client: Any | None = None,
    ) -> None:
        self.bucket = bucket
        self.prefix = prefix.strip("/")
        self._config = config
        self._conditional_writes = config.s3_conditional_writes
        self._s3 = client if client is not None else create_s3_client(config)

    def _k(self, rel_path: str) -> str:
        rel = normalize_path(rel_path)
        return f"{self.prefix}/{rel}" if self.prefix else rel

    def exists(self, path: str) -> bool:
        try:
            self._s3.head_object(Bucket=self.bucket, Key=self._k(path))
            return True
        except (ClientError, BotoCoreError) as e:
            if _is_not_found(e):
                return False
            raise StorageBackendError("exists", f"{self._k(path)}: {e}") from e

    def create_exclusive(self, path: str, data: bytes) -> None:
        key = self._k(path)
        if self._conditional_writes:
            try:
                self._s3.put_object(Bucket=self.bucket, Key=key, Body=data, IfNoneMatch="*")
                return
            except ParamValidationError as e:
                raise StorageBackendError(
                    "create_exclusive",
                    "S3 endpoint does not support conditional write preconditions",
                ) from e
            except (ClientError, BotoCoreError) as e:
                if _is_precondition_failed(e):
                    raise ObjectAlreadyExistsError(normalize_path(path)) from e
                raise StorageBackendError("create_exclusive", f"{key}: {e}") from e

        if self.exists(path):
            raise ObjectAlreadyExistsError(normalize_path(path))
        try:
            self._s3.put_object(Bucket=self.bucket, Key=key, Body=data)
        except (ClientError, BotoCoreError) as e:
            raise StorageBackendError("create_exclusive", f"{key}: {e}") from e

    def read(self, path: str) -> bytes:
        key = self._k(path)
        try:
            resp = self._s3.get_object(Bucket=self.bucket, Key=key)
            return resp["Body"].read()
        except (ClientError, BotoCoreError) as e:
            if _is_not_found(e):
                raise ObjectNotFoundError(normalize_path(path)) from e
            raise StorageBackendError("read", f"{key}: {e}") from e

    def delete(self, path: str) -> None:
        key = self._k(path)
        try:
            self._s3.delete_object(Bucket=self.bucket, Key=key)
        except (ClientError, BotoCoreError) as e:
            if _is_not_found(e):
                return
            raise StorageBackendError("delete", f"{key}: {e}") from e

    def list_directory(self, directory: str) -> Iterator[ListedObject]:
        rel_dir = normalize_path(directory)
        dir_key = self._k(rel_dir) if rel_dir else self.prefix
        list_prefix = f"{dir_key}/" if dir_key else ""
        paginator = self._s3.get_paginator("list_objects_v2")
        try:
            for page in paginator.paginate(
                Bucket=self.bucket, Prefix=list_prefix, Delimiter="/"
            ):
                for item in page.get("Contents", []):
                    key = str(item["Key"])
                    name = key[len(list_prefix) :]
                    if not name:
                        continue
                    rel = join_path(rel_dir, name)
                    yield ListedObject(
                        name=name,
                        path=rel,
                        opener=lambda rel=rel: self.read(rel),
                    )
        except (ClientError, BotoCoreError) as e:
            raise StorageBackendError("list_directory", f"{list_prefix}: {e}") from e

    def describe(self) -> dict[str, object]:
        return {
            "backend": "s3",
            "bucket": self.bucket,
            "prefix": self.prefix,
            "conditional_writes": self._conditional_writes,
        }
