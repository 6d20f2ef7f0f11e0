"""Configuration for logsync writers."""

from __future__ import annotations

from dataclasses import dataclass, fields
from typing import Any

import yaml

from logsync.errors import ConfigError


@dataclass
class SyncConfig:
    """Configuration for synchronizers, object stores and logging."""

    lock_ttl_ms: int = 300000
    lock_directory: str = "_sb_lock"
    lock_infix: str = "sb-lock_"
    s3_region: str | None = None
    s3_endpoint_url: str | None = None
    s3_request_timeout_s: float = 10.0
    s3_conditional_writes: bool = False
    log_level: str = "INFO"
    log_format: str = "console"

    def __post_init__(self) -> None:
        if self.lock_ttl_ms <= 0:
            raise ConfigError(f"lock_ttl_ms must be positive, got {self.lock_ttl_ms}")
        if not self.lock_directory or "/" in self.lock_directory:
            raise ConfigError(f"Invalid lock_directory '{self.lock_directory}'")
        if not self.lock_infix or "/" in self.lock_infix:
            raise ConfigError(f"Invalid lock_infix '{self.lock_infix}'")
        if self.log_level.upper() not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ConfigError(f"Unknown log_level '{self.log_level}'")
        if self.log_format not in {"console", "json"}:
            raise ConfigError(f"log_format must be 'console' or 'json', got '{self.log_format}'")


def load_config(path: str | None = None, **overrides: Any) -> SyncConfig:
    """Build a SyncConfig from an optional YAML file plus keyword overrides.

    Overrides whose value is None are ignored so CLI options that were not
    given fall through to the file or the defaults.
    """
    values: dict[str, Any] = {}
    if path is not None:
        try:
            with open(path, encoding="utf-8") as f:
                doc = yaml.safe_load(f)
        except OSError as e:
            raise ConfigError(f"Cannot read config file '{path}': {e}") from e
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in config file '{path}': {e}") from e
        if doc is None:
            doc = {}
        if not isinstance(doc, dict):
            raise ConfigError(f"Config file '{path}' must contain a mapping")
        values.update(doc)

    values.update({k: v for k, v in overrides.items() if v is not None})

    known = {f.name for f in fields(SyncConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigError(f"Unknown config keys: {unknown}")
    return SyncConfig(**values)
