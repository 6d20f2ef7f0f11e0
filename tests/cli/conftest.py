"""Shared fixtures for CLI tests."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

from logsync.cli import app

if TYPE_CHECKING:
    from click.testing import Result


@pytest.fixture
def runner():
    """Create a CLI test runner."""
    return CliRunner()


@pytest.fixture
def storage_root(tmp_path):
    """Empty local storage root used as --storage-uri."""
    root = tmp_path / "warehouse"
    root.mkdir()
    return root


def invoke(
    runner: CliRunner,
    args: list[str],
    storage_root=None,
    input: bytes | None = None,
) -> "Result":
    """Invoke CLI against a local storage root with quiet logging."""
    prefix = ["--log-level", "ERROR"]
    if storage_root is not None:
        prefix += ["--storage-uri", f"file://{storage_root}"]
    return runner.invoke(app, prefix + args, input=input, catch_exceptions=False)
