"""Fixtures for integration tests."""

import stat
import sys
from pathlib import Path
from typing import Protocol

import pytest


class CreateExecutableFn(Protocol):
    """Protocol for stub executable creation function."""

    def __call__(self, name: str, script: str) -> Path:
        """Create an executable shell script and return its path."""


@pytest.fixture
def create_executable(tmp_path: Path) -> CreateExecutableFn:
    """Factory for stub executables standing in for ffmpeg."""
    if sys.platform == "win32":
        pytest.skip("stub executables are shell scripts")

    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()

    def _create(name: str, script: str) -> Path:
        path = bin_dir / name
        path.write_text(f"#!/bin/sh\n{script}")
        path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _create
