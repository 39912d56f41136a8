"""Shared fixtures for artifact capture tests."""

from datetime import datetime
from pathlib import Path
from unittest.mock import Mock

import pytest

from artifact_capture.sinks import NullAttachmentSink
from artifact_capture.store import ArtifactStore

FIXED_NOW = datetime(2024, 5, 1, 12, 30, 45)
FIXED_STAMP = "20240501_123045"


@pytest.fixture
def sink() -> Mock:
    """Create mock attachment sink."""
    return Mock(spec=NullAttachmentSink)


@pytest.fixture
def results_dir(tmp_path: Path) -> Path:
    """Results directory of the current run."""
    return tmp_path / "allure-results"


@pytest.fixture
def store(results_dir: Path, sink: Mock) -> ArtifactStore:
    """Create artifact store with a frozen clock."""
    return ArtifactStore(results_dir=results_dir, sink=sink, clock=lambda: FIXED_NOW)
