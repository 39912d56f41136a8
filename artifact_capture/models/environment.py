"""Models for the per-run environment snapshot shown on the report dashboard."""

import getpass
import platform
import socket
from datetime import datetime

from pydantic import Field

from artifact_capture.models.base import Model


class HostFacts(Model):
    """Facts about the machine running the suite."""

    os_name: str
    os_version: str
    python_version: str
    user: str
    hostname: str

    @classmethod
    def collect(cls) -> "HostFacts":
        """Read host facts from the running interpreter."""
        try:
            user = getpass.getuser()
        except (KeyError, OSError):
            user = "unknown"
        return cls(
            os_name=platform.system(),
            os_version=platform.release(),
            python_version=platform.python_version(),
            user=user,
            hostname=socket.gethostname(),
        )


class EnvironmentSnapshot(Model):
    """Point-in-time record of run configuration and host facts."""

    environment: str = Field(..., description="Environment label, e.g. TEST")
    base_url: str
    browser: str
    headless: bool
    implicit_wait_seconds: int
    page_load_timeout_seconds: int
    host: HostFacts
    suite_name: str
    total_tests: int
    generated_at: datetime = Field(default_factory=datetime.now)
