"""Capabilities the capturer needs from a live browser session."""

from collections.abc import Sequence
from typing import Protocol, runtime_checkable

from artifact_capture.models.console import ConsoleEntry


@runtime_checkable
class DriverSession(Protocol):
    """A running browser session that diagnostics can be read from."""

    def take_full_page_screenshot(self) -> bytes:
        """Return a PNG of the whole page."""

    def console_entries(self) -> Sequence[ConsoleEntry]:
        """Return the console log buffer, oldest entry first."""

    def quit(self) -> None:
        """Close the session."""
