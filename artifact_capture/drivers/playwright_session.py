"""Driver session adapter for a synchronous Playwright page."""

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from artifact_capture.models.console import ConsoleEntry, ConsoleLevel

if TYPE_CHECKING:
    from playwright.sync_api import ConsoleMessage, Page

CONSOLE_TYPE_TO_LEVEL: Mapping[str, ConsoleLevel] = {
    "error": ConsoleLevel.SEVERE,
    "assert": ConsoleLevel.SEVERE,
    "warning": ConsoleLevel.WARNING,
    "debug": ConsoleLevel.DEBUG,
    "trace": ConsoleLevel.DEBUG,
}


@dataclass(kw_only=True)
class PlaywrightDriverSession:
    """Wraps a Playwright page and buffers its console messages.

    Console messages are only seen from the moment the wrapper is created,
    so create it right after the page.
    """

    page: "Page"
    _entries: list[ConsoleEntry] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        self.page.on("console", self._on_console)

    def _on_console(self, message: "ConsoleMessage") -> None:
        self._entries.append(
            ConsoleEntry(
                level=CONSOLE_TYPE_TO_LEVEL.get(message.type, ConsoleLevel.INFO),
                message=message.text,
                timestamp=datetime.now(),
            )
        )

    def take_full_page_screenshot(self) -> bytes:
        """Screenshot of the full scrollable page."""
        return self.page.screenshot(full_page=True)

    def console_entries(self) -> Sequence[ConsoleEntry]:
        """Console messages seen so far."""
        return tuple(self._entries)

    def quit(self) -> None:
        """Close the page."""
        self.page.close()
