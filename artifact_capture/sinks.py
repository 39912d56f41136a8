"""Attachment sinks that register captured artifacts with a report."""

from typing import Protocol, runtime_checkable

import allure


@runtime_checkable
class AttachmentSink(Protocol):
    """Receives every artifact the store writes."""

    def attach(
        self, label: str, mime_type: str, body: bytes | str, extension: str
    ) -> None:
        """Register an artifact body under a label."""


class AllureAttachmentSink:
    """Attach artifacts to the currently running Allure test."""

    def attach(
        self, label: str, mime_type: str, body: bytes | str, extension: str
    ) -> None:
        """Attach through ``allure.attach``; no-op outside an Allure run."""
        allure.attach(body, name=label, attachment_type=mime_type, extension=extension)


class NullAttachmentSink:
    """Discard attachments; files are still written to the results directory."""

    def attach(
        self, label: str, mime_type: str, body: bytes | str, extension: str
    ) -> None:
        """Do nothing."""
