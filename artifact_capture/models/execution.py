"""Models for a single test execution as reported by the test runner."""

import traceback
from collections.abc import Mapping, Sequence
from enum import StrEnum
from typing import Literal, Self, TypeAlias

from pydantic import Field, model_validator

from artifact_capture.models.base import Model

Outcome: TypeAlias = Literal["pass", "fail", "skip-clean", "skip-broken"]


class TestStatus(StrEnum):
    """Final status of a test as seen by the runner."""

    __test__ = False

    SUCCESS = "success"
    FAILURE = "failure"
    SKIPPED = "skipped"


class FailureCause(Model):
    """Exception that failed (or broke) a test, with its nested cause."""

    type_name: str = Field(..., description="Fully qualified exception type")
    message: str = Field(default="", description="Exception message")
    frames: Sequence[str] = Field(
        default_factory=tuple, description="Formatted stack frames, outermost first"
    )
    cause: "FailureCause | None" = Field(
        default=None, description="Exception this one was raised from"
    )

    @classmethod
    def from_exception(cls, exc: BaseException) -> "FailureCause":
        """Build a failure cause from a raised exception.

        The nested cause follows ``__cause__`` first, then an unsuppressed
        ``__context__``. Only one level is kept.
        """
        nested = exc.__cause__
        if nested is None and not exc.__suppress_context__:
            nested = exc.__context__

        return cls(
            type_name=_qualified_name(exc),
            message=str(exc),
            frames=_format_frames(exc),
            cause=cls._without_cause(nested) if nested is not None else None,
        )

    @classmethod
    def _without_cause(cls, exc: BaseException) -> "FailureCause":
        return cls(
            type_name=_qualified_name(exc),
            message=str(exc),
            frames=_format_frames(exc),
        )


class TestExecution(Model):
    """One finished invocation of one test case."""

    __test__ = False

    execution_id: str = Field(..., description="Unique id of this invocation")
    name: str = Field(..., description="Test function name")
    class_name: str = Field(default="", description="Module and class of the test")
    status: TestStatus
    start_millis: int = Field(..., description="Start time, epoch millis")
    end_millis: int = Field(..., description="End time, epoch millis")
    parameters: Mapping[str, str] = Field(
        default_factory=dict, description="Parameters passed to the test"
    )
    messages: Sequence[str] = Field(
        default_factory=tuple, description="Ad-hoc messages logged during the test"
    )
    suite_name: str = Field(default="", description="Enclosing suite name")
    host: str | None = Field(default=None, description="Host the test ran on")
    failure: FailureCause | None = None

    @model_validator(mode="after")
    def _check_timing(self) -> Self:
        if self.end_millis < self.start_millis:
            raise ValueError("end_millis must not precede start_millis")
        return self

    @property
    def duration_seconds(self) -> float:
        """Wall-clock duration of the test in seconds."""
        return (self.end_millis - self.start_millis) / 1000.0

    @property
    def outcome(self) -> Outcome:
        """Status refined by whether a skip was caused by an exception."""
        match self.status:
            case TestStatus.SUCCESS:
                return "pass"
            case TestStatus.FAILURE:
                return "fail"
            case _:
                return "skip-broken" if self.failure is not None else "skip-clean"


def _qualified_name(exc: BaseException) -> str:
    exc_type = type(exc)
    if exc_type.__module__ == "builtins":
        return exc_type.__qualname__
    return f"{exc_type.__module__}.{exc_type.__qualname__}"


def _format_frames(exc: BaseException) -> Sequence[str]:
    return tuple(
        f"{frame.filename}:{frame.lineno} in {frame.name}"
        for frame in traceback.extract_tb(exc.__traceback__)
    )
