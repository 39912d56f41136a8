"""Map a test outcome to the artifacts worth keeping for it."""

from artifact_capture.models.capture import CapturePolicy
from artifact_capture.models.execution import FailureCause, TestStatus


def classify(status: TestStatus, failure: FailureCause | None) -> CapturePolicy:
    """Return the capture policy for a finished test.

    A skip caused by an exception is a broken test and is treated like a
    failure; a deliberate skip is treated like a pass.
    """
    match status:
        case TestStatus.FAILURE:
            return CapturePolicy.CAPTURE_AND_RETAIN
        case TestStatus.SKIPPED if failure is not None:
            return CapturePolicy.CAPTURE_AND_RETAIN
        case _:
            return CapturePolicy.RECORD_ONLY_DISCARD_ON_SUCCESS
