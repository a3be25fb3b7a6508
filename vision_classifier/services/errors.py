"""Error containment policy for the capture loop.

Every failure the controller catches is tagged with where it came from and
mapped to exactly one policy here.
"""

from enum import Enum


class ErrorOrigin(str, Enum):
    STATUS_CHECK = "status_check"
    MODEL_LOAD = "model_load"
    CAMERA_SETUP = "camera_setup"
    ACQUIRE_TIMEOUT = "acquire_timeout"
    FRAME_CAPTURE = "frame_capture"
    INFERENCE = "inference"
    RENDER = "render"


class ErrorPolicy(str, Enum):
    DISABLE_START = "disable_start"  # configuration error, fix files and recheck
    ROLLBACK_SESSION = "rollback_session"  # release everything acquired so far
    HALT_LOOP = "halt_loop"  # stop cycling and release the session
    DISPLAY_ONLY = "display_only"  # report, keep cycling


_POLICIES = {
    ErrorOrigin.STATUS_CHECK: ErrorPolicy.DISABLE_START,
    ErrorOrigin.MODEL_LOAD: ErrorPolicy.ROLLBACK_SESSION,
    ErrorOrigin.CAMERA_SETUP: ErrorPolicy.ROLLBACK_SESSION,
    ErrorOrigin.ACQUIRE_TIMEOUT: ErrorPolicy.ROLLBACK_SESSION,
    ErrorOrigin.FRAME_CAPTURE: ErrorPolicy.HALT_LOOP,
    ErrorOrigin.INFERENCE: ErrorPolicy.DISPLAY_ONLY,
    ErrorOrigin.RENDER: ErrorPolicy.DISPLAY_ONLY,
}


class AcquisitionTimeout(TimeoutError):
    """Model or camera acquisition did not finish within the configured timeout."""

    def __init__(self, what: str, timeout: float):
        super().__init__(f"{what} did not complete within {timeout:g}s")
        self.what = what
        self.timeout = timeout


def classify_error(origin: ErrorOrigin) -> ErrorPolicy:
    """Map a failure origin to the containment policy applied to it."""
    return _POLICIES[origin]
