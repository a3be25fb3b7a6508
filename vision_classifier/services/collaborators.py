"""Host capabilities the capture loop depends on.

The controller never talks to a camera, a classifier runtime, a timer or a
page directly. Each of those is one of the protocols below, injected at
construction time.
"""

from collections.abc import Awaitable, Callable, Sequence
from enum import Enum
from typing import Any, Protocol

from vision_classifier.schemas.model_status import ModelStatus
from vision_classifier.schemas.prediction import Prediction

FrameCallback = Callable[[], Awaitable[None]]


class DisplayStatus(str, Enum):
    READY = "ready"
    LOADING = "loading"
    ACTIVE = "active"
    ERROR = "error"


class ModelStatusSource(Protocol):
    async def check(self) -> ModelStatus:
        """Ask whether a usable model bundle is available. May raise."""
        ...


class Model(Protocol):
    async def predict(self, frame: Any) -> Sequence[Prediction]:
        """Classify one frame, returning one entry per known class."""
        ...

    def total_classes(self) -> int:
        ...


class ModelLoader(Protocol):
    async def load(self, model_url: str, metadata_url: str) -> Model:
        ...


class Camera(Protocol):
    canvas: Any

    async def setup(self) -> None:
        ...

    async def play(self) -> None:
        ...

    def update(self) -> None:
        """Capture the latest frame into ``canvas``."""
        ...

    def stop(self) -> None:
        ...


CameraFactory = Callable[[], Camera]


class FrameScheduler(Protocol):
    def request_frame(self, callback: FrameCallback) -> Any:
        """Run ``callback`` at the next display refresh; returns a handle."""
        ...

    def cancel_frame(self, handle: Any) -> None:
        ...


class Display(Protocol):
    def show_status(self, status: DisplayStatus, message: str) -> None:
        ...

    def show_placeholder(self) -> None:
        """Reset camera and result panels to their idle placeholders."""
        ...

    def show_setup_required(self, message: str) -> None:
        """Show the persistent setup-instructions panel and disable start."""
        ...

    def clear_setup_required(self) -> None:
        ...

    def show_camera(self, camera: Camera) -> None:
        ...

    def show_class_count(self, count: int) -> None:
        ...

    def show_result(self, prediction: Prediction) -> None:
        """Replace the result panel with the single top prediction."""
        ...

    def notify_error(self, message: str) -> None:
        """Show a transient error notification."""
        ...

    def show_running(self, running: bool) -> None:
        """Reflect the running state on the start/stop button."""
        ...
