"""HTML rendering of the capture loop's display state."""

import time
from collections.abc import Callable
from dataclasses import dataclass

from jinja2 import Environment, PackageLoader, select_autoescape

from vision_classifier.config import REQUIRED_MODEL_FILES
from vision_classifier.schemas.prediction import Prediction
from vision_classifier.services.collaborators import Camera, DisplayStatus

HIGH_CONFIDENCE_THRESHOLD = 0.7
NOTIFICATION_TTL = 5.0  # seconds a notification stays visible

_env = Environment(
    loader=PackageLoader("vision_classifier", "templates"),
    autoescape=select_autoescape(["html"]),
)


def is_high_confidence(prediction: Prediction) -> bool:
    """Strictly above the threshold; exactly 0.7 is neutral."""
    return prediction.probability > HIGH_CONFIDENCE_THRESHOLD


def render_prediction(prediction: Prediction) -> str:
    """Render the single top prediction as a result card."""
    return _env.get_template("result.html").render(
        prediction=prediction,
        high_confidence=is_high_confidence(prediction),
    )


def render_placeholder(icon: str, text: str) -> str:
    return _env.get_template("placeholder.html").render(icon=icon, text=text)


@dataclass
class Notification:
    message: str
    html: str
    created: float


class HtmlDisplay:
    """Keeps the latest HTML fragment for each region of the page.

    ``on_change`` is called after every update so a caller can push the new
    ``snapshot()`` to the page.
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._clock = clock
        self._on_change = None
        self.status = DisplayStatus.READY
        self.status_text = "Ready to start"
        self.class_count = 0
        self.running = False
        self.setup_required = False
        self.latest: Prediction | None = None
        self.webcam_html = ""
        self.label_html = ""
        self._notifications: list[Notification] = []
        self.show_placeholder()
        self._on_change = on_change

    @property
    def status_dot_class(self) -> str:
        return f"status-dot {self.status.value}"

    @property
    def button_html(self) -> str:
        if self.setup_required:
            icon, label, classes = "fa-exclamation-triangle", "Setup Required", []
        elif self.running:
            icon, label, classes = "fa-stop", "Stop Camera", ["running"]
        else:
            icon, label, classes = "fa-play", "Start Camera", []
        return _env.get_template("button.html").render(
            icon=icon, label=label, classes=classes, disabled=self.setup_required,
        )

    @property
    def notifications(self) -> list[str]:
        """HTML of the notifications that have not yet expired."""
        now = self._clock()
        self._notifications = [
            n for n in self._notifications if now - n.created < NOTIFICATION_TTL
        ]
        return [n.html for n in self._notifications]

    def snapshot(self) -> dict:
        return {
            "status": self.status.value,
            "status_text": self.status_text,
            "status_dot_class": self.status_dot_class,
            "class_count": self.class_count,
            "webcam_html": self.webcam_html,
            "label_html": self.label_html,
            "button_html": self.button_html,
            "notifications": self.notifications,
        }

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()

    def show_status(self, status: DisplayStatus, message: str) -> None:
        self.status = status
        self.status_text = message
        self._changed()

    def show_placeholder(self) -> None:
        self.latest = None
        self.webcam_html = render_placeholder("fa-camera-slash", "Camera not active")
        self.label_html = render_placeholder(
            "fa-info-circle", "Start the camera to see predictions"
        )
        self._changed()

    def show_setup_required(self, message: str) -> None:
        self.setup_required = True
        self.latest = None
        self.webcam_html = _env.get_template("setup_required.html").render(
            message=message, required_files=REQUIRED_MODEL_FILES,
        )
        self.label_html = render_placeholder(
            "fa-info-circle", "Add your model files to see predictions"
        )
        self._changed()

    def clear_setup_required(self) -> None:
        self.setup_required = False
        self._changed()

    def show_camera(self, camera: Camera) -> None:
        self.webcam_html = _env.get_template("camera.html").render(
            width=getattr(camera, "width", None),
            height=getattr(camera, "height", None),
        )
        self.label_html = ""
        self._changed()

    def show_class_count(self, count: int) -> None:
        self.class_count = count
        self._changed()

    def show_result(self, prediction: Prediction) -> None:
        self.latest = prediction
        self.label_html = render_prediction(prediction)
        self._changed()

    def notify_error(self, message: str) -> None:
        html = _env.get_template("notification.html").render(message=message)
        self._notifications.append(Notification(message, html, self._clock()))
        self._changed()

    def show_running(self, running: bool) -> None:
        self.running = running
        self._changed()
