"""Capture/predict loop for one open page.

A ``CaptureController`` owns exactly one ``Session`` at a time. The session
moves Idle -> Checking -> Loading -> Active -> Idle, with Error reachable from
the three middle states. All mutation happens on the event loop, so no
locking is needed; the only suspension points are the availability check,
model and camera acquisition, and per-frame inference.
"""

import asyncio
import logging
import time
from collections.abc import Awaitable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any, TypeVar

from vision_classifier.schemas.prediction import Prediction
from vision_classifier.services.collaborators import (
    Camera,
    CameraFactory,
    Display,
    DisplayStatus,
    FrameScheduler,
    Model,
    ModelLoader,
    ModelStatusSource,
)
from vision_classifier.services.errors import (
    AcquisitionTimeout,
    ErrorOrigin,
    ErrorPolicy,
    classify_error,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

STATS_INTERVAL = 100  # Log cycle latency stats every N frames

STATUS_UNREACHABLE = "Unable to check model status. Please ensure the server is running."
ACQUIRE_FAILED = (
    "Failed to initialize camera. Please check your model files and camera permissions."
)


class SessionState(str, Enum):
    IDLE = "idle"
    CHECKING = "checking"
    LOADING = "loading"
    ACTIVE = "active"
    ERROR = "error"


@dataclass
class Session:
    """Mutable state of one capture session.

    ``model`` and ``camera`` are assigned together once both are acquired and
    cleared together on teardown.
    """
    state: SessionState = SessionState.IDLE
    running: bool = False
    model: Model | None = None
    camera: Camera | None = None
    pending_frame: Any = None


@dataclass
class ControllerOptions:
    model_base_url: str = "./my_model/"
    acquire_timeout: float | None = 30.0  # None waits forever
    toggle_key: str = "Space"
    pause_when_hidden: bool = False

    @property
    def model_url(self) -> str:
        return self.model_base_url.rstrip("/") + "/model.json"

    @property
    def metadata_url(self) -> str:
        return self.model_base_url.rstrip("/") + "/metadata.json"


def select_top_prediction(predictions: Sequence[Prediction]) -> Prediction | None:
    """Return the entry with the highest probability; the first one wins ties."""
    top = None
    for prediction in predictions:
        if top is None or prediction.probability > top.probability:
            top = prediction
    return top


class CaptureController:
    """Drives the capture -> infer -> render cycle for a single page."""

    def __init__(
        self,
        status_source: ModelStatusSource,
        loader: ModelLoader,
        camera_factory: CameraFactory,
        scheduler: FrameScheduler,
        display: Display,
        options: ControllerOptions | None = None,
    ) -> None:
        self.status_source = status_source
        self.loader = loader
        self.camera_factory = camera_factory
        self.scheduler = scheduler
        self.display = display
        self.options = options or ControllerOptions()

        self.session = Session()
        self.start_disabled = False
        self.hidden = False

        self.cycles_in_flight = 0
        self.max_cycles_in_flight = 0
        self.frame_count = 0
        self._latency_window: list[float] = []
        self._acquisition: asyncio.Future | None = None

    # ------------------------------------------------------------------
    # Page events
    # ------------------------------------------------------------------

    async def on_page_load(self) -> bool:
        self.display.show_status(DisplayStatus.READY, "Checking model...")
        available = await self.check_model()
        if available:
            self.display.show_status(DisplayStatus.READY, "Ready to start")
        return available

    async def on_key(self, code: str) -> None:
        if code == self.options.toggle_key:
            await self.start()

    def on_visibility_change(self, hidden: bool) -> None:
        """Update the status text; frames keep running unless pause_when_hidden is set."""
        self.hidden = hidden
        session = self.session
        if not session.running:
            return

        if hidden:
            self.display.show_status(DisplayStatus.READY, "Page hidden - camera paused")
            if self.options.pause_when_hidden:
                self._cancel_pending(session)
                logger.info("Capture paused while page hidden")
        else:
            self.display.show_status(DisplayStatus.ACTIVE, "Camera active")
            if (
                self.options.pause_when_hidden
                and session.pending_frame is None
                and self.cycles_in_flight == 0
            ):
                logger.info("Capture resumed")
                self._schedule(session)

    def on_page_unload(self) -> None:
        self.stop()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def check_model(self) -> bool:
        """Query model availability; on any failure disable start."""
        try:
            status = await self._bounded(self.status_source.check(), "Model status check")
        except Exception as exc:
            self._handle_error(ErrorOrigin.STATUS_CHECK, exc, message=STATUS_UNREACHABLE)
            return False

        if not status.exists:
            self._handle_error(ErrorOrigin.STATUS_CHECK, None, message=status.message)
            return False

        logger.info("Model files found: %s", status.files)
        return True

    async def recheck(self) -> bool:
        """Re-run the availability check; the only way out of a disabled start."""
        if self.session.running or self._acquisition is not None:
            logger.info("Recheck ignored: session busy")
            return False

        self._set_state(self.session, SessionState.CHECKING)
        self.display.show_status(DisplayStatus.READY, "Checking model...")
        if not await self.check_model():
            return False

        self.start_disabled = False
        self._set_state(self.session, SessionState.IDLE)
        self.display.clear_setup_required()
        self.display.show_placeholder()
        self.display.show_running(False)
        self.display.show_status(DisplayStatus.READY, "Ready to start")
        return True

    async def start(self) -> None:
        """Start a session, or stop the running one."""
        if self.session.running:
            self.stop()
            return
        if self._acquisition is not None:
            logger.info("Start ignored: acquisition already in progress")
            return
        if self.start_disabled:
            logger.warning("Start ignored: model setup required")
            return

        task = asyncio.ensure_future(self._start_session())
        self._acquisition = task
        try:
            await asyncio.wait({task})
        finally:
            self._acquisition = None

        if task.cancelled():
            logger.info("Session start cancelled")
        else:
            task.result()

    def stop(self) -> None:
        """Tear the session down. A no-op when nothing is running or starting."""
        session = self.session
        acquiring = self._acquisition is not None and not self._acquisition.done()
        if not session.running and not acquiring:
            logger.debug("Stop ignored: session not running")
            return

        if acquiring:
            self._acquisition.cancel()

        self._teardown(session)
        self._set_state(session, SessionState.IDLE)
        self.session = Session()

        self.display.show_placeholder()
        self.display.show_status(DisplayStatus.READY, "Ready to start")
        self.display.show_running(False)

    async def _start_session(self) -> None:
        session = Session()
        self.session = session
        self._set_state(session, SessionState.CHECKING)

        if not await self.check_model():
            return

        self._set_state(session, SessionState.LOADING)
        self.display.show_status(DisplayStatus.LOADING, "Loading model...")

        camera = None
        origin = ErrorOrigin.MODEL_LOAD
        try:
            model = await self._bounded(
                self.loader.load(self.options.model_url, self.options.metadata_url),
                "Model load",
            )
            self.display.show_class_count(model.total_classes())

            origin = ErrorOrigin.CAMERA_SETUP
            self.display.show_status(DisplayStatus.LOADING, "Setting up camera...")
            camera = self.camera_factory()
            await self._bounded(camera.setup(), "Camera setup")
            await self._bounded(camera.play(), "Camera start")
        except asyncio.CancelledError:
            self._release_camera(camera)
            raise
        except AcquisitionTimeout as exc:
            self._release_camera(camera)
            self._handle_error(ErrorOrigin.ACQUIRE_TIMEOUT, exc)
            return
        except Exception as exc:
            self._release_camera(camera)
            self._handle_error(origin, exc)
            return

        session.model = model
        session.camera = camera
        session.running = True
        self._set_state(session, SessionState.ACTIVE)

        self.display.show_camera(camera)
        self.display.show_status(DisplayStatus.ACTIVE, "Camera active")
        self.display.show_running(True)
        self._schedule(session)

    # ------------------------------------------------------------------
    # Per-frame cycle
    # ------------------------------------------------------------------

    def _is_current(self, session: Session) -> bool:
        return session is self.session and session.running

    def _schedule(self, session: Session) -> None:
        session.pending_frame = self.scheduler.request_frame(lambda: self._cycle(session))

    def _cancel_pending(self, session: Session) -> None:
        if session.pending_frame is not None:
            self.scheduler.cancel_frame(session.pending_frame)
            session.pending_frame = None

    async def _cycle(self, session: Session) -> None:
        session.pending_frame = None
        if not self._is_current(session):
            return
        if self.hidden and self.options.pause_when_hidden:
            return
        if self.cycles_in_flight:
            # A stopped session's inference is still outstanding; wait a frame.
            self._schedule(session)
            return

        self.cycles_in_flight += 1
        self.max_cycles_in_flight = max(self.max_cycles_in_flight, self.cycles_in_flight)
        t0 = time.monotonic()
        try:
            try:
                session.camera.update()
            except Exception as exc:
                self._handle_error(ErrorOrigin.FRAME_CAPTURE, exc)
                return

            try:
                predictions = await session.model.predict(session.camera.canvas)
            except Exception as exc:
                if self._is_current(session):
                    self._handle_error(ErrorOrigin.INFERENCE, exc)
                else:
                    logger.debug("Ignoring prediction error after stop: %s", exc)
            else:
                if self._is_current(session):
                    self._render(predictions)
        finally:
            self.cycles_in_flight -= 1

        self._record_latency((time.monotonic() - t0) * 1000)
        if self._is_current(session):
            self._schedule(session)

    def _render(self, predictions: Sequence[Prediction]) -> None:
        top = select_top_prediction(predictions)
        if top is None:
            return
        try:
            self.display.show_result(top)
        except Exception as exc:
            self._handle_error(ErrorOrigin.RENDER, exc)

    def _record_latency(self, elapsed_ms: float) -> None:
        self.frame_count += 1
        self._latency_window.append(elapsed_ms)
        if self.frame_count % STATS_INTERVAL == 0:
            avg_ms = sum(self._latency_window) / len(self._latency_window)
            max_ms = max(self._latency_window)
            logger.info(
                "frames=%d avg_cycle=%.1fms max_cycle=%.1fms",
                self.frame_count, avg_ms, max_ms,
            )
            self._latency_window.clear()

    # ------------------------------------------------------------------
    # Errors and teardown
    # ------------------------------------------------------------------

    def _handle_error(
        self,
        origin: ErrorOrigin,
        exc: BaseException | None,
        message: str | None = None,
    ) -> None:
        policy = classify_error(origin)
        session = self.session

        if policy is ErrorPolicy.DISABLE_START:
            logger.warning("Model unavailable: %s", message, exc_info=exc)
            self.start_disabled = True
            self._set_state(session, SessionState.ERROR)
            self.display.show_setup_required(message or STATUS_UNREACHABLE)
            self.display.show_status(DisplayStatus.ERROR, "Model not found")

        elif policy is ErrorPolicy.ROLLBACK_SESSION:
            logger.error("Error initializing (%s)", origin.value, exc_info=exc)
            self._teardown(session)
            self._set_state(session, SessionState.ERROR)
            self.display.show_status(DisplayStatus.ERROR, "Failed to start camera")
            self.display.notify_error(ACQUIRE_FAILED)

        elif policy is ErrorPolicy.HALT_LOOP:
            logger.error("Frame capture failed, halting capture loop", exc_info=exc)
            self._teardown(session)
            self._set_state(session, SessionState.ERROR)
            self.display.show_placeholder()
            self.display.show_running(False)
            self.display.show_status(DisplayStatus.ERROR, "Camera capture failed")

        else:
            logger.error("Prediction error (%s)", origin.value, exc_info=exc)
            self._set_state(session, SessionState.ERROR)
            self.display.show_status(DisplayStatus.ERROR, "Prediction failed")

    def _teardown(self, session: Session) -> None:
        # Pending frame must be cancelled before the camera is released.
        self._cancel_pending(session)
        session.running = False
        self._release_camera(session.camera)
        session.camera = None
        session.model = None

    def _release_camera(self, camera: Camera | None) -> None:
        if camera is None:
            return
        try:
            camera.stop()
        except Exception:
            logger.exception("Error releasing camera")

    def _set_state(self, session: Session, state: SessionState) -> None:
        if session.state is not state:
            logger.info("Session state: %s -> %s", session.state.value, state.value)
            session.state = state

    async def _bounded(self, awaitable: Awaitable[T], what: str) -> T:
        timeout = self.options.acquire_timeout
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as exc:
            raise AcquisitionTimeout(what, timeout) from exc
