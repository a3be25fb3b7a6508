"""Shared fakes and fixtures for the vision classifier test suite."""

import asyncio
from dataclasses import dataclass, field

import pytest

from vision_classifier.schemas.model_status import ModelStatus
from vision_classifier.schemas.prediction import Prediction
from vision_classifier.services.capture_session import CaptureController, ControllerOptions
from vision_classifier.services.display import HtmlDisplay


def predictions(*pairs):
    return [Prediction(label=label, probability=p) for label, p in pairs]


# =============================================================================
# Collaborator fakes
# =============================================================================

class FakeStatusSource:
    def __init__(self, status=None, error=None):
        self.status = status or ModelStatus(
            exists=True,
            message="Model files found and ready to use!",
            files=["metadata.json", "model.json", "weights.bin"],
        )
        self.error = error
        self.calls = 0

    async def check(self):
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self.status


class FakeModel:
    def __init__(self, result=None):
        self.result = result or predictions(("A", 0.9), ("B", 0.05), ("C", 0.05))
        self.error = None
        self.gate: asyncio.Event | None = None
        self.calls = 0
        self.frames = []

    async def predict(self, frame):
        self.calls += 1
        self.frames.append(frame)
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        return list(self.result)

    def total_classes(self):
        return len(self.result)


class FakeLoader:
    def __init__(self, model=None, error=None, hang=False):
        self.model = model or FakeModel()
        self.error = error
        self.hang = hang
        self.calls = []

    async def load(self, model_url, metadata_url):
        self.calls.append((model_url, metadata_url))
        if self.hang:
            await asyncio.Event().wait()
        if self.error is not None:
            raise self.error
        return self.model


class FakeCamera:
    def __init__(self, events, setup_error=None, update_error=None, hang=False):
        self.events = events
        self.setup_error = setup_error
        self.update_error = update_error
        self.hang = hang
        self.canvas = None
        self.playing = False
        self.stop_calls = 0
        self.updates = 0

    async def setup(self):
        if self.hang:
            await asyncio.Event().wait()
        if self.setup_error is not None:
            raise self.setup_error

    async def play(self):
        self.playing = True

    def update(self):
        if self.update_error is not None:
            raise self.update_error
        self.updates += 1
        self.canvas = f"frame-{self.updates}"

    def stop(self):
        self.playing = False
        self.stop_calls += 1
        self.events.append("camera.stop")


class FakeCameraFactory:
    def __init__(self, events, **kwargs):
        self.events = events
        self.kwargs = kwargs
        self.created = []

    def __call__(self):
        camera = FakeCamera(self.events, **self.kwargs)
        self.created.append(camera)
        return camera


class ManualScheduler:
    """Frame scheduler driven explicitly by the test."""

    def __init__(self, events):
        self.events = events
        self.pending = {}
        self._next_handle = 0

    def request_frame(self, callback):
        self._next_handle += 1
        self.pending[self._next_handle] = callback
        return self._next_handle

    def cancel_frame(self, handle):
        self.pending.pop(handle, None)
        self.events.append("frame.cancel")

    async def run_next(self):
        handle = min(self.pending)
        callback = self.pending.pop(handle)
        await callback()

    async def run_frames(self, count):
        for _ in range(count):
            await self.run_next()


# =============================================================================
# Harness
# =============================================================================

@dataclass
class Harness:
    controller: CaptureController
    status_source: FakeStatusSource
    loader: FakeLoader
    cameras: FakeCameraFactory
    scheduler: ManualScheduler
    display: HtmlDisplay
    events: list = field(default_factory=list)

    @property
    def session(self):
        return self.controller.session

    @property
    def model(self):
        return self.loader.model


@pytest.fixture
def make_harness():
    def _make(status_source=None, loader=None, camera_kwargs=None, options=None, clock=None):
        events = []
        status_source = status_source or FakeStatusSource()
        loader = loader or FakeLoader()
        cameras = FakeCameraFactory(events, **(camera_kwargs or {}))
        scheduler = ManualScheduler(events)
        display = HtmlDisplay(clock=clock or (lambda: 0.0))
        controller = CaptureController(
            status_source,
            loader,
            cameras,
            scheduler,
            display,
            options or ControllerOptions(),
        )
        return Harness(controller, status_source, loader, cameras, scheduler, display, events)

    return _make


def write_bundle(model_dir, *names):
    model_dir.mkdir(parents=True, exist_ok=True)
    for name in names:
        (model_dir / name).write_text('{"labels": ["A", "B"]}', encoding="utf-8")
