"""Display-refresh frame scheduling on the asyncio event loop."""

import asyncio
import logging

from vision_classifier.services.collaborators import FrameCallback

logger = logging.getLogger(__name__)

DEFAULT_REFRESH_RATE = 60.0


class AsyncioFrameScheduler:
    """Runs one frame callback per refresh interval, like requestAnimationFrame."""

    def __init__(self, refresh_rate: float = DEFAULT_REFRESH_RATE) -> None:
        if refresh_rate <= 0:
            raise ValueError("refresh_rate must be positive")
        self.interval = 1.0 / refresh_rate
        self._tasks: set[asyncio.Task] = set()

    def request_frame(self, callback: FrameCallback) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(self.interval, self._fire, callback)

    def cancel_frame(self, handle: asyncio.TimerHandle) -> None:
        handle.cancel()

    def _fire(self, callback: FrameCallback) -> None:
        task = asyncio.ensure_future(callback())
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Frame callback failed", exc_info=task.exception())
