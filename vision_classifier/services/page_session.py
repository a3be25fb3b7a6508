"""One connected page: wires the capture loop to its websocket."""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable, Coroutine

from pydantic import ValidationError

from vision_classifier.config import Settings
from vision_classifier.schemas.ws_messages import CommandReply, PageEvent, RenderMessage
from vision_classifier.services.capture_session import CaptureController, ControllerOptions
from vision_classifier.services.display import HtmlDisplay
from vision_classifier.services.model_bundle import LocalModelStatusSource
from vision_classifier.services.page_bridge import PageBridge
from vision_classifier.services.page_runtime import PageCamera, PageModelLoader
from vision_classifier.services.scheduler import AsyncioFrameScheduler

logger = logging.getLogger(__name__)


class PageSession:
    """Owns the bridge, display and controller of a single page connection."""

    def __init__(self, send: Callable[[str], Awaitable[None]], settings: Settings) -> None:
        self.bridge = PageBridge(send)
        self.display = HtmlDisplay(on_change=self._push_render)
        self.controller = CaptureController(
            LocalModelStatusSource(settings.model_dir),
            PageModelLoader(self.bridge),
            lambda: PageCamera(self.bridge),
            AsyncioFrameScheduler(),
            self.display,
            ControllerOptions(
                acquire_timeout=settings.acquire_timeout,
                pause_when_hidden=settings.pause_when_hidden,
            ),
        )
        self._tasks: set[asyncio.Task] = set()

    async def open(self) -> None:
        """Start sending to the page and run the initial model check."""
        self._spawn(self.bridge.pump())
        self._push_render()
        await self.controller.on_page_load()

    def handle(self, raw: str) -> None:
        """Dispatch one message received from the page."""
        try:
            data = json.loads(raw)
            kind = data.get("type")
            if kind == "reply":
                self.bridge.resolve(CommandReply(**data))
            elif kind == "event":
                self._dispatch(PageEvent(**data))
            else:
                logger.debug("Ignoring page message type=%r", kind)
        except (ValueError, AttributeError, ValidationError) as exc:
            logger.warning("Malformed page message: %s", exc)

    def close(self) -> None:
        """Tear the session down when the page goes away."""
        self.controller.on_page_unload()
        self.bridge.close()
        for task in self._tasks:
            task.cancel()

    def _dispatch(self, event: PageEvent) -> None:
        controller = self.controller
        if event.name == "start":
            self._spawn(controller.start())
        elif event.name == "key":
            self._spawn(controller.on_key(event.code or ""))
        elif event.name == "recheck":
            self._spawn(controller.recheck())
        elif event.name == "stop":
            controller.stop()
        elif event.name == "visibility":
            controller.on_visibility_change(bool(event.hidden))
        elif event.name == "unload":
            controller.on_page_unload()
        else:
            logger.info("Unknown page event: %s", event.name)

    def _spawn(self, coro: Coroutine) -> None:
        # Events run as tasks so the receive loop keeps delivering replies.
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)

    def _on_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error("Page event handler failed", exc_info=task.exception())

    def _push_render(self) -> None:
        self.bridge.post(RenderMessage(**self.display.snapshot()))
