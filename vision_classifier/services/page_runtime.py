"""Camera and classifier hosted by the connected page.

The Teachable Machine runtime and the webcam live in the browser. These
adapters expose them to the capture loop through a ``PageBridge``.
"""

import logging
from typing import Any

from vision_classifier.schemas.prediction import Prediction
from vision_classifier.services.page_bridge import PageBridge

logger = logging.getLogger(__name__)


class PageModel:
    def __init__(self, bridge: PageBridge, class_count: int) -> None:
        self.bridge = bridge
        self.class_count = class_count

    async def predict(self, frame: Any) -> list[Prediction]:
        """Classify the page's current webcam frame."""
        result = await self.bridge.call("predict", frame=frame)
        return [
            Prediction(label=entry["className"], probability=entry["probability"])
            for entry in result
        ]

    def total_classes(self) -> int:
        return self.class_count


class PageModelLoader:
    def __init__(self, bridge: PageBridge) -> None:
        self.bridge = bridge

    async def load(self, model_url: str, metadata_url: str) -> PageModel:
        result = await self.bridge.call(
            "load_model", model_url=model_url, metadata_url=metadata_url,
        )
        return PageModel(self.bridge, int(result["classes"]))


class PageCamera:
    """The page's webcam.

    ``stop()`` always tells the page to release the device, including when
    ``setup()`` was cancelled before the page answered; the page discards a
    setup that completes after a release.
    """

    def __init__(self, bridge: PageBridge, width: int = 400, height: int = 400, flip: bool = True):
        self.bridge = bridge
        self.width = width
        self.height = height
        self.flip = flip
        self.canvas: int | None = None
        self._frames = 0
        self._released = False

    async def setup(self) -> None:
        await self.bridge.call(
            "camera_setup", width=self.width, height=self.height, flip=self.flip,
        )

    async def play(self) -> None:
        await self.bridge.call("camera_play")

    def update(self) -> None:
        # The page grabs the pixels itself when it runs "predict"; the canvas
        # here is the sequence number of the frame that predict will see.
        self._frames += 1
        self.canvas = self._frames

    def stop(self) -> None:
        if self._released:
            return
        self._released = True
        self.bridge.notify("camera_stop")
        logger.info("Page camera released after %d frames", self._frames)
