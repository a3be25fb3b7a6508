"""Filesystem inspection of the Teachable Machine model bundle."""

import asyncio
import logging
from pathlib import Path

from vision_classifier.config import REQUIRED_MODEL_FILES
from vision_classifier.schemas.model_status import ModelStatus

logger = logging.getLogger(__name__)

FOLDER_NOT_FOUND = (
    'Model folder not found. Please create a "my_model" folder '
    "with your exported Teachable Machine files."
)
READY = "Model files found and ready to use!"


def inspect_model_bundle(model_dir: Path) -> ModelStatus:
    """Report whether the bundle directory holds every required member file.

    Raises OSError when the directory exists but cannot be listed.
    """
    if not model_dir.is_dir():
        return ModelStatus(exists=False, message=FOLDER_NOT_FOUND, files=[])

    files = sorted(entry.name for entry in model_dir.iterdir())
    missing = [name for name in REQUIRED_MODEL_FILES if name not in files]

    if missing:
        return ModelStatus(
            exists=False,
            message=f"Missing required model files: {', '.join(missing)}",
            files=files,
            missing=missing,
        )

    return ModelStatus(exists=True, message=READY, files=files)


def ensure_model_dir(model_dir: Path) -> bool:
    """Create the bundle directory if absent. Returns True if it was created."""
    if model_dir.is_dir():
        logger.info("Model folder found: %s", model_dir)
        return False

    logger.warning("Model folder not found. Creating %s ...", model_dir)
    model_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Created %s. Please add your model files:", model_dir)
    for name in (*REQUIRED_MODEL_FILES, "weights.bin (or similar weight files)"):
        logger.info("   - %s", name)
    return True


def resolve_bundle_file(model_dir: Path, relative: str) -> Path | None:
    """Return the bundle member at ``relative``, or None if absent or outside the bundle."""
    root = model_dir.resolve()
    candidate = (root / relative).resolve()
    if root != candidate and root not in candidate.parents:
        return None
    if not candidate.is_file():
        return None
    return candidate


class LocalModelStatusSource:
    """Availability check against the bundle directory this server serves."""

    def __init__(self, model_dir: Path) -> None:
        self.model_dir = model_dir

    async def check(self) -> ModelStatus:
        return await asyncio.to_thread(inspect_model_bundle, self.model_dir)
