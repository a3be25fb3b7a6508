"""Model bundle availability endpoint."""

import asyncio
import logging

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from vision_classifier.schemas.model_status import ModelStatus, ModelStatusError
from vision_classifier.services.model_bundle import inspect_model_bundle

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")


@router.get(
    "/model-status",
    response_model=ModelStatus,
    response_model_exclude_none=True,
    responses={500: {"model": ModelStatusError}},
)
async def model_status(request: Request):
    """Check that the model bundle directory holds model.json and metadata.json."""
    model_dir = request.app.state.settings.model_dir
    try:
        status = await asyncio.to_thread(inspect_model_bundle, model_dir)
    except OSError as exc:
        logger.exception("Model status check failed: dir=%s", model_dir)
        body = ModelStatusError(message="Error checking model files", error=str(exc))
        return JSONResponse(status_code=500, content=body.model_dump())

    logger.debug("Model status: exists=%s files=%d", status.exists, len(status.files))
    return status
