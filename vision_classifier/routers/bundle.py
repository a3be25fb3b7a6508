"""Raw model bundle files for the in-page classifier runtime."""

import logging

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse, JSONResponse

from vision_classifier.config import MODEL_ROUTE
from vision_classifier.schemas.model_status import ErrorBody
from vision_classifier.services.model_bundle import resolve_bundle_file

logger = logging.getLogger(__name__)

router = APIRouter(prefix=MODEL_ROUTE)


@router.get("/{file_path:path}")
async def bundle_file(file_path: str, request: Request):
    """Serve one bundle member with an open cross-origin allowance."""
    path = resolve_bundle_file(request.app.state.settings.model_dir, file_path)
    if path is None:
        logger.info("Model file not found: %s", request.url.path)
        body = ErrorBody(
            error="Model file not found",
            path=request.url.path,
            message="Please ensure your model files are in the my_model folder",
        )
        return JSONResponse(status_code=404, content=body.model_dump())

    media_type = "application/json" if path.suffix == ".json" else "application/octet-stream"
    return FileResponse(
        path,
        media_type=media_type,
        headers={"Access-Control-Allow-Origin": "*"},
    )
