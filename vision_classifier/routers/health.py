"""Health check endpoint."""

import asyncio

from fastapi import APIRouter, Request

from vision_classifier.services.model_bundle import inspect_model_bundle

router = APIRouter()


@router.get("/healthz")
async def healthz(request: Request) -> dict[str, str]:
    """Return service health and whether the model bundle is usable."""
    model_dir = request.app.state.settings.model_dir
    try:
        status = await asyncio.to_thread(inspect_model_bundle, model_dir)
    except OSError:
        return {"status": "ok", "model": "missing"}
    return {"status": "ok", "model": "ready" if status.exists else "missing"}
