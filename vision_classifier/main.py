"""Vision classifier FastAPI application entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from vision_classifier import __version__
from vision_classifier.config import Settings, get_settings
from vision_classifier.routers import bundle, health, model_status, pages, session
from vision_classifier.services.model_bundle import ensure_model_dir

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    logger.info("Vision classifier server running on http://localhost:%d", settings.port)
    logger.info("Model folder: %s", settings.model_dir.resolve())
    ensure_model_dir(settings.model_dir)
    yield


async def http_error(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    if exc.status_code == 404:
        body = {
            "error": "Route not found",
            "message": "The requested resource was not found",
        }
    else:
        body = {"error": str(exc.detail), "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content=body, headers=exc.headers)


async def unhandled_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("Unhandled error: %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": "Something went wrong!", "message": str(exc)},
    )


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application for the given settings (environment by default)."""
    settings = settings or get_settings()

    app = FastAPI(title="Vision Classifier", version=__version__, lifespan=lifespan)
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_error)
    app.add_exception_handler(Exception, unhandled_error)

    app.include_router(pages.router)
    app.include_router(health.router)
    app.include_router(model_status.router)
    app.include_router(bundle.router)
    app.include_router(session.router)

    # Mounted last so the explicit routes above take precedence.
    app.mount("/", StaticFiles(directory=settings.static_dir), name="static")
    return app


app = create_app()
