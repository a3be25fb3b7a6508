"""Main page."""

from fastapi import APIRouter, Request
from fastapi.responses import FileResponse

router = APIRouter()


@router.get("/", include_in_schema=False)
async def index(request: Request) -> FileResponse:
    """Serve the classifier page."""
    return FileResponse(request.app.state.settings.static_dir / "index.html")
