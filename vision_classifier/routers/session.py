"""WebSocket session endpoint driving the capture loop for one page."""

import logging
import re

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from vision_classifier.services.page_session import PageSession

logger = logging.getLogger(__name__)

router = APIRouter()

SESSION_ID_RE = re.compile(r"^[a-zA-Z0-9\-]{1,64}$")


@router.websocket("/ws/session/{session_id}")
async def websocket_session(websocket: WebSocket, session_id: str) -> None:
    """Run the capture loop for one page and stream display updates back.

    Args:
        websocket: The WebSocket connection.
        session_id: Alphanumeric session identifier.
    """
    # Validate session_id before accepting
    if not SESSION_ID_RE.match(session_id):
        await websocket.accept()
        await websocket.close(code=4400, reason="Invalid session ID")
        return

    await websocket.accept()
    logger.info("WS connected: session=%s", session_id)

    page = PageSession(websocket.send_text, websocket.app.state.settings)
    try:
        await page.open()
        while True:
            page.handle(await websocket.receive_text())
    except WebSocketDisconnect:
        logger.info(
            "WS disconnected: session=%s frames=%d",
            session_id, page.controller.frame_count,
        )
    except Exception:
        logger.exception("WS error: session=%s", session_id)
        await websocket.close(code=1011)
    finally:
        page.close()
