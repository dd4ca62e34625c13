import logging
from typing import Any

from fastapi import APIRouter, WebSocket, status

from speech_relay.services.connection import ConnectionLoop
from speech_relay.services.dispatcher import MessageDispatcher
from speech_relay.services.session import SessionState

router = APIRouter(tags=["Speech Relay"])
logger = logging.getLogger(__name__)


@router.websocket("/ws")
async def relay_connect(websocket: WebSocket):
    """Speech-to-speech relay: binary audio in, transcript text and audio out."""
    app_state = websocket.app.state

    backend = getattr(app_state, "speech_backend", None)
    if backend is None:
        logger.error("Speech backend not initialized")
        # Close codes only reach the client after the handshake
        await websocket.accept()
        await websocket.close(code=status.WS_1011_INTERNAL_ERROR, reason="Server not ready")
        return

    settings = getattr(app_state, "settings", None)
    backend_timeout = settings.backend_timeout_seconds if settings else None
    loop_options: dict[str, Any] = {}
    if settings:
        loop_options["queue_size"] = settings.connection_queue_size

    client = websocket.client
    client_label = f"{client.host}:{client.port}" if client else "client"

    await websocket.accept()
    logger.info(f"Client connected: {client_label}")

    dispatcher = MessageDispatcher(
        backend,
        SessionState(),
        backend_timeout=backend_timeout,
    )
    loop = ConnectionLoop(
        websocket,
        dispatcher,
        client_label=client_label,
        **loop_options,
    )
    try:
        await loop.run()
    finally:
        logger.info(f"Client disconnected: {client_label}")
