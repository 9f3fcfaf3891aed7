import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from starcheckin.api.deps import get_broadcaster
from starcheckin.services.broadcaster import Broadcaster

router = APIRouter()
logger = logging.getLogger(__name__)

@router.websocket("/ws")
async def live_updates(websocket: WebSocket, broadcaster: Broadcaster = Depends(get_broadcaster)):
    """Push channel for the check-in app. Anything the client sends is ignored."""
    await websocket.accept()
    if not await broadcaster.register(websocket):
        return

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        broadcaster.unregister(websocket)
