# khoj/routes/realtime.py
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

router = APIRouter(tags=["realtime"])


@router.websocket("/ws")
async def live_channel(websocket: WebSocket, user_id: str = Query(...)):
    """Push channel for notifications. Client messages are ignored (keep-alive)."""
    registry = websocket.app.state.connections
    await websocket.accept()
    registry.register(user_id, websocket)
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        pass
    finally:
        registry.unregister(user_id, websocket)
