import json

from fastapi import APIRouter, Depends, HTTPException, WebSocket, WebSocketDisconnect
from sqlalchemy.ext.asyncio import AsyncSession

from dispatchlink.api.deps import get_registry, get_user_from_token
from dispatchlink.core.logging import get_logger
from dispatchlink.db.session import get_db
from dispatchlink.services.connection_registry import ConnectionRegistry

logger = get_logger("dispatchlink.realtime")

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = "",
    db: AsyncSession = Depends(get_db),
    registry: ConnectionRegistry = Depends(get_registry),
):
    """
    Live notification socket. The user joins the room of their role until
    the socket closes.
    """
    try:
        user = await get_user_from_token(db, token)
    except HTTPException:
        await websocket.close(code=1008)  # Policy violation (invalid token)
        return

    await websocket.accept()
    registry.register(user.id, websocket, user.role)

    try:
        while True:
            text = await websocket.receive_text()
            try:
                data = json.loads(text)
            except ValueError:
                logger.warning(f"Ignoring non-JSON frame from user {user.id}")
                continue
            if isinstance(data, dict) and data.get("type") == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        logger.info(f"Socket closed for user {user.id}")
    finally:
        if registry.get_connection(user.id) is websocket:
            registry.unregister(user.id)
