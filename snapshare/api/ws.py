from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from typing import Optional
import json
import logging

from snapshare.db.base import utcnow
from snapshare.services.auth_service import decode_access_token
from snapshare.services.message_service import new_message_event
from snapshare.services.redis_service import RedisService
from snapshare.websocket.manager import get_connection_registry

logger = logging.getLogger(__name__)

router = APIRouter()

async def _authenticate(frame: dict) -> Optional[str]:
    """User id from an auth frame whose token belongs to that user"""
    if frame.get("type") != "auth":
        return None

    user_id = frame.get("userId")
    token = frame.get("token")
    if not user_id or not token:
        return None

    token_data = decode_access_token(token)
    if token_data is None or token_data.user_id != user_id:
        return None

    if await RedisService().get(f"blacklist:{token}"):
        return None

    return user_id

async def _send_error(websocket: WebSocket, message: str) -> None:
    await websocket.send_text(json.dumps({"type": "error", "message": message}))

async def _receive_text(websocket: WebSocket) -> Optional[str]:
    """Next text frame, or None for a binary frame"""
    message = await websocket.receive()
    if message["type"] == "websocket.disconnect":
        raise WebSocketDisconnect(message.get("code", status.WS_1000_NORMAL_CLOSURE))
    return message.get("text")

@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """Real-time channel: authenticate with the first frame, then relay events"""
    await websocket.accept()
    registry = get_connection_registry()

    try:
        first = json.loads(await _receive_text(websocket) or "")
    except WebSocketDisconnect:
        return
    except ValueError:
        first = {}

    user_id = await _authenticate(first) if isinstance(first, dict) else None
    if user_id is None:
        logger.info("Rejected WebSocket connection without valid auth frame")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await registry.register(user_id, websocket)
    await websocket.send_text(json.dumps({"type": "authenticated", "userId": user_id}))

    try:
        while True:
            raw = await _receive_text(websocket)
            if raw is None:
                await _send_error(websocket, "Frames must be JSON text")
                continue

            try:
                frame = json.loads(raw)
            except ValueError:
                await _send_error(websocket, "Invalid JSON")
                continue

            if not isinstance(frame, dict):
                await _send_error(websocket, "Frame must be a JSON object")
                continue

            frame_type = frame.get("type")

            if frame_type == "ping":
                await websocket.send_text(json.dumps({"type": "pong"}))

            elif frame_type == "message":
                recipient_id = frame.get("recipientId") or frame.get("receiverId")
                content = frame.get("content")
                if not recipient_id or not content:
                    await _send_error(websocket, "recipientId and content are required")
                    continue

                await registry.send_to(
                    recipient_id,
                    new_message_event(user_id, content, utcnow().isoformat(), data=frame.get("data")),
                )

            elif frame_type == "notification":
                target_id = frame.get("userId")
                if not target_id:
                    await _send_error(websocket, "userId is required")
                    continue

                await registry.send_to(target_id, {
                    "type": "new_notification",
                    "fromUserId": user_id,
                    "content": frame.get("content"),
                    "notification": frame.get("data"),
                })

            else:
                await _send_error(websocket, f"Unknown frame type: {frame_type}")

    except WebSocketDisconnect:
        logger.debug(f"WebSocket closed by user {user_id}")
    finally:
        await registry.unregister(user_id, websocket)
