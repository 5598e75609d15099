"""
房间订阅WebSocket路由
"""

import json
from typing import Optional

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect
from loguru import logger
from sqlalchemy.orm import Session

from smacktalk.core.database import get_db
from smacktalk.services.game_service import GameService
from smacktalk.services.websocket_service import WebSocketManager

router = APIRouter()

_manager: Optional[WebSocketManager] = None


def get_websocket_manager() -> WebSocketManager:
    """进程内共享的订阅者注册表"""
    global _manager
    if _manager is None:
        _manager = WebSocketManager()
    return _manager


async def _room_state_message(db: Session, game_id: int) -> Optional[dict]:
    state = await GameService(db).get_room_state_for_game(game_id)
    if not state:
        return None
    return {"type": "room_state", "state": state.model_dump(mode="json")}


async def broadcast_room_state(db: Session, game_id: int):
    """变更成功后向房间推送最新快照"""
    manager = get_websocket_manager()
    if not manager.connection_count(game_id):
        return
    message = await _room_state_message(db, game_id)
    if message:
        await manager.broadcast_to_game(message, game_id)


@router.websocket("/game/{game_id}")
async def room_subscription(
    websocket: WebSocket,
    game_id: int,
    db: Session = Depends(get_db)
):
    """订阅房间：连接后先收到快照，之后接收推送；客户端可发送ping或get_room_state"""
    manager = get_websocket_manager()
    log = logger.bind(game_id=game_id)
    await manager.connect(websocket, game_id)

    try:
        await manager.send_personal_message({"type": "connected", "game_id": game_id}, websocket)
        snapshot = await _room_state_message(db, game_id)
        if snapshot:
            await manager.send_personal_message(snapshot, websocket)

        while True:
            raw = await websocket.receive_text()
            try:
                request = json.loads(raw)
            except json.JSONDecodeError:
                log.warning(f"忽略无法解析的消息: {raw!r}")
                continue
            if not isinstance(request, dict):
                continue

            kind = request.get("type")
            if kind == "ping":
                await manager.send_personal_message({
                    "type": "pong",
                    "timestamp": request.get("timestamp")
                }, websocket)
            elif kind == "get_room_state":
                snapshot = await _room_state_message(db, game_id)
                if snapshot:
                    await manager.send_personal_message(snapshot, websocket)
            else:
                log.debug(f"未知的订阅消息类型: {kind}")

    except WebSocketDisconnect:
        manager.disconnect(websocket, game_id)
    except Exception as e:
        log.error(f"订阅连接异常: {e}")
        manager.disconnect(websocket, game_id)
