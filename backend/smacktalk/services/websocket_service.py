"""
房间订阅者的WebSocket推送
"""

import json
from typing import Dict, List

from fastapi import WebSocket
from loguru import logger

from smacktalk.schemas.event_schemas import GameEvent


def encode(message: dict) -> str:
    return json.dumps(message, ensure_ascii=False)


class WebSocketManager:
    """按房间(game_id)登记订阅者，推送快照、聊天和领域事件"""

    def __init__(self):
        self.rooms: Dict[int, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, game_id: int):
        await websocket.accept()
        subscribers = self.rooms.setdefault(game_id, [])
        if websocket not in subscribers:
            subscribers.append(websocket)
        logger.bind(game_id=game_id).debug(f"订阅者加入，房间内 {len(subscribers)} 个连接")

    def disconnect(self, websocket: WebSocket, game_id: int):
        subscribers = self.rooms.get(game_id)
        if not subscribers or websocket not in subscribers:
            return
        subscribers.remove(websocket)
        if not subscribers:
            del self.rooms[game_id]
        logger.bind(game_id=game_id).debug(f"订阅者离开，房间内剩余 {len(subscribers)} 个连接")

    def connection_count(self, game_id: int) -> int:
        return len(self.rooms.get(game_id, []))

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        try:
            await websocket.send_text(encode(message))
        except Exception as e:
            logger.warning(f"推送给单个订阅者失败: {e}")

    async def broadcast_to_game(self, message: dict, game_id: int):
        """推送给房间内所有订阅者，发送失败的连接会被移除"""
        subscribers = list(self.rooms.get(game_id, []))
        if not subscribers:
            return

        payload = encode(message)
        dead = []
        for websocket in subscribers:
            try:
                await websocket.send_text(payload)
            except Exception as e:
                logger.bind(game_id=game_id).warning(f"推送失败，移除订阅者: {e}")
                dead.append(websocket)

        for websocket in dead:
            self.disconnect(websocket, game_id)

        logger.bind(game_id=game_id).debug(
            f"📡 推送 {message.get('type', 'unknown')} 到 {len(subscribers) - len(dead)}/{len(subscribers)} 个订阅者"
        )

    async def broadcast_event(self, event: GameEvent):
        """事件总线订阅者"""
        await self.broadcast_to_game({
            "type": "event",
            "event": event.model_dump(mode="json"),
        }, event.game_id)
