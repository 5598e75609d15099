# 业务逻辑服务包
from .game_service import GameService
from .chat_service import ChatService
from .websocket_service import WebSocketManager
from .event_bus import EventBus, event_bus

__all__ = ["GameService", "ChatService", "WebSocketManager", "EventBus", "event_bus"]
