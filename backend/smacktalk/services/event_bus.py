"""
领域事件总线
"""

from typing import Awaitable, Callable, List, Sequence

from loguru import logger

from smacktalk.schemas.event_schemas import GameEvent

EventHandler = Callable[[GameEvent], Awaitable[None]]


class EventBus:
    """按发布顺序把事件分发给所有订阅者"""

    def __init__(self):
        self._handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    async def publish(self, event: GameEvent) -> None:
        logger.bind(game_id=event.game_id).debug(f"📣 事件 {event.type}")
        for handler in list(self._handlers):
            try:
                await handler(event)
            except Exception as e:
                # 订阅者失败不影响已提交的游戏状态
                logger.bind(game_id=event.game_id).error(f"事件处理失败 {event.type}: {e}")

    async def publish_all(self, events: Sequence[GameEvent]) -> None:
        for event in events:
            await self.publish(event)


# 全局事件总线
event_bus = EventBus()
