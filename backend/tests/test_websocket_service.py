"""
订阅者推送测试
"""

import json

from smacktalk.schemas.event_schemas import PhaseChanged
from smacktalk.services.event_bus import EventBus
from smacktalk.services.websocket_service import WebSocketManager


class FakeSocket:

    def __init__(self, broken=False):
        self.broken = broken
        self.accepted = False
        self.sent = []

    async def accept(self):
        self.accepted = True

    async def send_text(self, text):
        if self.broken:
            raise RuntimeError("connection closed")
        self.sent.append(json.loads(text))


async def test_events_reach_only_their_room():
    manager = WebSocketManager()
    here, elsewhere = FakeSocket(), FakeSocket()
    await manager.connect(here, 1)
    await manager.connect(elsewhere, 2)

    bus = EventBus()
    bus.subscribe(manager.broadcast_event)
    await bus.publish(PhaseChanged(game_id=1, status="VOTING", round_status="REVEAL", current_prompt_id=5))

    assert here.accepted
    assert here.sent == [{
        "type": "event",
        "event": {
            "type": "PhaseChanged",
            "game_id": 1,
            "status": "VOTING",
            "round_status": "REVEAL",
            "current_prompt_id": 5,
        },
    }]
    assert elsewhere.sent == []


async def test_broken_subscriber_is_dropped():
    manager = WebSocketManager()
    good, bad = FakeSocket(), FakeSocket(broken=True)
    await manager.connect(good, 1)
    await manager.connect(bad, 1)

    await manager.broadcast_to_game({"type": "chat_message", "content": "你好"}, 1)

    assert good.sent == [{"type": "chat_message", "content": "你好"}]
    assert manager.connection_count(1) == 1

    manager.disconnect(good, 1)
    assert manager.connection_count(1) == 0
    assert 1 not in manager.rooms
