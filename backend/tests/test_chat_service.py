"""
聊天与角落人建议测试
"""

import pytest

from smacktalk.core.exceptions import ConflictError, NotFoundError, PreconditionError, ValidationError
from smacktalk.models.player import Player
from smacktalk.services.chat_service import ChatService
from smacktalk.services.game_service import current_round_prompts, require_game

from conftest import setup_game


class FakeWebSocketManager:
    """只记录广播内容"""

    def __init__(self):
        self.broadcasts = []

    async def broadcast_to_game(self, message, game_id):
        self.broadcasts.append((game_id, message))


@pytest.fixture
def manager():
    return FakeWebSocketManager()


@pytest.fixture
def chat(db, manager, test_settings):
    return ChatService(db, manager, config=test_settings)


def make_corner_man(db, player_id, captain_id):
    player = db.query(Player).filter(Player.id == player_id).one()
    player.role = "CORNER_MAN"
    player.team_id = captain_id
    player.hp = 0
    player.knocked_out = True
    player.became_corner_man_in_round = 1
    db.commit()


class TestMessages:

    async def test_send_and_list(self, service, chat, manager):
        game_id, (ann, bob, _) = await setup_game(service, start=False)

        first = await chat.send_message(game_id, ann, " hello ")
        await chat.send_message(game_id, bob, "hi!")

        assert first.text == "hello"
        messages = await chat.list_messages(game_id)
        assert [(m.player_id, m.text) for m in messages] == [(ann, "hello"), (bob, "hi!")]

        assert len(manager.broadcasts) == 2
        room, payload = manager.broadcasts[0]
        assert room == game_id
        assert payload["type"] == "chat_message"
        assert payload["content"] == "hello"

    @pytest.mark.parametrize("text", ["", "   ", "x" * 501])
    async def test_message_text_is_validated(self, service, chat, text):
        game_id, (ann, _, _) = await setup_game(service, start=False)
        with pytest.raises(ValidationError):
            await chat.send_message(game_id, ann, text)

    async def test_sender_must_be_in_room(self, service, chat):
        game_id, _ = await setup_game(service, start=False)
        with pytest.raises(NotFoundError):
            await chat.send_message(game_id, 999, "hello")

    async def test_messages_show_in_room_state(self, service, chat):
        game_id, (ann, _, _) = await setup_game(service)
        await chat.send_message(game_id, ann, "good luck")

        state = await service.get_room_state_for_game(game_id)
        assert [m.text for m in state.messages] == ["good luck"]


class TestSuggestions:

    async def setup_corner(self, service, db):
        game_id, players = await setup_game(service, names=("Ann", "Bob", "Cat", "Dan"))
        ann, _, _, dan = players
        make_corner_man(db, dan, ann)
        prompts = current_round_prompts(db, require_game(db, game_id))
        return game_id, players, prompts

    async def test_corner_man_suggests_to_captain(self, service, db, chat, manager):
        game_id, (ann, _, _, dan), prompts = await self.setup_corner(service, db)

        suggestion = await chat.submit_suggestion(game_id, dan, prompts[0].id, " try this ")

        assert suggestion.captain_id == ann
        assert suggestion.sender_id == dan
        assert suggestion.text == "try this"
        assert manager.broadcasts[-1][1]["type"] == "suggestion"

        state = await service.get_room_state_for_game(game_id)
        assert [s.id for s in state.suggestions] == [suggestion.id]

    async def test_fighters_cannot_suggest(self, service, db, chat):
        game_id, (_, bob, _, _), prompts = await self.setup_corner(service, db)
        with pytest.raises(PreconditionError, match="corner men"):
            await chat.submit_suggestion(game_id, bob, prompts[0].id, "idea")

    async def test_captain_must_be_in_battle(self, service, db, chat):
        game_id, (_, _, _, dan), prompts = await self.setup_corner(service, db)
        with pytest.raises(PreconditionError, match="captain"):
            await chat.submit_suggestion(game_id, dan, prompts[1].id, "idea")

    async def test_too_late_once_captain_answered(self, service, db, chat):
        game_id, (ann, _, _, dan), prompts = await self.setup_corner(service, db)
        await service.submit_answer(game_id, ann, prompts[0].id, "done")

        with pytest.raises(ConflictError):
            await chat.submit_suggestion(game_id, dan, prompts[0].id, "idea")

    async def test_suggestions_only_while_collecting_answers(self, service, db, chat):
        game_id, (ann, _, _, dan) = await setup_game(service, names=("Ann", "Bob", "Cat", "Dan"), start=False)
        make_corner_man(db, dan, ann)

        with pytest.raises(PreconditionError):
            await chat.submit_suggestion(game_id, dan, 1, "idea")

    async def test_blank_suggestion(self, service, db, chat):
        game_id, (_, _, _, dan), prompts = await self.setup_corner(service, db)
        with pytest.raises(ValidationError):
            await chat.submit_suggestion(game_id, dan, prompts[0].id, "  ")
