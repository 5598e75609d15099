"""
测试共享夹具：内存SQLite、事件记录器、可复现的随机数与房间码
"""

import random
from typing import Iterable, List, Tuple

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from smacktalk.core.config import Settings
from smacktalk.core.database import Base, import_models
from smacktalk.core.locks import RoomLocks
from smacktalk.core.prompt_source import StaticPromptSource
from smacktalk.models.prompt import Prompt
from smacktalk.models.submission import Submission
from smacktalk.services.event_bus import EventBus
from smacktalk.services.game_service import GameService, current_round_prompts, require_game

import_models()

TEST_PROMPTS = [f"Test prompt number {i}" for i in range(12)]


class EventRecorder:
    """事件总线订阅者，记录所有已发布事件"""

    def __init__(self):
        self.events = []

    async def __call__(self, event):
        self.events.append(event)

    def of_type(self, name: str) -> list:
        return [e for e in self.events if e.type == name]

    def types(self) -> List[str]:
        return [e.type for e in self.events]

    def clear(self):
        self.events.clear()


def code_sequence(codes: Iterable[str]):
    iterator = iter(codes)
    return lambda: next(iterator)


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def recorder():
    return EventRecorder()


@pytest.fixture
def bus(recorder):
    bus = EventBus()
    bus.subscribe(recorder)
    return bus


@pytest.fixture
def test_settings():
    return Settings(_env_file=None, MIN_PLAYERS=3, MAX_ROUNDS=3, PURGE_ON_GAME_END=True)


@pytest.fixture
def prompt_source():
    return StaticPromptSource(TEST_PROMPTS, prefix="test")


@pytest.fixture
def make_service(db, bus, test_settings, prompt_source):
    locks = RoomLocks()

    def factory(codes=("ABCD", "EFGH", "IJKL"), config=None, seed=1234):
        return GameService(
            db,
            events=bus,
            locks=locks,
            prompt_source=prompt_source,
            rng=random.Random(seed),
            code_factory=code_sequence(codes),
            config=config or test_settings,
        )

    return factory


@pytest.fixture
def service(make_service):
    return make_service()


async def setup_game(service, names=("Ann", "Bob", "Cat"), start=True) -> Tuple[int, List[int]]:
    """创建房间并加入玩家，返回 (game_id, player_ids)"""
    created = await service.create_game()
    player_ids = []
    for name in names:
        joined = await service.join_game(created.room_code, name)
        player_ids.append(joined.player_id)
    if start:
        await service.start_game(created.game_id, actor_id=player_ids[0])
    return created.game_id, player_ids


async def answer_all(service, game_id, text_for=None):
    """让每个参赛者回答当前轮次的所有提示词"""
    game = require_game(service.db, game_id)
    for prompt in current_round_prompts(service.db, game):
        for player_id in prompt.assigned_to:
            text = text_for(prompt, player_id) if text_for else f"answer {prompt.id}-{player_id}"
            await service.submit_answer(game_id, player_id, prompt.id, text)


def submission_of(db, prompt_id: int, player_id: int) -> Submission:
    return db.query(Submission).filter(
        Submission.prompt_id == prompt_id,
        Submission.player_id == player_id
    ).one()


def active_prompt(db, game_id: int) -> Prompt:
    game = require_game(db, game_id)
    return db.query(Prompt).filter(Prompt.id == game.current_prompt_id).one()
