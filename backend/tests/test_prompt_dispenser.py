"""
提示词分配测试
"""

import random

import pytest

from smacktalk.core.exceptions import PreconditionError
from smacktalk.core.prompt_source import StaticPromptSource, default_prompt_source
from smacktalk.core.utils import load_indices
from smacktalk.models.game import Game
from smacktalk.models.player import Player
from smacktalk.services.prompt_dispenser import PromptDispenser, pair_players


def make_game(db, names=("Ann", "Bob", "Cat", "Dan"), used=None):
    game = Game(room_code="TEST", status="LOBBY", current_round=1, max_rounds=3, used_prompt_indices=used)
    db.add(game)
    db.flush()
    for i, name in enumerate(names):
        db.add(Player(game_id=game.id, name=name, is_vip=i == 0))
    db.flush()
    return game


def test_ring_pairing_gives_everyone_two_battles():
    pairs = pair_players(["a", "b", "c", "d"])

    assert pairs == [("a", "b"), ("b", "c"), ("c", "d"), ("d", "a")]
    appearances = [p for pair in pairs for p in pair]
    assert all(appearances.count(p) == 2 for p in "abcd")


def test_two_players_meet_twice():
    assert pair_players(["a", "b"]) == [("a", "b"), ("b", "a")]


def test_pairing_needs_two_players():
    with pytest.raises(PreconditionError):
        pair_players(["solo"])


def test_assign_round_creates_distinct_prompts(db, prompt_source):
    game = make_game(db)
    dispenser = PromptDispenser(db, prompt_source, random.Random(7))

    prompts = dispenser.assign_round(game)

    assert len(prompts) == 4
    assert [p.order_index for p in prompts] == [0, 1, 2, 3]
    assert len({p.source_index for p in prompts}) == 4
    assert all(p.round_number == 1 for p in prompts)
    assert all(p.text == prompt_source.get(p.source_index).text for p in prompts)
    assert sorted(load_indices(game.used_prompt_indices)) == sorted(p.source_index for p in prompts)

    players = [p.id for p in game.players]
    assert [p.assigned_to for p in prompts] == [
        [players[0], players[1]],
        [players[1], players[2]],
        [players[2], players[3]],
        [players[3], players[0]],
    ]


def test_used_prompts_are_not_repeated_across_rounds(db, prompt_source):
    game = make_game(db, names=("Ann", "Bob", "Cat"))
    dispenser = PromptDispenser(db, prompt_source, random.Random(3))

    seen = set()
    for round_number in (1, 2, 3, 4):
        game.current_round = round_number
        indices = {p.source_index for p in dispenser.assign_round(game)}
        assert not indices & seen
        seen |= indices

    assert len(seen) == 12


def test_exhausted_corpus_resets_history(db, prompt_source):
    game = make_game(db, names=("Ann", "Bob", "Cat"), used="[0, 1, 2, 3, 4, 5, 6, 7, 8, 9, 10]")
    dispenser = PromptDispenser(db, prompt_source, random.Random(5))

    prompts = dispenser.assign_round(game)

    assert len(prompts) == 3
    assert len({p.source_index for p in prompts}) == 3
    assert sorted(load_indices(game.used_prompt_indices)) == sorted(p.source_index for p in prompts)


def test_corrupt_history_is_ignored(db, prompt_source):
    game = make_game(db, names=("Ann", "Bob"), used="not json")
    prompts = PromptDispenser(db, prompt_source, random.Random(1)).assign_round(game)
    assert len(prompts) == 2


def test_corpus_smaller_than_battles_is_rejected(db):
    game = make_game(db)
    dispenser = PromptDispenser(db, StaticPromptSource(["one", "two"]), random.Random(1))

    with pytest.raises(PreconditionError):
        dispenser.assign_round(game)


def test_knocked_out_players_and_corner_men_sit_out(db, prompt_source):
    game = make_game(db)
    ann, bob, cat, dan = game.players
    bob.hp = 0
    bob.knocked_out = True
    cat.role = "CORNER_MAN"
    cat.team_id = ann.id
    cat.hp = 0
    cat.knocked_out = True
    db.flush()

    dispenser = PromptDispenser(db, prompt_source, random.Random(2))
    assert [p.id for p in dispenser.battlers_for(game)] == [ann.id, dan.id]

    prompts = dispenser.assign_round(game)
    assert [p.assigned_to for p in prompts] == [[ann.id, dan.id], [dan.id, ann.id]]


def test_default_corpus_has_stable_unique_keys():
    source = default_prompt_source()

    keys = [source.get(i).key for i in range(len(source))]
    assert len(source) >= 50
    assert len(set(keys)) == len(keys)
    assert all(source.get(i).text.strip() for i in range(len(source)))
