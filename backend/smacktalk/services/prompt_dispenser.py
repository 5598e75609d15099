"""
提示词分配服务
"""

import random
from typing import List, Optional, Sequence

from loguru import logger
from sqlalchemy.orm import Session

from smacktalk.core.exceptions import PreconditionError
from smacktalk.core.prompt_source import PromptSource, default_prompt_source
from smacktalk.core.utils import dump_indices, load_indices
from smacktalk.models.game import Game
from smacktalk.models.player import Player
from smacktalk.models.prompt import Prompt
from smacktalk.services.battle_resolver import Role


def pair_players(players: Sequence) -> List[tuple]:
    """环形配对：第i位与第(i+1) mod N位对决，每人恰好出现两次"""
    count = len(players)
    if count < 2:
        raise PreconditionError("At least 2 fighters are needed to pair battles")
    return [(players[i], players[(i + 1) % count]) for i in range(count)]


class PromptDispenser:
    """为每一轮分配不重复的提示词"""

    def __init__(self, db: Session, source: Optional[PromptSource] = None, rng: Optional[random.Random] = None):
        self.db = db
        self.source = source or default_prompt_source()
        self.rng = rng or random.Random()

    def battlers_for(self, game: Game) -> List[Player]:
        """本轮参赛者：仍站着的选手，按加入顺序"""
        players = self.db.query(Player).filter(Player.game_id == game.id).order_by(Player.id).all()
        return [p for p in players if p.role == Role.FIGHTER.value and not p.knocked_out and (p.hp or 0) > 0]

    def assign_round(self, game: Game) -> List[Prompt]:
        """为game当前轮次创建提示词，并记录已用索引"""
        battlers = self.battlers_for(game)
        pairs = pair_players(battlers)

        used = set(load_indices(game.used_prompt_indices))
        available = [i for i in range(len(self.source)) if i not in used]

        if len(available) < len(pairs):
            logger.bind(game_id=game.id).warning(
                f"可用提示词不足（剩余 {len(available)}，需要 {len(pairs)}），重置使用记录"
            )
            used.clear()
            available = list(range(len(self.source)))

        if len(available) < len(pairs):
            raise PreconditionError("Prompt corpus is smaller than the number of battles")

        prompts = []
        for order, (first, second) in enumerate(pairs):
            index = available.pop(self.rng.randrange(len(available)))
            used.add(index)
            entry = self.source.get(index)
            prompt = Prompt(
                game_id=game.id,
                round_number=game.current_round,
                order_index=order,
                source_index=index,
                source_key=entry.key,
                text=entry.text,
                first_player_id=first.id,
                second_player_id=second.id,
            )
            self.db.add(prompt)
            prompts.append(prompt)

        game.used_prompt_indices = dump_indices(list(used))
        self.db.flush()

        logger.bind(game_id=game.id).info(
            f"第{game.current_round}轮为 {len(battlers)} 位选手分配了 {len(prompts)} 个提示词"
        )
        return prompts
