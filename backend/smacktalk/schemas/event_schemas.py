"""
领域事件模式
"""

from pydantic import BaseModel, Field
from typing import Dict, List, Literal, Optional, Union


class RoundStarted(BaseModel):
    """新一轮开始，提示词已分配"""
    type: Literal["RoundStarted"] = "RoundStarted"
    game_id: int
    round_number: int
    prompt_ids: List[int] = Field(default_factory=list)


class PhaseChanged(BaseModel):
    """游戏状态或对决子状态发生变化"""
    type: Literal["PhaseChanged"] = "PhaseChanged"
    game_id: int
    status: str
    round_status: Optional[str] = None
    current_prompt_id: Optional[int] = None


class BattleResolved(BaseModel):
    """一场对决完成伤害结算"""
    type: Literal["BattleResolved"] = "BattleResolved"
    game_id: int
    prompt_id: int
    round_number: int
    kind: str
    total_votes: int
    damage: float
    winner_id: Optional[int] = None
    loser_id: Optional[int] = None
    hp: Dict[int, int] = Field(default_factory=dict)


class PlayerKnockedOut(BaseModel):
    type: Literal["PlayerKnockedOut"] = "PlayerKnockedOut"
    game_id: int
    player_id: int
    round_number: int
    by_player_id: Optional[int] = None


class CornerManAssigned(BaseModel):
    type: Literal["CornerManAssigned"] = "CornerManAssigned"
    game_id: int
    player_id: int
    captain_id: int
    round_number: int


class CutApplied(BaseModel):
    """第一轮结束后按HP淘汰，未晋级的选手成为角落人"""
    type: Literal["CutApplied"] = "CutApplied"
    game_id: int
    round_number: int
    advancing: List[int] = Field(default_factory=list)
    eliminated: List[int] = Field(default_factory=list)


GameEvent = Union[RoundStarted, PhaseChanged, BattleResolved, PlayerKnockedOut, CornerManAssigned, CutApplied]
