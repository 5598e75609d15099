"""
游戏相关的数据模式
"""

from pydantic import BaseModel, Field, field_serializer
from typing import Optional, List
from datetime import datetime
from smacktalk.core.utils import format_timestamp_with_timezone

class GameStatus:
    """游戏状态（线上可见的字符串）"""
    LOBBY = "LOBBY"
    PROMPTS = "PROMPTS"
    VOTING = "VOTING"
    ROUND_RESULTS = "ROUND_RESULTS"
    RESULTS = "RESULTS"

class RoundStatus:
    """对决子状态"""
    VOTING = "VOTING"
    REVEAL = "REVEAL"

class JoinGameRequest(BaseModel):
    """加入房间的请求模式"""
    room_code: str = Field(..., description="4位房间码")
    player_name: str = Field(..., description="玩家名字")

class PlayerAction(BaseModel):
    """推进游戏的请求模式，actor_id为空时不校验VIP"""
    actor_id: Optional[int] = Field(default=None, description="发起操作的玩家ID")

class SubmitAnswerRequest(BaseModel):
    player_id: int
    prompt_id: int
    text: str
    attack_type: Optional[str] = Field(default=None, description="决赛轮出招：jab, haymaker, flyingKick")

class AddBotRequest(BaseModel):
    """VIP在大厅添加机器人"""
    actor_id: Optional[int] = None
    name: Optional[str] = None

class BotAnswerRequest(BaseModel):
    """角落人替机器人队长作答"""
    player_id: int
    prompt_id: int
    text: str
    attack_type: Optional[str] = None

class SubmitVoteRequest(BaseModel):
    player_id: int
    prompt_id: int
    submission_id: int

class ChatMessageCreate(BaseModel):
    player_id: int
    text: str

class SuggestionCreate(BaseModel):
    player_id: int
    prompt_id: int
    text: str

class CreateGameResponse(BaseModel):
    game_id: int
    room_code: str

class JoinGameResponse(BaseModel):
    player_id: int
    game_id: int

class GameResponse(BaseModel):
    """游戏响应模式"""
    id: int
    room_code: str
    status: str
    current_round: int
    max_rounds: int
    current_prompt_id: Optional[int] = None
    round_status: Optional[str] = None
    created_at: Optional[datetime] = None

    @field_serializer('created_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_timestamp_with_timezone(dt)

    class Config:
        from_attributes = True

class PlayerInfo(BaseModel):
    """玩家信息"""
    id: int
    game_id: int
    name: str
    score: int
    is_vip: bool
    is_bot: bool = False
    hp: int
    knocked_out: bool
    role: str
    team_id: Optional[int] = None
    win_streak: int = 0
    loss_streak: int = 0
    combo: int = 0
    became_corner_man_in_round: Optional[int] = None

    class Config:
        from_attributes = True

class PromptInfo(BaseModel):
    """提示词信息"""
    id: int
    round_number: int
    order_index: int
    text: str
    source_key: Optional[str] = None
    assigned_to: List[int]
    resolved: bool

    class Config:
        from_attributes = True

class SubmissionInfo(BaseModel):
    id: int
    prompt_id: int
    player_id: int
    text: str
    attack_type: str = "jab"
    created_at: Optional[datetime] = None

    @field_serializer('created_at')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_timestamp_with_timezone(dt)

    class Config:
        from_attributes = True

class VoteInfo(BaseModel):
    id: int
    prompt_id: int
    player_id: int
    submission_id: int

    class Config:
        from_attributes = True

class MessageInfo(BaseModel):
    id: int
    player_id: int
    text: str
    timestamp: Optional[datetime] = None

    @field_serializer('timestamp')
    def serialize_dt(self, dt: Optional[datetime]) -> Optional[str]:
        if dt is None:
            return None
        return format_timestamp_with_timezone(dt)

    class Config:
        from_attributes = True

class SuggestionInfo(BaseModel):
    id: int
    prompt_id: int
    sender_id: int
    captain_id: int
    text: str

    class Config:
        from_attributes = True

class RoomState(BaseModel):
    """房间快照：游戏、玩家、聊天以及当前轮次的对决数据"""
    game: GameResponse
    players: List[PlayerInfo]
    messages: List[MessageInfo]
    prompts: List[PromptInfo]
    submissions: List[SubmissionInfo]
    votes: List[VoteInfo]
    suggestions: List[SuggestionInfo]
