"""
房间聊天与角落人建议服务
"""

from typing import List, Optional
from sqlalchemy.orm import Session
from loguru import logger

from smacktalk.core.config import Settings, settings as default_settings
from smacktalk.core.exceptions import ConflictError, PreconditionError, ValidationError
from smacktalk.core.locks import RoomLocks, room_locks
from smacktalk.core.utils import format_timestamp_with_timezone, is_blank
from smacktalk.models.message import Message
from smacktalk.models.submission import Submission
from smacktalk.models.suggestion import Suggestion
from smacktalk.schemas.game_schemas import GameStatus, MessageInfo, SuggestionInfo
from smacktalk.services.battle_resolver import Role
from smacktalk.services.game_service import require_current_prompt, require_game, require_player
from smacktalk.services.websocket_service import WebSocketManager


class ChatService:
    """聊天是旁路通道，不影响游戏进程"""

    def __init__(
        self,
        db: Session,
        websocket_manager: Optional[WebSocketManager] = None,
        locks: Optional[RoomLocks] = None,
        config: Optional[Settings] = None,
    ):
        self.db = db
        self.websocket_manager = websocket_manager
        self.locks = locks or room_locks
        self.settings = config or default_settings

    async def send_message(self, game_id: int, player_id: int, text: str) -> MessageInfo:
        """发送聊天消息"""
        if is_blank(text):
            raise ValidationError("Message required")
        content = text.strip()
        if len(content) > self.settings.MAX_MESSAGE_LENGTH:
            raise ValidationError(f"Message must be at most {self.settings.MAX_MESSAGE_LENGTH} characters")

        async with self.locks.hold(game_id):
            game = require_game(self.db, game_id)
            player = require_player(self.db, game, player_id)
            message = Message(game_id=game.id, player_id=player.id, text=content)
            self.db.add(message)
            try:
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            self.db.refresh(message)
            info = MessageInfo.model_validate(message)

        if self.websocket_manager:
            await self.websocket_manager.broadcast_to_game({
                "type": "chat_message",
                "message_id": info.id,
                "player_id": info.player_id,
                "content": info.text,
                "timestamp": format_timestamp_with_timezone(message.timestamp),
            }, game_id)
        return info

    async def list_messages(self, game_id: int) -> List[MessageInfo]:
        game = require_game(self.db, game_id)
        messages = self.db.query(Message).filter(Message.game_id == game.id).order_by(Message.id).all()
        return [MessageInfo.model_validate(m) for m in messages]

    async def submit_suggestion(self, game_id: int, player_id: int, prompt_id: int, text: str) -> SuggestionInfo:
        """角落人为自己的队长建议答案"""
        if is_blank(text):
            raise ValidationError("Suggestion required")
        content = text.strip()
        if len(content) > self.settings.MAX_ANSWER_LENGTH:
            raise ValidationError(f"Suggestion must be at most {self.settings.MAX_ANSWER_LENGTH} characters")

        async with self.locks.hold(game_id):
            game = require_game(self.db, game_id)
            if game.status != GameStatus.PROMPTS:
                raise PreconditionError("Suggestions are only allowed while answers are collected")

            player = require_player(self.db, game, player_id)
            prompt = require_current_prompt(self.db, game, prompt_id)
            if player.role != Role.CORNER_MAN.value or player.team_id is None:
                raise PreconditionError("Only corner men can send suggestions")
            if player.team_id not in prompt.assigned_to:
                raise PreconditionError("Your captain is not in this battle")

            answered = self.db.query(Submission).filter(
                Submission.prompt_id == prompt.id,
                Submission.player_id == player.team_id
            ).first()
            if answered:
                raise ConflictError("Your captain already answered this prompt")

            suggestion = Suggestion(
                game_id=game.id,
                prompt_id=prompt.id,
                sender_id=player.id,
                captain_id=player.team_id,
                text=content,
            )
            self.db.add(suggestion)
            try:
                self.db.commit()
            except Exception:
                self.db.rollback()
                raise
            self.db.refresh(suggestion)
            info = SuggestionInfo.model_validate(suggestion)

        logger.bind(game_id=game_id).debug(f"角落人 {player_id} 为队长 {info.captain_id} 提交建议")
        if self.websocket_manager:
            await self.websocket_manager.broadcast_to_game({
                "type": "suggestion",
                "suggestion": info.model_dump(),
            }, game_id)
        return info
