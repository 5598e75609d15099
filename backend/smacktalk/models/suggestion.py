"""
角落人建议数据模型
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, Text
from sqlalchemy.sql import func
from smacktalk.core.database import Base

class Suggestion(Base):
    """角落人给队长的答案建议"""
    __tablename__ = "suggestions"

    id = Column(Integer, primary_key=True, index=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    prompt_id = Column(Integer, ForeignKey("prompts.id"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("players.id"), nullable=False)   # 角落人
    captain_id = Column(Integer, ForeignKey("players.id"), nullable=False)  # 被辅助的队长
    text = Column(Text, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
