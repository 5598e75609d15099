"""
提示词数据模型
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from smacktalk.core.database import Base

class Prompt(Base):
    """提示词（一场对决）表，按轮次保留历史"""
    __tablename__ = "prompts"

    id = Column(Integer, primary_key=True, index=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    round_number = Column(Integer, nullable=False, index=True)
    order_index = Column(Integer, nullable=False, default=0)  # 本轮内的对决顺序
    source_index = Column(Integer, nullable=False)            # 语料中的索引
    source_key = Column(String(50), nullable=True)            # 语料中的稳定ID
    text = Column(Text, nullable=False)
    first_player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    second_player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    resolved = Column(Boolean, nullable=False, default=False)  # 伤害结算是否已完成
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # 关系
    game = relationship("Game", foreign_keys=[game_id])
    submissions = relationship("Submission", back_populates="prompt", order_by="Submission.id")
    votes = relationship("Vote", back_populates="prompt", order_by="Vote.id")

    @property
    def assigned_to(self):
        return [self.first_player_id, self.second_player_id]
