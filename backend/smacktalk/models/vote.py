"""
投票数据模型
"""

from sqlalchemy import Column, Integer, ForeignKey, DateTime, UniqueConstraint
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from smacktalk.core.database import Base

class Vote(Base):
    """投票表"""
    __tablename__ = "votes"
    __table_args__ = (UniqueConstraint("prompt_id", "player_id", name="uq_vote_prompt_player"),)

    id = Column(Integer, primary_key=True, index=True)
    prompt_id = Column(Integer, ForeignKey("prompts.id"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)          # 投票者
    submission_id = Column(Integer, ForeignKey("submissions.id"), nullable=False)  # 被投的答案
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # 关系
    prompt = relationship("Prompt", back_populates="votes")
    voter = relationship("Player", foreign_keys=[player_id])
    submission = relationship("Submission")
