"""
答案数据模型
"""

from sqlalchemy import Column, Integer, String, ForeignKey, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from smacktalk.core.database import Base
from smacktalk.core.utils import utcnow

class Submission(Base):
    """答案表"""
    __tablename__ = "submissions"
    __table_args__ = (UniqueConstraint("prompt_id", "player_id", name="uq_submission_prompt_player"),)

    id = Column(Integer, primary_key=True, index=True)
    prompt_id = Column(Integer, ForeignKey("prompts.id"), nullable=False, index=True)
    player_id = Column(Integer, ForeignKey("players.id"), nullable=False)
    text = Column(Text, nullable=False)
    attack_type = Column(String(20), nullable=False, default="jab")  # jab, haymaker, flyingKick
    # 平票决胜需要亚秒级精度，不使用server_default
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    # 关系
    prompt = relationship("Prompt", back_populates="submissions")
    player = relationship("Player")
