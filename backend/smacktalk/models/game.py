"""
游戏数据模型
"""

from sqlalchemy import Column, Integer, String, DateTime, Text
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from smacktalk.core.database import Base

class Game(Base):
    """游戏房间表"""
    __tablename__ = "games"

    id = Column(Integer, primary_key=True, index=True)
    room_code = Column(String(8), nullable=False, unique=True, index=True)  # 玩家输入的房间码
    status = Column(String(20), nullable=False, default="LOBBY")  # LOBBY, PROMPTS, VOTING, ROUND_RESULTS, RESULTS
    current_round = Column(Integer, nullable=False, default=1)
    max_rounds = Column(Integer, nullable=False, default=3)
    current_prompt_id = Column(Integer, nullable=True)  # 当前对决的提示词ID
    round_status = Column(String(20), nullable=True)  # VOTING, REVEAL
    used_prompt_indices = Column(Text, nullable=True)  # JSON格式的已用提示词索引
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    # 关系
    players = relationship("Player", back_populates="game", order_by="Player.id")
