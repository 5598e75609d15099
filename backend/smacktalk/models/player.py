"""
玩家数据模型
"""

from sqlalchemy import Column, Integer, String, ForeignKey, Boolean, DateTime
from sqlalchemy.sql import func
from sqlalchemy.orm import relationship
from smacktalk.core.database import Base

class Player(Base):
    """玩家表"""
    __tablename__ = "players"

    id = Column(Integer, primary_key=True, index=True)
    game_id = Column(Integer, ForeignKey("games.id"), nullable=False, index=True)
    name = Column(String(50), nullable=False)
    score = Column(Integer, nullable=False, default=0)
    is_vip = Column(Boolean, nullable=False, default=False)    # 第一个加入的真人玩家
    is_bot = Column(Boolean, nullable=False, default=False)
    hp = Column(Integer, nullable=False, default=100)
    knocked_out = Column(Boolean, nullable=False, default=False)
    role = Column(String(20), nullable=False, default="FIGHTER")  # FIGHTER, CORNER_MAN
    team_id = Column(Integer, ForeignKey("players.id"), nullable=True)  # 角落人辅助的队长
    win_streak = Column(Integer, nullable=False, default=0)
    loss_streak = Column(Integer, nullable=False, default=0)
    combo = Column(Integer, nullable=False, default=0)
    became_corner_man_in_round = Column(Integer, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    # 关系
    game = relationship("Game", back_populates="players")
