"""
应用配置模块
"""

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    """应用设置"""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=True, extra="ignore")

    # 基础设置
    APP_NAME: str = "SmackTalk"
    VERSION: str = "1.0.0"
    DEBUG: bool = True

    # 服务器设置
    HOST: str = "0.0.0.0"
    PORT: int = 8001
    CORS_ORIGINS: List[str] = ["http://localhost:3000"]

    # 数据库设置
    DATABASE_URL: str = "sqlite:///./smacktalk.db"

    # 游戏设置
    MIN_PLAYERS: int = 3  # 开始游戏的最少玩家数量
    MAX_ROUNDS: int = 3
    STARTING_HP: int = 100
    ROOM_CODE_LENGTH: int = 4
    MAX_ANSWER_LENGTH: int = 140
    MAX_MESSAGE_LENGTH: int = 500  # 聊天消息最大长度
    PURGE_ON_GAME_END: bool = True  # 游戏结束时清理提示词/答案/投票
    CUT_AFTER_ROUND: int = 1  # 该轮结束后按HP淘汰，只留前CUT_SIZE名
    CUT_SIZE: int = 4  # 0表示不淘汰

    # 日志设置
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

# 全局设置实例
settings = Settings()
