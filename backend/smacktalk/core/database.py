"""
数据库配置
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from loguru import logger

from smacktalk.core.config import settings

_connect_args = {"check_same_thread": False} if settings.DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    settings.DATABASE_URL,
    connect_args=_connect_args,
    echo=False  # 设置为True可以看到SQL查询日志
)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()

def get_db():
    """获取数据库会话"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def import_models():
    """导入所有模型，确保它们注册到Base.metadata"""
    from smacktalk.models.game import Game
    from smacktalk.models.player import Player
    from smacktalk.models.prompt import Prompt
    from smacktalk.models.submission import Submission
    from smacktalk.models.vote import Vote
    from smacktalk.models.message import Message
    from smacktalk.models.suggestion import Suggestion
    return [Game, Player, Prompt, Submission, Vote, Message, Suggestion]

async def init_db(bind=None):
    """初始化数据库"""
    import_models()

    # 创建所有表
    Base.metadata.create_all(bind=bind or engine)

    logger.info("数据库初始化完成")
