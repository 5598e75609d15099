"""
日志配置（loguru）
"""

import sys
from pathlib import Path
from typing import Optional, Union

from loguru import logger

DEFAULT_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | "
    "<level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
    "<level>{message}</level> | "
    "{extra}"
)

VALID_LEVELS = {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}


def setup_logging(
    log_level: str = "INFO",
    log_dir: Optional[Union[str, Path]] = None,
    console_output: bool = True,
    rotation: str = "50 MB",
    retention: str = "14 days",
) -> None:
    """
    配置loguru输出

    控制台始终使用彩色格式；传入log_dir时额外写入按大小轮转的日志文件。
    上下文字段通过 logger.bind(game_id=...) 附加，会出现在 {extra} 中。
    """
    level = log_level.upper()
    if level not in VALID_LEVELS:
        raise ValueError(f"Invalid log level: {log_level}")

    logger.remove()

    if console_output:
        logger.add(sys.stderr, level=level, format=DEFAULT_FORMAT, colorize=True)

    if log_dir:
        path = Path(log_dir)
        path.mkdir(parents=True, exist_ok=True)
        logger.add(
            path / "smacktalk_{time:YYYY-MM-DD}.log",
            level=level,
            format=DEFAULT_FORMAT,
            rotation=rotation,
            retention=retention,
            enqueue=True,
        )

    logger.debug(f"日志已配置: level={level}, log_dir={log_dir}")
