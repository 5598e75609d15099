"""
工具函数模块
"""

import json
import math
import random
import string
from typing import List, Optional
from datetime import datetime, timezone

ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def utcnow() -> datetime:
    """当前UTC时间（带时区）"""
    return datetime.now(timezone.utc)


def format_timestamp_with_timezone(timestamp: Optional[datetime]) -> str:
    """格式化时间戳，确保包含UTC时区标识符"""
    if not timestamp:
        return ""
    if timestamp.tzinfo is not None:
        timestamp = timestamp.astimezone(timezone.utc).replace(tzinfo=None)
    # 确保发送给前端的时间戳包含'Z'后缀，表示这是UTC时间
    return timestamp.isoformat() + 'Z'


def generate_room_code(length: int = 4, rng: Optional[random.Random] = None) -> str:
    """生成大写字母数字组成的房间码"""
    chooser = rng or random
    return "".join(chooser.choice(ROOM_CODE_ALPHABET) for _ in range(length))


def normalize_room_code(code: Optional[str]) -> str:
    return (code or "").strip().upper()


def is_blank(text: Optional[str]) -> bool:
    return not text or not text.strip()


def dump_indices(indices: List[int]) -> str:
    return json.dumps(sorted(set(indices)))


def load_indices(raw: Optional[str]) -> List[int]:
    """解析已使用的提示词索引，损坏的数据按空列表处理"""
    if not raw:
        return []
    try:
        values = json.loads(raw)
    except (TypeError, ValueError):
        return []
    if not isinstance(values, list):
        return []
    return [v for v in values if isinstance(v, int) and not isinstance(v, bool)]


def is_finite_number(value) -> bool:
    if isinstance(value, bool):
        return False
    if not isinstance(value, (int, float)):
        return False
    return not math.isnan(value) and not math.isinf(value)
