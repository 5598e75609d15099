"""
按房间串行化的锁
"""

import asyncio
from contextlib import asynccontextmanager
from typing import Dict, Hashable


class RoomLocks:
    """每个游戏一把asyncio锁，同一房间的变更操作依次执行"""

    REGISTRY_KEY = "__registry__"  # 创建房间时使用，保证房间码检查与插入不交错

    def __init__(self):
        self._locks: Dict[Hashable, asyncio.Lock] = {}

    def get(self, key: Hashable) -> asyncio.Lock:
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    @asynccontextmanager
    async def hold(self, key: Hashable):
        async with self.get(key):
            yield

    def is_locked(self, key: Hashable) -> bool:
        lock = self._locks.get(key)
        return bool(lock and lock.locked())


# 全局锁注册表
room_locks = RoomLocks()
