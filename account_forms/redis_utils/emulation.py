import asyncio
import time as time_module
from datetime import timedelta
from typing import Optional

from account_forms.redis_utils.interface import RedisInterface


class RedisEmulation(RedisInterface):
    """In-memory emulation of the few Redis commands account stores need, for local runs and tests.
    Expired keys are evicted lazily, when accessed."""

    def __init__(self, response_delay: Optional[float] = None) -> None:
        self.values: dict[str, bytes] = dict()
        self.key_eviction_time: dict[str, float] = dict()
        self.response_delay = response_delay

    async def _bookkeeping(self, key: str) -> None:
        if self.response_delay is not None:
            await asyncio.sleep(self.response_delay)

        evict_at = self.key_eviction_time.get(key)
        if evict_at is None or time_module.time() <= evict_at:
            return
        del self.key_eviction_time[key]
        self.values.pop(key, None)

    async def set(
        self,
        name: str,
        value: bytes,
        ex: Optional[timedelta] = None,
        *args,
        **kwargs,
    ) -> bool:
        await self._bookkeeping(name)
        self.values[name] = value
        if ex is not None:
            self.key_eviction_time[name] = time_module.time() + ex.total_seconds()
        else:
            self.key_eviction_time.pop(name, None)
        return True

    async def get(self, name: str) -> Optional[bytes]:
        await self._bookkeeping(name)
        return self.values.get(name)

    async def delete(self, *names: str) -> int:
        n_deleted = 0
        for name in names:
            await self._bookkeeping(name)
            self.key_eviction_time.pop(name, None)
            if self.values.pop(name, None) is not None:
                n_deleted += 1
        return n_deleted

    async def exists(self, *names: str) -> int:
        n_exist = 0
        for name in names:
            await self._bookkeeping(name)
            if name in self.values:
                n_exist += 1
        return n_exist
