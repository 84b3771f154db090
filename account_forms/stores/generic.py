import dataclasses
import datetime
import json
import logging
from hashlib import md5
from typing import Callable, Generic, Optional, Protocol, TypeVar

import tenacity

from account_forms.constants.times import MONTH
from account_forms.redis_utils.interface import RedisInterface

T = TypeVar("T")


class str_able(Protocol):
    def __str__(self) -> str:
        ...


logger = logging.getLogger(__name__)


WrappedFuncT = TypeVar("WrappedFuncT")


def redis_retry() -> Callable[[WrappedFuncT], WrappedFuncT]:
    return tenacity.retry(  # type: ignore
        wait=tenacity.wait.wait_random_exponential(multiplier=1, max=30, exp_base=2, min=0.5),
        stop=tenacity.stop.stop_after_delay(max_delay=60),
        retry=tenacity.retry_if_exception_type(),
        after=tenacity.after.after_log(logger, log_level=logging.WARNING),
    )


@dataclasses.dataclass
class PrefixedStore:
    """
    Base store class that handles key prefixing, so that several stores (and several bots)
    can share one Redis database. Does not implement any data handling
    """

    name: str  # used to identify a particular store
    prefix: str  # used to identify bot that uses the store
    redis: RedisInterface

    def __post_init__(self):
        self.logger = logging.getLogger(f"{__name__}[{self.prefix}-{self.name}]")
        # adding prefix hash to allow stores with nested prefixes
        # e.g. stores with prefixes 'a' and 'ab' could cause a collision but
        # we transform them to 'a-0cc17' and 'ab-187ef'
        plain_prefix = f"{self.prefix}-{self.name}"
        prefix_hash = md5(plain_prefix.encode("utf-8")).hexdigest()[:5]
        self._full_prefix = f"{plain_prefix}-{prefix_hash}-"


@dataclasses.dataclass
class SingleKeyStore(PrefixedStore, Generic[T]):
    """
    Common base class for stores that use a single key to store one entity. Provides
    common read methods, write methods are defined in subclasses.
    """

    expiration_time: Optional[datetime.timedelta] = MONTH
    dumper: Callable[[T], str] = json.dumps
    loader: Callable[[str], T] = json.loads

    def _full_key(self, key: str_able) -> str:
        return f"{self._full_prefix}{key}"

    @redis_retry()
    async def drop(self, key: str_able) -> bool:
        n_deleted = await self.redis.delete(self._full_key(key))
        return n_deleted == 1

    @redis_retry()
    async def exists(self, key: str_able) -> bool:
        return (await self.redis.exists(self._full_key(key))) == 1


ValueT = TypeVar("ValueT")


@dataclasses.dataclass
class KeyValueStore(SingleKeyStore[ValueT]):
    @redis_retry()
    async def save(self, key: str_able, value: ValueT) -> bool:
        return await self.redis.set(
            self._full_key(key),
            self.dumper(value).encode("utf-8"),
            ex=self.expiration_time,
        )

    @redis_retry()
    async def load(self, key: str_able) -> Optional[ValueT]:
        value_dump = await self.redis.get(self._full_key(key))
        if value_dump is None:
            return None
        return self.loader(value_dump.decode("utf-8"))
