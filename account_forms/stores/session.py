import datetime
import json
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from account_forms.constants.times import MONTH
from account_forms.redis_utils.interface import RedisInterface
from account_forms.stores.generic import KeyValueStore, str_able
from account_forms.utils import log_errors

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionIdentity:
    user_id: str
    name: str


@dataclass(frozen=True)
class SessionRecord:
    identity: SessionIdentity
    started_at: datetime.datetime

    def to_store(self) -> str:
        return json.dumps(
            {
                "userId": self.identity.user_id,
                "name": self.identity.name,
                "startedAt": self.started_at.isoformat(),
            }
        )

    @classmethod
    @log_errors(logger, errmsg="Error loading session record from persistent storage, ignoring it", return_on_error=None)
    def from_store(cls, dump: str) -> Optional["SessionRecord"]:
        asdict = json.loads(dump)
        return SessionRecord(
            identity=SessionIdentity(user_id=asdict["userId"], name=asdict["name"]),
            started_at=datetime.datetime.fromisoformat(asdict["startedAt"]),
        )


class SessionHandle(Protocol):
    """Session storage capability handed to whoever needs to start or inspect a session"""

    async def start_session(self, identity: SessionIdentity) -> None:
        ...

    async def get_session(self) -> Optional[SessionIdentity]:
        ...

    async def end_session(self) -> None:
        ...


class SessionStore:
    def __init__(
        self,
        redis: RedisInterface,
        bot_prefix: str,
        expiration_time: Optional[datetime.timedelta] = MONTH,
    ):
        self.bot_prefix = bot_prefix
        self.logger = logging.getLogger(f"{__name__}[{bot_prefix}]")
        self._record_store = KeyValueStore[Optional[SessionRecord]](
            name="account-session",
            prefix=bot_prefix,
            redis=redis,
            expiration_time=expiration_time,
            dumper=lambda record: record.to_store() if record is not None else "",
            loader=SessionRecord.from_store,
        )

    def for_user(self, user_id: str_able) -> "UserSession":
        return UserSession(self, user_id)

    async def save_record(self, key: str_able, record: SessionRecord) -> None:
        if not await self._record_store.save(key, record):
            raise RuntimeError(f"Failed to save session for {key}")
        self.logger.info(f"Session started for {key} as user {record.identity.user_id!r}")

    async def load_record(self, key: str_able) -> Optional[SessionRecord]:
        return await self._record_store.load(key)

    async def drop_record(self, key: str_able) -> bool:
        dropped = await self._record_store.drop(key)
        if dropped:
            self.logger.info(f"Session ended for {key}")
        return dropped


class UserSession:
    """SessionHandle bound to one chat user"""

    def __init__(self, store: SessionStore, key: str_able):
        self.store = store
        self.key = key

    async def start_session(self, identity: SessionIdentity) -> None:
        record = SessionRecord(identity=identity, started_at=datetime.datetime.now(datetime.timezone.utc))
        await self.store.save_record(self.key, record)

    async def get_record(self) -> Optional[SessionRecord]:
        return await self.store.load_record(self.key)

    async def get_session(self) -> Optional[SessionIdentity]:
        record = await self.get_record()
        return record.identity if record is not None else None

    async def end_session(self) -> None:
        await self.store.drop_record(self.key)

    async def is_session_active(self) -> bool:
        return (await self.get_session()) is not None
