import asyncio
import datetime
import json
import logging
from dataclasses import dataclass
from typing import Any, Mapping, Optional

import aiohttp

logger = logging.getLogger(__name__)


class BackendError(Exception):
    pass


class BackendTransportError(BackendError):
    """The backend could not be reached or the connection broke mid-request"""


class BackendProtocolError(BackendError):
    """The backend responded with something that is not a JSON object with numeric status"""


@dataclass
class BackendConfig:
    base_url: str
    users_path: str = "/api/getAllUsers"
    # no timeout by default: request completion is entirely I/O driven
    timeout: Optional[datetime.timedelta] = None

    def url(self, path: str) -> str:
        return self.base_url.rstrip("/") + "/" + path.lstrip("/")


@dataclass(frozen=True)
class BackendResponse:
    status: int  # from the response body, not the HTTP status line
    body: dict[str, Any]
    http_status: int

    @property
    def ok(self) -> bool:
        return self.status == 200


@dataclass(frozen=True)
class UserRecord:
    user_id: str
    name: str
    raw: dict[str, Any]

    @classmethod
    def from_json(cls, obj: Any) -> "UserRecord":
        if not isinstance(obj, dict) or "id" not in obj or "name" not in obj:
            raise BackendProtocolError(f"Malformed user record: {obj!r}")
        return UserRecord(user_id=str(obj["id"]), name=str(obj["name"]), raw=obj)


def _json_default(obj: Any) -> Any:
    if isinstance(obj, datetime.datetime):
        return obj.isoformat()
    if isinstance(obj, datetime.date):
        # the backend column is a DateTime, dates go as UTC midnight
        midnight = datetime.datetime.combine(obj, datetime.time(), tzinfo=datetime.timezone.utc)
        return midnight.isoformat().replace("+00:00", "Z")
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def dump_payload(payload: Mapping[str, Any]) -> str:
    return json.dumps(payload, default=_json_default)


class BackendClient:
    """Thin JSON-over-HTTP client for the account backend. Every call is a single attempt, retrying
    is left to the user"""

    def __init__(self, config: BackendConfig, session: Optional[aiohttp.ClientSession] = None):
        self.config = config
        self._session = session
        self._owns_session = session is None

    def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            total = self.config.timeout.total_seconds() if self.config.timeout is not None else None
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=total))
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()

    async def _request(self, method: str, path: str, body: Optional[str] = None) -> BackendResponse:
        url = self.config.url(path)
        logger.debug(f"{method} {url}")
        try:
            async with self._get_session().request(
                method,
                url,
                data=body,
                headers={"Content-Type": "application/json"} if body is not None else None,
            ) as response:
                http_status = response.status
                try:
                    response_body = await response.json(content_type=None)
                except ValueError as e:
                    raise BackendProtocolError(f"{method} {url} returned non-JSON body (HTTP {http_status})") from e
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise BackendTransportError(f"{method} {url} failed: {e!r}") from e

        if not isinstance(response_body, dict):
            raise BackendProtocolError(f"{method} {url} returned {type(response_body).__name__}, object expected")
        status = response_body.get("status")
        if not isinstance(status, int) or isinstance(status, bool):
            raise BackendProtocolError(f"{method} {url} returned body without numeric status: {response_body!r}")
        logger.debug(f"{method} {url} -> {status}")
        return BackendResponse(status=status, body=response_body, http_status=http_status)

    async def post_json(self, path: str, payload: Mapping[str, Any]) -> BackendResponse:
        return await self._request("POST", path, body=dump_payload(payload))

    async def get_json(self, path: str) -> BackendResponse:
        return await self._request("GET", path)

    async def list_users(self) -> list[UserRecord]:
        response = await self.get_json(self.config.users_path)
        if not response.ok:
            raise BackendError(f"Listing users failed with status {response.status}")
        users = response.body.get("users")
        if not isinstance(users, list):
            raise BackendProtocolError(f"'users' list expected, got {users!r}")
        return [UserRecord.from_json(u) for u in users]
