import asyncio
import datetime
import os
import random
from typing import Any, Optional
from uuid import uuid4

import pytest
import pytest_mock
from telebot import AsyncTeleBot
from telebot import types as tg
from telebot.test_util import MethodCall

from account_forms.stores.session import SessionIdentity
from account_forms.submission.client import (
    BackendClient,
    BackendConfig,
    BackendResponse,
    BackendTransportError,
    UserRecord,
)


class TimeSupplier:
    def __init__(self, mocker: pytest_mock.MockerFixture):
        self.current_time = 0.0
        mocker.patch("time.time", new=self.mock_time_time)

    def mock_time_time(self) -> float:
        return self.current_time

    def emulate_wait(self, delay: float):
        self.current_time += delay


def using_real_redis() -> bool:
    return "REDIS_URL" in os.environ


pytest_skip_on_real_redis = pytest.mark.skipif(using_real_redis(), reason="Not running on real Redis")


def generate_str() -> str:
    return uuid4().hex


def assert_required_subdict(actual: dict, required: dict):
    """Actual dict is allowed to have extra keys beyond those required"""
    for required_key, required_value in required.items():
        assert required_key in actual, f"{actual} misses required key {required_key!r}"
        assert actual[required_key] == required_value, (
            f"{actual} contains {required_key!r}: {actual[required_key]} != {required_value}"
        )


def assert_list_of_required_subdicts(actual_dicts: list[dict], required_subdicts: list[dict]):
    assert len(actual_dicts) == len(required_subdicts), (
        f"actual dicts list has mismatching size: {len(actual_dicts)} != {len(required_subdicts)}: "
        + f"{actual_dicts = }, {required_subdicts = }"
    )
    for actual, required in zip(actual_dicts, required_subdicts):
        assert_required_subdict(actual, required)


def extract_full_kwargs(method_calls: list[MethodCall]) -> list[dict[str, Any]]:
    return [mc.full_kwargs for mc in method_calls]


class FakeBackendClient(BackendClient):
    """Records posted payloads and answers with canned responses; when gated, each request
    waits until the gate is opened"""

    def __init__(self, responses: Optional[list[dict[str, Any]]] = None, gated: bool = False):
        super().__init__(BackendConfig(base_url="http://backend.test"))
        self.responses = list(responses or [{"status": 200}])
        self.requests: list[tuple[str, dict[str, Any]]] = []
        self.gate = asyncio.Event()
        if not gated:
            self.gate.set()
        self.users: Optional[list[UserRecord]] = []
        self.fail_with: Optional[Exception] = None

    async def post_json(self, path: str, payload) -> BackendResponse:
        self.requests.append((path, dict(payload)))
        await self.gate.wait()
        if self.fail_with is not None:
            raise self.fail_with
        body = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        return BackendResponse(status=body["status"], body=body, http_status=200)

    async def list_users(self) -> list[UserRecord]:
        if self.users is None:
            raise BackendTransportError("backend is down")
        return self.users


class RecordingSession:
    """In-memory session collaborator counting start_session calls"""

    def __init__(self) -> None:
        self.started: list[SessionIdentity] = []
        self.identity: Optional[SessionIdentity] = None

    async def start_session(self, identity: SessionIdentity) -> None:
        self.started.append(identity)
        self.identity = identity

    async def get_session(self) -> Optional[SessionIdentity]:
        return self.identity

    async def end_session(self) -> None:
        self.identity = None


class TelegramServerMock:
    def __init__(self) -> None:
        self._message_id_counter = 0

    async def send_message_to_bot(self, bot: AsyncTeleBot, user_id: int, text: str) -> int:
        self._message_id_counter += 1
        update_json = {
            "update_id": random.randint(int(1e4), int(1e6)),
            "message": {
                "message_id": self._message_id_counter,
                "from": {
                    "id": user_id,
                    "is_bot": False,
                    "first_name": "User",
                },
                "chat": {
                    "id": user_id,
                    "type": "private",
                },
                "date": int(datetime.datetime.now().timestamp()),
                "text": text,
            },
        }
        await bot.process_new_updates([tg.Update.de_json(update_json)])  # type: ignore
        return self._message_id_counter

    async def press_button(self, bot: AsyncTeleBot, user_id: int, callback_data: str) -> None:
        user_json = {
            "id": user_id,
            "is_bot": False,
            "first_name": "User",
        }
        update_json = {
            "update_id": random.randint(int(1e4), int(1e6)),
            "callback_query": {
                "id": random.randint(int(1e4), int(1e6)),
                "chat_instance": "whatever",
                "from": user_json,
                "data": callback_data,
                "message": {
                    "message_id": 11111,
                    "from": user_json,
                    "chat": {
                        "id": user_id,
                        "type": "private",
                    },
                    "date": int(datetime.datetime.now().timestamp()),
                    "text": "whatever",
                },
            },
        }
        await bot.process_new_updates([tg.Update.de_json(update_json)])  # type: ignore
