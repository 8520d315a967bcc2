"""Shared fixtures for notifier tests."""

from __future__ import annotations

from typing import Callable, Dict, List, Optional

import pytest

from deploy_notifier.chat_adapters.i_chat_adapter import IChatAdapter
from deploy_notifier.core.errors import ChatError
from deploy_notifier.core.models import (
    ChatMessage,
    DeploymentContext,
    NotifierSettings,
    SendOptions,
)
from deploy_notifier.core.notifier import DeployNotifier


class DummyChatAdapter(IChatAdapter):
    """Captures chat messages and serves canned room history."""

    def __init__(self) -> None:
        self.messages: list[dict] = []
        self.histories: Dict[str, List[ChatMessage]] = {}
        self.fail_rooms: set[str] = set()
        self.closed = False

    async def send(
        self, room: str, sender: str, message: str, options: SendOptions
    ) -> Optional[str]:
        if room in self.fail_rooms:
            raise ChatError(f"room {room} is unavailable")
        self.messages.append({"room": room, "sender": sender, "text": message, "options": options})
        return str(len(self.messages))

    async def history(self, room: str, limit: int = 50) -> List[ChatMessage]:
        return list(self.histories.get(room, []))

    async def close(self) -> None:
        self.closed = True

    @property
    def texts(self) -> list[str]:
        return [msg["text"] for msg in self.messages]


class RecordingSleep:
    """Stands in for asyncio.sleep; optionally runs a callback on a given poll."""

    def __init__(self) -> None:
        self.calls: list[float] = []
        self.on_call: Dict[int, Callable[[], None]] = {}

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)
        action = self.on_call.get(len(self.calls))
        if action:
            action()


@pytest.fixture
def chat_adapter():
    return DummyChatAdapter()


@pytest.fixture
def sleep():
    return RecordingSleep()


@pytest.fixture
def settings():
    return NotifierSettings(rooms=["#deploys"], human="alice")


@pytest.fixture
def context(tmp_path):
    return DeploymentContext(
        application="shop",
        branch="main",
        revision="0123456789abcdef",
        previous_revision="aaaa",
        stage=None,
        repo_path=tmp_path,
    )


@pytest.fixture
def commit_log_lines():
    return []


@pytest.fixture
def make_notifier(chat_adapter, sleep, commit_log_lines, monkeypatch):
    """Factory building a DeployNotifier wired to the dummy adapter."""
    monkeypatch.delenv("DEPLOY_NOTIFIER_USER", raising=False)

    async def _reader(context, settings):
        return list(commit_log_lines)

    def _make(settings: NotifierSettings, context: DeploymentContext, reader=None) -> DeployNotifier:
        return DeployNotifier(
            settings,
            context,
            chat_adapter=chat_adapter,
            sleep=sleep,
            commit_log_reader=reader or _reader,
        )

    return _make


@pytest.fixture
def notifier(make_notifier, settings, context):
    return make_notifier(settings, context)
