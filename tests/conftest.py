"""
Pytest configuration and fixtures.
"""

import time
from typing import Dict, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest

from payout_bot.core.conversation_store import ConversationStore
from payout_bot.core.otp_store import OtpCorrelationStore
from payout_bot.core.session_store import SessionStore


class FakeRedis:
    """In-memory stand-in for the subset of ``redis.asyncio.Redis`` the bot uses."""

    def __init__(self):
        self.values: Dict[str, str] = {}
        self.ttls: Dict[str, int] = {}
        self.ping = AsyncMock(return_value=True)

    async def set(self, key: str, value: str, ex: Optional[int] = None):
        self.values[key] = value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def get(self, key: str):
        return self.values.get(key)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.values.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def exists(self, *keys: str) -> int:
        return sum(1 for key in keys if key in self.values)

    async def expire(self, key: str, seconds: int) -> bool:
        if key not in self.values:
            return False
        self.ttls[key] = seconds
        return True


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def make_message_update(chat_id: int, text: str) -> MagicMock:
    """Mock shaped like a ``telegram.Update`` carrying a text message."""
    update = MagicMock()
    update.update_id = int(time.time())
    update.effective_chat.id = chat_id
    update.effective_user.id = chat_id
    update.callback_query = None

    message = MagicMock()
    message.text = text
    message.reply_text = AsyncMock(return_value=AsyncMock())
    update.message = message
    update.effective_message = message
    return update


def make_callback_update(chat_id: int, data: str) -> MagicMock:
    """Mock shaped like a ``telegram.Update`` carrying a button press."""
    update = MagicMock()
    update.effective_chat.id = chat_id
    update.effective_user.id = chat_id
    update.message = None

    query = MagicMock()
    query.data = data
    query.answer = AsyncMock()
    query.edit_message_text = AsyncMock()
    query.edit_message_reply_markup = AsyncMock()
    update.callback_query = query

    message = MagicMock()
    message.reply_text = AsyncMock(return_value=AsyncMock())
    update.effective_message = message
    return update


def make_context(**bot_data) -> MagicMock:
    context = MagicMock()
    context.bot_data = dict(bot_data)
    context.bot.send_message = AsyncMock()
    return context


def replies(update: MagicMock) -> list:
    """Texts sent back through ``update.effective_message.reply_text``."""
    return [call.args[0] for call in update.effective_message.reply_text.await_args_list]


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def session_store(fake_redis):
    return SessionStore(fake_redis)


@pytest.fixture
def otp_store():
    return OtpCorrelationStore()


@pytest.fixture
def conversation_store():
    return ConversationStore()
