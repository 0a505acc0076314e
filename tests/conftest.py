"""Pytest configuration and shared fixtures.

This module provides the mock Telegram infrastructure, a real SQLite store on
a temporary path and the wired router used by the dispatch tests.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock, MagicMock

import pytest
from helpers import ADMIN_ID, CONTENT_CHANNEL_ID, COPIED_MESSAGE_ID, FakeClock

from cinehub_bot.config import Settings
from cinehub_bot.conversation import ConversationStateMachine
from cinehub_bot.metrics import Metrics, RateLimiter
from cinehub_bot.router import UpdateRouter
from cinehub_bot.store import SQLiteStore
from cinehub_bot.subscription import SubscriptionCache, SubscriptionGate
from cinehub_bot.transport import SafeTransport


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def settings() -> Settings:
    """Settings built without reading .env."""
    return Settings(  # type: ignore[call-arg]
        _env_file=None,
        bot_token="123456:TEST-TOKEN",
        admin_ids=[ADMIN_ID],
        content_channel_ids=[CONTENT_CHANNEL_ID],
    )


@pytest.fixture
def store(tmp_path: Path) -> Iterator[SQLiteStore]:
    db = SQLiteStore(str(tmp_path / "cinehub.db"))
    yield db
    db.close()


@pytest.fixture
def metrics() -> Metrics:
    return Metrics()


@pytest.fixture
def mock_bot() -> MagicMock:
    """aiogram Bot double; every API method used is an AsyncMock."""
    bot = MagicMock()
    bot.get_updates = AsyncMock(return_value=[])
    bot.send_message = AsyncMock(return_value=MagicMock(message_id=700))
    bot.send_photo = AsyncMock(return_value=MagicMock(message_id=701))
    bot.copy_message = AsyncMock(return_value=MagicMock(message_id=COPIED_MESSAGE_ID))
    bot.edit_message_text = AsyncMock(return_value=True)
    bot.edit_message_caption = AsyncMock(return_value=True)
    bot.edit_message_reply_markup = AsyncMock(return_value=True)
    bot.delete_message = AsyncMock(return_value=True)
    bot.answer_callback_query = AsyncMock(return_value=True)
    bot.get_chat_member = AsyncMock(return_value=MagicMock(status="member"))
    bot.get_me = AsyncMock(return_value=MagicMock(id=1, username="cinehub_bot"))
    bot.delete_webhook = AsyncMock(return_value=True)
    bot.session.close = AsyncMock()
    return bot


@pytest.fixture
def transport(mock_bot: MagicMock, metrics: Metrics) -> SafeTransport:
    return SafeTransport(mock_bot, metrics, max_retries=0, base_delay=0)


@pytest.fixture
def cache(clock: FakeClock) -> SubscriptionCache:
    return SubscriptionCache(ok_ttl=20.0, fail_ttl=2.0, max_entries=10_000, clock=clock)


@pytest.fixture
def gate(
    transport: SafeTransport,
    store: SQLiteStore,
    settings: Settings,
    cache: SubscriptionCache,
    metrics: Metrics,
) -> SubscriptionGate:
    return SubscriptionGate(transport, store, settings, cache, metrics)


@pytest.fixture
def conversation(store: SQLiteStore) -> ConversationStateMachine:
    return ConversationStateMachine(store)


@pytest.fixture
def rate_limiter(clock: FakeClock) -> RateLimiter:
    return RateLimiter(min_interval=0.5, clock=clock)


@pytest.fixture
def router(
    settings: Settings,
    store: SQLiteStore,
    transport: SafeTransport,
    gate: SubscriptionGate,
    conversation: ConversationStateMachine,
    rate_limiter: RateLimiter,
    metrics: Metrics,
) -> UpdateRouter:
    return UpdateRouter(settings, store, transport, gate, conversation, rate_limiter, metrics)
