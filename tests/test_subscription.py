"""Tests for the subscription gate and its verdict cache."""

from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from helpers import USER_ID, FakeClock, sent_texts

from cinehub_bot import texts
from cinehub_bot.metrics import Metrics
from cinehub_bot.store import SQLiteStore
from cinehub_bot.subscription import SubscriptionCache, SubscriptionGate, make_cache_key

CHANNEL_A = -1001000000001
CHANNEL_B = -1001000000002


class TestCacheKey:
    """Tests for cache key construction."""

    def test_key_is_order_independent(self) -> None:
        assert make_cache_key(7, [2, 1]) == make_cache_key(7, [1, 2])

    def test_key_depends_on_user(self) -> None:
        assert make_cache_key(7, [1]) != make_cache_key(8, [1])


class TestSubscriptionCache:
    """Tests for SubscriptionCache."""

    def test_missing_key_returns_none(self, cache: SubscriptionCache) -> None:
        assert cache.get(make_cache_key(1, [1])) is None

    def test_positive_verdict_lives_for_ok_ttl(
        self, cache: SubscriptionCache, clock: FakeClock
    ) -> None:
        key = make_cache_key(1, [1])
        cache.set(key, True)

        clock.advance(19.9)
        assert cache.get(key) is True

        clock.advance(0.2)
        assert cache.get(key) is None
        assert key not in cache

    def test_negative_verdict_lives_for_fail_ttl(
        self, cache: SubscriptionCache, clock: FakeClock
    ) -> None:
        key = make_cache_key(1, [1])
        cache.set(key, False)

        clock.advance(1.9)
        assert cache.get(key) is False

        clock.advance(0.2)
        assert cache.get(key) is None

    def test_overflow_purges_expired_first(self, clock: FakeClock) -> None:
        cache = SubscriptionCache(max_entries=3, clock=clock)
        cache.set(make_cache_key(1, [1]), False)
        cache.set(make_cache_key(2, [1]), True)
        cache.set(make_cache_key(3, [1]), True)
        clock.advance(5)

        cache.set(make_cache_key(4, [1]), True)

        assert len(cache) == 3
        assert make_cache_key(1, [1]) not in cache
        assert cache.get(make_cache_key(2, [1])) is True
        assert cache.get(make_cache_key(4, [1])) is True

    def test_overflow_clears_when_nothing_expired(self, clock: FakeClock) -> None:
        cache = SubscriptionCache(max_entries=3, clock=clock)
        for user_id in range(3):
            cache.set(make_cache_key(user_id, [1]), True)

        cache.set(make_cache_key(99, [1]), True)

        assert len(cache) == 0

    def test_purge_expired_returns_count(self, cache: SubscriptionCache, clock: FakeClock) -> None:
        cache.set(make_cache_key(1, [1]), False)
        cache.set(make_cache_key(2, [1]), True)
        clock.advance(3)

        assert cache.purge_expired() == 1
        assert len(cache) == 1


class TestSubscriptionGate:
    """Tests for SubscriptionGate.ensure_subscribed."""

    @pytest.mark.asyncio
    async def test_no_forced_channels_allows_without_calls(
        self, gate: SubscriptionGate, mock_bot: MagicMock
    ) -> None:
        assert await gate.ensure_subscribed(USER_ID, USER_ID) is True
        mock_bot.get_chat_member.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_member_of_all_channels_is_allowed(
        self, gate: SubscriptionGate, store: SQLiteStore, mock_bot: MagicMock
    ) -> None:
        store.set_forced_channels([CHANNEL_A, CHANNEL_B])

        assert await gate.ensure_subscribed(USER_ID, USER_ID) is True
        assert mock_bot.get_chat_member.await_count == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("status", ["administrator", "creator"])
    async def test_privileged_statuses_count_as_members(
        self, gate: SubscriptionGate, store: SQLiteStore, mock_bot: MagicMock, status: str
    ) -> None:
        store.set_forced_channels([CHANNEL_A])
        mock_bot.get_chat_member.return_value = MagicMock(status=status)

        assert await gate.ensure_subscribed(USER_ID, USER_ID) is True

    @pytest.mark.asyncio
    async def test_first_missing_membership_short_circuits(
        self, gate: SubscriptionGate, store: SQLiteStore, mock_bot: MagicMock
    ) -> None:
        store.set_forced_channels([CHANNEL_A, CHANNEL_B])
        mock_bot.get_chat_member.return_value = MagicMock(status="left")

        assert await gate.ensure_subscribed(USER_ID, USER_ID) is False
        assert mock_bot.get_chat_member.await_count == 1

    @pytest.mark.asyncio
    async def test_failed_membership_call_counts_as_not_subscribed(
        self, gate: SubscriptionGate, store: SQLiteStore, mock_bot: MagicMock, metrics: Metrics
    ) -> None:
        store.set_forced_channels([CHANNEL_A])
        mock_bot.get_chat_member.side_effect = RuntimeError("chat not found")

        assert await gate.ensure_subscribed(USER_ID, USER_ID, show_prompt=False) is False
        assert metrics.side_effect_failures["get_chat_member"] == 1

    @pytest.mark.asyncio
    async def test_fresh_positive_verdict_skips_membership_call(
        self, gate: SubscriptionGate, store: SQLiteStore, mock_bot: MagicMock, clock: FakeClock
    ) -> None:
        store.set_forced_channels([CHANNEL_A])
        await gate.ensure_subscribed(USER_ID, USER_ID)
        clock.advance(10)

        assert await gate.ensure_subscribed(USER_ID, USER_ID) is True
        assert mock_bot.get_chat_member.await_count == 1

    @pytest.mark.asyncio
    async def test_expired_verdict_triggers_fresh_check(
        self, gate: SubscriptionGate, store: SQLiteStore, mock_bot: MagicMock, clock: FakeClock
    ) -> None:
        store.set_forced_channels([CHANNEL_A])
        await gate.ensure_subscribed(USER_ID, USER_ID)
        clock.advance(21)

        await gate.ensure_subscribed(USER_ID, USER_ID)

        assert mock_bot.get_chat_member.await_count == 2

    @pytest.mark.asyncio
    async def test_channel_order_shares_cache_entry(
        self, gate: SubscriptionGate, store: SQLiteStore, mock_bot: MagicMock
    ) -> None:
        store.set_forced_channels([CHANNEL_B, CHANNEL_A])
        await gate.ensure_subscribed(USER_ID, USER_ID)
        store.set_forced_channels([CHANNEL_A, CHANNEL_B])

        await gate.ensure_subscribed(USER_ID, USER_ID)

        assert mock_bot.get_chat_member.await_count == 2

    @pytest.mark.asyncio
    async def test_bypassing_cache_still_stores_verdict(
        self,
        gate: SubscriptionGate,
        store: SQLiteStore,
        mock_bot: MagicMock,
        cache: SubscriptionCache,
    ) -> None:
        store.set_forced_channels([CHANNEL_A])

        await gate.ensure_subscribed(USER_ID, USER_ID, use_cache=False)

        assert cache.get(make_cache_key(USER_ID, [CHANNEL_A])) is True

    @pytest.mark.asyncio
    async def test_denial_sends_prompt_with_channel_buttons(
        self, gate: SubscriptionGate, store: SQLiteStore, mock_bot: MagicMock
    ) -> None:
        store.set_forced_channels([CHANNEL_A, CHANNEL_B])
        store.set_forced_links({CHANNEL_B: "https://t.me/+invite"})
        mock_bot.get_chat_member.return_value = MagicMock(status="left")

        await gate.ensure_subscribed(USER_ID, USER_ID, payload="content_3")

        assert sent_texts(mock_bot) == [texts.SUB_REQUIRED]
        rows = mock_bot.send_message.await_args.kwargs["reply_markup"].inline_keyboard
        # Channels are listed in sorted id order
        assert rows[0][0].url == "https://t.me/+invite"
        assert rows[1][0].url == "https://t.me/1000000001"
        assert rows[2][0].callback_data == "sub:check:content_3"

    @pytest.mark.asyncio
    async def test_denial_without_prompt_sends_nothing(
        self, gate: SubscriptionGate, store: SQLiteStore, mock_bot: MagicMock, metrics: Metrics
    ) -> None:
        store.set_forced_channels([CHANNEL_A])
        mock_bot.get_chat_member.return_value = MagicMock(status="kicked")

        assert await gate.ensure_subscribed(USER_ID, USER_ID, show_prompt=False) is False
        mock_bot.send_message.assert_not_awaited()
        assert metrics.gate_denials == 1
