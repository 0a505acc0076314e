"""Tests for the long-poll ingestion loop."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiogram.exceptions import TelegramNetworkError
from aiogram.types import Update

from cinehub_bot.config import Settings
from cinehub_bot.metrics import Metrics
from cinehub_bot.poller import UpdatePoller


def make_updates(*update_ids: int) -> list[Update]:
    return [Update(update_id=update_id) for update_id in update_ids]


@pytest.fixture
def poll_transport() -> MagicMock:
    transport = MagicMock()
    transport.fetch_updates = AsyncMock(return_value=[])
    return transport


@pytest.fixture
def poll_router() -> MagicMock:
    router = MagicMock()
    router.handle_update = AsyncMock()
    return router


@pytest.fixture
def poller(
    poll_transport: MagicMock, poll_router: MagicMock, settings: Settings, metrics: Metrics
) -> UpdatePoller:
    return UpdatePoller(poll_transport, poll_router, settings, metrics)


class TestPollOnce:
    """Tests for a single fetch-and-dispatch round."""

    @pytest.mark.asyncio
    async def test_fetch_uses_cursor_and_settings(
        self, poller: UpdatePoller, poll_transport: MagicMock
    ) -> None:
        poller.cursor = 17

        await poller.poll_once()

        poll_transport.fetch_updates.assert_awaited_once_with(offset=17, timeout=25, limit=100)

    @pytest.mark.asyncio
    async def test_cursor_advances_past_batch(
        self, poller: UpdatePoller, poll_transport: MagicMock
    ) -> None:
        poll_transport.fetch_updates.return_value = make_updates(10, 11, 12)

        count = await poller.poll_once()

        assert count == 3
        assert poller.cursor == 13

    @pytest.mark.asyncio
    async def test_cursor_never_moves_backwards(
        self, poller: UpdatePoller, poll_transport: MagicMock
    ) -> None:
        poller.cursor = 50
        poll_transport.fetch_updates.return_value = make_updates(12, 48)

        await poller.poll_once()

        assert poller.cursor == 50

    @pytest.mark.asyncio
    async def test_out_of_order_ids_use_maximum(
        self, poller: UpdatePoller, poll_transport: MagicMock
    ) -> None:
        poll_transport.fetch_updates.return_value = make_updates(5, 9, 7)

        await poller.poll_once()

        assert poller.cursor == 10

    @pytest.mark.asyncio
    async def test_handler_failure_does_not_stop_batch(
        self,
        poller: UpdatePoller,
        poll_transport: MagicMock,
        poll_router: MagicMock,
        metrics: Metrics,
    ) -> None:
        poll_transport.fetch_updates.return_value = make_updates(1, 2, 3)
        poll_router.handle_update.side_effect = [None, RuntimeError("boom"), None]

        await poller.poll_once()

        assert poll_router.handle_update.await_count == 3
        assert poller.cursor == 4
        assert metrics.handler_errors == 1
        assert metrics.updates_received == 3

    @pytest.mark.asyncio
    async def test_cursor_advanced_before_dispatch(
        self, poller: UpdatePoller, poll_transport: MagicMock, poll_router: MagicMock
    ) -> None:
        seen: list[int] = []

        async def record(update: Update) -> None:
            seen.append(poller.cursor)

        poll_transport.fetch_updates.return_value = make_updates(20, 21)
        poll_router.handle_update.side_effect = record

        await poller.poll_once()

        assert seen == [21, 22]

    @pytest.mark.asyncio
    async def test_fetch_error_propagates_and_keeps_cursor(
        self, poller: UpdatePoller, poll_transport: MagicMock
    ) -> None:
        poller.cursor = 8
        poll_transport.fetch_updates.side_effect = TelegramNetworkError(
            method=MagicMock(), message="timeout"
        )

        with pytest.raises(TelegramNetworkError):
            await poller.poll_once()

        assert poller.cursor == 8


class TestRun:
    """Tests for the polling loop."""

    @pytest.mark.asyncio
    async def test_fetch_failure_backs_off_and_retries(
        self,
        poller: UpdatePoller,
        poll_transport: MagicMock,
        poll_router: MagicMock,
        metrics: Metrics,
    ) -> None:
        async def fetch(**kwargs: int) -> list[Update]:
            if poll_transport.fetch_updates.await_count == 1:
                raise TelegramNetworkError(method=MagicMock(), message="timeout")
            poller.stop()
            return make_updates(3)

        poll_transport.fetch_updates.side_effect = fetch

        with patch("cinehub_bot.poller.asyncio.sleep", new=AsyncMock()) as mock_sleep:
            await poller.run()

        mock_sleep.assert_awaited_once_with(0.5)
        assert metrics.fetch_errors == 1
        assert poller.cursor == 4
        poll_router.handle_update.assert_awaited_once()
        assert poller.running is False

    @pytest.mark.asyncio
    async def test_cancellation_ends_loop(
        self, poller: UpdatePoller, poll_transport: MagicMock
    ) -> None:
        async def hang(**kwargs: int) -> list[Update]:
            await asyncio.sleep(3600)
            return []

        poll_transport.fetch_updates.side_effect = hang

        task = asyncio.create_task(poller.run())
        await asyncio.sleep(0)
        assert poller.running is True

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert poller.running is False
