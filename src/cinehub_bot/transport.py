"""Failure-absorbing facade over the aiogram Bot.

Every outbound side effect goes through ``SafeTransport``. Telegram flood
control and network errors are retried with backoff; a call that still fails
is logged as a structured event, counted in ``Metrics`` and reported to the
caller as a ``None``/``False`` result instead of an exception, so a single
failed side effect never aborts the surrounding handler.

Fetching updates is the exception: ``fetch_updates`` propagates errors because
the ingestion loop owns that failure boundary.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from typing import Any, TypeVar

import structlog
from aiogram import Bot
from aiogram.exceptions import (
    TelegramBadRequest,
    TelegramNetworkError,
    TelegramRetryAfter,
)
from aiogram.types import InlineKeyboardMarkup, Update

from cinehub_bot.metrics import Metrics

logger = logging.getLogger(__name__)
events = structlog.get_logger("cinehub_bot.side_effects")

T = TypeVar("T")

ALLOWED_UPDATES = ["message", "callback_query"]

# Statuses that count as a subscribed member of a forced channel
MEMBER_STATUSES = frozenset({"member", "administrator", "creator"})


async def send_with_retry(
    send_func: Callable[[], Awaitable[T]],
    max_retries: int = 2,
    base_delay: float = 0.5,
) -> T:
    """Execute a Telegram call with retry logic.

    Handles:
    - TelegramRetryAfter: Wait the requested time and retry
    - TelegramNetworkError: Exponential backoff retry
    - Any other error: raised immediately (not retryable)

    Args:
        send_func: Async function performing the call.
        max_retries: Maximum number of retry attempts.
        base_delay: Base delay for exponential backoff.

    Returns:
        Result of send_func.

    Raises:
        Exception: The last error once retries are exhausted.
    """
    for attempt in range(max_retries + 1):
        try:
            return await send_func()
        except TelegramRetryAfter as e:
            if attempt >= max_retries:
                raise
            logger.warning(
                "Rate limited by Telegram, waiting",
                extra={"retry_after": e.retry_after, "attempt": attempt},
            )
            await asyncio.sleep(e.retry_after)
        except TelegramNetworkError as e:
            if attempt >= max_retries:
                raise
            delay = base_delay * (2**attempt)
            logger.warning(
                "Network error, retrying",
                extra={"error": str(e), "delay": delay, "attempt": attempt},
            )
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")  # pragma: no cover


@dataclass
class ScreenOutcome:
    """Result of an ordered fallback chain.

    Attributes:
        ok: True if one strategy succeeded.
        strategy: Name of the strategy that succeeded.
        failed: Names of the strategies tried before it, in order.
    """

    ok: bool
    strategy: str | None = None
    failed: list[str] = field(default_factory=list)


class SafeTransport:
    """Outbound Telegram calls that degrade to "skip this side effect"."""

    def __init__(
        self,
        bot: Bot,
        metrics: Metrics,
        max_retries: int = 2,
        base_delay: float = 0.5,
    ) -> None:
        self.bot = bot
        self.metrics = metrics
        self.max_retries = max_retries
        self.base_delay = base_delay

    async def _call(
        self,
        action: str,
        func: Callable[[], Awaitable[T]],
        **context: Any,
    ) -> tuple[bool, T | None]:
        try:
            result = await send_with_retry(func, self.max_retries, self.base_delay)
        except TelegramBadRequest as e:
            if "message is not modified" in str(e).lower():
                # Content didn't change, the screen already shows it
                logger.debug("Message not modified, ignoring")
                return True, None
            self._record_failure(action, e, context)
            return False, None
        except Exception as e:
            self._record_failure(action, e, context)
            return False, None
        return True, result

    def _record_failure(self, action: str, error: Exception, context: dict[str, Any]) -> None:
        self.metrics.record_side_effect_failure(action)
        events.warning(
            "side_effect_failed",
            action=action,
            error_type=type(error).__name__,
            error=str(error),
            **context,
        )

    # ── inbound ────────────────────────────────────────────────────────────

    async def fetch_updates(self, offset: int, timeout: int, limit: int) -> list[Update]:
        """Long-poll the next batch of updates. Errors propagate."""
        return await self.bot.get_updates(
            offset=offset,
            timeout=timeout,
            limit=limit,
            allowed_updates=ALLOWED_UPDATES,
        )

    # ── outbound ───────────────────────────────────────────────────────────

    async def send_text(
        self,
        chat_id: int,
        text: str,
        keyboard: InlineKeyboardMarkup | None = None,
    ) -> bool:
        ok, _ = await self._call(
            "send_text",
            lambda: self.bot.send_message(chat_id=chat_id, text=text, reply_markup=keyboard),
            chat_id=chat_id,
        )
        return ok

    async def send_photo(
        self,
        chat_id: int,
        photo: str,
        caption: str,
        keyboard: InlineKeyboardMarkup | None = None,
    ) -> bool:
        ok, _ = await self._call(
            "send_photo",
            lambda: self.bot.send_photo(
                chat_id=chat_id, photo=photo, caption=caption, reply_markup=keyboard
            ),
            chat_id=chat_id,
        )
        return ok

    async def copy_from_channels(
        self,
        chat_id: int,
        channel_ids: Sequence[int],
        message_id: int,
    ) -> int | None:
        """Copy a media message into ``chat_id`` from the first channel that has it.

        Returns:
            The new message id, or None if no channel yielded a copy.
        """
        for channel_id in channel_ids:
            ok, result = await self._call(
                "copy_message",
                lambda channel_id=channel_id: self.bot.copy_message(
                    chat_id=chat_id, from_chat_id=channel_id, message_id=message_id
                ),
                chat_id=chat_id,
                channel_id=channel_id,
                message_id=message_id,
            )
            if ok and result is not None and getattr(result, "message_id", None) is not None:
                return int(result.message_id)
        return None

    async def edit_text(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        keyboard: InlineKeyboardMarkup | None = None,
    ) -> bool:
        if message_id <= 0:
            return False
        ok, _ = await self._call(
            "edit_text",
            lambda: self.bot.edit_message_text(
                text=text, chat_id=chat_id, message_id=message_id, reply_markup=keyboard
            ),
            chat_id=chat_id,
            message_id=message_id,
        )
        return ok

    async def edit_caption(
        self,
        chat_id: int,
        message_id: int,
        caption: str,
        keyboard: InlineKeyboardMarkup | None = None,
    ) -> bool:
        if message_id <= 0:
            return False
        ok, _ = await self._call(
            "edit_caption",
            lambda: self.bot.edit_message_caption(
                chat_id=chat_id, message_id=message_id, caption=caption, reply_markup=keyboard
            ),
            chat_id=chat_id,
            message_id=message_id,
        )
        return ok

    async def edit_keyboard(
        self,
        chat_id: int,
        message_id: int,
        keyboard: InlineKeyboardMarkup,
    ) -> bool:
        if message_id <= 0:
            return False
        ok, _ = await self._call(
            "edit_keyboard",
            lambda: self.bot.edit_message_reply_markup(
                chat_id=chat_id, message_id=message_id, reply_markup=keyboard
            ),
            chat_id=chat_id,
            message_id=message_id,
        )
        return ok

    async def delete_message(self, chat_id: int, message_id: int) -> bool:
        if message_id <= 0:
            return False
        ok, _ = await self._call(
            "delete_message",
            lambda: self.bot.delete_message(chat_id=chat_id, message_id=message_id),
            chat_id=chat_id,
            message_id=message_id,
        )
        return ok

    async def answer_callback(
        self,
        callback_id: str,
        text: str | None = None,
        show_alert: bool = False,
    ) -> bool:
        if not callback_id:
            return False
        ok, _ = await self._call(
            "answer_callback",
            lambda: self.bot.answer_callback_query(
                callback_query_id=callback_id, text=text or None, show_alert=show_alert
            ),
            callback_id=callback_id,
        )
        return ok

    async def member_status(self, channel_id: int, user_id: int) -> str | None:
        """Membership status of a user in a channel, or None if unknown."""
        ok, member = await self._call(
            "get_chat_member",
            lambda: self.bot.get_chat_member(chat_id=channel_id, user_id=user_id),
            channel_id=channel_id,
            user_id=user_id,
        )
        if not ok or member is None:
            return None
        status = getattr(member, "status", None)
        # ChatMemberStatus is a str enum
        return str(getattr(status, "value", status)) if status is not None else None

    async def show_screen(
        self,
        chat_id: int,
        message_id: int,
        text: str,
        keyboard: InlineKeyboardMarkup | None = None,
    ) -> ScreenOutcome:
        """Replace the screen in place, or send it anew.

        Strategies, in order: edit the message text, edit the media caption,
        send a new message.
        """
        strategies: list[tuple[str, Callable[[], Awaitable[bool]]]] = [
            ("edit_text", lambda: self.edit_text(chat_id, message_id, text, keyboard)),
            ("edit_caption", lambda: self.edit_caption(chat_id, message_id, text, keyboard)),
            ("send_text", lambda: self.send_text(chat_id, text, keyboard)),
        ]
        return await first_successful(strategies)


async def first_successful(
    strategies: Sequence[tuple[str, Callable[[], Awaitable[bool]]]],
) -> ScreenOutcome:
    """Evaluate strategies in order until one reports success."""
    failed: list[str] = []
    for name, strategy in strategies:
        if await strategy():
            return ScreenOutcome(ok=True, strategy=name, failed=failed)
        failed.append(name)
    return ScreenOutcome(ok=False, failed=failed)
