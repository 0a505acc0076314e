"""Test helpers: a fake clock, aiogram update builders and call inspectors."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from unittest.mock import MagicMock

from aiogram.types import CallbackQuery, Chat, Message, Update, User

ADMIN_ID = 1000
USER_ID = 2000
CONTENT_CHANNEL_ID = -1001111111111
COPIED_MESSAGE_ID = 900


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ==============================================================================
# Update builders
# ==============================================================================


def make_user(user_id: int = USER_ID, username: str | None = "viewer") -> User:
    return User(id=user_id, is_bot=False, first_name="Test", username=username)


def make_message(
    user_id: int = USER_ID,
    text: str | None = "hello",
    chat_id: int | None = None,
    message_id: int = 1,
    username: str | None = "viewer",
) -> Message:
    return Message(
        message_id=message_id,
        date=datetime.now(),
        chat=Chat(id=chat_id if chat_id is not None else user_id, type="private"),
        from_user=make_user(user_id, username),
        text=text,
    )


def message_update(
    text: str | None,
    user_id: int = USER_ID,
    update_id: int = 1,
    **kwargs: Any,
) -> Update:
    return Update(update_id=update_id, message=make_message(user_id, text, **kwargs))


def callback_update(
    data: str,
    user_id: int = USER_ID,
    update_id: int = 1,
    message_id: int = 50,
    with_message: bool = True,
) -> Update:
    query = CallbackQuery(
        id=f"cb-{update_id}",
        from_user=make_user(user_id),
        chat_instance="ci",
        data=data,
        message=make_message(user_id, "menu", message_id=message_id) if with_message else None,
    )
    return Update(update_id=update_id, callback_query=query)


# ==============================================================================
# Call inspectors
# ==============================================================================


def sent_texts(bot: MagicMock) -> list[str]:
    """Texts of every send_message call, in order."""
    return [c.kwargs["text"] for c in bot.send_message.await_args_list]


def outbound_calls(bot: MagicMock) -> int:
    """Number of awaited Bot API calls across all methods."""
    methods = (
        bot.send_message,
        bot.send_photo,
        bot.copy_message,
        bot.edit_message_text,
        bot.edit_message_caption,
        bot.edit_message_reply_markup,
        bot.delete_message,
        bot.answer_callback_query,
        bot.get_chat_member,
    )
    return sum(m.await_count for m in methods)
