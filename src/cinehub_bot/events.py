"""Inbound events as seen by the handlers.

The router extracts these from aiogram ``Update`` objects once, so handlers
work with plain ids and strings instead of optional nested Telegram fields.
"""

from __future__ import annotations

from dataclasses import dataclass

from aiogram.types import Update


@dataclass(frozen=True)
class IncomingMessage:
    """A plain message from a user."""

    user_id: int
    chat_id: int
    text: str
    username: str | None = None
    message_id: int = 0


@dataclass(frozen=True)
class IncomingCallback:
    """A button press.

    Attributes:
        chat_id: Chat of the message carrying the button, or the user's id
            when Telegram did not include that message.
        message_id: ID of that message, 0 when unknown.
    """

    callback_id: str
    user_id: int
    chat_id: int
    data: str
    message_id: int = 0
    username: str | None = None


@dataclass(frozen=True)
class CallbackAnswer:
    """How a callback query is acknowledged."""

    text: str | None = None
    show_alert: bool = False


InboundEvent = IncomingMessage | IncomingCallback


def classify_update(update: Update) -> InboundEvent | None:
    """Extract the actor, chat and payload of an update.

    Returns:
        The event, or None for unsupported or malformed updates (no actor,
        no chat).
    """
    if update.message is not None:
        message = update.message
        user = message.from_user
        chat = message.chat
        if user is None or chat is None or not chat.id:
            return None
        return IncomingMessage(
            user_id=user.id,
            chat_id=chat.id,
            text=(message.text or "").strip(),
            username=user.username,
            message_id=message.message_id,
        )

    if update.callback_query is not None:
        call = update.callback_query
        user = call.from_user
        if user is None or not user.id:
            return None
        source = call.message
        chat_id = source.chat.id if source is not None and source.chat is not None else user.id
        message_id = source.message_id if source is not None else 0
        return IncomingCallback(
            callback_id=call.id,
            user_id=user.id,
            chat_id=chat_id,
            data=call.data or "",
            message_id=message_id,
            username=user.username,
        )

    return None
