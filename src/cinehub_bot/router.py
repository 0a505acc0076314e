"""Update router.

Turns one Telegram update into handler calls: classify, rate limit, then
dispatch a message through the conversation state machine or a callback
through the typed command table. Every callback query is acknowledged exactly
once, whatever happens in its handler.
"""

from __future__ import annotations

import logging
import sqlite3
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any

from aiogram.types import Update

from cinehub_bot import texts
from cinehub_bot.admin import AdminActions
from cinehub_bot.callbacks import (
    AdminCategory,
    AdminCommand,
    BackToAdmin,
    BackToMenu,
    ListPage,
    MenuCommand,
    PartsPage,
    PickSeason,
    SendPart,
    ShowContent,
    SubscriptionCheck,
    ToggleFavorite,
    UnknownCommand,
    WatchContent,
    parse_callback_data,
)
from cinehub_bot.catalog import CatalogActions
from cinehub_bot.conversation import ConversationState, ConversationStateMachine
from cinehub_bot.events import (
    CallbackAnswer,
    IncomingCallback,
    IncomingMessage,
    classify_update,
)
from cinehub_bot.exceptions import (
    InvalidCallbackDataError,
    InvalidInputError,
    UnauthorizedUserError,
)
from cinehub_bot.payloads import is_admin_command, parse_start_command, resolve_payload

if TYPE_CHECKING:
    from cinehub_bot.config import Settings
    from cinehub_bot.metrics import Metrics, RateLimiter
    from cinehub_bot.store import SQLiteStore
    from cinehub_bot.subscription import SubscriptionGate
    from cinehub_bot.transport import SafeTransport

logger = logging.getLogger(__name__)

MessageHandler = Callable[[IncomingMessage], Awaitable[None]]

# Commands that require the subscription gate before their handler runs
GATED_COMMANDS: tuple[type, ...] = (MenuCommand, ShowContent, WatchContent, SendPart)

# Prompt re-sent after a rejected numeric id, per admin state
ID_PROMPTS: dict[ConversationState, str] = {
    ConversationState.ADMIN_FORCED_ADD: texts.ADMIN_FORCED_ADD,
    ConversationState.ADMIN_FORCED_REMOVE: texts.ADMIN_FORCED_REMOVE,
    ConversationState.ADMIN_ADMINS_ADD: texts.ADMIN_ADMINS_ADD,
    ConversationState.ADMIN_ADMINS_REMOVE: texts.ADMIN_ADMINS_REMOVE,
}


class UpdateRouter:
    """Dispatches inbound updates to catalog and admin actions.

    Owns no I/O of its own: outbound calls go through the transport, state
    through the store. The rate limiter and the gate (with its cache) are
    passed in so tests can drive them with a fake clock.
    """

    def __init__(
        self,
        settings: Settings,
        store: SQLiteStore,
        transport: SafeTransport,
        gate: SubscriptionGate,
        conversation: ConversationStateMachine,
        rate_limiter: RateLimiter,
        metrics: Metrics,
    ) -> None:
        self.settings = settings
        self.store = store
        self.transport = transport
        self.gate = gate
        self.conversation = conversation
        self.rate_limiter = rate_limiter
        self.metrics = metrics

        self.catalog = CatalogActions(transport, store, settings, gate, conversation, metrics)
        self.admin = AdminActions(transport, store, settings, conversation, metrics)

        self._state_handlers: dict[ConversationState, MessageHandler] = {
            ConversationState.SEARCH_WAITING_QUERY: self.catalog.search_input,
            ConversationState.ADMIN_FORCED_ADD: self.admin.forced_add_input,
            ConversationState.ADMIN_FORCED_REMOVE: self.admin.forced_remove_input,
            ConversationState.ADMIN_ADMINS_ADD: self.admin.admins_add_input,
            ConversationState.ADMIN_ADMINS_REMOVE: self.admin.admins_remove_input,
            ConversationState.BROADCAST_WAITING_TEXT: self.admin.broadcast_input,
        }

        self._callback_handlers: dict[type, Callable[[IncomingCallback, Any], Awaitable[CallbackAnswer]]] = {
            SubscriptionCheck: self._on_subscription_check,
            MenuCommand: lambda call, cmd: self.catalog.open_menu(call, cmd.item),
            ShowContent: lambda call, cmd: self.catalog.show_content(call, cmd.content_id),
            ToggleFavorite: lambda call, cmd: self.catalog.toggle_favorite(call, cmd.content_id),
            WatchContent: lambda call, cmd: self.catalog.watch(call, cmd.content_id),
            PartsPage: lambda call, cmd: self.catalog.parts_page(
                call, cmd.content_id, cmd.season, cmd.page
            ),
            PickSeason: lambda call, cmd: self.catalog.pick_season(call, cmd.content_id, cmd.season),
            SendPart: lambda call, cmd: self.catalog.send_part(
                call, cmd.content_id, cmd.season, cmd.part_number
            ),
            ListPage: self.catalog.turn_page,
            BackToMenu: lambda call, cmd: self.catalog.back_to_menu(call),
            BackToAdmin: lambda call, cmd: self.admin.back_to_admin(call),
            AdminCommand: lambda call, cmd: self.admin.handle(call, cmd.action),
            AdminCategory: lambda call, cmd: self.admin.show_category(call, cmd.category),
        }

    async def handle_update(self, update: Update) -> None:
        """Route one update.

        Store failures are logged and counted here. Other handler exceptions
        propagate to the caller.
        """
        event = classify_update(update)
        if event is None:
            self.metrics.updates_discarded += 1
            logger.debug("Discarded update", extra={"update_id": update.update_id})
            return

        if self.rate_limiter.is_rate_limited(event.user_id):
            self.metrics.rate_limited += 1
            logger.debug("Rate limited", extra={"user_id": event.user_id})
            return

        self.metrics.updates_dispatched += 1
        try:
            if isinstance(event, IncomingMessage):
                await self.handle_message(event)
            else:
                await self.handle_callback(event)
        except sqlite3.Error as e:
            # The rest of the handler is skipped; a callback is already acknowledged
            self.metrics.record_side_effect_failure("store")
            logger.warning(
                "Store call failed",
                extra={"user_id": event.user_id, "update_id": update.update_id, "error": str(e)},
            )

    # ── messages ───────────────────────────────────────────────────────────

    async def handle_message(self, message: IncomingMessage) -> None:
        is_start, payload = parse_start_command(message.text)
        if is_start:
            await self._on_start(message, payload)
            return

        if is_admin_command(message.text):
            try:
                await self.admin.show_menu(message)
            except UnauthorizedUserError:
                await self.transport.send_text(message.chat_id, texts.ADMIN_ONLY)
            return

        state = self.conversation.current(message.user_id)
        if state is None:
            return

        try:
            await self._state_handlers[state](message)
        except InvalidInputError as e:
            logger.info(
                "Rejected conversation input",
                extra={"user_id": message.user_id, "state": state.value, "error": str(e)},
            )
            await self.transport.send_text(
                message.chat_id,
                texts.ID_MUST_BE_NUMERIC + "\n" + ID_PROMPTS.get(state, ""),
            )
        except UnauthorizedUserError:
            await self.transport.send_text(message.chat_id, texts.ADMIN_ONLY)

    async def _on_start(self, message: IncomingMessage, payload: str | None) -> None:
        try:
            self.store.upsert_user(message.user_id, message.username)
        except sqlite3.Error as e:
            self.metrics.record_side_effect_failure("upsert_user")
            logger.warning(
                "Failed to save user", extra={"user_id": message.user_id, "error": str(e)}
            )
        self.conversation.reset(message.user_id)

        if not await self.gate.ensure_subscribed(message.user_id, message.chat_id, payload):
            return

        link = resolve_payload(payload)
        if link is None:
            await self.catalog.send_welcome(message.chat_id)
        else:
            await self.catalog.open_deep_link(message.chat_id, message.user_id, link)

    # ── callbacks ──────────────────────────────────────────────────────────

    async def handle_callback(self, call: IncomingCallback) -> None:
        answer = CallbackAnswer()
        try:
            answer = await self._dispatch_callback(call)
        except InvalidCallbackDataError as e:
            logger.info("Malformed callback data", extra={"user_id": call.user_id, "error": str(e)})
        except UnauthorizedUserError:
            answer = CallbackAnswer(texts.ADMIN_ONLY, show_alert=True)
        finally:
            await self.transport.answer_callback(call.callback_id, answer.text, answer.show_alert)

    async def _dispatch_callback(self, call: IncomingCallback) -> CallbackAnswer:
        command = parse_callback_data(call.data)

        if isinstance(command, UnknownCommand):
            logger.debug("Unknown callback", extra={"user_id": call.user_id, "data": call.data})
            return CallbackAnswer()

        if isinstance(command, GATED_COMMANDS):
            if not await self.gate.ensure_subscribed(call.user_id, call.chat_id):
                return CallbackAnswer()

        handler = self._callback_handlers[type(command)]
        return await handler(call, command)

    async def _on_subscription_check(
        self, call: IncomingCallback, command: SubscriptionCheck
    ) -> CallbackAnswer:
        allowed = await self.gate.ensure_subscribed(
            call.user_id,
            call.chat_id,
            command.payload,
            show_prompt=False,
            use_cache=False,
        )
        if not allowed:
            return CallbackAnswer(texts.SUB_NOT_JOINED, show_alert=True)

        await self.transport.delete_message(call.chat_id, call.message_id)

        link = resolve_payload(command.payload)
        if link is None:
            await self.catalog.send_welcome(call.chat_id)
        else:
            # Deep-link media goes to the user's private chat
            await self.catalog.open_deep_link(call.user_id, call.user_id, link)
        return CallbackAnswer(texts.SUB_CHECKED)
