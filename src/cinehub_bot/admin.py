"""Admin panel and admin conversation flows.

Admin ids come from the store (editable at runtime) with the configured list
as default, and are re-read on every check.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from aiogram.exceptions import TelegramAPIError

from cinehub_bot import keyboards, texts
from cinehub_bot.callbacks import AdminAction
from cinehub_bot.conversation import (
    ConversationState,
    ConversationStateMachine,
    parse_channel_input,
    parse_numeric_id,
)
from cinehub_bot.events import CallbackAnswer, IncomingCallback, IncomingMessage
from cinehub_bot.exceptions import UnauthorizedUserError
from cinehub_bot.metrics import format_metrics_message

if TYPE_CHECKING:
    from cinehub_bot.config import Settings
    from cinehub_bot.metrics import Metrics
    from cinehub_bot.store import SQLiteStore
    from cinehub_bot.transport import SafeTransport

logger = logging.getLogger(__name__)

# Actions that start a conversation flow: (state, prompt)
FLOW_ACTIONS: dict[AdminAction, tuple[ConversationState, str]] = {
    AdminAction.FORCED_ADD: (ConversationState.ADMIN_FORCED_ADD, texts.ADMIN_FORCED_ADD),
    AdminAction.FORCED_REMOVE: (ConversationState.ADMIN_FORCED_REMOVE, texts.ADMIN_FORCED_REMOVE),
    AdminAction.ADMINS_ADD: (ConversationState.ADMIN_ADMINS_ADD, texts.ADMIN_ADMINS_ADD),
    AdminAction.ADMINS_REMOVE: (ConversationState.ADMIN_ADMINS_REMOVE, texts.ADMIN_ADMINS_REMOVE),
    AdminAction.BROADCAST: (ConversationState.BROADCAST_WAITING_TEXT, texts.BROADCAST_PROMPT),
}

# Content management lives outside this bot for now
NOT_AVAILABLE_ACTIONS = frozenset(
    {AdminAction.ADD_CONTENT, AdminAction.ADD_PART, AdminAction.EDIT}
)


class AdminActions:
    """Admin-only screens and flows."""

    def __init__(
        self,
        transport: SafeTransport,
        store: SQLiteStore,
        settings: Settings,
        conversation: ConversationStateMachine,
        metrics: Metrics,
    ) -> None:
        self.transport = transport
        self.store = store
        self.settings = settings
        self.conversation = conversation
        self.metrics = metrics

    # ── access ─────────────────────────────────────────────────────────────

    def admin_ids(self) -> list[int]:
        return self.store.get_admin_ids(self.settings.admin_ids)

    def is_admin(self, user_id: int) -> bool:
        return user_id in self.admin_ids()

    def require_admin(self, user_id: int) -> None:
        """Raises:
        UnauthorizedUserError: If the user is not an admin.
        """
        if not self.is_admin(user_id):
            logger.warning("Unauthorized admin access attempt", extra={"user_id": user_id})
            raise UnauthorizedUserError(user_id)

    # ── screens ────────────────────────────────────────────────────────────

    async def show_menu(self, message: IncomingMessage) -> None:
        """Handle the /admin command."""
        self.require_admin(message.user_id)
        await self.transport.send_text(message.chat_id, texts.ADMIN_MENU, keyboards.admin_menu())

    async def back_to_admin(self, call: IncomingCallback) -> CallbackAnswer:
        self.require_admin(call.user_id)
        await self.transport.edit_text(
            call.chat_id, call.message_id, texts.ADMIN_MENU, keyboards.admin_menu()
        )
        return CallbackAnswer()

    async def handle(self, call: IncomingCallback, action: AdminAction) -> CallbackAnswer:
        """Dispatch an ``admin:<action>`` button."""
        self.require_admin(call.user_id)
        chat_id = call.chat_id

        if action in FLOW_ACTIONS:
            state, prompt = FLOW_ACTIONS[action]
            self.conversation.enter(call.user_id, state)
            await self.transport.send_text(chat_id, prompt)
        elif action in NOT_AVAILABLE_ACTIONS:
            await self.transport.send_text(chat_id, texts.ADMIN_NOT_AVAILABLE)
        elif action is AdminAction.STATS:
            await self.transport.send_text(chat_id, self._stats_text())
        elif action is AdminAction.FORCED:
            await self.transport.send_text(
                chat_id, texts.ADMIN_FORCED_MENU, keyboards.admin_forced()
            )
        elif action is AdminAction.FORCED_LIST:
            channels = self.store.get_forced_channels(self.settings.forced_channels)
            if not channels:
                await self.transport.send_text(chat_id, texts.ADMIN_FORCED_LIST_EMPTY)
            else:
                links = self.store.get_forced_links(self.settings.forced_channel_urls)
                await self.transport.send_text(chat_id, texts.format_forced_list(channels, links))
        elif action is AdminAction.ADMINS:
            await self.transport.send_text(
                chat_id, texts.ADMIN_ADMINS_MENU, keyboards.admin_admins()
            )
        elif action is AdminAction.ADMINS_LIST:
            admin_ids = self.admin_ids()
            if not admin_ids:
                await self.transport.send_text(chat_id, texts.ADMIN_ADMINS_LIST_EMPTY)
            else:
                await self.transport.send_text(chat_id, texts.format_admin_list(admin_ids))
        elif action is AdminAction.SETTINGS:
            await self.transport.send_text(
                chat_id, texts.ADMIN_SETTINGS_MENU, keyboards.admin_settings()
            )

        return CallbackAnswer()

    async def show_category(self, call: IncomingCallback, category: str) -> CallbackAnswer:
        """List titles of one content type (``admin:settings:<category>``)."""
        self.require_admin(call.user_id)
        if category not in texts.CATEGORY_TYPES:
            return CallbackAnswer()

        content_type, heading = texts.CATEGORY_TYPES[category]
        items = self.store.list_by_type(content_type)
        if not items:
            await self.transport.send_text(call.chat_id, texts.ADMIN_SETTINGS_EMPTY)
            return CallbackAnswer()

        total = self.store.count_by_type(content_type)
        await self.transport.send_text(
            call.chat_id, texts.format_category(heading, total, items)
        )
        return CallbackAnswer()

    def _stats_text(self) -> str:
        stats = self.store.stats()
        return texts.STATS_TEMPLATE.format(**stats) + "\n\n" + format_metrics_message(self.metrics)

    # ── conversation inputs ────────────────────────────────────────────────

    async def _saved(self, message: IncomingMessage) -> None:
        self.conversation.reset(message.user_id)
        await self.transport.send_text(message.chat_id, texts.SAVED, keyboards.admin_menu())

    async def forced_add_input(self, message: IncomingMessage) -> None:
        self.require_admin(message.user_id)
        channel_id, link = parse_channel_input(message.text)

        channels = self.store.get_forced_channels(self.settings.forced_channels)
        if channel_id not in channels:
            self.store.set_forced_channels([*channels, channel_id])

        if link:
            links = self.store.get_forced_links(self.settings.forced_channel_urls)
            links[channel_id] = link
            self.store.set_forced_links(links)

        logger.info(
            "Forced channel added",
            extra={"admin_id": message.user_id, "channel_id": channel_id, "link": link},
        )
        await self._saved(message)

    async def forced_remove_input(self, message: IncomingMessage) -> None:
        self.require_admin(message.user_id)
        channel_id = parse_numeric_id(message.text)

        channels = self.store.get_forced_channels(self.settings.forced_channels)
        if channel_id in channels:
            links = self.store.get_forced_links(self.settings.forced_channel_urls)
            links.pop(channel_id, None)
            self.store.set_forced_channels([c for c in channels if c != channel_id])
            self.store.set_forced_links(links)
            logger.info(
                "Forced channel removed",
                extra={"admin_id": message.user_id, "channel_id": channel_id},
            )

        await self._saved(message)

    async def admins_add_input(self, message: IncomingMessage) -> None:
        self.require_admin(message.user_id)
        admin_id = parse_numeric_id(message.text)

        admin_ids = self.admin_ids()
        if admin_id not in admin_ids:
            self.store.set_admin_ids([*admin_ids, admin_id])
            logger.info(
                "Admin added", extra={"admin_id": message.user_id, "new_admin_id": admin_id}
            )

        await self._saved(message)

    async def admins_remove_input(self, message: IncomingMessage) -> None:
        self.require_admin(message.user_id)
        admin_id = parse_numeric_id(message.text)

        if admin_id == message.user_id:
            await self.transport.send_text(message.chat_id, texts.ADMIN_CANNOT_REMOVE_SELF)
            return

        admin_ids = self.admin_ids()
        if admin_id in admin_ids:
            self.store.set_admin_ids([a for a in admin_ids if a != admin_id])
            logger.info(
                "Admin removed", extra={"admin_id": message.user_id, "removed_admin_id": admin_id}
            )

        await self._saved(message)

    async def broadcast_input(self, message: IncomingMessage) -> None:
        """Send the admin's text to every known user."""
        self.require_admin(message.user_id)
        if not message.text:
            await self.transport.send_text(message.chat_id, texts.BROADCAST_PROMPT)
            return

        sent = 0
        failed = 0
        for user_id in self.store.list_user_ids():
            try:
                await self.transport.bot.send_message(chat_id=user_id, text=message.text)
            except TelegramAPIError as e:
                # Blocked bot, deactivated account, ...
                failed += 1
                logger.debug("Broadcast delivery failed", extra={"user_id": user_id, "error": str(e)})
            else:
                sent += 1

        logger.info(
            "Broadcast finished",
            extra={"admin_id": message.user_id, "sent": sent, "failed": failed},
        )
        self.conversation.reset(message.user_id)
        await self.transport.send_text(
            message.chat_id, texts.BROADCAST_DONE.format(sent=sent), keyboards.admin_menu()
        )
