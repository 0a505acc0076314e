"""Catalog browsing actions.

Menus, paginated lists, content cards, season/part pickers and media
delivery. Callback handlers return the ``CallbackAnswer`` the router uses to
acknowledge the button press; message handlers reply directly.
"""

from __future__ import annotations

import logging
import sqlite3
from typing import TYPE_CHECKING

from cinehub_bot import keyboards, texts
from cinehub_bot.callbacks import ListKind, ListPage, MenuItem, search_prefix
from cinehub_bot.conversation import ConversationState, ConversationStateMachine
from cinehub_bot.events import CallbackAnswer, IncomingCallback, IncomingMessage
from cinehub_bot.exceptions import ContentNotFoundError, DeliveryError, PartNotFoundError
from cinehub_bot.payloads import ContentRequest, DeepLink, PartRequest

if TYPE_CHECKING:
    from aiogram.types import InlineKeyboardMarkup

    from cinehub_bot.config import Settings
    from cinehub_bot.metrics import Metrics
    from cinehub_bot.store import Part, SQLiteStore
    from cinehub_bot.subscription import SubscriptionGate
    from cinehub_bot.transport import SafeTransport

logger = logging.getLogger(__name__)


class CatalogActions:
    """User-facing catalog flows."""

    def __init__(
        self,
        transport: SafeTransport,
        store: SQLiteStore,
        settings: Settings,
        gate: SubscriptionGate,
        conversation: ConversationStateMachine,
        metrics: Metrics,
    ) -> None:
        self.transport = transport
        self.store = store
        self.settings = settings
        self.gate = gate
        self.conversation = conversation
        self.metrics = metrics

    @property
    def page_size(self) -> int:
        return self.settings.page_size

    # ── welcome and deep links ─────────────────────────────────────────────

    async def send_welcome(self, chat_id: int) -> None:
        await self.transport.send_text(chat_id, texts.WELCOME, keyboards.main_menu())

    async def open_deep_link(self, chat_id: int, user_id: int, link: DeepLink) -> None:
        """Fulfil a resolved deep-link payload, replying "not found" on failure."""
        if isinstance(link, PartRequest):
            try:
                await self.deliver_part_by_id(chat_id, link.part_id)
            except (PartNotFoundError, DeliveryError) as e:
                logger.info("Part delivery failed", extra={"user_id": user_id, "error": str(e)})
                await self.transport.send_text(chat_id, texts.CONTENT_NOT_FOUND)
            return

        if isinstance(link, ContentRequest):
            try:
                await self.send_content_card(chat_id, link.content_id, user_id)
            except ContentNotFoundError:
                await self.transport.send_text(chat_id, texts.NOT_FOUND)

    # ── delivery ───────────────────────────────────────────────────────────

    async def deliver_part_by_id(self, chat_id: int, part_id: int) -> None:
        """Deliver a part looked up by its id.

        Raises:
            PartNotFoundError: If the part does not exist.
            DeliveryError: If no content channel yields a copy.
        """
        part = self.store.get_part(part_id)
        if part is None:
            raise PartNotFoundError(part_id)
        await self.deliver_part(chat_id, part)

    async def deliver_part(self, chat_id: int, part: Part) -> None:
        """Copy a part's media into the chat, count the view, set the caption.

        Raises:
            DeliveryError: If no content channel yields a copy.
        """
        copied_id = await self.transport.copy_from_channels(
            chat_id, self.settings.content_channel_ids, part.channel_message_id
        )
        if copied_id is None:
            raise DeliveryError(chat_id, part.channel_message_id)

        self._record_view(part.content_id)

        content = self.store.get_content(part.content_id)
        if content is None:
            return
        caption = texts.format_part_caption(content, part.part_number, part.season)
        if caption is not None:
            await self.transport.edit_caption(chat_id, copied_id, caption)

    def _record_view(self, content_id: int) -> None:
        try:
            self.store.increment_views(content_id)
        except sqlite3.Error as e:
            self.metrics.record_side_effect_failure("increment_views")
            logger.warning(
                "Failed to increment views",
                extra={"content_id": content_id, "error": str(e)},
            )

    # ── content card ───────────────────────────────────────────────────────

    async def send_content_card(self, chat_id: int, content_id: int, user_id: int) -> None:
        """Send the card of a content, with its poster when one is set.

        Raises:
            ContentNotFoundError: If the content does not exist.
        """
        content = self.store.get_content(content_id)
        if content is None:
            raise ContentNotFoundError(content_id)

        is_favorite = self.store.is_favorite(user_id, content_id)
        text = texts.format_card(content)
        keyboard = keyboards.content_card(content_id, is_favorite)

        poster = (content.poster_file_id or "").strip()
        if poster:
            await self.transport.send_photo(chat_id, poster, text, keyboard)
        else:
            await self.transport.send_text(chat_id, text, keyboard)

    async def show_content(self, call: IncomingCallback, content_id: int) -> CallbackAnswer:
        try:
            await self.send_content_card(call.chat_id, content_id, call.user_id)
        except ContentNotFoundError:
            return CallbackAnswer(texts.NOT_FOUND)
        return CallbackAnswer()

    async def toggle_favorite(self, call: IncomingCallback, content_id: int) -> CallbackAnswer:
        is_favorite = self.store.toggle_favorite(call.user_id, content_id)
        await self.transport.edit_keyboard(
            call.chat_id, call.message_id, keyboards.content_card(content_id, is_favorite)
        )
        return CallbackAnswer(texts.FAVORITE_ADDED if is_favorite else texts.FAVORITE_REMOVED)

    # ── main menu ──────────────────────────────────────────────────────────

    async def open_menu(self, call: IncomingCallback, item: MenuItem) -> CallbackAnswer:
        chat_id = call.chat_id

        if item is MenuItem.SEARCH:
            self.conversation.enter(call.user_id, ConversationState.SEARCH_WAITING_QUERY)
            await self.transport.send_text(chat_id, texts.SEARCH_PROMPT)
        elif item is MenuItem.LATEST:
            keyboard = self._list_keyboard(ListKind.LATEST, call.user_id, 1)
            await self.transport.send_text(chat_id, texts.LATEST_TITLE, keyboard)
        elif item is MenuItem.TOP:
            keyboard = self._list_keyboard(ListKind.TOP, call.user_id, 1)
            await self.transport.send_text(chat_id, texts.TOP_TITLE, keyboard)
        elif item is MenuItem.FAVORITES:
            if self.store.count_favorites(call.user_id) == 0:
                await self.transport.send_text(chat_id, texts.FAVORITES_EMPTY)
            else:
                keyboard = self._list_keyboard(ListKind.FAVORITES, call.user_id, 1)
                await self.transport.send_text(chat_id, texts.FAVORITES_TITLE, keyboard)
        elif item is MenuItem.ACCOUNT:
            await self.transport.send_text(
                chat_id, texts.format_account(call.user_id, call.username)
            )
        elif item is MenuItem.HELP:
            await self.transport.send_text(chat_id, texts.HELP_TEXT)

        return CallbackAnswer()

    async def back_to_menu(self, call: IncomingCallback) -> CallbackAnswer:
        outcome = await self.transport.show_screen(
            call.chat_id, call.message_id, texts.WELCOME, keyboards.main_menu()
        )
        if not outcome.ok:
            logger.warning(
                "Could not show main menu",
                extra={"chat_id": call.chat_id, "tried": outcome.failed},
            )
        return CallbackAnswer()

    # ── lists ──────────────────────────────────────────────────────────────

    def _list_keyboard(
        self,
        kind: ListKind,
        user_id: int,
        page: int,
        query: str | None = None,
    ) -> InlineKeyboardMarkup:
        page = max(1, page)
        offset = (page - 1) * self.page_size

        if kind is ListKind.LATEST:
            items = self.store.list_latest(self.page_size, offset)
            total = self.store.count_content()
            prefix = kind.value
        elif kind is ListKind.TOP:
            items = self.store.list_top(self.page_size, offset)
            total = self.store.count_content()
            prefix = kind.value
        elif kind is ListKind.FAVORITES:
            items = self.store.list_favorites(user_id, self.page_size, offset)
            total = self.store.count_favorites(user_id)
            prefix = kind.value
        else:
            query = query or ""
            items = self.store.search_content(query, self.page_size, offset)
            total = self.store.count_search(query)
            prefix = search_prefix(query)

        return keyboards.content_list(items, page, total, prefix, self.page_size)

    async def turn_page(self, call: IncomingCallback, command: ListPage) -> CallbackAnswer:
        keyboard = self._list_keyboard(command.kind, call.user_id, command.page, command.query)
        await self.transport.edit_keyboard(call.chat_id, call.message_id, keyboard)
        return CallbackAnswer()

    # ── search ─────────────────────────────────────────────────────────────

    async def search_input(self, message: IncomingMessage) -> None:
        """Handle the text typed after pressing "search"."""
        if not await self.gate.ensure_subscribed(message.user_id, message.chat_id):
            return

        query = message.text.strip()
        if not query:
            await self.transport.send_text(message.chat_id, texts.SEARCH_PROMPT)
            return

        await self.show_search_results(message.chat_id, message.user_id, query)
        self.conversation.reset(message.user_id)

    async def show_search_results(self, chat_id: int, user_id: int, query: str) -> None:
        if self.store.count_search(query) == 0:
            await self.transport.send_text(chat_id, texts.NO_RESULTS)
            return
        keyboard = self._list_keyboard(ListKind.SEARCH, user_id, 1, query)
        await self.transport.send_text(chat_id, texts.SEARCH_RESULTS, keyboard)

    # ── seasons and parts ──────────────────────────────────────────────────

    async def watch(self, call: IncomingCallback, content_id: int) -> CallbackAnswer:
        seasons = self.store.list_seasons(content_id)
        if not seasons:
            return CallbackAnswer(texts.PART_NOT_FOUND)

        if len(seasons) > 1:
            await self.transport.send_text(
                call.chat_id, texts.PICK_SEASON, keyboards.seasons(content_id, seasons)
            )
            return CallbackAnswer()

        season = seasons[0]
        parts = self.store.get_parts(content_id, season)
        if not parts:
            return CallbackAnswer(texts.PART_NOT_FOUND)

        if len(parts) == 1:
            return await self._deliver_from_callback(call, parts[0])

        keyboard = keyboards.parts(content_id, parts, 1, season, self.settings.parts_page_size)
        await self.transport.send_text(call.chat_id, texts.PICK_PART, keyboard)
        return CallbackAnswer()

    async def parts_page(
        self, call: IncomingCallback, content_id: int, season: int, page: int
    ) -> CallbackAnswer:
        parts = self.store.get_parts(content_id, season)
        keyboard = keyboards.parts(
            content_id, parts, max(1, page), season, self.settings.parts_page_size
        )
        await self.transport.edit_keyboard(call.chat_id, call.message_id, keyboard)
        return CallbackAnswer()

    async def pick_season(self, call: IncomingCallback, content_id: int, season: int) -> CallbackAnswer:
        parts = self.store.get_parts(content_id, season)
        if not parts:
            return CallbackAnswer(texts.PART_NOT_FOUND)

        keyboard = keyboards.parts(content_id, parts, 1, season, self.settings.parts_page_size)
        if not await self.transport.edit_text(
            call.chat_id, call.message_id, texts.PICK_PART, keyboard
        ):
            await self.transport.send_text(call.chat_id, texts.PICK_PART, keyboard)
        return CallbackAnswer()

    async def send_part(
        self, call: IncomingCallback, content_id: int, season: int, part_number: int
    ) -> CallbackAnswer:
        part = self.store.get_part_by_number(content_id, part_number, season)
        if part is None:
            return CallbackAnswer(texts.PART_NOT_FOUND)
        return await self._deliver_from_callback(call, part)

    async def _deliver_from_callback(self, call: IncomingCallback, part: Part) -> CallbackAnswer:
        # Media goes to the user's private chat
        try:
            await self.deliver_part(call.user_id, part)
        except DeliveryError:
            return CallbackAnswer(texts.CONTENT_NOT_FOUND)
        return CallbackAnswer()
