"""Inline keyboard builders.

Pure functions mapping catalog values to aiogram inline keyboards. Callback
data produced here is what ``callbacks.parse_callback_data`` understands.
"""

from __future__ import annotations

import math
from collections.abc import Sequence

from aiogram.types import InlineKeyboardButton, InlineKeyboardMarkup

from cinehub_bot.store import Content, Part
from cinehub_bot.texts import forced_channel_url

# Telegram rejects callback data longer than 64 bytes
MAX_CALLBACK_DATA_BYTES = 64

BACK_TEXT = "⬅️ Orqaga"
PREV_TEXT = "⬅️ Oldingi"
NEXT_TEXT = "Keyingi ➡️"
LIST_TEXT = "📄 Ro'yxat"


def _button(text: str, callback_data: str) -> InlineKeyboardButton:
    return InlineKeyboardButton(text=text, callback_data=callback_data)


def _fits(callback_data: str) -> bool:
    return len(callback_data.encode("utf-8")) <= MAX_CALLBACK_DATA_BYTES


def _rows(buttons: Sequence[InlineKeyboardButton], width: int) -> list[list[InlineKeyboardButton]]:
    return [list(buttons[i : i + width]) for i in range(0, len(buttons), width)]


def main_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [_button("🔎 Qidiruv", "menu:search"), _button("🆕 Yangi", "menu:latest")],
            [_button("🔥 Top", "menu:top"), _button("⭐ Saqlangan", "menu:favs")],
            [_button("👤 Profil", "menu:account"), _button("ℹ️ Yordam", "menu:help")],
        ]
    )


def subscribe(
    channels: Sequence[int],
    links: dict[int, str],
    payload: str | None = None,
) -> InlineKeyboardMarkup:
    """One URL button per forced channel plus the confirmation button.

    The confirmation carries the deep-link payload so the pending request can
    be resumed once the user has joined.
    """
    rows: list[list[InlineKeyboardButton]] = []
    for index, channel_id in enumerate(channels, start=1):
        text = "🔗 Kanalga obuna" if len(channels) == 1 else f"🔗 {index}-kanalga obuna"
        rows.append(
            [InlineKeyboardButton(text=text, url=forced_channel_url(channel_id, links))]
        )

    callback = "sub:check" if payload is None else f"sub:check:{payload}"
    if not _fits(callback):
        callback = "sub:check"
    rows.append([_button("✅ Tekshirdim", callback)])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def content_list(
    items: Sequence[Content],
    page: int,
    total: int,
    prefix: str,
    page_size: int = 10,
) -> InlineKeyboardMarkup:
    """Paginated list of content titles.

    Args:
        items: Contents of the current page.
        page: 1-based page number.
        total: Total number of items across all pages.
        prefix: List kind used in navigation data (``latest``, ``top``,
            ``favs`` or ``search:<urlencoded query>``).
        page_size: Items per page.
    """
    rows = [[_button(item.title or "-", f"content:{item.id}")] for item in items]

    if total > page_size:
        nav: list[InlineKeyboardButton] = []
        prev_data = f"page:{prefix}:{page - 1}"
        next_data = f"page:{prefix}:{page + 1}"
        if page > 1 and _fits(prev_data):
            nav.append(_button(PREV_TEXT, prev_data))
        if page * page_size < total and _fits(next_data):
            nav.append(_button(NEXT_TEXT, next_data))
        if nav:
            rows.append(nav)

    rows.append([_button(BACK_TEXT, "back:menu")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def content_card(content_id: int, is_favorite: bool) -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [_button("▶️ Tomosha qilish", f"watch:{content_id}:1")],
            [_button("✅ Saqlangan" if is_favorite else "⭐ Saqlash", f"fav:{content_id}")],
            [_button(BACK_TEXT, "back:menu")],
        ]
    )


def parts(
    content_id: int,
    items: Sequence[Part],
    page: int,
    season: int,
    per_page: int = 24,
) -> InlineKeyboardMarkup:
    """Grid of part numbers, four per row, with page navigation."""
    start = (page - 1) * per_page
    page_items = items[start : start + per_page]
    buttons = [
        _button(str(part.part_number), f"part:{content_id}:{season}:{part.part_number}")
        for part in page_items
    ]
    rows = _rows(buttons, 4)

    total_pages = math.ceil(max(1, len(items)) / max(1, per_page))
    nav: list[InlineKeyboardButton] = []
    if page > 1:
        nav.append(_button(PREV_TEXT, f"parts:{content_id}:{season}:{page - 1}"))
    if page < total_pages:
        nav.append(_button(NEXT_TEXT, f"parts:{content_id}:{season}:{page + 1}"))
    if nav:
        rows.append(nav)

    rows.append([_button(LIST_TEXT, f"content:{content_id}"), _button(BACK_TEXT, "back:menu")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def seasons(content_id: int, season_numbers: Sequence[int]) -> InlineKeyboardMarkup:
    buttons = [
        _button(f"{season}-fasl", f"season:{content_id}:{season}") for season in season_numbers
    ]
    rows = _rows(buttons, 2)
    rows.append([_button(LIST_TEXT, f"content:{content_id}"), _button(BACK_TEXT, "back:menu")])
    return InlineKeyboardMarkup(inline_keyboard=rows)


def admin_menu() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                _button("➕ Kontent qo'shish", "admin:add_content"),
                _button("➕ Qism qo'shish", "admin:add_part"),
            ],
            [
                _button("🧑‍💻 Kontent (ID)", "admin:edit"),
                _button("🔒 Majburiy obuna", "admin:forced"),
            ],
            [
                _button("👥 Adminlar", "admin:admins"),
                _button("📊 Statistika", "admin:stats"),
            ],
            [
                _button("📢 Reklama yuborish", "admin:broadcast"),
                _button("⚙️ Sozlamalar", "admin:settings"),
            ],
        ]
    )


def admin_forced() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                _button("➕ Kanal qo'shish", "admin:forced:add"),
                _button("➖ Kanal o'chirish", "admin:forced:remove"),
            ],
            [_button(LIST_TEXT, "admin:forced:list"), _button(BACK_TEXT, "back:admin")],
        ]
    )


def admin_admins() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [
                _button("➕ Admin qo'shish", "admin:admins:add"),
                _button("➖ Admin o'chirish", "admin:admins:remove"),
            ],
            [_button(LIST_TEXT, "admin:admins:list"), _button(BACK_TEXT, "back:admin")],
        ]
    )


def admin_settings() -> InlineKeyboardMarkup:
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [_button("Anime", "admin:settings:anime"), _button("Kino", "admin:settings:movie")],
            [_button("Drama", "admin:settings:drama"), _button(BACK_TEXT, "back:admin")],
        ]
    )
