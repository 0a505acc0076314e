"""User-facing texts and formatting helpers.

Messages are sent with HTML parse mode, so values coming from the catalog are
escaped before they are placed into templates.
"""

from __future__ import annotations

import html

from cinehub_bot.store import Content

WELCOME = (
    "Assalomu alaykum! 👋\n\n"
    "Bu bot orqali o'zbekcha kino, Drama va animelarni topishingiz mumkin.\n"
    "Quyidagi menyudan tanlang."
)

SUB_REQUIRED = (
    "📌 Davom etish uchun quyidagi kanallarga obuna bo'ling.\n"
    "So'ng <b>✅ Tekshirdim</b> tugmasini bosing."
)
SUB_NOT_JOINED = "❗️ Avval obuna bo'ling"
SUB_CHECKED = "✅ Obuna tekshirildi"

SEARCH_PROMPT = "Qidirish uchun nom yoki kod yuboring:"
SEARCH_RESULTS = "Natijalar:"
NO_RESULTS = "Hech narsa topilmadi."

LATEST_TITLE = "So'nggi yuklanganlar:"
TOP_TITLE = "Eng ko'p ko'rilganlar:"
FAVORITES_TITLE = "Saqlanganlar:"
FAVORITES_EMPTY = "Saqlanganlar bo'sh."
FAVORITE_ADDED = "Saqlangan"
FAVORITE_REMOVED = "O'chirildi"

PICK_PART = "Qismni tanlang:"
PICK_SEASON = "Faslni tanlang:"
NOT_FOUND = "Topilmadi"
PART_NOT_FOUND = "Qism topilmadi"
CONTENT_NOT_FOUND = "Kontent topilmadi."

CARD_TEMPLATE = (
    "🎬 Nomi: {title}\n\n"
    "📺 Turi: {type}\n"
    "📆 Yili: {year}\n"
    "🌍 Davlati: {country}\n"
    "🇺🇿 Tili: {language}\n"
    "🎞 Janr: {genres}\n"
    "{parts_line}"
)

ACCOUNT_TEMPLATE = "👤 Hisobim\nID: {user_id}\nUsername: @{username}\n"

HELP_TEXT = (
    "📖 Qo'llanma\n"
    "- Qidiruv: nom yoki kod bilan toping\n"
    "- Saqlangan: yoqqanlarni tez toping\n"
    "- Kontent sahifasida qismni tanlang"
)

ADMIN_MENU = "Admin panel"
ADMIN_ONLY = "Bu bo'lim faqat adminlar uchun."
ADMIN_NOT_AVAILABLE = "Bu bo'lim hali qo'shilmoqda."
ADMIN_SETTINGS_MENU = "Kategoriya tanlang:"
ADMIN_SETTINGS_EMPTY = "Hech narsa topilmadi."
ADMIN_FORCED_MENU = "Majburiy obuna sozlamalari:"
ADMIN_FORCED_ADD = "Kanal ID yuboring. Ixtiyoriy link: <code>-100123|https://t.me/+abcd</code>"
ADMIN_FORCED_REMOVE = "O'chirish uchun kanal ID yuboring:"
ADMIN_FORCED_LIST_TITLE = "Majburiy obuna kanallari:"
ADMIN_FORCED_LIST_EMPTY = "Majburiy obuna kanallari yo'q."
ADMIN_ADMINS_MENU = "Adminlar sozlamalari:"
ADMIN_ADMINS_ADD = "Admin ID yuboring:"
ADMIN_ADMINS_REMOVE = "O'chirish uchun admin ID yuboring:"
ADMIN_ADMINS_LIST_TITLE = "Adminlar:"
ADMIN_ADMINS_LIST_EMPTY = "Adminlar ro'yxati bo'sh."
ADMIN_CANNOT_REMOVE_SELF = "O'zingizni o'chira olmaysiz."
ID_MUST_BE_NUMERIC = "ID raqam bo'lishi kerak."
SAVED = "✅ Saqlandi."

STATS_TEMPLATE = (
    "📊 Statistika\n"
    "Kontent: {content}\n"
    "Qismlar: {parts}\n"
    "Foydalanuvchilar: {users}\n"
    "Ko'rishlar: {views}"
)

BROADCAST_PROMPT = "Reklama matnini yuboring:"
BROADCAST_DONE = "Yuborildi: {sent} ta."

TYPE_LABELS = {
    "movie": "Kino",
    "series": "Serial",
    "anime": "Anime",
}

# admin:settings:<key> -> (content type, heading)
CATEGORY_TYPES = {
    "anime": ("anime", "Anime"),
    "movie": ("movie", "Kino"),
    "drama": ("series", "Drama"),
}


def format_value(value: object) -> str:
    """Render an optional field, using a dash for empty values."""
    if value is None or str(value).strip() == "":
        return "—"
    return html.escape(str(value))


def format_card(content: Content) -> str:
    """Render the content card shown above the watch/save buttons."""
    parts_line = ""
    if content.type != "movie":
        parts = content.parts_total if content.parts_total is not None else content.parts_count
        parts_line = f"🎥 Qismi: {format_value(parts)}\n"

    return CARD_TEMPLATE.format(
        title=format_value(content.title),
        type=TYPE_LABELS.get(content.type, format_value(content.type)),
        year=format_value(content.year),
        country=format_value(content.country),
        language=format_value(content.language),
        genres=format_value(content.genres),
        parts_line=parts_line,
    )


def format_part_caption(content: Content, part_number: int, season: int) -> str | None:
    """Caption of a delivered part.

    Movies show ``"<title> [N-qism]"``, series and anime show
    ``"<title> [S-fasl N-qism]"``. Returns None when the title is empty.
    """
    title = content.title.strip()
    if not title:
        return None
    if content.type in ("series", "anime"):
        return f"{html.escape(title)} [{season}-fasl {part_number}-qism]"
    return f"{html.escape(title)} [{part_number}-qism]"


def format_account(user_id: int, username: str | None) -> str:
    return ACCOUNT_TEMPLATE.format(
        user_id=user_id,
        username=html.escape(username) if username else "-",
    )


def forced_channel_url(channel_id: int, links: dict[int, str]) -> str:
    """Invite link for a forced channel.

    A configured override wins; otherwise the public link is derived from the
    channel id by dropping the ``-100`` prefix.
    """
    if channel_id in links:
        return links[channel_id]
    return "https://t.me/" + str(channel_id).replace("-100", "", 1)


def format_forced_list(channels: list[int], links: dict[int, str]) -> str:
    lines = [ADMIN_FORCED_LIST_TITLE]
    for channel_id in channels:
        if channel_id in links:
            lines.append(f"- {channel_id} | {html.escape(links[channel_id])}")
        else:
            lines.append(f"- {channel_id}")
    return "\n".join(lines)


def format_admin_list(admin_ids: list[int]) -> str:
    return "\n".join([ADMIN_ADMINS_LIST_TITLE, *(f"- {admin_id}" for admin_id in admin_ids)])


def format_category(heading: str, total: int, items: list[Content]) -> str:
    lines = [f"{heading} ({total} ta):"]
    for item in items:
        parts = item.parts_total if item.parts_total is not None else item.parts_count
        lines.append(
            f"- {html.escape(item.title)} - qismi {parts} (content raqami {item.id})"
        )
    return "\n".join(lines)
