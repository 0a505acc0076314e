"""Typed callback commands.

Raw ``callback_data`` strings use a colon-delimited prefix scheme
(``menu:search``, ``content:<id>``, ``page:<kind>:<n>`` ...). They are parsed
once, at the router boundary, into a closed set of frozen dataclasses so the
handlers never match string prefixes themselves.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from urllib.parse import quote, unquote

from cinehub_bot.exceptions import InvalidCallbackDataError


class MenuItem(str, Enum):
    """Main menu entries."""

    SEARCH = "search"
    LATEST = "latest"
    TOP = "top"
    FAVORITES = "favs"
    ACCOUNT = "account"
    HELP = "help"


class ListKind(str, Enum):
    """Paginated content lists."""

    LATEST = "latest"
    TOP = "top"
    FAVORITES = "favs"
    SEARCH = "search"


class AdminAction(str, Enum):
    """Admin panel actions, by their callback subpath."""

    STATS = "stats"
    FORCED = "forced"
    FORCED_LIST = "forced:list"
    FORCED_ADD = "forced:add"
    FORCED_REMOVE = "forced:remove"
    ADMINS = "admins"
    ADMINS_LIST = "admins:list"
    ADMINS_ADD = "admins:add"
    ADMINS_REMOVE = "admins:remove"
    BROADCAST = "broadcast"
    SETTINGS = "settings"
    ADD_CONTENT = "add_content"
    ADD_PART = "add_part"
    EDIT = "edit"


@dataclass(frozen=True)
class SubscriptionCheck:
    payload: str | None = None


@dataclass(frozen=True)
class MenuCommand:
    item: MenuItem


@dataclass(frozen=True)
class ShowContent:
    content_id: int


@dataclass(frozen=True)
class ToggleFavorite:
    content_id: int


@dataclass(frozen=True)
class WatchContent:
    content_id: int
    season: int = 1


@dataclass(frozen=True)
class PartsPage:
    content_id: int
    season: int
    page: int


@dataclass(frozen=True)
class PickSeason:
    content_id: int
    season: int


@dataclass(frozen=True)
class SendPart:
    content_id: int
    season: int
    part_number: int


@dataclass(frozen=True)
class ListPage:
    kind: ListKind
    page: int
    query: str | None = None


@dataclass(frozen=True)
class BackToMenu:
    pass


@dataclass(frozen=True)
class BackToAdmin:
    pass


@dataclass(frozen=True)
class AdminCommand:
    action: AdminAction


@dataclass(frozen=True)
class AdminCategory:
    category: str


@dataclass(frozen=True)
class UnknownCommand:
    data: str


CallbackCommand = (
    SubscriptionCheck
    | MenuCommand
    | ShowContent
    | ToggleFavorite
    | WatchContent
    | PartsPage
    | PickSeason
    | SendPart
    | ListPage
    | BackToMenu
    | BackToAdmin
    | AdminCommand
    | AdminCategory
    | UnknownCommand
)


def _to_int(value: str, data: str) -> int:
    try:
        return int(value.strip())
    except ValueError:
        raise InvalidCallbackDataError(data) from None


def _season_and_last(fields: list[str], data: str) -> tuple[int, int]:
    """Parse ``<season>:<n>`` or ``<n>`` (season defaults to 1)."""
    if len(fields) == 1:
        return 1, _to_int(fields[0], data)
    if len(fields) == 2:
        return _to_int(fields[0], data), _to_int(fields[1], data)
    raise InvalidCallbackDataError(data)


def search_prefix(query: str) -> str:
    """List prefix used by search result navigation."""
    return f"{ListKind.SEARCH.value}:{quote(query, safe='')}"


def parse_callback_data(data: str) -> CallbackCommand:
    """Parse raw callback data into a typed command.

    Args:
        data: The ``callback_data`` string of the pressed button.

    Returns:
        The command; ``UnknownCommand`` for an unrecognized prefix.

    Raises:
        InvalidCallbackDataError: A known prefix with malformed arguments.
    """
    head, _, rest = data.partition(":")

    if head == "sub":
        action, _, payload = rest.partition(":")
        if action != "check":
            return UnknownCommand(data)
        return SubscriptionCheck(payload=payload or None)

    if head == "menu":
        try:
            return MenuCommand(MenuItem(rest))
        except ValueError:
            return UnknownCommand(data)

    if head == "content":
        return ShowContent(_to_int(rest, data))

    if head == "fav":
        return ToggleFavorite(_to_int(rest, data))

    if head == "watch":
        fields = rest.split(":")
        content_id = _to_int(fields[0], data)
        season = _to_int(fields[1], data) if len(fields) > 1 and fields[1] else 1
        return WatchContent(content_id, season)

    if head == "parts":
        fields = rest.split(":")
        if len(fields) not in (2, 3):
            raise InvalidCallbackDataError(data)
        season, page = _season_and_last(fields[1:], data)
        return PartsPage(_to_int(fields[0], data), season, page)

    if head == "season":
        fields = rest.split(":")
        if len(fields) != 2:
            raise InvalidCallbackDataError(data)
        return PickSeason(_to_int(fields[0], data), _to_int(fields[1], data))

    if head == "part":
        fields = rest.split(":")
        if len(fields) not in (2, 3):
            raise InvalidCallbackDataError(data)
        season, part_number = _season_and_last(fields[1:], data)
        return SendPart(_to_int(fields[0], data), season, part_number)

    if head == "page":
        kind_raw, _, tail = rest.partition(":")
        try:
            kind = ListKind(kind_raw)
        except ValueError:
            return UnknownCommand(data)
        if kind is ListKind.SEARCH:
            encoded, sep, page_raw = tail.rpartition(":")
            if not sep:
                raise InvalidCallbackDataError(data)
            return ListPage(kind, _to_int(page_raw, data), unquote(encoded))
        return ListPage(kind, _to_int(tail, data))

    if head == "back":
        if rest == "menu":
            return BackToMenu()
        if rest == "admin":
            return BackToAdmin()
        return UnknownCommand(data)

    if head == "admin":
        if rest.startswith("settings:"):
            return AdminCategory(rest[len("settings:") :])
        try:
            return AdminCommand(AdminAction(rest))
        except ValueError:
            return UnknownCommand(data)

    return UnknownCommand(data)
