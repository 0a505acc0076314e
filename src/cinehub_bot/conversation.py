"""Per-user conversation state machine.

A user is either idle (no stored state) or waiting for the input of one
multi-step flow. The state lives in the store so it survives restarts; this
module only adds the closed set of states, the corrupt-state fallback and the
validators for typed input.
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import TYPE_CHECKING

from cinehub_bot.exceptions import InvalidInputError

if TYPE_CHECKING:
    from cinehub_bot.store import SQLiteStore

logger = logging.getLogger(__name__)

NUMERIC_ID_PATTERN = re.compile(r"^[+-]?\d+$")


class ConversationState(str, Enum):
    """Flows waiting for the user's next text message."""

    SEARCH_WAITING_QUERY = "search_waiting_query"
    ADMIN_FORCED_ADD = "admin_forced_add"
    ADMIN_FORCED_REMOVE = "admin_forced_remove"
    ADMIN_ADMINS_ADD = "admin_admins_add"
    ADMIN_ADMINS_REMOVE = "admin_admins_remove"
    BROADCAST_WAITING_TEXT = "broadcast_waiting_text"


class ConversationStateMachine:
    """Reads and transitions per-user conversation state."""

    def __init__(self, store: SQLiteStore) -> None:
        self.store = store

    def current(self, user_id: int) -> ConversationState | None:
        """Return the user's state, or None when idle.

        An unrecognized stored value is treated as corrupt: it is cleared and
        the user is reset to idle.
        """
        raw = self.store.get_state(user_id)
        if raw is None:
            return None
        try:
            return ConversationState(raw)
        except ValueError:
            logger.warning(
                "Unknown conversation state, resetting to idle",
                extra={"user_id": user_id, "state": raw},
            )
            self.store.clear_state(user_id)
            return None

    def enter(self, user_id: int, state: ConversationState) -> None:
        self.store.set_state(user_id, state.value)
        logger.debug("Entered conversation state", extra={"user_id": user_id, "state": state.value})

    def reset(self, user_id: int) -> None:
        self.store.clear_state(user_id)


def parse_numeric_id(text: str) -> int:
    """Parse a Telegram user or chat id typed by an admin.

    Raises:
        InvalidInputError: If the text is not a signed integer.
    """
    raw = text.strip()
    if not NUMERIC_ID_PATTERN.match(raw):
        raise InvalidInputError(raw)
    return int(raw)


def parse_channel_input(text: str) -> tuple[int, str | None]:
    """Parse ``"<id>"`` or ``"<id>|<link>"`` for adding a forced channel.

    Returns:
        Channel id and the optional override link.

    Raises:
        InvalidInputError: If the id part is not a signed integer.
    """
    raw = text.strip()
    link: str | None = None
    if "|" in raw:
        raw, link_part = raw.split("|", 1)
        link = link_part.strip() or None
    return parse_numeric_id(raw), link
