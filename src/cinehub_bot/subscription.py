"""Mandatory channel subscription gate.

Membership checks are a network round-trip per channel per user action and
users click through menus quickly, so verdicts are cached per
``(user, channel set)``. Positive verdicts live longer than negative ones: a
verified member is not re-checked on every click, while a user who just joined
is re-admitted within seconds.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

from cinehub_bot import keyboards, texts
from cinehub_bot.transport import MEMBER_STATUSES

if TYPE_CHECKING:
    from cinehub_bot.config import Settings
    from cinehub_bot.metrics import Metrics
    from cinehub_bot.store import SQLiteStore
    from cinehub_bot.transport import SafeTransport

logger = logging.getLogger(__name__)

CacheKey = tuple[int, tuple[int, ...]]


def make_cache_key(user_id: int, channels: Iterable[int]) -> CacheKey:
    """Cache key independent of the storage order of the channel set."""
    return user_id, tuple(sorted(channels))


@dataclass
class CacheEntry:
    verdict: bool
    expires_at: float


class SubscriptionCache:
    """TTL cache of gate verdicts with a bounded size.

    An expired entry is always treated as absent, never served. When an insert
    pushes the size past ``max_entries``, expired entries are purged; if the
    cache is still over the limit it is cleared entirely.
    """

    def __init__(
        self,
        ok_ttl: float = 20.0,
        fail_ttl: float = 2.0,
        max_entries: int = 10_000,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ok_ttl = ok_ttl
        self.fail_ttl = fail_ttl
        self.max_entries = max_entries
        self._clock = clock
        self._entries: dict[CacheKey, CacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def get(self, key: CacheKey) -> bool | None:
        """Return the cached verdict, or None if absent or expired."""
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.expires_at <= self._clock():
            del self._entries[key]
            return None
        return entry.verdict

    def set(self, key: CacheKey, verdict: bool) -> None:
        ttl = self.ok_ttl if verdict else self.fail_ttl
        self._entries[key] = CacheEntry(verdict=verdict, expires_at=self._clock() + ttl)
        if len(self._entries) > self.max_entries:
            self._shrink()

    def purge_expired(self) -> int:
        """Remove expired entries.

        Returns:
            Number of removed entries.
        """
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def clear(self) -> None:
        self._entries.clear()

    def _shrink(self) -> None:
        purged = self.purge_expired()
        if len(self._entries) > self.max_entries:
            # TODO: switch to LRU eviction; a full clear re-verifies every active user at once
            logger.warning(
                "Subscription cache still over capacity after purge, clearing",
                extra={"entries": len(self._entries), "max_entries": self.max_entries},
            )
            self._entries.clear()
        else:
            logger.debug("Purged expired subscription verdicts", extra={"purged": purged})


class SubscriptionGate:
    """Decides whether a user may access the catalog."""

    def __init__(
        self,
        transport: SafeTransport,
        store: SQLiteStore,
        settings: Settings,
        cache: SubscriptionCache,
        metrics: Metrics,
    ) -> None:
        self.transport = transport
        self.store = store
        self.settings = settings
        self.cache = cache
        self.metrics = metrics

    def forced_channels(self) -> list[int]:
        return self.store.get_forced_channels(self.settings.forced_channels)

    def forced_links(self) -> dict[int, str]:
        return self.store.get_forced_links(self.settings.forced_channel_urls)

    async def ensure_subscribed(
        self,
        user_id: int,
        chat_id: int,
        payload: str | None = None,
        show_prompt: bool = True,
        use_cache: bool = True,
    ) -> bool:
        """Check that the user has joined every forced channel.

        Args:
            user_id: Telegram user ID.
            chat_id: Chat to send the subscription prompt to.
            payload: Deep-link payload to resume after confirmation.
            show_prompt: Send the subscription prompt on denial.
            use_cache: Accept a cached verdict. The fresh verdict is cached
                either way.

        Returns:
            True if access is granted.
        """
        channels = sorted(self.forced_channels())
        if not channels:
            return True

        key = make_cache_key(user_id, channels)
        verdict: bool | None = None
        if use_cache:
            verdict = self.cache.get(key)
            if verdict is None:
                self.metrics.gate_cache_misses += 1
            else:
                self.metrics.gate_cache_hits += 1

        if verdict is None:
            verdict = await self._check_membership(user_id, channels)
            self.cache.set(key, verdict)

        if verdict:
            return True

        self.metrics.gate_denials += 1
        logger.info(
            "Subscription required",
            extra={"user_id": user_id, "channels": channels, "payload": payload},
        )
        if show_prompt:
            await self.transport.send_text(
                chat_id,
                texts.SUB_REQUIRED,
                keyboards.subscribe(channels, self.forced_links(), payload),
            )
        return False

    async def _check_membership(self, user_id: int, channels: list[int]) -> bool:
        for channel_id in channels:
            self.metrics.membership_checks += 1
            status = await self.transport.member_status(channel_id, user_id)
            if status not in MEMBER_STATUSES:
                return False
        return True
