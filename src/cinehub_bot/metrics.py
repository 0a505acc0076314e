"""Metrics and rate limiting for CineHub Bot.

This module provides in-memory runtime counters and the per-user debounce.
Follows KISS principle with simple in-memory structures suitable for a
single-instance deployment driven by one polling task, so no locking is done.
Instances are owned by the bot and passed to the components that update them.
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field


@dataclass
class Metrics:
    """Application metrics storage.

    Tracks update flow through the engine, subscription gate efficiency and
    failures of individual outbound side effects.
    """

    # Update flow
    updates_received: int = 0
    updates_dispatched: int = 0
    updates_discarded: int = 0
    rate_limited: int = 0
    handler_errors: int = 0
    fetch_errors: int = 0

    # Subscription gate
    gate_cache_hits: int = 0
    gate_cache_misses: int = 0
    membership_checks: int = 0
    gate_denials: int = 0

    # Side-effect failures, keyed by action name (send_text, copy_message, ...)
    side_effect_failures: dict[str, int] = field(default_factory=dict)

    # Timestamps
    start_time: float = field(default_factory=time.time)
    last_update_time: float | None = None

    def record_update(self) -> None:
        """Record an update pulled from the transport."""
        self.updates_received += 1
        self.last_update_time = time.time()

    def record_side_effect_failure(self, action: str) -> None:
        """Record a failed outbound call.

        Args:
            action: Name of the transport action that failed.
        """
        self.side_effect_failures[action] = self.side_effect_failures.get(action, 0) + 1

    def total_side_effect_failures(self) -> int:
        """Get the number of failed outbound calls across all actions."""
        return sum(self.side_effect_failures.values())

    def get_cache_hit_rate(self) -> float:
        """Get subscription cache hit rate as percentage.

        Returns:
            Hit rate percentage (0-100).
        """
        lookups = self.gate_cache_hits + self.gate_cache_misses
        if lookups == 0:
            return 0.0
        return (self.gate_cache_hits / lookups) * 100

    def get_uptime(self) -> float:
        """Get application uptime in seconds."""
        return time.time() - self.start_time

    def format_uptime(self) -> str:
        """Format uptime as human-readable string.

        Returns:
            Formatted uptime string (e.g., "1d 2h 30m 15s").
        """
        uptime = int(self.get_uptime())
        days = uptime // 86400
        hours = (uptime % 86400) // 3600
        minutes = (uptime % 3600) // 60
        seconds = uptime % 60

        parts = []
        if days > 0:
            parts.append(f"{days}d")
        if hours > 0:
            parts.append(f"{hours}h")
        if minutes > 0:
            parts.append(f"{minutes}m")
        parts.append(f"{seconds}s")

        return " ".join(parts)


@dataclass
class RateLimiter:
    """Per-user minimum-interval debounce.

    Not a token bucket: an event is rejected when it arrives less than
    ``min_interval`` seconds after the last accepted event of the same user.
    Rejected events do not move the window.
    """

    min_interval: float = 0.5

    # user_id -> monotonic time of the last accepted event
    last_accepted: dict[int, float] = field(default_factory=dict)

    clock: Callable[[], float] = time.monotonic

    def is_rate_limited(self, user_id: int) -> bool:
        """Check the debounce and record the event if accepted.

        Args:
            user_id: Telegram user ID.

        Returns:
            True if the event must be dropped, False if accepted.
        """
        now = self.clock()
        last = self.last_accepted.get(user_id)
        if last is not None and now - last < self.min_interval:
            return True

        self.last_accepted[user_id] = now
        return False


def format_metrics_message(metrics: Metrics) -> str:
    """Format runtime metrics for the admin statistics screen.

    Args:
        metrics: The metrics instance to render.

    Returns:
        Plain text block.
    """
    lines = [
        "⚙️ Runtime",
        f"Uptime: {metrics.format_uptime()}",
        f"Updates: {metrics.updates_received}",
        f"Rate-limited: {metrics.rate_limited}",
        f"Handler errors: {metrics.handler_errors}",
        f"Fetch errors: {metrics.fetch_errors}",
        f"Gate cache hit rate: {metrics.get_cache_hit_rate():.1f}%",
        f"Membership checks: {metrics.membership_checks}",
        f"Failed calls: {metrics.total_side_effect_failures()}",
    ]
    for action, count in sorted(metrics.side_effect_failures.items()):
        lines.append(f"- {action}: {count}")
    return "\n".join(lines)
