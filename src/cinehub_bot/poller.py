"""Long-poll ingestion loop.

Delivery is at-most-once: the cursor moves past an update before its handler
runs, so an update whose handler fails is never fetched again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from cinehub_bot.config import Settings
    from cinehub_bot.metrics import Metrics
    from cinehub_bot.router import UpdateRouter
    from cinehub_bot.transport import SafeTransport

logger = logging.getLogger(__name__)


class UpdatePoller:
    """Pulls update batches and feeds them to the router in arrival order."""

    def __init__(
        self,
        transport: SafeTransport,
        router: UpdateRouter,
        settings: Settings,
        metrics: Metrics,
        cursor: int = 0,
    ) -> None:
        self.transport = transport
        self.router = router
        self.settings = settings
        self.metrics = metrics
        self.cursor = cursor
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def poll_once(self) -> int:
        """Fetch one batch and dispatch it.

        Returns:
            Number of updates in the batch.

        Raises:
            Exception: Whatever the fetch raised. Handler errors never escape.
        """
        updates = await self.transport.fetch_updates(
            offset=self.cursor,
            timeout=self.settings.poll_timeout,
            limit=self.settings.poll_limit,
        )

        for update in updates:
            self.metrics.record_update()
            self.cursor = max(self.cursor, update.update_id + 1)
            try:
                await self.router.handle_update(update)
            except Exception:
                self.metrics.handler_errors += 1
                logger.exception(
                    "Update handler failed, dropping update",
                    extra={"update_id": update.update_id},
                )

        return len(updates)

    async def run(self) -> None:
        """Poll until ``stop()`` is called or the task is cancelled."""
        self._running = True
        logger.info("Polling started", extra={"cursor": self.cursor})
        try:
            while self._running:
                try:
                    await self.poll_once()
                except asyncio.CancelledError:
                    raise
                except Exception as e:
                    self.metrics.fetch_errors += 1
                    logger.warning(
                        "Fetching updates failed, retrying",
                        extra={"error": str(e), "delay": self.settings.poll_retry_delay},
                    )
                    await asyncio.sleep(self.settings.poll_retry_delay)
        finally:
            self._running = False
            logger.info("Polling stopped", extra={"cursor": self.cursor})

    def stop(self) -> None:
        """Ask the loop to exit after the current round."""
        self._running = False
