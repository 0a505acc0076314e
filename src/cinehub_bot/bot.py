"""CineHub catalog bot.

Wires the components together and owns their lifecycle.
"""

from __future__ import annotations

import logging

from aiogram import Bot
from aiogram.client.default import DefaultBotProperties
from aiogram.enums import ParseMode

from cinehub_bot.config import Settings
from cinehub_bot.conversation import ConversationStateMachine
from cinehub_bot.exceptions import ConfigurationError
from cinehub_bot.metrics import Metrics, RateLimiter
from cinehub_bot.poller import UpdatePoller
from cinehub_bot.router import UpdateRouter
from cinehub_bot.store import SQLiteStore
from cinehub_bot.subscription import SubscriptionCache, SubscriptionGate
from cinehub_bot.transport import SafeTransport

logger = logging.getLogger(__name__)


class CatalogBot:
    """CineHub Telegram Bot.

    This class encapsulates the component graph, providing a clean interface
    for starting and stopping the bot.
    """

    def __init__(self, settings: Settings, bot: Bot | None = None) -> None:
        """Initialize the bot.

        Args:
            settings: Application settings.
            bot: Preconfigured aiogram Bot, built from the token if omitted.
        """
        self.settings = settings
        self.bot = bot or Bot(
            token=settings.bot_token.get_secret_value(),
            default=DefaultBotProperties(parse_mode=ParseMode.HTML),
        )
        self.metrics = Metrics()
        self.store = SQLiteStore(settings.database_path)
        self.transport = SafeTransport(
            self.bot,
            self.metrics,
            max_retries=settings.telegram_max_retries,
            base_delay=settings.telegram_retry_base_delay,
        )
        self.cache = SubscriptionCache(
            ok_ttl=settings.subscription_ok_ttl,
            fail_ttl=settings.subscription_fail_ttl,
            max_entries=settings.subscription_cache_max_entries,
        )
        self.gate = SubscriptionGate(
            self.transport, self.store, settings, self.cache, self.metrics
        )
        self.conversation = ConversationStateMachine(self.store)
        self.rate_limiter = RateLimiter(min_interval=settings.rate_limit_interval)
        self.router = UpdateRouter(
            settings,
            self.store,
            self.transport,
            self.gate,
            self.conversation,
            self.rate_limiter,
            self.metrics,
        )
        self.poller = UpdatePoller(self.transport, self.router, settings, self.metrics)

    async def start(self) -> None:
        """Run startup checks, then poll until stopped.

        Raises:
            ConfigurationError: If no content channel is configured.
        """
        if not self.settings.content_channel_ids:
            raise ConfigurationError(
                "content_channel_ids", "CONTENT_CHANNEL_IDS is empty, parts cannot be delivered"
            )

        logger.info(
            "Starting bot",
            extra={
                "app_name": self.settings.app_name,
                "app_version": self.settings.app_version,
            },
        )
        self.store.init()

        me = await self.bot.get_me()
        logger.info("Authorized", extra={"bot_id": me.id, "username": me.username})

        # getUpdates is refused while a webhook is set
        await self.bot.delete_webhook(drop_pending_updates=False)

        await self.poller.run()

    async def stop(self) -> None:
        """Stop the bot gracefully."""
        logger.info("Stopping bot")
        self.poller.stop()
        self.store.close()
        await self.bot.session.close()
