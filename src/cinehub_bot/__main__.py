"""Entry point for CineHub Bot.

This module provides the main entry point for the catalog bot, including
structured logging configuration and graceful shutdown handling.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Callable
from typing import TYPE_CHECKING

import structlog

from cinehub_bot.bot import CatalogBot
from cinehub_bot.config import get_settings
from cinehub_bot.exceptions import ConfigurationError

if TYPE_CHECKING:
    from cinehub_bot.config import Settings


def configure_structlog(log_level: str) -> None:
    """Configure structlog for structured logging.

    Args:
        log_level: Logging level string (DEBUG, INFO, WARNING, ERROR).
    """
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
            structlog.dev.ConsoleRenderer(),
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    # aiogram logs every long-poll round at INFO
    logging.getLogger("aiogram.event").setLevel(logging.WARNING)


async def shutdown(bot: CatalogBot, timeout: int = 30) -> None:
    """Gracefully shutdown the bot with timeout, then log the final runtime counters.

    Args:
        bot: The CatalogBot instance to shut down.
        timeout: Maximum time to wait for shutdown in seconds (default: 30).
    """
    logger = structlog.get_logger(__name__)
    logger.info("Initiating graceful shutdown...", timeout=timeout)

    try:
        await asyncio.wait_for(bot.stop(), timeout=timeout)
        logger.info("Bot stopped successfully")
    except TimeoutError:
        logger.warning("Shutdown timed out", seconds=timeout)
    except Exception as e:
        logger.error("Error during shutdown", error=str(e))

    metrics = bot.metrics
    logger.info(
        "Final counters",
        updates=metrics.updates_received,
        dispatched=metrics.updates_dispatched,
        rate_limited=metrics.rate_limited,
        handler_errors=metrics.handler_errors,
        failed_calls=metrics.total_side_effect_failures(),
    )


def install_signal_handlers(shutdown_event: asyncio.Event) -> None:
    """Set ``shutdown_event`` on SIGINT/SIGTERM."""
    logger = structlog.get_logger(__name__)
    loop = asyncio.get_running_loop()

    def make_handler(sig: signal.Signals) -> Callable[[], None]:
        def handler() -> None:
            logger.info("Received signal", signal=sig.name)
            shutdown_event.set()

        return handler

    for sig in (signal.SIGINT, signal.SIGTERM):
        with contextlib.suppress(NotImplementedError):
            # Windows doesn't support add_signal_handler
            loop.add_signal_handler(sig, make_handler(sig))


def report_startup_failure(error: BaseException) -> None:
    """Log why the bot task ended on its own."""
    logger = structlog.get_logger(__name__)
    if isinstance(error, ConfigurationError):
        logger.error("Invalid configuration", key=error.config_key, error=error.message)
    else:
        # Bad token, unreachable API, unreadable database
        logger.error("Bot stopped with an error", error=str(error))


async def main() -> None:
    """Main entry point for CineHub Bot.

    Loads settings, runs the polling loop until a signal arrives and shuts
    down gracefully. Exits with status 1 when the bot cannot start.
    """
    try:
        settings: Settings = get_settings()
    except Exception as e:
        print(f"Failed to load settings: {e}")
        print("Make sure .env file exists with BOT_TOKEN and CONTENT_CHANNEL_IDS set.")
        sys.exit(1)

    configure_structlog(settings.log_level)
    logger = structlog.get_logger(__name__)

    logger.info(
        "Starting CineHub Bot",
        app_name=settings.app_name,
        version=settings.app_version,
        database=settings.database_path,
        forced_channels=len(settings.forced_channels),
        content_channels=len(settings.content_channel_ids),
    )

    bot = CatalogBot(settings)
    shutdown_event = asyncio.Event()
    install_signal_handlers(shutdown_event)

    failed = False
    try:
        bot_task = asyncio.create_task(bot.start())

        done, pending = await asyncio.wait(
            [bot_task, asyncio.create_task(shutdown_event.wait())],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in pending:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if bot_task in done and bot_task.exception() is not None:
            failed = True
            report_startup_failure(bot_task.exception())

    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")
    except Exception as e:
        logger.exception("Unexpected error", error=str(e))
        raise
    finally:
        await shutdown(bot, timeout=settings.shutdown_timeout)
        logger.info("Shutdown complete")

    if failed:
        sys.exit(1)


def run() -> None:
    """Console script entry point."""
    with contextlib.suppress(KeyboardInterrupt):
        asyncio.run(main())


if __name__ == "__main__":
    run()
