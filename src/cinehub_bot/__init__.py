"""CineHub Bot - Telegram catalog of movies, dramas and anime."""

__version__ = "1.0.0"
__author__ = "CineHub Team"

from cinehub_bot.bot import CatalogBot
from cinehub_bot.config import Settings
from cinehub_bot.metrics import Metrics, RateLimiter
from cinehub_bot.poller import UpdatePoller
from cinehub_bot.router import UpdateRouter
from cinehub_bot.store import SQLiteStore
from cinehub_bot.subscription import SubscriptionCache, SubscriptionGate

__all__ = [
    "CatalogBot",
    "Metrics",
    "RateLimiter",
    "SQLiteStore",
    "Settings",
    "SubscriptionCache",
    "SubscriptionGate",
    "UpdatePoller",
    "UpdateRouter",
    "__version__",
]
