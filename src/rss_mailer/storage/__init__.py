"""Storage layer modules for RSS Mailer."""

from rss_mailer.storage.database import DatabaseManager, create_sqlite_engine
from rss_mailer.storage.state import FeedState, StateKey, StateStore

__all__ = [
    "DatabaseManager",
    "create_sqlite_engine",
    "FeedState",
    "StateKey",
    "StateStore",
]
