"""
Batch runner: one complete check cycle against the database.

Loads the feed list and the persisted state, runs the checker, then saves
the new state and queues the produced mails in the outbox, all in one
transaction.
"""

import asyncio
import time
from dataclasses import dataclass, field
from typing import Optional

from rss_mailer.core.checker import check_all
from rss_mailer.core.fetcher import Fetch
from rss_mailer.feeds_config import load_feeds
from rss_mailer.logger import get_logger
from rss_mailer.models.feed import FeedSpec
from rss_mailer.models.log import UpdateLog, UpdateStatus
from rss_mailer.models.mail import Mail
from rss_mailer.storage.database import DatabaseManager
from rss_mailer.storage.repositories import OutboxRepository, StateRepository
from rss_mailer.storage.state import StateStore

logger = get_logger(__name__)


@dataclass
class CycleResult:
    """Outcome of a check cycle run by ``run_cycle``."""

    now: int
    state: StateStore
    mails: list[Mail] = field(default_factory=list)
    logs: list[UpdateLog] = field(default_factory=list)
    mail_ids: list[int] = field(default_factory=list)

    @property
    def errors(self) -> list[UpdateLog]:
        return [log for log in self.logs if log.is_error]

    @property
    def updated(self) -> int:
        return sum(1 for log in self.logs if log.status is UpdateStatus.UPDATED)


def log_update(spec: FeedSpec, log: UpdateLog) -> None:
    """Log the outcome of one feed."""
    message = f"{spec.url}: {log.describe()}"
    if log.is_error:
        logger.warning(message)
    elif log.status is UpdateStatus.UPDATED:
        logger.info(message)
    else:
        logger.debug(message)


def run_cycle(
    now: Optional[int] = None,
    feeds: Optional[list[FeedSpec]] = None,
    db_manager: Optional[DatabaseManager] = None,
    fetch: Optional[Fetch] = None,
) -> CycleResult:
    """Run one check cycle and persist its outcome.

    Args:
        now: Current time in epoch seconds (default: the clock)
        feeds: Feeds to check (default: loaded from the feed list file)
        db_manager: Database to use (default: from config)
        fetch: Fetch coroutine function (default: an HttpFetcher)

    Returns:
        CycleResult with the new state, mails, logs and outbox ids
    """
    now = int(time.time()) if now is None else now
    feeds = load_feeds() if feeds is None else feeds
    own_db = db_manager is None
    db_manager = db_manager or DatabaseManager()

    try:
        db_manager.init_db()

        with db_manager.session() as session:
            state = StateRepository(session).load()

        checked = asyncio.run(check_all(now, state, feeds, fetch=fetch))

        for spec, log in zip(feeds, checked.logs):
            log_update(spec, log)

        with db_manager.session() as session:
            StateRepository(session).save(checked.state)
            queued = OutboxRepository(session).add_all(checked.mails)
            mail_ids = [mail.id for mail in queued]
    finally:
        if own_db:
            db_manager.close()

    logger.info(f"Cycle at {now}: {checked.summary()}")

    return CycleResult(
        now=now,
        state=checked.state,
        mails=checked.mails,
        logs=checked.logs,
        mail_ids=mail_ids,
    )
