"""
Concurrent checker.

Checks every configured feed concurrently against one state snapshot,
then applies the resulting state transforms one after the other in feed
order. Feeds never observe each other's updates, so the outcome does not
depend on which fetch finishes first.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Optional

from rss_mailer.core.fetcher import Fetch, create_fetcher
from rss_mailer.core.orchestrator import FeedUpdate, FeedUpdater
from rss_mailer.logger import get_logger
from rss_mailer.models.feed import FeedSpec
from rss_mailer.models.log import UpdateLog, UpdateStatus
from rss_mailer.models.mail import Mail
from rss_mailer.storage.state import StateStore

logger = get_logger(__name__)


@dataclass
class CheckResult:
    """Outcome of a check cycle."""

    state: StateStore
    mails: list[Mail] = field(default_factory=list)
    logs: list[UpdateLog] = field(default_factory=list)

    def count(self, status: UpdateStatus) -> int:
        return sum(1 for log in self.logs if log.status is status)

    def summary(self) -> str:
        return (
            f"{len(self.logs)} feeds: {self.count(UpdateStatus.UPDATED)} updated, "
            f"{self.count(UpdateStatus.UPTODATE)} up to date, "
            f"{self.count(UpdateStatus.FETCH_ERROR) + self.count(UpdateStatus.PARSING_ERROR)} failed, "
            f"{len(self.mails)} mails"
        )


def merge_updates(state: StateStore, updates: list[FeedUpdate]) -> CheckResult:
    """Fold feed updates over a state, in order."""
    result = CheckResult(state=state)
    for update in updates:
        result.state = update.transform(result.state)
        result.mails.extend(update.mails)
        result.logs.append(update.log)
    return result


class FeedChecker:
    """Runs check cycles over a list of feeds."""

    def __init__(self, updater: FeedUpdater):
        self.updater = updater

    async def check_all(self, now: int, state: StateStore, feeds: list[FeedSpec]) -> CheckResult:
        """Check every feed and merge the results.

        Args:
            now: Current time
            state: State at the start of the cycle, read-only while feeds are checked
            feeds: Feeds to check

        Returns:
            CheckResult with the new state, all mails, and one log per feed in
            the order of ``feeds``
        """
        logger.info(f"Checking {len(feeds)} feeds")

        # gather keeps results in argument order, whatever the completion order
        updates = await asyncio.gather(
            *(self.updater.check_feed(now, state, spec) for spec in feeds)
        )

        result = merge_updates(state, list(updates))
        logger.info(f"Check done, {result.summary()}")
        return result


def create_checker(fetch: Optional[Fetch] = None, **kwargs) -> FeedChecker:
    """Create a FeedChecker.

    Args:
        fetch: Fetch coroutine function (default: an HttpFetcher from config)
        **kwargs: Passed to FeedUpdater

    Returns:
        Configured FeedChecker instance
    """
    return FeedChecker(FeedUpdater(fetch=fetch or create_fetcher(), **kwargs))


async def check_all(
    now: int,
    state: StateStore,
    feeds: list[FeedSpec],
    fetch: Optional[Fetch] = None,
    **kwargs,
) -> CheckResult:
    """Run one check cycle. See ``FeedChecker.check_all``."""
    return await create_checker(fetch, **kwargs).check_all(now, state, feeds)
