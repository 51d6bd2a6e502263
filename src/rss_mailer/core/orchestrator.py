"""
Per-feed update pipeline.

Drives one feed through eligibility check, fetch, parse, entry processing,
mail batching and scheduling. Nothing here mutates state: the outcome is a
state transform that the checker applies once every feed is done.
"""

from dataclasses import dataclass, field
from datetime import tzinfo
from typing import Callable, Optional
from zoneinfo import ZoneInfo

from rss_mailer.config import get_config
from rss_mailer.core.fetcher import Fetch, FetchError
from rss_mailer.core.mailer import Renderer, prepare_bundle, prepare_mails, sender_name
from rss_mailer.core.parser import ParsingError, parse_feed
from rss_mailer.core.processor import process
from rss_mailer.core.renderer import render_mail_body
from rss_mailer.core.scheduler import next_update
from rss_mailer.core.scraper import scrape
from rss_mailer.core.seen_set import SeenEntrySet
from rss_mailer.logger import get_logger
from rss_mailer.models.entry import ParsedFeed
from rss_mailer.models.feed import FeedSpec, ScraperSource, is_bundle, source_of
from rss_mailer.models.log import UpdateLog
from rss_mailer.models.mail import Mail
from rss_mailer.storage.state import StateStore

logger = get_logger(__name__)

StateTransform = Callable[[StateStore], StateStore]
Parse = Callable[[str, bytes], ParsedFeed]
Scrape = Callable[..., ParsedFeed]


def identity(state: StateStore) -> StateStore:
    return state


@dataclass(frozen=True)
class FeedUpdate:
    """Outcome of checking one feed."""

    feed_id: str
    transform: StateTransform
    log: UpdateLog
    mails: list[Mail] = field(default_factory=list)


class FeedUpdater:
    """Checks a single feed against a state snapshot."""

    def __init__(
        self,
        fetch: Fetch,
        parse: Parse = parse_feed,
        scrape: Scrape = scrape,
        render: Renderer = render_mail_body,
        grace_period: Optional[int] = None,
        tz: Optional[tzinfo] = None,
    ):
        """Initialize feed updater.

        Args:
            fetch: Coroutine function returning the raw bytes of a URL
            parse: Feed parser, ``(base_url, content) -> ParsedFeed``
            scrape: HTML scraper, ``(base_url, template, content) -> ParsedFeed``
            render: Mail body renderer
            grace_period: Seconds an entry id is remembered after leaving its feed
            tz: Timezone of wall-clock refresh policies
        """
        config = get_config().checker

        self.fetch = fetch
        self.parse = parse
        self.scrape = scrape
        self.render = render
        self.grace_period = config.grace_period_seconds if grace_period is None else grace_period
        self.tz = tz or ZoneInfo(config.timezone)

    async def check_feed(self, now: int, state: StateStore, spec: FeedSpec) -> FeedUpdate:
        """Check a feed if it is due.

        A feed whose next update lies in the future is reported up to date
        without any I/O. Otherwise the feed is updated and its next update
        is scheduled, whether the update succeeded or not.

        Args:
            now: Current time
            state: State snapshot taken at the start of the cycle
            spec: Feed to check

        Returns:
            FeedUpdate with the state transform, mails and log entry
        """
        feed_id = spec.feed_id

        scheduled = state.get_next_update(feed_id)
        if scheduled is not None and scheduled >= now:
            return FeedUpdate(feed_id, identity, UpdateLog.uptodate(feed_id))

        update = await self.update_feed(now, state, spec)
        following = next_update(now, spec.options.refresh, self.tz)

        def transform(state: StateStore) -> StateStore:
            return update.transform(state).set_next_update(feed_id, following)

        return FeedUpdate(feed_id, transform, update.log, update.mails)

    async def update_feed(self, now: int, state: StateStore, spec: FeedSpec) -> FeedUpdate:
        """Fetch, parse and process a feed.

        On failure the returned transform leaves the state untouched.
        """
        feed_id, options, url = spec.feed_id, spec.options, spec.url

        previous = state.get_previous_entries(feed_id)
        first_update = previous is None
        seen = SeenEntrySet.empty() if previous is None else previous

        try:
            feed = await self.fetch_feed(spec)
            result = process(now, url, options, seen, feed, self.grace_period)

            if first_update:
                # Every entry is new on the first check, only remember them
                logger.debug(f"First update of {url}: {len(result.new_entries)} entries remembered")
                mails, mailed = [], 0
            else:
                sender = sender_name(url, result.feed, options)
                prepare = prepare_bundle if is_bundle(spec.descriptor) else prepare_mails
                mails = prepare(now, sender, result.feed, options, result.new_entries, self.render)
                mailed = len(result.new_entries)
        except FetchError as e:
            logger.warning(f"Fetch error for {url}: {e.message}")
            return FeedUpdate(feed_id, identity, UpdateLog.fetch_error(feed_id, e.code, e.message))
        except ParsingError as e:
            logger.warning(f"Parsing error for {url}: {e}")
            return FeedUpdate(
                feed_id, identity, UpdateLog.parsing_error(feed_id, e.position, e.message)
            )
        except Exception as e:
            logger.exception(f"Unexpected error checking {url}: {e}")
            return FeedUpdate(
                feed_id,
                identity,
                UpdateLog.fetch_error(feed_id, None, f"Unexpected error: {type(e).__name__}: {e}"),
            )

        if result.seen != previous:
            updated_seen = result.seen

            def transform(state: StateStore) -> StateStore:
                return state.set_previous_entries(feed_id, updated_seen)
        else:
            transform = identity

        return FeedUpdate(feed_id, transform, UpdateLog.updated(feed_id, mailed, len(mails)), mails)

    async def fetch_feed(self, spec: FeedSpec) -> ParsedFeed:
        """Fetch a feed and parse or scrape it.

        Raises:
            FetchError: If the source cannot be retrieved
            ParsingError: If a feed source is not a feed
        """
        source = source_of(spec.descriptor)
        content = await self.fetch(source.url)

        if isinstance(source, ScraperSource):
            return self.scrape(source.url, source.template, content)
        return self.parse(source.url, content)
