"""
Flask application serving the aggregated Atom feed.

Every request fetches the configured feeds concurrently and merges their
recent entries, newest first. No dedup state is involved. Each feed's
entries are cached until its refresh policy's next update.
"""

import asyncio
import threading
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Optional

from flask import Flask, Response, jsonify, request

from rss_mailer.config import get_config
from rss_mailer.core.fetcher import Fetch, FetchError, create_fetcher
from rss_mailer.core.mailer import sender_name
from rss_mailer.core.orchestrator import FeedUpdater
from rss_mailer.core.parser import ParsingError
from rss_mailer.core.processor import normalize_entry, process_content
from rss_mailer.core.renderer import render_entry_html
from rss_mailer.core.scheduler import next_update
from rss_mailer.feeds_config import load_feeds
from rss_mailer.logger import get_logger
from rss_mailer.models.entry import ParsedEntry, ParsedFeed
from rss_mailer.models.feed import FeedSpec
from rss_mailer.web.atom import generate_atom

logger = get_logger(__name__)

SECONDS_PER_DAY = 86400


class FetchCache:
    """Per-URL cache of processed entries with an absolute expiry time."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[int, list[ParsedEntry]]] = {}
        self._lock = threading.Lock()

    def get(self, url: str, now: int) -> Optional[list[ParsedEntry]]:
        with self._lock:
            cached = self._entries.get(url)
        if cached is None or cached[0] <= now:
            return None
        return cached[1]

    def put(self, url: str, entries: list[ParsedEntry], expires_at: int) -> None:
        with self._lock:
            self._entries[url] = (expires_at, entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def sort_entries(entries: list[ParsedEntry]) -> list[ParsedEntry]:
    """Newest first, entries without a date last."""
    dated = [e for e in entries if e.date is not None]
    undated = [e for e in entries if e.date is None]
    return sorted(dated, key=lambda e: e.date, reverse=True) + undated


def recent_entries(entries: list[ParsedEntry], since: datetime) -> list[ParsedEntry]:
    """Entries dated after ``since``, newest first."""
    return [e for e in sort_entries(entries) if e.date is not None and e.date > since]


def aggregate_entry(spec: FeedSpec, feed: ParsedFeed, entry: ParsedEntry) -> ParsedEntry:
    """Rewrite an entry for the aggregated feed.

    The content becomes the same block a mail would show: a header naming
    the source, then the summary and content unless the feed removes them.
    """
    url, options = spec.url, spec.options
    processed = process_content(options, normalize_entry(url, entry))
    sender = sender_name(url, feed, options)
    content = str(render_entry_html(feed, processed, sender, options.label))
    # Ids are only unique within their own feed
    entry_id = url + entry.id if entry.id else processed.id
    return replace(processed, id=entry_id, summary=None, content=content)


class Aggregator:
    """Fetches, processes and caches the entries of every feed."""

    def __init__(self, fetch: Fetch, aggregate_days: int, cache: Optional[FetchCache] = None):
        self.updater = FeedUpdater(fetch=fetch)
        self.aggregate_days = aggregate_days
        self.cache = cache or FetchCache()

    async def feed_entries(self, now: int, spec: FeedSpec) -> list[ParsedEntry]:
        """Recent entries of one feed. Failures are logged and give no entries."""
        since = datetime.fromtimestamp(now - self.aggregate_days * SECONDS_PER_DAY, tz=timezone.utc)
        try:
            feed = await self.updater.fetch_feed(spec)
            entries = [aggregate_entry(spec, feed, e) for e in recent_entries(list(feed.entries), since)]
        except FetchError as e:
            logger.error(f"Fetch error {e.code}: {spec.url}: {e.message}")
            return []
        except ParsingError as e:
            logger.error(f"Parsing error: {e}: {spec.url}")
            return []
        except Exception as e:
            logger.exception(f"Unexpected error aggregating {spec.url}: {e}")
            return []

        logger.info(
            f"Fetched {len(feed.entries)} entries (processed {len(entries)}) from {spec.url}"
        )

        self.cache.put(spec.url, entries, next_update(now, spec.options.refresh, self.updater.tz))
        return entries

    async def collect(self, now: int, feeds: list[FeedSpec], clear_cache: bool = False) -> list[ParsedEntry]:
        """Entries of every feed, newest first."""
        cached = {} if clear_cache else {spec.url: self.cache.get(spec.url, now) for spec in feeds}
        missing = [spec for spec in feeds if cached.get(spec.url) is None]

        fetched = await asyncio.gather(*(self.feed_entries(now, spec) for spec in missing))
        results = dict(cached)
        results.update({spec.url: entries for spec, entries in zip(missing, fetched)})

        entries = [entry for spec in feeds for entry in results.get(spec.url) or []]
        return sort_entries(entries)


def create_app(
    feeds: Optional[list[FeedSpec]] = None,
    fetch: Optional[Fetch] = None,
    clock: Callable[[], float] = time.time,
) -> Flask:
    """Create and configure Flask application.

    Args:
        feeds: Feeds to aggregate (default: the feed list file, read on
            every request)
        fetch: Fetch coroutine function (default: an HttpFetcher)
        clock: Current time in epoch seconds

    Returns:
        Configured Flask application
    """
    app = Flask(__name__)

    config = get_config()
    app.config["DEBUG"] = config.web.debug

    aggregator = Aggregator(fetch or create_fetcher(), config.web.aggregate_days)
    app.extensions["aggregator"] = aggregator

    def current_feeds() -> list[FeedSpec]:
        return feeds if feeds is not None else load_feeds()

    @app.route("/feed.atom")
    def feed_atom():
        started = time.monotonic()
        clear_cache = "clear_cache" in request.args

        entries = asyncio.run(aggregator.collect(int(clock()), current_feeds(), clear_cache))
        body = generate_atom(config.web.aggregate_title, entries)

        logger.info(f"Served {len(entries)} entries in {time.monotonic() - started:.2f}s")
        return Response(body, mimetype="application/atom+xml")

    @app.route("/health")
    def health():
        return jsonify({
            "status": "ok",
            "feeds": len(current_feeds()),
            "cached_feeds": len(aggregator.cache),
        })

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"success": False, "error": "Not found"}), 404

    @app.errorhandler(500)
    def server_error(e):
        logger.exception("Internal server error")
        return jsonify({"success": False, "error": "Internal server error"}), 500

    return app
