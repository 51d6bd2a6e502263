"""
Entry processor.

Applies a feed's filter, dedup state and content policy to a freshly parsed
feed and returns the entries that were never seen before.
"""

from dataclasses import dataclass, replace
from typing import Optional

from rss_mailer.core.filter_engine import FilterEngine
from rss_mailer.core.seen_set import DEFAULT_GRACE_PERIOD, SeenEntrySet
from rss_mailer.logger import get_logger
from rss_mailer.models.entry import ParsedEntry, ParsedFeed
from rss_mailer.models.feed import ContentPolicy, Options

logger = get_logger(__name__)


@dataclass(frozen=True)
class ProcessResult:
    """Output of processing one parsed feed."""

    feed: ParsedFeed
    seen: SeenEntrySet
    new_entries: list[ParsedEntry]


def entry_id(base_url: str, entry: ParsedEntry) -> Optional[str]:
    """Dedup key of an entry.

    The entry's own id, else the feed URL joined with its link, else with
    its title. None when the entry has none of them.
    """
    if entry.id:
        return entry.id
    if entry.link:
        return base_url + entry.link
    if entry.title:
        return base_url + entry.title
    return None


def normalize_entry(base_url: str, entry: ParsedEntry) -> ParsedEntry:
    """Fill in a missing id and title so that mails never lack a subject."""
    title = entry.title or entry.link or base_url
    return replace(entry, id=entry_id(base_url, entry), title=title)


def process_content(options: Options, entry: ParsedEntry) -> ParsedEntry:
    if options.content is ContentPolicy.REMOVE:
        return replace(entry, summary=None, content=None)
    return entry


def process(
    now: int,
    base_url: str,
    options: Options,
    seen: SeenEntrySet,
    feed: ParsedFeed,
    grace_period: int = DEFAULT_GRACE_PERIOD,
) -> ProcessResult:
    """Find the new entries of a feed and update its seen set.

    Entries without an id or rejected by the filter are skipped entirely:
    they are not reported and their expiry is not refreshed. Accepted ids
    get their expiry set to ``now + grace_period``; ids whose expiry has
    passed are then evicted.

    Args:
        now: Current time
        base_url: URL the feed was fetched from
        options: Feed options
        seen: Seen set from the previous check
        feed: Freshly parsed feed
        grace_period: Seconds an id is remembered after leaving the feed

    Returns:
        ProcessResult with the processed feed, the new seen set and the
        new entries in feed order
    """
    engine = FilterEngine(options.filter)

    processed: list[ParsedEntry] = []
    accepted_ids: list[str] = []
    new_entries: list[ParsedEntry] = []

    for raw in feed.entries:
        entry = process_content(options, normalize_entry(base_url, raw))
        processed.append(entry)

        if entry.id is None or not engine.accepts(raw):
            continue

        accepted_ids.append(entry.id)
        if not seen.is_seen(entry.id):
            new_entries.append(entry)

    updated = seen.refresh(accepted_ids, now + grace_period).evict_expired(now)

    logger.debug(
        f"{base_url}: {len(feed.entries)} entries, {len(accepted_ids)} accepted, "
        f"{len(new_entries)} new, {len(updated)} remembered"
    )

    return ProcessResult(
        feed=replace(feed, entries=tuple(processed)),
        seen=updated,
        new_entries=new_entries,
    )
