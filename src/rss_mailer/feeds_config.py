"""
Feed list configuration.

Feeds are listed in a YAML file, either as a top-level list or under a
``feeds:`` key::

    feeds:
      - url: https://example.com/feed.xml
        refresh: daily
        filter:
          and:
            - title: python
            - not: {content: sponsored}
      - scraper:
          url: https://example.com/news
          item: article
          title: h2
          link: a
        bundle: true
        refresh: {at: "18:00"}
"""

import re
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator

from rss_mailer.config import get_config
from rss_mailer.logger import get_logger
from rss_mailer.models.feed import (
    At,
    AtWeekly,
    Bundle,
    ContentPolicy,
    Every,
    FeedSource,
    FeedSpec,
    Options,
    RefreshPolicy,
    ScraperSource,
    ScraperTemplate,
)
from rss_mailer.models.filter import And, Filter, MatchContent, MatchTitle, Not, Or
from rss_mailer.utils.hashing import feed_id_from_url

logger = get_logger(__name__)

NAMED_REFRESH = {
    "always": 0.2,
    "often": 1.5,
    "sometimes": 6.0,
    "daily": 24.0,
    "rarely": 72.0,
}

WEEKDAYS = {
    "monday": 0,
    "tuesday": 1,
    "wednesday": 2,
    "thursday": 3,
    "friday": 4,
    "saturday": 5,
    "sunday": 6,
}

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})$")


class FeedConfigError(Exception):
    """Invalid feed list."""


class ScraperSchema(BaseModel):
    """Scraper source: the page URL and its selector template."""

    model_config = ConfigDict(extra="forbid")

    url: str
    item: str
    title: Optional[str] = None
    link: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None
    date: Optional[str] = None
    id: Optional[str] = None


class FeedSchema(BaseModel):
    """One item of the feed list."""

    model_config = ConfigDict(extra="forbid")

    url: Optional[str] = None
    scraper: Optional[ScraperSchema] = None
    bundle: bool = False

    refresh: Any = None
    filter: Any = None
    content: ContentPolicy = ContentPolicy.KEEP
    max_entries: Optional[int] = Field(default=None, ge=1)
    title: Optional[str] = None
    label: Optional[str] = None
    to: Optional[str] = None

    @model_validator(mode="after")
    def check_source(self) -> "FeedSchema":
        """Exactly one of ``url`` and ``scraper`` must be given."""
        if (self.url is None) == (self.scraper is None):
            raise ValueError("a feed needs exactly one of 'url' or 'scraper'")
        return self


def _parse_time(value: str) -> tuple[int, int]:
    match = _TIME_RE.match(value.strip())
    if not match:
        raise FeedConfigError(f"Invalid time {value!r}, expected HH:MM")
    return int(match.group(1)), int(match.group(2))


def parse_refresh(value: Any, default_hours: Optional[float] = None) -> RefreshPolicy:
    """Build a refresh policy.

    Args:
        value: Number of hours, a cadence name, or a mapping with one of
            ``every``, ``at`` or ``at_weekly``. ``None`` gives the default.
        default_hours: Interval used when ``value`` is None

    Returns:
        Refresh policy

    Raises:
        FeedConfigError: If the value cannot be understood
    """
    if value is None:
        if default_hours is None:
            default_hours = get_config().checker.default_refresh_hours
        return Every(default_hours)

    try:
        if isinstance(value, bool):
            raise FeedConfigError(f"Invalid refresh {value!r}")

        if isinstance(value, (int, float)):
            return Every(float(value))

        if isinstance(value, str):
            name = value.strip().lower()
            if name not in NAMED_REFRESH:
                raise FeedConfigError(
                    f"Unknown refresh {value!r}, expected one of {sorted(NAMED_REFRESH)}"
                )
            return Every(NAMED_REFRESH[name])

        if isinstance(value, dict) and len(value) == 1:
            kind, arg = next(iter(value.items()))
            if kind == "every":
                return parse_refresh(arg)
            if kind == "at":
                return At(*_parse_time(str(arg)))
            if kind == "at_weekly":
                day, _, time = str(arg).strip().partition(" ")
                weekday = WEEKDAYS.get(day.lower())
                if weekday is None:
                    raise FeedConfigError(f"Unknown weekday {day!r}")
                return AtWeekly(weekday, *_parse_time(time))
    except ValueError as e:
        raise FeedConfigError(str(e)) from e

    raise FeedConfigError(f"Invalid refresh {value!r}")


def _compile(pattern: Any) -> re.Pattern:
    if not isinstance(pattern, str):
        raise FeedConfigError(f"Filter pattern must be a string, got {pattern!r}")
    try:
        return re.compile(pattern)
    except re.error as e:
        raise FeedConfigError(f"Invalid regex {pattern!r}: {e}") from e


def parse_filter(value: Any) -> Filter:
    """Build a filter expression from its nested mapping form.

    Raises:
        FeedConfigError: If the mapping is malformed or a regex is invalid
    """
    if not isinstance(value, dict) or len(value) != 1:
        raise FeedConfigError(f"A filter is a mapping with exactly one key, got {value!r}")

    kind, arg = next(iter(value.items()))

    if kind in ("and", "or"):
        if not isinstance(arg, list):
            raise FeedConfigError(f"'{kind}' takes a list of filters")
        filters = [parse_filter(item) for item in arg]
        return And(filters) if kind == "and" else Or(filters)
    if kind == "not":
        return Not(parse_filter(arg))
    if kind == "title":
        return MatchTitle(_compile(arg))
    if kind == "content":
        return MatchContent(_compile(arg))

    raise FeedConfigError(f"Unknown filter {kind!r}")


def build_feed(item: dict) -> FeedSpec:
    """Build a FeedSpec from one item of the feed list.

    Raises:
        FeedConfigError: If the item is invalid
    """
    try:
        schema = FeedSchema.model_validate(item)
    except ValidationError as e:
        raise FeedConfigError(f"Invalid feed {item!r}: {e}") from e

    if schema.scraper is not None:
        scraper = schema.scraper
        template = ScraperTemplate(**scraper.model_dump(exclude={"url"}))
        source = ScraperSource(scraper.url, template)
    else:
        source = FeedSource(schema.url)

    options = Options(
        refresh=parse_refresh(schema.refresh),
        filter=parse_filter(schema.filter) if schema.filter is not None else None,
        content=schema.content,
        max_entries=schema.max_entries,
        title=schema.title,
        label=schema.label,
        to=schema.to,
    )

    return FeedSpec(
        feed_id=feed_id_from_url(source.url),
        descriptor=Bundle(source) if schema.bundle else source,
        options=options,
    )


def parse_feeds(data: Any) -> list[FeedSpec]:
    """Build the feed list from parsed YAML.

    Raises:
        FeedConfigError: If the data is invalid or lists a URL twice
    """
    if data is None:
        return []
    if isinstance(data, dict):
        data = data.get("feeds") or []
    if not isinstance(data, list):
        raise FeedConfigError("The feed list must be a list")

    feeds = []
    seen_ids = set()
    for item in data:
        if not isinstance(item, dict):
            raise FeedConfigError(f"Invalid feed {item!r}")
        spec = build_feed(item)
        if spec.feed_id in seen_ids:
            raise FeedConfigError(f"Feed listed twice: {spec.url}")
        seen_ids.add(spec.feed_id)
        feeds.append(spec)

    return feeds


def load_feeds(path: Optional[str] = None) -> list[FeedSpec]:
    """Load the feed list from a YAML file.

    Args:
        path: YAML file (default: ``feeds_file`` from config)

    Returns:
        Configured feeds, in file order

    Raises:
        FeedConfigError: If the file is missing or invalid
    """
    feeds_file = Path(path or get_config().feeds_file)
    if not feeds_file.exists():
        raise FeedConfigError(f"Feed list not found: {feeds_file}")

    try:
        with feeds_file.open("r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise FeedConfigError(f"Invalid YAML in {feeds_file}: {e}") from e

    feeds = parse_feeds(data)
    logger.info(f"Loaded {len(feeds)} feeds from {feeds_file}")
    return feeds
