"""
Feed descriptors and per-feed options.

A configured source is a ``FeedSource`` (RSS/Atom), a ``ScraperSource``
(HTML page read through a selector template) or a ``Bundle`` wrapping one
of the two. Bundling only changes how new entries are turned into mails.
"""

from dataclasses import dataclass
from enum import Enum
from typing import NewType, Optional, Union

from rss_mailer.models.filter import Filter

FeedId = NewType("FeedId", str)


# Refresh policies


@dataclass(frozen=True)
class Every:
    """Check again ``hours`` after the current check."""

    hours: float

    def __post_init__(self):
        if self.hours <= 0:
            raise ValueError("Refresh interval must be positive")


@dataclass(frozen=True)
class At:
    """Check again at the next occurrence of ``hour:minute``."""

    hour: int
    minute: int = 0

    def __post_init__(self):
        if not (0 <= self.hour < 24 and 0 <= self.minute < 60):
            raise ValueError(f"Invalid time {self.hour}:{self.minute}")


@dataclass(frozen=True)
class AtWeekly:
    """Check again at the next ``weekday`` (0 is Monday) at ``hour:minute``."""

    weekday: int
    hour: int
    minute: int = 0

    def __post_init__(self):
        if not 0 <= self.weekday < 7:
            raise ValueError(f"Invalid weekday {self.weekday}")
        if not (0 <= self.hour < 24 and 0 <= self.minute < 60):
            raise ValueError(f"Invalid time {self.hour}:{self.minute}")


RefreshPolicy = Union[Every, At, AtWeekly]


class ContentPolicy(str, Enum):
    """Whether summary and content are kept in mails."""

    KEEP = "keep"
    REMOVE = "remove"


@dataclass(frozen=True)
class Options:
    """Per-feed options, read-only for the duration of a check cycle."""

    refresh: RefreshPolicy = Every(6.0)
    filter: Optional[Filter] = None
    content: ContentPolicy = ContentPolicy.KEEP
    max_entries: Optional[int] = None
    title: Optional[str] = None
    label: Optional[str] = None
    to: Optional[str] = None


# Descriptors


@dataclass(frozen=True)
class ScraperTemplate:
    """CSS selectors used to extract entries from an HTML page.

    ``item`` selects one element per entry; the other selectors are applied
    inside each item. ``link`` reads the ``href`` attribute of its match,
    ``id`` and ``date`` read the text.
    """

    item: str
    title: Optional[str] = None
    link: Optional[str] = None
    summary: Optional[str] = None
    content: Optional[str] = None
    date: Optional[str] = None
    id: Optional[str] = None


@dataclass(frozen=True)
class FeedSource:
    url: str


@dataclass(frozen=True)
class ScraperSource:
    url: str
    template: ScraperTemplate


@dataclass(frozen=True)
class Bundle:
    """Send at most one mail per check for the wrapped source."""

    source: Union[FeedSource, ScraperSource]


FeedDescriptor = Union[FeedSource, ScraperSource, Bundle]


def source_of(desc: FeedDescriptor) -> Union[FeedSource, ScraperSource]:
    """Unwrap a bundle to the source it fetches."""
    if isinstance(desc, Bundle):
        return desc.source
    return desc


def url_of(desc: FeedDescriptor) -> str:
    """URL fetched for a descriptor."""
    return source_of(desc).url


def is_bundle(desc: FeedDescriptor) -> bool:
    return isinstance(desc, Bundle)


@dataclass(frozen=True)
class FeedSpec:
    """A configured feed: its stable id, descriptor and options."""

    feed_id: FeedId
    descriptor: FeedDescriptor
    options: Options = Options()

    @property
    def url(self) -> str:
        return url_of(self.descriptor)
