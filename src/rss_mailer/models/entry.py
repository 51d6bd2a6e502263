"""
Parsed feed and entry values.

These are produced by the parse and scrape collaborators and flow through
the check engine unchanged except for content stripping and identity
synthesis. They are immutable; use ``dataclasses.replace`` to derive.
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Author:
    """Entry author."""

    name: str
    link: Optional[str] = None


@dataclass(frozen=True)
class Attachment:
    """Enclosure attached to an entry (podcast audio, images, ...)."""

    url: str
    size: Optional[int] = None
    mime_type: Optional[str] = None


@dataclass(frozen=True)
class ParsedEntry:
    """One item of a parsed feed.

    ``summary`` and ``content`` hold HTML fragments.
    """

    id: Optional[str] = None
    title: Optional[str] = None
    link: Optional[str] = None
    authors: tuple[Author, ...] = ()
    summary: Optional[str] = None
    content: Optional[str] = None
    date: Optional[datetime] = None
    categories: tuple[str, ...] = ()
    thumbnail: Optional[str] = None
    attachments: tuple[Attachment, ...] = ()


@dataclass(frozen=True)
class ParsedFeed:
    """A parsed feed: optional metadata and its entries in document order."""

    title: Optional[str] = None
    link: Optional[str] = None
    icon: Optional[str] = None
    entries: tuple[ParsedEntry, ...] = field(default_factory=tuple)

    def __repr__(self) -> str:
        return f"<ParsedFeed(title={self.title!r}, entries={len(self.entries)})>"
