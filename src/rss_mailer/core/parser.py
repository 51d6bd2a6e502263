"""
Feed parser for RSS/Atom documents.

Converts feedparser output into ``ParsedFeed`` values, resolving relative
links against the feed URL and normalizing titles and dates.
"""

import re
from datetime import datetime, timezone
from typing import Optional
from urllib.parse import urljoin

import feedparser

from rss_mailer.logger import get_logger
from rss_mailer.models.entry import Attachment, Author, ParsedEntry, ParsedFeed

logger = get_logger(__name__)


class ParsingError(Exception):
    """The source is not a feed.

    ``position`` is the (line, column) of the error, (0, 0) when unknown.
    """

    def __init__(self, position: tuple[int, int], message: str) -> None:
        super().__init__(f"{position[0]}:{position[1]}: {message}")
        self.position = position
        self.message = message


class FeedParser:
    """Parser turning raw RSS/Atom bytes into a ``ParsedFeed``."""

    def parse(self, base_url: str, content: bytes) -> ParsedFeed:
        """Parse a feed document.

        Args:
            base_url: URL the document was fetched from, for relative links
            content: Raw document

        Returns:
            ParsedFeed with entries in document order

        Raises:
            ParsingError: When the document is not a recognizable feed
        """
        parsed = feedparser.parse(content, response_headers={"content-location": base_url})

        if not parsed.get("version") and not parsed.entries:
            raise self._parsing_error(parsed)

        if parsed.get("bozo"):
            logger.debug(f"Lenient parse of {base_url}: {parsed.get('bozo_exception')}")

        feed = parsed.feed
        image = feed.get("image") or {}

        return ParsedFeed(
            title=self._normalize_title(feed.get("title")),
            link=self._resolve(base_url, feed.get("link")),
            icon=self._resolve(base_url, feed.get("icon") or image.get("href")),
            entries=tuple(self.parse_entry(base_url, raw) for raw in parsed.entries),
        )

    def parse_entry(self, base_url: str, raw_entry: dict) -> ParsedEntry:
        """Convert one feedparser entry.

        Args:
            base_url: URL of the feed
            raw_entry: Raw entry from feedparser

        Returns:
            ParsedEntry
        """
        content = self._content(raw_entry)
        summary = raw_entry.get("summary") or None
        # feedparser fills summary from content when a feed only has content
        if summary is not None and content is not None and summary.strip() == content.strip():
            summary = None

        return ParsedEntry(
            id=(raw_entry.get("id") or "").strip() or None,
            title=self._normalize_title(raw_entry.get("title")),
            link=self._resolve(base_url, raw_entry.get("link")),
            authors=self._authors(base_url, raw_entry),
            summary=summary,
            content=content,
            date=self._parse_date(raw_entry),
            categories=self._categories(raw_entry),
            thumbnail=self._thumbnail(base_url, raw_entry),
            attachments=self._attachments(base_url, raw_entry),
        )

    def _parsing_error(self, parsed) -> ParsingError:
        error = parsed.get("bozo_exception")
        if error is None:
            return ParsingError((0, 0), "Unexpected format")

        get_line = getattr(error, "getLineNumber", None)
        get_column = getattr(error, "getColumnNumber", None)
        position = (0, 0)
        if callable(get_line) and callable(get_column):
            position = (get_line() or 0, get_column() or 0)

        message = getattr(error, "getMessage", None)
        message = message() if callable(message) else str(error)
        return ParsingError(position, str(message) or "Unexpected format")

    def _normalize_title(self, title: Optional[str]) -> Optional[str]:
        """Normalize entry or feed title."""
        if not title:
            return None

        title = re.sub(r"\s+", " ", title.strip())

        return title or None

    @staticmethod
    def _resolve(base_url: str, link: Optional[str]) -> Optional[str]:
        if not link or not link.strip():
            return None
        return urljoin(base_url, link.strip())

    @staticmethod
    def _content(raw_entry: dict) -> Optional[str]:
        values = [c.get("value") for c in raw_entry.get("content") or [] if c.get("value")]
        return "\n".join(values) if values else None

    def _authors(self, base_url: str, raw_entry: dict) -> tuple[Author, ...]:
        authors = []
        for author in raw_entry.get("authors") or []:
            name = author.get("name") or author.get("email")
            if name:
                authors.append(Author(name=name.strip(), link=self._resolve(base_url, author.get("href"))))

        if not authors and raw_entry.get("author"):
            authors.append(Author(name=str(raw_entry["author"]).strip()))

        return tuple(authors)

    @staticmethod
    def _parse_date(raw_entry: dict) -> Optional[datetime]:
        """Publication date of an entry, falling back to its update date."""
        for key in ("published_parsed", "updated_parsed"):
            parsed = raw_entry.get(key)
            if parsed:
                return datetime(*parsed[:6], tzinfo=timezone.utc)
        return None

    @staticmethod
    def _categories(raw_entry: dict) -> tuple[str, ...]:
        categories = []
        for tag in raw_entry.get("tags") or []:
            name = tag.get("label") or tag.get("term")
            if name and name.strip() and name.strip() not in categories:
                categories.append(name.strip())
        return tuple(categories)

    def _thumbnail(self, base_url: str, raw_entry: dict) -> Optional[str]:
        thumbnails = raw_entry.get("media_thumbnail") or []
        if thumbnails:
            return self._resolve(base_url, thumbnails[0].get("url"))
        return None

    def _attachments(self, base_url: str, raw_entry: dict) -> tuple[Attachment, ...]:
        attachments = []
        for enclosure in raw_entry.get("enclosures") or []:
            url = self._resolve(base_url, enclosure.get("href") or enclosure.get("url"))
            if not url:
                continue
            try:
                size = int(enclosure.get("length")) if enclosure.get("length") else None
            except (TypeError, ValueError):
                size = None
            attachments.append(
                Attachment(url=url, size=size, mime_type=enclosure.get("type") or None)
            )
        return tuple(attachments)


def parse_feed(base_url: str, content: bytes) -> ParsedFeed:
    """Parse a feed document with the default parser."""
    return FeedParser().parse(base_url, content)
