"""
Per-feed outcome of a check cycle.

An ``UpdateLog`` carries counts and errors only, never entry payloads.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from rss_mailer.models.feed import FeedId


class UpdateStatus(str, Enum):
    UPDATED = "updated"
    FETCH_ERROR = "fetch_error"
    PARSING_ERROR = "parsing_error"
    UPTODATE = "uptodate"


@dataclass(frozen=True)
class UpdateLog:
    """Outcome of checking one feed."""

    feed_id: FeedId
    status: UpdateStatus
    entries: int = 0
    mails: int = 0
    code: Optional[int] = None
    position: Optional[tuple[int, int]] = None
    message: Optional[str] = None

    def __post_init__(self):
        """Validate log entry."""
        if self.status is not UpdateStatus.UPDATED and (self.entries or self.mails):
            raise ValueError("Only an updated feed can report entries")
        if self.status is UpdateStatus.PARSING_ERROR and self.position is None:
            raise ValueError("Parsing error requires a position")

    @classmethod
    def updated(cls, feed_id: FeedId, entries: int, mails: int) -> "UpdateLog":
        return cls(feed_id, UpdateStatus.UPDATED, entries=entries, mails=mails)

    @classmethod
    def fetch_error(
        cls, feed_id: FeedId, code: Optional[int], message: Optional[str] = None
    ) -> "UpdateLog":
        return cls(feed_id, UpdateStatus.FETCH_ERROR, code=code, message=message)

    @classmethod
    def parsing_error(
        cls, feed_id: FeedId, position: tuple[int, int], message: str
    ) -> "UpdateLog":
        return cls(feed_id, UpdateStatus.PARSING_ERROR, position=position, message=message)

    @classmethod
    def uptodate(cls, feed_id: FeedId) -> "UpdateLog":
        return cls(feed_id, UpdateStatus.UPTODATE)

    @property
    def is_error(self) -> bool:
        return self.status in (UpdateStatus.FETCH_ERROR, UpdateStatus.PARSING_ERROR)

    def describe(self) -> str:
        """One line human readable description."""
        if self.status is UpdateStatus.UPDATED:
            return f"{self.entries} new entries, {self.mails} mails"
        if self.status is UpdateStatus.FETCH_ERROR:
            code = self.code if self.code is not None else "-"
            return f"fetch error {code}: {self.message or ''}".rstrip(": ")
        if self.status is UpdateStatus.PARSING_ERROR:
            line, column = self.position
            return f"parsing error at {line}:{column}: {self.message}"
        return "up to date"
