"""Data models for RSS Mailer."""

from rss_mailer.models.base import Base
from rss_mailer.models.entry import Attachment, Author, ParsedEntry, ParsedFeed
from rss_mailer.models.feed import (
    At,
    AtWeekly,
    Bundle,
    ContentPolicy,
    Every,
    FeedDescriptor,
    FeedId,
    FeedSource,
    FeedSpec,
    Options,
    RefreshPolicy,
    ScraperSource,
    ScraperTemplate,
)
from rss_mailer.models.filter import And, Filter, MatchContent, MatchTitle, Not, Or
from rss_mailer.models.log import UpdateLog, UpdateStatus
from rss_mailer.models.mail import Mail, MailModel
from rss_mailer.models.state import FeedStateModel

__all__ = [
    "Base",
    "Author",
    "Attachment",
    "ParsedEntry",
    "ParsedFeed",
    "FeedId",
    "FeedDescriptor",
    "FeedSource",
    "ScraperSource",
    "ScraperTemplate",
    "Bundle",
    "FeedSpec",
    "Options",
    "ContentPolicy",
    "RefreshPolicy",
    "Every",
    "At",
    "AtWeekly",
    "Filter",
    "And",
    "Or",
    "Not",
    "MatchTitle",
    "MatchContent",
    "UpdateLog",
    "UpdateStatus",
    "Mail",
    "MailModel",
    "FeedStateModel",
]
