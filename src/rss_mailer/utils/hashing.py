"""Hashing utilities."""

import hashlib

from rss_mailer.models.feed import FeedId


def feed_id_from_url(url: str) -> FeedId:
    """Derive the stable state key of a feed from its URL."""
    return FeedId(hashlib.sha256(url.strip().encode("utf-8")).hexdigest()[:16])
