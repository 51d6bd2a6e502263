"""Request-triggered feed aggregator."""

from rss_mailer.web.app import create_app

__all__ = ["create_app"]
