"""
Mail batching.

Turns the new entries of a feed into mails, either one mail per entry or
a single bundled mail per check.
"""

from typing import Callable, Optional
from urllib.parse import urlparse

from rss_mailer.core.renderer import render_mail_body
from rss_mailer.models.entry import ParsedEntry, ParsedFeed
from rss_mailer.models.feed import Options
from rss_mailer.models.mail import Mail

Renderer = Callable[[ParsedFeed, list[ParsedEntry], str, Optional[str]], tuple[str, str]]


def sender_name(feed_url: str, feed: ParsedFeed, options: Options) -> str:
    """Display name of the mail sender.

    First non-empty of the configured title, the feed's title, the URL's
    host and the URL itself.
    """
    for candidate in (options.title, feed.title, urlparse(feed_url).hostname):
        if candidate:
            return candidate
    return feed_url


def prepare_mail(
    now: int,
    subject: str,
    sender: str,
    feed: ParsedFeed,
    options: Options,
    entries: list[ParsedEntry],
    render: Renderer = render_mail_body,
) -> Mail:
    body_html, body_text = render(feed, entries, sender, options.label)
    return Mail(
        sender=sender,
        to=options.to,
        subject=subject,
        body_html=body_html,
        body_text=body_text,
        timestamp=now,
    )


def prepare_bundle(
    now: int,
    sender: str,
    feed: ParsedFeed,
    options: Options,
    entries: list[ParsedEntry],
    render: Renderer = render_mail_body,
) -> list[Mail]:
    """At most one mail for all the entries.

    A single entry keeps its own title as subject; several entries get
    "<count> entries from <sender>".
    """
    if not entries:
        return []

    if len(entries) == 1 and entries[0].title:
        subject = entries[0].title
    else:
        subject = f"{len(entries)} entries from {sender}"

    return [prepare_mail(now, subject, sender, feed, options, entries, render)]


def prepare_mails(
    now: int,
    sender: str,
    feed: ParsedFeed,
    options: Options,
    entries: list[ParsedEntry],
    render: Renderer = render_mail_body,
) -> list[Mail]:
    """One mail per entry, or a bundle when there are more than ``max_entries``."""
    if options.max_entries is not None and len(entries) > options.max_entries:
        return prepare_bundle(now, sender, feed, options, entries, render)

    return [
        prepare_mail(
            now,
            entry.title or f"New entry from {sender}",
            sender,
            feed,
            options,
            [entry],
            render,
        )
        for entry in entries
    ]
