"""
Mail body rendering.

Builds the HTML and plain text bodies of a mail from a feed and the
entries it announces. Rendering is pure: no network and no state access.
Entry summaries and contents are HTML fragments from the feed and are
embedded as-is; every other value is escaped.
"""

from datetime import datetime
from typing import Optional
from urllib.parse import urlparse

from markupsafe import Markup, escape

from rss_mailer.models.entry import Attachment, ParsedEntry, ParsedFeed
from rss_mailer.utils.text import html_to_text

_ICON_STYLE = "display: inline !important; height: 1em !important; margin: 0 0 -0.1em 0 !important;"
_THUMB_STYLE = "display: block !important; max-width: 25em;"


def format_size(size: int) -> str:
    """Human readable byte size."""
    value = float(size)
    for unit in ("B", "KB", "MB", "GB"):
        if value < 1024 or unit == "GB":
            return f"{value:.0f} {unit}" if unit == "B" else f"{value:.1f} {unit}"
        value /= 1024
    return f"{size} B"


def format_date(date: datetime) -> str:
    return date.strftime("%Y-%m-%d %H:%M")


def _link(content, href: Optional[str]) -> Markup:
    if href:
        return Markup('<a href="{}">{}</a>').format(href, content)
    return escape(content)


def _img(src: str, style: str) -> Markup:
    return Markup('<img style="{}" src="{}" />').format(style, src)


def _attachment_name(attachment: Attachment) -> str:
    name = urlparse(attachment.url).path.rsplit("/", 1)[-1]
    return name if "." in name else attachment.url


def _attachment_info(attachment: Attachment) -> str:
    info = []
    if attachment.size is not None:
        info.append(format_size(attachment.size))
    if attachment.mime_type:
        info.append(attachment.mime_type)
    return f" ({', '.join(info)})" if info else ""


def _header_parts(entry: ParsedEntry, label: Optional[str]) -> tuple[str, str, str, str]:
    categories = f" ({', '.join(entry.categories)})" if entry.categories else ""
    date = f"on {format_date(entry.date)}" if entry.date else ""
    authors = ", ".join(author.name for author in entry.authors)
    authors = f" by {authors}" if authors else ""
    label_text = f" with label {label}" if label else ""
    return categories, date, authors, label_text


def render_entry_html(
    feed: ParsedFeed, entry: ParsedEntry, sender: str, label: Optional[str] = None
) -> Markup:
    """HTML block announcing one entry."""
    categories, date, _, label_text = _header_parts(entry, label)

    icon = _img(feed.icon, _ICON_STYLE) if feed.icon else Markup("")
    feed_title = _link(icon + escape(feed.title or sender), feed.link)

    authors = Markup(", ").join(_link(a.name, a.link) for a in entry.authors)
    authors = Markup(" by ") + authors if entry.authors else Markup("")

    parts = [
        Markup("<p>Via {}{}<br/>{}{}{}</p>").format(
            feed_title, categories, date, authors, label_text
        )
    ]

    title = entry.title or entry.link
    if title:
        thumb = _img(entry.thumbnail, _THUMB_STYLE) if entry.thumbnail else Markup("")
        parts.append(Markup("<p>{}</p>").format(_link(escape(title) + thumb, entry.link)))

    for attachment in entry.attachments:
        parts.append(
            Markup("<p>Attachment: {}{}</p>").format(
                _link(_attachment_name(attachment), attachment.url),
                _attachment_info(attachment),
            )
        )

    if entry.summary:
        parts.append(Markup("<p>") + Markup(entry.summary) + Markup("</p>"))
    if entry.content:
        parts.append(Markup(entry.content))

    return Markup("").join(parts)


def render_entry_text(
    feed: ParsedFeed, entry: ParsedEntry, sender: str, label: Optional[str] = None
) -> str:
    """Plain text block announcing one entry."""
    categories, date, authors, label_text = _header_parts(entry, label)

    lines = [f"Via {feed.title or sender}{categories}"]
    meta = f"{date}{authors}{label_text}".strip()
    if meta:
        lines.append(meta)
    lines.append("")

    if entry.title:
        lines.append(entry.title)
    if entry.link:
        lines.append(entry.link)

    for attachment in entry.attachments:
        lines.append(f"Attachment: {attachment.url}{_attachment_info(attachment)}")

    for fragment in (entry.summary, entry.content):
        text = html_to_text(fragment, preserve_paragraphs=True)
        if text:
            lines.extend(["", text])

    return "\n".join(lines)


def render_mail_body(
    feed: ParsedFeed,
    entries: list[ParsedEntry],
    sender: str,
    label: Optional[str] = None,
) -> tuple[str, str]:
    """Render the HTML and text bodies of a mail.

    Args:
        feed: Feed the entries come from
        entries: Entries announced by the mail
        sender: Sender display name, used when the feed has no title
        label: Optional label added to every entry header

    Returns:
        Tuple of (html, text)
    """
    html_blocks = [render_entry_html(feed, entry, sender, label) for entry in entries]
    text_blocks = [render_entry_text(feed, entry, sender, label) for entry in entries]

    body_html = Markup("<html><body>{}</body></html>").format(
        Markup("<hr/>").join(html_blocks)
    )
    body_text = "\n\n----\n\n".join(text_blocks)

    return str(body_html), body_text
