"""
HTML scraper for sources that publish no feed.

Extracts entries from a page with the CSS selectors of a
``ScraperTemplate``. Scraping never fails: a page where nothing matches
gives a feed without entries.
"""

from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Optional
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from rss_mailer.logger import get_logger
from rss_mailer.models.entry import ParsedEntry, ParsedFeed
from rss_mailer.models.feed import ScraperTemplate

logger = get_logger(__name__)


def _select(item: Tag, selector: Optional[str]) -> Optional[Tag]:
    if not selector:
        return None
    return item.select_one(selector)


def _text(item: Tag, selector: Optional[str]) -> Optional[str]:
    element = _select(item, selector)
    if element is None:
        return None
    text = " ".join(element.get_text(" ").split())
    return text or None


def _inner_html(item: Tag, selector: Optional[str]) -> Optional[str]:
    element = _select(item, selector)
    if element is None:
        return None
    html = element.decode_contents().strip()
    return html or None


def _href(item: Tag, selector: Optional[str], base_url: str) -> Optional[str]:
    if not selector:
        return None
    element = item.select_one(selector)
    if element is None and item.name == "a":
        # The item itself is the link
        element = item
    if element is None:
        return None
    href = element.get("href")
    if not href or not str(href).strip():
        return None
    return urljoin(base_url, str(href).strip())


def _parse_date(value: Optional[str]) -> Optional[datetime]:
    """Parse ISO 8601 or RFC 2822 dates, as found in ``<time>`` tags."""
    if not value:
        return None
    try:
        date = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    except ValueError:
        try:
            date = parsedate_to_datetime(value.strip())
        except (TypeError, ValueError):
            logger.debug(f"Failed to parse date: {value}")
            return None
    if date.tzinfo is None:
        date = date.replace(tzinfo=timezone.utc)
    return date


def _date(item: Tag, selector: Optional[str]) -> Optional[datetime]:
    element = _select(item, selector)
    if element is None:
        return None
    return _parse_date(element.get("datetime") or element.get_text())


def scrape(base_url: str, template: ScraperTemplate, content: bytes) -> ParsedFeed:
    """Extract a feed from an HTML page.

    Args:
        base_url: URL of the page, for relative links
        template: Selectors locating entries and their fields
        content: Raw HTML

    Returns:
        ParsedFeed with one entry per element matching ``template.item``
    """
    soup = BeautifulSoup(content, "html.parser")

    entries = []
    for item in soup.select(template.item):
        entries.append(
            ParsedEntry(
                id=_text(item, template.id),
                title=_text(item, template.title),
                link=_href(item, template.link, base_url),
                summary=_inner_html(item, template.summary),
                content=_inner_html(item, template.content),
                date=_date(item, template.date),
            )
        )

    title = soup.title.get_text().strip() if soup.title else None
    icon = soup.select_one("link[rel~=icon]")

    logger.debug(f"Scraped {len(entries)} entries from {base_url}")

    return ParsedFeed(
        title=title or None,
        link=base_url,
        icon=urljoin(base_url, icon["href"]) if icon is not None and icon.get("href") else None,
        entries=tuple(entries),
    )
