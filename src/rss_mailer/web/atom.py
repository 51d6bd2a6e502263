"""
Atom document generation for the aggregated feed.
"""

from datetime import datetime, timezone
from typing import Optional
from xml.etree import ElementTree as ET

from rss_mailer.models.entry import ParsedEntry

ATOM_NS = "http://www.w3.org/2005/Atom"

ET.register_namespace("", ATOM_NS)


def _tag(name: str) -> str:
    return f"{{{ATOM_NS}}}{name}"


def _text(parent: ET.Element, name: str, text: str, **attrs) -> ET.Element:
    element = ET.SubElement(parent, _tag(name), attrs)
    element.text = text
    return element


def _date_string(date: Optional[datetime]) -> str:
    date = date or datetime.fromtimestamp(0, tz=timezone.utc)
    return date.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def generate_atom(
    title: str,
    entries: list[ParsedEntry],
    link: Optional[str] = None,
    updated: Optional[datetime] = None,
) -> bytes:
    """Serialize entries as an Atom feed.

    Entries are written in the given order. ``content`` is written as an
    HTML text construct.

    Returns:
        UTF-8 encoded XML document
    """
    feed = ET.Element(_tag("feed"))
    _text(feed, "title", title)
    if link:
        ET.SubElement(feed, _tag("link"), {"href": link})
    _text(feed, "id", link or "urn:rss-mailer:aggregate")
    _text(feed, "updated", _date_string(updated or datetime.now(timezone.utc)))

    for entry in entries:
        element = ET.SubElement(feed, _tag("entry"))
        author = ET.SubElement(element, _tag("author"))
        _text(author, "name", ", ".join(a.name for a in entry.authors) or "unknown")
        _text(element, "title", entry.title or "")
        _text(element, "content", entry.content or "", type="html")
        _text(element, "id", entry.id or "")
        if entry.link:
            ET.SubElement(element, _tag("link"), {"href": entry.link})
        _text(element, "updated", _date_string(entry.date))
        for category in entry.categories:
            ET.SubElement(element, _tag("category"), {"term": category, "label": category})

    ET.indent(feed)
    return ET.tostring(feed, encoding="utf-8", xml_declaration=True)
