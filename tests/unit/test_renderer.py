"""Unit tests for mail body rendering."""

from datetime import datetime, timezone

from rss_mailer.core.renderer import (
    format_size,
    render_entry_html,
    render_entry_text,
    render_mail_body,
)
from rss_mailer.models import Attachment, Author, ParsedEntry, ParsedFeed

FEED = ParsedFeed(
    title="Example Feed",
    link="https://example.com/",
    icon="https://example.com/icon.png",
)

ENTRY = ParsedEntry(
    id="1",
    title="Hello <world>",
    link="https://example.com/1",
    authors=(Author("Alice", "https://example.com/alice"),),
    summary="<em>short</em>",
    content="<div>long</div>",
    date=datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc),
    categories=("news", "tech"),
    attachments=(Attachment("https://example.com/files/ep1.mp3", 2048, "audio/mpeg"),),
)


class TestFormatSize:
    """Tests for format_size."""

    def test_units(self):
        """Test byte sizes pick a readable unit."""
        assert format_size(512) == "512 B"
        assert format_size(2048) == "2.0 KB"
        assert format_size(5 * 1024 * 1024) == "5.0 MB"


class TestRenderEntryHtml:
    """Tests for the HTML block of an entry."""

    def test_header(self):
        """Test the Via header lists feed, categories, date, authors and label."""
        html = str(render_entry_html(FEED, ENTRY, "Sender", "work"))

        assert '<a href="https://example.com/">' in html
        assert 'src="https://example.com/icon.png"' in html
        assert "Example Feed</a> (news, tech)" in html
        assert "on 2024-03-15 10:00" in html
        assert '<a href="https://example.com/alice">Alice</a>' in html
        assert "with label work" in html

    def test_title_escaped_and_fragments_kept(self):
        """Test the title is escaped while summary and content stay HTML."""
        html = str(render_entry_html(FEED, ENTRY, "Sender"))

        assert "Hello &lt;world&gt;" in html
        assert "<p><em>short</em></p>" in html
        assert "<div>long</div>" in html

    def test_attachment(self):
        """Test attachments are linked by file name with size and type."""
        html = str(render_entry_html(FEED, ENTRY, "Sender"))

        assert '<a href="https://example.com/files/ep1.mp3">ep1.mp3</a> (2.0 KB, audio/mpeg)' in html

    def test_sender_used_without_feed_title(self):
        """Test the sender names the feed when it has no title."""
        html = str(render_entry_html(ParsedFeed(), ParsedEntry(id="x"), "Sender"))

        assert "Via Sender" in html


class TestRenderMailBody:
    """Tests for render_mail_body."""

    def test_text_body(self):
        """Test the text body holds title, link and content text."""
        text = render_entry_text(FEED, ENTRY, "Sender")

        assert text.startswith("Via Example Feed (news, tech)")
        assert "Hello <world>" in text
        assert "https://example.com/1" in text
        assert "short" in text and "long" in text
        assert "<div>" not in text

    def test_several_entries(self):
        """Test entries are separated in both bodies."""
        other = ParsedEntry(id="2", title="Other")

        html, text = render_mail_body(FEED, [ENTRY, other], "Sender")

        assert html.startswith("<html><body>")
        assert html.count("<hr/>") == 1
        assert "\n\n----\n\n" in text
        assert isinstance(html, str)
