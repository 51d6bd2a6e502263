"""Unit tests for the feed parser."""

from datetime import datetime, timezone

import pytest

from rss_mailer.core.parser import FeedParser, ParsingError, parse_feed

from conftest import SAMPLE_ATOM_XML, SAMPLE_RSS_XML

FEED_URL = "https://example.com/feed.xml"


class TestParseRss:
    """Tests for RSS 2.0 documents."""

    def test_feed_metadata(self):
        """Test the feed title and link."""
        feed = parse_feed(FEED_URL, SAMPLE_RSS_XML)

        assert feed.title == "Example Blog"
        assert feed.link == "https://example.com/"
        assert len(feed.entries) == 2

    def test_entry_fields(self):
        """Test id, title, resolved link, date and categories."""
        entry = parse_feed(FEED_URL, SAMPLE_RSS_XML).entries[0]

        assert entry.id == "https://example.com/posts/1"
        assert entry.title == "First post"
        assert entry.link == "https://example.com/posts/1"
        assert entry.date == datetime(2024, 3, 15, 10, 0, tzinfo=timezone.utc)
        assert entry.categories == ("news",)
        assert "world" in entry.summary

    def test_enclosure(self):
        """Test enclosures become attachments."""
        entry = parse_feed(FEED_URL, SAMPLE_RSS_XML).entries[0]

        assert len(entry.attachments) == 1
        attachment = entry.attachments[0]
        assert attachment.url == "https://example.com/audio/episode1.mp3"
        assert attachment.size == 2048
        assert attachment.mime_type == "audio/mpeg"

    def test_entry_order(self):
        """Test entries keep document order."""
        feed = parse_feed(FEED_URL, SAMPLE_RSS_XML)

        assert [e.title for e in feed.entries] == ["First post", "Second post"]


class TestParseAtom:
    """Tests for Atom documents."""

    def test_atom_entry(self):
        """Test content, author and id of an Atom entry."""
        feed = parse_feed(FEED_URL, SAMPLE_ATOM_XML)
        entry = feed.entries[0]

        assert feed.title == "Atom Example"
        assert entry.id == "urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a"
        assert entry.authors[0].name == "Bob"
        assert "Full content" in entry.content
        assert entry.summary is None


class TestParsingErrors:
    """Tests for documents that are not feeds."""

    def test_not_a_feed(self):
        """Test a non-feed document raises ParsingError."""
        with pytest.raises(ParsingError) as exc_info:
            parse_feed(FEED_URL, b"this is not xml at all")

        assert len(exc_info.value.position) == 2

    def test_error_message(self):
        """Test the error string holds the position."""
        error = ParsingError((3, 7), "mismatched tag")

        assert str(error) == "3:7: mismatched tag"
        assert error.message == "mismatched tag"


class TestFeedParser:
    """Tests for FeedParser normalization."""

    def test_title_normalized(self):
        """Test whitespace is collapsed and long titles are kept whole."""
        parser = FeedParser()

        assert parser._normalize_title("  a \n b  ") == "a b"
        assert parser._normalize_title("x" * 600) == "x" * 600
        assert parser._normalize_title("") is None
