"""Unit tests for mail batching."""

from unittest.mock import Mock

from rss_mailer.core.mailer import prepare_bundle, prepare_mail, prepare_mails, sender_name
from rss_mailer.models import Options, ParsedEntry, ParsedFeed

from conftest import NOW, make_entry, make_feed

FEED_URL = "https://example.com/feed.xml"


def fake_render():
    return Mock(return_value=("<p>html</p>", "text"))


class TestSenderName:
    """Tests for sender name resolution."""

    def test_priority(self):
        """Test title option, then feed title, then host, then URL."""
        feed = ParsedFeed(title="Feed title")

        assert sender_name(FEED_URL, feed, Options(title="Custom")) == "Custom"
        assert sender_name(FEED_URL, feed, Options()) == "Feed title"
        assert sender_name(FEED_URL, ParsedFeed(), Options()) == "example.com"
        assert sender_name("not a url", ParsedFeed(), Options()) == "not a url"


class TestPrepareMails:
    """Tests for per-entry mails."""

    def test_one_mail_per_entry(self):
        """Test each entry gets its own mail titled after it."""
        render = fake_render()
        entries = [make_entry(1), make_entry(2)]

        mails = prepare_mails(NOW, "Sender", make_feed(*entries), Options(), entries, render)

        assert [m.subject for m in mails] == ["Entry 1", "Entry 2"]
        assert all(m.sender == "Sender" and m.timestamp == NOW for m in mails)
        assert render.call_count == 2

    def test_untitled_entry_subject(self):
        """Test the fallback subject for an entry without title."""
        entry = ParsedEntry(id="x")

        mails = prepare_mails(NOW, "Sender", make_feed(entry), Options(), [entry], fake_render())

        assert mails[0].subject == "New entry from Sender"

    def test_bundles_above_max_entries(self):
        """Test 3 entries with max_entries=2 give one bundled mail."""
        entries = [make_entry(1), make_entry(2), make_entry(3)]
        options = Options(max_entries=2)

        mails = prepare_mails(NOW, "Sender", make_feed(*entries), options, entries, fake_render())

        assert len(mails) == 1
        assert mails[0].subject == "3 entries from Sender"

    def test_single_entry_below_max_entries(self):
        """Test 1 entry with max_entries=2 keeps the entry title."""
        entries = [make_entry(1)]

        mails = prepare_mails(
            NOW, "Sender", make_feed(*entries), Options(max_entries=2), entries, fake_render()
        )

        assert len(mails) == 1
        assert mails[0].subject == "Entry 1"

    def test_at_max_entries(self):
        """Test exactly max_entries entries are still mailed one by one."""
        entries = [make_entry(1), make_entry(2)]

        mails = prepare_mails(
            NOW, "Sender", make_feed(*entries), Options(max_entries=2), entries, fake_render()
        )

        assert len(mails) == 2

    def test_no_entries(self):
        """Test no entries give no mails."""
        assert prepare_mails(NOW, "Sender", make_feed(), Options(), [], fake_render()) == []


class TestPrepareBundle:
    """Tests for bundled mails."""

    def test_empty(self):
        """Test zero entries give zero mails."""
        assert prepare_bundle(NOW, "Sender", make_feed(), Options(), [], fake_render()) == []

    def test_single_entry_keeps_title(self):
        """Test one entry reuses its own title."""
        entries = [make_entry(7)]

        mails = prepare_bundle(NOW, "Sender", make_feed(*entries), Options(), entries, fake_render())

        assert mails[0].subject == "Entry 7"

    def test_many_entries(self):
        """Test several entries are rendered into one mail."""
        render = fake_render()
        entries = [make_entry(1), make_entry(2)]
        feed = make_feed(*entries)

        mails = prepare_bundle(NOW, "Sender", feed, Options(label="work"), entries, render)

        assert len(mails) == 1
        assert mails[0].subject == "2 entries from Sender"
        render.assert_called_once_with(feed, entries, "Sender", "work")

    def test_recipient_override(self):
        """Test the to option is carried to the mail."""
        mail = prepare_mail(
            NOW, "Subject", "Sender", make_feed(), Options(to="me@example.com"), [], fake_render()
        )

        assert mail.to == "me@example.com"
        assert mail.body_html == "<p>html</p>"
        assert mail.body_text == "text"
