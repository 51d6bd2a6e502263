"""End to end check cycles over local feed files.

Feeds are served from ``file://`` URLs so the real fetcher, parser and
scraper run without network access.
"""

import pytest

from rss_mailer.feeds_config import load_feeds
from rss_mailer.models.log import UpdateStatus
from rss_mailer.runner import run_cycle
from rss_mailer.storage.database import DatabaseManager
from rss_mailer.storage.repositories import OutboxRepository

from conftest import NOW, SAMPLE_ATOM_XML, SAMPLE_HTML, SAMPLE_RSS_XML

HOUR = 3600


@pytest.fixture
def site(tmp_path):
    """Local copies of an RSS feed, an Atom feed and an HTML page."""
    (tmp_path / "blog.xml").write_bytes(SAMPLE_RSS_XML)
    (tmp_path / "atom.xml").write_bytes(SAMPLE_ATOM_XML)
    (tmp_path / "news.html").write_bytes(SAMPLE_HTML)
    return tmp_path


@pytest.fixture
def feeds_file(site):
    path = site / "feeds.yaml"
    path.write_text(
        f"""
feeds:
  - url: {(site / "blog.xml").as_uri()}
    refresh: 1
    max_entries: 1
  - url: {(site / "atom.xml").as_uri()}
    refresh: 1
    filter: {{not: {{title: Atom}}}}
  - scraper:
      url: {(site / "news.html").as_uri()}
      item: article.post
      title: h2
      link: a.more
      summary: div.summary
    bundle: true
    refresh: 1
  - url: {(site / "missing.xml").as_uri()}
    refresh: 1
""",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def database(tmp_path):
    manager = DatabaseManager(str(tmp_path / "cycle.db"))
    yield manager
    manager.close()


class TestCheckCycle:
    """Tests for complete cycles."""

    def test_first_cycle_sends_nothing(self, feeds_file, database):
        """Test the first cycle only remembers entries."""
        result = run_cycle(now=NOW, feeds=load_feeds(str(feeds_file)), db_manager=database)

        statuses = [log.status for log in result.logs]
        assert statuses == [
            UpdateStatus.UPDATED,
            UpdateStatus.UPDATED,
            UpdateStatus.UPDATED,
            UpdateStatus.FETCH_ERROR,
        ]
        assert result.logs[3].code == 404
        assert result.mails == []

    def test_new_entries_after_first_cycle(self, site, feeds_file, database):
        """Test entries added between cycles are mailed once."""
        feeds = load_feeds(str(feeds_file))
        run_cycle(now=NOW, feeds=feeds, db_manager=database)

        blog = site / "blog.xml"
        blog.write_bytes(SAMPLE_RSS_XML.replace(
            b"<item>",
            b"<item><title>Third post</title><guid>https://example.com/posts/3</guid>"
            b"<link>https://example.com/posts/3</link></item><item>",
            1,
        ))
        news = site / "news.html"
        news.write_bytes(SAMPLE_HTML.replace(
            b"<body>",
            b'<body><article class="post"><h2>Scraped zero</h2><a class="more" href="/news/0">x</a></article>'
            b'<article class="post"><h2>Scraped minus</h2><a class="more" href="/news/-1">x</a></article>',
        ))

        second = run_cycle(now=NOW + 2 * HOUR, feeds=feeds, db_manager=database)

        subjects = [mail.subject for mail in second.mails]
        assert subjects == ["Third post", "2 entries from Example News"]
        assert second.logs[0].entries == 1
        assert second.logs[1].entries == 0

        third = run_cycle(now=NOW + 4 * HOUR, feeds=feeds, db_manager=database)

        assert third.mails == []
        with database.session() as session:
            assert OutboxRepository(session).count_pending() == 2

    def test_uptodate_between_refreshes(self, feeds_file, database):
        """Test feeds are not checked again before their refresh."""
        feeds = load_feeds(str(feeds_file))
        run_cycle(now=NOW, feeds=feeds, db_manager=database)

        result = run_cycle(now=NOW + 10, feeds=feeds, db_manager=database)

        assert all(log.status is UpdateStatus.UPTODATE for log in result.logs)
