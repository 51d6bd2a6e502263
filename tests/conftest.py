"""Shared fixtures for the test suite."""

from datetime import datetime, timezone

import pytest

from rss_mailer.config import Config, DatabaseConfig, LoggingConfig, set_config
from rss_mailer.models.entry import ParsedEntry, ParsedFeed

# 2024-03-15 19:00:00 UTC, a Friday
NOW = 1710529200

SAMPLE_RSS_XML = b"""<?xml version="1.0" encoding="UTF-8"?>
<rss version="2.0" xmlns:media="http://search.yahoo.com/mrss/">
  <channel>
    <title>Example Blog</title>
    <link>https://example.com/</link>
    <description>Posts from the example blog</description>
    <item>
      <title>First post</title>
      <link>/posts/1</link>
      <guid>https://example.com/posts/1</guid>
      <description>&lt;p&gt;Hello &lt;b&gt;world&lt;/b&gt;&lt;/p&gt;</description>
      <author>alice@example.com (Alice)</author>
      <category>news</category>
      <pubDate>Fri, 15 Mar 2024 10:00:00 GMT</pubDate>
      <enclosure url="https://example.com/audio/episode1.mp3" length="2048" type="audio/mpeg"/>
    </item>
    <item>
      <title>Second post</title>
      <link>https://example.com/posts/2</link>
      <guid>https://example.com/posts/2</guid>
      <description>Sponsored content about python</description>
      <pubDate>Thu, 14 Mar 2024 10:00:00 GMT</pubDate>
    </item>
  </channel>
</rss>
"""

SAMPLE_ATOM_XML = b"""<?xml version="1.0" encoding="utf-8"?>
<feed xmlns="http://www.w3.org/2005/Atom">
  <title>Atom Example</title>
  <link href="https://atom.example.org/"/>
  <id>urn:uuid:60a76c80-d399-11d9-b93C-0003939e0af6</id>
  <updated>2024-03-15T12:00:00Z</updated>
  <entry>
    <title>Atom entry</title>
    <link href="https://atom.example.org/entries/1"/>
    <id>urn:uuid:1225c695-cfb8-4ebb-aaaa-80da344efa6a</id>
    <updated>2024-03-15T12:00:00Z</updated>
    <author><name>Bob</name></author>
    <content type="html">&lt;p&gt;Full content&lt;/p&gt;</content>
  </entry>
</feed>
"""

SAMPLE_HTML = b"""<!DOCTYPE html>
<html>
<head>
  <title>Example News</title>
  <link rel="icon" href="/favicon.ico">
</head>
<body>
  <article class="post">
    <h2>Scraped one</h2>
    <a class="more" href="/news/1">Read more</a>
    <time datetime="2024-03-15T08:30:00Z">March 15</time>
    <div class="summary"><p>First summary</p></div>
  </article>
  <article class="post">
    <h2>Scraped two</h2>
    <a class="more" href="https://other.example.com/news/2">Read more</a>
    <div class="summary">Second summary</div>
  </article>
</body>
</html>
"""


def make_entry(n: int, **kwargs) -> ParsedEntry:
    """An entry with id, title and link derived from ``n``."""
    fields = {
        "id": f"entry-{n}",
        "title": f"Entry {n}",
        "link": f"https://example.com/entries/{n}",
        "summary": f"<p>Summary {n}</p>",
        "date": datetime(2024, 3, n % 28 + 1, tzinfo=timezone.utc),
    }
    fields.update(kwargs)
    return ParsedEntry(**fields)


def make_feed(*entries: ParsedEntry, title="Example Feed") -> ParsedFeed:
    return ParsedFeed(title=title, link="https://example.com/", entries=tuple(entries))


@pytest.fixture(autouse=True)
def test_config(tmp_path):
    """Isolated configuration writing only under tmp_path."""
    config = Config(
        database=DatabaseConfig(path=str(tmp_path / "data" / "test.db")),
        logging=LoggingConfig(file_path=str(tmp_path / "logs" / "test.log"), file_enabled=False),
        feeds_file=str(tmp_path / "feeds.yaml"),
        data_dir=str(tmp_path / "data"),
    )
    set_config(config)
    yield config
    set_config(None)


@pytest.fixture
def db_manager():
    """In-memory database with tables created."""
    from rss_mailer.storage.database import DatabaseManager

    manager = DatabaseManager(":memory:")
    manager.init_db()
    yield manager
    manager.close()


@pytest.fixture
def db_session(db_manager):
    """Session on the in-memory database."""
    with db_manager.session() as session:
        yield session
