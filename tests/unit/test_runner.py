"""Unit tests for the batch runner and the command line."""

from unittest.mock import patch

import pytest

from rss_mailer.cli import build_parser, describe_refresh, format_mail, main
from rss_mailer.models import At, AtWeekly, Every, FeedId, FeedSource, FeedSpec, Mail, Options
from rss_mailer.models.log import UpdateStatus
from rss_mailer.runner import run_cycle
from rss_mailer.storage.repositories import OutboxRepository, StateRepository

from conftest import NOW, SAMPLE_RSS_XML

RSS_URL = "https://example.com/feed.xml"


class FakeFetch:
    def __init__(self, body=SAMPLE_RSS_XML):
        self.body = body

    async def __call__(self, url):
        return self.body


def rss_spec(**options) -> FeedSpec:
    options.setdefault("refresh", Every(1))
    return FeedSpec(FeedId("rss"), FeedSource(RSS_URL), Options(**options))


class TestRunCycle:
    """Tests for run_cycle."""

    def test_first_cycle_persists_state(self, db_manager):
        """Test the first cycle stores state and queues nothing."""
        result = run_cycle(now=NOW, feeds=[rss_spec()], db_manager=db_manager, fetch=FakeFetch())

        assert result.mails == []
        assert result.logs[0].status is UpdateStatus.UPDATED
        with db_manager.session() as session:
            state = StateRepository(session).load()
        assert state.get_next_update(FeedId("rss")) == NOW + 3600
        assert len(state.get_previous_entries(FeedId("rss"))) == 2

    def test_new_entries_queued(self, db_manager):
        """Test mails of a later cycle land in the outbox."""
        one_entry = SAMPLE_RSS_XML.replace(b"<item>", b"<!--", 1).replace(b"</item>", b"-->", 1)
        run_cycle(now=NOW, feeds=[rss_spec()], db_manager=db_manager, fetch=FakeFetch(one_entry))

        result = run_cycle(
            now=NOW + 7200, feeds=[rss_spec()], db_manager=db_manager, fetch=FakeFetch()
        )

        assert [m.subject for m in result.mails] == ["First post"]
        assert len(result.mail_ids) == 1
        with db_manager.session() as session:
            assert [m.subject for m in OutboxRepository(session).list_pending()] == ["First post"]

    def test_uptodate_feed_not_fetched(self, db_manager):
        """Test a second cycle before the next update does nothing."""
        run_cycle(now=NOW, feeds=[rss_spec()], db_manager=db_manager, fetch=FakeFetch())

        result = run_cycle(now=NOW + 60, feeds=[rss_spec()], db_manager=db_manager, fetch=FakeFetch(b""))

        assert result.logs[0].status is UpdateStatus.UPTODATE
        assert result.errors == []


class TestCli:
    """Tests for the command line interface."""

    def test_describe_refresh(self):
        """Test refresh policies are shown readably."""
        assert describe_refresh(Every(1.5)) == "every 1.5h"
        assert describe_refresh(At(8, 5)) == "at 08:05"
        assert describe_refresh(AtWeekly(6, 10, 0)) == "Sunday at 10:00"

    def test_format_mail(self):
        """Test mails print with headers and text body."""
        mail = Mail("Sender", "Subject", "<p>x</p>", "body", NOW, to="me@example.com")

        assert format_mail(mail) == "From: Sender\nTo: me@example.com\nSubject: Subject\n\nbody"

    def test_command_required(self):
        """Test a subcommand is required."""
        with pytest.raises(SystemExit):
            build_parser().parse_args([])

    def test_list_feeds(self, tmp_path, capsys):
        """Test list-feeds prints every feed."""
        feeds_file = tmp_path / "list.yaml"
        feeds_file.write_text(
            "- url: https://a.example.com/feed\n  bundle: true\n", encoding="utf-8"
        )

        assert main(["--feeds", str(feeds_file), "list-feeds"]) == 0

        out = capsys.readouterr().out
        assert "https://a.example.com/feed [bundle]" in out
        assert "1 feeds" in out

    def test_invalid_feed_list(self, tmp_path):
        """Test an invalid feed list exits with status 2."""
        feeds_file = tmp_path / "bad.yaml"
        feeds_file.write_text("- refresh: daily\n", encoding="utf-8")

        assert main(["--feeds", str(feeds_file), "list-feeds"]) == 2

    def test_check_prints_summary(self, tmp_path, capsys):
        """Test check runs one cycle and prints a summary."""
        feeds_file = tmp_path / "feeds.yaml"
        feeds_file.write_text(f"- url: {RSS_URL}\n", encoding="utf-8")

        with patch("rss_mailer.runner.check_all") as check_all:
            async def fake_check_all(now, state, feeds, fetch=None):
                from rss_mailer.core.checker import CheckResult
                return CheckResult(state=state)

            check_all.side_effect = fake_check_all
            code = main(["--feeds", str(feeds_file), "--db-path", str(tmp_path / "cli.db"), "check"])

        assert code == 0
        assert "0 feeds checked" in capsys.readouterr().out
