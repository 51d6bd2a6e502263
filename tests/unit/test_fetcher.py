"""Unit tests for the HTTP fetcher."""

import asyncio

import httpx
import pytest

from rss_mailer.core.fetcher import FetchError, FetchStats, HttpFetcher, create_fetcher


def make_fetcher(handler, **kwargs) -> HttpFetcher:
    kwargs.setdefault("max_retries", 2)
    kwargs.setdefault("retry_delay_seconds", 0)
    return HttpFetcher(transport=httpx.MockTransport(handler), **kwargs)


class TestFetchStats:
    """Tests for FetchStats dataclass."""

    def test_success_rate(self):
        """Test success rate calculation."""
        stats = FetchStats()
        assert stats.success_rate == 0.0

        stats.add_success(10)
        stats.add_failure(FetchError(404, "HTTP 404"))
        stats.add_failure(FetchError(None, "Timeout"))

        assert stats.success_rate == pytest.approx(1 / 3)
        assert stats.total_bytes == 10
        assert stats.errors_by_code == {"404": 1, "network": 1}


class TestHttpFetcher:
    """Tests for HttpFetcher."""

    def test_fetch_success(self):
        """Test a successful fetch returns the body."""
        seen_headers = {}

        def handler(request):
            seen_headers.update(request.headers)
            return httpx.Response(200, content=b"<rss/>")

        fetcher = make_fetcher(handler, user_agent="test-agent")

        assert asyncio.run(fetcher("https://example.com/feed")) == b"<rss/>"
        assert seen_headers["user-agent"] == "test-agent"
        assert fetcher.stats.successful_fetches == 1

    def test_client_error_not_retried(self):
        """Test 4xx responses fail at once with their status code."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(404)

        fetcher = make_fetcher(handler)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(fetcher.fetch("https://example.com/missing"))

        assert exc_info.value.code == 404
        assert len(calls) == 1

    def test_server_error_retried(self):
        """Test 5xx responses are retried until success."""
        responses = [httpx.Response(503), httpx.Response(200, content=b"ok")]

        fetcher = make_fetcher(lambda request: responses.pop(0))

        assert asyncio.run(fetcher.fetch("https://example.com/flaky")) == b"ok"

    def test_retries_exhausted(self):
        """Test the last error is raised after every attempt failed."""
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        fetcher = make_fetcher(handler, max_retries=2)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(fetcher.fetch("https://example.com/broken"))

        assert exc_info.value.code == 500
        assert len(calls) == 3
        assert fetcher.stats.failed_fetches == 1

    def test_network_error_has_no_code(self):
        """Test connection failures give a FetchError without code."""
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        fetcher = make_fetcher(handler, max_retries=0)

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(fetcher.fetch("https://unreachable.example.com/"))

        assert exc_info.value.code is None

    def test_file_url(self, tmp_path):
        """Test file:// URLs are read from disk."""
        path = tmp_path / "feed.xml"
        path.write_bytes(b"<feed/>")

        fetcher = create_fetcher()

        assert asyncio.run(fetcher.fetch(path.as_uri())) == b"<feed/>"

    def test_missing_file(self, tmp_path):
        """Test a missing file is a 404."""
        fetcher = create_fetcher()

        with pytest.raises(FetchError) as exc_info:
            asyncio.run(fetcher.fetch((tmp_path / "nope.xml").as_uri()))

        assert exc_info.value.code == 404

    def test_concurrency_cap(self):
        """Test no more than max_concurrency requests run at once."""
        running = 0
        peak = 0

        async def slow_fetch_http(url):
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0.01)
            running -= 1
            return httpx.Response(200, content=url.encode(), request=httpx.Request("GET", url))

        fetcher = make_fetcher(lambda request: httpx.Response(200), max_concurrency=2)
        fetcher._fetch_http = slow_fetch_http

        async def run():
            return await asyncio.gather(*(fetcher.fetch(f"https://e.com/{n}") for n in range(6)))

        results = asyncio.run(run())

        assert results == [f"https://e.com/{n}".encode() for n in range(6)]
        assert peak == 2

    def test_reusable_across_event_loops(self):
        """Test one fetcher works in successive asyncio.run calls."""
        fetcher = make_fetcher(lambda request: httpx.Response(200, content=b"x"))

        assert asyncio.run(fetcher.fetch("https://example.com/a")) == b"x"
        assert asyncio.run(fetcher.fetch("https://example.com/b")) == b"x"
