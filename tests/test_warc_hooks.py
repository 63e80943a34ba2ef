"""Tests for the WARC capture hooks and replay fetch.

Key behaviors tested:
- WarcCaptureHooks records ok and non-ok responses through an interceptor
- Supports compressed WARC (.warc.gz)
- WarcReplayFetch replays recorded status, headers and text
- The replay key covers method, URL and body
- A missing WARC file gives an empty cache
"""

import logging
from pathlib import Path

import pytest

from fetch_intercept import (
    FetchScope,
    InterceptorRegistry,
    TransportException,
    intercepted,
)
from fetch_intercept.common.example_hooks import MockFetch
from fetch_intercept.common.warc_hooks import (
    WarcCaptureHooks,
    WarcReplayFetch,
    cache_key,
)
from tests.utils import make_response


@pytest.fixture
def mock_fetch() -> MockFetch:
    return MockFetch(
        {
            "http://x/cases?page=1": make_response(
                200,
                url="http://x/cases?page=1",
                text="<html>case list</html>",
                headers={"Content-Type": "text/html"},
            ),
            "http://x/gone": make_response(
                404, url="http://x/gone", text="not found"
            ),
        }
    )


async def capture_traffic(
    warc_path: Path, mock_fetch: MockFetch, registry: InterceptorRegistry
) -> WarcCaptureHooks:
    scope = FetchScope(fetch=mock_fetch)
    with WarcCaptureHooks(warc_path) as capture:
        with intercepted(capture, scope=scope, registry=registry):
            await scope.fetch("http://x/cases?page=1")
            await scope.fetch("http://x/gone")
            await scope.fetch(
                "http://x/cases?page=1", method="POST", body="q=smith"
            )
    return capture


class TestWarcCapture:
    """Tests for WarcCaptureHooks recording."""

    @pytest.mark.asyncio
    async def test_capture_records_to_compressed_warc(
        self,
        tmp_path: Path,
        mock_fetch: MockFetch,
        registry: InterceptorRegistry,
    ) -> None:
        """WarcCaptureHooks shall write gzip records for .warc.gz paths."""
        warc_path = tmp_path / "traffic.warc.gz"

        capture = await capture_traffic(warc_path, mock_fetch, registry)

        assert capture.record_count == 3
        with warc_path.open("rb") as f:
            assert f.read(2) == b"\x1f\x8b"  # gzip magic bytes

    @pytest.mark.asyncio
    async def test_capture_skips_raised_errors(
        self,
        tmp_path: Path,
        mock_fetch: MockFetch,
        registry: InterceptorRegistry,
    ) -> None:
        """Errors without a response shall not be recorded."""
        scope = FetchScope(fetch=mock_fetch)

        with WarcCaptureHooks(tmp_path / "errors.warc") as capture:
            with intercepted(capture, scope=scope, registry=registry):
                with pytest.raises(TransportException):
                    await scope.fetch("http://x/missing")

        assert capture.record_count == 0


class TestWarcReplay:
    """Tests for WarcReplayFetch."""

    @pytest.mark.asyncio
    async def test_replays_recorded_responses(
        self,
        tmp_path: Path,
        mock_fetch: MockFetch,
        registry: InterceptorRegistry,
    ) -> None:
        """Recorded responses shall replay with their status and text."""
        warc_path = tmp_path / "traffic.warc.gz"
        await capture_traffic(warc_path, mock_fetch, registry)

        replay = WarcReplayFetch(warc_path)
        response = await replay("http://x/cases?page=1")

        assert response.status_code == 200
        assert response.reason_phrase == "OK"
        assert response.text == "<html>case list</html>"
        assert response.headers["Content-Type"] == "text/html"
        assert response.request is not None
        assert replay.cache_hits == 1

    @pytest.mark.asyncio
    async def test_replays_non_ok_responses(
        self,
        tmp_path: Path,
        mock_fetch: MockFetch,
        registry: InterceptorRegistry,
    ) -> None:
        """Responses recorded by the failure hook shall replay too."""
        warc_path = tmp_path / "traffic.warc"
        await capture_traffic(warc_path, mock_fetch, registry)

        response = await WarcReplayFetch(warc_path)("http://x/gone")

        assert response.status_code == 404
        assert not response.ok
        assert response.text == "not found"

    @pytest.mark.asyncio
    async def test_body_is_part_of_the_key(
        self,
        tmp_path: Path,
        mock_fetch: MockFetch,
        registry: InterceptorRegistry,
    ) -> None:
        """A request with a different body shall miss the cache."""
        warc_path = tmp_path / "traffic.warc.gz"
        await capture_traffic(warc_path, mock_fetch, registry)
        replay = WarcReplayFetch(warc_path)

        hit = await replay(
            "http://x/cases?page=1", method="POST", body="q=smith"
        )
        with pytest.raises(TransportException):
            await replay("http://x/cases?page=1", method="POST", body="q=doe")

        assert hit.status_code == 200
        assert replay.cache_hits == 1
        assert replay.cache_misses == 1

    def test_missing_file_gives_empty_cache(
        self, tmp_path: Path, caplog: pytest.LogCaptureFixture
    ) -> None:
        """A missing WARC file shall log a warning and cache nothing."""
        with caplog.at_level(logging.WARNING):
            replay = WarcReplayFetch(tmp_path / "absent.warc.gz")

        assert "WARC file not found" in caplog.text
        assert replay.cache_hits == replay.cache_misses == 0


class TestCacheKey:
    """Tests for cache_key()."""

    def test_key_is_stable_and_body_sensitive(self) -> None:
        """Equal requests shall share a key; a different body shall not."""
        assert cache_key("GET", "http://x/y") == cache_key("GET", "http://x/y")
        assert cache_key("POST", "http://x/y", "a") == cache_key(
            "POST", "http://x/y", b"a"
        )
        assert cache_key("POST", "http://x/y", "a") != cache_key(
            "POST", "http://x/y", "b"
        )
        assert cache_key("GET", "http://x/y") != cache_key("HEAD", "http://x/y")
