"""Tests for the example hook sets and stub fetch capabilities.

Key behaviors tested:
- LoggingHooks counts and logs requests, successes and failures
- MockFetch serves canned responses with the canonical request attached
- MockFetch falls back to another capability, or raises on a miss
"""

import logging

import pytest

from fetch_intercept import (
    FetchInterceptor,
    FetchScope,
    InterceptorRegistry,
    TransportException,
)
from fetch_intercept.common.example_hooks import LoggingHooks, MockFetch
from tests.utils import StubFetch, make_response


@pytest.fixture
def mock_fetch() -> MockFetch:
    return MockFetch(
        {
            "http://x/ok": make_response(200, url="http://x/ok", text="fine"),
            "http://x/gone": make_response(404, url="http://x/gone"),
        }
    )


class TestLoggingHooks:
    """Tests for LoggingHooks."""

    @pytest.mark.asyncio
    async def test_counts_outcomes(
        self, mock_fetch: MockFetch, registry: InterceptorRegistry
    ) -> None:
        """LoggingHooks shall count every request and its outcome."""
        hooks = LoggingHooks()
        scope = FetchScope(fetch=mock_fetch)
        FetchInterceptor.register(hooks, scope=scope, registry=registry)

        await scope.fetch("http://x/ok")
        await scope.fetch("http://x/gone")
        with pytest.raises(TransportException):
            await scope.fetch("http://x/missing")

        assert hooks.request_count == 3
        assert hooks.success_count == 1
        assert hooks.failure_count == 2

    @pytest.mark.asyncio
    async def test_logs_with_prefix(
        self,
        mock_fetch: MockFetch,
        registry: InterceptorRegistry,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """LoggingHooks shall log requests and failures with its prefix."""
        scope = FetchScope(fetch=mock_fetch)
        FetchInterceptor.register(
            LoggingHooks(prefix="[test] "), scope=scope, registry=registry
        )

        with caplog.at_level(logging.INFO):
            await scope.fetch("http://x/ok", method="post")
            await scope.fetch("http://x/gone")

        assert "[test] Request #1: POST http://x/ok" in caplog.text
        assert "[test] Response: 200 from http://x/ok" in caplog.text
        assert "[test] Failed GET http://x/gone: 404" in caplog.text

    @pytest.mark.asyncio
    async def test_logs_exception_failures(
        self,
        mock_fetch: MockFetch,
        registry: InterceptorRegistry,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        """A raised error shall be logged with its type at WARNING."""
        scope = FetchScope(fetch=mock_fetch)
        FetchInterceptor.register(
            LoggingHooks(), scope=scope, registry=registry
        )

        with caplog.at_level(logging.WARNING):
            with pytest.raises(TransportException):
                await scope.fetch("http://x/missing")

        assert "TransportException" in caplog.text
        assert caplog.records[-1].levelno == logging.WARNING


class TestMockFetch:
    """Tests for MockFetch."""

    @pytest.mark.asyncio
    async def test_returns_mock_with_request_attached(
        self, mock_fetch: MockFetch
    ) -> None:
        """A mocked URL shall return a copy carrying the request."""
        response = await mock_fetch("http://x/ok", method="GET")

        assert response.text == "fine"
        assert response.request is mock_fetch.requests[0]
        assert response is not mock_fetch.mock_responses["http://x/ok"]
        assert mock_fetch.mock_hits == 1

    @pytest.mark.asyncio
    async def test_miss_without_fallback_raises(
        self, mock_fetch: MockFetch
    ) -> None:
        """A URL without a mock shall raise TransportException."""
        with pytest.raises(TransportException) as excinfo:
            await mock_fetch("http://x/missing")

        assert excinfo.value.url == "http://x/missing"
        assert mock_fetch.mock_misses == 1

    @pytest.mark.asyncio
    async def test_miss_uses_fallback(self) -> None:
        """A URL without a mock shall be passed to the fallback."""
        fallback = StubFetch(make_response(201))
        mock_fetch = MockFetch({}, fallback=fallback)

        response = await mock_fetch("http://x/other")

        assert response is fallback.response
        assert fallback.calls == mock_fetch.requests
