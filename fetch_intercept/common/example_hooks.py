"""Example hook sets and stub fetch capabilities.

These demonstrate the hook protocols and can be used for testing,
debugging, and as templates for custom hooks. A hook set is any object
exposing some of the hook names as methods; pass it straight to
``register``.
"""

import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fetch_intercept.common.abort import AbortController
from fetch_intercept.common.exceptions import TransportException
from fetch_intercept.common.normalizer import coerce_request
from fetch_intercept.data_types import Request, Response

logger = logging.getLogger(__name__)


class LoggingHooks:
    """Hook set that logs requests and their outcomes.

    Counts are kept so tests and debugging sessions can check what the
    interceptor saw.
    """

    def __init__(self, prefix: str = "", level: int = logging.INFO) -> None:
        """Initialize the logging hooks.

        Args:
            prefix: Optional prefix for log messages.
            level: Logging level for request and success messages. Failures
                are logged at WARNING.
        """
        self.prefix = prefix
        self.level = level
        self.request_count = 0
        self.success_count = 0
        self.failure_count = 0

    def on_before_request(
        self, request: Request, controller: AbortController
    ) -> None:
        self.request_count += 1
        logger.log(
            self.level,
            f"{self.prefix}Request #{self.request_count}: "
            f"{request.method} {request.url}",
        )

    def on_request_success(
        self, response: Response, request: Request, controller: AbortController
    ) -> None:
        self.success_count += 1
        logger.log(
            self.level,
            f"{self.prefix}Response: {response.status_code} from {response.url}",
        )

    def on_request_failure(
        self,
        failure: Response | BaseException,
        request: Request,
        controller: AbortController,
    ) -> None:
        self.failure_count += 1
        if isinstance(failure, Response):
            detail = f"{failure.status_code} from {failure.url}"
        else:
            detail = f"{type(failure).__name__}: {failure}"
        logger.warning(
            f"{self.prefix}Failed {request.method} {request.url}: {detail}"
        )


class MockFetch:
    """Fetch capability returning canned responses.

    Useful as the original fetch of a test scope: no network access, and
    every response is attached to the request that fetched it.
    """

    def __init__(
        self,
        mock_responses: dict[str, Response],
        fallback: Callable[..., Awaitable[Response]] | None = None,
    ) -> None:
        """Initialize the mock fetch.

        Args:
            mock_responses: Map of URLs to mock Response objects.
            fallback: Fetch capability for URLs without a mock. When omitted,
                a miss raises TransportException.
        """
        self.mock_responses = mock_responses
        self.fallback = fallback
        self.mock_hits = 0
        self.mock_misses = 0
        self.requests: list[Request] = []

    async def __call__(self, *args: Any, **kwargs: Any) -> Response:
        request = coerce_request(*args, **kwargs)
        self.requests.append(request)
        if request.signal is not None:
            request.signal.throw_if_aborted(request.url)

        mock = self.mock_responses.get(request.url)
        if mock is None:
            self.mock_misses += 1
            if self.fallback is None:
                raise TransportException(
                    url=request.url, message=f"No mock response for {request.url}"
                )
            return await self.fallback(request)

        self.mock_hits += 1
        return Response(
            status_code=mock.status_code,
            headers=dict(mock.headers),
            content=mock.content,
            text=mock.text,
            url=mock.url,
            request=request,
            reason_phrase=mock.reason_phrase,
        )
