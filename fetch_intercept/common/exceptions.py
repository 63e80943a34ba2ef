"""Exceptions raised by fetch-intercept.

Hook errors are never wrapped: whatever a hook raises reaches the caller
unchanged. The classes here cover the two failures the library itself
produces, an unusable runtime and a transport-level failure of the bundled
httpx transport.
"""

from typing import Any


class FetchInterceptException(Exception):
    """Base class for all fetch-intercept errors."""


class UnsupportedEnvironmentException(FetchInterceptException):
    """No scope exposing a fetch capability could be found.

    Raised while constructing an interceptor. It is fatal: probing again in
    the same process yields the same answer.
    """

    def __init__(
        self, message: str = "Unsupported environment for fetch-intercept"
    ) -> None:
        super().__init__(message)


class TransportException(FetchInterceptException):
    """The underlying call failed before a response was received.

    Attributes:
        url: The URL of the request that failed.
    """

    def __init__(self, url: str, message: str | None = None) -> None:
        self.url = url
        super().__init__(message or f"Request to {url} failed")


class RequestTimeoutException(TransportException):
    """The transport gave up waiting for the server.

    Attributes:
        url: The URL of the request that timed out.
        timeout_seconds: The timeout that was exceeded.
    """

    def __init__(self, url: str, timeout_seconds: float | None) -> None:
        self.timeout_seconds = timeout_seconds
        super().__init__(
            url, f"Request to {url} timed out after {timeout_seconds}s"
        )


class RequestAbortedException(TransportException):
    """The request's signal was aborted before the response arrived.

    Attributes:
        url: The URL of the aborted request.
        reason: The reason passed to ``AbortController.abort``.
    """

    def __init__(self, url: str, reason: Any = None) -> None:
        self.reason = reason
        super().__init__(url, f"Request to {url} was aborted: {reason}")
