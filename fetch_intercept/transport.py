"""Default httpx-backed fetch capability.

This module is the PROCESS scope: when no other runtime shape is detected,
interceptors patch this module's ``fetch`` attribute. Code that wants to be
interceptable should therefore call ``transport.fetch(...)`` (or
``fetch_intercept.fetch(...)``) at call time rather than binding the
function at import time.

Example:
    from fetch_intercept import transport

    transport.configure(timeout=10.0, headers={"User-Agent": "my-app/1.0"})
    response = await transport.fetch("https://example.com/cases")
"""

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, ConfigDict, Field

from fetch_intercept.client import FetchCapability, InterceptedClient
from fetch_intercept.common.exceptions import (
    FetchInterceptException,
    RequestAbortedException,
    RequestTimeoutException,
    TransportException,
)
from fetch_intercept.common.normalizer import coerce_request
from fetch_intercept.data_types import Request, Response

logger = logging.getLogger(__name__)


class TransportConfig(BaseModel):
    """Settings for the default transport.

    Attributes:
        timeout: Seconds to wait for connect, read, write and pool
            operations before raising RequestTimeoutException.
        verify: Whether to verify TLS certificates.
        max_redirects: Maximum redirects followed under ``redirect="follow"``.
        headers: Default headers. Request headers override them.
    """

    model_config = ConfigDict(frozen=True)

    timeout: float = Field(default=30.0, gt=0)
    verify: bool = True
    max_redirects: int = Field(default=20, ge=0)
    headers: dict[str, str] = Field(default_factory=dict)


def _to_response(http_response: httpx.Response, request: Request) -> Response:
    return Response(
        status_code=http_response.status_code,
        headers=dict(http_response.headers),
        content=http_response.content,
        text=http_response.text,
        url=str(http_response.url),
        request=request,
        reason_phrase=http_response.reason_phrase,
    )


class HttpxFetch:
    """Fetch capability sending requests through httpx.AsyncClient.

    Accepts both call shapes. The request's signal is raced against the
    call, so aborting it cancels the in-flight request.
    """

    def __init__(
        self,
        config: TransportConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Initialize the fetch capability.

        Args:
            config: Transport settings. Defaults to TransportConfig().
            transport: Optional httpx transport, such as httpx.MockTransport
                in tests. Defaults to httpx's network transport.
        """
        self.config = config or TransportConfig()
        self._transport = transport

    async def __call__(self, *args: Any, **kwargs: Any) -> Response:
        """Send a request and return the converted response.

        Raises:
            RequestAbortedException: If the request's signal is aborted.
            RequestTimeoutException: If httpx times out.
            TransportException: For any other httpx error, or for a redirect
                response under ``redirect="error"``.
        """
        request = coerce_request(*args, **kwargs)
        if request.signal is not None:
            request.signal.throw_if_aborted(request.url)

        async with httpx.AsyncClient(
            timeout=self.config.timeout,
            verify=self.config.verify,
            max_redirects=self.config.max_redirects,
            follow_redirects=request.redirect == "follow",
            transport=self._transport,
        ) as client:
            try:
                http_response = await self._send(client, request)
            except httpx.TimeoutException as e:
                raise RequestTimeoutException(
                    url=request.url, timeout_seconds=self.config.timeout
                ) from e
            except httpx.HTTPError as e:
                raise TransportException(
                    url=request.url,
                    message=f"Request to {request.url} failed: {e}",
                ) from e

        if request.redirect == "error" and http_response.is_redirect:
            raise TransportException(
                url=request.url,
                message=(
                    f"Redirect from {request.url} refused under "
                    f"redirect='error'"
                ),
            )

        logger.debug(
            f"{request.method} {request.url} -> {http_response.status_code}"
        )
        return _to_response(http_response, request)

    async def _send(
        self, client: httpx.AsyncClient, request: Request
    ) -> httpx.Response:
        send = client.request(
            request.method,
            request.url,
            headers={**self.config.headers, **request.headers},
            content=request.body,
        )
        signal = request.signal
        if signal is None:
            return await send

        loop = asyncio.get_running_loop()
        aborted = asyncio.Event()

        def on_abort(reason: Any) -> None:
            # Abort may be requested from another thread
            loop.call_soon_threadsafe(aborted.set)

        task = asyncio.ensure_future(send)
        waiter = asyncio.ensure_future(aborted.wait())
        signal.add_listener(on_abort)
        try:
            await asyncio.wait(
                {task, waiter}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            signal.remove_listener(on_abort)
            waiter.cancel()
            if not task.done():
                task.cancel()

        if task.done() and not task.cancelled():
            return task.result()

        await asyncio.gather(task, return_exceptions=True)
        raise RequestAbortedException(url=request.url, reason=signal.reason)

    def __repr__(self) -> str:
        return f"<HttpxFetch timeout={self.config.timeout}>"


fetch: FetchCapability = HttpxFetch()


def configure(
    config: TransportConfig | None = None, **settings: Any
) -> HttpxFetch:
    """Replace this module's fetch with one using new settings.

    Args:
        config: A complete TransportConfig.
        **settings: TransportConfig fields, used when config is not given.

    Returns:
        The new fetch capability.

    Raises:
        FetchInterceptException: If an interceptor is installed on this
            module. Its captured original would otherwise go stale.
    """
    global fetch
    if isinstance(fetch, InterceptedClient):
        raise FetchInterceptException(
            "Cannot reconfigure the transport while an interceptor is installed"
        )
    fetch = HttpxFetch(config or TransportConfig(**settings))
    logger.info(
        "Configured default transport",
        extra={"config": fetch.config.model_dump()},
    )
    return fetch
