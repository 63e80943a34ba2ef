"""The dispatch pipeline.

InterceptedClient wraps a fetch capability and calls the registered hooks
around every call made through it. It owns the reference to the original
capability and can install itself onto a scope object (any object with a
writable ``fetch`` attribute) and uninstall itself again.

Per call the pipeline runs strictly in this order:

1. normalize the arguments into a canonical Request and AbortController
2. on_before_request (may veto the call by raising)
3. issue the underlying call
4. on_after_request (does not wait for the call to settle)
5. on_request_success or on_request_failure once the call settles
6. return the original response, or re-raise the original error

Issuing the call means scheduling it as a task. The task only starts at the
next suspension point, so on_after_request runs before any transport code.
"""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable
from typing import Any

from fetch_intercept.common.abort import AbortController
from fetch_intercept.common.hooks import Hooks
from fetch_intercept.common.normalizer import classify_call, normalize
from fetch_intercept.data_types import Request, Response

logger = logging.getLogger(__name__)

FetchCapability = Callable[..., Awaitable[Response]]


async def _settle(result: Any) -> None:
    """Await a hook result if it is awaitable and discard its value."""
    if inspect.isawaitable(result):
        await result


class InterceptedClient:
    """A fetch capability with lifecycle hooks around every call.

    The client is itself awaitable-callable with the same signature as the
    capability it wraps, so it can be installed wherever the original was.
    The underlying call is issued by scheduling it, so on_after_request
    always runs before the wrapped capability starts executing.

    Example:
        client = InterceptedClient(transport.fetch, Hooks(on_request_success=log))
        response = await client("https://example.com/cases")

        # Or patch a scope in place
        client.install(scope)
        ...
        client.uninstall()
    """

    def __init__(
        self, original_fetch: FetchCapability, hooks: Hooks | None = None
    ) -> None:
        """Initialize the client.

        Args:
            original_fetch: The capability performing the real calls. It is
                called with the canonical Request only.
            hooks: Hooks to dispatch to. Defaults to no hooks.
        """
        self.original_fetch = original_fetch
        self.__wrapped__ = original_fetch
        self.hooks = hooks or Hooks()
        self._scope: Any = None
        # Strong references to fire-and-forget hook tasks
        self._background: set[asyncio.Future[Any]] = set()

    @property
    def installed(self) -> bool:
        return self._scope is not None

    def install(self, scope: Any) -> None:
        """Replace ``scope.fetch`` with this client.

        Args:
            scope: Object whose ``fetch`` attribute is patched.
        """
        scope.fetch = self
        self._scope = scope
        logger.info(
            f"Installed fetch interceptor on {scope!r}",
            extra={"hooks": self.hooks.registered()},
        )

    def uninstall(self) -> None:
        """Restore the original capability on the scope, if installed."""
        if self._scope is None:
            return
        scope, self._scope = self._scope, None
        scope.fetch = self.original_fetch
        logger.info(f"Uninstalled fetch interceptor from {scope!r}")

    async def __call__(self, *args: Any, **kwargs: Any) -> Response:
        """Perform one intercepted call.

        Accepts ``(url, options=None, **init)`` or ``(request)``.

        Returns:
            The response of the underlying call, unchanged, including
            non-ok responses.

        Raises:
            Exception: Whatever on_before_request or on_after_request raise,
                or the original error of the underlying call after
                on_request_failure has seen it.
        """
        request, controller = normalize(classify_call(args, kwargs))
        hooks = self.hooks

        if hooks.on_before_request is not None:
            self._fire(hooks.on_before_request(request, controller))

        try:
            in_flight = asyncio.ensure_future(self.original_fetch(request))
        except Exception as error:
            await self._report_failure(error, request, controller)
            raise

        if hooks.on_after_request is not None:
            try:
                self._fire(hooks.on_after_request(request, controller))
            except BaseException:
                in_flight.cancel()
                raise

        try:
            response = await in_flight
        except Exception as error:
            await self._report_failure(error, request, controller)
            raise

        if response.ok:
            if hooks.on_request_success is not None:
                await _settle(
                    hooks.on_request_success(response, request, controller)
                )
        elif hooks.on_request_failure is not None:
            await _settle(
                hooks.on_request_failure(response, request, controller)
            )

        return response

    async def _report_failure(
        self, error: Exception, request: Request, controller: AbortController
    ) -> None:
        logger.debug(
            f"Underlying fetch failed for {request.method} {request.url}: "
            f"{error!r}"
        )
        if self.hooks.on_request_failure is not None:
            await _settle(
                self.hooks.on_request_failure(error, request, controller)
            )

    def _fire(self, result: Any) -> None:
        """Schedule an awaitable hook result without waiting for it."""
        if not inspect.isawaitable(result):
            return
        task = asyncio.ensure_future(result)
        self._background.add(task)
        task.add_done_callback(self._background_done)

    def _background_done(self, task: "asyncio.Future[Any]") -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                f"Background hook failed: {error!r}",
                exc_info=error,
            )

    async def drain(self) -> None:
        """Wait for scheduled background hook tasks to finish."""
        while self._background:
            await asyncio.gather(*self._background, return_exceptions=True)

    def __repr__(self) -> str:
        state = "installed" if self.installed else "detached"
        return (
            f"<InterceptedClient {state} "
            f"hooks={list(self.hooks.registered())}>"
        )
