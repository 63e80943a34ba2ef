"""Hook protocols and the hook set of an interceptor.

Hooks are optional callbacks invoked at fixed points of the dispatch
pipeline:

- on_before_request(request, controller): before the underlying call is issued
- on_after_request(request, controller): right after it is issued
- on_request_success(response, request, controller): response with ``ok``
- on_request_failure(response_or_error, request, controller): non-ok response,
  or the error raised by the underlying call

Hooks observe; they cannot replace the request or the response. A before
hook vetoes a call by raising. Success and failure hooks may be coroutine
functions, in which case the pipeline awaits them before returning.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Mapping
from dataclasses import dataclass, fields
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from fetch_intercept.common.abort import AbortController
    from fetch_intercept.data_types import Request, Response

logger = logging.getLogger(__name__)


class RequestHook(Protocol):
    """Protocol for on_before_request and on_after_request.

    The return value is ignored. An awaitable result is scheduled in the
    background and never awaited by the call it observes.
    """

    def __call__(
        self, request: Request, controller: AbortController
    ) -> Awaitable[None] | None: ...


class SuccessHook(Protocol):
    """Protocol for on_request_success. Awaitable results are awaited."""

    def __call__(
        self, response: Response, request: Request, controller: AbortController
    ) -> Awaitable[None] | None: ...


class FailureHook(Protocol):
    """Protocol for on_request_failure.

    Receives the non-ok Response when the server answered, or the exception
    when the underlying call raised. In the latter case the exception is
    re-raised to the caller once the hook returns.
    """

    def __call__(
        self,
        failure: Response | BaseException,
        request: Request,
        controller: AbortController,
    ) -> Awaitable[None] | None: ...


@dataclass
class Hooks:
    """The closed set of hooks an interceptor dispatches to."""

    on_before_request: RequestHook | None = None
    on_after_request: RequestHook | None = None
    on_request_success: SuccessHook | None = None
    on_request_failure: FailureHook | None = None

    @classmethod
    def from_source(cls, source: Mapping[str, Any] | object | None) -> Hooks:
        """Pick the whitelisted, callable hooks out of ``source``.

        Args:
            source: A mapping of hook name to callable, an object exposing
                hooks as attributes (such as LoggingHooks), or None.

        Returns:
            A Hooks instance. Unknown names and non-callable values are
            ignored.
        """
        if source is None:
            return cls()

        if isinstance(source, Mapping):
            lookup = source.get
            ignored = set(source) - set(HOOK_NAMES)
            if ignored:
                names = ", ".join(sorted(map(str, ignored)))
                logger.debug(f"Ignoring unknown hook names: {names}")
        else:

            def lookup(name: str) -> Any:
                return getattr(source, name, None)

        selected = {}
        for name in HOOK_NAMES:
            hook = lookup(name)
            alias = _camel_case(name)
            if hook is None and lookup(alias) is not None:
                logger.warning(
                    f"Ignoring hook {alias!r}, did you mean {name!r}?"
                )
            if callable(hook):
                selected[name] = hook
            elif hook is not None:
                logger.debug(f"Ignoring non-callable hook {name}: {hook!r}")
        return cls(**selected)

    def registered(self) -> tuple[str, ...]:
        """Names of the hooks that are set, in dispatch order."""
        return tuple(
            name for name in HOOK_NAMES if getattr(self, name) is not None
        )


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.title() for part in rest)


HOOK_NAMES: tuple[str, ...] = tuple(f.name for f in fields(Hooks))
