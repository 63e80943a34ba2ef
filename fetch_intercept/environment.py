"""Environment resolution.

Locates the scope object whose ``fetch`` attribute the interceptor patches.
Four runtime shapes are probed in fixed precedence and the first one whose
scope exposes a callable ``fetch`` wins:

1. BRIDGE: an embedding host injected ``fetch`` into ``builtins``
2. WORKER: the running task or thread bound its own scope with worker_scope()
3. MAIN: the program's ``__main__`` module defines ``fetch``
4. PROCESS: the bundled httpx transport module, loaded through the import system
"""

import builtins
import importlib
import inspect
import logging
import sys
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from enum import Enum
from typing import Any

from fetch_intercept.common.exceptions import UnsupportedEnvironmentException

logger = logging.getLogger(__name__)

PROCESS_SCOPE_MODULE = "fetch_intercept.transport"


class EnvironmentKind(Enum):
    """Runtime shapes, in probing order."""

    BRIDGE = "bridge"
    WORKER = "worker"
    MAIN = "main"
    PROCESS = "process"


@dataclass(frozen=True)
class Environment:
    """Result of environment detection.

    Attributes:
        kind: Which runtime shape matched.
        scope: The object exposing the fetch capability.
    """

    kind: EnvironmentKind
    scope: Any


class FetchScope:
    """A plain scope object holding a fetch capability.

    Used for worker-local scopes and as a test double for the process scope.
    """

    def __init__(self, fetch: Callable[..., Any] | None = None) -> None:
        self.fetch = fetch

    def __repr__(self) -> str:
        return f"<FetchScope fetch={self.fetch!r}>"


_worker_scope: ContextVar[FetchScope | None] = ContextVar(
    "fetch_intercept_worker_scope", default=None
)


@contextmanager
def worker_scope(scope: FetchScope | None = None) -> Iterator[FetchScope]:
    """Bind a worker-local scope for the current task or thread.

    Interceptors constructed inside the block, and calls made through
    ``fetch_intercept.fetch``, resolve to this scope. contextvars keeps the
    binding local to the current task, so concurrent workers do not see each
    other's scopes.

    Args:
        scope: The scope to bind. Defaults to a new scope wrapping the
            process transport's current fetch.

    Yields:
        The bound scope.
    """
    if scope is None:
        process_scope = importlib.import_module(PROCESS_SCOPE_MODULE)
        scope = FetchScope(fetch=process_scope.fetch)
    token = _worker_scope.set(scope)
    try:
        yield scope
    finally:
        _worker_scope.reset(token)


def _probe_bridge() -> Any:
    return builtins if hasattr(builtins, "fetch") else None


def _probe_worker() -> Any:
    return _worker_scope.get()


def _probe_main() -> Any:
    return sys.modules.get("__main__")


def _probe_process() -> Any:
    return importlib.import_module(PROCESS_SCOPE_MODULE)


_PROBES: tuple[tuple[EnvironmentKind, Callable[[], Any]], ...] = (
    (EnvironmentKind.BRIDGE, _probe_bridge),
    (EnvironmentKind.WORKER, _probe_worker),
    (EnvironmentKind.MAIN, _probe_main),
    (EnvironmentKind.PROCESS, _probe_process),
)


def _usable(candidate: Any) -> bool:
    """Whether ``candidate`` is a fetch that does not resolve back to fetch().

    A script doing ``from fetch_intercept import fetch`` exposes this
    module's own fetch on ``__main__``, possibly wrapped by an interceptor.
    Binding to it would recurse, so such scopes are skipped.
    """
    if not callable(candidate):
        return False
    return inspect.unwrap(candidate) is not fetch


def detect_environment() -> Environment:
    """Find the scope exposing the fetch capability.

    Returns:
        The first matching Environment in precedence order.

    Raises:
        UnsupportedEnvironmentException: If no probed scope exposes a
            callable ``fetch``.
    """
    for kind, probe in _PROBES:
        scope = probe()
        if scope is not None and _usable(getattr(scope, "fetch", None)):
            logger.debug(f"Detected {kind.value} environment: {scope!r}")
            return Environment(kind=kind, scope=scope)
    raise UnsupportedEnvironmentException()


async def fetch(*args: Any, **kwargs: Any) -> Any:
    """Call whatever fetch is currently installed on the detected scope.

    The scope is resolved on every call, so an interceptor registered or
    unregistered later is picked up without rebinding anything.
    """
    return await detect_environment().scope.fetch(*args, **kwargs)
