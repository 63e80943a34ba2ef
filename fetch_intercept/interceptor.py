"""Interceptor lifecycle.

FetchInterceptor is the global adapter over InterceptedClient: it resolves
the scope, captures the scope's fetch, and installs (hijacks) or restores
it. InterceptorRegistry enforces that at most one interceptor is active;
``register`` while one is active hands back the existing instance and
ignores the new hooks.

Example:
    import fetch_intercept

    interceptor = fetch_intercept.register(
        {
            "on_before_request": lambda request, controller: print(request.url),
            "on_request_failure": report_failure,
        }
    )
    ...
    interceptor.unregister()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from typing import Any, ClassVar

from fetch_intercept.client import InterceptedClient
from fetch_intercept.common.hooks import HOOK_NAMES, Hooks
from fetch_intercept.environment import EnvironmentKind, detect_environment

logger = logging.getLogger(__name__)

HookSource = Mapping[str, Any] | object


class InterceptorRegistry:
    """Holds zero or one active interceptor."""

    def __init__(self) -> None:
        self._active: FetchInterceptor | None = None

    @property
    def active(self) -> FetchInterceptor | None:
        return self._active

    def register(
        self,
        factory: Callable[[], FetchInterceptor],
        hooks: HookSource | None = None,
    ) -> FetchInterceptor:
        """Return the active interceptor, creating and installing one if needed.

        Args:
            factory: Builds a new, not yet installed interceptor.
            hooks: Hook source for a new interceptor. Ignored when one is
                already active.

        Returns:
            The active interceptor.
        """
        if self._active is not None:
            logger.debug(
                "Interceptor already registered, returning it unchanged"
            )
            return self._active

        interceptor = factory()
        interceptor.client.hooks = Hooks.from_source(hooks)
        interceptor.hijack()
        self._active = interceptor
        return interceptor

    def release(self, interceptor: FetchInterceptor) -> None:
        """Clear the slot if it holds ``interceptor``."""
        if self._active is interceptor:
            self._active = None

    def reset(self) -> None:
        """Unregister the active interceptor, if any."""
        if self._active is not None:
            self._active.unregister()
        self._active = None


GLOBAL_REGISTRY = InterceptorRegistry()


class FetchInterceptor:
    """Patches a scope's fetch with an InterceptedClient.

    Attributes:
        scope: The object whose ``fetch`` is patched.
        fetch: The original fetch captured from the scope at construction.
        environment_kind: The detected runtime shape, or None when the scope
            was passed explicitly.
        client: The InterceptedClient dispatching to the hooks.
    """

    # Public hook whitelist, in dispatch order
    hooks: ClassVar[tuple[str, ...]] = HOOK_NAMES

    def __init__(
        self,
        scope: Any = None,
        registry: InterceptorRegistry | None = None,
    ) -> None:
        """Capture the scope and its fetch capability.

        Args:
            scope: Object with a callable ``fetch`` attribute. Detected from
                the runtime when omitted.
            registry: Registry this interceptor releases itself from on
                unregister. Defaults to GLOBAL_REGISTRY.

        Raises:
            UnsupportedEnvironmentException: If no scope is given and none
                can be detected.
        """
        self.environment_kind: EnvironmentKind | None = None
        if scope is None:
            environment = detect_environment()
            scope = environment.scope
            self.environment_kind = environment.kind

        self.scope = scope
        self.fetch = scope.fetch
        self.registry = registry or GLOBAL_REGISTRY
        self.client = InterceptedClient(self.fetch)

    @classmethod
    def register(
        cls,
        hooks: HookSource | None = None,
        *,
        scope: Any = None,
        registry: InterceptorRegistry | None = None,
    ) -> FetchInterceptor:
        """Register hooks and return the active interceptor.

        Args:
            hooks: Mapping of hook name to callable, or an object exposing
                hooks as attributes. Only names in ``FetchInterceptor.hooks``
                with callable values are used.
            scope: Explicit scope, bypassing environment detection.
            registry: Registry enforcing the single active interceptor.
                Defaults to GLOBAL_REGISTRY.

        Returns:
            The newly installed interceptor, or the already active one
            unchanged.
        """
        registry = registry or GLOBAL_REGISTRY
        return registry.register(
            lambda: cls(scope=scope, registry=registry), hooks
        )

    @property
    def on_before_request(self) -> Any:
        return self.client.hooks.on_before_request

    @property
    def on_after_request(self) -> Any:
        return self.client.hooks.on_after_request

    @property
    def on_request_success(self) -> Any:
        return self.client.hooks.on_request_success

    @property
    def on_request_failure(self) -> Any:
        return self.client.hooks.on_request_failure

    def hijack(self) -> None:
        """Install the intercepting client onto the scope."""
        self.client.install(self.scope)

    def unregister(self) -> None:
        """Restore the captured fetch and release the registry slot.

        Safe to call on an interceptor that is not active or was never
        installed. Another interceptor active on the same scope keeps its
        patch.
        """
        self.client.uninstall()
        active = self.registry.active
        if active is None or active is self or active.scope is not self.scope:
            self.scope.fetch = self.fetch
        self.registry.release(self)

    def __repr__(self) -> str:
        return (
            f"<FetchInterceptor scope={self.scope!r} "
            f"hooks={list(self.client.hooks.registered())}>"
        )


def register(
    hooks: HookSource | None = None,
    *,
    scope: Any = None,
    registry: InterceptorRegistry | None = None,
) -> FetchInterceptor:
    """Register hooks on the process-wide fetch. See FetchInterceptor.register."""
    return FetchInterceptor.register(hooks, scope=scope, registry=registry)


@contextmanager
def intercepted(
    hooks: HookSource | None = None,
    *,
    scope: Any = None,
    registry: InterceptorRegistry | None = None,
) -> Iterator[FetchInterceptor]:
    """Intercept fetch within the managed block.

    The interceptor is unregistered on exit even when the block raises. If
    an interceptor was already active, it is yielded and left registered.
    """
    registry = registry or GLOBAL_REGISTRY
    previous = registry.active
    interceptor = register(hooks, scope=scope, registry=registry)
    try:
        yield interceptor
    finally:
        if interceptor is not previous:
            interceptor.unregister()
