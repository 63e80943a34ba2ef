"""Cancellation primitives.

An AbortController and its AbortSignal form the cancellation token created
for every intercepted call. Hooks receive the controller; the canonical
request carries the signal, and transports watch it to cancel the call.
"""

import logging
import threading
from collections.abc import Callable
from typing import Any

from fetch_intercept.common.exceptions import RequestAbortedException

logger = logging.getLogger(__name__)

DEFAULT_ABORT_REASON = "This operation was aborted"

AbortListener = Callable[[Any], None]


class AbortSignal:
    """Read side of a cancellation token.

    A signal starts un-aborted and can be aborted at most once, by its
    controller. Listeners added after the abort are called immediately.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._aborted = False
        self._reason: Any = None
        self._listeners: list[AbortListener] = []

    @property
    def aborted(self) -> bool:
        return self._aborted

    @property
    def reason(self) -> Any:
        return self._reason

    def add_listener(self, listener: AbortListener) -> None:
        """Call ``listener(reason)`` when the signal is aborted.

        Args:
            listener: Callable receiving the abort reason.
        """
        with self._lock:
            if not self._aborted:
                self._listeners.append(listener)
                return
        listener(self._reason)

    def remove_listener(self, listener: AbortListener) -> None:
        with self._lock:
            if listener in self._listeners:
                self._listeners.remove(listener)

    def throw_if_aborted(self, url: str = "") -> None:
        """Raise RequestAbortedException if the signal has been aborted.

        Args:
            url: URL of the request the signal belongs to, for the error.
        """
        if self._aborted:
            raise RequestAbortedException(url=url, reason=self._reason)

    def _abort(self, reason: Any) -> None:
        with self._lock:
            if self._aborted:
                return
            self._aborted = True
            self._reason = reason
            listeners, self._listeners = self._listeners, []

        logger.debug(
            f"Signal aborted: {reason}",
            extra={"listener_count": len(listeners)},
        )
        for listener in listeners:
            listener(reason)

    def __repr__(self) -> str:
        state = f"aborted, reason={self._reason!r}" if self._aborted else "active"
        return f"<AbortSignal {state}>"


class AbortController:
    """Write side of a cancellation token.

    Example:
        controller = AbortController()
        request = Request("https://example.com", signal=controller.signal)
        controller.abort("user navigated away")
        assert request.signal.aborted
    """

    def __init__(self) -> None:
        self.signal = AbortSignal()

    def abort(self, reason: Any = None) -> None:
        """Abort the signal. Later calls are ignored.

        Args:
            reason: Why the call was aborted. Defaults to
                ``DEFAULT_ABORT_REASON``.
        """
        self.signal._abort(DEFAULT_ABORT_REASON if reason is None else reason)
