"""Data types shared by the interceptor, its hooks and the transports.

These types are designed to be:

1. Immutable - the canonical Request is a frozen dataclass, built fresh per call
2. Transport neutral - nothing here depends on httpx
3. Exhaustive - the two call shapes form a tagged union matched with ``match``
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from fetch_intercept.common.abort import AbortSignal


class HttpMethod(Enum):
    """HTTP methods with a named constant. Any other token is accepted as a string."""

    GET = "GET"
    OPTIONS = "OPTIONS"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    PATCH = "PATCH"
    HEAD = "HEAD"


# Type aliases for request fields
HeadersType = dict[str, str]
BodyType = bytes | str | None

# Transport-level fields copied from a request-like value when it is
# normalized. Anything else on the source is dropped.
REQUEST_INIT_FIELDS: tuple[str, ...] = (
    "method",
    "headers",
    "mode",
    "credentials",
    "cache",
    "redirect",
    "referrer",
    "referrer_policy",
    "integrity",
    "body",
    "url",
    "body_used",
)

# Keyword options accepted next to a URL. ``url`` itself is positional.
OPTION_FIELDS: frozenset[str] = frozenset(REQUEST_INIT_FIELDS) - {"url"} | {
    "signal"
}


@dataclass(frozen=True)
class Request:
    """Immutable, transport-level description of one outgoing call.

    Defaults follow the Fetch standard, so a bare URL produces a plain GET.
    The policy fields (mode, credentials, cache, referrer, referrer_policy,
    integrity) are carried for hooks to inspect; the bundled httpx transport
    only acts on method, url, headers, body, redirect and signal.

    Attributes:
        url: Absolute URL of the request.
        method: Upper-cased HTTP method.
        headers: Request headers.
        body: Request body, if any.
        mode: Request mode (``cors``, ``no-cors``, ``same-origin``, ``navigate``).
        credentials: Credentials policy (``omit``, ``same-origin``, ``include``).
        cache: Cache mode.
        redirect: Redirect policy (``follow``, ``error``, ``manual``).
        referrer: Referrer URL or ``about:client``.
        referrer_policy: Referrer policy.
        integrity: Subresource integrity metadata.
        body_used: Whether the body has already been consumed.
        signal: Cancellation signal bound to this call.
    """

    url: str
    method: str | HttpMethod = "GET"
    headers: HeadersType = field(default_factory=dict)
    body: BodyType = None
    mode: str = "cors"
    credentials: str = "same-origin"
    cache: str = "default"
    redirect: str = "follow"
    referrer: str = "about:client"
    referrer_policy: str = ""
    integrity: str = ""
    body_used: bool = False
    signal: AbortSignal | None = field(default=None, compare=False)

    def __post_init__(self) -> None:
        # Frozen dataclass, so normalization goes through object.__setattr__
        method = self.method
        if isinstance(method, HttpMethod):
            method = method.value
        object.__setattr__(self, "method", method.upper())
        object.__setattr__(self, "url", str(self.url))
        object.__setattr__(self, "headers", dict(self.headers or {}))

    def init_fields(self) -> dict[str, Any]:
        """Return the whitelisted transport fields as a dict, url excluded."""
        return {
            name: getattr(self, name)
            for name in REQUEST_INIT_FIELDS
            if name != "url"
        }


@dataclass
class Response:
    """HTTP response returned by a fetch capability.

    Modeled after httpx.Response to provide a familiar interface. Only
    ``ok`` matters to the dispatch pipeline; the rest is handed to hooks
    and callers untouched.

    Attributes:
        status_code: HTTP status code (200, 404, etc.).
        headers: Response headers.
        content: Raw response bytes.
        text: Decoded response text.
        url: Final URL after any redirects.
        request: The canonical Request that produced this response.
        reason_phrase: Status reason phrase, when the transport reports one.
    """

    status_code: int
    headers: dict[str, str]
    content: bytes
    text: str
    url: str
    request: Request | None = None
    reason_phrase: str = ""

    @property
    def ok(self) -> bool:
        """True for 2xx status codes."""
        return 200 <= self.status_code < 300

    def json(self) -> Any:
        return json.loads(self.text)


# =============================================================================
# Call shapes
# =============================================================================


@dataclass(frozen=True)
class UrlCall:
    """``fetch(url, options)``: a URL and a shallow options bag."""

    url: str
    options: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class RequestCall:
    """``fetch(request)``: a pre-built request-like value."""

    request: Request


CallShape = UrlCall | RequestCall
