"""Request normalization.

A fetch capability accepts two call shapes:

- ``fetch(url, options=None, **init)``
- ``fetch(request)`` with a pre-built Request (or an ``httpx.Request``)

``classify_call`` resolves the shape once, at the API boundary, into a
``UrlCall`` or ``RequestCall``. ``normalize`` then turns either variant into
one canonical Request carrying the signal of a freshly created
AbortController, so hooks never need to know how the caller spelled the call.
"""

import logging
from collections.abc import Mapping
from typing import Any

import httpx
from typing_extensions import assert_never

from fetch_intercept.common.abort import AbortController
from fetch_intercept.data_types import (
    OPTION_FIELDS,
    REQUEST_INIT_FIELDS,
    CallShape,
    Request,
    RequestCall,
    UrlCall,
)

logger = logging.getLogger(__name__)


def request_from_httpx(request: httpx.Request) -> Request:
    """Convert an httpx.Request into a Request.

    Only method, url, headers and body have httpx counterparts; the policy
    fields keep their defaults. Streaming bodies must be read first.

    Args:
        request: The httpx request to convert.

    Returns:
        An equivalent Request without a signal.
    """
    return Request(
        url=str(request.url),
        method=request.method,
        headers=dict(request.headers),
        body=request.content or None,
    )


def classify_call(args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> CallShape:
    """Resolve raw fetch arguments into one of the two call shapes.

    Args:
        args: Positional arguments, ``(resource,)`` or ``(resource, options)``.
        kwargs: Keyword options. They are merged over a positional options
            mapping.

    Returns:
        RequestCall if the resource is request-like, otherwise UrlCall.

    Raises:
        TypeError: If no resource or too many positional arguments are given.
    """
    if not args:
        raise TypeError("fetch() missing required argument: 'resource'")
    if len(args) > 2:
        raise TypeError(
            f"fetch() takes at most 2 positional arguments ({len(args)} given)"
        )

    resource = args[0]
    options: dict[str, Any] = {}
    if len(args) == 2 and args[1] is not None:
        options.update(args[1])
    options.update(kwargs)

    if isinstance(resource, Request | httpx.Request):
        if options:
            logger.debug(
                "Options passed alongside a request are ignored",
                extra={"ignored_options": sorted(options)},
            )
        if isinstance(resource, httpx.Request):
            resource = request_from_httpx(resource)
        return RequestCall(request=resource)

    return UrlCall(url=str(resource), options=options)


def _copy_init_fields(source: Request) -> dict[str, Any]:
    return {
        name: getattr(source, name)
        for name in REQUEST_INIT_FIELDS
        if hasattr(source, name)
    }


def _known_options(options: Mapping[str, Any]) -> dict[str, Any]:
    unknown = set(options) - OPTION_FIELDS
    if unknown:
        logger.debug(
            f"Dropping unknown fetch options: {', '.join(sorted(unknown))}"
        )
    return {key: value for key, value in options.items() if key in OPTION_FIELDS}


def normalize(call: CallShape) -> tuple[Request, AbortController]:
    """Build the canonical request and cancellation token for one call.

    For a RequestCall only the whitelisted transport fields are copied from
    the source; for a UrlCall the options are shallow-merged. In both cases
    the signal is replaced by the new controller's signal, so a
    caller-supplied signal never reaches the transport.

    Args:
        call: The classified call shape.

    Returns:
        Tuple of (canonical Request, AbortController owning its signal).
    """
    controller = AbortController()

    match call:
        case RequestCall(request=source):
            options = _copy_init_fields(source)
            url = options.pop("url")
        case UrlCall(url=url, options=given):
            options = _known_options(given)
        case _:
            assert_never(call)

    options["signal"] = controller.signal
    return Request(url, **options), controller


def coerce_request(*args: Any, **kwargs: Any) -> Request:
    """Build a Request from either call shape without a new signal.

    Used by fetch capabilities that are called directly, outside the
    interception pipeline. A caller-supplied signal is kept.
    """
    call = classify_call(args, kwargs)
    match call:
        case RequestCall(request=request):
            return request
        case UrlCall(url=url, options=given):
            return Request(url, **_known_options(given))
        case _:
            assert_never(call)
