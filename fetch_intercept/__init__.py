"""Intercept process-wide fetch calls with lifecycle hooks."""

from fetch_intercept.client import InterceptedClient
from fetch_intercept.common.abort import AbortController, AbortSignal
from fetch_intercept.common.exceptions import (
    FetchInterceptException,
    RequestAbortedException,
    RequestTimeoutException,
    TransportException,
    UnsupportedEnvironmentException,
)
from fetch_intercept.common.hooks import HOOK_NAMES, Hooks
from fetch_intercept.data_types import HttpMethod, Request, Response
from fetch_intercept.environment import (
    EnvironmentKind,
    FetchScope,
    detect_environment,
    fetch,
    worker_scope,
)
from fetch_intercept.interceptor import (
    GLOBAL_REGISTRY,
    FetchInterceptor,
    InterceptorRegistry,
    intercepted,
    register,
)

__all__ = [
    "AbortController",
    "AbortSignal",
    "EnvironmentKind",
    "FetchInterceptException",
    "FetchInterceptor",
    "FetchScope",
    "GLOBAL_REGISTRY",
    "HOOK_NAMES",
    "Hooks",
    "HttpMethod",
    "InterceptedClient",
    "InterceptorRegistry",
    "Request",
    "RequestAbortedException",
    "RequestTimeoutException",
    "Response",
    "TransportException",
    "UnsupportedEnvironmentException",
    "detect_environment",
    "fetch",
    "intercepted",
    "register",
    "worker_scope",
]
