from collections.abc import Generator

import pytest

from fetch_intercept import GLOBAL_REGISTRY, FetchScope, InterceptorRegistry
from tests.utils import StubFetch


@pytest.fixture(autouse=True)
def reset_global_registry() -> Generator[None, None, None]:
    """Leave no interceptor installed between tests."""
    yield
    GLOBAL_REGISTRY.reset()


@pytest.fixture
def registry() -> Generator[InterceptorRegistry, None, None]:
    registry = InterceptorRegistry()
    yield registry
    registry.reset()


@pytest.fixture
def stub_fetch() -> StubFetch:
    return StubFetch()


@pytest.fixture
def scope(stub_fetch: StubFetch) -> FetchScope:
    return FetchScope(fetch=stub_fetch)
