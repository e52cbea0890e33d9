import pytest

from auth.session import Navigator
from auth.session_store import MemorySessionStore
from tests.backend_helpers import FakeBackend


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def session_store() -> MemorySessionStore:
    return MemorySessionStore()


@pytest.fixture
def navigator() -> Navigator:
    return Navigator("/owner/overview")
