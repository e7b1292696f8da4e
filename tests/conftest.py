import pytest

from fakes import FakeLogSource
from flashindex.storage.event_store import EventStore


@pytest.fixture
def store():
    return EventStore()


@pytest.fixture
def source():
    return FakeLogSource(head=0)
