"""Pytest configuration and shared fixtures."""

import pytest

from commhub import CommunicationHub, EventRouter


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "async_route: test exercises coroutine route actions")


class Recorder:
    """Module stand-in recording every handler call."""

    def __init__(self, name: str = "recorder"):
        self.name = name
        self.calls: list[tuple[str, object]] = []

    def on_event(self, event, payload):
        self.calls.append((event, payload))

    def on_other(self, event, payload):
        self.calls.append((f"other:{event}", payload))


@pytest.fixture
def recorder():
    return Recorder()


@pytest.fixture
def make_recorder():
    return Recorder


@pytest.fixture
def router():
    return EventRouter()


@pytest.fixture
def hub():
    return CommunicationHub()


@pytest.fixture
def routed_hub(router):
    return CommunicationHub(router=router)
