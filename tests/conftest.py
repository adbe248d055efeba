"""
Pytest configuration and fixtures for signaling tests.
"""

import time

import pytest
from fastapi.testclient import TestClient

from backend import RoomRegistry, room_registry
from signaling import MessageRouter


class FakeConnection:
    """Stand-in for Connection that records what it is sent."""

    def __init__(self, name="peer", open=True):
        self.name = name
        self.open = open
        self.room = None
        self.is_alive = True
        self.terminated = False
        self.closed_with = None
        self.sent = []

    def __repr__(self):
        return f"<FakeConnection {self.name}>"

    @property
    def short_id(self):
        return self.name

    @property
    def is_open(self):
        return self.open and not self.terminated

    def send(self, message):
        if not self.is_open:
            return False
        self.sent.append(message)
        return True

    def mark_alive(self):
        self.is_alive = True

    def terminate(self):
        self.terminated = True

    async def close(self, code=1000, reason=""):
        self.closed_with = (code, reason)
        self.open = False

    async def wait_closed(self):
        return None


@pytest.fixture
def registry():
    return RoomRegistry()


@pytest.fixture
def router(registry):
    return MessageRouter(registry)


@pytest.fixture
def make_connection():
    def factory(name="peer", open=True):
        return FakeConnection(name=name, open=open)
    return factory


@pytest.fixture
def client():
    """
    Test client bound to a single event loop for the whole test,
    with the module-level registry emptied first.
    """
    from app import app

    room_registry.rooms.clear()
    room_registry._connections.clear()
    room_registry.total_connections = 0

    with TestClient(app) as test_client:
        yield test_client


def eventually(predicate, timeout=2.0, interval=0.01):
    """Poll ``predicate`` until it holds; the app runs on another thread."""
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()
