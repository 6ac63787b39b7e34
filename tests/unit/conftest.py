"""
Shared fixtures for unit tests.

This module provides fakes that stand in for the store handle without
a database:
- Fake session maker recording sessions and transaction outcomes
"""

import pytest


class FakeTransaction:
    """Async context manager recording commit or rollback."""

    def __init__(self, session: "FakeSession") -> None:
        self.session = session

    async def __aenter__(self) -> "FakeTransaction":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.session.outcome = "rollback" if exc_type else "commit"
        return False


class FakeSession:
    """Session exposing only begin()."""

    def __init__(self) -> None:
        self.outcome: str | None = None
        self.closed = False

    def begin(self) -> FakeTransaction:
        return FakeTransaction(self)

    async def __aenter__(self) -> "FakeSession":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> bool:
        self.closed = True
        return False


class FakeSessionMaker:
    """Callable returning a fresh FakeSession per call."""

    def __init__(self) -> None:
        self.sessions: list[FakeSession] = []

    def __call__(self) -> FakeSession:
        session = FakeSession()
        self.sessions.append(session)
        return session


@pytest.fixture
def fake_session_maker():
    """
    Fake store handle.

    Returns:
        FakeSessionMaker: records every session it hands out
    """
    return FakeSessionMaker()
