"""Shared fixtures for SpecFlow tests."""

from datetime import datetime, timedelta

import pytest

from specflow.tickets.repository import TicketRepository
from specflow.tickets.storage import MemoryStore


class FakeClock:
    """Clock that advances by a fixed step every time it is read."""

    def __init__(self, start: datetime, step: timedelta = timedelta(seconds=1)):
        self.now = start
        self.step = step

    def __call__(self) -> datetime:
        current = self.now
        self.now = self.now + self.step
        return current


@pytest.fixture
def clock():
    return FakeClock(datetime(2024, 3, 1, 9, 0, 0))


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def repo(store, clock):
    return TicketRepository(store=store, clock=clock).load()
