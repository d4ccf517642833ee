"""Shared fixtures for the arena test suite."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from arena_app.constants.game_constants import BOOTSTRAP_ADMIN_CODE, BOOTSTRAP_ADMIN_NAME
from arena_app.core.arena_manager import ArenaManager
from arena_app.core.change_feed import InMemoryChangeFeed
from arena_app.core.store import InMemoryDataStore


class FakeClock:
    """Deterministic clock that moves forward one second per reading."""

    def __init__(self, start: datetime | None = None) -> None:
        self.now = start or datetime(2026, 1, 1, 18, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def feed() -> InMemoryChangeFeed:
    return InMemoryChangeFeed()


@pytest.fixture
def store(feed, clock) -> InMemoryDataStore:
    return InMemoryDataStore(feed=feed, clock=clock)


@pytest.fixture
def manager(store, feed, clock) -> ArenaManager:
    return ArenaManager(store=store, feed=feed, clock=clock)


@pytest.fixture
async def admin(manager):
    return await manager.ensure_admin(BOOTSTRAP_ADMIN_NAME, BOOTSTRAP_ADMIN_CODE)


@pytest.fixture
def join_players(manager):
    """Create ``count`` players named Player1..PlayerN in join order."""

    async def _join(count: int, code: str = "1234"):
        return [await manager.join(f"Player{index}", code) for index in range(1, count + 1)]

    return _join
