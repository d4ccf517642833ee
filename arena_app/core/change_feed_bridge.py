"""Turns raw change-feed notifications into typed game events.

The bridge walks Disconnected -> Subscribing -> Live and, when the transport
drops, Error -> Reconnecting -> Live (or Disconnected once it gives up). Every
time it becomes Live it performs a full authoritative fetch first, because the
feed offers no replay of changes missed while it was away.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterable, Protocol, Union

from arena_app.constants.game_constants import FEED_RECONNECT_BACKOFF_SECONDS, FEED_RESOURCES
from arena_app.core.change_feed import INSERT, DELETE, ChangeFeed, ChangeNotification, Subscription
from arena_app.core.errors import TransientStoreError
from arena_app.core.models import LeaderboardEntry, Participant, SessionSnapshot
from arena_app.core.store import ACTIVE_CHALLENGES, GAME_STATE, POLL_VOTES, USERS

logger = logging.getLogger(__name__)


class FeedState(str, Enum):
    DISCONNECTED = "disconnected"
    SUBSCRIBING = "subscribing"
    LIVE = "live"
    ERROR = "error"
    RECONNECTING = "reconnecting"


@dataclass(frozen=True, slots=True)
class SessionStateChanged:
    snapshot: SessionSnapshot


@dataclass(frozen=True, slots=True)
class LeaderboardChanged:
    entries: tuple[LeaderboardEntry, ...]
    participant_id: str | None = None
    participant: Participant | None = None


@dataclass(frozen=True, slots=True)
class UsersChanged:
    participant_id: str | None
    participant: Participant | None
    entries: tuple[LeaderboardEntry, ...] = ()


@dataclass(frozen=True, slots=True)
class VotesChanged:
    question_id: str
    tally: dict[int, int]


FeedEvent = Union[SessionStateChanged, LeaderboardChanged, UsersChanged, VotesChanged]
Listener = Callable[[FeedEvent], Any]


class SnapshotSource(Protocol):
    """Authoritative reads the bridge performs on (re)connect and per change."""

    async def session_snapshot(self) -> SessionSnapshot: ...

    async def leaderboard(self, limit: int | None = None) -> list[LeaderboardEntry]: ...

    async def tally(self, question_id: str) -> dict[int, int]: ...


class ChangeFeedBridge:
    """Subscribes to the feed and fans typed events out to listeners."""

    def __init__(
        self,
        feed: ChangeFeed,
        source: SnapshotSource,
        resources: Iterable[str] = FEED_RESOURCES,
        backoff_seconds: float = FEED_RECONNECT_BACKOFF_SECONDS,
        max_reconnect_attempts: int | None = None,
    ) -> None:
        self._feed = feed
        self._source = source
        self._resources = tuple(resources)
        self._backoff = backoff_seconds
        self._max_reconnect_attempts = max_reconnect_attempts
        self._listeners: list[Listener] = []
        self._state_listeners: list[Callable[[FeedState], Any]] = []
        self._state = FeedState.DISCONNECTED
        self._task: asyncio.Task | None = None
        self._stopping = False
        self._subscriptions: list[Subscription] = []
        self._live = asyncio.Event()
        self.reconnect_count = 0

    @property
    def state(self) -> FeedState:
        return self._state

    def add_listener(self, listener: Listener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: Listener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def add_state_listener(self, listener: Callable[[FeedState], Any]) -> None:
        self._state_listeners.append(listener)

    def _set_state(self, state: FeedState) -> None:
        if state is self._state:
            return
        logger.debug("Feed bridge %s -> %s", self._state.value, state.value)
        self._state = state
        if state is FeedState.LIVE:
            self._live.set()
        else:
            self._live.clear()
        for listener in list(self._state_listeners):
            listener(state)

    async def wait_until_live(self, timeout: float | None = None) -> None:
        await asyncio.wait_for(self._live.wait(), timeout)

    # --- Lifecycle ---

    def start(self) -> asyncio.Task:
        if self._task is not None and not self._task.done():
            return self._task
        self._stopping = False
        self._task = asyncio.get_running_loop().create_task(self.run())
        return self._task

    async def stop(self) -> None:
        self._stopping = True
        task, self._task = self._task, None
        if task is not None and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        self._close_subscriptions()
        self._set_state(FeedState.DISCONNECTED)

    async def run(self) -> None:
        attempts = 0
        self._set_state(FeedState.SUBSCRIBING)
        try:
            while not self._stopping:
                try:
                    await self._open_subscriptions()
                    self._set_state(FeedState.LIVE)
                    attempts = 0
                    await self.refresh()
                    await self._pump()
                except TransientStoreError as exc:
                    self._set_state(FeedState.ERROR)
                    logger.warning("Change feed error: %s", exc)
                finally:
                    self._close_subscriptions()
                if self._stopping:
                    break
                attempts += 1
                if self._max_reconnect_attempts is not None and attempts > self._max_reconnect_attempts:
                    logger.warning("Giving up on the change feed after %d attempt(s)", attempts - 1)
                    break
                self._set_state(FeedState.RECONNECTING)
                self.reconnect_count += 1
                await asyncio.sleep(self._backoff)
        finally:
            self._set_state(FeedState.DISCONNECTED)

    async def _open_subscriptions(self) -> None:
        for resource in self._resources:
            self._subscriptions.append(await self._feed.subscribe(resource))

    def _close_subscriptions(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            self._feed.unsubscribe(subscription)

    async def _pump(self) -> None:
        merged: asyncio.Queue[Any] = asyncio.Queue()

        async def reader(subscription: Subscription) -> None:
            try:
                async for notification in subscription:
                    merged.put_nowait(notification)
            except TransientStoreError as exc:
                merged.put_nowait(exc)

        readers = [asyncio.create_task(reader(subscription)) for subscription in self._subscriptions]
        try:
            while True:
                item = await merged.get()
                if isinstance(item, TransientStoreError):
                    raise item
                event = await self.translate(item)
                if event is not None:
                    await self._emit(event)
        finally:
            for task in readers:
                task.cancel()
            await asyncio.gather(*readers, return_exceptions=True)

    # --- Fetch and translation ---

    async def refresh(self) -> None:
        """Full authoritative fetch of session state and leaderboard."""
        snapshot = await self._source.session_snapshot()
        entries = await self._source.leaderboard()
        await self._emit(SessionStateChanged(snapshot=snapshot))
        await self._emit(LeaderboardChanged(entries=tuple(entries)))

    async def translate(self, notification: ChangeNotification) -> FeedEvent | None:
        """Map one raw notification to exactly one typed event (None if not ours)."""
        resource = notification.resource
        if resource in (GAME_STATE, ACTIVE_CHALLENGES):
            return SessionStateChanged(snapshot=await self._source.session_snapshot())
        if resource == USERS:
            row = notification.row()
            participant_id = getattr(row, "id", None)
            entries = tuple(await self._source.leaderboard())
            if notification.event_kind in (INSERT, DELETE):
                participant = row if notification.event_kind == INSERT else None
                return UsersChanged(participant_id=participant_id, participant=participant, entries=entries)
            return LeaderboardChanged(entries=entries, participant_id=participant_id, participant=row)
        if resource == POLL_VOTES:
            question_id = getattr(notification.row(), "poll_question_id", None)
            if question_id is None:
                return None
            return VotesChanged(question_id=question_id, tally=await self._source.tally(question_id))
        logger.debug("Ignoring notification for unknown resource %s", resource)
        return None

    async def _emit(self, event: FeedEvent) -> None:
        for listener in list(self._listeners):
            try:
                outcome = listener(event)
                if inspect.isawaitable(outcome):
                    await outcome
            except Exception:
                logger.exception("Feed listener failed on %s", type(event).__name__)
