"""Publish/subscribe change notifications for store rows.

The in-memory feed stands in for a hosted realtime service: the data store
publishes one notification per row mutation and every subscriber receives it on
its own event loop. Publishing is thread-safe so the Qt console thread and the
API server thread can both mutate the store.
"""

from __future__ import annotations

import abc
import asyncio
import itertools
import logging
from dataclasses import dataclass
from threading import Lock
from typing import Any, Mapping

from arena_app.core.errors import TransientStoreError

logger = logging.getLogger(__name__)

INSERT = "INSERT"
UPDATE = "UPDATE"
DELETE = "DELETE"


@dataclass(frozen=True, slots=True)
class ChangeNotification:
    """Raw row-change payload as delivered by the transport."""

    resource: str
    event_kind: str
    before_row: Any = None
    after_row: Any = None

    def row(self) -> Any:
        return self.after_row if self.after_row is not None else self.before_row


class _Interrupted:
    __slots__ = ("reason",)

    def __init__(self, reason: str) -> None:
        self.reason = reason


_CLOSED = object()


class Subscription:
    """Handle for one subscriber; iterate it to receive notifications."""

    def __init__(
        self,
        handle: int,
        resource: str,
        row_filter: Mapping[str, Any] | None,
        loop: asyncio.AbstractEventLoop,
    ) -> None:
        self.handle = handle
        self.resource = resource
        self.row_filter = dict(row_filter or {})
        self._loop = loop
        self._queue: asyncio.Queue[Any] = asyncio.Queue()
        self._closed = False

    def matches(self, notification: ChangeNotification) -> bool:
        if notification.resource != self.resource:
            return False
        if not self.row_filter:
            return True
        row = notification.row()
        return all(getattr(row, key, None) == value for key, value in self.row_filter.items())

    def _deliver(self, item: Any) -> bool:
        if self._closed:
            return False
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # Subscriber loop already closed
            self._closed = True
            return False
        return True

    async def get(self) -> ChangeNotification:
        """Wait for the next notification.

        Raises TransientStoreError when the transport drops and
        StopAsyncIteration once the subscription has been closed.
        """
        item = await self._queue.get()
        if item is _CLOSED:
            self._closed = True
            raise StopAsyncIteration
        if isinstance(item, _Interrupted):
            self._closed = True
            raise TransientStoreError(item.reason)
        return item

    def __aiter__(self) -> "Subscription":
        return self

    async def __anext__(self) -> ChangeNotification:
        return await self.get()

    @property
    def closed(self) -> bool:
        return self._closed


class ChangeFeed(abc.ABC):
    """Boundary contract of the realtime delivery service."""

    @abc.abstractmethod
    async def subscribe(self, resource: str, row_filter: Mapping[str, Any] | None = None) -> Subscription:
        raise NotImplementedError

    @abc.abstractmethod
    def unsubscribe(self, subscription: Subscription) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    def publish(self, notification: ChangeNotification) -> None:
        raise NotImplementedError


class InMemoryChangeFeed(ChangeFeed):
    """Process-local feed with a switch for simulating transport drops."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._subscriptions: dict[int, Subscription] = {}
        self._handles = itertools.count(1)
        self._connected = True

    async def subscribe(self, resource: str, row_filter: Mapping[str, Any] | None = None) -> Subscription:
        loop = asyncio.get_running_loop()
        with self._lock:
            if not self._connected:
                raise TransientStoreError("Change feed is unreachable.")
            subscription = Subscription(next(self._handles), resource, row_filter, loop)
            self._subscriptions[subscription.handle] = subscription
        logger.debug("Subscribed #%s to %s", subscription.handle, resource)
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        with self._lock:
            removed = self._subscriptions.pop(subscription.handle, None)
        if removed is not None:
            removed._deliver(_CLOSED)

    def publish(self, notification: ChangeNotification) -> None:
        with self._lock:
            if not self._connected:
                return
            targets = [sub for sub in self._subscriptions.values() if sub.matches(notification)]
        stale = [sub.handle for sub in targets if not sub._deliver(notification)]
        if stale:
            with self._lock:
                for handle in stale:
                    self._subscriptions.pop(handle, None)

    def subscriber_count(self) -> int:
        with self._lock:
            return len(self._subscriptions)

    def set_connected(self, connected: bool) -> None:
        """Drop or restore the transport; dropping interrupts every live subscription."""
        with self._lock:
            self._connected = connected
            interrupted = [] if connected else list(self._subscriptions.values())
            if not connected:
                self._subscriptions.clear()
        for subscription in interrupted:
            subscription._deliver(_Interrupted("Change feed connection lost."))
        if interrupted:
            logger.warning("Change feed dropped %d subscription(s)", len(interrupted))
