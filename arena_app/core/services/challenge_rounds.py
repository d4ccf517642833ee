"""Per-challenge scoring rules and the cancel-safe round timer.

Every challenge kind follows the same discipline: points accumulate locally
while the round runs and exactly one delta is submitted when the countdown
expires or the player finishes. A cancelled round submits nothing.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum, auto
from typing import Any, Awaitable, Callable

from arena_app.constants.game_constants import (
    EMOJI_POINT_TIERS,
    EMOJI_SLOW_POINTS,
    LUCKY_TAP_POINTS,
    MATCH_LOGOS_BASE_POINTS,
    MATCH_LOGOS_TIME_BONUS,
    SHAKE_POINTS_PER_SHAKE,
)
from arena_app.core.models import ChallengeDefinition

logger = logging.getLogger(__name__)


def emoji_points(response_ms: float, is_correct: bool) -> int:
    if not is_correct:
        return 0
    for limit_ms, points in EMOJI_POINT_TIERS:
        if response_ms < limit_ms:
            return points
    return EMOJI_SLOW_POINTS


def lucky_tap_points(hit: bool) -> int:
    return LUCKY_TAP_POINTS if hit else 0


def shake_points(shake_count: int) -> int:
    return max(0, shake_count) * SHAKE_POINTS_PER_SHAKE


def match_logos_time_bonus(elapsed_ms: float) -> int:
    for limit_ms, bonus in MATCH_LOGOS_TIME_BONUS:
        if elapsed_ms < limit_ms:
            return bonus
    return 0


def match_logos_points(elapsed_ms: float, completed: bool = True) -> int:
    if not completed:
        return 0
    return MATCH_LOGOS_BASE_POINTS + match_logos_time_bonus(elapsed_ms)


class RoundState(Enum):
    IDLE = auto()
    RUNNING = auto()
    SUBMITTED = auto()
    CANCELLED = auto()


class ChallengeRound:
    """One timed play-through of a challenge on the client."""

    def __init__(
        self,
        challenge: ChallengeDefinition,
        submit: Callable[[int], Awaitable[Any]],
        duration_seconds: float | None = None,
    ) -> None:
        self.challenge = challenge
        self._submit = submit
        self._duration = challenge.duration_hint if duration_seconds is None else duration_seconds
        self._points = 0
        self._state = RoundState.IDLE
        self._timer: asyncio.Task | None = None
        self._result: Any = None

    @property
    def state(self) -> RoundState:
        return self._state

    @property
    def points(self) -> int:
        return self._points

    @property
    def result(self) -> Any:
        return self._result

    def start(self) -> None:
        if self._state is not RoundState.IDLE:
            raise RuntimeError("Round has already been started.")
        self._state = RoundState.RUNNING
        self._timer = asyncio.get_running_loop().create_task(self._countdown())

    def add_points(self, points: int) -> None:
        """Record progress; ignored once the round is no longer running."""
        if self._state is RoundState.RUNNING:
            self._points += points

    async def _countdown(self) -> None:
        await asyncio.sleep(self._duration)
        await self._submit_once()

    async def finish(self) -> Any:
        """Explicit user action ending the round early."""
        if self._state is not RoundState.RUNNING:
            return self._result
        if self._timer is not None and self._timer is not asyncio.current_task():
            self._timer.cancel()
        return await self._submit_once()

    def cancel(self) -> None:
        """Abandon the round (disconnect or navigation); nothing is sent."""
        if self._state is not RoundState.RUNNING:
            return
        self._state = RoundState.CANCELLED
        if self._timer is not None:
            self._timer.cancel()
        logger.debug("Round %s cancelled with %d unsent point(s)", self.challenge.id, self._points)

    async def wait(self) -> Any:
        """Wait for the countdown to run out (or be cancelled)."""
        if self._timer is not None:
            try:
                await self._timer
            except asyncio.CancelledError:
                if self._state is RoundState.RUNNING:
                    raise
        return self._result

    async def _submit_once(self) -> Any:
        if self._state is not RoundState.RUNNING:
            return self._result
        self._state = RoundState.SUBMITTED
        if self._points != 0:
            self._result = await self._submit(self._points)
        return self._result
