"""Service for ranking participants by score."""

from __future__ import annotations

from typing import Iterable

from arena_app.core.models import LeaderboardEntry, Participant
from arena_app.core.store import DataStore, leaderboard_sort_key


def project(participants: Iterable[Participant]) -> list[LeaderboardEntry]:
    """Return a total ordering: score descending, earliest joiner first on ties."""
    ordered = sorted(participants, key=leaderboard_sort_key)
    return [LeaderboardEntry(participant=participant, rank=index) for index, participant in enumerate(ordered, 1)]


class LeaderboardProjector:
    """Recomputes the leaderboard from a full participant snapshot on demand."""

    def __init__(self, store: DataStore) -> None:
        self._store = store

    async def refresh(self, limit: int | None = None, include_admins: bool = False) -> list[LeaderboardEntry]:
        participants = await self._store.list_participants()
        if not include_admins:
            participants = [p for p in participants if not p.is_admin]
        entries = project(participants)
        return entries if limit is None else entries[:limit]
