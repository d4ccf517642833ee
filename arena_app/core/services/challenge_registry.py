"""Service exposing the static challenge catalog and its live subset."""

from __future__ import annotations

from typing import Iterable

from arena_app.core.catalog import DEFAULT_CHALLENGES
from arena_app.core.errors import ChallengeNotFound
from arena_app.core.models import ChallengeDefinition
from arena_app.core.store import DataStore


class ChallengeRegistry:
    """Catalog of challenge definitions, immutable after construction."""

    def __init__(self, store: DataStore, challenges: Iterable[ChallengeDefinition] = DEFAULT_CHALLENGES) -> None:
        self._store = store
        self._challenges: dict[str, ChallengeDefinition] = {}
        for challenge in challenges:
            if challenge.id in self._challenges:
                raise ValueError(f"Duplicate challenge id {challenge.id!r}")
            self._challenges[challenge.id] = challenge

    def get(self, challenge_id: str) -> ChallengeDefinition:
        challenge = self._challenges.get(challenge_id)
        if challenge is None:
            raise ChallengeNotFound(challenge_id)
        return challenge

    def list(self) -> list[ChallengeDefinition]:
        return list(self._challenges.values())

    async def active(self) -> list[ChallengeDefinition]:
        records = await self._store.list_active_challenges(is_active=True)
        live_ids = {record.challenge_id for record in records}
        return [challenge for challenge in self._challenges.values() if challenge.id in live_ids]
