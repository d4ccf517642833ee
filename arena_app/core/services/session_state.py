"""Admin-facing control plane for starting and stopping challenges.

Authorization happens at the boundary (``ArenaManager``); this service only
performs the transitions. Every transition is an idempotent upsert keyed by
challenge id, so concurrent admin sessions never need a lock here.
"""

from __future__ import annotations

import logging

from arena_app.core.errors import ConflictError
from arena_app.core.models import ActiveChallengeRecord, SessionSnapshot
from arena_app.core.services.challenge_registry import ChallengeRegistry
from arena_app.core.store import DataStore
from arena_app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


class SessionStateMachine:
    """Owns the session pointer and the per-challenge active records."""

    def __init__(self, store: DataStore, registry: ChallengeRegistry, clock: Clock = utcnow) -> None:
        self._store = store
        self._registry = registry
        self._clock = clock

    async def start_challenge(self, challenge_id: str) -> ActiveChallengeRecord:
        """Activate a challenge, or refresh its start time if it is already live.

        The record and the session pointer are written together.
        """
        self._registry.get(challenge_id)
        now = self._clock()
        fields = {"is_active": True, "start_time": now, "end_time": None}
        try:
            record = await self._store.upsert_active_challenge(
                challenge_id, fields, session_fields=self._pointer_to(challenge_id, now)
            )
        except ConflictError:
            record = await self._resolve_start_conflict(challenge_id)
            await self._store.update_session_state(self._pointer_to(challenge_id, record.start_time))
        logger.info("Challenge %s started at %s", challenge_id, record.start_time)
        return record

    @staticmethod
    def _pointer_to(challenge_id: str, start_time) -> dict:
        return {
            "active_challenge_id": challenge_id,
            "is_active": True,
            "start_time": start_time,
            "end_time": None,
        }

    async def _resolve_start_conflict(self, challenge_id: str) -> ActiveChallengeRecord:
        # A concurrent start won the race; that is the state we wanted anyway.
        for record in await self._store.list_active_challenges(is_active=True):
            if record.challenge_id == challenge_id:
                logger.info("Concurrent start of %s resolved to the existing record", challenge_id)
                return record
        raise ConflictError(f"Could not start challenge {challenge_id!r}; please retry.")

    async def end_challenge(self, challenge_id: str) -> ActiveChallengeRecord | None:
        """End a live challenge. Ending one that is not live is a no-op."""
        self._registry.get(challenge_id)
        live = await self._store.list_active_challenges(is_active=True)
        if not any(record.challenge_id == challenge_id for record in live):
            return None
        now = self._clock()
        remaining = [record for record in live if record.challenge_id != challenge_id]
        if remaining:
            latest = max(remaining, key=lambda record: record.start_time)
            session_fields = self._pointer_to(latest.challenge_id, latest.start_time)
        else:
            session_fields = {"active_challenge_id": None, "is_active": False, "end_time": now}
        record = await self._store.update_active_challenge(
            challenge_id, {"is_active": False, "end_time": now}, session_fields=session_fields
        )
        logger.info("Challenge %s ended", challenge_id)
        return record

    async def end_all_challenges(self) -> list[ActiveChallengeRecord]:
        """End every live challenge and clear the pointer in one batch."""
        live = await self._store.list_active_challenges(is_active=True)
        if not live:
            return []
        now = self._clock()
        ended = await self._store.end_active_challenges(
            [record.challenge_id for record in live],
            {"is_active": False, "end_time": now},
            session_fields={"active_challenge_id": None, "is_active": False, "end_time": now},
        )
        logger.info("Ended %d challenge(s)", len(ended))
        return ended

    async def snapshot(self) -> SessionSnapshot:
        session = await self._store.get_session_state()
        records = await self._store.list_active_challenges()
        return SessionSnapshot(session=session, active_challenges=tuple(records))
