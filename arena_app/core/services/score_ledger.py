"""Service that applies signed point deltas to participant scores."""

from __future__ import annotations

import logging
from typing import Mapping

from arena_app.core.errors import ValidationError
from arena_app.core.models import ScoreUpdate
from arena_app.core.store import DataStore

logger = logging.getLogger(__name__)


class ScoreLedger:
    """Sends relative adjustments, never absolute scores.

    Concurrent awards for the same participant commute because the store
    applies each delta as an atomic increment.
    """

    def __init__(self, store: DataStore) -> None:
        self._store = store

    async def apply_delta(self, participant_id: str, delta: int) -> ScoreUpdate:
        """Apply ``delta`` and return the authoritative post-update score.

        Raises ParticipantNotFound for unknown ids and StoreUnavailable when
        the store cannot be reached. Negative deltas are allowed and there is
        no score floor.
        """
        if isinstance(delta, bool) or not isinstance(delta, int):
            raise ValidationError("Score delta must be an integer.")
        update = await self._store.increment_score(participant_id, delta)
        logger.debug(
            "Score %+d for %s -> %d (rev %d)",
            delta,
            participant_id,
            update.new_score,
            update.revision,
        )
        return update

    async def settle_poll(self, question_id: str, awards: Mapping[str, int]) -> list[ScoreUpdate]:
        """Close a poll question and apply all of its payouts together.

        Either every award lands and the question is closed, or nothing changes
        and the close can be retried without paying anyone twice.
        """
        for delta in awards.values():
            if isinstance(delta, bool) or not isinstance(delta, int):
                raise ValidationError("Score delta must be an integer.")
        updates = await self._store.close_poll_question(question_id, awards)
        logger.debug("Settled poll %s with %d payout(s)", question_id, len(updates))
        return updates
