"""Data-store contract and the in-memory implementation used by the server.

The store owns every shared mutable row (participants, the session state
singleton, active challenge records and poll votes). Each operation is atomic
per row, score changes are applied as increments and every mutation publishes
one change notification.
"""

from __future__ import annotations

import abc
import itertools
import logging
from dataclasses import replace
from threading import Lock
from typing import Any, Iterable, Mapping
from uuid import uuid4

from arena_app.core.change_feed import DELETE, INSERT, UPDATE, ChangeFeed, ChangeNotification
from arena_app.core.errors import ParticipantNotFound, StoreUnavailable, ValidationError
from arena_app.core.models import (
    ActiveChallengeRecord,
    Participant,
    ScoreUpdate,
    SessionState,
    VoteRecord,
)
from arena_app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)

USERS = "users"
GAME_STATE = "game_state"
ACTIVE_CHALLENGES = "active_challenges"
POLL_VOTES = "poll_votes"

_CHALLENGE_FIELDS = {"is_active", "start_time", "end_time"}
_SESSION_FIELDS = {"active_challenge_id", "is_active", "start_time", "end_time"}


def leaderboard_sort_key(participant: Participant) -> tuple:
    """Score descending, then first to join."""
    return (-participant.score, participant.joined_at, participant.join_sequence)


class DataStore(abc.ABC):
    """Small CRUD contract the core consumes."""

    @abc.abstractmethod
    async def get_participant(self, participant_id: str) -> Participant: ...

    @abc.abstractmethod
    async def create_participant(
        self, display_name: str, access_code: str, is_admin: bool = False
    ) -> Participant: ...

    @abc.abstractmethod
    async def find_participant(self, display_name: str, access_code: str) -> Participant | None: ...

    @abc.abstractmethod
    async def increment_score(self, participant_id: str, delta: int) -> ScoreUpdate: ...

    @abc.abstractmethod
    async def list_participants(self, limit: int | None = None) -> list[Participant]: ...

    @abc.abstractmethod
    async def count_participants(self, include_admins: bool = False) -> int: ...

    @abc.abstractmethod
    async def upsert_active_challenge(
        self,
        challenge_id: str,
        fields: Mapping[str, Any],
        session_fields: Mapping[str, Any] | None = None,
    ) -> ActiveChallengeRecord: ...

    @abc.abstractmethod
    async def update_active_challenge(
        self,
        challenge_id: str,
        fields: Mapping[str, Any],
        session_fields: Mapping[str, Any] | None = None,
    ) -> ActiveChallengeRecord | None: ...

    @abc.abstractmethod
    async def list_active_challenges(self, is_active: bool | None = None) -> list[ActiveChallengeRecord]: ...

    @abc.abstractmethod
    async def end_active_challenges(
        self,
        challenge_ids: Iterable[str],
        fields: Mapping[str, Any],
        session_fields: Mapping[str, Any] | None = None,
    ) -> list[ActiveChallengeRecord]: ...

    @abc.abstractmethod
    async def get_session_state(self) -> SessionState: ...

    @abc.abstractmethod
    async def update_session_state(self, fields: Mapping[str, Any]) -> SessionState: ...

    @abc.abstractmethod
    async def upsert_vote(self, user_id: str, question_id: str, option_index: int) -> VoteRecord: ...

    @abc.abstractmethod
    async def list_votes(self, question_id: str) -> list[VoteRecord]: ...

    @abc.abstractmethod
    async def close_poll_question(
        self, question_id: str, awards: Mapping[str, int]
    ) -> list[ScoreUpdate]: ...

    @abc.abstractmethod
    async def is_poll_question_closed(self, question_id: str) -> bool: ...

    @abc.abstractmethod
    async def reset_poll_question(self, question_id: str) -> None: ...


class InMemoryDataStore(DataStore):
    """Thread-safe process-local store."""

    def __init__(self, feed: ChangeFeed | None = None, clock: Clock = utcnow) -> None:
        self._lock = Lock()
        self._feed = feed
        self._clock = clock
        self._participants: dict[str, Participant] = {}
        self._join_counter = itertools.count(1)
        self._session = SessionState()
        self._challenges: dict[str, ActiveChallengeRecord] = {}
        self._votes: dict[tuple[str, str], VoteRecord] = {}
        self._closed_questions: set[str] = set()
        self._outage = False

    # --- Fault injection ---

    def simulate_outage(self, enabled: bool) -> None:
        with self._lock:
            self._outage = enabled

    def _check_available(self) -> None:
        if self._outage:
            raise StoreUnavailable("Data store is unavailable.")

    def _publish(self, resource: str, kind: str, before: Any = None, after: Any = None) -> None:
        if self._feed is not None:
            self._feed.publish(ChangeNotification(resource, kind, before, after))

    # --- Participants ---

    async def get_participant(self, participant_id: str) -> Participant:
        with self._lock:
            self._check_available()
            participant = self._participants.get(participant_id)
        if participant is None:
            raise ParticipantNotFound(participant_id)
        return participant

    async def create_participant(
        self, display_name: str, access_code: str, is_admin: bool = False
    ) -> Participant:
        with self._lock:
            self._check_available()
            participant = Participant(
                id=uuid4().hex,
                display_name=display_name,
                access_code=access_code,
                joined_at=self._clock(),
                is_admin=is_admin,
                join_sequence=next(self._join_counter),
            )
            self._participants[participant.id] = participant
            self._publish(USERS, INSERT, after=participant)
        return participant

    async def find_participant(self, display_name: str, access_code: str) -> Participant | None:
        with self._lock:
            self._check_available()
            for participant in self._participants.values():
                if participant.display_name == display_name and participant.access_code == access_code:
                    return participant
        return None

    async def increment_score(self, participant_id: str, delta: int) -> ScoreUpdate:
        with self._lock:
            self._check_available()
            before = self._participants.get(participant_id)
            if before is None:
                raise ParticipantNotFound(participant_id)
            after = replace(before, score=before.score + delta, revision=before.revision + 1)
            self._participants[participant_id] = after
            self._publish(USERS, UPDATE, before=before, after=after)
        return ScoreUpdate(
            participant_id=participant_id,
            delta=delta,
            new_score=after.score,
            revision=after.revision,
        )

    async def set_admin(self, participant_id: str, is_admin: bool) -> Participant:
        with self._lock:
            self._check_available()
            before = self._participants.get(participant_id)
            if before is None:
                raise ParticipantNotFound(participant_id)
            after = replace(before, is_admin=is_admin)
            self._participants[participant_id] = after
            self._publish(USERS, UPDATE, before=before, after=after)
        return after

    async def list_participants(self, limit: int | None = None) -> list[Participant]:
        with self._lock:
            self._check_available()
            ordered = sorted(self._participants.values(), key=leaderboard_sort_key)
        return ordered if limit is None else ordered[:limit]

    async def count_participants(self, include_admins: bool = False) -> int:
        with self._lock:
            self._check_available()
            return sum(1 for p in self._participants.values() if include_admins or not p.is_admin)

    # --- Active challenges ---

    @staticmethod
    def _checked_fields(fields: Mapping[str, Any], allowed: set[str]) -> dict[str, Any]:
        unknown = set(fields) - allowed
        if unknown:
            raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
        return dict(fields)

    def _next_session(self, fields: Mapping[str, Any] | None) -> SessionState | None:
        # Caller holds the lock; validates before anything is written.
        if fields is None:
            return None
        after = replace(self._session, **self._checked_fields(fields, _SESSION_FIELDS))
        if after.is_active and (after.active_challenge_id is None or after.start_time is None):
            raise ValidationError("An active session needs a challenge and a start time.")
        return after

    def _commit_session(self, after: SessionState | None) -> None:
        if after is None:
            return
        before = self._session
        self._session = after
        self._publish(GAME_STATE, UPDATE, before=before, after=after)

    async def upsert_active_challenge(
        self,
        challenge_id: str,
        fields: Mapping[str, Any],
        session_fields: Mapping[str, Any] | None = None,
    ) -> ActiveChallengeRecord:
        """Insert or update one record, optionally moving the session pointer with it."""
        values = self._checked_fields(fields, _CHALLENGE_FIELDS)
        with self._lock:
            self._check_available()
            session = self._next_session(session_fields)
            before = self._challenges.get(challenge_id)
            if before is None:
                after = ActiveChallengeRecord(challenge_id=challenge_id, is_active=False)
                after = replace(after, **values)
                kind = INSERT
            else:
                after = replace(before, **values)
                kind = UPDATE
            self._challenges[challenge_id] = after
            self._publish(ACTIVE_CHALLENGES, kind, before=before, after=after)
            self._commit_session(session)
        return after

    async def update_active_challenge(
        self,
        challenge_id: str,
        fields: Mapping[str, Any],
        session_fields: Mapping[str, Any] | None = None,
    ) -> ActiveChallengeRecord | None:
        values = self._checked_fields(fields, _CHALLENGE_FIELDS)
        with self._lock:
            self._check_available()
            before = self._challenges.get(challenge_id)
            if before is None:
                return None
            session = self._next_session(session_fields)
            after = replace(before, **values)
            self._challenges[challenge_id] = after
            self._publish(ACTIVE_CHALLENGES, UPDATE, before=before, after=after)
            self._commit_session(session)
        return after

    async def list_active_challenges(self, is_active: bool | None = None) -> list[ActiveChallengeRecord]:
        with self._lock:
            self._check_available()
            records = list(self._challenges.values())
        if is_active is None:
            return records
        return [record for record in records if record.is_active == is_active]

    async def end_active_challenges(
        self,
        challenge_ids: Iterable[str],
        fields: Mapping[str, Any],
        session_fields: Mapping[str, Any] | None = None,
    ) -> list[ActiveChallengeRecord]:
        """Apply the same update to several records and the session; all or nothing."""
        values = self._checked_fields(fields, _CHALLENGE_FIELDS)
        ids = list(dict.fromkeys(challenge_ids))
        with self._lock:
            self._check_available()
            missing = [challenge_id for challenge_id in ids if challenge_id not in self._challenges]
            if missing:
                raise ValidationError(f"No challenge records for: {', '.join(missing)}")
            session = self._next_session(session_fields)
            changes = [
                (self._challenges[challenge_id], replace(self._challenges[challenge_id], **values))
                for challenge_id in ids
            ]
            for before, after in changes:
                self._challenges[after.challenge_id] = after
            for before, after in changes:
                self._publish(ACTIVE_CHALLENGES, UPDATE, before=before, after=after)
            self._commit_session(session)
        return [after for _, after in changes]

    # --- Session state singleton ---

    async def get_session_state(self) -> SessionState:
        with self._lock:
            self._check_available()
            return self._session

    async def update_session_state(self, fields: Mapping[str, Any]) -> SessionState:
        with self._lock:
            self._check_available()
            after = self._next_session(fields)
            self._commit_session(after)
        return after

    # --- Poll votes ---

    async def upsert_vote(self, user_id: str, question_id: str, option_index: int) -> VoteRecord:
        with self._lock:
            self._check_available()
            if question_id in self._closed_questions:
                raise ValidationError("This poll question is already closed.")
            key = (user_id, question_id)
            before = self._votes.get(key)
            after = VoteRecord(user_id=user_id, poll_question_id=question_id, option_index=option_index)
            self._votes[key] = after
            self._publish(POLL_VOTES, UPDATE if before else INSERT, before=before, after=after)
        return after

    async def list_votes(self, question_id: str) -> list[VoteRecord]:
        with self._lock:
            self._check_available()
            return [vote for vote in self._votes.values() if vote.poll_question_id == question_id]

    async def close_poll_question(
        self, question_id: str, awards: Mapping[str, int]
    ) -> list[ScoreUpdate]:
        """Close a question and apply every payout in one step; all or nothing.

        Raises ``ValidationError`` if somebody closed it first and
        ``ParticipantNotFound`` if any awarded participant is missing, in which
        case no score changes and the question stays open.
        """
        with self._lock:
            self._check_available()
            if question_id in self._closed_questions:
                raise ValidationError("This poll question is already closed.")
            missing = [participant_id for participant_id in awards if participant_id not in self._participants]
            if missing:
                raise ParticipantNotFound(missing[0])
            changes = []
            for participant_id, delta in awards.items():
                before = self._participants[participant_id]
                after = replace(before, score=before.score + delta, revision=before.revision + 1)
                changes.append((before, after, delta))
            self._closed_questions.add(question_id)
            for before, after, _ in changes:
                self._participants[after.id] = after
            for before, after, _ in changes:
                self._publish(USERS, UPDATE, before=before, after=after)
        return [
            ScoreUpdate(participant_id=after.id, delta=delta, new_score=after.score, revision=after.revision)
            for _, after, delta in changes
        ]

    async def is_poll_question_closed(self, question_id: str) -> bool:
        with self._lock:
            self._check_available()
            return question_id in self._closed_questions

    async def reset_poll_question(self, question_id: str) -> None:
        with self._lock:
            self._check_available()
            removed = [key for key, vote in self._votes.items() if vote.poll_question_id == question_id]
            removed_votes = [self._votes.pop(key) for key in removed]
            self._closed_questions.discard(question_id)
            for vote in removed_votes:
                self._publish(POLL_VOTES, DELETE, before=vote)
