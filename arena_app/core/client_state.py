"""Client-side cache of game state with optimistic updates and reconciliation.

Authoritative values (ledger responses and feed pushes) always overwrite the
provisional display value; they are never merged into it. Any optimistic change
whose server call fails is reverted and reported to the user.
"""

from __future__ import annotations

import itertools
import json
import logging
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Callable, Protocol

from arena_app.core.change_feed_bridge import (
    ChangeFeedBridge,
    FeedEvent,
    LeaderboardChanged,
    SessionStateChanged,
    UsersChanged,
    VotesChanged,
)
from arena_app.core.errors import ArenaError
from arena_app.core.models import (
    ChallengeDefinition,
    LeaderboardEntry,
    Participant,
    ScoreUpdate,
    SessionSnapshot,
    SessionState,
    VoteRecord,
)
from arena_app.core.services.challenge_rounds import ChallengeRound
from arena_app.utils.clock import utcnow

logger = logging.getLogger(__name__)

CURRENT_USER_KEY = "currentUser"
IS_ADMIN_CACHED_KEY = "isAdminCached"
ADMIN_VIEW_PREFERENCE_KEY = "adminViewPreference"


class LocalClientStore:
    """Small persisted key/value store; memory-only when no path is given."""

    def __init__(self, path: Path | None = None) -> None:
        self._path = path
        self._values: dict[str, Any] = {}
        if path is not None and path.exists():
            try:
                self._values = json.loads(path.read_text(encoding="utf-8"))
            except (OSError, ValueError) as exc:
                logger.warning("Ignoring unreadable client state at %s: %s", path, exc)
                self._values = {}

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def set(self, key: str, value: Any) -> None:
        self._values[key] = value
        self._flush()

    def remove(self, key: str) -> None:
        if self._values.pop(key, None) is not None:
            self._flush()

    def _flush(self) -> None:
        if self._path is None:
            return
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(self._values, indent=2, sort_keys=True), encoding="utf-8")


class ArenaBackend(Protocol):
    """Operations the client calls on the authoritative side."""

    async def join(self, display_name: str, access_code: str) -> Participant: ...

    async def log_in(self, display_name: str, access_code: str) -> Participant: ...

    async def get_participant(self, participant_id: str) -> Participant: ...

    async def apply_delta(self, participant_id: str, delta: int) -> ScoreUpdate: ...

    async def vote(self, user_id: str, question_id: str, option_index: int) -> VoteRecord: ...

    async def start_challenge(self, actor_id: str, challenge_id: str) -> Any: ...

    async def end_challenge(self, actor_id: str, challenge_id: str) -> Any: ...

    async def end_all_challenges(self, actor_id: str) -> Any: ...

    async def session_snapshot(self) -> SessionSnapshot: ...


@dataclass(frozen=True, slots=True)
class ActionResult:
    """Outcome of a user action, carrying a human-readable message."""

    success: bool
    message: str = ""
    value: Any = None


def _participant_to_dict(participant: Participant) -> dict[str, Any]:
    return {
        "id": participant.id,
        "display_name": participant.display_name,
        "score": participant.score,
        "is_admin": participant.is_admin,
    }


class ClientSession:
    """One client's view of the game: session, leaderboard and own score."""

    def __init__(
        self,
        backend: ArenaBackend,
        local_store: LocalClientStore | None = None,
        notifier: Callable[[str], None] | None = None,
    ) -> None:
        self._backend = backend
        self._local = local_store or LocalClientStore()
        self._notifier = notifier
        self._tokens = itertools.count(1)

        self.current_player_id: str | None = None
        self.current_player_name: str | None = None
        self.is_admin_cached = False
        self.view_as_admin = False
        self.snapshot = SessionSnapshot(session=SessionState())
        self.leaderboard: tuple[LeaderboardEntry, ...] = ()
        self.tallies: dict[str, dict[int, int]] = {}
        self.my_votes: dict[str, int] = {}
        self.messages: list[str] = []

        self.authoritative_score = 0
        self.authoritative_revision = -1
        self.display_score = 0
        self._pending: dict[int, int] = {}
        self._provisional: dict[int, int] = {}

    # --- Startup seed ---

    def restore(self) -> bool:
        """Pre-populate from local storage before the authoritative fetch lands."""
        cached = self._local.get(CURRENT_USER_KEY)
        if not cached:
            return False
        self.current_player_id = cached.get("id")
        self.current_player_name = cached.get("display_name")
        self.authoritative_score = int(cached.get("score", 0))
        self.display_score = self.authoritative_score
        self.is_admin_cached = bool(self._local.get(IS_ADMIN_CACHED_KEY, False))
        self.view_as_admin = self.is_admin_cached and bool(self._local.get(ADMIN_VIEW_PREFERENCE_KEY, True))
        return True

    def attach(self, bridge: ChangeFeedBridge) -> None:
        bridge.add_listener(self.handle_event)

    # --- Identity ---

    async def join(self, display_name: str, access_code: str) -> ActionResult:
        return await self._enter(self._backend.join, display_name, access_code)

    async def log_in(self, display_name: str, access_code: str) -> ActionResult:
        return await self._enter(self._backend.log_in, display_name, access_code)

    async def _enter(self, call: Callable, display_name: str, access_code: str) -> ActionResult:
        try:
            participant = await call(display_name, access_code)
        except ArenaError as exc:
            return self._fail(exc)
        self._adopt_participant(participant, first_login=True)
        return ActionResult(True, f"Welcome, {participant.display_name}!", participant)

    def log_out(self) -> None:
        self.current_player_id = None
        self.current_player_name = None
        self.is_admin_cached = False
        self.view_as_admin = False
        self.authoritative_score = 0
        self.authoritative_revision = -1
        self.display_score = 0
        self._pending.clear()
        self._provisional.clear()
        for key in (CURRENT_USER_KEY, IS_ADMIN_CACHED_KEY):
            self._local.remove(key)

    async def refresh_identity(self) -> ActionResult:
        """Re-read the participant so a demoted admin loses the admin view."""
        if self.current_player_id is None:
            return ActionResult(False, "Not logged in.")
        try:
            participant = await self._backend.get_participant(self.current_player_id)
        except ArenaError as exc:
            return self._fail(exc)
        self._adopt_participant(participant, first_login=False)
        return ActionResult(True, value=participant)

    def _adopt_participant(self, participant: Participant, first_login: bool) -> None:
        if participant.id != self.current_player_id:
            # Revisions are per participant; the previous account's guard no longer applies.
            self.authoritative_revision = -1
            self._pending.clear()
            self._provisional.clear()
        self.current_player_id = participant.id
        self.current_player_name = participant.display_name
        self._accept_score(participant.score, participant.revision)
        self.is_admin_cached = participant.is_admin
        self._local.set(CURRENT_USER_KEY, _participant_to_dict(participant))
        self._local.set(IS_ADMIN_CACHED_KEY, participant.is_admin)
        if not participant.is_admin:
            self.view_as_admin = False
        elif first_login:
            preference = self._local.get(ADMIN_VIEW_PREFERENCE_KEY)
            self.view_as_admin = True if preference is None else bool(preference)
            self._local.set(ADMIN_VIEW_PREFERENCE_KEY, self.view_as_admin)

    def set_admin_view(self, enabled: bool) -> bool:
        """Toggle admin/player view; local UI state only, never synchronized."""
        self.view_as_admin = bool(enabled) and self.is_admin_cached
        if self.is_admin_cached:
            self._local.set(ADMIN_VIEW_PREFERENCE_KEY, self.view_as_admin)
        return self.view_as_admin

    # --- Scores ---

    @property
    def local_optimistic_score_delta(self) -> int:
        return sum(self._pending.values())

    def _accept_score(self, score: int, revision: int) -> None:
        if revision < self.authoritative_revision:
            return
        self.authoritative_score = score
        self.authoritative_revision = revision
        self.display_score = score
        self._provisional.clear()

    async def award_points(self, delta: int) -> ActionResult:
        """Show the points immediately, then reconcile with the ledger's answer."""
        if self.current_player_id is None:
            return ActionResult(False, "Join the game before playing.")
        player_id = self.current_player_id
        token = next(self._tokens)
        self._pending[token] = delta
        self._provisional[token] = delta
        self.display_score += delta
        try:
            update = await self._backend.apply_delta(player_id, delta)
        except ArenaError as exc:
            self._pending.pop(token, None)
            if token in self._provisional:
                self.display_score -= self._provisional.pop(token)
            return self._fail(exc)
        self._pending.pop(token, None)
        self._provisional.pop(token, None)
        if player_id == self.current_player_id:
            self._accept_score(update.new_score, update.revision)
        return ActionResult(True, f"+{delta} points" if delta >= 0 else f"{delta} points", update)

    def start_round(self, challenge: ChallengeDefinition, duration_seconds: float | None = None) -> ChallengeRound:
        """Begin a timed round whose total is sent once through ``award_points``."""
        challenge_round = ChallengeRound(challenge, self.award_points, duration_seconds=duration_seconds)
        challenge_round.start()
        return challenge_round

    # --- Polls ---

    async def vote(self, question_id: str, option_index: int) -> ActionResult:
        if self.current_player_id is None:
            return ActionResult(False, "Join the game before voting.")
        had_previous = question_id in self.my_votes
        previous = self.my_votes.get(question_id)
        self.my_votes[question_id] = option_index
        try:
            record = await self._backend.vote(self.current_player_id, question_id, option_index)
        except ArenaError as exc:
            if had_previous:
                self.my_votes[question_id] = previous
            else:
                self.my_votes.pop(question_id, None)
            return self._fail(exc)
        self.my_votes[question_id] = record.option_index
        return ActionResult(True, "Vote recorded.", record)

    # --- Admin transitions ---

    async def start_challenge(self, challenge_id: str) -> ActionResult:
        now = utcnow()
        provisional = replace(
            self.snapshot,
            session=SessionState(active_challenge_id=challenge_id, is_active=True, start_time=now),
        )
        return await self._admin_transition(
            provisional, lambda actor: self._backend.start_challenge(actor, challenge_id)
        )

    async def end_challenge(self, challenge_id: str) -> ActionResult:
        session = self.snapshot.session
        if session.active_challenge_id == challenge_id:
            session = SessionState(end_time=utcnow())
        provisional = replace(self.snapshot, session=session)
        return await self._admin_transition(
            provisional, lambda actor: self._backend.end_challenge(actor, challenge_id)
        )

    async def end_all_challenges(self) -> ActionResult:
        provisional = SessionSnapshot(
            session=SessionState(end_time=utcnow()),
            active_challenges=tuple(
                replace(record, is_active=False) for record in self.snapshot.active_challenges
            ),
        )
        return await self._admin_transition(provisional, self._backend.end_all_challenges)

    async def _admin_transition(self, provisional: SessionSnapshot, call: Callable) -> ActionResult:
        if self.current_player_id is None:
            return ActionResult(False, "Join the game first.")
        previous = self.snapshot
        self.snapshot = provisional
        try:
            value = await call(self.current_player_id)
            self.snapshot = await self._backend.session_snapshot()
        except ArenaError as exc:
            self.snapshot = previous
            return self._fail(exc)
        return ActionResult(True, value=value)

    # --- Feed events ---

    def handle_event(self, event: FeedEvent) -> None:
        if isinstance(event, SessionStateChanged):
            self.snapshot = event.snapshot
        elif isinstance(event, (LeaderboardChanged, UsersChanged)):
            if event.entries:
                self.leaderboard = tuple(event.entries)
            self._reconcile_from_feed(event)
        elif isinstance(event, VotesChanged):
            self.tallies[event.question_id] = dict(event.tally)

    def _reconcile_from_feed(self, event: LeaderboardChanged | UsersChanged) -> None:
        if self.current_player_id is None:
            return
        participant = event.participant
        if participant is None or participant.id != self.current_player_id:
            participant = next(
                (entry.participant for entry in event.entries if entry.participant.id == self.current_player_id),
                None,
            )
        if participant is None:
            return
        self._accept_score(participant.score, participant.revision)
        if participant.is_admin != self.is_admin_cached:
            self._adopt_participant(participant, first_login=False)

    # --- Helpers ---

    def can_use_admin_controls(self) -> bool:
        return self.is_admin_cached and self.view_as_admin

    def _fail(self, exc: ArenaError) -> ActionResult:
        message = exc.message
        self.messages.append(message)
        logger.warning("Client action failed: %s", message)
        if self._notifier is not None:
            self._notifier(message)
        return ActionResult(False, message)
