"""Facade over the arena services, shared by the API server and the Qt console."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

from arena_app.constants.game_constants import FEED_RECONNECT_BACKOFF_SECONDS
from arena_app.core.catalog import DEFAULT_CHALLENGES, DEFAULT_POLL_QUESTIONS
from arena_app.core.change_feed import ChangeFeed, InMemoryChangeFeed
from arena_app.core.change_feed_bridge import ChangeFeedBridge
from arena_app.core.models import (
    ActiveChallengeRecord,
    ChallengeDefinition,
    LeaderboardEntry,
    Participant,
    PollCloseResult,
    PollQuestion,
    ScoreUpdate,
    SessionSnapshot,
    VoteRecord,
)
from arena_app.core.services.challenge_registry import ChallengeRegistry
from arena_app.core.services.identity import IdentityService, StoreAdminAuthorizer
from arena_app.core.services.leaderboard import LeaderboardProjector
from arena_app.core.services.poll_ledger import PollLedger
from arena_app.core.services.score_ledger import ScoreLedger
from arena_app.core.services.session_state import SessionStateMachine
from arena_app.core.store import DataStore, InMemoryDataStore
from arena_app.utils.clock import Clock, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class ChallengeOverview:
    """Catalog entry joined with its live record, for listings."""

    challenge: ChallengeDefinition
    record: ActiveChallengeRecord | None

    @property
    def is_active(self) -> bool:
        return self.record is not None and self.record.is_active


@dataclass(frozen=True, slots=True)
class ParticipationSummary:
    player_count: int
    admin_count: int
    live_challenge_ids: tuple[str, ...]


class ArenaManager:
    """Facade for Identity, ScoreLedger, Leaderboard, SessionStateMachine and PollLedger.

    Built once per process; the store and feed are passed in so tests and the
    app can share or replace them. Admin-only operations take the acting
    participant's id and re-check admin status against the store every time.
    """

    def __init__(
        self,
        store: DataStore | None = None,
        feed: ChangeFeed | None = None,
        clock: Clock = utcnow,
        challenges: Iterable[ChallengeDefinition] = DEFAULT_CHALLENGES,
        poll_questions: Iterable[PollQuestion] = DEFAULT_POLL_QUESTIONS,
    ) -> None:
        self.feed = feed or InMemoryChangeFeed()
        self.store = store or InMemoryDataStore(feed=self.feed, clock=clock)

        self.identity = IdentityService(self.store)
        self.authorizer = StoreAdminAuthorizer(self.store)
        self.ledger = ScoreLedger(self.store)
        self.projector = LeaderboardProjector(self.store)
        self.registry = ChallengeRegistry(self.store, challenges)
        self.session = SessionStateMachine(self.store, self.registry, clock=clock)
        self.polls = PollLedger(self.store, self.ledger, poll_questions)

    # --- Identity ---

    async def join(self, display_name: str, access_code: str) -> Participant:
        return await self.identity.join(display_name, access_code)

    async def sign_up(self, display_name: str, access_code: str) -> Participant:
        return await self.identity.sign_up(display_name, access_code)

    async def log_in(self, display_name: str, access_code: str) -> Participant:
        return await self.identity.log_in(display_name, access_code)

    async def ensure_admin(self, display_name: str, access_code: str) -> Participant:
        return await self.identity.ensure_admin(display_name, access_code)

    async def get_participant(self, participant_id: str) -> Participant:
        return await self.identity.get(participant_id)

    async def is_admin(self, participant_id: str | None) -> bool:
        return await self.authorizer.is_admin(participant_id)

    # --- Scores ---

    async def apply_delta(self, participant_id: str, delta: int) -> ScoreUpdate:
        return await self.ledger.apply_delta(participant_id, delta)

    async def leaderboard(self, limit: int | None = None) -> list[LeaderboardEntry]:
        return await self.projector.refresh(limit=limit)

    # --- Session state (admin only) ---

    async def start_challenge(self, actor_id: str | None, challenge_id: str) -> ActiveChallengeRecord:
        await self.authorizer.require_admin(actor_id)
        return await self.session.start_challenge(challenge_id)

    async def end_challenge(self, actor_id: str | None, challenge_id: str) -> ActiveChallengeRecord | None:
        await self.authorizer.require_admin(actor_id)
        return await self.session.end_challenge(challenge_id)

    async def end_all_challenges(self, actor_id: str | None) -> list[ActiveChallengeRecord]:
        await self.authorizer.require_admin(actor_id)
        return await self.session.end_all_challenges()

    async def session_snapshot(self) -> SessionSnapshot:
        return await self.session.snapshot()

    async def challenge_overview(self) -> list[ChallengeOverview]:
        records = {record.challenge_id: record for record in await self.store.list_active_challenges()}
        return [ChallengeOverview(challenge, records.get(challenge.id)) for challenge in self.registry.list()]

    async def participation_summary(self) -> ParticipationSummary:
        players = await self.store.count_participants(include_admins=False)
        everyone = await self.store.count_participants(include_admins=True)
        snapshot = await self.session.snapshot()
        return ParticipationSummary(
            player_count=players,
            admin_count=everyone - players,
            live_challenge_ids=tuple(sorted(snapshot.live_challenge_ids())),
        )

    # --- Polls ---

    def poll_questions(self) -> list[PollQuestion]:
        return self.polls.questions()

    async def vote(self, user_id: str, question_id: str, option_index: int) -> VoteRecord:
        return await self.polls.vote(user_id, question_id, option_index)

    async def tally(self, question_id: str) -> dict[int, int]:
        return await self.polls.tally(question_id)

    async def poll_is_closed(self, question_id: str) -> bool:
        return await self.polls.is_closed(question_id)

    async def close_poll_question(self, actor_id: str | None, question_id: str) -> PollCloseResult:
        await self.authorizer.require_admin(actor_id)
        return await self.polls.close_question(question_id)

    async def reset_poll_question(self, actor_id: str | None, question_id: str) -> None:
        await self.authorizer.require_admin(actor_id)
        await self.polls.reset_question(question_id)

    # --- Change feed ---

    def create_bridge(
        self,
        backoff_seconds: float = FEED_RECONNECT_BACKOFF_SECONDS,
        max_reconnect_attempts: int | None = None,
    ) -> ChangeFeedBridge:
        return ChangeFeedBridge(
            self.feed,
            self,
            backoff_seconds=backoff_seconds,
            max_reconnect_attempts=max_reconnect_attempts,
        )
