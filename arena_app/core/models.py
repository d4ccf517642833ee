"""Domain models for the arena application."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class ChallengeKind(str, Enum):
    """Mini-game families a challenge can belong to."""

    SHAKE = "shake"
    POLL = "poll"
    LUCKY_TAP = "lucky-tap"
    EMOJI = "emoji"
    MATCH_LOGOS = "match-logos"


class PollStrategy(str, Enum):
    """How the winners of a poll question are decided."""

    PLURALITY = "plurality"
    CLOSEST_BUCKET = "closest-bucket"


@dataclass(frozen=True, slots=True)
class Participant:
    """A joined player or admin identity with a persistent score."""

    id: str
    display_name: str
    access_code: str
    joined_at: datetime
    score: int = 0
    is_admin: bool = False
    join_sequence: int = 0
    revision: int = 0  # Bumped on every score change


@dataclass(frozen=True, slots=True)
class ChallengeDefinition:
    """Immutable catalog entry describing one challenge."""

    id: str
    kind: ChallengeKind
    title: str
    description: str
    duration_hint: int


@dataclass(frozen=True, slots=True)
class SessionState:
    """Singleton pointer to the challenge the game is currently focused on."""

    active_challenge_id: str | None = None
    is_active: bool = False
    start_time: datetime | None = None
    end_time: datetime | None = None


@dataclass(frozen=True, slots=True)
class ActiveChallengeRecord:
    """Live or ended state of one challenge instance."""

    challenge_id: str
    is_active: bool
    start_time: datetime | None = None
    end_time: datetime | None = None


@dataclass(frozen=True, slots=True)
class VoteRecord:
    """A participant's current answer to a poll question."""

    user_id: str
    poll_question_id: str
    option_index: int


@dataclass(frozen=True, slots=True)
class CountBucket:
    """Inclusive integer range used by closest-guess poll questions."""

    low: int
    high: int | None = None  # None means open-ended

    def distance_to(self, value: int) -> int:
        if value < self.low:
            return self.low - value
        if self.high is not None and value > self.high:
            return value - self.high
        return 0

    def label(self) -> str:
        if self.high is None:
            return f"{self.low}+"
        return f"{self.low}-{self.high}"


@dataclass(frozen=True, slots=True)
class PollQuestion:
    """Poll question definition from the static catalog."""

    id: str
    question: str
    options: tuple[str, ...]
    strategy: PollStrategy = PollStrategy.PLURALITY
    buckets: tuple[CountBucket, ...] = ()


@dataclass(frozen=True, slots=True)
class LeaderboardEntry:
    """Derived ranking row; never stored."""

    participant: Participant
    rank: int


@dataclass(frozen=True, slots=True)
class ScoreUpdate:
    """Authoritative result of applying a score delta."""

    participant_id: str
    delta: int
    new_score: int
    revision: int


@dataclass(frozen=True, slots=True)
class PollCloseResult:
    """Outcome of closing a poll question."""

    question_id: str
    winning_options: frozenset[int]
    awards: dict[str, int] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Everything a client needs to render the current game phase."""

    session: SessionState
    active_challenges: tuple[ActiveChallengeRecord, ...] = ()

    def live_challenge_ids(self) -> set[str]:
        return {record.challenge_id for record in self.active_challenges if record.is_active}
