"""Static challenge and poll catalog loaded at process start."""

from __future__ import annotations

from arena_app.core.models import (
    ChallengeDefinition,
    ChallengeKind,
    CountBucket,
    PollQuestion,
    PollStrategy,
)

DEFAULT_CHALLENGES: tuple[ChallengeDefinition, ...] = (
    ChallengeDefinition(
        id="poll",
        kind=ChallengeKind.POLL,
        title="Rapid Fire Polls",
        description="Answer quick questions about tech preferences",
        duration_hint=30,
    ),
    ChallengeDefinition(
        id="shake",
        kind=ChallengeKind.SHAKE,
        title="Shake War",
        description="Shake your phone as fast as you can!",
        duration_hint=10,
    ),
    ChallengeDefinition(
        id="lucky-tap",
        kind=ChallengeKind.LUCKY_TAP,
        title="Lucky Tap",
        description="Tap the lucky circle and win!",
        duration_hint=5,
    ),
    ChallengeDefinition(
        id="emoji",
        kind=ChallengeKind.EMOJI,
        title="Emoji Battle",
        description="Tap the matching emoji as fast as possible",
        duration_hint=15,
    ),
    ChallengeDefinition(
        id="match-logos",
        kind=ChallengeKind.MATCH_LOGOS,
        title="Match the Logos",
        description="Flip and match identical logos. Complete all matches to earn points!",
        duration_hint=60,
    ),
)

PLAYER_COUNT_BUCKETS: tuple[CountBucket, ...] = (
    CountBucket(0, 10),
    CountBucket(11, 25),
    CountBucket(26, 50),
    CountBucket(51, None),
)

DEFAULT_POLL_QUESTIONS: tuple[PollQuestion, ...] = (
    PollQuestion(
        id="android-or-iphone",
        question="Team Android or iPhone?",
        options=("Android", "iPhone"),
    ),
    PollQuestion(
        id="framework",
        question="Which framework would you trust your life with?",
        options=("React", "Flutter", "Vue", "Angular"),
    ),
    PollQuestion(
        id="backend",
        question="Backend of choice?",
        options=("Node.js", "Python", "Go", "Java"),
    ),
    PollQuestion(
        id="crowd-size",
        question="How many players are in the arena right now?",
        options=tuple(bucket.label() for bucket in PLAYER_COUNT_BUCKETS),
        strategy=PollStrategy.CLOSEST_BUCKET,
        buckets=PLAYER_COUNT_BUCKETS,
    ),
)
