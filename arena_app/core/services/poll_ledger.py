"""Per-question vote tallies and poll payouts."""

from __future__ import annotations

import logging
from typing import Iterable, Protocol

from arena_app.constants.game_constants import POLL_PARTICIPATION_POINTS, POLL_WINNER_BONUS
from arena_app.core.catalog import DEFAULT_POLL_QUESTIONS
from arena_app.core.errors import QuestionNotFound, ValidationError
from arena_app.core.models import PollCloseResult, PollQuestion, PollStrategy, VoteRecord
from arena_app.core.services.score_ledger import ScoreLedger
from arena_app.core.store import DataStore

logger = logging.getLogger(__name__)


class WinnerRule(Protocol):
    async def winners(self, question: PollQuestion, counts: dict[int, int]) -> frozenset[int]: ...


class PluralityRule:
    """Every option tied for the highest count wins; no votes means no winner."""

    async def winners(self, question: PollQuestion, counts: dict[int, int]) -> frozenset[int]:
        top = max(counts.values(), default=0)
        if top == 0:
            return frozenset()
        return frozenset(option for option, count in counts.items() if count == top)


class ClosestBucketRule:
    """The bucket(s) nearest to the live participant count win."""

    def __init__(self, store: DataStore) -> None:
        self._store = store

    async def winners(self, question: PollQuestion, counts: dict[int, int]) -> frozenset[int]:
        if not question.buckets:
            return frozenset()
        true_count = await self._store.count_participants(include_admins=False)
        distances = [bucket.distance_to(true_count) for bucket in question.buckets]
        best = min(distances)
        logger.info("Crowd-size question %s: true count %d", question.id, true_count)
        return frozenset(index for index, distance in enumerate(distances) if distance == best)


class PollLedger:
    """Last-write-wins voting per (participant, question) with payout on close."""

    def __init__(
        self,
        store: DataStore,
        ledger: ScoreLedger,
        questions: Iterable[PollQuestion] = DEFAULT_POLL_QUESTIONS,
        winner_bonus: int = POLL_WINNER_BONUS,
        participation_points: int = POLL_PARTICIPATION_POINTS,
    ) -> None:
        self._store = store
        self._ledger = ledger
        self._questions = {question.id: question for question in questions}
        self._winner_bonus = winner_bonus
        self._participation_points = participation_points
        self._rules: dict[PollStrategy, WinnerRule] = {
            PollStrategy.PLURALITY: PluralityRule(),
            PollStrategy.CLOSEST_BUCKET: ClosestBucketRule(store),
        }

    def questions(self) -> list[PollQuestion]:
        return list(self._questions.values())

    def get_question(self, question_id: str) -> PollQuestion:
        question = self._questions.get(question_id)
        if question is None:
            raise QuestionNotFound(question_id)
        return question

    async def vote(self, user_id: str, question_id: str, option_index: int) -> VoteRecord:
        """Record or replace the participant's vote on a question."""
        question = self.get_question(question_id)
        if isinstance(option_index, bool) or not isinstance(option_index, int):
            raise ValidationError("Option index must be an integer.")
        if not 0 <= option_index < len(question.options):
            raise ValidationError(f"Option index must be between 0 and {len(question.options) - 1}.")
        await self._store.get_participant(user_id)
        return await self._store.upsert_vote(user_id, question_id, option_index)

    async def tally(self, question_id: str) -> dict[int, int]:
        question = self.get_question(question_id)
        counts = {index: 0 for index in range(len(question.options))}
        for vote in await self._store.list_votes(question_id):
            if vote.option_index in counts:
                counts[vote.option_index] += 1
        return counts

    async def is_closed(self, question_id: str) -> bool:
        self.get_question(question_id)
        return await self._store.is_poll_question_closed(question_id)

    async def close_question(self, question_id: str) -> PollCloseResult:
        """Close voting, pick the winners and pay out via the score ledger.

        Winners get the bonus, other voters get participation points and
        non-voters get nothing. The close and every payout land together, so a
        failed close leaves the question open for a retry. Closing an
        already-closed question pays nothing.
        """
        question = self.get_question(question_id)
        if await self._store.is_poll_question_closed(question_id):
            raise ValidationError("This poll question is already closed.")
        votes = await self._store.list_votes(question_id)
        if not votes:
            await self._ledger.settle_poll(question_id, {})
            logger.info("Closed poll %s with no votes", question_id)
            return PollCloseResult(question_id=question_id, winning_options=frozenset())

        counts = await self.tally(question_id)
        winning = await self._rules[question.strategy].winners(question, counts)
        awards = {
            vote.user_id: self._winner_bonus if vote.option_index in winning else self._participation_points
            for vote in votes
        }
        await self._ledger.settle_poll(question_id, awards)
        logger.info(
            "Closed poll %s: winners %s, paid %d voter(s)",
            question_id,
            sorted(winning),
            len(awards),
        )
        return PollCloseResult(question_id=question_id, winning_options=winning, awards=awards)

    async def reset_question(self, question_id: str) -> None:
        self.get_question(question_id)
        await self._store.reset_poll_question(question_id)
