"""Tests for poll voting, tallies and payouts."""

import pytest

from arena_app.core.arena_manager import ArenaManager
from arena_app.core.errors import (
    AuthorizationError,
    ParticipantNotFound,
    QuestionNotFound,
    StoreUnavailable,
    ValidationError,
)
from arena_app.core.store import InMemoryDataStore


class FlakyPayoutStore(InMemoryDataStore):
    """Store whose first poll close fails before anything is written."""

    failures = 1

    async def close_poll_question(self, question_id, awards):
        if self.failures:
            self.failures -= 1
            raise StoreUnavailable("Data store is unavailable.")
        return await super().close_poll_question(question_id, awards)


@pytest.mark.asyncio
async def test_revote_replaces_the_previous_vote(manager, join_players):
    (player,) = await join_players(1)

    await manager.vote(player.id, "backend", 0)
    await manager.vote(player.id, "backend", 2)

    assert await manager.tally("backend") == {0: 0, 1: 0, 2: 1, 3: 0}


@pytest.mark.asyncio
async def test_tied_options_all_win(manager, admin, join_players):
    players = await join_players(8)
    choices = [0, 0, 0, 1, 1, 1, 2]
    for player, option in zip(players, choices):
        await manager.vote(player.id, "framework", option)
    non_voter = players[7]

    result = await manager.close_poll_question(admin.id, "framework")

    assert result.winning_options == frozenset({0, 1})
    scores = {p.id: (await manager.get_participant(p.id)).score for p in players}
    assert [scores[p.id] for p in players[:6]] == [5] * 6
    assert scores[players[6].id] == 1
    assert scores[non_voter.id] == 0
    assert result.awards == {p.id: scores[p.id] for p in players[:7]}


@pytest.mark.asyncio
async def test_closing_with_no_votes_awards_nothing(manager, admin, join_players):
    players = await join_players(3)

    result = await manager.close_poll_question(admin.id, "backend")

    assert result.winning_options == frozenset()
    assert result.awards == {}
    scores = [(await manager.get_participant(p.id)).score for p in players]
    assert scores == [0, 0, 0]
    assert await manager.poll_is_closed("backend")


@pytest.mark.asyncio
async def test_second_close_pays_nothing(manager, admin, join_players):
    (player,) = await join_players(1)
    await manager.vote(player.id, "android-or-iphone", 1)
    await manager.close_poll_question(admin.id, "android-or-iphone")

    with pytest.raises(ValidationError):
        await manager.close_poll_question(admin.id, "android-or-iphone")

    assert (await manager.get_participant(player.id)).score == 5


@pytest.mark.asyncio
async def test_votes_are_refused_once_closed_and_reset_reopens(manager, admin, join_players):
    first, second = await join_players(2)
    await manager.vote(first.id, "backend", 1)
    await manager.close_poll_question(admin.id, "backend")

    with pytest.raises(ValidationError):
        await manager.vote(second.id, "backend", 1)

    await manager.reset_poll_question(admin.id, "backend")
    assert not await manager.poll_is_closed("backend")
    assert sum((await manager.tally("backend")).values()) == 0
    await manager.vote(second.id, "backend", 3)


@pytest.mark.asyncio
async def test_crowd_size_rewards_the_closest_bucket(manager, admin, join_players):
    players = await join_players(12)
    await manager.vote(players[0].id, "crowd-size", 0)
    await manager.vote(players[1].id, "crowd-size", 0)
    await manager.vote(players[2].id, "crowd-size", 1)

    result = await manager.close_poll_question(admin.id, "crowd-size")

    assert result.winning_options == frozenset({1})
    assert result.awards == {players[0].id: 1, players[1].id: 1, players[2].id: 5}


@pytest.mark.asyncio
async def test_invalid_votes_are_rejected(manager, join_players):
    (player,) = await join_players(1)

    with pytest.raises(ValidationError):
        await manager.vote(player.id, "android-or-iphone", 2)
    with pytest.raises(QuestionNotFound):
        await manager.vote(player.id, "favourite-editor", 0)
    with pytest.raises(ParticipantNotFound):
        await manager.vote("missing", "android-or-iphone", 0)


@pytest.mark.asyncio
async def test_players_cannot_close_questions(manager, join_players):
    (player,) = await join_players(1)

    with pytest.raises(AuthorizationError):
        await manager.close_poll_question(player.id, "backend")
    assert not await manager.poll_is_closed("backend")


@pytest.mark.asyncio
async def test_failed_close_pays_nobody_and_can_be_retried(feed, clock):
    store = FlakyPayoutStore(feed=feed, clock=clock)
    manager = ArenaManager(store=store, feed=feed, clock=clock)
    admin = await manager.ensure_admin("Host", "0000")
    players = [await manager.join(f"Voter{index}", "1234") for index in range(3)]
    for player in players:
        await manager.vote(player.id, "backend", 0)

    with pytest.raises(StoreUnavailable):
        await manager.close_poll_question(admin.id, "backend")
    assert [(await manager.get_participant(p.id)).score for p in players] == [0, 0, 0]
    assert not await manager.poll_is_closed("backend")

    result = await manager.close_poll_question(admin.id, "backend")

    assert result.winning_options == frozenset({0})
    assert [(await manager.get_participant(p.id)).score for p in players] == [5, 5, 5]


@pytest.mark.asyncio
async def test_store_close_is_all_or_nothing(store, join_players):
    first, second = await join_players(2)

    with pytest.raises(ParticipantNotFound):
        await store.close_poll_question("backend", {first.id: 5, "missing": 5, second.id: 1})

    assert (await store.get_participant(first.id)).score == 0
    assert (await store.get_participant(first.id)).revision == 0
    assert not await store.is_poll_question_closed("backend")

    updates = await store.close_poll_question("backend", {first.id: 5, second.id: 1})
    assert [update.new_score for update in updates] == [5, 1]
    with pytest.raises(ValidationError):
        await store.close_poll_question("backend", {first.id: 5})
    assert (await store.get_participant(first.id)).score == 5
