"""Tests for turning change notifications into typed events."""

import asyncio

import pytest

from arena_app.core.change_feed_bridge import (
    FeedState,
    LeaderboardChanged,
    SessionStateChanged,
    UsersChanged,
    VotesChanged,
)


async def eventually(predicate, timeout: float = 1.0) -> None:
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.005)


@pytest.fixture
async def live_bridge(manager):
    bridge = manager.create_bridge(backoff_seconds=0.01)
    events = []
    bridge.add_listener(events.append)
    bridge.start()
    await eventually(lambda: len(events) >= 2)
    yield bridge, events
    await bridge.stop()


@pytest.mark.asyncio
async def test_going_live_fetches_state_and_leaderboard_first(live_bridge):
    bridge, events = live_bridge

    assert bridge.state is FeedState.LIVE
    assert isinstance(events[0], SessionStateChanged)
    assert isinstance(events[1], LeaderboardChanged)


@pytest.mark.asyncio
async def test_challenge_start_becomes_a_session_event(manager, admin, live_bridge):
    _, events = live_bridge
    events.clear()

    await manager.start_challenge(admin.id, "shake")

    await eventually(lambda: any(isinstance(e, SessionStateChanged) for e in events))
    session_events = [e for e in events if isinstance(e, SessionStateChanged)]
    assert session_events[-1].snapshot.live_challenge_ids() == {"shake"}


@pytest.mark.asyncio
async def test_join_and_score_changes(manager, live_bridge):
    _, events = live_bridge
    events.clear()

    player = await manager.join("Ada", "1234")
    await manager.apply_delta(player.id, 15)

    await eventually(lambda: any(isinstance(e, LeaderboardChanged) for e in events))
    joined = next(e for e in events if isinstance(e, UsersChanged))
    scored = next(e for e in events if isinstance(e, LeaderboardChanged))
    assert joined.participant_id == player.id
    assert scored.participant_id == player.id
    assert scored.participant.score == 15
    assert scored.entries[0].participant.id == player.id


@pytest.mark.asyncio
async def test_votes_become_tally_events(manager, live_bridge):
    player = await manager.join("Ada", "1234")
    _, events = live_bridge
    events.clear()

    await manager.vote(player.id, "backend", 1)

    await eventually(lambda: any(isinstance(e, VotesChanged) for e in events))
    event = next(e for e in events if isinstance(e, VotesChanged))
    assert event.question_id == "backend"
    assert event.tally == {0: 0, 1: 1, 2: 0, 3: 0}


@pytest.mark.asyncio
async def test_reconnect_refetches_changes_missed_while_away(manager, feed, live_bridge):
    bridge, events = live_bridge
    player = await manager.join("Ada", "1234")

    feed.set_connected(False)
    await eventually(lambda: bridge.state is not FeedState.LIVE)
    await manager.apply_delta(player.id, 42)
    events.clear()
    feed.set_connected(True)

    await eventually(lambda: bridge.state is FeedState.LIVE and len(events) >= 2)
    assert bridge.reconnect_count >= 1
    assert isinstance(events[0], SessionStateChanged)
    assert events[1].entries[0].participant.score == 42


@pytest.mark.asyncio
async def test_bridge_gives_up_after_max_attempts(manager, feed):
    feed.set_connected(False)
    bridge = manager.create_bridge(backoff_seconds=0.01, max_reconnect_attempts=2)
    states = []
    bridge.add_state_listener(states.append)

    await asyncio.wait_for(bridge.start(), timeout=1.0)

    assert bridge.state is FeedState.DISCONNECTED
    assert bridge.reconnect_count == 2
    assert FeedState.ERROR in states and FeedState.RECONNECTING in states
    assert FeedState.LIVE not in states


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_others(manager, live_bridge):
    bridge, events = live_bridge

    def broken(_event):
        raise RuntimeError("boom")

    bridge.remove_listener(events.append)
    bridge.add_listener(broken)
    bridge.add_listener(events.append)
    events.clear()

    await manager.join("Ada", "1234")

    await eventually(lambda: any(isinstance(e, UsersChanged) for e in events))


@pytest.mark.asyncio
async def test_stop_releases_subscriptions(manager, feed):
    bridge = manager.create_bridge()
    bridge.start()
    await bridge.wait_until_live(timeout=1.0)
    assert feed.subscriber_count() == 4

    await bridge.stop()

    assert feed.subscriber_count() == 0
    assert bridge.state is FeedState.DISCONNECTED
