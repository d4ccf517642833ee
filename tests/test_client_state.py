"""Tests for optimistic client updates and reconciliation with the server."""

import asyncio
from dataclasses import replace

import pytest

from arena_app.core.catalog import DEFAULT_CHALLENGES
from arena_app.core.change_feed_bridge import LeaderboardChanged, SessionStateChanged
from arena_app.core.client_state import (
    ADMIN_VIEW_PREFERENCE_KEY,
    ClientSession,
    LocalClientStore,
)


class GatedBackend:
    """Delegates to the manager but holds score updates until released."""

    def __init__(self, manager) -> None:
        self._manager = manager
        self.gate = asyncio.Event()

    def __getattr__(self, name):
        return getattr(self._manager, name)

    async def apply_delta(self, participant_id, delta):
        await self.gate.wait()
        return await self._manager.apply_delta(participant_id, delta)


@pytest.fixture
def notices():
    return []


@pytest.fixture
def client(manager, notices):
    return ClientSession(manager, notifier=notices.append)


@pytest.mark.asyncio
async def test_award_shows_the_authoritative_score(client):
    await client.join("Ada", "1234")

    result = await client.award_points(10)

    assert result.success
    assert client.display_score == client.authoritative_score == 10
    assert client.local_optimistic_score_delta == 0


@pytest.mark.asyncio
async def test_failed_award_is_rolled_back_and_reported(client, store, notices):
    await client.join("Ada", "1234")
    store.simulate_outage(True)

    result = await client.award_points(10)

    assert not result.success
    assert client.display_score == 0
    assert notices == ["Data store is unavailable."]
    assert client.messages == notices


@pytest.mark.asyncio
async def test_provisional_score_is_visible_while_in_flight(manager):
    backend = GatedBackend(manager)
    client = ClientSession(backend)
    await client.join("Ada", "1234")

    pending = asyncio.create_task(client.award_points(7))
    await asyncio.sleep(0)
    assert client.display_score == 7
    assert client.local_optimistic_score_delta == 7

    backend.gate.set()
    await pending
    assert client.display_score == 7
    assert client.local_optimistic_score_delta == 0


@pytest.mark.asyncio
async def test_authoritative_push_overwrites_provisional_value(manager):
    backend = GatedBackend(manager)
    client = ClientSession(backend)
    player = await client.join("Ada", "1234")

    pending = asyncio.create_task(client.award_points(7))
    await asyncio.sleep(0)
    pushed = replace(player.value, score=100, revision=5)
    client.handle_event(LeaderboardChanged(entries=(), participant_id=pushed.id, participant=pushed))

    assert client.display_score == 100
    backend.gate.set()
    await pending
    # The ledger's answer carries an older revision than the push.
    assert client.display_score == 100


@pytest.mark.asyncio
async def test_stale_feed_values_are_ignored(client):
    joined = await client.join("Ada", "1234")
    await client.award_points(5)
    await client.award_points(5)
    stale = replace(joined.value, score=5, revision=1)

    client.handle_event(LeaderboardChanged(entries=(), participant_id=stale.id, participant=stale))

    assert client.display_score == 10


@pytest.mark.asyncio
async def test_first_admin_login_defaults_to_admin_view(manager, admin, tmp_path):
    local = LocalClientStore(tmp_path / "client.json")
    client = ClientSession(manager, local)

    await client.log_in(admin.display_name, admin.access_code)

    assert client.view_as_admin
    assert client.can_use_admin_controls()
    assert local.get(ADMIN_VIEW_PREFERENCE_KEY) is True


@pytest.mark.asyncio
async def test_admin_view_preference_survives_a_new_session(manager, admin, tmp_path):
    path = tmp_path / "client.json"
    first = ClientSession(manager, LocalClientStore(path))
    await first.log_in(admin.display_name, admin.access_code)
    first.set_admin_view(False)

    second = ClientSession(manager, LocalClientStore(path))
    await second.log_in(admin.display_name, admin.access_code)

    assert second.is_admin_cached
    assert not second.view_as_admin


@pytest.mark.asyncio
async def test_players_never_get_the_admin_view(client):
    await client.join("Ada", "1234")

    assert client.set_admin_view(True) is False
    assert not client.can_use_admin_controls()


@pytest.mark.asyncio
async def test_restore_seeds_from_local_storage(manager, tmp_path):
    path = tmp_path / "client.json"
    client = ClientSession(manager, LocalClientStore(path))
    await client.join("Ada", "1234")
    await client.award_points(12)
    await client.refresh_identity()

    restored = ClientSession(manager, LocalClientStore(path))

    assert restored.restore()
    assert restored.current_player_id == client.current_player_id
    assert restored.display_score == 12


def test_restore_without_cached_user(tmp_path):
    assert not ClientSession(backend=None, local_store=LocalClientStore(tmp_path / "none.json")).restore()


@pytest.mark.asyncio
async def test_demotion_drops_the_admin_view(manager, store, admin):
    client = ClientSession(manager)
    await client.log_in(admin.display_name, admin.access_code)

    await store.set_admin(admin.id, False)
    await client.refresh_identity()

    assert not client.is_admin_cached
    assert not client.can_use_admin_controls()


@pytest.mark.asyncio
async def test_feed_push_of_a_demotion_drops_the_admin_view(manager, admin):
    client = ClientSession(manager)
    await client.log_in(admin.display_name, admin.access_code)
    demoted = replace(admin, is_admin=False, revision=admin.revision)

    client.handle_event(LeaderboardChanged(entries=(), participant_id=admin.id, participant=demoted))

    assert not client.view_as_admin


@pytest.mark.asyncio
async def test_rejected_admin_transition_is_reverted(client, notices):
    await client.join("Ada", "1234")
    before = client.snapshot

    result = await client.start_challenge("shake")

    assert not result.success
    assert client.snapshot == before
    assert notices == ["Only the host can do that."]


@pytest.mark.asyncio
async def test_admin_transition_settles_on_the_server_snapshot(manager, admin):
    client = ClientSession(manager)
    await client.log_in(admin.display_name, admin.access_code)

    await client.start_challenge("emoji")
    assert client.snapshot.live_challenge_ids() == {"emoji"}

    await client.end_all_challenges()
    assert client.snapshot.live_challenge_ids() == set()
    assert not client.snapshot.session.is_active


@pytest.mark.asyncio
async def test_session_events_replace_the_snapshot(client, manager, admin):
    await manager.start_challenge(admin.id, "poll")

    client.handle_event(SessionStateChanged(snapshot=await manager.session_snapshot()))

    assert client.snapshot.session.active_challenge_id == "poll"


@pytest.mark.asyncio
async def test_failed_revote_restores_the_previous_choice(client):
    await client.join("Ada", "1234")
    await client.vote("backend", 1)

    result = await client.vote("backend", 9)

    assert not result.success
    assert client.my_votes["backend"] == 1


def test_unreadable_local_state_is_ignored(tmp_path):
    path = tmp_path / "client.json"
    path.write_text("{not json", encoding="utf-8")

    assert LocalClientStore(path).get("currentUser") is None


@pytest.mark.asyncio
async def test_attached_client_follows_the_feed(manager, admin):
    client = ClientSession(manager)
    joined = await client.join("Ada", "1234")
    bridge = manager.create_bridge(backoff_seconds=0.01)
    client.attach(bridge)
    bridge.start()
    try:
        await bridge.wait_until_live(timeout=1.0)
        await manager.apply_delta(joined.value.id, 25)
        await manager.start_challenge(admin.id, "shake")
        for _ in range(200):
            if client.display_score == 25 and client.snapshot.live_challenge_ids() == {"shake"}:
                break
            await asyncio.sleep(0.005)
    finally:
        await bridge.stop()

    assert client.display_score == 25
    assert client.leaderboard[0].participant.id == joined.value.id
    assert client.snapshot.session.active_challenge_id == "shake"


@pytest.mark.asyncio
async def test_log_out_forgets_the_player(manager, tmp_path):
    local = LocalClientStore(tmp_path / "client.json")
    client = ClientSession(manager, local)
    await client.join("Ada", "1234")
    await client.award_points(3)

    client.log_out()

    assert client.current_player_id is None
    assert client.display_score == 0
    assert not ClientSession(manager, LocalClientStore(tmp_path / "client.json")).restore()
    assert not (await client.award_points(1)).success


@pytest.mark.asyncio
async def test_switching_accounts_drops_the_previous_score(client):
    await client.join("Ada", "1111")
    for _ in range(5):
        await client.award_points(2)
    assert client.display_score == 10

    await client.join("Bob", "2222")
    assert client.current_player_name == "Bob"
    assert client.display_score == client.authoritative_score == 0

    await client.award_points(1)
    assert client.display_score == client.authoritative_score == 1


@pytest.mark.asyncio
async def test_award_landing_after_an_account_switch_is_ignored(manager):
    backend = GatedBackend(manager)
    client = ClientSession(backend)
    await client.join("Ada", "1111")
    pending = asyncio.create_task(client.award_points(7))
    await asyncio.sleep(0)

    await client.join("Bob", "2222")
    backend.gate.set()
    await pending

    assert client.display_score == 0
    assert client.local_optimistic_score_delta == 0


@pytest.mark.asyncio
async def test_round_sends_its_total_once_through_the_ledger(client, manager):
    shake = next(challenge for challenge in DEFAULT_CHALLENGES if challenge.id == "shake")
    await client.join("Ada", "1234")

    challenge_round = client.start_round(shake, duration_seconds=0.01)
    challenge_round.add_points(4)
    challenge_round.add_points(5)
    result = await challenge_round.wait()

    assert result.success
    assert client.display_score == 9
    participant = await manager.get_participant(client.current_player_id)
    assert (participant.score, participant.revision) == (9, 1)
