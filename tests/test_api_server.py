"""HTTP and WebSocket tests for the FastAPI server."""

import asyncio

import pytest
from fastapi.testclient import TestClient

from arena_app.core.arena_manager import ArenaManager
from arena_app.core.errors import ConflictError
from arena_app.core.store import InMemoryDataStore
from arena_app.constants.network_constants import ADMIN_HEADER
from arena_app.server.api_server import create_api_app


@pytest.fixture
def api(manager):
    return TestClient(create_api_app(manager))


@pytest.fixture
def host_headers(manager):
    host = asyncio.run(manager.ensure_admin("Host", "0000"))
    return {ADMIN_HEADER: host.id}


def join(api, name="Ada", code="1234"):
    response = api.post("/join", json={"display_name": name, "access_code": code})
    assert response.status_code == 201
    return response.json()


def test_player_page_is_served(api):
    response = api.get("/")

    assert response.status_code == 200
    assert "Join the Arena" in response.text


def test_join_returns_the_public_participant(api):
    body = join(api)

    assert body["display_name"] == "Ada"
    assert body["score"] == 0
    assert "access_code" not in body


def test_bad_access_code_maps_to_422(api):
    response = api.post("/join", json={"display_name": "Ada", "access_code": "12"})

    assert response.status_code == 422
    assert response.json() == {
        "error": "ValidationError",
        "message": "Access code must be exactly 4 digits",
    }


def test_login_requires_existing_credentials(api):
    join(api)

    assert api.post("/login", json={"display_name": "Ada", "access_code": "1234"}).status_code == 200
    response = api.post("/login", json={"display_name": "Ada", "access_code": "4321"})
    assert response.status_code == 422
    assert response.json()["message"] == "Invalid username or access code"


def test_scores_and_leaderboard(api):
    ada = join(api, "Ada")
    bob = join(api, "Bob")

    response = api.post("/scores", json={"participant_id": bob["id"], "delta": 15})
    assert response.status_code == 200
    assert response.json()["new_score"] == 15

    entries = api.get("/leaderboard", params={"limit": 5}).json()["entries"]
    assert [entry["participant"]["id"] for entry in entries] == [bob["id"], ada["id"]]
    assert entries[0]["rank"] == 1


def test_unknown_participant_maps_to_404(api):
    response = api.post("/scores", json={"participant_id": "missing", "delta": 1})

    assert response.status_code == 404
    assert response.json()["error"] == "ParticipantNotFound"


def test_outage_maps_to_503(api, store):
    store.simulate_outage(True)

    response = api.get("/leaderboard")

    assert response.status_code == 503


def test_admin_endpoints_require_the_host(api, host_headers):
    player = join(api)

    assert api.post("/challenges/shake/start").status_code == 403
    assert api.post("/challenges/shake/start", headers={ADMIN_HEADER: player["id"]}).status_code == 403

    response = api.post("/challenges/shake/start", headers=host_headers)
    assert response.status_code == 200
    assert response.json()["is_active"] is True

    state = api.get("/state").json()
    assert state["session"]["active_challenge_id"] == "shake"
    assert state["session"]["is_active"] is True


def test_end_and_end_all(api, host_headers):
    api.post("/challenges/shake/start", headers=host_headers)
    api.post("/challenges/emoji/start", headers=host_headers)

    assert api.post("/challenges/poll/end", headers=host_headers).json()["ended"] is False
    assert api.post("/challenges/emoji/end", headers=host_headers).json()["ended"] is True

    ended = api.post("/challenges/end-all", headers=host_headers).json()["ended"]
    assert [record["challenge_id"] for record in ended] == ["shake"]
    assert api.get("/participation").json()["live_challenge_ids"] == []


def test_unknown_challenge_maps_to_404(api, host_headers):
    assert api.post("/challenges/juggling/start", headers=host_headers).status_code == 404


def test_challenge_listing(api, host_headers):
    api.post("/challenges/lucky-tap/start", headers=host_headers)

    listing = {item["id"]: item for item in api.get("/challenges").json()}

    assert set(listing) == {"poll", "shake", "lucky-tap", "emoji", "match-logos"}
    assert listing["lucky-tap"]["is_active"] is True
    assert listing["shake"]["record"] is None


def test_poll_flow(api, host_headers):
    ada = join(api, "Ada")
    bob = join(api, "Bob")
    api.post("/polls/android-or-iphone/votes", json={"user_id": ada["id"], "option_index": 1})
    api.post("/polls/android-or-iphone/votes", json={"user_id": bob["id"], "option_index": 0})
    api.post("/polls/android-or-iphone/votes", json={"user_id": bob["id"], "option_index": 1})

    tally = api.get("/polls/android-or-iphone/tally").json()["tally"]
    assert tally == {"0": 0, "1": 2}

    closed = api.post("/polls/android-or-iphone/close", headers=host_headers).json()
    assert closed["winning_options"] == [1]
    assert closed["awards"] == {ada["id"]: 5, bob["id"]: 5}

    again = api.post("/polls/android-or-iphone/close", headers=host_headers)
    assert again.status_code == 422

    assert api.post("/polls/android-or-iphone/reset", headers=host_headers).json()["reset"] is True


def test_poll_listing(api):
    ids = [question["id"] for question in api.get("/polls").json()]

    assert "crowd-size" in ids


def test_conflict_maps_to_409(feed, clock):
    class ConflictingStore(InMemoryDataStore):
        async def upsert_active_challenge(self, challenge_id, fields, session_fields=None):
            raise ConflictError()

    manager = ArenaManager(store=ConflictingStore(feed=feed, clock=clock), feed=feed, clock=clock)
    host = asyncio.run(manager.ensure_admin("Host", "0000"))
    api = TestClient(create_api_app(manager))

    response = api.post("/challenges/shake/start", headers={ADMIN_HEADER: host.id})

    assert response.status_code == 409


def test_feed_streams_initial_state_then_changes(api):
    ada = join(api)

    with api.websocket_connect("/feed") as socket:
        first = socket.receive_json()
        second = socket.receive_json()
        assert first["type"] == "SessionStateChanged"
        assert second["type"] == "LeaderboardChanged"
        assert second["entries"][0]["participant"]["id"] == ada["id"]

        api.post("/scores", json={"participant_id": ada["id"], "delta": 3})
        update = socket.receive_json()

    assert update["type"] == "LeaderboardChanged"
    assert update["participant"]["score"] == 3
