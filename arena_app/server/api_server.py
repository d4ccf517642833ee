"""FastAPI server that exposes player, admin and change-feed endpoints."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from threading import Thread
from typing import Any

from fastapi import Depends, FastAPI, Header, Query, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse, JSONResponse
from pydantic import BaseModel
import uvicorn

from arena_app.constants.about import APP_NAME, APP_VERSION
from arena_app.constants.game_constants import DEFAULT_LEADERBOARD_SIZE
from arena_app.constants.network_constants import ADMIN_HEADER, DEFAULT_HOST, DEFAULT_PORT
from arena_app.core.arena_manager import ArenaManager
from arena_app.core.change_feed_bridge import (
    FeedEvent,
    LeaderboardChanged,
    SessionStateChanged,
    UsersChanged,
    VotesChanged,
)
from arena_app.core.errors import (
    ArenaError,
    AuthorizationError,
    ConflictError,
    NotFoundError,
    TransientStoreError,
    ValidationError,
)
from arena_app.core.models import (
    ActiveChallengeRecord,
    LeaderboardEntry,
    Participant,
    SessionSnapshot,
)

logger = logging.getLogger(__name__)

_STATUS_BY_ERROR: tuple[tuple[type[ArenaError], int], ...] = (
    (ValidationError, 422),
    (NotFoundError, 404),
    (AuthorizationError, 403),
    (TransientStoreError, 503),
    (ConflictError, 409),
)

_PLAYER_PAGE_HTML = """<!doctype html>
<html lang="en">
  <head>
    <meta charset="utf-8" />
    <title>ArenaQt</title>
    <meta name="viewport" content="width=device-width, initial-scale=1" />
    <style>
      :root { font-family: 'Inter', system-ui, sans-serif; background: #0b1120; color: #f5f7ff; }
      body { margin: 0; padding: 1.5rem; display: flex; flex-direction: column; gap: 1rem; }
      .card { background: #111a30; border-radius: 0.75rem; padding: 1.5rem; }
      .hidden { display: none; }
      input, button { font-size: 1rem; padding: 0.6rem; border-radius: 0.5rem; border: none; }
      button { background: #1f9aa5; color: #fff; cursor: pointer; }
      #leaderboard li { padding: 0.2rem 0; }
      #status { color: #facc15; min-height: 1.25rem; }
    </style>
  </head>
  <body>
    <section class="card" id="join-card">
      <h1>Join the Arena</h1>
      <input id="name" placeholder="Your name" />
      <input id="code" placeholder="4-digit code" maxlength="4" inputmode="numeric" />
      <button id="join-button">Join</button>
    </section>
    <section class="card hidden" id="game-card">
      <h2 id="welcome"></h2>
      <p>Score: <strong id="score">0</strong></p>
      <p id="challenge">Waiting for the host to start a challenge…</p>
    </section>
    <section class="card">
      <h2>Leaderboard</h2>
      <ol id="leaderboard"></ol>
    </section>
    <p id="status"></p>
    <script>
      const statusEl = document.getElementById('status');
      let me = JSON.parse(localStorage.getItem('currentUser') || 'null');

      function showPlayer() {
        if (!me) return;
        document.getElementById('join-card').classList.add('hidden');
        document.getElementById('game-card').classList.remove('hidden');
        document.getElementById('welcome').textContent = `Welcome, ${me.display_name}`;
        document.getElementById('score').textContent = me.score;
      }

      async function join() {
        const body = {
          display_name: document.getElementById('name').value,
          access_code: document.getElementById('code').value,
        };
        const response = await fetch('/join', {
          method: 'POST', headers: { 'Content-Type': 'application/json' }, body: JSON.stringify(body)
        });
        const payload = await response.json().catch(() => ({}));
        if (!response.ok) { statusEl.textContent = payload.message || 'Unable to join.'; return; }
        me = payload;
        localStorage.setItem('currentUser', JSON.stringify(me));
        statusEl.textContent = '';
        showPlayer();
      }

      function render(event) {
        if (event.type === 'SessionStateChanged') {
          const session = event.snapshot.session;
          document.getElementById('challenge').textContent = session.is_active
            ? `Live challenge: ${session.active_challenge_id}` : 'Waiting for the host to start a challenge…';
        } else if (event.type === 'LeaderboardChanged' || event.type === 'UsersChanged') {
          const list = document.getElementById('leaderboard');
          list.innerHTML = '';
          for (const entry of event.entries) {
            const item = document.createElement('li');
            item.textContent = `${entry.participant.display_name}: ${entry.participant.score}`;
            list.appendChild(item);
            if (me && entry.participant.id === me.id) {
              me.score = entry.participant.score;
              document.getElementById('score').textContent = me.score;
            }
          }
        }
      }

      function connect() {
        const scheme = location.protocol === 'https:' ? 'wss' : 'ws';
        const socket = new WebSocket(`${scheme}://${location.host}/feed`);
        socket.onmessage = (message) => render(JSON.parse(message.data));
        socket.onclose = () => setTimeout(connect, 2000);
      }

      document.getElementById('join-button').addEventListener('click', join);
      showPlayer();
      connect();
    </script>
  </body>
</html>
"""


class CredentialsPayload(BaseModel):
    """Display name plus four digit access code."""

    display_name: str
    access_code: str


class ScorePayload(BaseModel):
    participant_id: str
    delta: int


class VotePayload(BaseModel):
    user_id: str
    option_index: int


def _iso(value: datetime | None) -> str | None:
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat()


def participant_to_json(participant: Participant) -> dict[str, Any]:
    """Public view of a participant; the access code never leaves the server."""
    return {
        "id": participant.id,
        "display_name": participant.display_name,
        "score": participant.score,
        "is_admin": participant.is_admin,
        "joined_at": _iso(participant.joined_at),
        "revision": participant.revision,
    }


def record_to_json(record: ActiveChallengeRecord | None) -> dict[str, Any] | None:
    if record is None:
        return None
    return {
        "challenge_id": record.challenge_id,
        "is_active": record.is_active,
        "start_time": _iso(record.start_time),
        "end_time": _iso(record.end_time),
    }


def snapshot_to_json(snapshot: SessionSnapshot) -> dict[str, Any]:
    session = snapshot.session
    return {
        "session": {
            "active_challenge_id": session.active_challenge_id,
            "is_active": session.is_active,
            "start_time": _iso(session.start_time),
            "end_time": _iso(session.end_time),
        },
        "active_challenges": [record_to_json(record) for record in snapshot.active_challenges],
    }


def entries_to_json(entries: list[LeaderboardEntry] | tuple[LeaderboardEntry, ...]) -> list[dict[str, Any]]:
    return [{"rank": entry.rank, "participant": participant_to_json(entry.participant)} for entry in entries]


def tally_to_json(tally: dict[int, int]) -> dict[str, int]:
    return {str(option): count for option, count in sorted(tally.items())}


def event_to_json(event: FeedEvent) -> dict[str, Any]:
    payload: dict[str, Any] = {"type": type(event).__name__}
    if isinstance(event, SessionStateChanged):
        payload["snapshot"] = snapshot_to_json(event.snapshot)
    elif isinstance(event, (LeaderboardChanged, UsersChanged)):
        payload["participant_id"] = event.participant_id
        payload["participant"] = participant_to_json(event.participant) if event.participant else None
        payload["entries"] = entries_to_json(event.entries)
    elif isinstance(event, VotesChanged):
        payload["question_id"] = event.question_id
        payload["tally"] = tally_to_json(event.tally)
    return payload


def _get_arena_manager_dependency(arena_manager: ArenaManager):
    def dependency() -> ArenaManager:
        return arena_manager

    return dependency


def create_api_app(arena_manager: ArenaManager) -> FastAPI:
    """Create a FastAPI application wired to the provided arena manager."""
    app = FastAPI(title=f"{APP_NAME} API", version=APP_VERSION)
    manager_dep = _get_arena_manager_dependency(arena_manager)

    @app.exception_handler(ArenaError)
    async def handle_arena_error(request: Request, exc: ArenaError) -> JSONResponse:
        status_code = next((code for cls, code in _STATUS_BY_ERROR if isinstance(exc, cls)), 400)
        if status_code >= 500:
            logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
        return JSONResponse(
            status_code=status_code,
            content={"error": type(exc).__name__, "message": exc.message},
        )

    @app.get("/", response_class=HTMLResponse)
    def serve_player_page() -> str:
        return _PLAYER_PAGE_HTML

    # --- Identity ---

    @app.post("/join", status_code=201)
    async def join(payload: CredentialsPayload, manager: ArenaManager = Depends(manager_dep)) -> dict[str, Any]:
        participant = await manager.join(payload.display_name, payload.access_code)
        return participant_to_json(participant)

    @app.post("/signup", status_code=201)
    async def sign_up(payload: CredentialsPayload, manager: ArenaManager = Depends(manager_dep)) -> dict[str, Any]:
        participant = await manager.sign_up(payload.display_name, payload.access_code)
        return participant_to_json(participant)

    @app.post("/login")
    async def log_in(payload: CredentialsPayload, manager: ArenaManager = Depends(manager_dep)) -> dict[str, Any]:
        participant = await manager.log_in(payload.display_name, payload.access_code)
        return participant_to_json(participant)

    @app.get("/participants/{participant_id}")
    async def get_participant(participant_id: str, manager: ArenaManager = Depends(manager_dep)) -> dict[str, Any]:
        return participant_to_json(await manager.get_participant(participant_id))

    # --- Reads ---

    @app.get("/state")
    async def get_state(manager: ArenaManager = Depends(manager_dep)) -> dict[str, Any]:
        return snapshot_to_json(await manager.session_snapshot())

    @app.get("/challenges")
    async def list_challenges(manager: ArenaManager = Depends(manager_dep)) -> list[dict[str, Any]]:
        return [
            {
                "id": item.challenge.id,
                "kind": item.challenge.kind.value,
                "title": item.challenge.title,
                "description": item.challenge.description,
                "duration_hint": item.challenge.duration_hint,
                "is_active": item.is_active,
                "record": record_to_json(item.record),
            }
            for item in await manager.challenge_overview()
        ]

    @app.get("/leaderboard")
    async def get_leaderboard(
        limit: int = Query(DEFAULT_LEADERBOARD_SIZE, ge=1, le=500),
        manager: ArenaManager = Depends(manager_dep),
    ) -> dict[str, Any]:
        return {"entries": entries_to_json(await manager.leaderboard(limit=limit))}

    @app.get("/participation")
    async def get_participation(manager: ArenaManager = Depends(manager_dep)) -> dict[str, Any]:
        summary = await manager.participation_summary()
        return {
            "player_count": summary.player_count,
            "admin_count": summary.admin_count,
            "live_challenge_ids": list(summary.live_challenge_ids),
        }

    # --- Admin transitions ---

    @app.post("/challenges/end-all")
    async def end_all_challenges(
        actor_id: str | None = Header(default=None, alias=ADMIN_HEADER),
        manager: ArenaManager = Depends(manager_dep),
    ) -> dict[str, Any]:
        ended = await manager.end_all_challenges(actor_id)
        return {"ended": [record_to_json(record) for record in ended]}

    @app.post("/challenges/{challenge_id}/start")
    async def start_challenge(
        challenge_id: str,
        actor_id: str | None = Header(default=None, alias=ADMIN_HEADER),
        manager: ArenaManager = Depends(manager_dep),
    ) -> dict[str, Any]:
        return record_to_json(await manager.start_challenge(actor_id, challenge_id))

    @app.post("/challenges/{challenge_id}/end")
    async def end_challenge(
        challenge_id: str,
        actor_id: str | None = Header(default=None, alias=ADMIN_HEADER),
        manager: ArenaManager = Depends(manager_dep),
    ) -> dict[str, Any]:
        record = await manager.end_challenge(actor_id, challenge_id)
        return {"ended": record is not None, "record": record_to_json(record)}

    # --- Scores and polls ---

    @app.post("/scores")
    async def apply_score(payload: ScorePayload, manager: ArenaManager = Depends(manager_dep)) -> dict[str, Any]:
        update = await manager.apply_delta(payload.participant_id, payload.delta)
        return {
            "participant_id": update.participant_id,
            "delta": update.delta,
            "new_score": update.new_score,
            "revision": update.revision,
        }

    @app.get("/polls")
    def list_polls(manager: ArenaManager = Depends(manager_dep)) -> list[dict[str, Any]]:
        return [
            {
                "id": question.id,
                "question": question.question,
                "options": list(question.options),
                "strategy": question.strategy.value,
            }
            for question in manager.poll_questions()
        ]

    @app.post("/polls/{question_id}/votes", status_code=201)
    async def vote(
        question_id: str,
        payload: VotePayload,
        manager: ArenaManager = Depends(manager_dep),
    ) -> dict[str, Any]:
        record = await manager.vote(payload.user_id, question_id, payload.option_index)
        return {"user_id": record.user_id, "question_id": record.poll_question_id, "option_index": record.option_index}

    @app.get("/polls/{question_id}/tally")
    async def get_tally(question_id: str, manager: ArenaManager = Depends(manager_dep)) -> dict[str, Any]:
        return {"question_id": question_id, "tally": tally_to_json(await manager.tally(question_id))}

    @app.post("/polls/{question_id}/close")
    async def close_poll(
        question_id: str,
        actor_id: str | None = Header(default=None, alias=ADMIN_HEADER),
        manager: ArenaManager = Depends(manager_dep),
    ) -> dict[str, Any]:
        result = await manager.close_poll_question(actor_id, question_id)
        return {
            "question_id": result.question_id,
            "winning_options": sorted(result.winning_options),
            "awards": result.awards,
        }

    @app.post("/polls/{question_id}/reset")
    async def reset_poll(
        question_id: str,
        actor_id: str | None = Header(default=None, alias=ADMIN_HEADER),
        manager: ArenaManager = Depends(manager_dep),
    ) -> dict[str, Any]:
        await manager.reset_poll_question(actor_id, question_id)
        return {"question_id": question_id, "reset": True}

    # --- Change feed ---

    @app.websocket("/feed")
    async def feed_socket(websocket: WebSocket, manager: ArenaManager = Depends(manager_dep)) -> None:
        await websocket.accept()
        outbox: asyncio.Queue[FeedEvent] = asyncio.Queue()
        bridge = manager.create_bridge()
        bridge.add_listener(outbox.put_nowait)

        async def forward() -> None:
            while True:
                event = await outbox.get()
                await websocket.send_json(event_to_json(event))

        bridge.start()
        sender = asyncio.create_task(forward())
        try:
            while True:
                message = await websocket.receive_text()
                if message == "refresh":
                    await bridge.refresh()
        except WebSocketDisconnect:
            logger.debug("Feed client disconnected")
        finally:
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)
            await bridge.stop()

    return app


def start_api_server(
    arena_manager: ArenaManager,
    host: str = DEFAULT_HOST,
    port: int = DEFAULT_PORT,
) -> Thread:
    """Start the FastAPI server in a background daemon thread."""
    app = create_api_app(arena_manager)
    config = uvicorn.Config(app=app, host=host, port=port, log_level="info")
    server = uvicorn.Server(config)

    def run_server() -> None:
        server.run()

    thread = Thread(target=run_server, name="ArenaApiServer", daemon=True)
    thread.start()
    return thread
