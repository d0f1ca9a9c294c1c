"""Tests for the HTTP API."""

import asyncio
import json
from collections.abc import Callable
from dataclasses import replace
from types import SimpleNamespace

from fastapi.testclient import TestClient

from strategy_squares.api.app import create_app
from strategy_squares.containers import AppContainer
from strategy_squares.services.observer import SessionObserver
from tests.conftest import InMemoryPlayerRepository, InMemoryRecordStore

ALICE_PAYLOAD = {"player_id": "alice", "name": "Alice"}
BOB_PAYLOAD = {"player_id": "bob", "name": "Bob"}
CAROL_PAYLOAD = {"player_id": "carol", "name": "Carol"}


class FailingAfterSnapshotStore(InMemoryRecordStore):
    """Delivers the current document, then reports a channel failure."""

    async def subscribe(
        self,
        key: str,
        on_change: Callable[[dict[str, object] | None], None],
        on_error: Callable[[Exception], None],
    ):  # type: ignore[no-untyped-def]
        subscription = await super().subscribe(key, on_change, on_error)
        on_error(ConnectionError("channel closed"))
        return subscription


def _start_game(client: TestClient) -> str:
    response = client.post("/sessions", json=ALICE_PAYLOAD)
    assert response.status_code == 200
    session_id = response.json()["session_id"]
    response = client.post(f"/sessions/{session_id}/join", json=BOB_PAYLOAD)
    assert response.status_code == 200
    return session_id


def test_health(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_create_and_fetch_session(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    session_id = client.post("/sessions", json=ALICE_PAYLOAD).json()["session_id"]
    response = client.get(f"/sessions/{session_id}")

    assert session_id == "ABCDEF"
    assert response.status_code == 200
    data = response.json()
    assert data["status"] == "WAITING"
    assert data["participant_a"]["mark"] == "X"
    assert data["turn_holder"] == "alice"


def test_join_errors_map_to_status_codes(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id = client.post("/sessions", json=ALICE_PAYLOAD).json()["session_id"]

    own = client.post(f"/sessions/{session_id}/join", json=ALICE_PAYLOAD)
    joined = client.post(f"/sessions/{session_id}/join", json=BOB_PAYLOAD)
    full = client.post(f"/sessions/{session_id}/join", json=CAROL_PAYLOAD)
    missing = client.post("/sessions/NOPENO/join", json=CAROL_PAYLOAD)

    assert own.status_code == 409
    assert own.json()["detail"] == "Cannot join your own game"
    assert joined.status_code == 200
    assert joined.json()["participant_b"]["mark"] == "O"
    assert full.status_code == 409
    assert missing.status_code == 404
    assert client.get("/sessions/NOPENO").status_code == 404


def test_moves_report_whether_they_applied(container: AppContainer) -> None:
    client = TestClient(create_app(container))
    session_id = _start_game(client)

    applied = client.post(
        f"/sessions/{session_id}/moves", json={"player_id": "alice", "position": 4}
    )
    rejected = client.post(
        f"/sessions/{session_id}/moves", json={"player_id": "alice", "position": 0}
    )

    assert applied.json()["applied"] is True
    assert applied.json()["session"]["turn_holder"] == "bob"
    assert rejected.status_code == 200
    assert rejected.json()["applied"] is False
    assert rejected.json()["session"]["board"][4] == "X"


def test_win_rematch_and_leave(
    container: AppContainer, player_repository: InMemoryPlayerRepository
) -> None:
    client = TestClient(create_app(container))
    session_id = _start_game(client)
    for player_id, position in (
        ("alice", 0),
        ("bob", 3),
        ("alice", 1),
        ("bob", 4),
        ("alice", 2),
    ):
        client.post(
            f"/sessions/{session_id}/moves",
            json={"player_id": player_id, "position": position},
        )

    won = client.get(f"/sessions/{session_id}").json()
    rematch = client.post(f"/sessions/{session_id}/rematch")
    left = client.post(f"/sessions/{session_id}/leave", json={"player_id": "alice"})

    assert won["status"] == "WON"
    assert won["winner_id"] == "alice"
    assert won["settled"] is True
    assert player_repository.scores == {"alice": 1, "bob": -1}
    assert rematch.json()["status"] == "IN_PROGRESS"
    assert rematch.json()["settled"] is False
    assert left.json() == {"status": "ok"}
    assert client.get(f"/sessions/{session_id}").status_code == 404


def test_rematch_missing_session_is_not_found(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    assert client.post("/sessions/NOPENO/rematch").status_code == 404


def test_players_symbol_and_leaderboard(
    container: AppContainer, player_repository: InMemoryPlayerRepository
) -> None:
    client = TestClient(create_app(container))
    player_repository.scores["bob"] = 2

    client.post("/players", json=ALICE_PAYLOAD)
    client.post("/players", json=BOB_PAYLOAD)
    symbol = client.put("/players/alice/symbol", json={"symbol": "O"})
    unknown = client.put("/players/ghost/symbol", json={"symbol": "O"})
    board = client.get("/leaderboard", params={"limit": 1})

    assert symbol.status_code == 200
    assert symbol.json()["symbol"] == "O"
    assert unknown.status_code == 404
    assert [player["player_id"] for player in board.json()["players"]] == ["bob"]

    session_id = client.post(
        "/sessions", json={**ALICE_PAYLOAD, "symbol": "O"}
    ).json()["session_id"]
    joined = client.post(f"/sessions/{session_id}/join", json=BOB_PAYLOAD).json()
    assert joined["participant_a"]["mark"] == "O"
    assert joined["participant_b"]["mark"] == "X"


def test_chat_messages(container: AppContainer) -> None:
    client = TestClient(create_app(container))

    sent = client.post(
        "/sessions/ABCDEF/messages", json={"sender": ALICE_PAYLOAD, "text": " gg "}
    )
    empty = client.post(
        "/sessions/ABCDEF/messages", json={"sender": BOB_PAYLOAD, "text": "  "}
    )
    listed = client.get("/sessions/ABCDEF/messages")

    assert sent.status_code == 200
    assert sent.json()["text"] == "gg"
    assert empty.status_code == 400
    assert [message["text"] for message in listed.json()["messages"]] == ["gg"]


def test_session_events_stream_snapshot_then_error(
    container: AppContainer, record_store: InMemoryRecordStore
) -> None:
    failing_store = FailingAfterSnapshotStore(documents=record_store.documents)
    app_container = replace(
        container, session_observer=SessionObserver(failing_store)
    )
    client = TestClient(create_app(app_container))
    session_id = _start_game(client)

    with client.stream("GET", f"/sessions/{session_id}/events") as response:
        body = response.read().decode()

    assert response.headers["content-type"].startswith("text/event-stream")
    events = [chunk for chunk in body.split("\n\n") if chunk]
    assert events[0].startswith("event: snapshot")
    snapshot = json.loads(events[0].split("data: ", 1)[1])
    assert snapshot["status"] == "IN_PROGRESS"
    assert events[-1].startswith("event: error")
    assert failing_store.listeners[session_id] == []


def test_session_events_report_attach_failure_as_error_event(
    container: AppContainer, record_store: InMemoryRecordStore
) -> None:
    client = TestClient(create_app(container))
    session_id = _start_game(client)
    record_store.subscribe_error = ConnectionError("channel refused")

    with client.stream("GET", f"/sessions/{session_id}/events") as response:
        body = response.read().decode()

    assert response.status_code == 200
    events = [chunk for chunk in body.split("\n\n") if chunk]
    assert len(events) == 1
    assert events[0].startswith("event: error")
    assert "channel refused" in events[0]


def test_session_events_attach_only_while_body_is_iterated(
    container: AppContainer, record_store: InMemoryRecordStore
) -> None:
    app = create_app(container)
    client = TestClient(app)
    session_id = _start_game(client)
    route = next(
        route
        for route in app.routes
        if getattr(route, "path", "") == "/sessions/{session_id}/events"
    )

    async def scenario() -> tuple[int, str, int]:
        response = await route.endpoint(session_id, SimpleNamespace(app=app))
        attached_before = len(record_store.listeners.get(session_id, []))
        first = await anext(response.body_iterator)
        attached_during = len(record_store.listeners[session_id])
        await response.body_iterator.aclose()
        return attached_before, first, attached_during

    before, first, during = asyncio.run(scenario())

    assert before == 0
    assert first.startswith("event: snapshot")
    assert during == 1
    assert record_store.listeners[session_id] == []
