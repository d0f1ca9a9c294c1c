"""FastAPI application factory."""

import json
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse, StreamingResponse

from strategy_squares.api.schemas import (
    ChatRequest,
    LeaveRequest,
    MoveRequest,
    PlayerPayload,
    SymbolRequest,
)
from strategy_squares.app_logging import configure_logging
from strategy_squares.containers import AppContainer
from strategy_squares.domain.documents import to_document
from strategy_squares.domain.errors import (
    ObservationFailed,
    SelfJoin,
    SessionError,
    SessionFull,
    SessionNotFound,
)
from strategy_squares.domain.players import PlayerProfile
from strategy_squares.domain.sessions import ChatMessage

_ERROR_STATUS: dict[type[SessionError], int] = {
    SessionNotFound: status.HTTP_404_NOT_FOUND,
    SessionFull: status.HTTP_409_CONFLICT,
    SelfJoin: status.HTTP_409_CONFLICT,
}


def create_app(container: AppContainer) -> FastAPI:  # noqa: PLR0915
    """Create a FastAPI app configured with dependencies."""
    configure_logging(container.settings.log_level)
    logger = logging.getLogger(__name__)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        yield
        await app.state.container.close_resources()

    app = FastAPI(lifespan=lifespan)
    app.state.container = container

    @app.exception_handler(SessionError)
    async def session_error_handler(
        request: Request, exc: SessionError
    ) -> JSONResponse:
        status_code = _ERROR_STATUS.get(type(exc), status.HTTP_400_BAD_REQUEST)
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    @app.get("/health")
    async def health() -> dict[str, str]:
        """Simple health check endpoint."""
        return {"status": "ok"}

    @app.post("/players")
    async def register_player(
        payload: PlayerPayload, request: Request
    ) -> dict[str, object]:
        """Create or update a player profile."""
        state_container: AppContainer = request.app.state.container
        profile = await state_container.player_service.register(payload.to_profile())
        return _profile_payload(profile)

    @app.put("/players/{player_id}/symbol")
    async def update_symbol(
        player_id: str, payload: SymbolRequest, request: Request
    ) -> dict[str, object]:
        """Change a player's preferred symbol."""
        state_container: AppContainer = request.app.state.container
        profile = await state_container.player_service.update_symbol(
            player_id, payload.symbol
        )
        if profile is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND)
        return _profile_payload(profile)

    @app.get("/leaderboard")
    async def leaderboard(request: Request, limit: int = 50) -> dict[str, object]:
        """Return the top players by score."""
        state_container: AppContainer = request.app.state.container
        players = await state_container.player_service.leaderboard(limit)
        return {"players": [_profile_payload(player) for player in players]}

    @app.post("/sessions")
    async def create_session(
        payload: PlayerPayload, request: Request
    ) -> dict[str, object]:
        """Create a waiting game for the player."""
        state_container: AppContainer = request.app.state.container
        session_id = await state_container.session_manager.create(payload.to_profile())
        return {"session_id": session_id}

    @app.get("/sessions/{session_id}")
    async def get_session(session_id: str, request: Request) -> dict[str, object]:
        """Return the current record for a game."""
        state_container: AppContainer = request.app.state.container
        record = await state_container.session_manager.get(session_id)
        if record is None:
            raise SessionNotFound(session_id)
        return to_document(record)

    @app.post("/sessions/{session_id}/join")
    async def join_session(
        session_id: str, payload: PlayerPayload, request: Request
    ) -> dict[str, object]:
        """Seat the player as the second participant."""
        state_container: AppContainer = request.app.state.container
        record = await state_container.session_manager.join(
            session_id, payload.to_profile()
        )
        return to_document(record)

    @app.post("/sessions/{session_id}/moves")
    async def make_move(
        session_id: str, payload: MoveRequest, request: Request
    ) -> dict[str, object]:
        """Attempt a move; rejected moves leave the game unchanged."""
        state_container: AppContainer = request.app.state.container
        manager = state_container.session_manager
        record = await manager.move(session_id, payload.position, payload.player_id)
        applied = record is not None
        if record is None:
            record = await manager.get(session_id)
        return {
            "applied": applied,
            "session": to_document(record) if record else None,
        }

    @app.post("/sessions/{session_id}/rematch")
    async def rematch(session_id: str, request: Request) -> dict[str, object]:
        """Restart a game with the same participants."""
        state_container: AppContainer = request.app.state.container
        record = await state_container.session_manager.rematch(session_id)
        return to_document(record)

    @app.post("/sessions/{session_id}/leave")
    async def leave_session(
        session_id: str, payload: LeaveRequest, request: Request
    ) -> dict[str, str]:
        """Remove a participant from a game."""
        state_container: AppContainer = request.app.state.container
        await state_container.session_manager.leave(session_id, payload.player_id)
        return {"status": "ok"}

    @app.get("/sessions/{session_id}/events")
    async def session_events(session_id: str, request: Request) -> StreamingResponse:
        """Stream game snapshots as server-sent events."""
        state_container: AppContainer = request.app.state.container
        observer = state_container.session_observer

        async def events() -> AsyncIterator[str]:
            try:
                async with observer.subscribe(session_id) as stream:
                    async for record in stream:
                        yield _sse("snapshot", to_document(record))
            except ObservationFailed as exc:
                logger.exception("Game observation ended: %s", session_id)
                yield _sse("error", {"detail": str(exc)})

        return StreamingResponse(events(), media_type="text/event-stream")

    @app.post("/sessions/{session_id}/messages")
    async def send_message(
        session_id: str, payload: ChatRequest, request: Request
    ) -> dict[str, object]:
        """Post a chat line to a game."""
        state_container: AppContainer = request.app.state.container
        message = await state_container.chat_service.send_message(
            session_id, payload.sender.to_profile(), payload.text
        )
        return _message_payload(message)

    @app.get("/sessions/{session_id}/messages")
    async def list_messages(
        session_id: str, request: Request, limit: int = 100
    ) -> dict[str, object]:
        """Return a game's chat in insertion order."""
        state_container: AppContainer = request.app.state.container
        messages = await state_container.chat_service.list_messages(session_id, limit)
        return {"messages": [_message_payload(message) for message in messages]}

    return app


def _profile_payload(profile: PlayerProfile) -> dict[str, object]:
    return asdict(profile)


def _message_payload(message: ChatMessage) -> dict[str, object]:
    payload = asdict(message)
    payload["sent_at"] = message.sent_at.isoformat()
    return payload


def _sse(event: str, data: dict[str, object]) -> str:
    """Format one server-sent event."""
    return f"event: {event}\ndata: {json.dumps(data)}\n\n"
