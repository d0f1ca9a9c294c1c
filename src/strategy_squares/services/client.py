"""A single player's handle on their current game."""

import asyncio
import contextlib
import logging
from dataclasses import dataclass, field

from strategy_squares.domain.board import EMPTY
from strategy_squares.domain.errors import ObservationFailed, SessionError
from strategy_squares.domain.players import PlayerProfile
from strategy_squares.domain.sessions import SessionRecord
from strategy_squares.services.observer import SessionObserver
from strategy_squares.services.sessions import SessionManager

_logger = logging.getLogger(__name__)


@dataclass
class GameView:
    """What one client currently knows about its game."""

    player: PlayerProfile
    session_id: str | None = None
    record: SessionRecord | None = None
    error: str | None = None

    @property
    def is_my_turn(self) -> bool:
        """Whether the last seen record lets this player move."""
        return (
            self.record is not None
            and self.record.turn_holder == self.player.player_id
        )


@dataclass
class GameClient:
    """Explicitly owned session handle for one signed-in player.

    Reported errors from the session manager are kept on ``view.error``
    instead of being raised. Rejected moves leave the view untouched; the
    next observed snapshot reconciles it.
    """

    player: PlayerProfile
    manager: SessionManager
    observer: SessionObserver
    view: GameView = field(init=False)
    _watch_task: asyncio.Task[None] | None = field(
        default=None, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self.view = GameView(player=self.player)

    async def create(self) -> str:
        """Create a game, make it current and return its id."""
        session_id = await self.manager.create(self.player)
        self.view.session_id = session_id
        self.view.record = await self.manager.get(session_id)
        self.view.error = None
        return session_id

    async def join(self, session_id: str) -> bool:
        """Join a game by its shared id."""
        normalized = session_id.strip().upper()
        try:
            record = await self.manager.join(normalized, self.player)
        except SessionError as exc:
            self.view.error = str(exc)
            return False
        self.view.session_id = normalized
        self.view.record = record
        self.view.error = None
        return True

    async def move(self, position: int) -> bool:
        """Play a cell if the last seen record allows it."""
        record = self.view.record
        if self.view.session_id is None or record is None:
            return False
        if not self.view.is_my_turn:
            _logger.debug("Move skipped locally: not %s's turn", self.player.player_id)
            return False
        if 0 <= position < len(record.board) and record.board[position] != EMPTY:
            return False
        updated = await self.manager.move(
            self.view.session_id, position, self.player.player_id
        )
        if updated is None:
            return False
        self.view.record = updated
        return True

    async def rematch(self) -> bool:
        """Restart the current game with the same opponent."""
        if self.view.session_id is None:
            return False
        try:
            self.view.record = await self.manager.rematch(self.view.session_id)
        except SessionError as exc:
            self.view.error = str(exc)
            return False
        return True

    async def leave(self) -> None:
        """Leave the current game and forget it."""
        session_id = self.view.session_id
        await self.stop_watching()
        if session_id is not None:
            await self.manager.leave(session_id, self.player.player_id)
        self.view.session_id = None
        self.view.record = None

    def watch(self) -> asyncio.Task[None]:
        """Start forwarding snapshots of the current game into the view."""
        if self.view.session_id is None:
            raise RuntimeError("No current game to watch")
        if self._watch_task is None or self._watch_task.done():
            self._watch_task = asyncio.create_task(
                self._follow(self.view.session_id)
            )
        return self._watch_task

    async def stop_watching(self) -> None:
        """Cancel snapshot forwarding and wait for the listener to detach."""
        task = self._watch_task
        self._watch_task = None
        if task is None or task.done():
            return
        task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await task

    async def _follow(self, session_id: str) -> None:
        try:
            await self.observer.forward(session_id, self._apply_snapshot)
        except ObservationFailed as exc:
            self.view.error = f"Error monitoring game: {exc}"

    def _apply_snapshot(self, record: SessionRecord) -> None:
        if record.session_id != self.view.session_id:
            return
        self.view.record = record
        self.view.error = None
