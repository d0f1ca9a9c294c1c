"""Session manager: read, derive and write shared game records."""

import logging
import random
import string
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Protocol

from strategy_squares.domain.documents import from_document, to_document
from strategy_squares.domain.errors import SessionNotFound, SettlementFailure
from strategy_squares.domain.players import PlayerProfile
from strategy_squares.domain.sessions import Participant, SessionRecord, SessionStatus
from strategy_squares.domain.transitions import (
    apply_move,
    move_rejection,
    open_session,
    reset_for_rematch,
    seat_joiner,
    vacate_second_seat,
)

SESSION_ID_LENGTH = 6

_logger = logging.getLogger(__name__)


class RecordSubscription(Protocol):
    """Handle for an attached store listener."""

    async def unsubscribe(self) -> None:
        """Detach the listener; no callbacks fire after this returns."""


class RecordStore(Protocol):
    """Keyed document store without conditional writes."""

    async def get(self, key: str) -> dict[str, object] | None:
        """Return the document for a key, if present."""

    async def set(self, key: str, document: dict[str, object]) -> None:
        """Overwrite the document for a key."""

    async def delete(self, key: str) -> None:
        """Remove the document for a key."""

    async def subscribe(
        self,
        key: str,
        on_change: Callable[[dict[str, object] | None], None],
        on_error: Callable[[Exception], None],
    ) -> RecordSubscription:
        """Attach a listener, delivering the current document first."""


class ScoreLedger(Protocol):
    """Cumulative score per player."""

    async def get_score(self, player_id: str) -> int:
        """Return the player's score, 0 when unknown."""

    async def set_score(self, player_id: str, score: int) -> None:
        """Store the player's score."""


def generate_session_id() -> str:
    """Return a random six-letter game id."""
    return "".join(random.choices(string.ascii_uppercase, k=SESSION_ID_LENGTH))


@dataclass
class SessionManager:
    """Owns the session state machine over a non-transactional store.

    Every operation is one read, one pure derivation and one unconditional
    write. Two clients acting on the same session at the same moment race,
    and the later write replaces the earlier one in full.
    """

    store: RecordStore
    ledger: ScoreLedger
    id_factory: Callable[[], str] = generate_session_id
    id_attempts: int = 3

    async def create(self, creator: PlayerProfile) -> str:
        """Create a waiting session owned by ``creator`` and return its id."""
        session_id = await self._allocate_id()
        record = open_session(session_id, creator)
        await self.store.set(session_id, to_document(record))
        _logger.info("Game created: id=%s creator=%s", session_id, creator.player_id)
        return session_id

    async def get(self, session_id: str) -> SessionRecord | None:
        """Return the current record for a session, if present."""
        document = await self.store.get(session_id)
        if document is None:
            return None
        return from_document(document)

    async def join(self, session_id: str, joiner: PlayerProfile) -> SessionRecord:
        """Seat ``joiner`` as the second participant and start the game."""
        record = await self.get(session_id)
        if record is None:
            raise SessionNotFound(session_id)
        joined = seat_joiner(record, joiner)
        await self.store.set(session_id, to_document(joined))
        _logger.info("Game joined: id=%s player=%s", session_id, joiner.player_id)
        return joined

    async def move(
        self, session_id: str, position: int, player_id: str
    ) -> SessionRecord | None:
        """Apply a move, returning the written record or None if rejected."""
        record = await self.get(session_id)
        if record is None:
            _logger.debug("Move ignored: game %s not found", session_id)
            return None
        reason = move_rejection(record, position, player_id)
        if reason is not None:
            _logger.debug(
                "Move ignored: id=%s player=%s position=%s reason=%s",
                session_id,
                player_id,
                position,
                reason,
            )
            return None

        updated = apply_move(record, position, player_id)
        if updated.status == SessionStatus.WON and not record.settled:
            updated = await self._settle(updated)
        await self.store.set(session_id, to_document(updated))
        if updated.is_terminal:
            _logger.info(
                "Game finished: id=%s status=%s winner=%s",
                session_id,
                updated.status.value,
                updated.winner_id or "-",
            )
        return updated

    async def rematch(self, session_id: str) -> SessionRecord:
        """Reset the board for the same two participants."""
        record = await self.get(session_id)
        if record is None:
            raise SessionNotFound(session_id)
        if record.participant_b is None:
            return record
        restarted = reset_for_rematch(record)
        await self.store.set(session_id, to_document(restarted))
        _logger.info("Game restarted: id=%s", session_id)
        return restarted

    async def leave(self, session_id: str, player_id: str) -> None:
        """Remove a participant; the creator leaving deletes the session."""
        record = await self.get(session_id)
        if record is None:
            return
        if player_id == record.participant_a.player_id:
            await self.store.delete(session_id)
            _logger.info("Game closed by creator: id=%s", session_id)
            return
        if record.participant_b and player_id == record.participant_b.player_id:
            await self.store.set(session_id, to_document(vacate_second_seat(record)))
            _logger.info("Game reopened: id=%s player=%s left", session_id, player_id)

    async def _allocate_id(self) -> str:
        session_id = self.id_factory()
        attempts = 0
        while attempts < self.id_attempts and await self.store.get(session_id):
            _logger.warning("Game id collision detected, regenerating: %s", session_id)
            session_id = self.id_factory()
            attempts += 1
        return session_id

    async def _settle(self, record: SessionRecord) -> SessionRecord:
        """Credit the winner and debit the loser once for this win."""
        winner = record.participant(record.winner_id)
        loser = record.opponent_of(record.winner_id)
        scores: dict[str, int] = {}
        for participant, delta in ((winner, 1), (loser, -1)):
            if participant is None:
                continue
            try:
                current = await self.ledger.get_score(participant.player_id)
                await self.ledger.set_score(participant.player_id, current + delta)
            except Exception as exc:  # noqa: BLE001
                failure = SettlementFailure(
                    record.session_id, participant.player_id, exc
                )
                failure.__cause__ = exc
                _logger.warning(
                    "Score left under-recorded: game=%s player=%s",
                    failure.session_id,
                    failure.player_id,
                    exc_info=failure,
                )
                continue
            scores[participant.player_id] = current + delta
        return replace(
            record,
            settled=True,
            participant_a=_with_score(record.participant_a, scores),
            participant_b=(
                _with_score(record.participant_b, scores)
                if record.participant_b
                else None
            ),
        )


def _with_score(participant: Participant, scores: dict[str, int]) -> Participant:
    if participant.player_id not in scores:
        return participant
    return replace(participant, score=scores[participant.player_id])
