"""Pydantic models for session documents held in the record store."""

from pydantic import BaseModel, Field, ValidationError, model_validator

from strategy_squares.domain.board import BOARD_SIZE, EMPTY
from strategy_squares.domain.errors import InvalidSessionDocument
from strategy_squares.domain.sessions import (
    Participant,
    SessionRecord,
    SessionStatus,
)

SESSION_ID_PATTERN = r"^[A-Z]{6}$"


class ParticipantDocument(BaseModel):
    """Stored participant payload."""

    player_id: str = Field(min_length=1)
    name: str = ""
    mark: str = Field(min_length=1)
    color: int = 0
    score: int = 0


class SessionDocument(BaseModel):
    """Stored session payload with the record invariants enforced."""

    session_id: str = Field(pattern=SESSION_ID_PATTERN)
    board: list[str] = Field(min_length=BOARD_SIZE, max_length=BOARD_SIZE)
    participant_a: ParticipantDocument
    participant_b: ParticipantDocument | None = None
    turn_holder: str = ""
    winner_id: str = ""
    status: SessionStatus
    settled: bool = False

    @model_validator(mode="after")
    def _check_invariants(self) -> "SessionDocument":
        seated, marks = self._seated_players_and_marks()
        self._check_status(seated)
        if (self.status == SessionStatus.WON) != bool(self.winner_id):
            raise ValueError("winner is set exactly when the session is won")
        if self.winner_id and self.winner_id not in seated:
            raise ValueError("winner must be a participant")
        if self.settled and self.status != SessionStatus.WON:
            raise ValueError("only a won session can be settled")
        for cell in self.board:
            if cell != EMPTY and cell not in marks:
                raise ValueError(f"unexpected mark on board: {cell!r}")
        return self

    def _seated_players_and_marks(self) -> tuple[set[str], set[str]]:
        seated = {self.participant_a.player_id}
        marks = {self.participant_a.mark}
        if self.participant_b is not None:
            if self.participant_b.player_id in seated:
                raise ValueError("participants must be distinct players")
            if self.participant_b.mark in marks:
                raise ValueError("participants must have distinct marks")
            seated.add(self.participant_b.player_id)
            marks.add(self.participant_b.mark)
        return seated, marks

    def _check_status(self, seated: set[str]) -> None:
        if self.status == SessionStatus.WAITING:
            if self.participant_b is not None:
                raise ValueError("a waiting session has no second participant")
            return
        if self.participant_b is None:
            raise ValueError("a started session needs two participants")
        if self.status == SessionStatus.IN_PROGRESS:
            if self.turn_holder not in seated:
                raise ValueError("turn holder must be a participant")
        elif self.turn_holder:
            raise ValueError("a finished session has no turn holder")


def to_document(record: SessionRecord) -> dict[str, object]:
    """Serialize a session record for the record store."""
    return {
        "session_id": record.session_id,
        "board": list(record.board),
        "participant_a": _participant_payload(record.participant_a),
        "participant_b": (
            _participant_payload(record.participant_b)
            if record.participant_b
            else None
        ),
        "turn_holder": record.turn_holder,
        "winner_id": record.winner_id,
        "status": record.status.value,
        "settled": record.settled,
    }


def from_document(document: object) -> SessionRecord:
    """Parse and validate a stored document into a session record."""
    try:
        parsed = SessionDocument.model_validate(document)
    except ValidationError as exc:
        raise InvalidSessionDocument(str(exc)) from exc
    return SessionRecord(
        session_id=parsed.session_id,
        participant_a=_participant(parsed.participant_a),
        participant_b=(
            _participant(parsed.participant_b) if parsed.participant_b else None
        ),
        board=tuple(parsed.board),
        turn_holder=parsed.turn_holder,
        winner_id=parsed.winner_id,
        status=parsed.status,
        settled=parsed.settled,
    )


def _participant_payload(participant: Participant) -> dict[str, object]:
    return {
        "player_id": participant.player_id,
        "name": participant.name,
        "mark": participant.mark,
        "color": participant.color,
        "score": participant.score,
    }


def _participant(document: ParticipantDocument) -> Participant:
    return Participant(
        player_id=document.player_id,
        name=document.name,
        mark=document.mark,
        color=document.color,
        score=document.score,
    )
