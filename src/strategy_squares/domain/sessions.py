"""Domain models for game sessions."""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from strategy_squares.domain.board import EMPTY, empty_board

MARK_X = "X"
MARK_O = "O"
COLOR_CREATOR = 0xFF000000
COLOR_JOINER = 0xFFF44336


class SessionStatus(str, Enum):
    """Lifecycle states of a session."""

    WAITING = "WAITING"
    IN_PROGRESS = "IN_PROGRESS"
    WON = "WON"
    DRAWN = "DRAWN"


TERMINAL_STATUSES = frozenset({SessionStatus.WON, SessionStatus.DRAWN})


@dataclass(frozen=True)
class Participant:
    """A player seated in a session."""

    player_id: str
    name: str
    mark: str
    color: int
    score: int = 0


@dataclass(frozen=True)
class SessionRecord:
    """The shared document describing one game."""

    session_id: str
    participant_a: Participant
    participant_b: Participant | None = None
    board: tuple[str, ...] = field(default_factory=empty_board)
    turn_holder: str = ""
    winner_id: str = ""
    status: SessionStatus = SessionStatus.WAITING
    settled: bool = False

    @property
    def is_terminal(self) -> bool:
        """Whether the session has resolved to a win or a draw."""
        return self.status in TERMINAL_STATUSES

    def participants(self) -> list[Participant]:
        """Return the seated participants, creator first."""
        seated = [self.participant_a]
        if self.participant_b is not None:
            seated.append(self.participant_b)
        return seated

    def participant(self, player_id: str) -> Participant | None:
        """Return the participant with the given id, if seated."""
        for participant in self.participants():
            if participant.player_id == player_id:
                return participant
        return None

    def opponent_of(self, player_id: str) -> Participant | None:
        """Return the other participant for a seated player."""
        if player_id == self.participant_a.player_id:
            return self.participant_b
        if self.participant_b and player_id == self.participant_b.player_id:
            return self.participant_a
        return None

    def open_cells(self) -> list[int]:
        """Return indexes of empty cells."""
        return [index for index, cell in enumerate(self.board) if cell == EMPTY]


@dataclass(frozen=True)
class ChatMessage:
    """A chat line attached to a session."""

    id: str
    session_id: str
    sender_id: str
    sender_name: str
    text: str
    sent_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


def complementary_mark(mark: str) -> str:
    """Return the mark the second participant plays against ``mark``."""
    return MARK_X if mark == MARK_O else MARK_O
