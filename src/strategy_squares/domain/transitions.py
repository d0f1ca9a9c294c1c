"""Pure session state transitions.

Each function derives the next record from the current one without touching
any store. ``SessionManager`` pairs them with a read and a write.
"""

from dataclasses import replace

from strategy_squares.domain.board import (
    BOARD_SIZE,
    EMPTY,
    empty_board,
    has_win,
    is_full,
)
from strategy_squares.domain.errors import SelfJoin, SessionFull
from strategy_squares.domain.players import PlayerProfile
from strategy_squares.domain.sessions import (
    COLOR_CREATOR,
    COLOR_JOINER,
    Participant,
    SessionRecord,
    SessionStatus,
    complementary_mark,
)


def open_session(session_id: str, creator: PlayerProfile) -> SessionRecord:
    """Build the waiting record for a newly created session."""
    return SessionRecord(
        session_id=session_id,
        participant_a=Participant(
            player_id=creator.player_id,
            name=creator.name,
            mark=creator.symbol,
            color=creator.symbol_color or COLOR_CREATOR,
            score=creator.score,
        ),
        board=empty_board(),
        turn_holder=creator.player_id,
        status=SessionStatus.WAITING,
    )


def seat_joiner(record: SessionRecord, joiner: PlayerProfile) -> SessionRecord:
    """Seat a second participant and start play with the creator to move."""
    if record.participant_b is not None:
        raise SessionFull(record.session_id)
    if joiner.player_id == record.participant_a.player_id:
        raise SelfJoin(record.session_id)
    participant_b = Participant(
        player_id=joiner.player_id,
        name=joiner.name,
        mark=complementary_mark(record.participant_a.mark),
        color=COLOR_JOINER,
        score=joiner.score,
    )
    return replace(
        record,
        participant_b=participant_b,
        status=SessionStatus.IN_PROGRESS,
        turn_holder=record.participant_a.player_id,
    )


def move_rejection(record: SessionRecord, position: int, player_id: str) -> str | None:
    """Return why a move is not allowed, or None when it is legal."""
    if record.status != SessionStatus.IN_PROGRESS:
        return "game not in progress"
    if record.turn_holder != player_id:
        return "not player's turn"
    if not 0 <= position < BOARD_SIZE:
        return "invalid position"
    if record.board[position] != EMPTY:
        return "position already occupied"
    if record.participant(player_id) is None:
        return "player not seated"
    return None


def apply_move(record: SessionRecord, position: int, player_id: str) -> SessionRecord:
    """Place the player's mark and resolve win, draw or turn hand-over.

    The move must already have passed ``move_rejection``. Settlement is not
    applied here; a freshly won record keeps its current ``settled`` flag.
    """
    mover = record.participant(player_id)
    if mover is None:
        raise ValueError(f"{player_id} is not seated in {record.session_id}")
    board = list(record.board)
    board[position] = mover.mark
    next_board = tuple(board)

    if has_win(next_board, mover.mark):
        return replace(
            record,
            board=next_board,
            status=SessionStatus.WON,
            winner_id=player_id,
            turn_holder="",
        )
    if is_full(next_board):
        return replace(
            record,
            board=next_board,
            status=SessionStatus.DRAWN,
            winner_id="",
            turn_holder="",
        )
    opponent = record.opponent_of(player_id)
    return replace(
        record,
        board=next_board,
        turn_holder=opponent.player_id if opponent else record.turn_holder,
    )


def reset_for_rematch(record: SessionRecord) -> SessionRecord:
    """Clear the board for another game between the same participants."""
    return replace(
        record,
        board=empty_board(),
        turn_holder=record.participant_a.player_id,
        winner_id="",
        status=SessionStatus.IN_PROGRESS,
        settled=False,
    )


def vacate_second_seat(record: SessionRecord) -> SessionRecord:
    """Return the session to waiting after the second participant leaves."""
    return replace(
        record,
        participant_b=None,
        board=empty_board(),
        turn_holder=record.participant_a.player_id,
        winner_id="",
        status=SessionStatus.WAITING,
        settled=False,
    )
