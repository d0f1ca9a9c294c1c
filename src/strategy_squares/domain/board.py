"""Win and draw evaluation for a 3x3 board."""

from collections.abc import Sequence

BOARD_SIZE = 9
EMPTY = ""

WIN_LINES: tuple[tuple[int, int, int], ...] = (
    # Rows
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    # Columns
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    # Diagonals
    (0, 4, 8),
    (2, 4, 6),
)


def empty_board() -> tuple[str, ...]:
    """Return a board with every cell empty."""
    return (EMPTY,) * BOARD_SIZE


def has_win(board: Sequence[str], mark: str) -> bool:
    """Return True if any canonical line is filled with ``mark``."""
    if not mark:
        return False
    return any(all(board[index] == mark for index in line) for line in WIN_LINES)


def is_full(board: Sequence[str]) -> bool:
    """Return True when no cell is empty."""
    return all(cell != EMPTY for cell in board)


def is_draw(board: Sequence[str]) -> bool:
    """Return True for a full board on which no mark holds a line.

    Callers that just applied a move should check ``has_win`` first; a full
    board whose last move completes a line is a win.
    """
    if not is_full(board):
        return False
    return not any(has_win(board, mark) for mark in set(board))
