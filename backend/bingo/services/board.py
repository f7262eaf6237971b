"""Pure 5x5 board helpers. No database access."""

from typing import List, Optional, Sequence

EMPTY = 'empty'
RED = 'red'        # side A, always moves first
PURPLE = 'purple'  # side B
SIDES = (RED, PURPLE)

SIZE = 5
CELL_COUNT = SIZE * SIZE


def _build_lines() -> List[List[int]]:
    rows = [[r * SIZE + c for c in range(SIZE)] for r in range(SIZE)]
    cols = [[r * SIZE + c for r in range(SIZE)] for c in range(SIZE)]
    diagonals = [
        [i * SIZE + i for i in range(SIZE)],
        [i * SIZE + (SIZE - 1 - i) for i in range(SIZE)],
    ]
    return rows + cols + diagonals


# 5 rows, 5 columns, 2 full-length diagonals
LINES = _build_lines()


def new_board() -> List[str]:
    return [EMPTY] * CELL_COUNT


def other_side(side: str) -> str:
    if side not in SIDES:
        raise ValueError(f"unknown side {side!r}")
    return PURPLE if side == RED else RED


def is_valid_square(square) -> bool:
    return isinstance(square, int) and not isinstance(square, bool) and 0 <= square < CELL_COUNT


def detect_win(board: Sequence[str]) -> Optional[str]:
    """Return the side owning all five cells of any line, else None."""
    if len(board) != CELL_COUNT:
        raise ValueError(f"board must have {CELL_COUNT} cells, got {len(board)}")
    for line in LINES:
        first = board[line[0]]
        if first in SIDES and all(board[i] == first for i in line):
            return first
    return None


def is_full(board: Sequence[str]) -> bool:
    return all(cell != EMPTY for cell in board)
