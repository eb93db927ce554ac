"""Win detection around the most recently placed piece."""

from __future__ import annotations

from connect_four.board import Board, Player
from connect_four.config import CONNECT_N

# Four directions: horizontal, vertical, diagonal ↘, diagonal ↙
DIRECTIONS = [
    (0, 1),
    (1, 0),
    (1, 1),
    (1, -1),
]


def winning_line(
    board: Board, row: int, column: int, player: Player, length: int = CONNECT_N
) -> list[tuple[int, int]] | None:
    """Return the cells of a winning run through (row, column), or None.

    For every direction, each of the ``length`` windows of ``length``
    consecutive cells that contains (row, column) is checked. A window wins
    only if every cell in it belongs to ``player``; off-board cells never match.
    """
    for dr, dc in DIRECTIONS:
        for i in range(length):
            line = []
            for j in range(length):
                k = i - (length - 1) + j
                r, c = row + dr * k, column + dc * k
                if board.owner_at(r, c) != player:
                    break
                line.append((r, c))
            else:
                return line
    return None
