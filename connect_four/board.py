"""Board state: cell occupancy for a column-drop grid."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from connect_four.config import BOARD_COLUMNS, BOARD_ROWS


class Player(str, Enum):
    ONE = "one"
    TWO = "two"

    @property
    def opponent(self) -> Player:
        return Player.TWO if self is Player.ONE else Player.ONE


@dataclass(frozen=True)
class Piece:
    owner: Player
    column: int
    row: int


@dataclass(frozen=True)
class Empty:
    pass


@dataclass(frozen=True)
class Occupied:
    piece: Piece

    @property
    def owner(self) -> Player:
        return self.piece.owner


Cell = Empty | Occupied

EMPTY = Empty()


class Board:
    """Grid of cells, row 0 at the top and ``rows - 1`` resting on the floor.

    Pieces only ever enter through :meth:`place`, so the occupied cells of
    any column form one contiguous run starting at the floor.
    """

    def __init__(self, columns: int = BOARD_COLUMNS, rows: int = BOARD_ROWS):
        self.columns = columns
        self.rows = rows
        self.cells: list[list[Cell]] = []
        self.reset()

    def reset(self) -> None:
        self.cells = [[EMPTY] * self.columns for _ in range(self.rows)]

    def in_bounds(self, row: int, column: int) -> bool:
        return 0 <= row < self.rows and 0 <= column < self.columns

    def cell(self, row: int, column: int) -> Cell:
        return self.cells[row][column]

    def owner_at(self, row: int, column: int) -> Player | None:
        """Owner of the piece at (row, column); None if empty or off the board."""
        if not self.in_bounds(row, column):
            return None
        cell = self.cells[row][column]
        if isinstance(cell, Occupied):
            return cell.owner
        return None

    def is_column_playable(self, column: int) -> bool:
        return self.lowest_empty_row(column) is not None

    def lowest_empty_row(self, column: int) -> int | None:
        if column < 0 or column >= self.columns:
            return None
        for row in range(self.rows - 1, -1, -1):
            if isinstance(self.cells[row][column], Empty):
                return row
        return None

    def place(self, column: int, player: Player) -> tuple[int, int]:
        """Drop a piece for ``player`` into ``column``. Returns (row, column)."""
        row = self.lowest_empty_row(column)
        if row is None:
            raise ValueError(f"Column {column} is not playable")
        self.cells[row][column] = Occupied(Piece(owner=player, column=column, row=row))
        return row, column

    def empty_columns(self) -> set[int]:
        # Top cell empty means there is room, given the floor invariant
        return {c for c in range(self.columns) if isinstance(self.cells[0][c], Empty)}

    def is_full(self) -> bool:
        return not self.empty_columns()

    def snapshot(self) -> list[list[str | None]]:
        return [
            [cell.owner.value if isinstance(cell, Occupied) else None for cell in row]
            for row in self.cells
        ]
