"""Board value type and fixed rules for 3x3 tic-tac-toe."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple


class Player(str, Enum):
    X = "X"
    O = "O"

    @property
    def next(self) -> "Player":
        """After X goes it is O's turn, and vice versa."""
        return Player.O if self is Player.X else Player.X


Cell = Optional[Player]

BOARD_SIZE = 9

# Order matters only for determinism: rows, columns, main diagonal, anti-diagonal.
WINNING_LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)


def _check_index(index: int) -> None:
    if not 0 <= index < BOARD_SIZE:
        raise IndexError(f"Cell index {index} out of range 0..{BOARD_SIZE - 1}")


# ---------- Board ----------


@dataclass
class Board:
    # None marks an empty cell
    cells: List[Cell] = field(default_factory=lambda: [None] * BOARD_SIZE)

    def __post_init__(self) -> None:
        if len(self.cells) != BOARD_SIZE:
            raise ValueError(f"Board needs exactly {BOARD_SIZE} cells")

    def copy(self) -> "Board":
        return Board(cells=self.cells.copy())

    def is_empty(self, index: int) -> bool:
        _check_index(index)
        return self.cells[index] is None

    def is_full(self) -> bool:
        return all(c is not None for c in self.cells)

    def empty_cells(self) -> List[int]:
        return [i for i, c in enumerate(self.cells) if c is None]

    def has_winner(self, player: Player) -> bool:
        cells = self.cells
        for a, b, c in WINNING_LINES:
            if cells[a] == player and cells[b] == player and cells[c] == player:
                return True
        return False

    def winning_line(self) -> Optional[Tuple[int, int, int]]:
        """First completed line in ``WINNING_LINES`` order, if any."""
        for line in WINNING_LINES:
            a, b, c = line
            v = self.cells[a]
            if v is not None and v == self.cells[b] == self.cells[c]:
                return line
        return None

    def would_win(self, player: Player, index: int) -> bool:
        """Whether placing ``player`` at ``index`` completes a line (tested on a copy)."""
        _check_index(index)
        test_board = self.copy()
        test_board.cells[index] = player
        return test_board.has_winner(player)

    @staticmethod
    def opponent(player: Player) -> Player:
        return player.next

    def place(self, index: int, player: Player) -> None:
        # No legality check: GameEngine validates before calling.
        self.cells[index] = player

    def snapshot(self) -> List[Cell]:
        return list(self.cells)
