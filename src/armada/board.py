"""Bitmap board model.

Contains the core data structures for the game:
 - BitGrid: one bit per cell, addressed ``row * cols + col``
 - Ship: a placed ship (row, col, length, orientation)
 - Board: occupied/attacked bitmaps and remaining counts for both sides

There is exactly one game's worth of state live at a time.  The board never
draws anything; callers translate mutations into redraw calls.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterator, Optional, Sequence, Tuple

from . import config as _cfg

Coord = Tuple[int, int]


class PlacementError(Exception):
    """Raised when the fleet is placed out of order or twice."""


class Side(enum.Enum):
    """Whose board a bitmap describes, from the local point of view."""

    PLAYER = "player"  # our own fleet
    ENEMY = "enemy"  # the opponent's fleet as far as we know it


class BitGrid:
    """Fixed-capacity bit-set over a *rows* x *cols* grid."""

    __slots__ = ("rows", "cols", "_bits")

    def __init__(self, rows: int = _cfg.GRID_ROWS, cols: int = _cfg.GRID_COLS) -> None:
        self.rows = rows
        self.cols = cols
        self._bits = 0

    @property
    def capacity(self) -> int:
        return self.rows * self.cols

    def _index(self, row: int, col: int) -> int:
        if not (0 <= row < self.rows and 0 <= col < self.cols):
            raise IndexError(f"cell ({row}, {col}) outside {self.rows}x{self.cols} grid")
        return row * self.cols + col

    def get(self, row: int, col: int) -> bool:
        return bool(self._bits >> self._index(row, col) & 1)

    def set(self, row: int, col: int) -> bool:
        """Set the bit for (*row*, *col*) and return its previous value."""
        mask = 1 << self._index(row, col)
        was_set = bool(self._bits & mask)
        self._bits |= mask
        return was_set

    def clear(self) -> None:
        self._bits = 0

    def count(self) -> int:
        return bin(self._bits).count("1")

    def __iter__(self) -> Iterator[Coord]:
        """Yield set cells in row-major order."""
        for idx in range(self.capacity):
            if self._bits >> idx & 1:
                yield divmod(idx, self.cols)

    def __int__(self) -> int:
        return self._bits

    def __repr__(self) -> str:
        return f"BitGrid({self.rows}x{self.cols}, set={self.count()})"


@dataclass(frozen=True, slots=True)
class Ship:
    row: int
    col: int
    length: int
    horizontal: bool

    def cells(self) -> list[Coord]:
        """Return the cells covered by this ship, bow first."""
        if self.horizontal:
            return [(self.row, self.col + k) for k in range(self.length)]
        return [(self.row + k, self.col) for k in range(self.length)]


def can_place(occupied: BitGrid, row: int, col: int, length: int, horizontal: bool) -> bool:
    """Return ``True`` if a ship of *length* fits at (*row*, *col*).

    The run must stay inside the grid and must not overlap any cell already
    set in *occupied*.
    """
    if row < 0 or col < 0 or length <= 0:
        return False
    if horizontal:
        if row >= occupied.rows or col + length > occupied.cols:
            return False
        return not any(occupied.get(row, c) for c in range(col, col + length))
    if col >= occupied.cols or row + length > occupied.rows:
        return False
    return not any(occupied.get(r, col) for r in range(row, row + length))


class Board:
    """
    Occupancy and attack state for both sides of one game.

    For the PLAYER side ``occupied`` holds our own ships and ``attacked`` the
    cells the opponent has fired at.  For the ENEMY side ``occupied`` holds
    the cells confirmed as hits by the opponent's results and ``attacked``
    the cells we have fired at.

    ``remaining`` counts not-yet-hit ship cells per side; zero is the
    authoritative "all ships sunk" signal.
    """

    def __init__(
        self,
        rows: int = _cfg.GRID_ROWS,
        cols: int = _cfg.GRID_COLS,
        ship_lengths: Sequence[int] = _cfg.SHIP_LENGTHS,
    ) -> None:
        self.rows = rows
        self.cols = cols
        self.ship_lengths = tuple(ship_lengths)
        self.occupied = {side: BitGrid(rows, cols) for side in Side}
        self.attacked = {side: BitGrid(rows, cols) for side in Side}
        self.remaining = {side: 0 for side in Side}
        self.fleet: list[Optional[Ship]] = [None] * len(self.ship_lengths)

    # ------------------------------------------------------------------ #
    # Lifecycle
    # ------------------------------------------------------------------ #
    def reset(self) -> None:
        """Clear all bitmaps, the fleet and both remaining counts."""
        for side in Side:
            self.occupied[side].clear()
            self.attacked[side].clear()
            self.remaining[side] = 0
        self.fleet = [None] * len(self.ship_lengths)

    @property
    def fleet_cells(self) -> int:
        return sum(self.ship_lengths)

    @property
    def next_ship_index(self) -> int:
        """Index of the next ship to place (``len(fleet)`` once complete)."""
        for idx, ship in enumerate(self.fleet):
            if ship is None:
                return idx
        return len(self.fleet)

    @property
    def fleet_complete(self) -> bool:
        return self.next_ship_index == len(self.fleet)

    # ------------------------------------------------------------------ #
    # Placement
    # ------------------------------------------------------------------ #
    def can_place(self, row: int, col: int, length: int, horizontal: bool) -> bool:
        """Fit check against our own fleet."""
        return can_place(self.occupied[Side.PLAYER], row, col, length, horizontal)

    def place(self, fleet_index: int, row: int, col: int, length: int, horizontal: bool) -> Ship:
        """Commit ship *fleet_index* to our board.

        The caller must have validated the fit with :meth:`can_place`; this
        method does not re-check it.
        """
        if fleet_index != self.next_ship_index:
            raise PlacementError(f"ship {fleet_index} placed out of order (expected {self.next_ship_index})")
        ship = Ship(row, col, length, horizontal)
        grid = self.occupied[Side.PLAYER]
        for r, c in ship.cells():
            grid.set(r, c)
        self.fleet[fleet_index] = ship
        self.remaining[Side.PLAYER] += length
        return ship

    # ------------------------------------------------------------------ #
    # Attacks
    # ------------------------------------------------------------------ #
    def mark_attacked(self, side: Side, row: int, col: int) -> bool:
        """Set the attacked bit; return ``True`` only the first time."""
        return not self.attacked[side].set(row, col)

    def record_hit(self, side: Side) -> int:
        """Take one ship cell off *side*'s remaining count (never below zero)."""
        if self.remaining[side] > 0:
            self.remaining[side] -= 1
        return self.remaining[side]

    def confirm_hit(self, row: int, col: int) -> bool:
        """Record an opponent-confirmed hit; counts each cell once."""
        if self.occupied[Side.ENEMY].set(row, col):
            return False
        self.record_hit(Side.ENEMY)
        return True

    def arm_enemy(self, total: Optional[int] = None) -> None:
        """Start counting the opponent's fleet (set once turn order is known)."""
        self.remaining[Side.ENEMY] = self.fleet_cells if total is None else total

    def is_occupied(self, side: Side, row: int, col: int) -> bool:
        return self.occupied[side].get(row, col)

    def is_attacked(self, side: Side, row: int, col: int) -> bool:
        return self.attacked[side].get(row, col)

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def all_sunk(self, side: Side) -> bool:
        return self.remaining[side] == 0
