"""Collaborator interfaces consumed by the game core.

Drawing, tone generation and joystick sampling live outside the core; the
game only calls the narrow interfaces below.  Console implementations are in
``armada.console``; tests use recording fakes.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Protocol, Tuple

from . import config as _cfg
from .ai import Difficulty
from .board import Board

# Horizontal origin of each board on the 320x240 screen, in pixels.
PLAYER_ORIGIN = 0
ENEMY_ORIGIN = 160


class Colour(enum.Enum):
    WATER = "~"  # own board, empty
    NAVY = "."  # enemy board, unknown
    SHIP = "#"
    HIT = "X"
    MISS = "o"
    PENDING = "?"  # shot sent, result outstanding
    GHOST_OK = "+"  # ship preview, fits
    GHOST_BAD = "!"  # ship preview, does not fit
    CURSOR = "@"


@dataclass
class Settings:
    """User-adjustable options from the settings screen."""

    sound: bool = _cfg.SOUNDS_ENABLED
    difficulty: Difficulty = field(default_factory=lambda: Difficulty.from_name(_cfg.DEFAULT_DIFFICULTY))


class Display(Protocol):
    def draw_cell(self, row: int, col: int, colour: Colour, origin: int) -> None: ...

    def draw_cursor(self, row: int, col: int, origin: int) -> None: ...

    def status(self, text: str) -> None: ...

    def main_menu(self, selection: "enum.Enum") -> None: ...

    def settings(self, settings: Settings, selection: int) -> None: ...

    def placement(self, board: Board) -> None: ...

    def play_screen(self, board: Board) -> None: ...

    def end_screen(self, won: bool) -> None: ...


class Sound(Protocol):
    def attack(self, hit: bool) -> None: ...

    def enemy_attack(self, hit: bool) -> None: ...

    def win(self) -> None: ...

    def lose(self) -> None: ...


class Controls(Protocol):
    def axes(self) -> Tuple[int, int]:
        """Raw joystick (x, y), 0..1023 with ``JOY_CENTER_RAW`` at rest."""
        ...

    def button(self) -> bool:
        """True while the joystick button is held down."""
        ...
