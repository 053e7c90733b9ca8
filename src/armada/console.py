"""Terminal stand-ins for the LCD, buzzer and joystick.

The game core only sees the ``Display`` / ``Sound`` / ``Controls`` interfaces
from :mod:`armada.ui`; these implementations render both boards as text and
turn typed keys into joystick deflections and button presses.
"""

from __future__ import annotations

import logging
import queue
import sys
import threading
from typing import List, Optional, TextIO, Tuple

from . import config as _cfg
from .board import Board, Side
from .ui import ENEMY_ORIGIN, Colour, Settings

logger = logging.getLogger(__name__)

# One input frame: (x, y, button) held for a number of ticks.
Frame = Tuple[int, int, bool, int]

_LOW = _cfg.JOY_MIN_RAW - 100
_HIGH = _cfg.JOY_MAX_RAW + 100
_MID = _cfg.JOY_CENTER_RAW

KEY_HELP = "w/a/s/d move, f fire/place, r rotate (long press), q quit"


# ---------------------------- rendering -----------------------------


def _row_label(idx: int) -> str:
    return chr(ord("A") + idx)


def _print_two_grids(
    left_rows: list[str],
    right_rows: list[str],
    *,
    header_left: str,
    header_right: str,
    out: TextIO,
) -> None:
    """Print two boards side-by-side with centred headers."""

    if not left_rows or not right_rows:
        return

    columns = len(left_rows[0].split())
    numeric_header = "   " + " ".join(f"{i:>2}" for i in range(columns))
    board_width = len(numeric_header)

    left_header = f"[{header_left}]".center(board_width)
    right_header = f"[{header_right}]".center(board_width)
    print(f"\n{left_header}   {right_header}", file=out)
    print(f"{numeric_header}   {numeric_header}", file=out)

    for idx in range(len(left_rows)):
        label = _row_label(idx)
        left = " ".join(f"{c:>2}" for c in left_rows[idx].split())
        right = " ".join(f"{c:>2}" for c in right_rows[idx].split())
        print(f"{label:2} {left}   {label:2} {right}", file=out)


class ConsoleDisplay:
    """Keeps a text copy of both boards and reprints it when something changed."""

    def __init__(self, rows: int = _cfg.GRID_ROWS, cols: int = _cfg.GRID_COLS, out: Optional[TextIO] = None) -> None:
        self.rows = rows
        self.cols = cols
        self.out = out if out is not None else sys.stdout
        self.own: List[List[Colour]] = []
        self.enemy: List[List[Colour]] = []
        self.cursor: Optional[Tuple[int, int]] = None
        self.status_text = ""
        self.screen: List[str] = []  # non-board screens (menu, settings, end)
        self.dirty = False
        self._clear_boards()

    def _clear_boards(self) -> None:
        self.own = [[Colour.WATER] * self.cols for _ in range(self.rows)]
        self.enemy = [[Colour.NAVY] * self.cols for _ in range(self.rows)]
        self.cursor = None

    # -------------------- Display interface --------------------
    def draw_cell(self, row: int, col: int, colour: Colour, origin: int) -> None:
        grid = self.enemy if origin == ENEMY_ORIGIN else self.own
        grid[row][col] = colour
        self.dirty = True

    def draw_cursor(self, row: int, col: int, origin: int) -> None:
        self.cursor = (row, col) if origin == ENEMY_ORIGIN else None
        self.dirty = True

    def status(self, text: str) -> None:
        self.status_text = text
        self.dirty = True

    def main_menu(self, selection) -> None:
        name = getattr(selection, "name", "NONE")
        marks = {key: ">" if name == key else " " for key in ("MULTIPLAYER", "SINGLEPLAYER", "SETTINGS_GEAR")}
        self.screen = [
            "=== ARMADA ===",
            f"{marks['MULTIPLAYER']} Multiplayer",
            f"{marks['SINGLEPLAYER']} Versus AI   {marks['SETTINGS_GEAR']} [Settings]",
            KEY_HELP,
        ]
        self.status_text = ""
        self.dirty = True

    def settings(self, settings: Settings, selection: int) -> None:
        rows = [
            f"Sound: {'On' if settings.sound else 'Off'}",
            f"Difficulty: {settings.difficulty.rank}",
        ]
        self.screen = ["=== SETTINGS ==="]
        self.screen += [f"{'>' if idx == selection else ' '} {text}" for idx, text in enumerate(rows)]
        self.screen.append("a: back, f: change")
        self.dirty = True

    def placement(self, board: Board) -> None:
        self.screen = []
        self._clear_boards()
        for r, c in board.occupied[Side.PLAYER]:
            self.own[r][c] = Colour.SHIP
        self.dirty = True

    def play_screen(self, board: Board) -> None:
        self.screen = []
        self._clear_boards()
        for r in range(self.rows):
            for c in range(self.cols):
                ship = board.is_occupied(Side.PLAYER, r, c)
                if board.is_attacked(Side.PLAYER, r, c):
                    self.own[r][c] = Colour.HIT if ship else Colour.MISS
                elif ship:
                    self.own[r][c] = Colour.SHIP
                if board.is_attacked(Side.ENEMY, r, c):
                    self.enemy[r][c] = Colour.HIT if board.is_occupied(Side.ENEMY, r, c) else Colour.MISS
        self.dirty = True

    def end_screen(self, won: bool) -> None:
        self.screen = ["=== VICTORY ===" if won else "=== DEFEAT ==="]
        self.dirty = True

    # -------------------- output --------------------
    def rows_of(self, grid: List[List[Colour]], *, with_cursor: bool = False) -> list[str]:
        rows = []
        for r, line in enumerate(grid):
            cells = [colour.value for colour in line]
            if with_cursor and self.cursor is not None and self.cursor[0] == r:
                cells[self.cursor[1]] = Colour.CURSOR.value
            rows.append(" ".join(cells))
        return rows

    def refresh(self) -> None:
        """Reprint the current screen if anything was drawn since the last call."""
        if not self.dirty:
            return
        self.dirty = False
        if self.screen:
            print("\n" + "\n".join(self.screen), file=self.out)
        else:
            _print_two_grids(
                self.rows_of(self.own),
                self.rows_of(self.enemy, with_cursor=True),
                header_left="Your Fleet",
                header_right="Enemy Waters",
                out=self.out,
            )
        if self.status_text:
            print(f"[{self.status_text}]", file=self.out)
        self.out.flush()


class BellSound:
    """Terminal bell in place of the buzzer melodies."""

    def __init__(self, out: Optional[TextIO] = None) -> None:
        self.out = out if out is not None else sys.stdout

    def _ring(self, times: int, what: str) -> None:
        logger.debug("Sound: %s", what)
        self.out.write("\a" * times)
        self.out.flush()

    def attack(self, hit: bool) -> None:
        self._ring(2 if hit else 1, "hit" if hit else "miss")

    def enemy_attack(self, hit: bool) -> None:
        self._ring(2 if hit else 1, "enemy hit" if hit else "enemy miss")

    def win(self) -> None:
        self._ring(3, "win")

    def lose(self) -> None:
        self._ring(1, "lose")


# ---------------------------- keyboard -----------------------------


def frames_for_key(key: str) -> list[Frame]:
    """Joystick frames produced by one typed key (empty for unknown keys)."""
    gap = _cfg.JOY_REPEAT_TICKS
    moves = {
        "w": (_MID, _LOW),
        "s": (_MID, _HIGH),
        "a": (_LOW, _MID),
        "d": (_HIGH, _MID),
    }
    if key in moves:
        x, y = moves[key]
        return [(x, y, False, 1), (_MID, _MID, False, gap)]
    if key == "f":
        return [(_MID, _MID, True, 1), (_MID, _MID, False, 2)]
    if key == "r":
        return [(_MID, _MID, True, _cfg.LONG_PRESS_TICKS + 50), (_MID, _MID, False, 2)]
    return []


class KeyboardControls:
    """Joystick emulation fed by lines typed on stdin.

    A background thread reads lines; :meth:`step` is called once per tick
    and plays back the resulting frames so that moves and presses take
    the same number of ticks a real joystick would.
    """

    def __init__(self, stream: Optional[TextIO] = None) -> None:
        self.stream = stream if stream is not None else sys.stdin
        self.keys: "queue.Queue[str]" = queue.Queue()
        self.stop_evt = threading.Event()
        self._frames: list[Frame] = []
        self._left = 0
        self._x, self._y, self._pressed = _MID, _MID, False
        self._reader: Optional[threading.Thread] = None

    def start(self) -> None:
        self._reader = threading.Thread(target=self._read_loop, daemon=True)
        self._reader.start()

    def _read_loop(self) -> None:
        while not self.stop_evt.is_set():
            line = self.stream.readline()
            if not line:
                logger.info("Input closed")
                self.stop_evt.set()
                return
            self.feed(line)

    def feed(self, text: str) -> None:
        """Queue every key in *text*; ``q`` requests shutdown."""
        for ch in text.strip().lower():
            if ch == "q":
                self.stop_evt.set()
                return
            self.keys.put(ch)

    @property
    def quit_requested(self) -> bool:
        return self.stop_evt.is_set()

    def step(self) -> None:
        """Advance playback by one tick."""
        if self._left > 0:
            self._left -= 1
            if self._left > 0:
                return
        while not self._frames:
            try:
                key = self.keys.get_nowait()
            except queue.Empty:
                self._x, self._y, self._pressed = _MID, _MID, False
                return
            self._frames = frames_for_key(key)
        self._x, self._y, self._pressed, self._left = self._frames.pop(0)

    # -------------------- Controls interface --------------------
    def axes(self) -> Tuple[int, int]:
        return (self._x, self._y)

    def button(self) -> bool:
        return self._pressed
