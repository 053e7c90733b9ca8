"""UI-facing game state machine.

Maps screens and joystick input onto the network session.  Only a handful of
transitions matter to the protocol: entering MY_TURN / ENEMY_TURN / OVER
always follows the session's own state, and a full reset is the only way out
of OVER or out of an abandoned session.

Everything runs once per tick from :meth:`Game.tick`; a held button is
tracked as a sub-state so the network keeps ticking while the user decides
between a short press (place) and a long press (rotate).
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, Dict, Optional, Tuple

from . import config as _cfg
from .ai import AIOpponent
from .board import Side
from .events import Category, Event
from .router import EventRouter
from .session import NetSession, NetState
from .transport import Transport
from .ui import ENEMY_ORIGIN, PLAYER_ORIGIN, Colour, Controls, Display, Settings, Sound

logger = logging.getLogger(__name__)


class GameState(enum.Enum):
    RESET = enum.auto()
    MAIN_MENU = enum.auto()
    SETTINGS = enum.auto()
    NEW_GAME = enum.auto()
    PLACING = enum.auto()
    WAIT = enum.auto()
    MY_TURN = enum.auto()
    WAIT_RES = enum.auto()
    ENEMY_TURN = enum.auto()
    OVER = enum.auto()


class GameMode(enum.Enum):
    """Main-menu selection."""

    NONE = enum.auto()
    MULTIPLAYER = enum.auto()
    SINGLEPLAYER = enum.auto()
    SETTINGS_GEAR = enum.auto()


class PressPhase(enum.Enum):
    IDLE = enum.auto()
    AWAITING_RELEASE = enum.auto()  # button down, short vs long press undecided


# UI phases that mirror a network state.
NET_TO_GAME: Dict[NetState, GameState] = {
    NetState.WAIT_READY: GameState.WAIT,
    NetState.MY_TURN: GameState.MY_TURN,
    NetState.WAIT_RES: GameState.WAIT_RES,
    NetState.PEER_TURN: GameState.ENEMY_TURN,
    NetState.GAME_OVER: GameState.OVER,
}

# Settings screen rows.
SETTING_SOUND = 0
SETTING_DIFFICULTY = 1

Step = Tuple[int, int]


class Game:
    """Main-loop owner: one :meth:`tick` per millisecond."""

    def __init__(
        self,
        session: NetSession,
        display: Display,
        sound: Sound,
        controls: Controls,
        *,
        ai: Optional[AIOpponent] = None,
        wire: Optional[Transport] = None,
        settings: Optional[Settings] = None,
    ) -> None:
        self.session = session
        self.board = session.board
        self.display = display
        self.sound = sound
        self.controls = controls
        self.ai = ai
        self.wire = wire
        self.settings = settings if settings is not None else Settings()

        self.state = GameState.RESET
        self.mode = GameMode.NONE

        rows, cols = self.board.rows, self.board.cols
        self.sel_row, self.sel_col = rows // 2, cols // 2
        self.ghost_horizontal = True
        self.settings_row = SETTING_SOUND

        self._next_move = 0  # joystick auto-repeat throttle
        self._latch = False  # button held since last edge
        self._press_phase = PressPhase.IDLE
        self._press_start = 0
        self._invalid_until: Optional[int] = None
        self._over_taps = 0
        self._notice: Optional[str] = None

        self.router = EventRouter(self.board, display, sound, self.settings)
        session.subscribe(self.router)
        session.subscribe(self._on_event)

        self._handlers: Dict[GameState, Callable[[], None]] = {
            GameState.RESET: self._handle_reset,
            GameState.MAIN_MENU: self._handle_main_menu,
            GameState.SETTINGS: self._handle_settings,
            GameState.NEW_GAME: self._handle_new_game,
            GameState.PLACING: self._handle_placing,
            GameState.WAIT: self._handle_passive,
            GameState.MY_TURN: self._handle_my_turn,
            GameState.WAIT_RES: self._handle_passive,
            GameState.ENEMY_TURN: self._handle_passive,
            GameState.OVER: self._handle_over,
        }

    @property
    def now(self) -> int:
        return self.session.ticks

    # -------------------- main loop --------------------
    def tick(self) -> None:
        """Network step first, then exactly one UI step for the current state."""
        self.session.tick()
        self._handlers[self.state]()

    # -------------------- session sync --------------------
    def _on_event(self, ev: Event) -> None:
        if ev.category is Category.STATE:
            mapped = NET_TO_GAME.get(ev.payload["new"])
            if mapped is not None:
                self._enter(mapped)
        elif ev.category is Category.SYSTEM:
            if ev.type in ("peer_timeout", "token_collision"):
                self._notice = "Peer lost - reset" if ev.type == "peer_timeout" else "Token collision - reset"
            if ev.type == "reset" and self.state not in (GameState.RESET, GameState.MAIN_MENU, GameState.SETTINGS):
                self.state = GameState.RESET

    def _enter(self, state: GameState) -> None:
        logger.debug("Game state %s -> %s", self.state.name, state.name)
        self.state = state
        if state is GameState.MY_TURN:
            self._next_move = self.now
            self.display.draw_cursor(self.sel_row, self.sel_col, ENEMY_ORIGIN)
        elif state is GameState.OVER:
            self._over_taps = 0

    # -------------------- input helpers --------------------
    def _button_edge(self) -> bool:
        """True once per press."""
        pressed = self.controls.button()
        if pressed and not self._latch:
            self._latch = True
            return True
        if not pressed:
            self._latch = False
        return False

    def _direction(self) -> Optional[Step]:
        x, y = self.controls.axes()
        if y < _cfg.JOY_MIN_RAW:
            return (-1, 0)
        if y > _cfg.JOY_MAX_RAW:
            return (1, 0)
        if x < _cfg.JOY_MIN_RAW:
            return (0, -1)
        if x > _cfg.JOY_MAX_RAW:
            return (0, 1)
        return None

    def _throttled_direction(self) -> Optional[Step]:
        if self.now < self._next_move:
            return None
        step = self._direction()
        if step is not None:
            self._next_move = self.now + _cfg.JOY_REPEAT_TICKS
        return step

    # -------------------- RESET / MENU / SETTINGS --------------------
    def _handle_reset(self) -> None:
        """Reset the full protocol and board state and show the main menu."""
        self.session.reset()
        self.sel_row, self.sel_col = self.board.rows // 2, self.board.cols // 2
        self.ghost_horizontal = True
        self._press_phase = PressPhase.IDLE
        self._invalid_until = None
        self._over_taps = 0
        self.display.main_menu(self.mode)
        if self._notice:
            self.display.status(self._notice)
            self._notice = None
        self.state = GameState.MAIN_MENU

    def _handle_main_menu(self) -> None:
        step = self._direction()
        mode = self.mode
        if step == (-1, 0) and mode in (GameMode.NONE, GameMode.SINGLEPLAYER):
            mode = GameMode.MULTIPLAYER
        elif step == (1, 0) and mode in (GameMode.NONE, GameMode.MULTIPLAYER):
            mode = GameMode.SINGLEPLAYER
        elif step == (0, 1) and mode is GameMode.SINGLEPLAYER:
            mode = GameMode.SETTINGS_GEAR
        elif step == (0, -1) and mode is GameMode.SETTINGS_GEAR:
            mode = GameMode.SINGLEPLAYER
        if mode is not self.mode:
            self.mode = mode
            self.display.main_menu(mode)

        if self._button_edge():
            if mode in (GameMode.MULTIPLAYER, GameMode.SINGLEPLAYER):
                self.state = GameState.NEW_GAME
            elif mode is GameMode.SETTINGS_GEAR:
                self.settings_row = SETTING_SOUND
                self.display.settings(self.settings, self.settings_row)
                self.state = GameState.SETTINGS

    def _handle_settings(self) -> None:
        step = self._throttled_direction()
        if step == (0, -1):
            self.display.main_menu(self.mode)
            self.state = GameState.MAIN_MENU
            return
        if step in ((-1, 0), (1, 0)):
            self.settings_row = SETTING_DIFFICULTY if self.settings_row == SETTING_SOUND else SETTING_SOUND
            self.display.settings(self.settings, self.settings_row)

        if self._button_edge():
            if self.settings_row == SETTING_SOUND:
                self.settings.sound = not self.settings.sound
            else:
                self.settings.difficulty = self.settings.difficulty.next()
            logger.info("Settings: sound=%s difficulty=%s", self.settings.sound, self.settings.difficulty.rank)
            self.display.settings(self.settings, self.settings_row)

    # -------------------- NEW GAME / PLACING --------------------
    def _handle_new_game(self) -> None:
        if self.mode is GameMode.SINGLEPLAYER:
            if self.ai is None:
                self._unavailable("Versus AI unavailable")
                return
            self.ai.reset()
            self.ai.difficulty = self.settings.difficulty
            self.session.transport = self.ai.transport
        else:
            if self.wire is None:
                self._unavailable("No serial link")
                return
            self.session.transport = self.wire
        self.session.transport.reset()
        self.display.placement(self.board)
        self.display.status("Use stick to place")
        self._ghost(True)
        self.state = GameState.PLACING

    def _unavailable(self, text: str) -> None:
        logger.warning(text)
        self.display.status(text)
        self.state = GameState.MAIN_MENU

    def _current_length(self) -> int:
        return self.board.ship_lengths[self.board.next_ship_index]

    def _clamp_ghost(self) -> None:
        """Keep the whole ghost ship inside the grid."""
        length = self._current_length()
        if self.ghost_horizontal:
            self.sel_col = min(self.sel_col, self.board.cols - length)
        else:
            self.sel_row = min(self.sel_row, self.board.rows - length)

    def _ghost(self, draw: bool, row: Optional[int] = None, col: Optional[int] = None) -> None:
        """Draw (or erase) the placement preview for the current ship."""
        row = self.sel_row if row is None else row
        col = self.sel_col if col is None else col
        length = self._current_length()
        fits = self.board.can_place(row, col, length, self.ghost_horizontal)
        for k in range(length):
            r = row + (0 if self.ghost_horizontal else k)
            c = col + (k if self.ghost_horizontal else 0)
            if not self.board.in_bounds(r, c):
                continue
            if draw:
                colour = Colour.GHOST_OK if fits else Colour.GHOST_BAD
            else:
                colour = Colour.SHIP if self.board.is_occupied(Side.PLAYER, r, c) else Colour.WATER
            self.display.draw_cell(r, c, colour, PLAYER_ORIGIN)

    def _handle_placing(self) -> None:
        if self._invalid_until is not None:
            if self.now < self._invalid_until:
                return
            self._invalid_until = None
            self.display.status("Use stick to place")

        if self._press_phase is PressPhase.AWAITING_RELEASE:
            self._await_release()
            return

        step = self._throttled_direction()
        if step is not None:
            old = (self.sel_row, self.sel_col)
            self.sel_row = min(max(self.sel_row + step[0], 0), self.board.rows - 1)
            self.sel_col = min(max(self.sel_col + step[1], 0), self.board.cols - 1)
            self._clamp_ghost()
            self._ghost(False, *old)
            self._ghost(True)

        if self._button_edge():
            self._press_phase = PressPhase.AWAITING_RELEASE
            self._press_start = self.now

    def _await_release(self) -> None:
        """One step of the short/long press decision; never blocks."""
        held = self.now - self._press_start
        pressed = self.controls.button()
        if pressed and held < _cfg.LONG_PRESS_MAX_TICKS:
            return
        if not pressed:
            self._latch = False
        self._press_phase = PressPhase.IDLE
        if held >= _cfg.LONG_PRESS_TICKS:
            self._rotate()
        else:
            self._place_current()

    def _rotate(self) -> None:
        self._ghost(False)
        self.ghost_horizontal = not self.ghost_horizontal
        self._clamp_ghost()
        self._ghost(True)

    def _place_current(self) -> None:
        idx = self.board.next_ship_index
        length = self._current_length()
        if not self.board.can_place(self.sel_row, self.sel_col, length, self.ghost_horizontal):
            self._ghost(True)
            self.display.status("Invalid placement!")
            self._invalid_until = self.now + _cfg.INVALID_MSG_TICKS
            return

        self._ghost(False)
        ship = self.board.place(idx, self.sel_row, self.sel_col, length, self.ghost_horizontal)
        for r, c in ship.cells():
            self.display.draw_cell(r, c, Colour.SHIP, PLAYER_ORIGIN)
        logger.debug("Placed %s", ship)

        if self.board.fleet_complete:
            # Session transition to WAIT_READY moves us to WAIT.
            self.session.placement_complete()
            self.sel_row, self.sel_col = self.board.rows // 2, self.board.cols // 2
        else:
            self._clamp_ghost()
            self._ghost(True)

    # -------------------- PLAY --------------------
    def _handle_passive(self) -> None:
        # Waiting on the peer; keep the button latch honest.
        self._button_edge()

    def _enemy_colour(self, row: int, col: int) -> Colour:
        if not self.board.is_attacked(Side.ENEMY, row, col):
            return Colour.NAVY
        if self.session.pending == (row, col):
            return Colour.PENDING
        return Colour.HIT if self.board.is_occupied(Side.ENEMY, row, col) else Colour.MISS

    def _handle_my_turn(self) -> None:
        step = self._throttled_direction()
        if step is not None:
            old_r, old_c = self.sel_row, self.sel_col
            self.sel_row = min(max(self.sel_row + step[0], 0), self.board.rows - 1)
            self.sel_col = min(max(self.sel_col + step[1], 0), self.board.cols - 1)
            self.display.draw_cell(old_r, old_c, self._enemy_colour(old_r, old_c), ENEMY_ORIGIN)
            self.display.draw_cursor(self.sel_row, self.sel_col, ENEMY_ORIGIN)

        if self._button_edge():
            if not self.session.fire(self.sel_row, self.sel_col):
                logger.debug("Cannot fire at (%d, %d)", self.sel_row, self.sel_col)

    def _handle_over(self) -> None:
        """Two taps on the game-over screen start over."""
        if self._button_edge():
            self._over_taps += 1
            if self._over_taps >= 2:
                self._over_taps = 0
                self.state = GameState.RESET
