"""Translate NetSession events into display and sound calls.

The router lives *outside* NetSession so that all presentation rules are
declared in a single place and the protocol core never draws anything.  It is
also straight-forward to unit-test by feeding synthetic Event objects.
"""

from __future__ import annotations

import logging

from .board import Board
from .events import Category, Event
from .session import NetState
from .ui import ENEMY_ORIGIN, PLAYER_ORIGIN, Colour, Display, Settings, Sound

logger = logging.getLogger(__name__)

STATUS_BY_STATE = {
    NetState.WAIT_READY: "Searching peer...",
    NetState.MY_TURN: "Your turn",
    NetState.PEER_TURN: "Enemy turn",
    NetState.WAIT_RES: "Waiting for result...",
}


class EventRouter:
    """Session-scoped helper that converts `Event` → collaborator calls."""

    def __init__(self, board: Board, display: Display, sound: Sound, settings: Settings) -> None:
        self.board = board
        self.display = display
        self.sound = sound
        self.settings = settings

    # ------------------------------------------------------------------
    # Public dispatch entry
    # ------------------------------------------------------------------
    def __call__(self, ev: Event) -> None:  # NetSession calls router(event)
        try:
            self.dispatch(ev)
        except Exception:  # noqa: BLE001
            logger.exception("Event routing failed for %s", ev)

    # ------------------------------------------------------------------
    # Internal dispatch
    # ------------------------------------------------------------------
    def dispatch(self, ev: Event) -> None:
        cat = ev.category
        if cat is Category.STATE:
            self._handle_state(ev)
        elif cat is Category.TURN:
            self._handle_turn(ev)
        elif cat is Category.SYSTEM:
            self._handle_system(ev)
        else:  # pragma: no cover – unknown category
            logger.debug("Ignoring event %s", ev)

    # ------------------------------------------------------------------
    # Category handlers
    # ------------------------------------------------------------------
    def _handle_state(self, ev: Event) -> None:
        text = STATUS_BY_STATE.get(ev.payload["new"])
        if text:
            self.display.status(text)

    def _handle_turn(self, ev: Event) -> None:
        t = ev.type
        p = ev.payload
        if t == "decided":
            self.display.play_screen(self.board)
        elif t == "fired":
            self.display.draw_cell(p["row"], p["col"], Colour.PENDING, ENEMY_ORIGIN)
        elif t == "incoming":
            self.display.draw_cell(p["row"], p["col"], Colour.HIT if p["hit"] else Colour.MISS, PLAYER_ORIGIN)
            if self.settings.sound:
                self.sound.enemy_attack(p["hit"])
        elif t == "result":
            self.display.draw_cell(p["row"], p["col"], Colour.HIT if p["hit"] else Colour.MISS, ENEMY_ORIGIN)
            if self.settings.sound:
                self.sound.attack(p["hit"])
        elif t == "game_over":
            won = p["won"]
            self.display.end_screen(won)
            self.display.status("You win! - tap twice" if won else "You lose - tap twice")
            if self.settings.sound:
                if won:
                    self.sound.win()
                else:
                    self.sound.lose()
        else:
            logger.debug("Unhandled TURN event: %s", ev)

    def _handle_system(self, ev: Event) -> None:
        if ev.type == "peer_timeout":
            self.display.status("Peer lost - reset")
        elif ev.type == "token_collision":
            self.display.status("Token collision - reset")
