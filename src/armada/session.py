"""Turn/network state machine for one two-player match (core of the game).

The session owns the board, both turn-order tokens, the pending shot and the
retry engine, and talks to the opponent only through a line transport:

Local → peer
-----------
READY <token>      Placement finished. Resent every 500 ticks while waiting,
                   and for 2000 ticks after the turn order is decided.
A <row> <col>      Our shot. Resent every 100 ticks until the matching R.
R <row> <col> H|M  Outcome of the peer's shot. Sent again, unchanged, for
                   every repeat of an A we have already answered.

Peer → local
-----------
The same three lines.  Higher token moves first; both sides compute the
same comparison, so no coordinator is needed.

States
------
IDLE → WAIT_READY → DECIDE → MY_TURN | PEER_TURN
WAIT_READY → PEER_TURN   (peer attacked before its READY reached us)
MY_TURN → WAIT_RES → PEER_TURN | GAME_OVER
PEER_TURN → MY_TURN | GAME_OVER

If the peer does not attack within the timeout while it is their turn, the
session is abandoned and fully reset.  Reset is the only way out of
GAME_OVER.

Everything runs from :meth:`NetSession.tick`, once per millisecond, in a
single cooperative control flow; nothing here blocks.
"""

from __future__ import annotations

import enum
import logging
from typing import Callable, List, Optional, Tuple

from .board import Board, Side
from .events import Category, Event
from .protocol import Attack, Message, Ready, Result, decode, encode
from .retry import RetryEngine
from .transport import Transport

logger = logging.getLogger(__name__)

Coord = Tuple[int, int]


class IllegalTransition(Exception):
    """Raised when the state machine is asked for a transition it does not allow."""


class NetState(enum.Enum):
    IDLE = enum.auto()
    WAIT_READY = enum.auto()
    DECIDE = enum.auto()
    MY_TURN = enum.auto()
    PEER_TURN = enum.auto()
    WAIT_RES = enum.auto()
    GAME_OVER = enum.auto()


# Reset (→ IDLE) is unconditional and deliberately not part of this table.
TRANSITIONS: dict[NetState, frozenset[NetState]] = {
    NetState.IDLE: frozenset({NetState.WAIT_READY}),
    NetState.WAIT_READY: frozenset({NetState.DECIDE, NetState.PEER_TURN}),
    NetState.DECIDE: frozenset({NetState.MY_TURN, NetState.PEER_TURN}),
    NetState.MY_TURN: frozenset({NetState.WAIT_RES}),
    NetState.WAIT_RES: frozenset({NetState.PEER_TURN, NetState.GAME_OVER}),
    NetState.PEER_TURN: frozenset({NetState.MY_TURN, NetState.GAME_OVER}),
    NetState.GAME_OVER: frozenset(),
}


def can_transition(old: NetState, new: NetState) -> bool:
    return new in TRANSITIONS[old]


class NetSession:
    """Protocol endpoint managing a single match over one transport."""

    def __init__(
        self,
        board: Board,
        transport: Transport,
        *,
        retry: Optional[RetryEngine] = None,
    ) -> None:
        self.board = board
        self.transport = transport
        self.retry = retry if retry is not None else RetryEngine()

        self.state = NetState.IDLE
        self.local_token = 0
        self.peer_token = 0
        # The single in-flight shot awaiting a result, if any.
        self.pending: Optional[Coord] = None
        # True/False once the match is decided, None while it runs.
        self.won: Optional[bool] = None

        # Local clock in ticks; never reset, so it also seeds the next token.
        self.ticks = 0

        self._subs: List[Callable[[Event], None]] = []

    # -------------------- event bus --------------------
    def subscribe(self, cb: Callable[[Event], None]) -> None:
        """Allow external components (router, game state machine) to receive events."""
        self._subs.append(cb)

    def _emit(self, ev: Event) -> None:
        for cb in tuple(self._subs):
            try:
                cb(ev)
            except Exception:  # noqa: BLE001
                # A misbehaving subscriber must not break the protocol tick
                logger.exception("Event subscriber failed for %s", ev)

    # -------------------- transitions --------------------
    def _move_to(self, new: NetState) -> None:
        old = self.state
        if not can_transition(old, new):
            raise IllegalTransition(f"{old.name} -> {new.name}")
        self.state = new
        if new is NetState.PEER_TURN:
            self.retry.arm_peer_wait()
        logger.debug("Net state %s -> %s", old.name, new.name)
        self._emit(Event(Category.STATE, "transition", {"old": old, "new": new}))

    # -------------------- transmit hooks --------------------
    def _send(self, msg: Message) -> None:
        self.transport.send_line(encode(msg))

    def tx_ready(self) -> None:
        self._send(Ready(self.local_token))

    def tx_attack(self, row: int, col: int) -> None:
        self._send(Attack(row, col))

    def tx_result(self, row: int, col: int, hit: bool) -> None:
        self._send(Result(row, col, hit))

    # -------------------- local actions --------------------
    def placement_complete(self, token: Optional[int] = None) -> None:
        """Announce that our fleet is placed and start looking for the peer."""
        if self.state is not NetState.IDLE:
            logger.debug("placement_complete() ignored in %s", self.state.name)
            return
        self.local_token = (self.ticks if token is None else token) & 0xFFFF
        self.peer_token = 0
        self.retry.reset()
        logger.info("Fleet placed – announcing token %d", self.local_token)
        self.tx_ready()
        self.retry.arm_ready()
        self._move_to(NetState.WAIT_READY)

    def fire(self, row: int, col: int) -> bool:
        """Shoot at (*row*, *col*) on the enemy board.

        Returns ``False`` without side effects if it is not our turn or the
        cell was already fired at.  The attack bit is set before sending so a
        retransmitted attack is never counted twice.
        """
        if self.state is not NetState.MY_TURN:
            return False
        if not self.board.in_bounds(row, col):
            return False
        if not self.board.mark_attacked(Side.ENEMY, row, col):
            return False
        self.pending = (row, col)
        self._emit(Event(Category.TURN, "fired", {"row": row, "col": col}))
        self.tx_attack(row, col)
        self.retry.arm_attack()
        self._move_to(NetState.WAIT_RES)
        return True

    def decide(self) -> None:
        """Fix the turn order from the two tokens."""
        if self.state is not NetState.DECIDE:
            return
        if self.local_token == self.peer_token:
            logger.warning("Token collision (%d) – resetting session", self.local_token)
            self._emit(Event(Category.SYSTEM, "token_collision", {"token": self.local_token}))
            self.reset()
            return
        i_start = self.local_token > self.peer_token
        logger.info(
            "Turn order decided: local %d vs peer %d – %s first",
            self.local_token,
            self.peer_token,
            "we go" if i_start else "peer goes",
        )
        self._start_play(i_start)

    def _start_play(self, i_start: bool) -> None:
        self.board.arm_enemy()
        self.retry.start_post_ready()
        self._emit(
            Event(
                Category.TURN,
                "decided",
                {"my_turn": i_start, "local_token": self.local_token, "peer_token": self.peer_token},
            )
        )
        self._move_to(NetState.MY_TURN if i_start else NetState.PEER_TURN)

    # -------------------- incoming handlers --------------------
    def on_ready(self, token: int) -> None:
        if self.state is not NetState.WAIT_READY:
            logger.debug("Ignoring READY %d in %s", token, self.state.name)
            return
        self.peer_token = token
        self._move_to(NetState.DECIDE)
        self.decide()

    def on_attack(self, row: int, col: int) -> None:
        if not self.board.in_bounds(row, col):
            return
        if self.state is NetState.IDLE:
            return
        hit = self.board.is_occupied(Side.PLAYER, row, col)

        if self.board.is_attacked(Side.PLAYER, row, col):
            # Peer missed our earlier reply – confirm again, change nothing.
            logger.debug("Repeat attack at (%d, %d) – reconfirming", row, col)
            self.tx_result(row, col, hit)
            return

        if self.state is NetState.WAIT_READY:
            # Every READY from the peer was lost, yet it already moved first.
            logger.info("Attack before READY at (%d, %d) – peer goes first", row, col)
            self._start_play(False)

        if self.state is not NetState.PEER_TURN:
            logger.debug("Ignoring attack at (%d, %d) in %s", row, col, self.state.name)
            return

        self.board.mark_attacked(Side.PLAYER, row, col)
        remaining = self.board.record_hit(Side.PLAYER) if hit else self.board.remaining[Side.PLAYER]
        self.tx_result(row, col, hit)
        self._emit(Event(Category.TURN, "incoming", {"row": row, "col": col, "hit": hit, "remaining": remaining}))

        if hit and remaining == 0:
            self._finish(won=False)
        else:
            self._move_to(NetState.MY_TURN)

    def on_result(self, row: int, col: int, hit: bool) -> None:
        if self.state is not NetState.WAIT_RES or self.pending != (row, col):
            logger.debug("Ignoring stale result for (%d, %d) in %s", row, col, self.state.name)
            return
        self.pending = None
        if hit:
            self.board.confirm_hit(row, col)
        remaining = self.board.remaining[Side.ENEMY]
        self._emit(Event(Category.TURN, "result", {"row": row, "col": col, "hit": hit, "remaining": remaining}))

        if hit and remaining == 0:
            self._finish(won=True)
        else:
            self._move_to(NetState.PEER_TURN)

    def _finish(self, *, won: bool) -> None:
        self.won = won
        logger.info("Game over – %s", "we won" if won else "we lost")
        self._move_to(NetState.GAME_OVER)
        self._emit(Event(Category.TURN, "game_over", {"won": won}))

    # -------------------- dispatch --------------------
    def handle_line(self, line: str) -> None:
        """Decode one complete line and dispatch it; malformed lines are dropped."""
        msg = decode(line, self.board.rows, self.board.cols)
        if isinstance(msg, Ready):
            self.on_ready(msg.token)
        elif isinstance(msg, Attack):
            self.on_attack(msg.row, msg.col)
        elif isinstance(msg, Result):
            self.on_result(msg.row, msg.col, msg.hit)

    # Entry point for spoofed traffic; identical to wire input by construction.
    inject_line = handle_line

    def tick(self) -> None:
        """Run one 1 ms protocol step.

        1. drain and dispatch every line the transport has for this tick
        2. retransmit READY / ATTACK if due
        3. abandon the session if the peer has gone silent
        """
        for line in self.transport.poll_lines():
            self.handle_line(line)

        due = self.retry.evaluate(
            waiting_ready=self.state is NetState.WAIT_READY,
            waiting_result=self.state is NetState.WAIT_RES,
            peer_turn=self.state is NetState.PEER_TURN,
        )
        if due.resend_ready:
            logger.debug("Resending READY %d", self.local_token)
            self.tx_ready()
        if due.resend_attack and self.pending is not None:
            logger.debug("Resending attack at %s", self.pending)
            self.tx_attack(*self.pending)
        if due.peer_timeout:
            self._peer_lost()

        self.ticks += 1

    def _peer_lost(self) -> None:
        logger.warning("No attack from peer for %d ticks – abandoning session", self.retry.peer_timeout)
        self._emit(Event(Category.SYSTEM, "peer_timeout", {"ticks": self.retry.peer_timeout}))
        self.reset()

    def reset(self) -> None:
        """Unconditionally clear board, tokens, retry state and queued traffic."""
        old = self.state
        self.board.reset()
        self.transport.reset()
        self.retry.reset()
        self.local_token = 0
        self.peer_token = 0
        self.pending = None
        self.won = None
        self.state = NetState.IDLE
        logger.debug("Session reset from %s", old.name)
        self._emit(Event(Category.SYSTEM, "reset", {"old": old}))
