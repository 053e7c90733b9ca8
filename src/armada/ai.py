from __future__ import annotations

import enum
import logging
from typing import Optional, Tuple

from . import config as _cfg
from .board import BitGrid, Board, Side, can_place
from .prng import Lfsr16, RandomSource
from .protocol import Attack, Ready, Result, decode, encode
from .transport import LoopbackTransport

logger = logging.getLogger(__name__)

Coord = Tuple[int, int]


class Difficulty(enum.Enum):
    """AI strength: (rank shown on the settings screen, probability of aiming at a ship)."""

    EASY = ("Lieutenant", 0.10)
    MEDIUM = ("Captain", 0.20)
    HARD = ("Admiral", 0.50)

    @property
    def rank(self) -> str:
        return self.value[0]

    @property
    def hit_probability(self) -> float:
        return self.value[1]

    def next(self) -> "Difficulty":
        """Cycle Lieutenant → Captain → Admiral → Lieutenant."""
        members = list(Difficulty)
        return members[(members.index(self) + 1) % len(members)]

    @classmethod
    def from_name(cls, name: str) -> "Difficulty":
        key = name.strip().upper()
        for member in cls:
            if key in (member.name, member.rank.upper()):
                return member
        raise ValueError(f"Unknown difficulty: {name!r}")


class AIOpponent:
    """
    Single-player peer that speaks the line protocol through a loopback queue.

    Everything the local session transmits arrives in :meth:`handle_outgoing`
    and is answered synchronously by queueing spoofed lines; the session then
    receives them one per tick through the same decode path as wire traffic.

    1. READY: place our own fleet (once per game) and answer with a fixed token.
    2. A:     report H/M from our fleet, then pick and queue a counter-attack.
    3. R:     nothing to do – we already know what we hit.

    Targeting peeks at the player's board: with the difficulty's probability
    the shot goes to a random unhit ship cell, otherwise to a random untouched
    ocean cell.
    """

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #
    def __init__(
        self,
        player_board: Board,
        rng: Optional[RandomSource] = None,
        difficulty: Difficulty = Difficulty.MEDIUM,
        *,
        peer_token: int = _cfg.AI_PEER_TOKEN,
        queue_capacity: int = _cfg.AI_QUEUE_CAPACITY,
    ) -> None:
        self.player_board = player_board
        self.rng: RandomSource = rng if rng is not None else Lfsr16()
        self.difficulty = difficulty
        self.peer_token = peer_token
        self.transport = LoopbackTransport(queue_capacity, on_send=self.handle_outgoing)

        rows, cols = player_board.rows, player_board.cols
        self.occupied = BitGrid(rows, cols)  # our fleet
        self.attacked = BitGrid(rows, cols)  # cells the player has fired at
        self.fleet_placed = False

        # Running counters: how many player squares of each kind we have shot.
        self.ship_squares_attacked = 0
        self.ocean_squares_attacked = 0

    @property
    def hit_probability(self) -> float:
        return self.difficulty.hit_probability

    def reset(self) -> None:
        """Forget the previous game (called before every new single-player game)."""
        self.transport.reset()
        self.occupied.clear()
        self.attacked.clear()
        self.fleet_placed = False
        self.ship_squares_attacked = 0
        self.ocean_squares_attacked = 0

    # ------------------------------------------------------------------ #
    # Protocol side
    # ------------------------------------------------------------------ #
    def handle_outgoing(self, line: str) -> None:
        """React to one line the local session transmitted."""
        msg = decode(line, self.player_board.rows, self.player_board.cols)
        if isinstance(msg, Ready):
            self.on_tx_ready(msg.token)
        elif isinstance(msg, Attack):
            self.on_tx_attack(msg.row, msg.col)
        elif isinstance(msg, Result):
            self.on_tx_result(msg.row, msg.col, msg.hit)

    def on_tx_ready(self, self_token: int) -> None:
        if not self.fleet_placed:
            self.place_fleet()
        self.transport.push(encode(Ready(self.peer_token)))

    def on_tx_attack(self, row: int, col: int) -> None:
        hit = self.occupied.get(row, col)
        first_time = not self.attacked.set(row, col)
        self.transport.push(encode(Result(row, col, hit)))
        if not first_time:
            # Retransmitted attack: the counter-attack is already queued
            return
        target = self.choose_target()
        if target is None:
            logger.debug("No cells left to attack")
            return
        self.transport.push(encode(Attack(*target)))

    def on_tx_result(self, row: int, col: int, hit: bool) -> None:
        # Targeting reads the player's board directly.
        pass

    # ------------------------------------------------------------------ #
    # Fleet placement
    # ------------------------------------------------------------------ #
    def place_fleet(self) -> None:
        """Place every ship at a uniformly random valid position, in fleet order."""
        self.occupied.clear()
        for length in self.player_board.ship_lengths:
            candidates = [
                (r, c, horizontal)
                for horizontal in (True, False)
                for r in range(self.occupied.rows)
                for c in range(self.occupied.cols)
                if can_place(self.occupied, r, c, length, horizontal)
            ]
            self.rng.shuffle(candidates)
            row, col, horizontal = candidates[0]
            for k in range(length):
                self.occupied.set(row + (0 if horizontal else k), col + (k if horizontal else 0))
        self.fleet_placed = True
        logger.debug("AI fleet placed (%d cells)", self.occupied.count())

    # ------------------------------------------------------------------ #
    # Target selection
    # ------------------------------------------------------------------ #
    def ship_pool(self) -> int:
        """Player ship cells not yet attacked."""
        return self.player_board.fleet_cells - self.ship_squares_attacked

    def ocean_pool(self) -> int:
        """Player ocean cells not yet attacked."""
        board = self.player_board
        return board.rows * board.cols - board.fleet_cells - self.ocean_squares_attacked

    def choose_target(self) -> Optional[Coord]:
        """Pick the next player cell to attack, or ``None`` if none are left.

        With probability ``hit_probability`` aim at a ship cell, otherwise at
        an ocean cell.  An exhausted ocean pool always falls back to ships
        (and vice versa) so the AI can never stall.
        """
        ships, ocean = self.ship_pool(), self.ocean_pool()
        if ships <= 0 and ocean <= 0:
            return None
        want_ship = self.rng.random() < self.hit_probability
        if ocean <= 0:
            want_ship = True
        elif ships <= 0:
            want_ship = False

        pool = ships if want_ship else ocean
        target = self._nth_candidate(self.rng.randrange(pool), want_ship)
        if target is None:
            return None
        if want_ship:
            self.ship_squares_attacked += 1
        else:
            self.ocean_squares_attacked += 1
        return target

    def _nth_candidate(self, index: int, ship: bool) -> Optional[Coord]:
        """Scan row-major, counting unattacked cells of the wanted kind up to *index*."""
        board = self.player_board
        seen = 0
        for r in range(board.rows):
            for c in range(board.cols):
                if board.is_attacked(Side.PLAYER, r, c):
                    continue
                if board.is_occupied(Side.PLAYER, r, c) != ship:
                    continue
                if seen == index:
                    return (r, c)
                seen += 1
        return None
