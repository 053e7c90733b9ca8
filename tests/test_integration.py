"""End-to-end matches: two sessions over a fake null-modem, and a session versus the AI."""

from __future__ import annotations

import random
from typing import Iterator, Optional, Tuple

import pytest
from conftest import FakeSerial, link, place_fleet

from armada.ai import AIOpponent, Difficulty
from armada.board import Board, Side
from armada.session import NetSession, NetState
from armada.transport import WireTransport

ROW_MAJOR = [(r, c) for r in range(10) for c in range(10)]


class LossySerial(FakeSerial):
    """Drops every *nth* write, whole line at a time."""

    def __init__(self, every: int) -> None:
        super().__init__()
        self.every = every
        self.writes = 0
        self.lost = 0

    def write(self, data: bytes) -> int:
        self.writes += 1
        if self.writes % self.every == 0:
            self.lost += 1
            return len(data)
        return super().write(data)


def _next_target(session: NetSession) -> Optional[Tuple[int, int]]:
    for r, c in ROW_MAJOR:
        if not session.board.is_attacked(Side.ENEMY, r, c):
            return r, c
    return None


def _play(*sessions: NetSession, max_ticks: int = 50000) -> Iterator[int]:
    """Tick every session, firing row-major whenever one has the turn."""
    for t in range(max_ticks):
        for s in sessions:
            if s.state is NetState.MY_TURN:
                target = _next_target(s)
                if target is not None:
                    s.fire(*target)
        for s in sessions:
            s.tick()
        yield t


def _linked(port_a: FakeSerial, port_b: FakeSerial) -> Tuple[NetSession, NetSession]:
    link(port_a, port_b)
    board_a, board_b = Board(), Board()
    place_fleet(board_a)
    place_fleet(board_b)
    return NetSession(board_a, WireTransport(port_a)), NetSession(board_b, WireTransport(port_b))


@pytest.mark.timeout(30)
def test_full_match_over_serial():
    a, b = _linked(FakeSerial(), FakeSerial())
    a.placement_complete(token=500)
    b.placement_complete(token=300)
    for _ in _play(a, b):
        if a.state is NetState.GAME_OVER and b.state is NetState.GAME_OVER:
            break

    # Identical fleets and shot order: the first mover sinks everything first
    assert a.won is True
    assert b.won is False
    assert a.board.remaining[Side.ENEMY] == 0
    assert b.board.remaining[Side.PLAYER] == 0
    assert a.board.attacked[Side.ENEMY].count() == 82
    assert b.board.attacked[Side.ENEMY].count() == 81


@pytest.mark.timeout(60)
def test_full_match_survives_lost_lines():
    port_a, port_b = LossySerial(every=5), LossySerial(every=7)
    a, b = _linked(port_a, port_b)
    a.placement_complete(token=500)
    b.placement_complete(token=300)
    for _ in _play(a, b, max_ticks=200000):
        if a.state is NetState.GAME_OVER and b.state is NetState.GAME_OVER:
            break

    assert port_a.lost and port_b.lost
    assert a.won is True
    assert b.won is False
    # Every shot was counted exactly once despite retransmissions
    assert b.board.attacked[Side.PLAYER].count() == 82
    assert b.board.remaining[Side.PLAYER] == 0


@pytest.mark.timeout(30)
@pytest.mark.parametrize("difficulty", list(Difficulty))
def test_full_match_against_ai(difficulty):
    board = Board()
    place_fleet(board)
    ai = AIOpponent(board, random.Random(11), difficulty)
    session = NetSession(board, ai.transport)
    incoming = []
    session.subscribe(lambda ev: incoming.append(ev) if ev.type == "incoming" else None)

    session.placement_complete(token=500)
    for _ in _play(session, max_ticks=20000):
        if session.state is NetState.GAME_OVER:
            break

    assert session.state is NetState.GAME_OVER
    assert ai.fleet_placed
    # The AI never fires at the same cell twice
    assert len(incoming) == board.attacked[Side.PLAYER].count()
    if session.won:
        assert board.remaining[Side.ENEMY] == 0
    else:
        assert board.remaining[Side.PLAYER] == 0
