import logging
import random
from typing import Callable, List, Tuple

import pytest

from armada.board import Board
from armada.session import NetSession
from armada.transport import WireTransport

# Keep test output readable; individual tests opt into caplog when needed
logging.basicConfig(level=logging.WARNING)

STANDARD_FLEET = [
    # (row, col, length, horizontal) -- one ship per row, left-aligned
    (0, 0, 5, True),
    (2, 0, 4, True),
    (4, 0, 3, True),
    (6, 0, 3, True),
    (8, 0, 2, True),
]


class FakeSerial:
    """In-memory stand-in for a non-blocking pyserial port."""

    def __init__(self) -> None:
        self.rx = bytearray()
        self.tx = bytearray()
        self.peer: "FakeSerial | None" = None

    @property
    def in_waiting(self) -> int:
        return len(self.rx)

    def read(self, size: int = 1) -> bytes:
        data = bytes(self.rx[:size])
        del self.rx[:size]
        return data

    def write(self, data: bytes) -> int:
        self.tx += data
        if self.peer is not None:
            self.peer.rx += data
        return len(data)

    def feed(self, data: bytes) -> None:
        self.rx += data

    def sent_lines(self) -> List[str]:
        return [line for line in self.tx.decode("ascii").split("\r\n") if line]


def link(a: FakeSerial, b: FakeSerial) -> None:
    """Cross-connect two fake ports like a null-modem cable."""
    a.peer = b
    b.peer = a


def place_fleet(board: Board, fleet=STANDARD_FLEET) -> None:
    for idx, (r, c, length, horizontal) in enumerate(fleet):
        board.place(idx, r, c, length, horizontal)


class RecordingDisplay:
    def __init__(self) -> None:
        self.calls: List[Tuple] = []

    def __getattr__(self, name: str) -> Callable:
        def _record(*args):
            self.calls.append((name, *args))

        return _record

    def named(self, name: str) -> List[Tuple]:
        return [c for c in self.calls if c[0] == name]

    @property
    def statuses(self) -> List[str]:
        return [c[1] for c in self.named("status")]


class RecordingSound(RecordingDisplay):
    pass


class ScriptedControls:
    """Joystick whose axes and button are set directly by the test."""

    def __init__(self) -> None:
        self.x = 512
        self.y = 512
        self.pressed = False

    def axes(self) -> Tuple[int, int]:
        return (self.x, self.y)

    def button(self) -> bool:
        return self.pressed

    def centre(self) -> None:
        self.x = self.y = 512


@pytest.fixture
def rng() -> random.Random:
    return random.Random(1234)


@pytest.fixture
def board() -> Board:
    return Board()


@pytest.fixture
def serial_port() -> FakeSerial:
    return FakeSerial()


@pytest.fixture
def wire_session(board: Board, serial_port: FakeSerial) -> NetSession:
    return NetSession(board, WireTransport(serial_port))


@pytest.fixture
def linked_sessions() -> Tuple[NetSession, NetSession, FakeSerial, FakeSerial]:
    """Two sessions joined by cross-linked fake serial ports, fleets placed."""
    port_a, port_b = FakeSerial(), FakeSerial()
    link(port_a, port_b)
    board_a, board_b = Board(), Board()
    place_fleet(board_a)
    place_fleet(board_b)
    return NetSession(board_a, WireTransport(port_a)), NetSession(board_b, WireTransport(port_b)), port_a, port_b


@pytest.fixture
def display() -> RecordingDisplay:
    return RecordingDisplay()


@pytest.fixture
def sound() -> RecordingSound:
    return RecordingSound()


@pytest.fixture
def controls() -> ScriptedControls:
    return ScriptedControls()
