"""Line protocol codec.

Three single-line ASCII messages, case-sensitive, space-separated:

READY <token>        Sender finished placement; token arbitrates turn order.
A <row> <col>        Sender attacks (row, col) on the receiver's board.
R <row> <col> <H|M>  Sender reports the outcome of an attack it received.

Decoding is best-effort: anything malformed is dropped by :func:`decode`
without touching game state.  There is no checksum or sequence number;
idempotent handling of A/R is the only defence against duplicates.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional, Union

from . import config as _cfg

logger = logging.getLogger(__name__)

TOKEN_MAX = 0xFFFF
U8_MAX = 0xFF


class ProtocolError(Exception):
    """Raised when a line cannot be parsed as a protocol message."""


@dataclass(frozen=True)
class Ready:
    token: int


@dataclass(frozen=True)
class Attack:
    row: int
    col: int


@dataclass(frozen=True)
class Result:
    row: int
    col: int
    hit: bool


Message = Union[Ready, Attack, Result]


def encode(msg: Message) -> str:
    """Format *msg* as a protocol line (without terminator)."""
    if isinstance(msg, Ready):
        return f"READY {msg.token}"
    if isinstance(msg, Attack):
        return f"A {msg.row} {msg.col}"
    if isinstance(msg, Result):
        return f"R {msg.row} {msg.col} {'H' if msg.hit else 'M'}"
    raise TypeError(f"Cannot encode {msg!r}")


def _number(field: str, limit: int, what: str) -> int:
    if not field.isascii() or not field.isdigit():
        raise ProtocolError(f"{what} is not a decimal number: {field!r}")
    value = int(field)
    if value > limit:
        raise ProtocolError(f"{what} out of range: {value}")
    return value


def _coord(parts: list[str], rows: int, cols: int) -> tuple[int, int]:
    row = _number(parts[1], U8_MAX, "row")
    col = _number(parts[2], U8_MAX, "col")
    if row >= rows or col >= cols:
        raise ProtocolError(f"cell ({row}, {col}) outside {rows}x{cols} board")
    return row, col


def parse_message(line: str, rows: int = _cfg.GRID_ROWS, cols: int = _cfg.GRID_COLS) -> Message:
    if line is None:
        raise ProtocolError("No line to parse")
    parts = line.strip().split(" ")
    verb = parts[0]
    if verb == "READY":
        if len(parts) != 2:
            raise ProtocolError("READY requires exactly one token")
        return Ready(token=_number(parts[1], TOKEN_MAX, "token"))
    elif verb == "A":
        if len(parts) != 3:
            raise ProtocolError("A requires row and col")
        row, col = _coord(parts, rows, cols)
        return Attack(row=row, col=col)
    elif verb == "R":
        if len(parts) != 4:
            raise ProtocolError("R requires row, col and outcome")
        row, col = _coord(parts, rows, cols)
        outcome = parts[3]
        if outcome not in ("H", "M"):
            raise ProtocolError(f"Unknown outcome: {outcome!r}")
        return Result(row=row, col=col, hit=outcome == "H")
    else:
        raise ProtocolError(f"Unknown message: {line.strip()!r}")


def decode(line: str, rows: int = _cfg.GRID_ROWS, cols: int = _cfg.GRID_COLS) -> Optional[Message]:
    """Parse *line*, returning ``None`` (and logging) if it is malformed."""
    try:
        return parse_message(line, rows, cols)
    except ProtocolError as exc:
        logger.debug("Dropping line %r: %s", line, exc)
        return None
