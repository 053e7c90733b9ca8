"""Lightweight event model used by NetSession to decouple game logic from output.

The session emits strongly-typed events; the router translates them into
redraw, status-line and sound calls and the game state machine uses them to
keep the UI phase in step with the network state, without either side
parsing free-text strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Dict


class Category(Enum):
    """High-level event categories."""

    STATE = auto()  # network state transitions
    TURN = auto()  # per-shot lifecycle (fired, incoming, result, game over)
    SYSTEM = auto()  # reset / peer timeout / token collision


@dataclass(slots=True)
class Event:
    """Event emitted by NetSession."""

    category: Category
    type: str  # finer-grained identifier, e.g. "fired", "incoming", "result"
    payload: Dict[str, Any] = field(default_factory=dict)
