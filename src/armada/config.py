"""Central configuration for runtime-tunable parameters.

All timing constants are expressed in *ticks* (one tick is one pass of the
cooperative main loop, nominally 1 ms).  Most values can be overridden via
environment variables so that the game runs at firmware cadence by default,
while the automated test-suite or a slow serial link can stretch specific
timers if necessary.
"""

from __future__ import annotations

import os


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "on", "yes", "true"}


# ===========================================================================
# Board Geometry
# ===========================================================================
# ARMADA_GRID_ROWS / ARMADA_GRID_COLS: size of each board.
#   Defaults to 10x10. Coordinates on the wire are 0-based row/col indices.
#   Example: export ARMADA_GRID_ROWS=8
GRID_ROWS: int = int(os.getenv("ARMADA_GRID_ROWS", "10"))
GRID_COLS: int = int(os.getenv("ARMADA_GRID_COLS", "10"))

# Standard fleet: placed in this order, one ship per index.
SHIP_LENGTHS: tuple[int, ...] = (5, 4, 3, 3, 2)


# ===========================================================================
# Serial Link
# ===========================================================================
# ARMADA_PORT: serial device (or pyserial URL such as "loop://") used in
#   multiplayer mode. Defaults to /dev/ttyUSB0.
#   Example: export ARMADA_PORT=COM3
DEFAULT_SERIAL_PORT: str = os.getenv("ARMADA_PORT", "/dev/ttyUSB0")

# ARMADA_BAUD: serial baud rate, 8N1. Both boards must agree.
BAUD_RATE: int = int(os.getenv("ARMADA_BAUD", "9600"))

# ARMADA_RX_MAX: receive line buffer in bytes, terminator included.
#   Longer lines are truncated (excess characters dropped).
RX_MAX: int = int(os.getenv("ARMADA_RX_MAX", "32"))


# ===========================================================================
# Protocol Timing (ticks)
# ===========================================================================
# ARMADA_TICK: wall-clock seconds per tick for the CLI main loop.
TICK_SECONDS: float = float(os.getenv("ARMADA_TICK", "0.001"))

# ARMADA_READY_RESEND: READY retransmission interval while waiting for peer.
READY_RESEND_TICKS: int = int(os.getenv("ARMADA_READY_RESEND", "500"))

# ARMADA_ATTACK_RESEND: ATTACK retransmission interval while awaiting a result.
ATTACK_RESEND_TICKS: int = int(os.getenv("ARMADA_ATTACK_RESEND", "100"))

# ARMADA_POST_READY: how long READY keeps flowing after turn order is decided,
#   for a peer that missed our first READY.
POST_READY_TICKS: int = int(os.getenv("ARMADA_POST_READY", "2000"))

# ARMADA_PEER_TIMEOUT: abandon the session if the peer does not attack
#   within this many ticks of its turn starting (2 minutes at 1 ms/tick).
PEER_TIMEOUT_TICKS: int = int(os.getenv("ARMADA_PEER_TIMEOUT", "120000"))


# ===========================================================================
# Single-player (AI loopback)
# ===========================================================================
# Lines the AI may have queued at once; newer lines are dropped when full.
AI_QUEUE_CAPACITY: int = 4

# Fixed token the AI announces in its READY line.
AI_PEER_TOKEN: int = 1

# ARMADA_DIFFICULTY: easy | medium | hard (Lieutenant | Captain | Admiral).
DEFAULT_DIFFICULTY: str = os.getenv("ARMADA_DIFFICULTY", "medium")


# ===========================================================================
# Input Handling (ticks / raw ADC units)
# ===========================================================================
JOY_CENTER_RAW: int = 512
JOY_DEADZONE_RAW: int = 40
JOY_MIN_RAW: int = JOY_CENTER_RAW - JOY_DEADZONE_RAW
JOY_MAX_RAW: int = JOY_CENTER_RAW + JOY_DEADZONE_RAW
JOY_REPEAT_TICKS: int = 150

# Press held at least this long rotates the ghost ship instead of placing it.
LONG_PRESS_TICKS: int = 500
# A press still held after this long is resolved as a long press.
LONG_PRESS_MAX_TICKS: int = 1000

# How long "Invalid placement!" stays on the status line.
INVALID_MSG_TICKS: int = 500


# ===========================================================================
# Debugging and Sound
# ===========================================================================
# ARMADA_DEBUG: If "1", enables detailed debug logging across modules.
#   Example: export ARMADA_DEBUG=1
DEBUG: bool = _env_flag("ARMADA_DEBUG", "0")

# ARMADA_SOUNDS: initial state of the sound toggle on the settings screen.
SOUNDS_ENABLED: bool = _env_flag("ARMADA_SOUNDS", "1")
