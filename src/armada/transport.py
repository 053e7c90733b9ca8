# transport.py
"""
Interchangeable line transports behind one contract
–––––––––––––––––––––––––––––––––––––––––––––––––––
• send_line()  – transmit one protocol line
• poll_lines() – lines to decode and dispatch during this tick
• reset()      – forget anything half-received or queued

WireTransport assembles lines from a serial byte stream; LoopbackTransport is
the bounded queue the AI opponent feeds.  Both are lossy on overflow and rely
on the retry engine to recover.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Deque, Optional, Protocol

import serial
from typing_extensions import Literal

from . import config as _cfg

logger = logging.getLogger(__name__)


class SerialPort(Protocol):
    """Subset of :class:`serial.Serial` used by :class:`WireTransport`."""

    @property
    def in_waiting(self) -> int: ...

    def read(self, size: int = 1) -> bytes: ...

    def write(self, data: bytes) -> Optional[int]: ...


def open_serial(url: str = _cfg.DEFAULT_SERIAL_PORT, baud: int = _cfg.BAUD_RATE) -> serial.SerialBase:
    """Open *url* non-blocking, 8N1. Accepts device paths and pyserial URLs."""
    logger.info("Opening serial port %s at %d baud", url, baud)
    return serial.serial_for_url(url, baud, timeout=0)


class Transport:
    """Base class: the state machine only ever talks to this contract."""

    def send_line(self, line: str) -> None:
        raise NotImplementedError

    def poll_lines(self) -> list[str]:
        raise NotImplementedError

    def reset(self) -> None:
        pass


class LineAssembler:
    """Accumulate bytes into lines in a fixed-capacity buffer.

    *capacity* counts the terminator, so at most ``capacity - 1`` characters
    of a line are kept; anything past that is dropped without signalling.
    """

    def __init__(self, capacity: int = _cfg.RX_MAX) -> None:
        self.capacity = capacity
        self._buf = bytearray()
        self.dropped = 0

    def feed(self, data: bytes) -> list[str]:
        lines: list[str] = []
        for byte in data:
            if byte in (0x0A, 0x0D):  # \n or \r
                if self._buf:
                    lines.append(self._buf.decode("ascii", errors="replace"))
                    self._buf.clear()
            elif len(self._buf) < self.capacity - 1:
                self._buf.append(byte)
            else:
                self.dropped += 1
                logger.debug("RX buffer full – dropped byte 0x%02x", byte)
        return lines

    def reset(self) -> None:
        self._buf.clear()


class WireTransport(Transport):
    """Line transport over a serial peripheral."""

    def __init__(
        self,
        port: SerialPort,
        *,
        capacity: int = _cfg.RX_MAX,
        newline: Literal["\r\n", "\n"] = "\r\n",
    ) -> None:
        self.port = port
        self.newline = newline
        self.assembler = LineAssembler(capacity)

    def send_line(self, line: str) -> None:
        logger.debug("TX %r", line)
        self.port.write((line + self.newline).encode("ascii"))

    def poll_lines(self) -> list[str]:
        """Drain every byte currently waiting and return all completed lines."""
        waiting = self.port.in_waiting
        if not waiting:
            return []
        lines = self.assembler.feed(self.port.read(waiting))
        for line in lines:
            logger.debug("RX %r", line)
        return lines

    def reset(self) -> None:
        self.assembler.reset()


class LoopbackTransport(Transport):
    """Bounded queue of pre-formatted lines delivered one per tick.

    Outgoing lines are handed to *on_send* (the spoofing peer), which answers
    by calling :meth:`push`.
    """

    def __init__(
        self,
        capacity: int = _cfg.AI_QUEUE_CAPACITY,
        on_send: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.capacity = capacity
        self.on_send = on_send
        self._queue: Deque[str] = deque()

    def push(self, line: str) -> bool:
        """Queue *line*; return ``False`` (dropping it) if the queue is full."""
        if len(self._queue) >= self.capacity:
            logger.debug("Loopback queue full – dropped %r", line)
            return False
        self._queue.append(line)
        return True

    def send_line(self, line: str) -> None:
        logger.debug("TX(loopback) %r", line)
        if self.on_send is not None:
            self.on_send(line)

    def poll_lines(self) -> list[str]:
        if not self._queue:
            return []
        return [self._queue.popleft()]

    def reset(self) -> None:
        self._queue.clear()

    def __len__(self) -> int:
        return len(self._queue)
