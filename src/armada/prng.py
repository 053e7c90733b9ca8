"""Deterministic pseudo-random source (16-bit Galois LFSR).

The generator is an ordinary object so it can be injected: ship placement
and AI targeting take any object exposing ``randrange``/``random``/
``shuffle`` and tests may pass ``random.Random(seed)`` instead.
"""

from __future__ import annotations

from typing import Iterable, MutableSequence, Protocol, TypeVar

T = TypeVar("T")

DEFAULT_SEED = 0xACE1
FEEDBACK = 0xB400


class RandomSource(Protocol):
    def randrange(self, stop: int) -> int: ...

    def random(self) -> float: ...

    def shuffle(self, seq: MutableSequence) -> None: ...


class Lfsr16:
    """16-bit Galois LFSR with the standard ``0xB400`` feedback polynomial."""

    def __init__(self, seed: int = DEFAULT_SEED) -> None:
        self._state = DEFAULT_SEED
        self.seed(seed)

    def seed(self, value: int) -> None:
        """Reseed; zero would lock the register so it maps to the default."""
        value &= 0xFFFF
        self._state = value or DEFAULT_SEED

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> int:
        lsb = self._state & 1
        self._state >>= 1
        if lsb:
            self._state ^= FEEDBACK
        return self._state

    # ------------------------------------------------------------------ #
    # random.Random-compatible helpers
    # ------------------------------------------------------------------ #
    def randrange(self, stop: int) -> int:
        """Return an int in ``[0, stop)``."""
        if stop <= 0:
            raise ValueError("randrange() stop must be positive")
        return self.next() % stop

    def randint(self, a: int, b: int) -> int:
        """Return an int in ``[a, b]`` inclusive."""
        if b < a:
            raise ValueError("randint() empty range")
        return a + self.randrange(b - a + 1)

    def random(self) -> float:
        """Return a float in ``[0.0, 1.0)``."""
        return self.next() / 65536.0

    def shuffle(self, seq: MutableSequence[T]) -> None:
        """In-place Fisher-Yates shuffle."""
        for i in range(len(seq) - 1, 0, -1):
            j = self.randrange(i + 1)
            seq[i], seq[j] = seq[j], seq[i]


def seed_from_noise(samples: Iterable[int]) -> int:
    """Fold noisy analog readings into a 16-bit seed.

    Only the low bits of an idle ADC channel carry noise, so each sample
    contributes its two least-significant bits.
    """
    seed = 0
    for sample in samples:
        seed = ((seed << 2) | (seed >> 14)) & 0xFFFF
        seed ^= sample & 0x3
    return seed or DEFAULT_SEED
