# Retransmission and peer-liveness timers, advanced once per tick.

from __future__ import annotations

from dataclasses import dataclass

from . import config as _cfg


@dataclass(frozen=True, slots=True)
class RetryActions:
    """What came due during one tick."""

    resend_ready: bool = False
    resend_attack: bool = False
    peer_timeout: bool = False

    def __bool__(self) -> bool:
        return self.resend_ready or self.resend_attack or self.peer_timeout


class RetryEngine:
    """Tick counters for READY resend, ATTACK resend and peer timeout.

    Each condition has its own counter, so a READY resend can never starve
    an ATTACK resend that falls due in the same interval.
    """

    def __init__(
        self,
        ready_interval: int = _cfg.READY_RESEND_TICKS,
        attack_interval: int = _cfg.ATTACK_RESEND_TICKS,
        peer_timeout: int = _cfg.PEER_TIMEOUT_TICKS,
        post_ready: int = _cfg.POST_READY_TICKS,
    ):
        self.ready_interval = ready_interval
        self.attack_interval = attack_interval
        self.peer_timeout = peer_timeout
        self.post_ready = post_ready
        self.reset()

    def reset(self) -> None:
        self.ready_ticks = 0
        self.attack_ticks = 0
        self.peer_ticks = 0
        self.post_ready_left = 0

    def arm_ready(self) -> None:
        """A READY just went out."""
        self.ready_ticks = 0

    def arm_attack(self) -> None:
        """An ATTACK just went out."""
        self.attack_ticks = 0

    def arm_peer_wait(self) -> None:
        """The peer's turn just started."""
        self.peer_ticks = 0

    def start_post_ready(self) -> None:
        """Keep READY flowing for a while after turn order is decided."""
        self.post_ready_left = self.post_ready
        self.ready_ticks = 0

    def evaluate(self, *, waiting_ready: bool, waiting_result: bool, peer_turn: bool) -> RetryActions:
        """Advance every active counter by one tick and report what is due."""
        resend_ready = resend_attack = timed_out = False

        if waiting_ready or self.post_ready_left > 0:
            self.ready_ticks += 1
            if self.ready_ticks >= self.ready_interval:
                self.ready_ticks = 0
                resend_ready = True

        if waiting_result:
            self.attack_ticks += 1
            if self.attack_ticks >= self.attack_interval:
                self.attack_ticks = 0
                resend_attack = True

        if peer_turn:
            self.peer_ticks += 1
            if self.peer_ticks >= self.peer_timeout:
                self.peer_ticks = 0
                timed_out = True

        if self.post_ready_left:
            self.post_ready_left -= 1

        return RetryActions(resend_ready, resend_attack, timed_out)
