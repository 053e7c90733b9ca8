"""Command-line entry point: ``armada [--port URL] [--ai LEVEL] ...``."""

from __future__ import annotations

import argparse
import logging
import os
import sys
import time
from typing import Optional, Sequence

import serial

from . import config as _cfg
from .ai import AIOpponent, Difficulty
from .board import Board
from .console import KEY_HELP, BellSound, ConsoleDisplay, KeyboardControls
from .game import Game, GameMode, GameState
from .prng import Lfsr16, seed_from_noise
from .session import NetSession
from .transport import LoopbackTransport, Transport, WireTransport, open_serial
from .ui import Settings

logger = logging.getLogger(__name__)


def _difficulty(value: str) -> Difficulty:
    try:
        return Difficulty.from_name(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Armada: two-player Battleship over a serial line")
    parser.add_argument(
        "--port",
        nargs="?",
        const=_cfg.DEFAULT_SERIAL_PORT,
        default=None,
        help="Serial device or pyserial URL for multiplayer (default device if given without value)",
    )
    parser.add_argument("--baud", type=int, default=_cfg.BAUD_RATE, help="Serial baud rate")
    parser.add_argument(
        "--ai",
        nargs="?",
        const=_difficulty(_cfg.DEFAULT_DIFFICULTY),
        default=None,
        type=_difficulty,
        help="Start straight into a game against the computer (easy|medium|hard or a rank name)",
    )
    parser.add_argument("--seed", type=int, help="Fixed PRNG seed (default: OS noise)")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging.")
    parser.add_argument("--no-sound", action="store_true", help="Start with sound disabled")
    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:  # pragma: no cover – CLI entry
    """Wire up the console collaborators and run the 1 ms main loop."""
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if (_cfg.DEBUG or args.debug) else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    seed = args.seed if args.seed is not None else seed_from_noise(os.urandom(8))
    rng = Lfsr16(seed)
    logger.debug("PRNG seeded with 0x%04X", rng.state)

    settings = Settings(sound=_cfg.SOUNDS_ENABLED and not args.no_sound)
    if args.ai is not None:
        settings.difficulty = args.ai

    board = Board()
    ai = AIOpponent(board, rng, settings.difficulty)

    wire: Optional[Transport] = None
    if args.port:
        try:
            wire = WireTransport(open_serial(args.port, args.baud))
        except serial.SerialException as exc:
            logger.error("Cannot open serial port %s: %s", args.port, exc)
            return 1
        logger.info("Serial link on %s @ %d baud", args.port, args.baud)

    session = NetSession(board, wire if wire is not None else LoopbackTransport())
    display = ConsoleDisplay(board.rows, board.cols)
    controls = KeyboardControls()
    game = Game(session, display, BellSound(), controls, ai=ai, wire=wire, settings=settings)

    if args.ai is not None:
        game.mode = GameMode.SINGLEPLAYER
        game.tick()  # RESET -> MAIN_MENU
        game.state = GameState.NEW_GAME

    print(KEY_HELP)
    controls.start()
    try:
        while not controls.quit_requested:
            controls.step()
            game.tick()
            display.refresh()
            time.sleep(_cfg.TICK_SECONDS)
    except KeyboardInterrupt:
        logger.info("Exiting")
    except serial.SerialException as exc:
        logger.error("Serial link failed: %s", exc)
        return 1
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
