import random

import pytest
from conftest import FakeSerial

from armada.ai import AIOpponent, Difficulty
from armada.board import Board, Side
from armada.game import Game, GameMode, GameState
from armada.retry import RetryEngine
from armada.session import NetSession, NetState
from armada.transport import WireTransport
from armada.ui import Settings

UP, DOWN, LEFT, RIGHT = (0, -1), (0, 1), (-1, 0), (1, 0)


def make_game(display, sound, controls, *, board=None, wire=True, retry=None):
    port = FakeSerial()
    board = board if board is not None else Board()
    transport = WireTransport(port)
    session = NetSession(board, transport, retry=retry)
    ai = AIOpponent(board, random.Random(3))
    game = Game(
        session,
        display,
        sound,
        controls,
        ai=ai,
        wire=transport if wire else None,
        settings=Settings(sound=True, difficulty=Difficulty.MEDIUM),
    )
    game.tick()  # RESET -> MAIN_MENU
    return game, port


def idle(game, ticks=1):
    for _ in range(ticks):
        game.tick()


def push(game, controls, direction, settle=160):
    """Deflect the stick for one tick, then let the auto-repeat throttle expire."""
    dx, dy = direction
    controls.x = 512 + 400 * dx
    controls.y = 512 + 400 * dy
    game.tick()
    controls.centre()
    idle(game, settle)


def tap(game, controls, hold=1):
    controls.pressed = True
    idle(game, hold)
    controls.pressed = False
    idle(game, 2)


def feed(game, port, line):
    port.feed(line.encode("ascii") + b"\r\n")
    game.tick()


def start_multiplayer(game, controls):
    push(game, controls, UP)
    assert game.mode is GameMode.MULTIPLAYER
    tap(game, controls)
    assert game.state is GameState.PLACING


def place_standard_fleet(game, controls):
    """Stack the fleet upwards from the centre row, all horizontal."""
    tap(game, controls)  # carrier at (5, 5)
    for _ in range(4):
        push(game, controls, UP)
        tap(game, controls)


# ---------------------------------------------------------------- menus


def test_starts_on_main_menu(display, sound, controls):
    game, _ = make_game(display, sound, controls)
    assert game.state is GameState.MAIN_MENU
    assert display.named("main_menu")
    assert game.session.state is NetState.IDLE


def test_main_menu_navigation(display, sound, controls):
    game, _ = make_game(display, sound, controls)
    push(game, controls, DOWN)
    assert game.mode is GameMode.SINGLEPLAYER
    push(game, controls, RIGHT)
    assert game.mode is GameMode.SETTINGS_GEAR
    push(game, controls, LEFT)
    push(game, controls, UP)
    assert game.mode is GameMode.MULTIPLAYER
    # Gear is only reachable from the single-player entry
    push(game, controls, RIGHT)
    assert game.mode is GameMode.MULTIPLAYER


def test_settings_screen_toggles_and_cycles(display, sound, controls):
    game, _ = make_game(display, sound, controls)
    push(game, controls, DOWN)
    push(game, controls, RIGHT)
    tap(game, controls)
    assert game.state is GameState.SETTINGS

    tap(game, controls)
    assert game.settings.sound is False
    push(game, controls, DOWN)
    tap(game, controls)
    assert game.settings.difficulty is Difficulty.HARD
    push(game, controls, LEFT)
    assert game.state is GameState.MAIN_MENU


def test_multiplayer_without_link_returns_to_menu(display, sound, controls):
    game, _ = make_game(display, sound, controls, wire=False)
    push(game, controls, UP)
    tap(game, controls)
    assert game.state is GameState.MAIN_MENU
    assert "No serial link" in display.statuses


# ---------------------------------------------------------------- placement


def test_short_press_places_ship(display, sound, controls):
    game, _ = make_game(display, sound, controls)
    start_multiplayer(game, controls)
    tap(game, controls)
    assert game.board.fleet[0] is not None
    assert game.board.is_occupied(Side.PLAYER, 5, 5)
    assert game.board.is_occupied(Side.PLAYER, 5, 9)


def test_long_press_rotates_without_blocking(display, sound, controls):
    game, _ = make_game(display, sound, controls)
    start_multiplayer(game, controls)
    before = game.session.ticks
    tap(game, controls, hold=600)
    assert game.ghost_horizontal is False
    assert game.board.next_ship_index == 0
    # The network clock kept running while the button was down
    assert game.session.ticks - before >= 600
    # Ghost was pulled back inside the grid
    assert game.sel_row == 5


def test_press_held_past_limit_resolves_as_rotate(display, sound, controls):
    game, _ = make_game(display, sound, controls)
    start_multiplayer(game, controls)
    tap(game, controls, hold=1500)
    assert game.ghost_horizontal is False
    assert game.board.next_ship_index == 0


def test_invalid_placement_shows_message_and_blocks_input(display, sound, controls):
    game, _ = make_game(display, sound, controls)
    start_multiplayer(game, controls)
    tap(game, controls)
    tap(game, controls)  # battleship would overlap the carrier
    assert display.statuses[-1] == "Invalid placement!"
    push(game, controls, UP, settle=0)
    assert game.sel_row == 5  # ignored while the message is up
    idle(game, 500)
    push(game, controls, UP)
    assert game.sel_row == 4


def test_fleet_complete_announces_ready(display, sound, controls):
    game, port = make_game(display, sound, controls)
    start_multiplayer(game, controls)
    place_standard_fleet(game, controls)
    assert game.board.fleet_complete
    assert game.state is GameState.WAIT
    assert game.session.state is NetState.WAIT_READY
    assert port.sent_lines()[0].startswith("READY ")


# ---------------------------------------------------------------- play


def test_state_follows_session_through_a_turn(display, sound, controls):
    game, port = make_game(display, sound, controls)
    start_multiplayer(game, controls)
    place_standard_fleet(game, controls)

    feed(game, port, "READY 0")
    assert game.state is GameState.MY_TURN
    assert display.named("play_screen")

    tap(game, controls)
    assert game.state is GameState.WAIT_RES
    assert port.sent_lines()[-1] == "A 5 5"

    feed(game, port, "R 5 5 M")
    assert game.state is GameState.ENEMY_TURN
    feed(game, port, "A 9 9")
    assert game.state is GameState.MY_TURN


def test_game_over_needs_two_taps(display, sound, controls):
    game, port = make_game(display, sound, controls, board=Board(ship_lengths=(2,)))
    start_multiplayer(game, controls)
    tap(game, controls)  # destroyer at (5, 5)-(5, 6)

    feed(game, port, "READY 65535")
    assert game.state is GameState.ENEMY_TURN
    feed(game, port, "A 5 5")
    tap(game, controls)
    feed(game, port, "R 5 5 M")
    feed(game, port, "A 5 6")
    assert game.state is GameState.OVER
    assert ("end_screen", False) in display.calls

    tap(game, controls)
    assert game.state is GameState.OVER
    tap(game, controls)
    assert game.state is GameState.MAIN_MENU
    assert game.session.state is NetState.IDLE
    assert game.board.next_ship_index == 0


def test_peer_timeout_returns_to_menu_with_notice(display, sound, controls):
    game, port = make_game(
        display, sound, controls, board=Board(ship_lengths=(2,)), retry=RetryEngine(peer_timeout=100)
    )
    start_multiplayer(game, controls)
    tap(game, controls)
    feed(game, port, "READY 65535")
    assert game.state is GameState.ENEMY_TURN
    idle(game, 120)
    assert game.state is GameState.MAIN_MENU
    assert "Peer lost - reset" in display.statuses


# ---------------------------------------------------------------- single player


@pytest.mark.timeout(60)
def test_single_player_round_trip(display, sound, controls):
    game, port = make_game(display, sound, controls)
    push(game, controls, DOWN)
    tap(game, controls)
    assert game.state is GameState.PLACING
    assert game.session.transport is game.ai.transport

    place_standard_fleet(game, controls)
    idle(game, 3)
    assert game.ai.fleet_placed
    assert game.state is GameState.MY_TURN

    tap(game, controls)
    idle(game, 3)
    # AI answered our shot and fired back
    assert game.state is GameState.MY_TURN
    assert game.board.attacked[Side.PLAYER].count() == 1
    assert port.tx == bytearray()
