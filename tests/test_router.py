from armada.board import Board
from armada.events import Category, Event
from armada.router import EventRouter
from armada.session import NetState
from armada.ui import ENEMY_ORIGIN, PLAYER_ORIGIN, Colour, Settings


def _router(display, sound, *, sound_on=True):
    return EventRouter(Board(), display, sound, Settings(sound=sound_on))


def test_state_change_updates_status(display, sound):
    router = _router(display, sound)
    router(Event(Category.STATE, "transition", {"old": NetState.MY_TURN, "new": NetState.WAIT_RES}))
    assert display.statuses == ["Waiting for result..."]


def test_incoming_hit_draws_and_beeps(display, sound):
    router = _router(display, sound)
    router(Event(Category.TURN, "incoming", {"row": 2, "col": 3, "hit": True, "remaining": 16}))
    assert display.named("draw_cell") == [("draw_cell", 2, 3, Colour.HIT, PLAYER_ORIGIN)]
    assert sound.calls == [("enemy_attack", True)]


def test_result_miss_on_enemy_board(display, sound):
    router = _router(display, sound)
    router(Event(Category.TURN, "fired", {"row": 4, "col": 5}))
    router(Event(Category.TURN, "result", {"row": 4, "col": 5, "hit": False, "remaining": 17}))
    assert display.named("draw_cell") == [
        ("draw_cell", 4, 5, Colour.PENDING, ENEMY_ORIGIN),
        ("draw_cell", 4, 5, Colour.MISS, ENEMY_ORIGIN),
    ]
    assert sound.calls == [("attack", False)]


def test_sound_setting_mutes_effects(display, sound):
    router = _router(display, sound, sound_on=False)
    router(Event(Category.TURN, "game_over", {"won": True}))
    assert sound.calls == []
    assert ("end_screen", True) in display.calls


def test_game_over_plays_melody(display, sound):
    router = _router(display, sound)
    router(Event(Category.TURN, "game_over", {"won": False}))
    assert sound.calls == [("lose",)]
    assert display.statuses == ["You lose - tap twice"]


def test_system_events_show_reason(display, sound):
    router = _router(display, sound)
    router(Event(Category.SYSTEM, "peer_timeout", {"ticks": 120000}))
    router(Event(Category.SYSTEM, "token_collision", {"token": 5}))
    assert display.statuses == ["Peer lost - reset", "Token collision - reset"]


def test_routing_errors_are_logged_not_raised(sound, caplog):
    class BrokenDisplay:
        def status(self, text):
            raise RuntimeError("lcd gone")

    router = EventRouter(Board(), BrokenDisplay(), sound, Settings())
    router(Event(Category.SYSTEM, "peer_timeout", {}))
    assert "Event routing failed" in caplog.text
