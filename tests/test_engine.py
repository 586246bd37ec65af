"""Tests for the turn-state engine and the bot hand-off."""

import random
import time

import pytest

from tictactoe.ai import Difficulty
from tictactoe.engine import GameEngine, GameStatus
from tictactoe.game import Player


def _play(engine, moves):
    for index in moves:
        engine.make_move(index)


def _observable(engine):
    return (
        tuple(engine.board_snapshot()),
        engine.current_player(),
        engine.is_game_over(),
        engine.winner(),
        engine.status(),
        engine.is_bot_pending(),
    )


def test_initial_state():
    engine = GameEngine()
    assert engine.board_snapshot() == [None] * 9
    assert engine.current_player() is Player.X
    assert engine.status() is GameStatus.ONGOING
    assert not engine.is_game_over()
    assert engine.winner() is None


def test_first_move_switches_player():
    engine = GameEngine()
    engine.make_move(0)
    assert engine.board_snapshot()[0] is Player.X
    assert engine.current_player() is Player.O
    assert not engine.is_game_over()


def test_row_win_for_x():
    engine = GameEngine()
    _play(engine, [0, 3, 1, 4, 2])
    assert engine.is_game_over()
    assert engine.winner() is Player.X
    assert engine.status() is GameStatus.WON
    assert engine.winning_line() == (0, 1, 2)
    # Winner keeps the turn marker.
    assert engine.current_player() is Player.X


def test_full_board_draw():
    engine = GameEngine()
    _play(engine, [0, 1, 2, 4, 3, 5, 7, 6, 8])
    assert engine.is_game_over()
    assert engine.winner() is None
    assert engine.status() is GameStatus.DRAWN
    assert None not in engine.board_snapshot()


def test_column_completed_before_last_moves_ends_game():
    engine = GameEngine()
    # X completes 0-3-6 on its fourth move; later input is ignored.
    _play(engine, [0, 1, 2, 4, 3, 5, 6, 8, 7])
    assert engine.is_game_over()
    assert engine.winner() is Player.X
    assert engine.board_snapshot()[8] is None
    assert engine.board_snapshot()[7] is None


@pytest.mark.parametrize("index", [-1, 9, 100, "3", 2.0, True, None])
def test_invalid_index_is_silently_ignored(index):
    engine = GameEngine()
    before = _observable(engine)
    engine.make_move(index)
    assert _observable(engine) == before


def test_occupied_cell_is_silently_ignored():
    engine = GameEngine()
    engine.make_move(4)
    before = _observable(engine)
    engine.make_move(4)
    assert _observable(engine) == before
    assert engine.move_log == [(Player.X, 4)]


def test_moves_after_game_over_are_ignored():
    engine = GameEngine()
    _play(engine, [0, 3, 1, 4, 2])
    before = _observable(engine)
    engine.make_move(8)
    assert _observable(engine) == before


def test_terminal_states_are_exclusive_over_random_games():
    rng = random.Random(7)
    for _ in range(50):
        engine = GameEngine()
        while not engine.is_game_over():
            empty = [i for i, c in enumerate(engine.board_snapshot()) if c is None]
            engine.make_move(rng.choice(empty))
            snapshot = engine.board_snapshot()
            if engine.is_game_over():
                outcomes = [
                    engine.winner() is Player.X,
                    engine.winner() is Player.O,
                    engine.winner() is None and None not in snapshot,
                ]
                assert outcomes.count(True) == 1
            else:
                assert engine.winner() is None


def test_reset_is_idempotent():
    engine = GameEngine()
    _play(engine, [0, 4, 8])
    engine.reset()
    once = _observable(engine)
    engine.reset()
    assert _observable(engine) == once
    assert once[0] == (None,) * 9
    assert engine.move_log == []


def test_bot_replies_inline_without_delay():
    engine = GameEngine(
        is_bot_enabled=True, bot_difficulty=Difficulty.ADVANCED, bot_delay=None
    )
    engine.make_move(0)
    assert engine.board_snapshot()[4] is Player.O
    assert engine.current_player() is Player.X
    assert engine.move_log == [(Player.X, 0), (Player.O, 4)]


def test_bot_replies_once_per_human_move():
    engine = GameEngine(
        is_bot_enabled=True,
        bot_difficulty=Difficulty.EASY,
        bot_delay=None,
        rng=random.Random(1),
    )
    engine.make_move(0)
    marks = [c for c in engine.board_snapshot() if c is not None]
    assert len(marks) == 2
    assert engine.current_player() is Player.X


def test_intermediate_bot_blocks_through_engine():
    engine = GameEngine(bot_difficulty=Difficulty.INTERMEDIATE, bot_delay=None)
    _play(engine, [0, 4])
    engine.is_bot_enabled = True
    # X@0, O@4, X@1 threatens 2.
    engine.make_move(1)
    assert engine.board_snapshot()[2] is Player.O
    assert engine.current_player() is Player.X


def test_deferred_bot_move_waits_for_fire():
    engine = GameEngine(
        is_bot_enabled=True, bot_difficulty=Difficulty.ADVANCED, bot_delay=60.0
    )
    engine.make_move(0)
    assert engine.is_bot_pending()
    assert engine.current_player() is Player.O
    assert engine.board_snapshot()[4] is None

    # A human cannot play the bot's turn while its reply is pending.
    engine.make_move(5)
    assert engine.board_snapshot()[5] is None

    assert engine.run_pending_bot_move()
    assert not engine.is_bot_pending()
    assert engine.board_snapshot()[4] is Player.O
    assert engine.current_player() is Player.X
    engine.close()


def test_reset_discards_pending_bot_move():
    engine = GameEngine(is_bot_enabled=True, bot_delay=60.0)
    engine.make_move(0)
    assert engine.is_bot_pending()
    engine.reset()
    assert not engine.is_bot_pending()
    assert not engine.run_pending_bot_move()
    assert engine.board_snapshot() == [None] * 9
    assert engine.current_player() is Player.X


def test_deferred_bot_move_fires_on_timer():
    changes = []
    engine = GameEngine(
        is_bot_enabled=True, bot_difficulty=Difficulty.ADVANCED, bot_delay=0.01
    )
    engine.subscribe(changes.append)
    engine.make_move(0)
    deadline = time.monotonic() + 5.0
    while len(changes) < 2 and time.monotonic() < deadline:
        time.sleep(0.01)
    assert engine.board_snapshot()[4] is Player.O
    assert not engine.is_bot_pending()
    # One notification for the human move, one for the bot reply.
    assert len(changes) == 2


def test_bot_as_x_opening_waits_until_fired():
    engine = GameEngine(
        is_bot_enabled=True,
        bot_player=Player.X,
        bot_difficulty=Difficulty.EASY,
        bot_delay=None,
    )
    assert engine.board_snapshot() == [None] * 9
    assert engine.is_bot_pending()
    engine.make_move(4)
    assert engine.board_snapshot() == [None] * 9

    assert engine.run_pending_bot_move()
    assert not engine.is_bot_pending()
    assert len([c for c in engine.board_snapshot() if c is not None]) == 1
    assert engine.current_player() is Player.O


def test_bot_as_x_blocks_human_until_it_moves():
    engine = GameEngine(is_bot_enabled=True, bot_player=Player.X, bot_delay=60.0)
    assert engine.is_bot_pending()
    engine.make_move(4)
    assert engine.board_snapshot() == [None] * 9
    assert engine.run_pending_bot_move()
    assert engine.current_player() is Player.O
    engine.close()


def test_enable_bot_resets_game():
    engine = GameEngine(bot_delay=None)
    _play(engine, [0, 1])
    engine.enable_bot()
    assert engine.is_bot_enabled
    assert engine.board_snapshot() == [None] * 9
    assert engine.current_player() is Player.X


def test_changing_bot_player_resets_game():
    engine = GameEngine(is_bot_enabled=True, bot_delay=None, rng=random.Random(2))
    engine.make_move(0)
    engine.configure(bot_player=Player.X)
    assert engine.bot_player is Player.X
    assert engine.board_snapshot() == [None] * 9
    assert engine.run_pending_bot_move()
    assert len([c for c in engine.board_snapshot() if c is not None]) == 1
    assert engine.current_player() is Player.O


def test_changing_difficulty_keeps_game():
    engine = GameEngine(bot_delay=None)
    _play(engine, [0, 1])
    engine.configure(bot_difficulty="Advanced")
    assert engine.bot_difficulty is Difficulty.ADVANCED
    assert engine.board_snapshot()[:2] == [Player.X, Player.O]


def test_toggling_bot_resets_game():
    engine = GameEngine(bot_delay=None)
    _play(engine, [0, 1])
    engine.configure(is_bot_enabled=True)
    assert engine.board_snapshot() == [None] * 9
    number = engine.game_number
    engine.configure(is_bot_enabled=True)
    assert engine.game_number == number


def test_subscribers_see_every_mutation():
    seen = []
    engine = GameEngine()
    engine.subscribe(lambda e: seen.append(e.current_player()))
    engine.make_move(0)
    engine.make_move(0)  # ignored, no notification
    engine.reset()
    assert seen == [Player.O, Player.X]


def test_reset_is_idempotent_with_bot_as_x():
    engine = GameEngine(
        is_bot_enabled=True,
        bot_player=Player.X,
        bot_difficulty=Difficulty.EASY,
        bot_delay=None,
        rng=random.Random(0),
    )
    seen = set()
    for _ in range(10):
        engine.reset()
        seen.add(_observable(engine))
    assert len(seen) == 1
    board, player, over, winner, status, pending = seen.pop()
    assert board == (None,) * 9
    assert player is Player.X
    assert pending


def test_bot_callback_taken_before_reset_never_lands():
    engine = GameEngine(is_bot_enabled=True, bot_delay=60.0)
    taken = []
    # Stand in for a timer thread that already picked up the callback.
    engine._bot_action.schedule = lambda delay, callback: taken.append(callback)
    engine.make_move(0)
    assert engine.is_bot_pending()
    assert len(taken) == 1

    engine.reset()
    taken[0]()
    assert engine.board_snapshot() == [None] * 9
    assert engine.current_player() is Player.X
    assert engine.move_log == []
    assert not engine.is_bot_pending()
