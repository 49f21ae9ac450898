"""Tests for the game driver: worker handoff, human input and cancellation."""

import random
import threading

import pytest

from tictactoe.cancellation import MoveCancelled
from tictactoe.driver import GameDriver
from tictactoe.game import InvalidMove, Move, Piece, PlayerSeat
from tictactoe.players import ComputerPlayer, HumanPlayer


@pytest.fixture
def drivers():
    created = []
    yield created
    for driver in created:
        driver.cancel()
        driver.join(timeout=2.0)


def test_computer_game_runs_to_completion(drivers):
    driver = GameDriver(
        ComputerPlayer("one", Piece.X, rng=random.Random(1)),
        ComputerPlayer("two", Piece.O, rng=random.Random(2)),
    )
    drivers.append(driver)
    result = driver.play()
    assert driver.game.is_game_over()
    assert result.moves == driver.game.history
    pieces = [move.piece for move in result.moves]
    assert pieces[::2] == [Piece.X] * len(pieces[::2])
    assert pieces[1::2] == [Piece.O] * len(pieces[1::2])
    assert result.draw == (result.winner is None)


def test_finished_games_release_their_worker(drivers):
    before = threading.active_count()
    for seed in range(5):
        driver = GameDriver(
            ComputerPlayer("one", Piece.X, rng=random.Random(seed)),
            ComputerPlayer("two", Piece.O, rng=random.Random(seed + 1)),
        )
        drivers.append(driver)
        driver.play()
    assert threading.active_count() <= before


def test_full_depth_computers_always_draw(drivers):
    driver = GameDriver(
        ComputerPlayer("one", Piece.X, depth=9, rng=random.Random(7)),
        ComputerPlayer("two", Piece.O, depth=9),
    )
    drivers.append(driver)
    result = driver.play()
    assert result.draw
    assert result.winner is None
    assert len(result.moves) == 9


def test_human_move_is_handed_to_the_game(drivers):
    human = HumanPlayer("alice", Piece.X)
    computer = ComputerPlayer("cpu", Piece.O)
    driver = GameDriver(human, computer)
    drivers.append(driver)
    driver.start()

    assert driver.square_selected(4, timeout=2.0)
    assert driver.wait_for_moves(2, timeout=5.0)
    snapshot = driver.snapshot()
    assert snapshot.moves[0] == Move(4, Piece.X)
    assert snapshot.moves[1].piece is Piece.O
    assert snapshot.current_player is Piece.X

    with pytest.raises(InvalidMove):
        driver.square_selected(4, timeout=0.5)


def test_selection_is_ignored_on_the_computer_turn(drivers):
    driver = GameDriver(ComputerPlayer("cpu", Piece.X), HumanPlayer("bob", Piece.O))
    drivers.append(driver)
    assert driver.current_player.piece is Piece.X
    assert not driver.square_selected(0)
    assert driver.game.history == ()


def test_cancel_abandons_a_waiting_human(drivers):
    human = HumanPlayer("alice", Piece.X)
    driver = GameDriver(human, ComputerPlayer("cpu", Piece.O))
    drivers.append(driver)
    driver.start()
    driver.cancel()
    driver.join(timeout=2.0)
    assert not driver.running
    assert driver.error is None
    assert driver.result is None
    assert not human.waiting
    assert driver.game.current_player_turn is PlayerSeat.PLAYER1


def test_cancelled_driver_refuses_to_play(drivers):
    driver = GameDriver(ComputerPlayer("one", Piece.X), ComputerPlayer("two", Piece.O))
    drivers.append(driver)
    driver.cancel()
    with pytest.raises(MoveCancelled):
        driver.play()


def test_new_game_resets_state(drivers):
    human = HumanPlayer("alice", Piece.X)
    driver = GameDriver(human, ComputerPlayer("cpu", Piece.O))
    drivers.append(driver)
    driver.start()
    assert driver.square_selected(0, timeout=2.0)
    assert driver.wait_for_moves(2, timeout=5.0)

    driver.new_game(timeout=2.0)
    assert driver.game.history == ()
    assert driver.game.board.open_positions() == list(range(9))

    driver.start()
    assert driver.square_selected(8, timeout=2.0)
    assert driver.wait_for_moves(1, timeout=5.0)
    assert driver.game.history[0] == Move(8, Piece.X)


def test_start_twice_is_refused(drivers):
    driver = GameDriver(HumanPlayer("alice", Piece.X), ComputerPlayer("cpu", Piece.O))
    drivers.append(driver)
    driver.start()
    with pytest.raises(RuntimeError):
        driver.start()
