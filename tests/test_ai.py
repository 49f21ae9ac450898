"""Tests for the evaluation function and the minimax search."""

import math

import pytest

from tictactoe.ai import (
    EvaluationFunction,
    NodeKind,
    NodeState,
    SearchNode,
    search,
)
from tictactoe.cancellation import CancellationToken, MoveCancelled
from tictactoe.game import Board, Piece

X, O = Piece.X, Piece.O


def board_with(xs=(), os=()):
    board = Board()
    for position in xs:
        board.cells[position] = X
    for position in os:
        board.cells[position] = O
    return board


def test_lone_pieces_score_by_open_lines():
    evaluator = EvaluationFunction()
    assert evaluator.evaluate(board_with(xs=[4]), X) == 4
    assert evaluator.evaluate(board_with(xs=[0]), X) == 3
    assert evaluator.evaluate(board_with(xs=[1]), X) == 2
    assert evaluator.evaluate(Board(), X) == 0


def test_lines_with_opponent_pieces_are_dead():
    evaluator = EvaluationFunction()
    board = board_with(xs=[0], os=[4])
    # X keeps row 0 and column 0; O keeps row 1, column 1 and the anti-diagonal.
    assert EvaluationFunction.score(board, X) == 2
    assert EvaluationFunction.score(board, O) == 3
    assert evaluator.evaluate(board, X) == -1


@pytest.mark.parametrize(
    "xs,os",
    [((0,), (4,)), ((0, 1), (4,)), ((0, 8), (4, 2)), ((4,), ()), ((0, 2, 7), (1, 4, 6))],
)
def test_evaluation_is_antisymmetric_without_a_winner(xs, os):
    board = board_with(xs=xs, os=os)
    evaluator = EvaluationFunction()
    assert not board.has_winner()
    assert evaluator.evaluate(board, X) == -evaluator.evaluate(board, O)


def test_won_board_is_terminal_for_both_sides():
    board = board_with(xs=[0, 4, 8], os=[1, 2])
    evaluator = EvaluationFunction()
    assert evaluator.evaluate(board, X) == math.inf
    assert evaluator.evaluate(board, O) == -math.inf
    assert evaluator.calls == 2


def test_depth_one_takes_the_immediate_win():
    board = board_with(xs=[0, 1], os=[3, 4])
    root = search(board, X, depth=1)
    assert root.best_move.position == 2
    assert root.best_move.piece is X
    assert root.value == math.inf


def test_depth_two_blocks_an_immediate_threat():
    board = board_with(xs=[0, 1], os=[4])
    root = search(board, O, depth=2)
    assert root.best_move.position == 2


def test_terminal_child_stops_descent():
    board = board_with(xs=[0, 1], os=[3, 4])
    root = SearchNode(board=board, piece=X)
    root.find_best_move(5, EvaluationFunction())
    assert root.best_move.position == 2
    assert all(child.state is NodeState.UNEXPANDED for child in root.children)
    assert all(not child.children for child in root.children)


def test_minimizing_root_picks_lowest_value_first_in_order():
    board = board_with(xs=[0, 1])
    root = SearchNode(board=board, piece=O, kind=NodeKind.MINIMIZING)
    root.find_best_move(1, EvaluationFunction())
    # Squares 2 and 4 both leave X one point ahead; 2 is generated first.
    assert root.best_move.position == 2
    assert root.value == 1


def test_children_alternate_kind_and_piece():
    root = SearchNode(board=board_with(xs=[4]), piece=O)
    root.find_best_move(2, EvaluationFunction())
    assert root.state is NodeState.EVALUATED
    assert len(root.children) == 8
    child = root.children[0]
    assert child.kind is NodeKind.MINIMIZING
    assert child.piece is X
    assert child.parent is root
    assert child.move.piece is O
    grandchild = child.children[0]
    assert grandchild.kind is NodeKind.MAXIMIZING
    assert grandchild.piece is O
    assert grandchild.move.piece is X


def test_search_does_not_touch_the_real_board():
    board = board_with(xs=[0], os=[4])
    search(board, X, depth=2)
    assert board.open_positions() == [1, 2, 3, 5, 6, 7, 8]


def test_zero_depth_leaves_node_untouched():
    evaluator = EvaluationFunction()
    root = SearchNode(board=Board(), piece=X)
    root.find_best_move(0, evaluator)
    assert root.state is NodeState.UNEXPANDED
    assert root.best_move is None
    assert root.value == 0.0
    assert evaluator.calls == 0


def test_full_board_has_no_best_move():
    board = board_with(xs=[0, 2, 3, 7, 8], os=[1, 4, 5, 6])
    root = SearchNode(board=board, piece=X)
    root.find_best_move(2, EvaluationFunction())
    assert root.children == []
    assert root.best_move is None


def test_missing_board_or_evaluator_is_a_programming_error():
    with pytest.raises(RuntimeError):
        SearchNode(board=None, piece=X).find_best_move(1, EvaluationFunction())
    with pytest.raises(RuntimeError):
        SearchNode(board=Board(), piece=X).find_best_move(1, None)


def test_cancelled_search_stops():
    token = CancellationToken()
    token.cancel()
    with pytest.raises(MoveCancelled):
        search(board_with(xs=[4]), O, depth=3, token=token)
