"""Depth-limited minimax search and the line-based evaluation function."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

from .cancellation import CancellationToken
from .game import Board, Move, Piece, opponent_piece

LOGGER = logging.getLogger(__name__)

DEFAULT_SEARCH_DEPTH = 2

TERMINAL_WIN = math.inf
TERMINAL_LOSS = -math.inf


def is_terminal_value(value: float) -> bool:
    return math.isinf(value)


# ---------- Evaluation ----------


class EvaluationFunction:
    """Scores a board from the point of view of ``max_piece``.

    A won board is worth ``+inf`` to the winner and ``-inf`` to the loser.
    Otherwise every row, column and main diagonal that holds none of the
    opponent's pieces earns one point per own piece on it, and the result is
    the difference between both sides' totals.
    """

    def __init__(self) -> None:
        self.calls = 0

    def evaluate(self, board: Board, max_piece: Piece) -> float:
        self.calls += 1
        if board.has_winner():
            return TERMINAL_WIN if board.winning_piece is max_piece else TERMINAL_LOSS
        return self.score(board, max_piece) - self.score(board, opponent_piece(max_piece))

    @staticmethod
    def score(board: Board, piece: Piece) -> float:
        opp = opponent_piece(piece)
        total = 0.0
        for line in board.lines():
            # A line holding any opposing piece can no longer be completed.
            if opp in line:
                continue
            total += line.count(piece)
        return total


# ---------- Search tree ----------


class NodeKind(Enum):
    MAXIMIZING = "max"
    MINIMIZING = "min"

    def inverted(self) -> "NodeKind":
        return NodeKind.MINIMIZING if self is NodeKind.MAXIMIZING else NodeKind.MAXIMIZING


class NodeState(Enum):
    UNEXPANDED = "unexpanded"
    EXPANDED = "expanded"
    EVALUATED = "evaluated"


@dataclass
class SearchNode:
    """One position in the minimax tree.

    MAXIMIZING nodes pick the child with the highest value, MINIMIZING nodes
    the lowest. Children are generated in ascending open-position order and
    the sort is stable, so ties go to the lowest position.
    """

    board: Optional[Board]
    piece: Piece
    kind: NodeKind = NodeKind.MAXIMIZING
    move: Optional[Move] = None
    parent: Optional["SearchNode"] = field(default=None, repr=False)
    value: float = 0.0
    children: List["SearchNode"] = field(default_factory=list, repr=False)
    best_child: Optional["SearchNode"] = field(default=None, repr=False)
    state: NodeState = NodeState.UNEXPANDED

    @classmethod
    def child_of(cls, parent: "SearchNode", board: Board, move: Move) -> "SearchNode":
        return cls(
            board=board,
            piece=opponent_piece(parent.piece),
            kind=parent.kind.inverted(),
            move=move,
            parent=parent,
        )

    @property
    def best_move(self) -> Optional[Move]:
        return self.best_child.move if self.best_child is not None else None

    def is_game_ending(self) -> bool:
        return is_terminal_value(self.value)

    def find_best_move(
        self,
        depth: int,
        evaluator: Optional[EvaluationFunction],
        token: Optional[CancellationToken] = None,
    ) -> None:
        if depth <= 0:
            return
        if self.board is None:
            raise RuntimeError("Search node has no board")
        if evaluator is None:
            raise RuntimeError("Search node has no evaluator")
        if token is not None:
            token.raise_if_cancelled()

        self._generate_children(self.board)
        for child in self.children:
            child.evaluate(evaluator)
        self.state = NodeState.EVALUATED

        # An immediate win or loss is final; deeper search would not change it.
        if not any(child.is_game_ending() for child in self.children):
            for child in self.children:
                if token is not None:
                    token.raise_if_cancelled()
                child.find_best_move(depth - 1, evaluator, token)
        self._select_best_child()

    def evaluate(self, evaluator: EvaluationFunction) -> None:
        if self.board is None:
            raise RuntimeError("Search node has no board")
        # Min nodes score for the side that just moved into them.
        if self.kind is NodeKind.MAXIMIZING:
            self.value = evaluator.evaluate(self.board, self.piece)
        else:
            self.value = evaluator.evaluate(self.board, opponent_piece(self.piece))

    def _generate_children(self, parent_board: Board) -> None:
        self.children = []
        for position in parent_board.open_positions():
            board = parent_board.clone()
            move = Move(position, self.piece)
            board.make_move(position, self.piece)
            self.children.append(SearchNode.child_of(self, board, move))
        self.state = NodeState.EXPANDED

    def _select_best_child(self) -> None:
        if not self.children:
            self.best_child = None
            return
        ordered = sorted(
            self.children,
            key=lambda n: n.value,
            reverse=self.kind is NodeKind.MAXIMIZING,
        )
        self.best_child = ordered[0]
        self.value = self.best_child.value


def search(
    board: Board,
    piece: Piece,
    depth: int = DEFAULT_SEARCH_DEPTH,
    evaluator: Optional[EvaluationFunction] = None,
    kind: NodeKind = NodeKind.MAXIMIZING,
    token: Optional[CancellationToken] = None,
) -> SearchNode:
    """Run a search for ``piece`` from a copy of ``board`` and return the root."""
    evaluator = evaluator if evaluator is not None else EvaluationFunction()
    root = SearchNode(board=board.clone(), piece=piece, kind=kind)
    root.find_best_move(depth, evaluator, token)
    LOGGER.debug(
        "Searched %s to depth %d: best=%s value=%s evaluations=%d",
        piece.value,
        depth,
        root.best_move,
        root.value,
        evaluator.calls,
    )
    return root
