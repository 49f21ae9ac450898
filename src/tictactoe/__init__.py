"""Tic-tac-toe package exposing the rules, the minimax AI, players and the driver."""

from .ai import EvaluationFunction, NodeKind, SearchNode
from .driver import GameDriver
from .game import Board, InvalidMove, InvalidPiece, Move, Piece, TicTacToeGame
from .players import ComputerPlayer, HumanPlayer

__all__ = [
    "Board",
    "ComputerPlayer",
    "EvaluationFunction",
    "GameDriver",
    "HumanPlayer",
    "InvalidMove",
    "InvalidPiece",
    "Move",
    "NodeKind",
    "Piece",
    "SearchNode",
    "TicTacToeGame",
]
