"""Core rules for Tic-Tac-Toe: pieces, moves, the board and turn discipline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Tuple

ROWS = 3
COLUMNS = 3
WINNING_LENGTH = 3

# Rows, columns, then the two main diagonals.
LINES: Tuple[Tuple[int, int, int], ...] = (
    (0, 1, 2),
    (3, 4, 5),
    (6, 7, 8),
    (0, 3, 6),
    (1, 4, 7),
    (2, 5, 8),
    (0, 4, 8),
    (2, 4, 6),
)

# (row step, column step): right, down, up-right, down-right
DIRECTIONS: Tuple[Tuple[int, int], ...] = ((0, 1), (1, 0), (-1, 1), (1, 1))


class InvalidMove(ValueError):
    """A move targets an unavailable square or is played out of turn."""


class InvalidPiece(ValueError):
    """A piece other than X or O reached code that needs a real piece."""


class Piece(str, Enum):
    X = "X"
    O = "O"
    EMPTY = " "

    def opponent(self) -> "Piece":
        return opponent_piece(self)


class PlayerSeat(Enum):
    PLAYER1 = 1
    PLAYER2 = 2

    def other(self) -> "PlayerSeat":
        return PlayerSeat.PLAYER2 if self is PlayerSeat.PLAYER1 else PlayerSeat.PLAYER1


def opponent_piece(piece: Piece) -> Piece:
    if piece is Piece.X:
        return Piece.O
    if piece is Piece.O:
        return Piece.X
    raise InvalidPiece(f"{piece!r} has no opponent")


@dataclass(frozen=True)
class Move:
    position: int
    piece: Piece


# ---------- Board ----------


def _point(position: int) -> Tuple[int, int]:
    return position // COLUMNS, position % COLUMNS


def _in_bounds(row: int, column: int) -> bool:
    return 0 <= row < ROWS and 0 <= column < COLUMNS


@dataclass
class Board:
    cells: List[Piece] = field(default_factory=lambda: [Piece.EMPTY] * (ROWS * COLUMNS))
    winning_piece: Optional[Piece] = None

    rows = ROWS
    columns = COLUMNS

    def is_valid_square(self, position: int) -> bool:
        return self._on_board(position) and self.cells[position] is Piece.EMPTY

    def make_move(self, position: int, piece: Piece) -> None:
        if not self.is_valid_square(position):
            raise InvalidMove(f"Square {position} is not available")
        if piece is Piece.EMPTY:
            raise InvalidMove("Cannot place an empty piece")
        self.cells[position] = piece

    def undo_move(self, move: Move) -> None:
        if not self._on_board(move.position):
            raise InvalidMove(f"Cannot undo a move on invalid square {move.position}")
        self.cells[move.position] = Piece.EMPTY

    def get_piece_at_position(self, position: int) -> Piece:
        if not self._on_board(position):
            raise InvalidMove(f"Square {position} is off the board")
        return self.cells[position]

    def get_piece_at_point(self, row: int, column: int) -> Piece:
        if not _in_bounds(row, column):
            raise InvalidMove(f"Point ({row}, {column}) is off the board")
        return self.cells[row * COLUMNS + column]

    def open_positions(self) -> List[int]:
        return [i for i, c in enumerate(self.cells) if c is Piece.EMPTY]

    def lines(self) -> List[Tuple[Piece, Piece, Piece]]:
        return [(self.cells[a], self.cells[b], self.cells[c]) for a, b, c in LINES]

    def has_winner(self) -> bool:
        for position in range(ROWS * COLUMNS):
            if self._is_winner_at(position):
                self.winning_piece = self.cells[position]
                return True
        self.winning_piece = None
        return False

    def is_draw(self) -> bool:
        if self.has_winner():
            return False
        return all(c is not Piece.EMPTY for c in self.cells)

    def is_game_over(self) -> bool:
        return self.has_winner() or self.is_draw()

    def clone(self) -> "Board":
        return Board(cells=self.cells.copy(), winning_piece=self.winning_piece)

    # ---- helpers ----

    @staticmethod
    def _on_board(position: int) -> bool:
        return 0 <= position < ROWS * COLUMNS

    def _is_winner_at(self, position: int) -> bool:
        piece = self.cells[position]
        if piece is Piece.EMPTY:
            return False
        return any(
            self._line_from(position, d_row, d_col, piece) for d_row, d_col in DIRECTIONS
        )

    def _line_from(self, position: int, d_row: int, d_col: int, piece: Piece) -> bool:
        row, column = _point(position)
        for _ in range(1, WINNING_LENGTH):
            row += d_row
            column += d_col
            # Every step is bounds-checked so lines never wrap across rows.
            if not _in_bounds(row, column):
                return False
            if self.get_piece_at_point(row, column) is not piece:
                return False
        return True


# ---------- Game ----------


@dataclass
class TicTacToeGame:
    player1_piece: Piece = Piece.X
    player2_piece: Piece = Piece.O
    board: Board = field(default_factory=Board)
    current_player_turn: PlayerSeat = PlayerSeat.PLAYER1
    _moves: List[Move] = field(default_factory=list, init=False, repr=False)

    def __post_init__(self) -> None:
        pieces = (self.player1_piece, self.player2_piece)
        if Piece.EMPTY in pieces or self.player1_piece is self.player2_piece:
            raise InvalidPiece(f"Players need distinct X/O pieces, got {pieces}")

    @property
    def rows(self) -> int:
        return ROWS

    @property
    def columns(self) -> int:
        return COLUMNS

    @property
    def history(self) -> Tuple[Move, ...]:
        """Moves played so far, oldest first."""
        return tuple(self._moves)

    @property
    def last_move(self) -> Optional[Move]:
        return self._moves[-1] if self._moves else None

    def is_game_over(self) -> bool:
        return self.board.is_game_over()

    def piece_for(self, seat: PlayerSeat) -> Piece:
        return self.player1_piece if seat is PlayerSeat.PLAYER1 else self.player2_piece

    def seat_for(self, piece: Piece) -> PlayerSeat:
        if piece is self.player1_piece:
            return PlayerSeat.PLAYER1
        if piece is self.player2_piece:
            return PlayerSeat.PLAYER2
        raise InvalidMove(f"No player is playing {piece!r}")

    def make_move(self, move: Move) -> None:
        self._apply(move, self.seat_for(move.piece))

    def take_square(self, position: int, seat: PlayerSeat) -> None:
        self._apply(Move(position, self.piece_for(seat)), seat)

    def undo_last_move(self) -> Move:
        """Take back the most recent move and hand the turn back to its player."""
        if not self._moves:
            raise InvalidMove("There is no move to undo")
        move = self._moves.pop()
        self.board.undo_move(move)
        self.current_player_turn = self.current_player_turn.other()
        return move

    def _apply(self, move: Move, seat: PlayerSeat) -> None:
        if self.current_player_turn is not seat:
            raise InvalidMove(f"It is not {seat.name}'s turn")
        if not self.board.is_valid_square(move.position):
            raise InvalidMove(f"Square {move.position} is not available")
        self.board.make_move(move.position, move.piece)
        self._moves.append(move)
        self.current_player_turn = self.current_player_turn.other()
