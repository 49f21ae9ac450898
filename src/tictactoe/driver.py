"""Drives a game: asks each player for a move on a worker and applies it."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import CancelledError, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from .cancellation import CancellationToken, MoveCancelled
from .game import Board, InvalidMove, Move, Piece, PlayerSeat, TicTacToeGame
from .players import HumanPlayer, Player, SquareSelected

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class GameResult:
    winner: Optional[Piece]
    draw: bool
    moves: Tuple[Move, ...]


@dataclass(frozen=True)
class GameSnapshot:
    """Consistent copy of the game for readers outside the driving thread."""

    board: Board
    current_player: Piece
    moves: Tuple[Move, ...]
    awaiting_human: bool
    running: bool
    game_over: bool


class GameDriver:
    """Runs one game between two players, one ply at a time.

    Each ply is requested on a single worker thread and handed back through a
    future, so at most one player is ever deciding. Only the driving thread
    mutates the game, always under ``self._lock``.
    """

    def __init__(self, player1: Player, player2: Player) -> None:
        self.players = (player1, player2)
        self.game = TicTacToeGame(player1.piece, player2.piece)
        self.result: Optional[GameResult] = None
        self.error: Optional[BaseException] = None
        self._lock = threading.RLock()
        self._moved = threading.Condition(self._lock)
        self._token = CancellationToken()
        self._executor = self._new_executor()
        self._thread: Optional[threading.Thread] = None

    @staticmethod
    def _new_executor() -> ThreadPoolExecutor:
        return ThreadPoolExecutor(max_workers=1, thread_name_prefix="tictactoe-player")

    # ---- queries ----

    @property
    def current_player(self) -> Player:
        with self._lock:
            seat = self.game.current_player_turn
        return self.players[0] if seat is PlayerSeat.PLAYER1 else self.players[1]

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def snapshot(self) -> GameSnapshot:
        with self._lock:
            player = self.current_player
            board = self.game.board.clone()
            return GameSnapshot(
                board=board,
                current_player=player.piece,
                moves=self.game.history,
                awaiting_human=isinstance(player, HumanPlayer) and player.waiting,
                running=self.running,
                game_over=board.is_game_over(),
            )

    # ---- driving loop ----

    def play_turn(self) -> Move:
        """Obtain one move from the player whose turn it is and apply it."""
        player = self.current_player
        with self._lock:
            board = self.game.board.clone()
            token = self._token
        token.raise_if_cancelled()
        try:
            request = self._executor.submit(player.move, board, token)
        except RuntimeError as exc:
            # The executor is shut down once the game is cancelled.
            if token.cancelled:
                raise MoveCancelled("Game was cancelled") from exc
            raise
        try:
            move = request.result()
        except CancelledError as exc:
            raise MoveCancelled("Move request was cancelled") from exc
        with self._lock:
            token.raise_if_cancelled()
            self.game.make_move(Move(move.position, player.piece))
            self._moved.notify_all()
        return move

    def play(self) -> GameResult:
        try:
            while not self._game_over():
                player = self.current_player
                try:
                    self.play_turn()
                except InvalidMove:
                    if not isinstance(player, HumanPlayer):
                        raise
                    LOGGER.warning("Rejected move from %s; asking again", player.name)
        except BaseException:
            self._executor.shutdown(wait=False, cancel_futures=True)
            raise
        # Every request has returned, so the worker is idle and exits at once.
        self._executor.shutdown(wait=True)
        board = self.game.board
        winner = board.winning_piece if board.has_winner() else None
        self.result = GameResult(winner=winner, draw=winner is None, moves=self.game.history)
        if winner is None:
            LOGGER.info("Game drawn after %d moves", len(self.result.moves))
        else:
            LOGGER.info("%s wins after %d moves", winner.value, len(self.result.moves))
        return self.result

    def _game_over(self) -> bool:
        with self._lock:
            return self.game.is_game_over()

    def start(self) -> threading.Thread:
        """Play the game on a background driving thread."""
        if self.running:
            raise RuntimeError("Game is already running")
        self._thread = threading.Thread(target=self._run, name="tictactoe-driver", daemon=True)
        self._thread.start()
        return self._thread

    def _run(self) -> None:
        try:
            self.play()
        except MoveCancelled:
            LOGGER.info("Game cancelled after %d moves", len(self.game.history))
        except Exception as exc:
            self.error = exc
            LOGGER.exception("Game stopped by an unexpected error")

    def wait_for_moves(self, count: int, timeout: Optional[float] = None) -> bool:
        """Block until ``count`` moves have been applied or the game stops."""
        with self._moved:
            return self._moved.wait_for(
                lambda: len(self.game.history) >= count
                or self.game.is_game_over()
                or self._token.cancelled,
                timeout,
            )

    def join(self, timeout: Optional[float] = None) -> None:
        if self._thread is not None:
            self._thread.join(timeout)

    # ---- input ----

    def square_selected(
        self, event: Union[SquareSelected, int], timeout: Optional[float] = None
    ) -> bool:
        """Route a selected square to the human whose turn it is.

        Raises ``InvalidMove`` for squares that are not open; returns False when
        the player to move is not waiting for input.
        """
        if not isinstance(event, SquareSelected):
            event = SquareSelected(position=event)
        with self._lock:
            if not self.game.board.is_valid_square(event.position):
                raise InvalidMove(f"Square {event.position} is not available")
            if self.game.is_game_over():
                return False
        player = self.current_player
        if not isinstance(player, HumanPlayer):
            return False
        return player.square_selected(event, timeout=timeout)

    # ---- lifecycle ----

    def cancel(self) -> None:
        """Abandon any outstanding move request and stop the driving loop."""
        self._token.cancel()
        self._executor.shutdown(wait=False, cancel_futures=True)
        with self._moved:
            self._moved.notify_all()

    def new_game(self, timeout: Optional[float] = None) -> None:
        self.cancel()
        self.join(timeout)
        with self._lock:
            p1, p2 = self.players
            self.game = TicTacToeGame(p1.piece, p2.piece)
            self.result = None
            self.error = None
            self._token = CancellationToken()
            self._executor = self._new_executor()
        LOGGER.info("New game: %s vs %s", p1.name, p2.name)
