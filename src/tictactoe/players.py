"""Move sources: the computer searches, the human waits for a selected square."""

from __future__ import annotations

import logging
import random
import threading
from abc import ABC, abstractmethod
from concurrent.futures import CancelledError, Future
from dataclasses import dataclass
from typing import Callable, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .ai import DEFAULT_SEARCH_DEPTH, EvaluationFunction, search
from .cancellation import CancellationToken, MoveCancelled
from .game import Board, Move, Piece

LOGGER = logging.getLogger(__name__)


class SquareSelected(BaseModel):
    """Input event: the presentation layer picked a square."""

    model_config = ConfigDict(frozen=True)

    position: int = Field(ge=0, le=8)


@dataclass(frozen=True)
class PlayerMoved:
    """Output event: a player decided its move."""

    player: "Player"
    move: Move


MoveListener = Callable[[PlayerMoved], None]


class Player(ABC):
    """Something that produces exactly one move per turn."""

    def __init__(self, name: str, piece: Piece) -> None:
        if piece is Piece.EMPTY:
            raise ValueError("A player needs a real piece")
        self.name = name
        self.piece = piece
        self.current_move: Optional[Move] = None
        self._listeners: List[MoveListener] = []

    def add_move_listener(self, listener: MoveListener) -> None:
        self._listeners.append(listener)

    def remove_move_listener(self, listener: MoveListener) -> None:
        self._listeners.remove(listener)

    def move(self, board: Board, token: Optional[CancellationToken] = None) -> Move:
        token = token if token is not None else CancellationToken()
        token.raise_if_cancelled()
        move = self.choose_move(board, token)
        self.current_move = move
        LOGGER.info("%s (%s) moves to %d", self.name, self.piece.value, move.position)
        event = PlayerMoved(player=self, move=move)
        for listener in list(self._listeners):
            listener(event)
        return move

    @abstractmethod
    def choose_move(self, board: Board, token: CancellationToken) -> Move:
        """Decide a move for the given board."""
        raise NotImplementedError

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, piece={self.piece.value!r})"


class ComputerPlayer(Player):
    """Opens on a random square, then picks moves by depth-limited minimax."""

    def __init__(
        self,
        name: str,
        piece: Piece,
        depth: int = DEFAULT_SEARCH_DEPTH,
        evaluator: Optional[EvaluationFunction] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        super().__init__(name, piece)
        self.depth = depth
        self.evaluator = evaluator if evaluator is not None else EvaluationFunction()
        self.rng = rng if rng is not None else random.Random()

    def choose_move(self, board: Board, token: CancellationToken) -> Move:
        open_positions = board.open_positions()
        # Opening move is random; searching an empty board buys nothing.
        if len(open_positions) == board.rows * board.columns:
            return Move(self.rng.choice(open_positions), self.piece)

        root = search(board, self.piece, self.depth, self.evaluator, token=token)
        if root.best_move is None:
            raise RuntimeError("No valid moves available")
        return root.best_move


class HumanPlayer(Player):
    """Waits for one ``SquareSelected`` event per requested move."""

    def __init__(self, name: str, piece: Piece) -> None:
        super().__init__(name, piece)
        self._condition = threading.Condition()
        self._pending: Optional[Future] = None

    @property
    def waiting(self) -> bool:
        with self._condition:
            return self._pending is not None

    def request_move(self, token: CancellationToken) -> Future:
        """Open a single-use request resolved by the next selected square."""
        with self._condition:
            if self._pending is not None:
                raise RuntimeError(f"{self.name} is already waiting for a move")
            request: Future = Future()
            self._pending = request
            self._condition.notify_all()
        token.add_callback(request.cancel)
        return request

    def choose_move(self, board: Board, token: CancellationToken) -> Move:
        request = self.request_move(token)
        try:
            position = request.result()
        except CancelledError as exc:
            raise MoveCancelled(f"{self.name} stopped waiting for a move") from exc
        finally:
            token.remove_callback(request.cancel)
            with self._condition:
                if self._pending is request:
                    self._pending = None
        return Move(position, self.piece)

    def square_selected(
        self, event: Union[SquareSelected, int], timeout: Optional[float] = None
    ) -> bool:
        """Deliver a selected square; False when no request takes it.

        With a ``timeout`` the call waits that long for a request to open.
        """
        if not isinstance(event, SquareSelected):
            event = SquareSelected(position=event)
        with self._condition:
            if self._pending is None and timeout:
                self._condition.wait_for(lambda: self._pending is not None, timeout)
            request, self._pending = self._pending, None
            if request is None:
                return False
            if not request.set_running_or_notify_cancel():
                return False
            request.set_result(event.position)
        return True
