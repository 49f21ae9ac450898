"""FastAPI adapter that lets an outside client play against the computer."""

from __future__ import annotations

import logging
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Dict, List, Tuple

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, ConfigDict, Field, field_validator

from .config import Settings
from .driver import GameDriver
from .game import InvalidMove, Piece
from .players import ComputerPlayer, HumanPlayer, SquareSelected

LOGGER = logging.getLogger(__name__)


@dataclass
class GameSession:
    """An active game and the driver playing it."""

    driver: GameDriver
    human: HumanPlayer
    computer: ComputerPlayer


SESSIONS: Dict[str, GameSession] = {}
SETTINGS = Settings.from_env()


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    # Waiting human players would otherwise keep their worker threads alive.
    for session in SESSIONS.values():
        session.driver.cancel()
    SESSIONS.clear()


app = FastAPI(
    title="Tic-Tac-Toe",
    description="Tic-tac-toe against a minimax opponent",
    lifespan=lifespan,
)


class NewGameRequest(BaseModel):
    """Request payload for starting a new game."""

    model_config = ConfigDict(populate_by_name=True)

    depth: int = Field(
        default=SETTINGS.search_depth,
        ge=1,
        le=9,
        description="Minimax depth controlling computer strength",
    )
    human_piece: Piece = Field(default=SETTINGS.human_piece, alias="humanPiece")

    @field_validator("human_piece")
    @classmethod
    def ensure_playable_piece(cls, value: Piece) -> Piece:
        if value is Piece.EMPTY:
            raise ValueError("The human must play X or O")
        return value


def _create_session(request: NewGameRequest) -> Tuple[str, GameSession]:
    """Create a new game session, start its driver and register it."""

    human = HumanPlayer("Human", request.human_piece)
    computer = ComputerPlayer("Computer", request.human_piece.opponent(), depth=request.depth)
    # X always opens.
    first, second = (human, computer) if human.piece is Piece.X else (computer, human)
    driver = GameDriver(first, second)
    session = GameSession(driver=driver, human=human, computer=computer)
    session_id = uuid.uuid4().hex
    SESSIONS[session_id] = session
    driver.start()
    LOGGER.info("Created game %s (depth %d)", session_id, request.depth)
    return session_id, session


def _get_session(game_id: str) -> GameSession:
    try:
        return SESSIONS[game_id]
    except KeyError as exc:
        raise HTTPException(status_code=404, detail="Game not found") from exc


def _serialize_session(game_id: str, session: GameSession) -> Dict[str, object]:
    snapshot = session.driver.snapshot()
    board = snapshot.board
    winner = board.winning_piece.value if board.has_winner() else None
    move_log: List[Dict[str, object]] = [
        {"player": move.piece.value, "position": move.position} for move in snapshot.moves
    ]
    state: Dict[str, object] = {
        "id": game_id,
        "rows": board.rows,
        "columns": board.columns,
        "cells": [c.value if c is not Piece.EMPTY else "" for c in board.cells],
        "openPositions": board.open_positions(),
        "currentPlayer": snapshot.current_player.value,
        "humanPiece": session.human.piece.value,
        "winner": winner,
        "drawn": board.is_draw(),
        "moveLog": move_log,
        "awaitingHuman": snapshot.awaiting_human,
        "computerPending": snapshot.running
        and not snapshot.game_over
        and snapshot.current_player is session.computer.piece,
    }
    if move_log:
        state["lastMove"] = move_log[-1]
    return state


@app.post("/api/game")
def create_game(request: NewGameRequest) -> Dict[str, object]:
    game_id, session = _create_session(request)
    return _serialize_session(game_id, session)


@app.get("/api/game/{game_id}")
def get_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/move")
def make_move(game_id: str, request: SquareSelected) -> Dict[str, object]:
    session = _get_session(game_id)
    played = len(session.driver.snapshot().moves)
    try:
        accepted = session.driver.square_selected(request, timeout=SETTINGS.input_wait)
    except InvalidMove as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not accepted:
        raise HTTPException(status_code=400, detail="Not waiting for your move")
    session.driver.wait_for_moves(played + 1, timeout=SETTINGS.input_wait)
    return _serialize_session(game_id, session)


@app.post("/api/game/{game_id}/restart")
def restart_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    session.driver.new_game(timeout=SETTINGS.input_wait)
    session.driver.start()
    return _serialize_session(game_id, session)


@app.delete("/api/game/{game_id}")
def delete_game(game_id: str) -> Dict[str, object]:
    session = _get_session(game_id)
    session.driver.cancel()
    SESSIONS.pop(game_id, None)
    return {"id": game_id, "cancelled": True}
