"""Runtime settings with ``TICTACTOE_*`` environment overrides."""

from __future__ import annotations

import os
from typing import Mapping, Optional

from pydantic import BaseModel, Field, field_validator

from .ai import DEFAULT_SEARCH_DEPTH
from .game import Piece

ENV_PREFIX = "TICTACTOE_"


class Settings(BaseModel):
    search_depth: int = Field(
        default=DEFAULT_SEARCH_DEPTH,
        ge=1,
        le=9,
        description="Plies searched by the computer player",
    )
    host: str = "0.0.0.0"
    port: int = Field(default=8000, ge=1, le=65535)
    log_level: str = "INFO"
    human_piece: Piece = Piece.X
    input_wait: float = Field(
        default=1.0,
        ge=0.0,
        description="Seconds a selected square waits for a human request to open",
    )

    @field_validator("log_level")
    @classmethod
    def ensure_known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"):
            raise ValueError(f"Unknown log level {value!r}")
        return level

    @field_validator("human_piece")
    @classmethod
    def ensure_playable_piece(cls, value: Piece) -> Piece:
        if value is Piece.EMPTY:
            raise ValueError("The human must play X or O")
        return value

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None:
                values[name] = raw
        return cls(**values)
