"""Entry point for running the game server via ``python -m tictactoe``."""

from __future__ import annotations

import logging

import uvicorn

from .config import Settings


def main() -> None:
    """Start the FastAPI-powered tic-tac-toe server."""

    settings = Settings.from_env()
    logging.basicConfig(level=getattr(logging, settings.log_level, logging.INFO))
    uvicorn.run("tictactoe.api:app", host=settings.host, port=settings.port, reload=False)


if __name__ == "__main__":
    main()
