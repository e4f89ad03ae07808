"""Race board game engine: turn resolution over a 30-tile track."""

from .engine import RaceEngine
from .errors import GameError, InternalInconsistencyError, InvalidStateError, NotFoundError
from .repository import GameRepository, InMemoryGameRepository
from .turn import resolve_turn

__all__ = [
    "RaceEngine",
    "GameError",
    "NotFoundError",
    "InvalidStateError",
    "InternalInconsistencyError",
    "GameRepository",
    "InMemoryGameRepository",
    "resolve_turn",
]
