"""
Game repository: storage for games, players and their event log.
"""

import copy
import dataclasses
import logging
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .constants import EVENT_KINDS
from .errors import InternalInconsistencyError, NotFoundError
from .models import Game, GameEvent, Player

logger = logging.getLogger(__name__)


class GameRepository(ABC):
    """Storage interface the engine reads and writes through."""

    @abstractmethod
    def create_game(self, card_deck: List[str], special_tiles: Dict[int, str]) -> Game:
        """Store a new game in ``waiting`` status and return it."""

    @abstractmethod
    def get_game(self, game_id: int) -> Optional[Game]:
        """Return a copy of the game, or None."""

    @abstractmethod
    def update_game(self, game_id: int, **fields: Any) -> Game:
        """Apply a partial update to a game and return the new value."""

    @abstractmethod
    def create_player(self, game_id: int, name: str, color: str, order: int,
                      position: int = 0, skip_next_turn: bool = False) -> Player:
        """Store a new player for a game."""

    @abstractmethod
    def get_players(self, game_id: int) -> List[Player]:
        """Return copies of a game's players ordered by seat."""

    @abstractmethod
    def update_player(self, player_id: int, **fields: Any) -> Player:
        """Apply a partial update to a player and return the new value."""

    @abstractmethod
    def update_players(self, updates: Dict[int, Dict[str, Any]]) -> List[Player]:
        """Apply partial updates to several players as one unit."""

    @abstractmethod
    def append_event(self, game_id: int, message: str, kind: str, timestamp: int) -> GameEvent:
        """Append a record to a game's event log."""

    @abstractmethod
    def get_events(self, game_id: int) -> List[GameEvent]:
        """Return a game's events, newest first."""

    @abstractmethod
    def atomic(self):
        """Context manager grouping game and player writes into one unit."""


def _apply(record, fields: Dict[str, Any], kind: str):
    # ids are assigned by the store and never rewritten
    writable = {f.name for f in dataclasses.fields(record)} - {'id'}
    unknown = sorted(set(fields) - writable)
    if unknown:
        raise InternalInconsistencyError(f"Cannot update {kind} fields: {unknown}")
    return dataclasses.replace(record, **fields)


class InMemoryGameRepository(GameRepository):
    """
    Dictionary-backed repository with sequential integer ids.

    Every read returns a copy, so callers can only change stored state through
    the ``update_*`` methods. A single re-entrant lock serializes access.
    """

    def __init__(self):
        self.games: Dict[int, Game] = {}
        self.players: Dict[int, Player] = {}
        self.events: Dict[int, GameEvent] = {}
        self.lock = threading.RLock()
        self._next_game_id = 1
        self._next_player_id = 1
        self._next_event_id = 1
        # Prior values of records written inside atomic(), keyed by (table, id).
        # None marks a record created inside the block.
        self._journal: Optional[Dict[Tuple[str, int], Any]] = None
        self._atomic_depth = 0

    def _remember(self, table: str, record_id: int, previous):
        if self._journal is not None:
            self._journal.setdefault((table, record_id), previous)

    # Games

    def create_game(self, card_deck: List[str], special_tiles: Dict[int, str]) -> Game:
        with self.lock:
            game = Game(
                id=self._next_game_id,
                card_deck=list(card_deck),
                special_tiles=dict(special_tiles),
            )
            self._next_game_id += 1
            self._remember('games', game.id, None)
            self.games[game.id] = game
            logger.debug("Created game %d", game.id)
            return copy.deepcopy(game)

    def get_game(self, game_id: int) -> Optional[Game]:
        with self.lock:
            game = self.games.get(game_id)
            return copy.deepcopy(game) if game else None

    def update_game(self, game_id: int, **fields: Any) -> Game:
        with self.lock:
            game = self.games.get(game_id)
            if game is None:
                raise NotFoundError(f"Game {game_id} not found")
            updated = _apply(game, copy.deepcopy(fields), 'game')
            self._remember('games', game_id, game)
            self.games[game_id] = updated
            return copy.deepcopy(updated)

    # Players

    def create_player(self, game_id: int, name: str, color: str, order: int,
                      position: int = 0, skip_next_turn: bool = False) -> Player:
        with self.lock:
            if game_id not in self.games:
                raise NotFoundError(f"Game {game_id} not found")
            player = Player(
                id=self._next_player_id,
                game_id=game_id,
                name=name,
                color=color,
                order=order,
                position=position,
                skip_next_turn=skip_next_turn,
            )
            self._next_player_id += 1
            self._remember('players', player.id, None)
            self.players[player.id] = player
            return copy.deepcopy(player)

    def get_players(self, game_id: int) -> List[Player]:
        with self.lock:
            players = [p for p in self.players.values() if p.game_id == game_id]
            return copy.deepcopy(sorted(players, key=lambda p: p.order))

    def update_player(self, player_id: int, **fields: Any) -> Player:
        return self.update_players({player_id: fields})[0]

    def update_players(self, updates: Dict[int, Dict[str, Any]]) -> List[Player]:
        with self.lock:
            # Validate everything before writing anything
            staged = {}
            for player_id, fields in updates.items():
                player = self.players.get(player_id)
                if player is None:
                    raise NotFoundError(f"Player {player_id} not found")
                staged[player_id] = _apply(player, fields, 'player')
            for player_id in staged:
                self._remember('players', player_id, self.players[player_id])
            self.players.update(staged)
            return copy.deepcopy(list(staged.values()))

    # Events

    def append_event(self, game_id: int, message: str, kind: str, timestamp: int) -> GameEvent:
        if kind not in EVENT_KINDS:
            raise InternalInconsistencyError(f"Unknown event kind: {kind!r}")
        with self.lock:
            event = GameEvent(
                id=self._next_event_id,
                game_id=game_id,
                message=message,
                kind=kind,
                timestamp=timestamp,
            )
            self._next_event_id += 1
            self.events[event.id] = event
            return copy.deepcopy(event)

    def get_events(self, game_id: int) -> List[GameEvent]:
        with self.lock:
            events = [e for e in self.events.values() if e.game_id == game_id]
            events.sort(key=lambda e: (e.timestamp, e.id), reverse=True)
            return copy.deepcopy(events)

    @contextmanager
    def atomic(self) -> Iterator[None]:
        """
        Hold the lock for a block of writes and roll back the game and player
        records it touched if it raises. Events appended inside are kept.

        Stored records are replaced on write, never mutated, so the journal
        keeps the previous objects by reference. Nested blocks join the
        outermost one.
        """
        with self.lock:
            outermost = self._atomic_depth == 0
            if outermost:
                self._journal = {}
            self._atomic_depth += 1
            try:
                yield
            except Exception:
                if outermost:
                    self._rollback()
                raise
            finally:
                self._atomic_depth -= 1
                if outermost:
                    self._journal = None

    def _rollback(self):
        logger.warning("Rolling back %d game and player records", len(self._journal))
        for (table, record_id), previous in self._journal.items():
            records = getattr(self, table)
            if previous is None:
                records.pop(record_id, None)
            else:
                records[record_id] = previous
