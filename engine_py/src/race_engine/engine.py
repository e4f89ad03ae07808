"""Game service: lifecycle operations over a repository, one writer per game"""

import logging
import random
import threading
from collections import defaultdict
from typing import Any, Dict, Optional

from .board import serialized_special_tiles
from .constants import (
    EVENT_SPECIAL, PLAYER_COLORS, START_TILE, STATUS_ACTIVE, STATUS_WAITING
)
from .errors import InvalidInputError, InvalidStateError, NotFoundError
from .models import Game, Player, TurnOutcome
from .repository import GameRepository, InMemoryGameRepository
from .rules import RuleConfig, default_rules
from .serialization import serialize_game_state
from .shuffle import create_deck, shuffle_deck
from .turn import Clock, resolve_turn, wall_clock_ms

logger = logging.getLogger(__name__)


class RaceEngine:
    def __init__(
        self,
        repository: Optional[GameRepository] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Clock] = None,
        rules: Optional[RuleConfig] = None,
    ):
        self.repository = repository or InMemoryGameRepository()
        self.rng = rng or random.Random()
        self.clock = clock or wall_clock_ms
        self.rules = rules or default_rules
        self.game_locks = defaultdict(threading.Lock)
        self._locks_guard = threading.Lock()

    def _require_game(self, game_id: int) -> Game:
        game = self.repository.get_game(game_id)
        if game is None:
            raise NotFoundError(f"Game {game_id} not found")
        return game

    def _lock_for(self, game_id: int) -> threading.Lock:
        """Per-game lock; unknown ids raise before a lock is created for them."""
        self._require_game(game_id)
        with self._locks_guard:
            return self.game_locks[game_id]

    def _record(self, game_id: int, message: str, kind: str = EVENT_SPECIAL):
        self.repository.append_event(game_id, message, kind, self.clock())

    def create_game(self) -> Game:
        game = self.repository.create_game(
            card_deck=shuffle_deck(create_deck(), self.rng),
            special_tiles=serialized_special_tiles(),
        )
        logger.info("Created game %d", game.id)
        return game

    def add_player(self, game_id: int, name: str) -> Player:
        name = name.strip()
        if not name or len(name) > self.rules.max_name_length:
            raise InvalidInputError(
                f"Player name must be 1 to {self.rules.max_name_length} characters"
            )
        with self._lock_for(game_id):
            game = self._require_game(game_id)
            if game.status != STATUS_WAITING:
                raise InvalidStateError("Cannot add players to a game that has started")
            existing = self.repository.get_players(game_id)
            if self.rules.is_full(len(existing)):
                raise InvalidStateError(f"Maximum {self.rules.max_players} players allowed")
            order = len(existing)
            player = self.repository.create_player(
                game_id,
                name=name,
                color=PLAYER_COLORS[order],
                order=order,
            )
            logger.info("Game %d: %s joined in seat %d", game_id, name, order)
            return player

    def start_game(self, game_id: int) -> Game:
        with self._lock_for(game_id):
            game = self._require_game(game_id)
            if game.status != STATUS_WAITING:
                raise InvalidStateError(f"Game {game_id} has already started")
            players = self.repository.get_players(game_id)
            if not self.rules.can_start(len(players)):
                raise InvalidStateError(
                    f"At least {self.rules.min_players} players are required to start the game"
                )
            with self.repository.atomic():
                game = self.repository.update_game(
                    game_id,
                    status=STATUS_ACTIVE,
                    current_player_index=0,
                    current_turn=1,
                )
            self._record(game_id, "Game started!")
            logger.info("Game %d started with %d players", game_id, len(players))
            return game

    def roll(self, game_id: int) -> TurnOutcome:
        """Resolve the current player's turn."""
        with self._lock_for(game_id):
            return resolve_turn(self.repository, game_id, self.rng, self.clock)

    def reset_game(self, game_id: int) -> Game:
        """
        Start over in a new game with the same players.

        The old game and its history are left as they are; players keep their
        names, colors and seats and go back to the start tile.
        """
        with self._lock_for(game_id):
            players = self.repository.get_players(game_id)
        new_game = self.create_game()
        for player in players:
            self.repository.create_player(
                new_game.id,
                name=player.name,
                color=player.color,
                order=player.order,
                position=START_TILE,
                skip_next_turn=False,
            )
        self._record(new_game.id, "Game reset!")
        logger.info("Game %d reset as game %d", game_id, new_game.id)
        return new_game

    def get_state(self, game_id: int) -> Dict[str, Any]:
        game = self._require_game(game_id)
        return serialize_game_state(
            game,
            self.repository.get_players(game_id),
            self.repository.get_events(game_id),
        )
