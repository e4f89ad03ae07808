"""
Turn resolution: resolves one roll request into a new game state.

Order of a turn:
    1. skip check (early return, no dice)
    2. dice roll and move
    3. special tile effect, at most once per landing
    4. win check
    5. extra turn or pass to the next seat

The caller must hold the game's lock; see ``RaceEngine.roll``.
"""

import logging
import random
import time
from typing import Callable, Dict, List, Optional

from .board import special_tile_at
from .constants import (
    DICE_SIDES, EVENT_CARD, EVENT_DICE, EVENT_MOVE, EVENT_SPECIAL, GOAL_TILE,
    STATUS_ACTIVE, STATUS_COMPLETED, clamp_position, tile_label
)
from .effects import CardEffect, TileEffect, parse_card
from .errors import InternalInconsistencyError, InvalidStateError, NotFoundError
from .models import Game, Player, TurnOutcome
from .repository import GameRepository
from .shuffle import CardPile

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class TurnContext:
    """Mutable working state of the turn being resolved."""

    def __init__(self, repository: GameRepository, game: Game, acting: Player,
                 rng: random.Random, clock: Clock):
        self.repository = repository
        self.game = game
        self.acting = acting
        self.rng = rng
        self.clock = clock
        self.position = acting.position
        self.dice_value: Optional[int] = None
        self.current_card: Optional[str] = None
        self.extra_turn = False

    @property
    def name(self) -> str:
        return self.acting.name

    def record(self, message: str, kind: str):
        logger.debug("Game %d [%s] %s", self.game.id, kind, message)
        self.repository.append_event(self.game.id, message, kind, self.clock())

    def players(self) -> List[Player]:
        """Current positions of everyone, in seat order."""
        return self.repository.get_players(self.game.id)

    def move_to(self, position: int):
        self.position = clamp_position(position)
        with self.repository.atomic():
            self.repository.update_player(self.acting.id, position=self.position)

    def swap_with(self, other: Player):
        """Exchange positions with another player; both writes land together."""
        with self.repository.atomic():
            self.repository.update_players({
                self.acting.id: {'position': other.position},
                other.id: {'position': self.position},
            })
        self.position = other.position


# Tile effects

def _advance_two(turn: TurnContext):
    turn.move_to(turn.position + 2)
    turn.record(
        f"{turn.name} landed on {TileEffect.ADVANCE_2.label} and moved to tile "
        f"{tile_label(turn.position)}!",
        EVENT_SPECIAL,
    )


def _retreat_three(turn: TurnContext):
    turn.move_to(turn.position - 3)
    turn.record(
        f"{turn.name} landed on {TileEffect.RETREAT_3.label} and went back to tile "
        f"{tile_label(turn.position)}!",
        EVENT_SPECIAL,
    )


def _skip_turn(turn: TurnContext):
    with turn.repository.atomic():
        turn.repository.update_player(turn.acting.id, skip_next_turn=True)
    turn.record(f"{turn.name} will lose the next turn!", EVENT_SPECIAL)


def _swap_random(turn: TurnContext):
    others = [p for p in turn.players() if p.id != turn.acting.id]
    if not others:
        logger.info("Game %d: %s has nobody to swap with", turn.game.id, turn.name)
        return
    other = turn.rng.choice(others)
    turn.swap_with(other)
    turn.record(f"{turn.name} swapped places with {other.name}!", EVENT_SPECIAL)


def _draw_card(turn: TurnContext):
    pile = CardPile(turn.game.card_deck, turn.rng)
    card = pile.draw()
    with turn.repository.atomic():
        turn.game = turn.repository.update_game(turn.game.id, card_deck=pile.cards)
    turn.current_card = card
    turn.record(f"{turn.name} drew the card: {card}", EVENT_CARD)

    try:
        effect = parse_card(card)
    except ValueError as e:
        raise InternalInconsistencyError(str(e)) from e
    _CARD_RESOLVERS[effect](turn)


# Card effects

def _advance_three(turn: TurnContext):
    turn.move_to(turn.position + 3)
    turn.record(f"{turn.name} advanced 3 tiles to tile {tile_label(turn.position)}!", EVENT_CARD)


def _play_again(turn: TurnContext):
    turn.extra_turn = True
    turn.record(f"{turn.name} earned an extra turn!", EVENT_CARD)


def _retreat_two(turn: TurnContext):
    turn.move_to(turn.position - 2)
    turn.record(f"{turn.name} went back 2 tiles to tile {tile_label(turn.position)}!", EVENT_CARD)


def _swap_with_leader(turn: TurnContext):
    # max() keeps the first maximum, so ties go to the lowest seat
    leader = max(turn.players(), key=lambda p: p.position)
    if leader.id == turn.acting.id:
        turn.record(f"{turn.name} is already in the lead!", EVENT_CARD)
        return
    turn.swap_with(leader)
    turn.record(f"{turn.name} swapped places with the leader {leader.name}!", EVENT_CARD)


_TILE_RESOLVERS: Dict[TileEffect, Callable[[TurnContext], None]] = {
    TileEffect.ADVANCE_2: _advance_two,
    TileEffect.RETREAT_3: _retreat_three,
    TileEffect.SKIP_TURN: _skip_turn,
    TileEffect.SWAP_RANDOM: _swap_random,
    TileEffect.DRAW_CARD: _draw_card,
}

_CARD_RESOLVERS: Dict[CardEffect, Callable[[TurnContext], None]] = {
    CardEffect.ADVANCE_3: _advance_three,
    CardEffect.PLAY_AGAIN: _play_again,
    CardEffect.RETREAT_2: _retreat_two,
    CardEffect.SWAP_WITH_LEADER: _swap_with_leader,
}


def _check_exhaustive(resolvers: Dict, variants) -> None:
    missing = set(variants) - set(resolvers)
    if missing:
        raise InternalInconsistencyError(
            f"No resolver for: {sorted(v.value for v in missing)}"
        )


_check_exhaustive(_TILE_RESOLVERS, TileEffect)
_check_exhaustive(_CARD_RESOLVERS, CardEffect)


def _pass_turn(repository: GameRepository, game: Game, player_count: int):
    repository.update_game(
        game.id,
        current_player_index=(game.current_player_index + 1) % player_count,
        current_turn=game.current_turn + 1,
    )


def _outcome(repository: GameRepository, game_id: int, **transient) -> TurnOutcome:
    return TurnOutcome(
        game=repository.get_game(game_id),
        players=repository.get_players(game_id),
        events=repository.get_events(game_id),
        **transient,
    )


def resolve_turn(
    repository: GameRepository,
    game_id: int,
    rng: Optional[random.Random] = None,
    clock: Optional[Clock] = None,
) -> TurnOutcome:
    """
    Resolve one roll request for the player whose seat it is.

    Args:
        repository: Storage for games, players and events
        game_id: Game to play
        rng: Random source for dice, shuffles and swap targets
        clock: Event timestamp source in epoch milliseconds

    Returns:
        TurnOutcome with the refreshed state and this turn's results

    Raises:
        NotFoundError: unknown game
        InvalidStateError: game is not active
        InternalInconsistencyError: seat index does not match the players
    """
    rng = rng or random.Random()
    clock = clock or wall_clock_ms

    game = repository.get_game(game_id)
    if game is None:
        raise NotFoundError(f"Game {game_id} not found")
    if game.status != STATUS_ACTIVE:
        raise InvalidStateError(f"Game {game_id} is not active")

    players = repository.get_players(game_id)
    if not 0 <= game.current_player_index < len(players):
        raise InternalInconsistencyError(
            f"Seat {game.current_player_index} out of range for {len(players)} players"
        )
    acting = players[game.current_player_index]
    turn = TurnContext(repository, game, acting, rng, clock)

    if acting.skip_next_turn:
        turn.record(f"{acting.name} lost this turn!", EVENT_SPECIAL)
        with repository.atomic():
            repository.update_player(acting.id, skip_next_turn=False)
            _pass_turn(repository, game, len(players))
        logger.info("Game %d: %s skipped a turn", game_id, acting.name)
        return _outcome(repository, game_id, skipped_turn=True)

    turn.dice_value = rng.randint(1, DICE_SIDES)
    turn.record(f"{acting.name} rolled a {turn.dice_value}!", EVENT_DICE)

    turn.move_to(acting.position + turn.dice_value)
    turn.record(f"{acting.name} moved to tile {tile_label(turn.position)}", EVENT_MOVE)

    effect = special_tile_at(turn.position)
    if effect is not None:
        _TILE_RESOLVERS[effect](turn)

    # Checked before the extra turn so a player on the goal always wins
    if turn.position >= GOAL_TILE:
        with repository.atomic():
            repository.update_game(game_id, status=STATUS_COMPLETED)
        turn.record(f"{acting.name} won the game!", EVENT_SPECIAL)
        logger.info("Game %d: %s won", game_id, acting.name)
        outcome = _outcome(
            repository, game_id,
            dice_value=turn.dice_value,
            current_card=turn.current_card,
        )
        outcome.winner = next(p for p in outcome.players if p.id == acting.id)
        return outcome

    if turn.extra_turn:
        logger.info("Game %d: %s plays again", game_id, acting.name)
        return _outcome(
            repository, game_id,
            dice_value=turn.dice_value,
            current_card=turn.current_card,
            extra_turn=True,
        )

    with repository.atomic():
        _pass_turn(repository, game, len(players))
    logger.info(
        "Game %d: %s rolled %d and ended on tile %d",
        game_id, acting.name, turn.dice_value, tile_label(turn.position),
    )
    return _outcome(
        repository, game_id,
        dice_value=turn.dice_value,
        current_card=turn.current_card,
    )
