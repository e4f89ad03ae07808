"""
State serialization utilities.
"""

from typing import Any, Dict, List, Optional

from .constants import BOARD_SIZE
from .models import Game, GameEvent, Player, TurnOutcome


def serialize_player(player: Player) -> Dict[str, Any]:
    return {
        "id": player.id,
        "name": player.name,
        "position": player.position,
        "skip_next_turn": player.skip_next_turn,
        "color": player.color,
        "order": player.order,
    }


def serialize_event(event: GameEvent) -> Dict[str, Any]:
    return {
        "id": event.id,
        "message": event.message,
        "kind": event.kind,
        "timestamp": event.timestamp,
    }


def serialize_game_state(
    game: Game,
    players: List[Player],
    events: List[GameEvent],
    current_card: Optional[str] = None,
) -> Dict[str, Any]:
    """
    Serialize the full state of a game for transmission to clients.

    Args:
        game: Game record
        players: Players in seat order
        events: Event log, newest first
        current_card: Card drawn by the last roll, if any

    Returns:
        JSON-ready dictionary
    """
    return {
        "id": game.id,
        "status": game.status,
        "current_turn": game.current_turn,
        "current_player_index": game.current_player_index,
        "players": [serialize_player(p) for p in players],
        "events": [serialize_event(e) for e in events],
        "board": [""] * BOARD_SIZE,
        "card_deck": list(game.card_deck),
        "special_tiles": {str(pos): effect for pos, effect in game.special_tiles.items()},
        "current_card": current_card,
    }


def serialize_outcome(outcome: TurnOutcome) -> Dict[str, Any]:
    """Full state plus the transient fields that were set by the roll."""
    data = serialize_game_state(
        outcome.game, outcome.players, outcome.events, outcome.current_card
    )
    if outcome.dice_value is not None:
        data["dice_value"] = outcome.dice_value
    if outcome.winner is not None:
        data["winner"] = serialize_player(outcome.winner)
    if outcome.extra_turn:
        data["extra_turn"] = True
    if outcome.skipped_turn:
        data["skipped_turn"] = True
    return data
