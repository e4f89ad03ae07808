"""Game models and data structures"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .constants import STATUS_WAITING


@dataclass
class Player:
    id: int
    game_id: int
    name: str
    color: str
    order: int  # seat, 0-based join index
    position: int = 0
    skip_next_turn: bool = False


@dataclass
class Game:
    id: int
    status: str = STATUS_WAITING  # waiting|active|completed
    current_turn: int = 0
    current_player_index: int = 0
    card_deck: List[str] = field(default_factory=list)  # top of the pile is the last item
    special_tiles: Dict[int, str] = field(default_factory=dict)


@dataclass
class GameEvent:
    id: int
    game_id: int
    message: str
    kind: str  # dice|move|card|special
    timestamp: int  # epoch milliseconds


@dataclass
class TurnOutcome:
    """Refreshed game state plus the transient results of one roll request."""
    game: Game
    players: List[Player]
    events: List[GameEvent]
    dice_value: Optional[int] = None
    current_card: Optional[str] = None
    winner: Optional[Player] = None
    extra_turn: bool = False
    skipped_turn: bool = False
