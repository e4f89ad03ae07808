"""
Tile and card effect variants.

Both sets are closed: every member must have a resolver registered in
``race_engine.turn``, which checks this when it is imported.
"""

from enum import Enum
from typing import List


class TileEffect(str, Enum):
    """Effects attached to special tiles."""
    ADVANCE_2 = "advance_2"
    RETREAT_3 = "retreat_3"
    SKIP_TURN = "skip_turn"
    SWAP_RANDOM = "swap_random"
    DRAW_CARD = "draw_card"

    @property
    def label(self) -> str:
        return _TILE_LABELS[self]


class CardEffect(str, Enum):
    """Effect cards. The value is the card name stored in the pile."""
    ADVANCE_3 = "Advance 3"
    PLAY_AGAIN = "Play again"
    RETREAT_2 = "Retreat 2"
    SWAP_WITH_LEADER = "Swap with leader"


_TILE_LABELS = {
    TileEffect.ADVANCE_2: "Advance 2 tiles",
    TileEffect.RETREAT_3: "Go back 3 tiles",
    TileEffect.SKIP_TURN: "Lose the next turn",
    TileEffect.SWAP_RANDOM: "Swap places",
    TileEffect.DRAW_CARD: "Draw a card",
}


def card_names() -> List[str]:
    """Names of the fixed card set, one of each."""
    return [card.value for card in CardEffect]


def parse_card(name: str) -> CardEffect:
    """Map a card name from the pile back to its effect."""
    try:
        return CardEffect(name)
    except ValueError:
        raise ValueError(f"Unknown card: {name!r}")
