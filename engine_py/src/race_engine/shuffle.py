"""
Card pile creation, shuffling and drawing.
"""

import logging
import random
from typing import List, Optional

from .effects import card_names

logger = logging.getLogger(__name__)


def create_deck() -> List[str]:
    """Create the fixed card set, one of each card."""
    return card_names()


def shuffle_deck(deck: List[str], rng: Optional[random.Random] = None) -> List[str]:
    """
    Shuffle a copy of a deck.

    Args:
        deck: List of card names to shuffle
        rng: Random source; a fresh system-seeded one when omitted

    Returns:
        Shuffled copy of the deck
    """
    deck_copy = deck.copy()
    (rng or random.Random()).shuffle(deck_copy)
    return deck_copy


class CardPile:
    """
    The effect-card pile of one game, drawn from the end.

    The list passed in is mutated in place, so callers can persist
    ``pile.cards`` after drawing.
    """

    def __init__(self, cards: List[str], rng: Optional[random.Random] = None):
        self.cards = cards
        self.rng = rng or random.Random()

    def __len__(self) -> int:
        return len(self.cards)

    def reshuffle(self):
        """Replace the pile with a freshly shuffled full card set."""
        self.cards[:] = shuffle_deck(create_deck(), self.rng)
        logger.debug("Card pile reshuffled: %d cards", len(self.cards))

    def draw(self) -> str:
        """Draw the top card, refilling the pile first when it is empty."""
        if not self.cards:
            self.reshuffle()
        return self.cards.pop()
