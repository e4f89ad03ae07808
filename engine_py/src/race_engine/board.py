"""
Special tile table.

Shared by every game and never mutated; games receive their own copy of the
serialized table when created.
"""

from types import MappingProxyType
from typing import Dict, Optional

from .effects import TileEffect

SPECIAL_TILES = MappingProxyType({
    5: TileEffect.ADVANCE_2,
    10: TileEffect.RETREAT_3,
    15: TileEffect.SKIP_TURN,
    20: TileEffect.SWAP_RANDOM,
    25: TileEffect.DRAW_CARD,
})


def special_tile_at(position: int) -> Optional[TileEffect]:
    """Return the effect on a tile, or None for a plain tile."""
    return SPECIAL_TILES.get(position)


def serialized_special_tiles() -> Dict[int, str]:
    """The table as plain strings, as stored on a Game."""
    return {position: effect.value for position, effect in SPECIAL_TILES.items()}
