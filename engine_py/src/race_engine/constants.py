"""Game constants"""

BOARD_SIZE = 30
START_TILE = 0
GOAL_TILE = BOARD_SIZE - 1
DICE_SIDES = 6

# Game status
STATUS_WAITING = 'waiting'
STATUS_ACTIVE = 'active'
STATUS_COMPLETED = 'completed'

# Event kinds
EVENT_DICE = 'dice'
EVENT_MOVE = 'move'
EVENT_CARD = 'card'
EVENT_SPECIAL = 'special'
EVENT_KINDS = (EVENT_DICE, EVENT_MOVE, EVENT_CARD, EVENT_SPECIAL)

# Seat colors, indexed by join order
PLAYER_COLORS = ['#2196F3', '#E91E63', '#9C27B0', '#00BCD4']


def clamp_position(position: int) -> int:
    """Keep a board position inside [START_TILE, GOAL_TILE]."""
    return max(START_TILE, min(position, GOAL_TILE))


def tile_label(position: int) -> int:
    """Board positions are 0-based internally and shown 1-based."""
    return position + 1
