"""
Game rule configuration and validation.
"""

from pydantic import BaseModel, Field, field_validator

from .constants import PLAYER_COLORS


class RuleConfig(BaseModel):
    """Configuration for game rules and settings."""

    min_players: int = Field(
        default=2,
        ge=2,
        le=len(PLAYER_COLORS),
        description="Minimum number of players required to start"
    )
    max_players: int = Field(
        default=len(PLAYER_COLORS),
        ge=2,
        le=len(PLAYER_COLORS),
        description="Maximum number of players allowed (one color per seat)"
    )
    max_name_length: int = Field(
        default=20,
        ge=1,
        le=50,
        description="Maximum length of a player name"
    )

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't go below minimum."""
        min_players = info.data.get('min_players', 2)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    def can_start(self, player_count: int) -> bool:
        """Check if a player count is enough to start a game."""
        return player_count >= self.min_players

    def is_full(self, player_count: int) -> bool:
        """Check if no further player can join."""
        return player_count >= self.max_players


# Default configuration instance
default_rules = RuleConfig()


def create_rules(**overrides) -> RuleConfig:
    """Create a RuleConfig with optional overrides."""
    config_dict = default_rules.model_dump()
    config_dict.update(overrides)
    return RuleConfig(**config_dict)
