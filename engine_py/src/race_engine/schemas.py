"""
Request and response models for the HTTP API.
"""

from pydantic import BaseModel, Field, field_validator


class AddPlayerRequest(BaseModel):
    """Join a waiting game. The length limit comes from the engine's rules."""
    name: str = Field(..., min_length=1)

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('name must not be blank')
        return v


class GameCreatedResponse(BaseModel):
    game_id: int


class StartResponse(BaseModel):
    success: bool = True


class ErrorResponse(BaseModel):
    code: str
    message: str
