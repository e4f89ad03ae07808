# engine_py/src/race_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")

# Specific error codes
NOT_FOUND = "NOT_FOUND"
INVALID_STATE = "INVALID_STATE"
INVALID_INPUT = "INVALID_INPUT"
INTERNAL_INCONSISTENCY = "INTERNAL_INCONSISTENCY"


class NotFoundError(GameError):
    """Unknown game or player id."""
    def __init__(self, message: str):
        super().__init__(NOT_FOUND, message)


class InvalidStateError(GameError):
    """Operation not allowed in the game's current status."""
    def __init__(self, message: str):
        super().__init__(INVALID_STATE, message)


class InvalidInputError(GameError):
    """Request data the rules do not accept, such as an overlong name."""
    def __init__(self, message: str):
        super().__init__(INVALID_INPUT, message)


class InternalInconsistencyError(GameError):
    """Broken invariant. Programming error, never user-recoverable."""
    def __init__(self, message: str):
        super().__init__(INTERNAL_INCONSISTENCY, message)

