"""
Trinity Error Hierarchy

Every failure raised by the engine inherits from TrinityError so callers can
catch the whole family in one place. All of them are recoverable: a failed
mutation leaves the game state exactly as it was before the call.

Usage:
    from trinity.errors import InvalidPlacementError, IllegalMoveError

    try:
        state.place_tile(x, y, tile)
    except InvalidPlacementError as e:
        logger.info(f"Rejected placement: {e.message}")
"""

from typing import Any

__all__ = [
    # Base error
    "TrinityError",
    # Placement errors
    "InvalidPlacementError",
    # Turn/phase errors
    "IllegalMoveError",
    # Formation errors
    "InvalidFormationError",
    "DuplicateFormationError",
    # State errors
    "ValidationError",
    "InvalidStateError",
    # Aliases
    "InvalidPlacement",
    "IllegalMove",
    "InvalidFormation",
    "DuplicateFormation",
]


class TrinityError(Exception):
    """Base exception for all Trinity errors.

    Attributes:
        code: Machine-readable error code for categorization
        message: Human-readable error description
        context: Additional context for debugging
    """
    code: str = "TRINITY_ERROR"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message)
        self.message = message
        if code:
            self.code = code
        self.context = context or {}

    def __str__(self) -> str:
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"[{self.code}] {self.message} ({ctx})"
        return f"[{self.code}] {self.message}"

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


# =============================================================================
# Placement Errors
# =============================================================================


class InvalidPlacementError(TrinityError):
    """Target cell is unusable or the coordinates are out of range.

    Raised for placements onto standing tiles or landmark footprints, and
    for any board address outside the 8x8 domain.
    """
    code: str = "INVALID_PLACEMENT"

    def __init__(
        self,
        message: str,
        x: int | None = None,
        y: int | None = None,
        context: dict[str, Any] | None = None,
    ):
        super().__init__(message, context=context)
        self.x = x
        self.y = y
        if x is not None and y is not None:
            self.context.setdefault("position", f"{x},{y}")


# =============================================================================
# Turn / Phase Errors
# =============================================================================


class IllegalMoveError(TrinityError):
    """Action not permitted in the current turn or phase."""
    code: str = "ILLEGAL_MOVE"


# =============================================================================
# Formation Errors
# =============================================================================


class InvalidFormationError(TrinityError):
    """Stale or inconsistent landmark formation request.

    The member cells no longer hold the expected standing tiles, or the
    requested triple is not a Housing/Commerce/Industry tromino.
    """
    code: str = "INVALID_FORMATION"


class DuplicateFormationError(TrinityError):
    """A landmark is already anchored at the requested position."""
    code: str = "DUPLICATE_FORMATION"


# =============================================================================
# State Errors
# =============================================================================


class ValidationError(TrinityError):
    """Argument outside its permitted range (player index, turn number)."""
    code: str = "VALIDATION_ERROR"


class InvalidStateError(TrinityError):
    """Operation not possible given the current contents of the state.

    Used for requests that reference things that do not exist, such as
    removing an agent from a cell where the player has none.
    """
    code: str = "INVALID_STATE"


# =============================================================================
# Aliases
# =============================================================================

InvalidPlacement = InvalidPlacementError
IllegalMove = IllegalMoveError
InvalidFormation = InvalidFormationError
DuplicateFormation = DuplicateFormationError
