"""Placement legality: starting zones and own-territory adjacency."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..models import BOARD_SIZE, BoardState, Position
from .geometry import adjacent_positions, all_positions, in_bounds


class PlacementFailure(str, Enum):
    OUT_OF_BOUNDS = "out_of_bounds"
    OCCUPIED = "occupied"
    STARTING_ZONE = "starting_zone"
    NOT_ADJACENT = "not_adjacent"


# Failures that a Shell Company card lets the player ignore.
TERRITORY_FAILURES = frozenset(
    {PlacementFailure.STARTING_ZONE, PlacementFailure.NOT_ADJACENT}
)


@dataclass(frozen=True)
class PlacementCheck:
    valid: bool
    reason: str | None = None
    failure: PlacementFailure | None = None

    def __bool__(self) -> bool:
        return self.valid


_OK = PlacementCheck(valid=True)


def starting_zone(
    player: int, player_count: int, size: int = BOARD_SIZE
) -> list[Position]:
    """Cells in which ``player`` may place a first tile.

    Two players start on opposite edges (two rows each); three or four
    players start in 2x2 corners, in the order top-left, top-right,
    bottom-left, bottom-right.
    """
    if player_count == 2:
        rows = (0, 1) if player == 0 else (size - 2, size - 1)
        return [Position(x=x, y=y) for y in rows for x in range(size)]

    corners = [
        (0, 0),
        (size - 2, 0),
        (0, size - 2),
        (size - 2, size - 2),
    ]
    if not 0 <= player < len(corners):
        return []
    cx, cy = corners[player]
    return [Position(x=cx + dx, y=cy + dy) for dy in (0, 1) for dx in (0, 1)]


def is_in_starting_zone(
    x: int, y: int, player: int, player_count: int, size: int = BOARD_SIZE
) -> bool:
    return Position(x=x, y=y) in starting_zone(player, player_count, size)


def owns_cell(board: BoardState, pos: Position, player: int) -> bool:
    """True if ``player`` holds a standing tile or landmark footprint at ``pos``."""
    key = pos.to_key()
    tile = board.tiles.get(key)
    if tile is not None:
        return tile.owner == player
    anchor_key = board.landmark_cells.get(key)
    if anchor_key is not None:
        return board.landmarks[anchor_key].owner == player
    return False


def has_presence(board: BoardState, player: int) -> bool:
    if any(t.owner == player for t in board.tiles.values()):
        return True
    return any(lm.owner == player for lm in board.landmarks.values())


def can_place_tile(
    board: BoardState,
    x: int,
    y: int,
    player: int,
    player_count: int,
    require_starting_zone: bool = True,
    require_adjacency: bool = True,
) -> PlacementCheck:
    if not in_bounds(x, y, board.size):
        return PlacementCheck(
            False, "Position outside board bounds", PlacementFailure.OUT_OF_BOUNDS
        )
    key = f"{x},{y}"
    if key in board.tiles or key in board.landmark_cells:
        return PlacementCheck(
            False, "Position already occupied", PlacementFailure.OCCUPIED
        )

    if not has_presence(board, player):
        if require_starting_zone and not is_in_starting_zone(
            x, y, player, player_count, board.size
        ):
            return PlacementCheck(
                False,
                "First tile must be placed in your starting zone",
                PlacementFailure.STARTING_ZONE,
            )
        return _OK

    if require_adjacency and not any(
        owns_cell(board, pos, player)
        for pos in adjacent_positions(x, y, board.size)
    ):
        return PlacementCheck(
            False,
            "Tile must be placed adjacent to one of your existing tiles",
            PlacementFailure.NOT_ADJACENT,
        )
    return _OK


def get_valid_placements(
    board: BoardState,
    player: int,
    player_count: int,
    require_starting_zone: bool = True,
    require_adjacency: bool = True,
) -> list[Position]:
    """All cells where ``player`` may legally place, in row-major order."""
    return [
        pos
        for pos in all_positions(board.size)
        if can_place_tile(
            board,
            pos.x,
            pos.y,
            player,
            player_count,
            require_starting_zone,
            require_adjacency,
        ).valid
    ]
