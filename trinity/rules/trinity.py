"""Trinity detection.

A trinity is three standing tiles of one owner, one each of Housing,
Commerce and Industry, laid out as a straight or L-shaped tromino under
4-adjacency. Detection is anchored on a single cell: only trinities that
include (x, y) are reported, so it runs in constant time per placement
rather than scanning the board.

Every tromino has exactly one centre cell adjacent to the other two, so a
tile at (x, y) is either the centre (case 1) or an arm (case 2). Both cases
are checked and the results deduplicated by position set.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from itertools import combinations

from ..config import DEBUG_ENGINE
from ..models import BoardState, Position, StandingTile, TileType
from ..tiles import ALL_TILE_TYPES
from .geometry import adjacent_positions, in_bounds

logger = logging.getLogger(__name__)

__all__ = ["TrinityDetector", "TrinityMatch"]


@dataclass(frozen=True)
class TrinityMatch:
    """Positions of a qualifying trinity, labelled by tile type."""

    housing: Position
    commerce: Position
    industry: Position

    @property
    def anchor(self) -> Position:
        """Landmark anchor: always the Housing member."""
        return self.housing

    @property
    def positions(self) -> list[Position]:
        return [self.housing, self.commerce, self.industry]

    def position_set(self) -> frozenset[tuple[int, int]]:
        return frozenset((p.x, p.y) for p in self.positions)

    def sort_key(self) -> tuple[tuple[int, int], ...]:
        return tuple((p.y, p.x) for p in self.positions)


def _build_match(members: dict[TileType, Position]) -> TrinityMatch:
    return TrinityMatch(
        housing=members[TileType.HOUSING],
        commerce=members[TileType.COMMERCE],
        industry=members[TileType.INDUSTRY],
    )


def _third_type(a: TileType, b: TileType) -> TileType:
    (remaining,) = [t for t in ALL_TILE_TYPES if t not in (a, b)]
    return remaining


class TrinityDetector:
    """Pure detection over a board snapshot. Never mutates the board."""

    @staticmethod
    def _own_tile(
        board: BoardState, pos: Position, owner: int
    ) -> StandingTile | None:
        tile = board.tiles.get(pos.to_key())
        if tile is None or tile.owner != owner:
            return None
        return tile

    @staticmethod
    def detect(
        board: BoardState,
        x: int,
        y: int,
        tile_type: TileType,
        owner: int,
    ) -> list[TrinityMatch]:
        """Return every trinity that includes the tile at (x, y).

        If (x, y) is empty the tile is treated as hypothetically placed,
        which is how placement previews work. If (x, y) holds anything other
        than a matching standing tile, nothing is detected.

        Results are unique by position set and sorted by (housing, commerce,
        industry) in row-major order.
        """
        if not in_bounds(x, y, board.size):
            return []
        key = f"{x},{y}"
        if key in board.landmark_cells:
            return []
        existing = board.tiles.get(key)
        if existing is not None and (
            existing.owner != owner or existing.type != tile_type
        ):
            return []

        origin = Position(x=x, y=y)
        neighbours: list[StandingTile] = []
        for pos in adjacent_positions(x, y, board.size):
            tile = TrinityDetector._own_tile(board, pos, owner)
            if tile is not None and tile.type != tile_type:
                neighbours.append(tile)

        found: dict[frozenset[tuple[int, int]], TrinityMatch] = {}

        def record(match: TrinityMatch, case: str) -> None:
            ident = match.position_set()
            if ident not in found:
                found[ident] = match
                if DEBUG_ENGINE:
                    logger.debug(
                        "Trinity via %s at %s: H=%s C=%s I=%s",
                        case,
                        origin.to_key(),
                        match.housing.to_key(),
                        match.commerce.to_key(),
                        match.industry.to_key(),
                    )

        # Case 1: origin is the centre of the tromino.
        for first, second in combinations(neighbours, 2):
            if first.type == second.type:
                continue
            record(
                _build_match({
                    tile_type: origin,
                    first.type: first.position,
                    second.type: second.position,
                }),
                "centre",
            )

        # Case 2: origin is an arm; the neighbour is the centre.
        for centre in neighbours:
            wanted = _third_type(tile_type, centre.type)
            for pos in adjacent_positions(
                centre.position.x, centre.position.y, board.size
            ):
                if pos == origin:
                    continue
                arm = TrinityDetector._own_tile(board, pos, owner)
                if arm is None or arm.type != wanted:
                    continue
                record(
                    _build_match({
                        tile_type: origin,
                        centre.type: centre.position,
                        wanted: arm.position,
                    }),
                    "arm",
                )

        matches = sorted(found.values(), key=TrinityMatch.sort_key)
        if matches:
            logger.debug(
                "Detected %d trinit%s for player %d at (%d, %d)",
                len(matches),
                "y" if len(matches) == 1 else "ies",
                owner,
                x,
                y,
            )
        return matches

    @staticmethod
    def preview(
        board: BoardState,
        x: int,
        y: int,
        tile_type: TileType,
        owner: int,
    ) -> TrinityMatch | None:
        """First trinity a hypothetical placement at (x, y) would complete."""
        if board.tiles.get(f"{x},{y}") is not None:
            return None
        matches = TrinityDetector.detect(board, x, y, tile_type, owner)
        return matches[0] if matches else None
