"""Board-level helpers for the Trinity engine.

``BoardManager`` is a bag of static accessors and primitive mutators over a
:class:`~trinity.models.BoardState`. It enforces cell-level exclusivity
(standing tile vs landmark footprint) and nothing else; turn order, phase
and ownership rules live in :mod:`trinity.game_state`.
"""
from __future__ import annotations

from .errors import InvalidPlacementError, InvalidStateError
from .models import (
    AgentStack,
    BoardState,
    EmptyCell,
    Landmark,
    LandmarkAnchorCell,
    LandmarkCoveredCell,
    Position,
    StandingCell,
    StandingTile,
    TileType,
)
from .rules.geometry import in_bounds

__all__ = ["BoardManager"]


def _key(x: int, y: int) -> str:
    return f"{x},{y}"


class BoardManager:
    """Static accessors over a BoardState."""

    # -- cells -------------------------------------------------------------

    @staticmethod
    def is_valid_position(board: BoardState, x: int, y: int) -> bool:
        return in_bounds(x, y, board.size)

    @staticmethod
    def get_cell(board: BoardState, x: int, y: int):
        """Return the cell variant at (x, y); out-of-range reads as empty."""
        key = _key(x, y)
        tile = board.tiles.get(key)
        if tile is not None:
            return StandingCell(tile=tile)
        anchor_key = board.landmark_cells.get(key)
        if anchor_key is not None:
            if anchor_key == key:
                return LandmarkAnchorCell(landmark=board.landmarks[anchor_key])
            return LandmarkCoveredCell(anchor=Position.from_key(anchor_key))
        return EmptyCell()

    @staticmethod
    def is_empty(board: BoardState, x: int, y: int) -> bool:
        key = _key(x, y)
        return key not in board.tiles and key not in board.landmark_cells

    # -- standing tiles ------------------------------------------------------

    @staticmethod
    def get_tile(board: BoardState, x: int, y: int) -> StandingTile | None:
        """Standing tile at (x, y) or None. Never raises."""
        return board.tiles.get(_key(x, y))

    @staticmethod
    def get_tiles(board: BoardState) -> list[StandingTile]:
        return list(board.tiles.values())

    @staticmethod
    def get_player_tiles(board: BoardState, owner: int) -> list[StandingTile]:
        return [t for t in board.tiles.values() if t.owner == owner]

    @staticmethod
    def set_tile(
        board: BoardState,
        x: int,
        y: int,
        tile_type: TileType,
        owner: int,
    ) -> StandingTile:
        if not in_bounds(x, y, board.size):
            raise InvalidPlacementError(
                f"Board position ({x}, {y}) is out of bounds", x=x, y=y
            )
        key = _key(x, y)
        if key in board.tiles:
            raise InvalidPlacementError(
                f"Tile already exists at ({x}, {y})", x=x, y=y
            )
        if key in board.landmark_cells:
            raise InvalidPlacementError(
                f"Position ({x}, {y}) is part of a landmark", x=x, y=y
            )
        tile = StandingTile(position=Position(x=x, y=y), type=tile_type, owner=owner)
        board.tiles[key] = tile
        return tile

    @staticmethod
    def remove_tile(board: BoardState, x: int, y: int) -> StandingTile | None:
        return board.tiles.pop(_key(x, y), None)

    @staticmethod
    def retype_tile(
        board: BoardState, x: int, y: int, tile_type: TileType
    ) -> StandingTile:
        tile = BoardManager._require_tile(board, x, y)
        updated = tile.model_copy(update={"type": tile_type})
        board.tiles[_key(x, y)] = updated
        return updated

    @staticmethod
    def transfer_tile(
        board: BoardState, x: int, y: int, new_owner: int
    ) -> StandingTile:
        tile = BoardManager._require_tile(board, x, y)
        updated = tile.model_copy(update={"owner": new_owner})
        board.tiles[_key(x, y)] = updated
        return updated

    @staticmethod
    def _require_tile(board: BoardState, x: int, y: int) -> StandingTile:
        tile = board.tiles.get(_key(x, y))
        if tile is None:
            raise InvalidStateError(f"No tile at ({x}, {y})")
        return tile

    # -- landmarks -----------------------------------------------------------

    @staticmethod
    def get_landmark_at(board: BoardState, x: int, y: int) -> Landmark | None:
        """Landmark anchored at (x, y), if any."""
        return board.landmarks.get(_key(x, y))

    @staticmethod
    def get_landmark_covering(
        board: BoardState, x: int, y: int
    ) -> Landmark | None:
        """Landmark whose footprint includes (x, y), if any."""
        anchor_key = board.landmark_cells.get(_key(x, y))
        if anchor_key is None:
            return None
        return board.landmarks[anchor_key]

    @staticmethod
    def get_landmarks(board: BoardState) -> list[Landmark]:
        return list(board.landmarks.values())

    @staticmethod
    def insert_landmark(board: BoardState, landmark: Landmark) -> None:
        """Record a landmark and claim its footprint.

        The footprint cells must already be free of standing tiles.
        """
        anchor_key = landmark.position.to_key()
        for pos in landmark.footprint():
            key = pos.to_key()
            if key in board.tiles or key in board.landmark_cells:
                raise InvalidStateError(
                    f"Landmark footprint cell ({pos.x}, {pos.y}) is not free"
                )
        board.landmarks[anchor_key] = landmark
        for pos in landmark.footprint():
            board.landmark_cells[pos.to_key()] = anchor_key

    @staticmethod
    def mark_hq(board: BoardState, x: int, y: int) -> Landmark:
        landmark = board.landmarks.get(_key(x, y))
        if landmark is None:
            raise InvalidStateError(f"No landmark at ({x}, {y})")
        updated = landmark.model_copy(update={"is_hq": True})
        board.landmarks[_key(x, y)] = updated
        return updated

    # -- agents --------------------------------------------------------------

    @staticmethod
    def get_agents_at(board: BoardState, x: int, y: int) -> list[AgentStack]:
        return list(board.agents.get(_key(x, y), []))

    @staticmethod
    def get_agents(board: BoardState) -> list[AgentStack]:
        stacks: list[AgentStack] = []
        for cell_stacks in board.agents.values():
            stacks.extend(cell_stacks)
        return stacks

    @staticmethod
    def get_agent_count_at(board: BoardState, x: int, y: int, owner: int) -> int:
        for stack in board.agents.get(_key(x, y), []):
            if stack.owner == owner:
                return stack.count
        return 0

    @staticmethod
    def get_player_agent_count(board: BoardState, owner: int) -> int:
        return sum(
            stack.count
            for cell_stacks in board.agents.values()
            for stack in cell_stacks
            if stack.owner == owner
        )

    @staticmethod
    def add_agent(
        board: BoardState, x: int, y: int, owner: int, count: int = 1
    ) -> AgentStack:
        """Create or grow ``owner``'s stack at (x, y). No cap at this layer."""
        if not in_bounds(x, y, board.size):
            raise InvalidPlacementError(
                f"Board position ({x}, {y}) is out of bounds", x=x, y=y
            )
        key = _key(x, y)
        cell_stacks = board.agents.setdefault(key, [])
        for i, stack in enumerate(cell_stacks):
            if stack.owner == owner:
                merged = stack.model_copy(update={"count": stack.count + count})
                cell_stacks[i] = merged
                return merged
        created = AgentStack(position=Position(x=x, y=y), owner=owner, count=count)
        cell_stacks.append(created)
        return created

    @staticmethod
    def remove_agent(
        board: BoardState, x: int, y: int, owner: int, count: int = 1
    ) -> int:
        """Take ``count`` of ``owner``'s agents off (x, y).

        Returns the number left in that stack. A stack that reaches zero is
        deleted, and so is the cell entry once no stacks remain.
        """
        key = _key(x, y)
        cell_stacks = board.agents.get(key, [])
        for i, stack in enumerate(cell_stacks):
            if stack.owner != owner:
                continue
            if count > stack.count:
                raise InvalidStateError(
                    f"Player {owner} has only {stack.count} agent(s) at ({x}, {y})"
                )
            remaining = stack.count - count
            if remaining == 0:
                del cell_stacks[i]
                if not cell_stacks:
                    del board.agents[key]
            else:
                cell_stacks[i] = stack.model_copy(update={"count": remaining})
            return remaining
        raise InvalidStateError(f"Player {owner} has no agent at ({x}, {y})")

    @staticmethod
    def has_enemy_agents_at(board: BoardState, x: int, y: int, owner: int) -> bool:
        return any(s.owner != owner for s in board.agents.get(_key(x, y), []))

    # -- occupancy -----------------------------------------------------------

    @staticmethod
    def count_agent_only_cells(board: BoardState) -> int:
        """Cells holding agents but neither a tile nor a landmark footprint."""
        return sum(
            1
            for key, stacks in board.agents.items()
            if stacks and key not in board.tiles and key not in board.landmark_cells
        )

    @staticmethod
    def count_occupied(board: BoardState) -> int:
        return (
            len(board.tiles)
            + len(board.landmark_cells)
            + BoardManager.count_agent_only_cells(board)
        )

    @staticmethod
    def is_full(board: BoardState) -> bool:
        return BoardManager.count_occupied(board) >= board.size * board.size
