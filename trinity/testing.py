"""Assertion helpers for game-state tests.

Every helper takes the plain-data view from
:func:`trinity.board_serializer.to_grid` and raises ``AssertionError`` with a
readable message, so they work under pytest or any other runner.
"""

from __future__ import annotations

from typing import Any

from .board_serializer import ascii_equal, grid_diff, to_ascii, to_grid
from .game_state import GameState

Grid = dict[str, Any]


def _cell(grid: Grid, x: int, y: int):
    return grid["grid"][y][x]


def _landmark(grid: Grid, x: int, y: int):
    return next(
        (lm for lm in grid["landmarks"] if lm["x"] == x and lm["y"] == y), None
    )


def assert_tile_at(grid: Grid, x: int, y: int, tile: str, owner: int) -> None:
    cell = _cell(grid, x, y)
    if cell is None:
        raise AssertionError(f"Expected tile at ({x}, {y}) but found empty cell")
    if cell["type"] != tile:
        raise AssertionError(
            f'Expected tile type "{tile}" at ({x}, {y}) but found "{cell["type"]}"'
        )
    if cell["owner"] != owner:
        raise AssertionError(
            f"Expected tile owner {owner} at ({x}, {y}) but found {cell['owner']}"
        )


def assert_empty_at(grid: Grid, x: int, y: int) -> None:
    cell = _cell(grid, x, y)
    if cell is not None:
        raise AssertionError(
            f"Expected empty cell at ({x}, {y}) but found tile: "
            f"{cell['type']}/{cell['owner']}"
        )


def assert_landmark_at(
    grid: Grid, x: int, y: int, owner: int, is_hq: bool | None = None
) -> None:
    landmark = _landmark(grid, x, y)
    if landmark is None:
        raise AssertionError(f"Expected landmark at ({x}, {y}) but found none")
    if landmark["owner"] != owner:
        raise AssertionError(
            f"Expected landmark owner {owner} at ({x}, {y}) "
            f"but found {landmark['owner']}"
        )
    if is_hq is not None and landmark["is_hq"] != is_hq:
        raise AssertionError(
            f"Expected landmark is_hq={is_hq} at ({x}, {y}) "
            f"but found {landmark['is_hq']}"
        )


def assert_no_landmark_at(grid: Grid, x: int, y: int) -> None:
    landmark = _landmark(grid, x, y)
    if landmark is not None:
        raise AssertionError(
            f"Expected no landmark at ({x}, {y}) but found one owned by "
            f"{landmark['owner']}"
        )


def assert_agent_at(
    grid: Grid, x: int, y: int, owner: int, count: int | None = None
) -> None:
    stack = next(
        (
            a
            for a in grid["agents"]
            if a["x"] == x and a["y"] == y and a["owner"] == owner
        ),
        None,
    )
    if stack is None:
        raise AssertionError(
            f"Expected agent for player {owner} at ({x}, {y}) but found none"
        )
    if count is not None and stack["count"] != count:
        raise AssertionError(
            f"Expected {count} agents at ({x}, {y}) but found {stack['count']}"
        )


def assert_no_agent_at(grid: Grid, x: int, y: int) -> None:
    stacks = [a for a in grid["agents"] if a["x"] == x and a["y"] == y]
    if stacks:
        raise AssertionError(
            f"Expected no agents at ({x}, {y}) but found {len(stacks)}"
        )


def assert_landmark_count(grid: Grid, owner: int, expected: int) -> None:
    count = sum(1 for lm in grid["landmarks"] if lm["owner"] == owner)
    if count != expected:
        raise AssertionError(
            f"Expected {expected} landmarks for player {owner} but found {count}"
        )


def assert_hq_count(grid: Grid, owner: int, expected: int) -> None:
    count = sum(
        1 for lm in grid["landmarks"] if lm["owner"] == owner and lm["is_hq"]
    )
    if count != expected:
        raise AssertionError(
            f"Expected {expected} HQs for player {owner} but found {count}"
        )


def assert_agent_count(grid: Grid, owner: int, expected: int) -> None:
    count = sum(a["count"] for a in grid["agents"] if a["owner"] == owner)
    if count != expected:
        raise AssertionError(
            f"Expected {expected} agents for player {owner} but found {count}"
        )


def assert_tile_count(grid: Grid, owner: int, expected: int) -> None:
    count = sum(
        1
        for row in grid["grid"]
        for cell in row
        if cell is not None and cell["owner"] == owner
    )
    if count != expected:
        raise AssertionError(
            f"Expected {expected} tiles for player {owner} but found {count}"
        )


def assert_current_player(grid: Grid, expected: int) -> None:
    actual = grid["meta"]["current_player"]
    if actual != expected:
        raise AssertionError(f"Expected current player {expected} but found {actual}")


def assert_turn_number(grid: Grid, expected: int) -> None:
    actual = grid["meta"]["turn"]
    if actual != expected:
        raise AssertionError(f"Expected turn {expected} but found {actual}")


def assert_grids_equal(actual: Grid, expected: Grid) -> None:
    diffs = grid_diff(expected, actual)
    if diffs:
        where = ", ".join(
            f"({d['x']},{d['y']}): expected {d['expected']}, got {d['actual']}"
            for d in diffs
        )
        raise AssertionError(f"Grids differ at: {where}")


def assert_ascii_equal(actual: str, expected: str) -> None:
    if not ascii_equal(actual, expected):
        raise AssertionError(
            f"ASCII grids differ:\nExpected:\n{expected}\n\nActual:\n{actual}"
        )


class StateHelper:
    """Bound assertions that re-read the state on every call."""

    def __init__(self, state: GameState):
        self.state = state

    @property
    def grid(self) -> Grid:
        return to_grid(self.state)

    @property
    def ascii(self) -> str:
        return to_ascii(self.state)

    def tile_at(self, x: int, y: int, tile: str, owner: int) -> "StateHelper":
        assert_tile_at(self.grid, x, y, tile, owner)
        return self

    def empty_at(self, x: int, y: int) -> "StateHelper":
        assert_empty_at(self.grid, x, y)
        return self

    def landmark_at(
        self, x: int, y: int, owner: int, is_hq: bool | None = None
    ) -> "StateHelper":
        assert_landmark_at(self.grid, x, y, owner, is_hq)
        return self

    def agent_at(
        self, x: int, y: int, owner: int, count: int | None = None
    ) -> "StateHelper":
        assert_agent_at(self.grid, x, y, owner, count)
        return self

    def landmark_count(self, owner: int, expected: int) -> "StateHelper":
        assert_landmark_count(self.grid, owner, expected)
        return self

    def tile_count(self, owner: int, expected: int) -> "StateHelper":
        assert_tile_count(self.grid, owner, expected)
        return self

    def matches_ascii(self, expected: str) -> "StateHelper":
        assert_ascii_equal(self.ascii, expected)
        return self
