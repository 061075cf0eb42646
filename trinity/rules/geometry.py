"""Orthogonal geometry on the square board."""

from __future__ import annotations

from ..models import BOARD_SIZE, Position

# Left, right, up, down.
DIRECTIONS: tuple[tuple[int, int], ...] = ((-1, 0), (1, 0), (0, -1), (0, 1))


def in_bounds(x: int, y: int, size: int = BOARD_SIZE) -> bool:
    return 0 <= x < size and 0 <= y < size


def adjacent_positions(x: int, y: int, size: int = BOARD_SIZE) -> list[Position]:
    """Orthogonal neighbours of (x, y) that lie on the board."""
    return [
        Position(x=x + dx, y=y + dy)
        for dx, dy in DIRECTIONS
        if in_bounds(x + dx, y + dy, size)
    ]


def manhattan(a: Position, b: Position) -> int:
    return abs(a.x - b.x) + abs(a.y - b.y)


def is_adjacent(a: Position, b: Position) -> bool:
    return manhattan(a, b) == 1


def is_connected_tromino(positions: list[Position]) -> bool:
    """True if three distinct cells form a straight or L tromino.

    Exactly one cell (the centre) must be adjacent to both others.
    """
    if len(positions) != 3 or len(set(positions)) != 3:
        return False
    for i, centre in enumerate(positions):
        arms = [p for j, p in enumerate(positions) if j != i]
        if all(is_adjacent(centre, arm) for arm in arms):
            return True
    return False


def all_positions(size: int = BOARD_SIZE) -> list[Position]:
    """Every board cell in row-major order."""
    return [Position(x=x, y=y) for y in range(size) for x in range(size)]
