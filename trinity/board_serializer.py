"""ASCII and grid views of a game, used by fixtures, tests and the CLI.

ASCII cells are whitespace separated, one row per line::

    H  c  .  I3 .  .  .  .
    L  Q@1x2 .  .  .  .  .  .

``.`` is empty. ``H``/``C``/``I`` are tiles: upper case for player 0, lower
case for player 1, and a trailing digit ``n`` for player ``n - 1``
(rendered for players 2 and 3). ``L`` and ``Q`` mark landmark and HQ
footprint cells; they are ignored when parsing because landmarks can only be
formed through :meth:`~trinity.game_state.GameState.form_landmark`. Each
``@n`` suffix is an agent stack of player ``n - 1``, optionally followed by
``xK`` for a stack of ``K`` agents; a cell may carry a tile and several
stacks, e.g. ``c@1@2x3``.
"""

from __future__ import annotations

import re
from typing import Any

from .board_manager import BoardManager
from .errors import ValidationError
from .game_state import GameState
from .models import GamePhase, Position
from .tiles import short_name, type_from_short_name

__all__ = [
    "ascii_equal",
    "from_ascii",
    "grid_diff",
    "grids_equal",
    "to_ascii",
    "to_grid",
]

EMPTY = "."
LANDMARK = "L"
HQ = "Q"
AGENT_PREFIX = "@"

_CELL_RE = re.compile(
    r"^(?:(?P<tile>[HCIhci])(?P<owner>[1-9])?|(?P<mark>[LQ]))?"
    r"(?P<agents>(?:@[1-9](?:x[1-9][0-9]*)?)*)$"
)
_AGENT_RE = re.compile(r"@([1-9])(?:x([1-9][0-9]*))?")

GridCell = dict[str, Any]


def to_grid(state: GameState) -> dict[str, Any]:
    """Plain-data view: tile grid, landmarks, agents and turn metadata."""
    board = state.board
    grid: list[list[GridCell | None]] = []
    for y in range(board.size):
        row: list[GridCell | None] = []
        for x in range(board.size):
            tile = BoardManager.get_tile(board, x, y)
            row.append(
                {"type": short_name(tile.type), "owner": tile.owner} if tile else None
            )
        grid.append(row)

    return {
        "size": board.size,
        "grid": grid,
        "landmarks": [
            {
                "x": lm.position.x,
                "y": lm.position.y,
                "owner": lm.owner,
                "is_hq": lm.is_hq,
            }
            for lm in state.get_landmarks()
        ],
        "agents": [
            {"x": s.position.x, "y": s.position.y, "owner": s.owner, "count": s.count}
            for s in state.get_agents()
        ],
        "meta": {
            "turn": state.turn_number,
            "current_player": state.current_player,
            "phase": state.turn_phase.value,
            "player_count": state.player_count,
        },
    }


def _tile_token(tile_type, owner: int) -> str:
    letter = short_name(tile_type)
    if owner == 0:
        return letter
    if owner == 1:
        return letter.lower()
    return f"{letter}{owner + 1}"


def _render_cell(state: GameState, x: int, y: int) -> str:
    board = state.board
    token = ""
    covering = BoardManager.get_landmark_covering(board, x, y)
    if covering is not None:
        token = HQ if covering.is_hq else LANDMARK
    else:
        tile = BoardManager.get_tile(board, x, y)
        if tile is not None:
            token = _tile_token(tile.type, tile.owner)
    for stack in BoardManager.get_agents_at(board, x, y):
        token += f"{AGENT_PREFIX}{stack.owner + 1}"
        if stack.count > 1:
            token += f"x{stack.count}"
    return token or EMPTY


def to_ascii(
    state: GameState, include_header: bool = False, include_footer: bool = False
) -> str:
    lines: list[str] = []
    if include_header:
        lines.append(
            f"Turn {state.turn_number} | P{state.current_player + 1} | "
            f"{state.turn_phase.value.upper()}"
        )
    size = state.board.size
    for y in range(size):
        lines.append(" ".join(_render_cell(state, x, y) for x in range(size)))
    if include_footer:
        landmarks = state.get_landmarks()
        if landmarks:
            lines.append(
                "Landmarks: "
                + " ".join(
                    f"L{i}({lm.position.x},{lm.position.y})P{lm.owner + 1}"
                    + ("*" if lm.is_hq else "")
                    for i, lm in enumerate(landmarks)
                )
            )
    return "\n".join(lines)


def _is_annotation(line: str) -> bool:
    return line.startswith("Turn ") or line.startswith("Landmarks:")


def from_ascii(
    text: str, player_count: int = 2, current_player: int = 0, **state_kwargs: Any
) -> GameState:
    """Build a ``playing`` game at turn 1 with the tiles and agents in ``text``.

    Header and footer lines written by :func:`to_ascii` are skipped.

    Raises:
        ValidationError: Unknown cell token, a row or column past the board
            edge, or an owner outside ``player_count``.
    """
    state = GameState(player_count, **state_kwargs)
    state.set_phase(GamePhase.PLAYING)
    state.set_current_player(current_player)
    state.set_turn_number(1)
    board = state.board

    rows = [
        line.strip()
        for line in text.strip().splitlines()
        if line.strip() and not _is_annotation(line.strip())
    ]
    if len(rows) > board.size:
        raise ValidationError(
            f"ASCII board has {len(rows)} rows, expected at most {board.size}"
        )

    for y, row in enumerate(rows):
        cells = row.split()
        if len(cells) > board.size:
            raise ValidationError(
                f"Row {y} has {len(cells)} cells, expected at most {board.size}"
            )
        for x, cell in enumerate(cells):
            _parse_cell(state, x, y, cell)
    return state


def _check_owner(owner: int, player_count: int, cell: str) -> int:
    if not 0 <= owner < player_count:
        raise ValidationError(
            f"Cell {cell!r} names player {owner + 1} in a {player_count}-player game"
        )
    return owner


def _parse_cell(state: GameState, x: int, y: int, cell: str) -> None:
    if cell == EMPTY:
        return
    match = _CELL_RE.match(cell)
    if match is None:
        raise ValidationError(
            f"Unrecognised cell {cell!r} at ({x}, {y})",
            context={"position": Position(x=x, y=y).to_key()},
        )

    letter = match.group("tile")
    if letter:
        if match.group("owner"):
            owner = int(match.group("owner")) - 1
        else:
            owner = 0 if letter.isupper() else 1
        _check_owner(owner, state.player_count, cell)
        BoardManager.set_tile(state.board, x, y, type_from_short_name(letter), owner)

    for owner_digit, count in _AGENT_RE.findall(match.group("agents")):
        owner = _check_owner(int(owner_digit) - 1, state.player_count, cell)
        BoardManager.add_agent(state.board, x, y, owner, int(count or 1))


def grids_equal(a: dict[str, Any], b: dict[str, Any]) -> bool:
    """Tile-by-tile equality; landmarks, agents and metadata are ignored."""
    return a["size"] == b["size"] and not grid_diff(a, b)


def ascii_equal(a: str, b: str) -> bool:
    def normalize(text: str) -> list[list[str]]:
        return [line.split() for line in text.strip().splitlines() if line.strip()]

    return normalize(a) == normalize(b)


def grid_diff(expected: dict[str, Any], actual: dict[str, Any]) -> list[dict[str, Any]]:
    """Cells whose tile differs, as ``{"x", "y", "expected", "actual"}``."""
    diffs = []
    size = max(expected["size"], actual["size"])
    for y in range(size):
        for x in range(size):
            cell_a = _grid_cell(expected, x, y)
            cell_b = _grid_cell(actual, x, y)
            if cell_a != cell_b:
                diffs.append({"x": x, "y": y, "expected": cell_a, "actual": cell_b})
    return diffs


def _grid_cell(data: dict[str, Any], x: int, y: int) -> GridCell | None:
    grid = data["grid"]
    if y >= len(grid) or x >= len(grid[y]):
        return None
    return grid[y][x]
