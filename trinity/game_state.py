"""Authoritative game state for Trinity.

``GameState`` owns a :class:`~trinity.models.GameSnapshot` and is the only
thing that mutates it. Every mutation validates completely before touching
the snapshot, so a raised :class:`~trinity.errors.TrinityError` always leaves
the state exactly as it was.

Placement and fusion are separate calls: :meth:`GameState.place_tile` never
runs trinity detection. Callers (normally
:class:`~trinity.game_controller.GameController`) run
:class:`~trinity.rules.trinity.TrinityDetector` against :attr:`GameState.board`
and apply results with :meth:`GameState.form_landmark`.

Turn counting: the turn number advances once per full cycle, i.e. when play
wraps from the last player back to player 0.
"""
from __future__ import annotations

import logging
import random
from enum import Enum
from typing import Any, Callable, Iterable, Sequence

from pydantic import ValidationError as PydanticValidationError

from . import metrics
from .board_manager import BoardManager
from .config import DEFAULT_RULES, GameRules
from .errors import (
    DuplicateFormationError,
    IllegalMoveError,
    InvalidFormationError,
    InvalidPlacementError,
    InvalidStateError,
    ValidationError,
)
from .models import (
    AgentStack,
    BoardState,
    EventCard,
    GamePhase,
    GameSnapshot,
    Landmark,
    LandmarkMember,
    Player,
    PlayerFlag,
    Position,
    StandingTile,
    TileType,
    TurnInfo,
    TurnPhase,
)
from .rules.geometry import in_bounds, is_connected_tromino
from .tiles import is_trinity

logger = logging.getLogger(__name__)

__all__ = ["GameState", "StateEvent", "MAX_UNDO_HISTORY"]

MAX_UNDO_HISTORY = 10

CLASSIC_PHASES = (TurnPhase.DRAW, TurnPhase.DEVELOP, TurnPhase.AGENT, TurnPhase.END)

PositionLike = Position | tuple[int, int]
Listener = Callable[[dict[str, Any]], None]


class StateEvent(str, Enum):
    """Notifications emitted after a successful mutation"""
    PHASE_CHANGE = "phase-change"
    TURN_PHASE_CHANGE = "turn-phase-change"
    PLAYER_CHANGE = "player-change"
    TILE_PLACED = "tile-placed"
    TILE_REMOVED = "tile-removed"
    TILE_CHANGED = "tile-changed"
    TURN_START = "turn-start"
    TURN_END = "turn-end"
    LANDMARK_CREATED = "landmark-created"
    HQ_CREATED = "hq-created"
    AGENT_PLACED = "agent-placed"
    AGENT_MOVED = "agent-moved"
    AGENT_REMOVED = "agent-removed"
    EVENT_DRAWN = "event-drawn"
    EVENT_PLAYED = "event-played"
    GAME_OVER = "game-over"
    STATE_RESTORED = "state-restored"
    STARTING_PLAYER_DETERMINED = "starting-player-determined"


def _as_position(value: PositionLike) -> Position:
    if isinstance(value, Position):
        return value
    x, y = value
    return Position(x=x, y=y)


def _is_int(value: object) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _new_snapshot(player_count: int) -> GameSnapshot:
    return GameSnapshot(
        players=[
            Player(index=i, name=f"Player {i + 1}") for i in range(player_count)
        ],
    )


def _validate_snapshot(snapshot: GameSnapshot) -> None:
    if not 2 <= snapshot.player_count <= 4:
        raise ValidationError(
            "Player count must be between 2 and 4",
            context={"player_count": snapshot.player_count},
        )
    if not 0 <= snapshot.current_player < snapshot.player_count:
        raise ValidationError(
            f"Invalid current player: {snapshot.current_player} "
            f"(valid: 0-{snapshot.player_count - 1})",
            context={"current_player": snapshot.current_player},
        )


class GameState:
    """Observable store for one game."""

    def __init__(
        self,
        player_count: int = 2,
        rules: GameRules | None = None,
        rng: random.Random | None = None,
    ):
        if not _is_int(player_count) or not 2 <= player_count <= 4:
            raise ValidationError(
                "Player count must be between 2 and 4",
                context={"player_count": player_count},
            )
        self.rules = rules or DEFAULT_RULES
        self.rng = rng or random.Random()
        self._state = _new_snapshot(player_count)
        self._subscribers: dict[StateEvent, list[Listener]] = {}
        self._history: list[GameSnapshot] = []

    # =========================================================================
    # Validation helpers
    # =========================================================================

    def _validate_player_index(self, player: int) -> None:
        if not _is_int(player):
            raise ValidationError(
                "Invalid player index: must be an integer",
                context={"player": player},
            )
        if not 0 <= player < self.player_count:
            raise ValidationError(
                f"Invalid player index: {player} (valid: 0-{self.player_count - 1})",
                context={"player": player},
            )

    def _validate_board_position(self, x: int, y: int) -> None:
        if not (_is_int(x) and _is_int(y)) or not in_bounds(x, y, self.board.size):
            raise InvalidPlacementError(
                f"Board position ({x}, {y}) is out of bounds "
                f"(0-{self.board.size - 1})",
                x=x if _is_int(x) else None,
                y=y if _is_int(y) else None,
            )

    @staticmethod
    def _coerce_tile_type(tile_type: TileType | str) -> TileType:
        try:
            return TileType(tile_type)
        except ValueError as exc:
            raise ValidationError(
                f"Invalid tile type: {tile_type!r}", context={"tile_type": tile_type}
            ) from exc

    def _require_playing(self, action: str) -> None:
        if self._state.phase != GamePhase.PLAYING:
            raise IllegalMoveError(
                f"Cannot {action} while the game is {self._state.phase.value}",
                context={"phase": self._state.phase.value},
            )

    # =========================================================================
    # Read access
    # =========================================================================

    @property
    def board(self) -> BoardState:
        """Live board. Treat as read-only; mutate through GameState methods."""
        return self._state.board

    @property
    def player_count(self) -> int:
        return self._state.player_count

    @property
    def phase(self) -> GamePhase:
        return self._state.phase

    @property
    def current_player(self) -> int:
        return self._state.current_player

    @property
    def turn_number(self) -> int:
        return self._state.turn.number

    @property
    def turn_phase(self) -> TurnPhase:
        return self._state.turn.phase

    @property
    def tiles_placed_this_turn(self) -> int:
        return self._state.turn.tiles_placed_this_turn

    def get_turn(self) -> TurnInfo:
        return self._state.turn.model_copy()

    def get_player(self, index: int) -> Player:
        self._validate_player_index(index)
        return self._state.players[index].model_copy(deep=True)

    def get_players(self) -> list[Player]:
        return [p.model_copy(deep=True) for p in self._state.players]

    def get_tile(self, x: int, y: int) -> StandingTile | None:
        return BoardManager.get_tile(self.board, x, y)

    def get_cell(self, x: int, y: int):
        return BoardManager.get_cell(self.board, x, y)

    def get_all_tiles(self) -> list[StandingTile]:
        return BoardManager.get_tiles(self.board)

    def get_landmark_at(self, x: int, y: int) -> Landmark | None:
        return BoardManager.get_landmark_at(self.board, x, y)

    def get_landmark_covering(self, x: int, y: int) -> Landmark | None:
        return BoardManager.get_landmark_covering(self.board, x, y)

    def get_landmarks(self) -> list[Landmark]:
        return BoardManager.get_landmarks(self.board)

    def get_agents_at(self, x: int, y: int) -> list[AgentStack]:
        return BoardManager.get_agents_at(self.board, x, y)

    def get_agents(self) -> list[AgentStack]:
        return BoardManager.get_agents(self.board)

    def get_player_agent_count(self, player: int) -> int:
        return BoardManager.get_player_agent_count(self.board, player)

    def has_enemy_agents_at(self, x: int, y: int, player: int) -> bool:
        return BoardManager.has_enemy_agents_at(self.board, x, y, player)

    def get_player_hand(self, player: int) -> list[TileType]:
        self._validate_player_index(player)
        return list(self._state.players[player].hand)

    def get_player_events(self, player: int) -> list[EventCard]:
        self._validate_player_index(player)
        return list(self._state.players[player].events)

    @property
    def draw_pile_count(self) -> int:
        return len(self._state.draw_pile)

    @property
    def event_pile_count(self) -> int:
        return len(self._state.event_pile)

    # =========================================================================
    # Core mutations
    # =========================================================================

    def place_tile(
        self, x: int, y: int, tile_type: TileType, owner: int
    ) -> StandingTile:
        """Put a standing tile on an empty cell for the player to move.

        Raises:
            InvalidPlacementError: Out of range, or the cell holds a tile or
                belongs to a landmark footprint.
            IllegalMoveError: Not ``playing``, or ``owner`` is not the
                current player.
        """
        tile_type = self._coerce_tile_type(tile_type)
        self._validate_board_position(x, y)
        if not BoardManager.is_empty(self.board, x, y):
            raise InvalidPlacementError(
                f"Position ({x}, {y}) is already occupied", x=x, y=y
            )
        self._require_playing("place a tile")
        if owner != self._state.current_player:
            raise IllegalMoveError(
                f"It is not player {owner}'s turn",
                context={"current_player": self._state.current_player},
            )

        tile = BoardManager.set_tile(self.board, x, y, tile_type, owner)
        metrics.TILES_PLACED.labels(tile_type=tile_type.value).inc()
        logger.debug("Player %d placed %s at (%d, %d)", owner, tile_type.value, x, y)
        self._emit(StateEvent.TILE_PLACED, {"tile": tile, "player": owner})
        return tile

    def form_landmark(
        self,
        housing_x: int,
        housing_y: int,
        member_positions: Sequence[PositionLike],
        owner: int,
    ) -> Landmark:
        """Fuse three standing tiles into a landmark anchored at the Housing tile.

        Raises:
            DuplicateFormationError: A landmark is already anchored at
                (housing_x, housing_y).
            InvalidFormationError: The members are stale or are not an
                owner-consistent H/C/I tromino anchored at the Housing tile.
        """
        self._validate_player_index(owner)
        if BoardManager.get_landmark_at(self.board, housing_x, housing_y) is not None:
            raise DuplicateFormationError(
                f"Landmark already exists at ({housing_x}, {housing_y})",
                context={"anchor": f"{housing_x},{housing_y}"},
            )

        positions = [_as_position(p) for p in member_positions]
        if len(positions) != 3 or len(set(positions)) != 3:
            raise InvalidFormationError(
                "A landmark requires exactly 3 distinct member positions"
            )

        members: list[StandingTile] = []
        for pos in positions:
            tile = BoardManager.get_tile(self.board, pos.x, pos.y)
            if tile is None:
                raise InvalidFormationError(
                    f"No standing tile at ({pos.x}, {pos.y})",
                    context={"position": pos.to_key()},
                )
            if tile.owner != owner:
                raise InvalidFormationError(
                    f"Tile at ({pos.x}, {pos.y}) is not owned by player {owner}",
                    context={"position": pos.to_key(), "owner": tile.owner},
                )
            members.append(tile)

        if not is_trinity(t.type for t in members):
            raise InvalidFormationError(
                "Members must be one Housing, one Commerce and one Industry"
            )
        housing = next(t for t in members if t.type == TileType.HOUSING)
        if housing.position != Position(x=housing_x, y=housing_y):
            raise InvalidFormationError(
                f"Anchor ({housing_x}, {housing_y}) is not the Housing member",
                context={"housing": housing.position.to_key()},
            )
        if not is_connected_tromino(positions):
            raise InvalidFormationError("Members do not form a connected tromino")

        for tile in members:
            BoardManager.remove_tile(self.board, tile.position.x, tile.position.y)
        landmark = Landmark(
            position=housing.position,
            owner=owner,
            members=[LandmarkMember(position=t.position, type=t.type) for t in members],
            formed_turn=self._state.turn.number,
        )
        BoardManager.insert_landmark(self.board, landmark)
        self._state.players[owner].landmarks += 1

        metrics.LANDMARKS_FORMED.inc()
        logger.info(
            "Player %d formed a landmark at (%d, %d)", owner, housing_x, housing_y
        )
        self._emit(
            StateEvent.LANDMARK_CREATED,
            {"landmark": landmark, "freed": [t.position for t in members]},
        )
        return landmark

    def convert_to_hq(self, x: int, y: int, player: int) -> Landmark:
        """Upgrade ``player``'s landmark at (x, y) and spawn its starting agents."""
        self._validate_player_index(player)
        landmark = BoardManager.get_landmark_at(self.board, x, y)
        if landmark is None:
            raise InvalidStateError(f"No landmark at ({x}, {y})")
        if landmark.owner != player:
            raise IllegalMoveError(f"Player {player} does not own this landmark")
        if landmark.is_hq:
            raise IllegalMoveError("Landmark is already an HQ")
        if self._state.players[player].headquarters >= self.rules.max_hq_per_player:
            raise IllegalMoveError(
                f"Player has reached maximum HQ limit ({self.rules.max_hq_per_player})"
            )

        landmark = BoardManager.mark_hq(self.board, x, y)
        self._state.players[player].headquarters += 1
        spawned = self.rules.agents_on_hq_conversion
        if spawned:
            BoardManager.add_agent(self.board, x, y, player, spawned)
            metrics.AGENTS_PLACED.labels(source="hq").inc(spawned)

        metrics.HQS_CREATED.inc()
        logger.info("Player %d converted landmark at (%d, %d) to HQ", player, x, y)
        self._emit(
            StateEvent.HQ_CREATED,
            {"landmark": landmark, "player": player, "agents_spawned": spawned},
        )
        return landmark

    def place_agent(
        self, x: int, y: int, owner: int, source: str = "place"
    ) -> AgentStack:
        """Create or grow ``owner``'s agent stack at (x, y). No cap here."""
        self._validate_board_position(x, y)
        self._require_playing("place an agent")
        self._validate_player_index(owner)
        stack = BoardManager.add_agent(self.board, x, y, owner)
        metrics.AGENTS_PLACED.labels(source=source).inc()
        self._emit(StateEvent.AGENT_PLACED, {"stack": stack, "player": owner})
        return stack

    def move_agent(
        self, from_x: int, from_y: int, to_x: int, to_y: int, player: int
    ) -> AgentStack:
        self._validate_board_position(from_x, from_y)
        self._validate_board_position(to_x, to_y)
        self._validate_player_index(player)
        if BoardManager.get_agent_count_at(self.board, from_x, from_y, player) == 0:
            raise InvalidStateError(
                f"Player {player} has no agent at ({from_x}, {from_y})"
            )
        BoardManager.remove_agent(self.board, from_x, from_y, player)
        stack = BoardManager.add_agent(self.board, to_x, to_y, player)
        self._emit(
            StateEvent.AGENT_MOVED,
            {
                "from": Position(x=from_x, y=from_y),
                "to": Position(x=to_x, y=to_y),
                "player": player,
            },
        )
        return stack

    def remove_agent(self, x: int, y: int, player: int, count: int = 1) -> int:
        """Remove agents; returns how many of ``player``'s remain at (x, y)."""
        self._validate_board_position(x, y)
        self._validate_player_index(player)
        remaining = BoardManager.remove_agent(self.board, x, y, player, count)
        self._emit(
            StateEvent.AGENT_REMOVED,
            {"position": Position(x=x, y=y), "player": player, "count": count},
        )
        return remaining

    # =========================================================================
    # Board edits used by agents and event cards
    # =========================================================================

    def remove_tile(self, x: int, y: int) -> StandingTile | None:
        tile = BoardManager.remove_tile(self.board, x, y)
        if tile is not None:
            self._emit(StateEvent.TILE_REMOVED, {"tile": tile})
        return tile

    def change_tile_type(self, x: int, y: int, tile_type: TileType) -> StandingTile:
        tile = BoardManager.retype_tile(
            self.board, x, y, self._coerce_tile_type(tile_type)
        )
        self._emit(StateEvent.TILE_CHANGED, {"tile": tile})
        return tile

    def transfer_tile(self, x: int, y: int, new_owner: int) -> StandingTile:
        self._validate_player_index(new_owner)
        tile = BoardManager.transfer_tile(self.board, x, y, new_owner)
        self._emit(StateEvent.TILE_CHANGED, {"tile": tile})
        return tile

    def move_tile(self, from_x: int, from_y: int, to_x: int, to_y: int) -> StandingTile:
        """Relocate a standing tile to an empty cell, keeping type and owner."""
        self._validate_board_position(to_x, to_y)
        tile = BoardManager.get_tile(self.board, from_x, from_y)
        if tile is None:
            raise InvalidStateError(f"No tile at ({from_x}, {from_y})")
        if not BoardManager.is_empty(self.board, to_x, to_y):
            raise InvalidPlacementError(
                f"Position ({to_x}, {to_y}) is already occupied", x=to_x, y=to_y
            )
        BoardManager.remove_tile(self.board, from_x, from_y)
        moved = BoardManager.set_tile(self.board, to_x, to_y, tile.type, tile.owner)
        self._emit(StateEvent.TILE_REMOVED, {"tile": tile})
        self._emit(StateEvent.TILE_PLACED, {"tile": moved, "player": moved.owner})
        return moved

    def swap_tiles(self, a: PositionLike, b: PositionLike) -> None:
        """Exchange the standing tiles at two cells."""
        pa, pb = _as_position(a), _as_position(b)
        if pa == pb:
            raise ValidationError("Cannot swap a tile with itself")
        tile_a = BoardManager.get_tile(self.board, pa.x, pa.y)
        tile_b = BoardManager.get_tile(self.board, pb.x, pb.y)
        if tile_a is None or tile_b is None:
            raise InvalidStateError("Both positions must hold standing tiles")
        BoardManager.remove_tile(self.board, pa.x, pa.y)
        BoardManager.remove_tile(self.board, pb.x, pb.y)
        new_a = BoardManager.set_tile(self.board, pa.x, pa.y, tile_b.type, tile_b.owner)
        new_b = BoardManager.set_tile(self.board, pb.x, pb.y, tile_a.type, tile_a.owner)
        self._emit(StateEvent.TILE_CHANGED, {"tile": new_a})
        self._emit(StateEvent.TILE_CHANGED, {"tile": new_b})

    # =========================================================================
    # Turn and phase
    # =========================================================================

    def set_current_player(self, player: int) -> None:
        self._validate_player_index(player)
        old = self._state.current_player
        self._state.current_player = player
        if old != player:
            self._emit(StateEvent.PLAYER_CHANGE, {"old": old, "new": player})

    def set_phase(self, phase: GamePhase | str) -> None:
        try:
            new_phase = GamePhase(phase)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown game phase: {phase!r}", context={"phase": phase}
            ) from exc
        old = self._state.phase
        self._state.phase = new_phase
        self._emit(StateEvent.PHASE_CHANGE, {"old": old, "new": new_phase})
        if new_phase == GamePhase.GAME_OVER and old != GamePhase.GAME_OVER:
            self._emit(StateEvent.GAME_OVER, {"turn": self._state.turn.number})

    def set_turn_number(self, number: int) -> None:
        if not _is_int(number) or number < 0:
            raise ValidationError(
                "Invalid turn number: must be a non-negative integer",
                context={"turn": number},
            )
        self._state.turn.number = number

    def set_turn_phase(self, phase: TurnPhase | str) -> None:
        try:
            new_phase = TurnPhase(phase)
        except ValueError as exc:
            raise ValidationError(
                f"Unknown turn phase: {phase!r}", context={"phase": phase}
            ) from exc
        old = self._state.turn.phase
        self._state.turn.phase = new_phase
        self._emit(StateEvent.TURN_PHASE_CHANGE, {"old": old, "new": new_phase})

    def advance_turn_phase(self) -> None:
        """Step through draw, develop, agent, end; ending the turn after END."""
        current = self._state.turn.phase
        if current in CLASSIC_PHASES and current != TurnPhase.END:
            self.set_turn_phase(CLASSIC_PHASES[CLASSIC_PHASES.index(current) + 1])
        else:
            self.end_turn()

    def record_tile_placed(self) -> None:
        self._state.turn.tiles_placed_this_turn += 1

    def end_turn(self) -> None:
        """Hand play to the next player.

        The turn number increments only when play wraps back to player 0.
        """
        old = self._state.current_player
        self._emit(
            StateEvent.TURN_END, {"turn": self._state.turn.number, "player": old}
        )
        self._state.current_player = (old + 1) % self.player_count
        if self._state.current_player == 0:
            self._state.turn.number += 1
        self._state.turn.phase = (
            TurnPhase.PLACE if self.rules.is_simple_turn_mode else TurnPhase.DRAW
        )
        self._state.turn.tiles_placed_this_turn = 0
        self._emit(
            StateEvent.TURN_START,
            {"turn": self._state.turn.number, "player": self._state.current_player},
        )
        self._emit(
            StateEvent.PLAYER_CHANGE,
            {"old": old, "new": self._state.current_player},
        )

    def start_game(self) -> None:
        """Reset to a fresh board in the ``playing`` phase at turn 1."""
        self._state = _new_snapshot(self.player_count)
        self._state.phase = GamePhase.PLAYING
        self._state.turn.number = 1
        self._state.turn.phase = (
            TurnPhase.PLACE if self.rules.is_simple_turn_mode else TurnPhase.DRAW
        )
        self._emit(
            StateEvent.PHASE_CHANGE, {"old": GamePhase.SETUP, "new": GamePhase.PLAYING}
        )
        self._emit(StateEvent.TURN_START, {"turn": 1, "player": 0})

    # =========================================================================
    # Hands and player flags
    # =========================================================================

    def add_tile_to_hand(self, player: int, tile_type: TileType) -> None:
        self._validate_player_index(player)
        self._state.players[player].hand.append(self._coerce_tile_type(tile_type))

    def remove_tile_from_hand(self, player: int, index: int) -> TileType | None:
        self._validate_player_index(player)
        hand = self._state.players[player].hand
        if not _is_int(index) or not 0 <= index < len(hand):
            return None
        return hand.pop(index)

    def set_player_flag(self, player: int, flag: PlayerFlag, value: bool = True) -> None:
        self._validate_player_index(player)
        setattr(self._state.players[player], PlayerFlag(flag).value, bool(value))

    def get_player_flag(self, player: int, flag: PlayerFlag) -> bool:
        self._validate_player_index(player)
        return getattr(self._state.players[player], PlayerFlag(flag).value)

    def clear_player_flag(self, player: int, flag: PlayerFlag) -> None:
        self.set_player_flag(player, flag, False)

    # =========================================================================
    # Draw pile (tiles are taken from the end of the list)
    # =========================================================================

    def init_draw_pile(self, tiles: Iterable[TileType]) -> None:
        self._state.draw_pile = [TileType(t) for t in tiles]

    def shuffle_draw_pile(self) -> bool:
        if not self.rules.enable_shuffle:
            logger.debug("Shuffle disabled - draw pile order preserved")
            return False
        self.rng.shuffle(self._state.draw_pile)
        return True

    def draw_tile(self) -> TileType | None:
        if not self._state.draw_pile:
            return None
        return self._state.draw_pile.pop()

    def draw_tile_to_hand(self, player: int | None = None) -> TileType | None:
        player = self._state.current_player if player is None else player
        self._validate_player_index(player)
        tile = self.draw_tile()
        if tile is not None:
            self._state.players[player].hand.append(tile)
        return tile

    def add_tiles_to_draw_pile_bottom(self, tiles: Iterable[TileType]) -> None:
        self._state.draw_pile[0:0] = [TileType(t) for t in tiles]

    def peek_draw_pile(self, count: int) -> list[TileType]:
        """Top ``count`` tiles, top first."""
        if count <= 0:
            return []
        return list(reversed(self._state.draw_pile[-count:]))

    def reorder_draw_pile(self, new_order: Sequence[TileType]) -> None:
        """Replace the top ``len(new_order)`` tiles; ``new_order`` is top first.

        The replacement must be a permutation of the tiles currently on top.
        """
        count = len(new_order)
        if count == 0:
            return
        pile = self._state.draw_pile
        top = pile[-count:]
        if count > len(pile) or sorted(top) != sorted(TileType(t) for t in new_order):
            raise ValidationError(
                "New order must be a permutation of the top of the draw pile"
            )
        pile[-count:] = [TileType(t) for t in reversed(new_order)]

    # =========================================================================
    # Event pile
    # =========================================================================

    def init_event_pile(self, cards: Iterable[EventCard]) -> None:
        self._state.event_pile = list(cards)

    def shuffle_event_pile(self) -> bool:
        if not self.rules.enable_shuffle:
            logger.debug("Shuffle disabled - event pile order preserved")
            return False
        self.rng.shuffle(self._state.event_pile)
        return True

    def draw_event(self) -> EventCard | None:
        if not self._state.event_pile:
            return None
        return self._state.event_pile.pop()

    def give_event(self, player: int, card: EventCard) -> None:
        self._validate_player_index(player)
        self._state.players[player].events.append(card)
        self._emit(StateEvent.EVENT_DRAWN, {"player": player, "event": card})

    def draw_event_to_hand(self, player: int | None = None) -> EventCard | None:
        player = self._state.current_player if player is None else player
        self._validate_player_index(player)
        card = self.draw_event()
        if card is not None:
            self.give_event(player, card)
        return card

    def remove_event_from_hand(self, player: int, index: int) -> EventCard | None:
        self._validate_player_index(player)
        events = self._state.players[player].events
        if not _is_int(index) or not 0 <= index < len(events):
            return None
        return events.pop(index)

    def play_event(
        self, player: int, index: int, target: Any = None
    ) -> EventCard | None:
        card = self.remove_event_from_hand(player, index)
        if card is not None:
            self._emit(
                StateEvent.EVENT_PLAYED,
                {"player": player, "event": card, "target": target},
            )
        return card

    # =========================================================================
    # Undo and snapshots
    # =========================================================================

    def snapshot(self) -> GameSnapshot:
        """Deep copy of the full state."""
        return self._state.model_copy(deep=True)

    def restore(self, snapshot: GameSnapshot) -> None:
        _validate_snapshot(snapshot)
        if snapshot.player_count != self.player_count:
            raise ValidationError(
                "Snapshot player count does not match this game",
                context={"expected": self.player_count, "got": snapshot.player_count},
            )
        self._state = snapshot.model_copy(deep=True)
        self._emit(StateEvent.STATE_RESTORED, {"phase": self._state.phase})

    def save_state_for_undo(self) -> None:
        self._history.append(self.snapshot())
        if len(self._history) > MAX_UNDO_HISTORY:
            self._history.pop(0)

    def undo(self) -> bool:
        if not self._history:
            return False
        self._state = self._history.pop()
        self._emit(StateEvent.STATE_RESTORED, {"phase": self._state.phase})
        return True

    def can_undo(self) -> bool:
        return bool(self._history)

    def clear_undo_history(self) -> None:
        self._history.clear()

    def serialize(self) -> dict[str, Any]:
        return self._state.model_dump(mode="json", by_alias=True)

    @classmethod
    def deserialize(
        cls,
        data: dict[str, Any],
        rules: GameRules | None = None,
        rng: random.Random | None = None,
    ) -> "GameState":
        try:
            snapshot = GameSnapshot.model_validate(data)
        except PydanticValidationError as exc:
            raise ValidationError(
                "Malformed game state", context={"errors": exc.error_count()}
            ) from exc
        _validate_snapshot(snapshot)
        state = cls(snapshot.player_count, rules=rules, rng=rng)
        state._state = snapshot
        return state

    # =========================================================================
    # Observers
    # =========================================================================

    def on(self, event: StateEvent, callback: Listener) -> Callable[[], None]:
        """Subscribe to ``event``; returns an unsubscribe callable."""
        listeners = self._subscribers.setdefault(StateEvent(event), [])
        if callback not in listeners:
            listeners.append(callback)
        return lambda: self.off(event, callback)

    def off(self, event: StateEvent, callback: Listener) -> None:
        listeners = self._subscribers.get(StateEvent(event), [])
        if callback in listeners:
            listeners.remove(callback)

    def emit(self, event: StateEvent, data: dict[str, Any]) -> None:
        """Notify subscribers. Used by the controller for its own events."""
        self._emit(event, data)

    def _emit(self, event: StateEvent, data: dict[str, Any]) -> None:
        for callback in list(self._subscribers.get(event, [])):
            callback(data)
