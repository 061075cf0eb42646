"""Event card effects.

:class:`EventResolver` validates a card's target and applies its effect to
the controller's :class:`~trinity.game_state.GameState`. Each effect checks
everything it needs before the first mutation, so a rejected card leaves the
state untouched and stays in the player's hand.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from .board_manager import BoardManager
from .errors import IllegalMoveError
from .models import (
    EventCard,
    EventEffect,
    EventTarget,
    PlayerFlag,
    Position,
    StandingTile,
    TargetFilter,
    TileType,
)
from .rules.geometry import adjacent_positions, in_bounds, is_adjacent
from .rules.placement import owns_cell

if TYPE_CHECKING:
    from .game_controller import GameController

logger = logging.getLogger(__name__)

__all__ = ["EventOutcome", "EventResolver", "TargetSpec"]


@dataclass(frozen=True)
class TargetSpec:
    """What an event card is aimed at.

    ``position`` is the primary cell (tile, HQ, agent source or own tile in
    a swap); ``destination`` is the second cell for moves and swaps.
    """

    position: Position | None = None
    player: int | None = None
    destination: Position | None = None
    new_type: TileType | None = None
    new_order: tuple[TileType, ...] | None = None

    @classmethod
    def at(cls, x: int, y: int, **kwargs: Any) -> "TargetSpec":
        return cls(position=Position(x=x, y=y), **kwargs)

    @classmethod
    def move(cls, from_x: int, from_y: int, to_x: int, to_y: int) -> "TargetSpec":
        return cls(
            position=Position(x=from_x, y=from_y),
            destination=Position(x=to_x, y=to_y),
        )

    @classmethod
    def opponent(cls, player: int) -> "TargetSpec":
        return cls(player=player)


@dataclass
class EventOutcome:
    event: EventCard
    player: int
    details: dict[str, Any] = field(default_factory=dict)


class EventResolver:
    """Dispatches event cards to their effect implementations."""

    def __init__(self, controller: "GameController"):
        self.controller = controller
        self._handlers: dict[
            EventEffect, Callable[[EventCard, int, TargetSpec | None], dict[str, Any]]
        ] = {
            EventEffect.DRAW_TILES: self._draw_tiles,
            EventEffect.DRAW_EVENTS: self._draw_events,
            EventEffect.DISCARD_TO_HAND_SIZE: self._discard_to_hand_size,
            EventEffect.RETURN_TILE_TO_HAND: self._return_tile_to_hand,
            EventEffect.REMOVE_TILE: self._remove_tile,
            EventEffect.SKIP_AGENT_PHASE: self._skip_agent_phase,
            EventEffect.SKIP_DEVELOP_PHASE: self._skip_develop_phase,
            EventEffect.SPAWN_AGENT: self._spawn_agent,
            EventEffect.STEAL_TILE_TO_HAND: self._steal_tile_to_hand,
            EventEffect.CHANGE_TILE_TYPE: self._change_own_tile_type,
            EventEffect.MOVE_OWN_TILE: self._move_own_tile,
            EventEffect.IGNORE_ADJACENCY: self._ignore_adjacency,
            EventEffect.SWAP_TILES: self._swap_tiles,
            EventEffect.CHANGE_OPPONENT_TILE_TYPE: self._change_opponent_tile_type,
            EventEffect.MOVE_OPPONENT_AGENT: self._move_opponent_agent,
            EventEffect.FREE_CAPTURE: self._free_capture,
            EventEffect.PEEK_AND_REORDER_DECK: self._peek_and_reorder_deck,
            EventEffect.VIEW_HIDDEN_INFO: self._view_hidden_info,
            EventEffect.RECOVER_ON_TAKEOVER: self._recover_on_takeover,
        }

    @property
    def state(self):
        return self.controller.game_state

    def resolve(
        self, card: EventCard, player: int, target: TargetSpec | None
    ) -> EventOutcome:
        details = self._handlers[card.effect](card, player, target)
        logger.info("Player %d played %s", player, card.name)
        return EventOutcome(event=card, player=player, details=details)

    # -------------------------------------------------------------------------
    # Target helpers
    # -------------------------------------------------------------------------

    @staticmethod
    def _require_position(target: TargetSpec | None) -> Position:
        if target is None or target.position is None:
            raise IllegalMoveError("This event requires a board position")
        return target.position

    def _require_tile(self, target: TargetSpec | None) -> StandingTile:
        pos = self._require_position(target)
        tile = self.state.get_tile(pos.x, pos.y)
        if tile is None:
            raise IllegalMoveError(
                f"No standing tile at ({pos.x}, {pos.y})",
                context={"position": pos.to_key()},
            )
        return tile

    def _require_own_tile(self, target: TargetSpec | None, player: int) -> StandingTile:
        tile = self._require_tile(target)
        if tile.owner != player:
            raise IllegalMoveError("Can only target your own tiles")
        return tile

    def _require_opponent_tile(
        self, target: TargetSpec | None, player: int
    ) -> StandingTile:
        tile = self._require_tile(target)
        if tile.owner == player:
            raise IllegalMoveError("Must target an opponent's tile")
        return tile

    def _require_opponent(self, target: TargetSpec | None, player: int) -> int:
        if target is None or target.player is None:
            raise IllegalMoveError("This event requires a target player")
        opponent = target.player
        if opponent == player or not 0 <= opponent < self.state.player_count:
            raise IllegalMoveError(
                "Target must be an opponent", context={"target_player": opponent}
            )
        return opponent

    @staticmethod
    def _require_new_type(target: TargetSpec | None, current: TileType) -> TileType:
        if target is None or target.new_type is None:
            raise IllegalMoveError("No new tile type specified")
        new_type = TileType(target.new_type)
        if new_type == current:
            raise IllegalMoveError("New tile type must differ from the current one")
        return new_type

    def _require_free_adjacent(self, source: Position, destination: Position | None) -> Position:
        if destination is None:
            raise IllegalMoveError("This event requires a destination")
        if not in_bounds(destination.x, destination.y, self.state.board.size):
            raise IllegalMoveError("Destination is off the board")
        if not is_adjacent(source, destination):
            raise IllegalMoveError("Destination must be adjacent")
        if not BoardManager.is_empty(self.state.board, destination.x, destination.y):
            raise IllegalMoveError("Destination is not empty")
        return destination

    # -------------------------------------------------------------------------
    # Hand effects
    # -------------------------------------------------------------------------

    def _draw_tiles(self, card, player, target):
        drawn = 0
        for _ in range(card.effect_params.get("count", 1)):
            tile = self.state.draw_tile()
            if tile is None:
                break
            self.state.add_tile_to_hand(player, tile)
            drawn += 1
        discarded = self.controller.enforce_hand_limit(player)
        return {"drawn": drawn, "discarded": discarded}

    def _draw_events(self, card, player, target):
        drawn = 0
        for _ in range(card.effect_params.get("count", 1)):
            if self.state.draw_event_to_hand(player) is None:
                break
            drawn += 1
        return {"drawn": drawn}

    def _discard_to_hand_size(self, card, player, target):
        opponent = self._require_opponent(target, player)
        limit = card.effect_params.get("hand_size", 3)
        discarded = 0
        # The oldest tiles go first.
        while len(self.state.get_player_hand(opponent)) > limit:
            self.state.remove_tile_from_hand(opponent, 0)
            discarded += 1
        return {"target_player": opponent, "discarded": discarded}

    # -------------------------------------------------------------------------
    # Board effects
    # -------------------------------------------------------------------------

    def _return_tile_to_hand(self, card, player, target):
        tile = self._require_own_tile(target, player)
        self.state.remove_tile(tile.position.x, tile.position.y)
        self.state.add_tile_to_hand(player, tile.type)
        discarded = self.controller.enforce_hand_limit(player)
        return {"tile": tile, "discarded": discarded}

    def _remove_tile(self, card, player, target):
        tile = self._require_tile(target)
        self.state.remove_tile(tile.position.x, tile.position.y)
        return {"tile": tile}

    def _steal_tile_to_hand(self, card, player, target):
        tile = self._require_opponent_tile(target, player)
        self.state.remove_tile(tile.position.x, tile.position.y)
        self.state.add_tile_to_hand(player, tile.type)
        discarded = self.controller.enforce_hand_limit(player)
        return {"tile": tile, "discarded": discarded}

    def _change_own_tile_type(self, card, player, target):
        tile = self._require_own_tile(target, player)
        new_type = self._require_new_type(target, tile.type)
        changed = self.state.change_tile_type(tile.position.x, tile.position.y, new_type)
        return {"old_type": tile.type, "tile": changed}

    def _change_opponent_tile_type(self, card, player, target):
        tile = self._require_opponent_tile(target, player)
        new_type = self._require_new_type(target, tile.type)
        changed = self.state.change_tile_type(tile.position.x, tile.position.y, new_type)
        return {"old_type": tile.type, "tile": changed}

    def _move_own_tile(self, card, player, target):
        tile = self._require_own_tile(target, player)
        dest = self._require_free_adjacent(tile.position, target.destination)
        moved = self.state.move_tile(tile.position.x, tile.position.y, dest.x, dest.y)
        return {"from": tile.position, "tile": moved}

    def _swap_tiles(self, card, player, target):
        mine = self._require_own_tile(target, player)
        if target.destination is None:
            raise IllegalMoveError("This event requires the opponent tile to swap with")
        theirs = self.state.get_tile(target.destination.x, target.destination.y)
        if theirs is None or theirs.owner == player:
            raise IllegalMoveError("Second tile must be an opponent's standing tile")
        if not is_adjacent(mine.position, theirs.position):
            raise IllegalMoveError("Tiles must be adjacent")
        self.state.swap_tiles(mine.position, theirs.position)
        return {"mine": mine.position, "theirs": theirs.position}

    def _free_capture(self, card, player, target):
        tile = self._require_opponent_tile(target, player)
        if not any(
            owns_cell(self.state.board, pos, player)
            for pos in adjacent_positions(tile.position.x, tile.position.y)
        ):
            raise IllegalMoveError("Tile must be adjacent to your territory")
        x, y = tile.position.x, tile.position.y
        self.state.transfer_tile(x, y, player)
        removed = 0
        for stack in self.state.get_agents_at(x, y):
            if stack.owner != player:
                self.state.remove_agent(x, y, stack.owner, stack.count)
                removed += stack.count
        return {"tile": tile, "defending_agents_removed": removed}

    # -------------------------------------------------------------------------
    # Flags and agents
    # -------------------------------------------------------------------------

    def _skip_agent_phase(self, card, player, target):
        opponent = self._require_opponent(target, player)
        self.state.set_player_flag(opponent, PlayerFlag.SKIP_NEXT_AGENT_PHASE)
        return {"target_player": opponent}

    def _skip_develop_phase(self, card, player, target):
        opponent = self._require_opponent(target, player)
        self.state.set_player_flag(opponent, PlayerFlag.SKIP_NEXT_DEVELOP_PHASE)
        return {"target_player": opponent}

    def _ignore_adjacency(self, card, player, target):
        self.state.set_player_flag(player, PlayerFlag.IGNORE_ADJACENCY_NEXT_TILE)
        return {}

    def _spawn_agent(self, card, player, target):
        pos = self._require_position(target)
        landmark = self.state.get_landmark_at(pos.x, pos.y)
        if landmark is None or landmark.owner != player or not landmark.is_hq:
            raise IllegalMoveError("Target must be one of your headquarters")
        cap = self.controller.rules.max_agents_per_player
        if self.state.get_player_agent_count(player) >= cap:
            raise IllegalMoveError(f"Player has reached maximum agent limit ({cap})")
        stack = self.state.place_agent(pos.x, pos.y, player, source="event")
        return {"stack": stack}

    def _move_opponent_agent(self, card, player, target):
        pos = self._require_position(target)
        stacks = [s for s in self.state.get_agents_at(pos.x, pos.y) if s.owner != player]
        if target.player is not None:
            stacks = [s for s in stacks if s.owner == target.player]
        if not stacks:
            raise IllegalMoveError("No opponent agent at source")
        dest = target.destination
        if dest is None or not in_bounds(dest.x, dest.y, self.state.board.size):
            raise IllegalMoveError("This event requires an on-board destination")
        if not is_adjacent(pos, dest):
            raise IllegalMoveError("Destination must be adjacent")
        owner = stacks[0].owner
        self.state.move_agent(pos.x, pos.y, dest.x, dest.y, owner)
        return {"owner": owner, "from": pos, "to": dest}

    # -------------------------------------------------------------------------
    # Information
    # -------------------------------------------------------------------------

    def _peek_and_reorder_deck(self, card, player, target):
        count = card.effect_params.get("count", 5)
        peeked = self.state.peek_draw_pile(count)
        if target is not None and target.new_order:
            if len(target.new_order) > len(peeked):
                raise IllegalMoveError("Can only reorder the tiles that were looked at")
            self.state.reorder_draw_pile(list(target.new_order))
        return {"peeked": peeked, "reordered": bool(target and target.new_order)}

    def _view_hidden_info(self, card, player, target):
        opponent = self._require_opponent(target, player)
        details: dict[str, Any] = {"target_player": opponent}
        if card.effect_params.get("view_events", True):
            details["opponent_events"] = self.state.get_player_events(opponent)
        details["top_tiles"] = self.state.peek_draw_pile(
            card.effect_params.get("deck_peek_count", 3)
        )
        return details

    def _recover_on_takeover(self, card, player, target):
        raise IllegalMoveError(
            f"{card.name} is a triggered card and cannot be played directly"
        )

    # -------------------------------------------------------------------------
    # Target enumeration
    # -------------------------------------------------------------------------

    def valid_targets(self, card: EventCard, player: int) -> list[TargetSpec]:
        board = self.state.board
        tiles = self.state.get_all_tiles()
        f = card.target_filter

        if f == TargetFilter.OWN_TILES:
            return [TargetSpec(position=t.position) for t in tiles if t.owner == player]
        if f == TargetFilter.OPPONENT_TILES:
            return [TargetSpec(position=t.position) for t in tiles if t.owner != player]
        if f == TargetFilter.NOT_LANDMARK:
            return [TargetSpec(position=t.position) for t in tiles]
        if f == TargetFilter.OWN_HQ:
            return [
                TargetSpec(position=lm.position)
                for lm in self.state.get_landmarks()
                if lm.owner == player and lm.is_hq
            ]
        if f == TargetFilter.ADJACENT_OPPONENT_TILES:
            return [
                TargetSpec(position=t.position)
                for t in tiles
                if t.owner != player
                and any(
                    owns_cell(board, pos, player)
                    for pos in adjacent_positions(t.position.x, t.position.y)
                )
            ]
        if f == TargetFilter.OPPONENT_AGENTS:
            return [
                TargetSpec(position=s.position, player=s.owner)
                for s in self.state.get_agents()
                if s.owner != player
            ]
        if f == TargetFilter.OWN_TILES_ADJACENT_TO_OPPONENT:
            result = []
            for t in tiles:
                if t.owner != player:
                    continue
                for pos in adjacent_positions(t.position.x, t.position.y):
                    other = board.tiles.get(pos.to_key())
                    if other is not None and other.owner != player:
                        result.append(TargetSpec(position=t.position))
                        break
            return result
        if card.target == EventTarget.OPPONENT:
            return [
                TargetSpec(player=i)
                for i in range(self.state.player_count)
                if i != player
            ]
        return []
