"""Game flow for Trinity.

``GameController`` sits between a player interface and
:class:`~trinity.game_state.GameState`. It enforces the turn rules (placement
limits, territory, hand limits, phases), runs trinity detection after every
placement, drives agents and event cards, and decides when the game is over.

Every ``try_*`` / action method either applies its whole effect or raises a
:class:`~trinity.errors.TrinityError` subclass and leaves the state unchanged.
Rejections are counted in ``trinity_actions_rejected_total``.
"""

from __future__ import annotations

import logging
import random
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator

from . import metrics
from .board_manager import BoardManager
from .config import DEFAULT_RULES, GameRules
from .errors import IllegalMoveError, InvalidPlacementError, TrinityError
from .event_effects import EventOutcome, EventResolver, TargetSpec
from .events import create_event_deck, event_requires_target
from .game_state import GameState, StateEvent
from .models import (
    EventCard,
    GamePhase,
    Landmark,
    PlayerFlag,
    Position,
    StandingTile,
    TileType,
    TurnPhase,
)
from .rules.geometry import adjacent_positions, in_bounds, manhattan
from .rules.placement import (
    TERRITORY_FAILURES,
    can_place_tile,
    get_valid_placements,
)
from .rules.trinity import TrinityDetector
from .tiles import build_draw_pile, tile_rank

logger = logging.getLogger(__name__)

__all__ = [
    "CaptureOutcome",
    "GameController",
    "GameResult",
    "PlacementOutcome",
    "PlayerScore",
    "RefillOutcome",
]


@dataclass
class PlacementOutcome:
    """Result of a successful :meth:`GameController.try_place_tile`."""

    tile: StandingTile
    landmark: Landmark | None = None
    event_drawn: EventCard | None = None
    auto_end_turn: bool = False

    @property
    def landmark_formed(self) -> bool:
        return self.landmark is not None


@dataclass
class RefillOutcome:
    drawn: int
    discarded: int
    next_player: int
    agents_spawned: int = 0


@dataclass
class CaptureOutcome:
    tile: StandingTile
    attackers_used: int
    defenders_removed: int


@dataclass(frozen=True)
class PlayerScore:
    player: int
    name: str
    landmarks: int
    headquarters: int
    score: int
    secured_landmarks: int
    tiles_in_hand: int

    def rank_key(self) -> tuple[int, int, int]:
        return (self.score, self.secured_landmarks, self.tiles_in_hand)


@dataclass
class GameResult:
    reason: str
    winner: int | None
    is_tie: bool
    scores: list[PlayerScore] = field(default_factory=list)
    turn: int = 0


class GameController:
    """Drives one game of Trinity on top of a :class:`GameState`."""

    def __init__(
        self,
        rules: GameRules | None = None,
        seed: int | None = None,
        game_state: GameState | None = None,
    ):
        self.rules = rules or (game_state.rules if game_state else DEFAULT_RULES)
        self.rng = random.Random(seed)
        self.game_state = game_state or GameState(
            self.rules.player_count, rules=self.rules, rng=self.rng
        )
        self.events = EventResolver(self)
        self._result: GameResult | None = None

    # =========================================================================
    # Internals
    # =========================================================================

    @contextmanager
    def _action(self, name: str) -> Iterator[None]:
        """Count and log rule rejections for ``name``; errors still propagate."""
        try:
            yield
        except TrinityError as exc:
            metrics.ACTIONS_REJECTED.labels(action=name, code=exc.code).inc()
            logger.debug("Rejected %s: %s", name, exc)
            raise

    def _require_playing(self) -> None:
        if self.game_state.phase != GamePhase.PLAYING:
            raise IllegalMoveError(
                "Game is not in progress",
                context={"phase": self.game_state.phase.value},
            )

    @property
    def current_player(self) -> int:
        return self.game_state.current_player

    # =========================================================================
    # Setup
    # =========================================================================

    def start_new_game(
        self, player_count: int | None = None, seed: int | None = None
    ) -> GameState:
        """Build a fresh game: piles, starting player, hands and events."""
        if seed is not None:
            self.rng = random.Random(seed)
        count = player_count or self.rules.player_count
        state = GameState(count, rules=self.rules, rng=self.rng)
        self.game_state = state
        self._result = None

        state.init_draw_pile(build_draw_pile(self.rules.tiles_per_type))
        state.shuffle_draw_pile()
        state.init_event_pile(create_event_deck())
        state.shuffle_event_pile()

        starter = self._determine_starting_player(state)
        state.set_current_player(starter)

        for player in range(count):
            for _ in range(self.rules.hand_size):
                if state.draw_tile_to_hand(player) is None:
                    break
        self._deal_events(state)

        state.set_phase(GamePhase.PLAYING)
        state.set_turn_number(1)
        state.set_turn_phase(
            TurnPhase.PLACE if self.rules.is_simple_turn_mode else TurnPhase.DRAW
        )
        state.clear_undo_history()
        logger.info(
            "Started %d-player game, player %d goes first", count, starter
        )
        return state

    def _determine_starting_player(self, state: GameState) -> int:
        """Rulebook draw: highest rank starts (H > C > I), ties redraw.

        Drawn tiles go back under the pile. A player who cannot draw drops
        out; if nobody can, player 0 starts.
        """
        if not self.rules.rulebook_starting_player:
            starter = self.rng.randrange(state.player_count)
            state.emit(
                StateEvent.STARTING_PLAYER_DETERMINED,
                {"player": starter, "draws": []},
            )
            return starter

        contenders = list(range(state.player_count))
        drawn: list[TileType] = []
        rounds: list[dict[int, TileType]] = []
        while len(contenders) > 1:
            draws: dict[int, TileType] = {}
            for player in contenders:
                tile = state.draw_tile()
                if tile is None:
                    continue
                draws[player] = tile
                drawn.append(tile)
            if not draws:
                contenders = []
                break
            rounds.append(draws)
            best = max(tile_rank(t) for t in draws.values())
            contenders = [p for p, t in draws.items() if tile_rank(t) == best]

        starter = contenders[0] if contenders else 0
        state.add_tiles_to_draw_pile_bottom(drawn)
        state.emit(
            StateEvent.STARTING_PLAYER_DETERMINED,
            {"player": starter, "draws": rounds},
        )
        return starter

    def _deal_events(self, state: GameState) -> None:
        if not self.rules.enable_event_draft:
            for player in range(state.player_count):
                for _ in range(self.rules.starting_events):
                    state.draw_event_to_hand(player)
            return

        # Everyone is dealt two, keeps the first and passes the second left.
        passed: dict[int, EventCard] = {}
        for player in range(state.player_count):
            keep = state.draw_event()
            give = state.draw_event()
            if keep is not None:
                state.give_event(player, keep)
            if give is not None:
                passed[(player + 1) % state.player_count] = give
        for player, card in passed.items():
            state.give_event(player, card)

    # =========================================================================
    # Placement
    # =========================================================================

    def get_valid_placements(self, player: int | None = None) -> list[Position]:
        """Legal cells for ``player`` (default: current), honouring Shell Company."""
        player = self.current_player if player is None else player
        if self.game_state.get_player_flag(player, PlayerFlag.IGNORE_ADJACENCY_NEXT_TILE):
            return get_valid_placements(
                self.game_state.board,
                player,
                self.game_state.player_count,
                require_starting_zone=False,
                require_adjacency=False,
            )
        return get_valid_placements(
            self.game_state.board,
            player,
            self.game_state.player_count,
            self.rules.require_starting_zone,
            self.rules.require_adjacency,
        )

    def try_place_tile(self, x: int, y: int, hand_index: int) -> PlacementOutcome:
        """Place the current player's hand tile at (x, y) and auto-form landmarks.

        Raises:
            IllegalMoveError: Wrong phase, bad hand index or per-turn limit hit.
            InvalidPlacementError: The cell is unusable or outside the
                player's territory.
        """
        with self._action("place_tile"):
            return self._place_tile(x, y, hand_index)

    def _place_tile(self, x: int, y: int, hand_index: int) -> PlacementOutcome:
        gs = self.game_state
        self._require_playing()
        if gs.turn_phase not in (TurnPhase.PLACE, TurnPhase.DEVELOP):
            raise IllegalMoveError(
                "Tiles can only be placed during the develop phase",
                context={"turn_phase": gs.turn_phase.value},
            )
        player = gs.current_player
        hand = gs.get_player_hand(player)
        if not isinstance(hand_index, int) or not 0 <= hand_index < len(hand):
            raise IllegalMoveError(
                "Invalid hand index", context={"hand_index": hand_index}
            )
        if (
            not self.rules.unlimited_placement
            and gs.tiles_placed_this_turn >= self.rules.tiles_per_turn
        ):
            raise IllegalMoveError(
                f"Already placed {self.rules.tiles_per_turn} tile(s) this turn"
            )

        ignore_territory = gs.get_player_flag(
            player, PlayerFlag.IGNORE_ADJACENCY_NEXT_TILE
        )
        check = can_place_tile(
            gs.board,
            x,
            y,
            player,
            gs.player_count,
            self.rules.require_starting_zone,
            self.rules.require_adjacency,
        )
        if not check.valid and not (
            ignore_territory and check.failure in TERRITORY_FAILURES
        ):
            raise InvalidPlacementError(
                check.reason or "Invalid placement",
                x=x,
                y=y,
                context={"failure": check.failure.value if check.failure else None},
            )

        tile_type = hand[hand_index]
        gs.save_state_for_undo()
        gs.remove_tile_from_hand(player, hand_index)
        tile = gs.place_tile(x, y, tile_type, player)
        gs.record_tile_placed()
        if ignore_territory:
            gs.clear_player_flag(player, PlayerFlag.IGNORE_ADJACENCY_NEXT_TILE)

        landmark, event = self._auto_form_landmark(x, y, tile_type, player)
        auto_end = (
            self.rules.is_simple_turn_mode
            and not self.rules.unlimited_placement
            and gs.tiles_placed_this_turn >= self.rules.tiles_per_turn
        )
        return PlacementOutcome(
            tile=tile, landmark=landmark, event_drawn=event, auto_end_turn=auto_end
        )

    def _auto_form_landmark(
        self, x: int, y: int, tile_type: TileType, player: int
    ) -> tuple[Landmark | None, EventCard | None]:
        """Form the first detected trinity and reward one event card."""
        if not self.rules.auto_form_landmarks:
            return None, None
        matches = TrinityDetector.detect(self.game_state.board, x, y, tile_type, player)
        metrics.TRINITY_DETECTIONS.labels(
            outcome="match" if matches else "none"
        ).inc()
        if not matches:
            return None, None
        first = matches[0]
        landmark = self.game_state.form_landmark(
            first.housing.x, first.housing.y, first.positions, player
        )
        event = self.game_state.draw_event_to_hand(player)
        return landmark, event

    def preview_landmark_formation(
        self, x: int, y: int, tile_type: TileType
    ) -> list[Position]:
        """Cells that would fuse if the current player placed ``tile_type`` here."""
        if not self.rules.auto_form_landmarks:
            return []
        match = TrinityDetector.preview(
            self.game_state.board, x, y, TileType(tile_type), self.current_player
        )
        return match.positions if match else []

    # =========================================================================
    # Turn flow
    # =========================================================================

    def _non_hq_landmarks(self, player: int) -> int:
        p = self.game_state.get_player(player)
        return p.landmarks - p.headquarters

    def _is_underdog(self, player: int) -> bool:
        if not self.rules.underdog_bonus_enabled:
            return False
        counts = [
            self._non_hq_landmarks(i) for i in range(self.game_state.player_count)
        ]
        return counts[player] == min(counts)

    def calculate_draw_count(self, player: int) -> int:
        """Tiles ``player`` draws at the end of their turn."""
        if self.rules.landmark_draw_bonus:
            count = 1 + self._non_hq_landmarks(player)
            if self._is_underdog(player):
                count += 1
            return count
        return self.rules.tiles_to_draw(len(self.game_state.get_player_hand(player)))

    def enforce_hand_limit(self, player: int) -> int:
        """Discard from the end of the hand down to ``hand_size``."""
        gs = self.game_state
        discarded = 0
        while len(gs.get_player_hand(player)) > self.rules.hand_size:
            gs.remove_tile_from_hand(player, len(gs.get_player_hand(player)) - 1)
            discarded += 1
        if discarded:
            logger.debug("Player %d discarded %d tile(s) to hand limit", player, discarded)
        return discarded

    def end_turn_with_refill(self) -> RefillOutcome:
        """Draw, trim to the hand limit, pass the turn and spawn HQ agents."""
        with self._action("end_turn"):
            self._require_playing()
            gs = self.game_state
            player = gs.current_player
            drawn = 0
            for _ in range(self.calculate_draw_count(player)):
                if gs.draw_tile_to_hand(player) is None:
                    break
                drawn += 1
            discarded = self.enforce_hand_limit(player)
            gs.end_turn()
            gs.clear_undo_history()
            spawned = self._spawn_agents_from_hq()
            return RefillOutcome(
                drawn=drawn,
                discarded=discarded,
                next_player=gs.current_player,
                agents_spawned=spawned,
            )

    def _spawn_agents_from_hq(self) -> int:
        """Each HQ of the current player adds agents, up to the player cap."""
        if not self.rules.enable_agents:
            return 0
        gs = self.game_state
        player = gs.current_player
        spawned = 0
        for landmark in gs.get_landmarks():
            if landmark.owner != player or not landmark.is_hq:
                continue
            room = self.rules.max_agents_per_player - gs.get_player_agent_count(player)
            for _ in range(min(self.rules.agents_spawned_per_hq, max(room, 0))):
                gs.place_agent(landmark.position.x, landmark.position.y, player, source="hq")
                spawned += 1
        return spawned

    def advance_phase(self) -> TurnPhase:
        """The action button.

        Simple mode: ends the turn once a tile has been placed. Classic mode:
        draw (HQ agents plus one tile), develop, agent, end; skip flags set by
        event cards are consumed here.
        """
        with self._action("advance_phase"):
            self._require_playing()
            gs = self.game_state
            if self.rules.is_simple_turn_mode:
                if (
                    gs.tiles_placed_this_turn == 0
                    and gs.get_player_hand(gs.current_player)
                    and self.get_valid_placements()
                ):
                    raise IllegalMoveError("Place a tile before ending the turn")
                self.end_turn_with_refill()
                return gs.turn_phase

            player = gs.current_player
            phase = gs.turn_phase
            if phase == TurnPhase.DRAW:
                self._spawn_agents_from_hq()
                gs.draw_tile_to_hand(player)
                if gs.get_player_flag(player, PlayerFlag.SKIP_NEXT_DEVELOP_PHASE):
                    gs.clear_player_flag(player, PlayerFlag.SKIP_NEXT_DEVELOP_PHASE)
                    logger.info("Player %d skips their develop phase", player)
                    gs.set_turn_phase(self._phase_after_develop(player))
                else:
                    gs.set_turn_phase(TurnPhase.DEVELOP)
            elif phase == TurnPhase.DEVELOP:
                gs.set_turn_phase(self._phase_after_develop(player))
            elif phase == TurnPhase.AGENT:
                gs.set_turn_phase(TurnPhase.END)
            else:
                gs.end_turn()
                gs.clear_undo_history()
            return gs.turn_phase

    def _phase_after_develop(self, player: int) -> TurnPhase:
        gs = self.game_state
        if gs.get_player_flag(player, PlayerFlag.SKIP_NEXT_AGENT_PHASE):
            gs.clear_player_flag(player, PlayerFlag.SKIP_NEXT_AGENT_PHASE)
            logger.info("Player %d skips their agent phase", player)
            return TurnPhase.END
        if self.rules.skip_agent_phase or not self.rules.enable_agents:
            return TurnPhase.END
        return TurnPhase.AGENT

    # =========================================================================
    # Headquarters and agents
    # =========================================================================

    def can_convert_to_hq(self, x: int, y: int) -> bool:
        if not self.rules.enable_hq or self.game_state.phase != GamePhase.PLAYING:
            return False
        landmark = self.game_state.get_landmark_at(x, y)
        if landmark is None or landmark.is_hq or landmark.owner != self.current_player:
            return False
        player = self.game_state.get_player(self.current_player)
        return player.headquarters < self.rules.max_hq_per_player

    def convert_landmark_to_hq(self, x: int, y: int) -> Landmark:
        with self._action("convert_to_hq"):
            self._require_playing()
            if not self.rules.enable_hq:
                raise IllegalMoveError("Headquarters are disabled")
            return self.game_state.convert_to_hq(x, y, self.current_player)

    def _require_agents(self) -> None:
        if not self.rules.enable_agents:
            raise IllegalMoveError("Agents are disabled")

    def try_move_agent(self, from_x: int, from_y: int, to_x: int, to_y: int):
        """Move one of the current player's agents within movement range."""
        with self._action("move_agent"):
            self._require_playing()
            self._require_agents()
            gs = self.game_state
            player = gs.current_player
            if not in_bounds(to_x, to_y, gs.board.size):
                raise IllegalMoveError("Destination is off the board")
            distance = manhattan(Position(x=from_x, y=from_y), Position(x=to_x, y=to_y))
            if distance == 0 or distance > self.rules.agent_movement_range:
                raise IllegalMoveError(
                    f"Agents move up to {self.rules.agent_movement_range} space(s)",
                    context={"distance": distance},
                )
            if not any(
                s.owner == player for s in gs.get_agents_at(from_x, from_y)
            ):
                raise IllegalMoveError("You have no agent at that position")
            if (
                not self.rules.agents_can_pass_enemies
                and gs.has_enemy_agents_at(to_x, to_y, player)
            ):
                raise IllegalMoveError("Destination is blocked by enemy agents")
            return gs.move_agent(from_x, from_y, to_x, to_y, player)

    def get_valid_agent_moves(self, x: int, y: int) -> list[Position]:
        """Destinations the current player's agent at (x, y) could move to."""
        gs = self.game_state
        player = gs.current_player
        if not self.rules.enable_agents or not any(
            s.owner == player for s in gs.get_agents_at(x, y)
        ):
            return []
        reach = self.rules.agent_movement_range
        origin = Position(x=x, y=y)
        moves = []
        for ty in range(y - reach, y + reach + 1):
            for tx in range(x - reach, x + reach + 1):
                if not in_bounds(tx, ty, gs.board.size):
                    continue
                dest = Position(x=tx, y=ty)
                if not 0 < manhattan(origin, dest) <= reach:
                    continue
                if (
                    not self.rules.agents_can_pass_enemies
                    and gs.has_enemy_agents_at(tx, ty, player)
                ):
                    continue
                moves.append(dest)
        return moves

    def attempt_tile_capture(self, x: int, y: int) -> CaptureOutcome:
        """Take an opponent's standing tile with adjacent agents.

        Needs at least one more adjacent agent than the defender has on the
        tile. Attackers equal to that requirement are spent and all defenders
        are removed.
        """
        with self._action("capture_tile"):
            self._require_playing()
            self._require_agents()
            gs = self.game_state
            player = gs.current_player
            tile = gs.get_tile(x, y)
            if tile is None:
                raise IllegalMoveError(f"No standing tile at ({x}, {y})")
            if tile.owner == player:
                raise IllegalMoveError("Cannot capture your own tile")

            defenders = [s for s in gs.get_agents_at(x, y) if s.owner != player]
            defending = sum(s.count for s in defenders)
            needed = defending + 1
            attackers: list[tuple[Position, int]] = []
            available = 0
            for pos in adjacent_positions(x, y, gs.board.size):
                own = sum(
                    s.count for s in gs.get_agents_at(pos.x, pos.y) if s.owner == player
                )
                if own:
                    attackers.append((pos, own))
                    available += own
            if available < needed:
                raise IllegalMoveError(
                    f"Need {needed} adjacent agent(s) to capture, have {available}",
                    context={"needed": needed, "available": available},
                )

            gs.save_state_for_undo()
            remaining = needed
            for pos, own in attackers:
                take = min(own, remaining)
                gs.remove_agent(pos.x, pos.y, player, take)
                remaining -= take
                if remaining == 0:
                    break
            for stack in defenders:
                gs.remove_agent(x, y, stack.owner, stack.count)
            captured = gs.transfer_tile(x, y, player)
            logger.info(
                "Player %d captured tile at (%d, %d) from player %d",
                player,
                x,
                y,
                tile.owner,
            )
            return CaptureOutcome(
                tile=captured, attackers_used=needed, defenders_removed=defending
            )

    def reposition_tile(self, x: int, y: int) -> TileType:
        """Spend an agent on or next to an own standing tile to take it back."""
        with self._action("reposition_tile"):
            self._require_playing()
            self._require_agents()
            gs = self.game_state
            player = gs.current_player
            tile = gs.get_tile(x, y)
            if tile is None or tile.owner != player:
                raise IllegalMoveError("Can only reposition your own standing tiles")
            here = Position(x=x, y=y)
            source = next(
                (
                    pos
                    for pos in [here, *adjacent_positions(x, y, gs.board.size)]
                    if gs.board.agents.get(pos.to_key())
                    and any(s.owner == player for s in gs.get_agents_at(pos.x, pos.y))
                ),
                None,
            )
            if source is None:
                raise IllegalMoveError("Need an agent on or adjacent to the tile")

            gs.save_state_for_undo()
            gs.remove_agent(source.x, source.y, player)
            gs.remove_tile(x, y)
            gs.add_tile_to_hand(player, tile.type)
            self.enforce_hand_limit(player)
            return tile.type

    # =========================================================================
    # Event cards
    # =========================================================================

    def play_event_card(
        self, event_index: int, target: TargetSpec | None = None
    ) -> EventOutcome:
        """Resolve the current player's event card; the card is spent on success."""
        with self._action("play_event"):
            self._require_playing()
            gs = self.game_state
            player = gs.current_player
            events = gs.get_player_events(player)
            if not isinstance(event_index, int) or not 0 <= event_index < len(events):
                raise IllegalMoveError(
                    "Invalid event index", context={"event_index": event_index}
                )
            card = events[event_index]
            if event_requires_target(card) and target is None:
                raise IllegalMoveError(f"{card.name} requires a target")

            outcome = self.events.resolve(card, player, target)
            gs.play_event(player, event_index, target)
            metrics.EVENTS_PLAYED.labels(event_id=card.id).inc()
            return outcome

    def get_valid_targets_for_event(self, card: EventCard) -> list[TargetSpec]:
        return self.events.valid_targets(card, self.current_player)

    # =========================================================================
    # Game end
    # =========================================================================

    def _secured_landmarks(self, player: int) -> int:
        return sum(
            1
            for lm in self.game_state.get_landmarks()
            if lm.owner == player
            and any(
                s.owner == player
                for s in self.game_state.get_agents_at(lm.position.x, lm.position.y)
            )
        )

    def get_scores(self) -> list[PlayerScore]:
        """Per-player score lines in seat order. HQs do not score."""
        gs = self.game_state
        return [
            PlayerScore(
                player=p.index,
                name=p.name,
                landmarks=p.landmarks,
                headquarters=p.headquarters,
                score=p.landmarks - p.headquarters,
                secured_landmarks=self._secured_landmarks(p.index),
                tiles_in_hand=len(p.hand),
            )
            for p in gs.get_players()
        ]

    def _end_reason(self) -> str | None:
        gs = self.game_state
        if self.rules.end_on_full_board and BoardManager.is_full(gs.board):
            return "Board is full"
        if (
            self.rules.end_on_empty_deck
            and gs.draw_pile_count == 0
            and all(not p.hand for p in gs.get_players())
        ):
            return "All tiles have been played"
        if self.rules.landmarks_to_win > 0:
            for score in self.get_scores():
                if score.score >= self.rules.landmarks_to_win:
                    return (
                        f"Player {score.player + 1} reached "
                        f"{self.rules.landmarks_to_win} landmarks"
                    )
        return None

    def check_game_end(self) -> GameResult | None:
        """Return the final result if an end condition holds, else ``None``.

        The first time an end condition is seen the game moves to
        ``gameover`` and the undo history is dropped; later calls return the
        same result.
        """
        if self._result is not None:
            return self._result
        reason = self._end_reason()
        if reason is None:
            return None

        scores = sorted(self.get_scores(), key=PlayerScore.rank_key, reverse=True)
        top = scores[0].rank_key()
        leaders = [s for s in scores if s.rank_key() == top]
        gs = self.game_state
        result = GameResult(
            reason=reason,
            winner=leaders[0].player if len(leaders) == 1 else None,
            is_tie=len(leaders) > 1,
            scores=scores,
            turn=gs.turn_number,
        )
        self._result = result
        if gs.phase != GamePhase.GAME_OVER:
            gs.set_phase(GamePhase.GAME_OVER)
        gs.clear_undo_history()
        metrics.GAMES_COMPLETED.labels(reason=_reason_label(reason)).inc()
        metrics.GAME_LENGTH_TURNS.observe(gs.turn_number)
        logger.info(
            "Game over (%s): %s",
            reason,
            "tie" if result.is_tie else f"player {result.winner} wins",
        )
        return result

    # =========================================================================
    # Undo
    # =========================================================================

    def undo(self) -> bool:
        return self.game_state.undo()

    def can_undo(self) -> bool:
        return self.game_state.can_undo()

    def summary(self) -> dict[str, Any]:
        gs = self.game_state
        return {
            "phase": gs.phase.value,
            "turn": gs.turn_number,
            "turn_phase": gs.turn_phase.value,
            "current_player": gs.current_player,
            "draw_pile": gs.draw_pile_count,
            "landmarks": len(gs.get_landmarks()),
            "tiles": len(gs.get_all_tiles()),
        }


def _reason_label(reason: str) -> str:
    if reason.startswith("Board"):
        return "full_board"
    if reason.startswith("All tiles"):
        return "empty_deck"
    return "landmarks"
