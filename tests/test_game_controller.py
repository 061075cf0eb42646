"""Tests for GameController: setup, placement, turn flow, agents, game end."""

import pytest
from prometheus_client import REGISTRY

from trinity.board_manager import BoardManager
from trinity.config import TurnMode
from trinity.errors import IllegalMoveError, InvalidPlacementError
from trinity.events import create_event_deck
from trinity.game_controller import GameController
from trinity.game_state import GameState
from trinity.models import GamePhase, PlayerFlag, Position, TileType, TurnPhase

H, C, I = TileType.HOUSING, TileType.COMMERCE, TileType.INDUSTRY


def P(x, y):
    return Position(x=x, y=y)


def _landmark_for(state: GameState, owner: int, x0: int, y: int) -> None:
    for dx, tile in enumerate((H, C, I)):
        BoardManager.set_tile(state.board, x0 + dx, y, tile, owner)
    state.form_landmark(x0, y, [(x0, y), (x0 + 1, y), (x0 + 2, y)], owner)


def _rejections(action: str, code: str) -> float:
    return (
        REGISTRY.get_sample_value(
            "trinity_actions_rejected_total", {"action": action, "code": code}
        )
        or 0.0
    )


class TestStartNewGame:
    """Unshuffled two-player setup is fully deterministic."""

    def test_initial_state(self, controller):
        gs = controller.game_state
        assert gs.phase == GamePhase.PLAYING
        assert gs.turn_number == 1
        assert gs.turn_phase == TurnPhase.PLACE
        assert [len(gs.get_player_hand(p)) for p in range(2)] == [8, 8]
        assert gs.draw_pile_count == 72 - 16
        assert gs.event_pile_count == 36 - 4

    def test_rulebook_starting_player(self, controller):
        # Player 0 draws Industry, player 1 draws Commerce.
        assert controller.current_player == 1
        assert controller.game_state.serialize()["drawPile"][:2] == [
            "industry",
            "commerce",
        ]

    def test_deal_order(self, controller):
        gs = controller.game_state
        assert gs.get_player_hand(0) == [H, I, C, H, I, C, H, I]
        assert gs.get_player_hand(1) == [C, H, I, C, H, I, C, H]

    def test_event_draft_passes_second_card(self, controller):
        gs = controller.game_state
        assert [e.instance_id for e in gs.get_player_events(0)] == [
            "red-tape-1",
            "insurance-claim-0",
        ]
        assert [e.instance_id for e in gs.get_player_events(1)] == [
            "insurance-claim-1",
            "red-tape-0",
        ]

    def test_without_draft_draws_starting_events(self, controller_factory):
        controller = controller_factory(enable_event_draft=False, starting_events=1)
        gs = controller.game_state
        assert [len(gs.get_player_events(p)) for p in range(2)] == [1, 1]

    def test_tied_draw_redraws_and_drops_empty_players(self):
        controller = GameController()
        state = GameState(2)
        state.init_draw_pile([C, H, H])
        # Both draw Housing; on the redraw only player 0 gets a tile.
        assert controller._determine_starting_player(state) == 0
        assert state.draw_pile_count == 3

    def test_random_starting_player_is_seeded(self, controller_factory):
        a = controller_factory(seed=11, player_count=4, rulebook_starting_player=False)
        b = controller_factory(seed=11, player_count=4, rulebook_starting_player=False)
        assert a.current_player == b.current_player
        assert 0 <= a.current_player < 4

    def test_shuffled_games_repeat_with_same_seed(self, controller_factory):
        a = controller_factory(seed=5, enable_shuffle=True)
        b = controller_factory(seed=5, enable_shuffle=True)
        assert a.game_state.serialize() == b.game_state.serialize()

    def test_classic_mode_starts_in_draw(self, classic_controller):
        assert classic_controller.game_state.turn_phase == TurnPhase.DRAW


class TestTryPlaceTile:
    def test_places_and_reports_auto_end(self, blank_controller):
        controller = blank_controller(hands=[[H, C]])
        outcome = controller.try_place_tile(0, 0, 1)
        assert outcome.tile.type == C
        assert outcome.auto_end_turn
        assert not outcome.landmark_formed
        assert controller.game_state.get_player_hand(0) == [H]

    def test_per_turn_limit(self, blank_controller):
        controller = blank_controller(hands=[[H, C]])
        controller.try_place_tile(0, 0, 0)
        with pytest.raises(IllegalMoveError):
            controller.try_place_tile(1, 0, 0)

    def test_bad_hand_index(self, blank_controller):
        controller = blank_controller(hands=[[H]])
        with pytest.raises(IllegalMoveError):
            controller.try_place_tile(0, 0, 3)

    def test_outside_zone_rejected_and_counted(self, blank_controller):
        controller = blank_controller(hands=[[H]])
        before = _rejections("place_tile", "INVALID_PLACEMENT")
        with pytest.raises(InvalidPlacementError) as exc_info:
            controller.try_place_tile(4, 4, 0)
        assert exc_info.value.context["failure"] == "starting_zone"
        assert _rejections("place_tile", "INVALID_PLACEMENT") == before + 1
        assert controller.game_state.get_player_hand(0) == [H]
        assert controller.game_state.get_all_tiles() == []

    def test_auto_forms_landmark(self, blank_controller):
        controller = blank_controller(hands=[[H, C, I]], unlimited_placement=True)
        controller.try_place_tile(0, 0, 0)
        controller.try_place_tile(1, 0, 0)
        outcome = controller.try_place_tile(0, 1, 0)
        assert outcome.landmark_formed
        assert outcome.landmark.position == P(0, 0)
        assert outcome.event_drawn is None
        assert controller.game_state.get_player(0).landmarks == 1

    def test_formation_awards_event_card(self, blank_controller):
        controller = blank_controller(hands=[[H, C, I]], unlimited_placement=True)
        controller.game_state.init_event_pile(create_event_deck())
        for x in range(3):
            outcome = controller.try_place_tile(x, 0, 0)
        assert outcome.event_drawn is not None
        assert controller.game_state.get_player_events(0) == [outcome.event_drawn]

    def test_double_trinity_forms_only_first(self, blank_controller):
        controller = blank_controller(
            hands=[[C, I, I, H]],
            unlimited_placement=True,
            require_starting_zone=False,
            require_adjacency=False,
        )
        controller.try_place_tile(2, 2, 0)
        controller.try_place_tile(4, 2, 0)
        controller.try_place_tile(3, 3, 0)
        outcome = controller.try_place_tile(3, 2, 0)

        gs = controller.game_state
        assert len(gs.get_landmarks()) == 1
        members = {m.position for m in outcome.landmark.members}
        assert members == {P(2, 2), P(3, 2), P(4, 2)}
        assert gs.get_tile(3, 3).type == I

    def test_auto_form_can_be_disabled(self, blank_controller):
        controller = blank_controller(
            hands=[[H, C, I]], unlimited_placement=True, auto_form_landmarks=False
        )
        for x in range(3):
            controller.try_place_tile(x, 0, 0)
        assert controller.game_state.get_landmarks() == []

    def test_shell_company_bypasses_territory_once(self, blank_controller):
        controller = blank_controller(hands=[[H, C, I]], unlimited_placement=True)
        gs = controller.game_state
        gs.set_player_flag(0, PlayerFlag.IGNORE_ADJACENCY_NEXT_TILE)
        controller.try_place_tile(5, 5, 0)
        assert not gs.get_player_flag(0, PlayerFlag.IGNORE_ADJACENCY_NEXT_TILE)
        with pytest.raises(InvalidPlacementError):
            controller.try_place_tile(2, 2, 0)

    def test_shell_company_does_not_allow_occupied_cell(self, blank_controller):
        controller = blank_controller(hands=[[H, C]], unlimited_placement=True)
        controller.try_place_tile(0, 0, 0)
        controller.game_state.set_player_flag(0, PlayerFlag.IGNORE_ADJACENCY_NEXT_TILE)
        with pytest.raises(InvalidPlacementError):
            controller.try_place_tile(0, 0, 0)

    def test_undo_restores_hand_and_board(self, blank_controller):
        controller = blank_controller(hands=[[H]])
        controller.try_place_tile(0, 0, 0)
        assert controller.can_undo()
        assert controller.undo()
        assert controller.game_state.get_player_hand(0) == [H]
        assert controller.game_state.get_tile(0, 0) is None

    def test_preview(self, blank_controller):
        controller = blank_controller(hands=[[H, C, I]], unlimited_placement=True)
        controller.try_place_tile(0, 0, 0)
        controller.try_place_tile(1, 0, 0)
        assert set(controller.preview_landmark_formation(2, 0, I)) == {
            P(0, 0),
            P(1, 0),
            P(2, 0),
        }
        assert controller.preview_landmark_formation(0, 1, C) == []

    def test_rejected_when_game_over(self, blank_controller):
        controller = blank_controller(hands=[[H]])
        controller.game_state.set_phase(GamePhase.GAME_OVER)
        with pytest.raises(IllegalMoveError):
            controller.try_place_tile(0, 0, 0)


class TestEndTurnWithRefill:
    def test_draws_base_plus_underdog(self, blank_controller):
        controller = blank_controller(hands=[[H]])
        controller.game_state.init_draw_pile([C] * 10)
        controller.try_place_tile(0, 0, 0)
        outcome = controller.end_turn_with_refill()
        assert outcome.drawn == 2
        assert outcome.next_player == 1
        assert controller.game_state.get_player_hand(0) == [C, C]

    def test_landmarks_add_draws_and_remove_underdog(self, blank_controller):
        controller = blank_controller(hands=[[]])
        _landmark_for(controller.game_state, 0, 0, 0)
        assert controller.calculate_draw_count(0) == 2
        assert controller.calculate_draw_count(1) == 2
        controller.game_state.convert_to_hq(0, 0, 0)
        assert controller.calculate_draw_count(0) == 2

    def test_refill_mode_without_landmark_bonus(self, blank_controller):
        controller = blank_controller(
            hands=[[H, C, I]], landmark_draw_bonus=False, hand_size=5
        )
        assert controller.calculate_draw_count(0) == 2

    def test_hand_limit_discards_from_end(self, blank_controller):
        controller = blank_controller(hands=[[H, C]], hand_size=2)
        controller.game_state.init_draw_pile([I] * 5)
        outcome = controller.end_turn_with_refill()
        assert outcome.discarded == 2
        assert controller.game_state.get_player_hand(0) == [H, C]

    def test_empty_pile_draws_nothing(self, blank_controller):
        controller = blank_controller(hands=[[H]])
        outcome = controller.end_turn_with_refill()
        assert outcome.drawn == 0

    def test_hq_spawns_agent_for_next_player(self, blank_controller):
        controller = blank_controller(hands=[[], []], current_player=1)
        gs = controller.game_state
        _landmark_for(gs, 0, 0, 0)
        gs.convert_to_hq(0, 0, 0)
        assert gs.get_player_agent_count(0) == 3
        outcome = controller.end_turn_with_refill()
        assert outcome.next_player == 0
        assert outcome.agents_spawned == 1
        assert gs.get_player_agent_count(0) == 4

    def test_hq_spawn_respects_cap(self, blank_controller):
        controller = blank_controller(
            hands=[[], []], current_player=1, max_agents_per_player=3
        )
        gs = controller.game_state
        _landmark_for(gs, 0, 0, 0)
        gs.convert_to_hq(0, 0, 0)
        assert controller.end_turn_with_refill().agents_spawned == 0


class TestAdvancePhase:
    def test_simple_mode_requires_placement(self, controller):
        with pytest.raises(IllegalMoveError):
            controller.advance_phase()

    def test_simple_mode_ends_turn_after_placement(self, controller):
        hand_tile = controller.game_state.get_player_hand(1)[0]
        controller.try_place_tile(0, 7, 0)
        assert controller.game_state.get_tile(0, 7).type == hand_tile
        assert controller.advance_phase() == TurnPhase.PLACE
        assert controller.current_player == 0

    def test_classic_cycle(self, classic_controller):
        gs = classic_controller.game_state
        assert classic_controller.current_player == 1
        with pytest.raises(IllegalMoveError):
            classic_controller.try_place_tile(0, 7, 0)

        assert classic_controller.advance_phase() == TurnPhase.DEVELOP
        assert len(gs.get_player_hand(1)) == 9
        classic_controller.try_place_tile(0, 7, 0)
        assert classic_controller.advance_phase() == TurnPhase.AGENT
        assert classic_controller.advance_phase() == TurnPhase.END
        assert classic_controller.advance_phase() == TurnPhase.DRAW
        assert classic_controller.current_player == 0
        assert gs.turn_number == 2

    def test_skip_develop_flag(self, classic_controller):
        gs = classic_controller.game_state
        gs.set_player_flag(1, PlayerFlag.SKIP_NEXT_DEVELOP_PHASE)
        assert classic_controller.advance_phase() == TurnPhase.AGENT
        assert not gs.get_player_flag(1, PlayerFlag.SKIP_NEXT_DEVELOP_PHASE)

    def test_skip_agent_flag(self, classic_controller):
        gs = classic_controller.game_state
        classic_controller.advance_phase()
        gs.set_player_flag(1, PlayerFlag.SKIP_NEXT_AGENT_PHASE)
        assert classic_controller.advance_phase() == TurnPhase.END

    def test_agent_phase_skipped_by_rule(self, controller_factory):
        controller = controller_factory(turn_mode=TurnMode.CLASSIC)
        controller.advance_phase()
        assert controller.advance_phase() == TurnPhase.END


class TestHeadquarters:
    def test_convert_and_can_convert(self, blank_controller):
        controller = blank_controller(hands=[[]])
        _landmark_for(controller.game_state, 0, 0, 0)
        assert controller.can_convert_to_hq(0, 0)
        assert not controller.can_convert_to_hq(1, 0)
        landmark = controller.convert_landmark_to_hq(0, 0)
        assert landmark.is_hq
        assert not controller.can_convert_to_hq(0, 0)

    def test_hq_limit(self, blank_controller):
        controller = blank_controller(hands=[[]], max_hq_per_player=1)
        gs = controller.game_state
        _landmark_for(gs, 0, 0, 0)
        _landmark_for(gs, 0, 0, 2)
        controller.convert_landmark_to_hq(0, 0)
        assert not controller.can_convert_to_hq(0, 2)
        with pytest.raises(IllegalMoveError):
            controller.convert_landmark_to_hq(0, 2)

    def test_hq_disabled(self, blank_controller):
        controller = blank_controller(hands=[[]], enable_hq=False)
        _landmark_for(controller.game_state, 0, 0, 0)
        with pytest.raises(IllegalMoveError):
            controller.convert_landmark_to_hq(0, 0)


class TestAgents:
    def test_move_within_range(self, blank_controller):
        controller = blank_controller()
        gs = controller.game_state
        gs.place_agent(2, 2, 0)
        controller.try_move_agent(2, 2, 2, 3)
        assert gs.get_agents_at(2, 3)[0].owner == 0

    def test_move_too_far(self, blank_controller):
        controller = blank_controller()
        controller.game_state.place_agent(2, 2, 0)
        with pytest.raises(IllegalMoveError):
            controller.try_move_agent(2, 2, 4, 2)

    def test_move_without_agent(self, blank_controller):
        controller = blank_controller()
        with pytest.raises(IllegalMoveError):
            controller.try_move_agent(2, 2, 2, 3)

    def test_enemy_blocks_unless_passing_allowed(self, blank_controller):
        controller = blank_controller()
        gs = controller.game_state
        gs.place_agent(2, 2, 0)
        gs.place_agent(2, 3, 1)
        with pytest.raises(IllegalMoveError):
            controller.try_move_agent(2, 2, 2, 3)

        passing = blank_controller(agents_can_pass_enemies=True)
        passing.game_state.place_agent(2, 2, 0)
        passing.game_state.place_agent(2, 3, 1)
        passing.try_move_agent(2, 2, 2, 3)

    def test_valid_moves(self, blank_controller):
        controller = blank_controller()
        gs = controller.game_state
        gs.place_agent(0, 0, 0)
        assert controller.get_valid_agent_moves(0, 0) == [P(1, 0), P(0, 1)]
        gs.place_agent(1, 0, 1)
        assert controller.get_valid_agent_moves(0, 0) == [P(0, 1)]
        assert controller.get_valid_agent_moves(5, 5) == []

    def test_longer_range(self, blank_controller):
        controller = blank_controller(agent_movement_range=2)
        controller.game_state.place_agent(4, 4, 0)
        assert len(controller.get_valid_agent_moves(4, 4)) == 12

    def test_capture(self, blank_controller):
        controller = blank_controller()
        gs = controller.game_state
        BoardManager.set_tile(gs.board, 3, 3, H, 1)
        gs.place_agent(3, 3, 1)
        gs.place_agent(2, 3, 0)
        gs.place_agent(3, 2, 0)

        outcome = controller.attempt_tile_capture(3, 3)
        assert outcome.attackers_used == 2
        assert outcome.defenders_removed == 1
        assert gs.get_tile(3, 3).owner == 0
        assert gs.get_agents() == []

    def test_capture_needs_more_than_defenders(self, blank_controller):
        controller = blank_controller()
        gs = controller.game_state
        BoardManager.set_tile(gs.board, 3, 3, H, 1)
        gs.place_agent(3, 3, 1)
        gs.place_agent(2, 3, 0)
        before = gs.serialize()
        with pytest.raises(IllegalMoveError):
            controller.attempt_tile_capture(3, 3)
        assert gs.serialize() == before

    def test_capture_own_tile_rejected(self, blank_controller):
        controller = blank_controller()
        BoardManager.set_tile(controller.game_state.board, 3, 3, H, 0)
        with pytest.raises(IllegalMoveError):
            controller.attempt_tile_capture(3, 3)

    def test_reposition(self, blank_controller):
        controller = blank_controller(hands=[[]])
        gs = controller.game_state
        BoardManager.set_tile(gs.board, 1, 1, C, 0)
        gs.place_agent(1, 2, 0)
        assert controller.reposition_tile(1, 1) == C
        assert gs.get_tile(1, 1) is None
        assert gs.get_player_hand(0) == [C]
        assert gs.get_player_agent_count(0) == 0

    def test_reposition_needs_agent(self, blank_controller):
        controller = blank_controller(hands=[[]])
        BoardManager.set_tile(controller.game_state.board, 1, 1, C, 0)
        with pytest.raises(IllegalMoveError):
            controller.reposition_tile(1, 1)

    def test_agents_disabled(self, blank_controller):
        controller = blank_controller(enable_agents=False)
        with pytest.raises(IllegalMoveError):
            controller.try_move_agent(0, 0, 0, 1)


class TestGameEnd:
    def test_not_over(self, controller):
        assert controller.check_game_end() is None
        assert controller.game_state.phase == GamePhase.PLAYING

    def test_empty_deck_and_hands(self, blank_controller):
        controller = blank_controller()
        result = controller.check_game_end()
        assert result.reason == "All tiles have been played"
        assert result.is_tie
        assert result.winner is None
        assert controller.game_state.phase == GamePhase.GAME_OVER
        assert controller.check_game_end() is result

    def test_game_over_drops_undo_history(self, blank_controller):
        controller = blank_controller()
        controller.game_state.save_state_for_undo()
        assert controller.can_undo()
        result = controller.check_game_end()
        assert not controller.can_undo()
        assert controller.undo() is False
        assert controller.game_state.phase == GamePhase.GAME_OVER
        assert controller.check_game_end() is result

    def test_full_board(self, blank_controller):
        controller = blank_controller(hands=[[H]])
        board = controller.game_state.board
        for y in range(8):
            for x in range(8):
                BoardManager.add_agent(board, x, y, (x + y) % 2)
        result = controller.check_game_end()
        assert result.reason == "Board is full"

    def test_landmark_target_and_secured_tiebreak(self, blank_controller):
        controller = blank_controller(hands=[[H], [H]], landmarks_to_win=1)
        gs = controller.game_state
        _landmark_for(gs, 0, 0, 0)
        _landmark_for(gs, 1, 0, 7)
        gs.place_agent(0, 0, 0)

        result = controller.check_game_end()
        assert "reached 1 landmarks" in result.reason
        assert result.winner == 0
        assert not result.is_tie
        assert [s.player for s in result.scores] == [0, 1]
        assert result.scores[0].secured_landmarks == 1

    def test_hq_does_not_score(self, blank_controller):
        controller = blank_controller(hands=[[H], [H, C]], landmarks_to_win=1)
        gs = controller.game_state
        _landmark_for(gs, 0, 0, 0)
        _landmark_for(gs, 0, 0, 2)
        gs.convert_to_hq(0, 0, 0)
        scores = controller.get_scores()
        assert scores[0].score == 1
        assert scores[0].landmarks == 2
        assert scores[0].headquarters == 1

    def test_hand_size_tiebreak(self, blank_controller):
        controller = blank_controller(hands=[[H], [H, C]], landmarks_to_win=1)
        gs = controller.game_state
        _landmark_for(gs, 0, 0, 0)
        _landmark_for(gs, 1, 0, 7)
        assert controller.check_game_end().winner == 1
