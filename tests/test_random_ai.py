"""Tests for the random self-play player."""

from trinity.ai import RandomAI, play_random_game
from trinity.board_manager import BoardManager
from trinity.game_controller import GameController
from trinity.models import GamePhase, Position, TileType, TurnPhase


class TestRandomAI:
    def test_default_seed_depends_on_player(self):
        assert RandomAI(2).rng_seed == 1002
        assert repr(RandomAI(1, seed=5)) == "RandomAI(player=1, seed=5)"

    def test_get_random_element(self):
        ai = RandomAI(0, seed=1)
        assert ai.get_random_element([]) is None
        assert ai.get_random_element(["only"]) == "only"

    def test_select_placement_is_legal(self, controller):
        ai = RandomAI(1, seed=3)
        x, y, hand_index = ai.select_placement(controller)
        assert Position(x=x, y=y) in controller.get_valid_placements(1)
        assert 0 <= hand_index < 8
        assert ai.move_count == 1

    def test_select_placement_with_empty_hand(self, blank_controller):
        assert RandomAI(0).select_placement(blank_controller()) is None

    def test_hq_conversion_candidates(self, blank_controller):
        controller = blank_controller(hands=[[]])
        ai = RandomAI(0, seed=0)
        assert ai.select_hq_conversion(controller) is None

        gs = controller.game_state
        for dx, tile in enumerate(
            (TileType.HOUSING, TileType.COMMERCE, TileType.INDUSTRY)
        ):
            BoardManager.set_tile(gs.board, dx, 0, tile, 0)
        gs.form_landmark(0, 0, [(0, 0), (1, 0), (2, 0)], 0)
        picks = {ai.select_hq_conversion(controller) for _ in range(20)}
        assert picks == {None, Position(x=0, y=0)}

    def test_simple_turn(self, controller):
        assert RandomAI(1, seed=4).take_turn(controller)
        gs = controller.game_state
        assert gs.current_player == 0
        tiles = gs.get_all_tiles()
        assert len(tiles) == 1
        assert tiles[0].owner == 1
        assert tiles[0].position.y in (6, 7)

    def test_classic_turn(self, classic_controller):
        assert RandomAI(1, seed=4).take_turn(classic_controller)
        gs = classic_controller.game_state
        assert gs.current_player == 0
        assert gs.turn_phase == TurnPhase.DRAW
        assert len(gs.get_all_tiles()) == 1


class TestPlayRandomGame:
    def test_same_seed_same_game(self, rules_factory):
        rules = rules_factory(enable_shuffle=True, player_count=3)
        a = GameController(rules=rules)
        b = GameController(rules=rules)
        result_a = play_random_game(a, seed=9, max_turns=15)
        result_b = play_random_game(b, seed=9, max_turns=15)
        assert a.game_state.serialize() == b.game_state.serialize()
        assert (result_a is None) == (result_b is None)

    def test_turn_limit_returns_none(self, rules_factory):
        controller = GameController(rules=rules_factory())
        assert play_random_game(controller, seed=1, max_turns=2) is None
        assert controller.game_state.turn_number == 3

    def test_game_reaches_landmark_target(self, rules_factory):
        rules = rules_factory(
            landmarks_to_win=1,
            require_starting_zone=False,
            require_adjacency=False,
        )
        controller = GameController(rules=rules)
        result = play_random_game(controller, seed=2, max_turns=200)
        assert result is not None
        assert result.scores[0].score >= 1
        assert controller.check_game_end() is result
        assert controller.game_state.phase == GamePhase.GAME_OVER
