"""Tests for event card effects played through the controller."""

import pytest
from prometheus_client import REGISTRY

from trinity.board_manager import BoardManager
from trinity.errors import IllegalMoveError
from trinity.event_effects import TargetSpec
from trinity.events import create_event_deck, get_event_by_id
from trinity.models import PlayerFlag, Position, TileType

H, C, I = TileType.HOUSING, TileType.COMMERCE, TileType.INDUSTRY


def P(x, y):
    return Position(x=x, y=y)


@pytest.fixture
def game(blank_controller):
    """Player 0 to move on an empty board, with a helper to hand out cards."""
    controller = blank_controller(hands=[[], []])

    def give(card_id, player=0, **overrides):
        if overrides:
            controller.rules = controller.rules.model_copy(update=overrides)
        card = get_event_by_id(card_id).model_copy(
            update={"instance_id": f"{card_id}-0"}
        )
        controller.game_state.give_event(player, card)
        return card

    controller.give = give
    return controller


def _tile(controller, x, y, tile_type, owner):
    BoardManager.set_tile(controller.game_state.board, x, y, tile_type, owner)


def _played(card_id):
    return (
        REGISTRY.get_sample_value(
            "trinity_events_played_total", {"event_id": card_id}
        )
        or 0.0
    )


class TestCardHandling:
    def test_played_card_leaves_hand_and_is_counted(self, game):
        game.give("shell-company")
        before = _played("shell-company")
        outcome = game.play_event_card(0)
        assert outcome.event.id == "shell-company"
        assert game.game_state.get_player_events(0) == []
        assert _played("shell-company") == before + 1

    def test_bad_index(self, game):
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0)

    def test_missing_target_keeps_card(self, game):
        game.give("market-crash")
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0)
        assert len(game.game_state.get_player_events(0)) == 1

    def test_rejected_effect_keeps_card_and_state(self, game):
        game.give("rezoning")
        _tile(game, 0, 0, H, 1)
        before = game.game_state.serialize()
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0, TargetSpec.at(0, 0))
        assert game.game_state.serialize() == before

    def test_insurance_claim_cannot_be_played(self, game):
        game.give("insurance-claim")
        with pytest.raises(IllegalMoveError, match="triggered"):
            game.play_event_card(0)
        assert len(game.game_state.get_player_events(0)) == 1


class TestHandEffects:
    def test_market_crash_discards_oldest(self, game):
        game.give("market-crash")
        for tile in (H, H, H, C, C, I):
            game.game_state.add_tile_to_hand(1, tile)
        outcome = game.play_event_card(0, TargetSpec.opponent(1))
        assert outcome.details["discarded"] == 3
        assert game.game_state.get_player_hand(1) == [C, C, I]

    def test_market_crash_cannot_target_self(self, game):
        game.give("market-crash")
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0, TargetSpec.opponent(0))

    def test_construction_boom_respects_hand_limit(self, game):
        game.give("construction-boom")
        gs = game.game_state
        for _ in range(7):
            gs.add_tile_to_hand(0, H)
        gs.init_draw_pile([I] * 5)
        outcome = game.play_event_card(0)
        assert outcome.details == {"drawn": 3, "discarded": 2}
        assert len(gs.get_player_hand(0)) == 8
        assert gs.draw_pile_count == 2

    def test_expedited_permits(self, game):
        game.give("expedited-permits")
        game.game_state.init_event_pile(create_event_deck()[:1])
        outcome = game.play_event_card(0)
        assert outcome.details["drawn"] == 1
        assert len(game.game_state.get_player_events(0)) == 1


class TestBoardEffects:
    def test_rezoning_returns_own_tile(self, game):
        game.give("rezoning")
        _tile(game, 0, 0, C, 0)
        game.play_event_card(0, TargetSpec.at(0, 0))
        assert game.game_state.get_tile(0, 0) is None
        assert game.game_state.get_player_hand(0) == [C]

    def test_eminent_domain_removes_any_tile(self, game):
        game.give("eminent-domain")
        _tile(game, 4, 4, I, 1)
        game.play_event_card(0, TargetSpec.at(4, 4))
        assert game.game_state.get_tile(4, 4) is None
        assert game.game_state.get_player_hand(1) == []

    def test_eminent_domain_cannot_touch_landmarks(self, game):
        game.give("eminent-domain")
        gs = game.game_state
        for dx, tile in enumerate((H, C, I)):
            _tile(game, dx, 0, tile, 1)
        gs.form_landmark(0, 0, [(0, 0), (1, 0), (2, 0)], 1)
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0, TargetSpec.at(1, 0))
        assert gs.get_landmark_at(0, 0) is not None

    def test_hostile_acquisition_steals(self, game):
        game.give("hostile-acquisition")
        _tile(game, 4, 4, I, 1)
        game.play_event_card(0, TargetSpec.at(4, 4))
        assert game.game_state.get_tile(4, 4) is None
        assert game.game_state.get_player_hand(0) == [I]

    def test_conversion_permit(self, game):
        game.give("conversion-permit")
        _tile(game, 0, 0, H, 0)
        game.play_event_card(0, TargetSpec.at(0, 0, new_type=I))
        assert game.game_state.get_tile(0, 0).type == I

    def test_conversion_permit_needs_different_type(self, game):
        game.give("conversion-permit")
        _tile(game, 0, 0, H, 0)
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0, TargetSpec.at(0, 0, new_type=H))

    def test_hostile_rezoning(self, game):
        game.give("hostile-rezoning")
        _tile(game, 5, 5, C, 1)
        game.play_event_card(0, TargetSpec.at(5, 5, new_type=H))
        tile = game.game_state.get_tile(5, 5)
        assert (tile.type, tile.owner) == (H, 1)

    def test_urban_renewal_moves_to_adjacent_empty(self, game):
        game.give("urban-renewal")
        _tile(game, 0, 0, H, 0)
        game.play_event_card(0, TargetSpec.move(0, 0, 1, 0))
        assert game.game_state.get_tile(1, 0).owner == 0
        assert game.game_state.get_tile(0, 0) is None

    @pytest.mark.parametrize("dest", [(2, 0), (0, 1)])
    def test_urban_renewal_rejects_far_or_occupied(self, game, dest):
        game.give("urban-renewal")
        _tile(game, 0, 0, H, 0)
        _tile(game, 0, 1, C, 1)
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0, TargetSpec.move(0, 0, *dest))

    def test_backroom_deal_swaps_adjacent(self, game):
        game.give("backroom-deal")
        _tile(game, 3, 3, H, 0)
        _tile(game, 4, 3, C, 1)
        game.play_event_card(0, TargetSpec.move(3, 3, 4, 3))
        gs = game.game_state
        assert (gs.get_tile(3, 3).type, gs.get_tile(3, 3).owner) == (C, 1)
        assert (gs.get_tile(4, 3).type, gs.get_tile(4, 3).owner) == (H, 0)

    def test_backroom_deal_needs_opponent_tile(self, game):
        game.give("backroom-deal")
        _tile(game, 3, 3, H, 0)
        _tile(game, 4, 3, C, 0)
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0, TargetSpec.move(3, 3, 4, 3))

    def test_hostile_expansion_captures_free(self, game):
        game.give("hostile-expansion")
        gs = game.game_state
        _tile(game, 2, 2, H, 0)
        _tile(game, 3, 2, C, 1)
        gs.place_agent(3, 2, 1)
        outcome = game.play_event_card(0, TargetSpec.at(3, 2))
        assert gs.get_tile(3, 2).owner == 0
        assert gs.get_agents_at(3, 2) == []
        assert outcome.details["defending_agents_removed"] == 1

    def test_hostile_expansion_requires_adjacent_territory(self, game):
        game.give("hostile-expansion")
        _tile(game, 0, 0, H, 0)
        _tile(game, 5, 5, C, 1)
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0, TargetSpec.at(5, 5))


class TestFlagsAndAgents:
    @pytest.mark.parametrize(
        "card_id,flag",
        [
            ("union-strike", PlayerFlag.SKIP_NEXT_AGENT_PHASE),
            ("red-tape", PlayerFlag.SKIP_NEXT_DEVELOP_PHASE),
        ],
    )
    def test_skip_flags_set_on_opponent(self, game, card_id, flag):
        game.give(card_id)
        game.play_event_card(0, TargetSpec.opponent(1))
        assert game.game_state.get_player_flag(1, flag)
        assert not game.game_state.get_player_flag(0, flag)

    def test_shell_company_sets_own_flag(self, game):
        game.give("shell-company")
        game.play_event_card(0)
        assert game.game_state.get_player_flag(
            0, PlayerFlag.IGNORE_ADJACENCY_NEXT_TILE
        )

    def _hq(self, game):
        gs = game.game_state
        for dx, tile in enumerate((H, C, I)):
            _tile(game, dx, 0, tile, 0)
        gs.form_landmark(0, 0, [(0, 0), (1, 0), (2, 0)], 0)

    def test_reinforcements_on_hq(self, game):
        game.give("reinforcements")
        self._hq(game)
        game.game_state.convert_to_hq(0, 0, 0)
        game.play_event_card(0, TargetSpec.at(0, 0))
        assert game.game_state.get_player_agent_count(0) == 4

    def test_reinforcements_need_hq(self, game):
        game.give("reinforcements")
        self._hq(game)
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0, TargetSpec.at(0, 0))

    def test_reinforcements_respect_cap(self, game):
        game.give("reinforcements", max_agents_per_player=3)
        self._hq(game)
        game.game_state.convert_to_hq(0, 0, 0)
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0, TargetSpec.at(0, 0))

    def test_double_agent_moves_opponent(self, game):
        game.give("double-agent")
        gs = game.game_state
        gs.place_agent(2, 2, 1)
        game.play_event_card(0, TargetSpec.move(2, 2, 2, 3))
        assert gs.get_agents_at(2, 2) == []
        assert gs.get_agents_at(2, 3)[0].owner == 1

    def test_double_agent_ignores_own_agents(self, game):
        game.give("double-agent")
        game.game_state.place_agent(2, 2, 0)
        with pytest.raises(IllegalMoveError):
            game.play_event_card(0, TargetSpec.move(2, 2, 2, 3))


class TestInformation:
    def test_insider_trading_reorders_top(self, game):
        game.give("insider-trading")
        gs = game.game_state
        gs.init_draw_pile([H, C, I, H, C])
        outcome = game.play_event_card(0, TargetSpec(new_order=(H, H, C, C, I)))
        assert outcome.details["peeked"] == [C, H, I, C, H]
        assert gs.peek_draw_pile(5) == [H, H, C, C, I]

    def test_insider_trading_without_reorder(self, game):
        game.give("insider-trading")
        game.game_state.init_draw_pile([H, C])
        outcome = game.play_event_card(0)
        assert outcome.details == {"peeked": [C, H], "reordered": False}

    def test_stakeout(self, game):
        game.give("stakeout")
        gs = game.game_state
        secret = game.give("red-tape", player=1)
        gs.init_draw_pile([H, C, I, I])
        outcome = game.play_event_card(0, TargetSpec.opponent(1))
        assert outcome.details["opponent_events"] == [secret]
        assert outcome.details["top_tiles"] == [I, I, C]


class TestValidTargets:
    def test_opponent_cards(self, game):
        card = get_event_by_id("union-strike")
        assert game.get_valid_targets_for_event(card) == [TargetSpec(player=1)]

    def test_own_and_opponent_tiles(self, game):
        _tile(game, 0, 0, H, 0)
        _tile(game, 5, 5, C, 1)
        own = game.get_valid_targets_for_event(get_event_by_id("rezoning"))
        theirs = game.get_valid_targets_for_event(
            get_event_by_id("hostile-acquisition")
        )
        assert own == [TargetSpec(position=P(0, 0))]
        assert theirs == [TargetSpec(position=P(5, 5))]

    def test_adjacent_opponent_tiles(self, game):
        _tile(game, 2, 2, H, 0)
        _tile(game, 3, 2, C, 1)
        _tile(game, 6, 6, C, 1)
        targets = game.get_valid_targets_for_event(
            get_event_by_id("hostile-expansion")
        )
        assert targets == [TargetSpec(position=P(3, 2))]
        swaps = game.get_valid_targets_for_event(get_event_by_id("backroom-deal"))
        assert swaps == [TargetSpec(position=P(2, 2))]

    def test_opponent_agents(self, game):
        game.game_state.place_agent(1, 1, 1)
        game.game_state.place_agent(2, 2, 0)
        targets = game.get_valid_targets_for_event(get_event_by_id("double-agent"))
        assert targets == [TargetSpec(position=P(1, 1), player=1)]

    def test_untargeted_card(self, game):
        assert game.get_valid_targets_for_event(get_event_by_id("shell-company")) == []
