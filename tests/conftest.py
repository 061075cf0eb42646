"""
Shared pytest fixtures for Trinity tests.

Game state fixtures are function-scoped so every test gets an isolated board.
"""

from typing import Callable, Optional

import pytest


# =============================================================================
# PROMETHEUS REGISTRY FIX
# =============================================================================
# trinity.metrics registers counters at import time. If a module ends up
# imported twice under different names the default registry would raise
# "Duplicated timeseries"; make identical re-registration a no-op instead.


def _patch_prometheus_registry():
    from prometheus_client.registry import CollectorRegistry

    _original_register = CollectorRegistry.register

    def _safe_register(self, collector):
        """Register collector, ignoring duplicates."""
        try:
            return _original_register(self, collector)
        except ValueError as e:
            if "Duplicated timeseries" not in str(e):
                raise

    # Only patch once
    if not getattr(CollectorRegistry, "_patched_for_tests", False):
        CollectorRegistry.register = _safe_register
        CollectorRegistry._patched_for_tests = True


_patch_prometheus_registry()

from trinity.config import GameRules, TurnMode
from trinity.game_controller import GameController
from trinity.game_state import GameState
from trinity.models import GamePhase, TileType


H, C, I = TileType.HOUSING, TileType.COMMERCE, TileType.INDUSTRY


# =============================================================================
# FACTORY FIXTURES
# =============================================================================


@pytest.fixture
def rules_factory() -> Callable[..., GameRules]:
    """Factory for GameRules with overrides; never reads the environment."""

    def _create_rules(**overrides) -> GameRules:
        return GameRules(**overrides)

    return _create_rules


@pytest.fixture
def state_factory() -> Callable[..., GameState]:
    """Factory for a GameState already in the ``playing`` phase."""

    def _create_state(
        player_count: int = 2,
        current_player: int = 0,
        rules: Optional[GameRules] = None,
    ) -> GameState:
        state = GameState(player_count, rules=rules)
        state.set_phase(GamePhase.PLAYING)
        state.set_turn_number(1)
        state.set_current_player(current_player)
        return state

    return _create_state


@pytest.fixture
def playing_state(state_factory) -> GameState:
    return state_factory()


@pytest.fixture
def place(playing_state) -> Callable[..., None]:
    """Place a tile for any owner by switching the current player."""

    def _place(x: int, y: int, tile_type: TileType, owner: int = 0, state=None):
        state = state or playing_state
        saved = state.current_player
        state.set_current_player(owner)
        state.place_tile(x, y, tile_type, owner)
        state.set_current_player(saved)

    return _place


@pytest.fixture
def controller_factory(rules_factory) -> Callable[..., GameController]:
    """Factory for a controller with a freshly started, unshuffled game."""

    def _create_controller(
        seed: int = 0, player_count: int = 2, **rule_overrides
    ) -> GameController:
        rules = rules_factory(player_count=player_count, **rule_overrides)
        controller = GameController(rules=rules, seed=seed)
        controller.start_new_game()
        return controller

    return _create_controller


@pytest.fixture
def controller(controller_factory) -> GameController:
    return controller_factory()


@pytest.fixture
def classic_controller(controller_factory) -> GameController:
    return controller_factory(turn_mode=TurnMode.CLASSIC, skip_agent_phase=False)


@pytest.fixture
def blank_controller(rules_factory) -> Callable[..., GameController]:
    """Controller over an empty ``playing`` board with hands set explicitly.

    Useful for placement scenarios that must not depend on the deal.
    """

    def _create(hands=None, current_player: int = 0, **rule_overrides) -> GameController:
        rules = rules_factory(**rule_overrides)
        state = GameState(rules.player_count, rules=rules)
        state.set_phase(GamePhase.PLAYING)
        state.set_turn_number(1)
        state.set_turn_phase("place" if rules.is_simple_turn_mode else "develop")
        state.set_current_player(current_player)
        for player, hand in enumerate(hands or []):
            for tile in hand:
                state.add_tile_to_hand(player, tile)
        return GameController(rules=rules, game_state=state)

    return _create
