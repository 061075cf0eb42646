"""Random AI implementation for Trinity.

This player picks uniformly among legal placements using its own seeded RNG,
so a self-play game is reproducible from the controller seed and the AI
seeds alone.
"""

from __future__ import annotations

import logging
import random
from typing import Any, List, Optional, Sequence

from ..game_controller import GameController, GameResult
from ..models import GamePhase, Position, TurnPhase

logger = logging.getLogger(__name__)

DEFAULT_MAX_TURNS = 200


class RandomAI:
    """AI that selects random valid placements."""

    def __init__(self, player: int, seed: int | None = None):
        self.player = player
        self.rng_seed = seed if seed is not None else 1000 + player
        self.rng: random.Random = random.Random(self.rng_seed)
        self.move_count = 0

    def get_random_element(self, items: Sequence[Any]) -> Optional[Any]:
        if not items:
            return None
        return self.rng.choice(list(items))

    def select_placement(
        self, controller: GameController
    ) -> Optional[tuple[int, int, int]]:
        """Return ``(x, y, hand_index)`` for a random legal placement.

        Returns:
            ``None`` when the hand is empty or no cell is legal.
        """
        hand = controller.game_state.get_player_hand(self.player)
        if not hand:
            return None
        cells: List[Position] = controller.get_valid_placements(self.player)
        cell = self.get_random_element(cells)
        if cell is None:
            return None
        self.move_count += 1
        return cell.x, cell.y, self.rng.randrange(len(hand))

    def select_hq_conversion(self, controller: GameController) -> Optional[Position]:
        """A landmark to upgrade, chosen with even odds of declining."""
        candidates = [
            lm.position
            for lm in controller.game_state.get_landmarks()
            if controller.can_convert_to_hq(lm.position.x, lm.position.y)
        ]
        if not candidates or self.rng.random() < 0.5:
            return None
        return self.get_random_element(candidates)

    def take_turn(self, controller: GameController) -> bool:
        """Play one full turn; returns whether a tile was placed."""
        state = controller.game_state
        classic = not controller.rules.is_simple_turn_mode
        if classic and state.turn_phase == TurnPhase.DRAW:
            controller.advance_phase()

        move = None
        if state.turn_phase in (TurnPhase.PLACE, TurnPhase.DEVELOP):
            conversion = self.select_hq_conversion(controller)
            if conversion is not None:
                controller.convert_landmark_to_hq(conversion.x, conversion.y)
            move = self.select_placement(controller)
            if move is not None:
                outcome = controller.try_place_tile(*move)
                if outcome.landmark is not None:
                    logger.debug(
                        "Player %d formed a landmark at %s",
                        self.player,
                        outcome.landmark.position.to_key(),
                    )

        if classic:
            while state.current_player == self.player:
                controller.advance_phase()
        else:
            controller.end_turn_with_refill()
        return move is not None

    def __repr__(self) -> str:
        return f"RandomAI(player={self.player}, seed={self.rng_seed})"


def play_random_game(
    controller: GameController,
    seed: int | None = None,
    max_turns: int = DEFAULT_MAX_TURNS,
) -> Optional[GameResult]:
    """Start a game on ``controller`` and let random players finish it.

    Returns the final result, or ``None`` if ``max_turns`` passed first.
    """
    state = controller.start_new_game(seed=seed)
    base = 0 if seed is None else seed
    players = [RandomAI(p, seed=base * 10 + p) for p in range(state.player_count)]

    while controller.game_state.turn_number <= max_turns:
        if controller.game_state.phase != GamePhase.PLAYING:
            break
        current = controller.game_state.current_player
        players[current].take_turn(controller)
        result = controller.check_game_end()
        if result is not None:
            return result
    logger.info("Stopped after %d turns without a result", max_turns)
    return None
