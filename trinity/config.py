"""Tunable rule constants for a Trinity game.

``GameRules`` holds every rule knob the controller consults. Defaults follow
the printed rulebook; any field can be overridden from the environment with
``TRINITY_<FIELD_NAME>`` (upper-case), e.g.::

    export TRINITY_PLAYER_COUNT=3
    export TRINITY_ENABLE_SHUFFLE=true
    export TRINITY_TURN_MODE=classic
"""

from __future__ import annotations

import logging
import os
from enum import Enum
from typing import Mapping

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

logger = logging.getLogger(__name__)

ENV_PREFIX = "TRINITY_"
_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}

# Verbose trinity-detection tracing, read once at import.
DEBUG_ENGINE = os.getenv("TRINITY_DEBUG_ENGINE", "").lower() in _TRUTHY


class TurnMode(str, Enum):
    SIMPLE = "simple"
    CLASSIC = "classic"


class DrawMode(str, Enum):
    REFILL = "refill"
    FIXED = "fixed"


class GameRules(BaseModel):
    """Rule configuration"""
    # Players and hands
    player_count: int = Field(2, ge=2, le=4)
    hand_size: int = Field(8, ge=1)
    enable_shuffle: bool = False
    draw_mode: DrawMode = DrawMode.REFILL
    draw_count: int = Field(1, ge=0)
    landmark_draw_bonus: bool = True
    underdog_bonus_enabled: bool = True

    # Placement
    tiles_per_turn: int = Field(1, ge=1)
    unlimited_placement: bool = False
    require_starting_zone: bool = True
    require_adjacency: bool = True
    turn_mode: TurnMode = TurnMode.SIMPLE
    skip_agent_phase: bool = True

    # Tiles
    tiles_per_type: int = Field(24, ge=1)

    # Landmarks and headquarters
    auto_form_landmarks: bool = True
    enable_hq: bool = True
    max_hq_per_player: int = Field(2, ge=0)
    agents_on_hq_conversion: int = Field(3, ge=0)

    # Agents
    enable_agents: bool = True
    max_agents_per_player: int = Field(6, ge=0)
    agents_spawned_per_hq: int = Field(1, ge=0)
    agent_movement_range: int = Field(1, ge=1)
    agents_can_pass_enemies: bool = False

    # Win conditions
    end_on_full_board: bool = True
    end_on_empty_deck: bool = True
    landmarks_to_win: int = Field(0, ge=0)

    # Setup
    rulebook_starting_player: bool = True
    enable_event_draft: bool = True
    starting_events: int = Field(2, ge=0)

    class Config:
        frozen = True

    @property
    def is_simple_turn_mode(self) -> bool:
        return self.turn_mode == TurnMode.SIMPLE

    @property
    def total_tiles(self) -> int:
        return self.tiles_per_type * 3

    def tiles_to_draw(self, current_hand_size: int) -> int:
        """Tiles drawn at end of turn when the landmark bonus is off."""
        if self.draw_mode == DrawMode.REFILL:
            return max(0, self.hand_size - current_hand_size)
        return self.draw_count


def _parse_env_value(name: str, raw: str, annotation: type) -> object:
    if annotation is bool:
        lowered = raw.strip().lower()
        if lowered in _TRUTHY:
            return True
        if lowered in _FALSY:
            return False
        raise ValidationError(
            f"Cannot parse boolean from {ENV_PREFIX}{name.upper()}",
            context={"value": raw},
        )
    if annotation is int:
        try:
            return int(raw)
        except ValueError as exc:
            raise ValidationError(
                f"Cannot parse integer from {ENV_PREFIX}{name.upper()}",
                context={"value": raw},
            ) from exc
    return raw.strip().lower()


def load_rules(
    env: Mapping[str, str] | None = None,
    **overrides: object,
) -> GameRules:
    """Build ``GameRules`` from defaults, environment and explicit overrides.

    Explicit keyword overrides win over the environment.
    """
    env = os.environ if env is None else env
    values: dict[str, object] = {}
    for name, field in GameRules.model_fields.items():
        raw = env.get(f"{ENV_PREFIX}{name.upper()}")
        if raw is None:
            continue
        values[name] = _parse_env_value(name, raw, field.annotation)
        logger.debug("Rule %s overridden from environment: %r", name, raw)
    values.update(overrides)
    try:
        return GameRules(**values)
    except PydanticValidationError as exc:
        fields = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
        raise ValidationError(
            "Invalid rule configuration", context={"fields": ",".join(fields)}
        ) from exc


DEFAULT_RULES = GameRules()
