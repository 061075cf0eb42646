"""Prometheus metrics for the Trinity engine.

Counters are module-level singletons registered on the default registry so
that a host process can expose them with ``prometheus_client.start_http_server``
without any wiring inside the engine. Labels are kept low-cardinality.
"""

from __future__ import annotations

from typing import Final

from prometheus_client import Counter, Histogram


TILES_PLACED: Final[Counter] = Counter(
    "trinity_tiles_placed_total",
    "Standing tiles placed on the board, labeled by tile type.",
    labelnames=("tile_type",),
)

LANDMARKS_FORMED: Final[Counter] = Counter(
    "trinity_landmarks_formed_total",
    "Landmarks formed from a detected trinity.",
)

HQS_CREATED: Final[Counter] = Counter(
    "trinity_hqs_created_total",
    "Landmarks converted into headquarters.",
)

AGENTS_PLACED: Final[Counter] = Counter(
    "trinity_agents_placed_total",
    "Agents added to the board, labeled by source (place, hq, event).",
    labelnames=("source",),
)

TRINITY_DETECTIONS: Final[Counter] = Counter(
    "trinity_detections_total",
    "Trinity detection runs after a placement, labeled by outcome.",
    labelnames=("outcome",),
)

ACTIONS_REJECTED: Final[Counter] = Counter(
    "trinity_actions_rejected_total",
    (
        "Controller actions rejected by the rules, labeled by action and "
        "error code."
    ),
    labelnames=("action", "code"),
)

EVENTS_PLAYED: Final[Counter] = Counter(
    "trinity_events_played_total",
    "Event cards played, labeled by card id.",
    labelnames=("event_id",),
)

GAMES_COMPLETED: Final[Counter] = Counter(
    "trinity_games_completed_total",
    "Games that reached an end condition, labeled by reason.",
    labelnames=("reason",),
)

GAME_LENGTH_TURNS: Final[Histogram] = Histogram(
    "trinity_game_length_turns",
    "Turn number at which completed games ended.",
    buckets=(5, 10, 20, 30, 40, 60, 80, 120),
)
