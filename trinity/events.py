"""Event card catalog and event deck construction."""

from __future__ import annotations

from .models import (
    EventCard,
    EventCategory,
    EventEffect,
    EventTarget,
    TargetFilter,
)

__all__ = [
    "EVENT_CARDS",
    "create_event_deck",
    "event_requires_target",
    "get_event_by_id",
    "get_total_event_cards",
]


EVENT_CARDS: tuple[EventCard, ...] = (
    # Economic
    EventCard(
        id="market-crash",
        name="Market Crash",
        description="Target player must discard down to 3 tiles in hand.",
        category=EventCategory.IMMEDIATE,
        target=EventTarget.OPPONENT,
        copies=2,
        effect=EventEffect.DISCARD_TO_HAND_SIZE,
        effect_params={"hand_size": 3},
    ),
    EventCard(
        id="construction-boom",
        name="Construction Boom",
        description="Draw 3 tiles from the draw pile.",
        category=EventCategory.IMMEDIATE,
        target=EventTarget.SELF,
        copies=2,
        effect=EventEffect.DRAW_TILES,
        effect_params={"count": 3},
    ),
    EventCard(
        id="insider-trading",
        name="Insider Trading",
        description="Look at the top 5 tiles of the draw pile. Put them back in any order.",
        category=EventCategory.TACTICAL,
        target=EventTarget.NONE,
        copies=2,
        effect=EventEffect.PEEK_AND_REORDER_DECK,
        effect_params={"count": 5},
    ),
    # Board manipulation
    EventCard(
        id="rezoning",
        name="Rezoning",
        description="Return one of your tiles from the board to your hand.",
        category=EventCategory.TACTICAL,
        target=EventTarget.TILE,
        target_filter=TargetFilter.OWN_TILES,
        copies=2,
        effect=EventEffect.RETURN_TILE_TO_HAND,
    ),
    EventCard(
        id="eminent-domain",
        name="Eminent Domain",
        description="Remove any basic tile from the board (not part of a landmark).",
        category=EventCategory.TACTICAL,
        target=EventTarget.ANY_TILE,
        target_filter=TargetFilter.NOT_LANDMARK,
        copies=2,
        effect=EventEffect.REMOVE_TILE,
    ),
    EventCard(
        id="hostile-acquisition",
        name="Hostile Acquisition",
        description="Steal an opponent's tile from the board and add it to your hand.",
        category=EventCategory.TACTICAL,
        target=EventTarget.TILE,
        target_filter=TargetFilter.OPPONENT_TILES,
        copies=2,
        effect=EventEffect.STEAL_TILE_TO_HAND,
    ),
    EventCard(
        id="conversion-permit",
        name="Conversion Permit",
        description="Change one of your tiles to a different type (H/C/I).",
        category=EventCategory.TACTICAL,
        target=EventTarget.TILE,
        target_filter=TargetFilter.OWN_TILES,
        copies=2,
        effect=EventEffect.CHANGE_TILE_TYPE,
    ),
    EventCard(
        id="urban-renewal",
        name="Urban Renewal",
        description="Move one of your tiles to an adjacent empty space.",
        category=EventCategory.TACTICAL,
        target=EventTarget.TILE,
        target_filter=TargetFilter.OWN_TILES,
        copies=2,
        effect=EventEffect.MOVE_OWN_TILE,
    ),
    EventCard(
        id="shell-company",
        name="Shell Company",
        description="Place a tile ignoring adjacency rules (still must be valid position).",
        category=EventCategory.TACTICAL,
        target=EventTarget.NONE,
        copies=2,
        effect=EventEffect.IGNORE_ADJACENCY,
    ),
    EventCard(
        id="backroom-deal",
        name="Backroom Deal",
        description="Swap one of your tiles with an adjacent opponent tile.",
        category=EventCategory.TACTICAL,
        target=EventTarget.TILE,
        target_filter=TargetFilter.OWN_TILES_ADJACENT_TO_OPPONENT,
        copies=2,
        effect=EventEffect.SWAP_TILES,
    ),
    EventCard(
        id="hostile-rezoning",
        name="Hostile Rezoning",
        description="Change an opponent's tile to a different type.",
        category=EventCategory.TACTICAL,
        target=EventTarget.TILE,
        target_filter=TargetFilter.OPPONENT_TILES,
        copies=1,
        effect=EventEffect.CHANGE_OPPONENT_TILE_TYPE,
    ),
    # Agents
    EventCard(
        id="reinforcements",
        name="Reinforcements",
        description="Place an additional agent on one of your HQ.",
        category=EventCategory.TACTICAL,
        target=EventTarget.LANDMARK,
        target_filter=TargetFilter.OWN_HQ,
        copies=2,
        effect=EventEffect.SPAWN_AGENT,
    ),
    EventCard(
        id="double-agent",
        name="Double Agent",
        description="Move one of your opponent's agents to an adjacent space.",
        category=EventCategory.TACTICAL,
        target=EventTarget.AGENT,
        target_filter=TargetFilter.OPPONENT_AGENTS,
        copies=2,
        effect=EventEffect.MOVE_OPPONENT_AGENT,
    ),
    EventCard(
        id="union-strike",
        name="Union Strike",
        description="Target player skips their next agent phase.",
        category=EventCategory.IMMEDIATE,
        target=EventTarget.OPPONENT,
        copies=2,
        effect=EventEffect.SKIP_AGENT_PHASE,
    ),
    EventCard(
        id="hostile-expansion",
        name="Hostile Expansion",
        description="Capture an opponent tile next to your territory without needing agents.",
        category=EventCategory.TACTICAL,
        target=EventTarget.TILE,
        target_filter=TargetFilter.ADJACENT_OPPONENT_TILES,
        copies=1,
        effect=EventEffect.FREE_CAPTURE,
    ),
    # Information
    EventCard(
        id="expedited-permits",
        name="Expedited Permits",
        description="Draw 2 event cards from the event pile.",
        category=EventCategory.IMMEDIATE,
        target=EventTarget.SELF,
        copies=2,
        effect=EventEffect.DRAW_EVENTS,
        effect_params={"count": 2},
    ),
    EventCard(
        id="stakeout",
        name="Stakeout",
        description="View opponent's event cards and the top 3 tiles of the draw pile.",
        category=EventCategory.TACTICAL,
        target=EventTarget.OPPONENT,
        copies=2,
        effect=EventEffect.VIEW_HIDDEN_INFO,
        effect_params={"view_events": True, "deck_peek_count": 3},
    ),
    # Defensive
    EventCard(
        id="insurance-claim",
        name="Insurance Claim",
        description="When a landmark is taken over, recover the tiles to your hand.",
        category=EventCategory.TACTICAL,
        target=EventTarget.NONE,
        copies=2,
        effect=EventEffect.RECOVER_ON_TAKEOVER,
        trigger="ON_LANDMARK_LOST",
    ),
    EventCard(
        id="red-tape",
        name="Red Tape",
        description="Target opponent skips their develop phase next turn.",
        category=EventCategory.IMMEDIATE,
        target=EventTarget.OPPONENT,
        copies=2,
        effect=EventEffect.SKIP_DEVELOP_PHASE,
    ),
)

_BY_ID = {card.id: card for card in EVENT_CARDS}


def get_event_by_id(event_id: str) -> EventCard | None:
    return _BY_ID.get(event_id)


def create_event_deck() -> list[EventCard]:
    """One instance per copy, in catalog order, ids ``<card-id>-<n>``."""
    deck: list[EventCard] = []
    for card in EVENT_CARDS:
        for i in range(card.copies):
            deck.append(card.model_copy(update={"instance_id": f"{card.id}-{i}"}))
    return deck


def event_requires_target(card: EventCard) -> bool:
    return card.target not in (EventTarget.NONE, EventTarget.SELF)


def get_total_event_cards() -> int:
    return sum(card.copies for card in EVENT_CARDS)
