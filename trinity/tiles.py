"""Static tile catalog: display properties, short letters and draw-pile makeup."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable

from .models import TileType

__all__ = [
    "ALL_TILE_TYPES",
    "TILE_PROPERTIES",
    "TileProperties",
    "build_draw_pile",
    "is_trinity",
    "short_name",
    "tile_rank",
    "type_from_short_name",
]


@dataclass(frozen=True)
class TileProperties:
    name: str
    short_name: str
    color: str
    color_light: str
    color_dark: str
    description: str
    # Starting-player draw rank: H beats C beats I.
    rank: int


ALL_TILE_TYPES: tuple[TileType, ...] = (
    TileType.HOUSING,
    TileType.COMMERCE,
    TileType.INDUSTRY,
)

TILE_PROPERTIES: dict[TileType, TileProperties] = {
    TileType.HOUSING: TileProperties(
        name="Housing",
        short_name="H",
        color="#4CAF50",
        color_light="#81C784",
        color_dark="#388E3C",
        description="Residential buildings that house the city's population",
        rank=3,
    ),
    TileType.COMMERCE: TileProperties(
        name="Commerce",
        short_name="C",
        color="#2196F3",
        color_light="#64B5F6",
        color_dark="#1976D2",
        description="Shops and businesses that drive the economy",
        rank=2,
    ),
    TileType.INDUSTRY: TileProperties(
        name="Industry",
        short_name="I",
        color="#FF9800",
        color_light="#FFB74D",
        color_dark="#F57C00",
        description="Factories and production facilities",
        rank=1,
    ),
}

_SHORT_TO_TYPE = {props.short_name: t for t, props in TILE_PROPERTIES.items()}


def short_name(tile_type: TileType) -> str:
    return TILE_PROPERTIES[tile_type].short_name


def type_from_short_name(letter: str) -> TileType | None:
    """Map ``H``/``C``/``I`` (either case) to a tile type, else None."""
    return _SHORT_TO_TYPE.get(letter.upper())


def tile_rank(tile_type: TileType) -> int:
    return TILE_PROPERTIES[tile_type].rank


def is_trinity(types: Iterable[TileType]) -> bool:
    """True if ``types`` is exactly one Housing, one Commerce and one Industry."""
    types = list(types)
    return len(types) == 3 and set(types) == set(ALL_TILE_TYPES)


def build_draw_pile(tiles_per_type: int) -> list[TileType]:
    """Build the unshuffled draw pile, interleaved H, C, I.

    Tiles are drawn from the end of the list, so with shuffling disabled the
    first draw is an Industry tile.
    """
    pile: list[TileType] = []
    for _ in range(tiles_per_type):
        pile.extend(ALL_TILE_TYPES)
    return pile
