"""
Pydantic models for the Trinity game state.

Board cells are addressed by ``"x,y"`` keys produced by
:meth:`Position.to_key`. The board keeps standing tiles, landmark footprints
and agent stacks in separate maps; :class:`Cell` is the read-side view that
folds the first two into a single tagged variant.
"""

from pydantic import BaseModel, Field
from typing import Annotated, Any, Dict, List, Literal, Optional, Tuple, Union
from enum import Enum


BOARD_SIZE = 8


class TileType(str, Enum):
    """Tile type enumeration"""
    HOUSING = "housing"
    COMMERCE = "commerce"
    INDUSTRY = "industry"


class GamePhase(str, Enum):
    """Game phase enumeration"""
    SETUP = "setup"
    PLAYING = "playing"
    PAUSED = "paused"
    GAME_OVER = "gameover"


class TurnPhase(str, Enum):
    """Phases within a single player's turn.

    DRAW, DEVELOP, AGENT and END are used by the classic turn mode; simple
    mode stays in PLACE for the whole turn.
    """
    DRAW = "draw"
    DEVELOP = "develop"
    AGENT = "agent"
    END = "end"
    PLACE = "place"


class PlayerFlag(str, Enum):
    """One-shot flags set on a player by event cards"""
    SKIP_NEXT_AGENT_PHASE = "skip_next_agent_phase"
    SKIP_NEXT_DEVELOP_PHASE = "skip_next_develop_phase"
    IGNORE_ADJACENCY_NEXT_TILE = "ignore_adjacency_next_tile"


class EventCategory(str, Enum):
    IMMEDIATE = "immediate"
    TACTICAL = "tactical"


class EventTarget(str, Enum):
    NONE = "none"
    SELF = "self"
    OPPONENT = "opponent"
    TILE = "tile"
    LANDMARK = "landmark"
    AGENT = "agent"
    ANY_TILE = "any-tile"


class TargetFilter(str, Enum):
    OWN_TILES = "OWN_TILES"
    OPPONENT_TILES = "OPPONENT_TILES"
    NOT_LANDMARK = "NOT_LANDMARK"
    OWN_HQ = "OWN_HQ"
    ADJACENT_OPPONENT_TILES = "ADJACENT_OPPONENT_TILES"
    OPPONENT_AGENTS = "OPPONENT_AGENTS"
    OWN_TILES_ADJACENT_TO_OPPONENT = "OWN_TILES_ADJACENT_TO_OPPONENT"


class EventEffect(str, Enum):
    DISCARD_TO_HAND_SIZE = "DISCARD_TO_HAND_SIZE"
    DRAW_TILES = "DRAW_TILES"
    PEEK_AND_REORDER_DECK = "PEEK_AND_REORDER_DECK"
    RETURN_TILE_TO_HAND = "RETURN_TILE_TO_HAND"
    REMOVE_TILE = "REMOVE_TILE"
    STEAL_TILE_TO_HAND = "STEAL_TILE_TO_HAND"
    CHANGE_TILE_TYPE = "CHANGE_TILE_TYPE"
    MOVE_OWN_TILE = "MOVE_OWN_TILE"
    IGNORE_ADJACENCY = "IGNORE_ADJACENCY"
    SWAP_TILES = "SWAP_TILES"
    CHANGE_OPPONENT_TILE_TYPE = "CHANGE_OPPONENT_TILE_TYPE"
    SPAWN_AGENT = "SPAWN_AGENT"
    MOVE_OPPONENT_AGENT = "MOVE_OPPONENT_AGENT"
    SKIP_AGENT_PHASE = "SKIP_AGENT_PHASE"
    FREE_CAPTURE = "FREE_CAPTURE"
    DRAW_EVENTS = "DRAW_EVENTS"
    VIEW_HIDDEN_INFO = "VIEW_HIDDEN_INFO"
    RECOVER_ON_TAKEOVER = "RECOVER_ON_TAKEOVER"
    SKIP_DEVELOP_PHASE = "SKIP_DEVELOP_PHASE"


class Position(BaseModel):
    """Board position"""
    x: int
    y: int

    class Config:
        frozen = True

    def to_key(self) -> str:
        """Convert position to string key"""
        return f"{self.x},{self.y}"

    @classmethod
    def from_key(cls, key: str) -> "Position":
        x, y = key.split(",")
        return cls(x=int(x), y=int(y))


class StandingTile(BaseModel):
    """A single tile standing on the board"""
    position: Position
    type: TileType
    owner: int

    class Config:
        frozen = True


class LandmarkMember(BaseModel):
    """One of the three tiles fused into a landmark"""
    position: Position
    type: TileType

    class Config:
        frozen = True


class Landmark(BaseModel):
    """A fused trinity, anchored at its Housing member.

    ``members`` is kept for provenance and footprint lookups; it is never
    re-validated after formation. Landmarks are immutable; HQ conversion
    replaces the stored entry.
    """
    position: Position
    owner: int
    is_hq: bool = Field(False, alias="isHQ")
    members: Tuple[LandmarkMember, ...]
    formed_turn: int = Field(0, alias="formedTurn")

    class Config:
        frozen = True
        populate_by_name = True

    def footprint(self) -> List[Position]:
        return [m.position for m in self.members]


class AgentStack(BaseModel):
    """One owner's agents at one position"""
    position: Position
    owner: int
    count: int = Field(ge=1)

    class Config:
        frozen = True


class EmptyCell(BaseModel):
    kind: Literal["empty"] = "empty"

    class Config:
        frozen = True


class StandingCell(BaseModel):
    kind: Literal["standing"] = "standing"
    tile: StandingTile

    class Config:
        frozen = True


class LandmarkAnchorCell(BaseModel):
    kind: Literal["landmark_anchor"] = "landmark_anchor"
    landmark: Landmark

    class Config:
        frozen = True


class LandmarkCoveredCell(BaseModel):
    kind: Literal["landmark_covered"] = "landmark_covered"
    anchor: Position

    class Config:
        frozen = True


Cell = Annotated[
    Union[EmptyCell, StandingCell, LandmarkAnchorCell, LandmarkCoveredCell],
    Field(discriminator="kind"),
]


class BoardState(BaseModel):
    """Current board contents.

    ``landmark_cells`` maps every footprint key (anchor included) to the key
    of the anchor that owns it. A key is never present in both ``tiles`` and
    ``landmark_cells``.
    """
    size: int = BOARD_SIZE
    tiles: Dict[str, StandingTile] = Field(default_factory=dict)
    landmarks: Dict[str, Landmark] = Field(default_factory=dict)
    landmark_cells: Dict[str, str] = Field(
        default_factory=dict, alias="landmarkCells"
    )
    agents: Dict[str, List[AgentStack]] = Field(default_factory=dict)

    class Config:
        populate_by_name = True


class EventCard(BaseModel):
    """Event card definition, or a dealt instance when instance_id is set"""
    id: str
    name: str
    description: str
    category: EventCategory
    target: EventTarget
    target_filter: Optional[TargetFilter] = Field(None, alias="targetFilter")
    copies: int = 1
    effect: EventEffect
    effect_params: Dict[str, Any] = Field(
        default_factory=dict, alias="effectParams"
    )
    trigger: Optional[str] = None
    instance_id: Optional[str] = Field(None, alias="instanceId")

    class Config:
        populate_by_name = True
        frozen = True


class Player(BaseModel):
    """Player state"""
    index: int
    name: str
    landmarks: int = 0
    headquarters: int = 0
    hand: List[TileType] = Field(default_factory=list)
    events: List[EventCard] = Field(default_factory=list)
    skip_next_agent_phase: bool = Field(False, alias="skipNextAgentPhase")
    skip_next_develop_phase: bool = Field(False, alias="skipNextDevelopPhase")
    ignore_adjacency_next_tile: bool = Field(
        False, alias="ignoreAdjacencyNextTile"
    )

    class Config:
        populate_by_name = True


class TurnInfo(BaseModel):
    """Turn tracking"""
    number: int = 0
    phase: TurnPhase = TurnPhase.DRAW
    tiles_placed_this_turn: int = Field(0, alias="tilesPlacedThisTurn")

    class Config:
        populate_by_name = True


class GameSnapshot(BaseModel):
    """Complete game state"""
    phase: GamePhase = GamePhase.SETUP
    current_player: int = Field(0, alias="currentPlayer")
    players: List[Player]
    board: BoardState = Field(default_factory=BoardState)
    draw_pile: List[TileType] = Field(default_factory=list, alias="drawPile")
    event_pile: List[EventCard] = Field(
        default_factory=list, alias="eventPile"
    )
    turn: TurnInfo = Field(default_factory=TurnInfo)

    class Config:
        populate_by_name = True

    @property
    def player_count(self) -> int:
        return len(self.players)
