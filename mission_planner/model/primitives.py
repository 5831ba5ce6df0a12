"""Draw primitives and pick results exchanged with the render projection.

Primitives are derived, never persisted. Each one is tagged with the id of
the mission element that owns it so that picking can map a hit back to an
element.
"""

from dataclasses import dataclass
from enum import Enum

from mission_planner.constants import PickConfig

RGBA = tuple[int, int, int, int]


class PrimitiveKind(Enum):
    """Kind of rendered primitive. Values are the `type` tags of rendered data."""

    FILL = PickConfig.TYPE_FILL
    WALL = PickConfig.TYPE_WALL
    CEILING = PickConfig.TYPE_CEILING
    BORDER = PickConfig.TYPE_BORDER
    ROUTE = PickConfig.TYPE_ROUTE
    POINT = PickConfig.TYPE_POINT
    VERTEX = PickConfig.TYPE_VERTEX


@dataclass(frozen=True)
class ExtrusionPrimitive:
    """Wall quad, ceiling cap or border path of a zoned element.

    Attributes:
        owner_id: Id of the owning mission element
        kind: WALL, CEILING or BORDER
        geometry: 3D positions (quad corners, cap ring, or border path)
        color: RGBA color
    """

    owner_id: int
    kind: PrimitiveKind
    geometry: tuple[tuple[float, float, float], ...]
    color: RGBA


@dataclass(frozen=True)
class RoutePrimitive:
    """Path or point primitive of a route or search point."""

    owner_id: int
    kind: PrimitiveKind
    geometry: tuple[tuple[float, float, float], ...]
    color: RGBA
    selected: bool = False


@dataclass(frozen=True)
class VertexHandle:
    """Draggable vertex of the selected element in modify mode."""

    owner_id: int
    vertex_index: int
    position: tuple[float, float, float]


@dataclass(frozen=True)
class PickResult:
    """What the render projection found under a screen point.

    Attributes:
        kind: Primitive kind that was hit
        owner_id: Owning element id
        vertex_index: Set only for VERTEX hits
    """

    kind: PrimitiveKind
    owner_id: int
    vertex_index: int | None = None

    def __post_init__(self) -> None:
        if self.kind == PrimitiveKind.VERTEX and self.vertex_index is None:
            raise ValueError("VERTEX pick must have vertex_index set")
