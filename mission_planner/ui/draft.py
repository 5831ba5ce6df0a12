"""In-progress geometry of a draw gesture.

The draft collects clicked vertices until the gesture finishes. A finishing
double-click is preceded by the two single clicks that make it up, so the
same position usually arrives two or three times in a row; those duplicates
are collapsed before the completion rule is checked.
"""

from dataclasses import dataclass, field

from mission_planner.constants import InteractionConfig
from mission_planner.model.geometry import Coord2D, Geometry, GeometryKind
from mission_planner.model.mission_element import FeatureType


def _same(a: Coord2D, b: Coord2D, tolerance: float) -> bool:
    return abs(a[0] - b[0]) <= tolerance and abs(a[1] - b[1]) <= tolerance


@dataclass
class DraftGeometry:
    """Vertices placed so far for a new element of feature_type."""

    feature_type: FeatureType
    vertices: list[Coord2D] = field(default_factory=list)
    tolerance_deg: float = InteractionConfig.DUPLICATE_VERTEX_TOLERANCE_DEG

    @property
    def kind(self) -> GeometryKind:
        return self.feature_type.geometry_kind

    @property
    def min_vertices(self) -> int:
        if self.kind == GeometryKind.POLYGON:
            return InteractionConfig.MIN_POLYGON_VERTICES
        if self.kind == GeometryKind.LINESTRING:
            return InteractionConfig.MIN_LINE_VERTICES
        return 1

    def add_vertex(self, lon: float, lat: float) -> None:
        self.vertices.append((float(lon), float(lat)))

    def distinct_vertices(self) -> list[Coord2D]:
        """Vertices with consecutive duplicates (and a polygon's closing duplicate) removed."""
        distinct: list[Coord2D] = []
        for vertex in self.vertices:
            if distinct and _same(distinct[-1], vertex, self.tolerance_deg):
                continue
            distinct.append(vertex)
        if self.kind == GeometryKind.POLYGON and len(distinct) > 1 and _same(distinct[0], distinct[-1], self.tolerance_deg):
            distinct.pop()
        return distinct

    def is_complete(self) -> bool:
        return len(self.distinct_vertices()) >= self.min_vertices

    def to_geometry(self) -> Geometry:
        """Finished geometry of the draft.

        Raises:
            ValueError: If the draft does not have enough distinct vertices.
        """
        vertices = self.distinct_vertices()
        if len(vertices) < self.min_vertices:
            raise ValueError(
                f"{self.feature_type.display_name} needs {self.min_vertices} vertices, got {len(vertices)}"
            )
        if self.kind == GeometryKind.POLYGON:
            return Geometry.polygon(vertices)
        if self.kind == GeometryKind.LINESTRING:
            return Geometry.linestring(vertices)
        return Geometry.point(vertices[0])

    def __len__(self) -> int:
        return len(self.vertices)
