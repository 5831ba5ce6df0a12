"""Geometry - authored 2D shapes and their derived 3D views.

Stored geometry is always (lon, lat) pairs. Elevation only ever appears in
derived, recomputable views produced by the terrain sampler, so every write
path goes through strip_elevation() first.

Coordinate nesting follows GeoJSON:
    POINT:      (lon, lat)
    LINESTRING: ((lon, lat), ...)
    POLYGON:    (((lon, lat), ...), ...)  outer ring first
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any

Coord2D = tuple[float, float]
Coord3D = tuple[float, float, float]


class GeometryKind(Enum):
    """Shape of a mission element's coordinates."""

    POINT = "Point"
    LINESTRING = "LineString"
    POLYGON = "Polygon"


def is_position(value: Any) -> bool:
    """True if value is a single coordinate (sequence of numbers)."""
    return isinstance(value, (list, tuple)) and len(value) > 0 and isinstance(value[0], (int, float))


def strip_elevation(coords: Any) -> Any:
    """Return coords with every position reduced to (lon, lat), as nested tuples."""
    if is_position(coords):
        if len(coords) < 2:
            raise ValueError(f"Position needs lon and lat, got {coords!r}")
        return (float(coords[0]), float(coords[1]))
    return tuple(strip_elevation(c) for c in coords)


def has_elevation(coords: Any) -> bool:
    """True if any position in coords carries a third component."""
    if is_position(coords):
        return len(coords) > 2
    return any(has_elevation(c) for c in coords)


def positions(coords: Any) -> list[tuple[float, ...]]:
    """Flatten nested coordinates into a list of positions."""
    if is_position(coords):
        return [tuple(coords)]
    flat: list[tuple[float, ...]] = []
    for c in coords:
        flat.extend(positions(c))
    return flat


def is_closed_ring(ring: tuple) -> bool:
    """True if the ring repeats its first vertex at the end."""
    return len(ring) > 1 and tuple(ring[0][:2]) == tuple(ring[-1][:2])


def open_ring(ring: tuple) -> tuple:
    """Return ring vertices without the closing duplicate."""
    return tuple(ring[:-1]) if is_closed_ring(ring) else tuple(ring)


def close_ring(ring: tuple) -> tuple:
    """Return ring with first vertex repeated at the end (GeoJSON form)."""
    if not ring or is_closed_ring(ring):
        return tuple(ring)
    return tuple(ring) + (ring[0],)


@dataclass(frozen=True)
class Geometry:
    """Authored 2D geometry of a mission element.

    Attributes:
        kind: POINT, LINESTRING or POLYGON
        coordinates: Nested tuples in GeoJSON order, never with elevation

    Example:
        square = Geometry.polygon([(0, 0), (1, 0), (1, 1), (0, 1)])
    """

    kind: GeometryKind
    coordinates: Any

    def __post_init__(self) -> None:
        """Validate nesting depth and the 2D invariant."""
        if has_elevation(self.coordinates):
            raise ValueError("Stored geometry must not carry elevation; strip it before writing")
        if self.kind == GeometryKind.POINT and not is_position(self.coordinates):
            raise ValueError(f"POINT coordinates must be a single position, got {self.coordinates!r}")
        if self.kind == GeometryKind.LINESTRING and not all(is_position(c) for c in self.coordinates):
            raise ValueError("LINESTRING coordinates must be a sequence of positions")
        if self.kind == GeometryKind.POLYGON and not all(
            all(is_position(c) for c in ring) for ring in self.coordinates
        ):
            raise ValueError("POLYGON coordinates must be a sequence of rings")

    @staticmethod
    def point(coord: Any) -> "Geometry":
        return Geometry(kind=GeometryKind.POINT, coordinates=strip_elevation(coord))

    @staticmethod
    def linestring(coords: Any) -> "Geometry":
        return Geometry(kind=GeometryKind.LINESTRING, coordinates=strip_elevation(coords))

    @staticmethod
    def polygon(ring: Any) -> "Geometry":
        """Polygon from a single outer ring; the ring is closed GeoJSON-style."""
        return Geometry(kind=GeometryKind.POLYGON, coordinates=(close_ring(strip_elevation(ring)),))

    @staticmethod
    def from_coordinates(kind: GeometryKind, coords: Any) -> "Geometry":
        """Build geometry of the given kind from possibly 3D coordinates."""
        return Geometry(kind=kind, coordinates=strip_elevation(coords))

    @property
    def outline(self) -> tuple:
        """Outer ring for polygons, vertex list for lines, single-vertex tuple for points."""
        if self.kind == GeometryKind.POLYGON:
            return self.coordinates[0] if self.coordinates else ()
        if self.kind == GeometryKind.LINESTRING:
            return self.coordinates
        return (self.coordinates,)

    def vertices(self) -> list[Coord2D]:
        """Editable vertices: polygon rings without their closing duplicate."""
        if self.kind == GeometryKind.POLYGON:
            return list(open_ring(self.outline))
        return list(self.outline)

    def with_vertex(self, vertex_index: int, lon: float, lat: float) -> "Geometry":
        """Return geometry with one editable vertex moved.

        For closed rings, moving vertex 0 also moves the closing duplicate.
        """
        new_vertex = (float(lon), float(lat))
        if self.kind == GeometryKind.POINT:
            if vertex_index != 0:
                raise IndexError(f"POINT has a single vertex, got index {vertex_index}")
            return Geometry(kind=self.kind, coordinates=new_vertex)

        verts = self.vertices()
        if not 0 <= vertex_index < len(verts):
            raise IndexError(f"Vertex index {vertex_index} out of range ({len(verts)} vertices)")
        verts[vertex_index] = new_vertex

        if self.kind == GeometryKind.LINESTRING:
            return Geometry(kind=self.kind, coordinates=tuple(verts))
        holes = tuple(self.coordinates[1:])
        return Geometry(kind=self.kind, coordinates=(close_ring(tuple(verts)),) + holes)
