"""Extrusion engine - vertical walls, ceiling caps and borders for zoned elements.

Pure function of element outline and altitude properties. Every call
regenerates all primitives; elements number in the tens, so there is no
incremental patching.

Per element the vertical band (base, top) in meters above ground:
    noFlyZone           (floor, ceiling)
    geofence            (0, altitude), no ceiling (open-topped curtain)
    searchZone          (0, altitude), translucent ceiling

Outline vertices may carry a sampled ground elevation as third component
(terrain-draped view); without it the ground is at z=0.
"""

import logging
from dataclasses import dataclass, field
from typing import Iterable, Protocol

from shapely.geometry import Polygon

from mission_planner.constants import StyleConfig
from mission_planner.model.geometry import Coord3D
from mission_planner.model.mission_element import (
    AltitudeBand,
    AltitudeProperties,
    FeatureType,
    NoFlyZoneAltitude,
    default_properties,
)
from mission_planner.model.primitives import RGBA, ExtrusionPrimitive, PrimitiveKind

logger = logging.getLogger(__name__)

CEILING_TYPES = frozenset({FeatureType.NO_FLY_ZONE, FeatureType.SEARCH_ZONE})


class Extrudable(Protocol):
    """Anything with an id, a type, altitude properties and an outline (2D or draped)."""

    element_id: int
    feature_type: FeatureType
    properties: AltitudeProperties

    @property
    def outline(self) -> tuple: ...


@dataclass(frozen=True)
class ExtrusionResult:
    """All extrusion primitives of one pass, grouped by kind."""

    walls: tuple[ExtrusionPrimitive, ...] = ()
    ceilings: tuple[ExtrusionPrimitive, ...] = ()
    borders: tuple[ExtrusionPrimitive, ...] = ()
    skipped: tuple[int, ...] = field(default=(), compare=False)

    def __iter__(self):
        yield from self.walls
        yield from self.ceilings
        yield from self.borders

    def for_owner(self, owner_id: int) -> list[ExtrusionPrimitive]:
        return [p for p in self if p.owner_id == owner_id]


def resolve_offsets(feature_type: FeatureType, properties: AltitudeProperties) -> tuple[float, float]:
    """(base, top) offsets above ground for a zoned element."""
    if not feature_type.is_zoned:
        raise ValueError(f"{feature_type.value} is not a zoned feature type")
    if not isinstance(properties, (NoFlyZoneAltitude, AltitudeBand)):
        properties = default_properties(feature_type)
    if isinstance(properties, NoFlyZoneAltitude):
        return properties.floor, properties.ceiling
    return 0.0, properties.altitude


def ring_vertices(outline: Iterable) -> list[tuple]:
    """Distinct vertices of an explicitly or implicitly closed ring, in order."""
    vertices = [tuple(p) for p in outline]
    if len(vertices) > 1 and vertices[0][:2] == vertices[-1][:2]:
        vertices = vertices[:-1]
    return vertices


def _ground(vertex: tuple) -> float:
    return float(vertex[2]) if len(vertex) > 2 else 0.0


def _lift(vertex: tuple, offset: float) -> Coord3D:
    return (float(vertex[0]), float(vertex[1]), _ground(vertex) + offset)


def _with_alpha(color: tuple, alpha: int) -> RGBA:
    return (color[0], color[1], color[2], alpha)


class ExtrusionEngine:
    """Derives wall, ceiling and border primitives from zoned elements.

    Example:
        result = ExtrusionEngine().extrude(collection)
        len(result.walls)  # one quad per outline edge
    """

    def __init__(self, colors: dict[str, tuple] | None = None) -> None:
        self.colors = colors or StyleConfig.FEATURE_COLORS_RGBA

    def extrude(self, elements: Iterable[Extrudable]) -> ExtrusionResult:
        """Extrude every zoned element; non-zoned elements are ignored."""
        walls: list[ExtrusionPrimitive] = []
        ceilings: list[ExtrusionPrimitive] = []
        borders: list[ExtrusionPrimitive] = []
        skipped: list[int] = []

        for element in elements:
            if not element.feature_type.is_zoned:
                continue
            vertices = ring_vertices(element.outline)
            if not self._is_extrudable(vertices):
                logger.debug(f"Element {element.element_id}: degenerate outline ({len(vertices)} vertices), skipped")
                skipped.append(element.element_id)
                continue

            base, top = resolve_offsets(element.feature_type, element.properties)
            color = self.colors[element.feature_type.value]
            owner = element.element_id

            walls.extend(self._walls(owner, vertices, base, top, _with_alpha(color, StyleConfig.WALL_ALPHA)))
            if element.feature_type in CEILING_TYPES:
                ceilings.append(
                    ExtrusionPrimitive(
                        owner_id=owner,
                        kind=PrimitiveKind.CEILING,
                        geometry=tuple(_lift(v, top) for v in vertices),
                        color=_with_alpha(color, StyleConfig.CEILING_ALPHA),
                    )
                )
            border = [_lift(v, top) for v in vertices]
            borders.append(
                ExtrusionPrimitive(
                    owner_id=owner,
                    kind=PrimitiveKind.BORDER,
                    geometry=tuple(border + [border[0]]),
                    color=_with_alpha(color, StyleConfig.BORDER_ALPHA),
                )
            )

        return ExtrusionResult(
            walls=tuple(walls),
            ceilings=tuple(ceilings),
            borders=tuple(borders),
            skipped=tuple(skipped),
        )

    @staticmethod
    def _is_extrudable(vertices: list[tuple]) -> bool:
        if len({v[:2] for v in vertices}) < 3:
            return False
        return Polygon([v[:2] for v in vertices]).area > 0

    @staticmethod
    def _walls(owner: int, vertices: list[tuple], base: float, top: float, color: RGBA) -> list[ExtrusionPrimitive]:
        walls = []
        n = len(vertices)
        for i in range(n):
            p1, p2 = vertices[i], vertices[(i + 1) % n]
            quad = (_lift(p1, base), _lift(p2, base), _lift(p2, top), _lift(p1, top))
            walls.append(ExtrusionPrimitive(owner_id=owner, kind=PrimitiveKind.WALL, geometry=quad, color=color))
        return walls
