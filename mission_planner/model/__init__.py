"""Data model classes for mission elements.

Separates authored state (what the operator drew) from derived views:
- Geometry: Authoritative 2D shape, elevation always stripped
- MissionElement: Typed element with altitude variant
- MissionElementCollection: Ordered slot table with stable ids, GeoJSON I/O
- PointerEvent/Modifiers/Key: Host input events
- ExtrusionPrimitive/RoutePrimitive/PickResult: Render-side derived data
"""

from mission_planner.model.collection import MissionElementCollection
from mission_planner.model.geometry import Geometry, GeometryKind, strip_elevation
from mission_planner.model.input_event import Key, Modifiers, PointerButton, PointerEvent
from mission_planner.model.mission_element import (
    AltitudeBand,
    FeatureType,
    MissionElement,
    NoAltitude,
    NoFlyZoneAltitude,
    default_properties,
)
from mission_planner.model.primitives import (
    ExtrusionPrimitive,
    PickResult,
    PrimitiveKind,
    RoutePrimitive,
    VertexHandle,
)

__all__ = [
    "Geometry",
    "GeometryKind",
    "strip_elevation",
    "FeatureType",
    "MissionElement",
    "NoFlyZoneAltitude",
    "AltitudeBand",
    "NoAltitude",
    "default_properties",
    "MissionElementCollection",
    "PointerButton",
    "PointerEvent",
    "Modifiers",
    "Key",
    "ExtrusionPrimitive",
    "RoutePrimitive",
    "VertexHandle",
    "PrimitiveKind",
    "PickResult",
]
