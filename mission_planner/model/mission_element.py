"""MissionElement - one authored geographic object.

A mission element is a zone, route or point with a feature type tag and
type-dependent altitude parameters. The altitude parameters form a tagged
variant so that an impossible combination (floor/ceiling on a point) cannot
be constructed:

    noFlyZone                        -> NoFlyZoneAltitude(floor, ceiling)
    geofence, searchZone, airRoute   -> AltitudeBand(altitude)
    groundRoute, searchPoint         -> NoAltitude()
"""

from dataclasses import dataclass
from enum import Enum

from mission_planner.constants import AltitudeConfig
from mission_planner.model.geometry import Geometry, GeometryKind


class FeatureType(Enum):
    """Kind of mission element. Values match the GeoJSON featureType property."""

    NO_FLY_ZONE = "noFlyZone"
    GEOFENCE = "geofence"
    SEARCH_ZONE = "searchZone"
    AIR_ROUTE = "airRoute"
    GROUND_ROUTE = "groundRoute"
    SEARCH_POINT = "searchPoint"

    @property
    def geometry_kind(self) -> GeometryKind:
        return _GEOMETRY_KINDS[self]

    @property
    def is_zoned(self) -> bool:
        """Zoned elements render only as vertical extrusions (no ground fill)."""
        return self in ZONED_TYPES

    @property
    def display_name(self) -> str:
        return _DISPLAY_NAMES[self]


ZONED_TYPES = frozenset({FeatureType.NO_FLY_ZONE, FeatureType.GEOFENCE, FeatureType.SEARCH_ZONE})

_GEOMETRY_KINDS = {
    FeatureType.NO_FLY_ZONE: GeometryKind.POLYGON,
    FeatureType.GEOFENCE: GeometryKind.POLYGON,
    FeatureType.SEARCH_ZONE: GeometryKind.POLYGON,
    FeatureType.AIR_ROUTE: GeometryKind.LINESTRING,
    FeatureType.GROUND_ROUTE: GeometryKind.LINESTRING,
    FeatureType.SEARCH_POINT: GeometryKind.POINT,
}

_DISPLAY_NAMES = {
    FeatureType.NO_FLY_ZONE: "No-Fly Zone",
    FeatureType.GEOFENCE: "Geofence",
    FeatureType.SEARCH_ZONE: "Search Zone",
    FeatureType.AIR_ROUTE: "Air Route",
    FeatureType.GROUND_ROUTE: "Ground Route",
    FeatureType.SEARCH_POINT: "Search Point",
}


@dataclass(frozen=True)
class NoFlyZoneAltitude:
    """Vertical band of a no-fly zone, meters above ground."""

    floor: float = AltitudeConfig.NO_FLY_ZONE_FLOOR_M
    ceiling: float = AltitudeConfig.NO_FLY_ZONE_CEILING_M

    def __post_init__(self) -> None:
        if self.floor > self.ceiling:
            raise ValueError(f"Floor {self.floor} is above ceiling {self.ceiling}")

    def to_dict(self) -> dict[str, float]:
        return {"floor": self.floor, "ceiling": self.ceiling}


@dataclass(frozen=True)
class AltitudeBand:
    """Single altitude (meters above ground) for geofences, search zones and air routes."""

    altitude: float

    def to_dict(self) -> dict[str, float]:
        return {"altitude": self.altitude}


@dataclass(frozen=True)
class NoAltitude:
    """Ground-hugging elements carry no altitude parameters."""

    def to_dict(self) -> dict[str, float]:
        return {}


AltitudeProperties = NoFlyZoneAltitude | AltitudeBand | NoAltitude

_PROPERTY_TYPES: dict[FeatureType, type] = {
    FeatureType.NO_FLY_ZONE: NoFlyZoneAltitude,
    FeatureType.GEOFENCE: AltitudeBand,
    FeatureType.SEARCH_ZONE: AltitudeBand,
    FeatureType.AIR_ROUTE: AltitudeBand,
    FeatureType.GROUND_ROUTE: NoAltitude,
    FeatureType.SEARCH_POINT: NoAltitude,
}


def default_properties(feature_type: FeatureType) -> AltitudeProperties:
    """Default altitude parameters for a freshly drawn element."""
    if feature_type == FeatureType.NO_FLY_ZONE:
        return NoFlyZoneAltitude()
    if feature_type == FeatureType.GEOFENCE:
        return AltitudeBand(altitude=AltitudeConfig.GEOFENCE_ALTITUDE_M)
    if feature_type == FeatureType.SEARCH_ZONE:
        return AltitudeBand(altitude=AltitudeConfig.SEARCH_ZONE_ALTITUDE_M)
    if feature_type == FeatureType.AIR_ROUTE:
        return AltitudeBand(altitude=AltitudeConfig.AIR_ROUTE_ALTITUDE_M)
    return NoAltitude()


def properties_from_dict(feature_type: FeatureType, values: dict) -> AltitudeProperties:
    """Build the altitude variant for feature_type, filling absent values with defaults."""
    defaults = default_properties(feature_type)
    if isinstance(defaults, NoFlyZoneAltitude):
        return NoFlyZoneAltitude(
            floor=float(values.get("floor", defaults.floor)),
            ceiling=float(values.get("ceiling", defaults.ceiling)),
        )
    if isinstance(defaults, AltitudeBand):
        return AltitudeBand(altitude=float(values.get("altitude", defaults.altitude)))
    return NoAltitude()


@dataclass(frozen=True)
class MissionElement:
    """An authored mission element.

    Attributes:
        id: Stable identifier assigned by the owning collection
        feature_type: What the element is
        geometry: Authoritative 2D shape (never carries elevation)
        properties: Altitude variant matching feature_type

    STRICT: geometry kind and property variant must match feature_type.
    """

    id: int
    feature_type: FeatureType
    geometry: Geometry
    properties: AltitudeProperties

    def __post_init__(self) -> None:
        """Validate the feature type / geometry / properties combination."""
        if self.geometry.kind != self.feature_type.geometry_kind:
            raise ValueError(
                f"{self.feature_type.value} needs {self.feature_type.geometry_kind.value} geometry, "
                f"got {self.geometry.kind.value}"
            )
        expected = _PROPERTY_TYPES[self.feature_type]
        if not isinstance(self.properties, expected):
            raise TypeError(
                f"{self.feature_type.value} takes {expected.__name__} properties, "
                f"got {type(self.properties).__name__}"
            )

    @property
    def element_id(self) -> int:
        return self.id

    @property
    def outline(self) -> tuple:
        """2D outline used by extrusion and picking."""
        return self.geometry.outline

    @property
    def is_zoned(self) -> bool:
        return self.feature_type.is_zoned

    def __repr__(self) -> str:
        return f"MissionElement(id={self.id}, type={self.feature_type.value}, props={self.properties})"
