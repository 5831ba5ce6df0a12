"""MissionElementCollection - ordered, immutable set of mission elements.

Elements live in a slot table keyed by a monotonic id. The id survives inserts
and deletes, so selection and picking never shift to a different element when
an earlier one is removed. Insertion order is preserved and is the render and
index order.

Every mutation returns a new collection (whole-value replacement). The
constructor re-checks that no stored geometry carries elevation, so the
strip-on-write invariant is asserted on every write.
"""

import json
import logging
from pathlib import Path
from typing import Any, Iterable, Iterator

from mission_planner.model.geometry import Geometry, has_elevation
from mission_planner.model.mission_element import (
    AltitudeProperties,
    FeatureType,
    MissionElement,
    default_properties,
    properties_from_dict,
)

logger = logging.getLogger(__name__)


class MissionElementCollection:
    """Ordered collection of mission elements with stable ids.

    Example:
        collection = MissionElementCollection()
        collection, element = collection.append(FeatureType.GEOFENCE, Geometry.polygon(ring))
        collection = collection.remove([element.id])
    """

    def __init__(self, elements: Iterable[MissionElement] = (), next_id: int | None = None) -> None:
        slots: dict[int, MissionElement] = {}
        for element in elements:
            if element.id in slots:
                raise ValueError(f"Duplicate element id {element.id}")
            if has_elevation(element.geometry.coordinates):
                raise ValueError(f"Element {element.id} geometry carries elevation")
            slots[element.id] = element
        self._slots = slots
        floor_id = max(slots, default=-1) + 1
        self._next_id = floor_id if next_id is None else max(next_id, floor_id)

    # =========================================================================
    # Read access
    # =========================================================================

    def __len__(self) -> int:
        return len(self._slots)

    def __iter__(self) -> Iterator[MissionElement]:
        return iter(self._slots.values())

    def __contains__(self, element_id: object) -> bool:
        return element_id in self._slots

    def __getitem__(self, element_id: int) -> MissionElement:
        return self._slots[element_id]

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MissionElementCollection):
            return NotImplemented
        return list(self._slots.items()) == list(other._slots.items())

    def __repr__(self) -> str:
        return f"MissionElementCollection({len(self)} elements, next_id={self._next_id})"

    def get(self, element_id: int) -> MissionElement | None:
        return self._slots.get(element_id)

    @property
    def ids(self) -> tuple[int, ...]:
        return tuple(self._slots)

    @property
    def next_id(self) -> int:
        return self._next_id

    def index_of(self, element_id: int) -> int:
        """Positional index of an element (render/insertion order)."""
        try:
            return self.ids.index(element_id)
        except ValueError:
            raise KeyError(f"Element {element_id} not in collection") from None

    def of_type(self, *feature_types: FeatureType) -> list[MissionElement]:
        return [e for e in self if e.feature_type in feature_types]

    # =========================================================================
    # Mutations (each returns a new collection)
    # =========================================================================

    def append(
        self,
        feature_type: FeatureType,
        geometry: Geometry,
        properties: AltitudeProperties | None = None,
    ) -> tuple["MissionElementCollection", MissionElement]:
        """Append a new element with the next stable id.

        Returns:
            Tuple of (new collection, created element)
        """
        element = MissionElement(
            id=self._next_id,
            feature_type=feature_type,
            geometry=geometry,
            properties=properties if properties is not None else default_properties(feature_type),
        )
        collection = MissionElementCollection([*self, element], next_id=self._next_id + 1)
        return collection, element

    def remove(self, element_ids: Iterable[int]) -> "MissionElementCollection":
        """Remove elements by id; unknown ids raise KeyError."""
        doomed = set(element_ids)
        missing = doomed - set(self._slots)
        if missing:
            raise KeyError(f"Cannot remove unknown elements {sorted(missing)}")
        return MissionElementCollection([e for e in self if e.id not in doomed], next_id=self._next_id)

    def replace(self, element: MissionElement) -> "MissionElementCollection":
        """Replace the element with the same id, keeping its position."""
        if element.id not in self._slots:
            raise KeyError(f"Element {element.id} not in collection")
        return MissionElementCollection(
            [element if e.id == element.id else e for e in self],
            next_id=self._next_id,
        )

    def with_geometry(self, element_id: int, geometry: Geometry) -> "MissionElementCollection":
        old = self[element_id]
        return self.replace(
            MissionElement(id=old.id, feature_type=old.feature_type, geometry=geometry, properties=old.properties)
        )

    def with_properties(self, element_id: int, properties: AltitudeProperties) -> "MissionElementCollection":
        old = self[element_id]
        return self.replace(
            MissionElement(id=old.id, feature_type=old.feature_type, geometry=old.geometry, properties=properties)
        )

    # =========================================================================
    # Serialization (GeoJSON FeatureCollection)
    # =========================================================================

    def to_geojson(self) -> dict[str, Any]:
        """Export as a GeoJSON FeatureCollection with featureType and altitude properties."""
        return {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "id": element.id,
                    "geometry": {
                        "type": element.geometry.kind.value,
                        "coordinates": _to_lists(element.geometry.coordinates),
                    },
                    "properties": {"featureType": element.feature_type.value, **element.properties.to_dict()},
                }
                for element in self
            ],
        }

    @classmethod
    def from_geojson(cls, data: dict[str, Any]) -> "MissionElementCollection":
        """Import a FeatureCollection. Elevation in the input is stripped.

        Features without a known featureType are skipped with a warning.
        Ids are reassigned in file order.
        """
        collection = cls()
        for feature in data.get("features", []):
            props = feature.get("properties") or {}
            try:
                feature_type = FeatureType(props.get("featureType"))
            except ValueError:
                logger.warning(f"Skipping feature with unknown featureType: {props.get('featureType')!r}")
                continue
            geometry = Geometry.from_coordinates(
                kind=feature_type.geometry_kind,
                coords=feature["geometry"]["coordinates"],
            )
            collection, _ = collection.append(
                feature_type=feature_type,
                geometry=geometry,
                properties=properties_from_dict(feature_type, props),
            )
        logger.info(f"Imported {len(collection)} mission elements from GeoJSON")
        return collection

    def save(self, path: Path) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(self.to_geojson(), f, indent=2)
        logger.info(f"Saved {len(self)} mission elements to {path}")
        return path

    @classmethod
    def load(cls, path: Path) -> "MissionElementCollection":
        with open(path, "r", encoding="utf-8") as f:
            return cls.from_geojson(json.load(f))


def _to_lists(coords: Any) -> Any:
    if isinstance(coords, tuple):
        return [_to_lists(c) for c in coords]
    return coords
