"""Geometry hashing - deterministic digests of 2D coordinates.

Hashes detect geometry changes cheaply: when a collection's hash is unchanged
between two passes, only properties changed and terrain must not be resampled.
The digest is djb2 over the element ids and the compact JSON of their coordinates,
reduced to 32 bits.
"""

import json
from typing import Any, Iterable

from mission_planner.model.geometry import strip_elevation
from mission_planner.model.mission_element import MissionElement

EMPTY_HASH = "empty"


def djb2(text: str) -> str:
    """32-bit djb2 digest of text as lowercase hex."""
    value = 5381
    for ch in text:
        value = ((value << 5) + value + ord(ch)) & 0xFFFFFFFF
    return format(value, "x")


def _canonical(coords: Any) -> str:
    return json.dumps(coords, separators=(",", ":"))


def coordinates_hash(coords: Any) -> str:
    """Hash of one coordinate structure. Elevation is ignored."""
    return djb2(_canonical(strip_elevation(coords)))


def compute_geometry_hash(elements: Iterable[MissionElement]) -> str:
    """Hash of every element's id and 2D coordinates, in collection order.

    Properties do not contribute, so an altitude edit leaves the hash unchanged.
    Ids do, so a reload that renumbers elements counts as a geometry change.
    """
    parts = [f"{e.id}:{_canonical(e.geometry.coordinates)}" for e in elements]
    if not parts:
        return EMPTY_HASH
    return djb2("|".join(parts))
