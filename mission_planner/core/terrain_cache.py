"""Terrain elevation cache - draped coordinates keyed by element and geometry.

Entries map (element id, variant, coordinate hash) to the 3D coordinates
computed for that exact 2D shape. Only the latest shape of each element and
variant is kept. An entry older than max_age_s is treated as absent and removed
on access or by prune_expired(), which the sampler calls before every pass.
The cache is an owned object passed to the sampler, never a module-level
singleton, so instances do not leak state between tests or controllers.

Variants:
    "draped": the element's own vertices with elevation
    "dense":  the interpolated ground-route path
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Callable

from mission_planner.constants import TerrainConfig
from mission_planner.core.geometry_hash import coordinates_hash

logger = logging.getLogger(__name__)

DRAPED = "draped"
DENSE = "dense"


@dataclass(frozen=True)
class TerrainCacheEntry:
    """Cached 3D coordinates with creation time (clock seconds)."""

    coordinates: Any
    timestamp: float


class TerrainCache:
    """Time-limited cache of draped coordinates.

    Example:
        cache = TerrainCache(max_age_s=30.0)
        cache.set(element_id=3, coords2d=ring, coords3d=draped)
        cache.get(element_id=3, coords2d=ring)  # -> draped, until 30s pass
    """

    def __init__(
        self,
        max_age_s: float = TerrainConfig.CACHE_MAX_AGE_S,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.max_age_s = max_age_s
        self._clock = clock
        self._entries: dict[tuple[int, str, str], TerrainCacheEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    @staticmethod
    def _make_key(element_id: int, coords2d: Any, variant: str) -> tuple[int, str, str]:
        return (element_id, variant, coordinates_hash(coords2d))

    def _is_expired(self, entry: TerrainCacheEntry, now: float) -> bool:
        return now - entry.timestamp > self.max_age_s

    def get(self, element_id: int, coords2d: Any, variant: str = DRAPED) -> Any | None:
        """Return cached 3D coordinates, or None if absent or expired."""
        key = self._make_key(element_id, coords2d, variant)
        entry = self._entries.get(key)
        if entry is None:
            return None
        if self._is_expired(entry, self._clock()):
            del self._entries[key]
            return None
        return entry.coordinates

    def set(self, element_id: int, coords2d: Any, coords3d: Any, variant: str = DRAPED) -> None:
        """Store coords3d for this exact shape, replacing the element's entries for older shapes."""
        key = self._make_key(element_id, coords2d, variant)
        superseded = [k for k in self._entries if k[:2] == key[:2] and k != key]
        for stale in superseded:
            del self._entries[stale]
        self._entries[key] = TerrainCacheEntry(coordinates=coords3d, timestamp=self._clock())

    def clear(self) -> None:
        if self._entries:
            logger.info(f"Terrain cache cleared ({len(self._entries)} entries)")
        self._entries.clear()

    def prune_expired(self) -> int:
        """Drop every expired entry. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if self._is_expired(entry, now)]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug(f"Pruned {len(expired)} expired terrain cache entries")
        return len(expired)
