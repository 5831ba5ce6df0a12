"""Terrain sampler - drapes authored 2D coordinates onto the terrain surface.

Moves elevation queries off the interaction path:
1. The controller detects a geometry change via the collection geometry hash
2. SamplingCoordinator runs TerrainSampler.sample() as a coroutine
3. Elements are processed in small batches, yielding to the event loop between
   batches so input handling and rendering interleave with sampling
4. Ground routes additionally get a dense, independently sampled path
5. Results are cached per (element id, coordinate hash) and handed to the owner

Property-only edits never resample: SampleResult.with_properties() merges new
altitude values into the existing draped view.

Only one pass runs at a time. Changes arriving mid-pass set the dirty flag and
the coordinator runs a follow-up pass once the current one completes. Turning
terrain off bumps the generation counter; a pass from an older generation
stops at its next batch boundary and its results are discarded.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

import numpy as np

from mission_planner.constants import TerrainConfig
from mission_planner.core.geometry_hash import compute_geometry_hash
from mission_planner.core.terrain_cache import DENSE, DRAPED, TerrainCache
from mission_planner.core.terrain_service import TerrainQuery
from mission_planner.model.collection import MissionElementCollection
from mission_planner.model.geometry import Coord3D, GeometryKind, is_position, strip_elevation
from mission_planner.model.mission_element import AltitudeProperties, FeatureType, MissionElement

logger = logging.getLogger(__name__)


class SamplingCancelled(Exception):
    """Raised inside a pass whose generation went stale (terrain toggled)."""


@dataclass(frozen=True)
class ElevatedElement:
    """Draped view of a mission element. Never written back to the collection.

    Attributes:
        element_id: Id of the source element
        feature_type: Source feature type
        coordinates: Same nesting as the source geometry, positions are (lon, lat, z)
        properties: Altitude variant of the source element
    """

    element_id: int
    feature_type: FeatureType
    coordinates: Any
    properties: AltitudeProperties

    @property
    def outline(self) -> tuple:
        kind = self.feature_type.geometry_kind
        if kind == GeometryKind.POLYGON:
            return self.coordinates[0] if self.coordinates else ()
        if kind == GeometryKind.LINESTRING:
            return self.coordinates
        return (self.coordinates,)

    @property
    def is_zoned(self) -> bool:
        return self.feature_type.is_zoned


@dataclass(frozen=True)
class DenseRoutePath:
    """Terrain-hugging path of a ground route."""

    element_id: int
    path: tuple[Coord3D, ...]


@dataclass(frozen=True)
class SampleResult:
    """Output of one sampling pass.

    Attributes:
        elevated: Draped elements in collection order
        dense_route_paths: Dense paths for ground routes with >= 2 vertices
        geometry_hash: Collection geometry hash the pass was computed from
        terrain_enabled: Whether terrain was sampled (False = synthetic z=0)
        queries: Terrain queries issued by the pass (not part of equality)
    """

    elevated: tuple[ElevatedElement, ...]
    dense_route_paths: tuple[DenseRoutePath, ...]
    geometry_hash: str
    terrain_enabled: bool
    queries: int = field(default=0, compare=False)

    def element(self, element_id: int) -> ElevatedElement | None:
        for elevated in self.elevated:
            if elevated.element_id == element_id:
                return elevated
        return None

    def current_element(self, element: MissionElement) -> ElevatedElement | None:
        """Draped view of element, or None if the pass saw a different 2D geometry."""
        elevated = self.element(element.id)
        if elevated is None or strip_elevation(elevated.coordinates) != element.geometry.coordinates:
            return None
        return elevated

    def dense_path(self, element_id: int) -> DenseRoutePath | None:
        for dense in self.dense_route_paths:
            if dense.element_id == element_id:
                return dense
        return None

    def with_properties(self, collection: MissionElementCollection) -> "SampleResult":
        """Merge current altitude properties without touching draped coordinates.

        Elements missing from the collection are dropped.
        """
        merged = tuple(
            ElevatedElement(
                element_id=e.element_id,
                feature_type=e.feature_type,
                coordinates=e.coordinates,
                properties=collection[e.element_id].properties,
            )
            for e in self.elevated
            if e.element_id in collection
        )
        dense = tuple(d for d in self.dense_route_paths if d.element_id in collection)
        return SampleResult(
            elevated=merged,
            dense_route_paths=dense,
            geometry_hash=self.geometry_hash,
            terrain_enabled=self.terrain_enabled,
            queries=0,
        )


def interpolate_segment(p1: tuple, p2: tuple, interior_points: int) -> list[tuple[float, float]]:
    """Evenly spaced points from p1 to p2 inclusive, with interior_points between them."""
    t = np.linspace(0.0, 1.0, interior_points + 2)
    lons = p1[0] + (p2[0] - p1[0]) * t
    lats = p1[1] + (p2[1] - p1[1]) * t
    return [(float(lon), float(lat)) for lon, lat in zip(lons, lats)]


class TerrainSampler:
    """Produces terrain-draped coordinates for a mission-element collection.

    Example:
        sampler = TerrainSampler(cache=TerrainCache())
        result = await sampler.sample(collection, terrain, terrain_enabled=True)
    """

    def __init__(
        self,
        cache: TerrainCache,
        elevation_offset_m: float = TerrainConfig.ELEVATION_OFFSET_M,
        interpolation_points: int = TerrainConfig.INTERPOLATION_POINTS,
        batch_size: int = TerrainConfig.BATCH_SIZE,
    ) -> None:
        if batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {batch_size}")
        self.cache = cache
        self.elevation_offset_m = elevation_offset_m
        self.interpolation_points = interpolation_points
        self.batch_size = batch_size
        self._queries = 0

    # =========================================================================
    # Per-coordinate sampling
    # =========================================================================

    def _elevation(self, terrain: TerrainQuery, lon: float, lat: float) -> float:
        """Terrain elevation plus offset. Any query failure falls back to the offset alone."""
        self._queries += 1
        try:
            elev = terrain.query_elevation(lon, lat)
        except Exception as exc:  # collaborator failures are per-coordinate and non-fatal
            logger.debug(f"Terrain query failed at ({lon:.6f}, {lat:.6f}): {exc}")
            return self.elevation_offset_m
        return (elev or 0.0) + self.elevation_offset_m

    def _drape(self, terrain: TerrainQuery, coords: Any) -> Any:
        if is_position(coords):
            return (coords[0], coords[1], self._elevation(terrain, coords[0], coords[1]))
        return tuple(self._drape(terrain, c) for c in coords)

    def _dense_path(self, terrain: TerrainQuery, coords: tuple) -> tuple[Coord3D, ...]:
        dense: list[Coord3D] = []
        for i in range(len(coords) - 1):
            segment = interpolate_segment(coords[i], coords[i + 1], self.interpolation_points)
            if i > 0:
                segment = segment[1:]  # shared endpoint already emitted
            dense.extend((lon, lat, self._elevation(terrain, lon, lat)) for lon, lat in segment)
        return tuple(dense)

    # =========================================================================
    # Flat (terrain disabled)
    # =========================================================================

    @staticmethod
    def _flatten(coords: Any) -> Any:
        if is_position(coords):
            return (coords[0], coords[1], 0.0)
        return tuple(TerrainSampler._flatten(c) for c in coords)

    def _sample_flat(self, collection: MissionElementCollection, geometry_hash: str) -> SampleResult:
        elevated = tuple(
            ElevatedElement(
                element_id=e.id,
                feature_type=e.feature_type,
                coordinates=self._flatten(e.geometry.coordinates),
                properties=e.properties,
            )
            for e in collection
        )
        dense = tuple(
            DenseRoutePath(element_id=e.id, path=self._flatten(e.geometry.coordinates))
            for e in collection.of_type(FeatureType.GROUND_ROUTE)
            if len(e.geometry.coordinates) >= 2
        )
        return SampleResult(
            elevated=elevated,
            dense_route_paths=dense,
            geometry_hash=geometry_hash,
            terrain_enabled=False,
        )

    # =========================================================================
    # Pass
    # =========================================================================

    def _sample_element(
        self, terrain: TerrainQuery, element: MissionElement, is_current: Optional[Callable[[], bool]] = None
    ) -> tuple[ElevatedElement, bool]:
        coords2d = element.geometry.coordinates
        cached = self.cache.get(element.id, coords2d, variant=DRAPED)
        from_cache = cached is not None
        if cached is None:
            cached = self._drape(terrain, coords2d)
            if self._is_current(is_current):
                self.cache.set(element.id, coords2d, cached, variant=DRAPED)
        elevated = ElevatedElement(
            element_id=element.id,
            feature_type=element.feature_type,
            coordinates=cached,
            properties=element.properties,
        )
        return elevated, from_cache

    async def sample(
        self,
        collection: MissionElementCollection,
        terrain: Optional[TerrainQuery],
        terrain_enabled: bool,
        is_current: Optional[Callable[[], bool]] = None,
    ) -> SampleResult:
        """Drape every element of the collection.

        Args:
            collection: Source elements (read only)
            terrain: Terrain collaborator, may be None
            terrain_enabled: If False, returns z=0 geometry without querying
            is_current: Checked after every yield; returning False cancels the pass

        Returns:
            SampleResult for the collection.

        Raises:
            SamplingCancelled: If is_current() turned False during the pass.
        """
        geometry_hash = compute_geometry_hash(collection)
        if not terrain_enabled or terrain is None or not terrain.has_terrain():
            return self._sample_flat(collection, geometry_hash)

        self.cache.prune_expired()
        self._queries = 0
        elements = list(collection)
        elevated: list[ElevatedElement] = []
        hits = 0

        for start in range(0, len(elements), self.batch_size):
            for element in elements[start : start + self.batch_size]:
                result, from_cache = self._sample_element(terrain, element, is_current)
                elevated.append(result)
                hits += from_cache
            await self._yield(is_current)

        dense_paths: list[DenseRoutePath] = []
        for element in collection.of_type(FeatureType.GROUND_ROUTE):
            coords = element.geometry.coordinates
            if len(coords) < 2:
                logger.debug(f"Ground route {element.id} has {len(coords)} vertices, skipping dense path")
                continue
            path = self.cache.get(element.id, coords, variant=DENSE)
            if path is None:
                path = self._dense_path(terrain, coords)
                if self._is_current(is_current):
                    self.cache.set(element.id, coords, path, variant=DENSE)
                await self._yield(is_current)
            dense_paths.append(DenseRoutePath(element_id=element.id, path=path))

        logger.info(
            f"Terrain pass: {len(elements)} elements ({hits} cached), "
            f"{len(dense_paths)} dense routes, {self._queries} queries"
        )
        return SampleResult(
            elevated=tuple(elevated),
            dense_route_paths=tuple(dense_paths),
            geometry_hash=geometry_hash,
            terrain_enabled=True,
            queries=self._queries,
        )

    @staticmethod
    def _is_current(is_current: Optional[Callable[[], bool]]) -> bool:
        """Stale passes must not write into a cache that was cleared under them."""
        return is_current is None or is_current()

    @staticmethod
    async def _yield(is_current: Optional[Callable[[], bool]]) -> None:
        await asyncio.sleep(0)
        if is_current is not None and not is_current():
            raise SamplingCancelled()


class SamplingCoordinator:
    """Runs at most one sampling pass at a time and never loses a dirty flag.

    Example:
        coordinator = SamplingCoordinator(sampler, terrain, lambda: collection, on_result=print)
        coordinator.mark_dirty()
        await coordinator.run()
    """

    def __init__(
        self,
        sampler: TerrainSampler,
        terrain: Optional[TerrainQuery],
        collection_provider: Callable[[], MissionElementCollection],
        on_result: Callable[[SampleResult], None],
        terrain_enabled: bool = False,
    ) -> None:
        self.sampler = sampler
        self.terrain = terrain
        self._collection_provider = collection_provider
        self._on_result = on_result
        self._terrain_enabled = terrain_enabled
        self._dirty = False
        self._in_flight = False
        self._generation = 0
        self._task: Optional[asyncio.Task] = None
        self.latest: Optional[SampleResult] = None

    @property
    def terrain_enabled(self) -> bool:
        return self._terrain_enabled

    @property
    def is_dirty(self) -> bool:
        return self._dirty

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    @property
    def generation(self) -> int:
        return self._generation

    def mark_dirty(self) -> None:
        self._dirty = True

    def set_terrain_enabled(self, enabled: bool) -> None:
        """Toggle terrain. Invalidates any in-flight pass and, when disabling, the cache."""
        if enabled == self._terrain_enabled:
            return
        self._terrain_enabled = enabled
        self._generation += 1
        if not enabled:
            self.sampler.cache.clear()
        self.latest = None
        self._dirty = True
        logger.info(f"Terrain {'enabled' if enabled else 'disabled'} (generation {self._generation})")

    def schedule(self) -> Optional[asyncio.Task]:
        """Start a pass on the running event loop, if there is one and none is in flight.

        Without a running loop the host drives passes by awaiting run().
        """
        if self._in_flight:
            return None
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; terrain pass waits for run()")
            return None
        self._task = loop.create_task(self.run())
        return self._task

    async def run(self) -> Optional[SampleResult]:
        """Run passes until the collection is no longer dirty.

        Returns immediately (None) if a pass is already in flight; that pass
        picks up the dirty flag when it finishes.
        """
        if self._in_flight:
            return None
        self._in_flight = True
        try:
            while self._dirty:
                self._dirty = False
                generation = self._generation
                collection = self._collection_provider()
                try:
                    result = await self.sampler.sample(
                        collection,
                        self.terrain,
                        self._terrain_enabled,
                        is_current=lambda: self._generation == generation,
                    )
                except SamplingCancelled:
                    logger.info(f"Terrain pass from generation {generation} discarded")
                    continue
                self.latest = result
                self._on_result(result)
        finally:
            self._in_flight = False
        return self.latest
