"""Shared pytest fixtures for mission_planner tests.

Provides MockTerrain, a fake clock and reusable test geometry.
All fixtures use explicit values with documented rationale.

COORDINATE SYSTEM:
    Tests use coordinates near the equator (lat~0) and prime meridian (lon~0)
    where 1 degree ≈ 111,320 meters in both directions, so terrain formulas
    stay readable.
"""

from typing import Callable, Optional

import pytest

from mission_planner.constants import MapConfig
from mission_planner.core.terrain_cache import TerrainCache
from mission_planner.core.terrain_sampler import TerrainSampler
from mission_planner.core.terrain_service import TerrainQueryError
from mission_planner.model.collection import MissionElementCollection
from mission_planner.model.geometry import Geometry
from mission_planner.model.mission_element import FeatureType, NoFlyZoneAltitude
from mission_planner.ui.state_machine import InteractionContext, InteractionStateMachine

# =============================================================================
# MOCK TERRAIN
# =============================================================================


class MockTerrain:
    """Terrain collaborator with a linear elevation surface that counts queries.

    Elevation formula:
        elevation = base_elevation + lat * METERS_PER_DEGREE * slope_ns_pct / 100

    Coordinates listed in failing_at raise TerrainQueryError, like a DEM
    no-data cell. on_query (if set) runs before every query so tests can
    mutate state mid-pass.
    """

    def __init__(
        self,
        base_elevation: float = 100.0,
        slope_ns_pct: float = 0.0,
        failing_at: Optional[set[tuple[float, float]]] = None,
        available: bool = True,
    ) -> None:
        self.base_elevation = base_elevation
        self.slope_ns_pct = slope_ns_pct
        self.failing_at = failing_at or set()
        self.available = available
        self.queries = 0
        self.on_query: Optional[Callable[[], None]] = None

    def has_terrain(self) -> bool:
        return self.available

    def query_elevation(self, lon: float, lat: float) -> float:
        self.queries += 1
        if self.on_query is not None:
            self.on_query()
        if (lon, lat) in self.failing_at:
            raise TerrainQueryError(f"No-data value at lon={lon}, lat={lat}")
        M = MapConfig.METERS_PER_DEGREE_EQUATOR
        return self.base_elevation + lat * M * (self.slope_ns_pct / 100)


class FakeClock:
    """Manually advanced clock for cache expiry tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# TERRAIN FIXTURES
# =============================================================================


@pytest.fixture
def flat_terrain() -> MockTerrain:
    """Flat terrain at 100m everywhere."""
    return MockTerrain(base_elevation=100.0)


@pytest.fixture
def sloped_terrain() -> MockTerrain:
    """10% slope rising northwards from 500m at the equator."""
    return MockTerrain(base_elevation=500.0, slope_ns_pct=10.0)


@pytest.fixture
def terrain_factory() -> type[MockTerrain]:
    """MockTerrain class, for tests that need failing coordinates or hooks."""
    return MockTerrain


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> TerrainCache:
    """Cache with 30s max age on the fake clock."""
    return TerrainCache(max_age_s=30.0, clock=clock)


@pytest.fixture
def sampler(cache: TerrainCache) -> TerrainSampler:
    return TerrainSampler(cache=cache)


# =============================================================================
# GEOMETRY FIXTURES
# =============================================================================

# 0.01° square near the origin (~1.1km side)
SQUARE_RING = [(0.0, 0.0), (0.01, 0.0), (0.01, 0.01), (0.0, 0.01)]

# Two vertices ~1km apart east-west on the equator
KM_ROUTE = [(0.0, 0.0), (1000.0 / MapConfig.METERS_PER_DEGREE_EQUATOR, 0.0)]


@pytest.fixture
def square_ring() -> list[tuple[float, float]]:
    return list(SQUARE_RING)


@pytest.fixture
def km_route() -> list[tuple[float, float]]:
    return list(KM_ROUTE)


@pytest.fixture
def mixed_collection() -> MissionElementCollection:
    """No-fly zone (id 0), ground route (id 1) and search point (id 2)."""
    collection = MissionElementCollection()
    collection, _ = collection.append(
        FeatureType.NO_FLY_ZONE,
        Geometry.polygon(SQUARE_RING),
        NoFlyZoneAltitude(floor=50.0, ceiling=200.0),
    )
    collection, _ = collection.append(FeatureType.GROUND_ROUTE, Geometry.linestring(KM_ROUTE))
    collection, _ = collection.append(FeatureType.SEARCH_POINT, Geometry.point((0.005, 0.005)))
    return collection


# =============================================================================
# STATE MACHINE FIXTURES
# =============================================================================


@pytest.fixture
def sm_and_ctx() -> tuple[InteractionStateMachine, InteractionContext]:
    """Fresh state machine without a refresh callback."""
    return InteractionStateMachine.create()
