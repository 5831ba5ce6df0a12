"""Shared pytest fixtures for mission_planner workflow tests.

Provides MockTerrain, a Pointer helper that turns gestures into timed host
events, and a MissionController on a HeadlessProjection.

COORDINATE SYSTEM:
    The camera is centered on (0.005, 0.005) at zoom 14 over an 800x600
    viewport. At this zoom 0.01° ≈ 233 px, so the 0.01° test square spans
    roughly (283, 183) to (517, 417) on screen and its center is (400, 300).
    Terrain formulas use 1 degree ≈ 111,320 meters.
"""

from typing import Callable, Optional

import pytest

from mission_planner.constants import MapConfig
from mission_planner.core.terrain_cache import TerrainCache
from mission_planner.core.terrain_service import TerrainQueryError
from mission_planner.model.collection import MissionElementCollection
from mission_planner.model.geometry import Geometry
from mission_planner.model.input_event import Modifiers, PointerButton, PointerEvent
from mission_planner.model.mission_element import FeatureType, NoFlyZoneAltitude
from mission_planner.ui.controller import MissionController
from mission_planner.ui.headless_projection import HeadlessProjection

SQUARE_RING = [(0.0, 0.0), (0.01, 0.0), (0.01, 0.01), (0.0, 0.01)]


class MockTerrain:
    """Linear terrain surface that counts queries.

    Elevation formula:
        elevation = base_elevation + lat * METERS_PER_DEGREE * slope_ns_pct / 100
    """

    def __init__(self, base_elevation: float = 100.0, slope_ns_pct: float = 0.0, available: bool = True) -> None:
        self.base_elevation = base_elevation
        self.slope_ns_pct = slope_ns_pct
        self.available = available
        self.failing = False
        self.queries = 0

    def has_terrain(self) -> bool:
        return self.available

    def query_elevation(self, lon: float, lat: float) -> float:
        self.queries += 1
        if self.failing:
            raise TerrainQueryError("DEM not loaded")
        M = MapConfig.METERS_PER_DEGREE_EQUATOR
        return self.base_elevation + lat * M * (self.slope_ns_pct / 100)


class Pointer:
    """Drives a controller with timed pointer events.

    Every event advances the clock, so consecutive gestures never merge.

    Example:
        pointer.click(400, 300)
        pointer.right_tap(100, 100)          # < 200 ms: context menu
        pointer.right_hold(100, 100, 300)    # >= 200 ms: camera control
    """

    def __init__(self, controller: MissionController) -> None:
        self.controller = controller
        self.t = 0.0

    def _event(self, x: float, y: float, button: PointerButton, dt: float, modifiers: Modifiers) -> PointerEvent:
        self.t += dt
        return PointerEvent(x, y, timestamp_ms=self.t, button=button, modifiers=modifiers)

    def down(
        self,
        x: float,
        y: float,
        button: PointerButton = PointerButton.PRIMARY,
        modifiers: Modifiers = Modifiers(),
        dt: float = 500,
    ) -> None:
        self.controller.pointer_down(self._event(x, y, button, dt, modifiers))

    def move(self, x: float, y: float, button: PointerButton = PointerButton.PRIMARY, dt: float = 16) -> None:
        self.controller.pointer_move(self._event(x, y, button, dt, Modifiers()))

    def up(self, x: float, y: float, button: PointerButton = PointerButton.PRIMARY, dt: float = 50) -> None:
        self.controller.pointer_up(self._event(x, y, button, dt, Modifiers()))

    def click(self, x: float, y: float, modifiers: Modifiers = Modifiers()) -> None:
        self.down(x, y, modifiers=modifiers)
        self.up(x, y)

    def dblclick(self, x: float, y: float) -> None:
        """The dblclick event alone, without the clicks that precede it."""
        self.controller.double_click(self._event(x, y, PointerButton.PRIMARY, 1, Modifiers()))

    def double_click(self, x: float, y: float) -> None:
        """Browser order: two full clicks, then the dblclick event."""
        self.click(x, y)
        self.click(x, y)
        self.dblclick(x, y)

    def right_tap(self, x: float, y: float) -> None:
        self.down(x, y, PointerButton.SECONDARY)
        self.up(x, y, PointerButton.SECONDARY, dt=100)

    def right_hold(self, x: float, y: float, held_ms: float = 300) -> None:
        self.down(x, y, PointerButton.SECONDARY)
        self.controller.tick(self.t + held_ms)
        self.up(x, y, PointerButton.SECONDARY, dt=held_ms)

    def drag(
        self,
        path: list[tuple[float, float]],
        button: PointerButton = PointerButton.PRIMARY,
        modifiers: Modifiers = Modifiers(),
    ) -> None:
        (x0, y0), rest = path[0], path[1:]
        self.down(x0, y0, button, modifiers)
        for x, y in rest:
            self.move(x, y, button)
        self.up(*path[-1], button=button)


# =============================================================================
# FIXTURES
# =============================================================================


@pytest.fixture
def terrain() -> MockTerrain:
    """Flat terrain at 100m everywhere (draped z = 110 with the 10m offset)."""
    return MockTerrain(base_elevation=100.0)


@pytest.fixture
def make_controller(terrain: MockTerrain) -> Callable[..., MissionController]:
    """Factory for controllers centered on the test square."""

    def _make(
        collection: Optional[MissionElementCollection] = None,
        projection: Optional[HeadlessProjection] = None,
        **kwargs: object,
    ) -> MissionController:
        controller = MissionController(
            projection=projection or HeadlessProjection(width=800, height=600),
            terrain=terrain,
            collection=collection,
            cache=TerrainCache(),
            **kwargs,
        )
        controller.camera.longitude = 0.005
        controller.camera.latitude = 0.005
        controller.camera.zoom = 14.0
        controller.refresh_scene()
        return controller

    return _make


@pytest.fixture
def controller(make_controller: Callable[..., MissionController]) -> MissionController:
    """Empty mission."""
    return make_controller()


@pytest.fixture
def pointer_factory() -> type[Pointer]:
    """Pointer class, for tests that build their own controller."""
    return Pointer


@pytest.fixture
def pointer(controller: MissionController) -> Pointer:
    return Pointer(controller)


@pytest.fixture
def zone_collection() -> MissionElementCollection:
    """No-fly zone (id 0) over the test square, 50m to 200m."""
    collection, _ = MissionElementCollection().append(
        FeatureType.NO_FLY_ZONE,
        Geometry.polygon(SQUARE_RING),
        NoFlyZoneAltitude(floor=50.0, ceiling=200.0),
    )
    return collection


@pytest.fixture
def zone_controller(
    make_controller: Callable[..., MissionController], zone_collection: MissionElementCollection
) -> MissionController:
    return make_controller(collection=zone_collection)


@pytest.fixture
def zone_pointer(zone_controller: MissionController) -> Pointer:
    return Pointer(zone_controller)
