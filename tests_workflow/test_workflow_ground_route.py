"""Workflow: routes and points on 3D terrain.

Scenario:
    1. Enable terrain (flat MockTerrain at 100m)
    2. Draw a two-vertex ground route, finish with a double-click
    3. After the sampling pass the route renders as a 17-point dense path at 110m
    4. A second pass is served from cache; a property edit never resamples
    5. Disabling terrain drops the draped view and clears the cache
"""

import asyncio
from pathlib import Path
from typing import TYPE_CHECKING, Callable

import pytest

from mission_planner.model.collection import MissionElementCollection
from mission_planner.model.geometry import Geometry
from mission_planner.model.mission_element import FeatureType, NoFlyZoneAltitude
from mission_planner.model.primitives import PrimitiveKind
from mission_planner.ui.controller import MissionController
from mission_planner.ui.state_machine import Mode

if TYPE_CHECKING:
    from conftest import MockTerrain, Pointer


def sync(controller: MissionController) -> None:
    asyncio.run(controller.sync_terrain())


class TestGroundRoute:
    def test_dense_path_after_sampling(
        self, controller: MissionController, pointer: "Pointer", terrain: "MockTerrain"
    ) -> None:
        controller.set_terrain_enabled(True)
        controller.choose_add_feature(FeatureType.GROUND_ROUTE)
        pointer.click(384, 300)
        pointer.double_click(400, 300)

        assert len(controller.collection) == 1
        assert controller.mode == Mode.view()
        assert controller.coordinator.is_dirty

        sync(controller)
        dense = controller.sample.dense_path(0)
        assert len(dense.path) == 17
        assert all(z == 110.0 for _, _, z in dense.path)

        route = next(r for r in controller.frame.routes if r.owner_id == 0)
        assert route.kind == PrimitiveKind.ROUTE
        assert len(route.geometry) == 17

        # Stored geometry is untouched by draping
        assert all(len(p) == 2 for p in controller.collection[0].geometry.coordinates)

    def test_second_pass_uses_cache(self, controller: MissionController, pointer: "Pointer", terrain: "MockTerrain") -> None:
        controller.set_terrain_enabled(True)
        controller.choose_add_feature(FeatureType.GROUND_ROUTE)
        pointer.click(300, 300)
        pointer.double_click(500, 300)
        sync(controller)
        queries = terrain.queries

        controller.coordinator.mark_dirty()
        sync(controller)
        assert terrain.queries == queries
        assert controller.sample.queries == 0

    def test_flat_route_without_terrain(self, controller: MissionController, pointer: "Pointer", terrain: "MockTerrain") -> None:
        controller.choose_add_feature(FeatureType.GROUND_ROUTE)
        pointer.click(300, 300)
        pointer.double_click(500, 300)
        sync(controller)
        assert terrain.queries == 0
        route = controller.frame.routes[0]
        assert [c[2] for c in route.geometry] == [0.0, 0.0]

    def test_search_point_finishes_on_first_click(self, controller: MissionController, pointer: "Pointer") -> None:
        controller.choose_add_feature(FeatureType.SEARCH_POINT)
        pointer.click(400, 300)
        assert controller.mode == Mode.view()
        assert controller.collection[0].geometry.coordinates == (pytest.approx(0.005), pytest.approx(0.005))
        assert controller.frame.routes[0].kind == PrimitiveKind.POINT

    def test_air_route_rendered_at_altitude(self, controller: MissionController, pointer: "Pointer") -> None:
        controller.choose_add_feature(FeatureType.AIR_ROUTE)
        pointer.click(300, 300)
        pointer.double_click(500, 300)
        controller.update_properties(0, {"altitude": 120.0})
        assert [c[2] for c in controller.frame.routes[0].geometry] == [120.0, 120.0]


class TestDrapedZones:
    def test_property_edit_does_not_resample(
        self,
        make_controller: Callable[..., MissionController],
        zone_collection: MissionElementCollection,
        terrain: "MockTerrain",
    ) -> None:
        controller = make_controller(collection=zone_collection)
        controller.set_terrain_enabled(True)
        sync(controller)
        queries = terrain.queries
        assert queries == 5

        controller.update_properties(0, NoFlyZoneAltitude(floor=0.0, ceiling=300.0))
        assert not controller.coordinator.is_dirty
        assert terrain.queries == queries
        # Draped ground (110m) + new ceiling
        assert all(z == 410.0 for _, _, z in controller.extrusions.borders[0].geometry)
        assert controller.sample.element(0).properties == NoFlyZoneAltitude(floor=0.0, ceiling=300.0)

    def test_moved_vertex_uses_flat_view_until_resampled(
        self,
        make_controller: Callable[..., MissionController],
        zone_collection: MissionElementCollection,
    ) -> None:
        controller = make_controller(collection=zone_collection)
        controller.set_terrain_enabled(True)
        sync(controller)
        controller.replace_geometry(0, [[(0.0, 0.0), (0.02, 0.0), (0.02, 0.02), (0.0, 0.02)]])

        assert controller.coordinator.is_dirty
        assert controller.extrusions.walls[0].geometry[0][2] == 50.0

        sync(controller)
        assert controller.extrusions.walls[0].geometry[0][2] == 160.0
        assert controller.extrusions.walls[0].geometry[1][:2] == (0.02, 0.0)

    def test_terrain_failure_degrades_to_offset(
        self,
        make_controller: Callable[..., MissionController],
        zone_collection: MissionElementCollection,
        terrain: "MockTerrain",
    ) -> None:
        terrain.failing = True
        controller = make_controller(collection=zone_collection)
        controller.set_terrain_enabled(True)
        sync(controller)
        assert controller.extrusions.walls[0].geometry[0][2] == 60.0

    def test_disable_terrain_clears_cache(
        self,
        make_controller: Callable[..., MissionController],
        zone_collection: MissionElementCollection,
    ) -> None:
        controller = make_controller(collection=zone_collection)
        controller.set_terrain_enabled(True)
        sync(controller)
        assert len(controller.sampler.cache) == 1

        controller.set_terrain_enabled(False)
        assert controller.sample is None
        assert len(controller.sampler.cache) == 0
        assert controller.camera.pitch == 0.0
        assert controller.extrusions.walls[0].geometry[0][2] == 50.0

        sync(controller)
        assert not controller.sample.terrain_enabled

    def test_frame_follows_edit_before_resampling(
        self,
        make_controller: Callable[..., MissionController],
        zone_collection: MissionElementCollection,
    ) -> None:
        """Features, handles and walls all show the new shape; only its z waits for the pass."""
        controller = make_controller(collection=zone_collection)
        controller.set_terrain_enabled(True)
        sync(controller)
        controller.sm.select(element_id=0)
        controller.replace_geometry(0, [[(0.0, 0.0), (0.02, 0.0), (0.02, 0.02), (0.0, 0.02)]])

        feature = controller.frame.features[0]
        assert feature.coordinates[0][1] == (0.02, 0.0, 0.0)
        assert controller.frame.vertex_handles[1].position == (0.02, 0.0, 0.0)
        assert controller.extrusions.walls[0].geometry[1] == (0.02, 0.0, 50.0)

        sync(controller)
        assert controller.frame.features[0].coordinates[0][1] == (0.02, 0.0, 110.0)
        assert controller.frame.vertex_handles[1].position == (0.02, 0.0, 110.0)

    def test_edited_ground_route_drops_stale_dense_path(self, controller: MissionController, pointer: "Pointer") -> None:
        controller.set_terrain_enabled(True)
        controller.choose_add_feature(FeatureType.GROUND_ROUTE)
        pointer.click(300, 300)
        pointer.double_click(500, 300)
        sync(controller)
        assert len(controller.frame.routes[0].geometry) == 17

        controller.replace_geometry(0, [(0.0, 0.0), (0.02, 0.0)])
        assert controller.frame.routes[0].geometry == ((0.0, 0.0, 0.0), (0.02, 0.0, 0.0))

        sync(controller)
        route = controller.frame.routes[0].geometry
        assert len(route) == 17
        assert route[-1] == (0.02, 0.0, 110.0)

    def test_reload_with_renumbered_ids_is_resampled(
        self,
        make_controller: Callable[..., MissionController],
        zone_collection: MissionElementCollection,
        tmp_path: Path,
    ) -> None:
        """Deleting id 0 then saving and loading gives the remaining zone id 0 at the same place."""
        collection, _ = zone_collection.append(
            FeatureType.NO_FLY_ZONE,
            Geometry.polygon([(0.02, 0.0), (0.03, 0.0), (0.03, 0.01), (0.02, 0.01)]),
            NoFlyZoneAltitude(floor=50.0, ceiling=200.0),
        )
        controller = make_controller(collection=collection.remove([0]))
        controller.set_terrain_enabled(True)
        sync(controller)
        assert controller.extrusions.walls[0].geometry[0][2] == 160.0

        controller.load(controller.save(tmp_path / "mission.geojson"))
        assert controller.collection.ids == (0,)
        assert controller.coordinator.is_dirty

        sync(controller)
        assert controller.sample.element(0) is not None
        assert controller.extrusions.walls[0].geometry[0][2] == 160.0

    def test_cache_holds_latest_shape_only(
        self,
        make_controller: Callable[..., MissionController],
        zone_collection: MissionElementCollection,
    ) -> None:
        controller = make_controller(collection=zone_collection)
        controller.set_terrain_enabled(True)
        for step in range(1, 21):
            size = 0.01 + step * 0.001
            controller.replace_geometry(0, [[(0.0, 0.0), (size, 0.0), (size, size), (0.0, size)]])
            sync(controller)
        assert len(controller.sampler.cache) == 1
