"""Tests for scene assembly and pydeck rendering.

Tests: build_frame, cursor_for_mode, MapRenderer
Focus: route primitives follow the draped view, every pickable datum is tagged
"""

import asyncio
from typing import TYPE_CHECKING

import pydeck as pdk
import pytest

from mission_planner.core.extrusion import ExtrusionEngine
from mission_planner.core.terrain_sampler import TerrainSampler
from mission_planner.model.collection import MissionElementCollection
from mission_planner.model.geometry import Geometry
from mission_planner.model.mission_element import AltitudeBand, FeatureType
from mission_planner.model.primitives import PrimitiveKind
from mission_planner.ui.camera import CameraState
from mission_planner.ui.map_renderer import MapRenderer
from mission_planner.ui.scene import RenderFrame, build_frame, cursor_for_mode
from mission_planner.ui.state_machine import AddElementMenu, Mode

if TYPE_CHECKING:
    from conftest import MockTerrain


def make_frame(
    collection: MissionElementCollection,
    mode: Mode = Mode.view(),
    selection: tuple[int, ...] = (),
    sample=None,
    terrain_enabled: bool = False,
    **kwargs,
) -> RenderFrame:
    return build_frame(
        collection=collection,
        mode=mode,
        selection=selection,
        camera=CameraState(longitude=0.005, latitude=0.005, zoom=14.0, terrain_enabled=terrain_enabled),
        extrusions=ExtrusionEngine().extrude(collection),
        sample=sample,
        **kwargs,
    )


class TestCursor:
    @pytest.mark.parametrize(
        "mode,camera_active,expected",
        [
            (Mode.view(), False, "grab"),
            (Mode.modify(), False, "pointer"),
            (Mode.draw(FeatureType.GEOFENCE), False, "crosshair"),
            (Mode.draw(FeatureType.GEOFENCE), True, "move"),
        ],
    )
    def test_cursor_for_mode(self, mode: Mode, camera_active: bool, expected: str) -> None:
        assert cursor_for_mode(mode, camera_active) == expected


class TestBuildFrame:
    """build_frame - one immutable snapshot per state change."""

    def test_features_and_routes(self, mixed_collection: MissionElementCollection) -> None:
        frame = make_frame(mixed_collection)
        assert [f.owner_id for f in frame.features] == [0, 1, 2]
        assert [(r.owner_id, r.kind) for r in frame.routes] == [(1, PrimitiveKind.ROUTE), (2, PrimitiveKind.POINT)]
        assert len(frame.extrusions.walls) == 4
        assert frame.vertex_handles == ()

    def test_ground_route_uses_dense_path(
        self, mixed_collection: MissionElementCollection, sampler: TerrainSampler, flat_terrain: "MockTerrain"
    ) -> None:
        sample = asyncio.run(sampler.sample(mixed_collection, flat_terrain, terrain_enabled=True))
        frame = make_frame(mixed_collection, sample=sample, terrain_enabled=True)
        route = next(r for r in frame.routes if r.owner_id == 1)
        assert len(route.geometry) == 17
        assert route.geometry[0][2] == 110.0

    def test_air_route_lifted_by_altitude(self, km_route: list) -> None:
        collection, _ = MissionElementCollection().append(
            FeatureType.AIR_ROUTE, Geometry.linestring(km_route), AltitudeBand(altitude=75.0)
        )
        route = make_frame(collection).routes[0]
        assert [c[2] for c in route.geometry] == [75.0, 75.0]

    def test_handles_only_for_selection_in_modify(self, mixed_collection: MissionElementCollection) -> None:
        assert make_frame(mixed_collection, Mode.view(), selection=(0,)).vertex_handles == ()
        handles = make_frame(mixed_collection, Mode.modify(), selection=(0,)).vertex_handles
        assert [h.vertex_index for h in handles] == [0, 1, 2, 3]
        assert {h.owner_id for h in handles} == {0}

    def test_selected_feature_flagged(self, mixed_collection: MissionElementCollection) -> None:
        frame = make_frame(mixed_collection, Mode.modify(), selection=(2,))
        assert [f.selected for f in frame.features] == [False, False, True]

    def test_frame_camera_is_a_copy(self, mixed_collection: MissionElementCollection) -> None:
        camera = CameraState()
        frame = build_frame(mixed_collection, Mode.view(), (), camera, ExtrusionEngine().extrude(mixed_collection))
        camera.zoom = 3.0
        assert frame.camera.zoom != 3.0


class TestMapRenderer:
    """MapRenderer - RenderFrame to pydeck Deck."""

    @staticmethod
    def layer_ids(deck: pdk.Deck) -> list[str]:
        return [layer.id for layer in deck.layers]

    def test_layers_in_z_order(self, mixed_collection: MissionElementCollection) -> None:
        deck = MapRenderer().render(make_frame(mixed_collection))
        assert self.layer_ids(deck) == ["features", "walls", "ceilings", "borders", "routes", "points"]

    def test_terrain_layer_in_3d(self, mixed_collection: MissionElementCollection) -> None:
        deck = MapRenderer().render(make_frame(mixed_collection, terrain_enabled=True))
        assert self.layer_ids(deck)[0] == "terrain_3d"

    def test_zoned_fill_transparent_and_tagged(self, mixed_collection: MissionElementCollection) -> None:
        deck = MapRenderer().render(make_frame(mixed_collection))
        features = deck.layers[0].data["features"]
        assert features[0]["properties"]["type"] == "fill"
        assert features[0]["properties"]["fill_color"] == [0, 0, 0, 0]
        assert features[1]["properties"]["type"] == "route"
        assert features[2]["properties"]["type"] == "point"
        assert [f["properties"]["owner_id"] for f in features] == [0, 1, 2]

    def test_extrusion_data_carries_owner(self, mixed_collection: MissionElementCollection) -> None:
        deck = MapRenderer().render(make_frame(mixed_collection))
        walls = next(layer for layer in deck.layers if layer.id == "walls")
        assert {(d["type"], d["owner_id"]) for d in walls.data} == {("wall", 0)}
        assert len(walls.data[0]["geometry"]) == 4

    def test_handles_and_draft(self, mixed_collection: MissionElementCollection) -> None:
        frame = make_frame(
            mixed_collection,
            Mode.modify(),
            selection=(0,),
            draft=((0.0, 0.0), (0.001, 0.001)),
            menu=AddElementMenu(lng=0.0, lat=0.0, x=1.0, y=1.0),
        )
        ids = self.layer_ids(MapRenderer().render(frame))
        assert ids[-3:] == ["vertex_handles", "draft_vertices", "draft_path"]
