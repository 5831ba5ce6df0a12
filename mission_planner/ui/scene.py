"""Scene assembly - everything the render projection draws for one state.

A RenderFrame is an immutable snapshot built after every state change:
- editable features (the edit-geometry primitive with mode and selection)
- extrusion walls, ceilings and borders
- route paths and search points
- vertex handles of the selected element in modify mode
- the in-progress draft, the open menu and a cursor hint

The render projection (pydeck in a browser, or HeadlessProjection) receives
frames through update() and answers unproject/pick queries.
"""

import dataclasses
from dataclasses import dataclass
from typing import Any, Protocol

from mission_planner.constants import StyleConfig
from mission_planner.core.extrusion import ExtrusionResult
from mission_planner.core.terrain_sampler import SampleResult
from mission_planner.model.collection import MissionElementCollection
from mission_planner.model.geometry import Coord2D, Coord3D, GeometryKind
from mission_planner.model.mission_element import AltitudeBand, FeatureType, MissionElement
from mission_planner.model.primitives import PrimitiveKind, RoutePrimitive, VertexHandle
from mission_planner.ui.camera import CameraState
from mission_planner.ui.state_machine import Menu, Mode, ModeKind


@dataclass(frozen=True)
class EditableFeature:
    """One element as drawn by the edit-geometry layer.

    Zoned features have their ground fill visually suppressed; only their
    extrusions are pickable.
    """

    owner_id: int
    feature_type: FeatureType
    coordinates: Any
    selected: bool

    @property
    def is_zoned(self) -> bool:
        return self.feature_type.is_zoned


@dataclass(frozen=True)
class RenderFrame:
    """Immutable snapshot handed to the render projection."""

    mode: Mode
    cursor: str
    camera: CameraState
    features: tuple[EditableFeature, ...] = ()
    extrusions: ExtrusionResult = ExtrusionResult()
    routes: tuple[RoutePrimitive, ...] = ()
    vertex_handles: tuple[VertexHandle, ...] = ()
    draft: tuple[Coord2D, ...] | None = None
    menu: Menu | None = None
    selection: tuple[int, ...] = ()


class RenderProjection(Protocol):
    """Render collaborator: draws frames, unprojects pixels and answers picks.

    pick() returns the picked datum (a dict carrying "type" and "owner_id",
    plus "vertex_index" for vertex handles) or None.
    """

    def update(self, frame: RenderFrame) -> None: ...

    def unproject(self, x: float, y: float) -> tuple[float, float]: ...

    def pick(self, x: float, y: float) -> dict | None: ...


def cursor_for_mode(mode: Mode, camera_active: bool = False) -> str:
    """Cursor style hint for the host surface."""
    if camera_active:
        return StyleConfig.CURSORS["camera"]
    if mode.kind == ModeKind.DRAW:
        return StyleConfig.CURSORS["draw"]
    return StyleConfig.CURSORS[mode.kind.value]


def _flat(coords: Any) -> Any:
    if coords and isinstance(coords[0], (int, float)):
        return (float(coords[0]), float(coords[1]), 0.0)
    return tuple(_flat(c) for c in coords)


def _elevated_coordinates(element: MissionElement, sample: SampleResult | None) -> tuple[Any, SampleResult | None]:
    """Draped coordinates and the sample they came from, or flat ones when the sample is stale."""
    elevated = sample.current_element(element) if sample is not None else None
    if elevated is None:
        return _flat(element.geometry.coordinates), None
    return elevated.coordinates, sample


def _route_primitives(
    element: MissionElement,
    coordinates: Any,
    sample: SampleResult | None,
    selected: bool,
) -> list[RoutePrimitive]:
    color = StyleConfig.SELECTED_COLOR_RGBA if selected else StyleConfig.FEATURE_COLORS_RGBA[element.feature_type.value]
    if element.feature_type == FeatureType.SEARCH_POINT:
        return [RoutePrimitive(element.id, PrimitiveKind.POINT, (tuple(coordinates),), color, selected)]
    if len(coordinates) < 2:
        return []
    if element.feature_type == FeatureType.GROUND_ROUTE:
        dense = sample.dense_path(element.id) if sample is not None else None
        path = dense.path if dense is not None else tuple(coordinates)
        return [RoutePrimitive(element.id, PrimitiveKind.ROUTE, path, color, selected)]
    altitude = element.properties.altitude if isinstance(element.properties, AltitudeBand) else 0.0
    path = tuple((c[0], c[1], c[2] + altitude) for c in coordinates)
    return [RoutePrimitive(element.id, PrimitiveKind.ROUTE, path, color, selected)]


def build_frame(
    collection: MissionElementCollection,
    mode: Mode,
    selection: tuple[int, ...],
    camera: CameraState,
    extrusions: ExtrusionResult,
    sample: SampleResult | None = None,
    draft: tuple[Coord2D, ...] | None = None,
    menu: Menu | None = None,
    camera_active: bool = False,
) -> RenderFrame:
    """Assemble the frame for the current state."""
    features: list[EditableFeature] = []
    routes: list[RoutePrimitive] = []
    handles: list[VertexHandle] = []

    for element in collection:
        selected = element.id in selection
        coordinates, element_sample = _elevated_coordinates(element, sample)
        features.append(EditableFeature(element.id, element.feature_type, coordinates, selected))
        if not element.is_zoned:
            routes.extend(_route_primitives(element, coordinates, element_sample, selected))
        if selected and mode.kind == ModeKind.MODIFY:
            handles.extend(_vertex_handles(element, coordinates))

    return RenderFrame(
        mode=mode,
        cursor=cursor_for_mode(mode, camera_active),
        camera=dataclasses.replace(camera),
        features=tuple(features),
        extrusions=extrusions,
        routes=tuple(routes),
        vertex_handles=tuple(handles),
        draft=draft,
        menu=menu,
        selection=selection,
    )


def _vertex_handles(element: MissionElement, coordinates: Any) -> list[VertexHandle]:
    count = len(element.geometry.vertices())
    if element.feature_type.geometry_kind == GeometryKind.POINT:
        positions: list[Coord3D] = [tuple(coordinates)]
    elif element.is_zoned:
        positions = list(coordinates[0][:count])
    else:
        positions = list(coordinates[:count])
    return [VertexHandle(owner_id=element.id, vertex_index=i, position=p) for i, p in enumerate(positions)]
