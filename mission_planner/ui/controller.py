"""MissionController - routes host input to mode transitions, edits and camera.

The controller is the single owner of the mission-element collection, the
terrain cache (through the sampler) and the camera. Every edit replaces the
collection with a new value and runs the data flow:

    input event -> gesture classification -> state machine transition
                -> new collection -> geometry hash check
                   changed:   mark terrain dirty, schedule a sampling pass
                   unchanged: merge properties into the draped view
                -> extrusion (always fully regenerated) -> RenderFrame

Gesture routing:
    middle drag, Alt + primary drag   camera control (orbit in 3D, pan in 2D)
    secondary tap                     context menu (feature menu on a hit, add menu otherwise)
    secondary hold                    camera control, menu suppressed
    primary click                     place vertex (draw) or select (view/modify)
    primary drag                      pan, or move a vertex handle in modify
    double-click                      finish draft (draw) or select / add menu
"""

import logging
from pathlib import Path
from typing import Optional

from mission_planner.constants import InteractionConfig
from mission_planner.core.extrusion import ExtrusionEngine, ExtrusionResult
from mission_planner.core.geometry_hash import compute_geometry_hash
from mission_planner.core.terrain_cache import TerrainCache
from mission_planner.core.terrain_sampler import (
    ElevatedElement,
    SampleResult,
    SamplingCoordinator,
    TerrainSampler,
)
from mission_planner.core.terrain_service import TerrainQuery
from mission_planner.model.collection import MissionElementCollection
from mission_planner.model.geometry import Geometry, GeometryKind, close_ring, strip_elevation
from mission_planner.model.input_event import Key, PointerButton, PointerEvent
from mission_planner.model.mission_element import (
    AltitudeProperties,
    FeatureType,
    MissionElement,
    properties_from_dict,
)
from mission_planner.model.primitives import PickResult, PrimitiveKind
from mission_planner.ui.camera import CameraState
from mission_planner.ui.gesture import GestureKind, PrimaryGestureTracker, SecondaryGestureTracker
from mission_planner.ui.headless_projection import HeadlessProjection
from mission_planner.ui.pick_parser import PickParser
from mission_planner.ui.scene import RenderFrame, RenderProjection, build_frame
from mission_planner.ui.state_machine import (
    AddElementMenu,
    CameraSource,
    FeatureMenu,
    InteractionStateMachine,
    Mode,
)

logger = logging.getLogger(__name__)

_CAMERA_BUTTONS = {
    CameraSource.MIDDLE_BUTTON: PointerButton.MIDDLE,
    CameraSource.ALT_LEFT_BUTTON: PointerButton.PRIMARY,
    CameraSource.HELD_RIGHT_BUTTON: PointerButton.SECONDARY,
}


class MissionController:
    """Owns the mission state and turns host events into edits.

    Example:
        controller = MissionController(projection=HeadlessProjection())
        controller.choose_add_feature(FeatureType.GEOFENCE)
        controller.pointer_down(PointerEvent(100, 100, timestamp_ms=0))
        controller.pointer_up(PointerEvent(100, 100, timestamp_ms=50))
    """

    def __init__(
        self,
        projection: Optional[RenderProjection] = None,
        terrain: Optional[TerrainQuery] = None,
        collection: Optional[MissionElementCollection] = None,
        cache: Optional[TerrainCache] = None,
        select_on_click: bool = InteractionConfig.SELECT_ON_CLICK,
    ) -> None:
        self.projection = projection if projection is not None else HeadlessProjection()
        self.select_on_click = select_on_click
        self.collection = MissionElementCollection()
        self.camera = CameraState()
        self.extrusion_engine = ExtrusionEngine()
        self.extrusions = ExtrusionResult()
        self.sample: Optional[SampleResult] = None
        self.frame: Optional[RenderFrame] = None
        self._geometry_hash: Optional[str] = None

        self.sampler = TerrainSampler(cache=cache if cache is not None else TerrainCache())
        self.coordinator = SamplingCoordinator(
            sampler=self.sampler,
            terrain=terrain,
            collection_provider=lambda: self.collection,
            on_result=self._on_sample,
            terrain_enabled=self.camera.terrain_enabled,
        )

        self.primary = PrimaryGestureTracker()
        self.secondary = SecondaryGestureTracker()
        self._pan_last: Optional[tuple[float, float]] = None
        self._vertex_drag: Optional[tuple[int, int]] = None
        self._finished_at_ms: Optional[float] = None

        self.sm, self.context = InteractionStateMachine.create(on_refresh=self.refresh_scene)
        self._commit_collection(collection if collection is not None else MissionElementCollection())

    # =========================================================================
    # State access
    # =========================================================================

    @property
    def mode(self) -> Mode:
        return self.sm.mode

    @property
    def selection(self) -> tuple[int, ...]:
        return self.context.selection

    @property
    def terrain_enabled(self) -> bool:
        return self.coordinator.terrain_enabled

    def __repr__(self) -> str:
        return f"MissionController(mode={self.mode}, elements={len(self.collection)}, selection={list(self.selection)})"

    # =========================================================================
    # Data flow
    # =========================================================================

    def _commit_collection(self, collection: MissionElementCollection) -> None:
        """Replace the collection and propagate to sampler, extrusion and scene."""
        self.collection = collection
        geometry_hash = compute_geometry_hash(collection)
        if geometry_hash != self._geometry_hash:
            self._geometry_hash = geometry_hash
            self.coordinator.mark_dirty()
            self.coordinator.schedule()
        elif self.sample is not None:
            self.sample = self.sample.with_properties(collection)
        self._refresh_extrusions()
        self.refresh_scene()

    def _on_sample(self, result: SampleResult) -> None:
        self.sample = result.with_properties(self.collection)
        self._refresh_extrusions()
        self.refresh_scene()

    def _draped_view(self) -> list[MissionElement | ElevatedElement]:
        """Draped element where the sample matches current geometry, else the flat element."""
        view: list[MissionElement | ElevatedElement] = []
        for element in self.collection:
            elevated = self.sample.current_element(element) if self.sample is not None else None
            if elevated is not None:
                view.append(elevated)
            else:
                view.append(element)
        return view

    def _refresh_extrusions(self) -> None:
        self.extrusions = self.extrusion_engine.extrude(self._draped_view())

    def refresh_scene(self) -> RenderFrame:
        """Build the frame for the current state and hand it to the projection."""
        draft = self.context.draft
        self.frame = build_frame(
            collection=self.collection,
            mode=self.sm.mode,
            selection=self.context.selection,
            camera=self.camera,
            extrusions=self.extrusions,
            sample=self.sample,
            draft=tuple(draft.vertices) if draft is not None else None,
            menu=self.context.pending_menu,
            camera_active=self.context.camera_control.active,
        )
        self.projection.update(self.frame)
        return self.frame

    async def sync_terrain(self) -> Optional[SampleResult]:
        """Run pending sampling passes to completion (for hosts driving the loop)."""
        return await self.coordinator.run()

    def set_terrain_enabled(self, enabled: bool) -> None:
        """Toggle 3D terrain. Turning it off invalidates in-flight passes and the cache."""
        if enabled == self.coordinator.terrain_enabled:
            return
        self.camera.set_terrain_enabled(enabled)
        self.coordinator.set_terrain_enabled(enabled)
        self.sample = None
        self.coordinator.schedule()
        self._refresh_extrusions()
        self.refresh_scene()

    # =========================================================================
    # Picking
    # =========================================================================

    def _pick(self, x: float, y: float) -> Optional[PickResult]:
        """Element under a screen point. Zoned ground fills do not count as hits."""
        try:
            obj = self.projection.pick(x, y)
        except Exception as exc:  # render collaborator failures degrade to "no hit"
            logger.warning(f"Pick at ({x:.0f}, {y:.0f}) failed: {exc}")
            return None
        pick = PickParser.parse(obj)
        if pick is None:
            return None
        element = self.collection.get(pick.owner_id)
        if element is None:
            logger.debug(f"Pick on stale element {pick.owner_id} ignored")
            return None
        if pick.kind == PrimitiveKind.FILL and element.is_zoned:
            return None
        return pick

    # =========================================================================
    # Pointer events
    # =========================================================================

    def pointer_down(self, event: PointerEvent) -> None:
        menu_was_open = self.context.close_menu()

        if event.button == PointerButton.PRIMARY and self.context.drawing_just_finished:
            finished_at = self._finished_at_ms
            if finished_at is None or event.timestamp_ms - finished_at > InteractionConfig.DOUBLE_CLICK_MS:
                self.context.drawing_just_finished = False

        if event.button == PointerButton.MIDDLE:
            self._start_camera(CameraSource.MIDDLE_BUTTON, event)
        elif event.button == PointerButton.PRIMARY and event.modifiers.camera:
            self._start_camera(CameraSource.ALT_LEFT_BUTTON, event)
        elif event.button == PointerButton.SECONDARY:
            self.secondary.press(event)
        elif not menu_was_open:
            if not self._start_vertex_drag(event):
                self.primary.press(event)
                self._pan_last = event.position

        self.refresh_scene()

    def pointer_move(self, event: PointerEvent) -> None:
        camera = self.context.camera_control
        if camera.active:
            self._drag_camera(event)
        elif self.secondary.pressed:
            if self.secondary.update(event):
                press = self.secondary.press_position
                self.context.camera_control.start(CameraSource.HELD_RIGHT_BUTTON, press)
                logger.debug("Secondary hold: camera control")
                self._drag_camera(event)
        elif self._vertex_drag is not None:
            owner_id, vertex_index = self._vertex_drag
            self._move_vertex(owner_id, vertex_index, event.x, event.y)
            return
        elif self.primary.pressed:
            if self.primary.update(event):
                self.camera.pan(self._pan_last, event.position, self.projection.unproject)
                self._pan_last = event.position
        else:
            return
        self.refresh_scene()

    def pointer_up(self, event: PointerEvent) -> None:
        camera = self.context.camera_control
        if camera.active and _CAMERA_BUTTONS[camera.source] == event.button:
            camera.stop()
            if event.button == PointerButton.SECONDARY:
                self.secondary.reset()
            self.refresh_scene()
            return

        if event.button == PointerButton.SECONDARY:
            if self.secondary.release(event) == GestureKind.TAP:
                self._on_secondary_tap(event)
        elif event.button == PointerButton.PRIMARY:
            if self._vertex_drag is not None:
                logger.info(f"Vertex {self._vertex_drag[1]} of element {self._vertex_drag[0]} moved")
                self._vertex_drag = None
            elif self.primary.release(event) == GestureKind.CLICK:
                self._on_click(event)
            self._pan_last = None
        self.refresh_scene()

    def tick(self, timestamp_ms: float) -> None:
        """Engage camera control for a secondary press held past the threshold without moving."""
        if self.secondary.pressed and not self.context.camera_control.active and self.secondary.is_hold(timestamp_ms):
            self.context.camera_control.start(CameraSource.HELD_RIGHT_BUTTON, self.secondary.press_position)
            self.refresh_scene()

    def double_click(self, event: PointerEvent) -> None:
        if self.sm.is_drawing:
            self._finish_draft(event.timestamp_ms)
            self.refresh_scene()
            return

        if self.context.drawing_just_finished:
            logger.debug("Double-click right after finishing a draft ignored")
            self.context.drawing_just_finished = False
            return

        pick = self._pick(event.x, event.y)
        if pick is not None:
            self.sm.select(element_id=pick.owner_id)
        else:
            if self.sm.is_modify:
                self.sm.cancel()
            self._open_add_menu(event)
        self.refresh_scene()

    def mouse_leave(self) -> None:
        """Pointer left the surface: end every drag without opening menus."""
        self.context.camera_control.stop()
        self.primary.reset()
        self.secondary.reset()
        self._pan_last = None
        self._vertex_drag = None
        self.refresh_scene()

    # =========================================================================
    # Keyboard
    # =========================================================================

    def key_down(self, key: str) -> None:
        if key == Key.ESCAPE:
            self._escape()
        elif key == Key.ENTER:
            if self.sm.is_drawing:
                self._finish_draft()
            elif self.sm.is_modify:
                self.sm.cancel()
        elif key in Key.DELETE_KEYS:
            self.delete_selected()
        else:
            return
        self.refresh_scene()

    def _escape(self) -> None:
        if self.context.close_menu():
            return
        if not self.sm.is_view:
            self.sm.cancel()
        else:
            self.context.clear_selection()

    # =========================================================================
    # Gesture outcomes
    # =========================================================================

    def _start_camera(self, source: CameraSource, event: PointerEvent) -> None:
        self.context.camera_control.start(source, event.position)
        logger.debug(f"Camera control from {source.value}")

    def _drag_camera(self, event: PointerEvent) -> None:
        camera = self.context.camera_control
        last_x, last_y = camera.last_pointer_pos
        if self.camera.can_orbit:
            self.camera.orbit(event.x - last_x, event.y - last_y)
        else:
            self.camera.pan((last_x, last_y), event.position, self.projection.unproject)
        camera.last_pointer_pos = event.position

    def _on_click(self, event: PointerEvent) -> None:
        if self.sm.is_drawing:
            lng, lat = self.projection.unproject(event.x, event.y)
            self.context.draft.add_vertex(lng, lat)
            if self.context.draft.kind == GeometryKind.POINT:
                self._finish_draft(event.timestamp_ms)
            return
        if not self.select_on_click:
            return
        pick = self._pick(event.x, event.y)
        if pick is not None:
            self.sm.select(element_id=pick.owner_id)

    def _on_secondary_tap(self, event: PointerEvent) -> None:
        if self.sm.is_drawing:
            logger.info("Secondary tap while drawing: draft cancelled")
            self.sm.cancel()
            self._open_add_menu(event)
            return
        pick = self._pick(event.x, event.y)
        if pick is not None:
            self.context.pending_menu = FeatureMenu(element_id=pick.owner_id, x=event.x, y=event.y)
        else:
            self._open_add_menu(event)

    def _open_add_menu(self, event: PointerEvent) -> None:
        lng, lat = self.projection.unproject(event.x, event.y)
        self.context.pending_menu = AddElementMenu(lng=lng, lat=lat, x=event.x, y=event.y)

    def _finish_draft(self, timestamp_ms: Optional[float] = None) -> bool:
        """Commit a complete draft. timestamp_ms is the time of the finishing pointer event, if any."""
        draft = self.context.draft
        if draft is None:
            return False
        if not draft.is_complete():
            logger.info(
                f"{draft.feature_type.display_name} draft has {len(draft.distinct_vertices())} of "
                f"{draft.min_vertices} vertices, still drawing"
            )
            return False
        collection, element = self.collection.append(draft.feature_type, draft.to_geometry())
        self._commit_collection(collection)
        self.sm.commit_draw(element_id=element.id)
        self._finished_at_ms = timestamp_ms
        logger.info(f"Created {element!r}")
        return True

    # =========================================================================
    # Vertex editing
    # =========================================================================

    def _start_vertex_drag(self, event: PointerEvent) -> bool:
        if not self.sm.is_modify:
            return False
        pick = self._pick(event.x, event.y)
        if pick is None or pick.kind != PrimitiveKind.VERTEX or pick.owner_id not in self.context.selection:
            return False
        self._vertex_drag = (pick.owner_id, pick.vertex_index)
        return True

    def _move_vertex(self, element_id: int, vertex_index: int, x: float, y: float) -> None:
        lng, lat = self.projection.unproject(x, y)
        element = self.collection[element_id]
        geometry = element.geometry.with_vertex(vertex_index, lng, lat)
        self._commit_collection(self.collection.with_geometry(element_id, geometry))

    # =========================================================================
    # Menu actions
    # =========================================================================

    def choose_add_feature(self, feature_type: FeatureType) -> None:
        """Start drawing feature_type (add menu or toolbar)."""
        self.context.close_menu()
        if self.sm.is_drawing:
            self.sm.cancel()
        self.sm.begin_draw(feature_type=feature_type)
        self.refresh_scene()

    def menu_select(self) -> None:
        menu = self.context.pending_menu
        if not isinstance(menu, FeatureMenu):
            logger.warning("Select requested without a feature menu open")
            return
        self.context.close_menu()
        self.sm.select(element_id=menu.element_id)
        self.refresh_scene()

    def menu_delete(self) -> None:
        menu = self.context.pending_menu
        if not isinstance(menu, FeatureMenu):
            logger.warning("Delete requested without a feature menu open")
            return
        self.context.close_menu()
        self.sm.select(element_id=menu.element_id)
        self.delete_selected()
        self.refresh_scene()

    def close_menu(self) -> None:
        if self.context.close_menu():
            self.refresh_scene()

    # =========================================================================
    # Edits
    # =========================================================================

    def delete_selected(self) -> bool:
        """Remove the selected elements. Returns False if nothing was selected."""
        removed = self.context.selection
        if not removed:
            logger.debug("Delete with empty selection ignored")
            return False
        if not self.sm.try_transition("delete_selection"):
            return False
        self._commit_collection(self.collection.remove(removed))
        logger.info(f"Deleted elements {list(removed)}")
        return True

    def update_properties(self, element_id: int, properties: AltitudeProperties | dict) -> None:
        """Apply a property edit from the external panel (partial dicts merge with current values)."""
        element = self.collection[element_id]
        if isinstance(properties, dict):
            properties = properties_from_dict(element.feature_type, {**element.properties.to_dict(), **properties})
        self._commit_collection(self.collection.with_properties(element_id, properties))
        logger.info(f"Element {element_id} properties -> {properties}")

    def replace_geometry(self, element_id: int, coordinates) -> None:
        """Apply a geometry edit from an external collaborator. Elevation is stripped."""
        element = self.collection[element_id]
        kind = element.feature_type.geometry_kind
        coords = strip_elevation(coordinates)
        if kind == GeometryKind.POLYGON:
            coords = tuple(close_ring(ring) for ring in coords)
        self._commit_collection(self.collection.with_geometry(element_id, Geometry(kind=kind, coordinates=coords)))

    # =========================================================================
    # Persistence
    # =========================================================================

    def save(self, path: Path) -> Path:
        return self.collection.save(path)

    def load(self, path: Path) -> None:
        """Replace the collection from a GeoJSON file and return to view."""
        collection = MissionElementCollection.load(path)
        if not self.sm.is_view:
            self.sm.cancel()
        self.context.clear_selection()
        self.context.close_menu()
        self._commit_collection(collection)
