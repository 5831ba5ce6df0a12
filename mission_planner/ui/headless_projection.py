"""Headless render projection - unproject and pick without a browser.

Implements the render-projection contract (update / unproject / pick) in
pure Python so the controller can be driven from scripts and tests:

- unproject: Web Mercator around the camera center and zoom. The camera is
  treated as top-down; pitch and bearing are ignored.
- pick: shapely distance queries in screen space against the last frame,
  in priority order vertex handle > point > route > border > wall > ceiling > fill.

Picked objects are returned as the same dicts MapRenderer feeds to deck.gl,
so PickParser handles both hosts identically.
"""

import logging
import math
from typing import Any

from shapely.geometry import LineString, Point, Polygon

from mission_planner.constants import MapConfig, PickConfig
from mission_planner.ui.camera import CameraState
from mission_planner.ui.scene import RenderFrame

logger = logging.getLogger(__name__)


class HeadlessProjection:
    """Screen <-> map conversion and picking for a fixed-size viewport.

    Example:
        projection = HeadlessProjection(width=800, height=600)
        projection.update(frame)
        lng, lat = projection.unproject(400, 300)  # camera center
    """

    def __init__(
        self,
        width: float = 800.0,
        height: float = 600.0,
        picking_radius_px: float = PickConfig.PICKING_RADIUS_PX,
        tile_size: int = MapConfig.TILE_SIZE_PX,
    ) -> None:
        self.width = width
        self.height = height
        self.picking_radius_px = picking_radius_px
        self.tile_size = tile_size
        self.frame: RenderFrame | None = None
        self._camera = CameraState()

    @property
    def camera(self) -> CameraState:
        return self.frame.camera if self.frame is not None else self._camera

    def update(self, frame: RenderFrame) -> None:
        self.frame = frame

    # =========================================================================
    # Web Mercator
    # =========================================================================

    def _scale(self) -> float:
        return self.tile_size * 2**self.camera.zoom

    def _world(self, lng: float, lat: float) -> tuple[float, float]:
        scale = self._scale()
        x = (lng + 180.0) / 360.0 * scale
        phi = math.radians(lat)
        y = (1.0 - math.log(math.tan(phi) + 1.0 / math.cos(phi)) / math.pi) / 2.0 * scale
        return x, y

    def project(self, lng: float, lat: float) -> tuple[float, float]:
        """Map coordinate to screen pixel."""
        cx, cy = self._world(self.camera.longitude, self.camera.latitude)
        wx, wy = self._world(lng, lat)
        return wx - cx + self.width / 2.0, wy - cy + self.height / 2.0

    def unproject(self, x: float, y: float) -> tuple[float, float]:
        """Screen pixel to (lng, lat)."""
        scale = self._scale()
        cx, cy = self._world(self.camera.longitude, self.camera.latitude)
        wx = cx + x - self.width / 2.0
        wy = cy + y - self.height / 2.0
        lng = wx / scale * 360.0 - 180.0
        lat = math.degrees(math.atan(math.sinh(math.pi * (1.0 - 2.0 * wy / scale))))
        return lng, lat

    def _screen(self, coords: Any) -> list[tuple[float, float]]:
        return [self.project(c[0], c[1]) for c in coords]

    # =========================================================================
    # Picking
    # =========================================================================

    def pick(self, x: float, y: float) -> dict | None:
        """Topmost picked datum at a screen pixel, or None."""
        if self.frame is None:
            return None
        cursor = Point(x, y)
        radius = self.picking_radius_px
        frame = self.frame

        for handle in frame.vertex_handles:
            if cursor.distance(Point(self.project(*handle.position[:2]))) <= radius:
                return {"type": PickConfig.TYPE_VERTEX, "owner_id": handle.owner_id, "vertex_index": handle.vertex_index}

        for kind in (PickConfig.TYPE_POINT, PickConfig.TYPE_ROUTE):
            for route in frame.routes:
                if route.kind.value != kind:
                    continue
                if self._near(cursor, route.geometry, radius):
                    return {"type": kind, "owner_id": route.owner_id}

        for kind, primitives in (
            (PickConfig.TYPE_BORDER, frame.extrusions.borders),
            (PickConfig.TYPE_WALL, frame.extrusions.walls),
        ):
            for primitive in primitives:
                if self._near(cursor, primitive.geometry, radius):
                    return {"type": kind, "owner_id": primitive.owner_id}

        for ceiling in frame.extrusions.ceilings:
            if Polygon(self._screen(ceiling.geometry)).buffer(0).contains(cursor):
                return {"type": PickConfig.TYPE_CEILING, "owner_id": ceiling.owner_id}

        for feature in frame.features:
            if feature.is_zoned and Polygon(self._screen(feature.coordinates[0])).buffer(0).contains(cursor):
                return {"type": PickConfig.TYPE_FILL, "owner_id": feature.owner_id}

        return None

    def _near(self, cursor: Point, coords: Any, radius: float) -> bool:
        screen = self._screen(coords)
        shape = Point(screen[0]) if len(screen) == 1 else LineString(screen)
        return cursor.distance(shape) <= radius
