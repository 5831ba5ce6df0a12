"""Camera state driven by camera-control drags.

In 3D (terrain enabled) a camera drag orbits: bearing follows horizontal
movement, pitch follows vertical movement, both dampened by the configured
sensitivity and pitch clamped to [0, MAX_PITCH_3D]. In 2D the camera is
locked top-down (pitch and bearing 0) and camera drags pan instead.
"""

import logging
from dataclasses import dataclass
from typing import Callable

import pydeck as pdk

from mission_planner.constants import CameraConfig, MapConfig

logger = logging.getLogger(__name__)

Unproject = Callable[[float, float], tuple[float, float]]


@dataclass
class CameraState:
    """Map camera (deck.gl view state fields)."""

    longitude: float = MapConfig.START_CENTER_LON
    latitude: float = MapConfig.START_CENTER_LAT
    zoom: float = MapConfig.DEFAULT_ZOOM
    pitch: float = MapConfig.DEFAULT_PITCH
    bearing: float = MapConfig.DEFAULT_BEARING
    terrain_enabled: bool = False

    @property
    def max_pitch(self) -> float:
        return CameraConfig.MAX_PITCH_3D if self.terrain_enabled else CameraConfig.MAX_PITCH_2D

    @property
    def can_orbit(self) -> bool:
        return self.terrain_enabled

    def orbit(self, dx: float, dy: float) -> None:
        """Rotate and tilt by a pixel delta (3D only; ignored in 2D)."""
        if not self.can_orbit:
            return
        bearing = self.bearing + dx * CameraConfig.BEARING_SENSITIVITY
        self.bearing = (bearing + 180.0) % 360.0 - 180.0
        self.pitch = min(max(self.pitch - dy * CameraConfig.PITCH_SENSITIVITY, 0.0), self.max_pitch)

    def pan(self, from_px: tuple[float, float], to_px: tuple[float, float], unproject: Unproject) -> None:
        """Move the center so the map point under from_px ends up under to_px."""
        lng0, lat0 = unproject(*from_px)
        lng1, lat1 = unproject(*to_px)
        self.longitude += lng0 - lng1
        self.latitude = min(max(self.latitude + lat0 - lat1, -85.0), 85.0)

    def set_terrain_enabled(self, enabled: bool) -> None:
        self.terrain_enabled = enabled
        if not enabled:
            self.reset_flat()

    def reset_flat(self) -> None:
        """Top-down, north-up."""
        self.pitch = 0.0
        self.bearing = 0.0

    def view_state(self) -> pdk.ViewState:
        """Create Pydeck ViewState from current settings."""
        return pdk.ViewState(
            longitude=self.longitude,
            latitude=self.latitude,
            zoom=self.zoom,
            pitch=self.pitch,
            bearing=self.bearing,
            max_pitch=self.max_pitch,
        )
