"""Interaction and rendering components for the mission planner.

File Structure:
- state_machine.py: InteractionStateMachine (view / modify / draw per type) + InteractionContext
- gesture.py: Tap/hold and click/drag classification from event timestamps
- camera.py: CameraState (pan, dampened orbit, pitch clamp)
- draft.py: DraftGeometry, the in-progress geometry of a draw gesture
- controller.py: MissionController, event routing and data flow owner
- scene.py: RenderFrame assembly, cursor hint, RenderProjection protocol
- map_renderer.py: RenderFrame -> pydeck Deck
- pick_parser.py: Picked deck.gl objects -> PickResult
- headless_projection.py: Web Mercator unproject + shapely picking without a browser
- terrain_layer.py: 3D TerrainLayer and 2D raster basemap style
"""

from mission_planner.ui.camera import CameraState
from mission_planner.ui.controller import MissionController
from mission_planner.ui.headless_projection import HeadlessProjection
from mission_planner.ui.map_renderer import MapRenderer
from mission_planner.ui.pick_parser import PickParser
from mission_planner.ui.scene import RenderFrame, build_frame, cursor_for_mode
from mission_planner.ui.state_machine import (
    AddElementMenu,
    FeatureMenu,
    InteractionContext,
    InteractionStateMachine,
    Mode,
    ModeKind,
)

__all__ = [
    "CameraState",
    "MissionController",
    "HeadlessProjection",
    "MapRenderer",
    "PickParser",
    "RenderFrame",
    "build_frame",
    "cursor_for_mode",
    "InteractionStateMachine",
    "InteractionContext",
    "Mode",
    "ModeKind",
    "AddElementMenu",
    "FeatureMenu",
]
