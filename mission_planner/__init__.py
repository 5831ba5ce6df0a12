"""Mission Planner - author drone mission elements on a terrain-draped 3D map.

Sits between raw pointer/keyboard input and a deck.gl renderer:
- Interaction state machine disambiguating pan, orbit, draw, select and menu gestures
- Terrain sampler draping 2D authored coordinates onto elevation data in cooperative batches
- Extrusion engine turning zoned elements into walls, ceiling caps and borders

Modules:
    core: Leaf engines (geometry hash, terrain cache/service/sampler, extrusion)
    model: Value types (Geometry, MissionElement, MissionElementCollection, input events)
    ui: Interaction (state machine, gestures, camera, controller) and pydeck rendering

Example:
    from mission_planner.ui.controller import MissionController
    from mission_planner.model import FeatureType

    controller = MissionController(projection=projection)
    controller.choose_add_feature(FeatureType.GEOFENCE)
"""
