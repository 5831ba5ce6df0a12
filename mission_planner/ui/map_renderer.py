"""MapRenderer - pydeck rendering of a RenderFrame.

Renders mission elements on a GPU-accelerated deck.gl map:
- Basemap (2D OpenStreetMap raster style, or 3D TerrainLayer)
- Editable features as a GeoJsonLayer (zoned fills fully transparent)
- Extrusion walls and ceiling caps (SolidPolygonLayer with 3D vertices)
- Extrusion borders and routes (PathLayer)
- Search points, vertex handles and the draft (ScatterplotLayer / PathLayer)

Conventions:
- [lon, lat, z] coordinate order (GeoJSON standard)
- Colors as RGBA lists [R, G, B, A] (0-255)
- Every pickable datum carries "type" (PickConfig tag) and "owner_id" so the
  host can report picks back through PickParser
"""

import logging
from dataclasses import dataclass, field
from typing import Any

import pydeck as pdk

from mission_planner.constants import PickConfig, StyleConfig
from mission_planner.model.geometry import GeometryKind
from mission_planner.model.primitives import ExtrusionPrimitive, PrimitiveKind
from mission_planner.ui.scene import EditableFeature, RenderFrame
from mission_planner.ui.terrain_layer import OSM_STYLE, create_terrain_layer

logger = logging.getLogger(__name__)

TRANSPARENT = [0, 0, 0, 0]


@dataclass
class LayerCollection:
    """Pydeck layers with correct z-ordering.

    Z-order (back to front): terrain -> features -> walls -> ceilings -> borders
    -> routes -> points -> handles -> draft

    Handles come after everything else they overlap so they get click priority.
    """

    terrain: list[pdk.Layer] = field(default_factory=list)
    features: list[pdk.Layer] = field(default_factory=list)
    extrusions: list[pdk.Layer] = field(default_factory=list)
    routes: list[pdk.Layer] = field(default_factory=list)
    handles: list[pdk.Layer] = field(default_factory=list)
    draft: list[pdk.Layer] = field(default_factory=list)

    def get_ordered_layers(self) -> list[pdk.Layer]:
        """Return all layers in correct z-order (back to front)."""
        return self.terrain + self.features + self.extrusions + self.routes + self.handles + self.draft


def _name(kind: str, owner_id: int) -> str:
    return f"{kind.capitalize()} of element {owner_id}"


def _lists(coords: Any) -> Any:
    if coords and isinstance(coords[0], (int, float)):
        return list(coords)
    return [_lists(c) for c in coords]


class MapRenderer:
    """Renders a RenderFrame as a pydeck Deck.

    Example:
        deck = MapRenderer().render(frame)
        deck.to_html("mission.html")
    """

    def render(self, frame: RenderFrame) -> pdk.Deck:
        """Render complete map with all layers."""
        layers = LayerCollection()
        terrain_enabled = frame.camera.terrain_enabled

        if terrain_enabled:
            layers.terrain.append(create_terrain_layer())

        layers.features.append(self._create_feature_layer(frame.features))
        layers.extrusions.extend(self._create_extrusion_layers(frame))
        layers.routes.extend(self._create_route_layers(frame))
        if frame.vertex_handles:
            layers.handles.append(self._create_handle_layer(frame))
        if frame.draft:
            layers.draft.extend(self._create_draft_layers(frame))

        # 3D: TerrainLayer provides the basemap; 2D: raster style dict
        if terrain_enabled:
            map_style = None
            map_provider = None
        else:
            map_style = OSM_STYLE
            map_provider = "mapbox"

        logger.debug(f"Rendered {len(layers.get_ordered_layers())} layers ({frame.mode})")
        return pdk.Deck(
            map_style=map_style,
            map_provider=map_provider,
            initial_view_state=frame.camera.view_state(),
            layers=layers.get_ordered_layers(),
            tooltip=self._create_tooltip_config(),
            parameters={"pickingRadius": PickConfig.PICKING_RADIUS_PX},
        )

    # =========================================================================
    # EDITABLE FEATURES
    # =========================================================================

    @staticmethod
    def _feature_type_tag(feature: EditableFeature) -> str:
        if feature.is_zoned:
            return PickConfig.TYPE_FILL
        if feature.feature_type.geometry_kind == GeometryKind.POINT:
            return PickConfig.TYPE_POINT
        return PickConfig.TYPE_ROUTE

    def _create_feature_layer(self, features: tuple[EditableFeature, ...]) -> pdk.Layer:
        """GeoJsonLayer of all elements. Zoned fills are drawn fully transparent."""
        geojson = {
            "type": "FeatureCollection",
            "features": [
                {
                    "type": "Feature",
                    "geometry": {
                        "type": feature.feature_type.geometry_kind.value,
                        "coordinates": _lists(feature.coordinates),
                    },
                    "properties": {
                        "type": self._feature_type_tag(feature),
                        "owner_id": feature.owner_id,
                        "name": f"{feature.feature_type.display_name} {feature.owner_id}",
                        "fill_color": TRANSPARENT,
                        "line_color": list(
                            StyleConfig.SELECTED_COLOR_RGBA
                            if feature.selected
                            else StyleConfig.FEATURE_COLORS_RGBA[feature.feature_type.value]
                        ),
                    },
                }
                for feature in features
            ],
        }
        return pdk.Layer(
            "GeoJsonLayer",
            geojson,
            filled=True,
            stroked=True,
            get_fill_color="properties.fill_color",
            get_line_color="properties.line_color",
            line_width_min_pixels=1,
            point_radius_min_pixels=StyleConfig.POINT_RADIUS_PX,
            pickable=True,
            id="features",
        )

    # =========================================================================
    # EXTRUSIONS
    # =========================================================================

    @staticmethod
    def _primitive_data(primitives: tuple[ExtrusionPrimitive, ...], selection: tuple[int, ...]) -> list[dict]:
        data = []
        for p in primitives:
            color = list(p.color)
            if p.owner_id in selection and p.kind == PrimitiveKind.BORDER:
                color = list(StyleConfig.SELECTED_COLOR_RGBA)
            data.append(
                {
                    "type": p.kind.value,
                    "owner_id": p.owner_id,
                    "geometry": [list(c) for c in p.geometry],
                    "color": color,
                    "name": _name(p.kind.value, p.owner_id),
                }
            )
        return data

    def _create_extrusion_layers(self, frame: RenderFrame) -> list[pdk.Layer]:
        layers = []
        ext = frame.extrusions
        for layer_id, primitives in (("walls", ext.walls), ("ceilings", ext.ceilings)):
            if not primitives:
                continue
            layers.append(
                pdk.Layer(
                    "SolidPolygonLayer",
                    self._primitive_data(primitives, frame.selection),
                    get_polygon="geometry",
                    get_fill_color="color",
                    extruded=False,
                    pickable=True,
                    auto_highlight=True,
                    highlight_color=[255, 255, 255, 60],
                    id=layer_id,
                )
            )
        if ext.borders:
            layers.append(
                pdk.Layer(
                    "PathLayer",
                    self._primitive_data(ext.borders, frame.selection),
                    get_path="geometry",
                    get_color="color",
                    width_min_pixels=StyleConfig.PATH_WIDTH_PX,
                    pickable=True,
                    id="borders",
                )
            )
        return layers

    # =========================================================================
    # ROUTES AND POINTS
    # =========================================================================

    def _create_route_layers(self, frame: RenderFrame) -> list[pdk.Layer]:
        path_data = []
        point_data = []
        for route in frame.routes:
            datum = {
                "type": route.kind.value,
                "owner_id": route.owner_id,
                "color": list(route.color),
                "name": _name(route.kind.value, route.owner_id),
            }
            if route.kind == PrimitiveKind.POINT:
                point_data.append({**datum, "position": list(route.geometry[0])})
            else:
                path_data.append({**datum, "path": [list(c) for c in route.geometry]})

        layers = []
        if path_data:
            layers.append(
                pdk.Layer(
                    "PathLayer",
                    path_data,
                    get_path="path",
                    get_color="color",
                    width_min_pixels=StyleConfig.PATH_WIDTH_PX,
                    pickable=True,
                    id="routes",
                )
            )
        if point_data:
            layers.append(
                pdk.Layer(
                    "ScatterplotLayer",
                    point_data,
                    get_position="position",
                    get_fill_color="color",
                    radius_min_pixels=StyleConfig.POINT_RADIUS_PX,
                    pickable=True,
                    auto_highlight=True,
                    id="points",
                )
            )
        return layers

    def _create_handle_layer(self, frame: RenderFrame) -> pdk.Layer:
        handle_data = [
            {
                "type": PickConfig.TYPE_VERTEX,
                "owner_id": h.owner_id,
                "vertex_index": h.vertex_index,
                "position": list(h.position),
                "name": f"Vertex {h.vertex_index}",
            }
            for h in frame.vertex_handles
        ]
        return pdk.Layer(
            "ScatterplotLayer",
            handle_data,
            get_position="position",
            get_fill_color=list(StyleConfig.SELECTED_COLOR_RGBA),
            get_line_color=[0, 0, 0, 255],
            stroked=True,
            radius_min_pixels=StyleConfig.VERTEX_HANDLE_RADIUS_PX,
            line_width_min_pixels=1,
            pickable=True,
            id="vertex_handles",
        )

    def _create_draft_layers(self, frame: RenderFrame) -> list[pdk.Layer]:
        vertices = [[lon, lat, 0.0] for lon, lat in frame.draft]
        layers = [
            pdk.Layer(
                "ScatterplotLayer",
                [{"position": v} for v in vertices],
                get_position="position",
                get_fill_color=list(StyleConfig.DRAFT_COLOR_RGBA),
                radius_min_pixels=StyleConfig.VERTEX_HANDLE_RADIUS_PX,
                id="draft_vertices",
            )
        ]
        if len(vertices) > 1:
            layers.append(
                pdk.Layer(
                    "PathLayer",
                    [{"path": vertices}],
                    get_path="path",
                    get_color=list(StyleConfig.DRAFT_COLOR_RGBA),
                    width_min_pixels=2,
                    id="draft_path",
                )
            )
        return layers

    # =========================================================================
    # TOOLTIP CONFIGURATION
    # =========================================================================

    def _create_tooltip_config(self) -> dict[str, str | dict[str, str]]:
        """Create Pydeck tooltip configuration - name only."""
        return {
            "html": "<b>{name}</b>",
            "style": {
                "backgroundColor": "rgba(255, 255, 255, 0.95)",
                "color": "#333",
                "padding": "6px 10px",
                "borderRadius": "4px",
            },
        }
