"""Basemap layers for the mission map.

Provides two basemap modes:

3D Mode (TerrainLayer):
    Mapterhorn terrarium-encoded elevation tiles (512 px) textured with
    OpenStreetMap raster tiles, exaggerated like the terrain collaborator
    so draped geometry sits on the rendered surface.

2D Mode (OSM_STYLE dict):
    Mapbox GL style specification with a single OpenStreetMap raster source.
    pydeck's TileLayer needs a renderSubLayers callback it does not expose
    to Python, so XYZ raster tiles go through map_style instead.

No API key required.
"""

import logging

import pydeck as pdk

from mission_planner.constants import TerrainConfig

logger = logging.getLogger(__name__)

# Terrarium decoder (elevation = R*256 + G + B/256 - 32768), scaled by exaggeration
TERRARIUM_DECODER = {
    "rScaler": 256 * TerrainConfig.EXAGGERATION,
    "gScaler": 1 * TerrainConfig.EXAGGERATION,
    "bScaler": 1 / 256 * TerrainConfig.EXAGGERATION,
    "offset": -32768 * TerrainConfig.EXAGGERATION,
}

OSM_TILES = [
    "https://a.tile.openstreetmap.org/{z}/{x}/{y}.png",
    "https://b.tile.openstreetmap.org/{z}/{x}/{y}.png",
    "https://c.tile.openstreetmap.org/{z}/{x}/{y}.png",
]


def create_terrain_layer(mesh_max_error: float = 4.0) -> pdk.Layer:
    """Create the 3D TerrainLayer from Mapterhorn DEM tiles with OSM texture.

    Args:
        mesh_max_error: Mesh approximation error in meters. Lower = more precise
            picking but slower rendering.

    Returns:
        pdk.Layer with a global 3D terrain mesh (not pickable)
    """
    return pdk.Layer(
        "TerrainLayer",
        elevation_data=TerrainConfig.DEM_TILES_URL,
        elevation_decoder=TERRARIUM_DECODER,
        texture=OSM_TILES[0],
        tile_size=TerrainConfig.DEM_TILE_SIZE_PX,
        mesh_max_error=mesh_max_error,
        id="terrain_3d",
        pickable=False,
    )


# Mapbox GL style specification for the 2D raster basemap.
# Requires map_provider="mapbox" in pdk.Deck() (works without API key for raster).
OSM_STYLE: dict[str, object] = {
    "version": 8,
    "sources": {
        "osm": {
            "type": "raster",
            "tiles": OSM_TILES,
            "tileSize": 256,
            "attribution": '© <a href="https://www.openstreetmap.org/copyright">OpenStreetMap</a> contributors',
        }
    },
    "layers": [
        {
            "id": "osm",
            "type": "raster",
            "source": "osm",
            "minzoom": 0,
            "maxzoom": 19,
        }
    ],
}
