"""Configuration constants for Mission Planner.

All configurable parameters are centralized here for easy tuning.
Components accept overrides through constructor arguments that default
to these values.

Classes:
    MapConfig: Initial map view parameters
    CameraConfig: Orbit sensitivity and pitch limits
    TerrainConfig: Draping offset, interpolation density, batching, cache age
    DEMConfig: Elevation data file paths
    AltitudeConfig: Default altitude parameters per feature type
    InteractionConfig: Gesture thresholds and click/select behaviour
    PickConfig: Primitive type tags shared with the render projection
    StyleConfig: Visual colors per feature type
"""

from pathlib import Path

# Package root directory (where mission_planner/ lives)
PACKAGE_DIR = Path(__file__).parent

# Project root directory (parent of mission_planner/)
PROJECT_ROOT = PACKAGE_DIR.parent

# Data directory outside package (downloaded separately, not shipped with package)
DATA_DIR = PROJECT_ROOT / "data"

# Output directory for rendered missions
OUTPUT_DIR = PROJECT_ROOT / "output"


class MapConfig:
    """Initial map view parameters."""

    # Initial center: Berlin
    START_CENTER_LON = 13.388
    START_CENTER_LAT = 52.517
    DEFAULT_ZOOM = 9.5

    DEFAULT_PITCH = 0.0
    DEFAULT_BEARING = 0.0

    # Web Mercator tile size used for pixel <-> lng/lat conversion
    TILE_SIZE_PX = 512

    # At equator, 1 degree of latitude or longitude ≈ 111,320 meters
    METERS_PER_DEGREE_EQUATOR = 111320.0


class CameraConfig:
    """Camera control parameters for held/middle/alt drags.

    Lower sensitivity = harder to spin the camera wildly.
    """

    BEARING_SENSITIVITY = 0.25  # degrees of bearing per pixel of horizontal drag
    PITCH_SENSITIVITY = 0.25  # degrees of pitch per pixel of vertical drag

    MAX_PITCH_3D = 75.0  # 3D terrain mode allows tilting up to this angle
    MAX_PITCH_2D = 0.0  # 2D mode locks the camera top-down


class TerrainConfig:
    """Terrain draping parameters."""

    # Meters added on top of sampled terrain to prevent z-fighting with the terrain
    # surface. Visually imperceptible, never written back to stored coordinates.
    ELEVATION_OFFSET_M = 10.0

    # Interior points inserted between consecutive ground-route vertices
    INTERPOLATION_POINTS = 15

    # Elements processed per batch before yielding control
    BATCH_SIZE = 5

    # Cached draped coordinates older than this are treated as absent
    CACHE_MAX_AGE_S = 30.0

    # Vertical exaggeration applied to the terrain mesh (and therefore to queries)
    EXAGGERATION = 1.5

    # Mapterhorn terrarium-encoded DEM tiles (free, no API key)
    DEM_TILES_URL = "https://tiles.mapterhorn.com/{z}/{x}/{y}.webp"
    DEM_TILE_SIZE_PX = 512


class DEMConfig:
    """Elevation data file paths for the local DEM terrain collaborator."""

    DEM_PATH = DATA_DIR / "terrain_dem.tif"

    # Optional download source for the DEM GeoTIFF (None = local file only)
    DOWNLOAD_URL: str | None = None
    DOWNLOAD_TIMEOUT_S = 180
    DOWNLOAD_CHUNK_BYTES = 8192


class AltitudeConfig:
    """Default altitude parameters (meters above ground) per feature type."""

    NO_FLY_ZONE_FLOOR_M = 0.0
    NO_FLY_ZONE_CEILING_M = 400.0
    GEOFENCE_ALTITUDE_M = 150.0
    SEARCH_ZONE_ALTITUDE_M = 100.0
    AIR_ROUTE_ALTITUDE_M = 50.0


class InteractionConfig:
    """Pointer gesture classification and selection behaviour."""

    # Secondary button released before this is a tap (menu); later is a hold (camera)
    HOLD_THRESHOLD_MS = 200

    # A primary press this long after a draft finished no longer belongs to the finishing gesture
    DOUBLE_CLICK_MS = 500

    # Pointer travel (pixels) beyond which a press becomes a drag
    CLICK_TOLERANCE_PX = 4.0

    # Two vertices closer than this (degrees) are the same vertex when a draft finishes
    DUPLICATE_VERTEX_TOLERANCE_DEG = 1e-9

    # Select an element on single click (True) or only on double-click (False)
    SELECT_ON_CLICK = True

    # Minimum distinct vertices to complete a draft, by geometry kind
    MIN_POLYGON_VERTICES = 3
    MIN_LINE_VERTICES = 2


class PickConfig:
    """Primitive type tags carried by every rendered datum.

    The render projection reports picks as {"type": ..., "owner_id": ...};
    these tags are the contract between MapRenderer and PickParser.
    """

    TYPE_FILL = "fill"
    TYPE_WALL = "wall"
    TYPE_CEILING = "ceiling"
    TYPE_BORDER = "border"
    TYPE_ROUTE = "route"
    TYPE_POINT = "point"
    TYPE_VERTEX = "vertex"

    # Headless picking radius (pixels) for lines, points and vertex handles
    PICKING_RADIUS_PX = 6.0


class StyleConfig:
    """Visual colors (RGBA 0-255) per feature type."""

    FEATURE_COLORS_RGBA = {
        "noFlyZone": (239, 68, 68, 255),  # red-500
        "geofence": (234, 179, 8, 255),  # yellow-500
        "searchZone": (59, 130, 246, 255),  # blue-500
        "airRoute": (168, 85, 247, 255),  # purple-500
        "groundRoute": (34, 197, 94, 255),  # green-500
        "searchPoint": (249, 115, 22, 255),  # orange-500
    }

    WALL_ALPHA = 90
    CEILING_ALPHA = 60  # translucent cap
    BORDER_ALPHA = 255

    SELECTED_COLOR_RGBA = (255, 255, 255, 255)
    DRAFT_COLOR_RGBA = (255, 255, 255, 200)
    VERTEX_HANDLE_RADIUS_PX = 6
    POINT_RADIUS_PX = 8
    PATH_WIDTH_PX = 3

    CURSORS = {
        "view": "grab",
        "modify": "pointer",
        "draw": "crosshair",
        "camera": "move",
    }
