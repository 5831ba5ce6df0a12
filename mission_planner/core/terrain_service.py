"""Terrain collaborator backed by a Digital Elevation Model (DEM) GeoTIFF.

Provides the terrain-query capability the sampler consumes:
- query_elevation(lon, lat) -> meters, raising TerrainQueryError when unavailable
- has_terrain() -> whether elevation data is present

The DEM array is loaded lazily on first query and kept in memory for O(1)
lookups. Coordinates are transformed from WGS84 to the DEM's native CRS.
Returned elevations are multiplied by the terrain exaggeration so draped
geometry sits on the same surface the terrain mesh renders.
"""

import logging
import math
import threading
import time
from pathlib import Path
from typing import Callable, Optional, Protocol

import numpy as np
import rasterio
import requests
from rasterio.warp import transform

from mission_planner.constants import DEMConfig, TerrainConfig

logger = logging.getLogger(__name__)


class TerrainQueryError(ValueError):
    """Elevation is unavailable at a coordinate (outside coverage, no-data, not loaded)."""


class TerrainQuery(Protocol):
    """Terrain capability consumed by the sampler."""

    def query_elevation(self, lon: float, lat: float) -> float: ...

    def has_terrain(self) -> bool: ...


def download_dem(
    url: str,
    target_path: Path = DEMConfig.DEM_PATH,
    progress_callback: Optional[Callable[[float], None]] = None,
) -> Path:
    """Download a DEM GeoTIFF if not already present.

    Args:
        url: HTTP(S) location of the GeoTIFF.
        target_path: Local path to save the DEM file.
        progress_callback: Optional callback receiving progress 0.0-1.0.

    Returns:
        Path to the downloaded (or existing) DEM file.

    Raises:
        requests.RequestException: If download fails.
    """
    if target_path.exists():
        logger.info(f"DEM already exists at {target_path}")
        return target_path

    target_path.parent.mkdir(parents=True, exist_ok=True)
    logger.info(f"Downloading DEM from {url}...")

    response = requests.get(url, stream=True, timeout=DEMConfig.DOWNLOAD_TIMEOUT_S)
    response.raise_for_status()

    total_size = int(response.headers.get("content-length", 0))
    downloaded = 0

    # target_path only ever holds a complete download
    part_path = target_path.with_name(target_path.name + ".part")
    try:
        with open(part_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=DEMConfig.DOWNLOAD_CHUNK_BYTES):
                f.write(chunk)
                downloaded += len(chunk)
                if progress_callback and total_size > 0:
                    progress_callback(downloaded / total_size)
    except (OSError, requests.RequestException):
        part_path.unlink(missing_ok=True)
        raise
    part_path.replace(target_path)

    logger.info(f"DEM downloaded to {target_path}")
    return target_path


class DEMTerrain:
    """Elevation sampling from a DEM GeoTIFF.

    One instance per DEM file; owners pass it explicitly to the sampler.

    Example:
        terrain = DEMTerrain(dem_path=Path("data/terrain_dem.tif"))
        elevation = terrain.query_elevation(lon=13.388, lat=52.517)
    """

    def __init__(
        self,
        dem_path: Path = DEMConfig.DEM_PATH,
        exaggeration: float = TerrainConfig.EXAGGERATION,
    ) -> None:
        self._dem_path = dem_path
        self.exaggeration = exaggeration
        self._load_lock = threading.Lock()
        self._dem = None
        self._dem_crs: Optional[str] = None
        self._dem_array: Optional[np.ndarray] = None
        self._dem_transform = None
        self._dem_nodata = None

    @property
    def is_loaded(self) -> bool:
        """Check if DEM data has been fully loaded into memory."""
        return self._dem_transform is not None

    def has_terrain(self) -> bool:
        return self.is_loaded or self._dem_path.exists()

    def _ensure_loaded(self) -> None:
        """Load DEM into memory on first access (thread-safe)."""
        if self.is_loaded:
            return

        with self._load_lock:
            if self.is_loaded:
                return

            if not self._dem_path.exists():
                raise TerrainQueryError(f"DEM file not found at {self._dem_path}")

            logger.info(f"Loading DEM from {self._dem_path}...")
            start_time = time.time()

            self._dem = rasterio.open(self._dem_path)
            self._dem_crs = self._dem.crs.to_string() if self._dem.crs else "EPSG:4326"
            self._dem_array = self._dem.read(1)
            self._dem_nodata = self._dem.nodata
            # Set _dem_transform LAST - this is what is_loaded checks
            self._dem_transform = self._dem.transform

            elapsed = time.time() - start_time
            logger.info(f"DEM loaded in {elapsed:.2f}s (shape: {self._dem_array.shape}, CRS: {self._dem_crs})")

    def query_elevation(self, lon: float, lat: float) -> float:
        """Exaggerated elevation in meters at a WGS84 coordinate.

        Raises:
            TerrainQueryError: Outside DEM coverage, at a no-data cell, or DEM missing.
        """
        self._ensure_loaded()

        if self._dem_crs != "EPSG:4326":
            proj_coords = transform("EPSG:4326", self._dem_crs, [lon], [lat])
            x, y = proj_coords[0][0], proj_coords[1][0]
        else:
            x, y = lon, lat

        col, row = ~self._dem_transform * (x, y)
        col, row = math.floor(col), math.floor(row)

        if row < 0 or row >= self._dem_array.shape[0] or col < 0 or col >= self._dem_array.shape[1]:
            raise TerrainQueryError(f"Coordinates outside DEM bounds: lon={lon}, lat={lat} (row={row}, col={col})")

        elev = self._dem_array[row, col]

        if self._dem_nodata is not None and elev == self._dem_nodata:
            raise TerrainQueryError(f"No-data value at lon={lon}, lat={lat}")
        if np.isnan(elev):
            raise TerrainQueryError(f"NaN elevation at lon={lon}, lat={lat}")

        return float(elev) * self.exaggeration

    @property
    def bounds(self) -> tuple[float, float, float, float]:
        """Return (west, south, east, north) bounds in WGS84."""
        self._ensure_loaded()
        b = self._dem.bounds

        if self._dem_crs != "EPSG:4326":
            corners_x = [b.left, b.right, b.left, b.right]
            corners_y = [b.bottom, b.bottom, b.top, b.top]
            lons, lats = transform(self._dem_crs, "EPSG:4326", corners_x, corners_y)
            return min(lons), min(lats), max(lons), max(lats)

        return b.left, b.bottom, b.right, b.top
