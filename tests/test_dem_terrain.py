"""DEMTerrain and download_dem tests on a small synthetic GeoTIFF.

The raster covers (0, 0) to (0.01, 0.01) in EPSG:4326 with 0.001° cells at
200m. The north-west cell holds the no-data value.
"""

import asyncio
from pathlib import Path

import numpy as np
import pytest
import rasterio
import requests
from rasterio.transform import from_origin

from mission_planner.core import terrain_service
from mission_planner.core.terrain_cache import TerrainCache
from mission_planner.core.terrain_sampler import TerrainSampler
from mission_planner.core.terrain_service import DEMTerrain, TerrainQueryError, download_dem
from mission_planner.model.collection import MissionElementCollection
from mission_planner.model.geometry import Geometry
from mission_planner.model.mission_element import FeatureType

NODATA = -9999.0


@pytest.fixture
def dem_path(tmp_path: Path) -> Path:
    path = tmp_path / "dem.tif"
    array = np.full((10, 10), 200.0, dtype="float32")
    array[0, 0] = NODATA
    with rasterio.open(
        path,
        "w",
        driver="GTiff",
        height=10,
        width=10,
        count=1,
        dtype="float32",
        crs="EPSG:4326",
        transform=from_origin(0.0, 0.01, 0.001, 0.001),
        nodata=NODATA,
    ) as dst:
        dst.write(array, 1)
    return path


class TestDEMTerrain:
    def test_query_inside_coverage(self, dem_path: Path) -> None:
        terrain = DEMTerrain(dem_path=dem_path, exaggeration=1.0)
        assert not terrain.is_loaded
        assert terrain.has_terrain()

        assert terrain.query_elevation(lon=0.0055, lat=0.0055) == 200.0
        assert terrain.is_loaded

    def test_exaggeration_applied(self, dem_path: Path) -> None:
        """Default exaggeration 1.5 matches the rendered terrain mesh."""
        assert DEMTerrain(dem_path=dem_path).query_elevation(lon=0.0055, lat=0.0055) == 300.0

    def test_outside_coverage_raises(self, dem_path: Path) -> None:
        with pytest.raises(TerrainQueryError, match="outside DEM bounds"):
            DEMTerrain(dem_path=dem_path).query_elevation(lon=0.02, lat=0.005)

    @pytest.mark.parametrize("lon,lat", [(-0.0005, 0.005), (0.005, 0.0105)], ids=["west", "north"])
    def test_just_outside_west_or_north_edge_raises(self, dem_path: Path, lon: float, lat: float) -> None:
        """Fractional cell indices in (-1, 0) must not round to the edge cell."""
        with pytest.raises(TerrainQueryError, match="outside DEM bounds"):
            DEMTerrain(dem_path=dem_path).query_elevation(lon=lon, lat=lat)

    def test_nodata_cell_raises(self, dem_path: Path) -> None:
        with pytest.raises(TerrainQueryError, match="No-data"):
            DEMTerrain(dem_path=dem_path).query_elevation(lon=0.0005, lat=0.0095)

    def test_missing_file(self, tmp_path: Path) -> None:
        terrain = DEMTerrain(dem_path=tmp_path / "missing.tif")
        assert not terrain.has_terrain()
        with pytest.raises(TerrainQueryError, match="not found"):
            terrain.query_elevation(lon=0.0, lat=0.0)

    def test_bounds(self, dem_path: Path) -> None:
        west, south, east, north = DEMTerrain(dem_path=dem_path).bounds
        assert (west, south, east, north) == (
            pytest.approx(0.0),
            pytest.approx(0.0, abs=1e-12),
            pytest.approx(0.01),
            pytest.approx(0.01),
        )

    def test_drives_sampler(self, dem_path: Path) -> None:
        """Point drapes at exaggerated ground + 10m; a no-data vertex falls back to the offset."""
        collection, _ = MissionElementCollection().append(FeatureType.SEARCH_POINT, Geometry.point((0.0055, 0.0055)))
        collection, _ = collection.append(FeatureType.SEARCH_POINT, Geometry.point((0.0005, 0.0095)))
        sampler = TerrainSampler(cache=TerrainCache())

        result = asyncio.run(sampler.sample(collection, DEMTerrain(dem_path=dem_path), terrain_enabled=True))

        assert result.element(0).coordinates[2] == pytest.approx(310.0)
        assert result.element(1).coordinates[2] == pytest.approx(10.0)


class FakeResponse:
    headers = {"content-length": "6"}

    def raise_for_status(self) -> None:
        pass

    def iter_content(self, chunk_size: int):
        yield b"abc"
        yield b"def"


class InterruptedResponse(FakeResponse):
    def iter_content(self, chunk_size: int):
        yield b"abc"
        raise requests.ConnectionError("connection reset")


class TestDownloadDEM:
    def test_streams_to_target(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        calls = []
        monkeypatch.setattr(terrain_service.requests, "get", lambda url, **kwargs: calls.append(url) or FakeResponse())
        progress: list[float] = []

        target = download_dem("https://example.org/dem.tif", tmp_path / "data" / "dem.tif", progress.append)

        assert target.read_bytes() == b"abcdef"
        assert progress == [0.5, 1.0]
        assert calls == ["https://example.org/dem.tif"]

    def test_existing_file_not_downloaded(self, dem_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        def fail(*args, **kwargs):
            raise AssertionError("should not download")

        monkeypatch.setattr(terrain_service.requests, "get", fail)
        assert download_dem("https://example.org/dem.tif", dem_path) == dem_path

    def test_interrupted_download_leaves_no_file(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        target = tmp_path / "dem.tif"
        monkeypatch.setattr(terrain_service.requests, "get", lambda url, **kwargs: InterruptedResponse())

        with pytest.raises(requests.ConnectionError):
            download_dem("https://example.org/dem.tif", target)
        assert not target.exists()
        assert list(tmp_path.iterdir()) == []

        # The next run downloads again instead of accepting a truncated file
        monkeypatch.setattr(terrain_service.requests, "get", lambda url, **kwargs: FakeResponse())
        assert download_dem("https://example.org/dem.tif", target).read_bytes() == b"abcdef"
