"""Render a saved mission (GeoJSON) as a standalone deck.gl HTML page.

Loads the mission elements, drapes them onto the local DEM when terrain is
requested, extrudes the zoned elements and writes the pydeck map.

Usage:
    python scripts/render_mission.py mission.geojson
    python scripts/render_mission.py mission.geojson --terrain --dem data/terrain_dem.tif
    python scripts/render_mission.py mission.geojson --terrain --download-dem https://example.org/dem.tif
"""

import argparse
import asyncio
import logging
from pathlib import Path

from mission_planner.constants import OUTPUT_DIR, DEMConfig
from mission_planner.core.terrain_service import DEMTerrain, download_dem
from mission_planner.model.collection import MissionElementCollection
from mission_planner.ui.controller import MissionController
from mission_planner.ui.map_renderer import MapRenderer

logger = logging.getLogger(__name__)


def render_mission(
    mission_path: Path,
    output_path: Path,
    terrain_enabled: bool = False,
    dem_path: Path = DEMConfig.DEM_PATH,
) -> Path:
    """Load, drape, extrude and render a mission file to HTML."""
    terrain = DEMTerrain(dem_path=dem_path) if terrain_enabled else None
    controller = MissionController(terrain=terrain, collection=MissionElementCollection.load(mission_path))
    controller.set_terrain_enabled(terrain_enabled)

    result = asyncio.run(controller.sync_terrain())
    if result is not None:
        logger.info(f"Sampled {len(result.elevated)} elements ({result.queries} terrain queries)")

    elements = list(controller.collection)
    if elements:
        first = elements[0].geometry.vertices()[0]
        controller.camera.longitude, controller.camera.latitude = first
    frame = controller.refresh_scene()

    output_path.parent.mkdir(parents=True, exist_ok=True)
    MapRenderer().render(frame).to_html(str(output_path), open_browser=False)
    logger.info(
        f"Rendered {len(elements)} elements, {len(frame.extrusions.walls)} walls, "
        f"{len(frame.routes)} routes to {output_path}"
    )
    return output_path


def main() -> None:
    parser = argparse.ArgumentParser(description="Render a mission GeoJSON to deck.gl HTML")
    parser.add_argument("mission", type=Path, help="Mission FeatureCollection (GeoJSON)")
    parser.add_argument("--output", type=Path, default=None, help="Output HTML path")
    parser.add_argument("--terrain", action="store_true", help="Drape onto the DEM and render 3D terrain")
    parser.add_argument("--dem", type=Path, default=DEMConfig.DEM_PATH, help="DEM GeoTIFF path")
    parser.add_argument("--download-dem", default=DEMConfig.DOWNLOAD_URL, help="Download the DEM from this URL first")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    if args.download_dem:
        download_dem(url=args.download_dem, target_path=args.dem)

    output = args.output or OUTPUT_DIR / f"{args.mission.stem}.html"
    render_mission(args.mission, output, terrain_enabled=args.terrain, dem_path=args.dem)


if __name__ == "__main__":
    main()
