"""Core engines with no knowledge of input handling or rendering.

- compute_geometry_hash: Deterministic digest of a collection's 2D coordinates
- TerrainCache: Time-limited cache of draped coordinates (owned, not global)
- DEMTerrain: GeoTIFF-backed terrain collaborator
- TerrainSampler / SamplingCoordinator: Batched, cancellable terrain draping
- ExtrusionEngine: Walls, ceilings and borders for zoned elements
"""

from mission_planner.core.extrusion import ExtrusionEngine, ExtrusionResult, resolve_offsets
from mission_planner.core.geometry_hash import compute_geometry_hash, coordinates_hash
from mission_planner.core.terrain_cache import TerrainCache
from mission_planner.core.terrain_sampler import (
    DenseRoutePath,
    ElevatedElement,
    SampleResult,
    SamplingCancelled,
    SamplingCoordinator,
    TerrainSampler,
)
from mission_planner.core.terrain_service import DEMTerrain, TerrainQuery, TerrainQueryError

__all__ = [
    # Hashing and cache
    "compute_geometry_hash",
    "coordinates_hash",
    "TerrainCache",
    # Terrain collaborator
    "DEMTerrain",
    "TerrainQuery",
    "TerrainQueryError",
    # Sampler
    "TerrainSampler",
    "SamplingCoordinator",
    "SampleResult",
    "ElevatedElement",
    "DenseRoutePath",
    "SamplingCancelled",
    # Extrusion
    "ExtrusionEngine",
    "ExtrusionResult",
    "resolve_offsets",
]
