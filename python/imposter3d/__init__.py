# python/imposter3d/__init__.py
# Public API for baking and sampling octahedral imposters
# Exists to re-export the pure bake/render core from one import
# RELEVANT FILES: python/imposter3d/bake.py, python/imposter3d/render.py, python/imposter3d/surface.py
import logging

from .blend import MAX_BLOCK, TileWeights, blend, composite, reduce_block, tile_weights
from .codec import LAYOUT_VERSION, PackedSample, decode, decode_arrays, encode, encode_arrays
from .config import ImposterConfig, RenderSettings, load_imposter_config, parse_grid_mode
from .material import SENTINEL, MaterialFlags, UnpackedMaterialSample, solid
from .oct_coords import (
    GridMode,
    TileFrame,
    capture_directions,
    direction_to_grid_uv,
    grid_index_to_direction,
    grid_position,
    tile_basis,
)
from .sampler import fetch_packed, sample_tile, sample_with_parallax, tile_local_uv
from .surface import AtlasRect, ImposterFlags, ImposterSurface
from .bake import TileView, bake_surface, bake_tile, surface_evaluator, tile_views
from .render import RenderQuery, sample_grid_uv, sample_imposter, sample_many, select_taps, shade
from .preview import atlas_preview_rgba, save_atlas_png

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__version__",
    # material + codec
    "MaterialFlags",
    "UnpackedMaterialSample",
    "SENTINEL",
    "solid",
    "LAYOUT_VERSION",
    "PackedSample",
    "encode",
    "decode",
    "encode_arrays",
    "decode_arrays",
    # grid
    "GridMode",
    "TileFrame",
    "direction_to_grid_uv",
    "grid_index_to_direction",
    "grid_position",
    "tile_basis",
    "capture_directions",
    # blending
    "TileWeights",
    "MAX_BLOCK",
    "blend",
    "composite",
    "tile_weights",
    "reduce_block",
    # surface
    "AtlasRect",
    "ImposterFlags",
    "ImposterSurface",
    # sampling
    "tile_local_uv",
    "fetch_packed",
    "sample_tile",
    "sample_with_parallax",
    # config
    "ImposterConfig",
    "RenderSettings",
    "load_imposter_config",
    "parse_grid_mode",
    # bake / render
    "TileView",
    "tile_views",
    "bake_tile",
    "bake_surface",
    "surface_evaluator",
    "RenderQuery",
    "select_taps",
    "sample_grid_uv",
    "sample_imposter",
    "sample_many",
    "shade",
    # preview
    "atlas_preview_rgba",
    "save_atlas_png",
]
