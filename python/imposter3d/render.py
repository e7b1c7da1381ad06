# python/imposter3d/render.py
# Render-time reconstruction of a material sample from a baked imposter.
# Exists to chain tap selection, tile sampling, decoding and compositing for one query.
# RELEVANT FILES:python/imposter3d/sampler.py,python/imposter3d/blend.py,tests/test_render.py
"""
Render-time pipeline.

Every function here is a pure function of the (immutable) surface and the
query, so queries can be evaluated concurrently without locking.
:func:`sample_many` does exactly that on a thread pool.
"""

from __future__ import annotations

import logging
import math
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from functools import partial
from typing import Any, Callable, List, Optional, Sequence, Tuple

import numpy as np

from . import _validate
from .blend import blend, composite, tile_weights
from .config import RenderSettings
from .material import SENTINEL, UnpackedMaterialSample
from .oct_coords import GridMode, direction_to_grid_uv, grid_position, ring_position
from .sampler import sample_tile, sample_with_parallax, tile_local_uv

logger = logging.getLogger(__name__)

Tap = Tuple[Tuple[int, int], float]


@dataclass(frozen=True)
class RenderQuery:
    """One shading request.

    ``direction`` is the object-space unit vector from the capture centre
    towards the viewer. When omitted it is derived from ``camera_position``
    or ``view_direction``.
    """

    world_point: Tuple[float, float, float]
    direction: Optional[Tuple[float, float, float]] = None
    base_world_point: Tuple[float, float, float] = (0.0, 0.0, 0.0)
    inverse_rotation: Optional[Any] = None
    camera_position: Optional[Tuple[float, float, float]] = None
    view_direction: Optional[Tuple[float, float, float]] = None

    def object_direction(self) -> np.ndarray:
        if self.direction is not None:
            d = np.asarray(self.direction, dtype=np.float64)
        else:
            rot = _validate.rotation("inverse_rotation", self.inverse_rotation)
            if self.camera_position is not None:
                d = rot @ (np.asarray(self.camera_position, dtype=np.float64) - np.asarray(self.base_world_point, dtype=np.float64))
            elif self.view_direction is not None:
                d = -(rot @ np.asarray(self.view_direction, dtype=np.float64))
            else:
                raise ValueError("RenderQuery needs direction, camera_position or view_direction")
        length = float(np.linalg.norm(d))
        return d / length if length > 0.0 else np.array([0.0, 1.0, 0.0])


def _ring_taps(position: float, grid_size: int) -> List[Tap]:
    count = grid_size * grid_size
    base = math.floor(position)
    frac = position - base
    k0 = int(base) % count
    k1 = (k0 + 1) % count
    return [
        ((k0 % grid_size, k0 // grid_size), 1.0 - frac),
        ((k1 % grid_size, k1 // grid_size), frac),
    ]


def _cell_taps(uv, grid_size: int, taps: int) -> List[Tap]:
    (ix, iy), frac = grid_position(uv, grid_size)
    w = tile_weights(frac, taps)
    return [
        ((ix, iy), w.near),
        ((ix + 1, iy), w.side_x),
        ((ix, iy + 1), w.side_y),
        ((ix + 1, iy + 1), w.far),
    ]


def select_taps(surface, direction, taps: int = 3) -> List[Tap]:
    """Tiles and weights contributing to a view direction.

    Octahedral modes return the four corners of the grid cell (unused
    corners carry weight 0); horizontal mode returns two ring neighbours.
    """
    if surface.mode is GridMode.HORIZONTAL:
        return _ring_taps(float(ring_position(direction, surface.grid_size)), surface.grid_size)
    uv = direction_to_grid_uv(direction, surface.mode)
    return _cell_taps(uv, surface.grid_size, taps)


def _combine(samples: Sequence[UnpackedMaterialSample], taps: Sequence[Tap]) -> UnpackedMaterialSample:
    weights = [w for _, w in taps]
    if len(samples) == 2:
        return blend(samples[0], samples[1], weights[0])
    return composite(samples, weights)


def _apply_global_alpha(surface, sample: UnpackedMaterialSample) -> UnpackedMaterialSample:
    if sample.is_sentinel or not surface.flags.alpha_multiplier:
        return sample
    return sample.with_alpha(sample.alpha * surface.alpha)


def sample_grid_uv(
    surface,
    grid_uv=None,
    tile_uv=(0.5, 0.5),
    taps: int = 3,
    *,
    ring: Optional[float] = None,
) -> UnpackedMaterialSample:
    """Composite the taps around ``grid_uv`` read at one fixed in-tile UV.

    In horizontal mode a grid UV cannot express positions between the end of
    one grid row and the start of the next, so pass the continuous ring
    coordinate (see :func:`~imposter3d.oct_coords.ring_position`) as ``ring``
    to blend across the row wrap.
    """
    if surface.mode is GridMode.HORIZONTAL:
        n = surface.grid_size
        if ring is None:
            if grid_uv is None:
                raise ValueError("sample_grid_uv needs grid_uv or ring")
            col = float(grid_uv[0]) * (n - 1)
            row = round(float(grid_uv[1]) * (n - 1))
            ring = row * n + col
        selected = _ring_taps(float(ring) % (n * n), n)
    else:
        if grid_uv is None:
            raise ValueError(f"grid_uv is required for {surface.mode.value} grid mode")
        selected = _cell_taps(grid_uv, surface.grid_size, taps)
    samples = [
        sample_tile(surface, tile, tile_uv) if weight > 0.0 else SENTINEL
        for tile, weight in selected
    ]
    return _apply_global_alpha(surface, _combine(samples, selected))


def sample_imposter(surface, query: RenderQuery, settings: Optional[RenderSettings] = None) -> UnpackedMaterialSample:
    """Reconstruct the material seen along one query ray.

    Returns the sentinel (alpha 0) when the fragment should be discarded.
    """
    settings = settings or RenderSettings()
    selected = select_taps(surface, query.object_direction(), settings.taps)
    samples = []
    for tile, weight in selected:
        if weight <= 0.0:
            samples.append(SENTINEL)
            continue
        uv, derivative = tile_local_uv(
            surface,
            tile,
            query.base_world_point,
            query.world_point,
            query.inverse_rotation,
            settings.parallax,
            camera_position=query.camera_position,
            view_direction=query.view_direction,
        )
        samples.append(sample_with_parallax(surface, tile, uv, derivative, settings.parallax_steps))
    return _apply_global_alpha(surface, _combine(samples, selected))


def sample_many(
    surface,
    queries: Sequence[RenderQuery],
    settings: Optional[RenderSettings] = None,
    max_workers: Optional[int] = None,
) -> List[UnpackedMaterialSample]:
    """Evaluate independent queries in parallel, preserving order."""
    settings = settings or RenderSettings()
    workers = max_workers if max_workers is not None else settings.max_workers
    logger.debug(f"Sampling {len(queries)} imposter queries (max_workers={workers})")
    with ThreadPoolExecutor(max_workers=workers) as pool:
        return list(pool.map(partial(sample_imposter, surface, settings=settings), queries))


def shade(
    surface,
    query: RenderQuery,
    lighting: Callable[[UnpackedMaterialSample], Any],
    settings: Optional[RenderSettings] = None,
) -> Optional[Any]:
    """Hand the reconstructed sample to a lighting evaluator; None means discard."""
    sample = sample_imposter(surface, query, settings)
    if sample.is_sentinel:
        return None
    return lighting(sample)
