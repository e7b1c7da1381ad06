# python/imposter3d/sampler.py
# Per-tile coordinate reconstruction, parallax offset and bounded atlas fetches.
# Exists to turn a world-space query into in-tile UVs without bleeding across tiles.
# RELEVANT FILES:python/imposter3d/oct_coords.py,python/imposter3d/render.py,tests/test_sampler.py
"""
Tile sampler.

Positions are expressed in capture-radius units relative to the capture
centre, so the tile's sampling plane is ``dot(p, n) == 0`` and the back
plane used for parallax is ``dot(p, n) == -1``. A pixel's stored depth is
where the captured surface sits between those two planes, which makes the
parallax-corrected coordinate simply ``uv + depth * derivative``.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence, Tuple

import numpy as np

from . import _validate
from .blend import reduce_block
from .codec import decode
from .material import SENTINEL, UnpackedMaterialSample
from .oct_coords import TileFrame, tile_basis

MAX_PARALLAX_STEPS = 4

_RAY_EPS = 1e-9


def project_to_tile(frame: TileFrame, point: np.ndarray) -> np.ndarray:
    """In-tile UV of a point (capture-radius units); rows grow downwards."""
    return np.array(
        [
            0.5 + float(np.dot(point, frame.right)) * 0.5,
            0.5 - float(np.dot(point, frame.up)) * 0.5,
        ]
    )


def _plane_hit(origin: np.ndarray, ray: np.ndarray, normal: np.ndarray, offset: float) -> np.ndarray:
    denom = float(np.dot(ray, normal))
    if abs(denom) < _RAY_EPS:
        return origin
    t = (offset - float(np.dot(origin, normal))) / denom
    return origin + t * ray


def tile_local_uv(
    surface,
    tile_index: Tuple[int, int],
    base_world_point,
    query_world_point,
    inverse_object_rotation=None,
    parallax_enabled: bool = True,
    *,
    camera_position=None,
    view_direction=None,
) -> Tuple[np.ndarray, np.ndarray]:
    """UV of the query ray inside one tile, plus the parallax derivative.

    Parameters
    ----------
    surface : ImposterSurface
        Supplies grid size, grid mode and capture radius.
    tile_index : tuple of int
        Tile ``(x, y)``.
    base_world_point, query_world_point : array_like
        World-space capture centre and the point being shaded.
    inverse_object_rotation : array_like, optional
        3x3 world-to-object rotation; identity when omitted.
    parallax_enabled : bool
        When False the derivative is zero.
    camera_position, view_direction : array_like, optional
        Perspective eye position, or the constant orthographic view
        direction (pointing into the scene). With neither, the ray runs
        straight down the tile normal.

    Returns
    -------
    (uv, derivative) : tuple of np.ndarray
        ``uv`` is centred on 0.5; ``derivative`` is the UV change from the
        front plane to the back plane.
    """
    frame = tile_basis(tile_index, surface.grid_size, surface.mode)
    rot = _validate.rotation("inverse_object_rotation", inverse_object_rotation)
    base = np.asarray(base_world_point, dtype=np.float64)
    query = np.asarray(query_world_point, dtype=np.float64)

    origin = rot @ (query - base) / surface.scale
    if camera_position is not None:
        ray = rot @ (query - np.asarray(camera_position, dtype=np.float64))
    elif view_direction is not None:
        ray = rot @ np.asarray(view_direction, dtype=np.float64)
    else:
        ray = -frame.normal

    uv = project_to_tile(frame, _plane_hit(origin, ray, frame.normal, 0.0))
    if not parallax_enabled:
        return uv, np.zeros(2)
    back = project_to_tile(frame, _plane_hit(origin, ray, frame.normal, -1.0))
    return uv, back - uv


def fetch_packed(surface, tile: Tuple[int, int], uv: Sequence[float]) -> Optional[np.ndarray]:
    """Packed pixel under ``uv`` in ``tile``, or None outside ``[0, 1]``.

    The pixel is clamped to the tile's own atlas bounds, never to the atlas
    edge, so neighbouring tiles cannot bleed in. A tile index outside the
    grid addresses pixels outside the surface's atlas rect and gives None.
    """
    u, v = float(uv[0]), float(uv[1])
    if not (0.0 <= u <= 1.0 and 0.0 <= v <= 1.0):
        return None
    min_x, min_y, max_x, max_y = surface.tile_bounds(tile)
    px = min(max(min_x + int(math.floor(u * surface.tile_size)), min_x), max_x)
    py = min(max(min_y + int(math.floor(v * surface.tile_size)), min_y), max_y)
    if not surface.rect.contains(px, py):
        return None
    return surface.packed_atlas[py, px]


def _fetch_decoded(surface, tile: Tuple[int, int], uv: Sequence[float]) -> UnpackedMaterialSample:
    packed = fetch_packed(surface, tile, uv)
    if packed is None:
        return SENTINEL
    return decode(packed)


def sample_tile(
    surface,
    tile: Tuple[int, int],
    uv: Sequence[float],
    multisample: Optional[bool] = None,
) -> UnpackedMaterialSample:
    """Decoded sample at ``uv``; soft-edged 2x2 footprint when multisampling."""
    if multisample is None:
        multisample = surface.flags.multisample
    if not multisample:
        return _fetch_decoded(surface, tile, uv)
    d = 0.25 / surface.tile_size
    u, v = float(uv[0]), float(uv[1])
    block = [
        [_fetch_decoded(surface, tile, (u - d, v - d)), _fetch_decoded(surface, tile, (u + d, v - d))],
        [_fetch_decoded(surface, tile, (u - d, v + d)), _fetch_decoded(surface, tile, (u + d, v + d))],
    ]
    return reduce_block(block)


def sample_with_parallax(
    surface,
    tile: Tuple[int, int],
    uv: np.ndarray,
    derivative: np.ndarray,
    steps: int = 1,
    multisample: Optional[bool] = None,
) -> UnpackedMaterialSample:
    """Iteratively displace ``uv`` by the decoded depth and resample."""
    sample = sample_tile(surface, tile, uv, multisample)
    if not np.any(derivative):
        return sample
    for _ in range(min(max(int(steps), 0), MAX_PARALLAX_STEPS)):
        if sample.is_sentinel:
            break
        sample = sample_tile(surface, tile, uv + sample.depth * derivative, multisample)
    return sample
