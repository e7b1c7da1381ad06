# python/imposter3d/oct_coords.py
# Direction <-> tile grid projections for the three capture topologies.
# Exists so bake-time camera placement and render-time tile lookup share one mapping.
# RELEVANT FILES:python/imposter3d/sampler.py,python/imposter3d/bake.py,tests/test_oct_coords.py
"""
Grid projector.

Three topologies are supported:

* ``GridMode.SPHERICAL`` - full-sphere octahedral map of the unit square.
* ``GridMode.HEMISPHERICAL`` - hemi-octahedral map; the upper diamond is
  rotated 45 degrees so the whole square is used. Directions below the
  capture plane collapse onto the equator.
* ``GridMode.HORIZONTAL`` - a ring of ``grid_size**2`` directions in the
  capture plane, laid out row-major over the grid.

All functions accept either a single vector or a ``(..., 3)`` array.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, Optional, Tuple

import numpy as np


class GridMode(Enum):
    SPHERICAL = "spherical"
    HEMISPHERICAL = "hemispherical"
    HORIZONTAL = "horizontal"

    @property
    def bits(self) -> int:
        return _MODE_BITS[self]

    @classmethod
    def from_bits(cls, bits: int) -> "GridMode":
        for mode, value in _MODE_BITS.items():
            if value == (int(bits) & 0x3):
                return mode
        raise ValueError(f"Unknown grid mode bits: {bits!r}")


_MODE_BITS = {
    GridMode.SPHERICAL: 0,
    GridMode.HEMISPHERICAL: 1,
    GridMode.HORIZONTAL: 2,
}

_EPS = 1e-12
_RING_NUDGE = 1e-7


def _sign(x: np.ndarray) -> np.ndarray:
    # sign(0) == +1 so encode and decode agree on the seams
    return np.where(x >= 0.0, 1.0, -1.0)


def _normalize(v: np.ndarray) -> np.ndarray:
    length = np.linalg.norm(v, axis=-1, keepdims=True)
    return v / np.maximum(length, _EPS)


def octahedral_encode(direction) -> np.ndarray:
    """Map unit vectors onto the octahedral unit square.

    The octahedron's pole is +Y; the lower hemisphere is folded over the
    diagonals. Returns ``(..., 2)`` UVs in ``[0, 1]``.
    """
    d = np.asarray(direction, dtype=np.float64)
    l1 = np.sum(np.abs(d), axis=-1, keepdims=True)
    p = d / np.maximum(l1, _EPS)
    x, y, z = p[..., 0], p[..., 1], p[..., 2]
    folded = y < 0.0
    fx = np.where(folded, (1.0 - np.abs(z)) * _sign(x), x)
    fz = np.where(folded, (1.0 - np.abs(x)) * _sign(z), z)
    return np.stack([fx * 0.5 + 0.5, fz * 0.5 + 0.5], axis=-1)


def octahedral_decode(uv) -> np.ndarray:
    """Inverse of :func:`octahedral_encode`; returns unit vectors ``(..., 3)``."""
    uv = np.asarray(uv, dtype=np.float64)
    x = uv[..., 0] * 2.0 - 1.0
    z = uv[..., 1] * 2.0 - 1.0
    y = 1.0 - np.abs(x) - np.abs(z)
    folded = y < 0.0
    ux = np.where(folded, _sign(x) * (1.0 - np.abs(z)), x)
    uz = np.where(folded, _sign(z) * (1.0 - np.abs(x)), z)
    return _normalize(np.stack([ux, y, uz], axis=-1))


def hemi_octahedral_encode(direction) -> np.ndarray:
    d = np.asarray(direction, dtype=np.float64)
    d = np.concatenate(
        [d[..., 0:1], np.maximum(d[..., 1:2], 0.0), d[..., 2:3]], axis=-1
    )
    l1 = np.sum(np.abs(d), axis=-1, keepdims=True)
    # straight down collapses to an arbitrary point of the equator
    p = np.where(l1 > _EPS, d / np.maximum(l1, _EPS), np.array([1.0, 0.0, 0.0]))
    x, z = p[..., 0], p[..., 2]
    return np.stack([(x + z + 1.0) * 0.5, (z - x + 1.0) * 0.5], axis=-1)


def hemi_octahedral_decode(uv) -> np.ndarray:
    uv = np.asarray(uv, dtype=np.float64)
    x = uv[..., 0] - uv[..., 1]
    z = uv[..., 0] + uv[..., 1] - 1.0
    y = 1.0 - np.abs(x) - np.abs(z)
    return _normalize(np.stack([x, np.maximum(y, 0.0), z], axis=-1))


def ring_position(direction, grid_size: int) -> np.ndarray:
    """Continuous ring coordinate in ``[0, grid_size**2)`` for horizontal mode."""
    d = np.asarray(direction, dtype=np.float64)
    angle = np.arctan2(d[..., 2], d[..., 0])
    turns = np.mod(angle / (2.0 * math.pi), 1.0)
    count = grid_size * grid_size
    return np.mod(turns * count, count)


def ring_direction(k, grid_size: int) -> np.ndarray:
    angle = 2.0 * math.pi * np.asarray(k, dtype=np.float64) / float(grid_size * grid_size)
    return np.stack([np.cos(angle), np.zeros_like(angle), np.sin(angle)], axis=-1)


def direction_to_grid_uv(direction, mode: GridMode, grid_size: Optional[int] = None) -> np.ndarray:
    """Project a view direction (object space, pointing at the viewer) to grid UV.

    ``grid_size`` is only needed for :attr:`GridMode.HORIZONTAL`, where the
    ring is laid row-major over the tile grid. Ring positions between the
    last tile of a row and the first tile of the next map onto the row-end
    tile; use :func:`ring_position` where the fraction across that wrap
    matters.
    """
    if mode is GridMode.SPHERICAL:
        return octahedral_encode(direction)
    if mode is GridMode.HEMISPHERICAL:
        return hemi_octahedral_encode(direction)
    if grid_size is None:
        raise ValueError("grid_size is required for horizontal grid mode")
    n = int(grid_size)
    # nudge so a ring index that lands a hair below an integer keeps its row
    k = np.mod(ring_position(direction, n) + _RING_NUDGE, n * n)
    row = np.floor(k / n)
    col = np.maximum(k - row * n - _RING_NUDGE, 0.0)
    uv = np.stack([col, row], axis=-1) / float(n - 1)
    return np.clip(uv, 0.0, 1.0)


def grid_index_to_direction(index, grid_size: int, mode: GridMode) -> np.ndarray:
    """Direction a tile was captured from; exact inverse of :func:`direction_to_grid_uv`."""
    idx = np.asarray(index, dtype=np.float64)
    n = int(grid_size)
    if mode is GridMode.HORIZONTAL:
        k = idx[..., 1] * n + idx[..., 0]
        return ring_direction(k, n)
    uv = idx / float(n - 1)
    if mode is GridMode.SPHERICAL:
        return octahedral_decode(uv)
    return hemi_octahedral_decode(uv)


def grid_position(uv, grid_size: int) -> Tuple[Tuple[int, int], Tuple[float, float]]:
    """Split a grid UV into the base tile of its 2x2 cell and the fractional offset.

    The tile index is clamped to ``[0, grid_size - 2]`` so the "next" tile
    always exists; the fraction is clamped to ``[0, 1]``.
    """
    n = int(grid_size)
    gx = float(uv[0]) * (n - 1)
    gy = float(uv[1]) * (n - 1)
    ix = min(max(int(math.floor(gx)), 0), n - 2)
    iy = min(max(int(math.floor(gy)), 0), n - 2)
    fx = min(max(gx - ix, 0.0), 1.0)
    fy = min(max(gy - iy, 0.0), 1.0)
    return (ix, iy), (fx, fy)


@dataclass(frozen=True, eq=False)
class TileFrame:
    """Orthographic camera frame of one tile (all vectors unit length)."""

    index: Tuple[int, int]
    normal: np.ndarray
    up: np.ndarray
    right: np.ndarray


def choose_up(normal: np.ndarray) -> np.ndarray:
    if abs(float(normal[1])) > 0.99:
        return np.array([0.0, 0.0, 1.0])
    return np.array([0.0, 1.0, 0.0])


def tile_basis(index: Tuple[int, int], grid_size: int, mode: GridMode) -> TileFrame:
    normal = grid_index_to_direction(np.asarray(index), grid_size, mode)
    up = choose_up(normal)
    right = _normalize(np.cross(up, normal))
    true_up = np.cross(normal, right)
    return TileFrame(index=(int(index[0]), int(index[1])), normal=normal, up=true_up, right=right)


def capture_directions(grid_size: int, mode: GridMode) -> Iterator[TileFrame]:
    """Yield every tile frame in row-major ``(y, x)`` order."""
    for y in range(grid_size):
        for x in range(grid_size):
            yield tile_basis((x, y), grid_size, mode)
