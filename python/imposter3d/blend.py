# python/imposter3d/blend.py
# Alpha-weighted blending of decoded samples and the bake-time reduction tree.
# Exists to keep reconstruction order identical between bake and render.
# RELEVANT FILES:python/imposter3d/render.py,python/imposter3d/bake.py,tests/test_blend.py
"""
Blend engine.

Every combination goes through :func:`blend`, which weights each input by
its alpha times its geometric weight. A fully transparent input therefore
never contributes colour, and two transparent inputs give the sentinel.
Because the operator is only associative up to floating rounding, the
order of pairwise steps is fixed:

* :func:`composite` - the two side taps first, then the near tap, then the
  far tap.
* :func:`reduce_block` - halve the columns of every row down to one value,
  then halve the resulting column.
"""

from __future__ import annotations

import math
from typing import NamedTuple, Sequence, Tuple

from .material import SENTINEL, UnpackedMaterialSample

MAX_BLOCK = 8

_NORMAL_EPS = 1e-6


class TileWeights(NamedTuple):
    """Weights of the four corners of a grid cell.

    ``near`` is the base tile, ``side_x``/``side_y`` its neighbours along x
    and y and ``far`` the diagonal tile. The three-tap scheme leaves at most
    one side weight non-zero.
    """

    near: float
    side_x: float
    side_y: float
    far: float


def _lerp(a: float, b: float, fa: float, fb: float) -> float:
    return a * fa + b * fb


def blend(a: UnpackedMaterialSample, b: UnpackedMaterialSample, weight_a: float) -> UnpackedMaterialSample:
    raw_wa = a.alpha * weight_a
    raw_wb = b.alpha * (1.0 - weight_a)
    total = raw_wa + raw_wb
    if total <= 0.0:
        return SENTINEL

    fa = raw_wa / total
    fb = raw_wb / total

    nx = _lerp(a.normal[0], b.normal[0], fa, fb)
    ny = _lerp(a.normal[1], b.normal[1], fa, fb)
    nz = _lerp(a.normal[2], b.normal[2], fa, fb)
    length = math.sqrt(nx * nx + ny * ny + nz * nz)
    if length > _NORMAL_EPS:
        normal = (nx / length, ny / length, nz / length)
    else:
        normal = (0.0, 0.0, 0.0)

    return UnpackedMaterialSample(
        color=(
            _lerp(a.color[0], b.color[0], fa, fb),
            _lerp(a.color[1], b.color[1], fa, fb),
            _lerp(a.color[2], b.color[2], fa, fb),
            total,
        ),
        roughness=_lerp(a.roughness, b.roughness, fa, fb),
        metallic=_lerp(a.metallic, b.metallic, fa, fb),
        normal=normal,
        flags=a.flags if fa >= fb else b.flags,
        depth=_lerp(a.depth, b.depth, fa, fb),
    )


def tile_weights(frac: Tuple[float, float], taps: int = 3) -> TileWeights:
    """Corner weights for a fractional position inside a grid cell.

    ``taps=3`` is the reference barycentric split of the cell along its
    ``(0,0)-(1,1)`` diagonal; ``taps=4`` is plain bilinear weighting.
    """
    fx = min(max(float(frac[0]), 0.0), 1.0)
    fy = min(max(float(frac[1]), 0.0), 1.0)
    if taps == 4:
        raw = ((1.0 - fx) * (1.0 - fy), fx * (1.0 - fy), (1.0 - fx) * fy, fx * fy)
    elif taps == 3:
        side = abs(fx - fy)
        raw = (
            1.0 - max(fx, fy),
            side if fx > fy else 0.0,
            side if fy > fx else 0.0,
            min(fx, fy),
        )
    else:
        raise ValueError(f"taps must be 3 or 4, got {taps!r}")
    total = sum(raw)
    return TileWeights(*(w / total for w in raw))


def _share(first: float, second: float) -> float:
    pair = first + second
    return first / pair if pair > 0.0 else 1.0


def composite(taps: Sequence[UnpackedMaterialSample], weights: Sequence[float]) -> UnpackedMaterialSample:
    """Combine 3 taps ``(near, side, far)`` or 4 corner taps ``(near, side_x, side_y, far)``."""
    if len(taps) != len(weights):
        raise ValueError("taps and weights must have the same length")
    if len(taps) == 4:
        near, side_x, side_y, far = taps
        w_near, w_x, w_y, w_far = (float(w) for w in weights)
        side = blend(side_x, side_y, _share(w_x, w_y))
        w_side = w_x + w_y
    elif len(taps) == 3:
        near, side, far = taps
        w_near, w_side, w_far = (float(w) for w in weights)
    else:
        raise ValueError(f"composite takes 3 or 4 taps, got {len(taps)}")

    total = w_near + w_side + w_far
    if total <= 0.0:
        return SENTINEL
    w_near, w_side, w_far = w_near / total, w_side / total, w_far / total

    nearside = blend(near, side, _share(w_near, w_side))
    return blend(nearside, far, w_near + w_side)


def _halve(values: list) -> list:
    half = len(values) // 2
    return [blend(values[x], values[x + half], 0.5) for x in range(half)]


def reduce_block(samples: Sequence[Sequence[UnpackedMaterialSample]]) -> UnpackedMaterialSample:
    """Fold an ``S x S`` block (S a power of two, at most 8) into one sample."""
    size = len(samples)
    if size < 1 or size > MAX_BLOCK or size & (size - 1):
        raise ValueError(f"block size must be a power of two in [1, {MAX_BLOCK}], got {size}")
    column = []
    for row in samples:
        if len(row) != size:
            raise ValueError("block must be square")
        values = list(row)
        while len(values) > 1:
            values = _halve(values)
        column.append(values[0])
    while len(column) > 1:
        column = _halve(column)
    return column[0]
