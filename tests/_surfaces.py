# tests/_surfaces.py
# Small hand-built and baked imposter surfaces shared by the tests
# Exists so sampler, render and preview tests agree on tile contents
# RELEVANT FILES: tests/conftest.py, python/imposter3d/bake.py, python/imposter3d/codec.py
import numpy as np

from imposter3d import solid
from imposter3d.codec import encode_arrays
from imposter3d.oct_coords import GridMode
from imposter3d.surface import ImposterSurface

# half an LSB of a 5-bit channel, rounded up to a whole LSB
COLOR_TOL = 1.0 / 31.0


def index_color_evaluator(grid_size: int):
    """Evaluator painting tile (i, j) with RGBA(i/(N-1), j/(N-1), 0.5, 1)."""
    scale = float(grid_size - 1)

    def evaluate(view):
        i, j = view.index
        sample = solid(i / scale, j / scale, 0.5, 1.0, normal=tuple(view.normal))
        res = view.resolution
        return [[sample] * res for _ in range(res)]

    return evaluate


def ring_color_evaluator(grid_size: int):
    """Evaluator painting ring tile k = j*N + i with grey level k/(N*N-1)."""
    last = float(grid_size * grid_size - 1)

    def evaluate(view):
        i, j = view.index
        k = j * grid_size + i
        sample = solid(k / last, k / last, k / last, 1.0)
        res = view.resolution
        return [[sample] * res for _ in range(res)]

    return evaluate


def flat_surface(tile_colors, tile_size: int = 4, mode=GridMode.SPHERICAL, depth=0.0, **kwargs):
    """Surface whose tiles are uniform colours, ``tile_colors[y][x]`` as RGBA.

    ``depth`` may be a scalar or a full ``(side, side)`` array.
    """
    grid_size = len(tile_colors)
    side = grid_size * tile_size
    color = np.zeros((side, side, 4))
    for ty, row in enumerate(tile_colors):
        for tx, rgba in enumerate(row):
            color[ty * tile_size:(ty + 1) * tile_size, tx * tile_size:(tx + 1) * tile_size] = rgba
    packed = encode_arrays(color, 0.5, 0.0, (0.0, 1.0, 0.0), depth)
    return ImposterSurface(
        center=(0.0, 0.0, 0.0),
        scale=1.0,
        grid_size=grid_size,
        tile_size=tile_size,
        packed_atlas=packed,
        mode=mode,
        **kwargs,
    )
