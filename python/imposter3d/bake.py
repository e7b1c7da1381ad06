# python/imposter3d/bake.py
# Capture-time pipeline: place tile cameras, reduce supersamples, pack the atlas.
# Exists to produce an immutable ImposterSurface from an external evaluator.
# RELEVANT FILES:python/imposter3d/oct_coords.py,python/imposter3d/blend.py,python/imposter3d/surface.py,tests/test_bake.py
"""
Imposter baking.

The capture itself is external: an *evaluator* receives a :class:`TileView`
describing one orthographic tile camera and returns a
``(tile_size * multisample)`` square grid of
:class:`~imposter3d.material.UnpackedMaterialSample` (row-major, rows
running down the image). Each ``multisample x multisample`` block is folded
by :func:`~imposter3d.blend.reduce_block` into one output pixel.

Tiles write disjoint atlas regions, so they are baked on a thread pool and
the atlas is frozen only after every tile has finished.
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, replace
from typing import Callable, Iterator, List, Optional, Sequence, Tuple

import numpy as np

from . import _validate
from .blend import reduce_block
from .codec import encode_arrays
from .config import ConfigSource, ImposterConfig, RenderSettings, load_imposter_config
from .material import SENTINEL, UnpackedMaterialSample
from .oct_coords import TileFrame, capture_directions
from .render import RenderQuery, sample_imposter
from .surface import AtlasRect, ImposterSurface

logger = logging.getLogger(__name__)

SampleGrid = Sequence[Sequence[UnpackedMaterialSample]]
Evaluator = Callable[["TileView"], SampleGrid]


@dataclass(frozen=True, eq=False)
class TileView:
    """Orthographic camera of one tile.

    The camera sits at ``center + normal * radius`` looking at ``center``
    with a ``2 * radius`` square view.
    """

    frame: TileFrame
    center: np.ndarray
    radius: float
    tile_size: int
    multisample: int

    @property
    def index(self) -> Tuple[int, int]:
        return self.frame.index

    @property
    def normal(self) -> np.ndarray:
        return self.frame.normal

    @property
    def camera_position(self) -> np.ndarray:
        return self.center + self.frame.normal * self.radius

    @property
    def resolution(self) -> int:
        return self.tile_size * self.multisample

    def pixel_origins(self) -> np.ndarray:
        """World positions of every sub-pixel centre on the sampling plane, ``(R, R, 3)``.

        Rays leave these points along ``-normal``.
        """
        res = self.resolution
        t = (np.arange(res) + 0.5) / res * 2.0 - 1.0
        across = t[None, :, None] * self.frame.right[None, None, :]
        down = -t[:, None, None] * self.frame.up[None, None, :]
        return self.center + self.radius * (across + down)

    def depth_of(self, point) -> float:
        """Stored depth of a surface point: 0 on the sampling plane, +1 on the back plane."""
        offset = np.asarray(point, dtype=np.float64) - self.center
        return float(-np.dot(offset, self.frame.normal) / self.radius)


def tile_views(config: ImposterConfig, center=(0.0, 0.0, 0.0), radius: float = 1.0) -> Iterator[TileView]:
    c = np.asarray(_validate.vec3("center", center))
    for frame in capture_directions(config.grid_size, config.mode):
        yield TileView(
            frame=frame,
            center=c,
            radius=float(radius),
            tile_size=config.tile_size,
            multisample=config.multisample,
        )


def surface_evaluator(surface: ImposterSurface, settings: Optional[RenderSettings] = None) -> Evaluator:
    """Evaluator that re-captures an already baked surface.

    Every sub-pixel ray of a :class:`TileView` is answered by
    :func:`~imposter3d.render.sample_imposter` looking along ``-view.normal``,
    so a surface can be re-baked with another grid size, tile size or mode.
    The view's ``center`` is taken to be in the same space as
    ``surface.center``.
    """
    settings = settings or RenderSettings()
    base = tuple(float(c) for c in surface.center)

    def evaluate(view: TileView) -> SampleGrid:
        direction = tuple(float(c) for c in view.normal)
        looking = tuple(-c for c in direction)
        rows = []
        for row in view.pixel_origins():
            samples = []
            for origin in row:
                query = RenderQuery(
                    world_point=tuple(origin),
                    direction=direction,
                    base_world_point=base,
                    view_direction=looking,
                )
                sample = sample_imposter(surface, query, settings)
                if sample.is_sentinel:
                    samples.append(SENTINEL)
                    continue
                # stored depth is in units of the source capture radius
                samples.append(replace(sample, depth=sample.depth * surface.scale / view.radius))
            rows.append(samples)
        return rows

    return evaluate


def _target_atlas(atlas: Optional[np.ndarray], offset, side: int) -> Tuple[np.ndarray, AtlasRect]:
    if atlas is None:
        if tuple(offset) != (0, 0):
            raise ValueError("offset requires a shared atlas")
        return np.zeros((side, side, 2), dtype=np.uint32), AtlasRect(0, 0, side, side)
    if not isinstance(atlas, np.ndarray) or atlas.dtype != np.uint32:
        raise TypeError("atlas must be a numpy uint32 array")
    if atlas.ndim != 3 or atlas.shape[2] != 2:
        raise ValueError(f"atlas must have shape (H, W, 2), got {atlas.shape}")
    if not atlas.flags.writeable:
        raise ValueError("atlas must be writeable")
    ox = _validate._as_int("offset x", offset[0])
    oy = _validate._as_int("offset y", offset[1])
    if ox < 0 or oy < 0 or ox + side > atlas.shape[1] or oy + side > atlas.shape[0]:
        raise ValueError(
            f"a {side}x{side} imposter at offset ({ox}, {oy}) does not fit atlas of shape {atlas.shape[:2]}"
        )
    return atlas, AtlasRect(ox, oy, side, side)


def _channels(samples: List[UnpackedMaterialSample]) -> dict:
    return {
        "color": [s.color for s in samples],
        "roughness": [s.roughness for s in samples],
        "metallic": [s.metallic for s in samples],
        "normal": [s.normal for s in samples],
        "depth": [s.depth for s in samples],
        "unlit": [s.flags.unlit for s in samples],
        "emissive": [s.flags.emissive for s in samples],
    }


def bake_tile(view: TileView, evaluate: Evaluator) -> np.ndarray:
    """Evaluate, reduce and pack one tile into ``uint32[T, T, 2]``."""
    grid = evaluate(view)
    res = view.resolution
    if len(grid) != res or any(len(row) != res for row in grid):
        raise ValueError(
            f"evaluator returned a {len(grid)}-row grid for tile {view.index}; expected {res}x{res}"
        )

    size = view.tile_size
    step = view.multisample
    reduced: List[UnpackedMaterialSample] = []
    for ty in range(size):
        rows = grid[ty * step:(ty + 1) * step]
        for tx in range(size):
            block = [row[tx * step:(tx + 1) * step] for row in rows]
            reduced.append(reduce_block(block))

    ch = _channels(reduced)
    packed = encode_arrays(
        ch["color"], ch["roughness"], ch["metallic"], ch["normal"], ch["depth"], ch["unlit"], ch["emissive"]
    )
    return packed.reshape(size, size, 2)


def bake_surface(
    evaluate: Evaluator,
    config: ConfigSource = None,
    center=(0.0, 0.0, 0.0),
    radius: float = 1.0,
    views: Optional[Sequence[TileView]] = None,
    atlas: Optional[np.ndarray] = None,
    offset: Tuple[int, int] = (0, 0),
) -> ImposterSurface:
    """Bake every tile and return the read-only surface.

    ``views`` replaces the generated camera layout (one view per tile,
    addressed by ``view.index``) for custom captures.

    ``atlas`` is a caller-owned ``uint32[H, W, 2]`` array shared between
    several imposters; the tiles are written in place at ``offset`` (x, y)
    and the returned surface addresses them through its ``rect``. The
    surface keeps a snapshot of the atlas taken when this bake finishes.
    """
    cfg = load_imposter_config(config)
    if float(radius) <= 0.0:
        raise ValueError(f"radius must be > 0, got {radius}")
    if views is None:
        views = list(tile_views(cfg, center, radius))
    elif len(views) != cfg.grid_size * cfg.grid_size:
        raise ValueError(
            f"expected {cfg.grid_size * cfg.grid_size} views for grid_size {cfg.grid_size}, got {len(views)}"
        )

    side = cfg.image_size
    atlas, rect = _target_atlas(atlas, offset, side)
    logger.debug(
        f"Baking {len(views)} tiles: grid={cfg.grid_size} tile={cfg.tile_size} "
        f"multisample={cfg.multisample} mode={cfg.mode.value}"
    )
    with ThreadPoolExecutor(max_workers=cfg.max_workers) as pool:
        tiles = pool.map(lambda v: bake_tile(v, evaluate), views)
        for view, tile in zip(views, tiles):
            tx, ty = view.index
            size = cfg.tile_size
            y0 = rect.y + ty * size
            x0 = rect.x + tx * size
            atlas[y0:y0 + size, x0:x0 + size] = tile

    surface = ImposterSurface(
        center=tuple(center),
        scale=float(radius),
        grid_size=cfg.grid_size,
        tile_size=cfg.tile_size,
        packed_atlas=atlas,
        mode=cfg.mode,
        flags=cfg.flags,
        alpha=cfg.alpha,
        rect=rect,
    )
    logger.info(f"Baked imposter: {side}x{side} at ({rect.x}, {rect.y}), {len(views)} tiles, mode={cfg.mode.value}")
    return surface
