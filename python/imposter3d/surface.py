# python/imposter3d/surface.py
# Immutable baked imposter: capture metadata plus the packed atlas.
# Exists as the single durable artifact handed from bake to render.
# RELEVANT FILES:python/imposter3d/bake.py,python/imposter3d/sampler.py,tests/test_surface.py

from __future__ import annotations

import logging
import struct
from dataclasses import dataclass, field
from typing import Optional, Tuple

import numpy as np

from . import _validate
from .codec import LAYOUT_VERSION
from .oct_coords import GridMode

logger = logging.getLogger(__name__)

MAGIC = b"IMPO"

BILLBOARD_FLAG = 4
MULTISAMPLE_FLAG = 16
ALPHA_FLAG = 32

_HEADER = struct.Struct("<4sHIII4I3fffII")


@dataclass(frozen=True)
class ImposterFlags:
    billboard: bool = False
    multisample: bool = False
    alpha_multiplier: bool = False

    def to_bits(self, mode: GridMode) -> int:
        bits = mode.bits
        if self.billboard:
            bits |= BILLBOARD_FLAG
        if self.multisample:
            bits |= MULTISAMPLE_FLAG
        if self.alpha_multiplier:
            bits |= ALPHA_FLAG
        return bits

    @classmethod
    def from_bits(cls, bits: int) -> Tuple["ImposterFlags", GridMode]:
        flags = cls(
            billboard=bool(bits & BILLBOARD_FLAG),
            multisample=bool(bits & MULTISAMPLE_FLAG),
            alpha_multiplier=bool(bits & ALPHA_FLAG),
        )
        return flags, GridMode.from_bits(bits)


@dataclass(frozen=True)
class AtlasRect:
    """Pixel rectangle of one imposter inside a (possibly shared) atlas."""

    x: int
    y: int
    width: int
    height: int

    def contains(self, px: int, py: int) -> bool:
        return self.x <= px < self.x + self.width and self.y <= py < self.y + self.height


@dataclass(frozen=True, eq=False)
class ImposterSurface:
    """Baked imposter, read-only once constructed.

    Attributes
    ----------
    center : tuple of float
        Object-space capture origin.
    scale : float
        Capture radius (half extent of the captured region).
    grid_size : int
        Tiles per atlas axis.
    tile_size : int
        Pixels per tile axis.
    packed_atlas : np.ndarray
        ``uint32[H, W, 2]`` packed pixels; the imposter occupies ``rect``.
    mode : GridMode
    flags : ImposterFlags
    alpha : float
        Global opacity multiplier, applied when ``flags.alpha_multiplier``.
    rect : AtlasRect, optional
        Defaults to the whole atlas.
    """

    center: Tuple[float, float, float]
    scale: float
    grid_size: int
    tile_size: int
    packed_atlas: np.ndarray
    mode: GridMode = GridMode.SPHERICAL
    flags: ImposterFlags = field(default_factory=ImposterFlags)
    alpha: float = 1.0
    rect: Optional[AtlasRect] = None

    def __post_init__(self) -> None:
        grid_size = _validate.grid(self.grid_size)
        tile_size = _validate.tile_size(self.tile_size)
        if not isinstance(self.mode, GridMode):
            raise TypeError(f"mode must be a GridMode, got {type(self.mode).__name__}")
        if float(self.scale) <= 0.0:
            raise ValueError(f"scale must be > 0, got {self.scale}")

        atlas = np.asarray(self.packed_atlas)
        if atlas.ndim != 3 or atlas.shape[2] != 2:
            raise ValueError(f"packed_atlas must have shape (H, W, 2), got {atlas.shape}")
        atlas = np.array(atlas, dtype=np.uint32, copy=True)
        atlas.setflags(write=False)

        side = grid_size * tile_size
        rect = self.rect if self.rect is not None else AtlasRect(0, 0, side, side)
        if rect.width != side or rect.height != side:
            raise ValueError(
                f"atlas rect {rect.width}x{rect.height} does not match grid_size*tile_size={side}"
            )
        if rect.x < 0 or rect.y < 0 or rect.x + rect.width > atlas.shape[1] or rect.y + rect.height > atlas.shape[0]:
            raise ValueError(f"atlas rect {rect} exceeds atlas of shape {atlas.shape[:2]}")

        object.__setattr__(self, "center", _validate.vec3("center", self.center))
        object.__setattr__(self, "scale", float(self.scale))
        object.__setattr__(self, "grid_size", grid_size)
        object.__setattr__(self, "tile_size", tile_size)
        object.__setattr__(self, "packed_atlas", atlas)
        object.__setattr__(self, "alpha", float(self.alpha))
        object.__setattr__(self, "rect", rect)

    @property
    def image_size(self) -> int:
        return self.grid_size * self.tile_size

    def tile_bounds(self, tile: Tuple[int, int]) -> Tuple[int, int, int, int]:
        """Inclusive atlas pixel bounds ``(min_x, min_y, max_x, max_y)`` of a tile."""
        min_x = self.rect.x + int(tile[0]) * self.tile_size
        min_y = self.rect.y + int(tile[1]) * self.tile_size
        return min_x, min_y, min_x + self.tile_size - 1, min_y + self.tile_size - 1

    def tile_pixels(self, tile: Tuple[int, int]) -> np.ndarray:
        min_x, min_y, max_x, max_y = self.tile_bounds(tile)
        return self.packed_atlas[min_y:max_y + 1, min_x:max_x + 1]

    def region(self) -> np.ndarray:
        r = self.rect
        return self.packed_atlas[r.y:r.y + r.height, r.x:r.x + r.width]

    def to_bytes(self) -> bytes:
        """Serialise metadata and atlas (wire layout version 1, little endian)."""
        r = self.rect
        header = _HEADER.pack(
            MAGIC,
            LAYOUT_VERSION,
            self.flags.to_bits(self.mode),
            self.grid_size,
            self.tile_size,
            r.x,
            r.y,
            r.width,
            r.height,
            *self.center,
            self.scale,
            self.alpha,
            self.packed_atlas.shape[0],
            self.packed_atlas.shape[1],
        )
        return header + self.packed_atlas.astype("<u4").tobytes()

    @classmethod
    def from_bytes(cls, data: bytes) -> "ImposterSurface":
        if len(data) < _HEADER.size:
            raise ValueError(f"imposter data too short: {len(data)} bytes")
        (
            magic,
            version,
            bits,
            grid_size,
            tile_size,
            rx,
            ry,
            rw,
            rh,
            cx,
            cy,
            cz,
            scale,
            alpha,
            height,
            width,
        ) = _HEADER.unpack_from(data)
        if magic != MAGIC:
            raise ValueError(f"not an imposter surface (magic {magic!r})")
        if version != LAYOUT_VERSION:
            raise ValueError(f"unsupported imposter layout version {version}; expected {LAYOUT_VERSION}")
        expected = height * width * 2 * 4
        payload = data[_HEADER.size:]
        if len(payload) != expected:
            raise ValueError(f"atlas payload is {len(payload)} bytes, expected {expected}")
        atlas = np.frombuffer(payload, dtype="<u4").reshape(height, width, 2)
        flags, mode = ImposterFlags.from_bits(bits)
        logger.debug(f"Loaded imposter surface: grid={grid_size} tile={tile_size} mode={mode.value}")
        return cls(
            center=(cx, cy, cz),
            scale=scale,
            grid_size=grid_size,
            tile_size=tile_size,
            packed_atlas=atlas,
            mode=mode,
            flags=flags,
            alpha=alpha,
            rect=AtlasRect(rx, ry, rw, rh),
        )
