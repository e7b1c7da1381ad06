# python/imposter3d/_validate.py
# Precondition checks for sizes, counts and vectors at the public boundary
# Exists so config and surface construction fail fast with actionable messages
# RELEVANT FILES: python/imposter3d/config.py, python/imposter3d/surface.py, python/imposter3d/sampler.py
from __future__ import annotations

from typing import Optional, Tuple

import numpy as np

_MAX_DIM = 8192  # conservative guardrail for atlas side length
MAX_MULTISAMPLE = 8


def _as_int(name: str, v) -> int:
    if isinstance(v, bool):
        raise ValueError(f"{name} must be an integer, got bool")
    try:
        i = int(v)
    except Exception as e:
        raise ValueError(f"{name} must be an integer, got {type(v).__name__}") from e
    if i != v:
        raise ValueError(f"{name} must be an integer, got {v!r}")
    return i


def grid(n) -> int:
    g = _as_int("grid_size", n)
    if g < 2:
        raise ValueError("grid_size must be >= 2")
    if g > 4096:
        raise ValueError("grid_size must be <= 4096")
    return g


def tile_size(n) -> int:
    t = _as_int("tile_size", n)
    if t <= 0:
        raise ValueError("tile_size must be > 0")
    if t > _MAX_DIM:
        raise ValueError(f"tile_size must be <= {_MAX_DIM}")
    return t


def image_size(grid_size: int, tile: int) -> int:
    side = grid_size * tile
    if side > _MAX_DIM:
        raise ValueError(f"grid_size * tile_size must be <= {_MAX_DIM}, got {side}")
    return side


def multisample(n) -> int:
    m = _as_int("multisample", n)
    if m < 1 or m > MAX_MULTISAMPLE or m & (m - 1):
        raise ValueError(f"multisample must be a power of two in [1, {MAX_MULTISAMPLE}], got {m}")
    return m


def unit_interval(name: str, v) -> float:
    f = float(v)
    if not (0.0 <= f <= 1.0):
        raise ValueError(f"{name} must be within [0, 1], got {f}")
    return f


def vec3(name: str, v) -> Tuple[float, float, float]:
    arr = np.asarray(v, dtype=np.float64)
    if arr.shape != (3,):
        raise ValueError(f"{name} must be a sequence of three numeric values")
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"{name} must be finite, got {tuple(arr)}")
    return (float(arr[0]), float(arr[1]), float(arr[2]))


def rotation(name: str, m: Optional[object]) -> np.ndarray:
    if m is None:
        return np.eye(3)
    arr = np.asarray(m, dtype=np.float64)
    if arr.shape != (3, 3):
        raise ValueError(f"{name} must be a 3x3 matrix, got shape {arr.shape}")
    return arr
