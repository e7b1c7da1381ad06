# python/imposter3d/material.py
# Decoded per-pixel material sample used by the codec, blender and lighting hook.
# Exists to give the working representation a single immutable container.
# RELEVANT FILES:python/imposter3d/codec.py,python/imposter3d/blend.py,tests/test_codec.py

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Tuple


Color4 = Tuple[float, float, float, float]
Vec3 = Tuple[float, float, float]


@dataclass(frozen=True)
class MaterialFlags:
    """Per-pixel shading switches.

    ``emissive`` means the RGB channels carry emitted radiance instead of
    albedo; how that is interpreted is up to the lighting evaluator.
    """

    unlit: bool = False
    emissive: bool = False


@dataclass(frozen=True)
class UnpackedMaterialSample:
    color: Color4 = (0.0, 0.0, 0.0, 0.0)
    roughness: float = 0.5
    metallic: float = 0.0
    normal: Vec3 = (0.0, 0.0, 0.0)
    flags: MaterialFlags = MaterialFlags()
    depth: float = 0.0

    @property
    def alpha(self) -> float:
        return self.color[3]

    @property
    def rgb(self) -> Vec3:
        return (self.color[0], self.color[1], self.color[2])

    @property
    def is_sentinel(self) -> bool:
        return self.color[3] <= 0.0

    def with_alpha(self, alpha: float) -> "UnpackedMaterialSample":
        r, g, b, _ = self.color
        return replace(self, color=(r, g, b, float(alpha)))


# Canonical "no surface here" value; decode of an all-zero pixel compares equal
# to this on alpha only, so callers should test ``is_sentinel``.
SENTINEL = UnpackedMaterialSample()


def solid(
    r: float,
    g: float,
    b: float,
    a: float = 1.0,
    *,
    roughness: float = 0.5,
    metallic: float = 0.0,
    normal: Vec3 = (0.0, 1.0, 0.0),
    depth: float = 0.0,
    unlit: bool = False,
    emissive: bool = False,
) -> UnpackedMaterialSample:
    """Convenience constructor used by evaluators and tests."""
    return UnpackedMaterialSample(
        color=(float(r), float(g), float(b), float(a)),
        roughness=float(roughness),
        metallic=float(metallic),
        normal=(float(normal[0]), float(normal[1]), float(normal[2])),
        flags=MaterialFlags(unlit=bool(unlit), emissive=bool(emissive)),
        depth=float(depth),
    )
