# python/imposter3d/codec.py
# Fixed-width packing of material samples into two uint32 words per pixel.
# Exists to define the bake/render wire contract (layout version 1).
# RELEVANT FILES:python/imposter3d/material.py,python/imposter3d/oct_coords.py,tests/test_codec.py
"""
Bit codec for imposter atlas pixels.

Word 1 (LSB first)::

    [ 0, 5)  red        [ 5,10)  green      [10,15)  blue
    [15,20)  alpha      [20,25)  roughness  [25,30)  metallic
    30       unlit      31       emissive

Word 2::

    [ 0,12)  octahedral u      [12,24)  octahedral v
    [24,32)  depth, [-1, 1] remapped to [0, 255]

Every scalar is stored as an unsigned fixed-point fraction of its field
width: ``round(clamp(x, 0, 1) * (2**bits - 1))``. Decoding divides by the
same factor, so a round trip is exact up to one LSB. Roughness and metallic
are clamped to ``[0.1, 0.9]`` on decode.

The ``*_arrays`` functions are vectorised over any leading shape and are
what the bake and preview paths use for whole tiles; :func:`encode` and
:func:`decode` are thin single-sample wrappers.
"""

from __future__ import annotations

from typing import Dict, NamedTuple

import numpy as np

from .material import MaterialFlags, UnpackedMaterialSample
from .oct_coords import octahedral_decode, octahedral_encode

LAYOUT_VERSION = 1


class BitField(NamedTuple):
    shift: int
    bits: int

    @property
    def max_value(self) -> int:
        return (1 << self.bits) - 1

    @property
    def mask(self) -> int:
        return self.max_value << self.shift


RED = BitField(0, 5)
GREEN = BitField(5, 5)
BLUE = BitField(10, 5)
ALPHA = BitField(15, 5)
ROUGHNESS = BitField(20, 5)
METALLIC = BitField(25, 5)
UNLIT = BitField(30, 1)
EMISSIVE = BitField(31, 1)

NORMAL_U = BitField(0, 12)
NORMAL_V = BitField(12, 12)
DEPTH = BitField(24, 8)

ROUGHNESS_RANGE = (0.1, 0.9)
METALLIC_RANGE = (0.1, 0.9)


class PackedSample(NamedTuple):
    word1: int
    word2: int


def quantize(value, field: BitField) -> np.ndarray:
    """``round(clamp(value, 0, 1) * max)`` as uint32 (round half up)."""
    v = np.clip(np.asarray(value, dtype=np.float64), 0.0, 1.0)
    return np.floor(v * field.max_value + 0.5).astype(np.uint32)


def dequantize(raw, field: BitField) -> np.ndarray:
    return np.asarray(raw, dtype=np.float64) / float(field.max_value)


def _put(raw: np.ndarray, field: BitField) -> np.ndarray:
    return np.left_shift(raw.astype(np.uint32), np.uint32(field.shift))


def _get(word: np.ndarray, field: BitField) -> np.ndarray:
    return np.bitwise_and(
        np.right_shift(word, np.uint32(field.shift)), np.uint32(field.max_value)
    )


def encode_normal(normal) -> np.ndarray:
    """Octahedral-encode unit normals into the 24 low bits of word 2."""
    uv = octahedral_encode(normal)
    return _put(quantize(uv[..., 0], NORMAL_U), NORMAL_U) | _put(
        quantize(uv[..., 1], NORMAL_V), NORMAL_V
    )


def decode_normal(word2) -> np.ndarray:
    w = np.asarray(word2, dtype=np.uint32)
    u = dequantize(_get(w, NORMAL_U), NORMAL_U)
    v = dequantize(_get(w, NORMAL_V), NORMAL_V)
    return octahedral_decode(np.stack([u, v], axis=-1))


def encode_depth(depth) -> np.ndarray:
    d = np.asarray(depth, dtype=np.float64) * 0.5 + 0.5
    return _put(quantize(d, DEPTH), DEPTH)


def decode_depth(word2) -> np.ndarray:
    raw = _get(np.asarray(word2, dtype=np.uint32), DEPTH)
    return dequantize(raw, DEPTH) * 2.0 - 1.0


def encode_arrays(
    color,
    roughness,
    metallic,
    normal,
    depth,
    unlit=False,
    emissive=False,
) -> np.ndarray:
    """Pack channel arrays into ``uint32[..., 2]``.

    Parameters
    ----------
    color : array_like
        RGBA in ``[0, 1]``, shape ``(..., 4)``.
    roughness, metallic, depth : array_like
        Shape ``(...)``; depth in ``[-1, 1]``.
    normal : array_like
        Unit normals, shape ``(..., 3)``.
    unlit, emissive : array_like of bool
        Broadcastable to ``(...)``.
    """
    color = np.asarray(color, dtype=np.float64)
    shape = color.shape[:-1]
    word1 = (
        _put(quantize(color[..., 0], RED), RED)
        | _put(quantize(color[..., 1], GREEN), GREEN)
        | _put(quantize(color[..., 2], BLUE), BLUE)
        | _put(quantize(color[..., 3], ALPHA), ALPHA)
        | _put(quantize(np.broadcast_to(roughness, shape), ROUGHNESS), ROUGHNESS)
        | _put(quantize(np.broadcast_to(metallic, shape), METALLIC), METALLIC)
        | _put(np.broadcast_to(np.asarray(unlit, dtype=bool), shape), UNLIT)
        | _put(np.broadcast_to(np.asarray(emissive, dtype=bool), shape), EMISSIVE)
    )
    word2 = encode_normal(np.broadcast_to(normal, shape + (3,))) | encode_depth(
        np.broadcast_to(depth, shape)
    )
    return np.stack([word1, word2], axis=-1).astype(np.uint32)


def decode_arrays(packed) -> Dict[str, np.ndarray]:
    """Unpack ``uint32[..., 2]`` into float channel arrays.

    Returns a dict with ``color`` (..., 4), ``roughness``, ``metallic``,
    ``normal`` (..., 3), ``depth``, ``unlit`` and ``emissive``.
    """
    packed = np.asarray(packed, dtype=np.uint32)
    word1 = packed[..., 0]
    word2 = packed[..., 1]
    color = np.stack(
        [
            dequantize(_get(word1, RED), RED),
            dequantize(_get(word1, GREEN), GREEN),
            dequantize(_get(word1, BLUE), BLUE),
            dequantize(_get(word1, ALPHA), ALPHA),
        ],
        axis=-1,
    )
    return {
        "color": color,
        "roughness": np.clip(dequantize(_get(word1, ROUGHNESS), ROUGHNESS), *ROUGHNESS_RANGE),
        "metallic": np.clip(dequantize(_get(word1, METALLIC), METALLIC), *METALLIC_RANGE),
        "normal": decode_normal(word2),
        "depth": decode_depth(word2),
        "unlit": _get(word1, UNLIT).astype(bool),
        "emissive": _get(word1, EMISSIVE).astype(bool),
    }


def encode(sample: UnpackedMaterialSample) -> PackedSample:
    packed = encode_arrays(
        sample.color,
        sample.roughness,
        sample.metallic,
        sample.normal,
        sample.depth,
        sample.flags.unlit,
        sample.flags.emissive,
    )
    return PackedSample(int(packed[0]), int(packed[1]))


def decode(packed) -> UnpackedMaterialSample:
    """Decode one pixel; an all-zero pair decodes with alpha 0 (the sentinel)."""
    channels = decode_arrays(np.asarray(tuple(packed), dtype=np.uint32))
    return sample_from_channels(channels)


def sample_from_channels(channels: Dict[str, np.ndarray]) -> UnpackedMaterialSample:
    color = channels["color"]
    normal = channels["normal"]
    return UnpackedMaterialSample(
        color=(float(color[0]), float(color[1]), float(color[2]), float(color[3])),
        roughness=float(channels["roughness"]),
        metallic=float(channels["metallic"]),
        normal=(float(normal[0]), float(normal[1]), float(normal[2])),
        flags=MaterialFlags(
            unlit=bool(channels["unlit"]), emissive=bool(channels["emissive"])
        ),
        depth=float(channels["depth"]),
    )
