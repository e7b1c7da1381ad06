# tests/test_blend.py
# Tests for alpha-weighted blending, tap weights and the block reduction tree
# Exists to pin transparency handling and reduction order shared by bake and render
# RELEVANT FILES: python/imposter3d/blend.py, python/imposter3d/material.py

from __future__ import annotations

import itertools

import pytest

from imposter3d.blend import blend, composite, reduce_block, tile_weights
from imposter3d.material import SENTINEL, solid


RED = solid(1.0, 0.0, 0.0, roughness=0.2, normal=(1.0, 0.0, 0.0))
BLUE = solid(0.0, 0.0, 1.0, roughness=0.8, normal=(0.0, 1.0, 0.0), unlit=True)


def test_two_sentinels_blend_to_sentinel() -> None:
    assert blend(SENTINEL, SENTINEL, 0.5).is_sentinel
    assert blend(SENTINEL, SENTINEL, 0.0).is_sentinel


def test_transparent_input_contributes_no_colour() -> None:
    out = blend(RED, SENTINEL, 0.3)
    assert out.rgb == pytest.approx((1.0, 0.0, 0.0))
    assert out.alpha == pytest.approx(0.3)
    assert out.normal == pytest.approx((1.0, 0.0, 0.0))
    assert out.roughness == pytest.approx(0.2)


def test_blend_is_alpha_weighted() -> None:
    half_blue = BLUE.with_alpha(0.5)
    out = blend(RED, half_blue, 0.5)
    # weights 0.5 and 0.25 -> fractions 2/3 and 1/3
    assert out.rgb == pytest.approx((2.0 / 3.0, 0.0, 1.0 / 3.0))
    assert out.alpha == pytest.approx(0.75)


def test_blend_renormalises_normals() -> None:
    out = blend(RED, BLUE, 0.5)
    length = sum(c * c for c in out.normal) ** 0.5
    assert length == pytest.approx(1.0)


def test_opposite_normals_cancel_to_zero() -> None:
    a = solid(1.0, 1.0, 1.0, normal=(0.0, 1.0, 0.0))
    b = solid(1.0, 1.0, 1.0, normal=(0.0, -1.0, 0.0))
    assert blend(a, b, 0.5).normal == (0.0, 0.0, 0.0)


def test_flags_follow_the_dominant_input() -> None:
    assert blend(RED, BLUE, 0.2).flags.unlit is True
    assert blend(RED, BLUE, 0.8).flags.unlit is False
    # ties keep the first input
    assert blend(RED, BLUE, 0.5).flags.unlit is False


@pytest.mark.parametrize("taps", [3, 4])
def test_tile_weights_are_normalised(taps: int) -> None:
    steps = [i / 8.0 for i in range(9)]
    for fx, fy in itertools.product(steps, steps):
        w = tile_weights((fx, fy), taps)
        assert sum(w) == pytest.approx(1.0)
        assert min(w) >= 0.0


def test_three_tap_weights_use_at_most_three_corners() -> None:
    steps = [i / 8.0 for i in range(9)]
    for fx, fy in itertools.product(steps, steps):
        w = tile_weights((fx, fy), 3)
        assert w.side_x == 0.0 or w.side_y == 0.0


def test_three_tap_weights_at_cell_corners() -> None:
    assert tile_weights((0.0, 0.0)) == pytest.approx((1.0, 0.0, 0.0, 0.0))
    assert tile_weights((1.0, 1.0)) == pytest.approx((0.0, 0.0, 0.0, 1.0))
    assert tile_weights((1.0, 0.0)) == pytest.approx((0.0, 1.0, 0.0, 0.0))
    assert tile_weights((0.5, 0.5)) == pytest.approx((0.5, 0.0, 0.0, 0.5))


def test_tile_weights_rejects_unknown_tap_count() -> None:
    with pytest.raises(ValueError):
        tile_weights((0.5, 0.5), 2)


def test_composite_normalises_weights() -> None:
    a = composite([RED, BLUE, RED], [2.0, 1.0, 1.0])
    b = composite([RED, BLUE, RED], [0.5, 0.25, 0.25])
    assert a.rgb == pytest.approx(b.rgb)
    assert a.rgb == pytest.approx((0.75, 0.0, 0.25))


def test_composite_of_transparent_taps_is_sentinel() -> None:
    assert composite([SENTINEL, SENTINEL, SENTINEL], [0.2, 0.3, 0.5]).is_sentinel
    assert composite([RED, BLUE, RED], [0.0, 0.0, 0.0]).is_sentinel


def test_composite_four_taps_matches_bilinear_average() -> None:
    out = composite([RED, BLUE, BLUE, RED], list(tile_weights((0.5, 0.5), 4)))
    assert out.rgb == pytest.approx((0.5, 0.0, 0.5))
    assert out.alpha == pytest.approx(1.0)


def test_composite_rejects_mismatched_lengths() -> None:
    with pytest.raises(ValueError):
        composite([RED, BLUE, RED], [1.0, 0.0])
    with pytest.raises(ValueError):
        composite([RED, BLUE], [0.5, 0.5])


def test_reduce_identical_block_is_identity() -> None:
    sample = solid(0.3, 0.6, 0.9, roughness=0.4, metallic=0.7, normal=(0.0, 0.0, 1.0), depth=0.25)
    out = reduce_block([[sample] * 8 for _ in range(8)])
    assert out.color == pytest.approx(sample.color)
    assert out.roughness == pytest.approx(sample.roughness)
    assert out.metallic == pytest.approx(sample.metallic)
    assert out.normal == pytest.approx(sample.normal)
    assert out.depth == pytest.approx(sample.depth)


def test_reduce_single_opaque_corner_gives_coverage_fraction() -> None:
    block = [[SENTINEL] * 8 for _ in range(8)]
    block[0][0] = solid(0.2, 0.4, 0.6)
    out = reduce_block(block)
    assert out.alpha == pytest.approx(1.0 / 64.0)
    assert out.rgb == pytest.approx((0.2, 0.4, 0.6))


def test_reduce_all_transparent_is_sentinel() -> None:
    assert reduce_block([[SENTINEL] * 4 for _ in range(4)]).is_sentinel


def test_reduce_one_by_one_returns_input() -> None:
    assert reduce_block([[RED]]) is RED


@pytest.mark.parametrize("size", [0, 3, 6, 16])
def test_reduce_rejects_invalid_block_sizes(size: int) -> None:
    with pytest.raises(ValueError):
        reduce_block([[RED] * size for _ in range(size)])


def test_reduce_rejects_ragged_block() -> None:
    with pytest.raises(ValueError):
        reduce_block([[RED, RED], [RED]])
