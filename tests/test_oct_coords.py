# tests/test_oct_coords.py
# Tests for direction <-> grid projections and tile camera frames
# Exists to guarantee bake cameras and render lookups agree for every grid mode
# RELEVANT FILES: python/imposter3d/oct_coords.py, python/imposter3d/bake.py

from __future__ import annotations

import numpy as np
import pytest

from imposter3d.oct_coords import (
    GridMode,
    capture_directions,
    direction_to_grid_uv,
    grid_index_to_direction,
    grid_position,
    hemi_octahedral_decode,
    hemi_octahedral_encode,
    octahedral_decode,
    octahedral_encode,
    tile_basis,
)

GRID = 8


def _indices(n: int):
    return [(x, y) for y in range(n) for x in range(n)]


def test_spherical_interior_tiles_roundtrip_to_their_uv() -> None:
    for x, y in _indices(GRID):
        if x in (0, GRID - 1) or y in (0, GRID - 1):
            continue
        d = grid_index_to_direction((x, y), GRID, GridMode.SPHERICAL)
        uv = direction_to_grid_uv(d, GridMode.SPHERICAL)
        np.testing.assert_allclose(uv * (GRID - 1), (x, y), atol=1e-9)


def test_spherical_boundary_tiles_roundtrip_as_directions() -> None:
    # the square's border is covered twice; only the direction is unique there
    for x, y in _indices(GRID):
        d = grid_index_to_direction((x, y), GRID, GridMode.SPHERICAL)
        back = grid_index_to_direction(direction_to_grid_uv(d, GridMode.SPHERICAL) * (GRID - 1), GRID, GridMode.SPHERICAL)
        np.testing.assert_allclose(back, d, atol=1e-9)


@pytest.mark.parametrize("mode", [GridMode.HEMISPHERICAL, GridMode.HORIZONTAL])
def test_every_tile_roundtrips(mode: GridMode) -> None:
    for x, y in _indices(GRID):
        d = grid_index_to_direction((x, y), GRID, mode)
        uv = direction_to_grid_uv(d, mode, GRID)
        np.testing.assert_allclose(uv * (GRID - 1), (x, y), atol=1e-5)


def test_horizontal_requires_grid_size() -> None:
    with pytest.raises(ValueError):
        direction_to_grid_uv((1.0, 0.0, 0.0), GridMode.HORIZONTAL)


def test_horizontal_directions_lie_in_capture_plane() -> None:
    for x, y in _indices(4):
        d = grid_index_to_direction((x, y), 4, GridMode.HORIZONTAL)
        assert d[1] == pytest.approx(0.0)
        assert np.linalg.norm(d) == pytest.approx(1.0)


def test_octahedral_poles_and_axes() -> None:
    np.testing.assert_allclose(octahedral_encode((0.0, 1.0, 0.0)), (0.5, 0.5))
    np.testing.assert_allclose(octahedral_decode((0.5, 0.5)), (0.0, 1.0, 0.0), atol=1e-12)
    np.testing.assert_allclose(octahedral_decode((1.0, 0.5)), (1.0, 0.0, 0.0), atol=1e-12)
    down = octahedral_decode(octahedral_encode((0.0, -1.0, 0.0)))
    np.testing.assert_allclose(down, (0.0, -1.0, 0.0), atol=1e-12)


def test_hemi_octahedral_corners_are_horizon_axes() -> None:
    np.testing.assert_allclose(hemi_octahedral_decode((0.0, 0.0)), (0.0, 0.0, -1.0), atol=1e-12)
    np.testing.assert_allclose(hemi_octahedral_decode((1.0, 0.0)), (1.0, 0.0, 0.0), atol=1e-12)
    np.testing.assert_allclose(hemi_octahedral_decode((1.0, 1.0)), (0.0, 0.0, 1.0), atol=1e-12)
    np.testing.assert_allclose(hemi_octahedral_decode((0.0, 1.0)), (-1.0, 0.0, 0.0), atol=1e-12)
    np.testing.assert_allclose(hemi_octahedral_decode((0.5, 0.5)), (0.0, 1.0, 0.0), atol=1e-12)


def test_hemi_octahedral_collapses_lower_hemisphere_onto_equator() -> None:
    uv = hemi_octahedral_encode((0.6, -0.8, 0.0))
    np.testing.assert_allclose(hemi_octahedral_decode(uv), (1.0, 0.0, 0.0), atol=1e-12)
    straight_down = hemi_octahedral_encode((0.0, -1.0, 0.0))
    assert np.all((straight_down >= 0.0) & (straight_down <= 1.0))


def test_vectorised_encode_matches_scalar() -> None:
    rng = np.random.default_rng(7)
    dirs = rng.normal(size=(64, 3))
    dirs /= np.linalg.norm(dirs, axis=-1, keepdims=True)
    batch = octahedral_encode(dirs)
    for d, uv in zip(dirs, batch):
        np.testing.assert_allclose(octahedral_encode(d), uv)


@pytest.mark.parametrize(
    "uv, expected",
    [
        ((0.0, 0.0), ((0, 0), (0.0, 0.0))),
        ((1.0, 1.0), ((6, 6), (1.0, 1.0))),
        ((0.5, 0.5), ((3, 3), (0.5, 0.5))),
        ((-0.2, 1.3), ((0, 6), (0.0, 1.0))),
    ],
)
def test_grid_position_clamps_to_last_cell(uv, expected) -> None:
    (ix, iy), (fx, fy) = grid_position(uv, GRID)
    assert (ix, iy) == expected[0]
    assert (fx, fy) == pytest.approx(expected[1])


@pytest.mark.parametrize("mode", list(GridMode))
def test_tile_basis_is_orthonormal(mode: GridMode) -> None:
    for frame in capture_directions(GRID, mode):
        n, u, r = frame.normal, frame.up, frame.right
        for v in (n, u, r):
            assert np.linalg.norm(v) == pytest.approx(1.0)
        assert float(np.dot(n, u)) == pytest.approx(0.0, abs=1e-9)
        assert float(np.dot(n, r)) == pytest.approx(0.0, abs=1e-9)
        assert float(np.dot(u, r)) == pytest.approx(0.0, abs=1e-9)


def test_tile_basis_near_pole_uses_z_up() -> None:
    frame = tile_basis((1, 1), 3, GridMode.SPHERICAL)
    np.testing.assert_allclose(frame.normal, (0.0, 1.0, 0.0), atol=1e-12)
    assert abs(float(frame.up[2])) == pytest.approx(1.0)


def test_capture_directions_row_major_order() -> None:
    order = [frame.index for frame in capture_directions(3, GridMode.HEMISPHERICAL)]
    assert order == [(0, 0), (1, 0), (2, 0), (0, 1), (1, 1), (2, 1), (0, 2), (1, 2), (2, 2)]
