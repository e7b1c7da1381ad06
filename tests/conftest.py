# tests/conftest.py
# Pytest bootstrap and shared fixtures for the imposter test suite
# Exists to make `import imposter3d` work from a fresh clone without an install step
# RELEVANT FILES: tests/_surfaces.py, python/imposter3d/__init__.py, pyproject.toml
import sys
from pathlib import Path

import pytest


def _repo_root() -> Path:
    return Path(__file__).resolve().parents[1]


def _ensure_python_path():
    pkg_dir = _repo_root() / "python"
    if str(pkg_dir) not in sys.path:
        sys.path.insert(0, str(pkg_dir))


_ensure_python_path()


def pytest_configure(config):
    config.addinivalue_line("markers", "slow: slow tests")


@pytest.fixture
def hemi_surface():
    """grid_size=4 hemispherical bake; tile (i, j) is RGBA(i/3, j/3, 0.5, 1)."""
    from imposter3d import ImposterConfig, bake_surface
    from imposter3d.oct_coords import GridMode

    from _surfaces import index_color_evaluator

    cfg = ImposterConfig(grid_size=4, tile_size=4, mode=GridMode.HEMISPHERICAL, multisample=2)
    return bake_surface(index_color_evaluator(4), cfg)


@pytest.fixture
def ring_surface():
    """grid_size=4 horizontal bake; ring tile k is grey k/15."""
    from imposter3d import ImposterConfig, bake_surface
    from imposter3d.oct_coords import GridMode

    from _surfaces import ring_color_evaluator

    cfg = ImposterConfig(grid_size=4, tile_size=2, mode=GridMode.HORIZONTAL, multisample=1)
    return bake_surface(ring_color_evaluator(4), cfg)
