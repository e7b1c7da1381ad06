# python/imposter3d/config.py
# Bake and render configuration parsing for imposters
# Exists to reject malformed settings before they reach the pure sampling core
# RELEVANT FILES: python/imposter3d/bake.py, python/imposter3d/render.py, python/imposter3d/_validate.py, tests/test_config.py
from __future__ import annotations

import copy
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

from . import _validate
from .oct_coords import GridMode
from .surface import ImposterFlags

logger = logging.getLogger(__name__)

ConfigSource = Union["ImposterConfig", Mapping[str, Any], str, Path, None]

_GRID_MODES: Dict[str, GridMode] = {
    "spherical": GridMode.SPHERICAL,
    "sphere": GridMode.SPHERICAL,
    "octahedral": GridMode.SPHERICAL,
    "full": GridMode.SPHERICAL,
    "hemispherical": GridMode.HEMISPHERICAL,
    "hemisphere": GridMode.HEMISPHERICAL,
    "hemi": GridMode.HEMISPHERICAL,
    "hemioctahedral": GridMode.HEMISPHERICAL,
    "horizontal": GridMode.HORIZONTAL,
    "ring": GridMode.HORIZONTAL,
    "horizon": GridMode.HORIZONTAL,
}


def _normalize_key(value: Any) -> str:
    return "".join(
        c
        for c in str(value).strip().lower()
        if c not in {"-", "_", " ", "."}
    )


def parse_grid_mode(value: Any) -> GridMode:
    if isinstance(value, GridMode):
        return value
    key = _normalize_key(value)
    if key not in _GRID_MODES:
        raise ValueError(f"Unknown grid mode: {value!r}")
    return _GRID_MODES[key]


def _maybe_workers(value: Any) -> Optional[int]:
    if value is None:
        return None
    workers = _validate._as_int("max_workers", value)
    if workers < 1:
        raise ValueError("max_workers must be >= 1")
    return workers


@dataclass
class ImposterConfig:
    """Capture settings supplied by the orchestration layer."""

    grid_size: int = 8
    tile_size: int = 64
    mode: GridMode = GridMode.SPHERICAL
    multisample: int = 8
    billboard: bool = False
    multisample_on_read: bool = False
    alpha: float = 1.0
    max_workers: Optional[int] = None

    @property
    def image_size(self) -> int:
        return self.grid_size * self.tile_size

    @property
    def flags(self) -> ImposterFlags:
        return ImposterFlags(
            billboard=self.billboard,
            multisample=self.multisample_on_read,
            alpha_multiplier=self.alpha != 1.0,
        )

    def to_dict(self) -> dict:
        return {
            "grid_size": self.grid_size,
            "tile_size": self.tile_size,
            "image_size": self.image_size,
            "mode": self.mode.value,
            "multisample": self.multisample,
            "billboard": self.billboard,
            "multisample_on_read": self.multisample_on_read,
            "alpha": self.alpha,
            "max_workers": self.max_workers,
        }

    def validate(self) -> None:
        _validate.grid(self.grid_size)
        _validate.tile_size(self.tile_size)
        _validate.image_size(self.grid_size, self.tile_size)
        _validate.multisample(self.multisample)
        if not isinstance(self.mode, GridMode):
            raise TypeError("mode must be a GridMode")
        _validate.unit_interval("alpha", self.alpha)
        _maybe_workers(self.max_workers)

    def copy(self) -> "ImposterConfig":
        return copy.deepcopy(self)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], default: Optional["ImposterConfig"] = None) -> "ImposterConfig":
        base = copy.deepcopy(default) if default is not None else cls()
        if "grid_size" in data:
            base.grid_size = _validate.grid(data["grid_size"])
        if "image_size" in data and "tile_size" not in data:
            # image_size is the total atlas side; derive the per-tile size from it
            image_size = _validate._as_int("image_size", data["image_size"])
            if image_size % base.grid_size:
                raise ValueError(
                    f"image_size {image_size} is not a multiple of grid_size {base.grid_size}"
                )
            base.tile_size = _validate.tile_size(image_size // base.grid_size)
        if "tile_size" in data:
            base.tile_size = _validate.tile_size(data["tile_size"])
            if "image_size" in data:
                image_size = _validate._as_int("image_size", data["image_size"])
                if image_size != base.grid_size * base.tile_size:
                    raise ValueError(
                        f"image_size {image_size} does not match grid_size {base.grid_size} "
                        f"* tile_size {base.tile_size}"
                    )
        if "mode" in data:
            base.mode = parse_grid_mode(data["mode"])
        if "multisample" in data:
            base.multisample = _validate.multisample(data["multisample"])
        if "billboard" in data:
            base.billboard = bool(data["billboard"])
        if "multisample_on_read" in data:
            base.multisample_on_read = bool(data["multisample_on_read"])
        if "alpha" in data:
            base.alpha = _validate.unit_interval("alpha", data["alpha"])
        if "max_workers" in data:
            base.max_workers = _maybe_workers(data["max_workers"])
        return base


@dataclass
class RenderSettings:
    parallax: bool = True
    parallax_steps: int = 1
    taps: int = 3
    max_workers: Optional[int] = None

    def to_dict(self) -> dict:
        return {
            "parallax": self.parallax,
            "parallax_steps": self.parallax_steps,
            "taps": self.taps,
            "max_workers": self.max_workers,
        }

    def validate(self) -> None:
        steps = _validate._as_int("parallax_steps", self.parallax_steps)
        if not (0 <= steps <= 4):
            raise ValueError("parallax_steps must be within [0, 4]")
        if self.taps not in (3, 4):
            raise ValueError(f"taps must be 3 or 4, got {self.taps!r}")
        _maybe_workers(self.max_workers)

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any], default: Optional["RenderSettings"] = None) -> "RenderSettings":
        base = copy.deepcopy(default) if default is not None else cls()
        if "parallax" in data:
            base.parallax = bool(data["parallax"])
        if "parallax_steps" in data:
            base.parallax_steps = _validate._as_int("parallax_steps", data["parallax_steps"])
        if "taps" in data:
            base.taps = _validate._as_int("taps", data["taps"])
        if "max_workers" in data:
            base.max_workers = _maybe_workers(data["max_workers"])
        base.validate()
        return base


def _load_from_path(path: Path) -> Mapping[str, Any]:
    suffix = path.suffix.lower()
    text = path.read_text(encoding="utf-8")
    if suffix in {".json", ""}:
        return json.loads(text)
    raise ValueError(f"Unsupported imposter config file format: {path}")


def load_imposter_config(config: ConfigSource = None, overrides: Optional[Mapping[str, Any]] = None) -> ImposterConfig:
    if isinstance(config, ImposterConfig):
        cfg = config.copy()
    elif isinstance(config, Mapping):
        cfg = ImposterConfig.from_mapping(config)
    elif isinstance(config, (str, Path)):
        cfg = ImposterConfig.from_mapping(_load_from_path(Path(config)))
    elif config is None:
        cfg = ImposterConfig()
    else:
        raise TypeError("config must be ImposterConfig, mapping, path, or None")

    if overrides:
        cfg = ImposterConfig.from_mapping(overrides, cfg)
    cfg.validate()
    logger.debug(f"Imposter config: {cfg.to_dict()}")
    return cfg
