# python/imposter3d/preview.py
# Debug visualisation of baked atlases as 8-bit RGBA images.
# Exists to let a baked imposter be inspected without a renderer.
# RELEVANT FILES:python/imposter3d/codec.py,python/imposter3d/surface.py,tests/test_preview.py

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Union

import numpy as np

from .codec import decode_arrays

logger = logging.getLogger(__name__)

CHANNELS = ("color", "normal", "depth", "material")


def atlas_channels(surface) -> Dict[str, np.ndarray]:
    """Decode the surface's atlas region into float channel arrays."""
    return decode_arrays(surface.region())


def _to_u8(values: np.ndarray) -> np.ndarray:
    return np.clip(np.floor(values * 255.0 + 0.5), 0, 255).astype(np.uint8)


def atlas_preview_rgba(surface, channel: str = "color") -> np.ndarray:
    """Render one decoded channel of the atlas as ``uint8[H, W, 4]``.

    ``color`` is the stored RGBA; ``normal`` maps ``[-1, 1]`` to ``[0, 255]``;
    ``depth`` is greyscale with 0 on the sampling plane at mid grey;
    ``material`` packs roughness into red, metallic into green and the
    unlit/emissive flags into blue. Every channel except ``color`` carries
    the stored alpha coverage so empty pixels stay transparent.
    """
    if channel not in CHANNELS:
        raise ValueError(f"Unknown preview channel {channel!r}; expected one of {CHANNELS}")
    ch = atlas_channels(surface)
    alpha = ch["color"][..., 3]
    if channel == "color":
        rgba = ch["color"]
    elif channel == "normal":
        rgb = ch["normal"] * 0.5 + 0.5
        rgba = np.concatenate([rgb, alpha[..., None]], axis=-1)
    elif channel == "depth":
        grey = ch["depth"] * 0.5 + 0.5
        rgba = np.stack([grey, grey, grey, alpha], axis=-1)
    else:
        flags = ch["unlit"] * 0.5 + ch["emissive"] * 0.5
        rgba = np.stack([ch["roughness"], ch["metallic"], flags, alpha], axis=-1)
    return np.ascontiguousarray(_to_u8(rgba))


def save_atlas_png(surface, path: Union[str, Path], channel: str = "color") -> Path:
    """Write :func:`atlas_preview_rgba` to a PNG file."""
    from PIL import Image

    path = Path(path)
    if path.suffix.lower() != ".png":
        raise ValueError(f"File must have .png extension, got {path}")
    rgba = atlas_preview_rgba(surface, channel)
    Image.fromarray(rgba).save(str(path))
    logger.info(f"Saved {channel} atlas preview {rgba.shape[1]}x{rgba.shape[0]} to {path}")
    return path
