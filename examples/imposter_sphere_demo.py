#!/usr/bin/env python3
"""
Imposter Sphere Demo

Bakes an analytic two-tone sphere into a hemispherical imposter, reconstructs
a handful of views from it and writes atlas previews as PNG artifacts.
"""
import argparse
import logging
from pathlib import Path

import numpy as np

import imposter3d as imp


def sphere_evaluator(sphere_radius: float):
    """Ray-cast a sphere centred on the capture origin for one tile view."""

    def evaluate(view):
        origins = view.pixel_origins() - view.center
        rows = []
        for row in origins:
            samples = []
            for o in row:
                # rays start on the sampling plane (o . n == 0) and travel along -n
                h2 = sphere_radius * sphere_radius - float(o @ o)
                if h2 < 0.0:
                    samples.append(imp.SENTINEL)
                    continue
                hit = o + np.sqrt(h2) * view.normal
                normal = hit / sphere_radius
                warm = hit[1] >= 0.0
                samples.append(
                    imp.solid(
                        0.9 if warm else 0.2,
                        0.5,
                        0.2 if warm else 0.9,
                        roughness=0.3 if warm else 0.7,
                        metallic=0.8 if warm else 0.1,
                        normal=tuple(normal),
                        depth=view.depth_of(view.center + hit),
                    )
                )
            rows.append(samples)
        return rows

    return evaluate


def main() -> int:
    p = argparse.ArgumentParser()
    p.add_argument("--grid", type=int, default=8)
    p.add_argument("--tile", type=int, default=32)
    p.add_argument("--multisample", type=int, default=2)
    p.add_argument("--mode", default="hemispherical")
    p.add_argument("--out-dir", type=Path, default=Path("reports/imposter"))
    args = p.parse_args()

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")
    args.out_dir.mkdir(parents=True, exist_ok=True)

    cfg = imp.load_imposter_config(
        {"grid_size": args.grid, "tile_size": args.tile, "multisample": args.multisample, "mode": args.mode}
    )
    surface = imp.bake_surface(sphere_evaluator(0.8), cfg, radius=1.0)

    for channel in ("color", "normal", "depth", "material"):
        out = imp.save_atlas_png(surface, args.out_dir / f"atlas_{channel}.png", channel)
        print(f"Wrote {out}")

    (args.out_dir / "sphere.imposter").write_bytes(surface.to_bytes())

    queries = [
        imp.RenderQuery(world_point=(0.0, 0.0, 0.0), camera_position=(3.0 * np.cos(a), 1.5, 3.0 * np.sin(a)))
        for a in np.linspace(0.0, 2.0 * np.pi, 8, endpoint=False)
    ]
    for query, sample in zip(queries, imp.sample_many(surface, queries)):
        print(f"camera={np.round(query.camera_position, 2)} rgba={np.round(sample.color, 3)}")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
