#!/usr/bin/env python3
"""Batch runner: detection files → k-means elbow clustering → one box per object.

Core logic lives in `boxcluster.pipelines.consolidate`. Settings come from an
optional YAML config, then environment variables, then command-line flags.
"""

import argparse
import os
import sys
from pathlib import Path

from boxcluster.config import ConsolidateConfig, apply_overrides, load_config
from boxcluster.pipelines.consolidate import iter_units, run_consolidate_batch


def _env_int(name: str) -> int | None:
    raw = os.environ.get(name)
    return int(raw) if raw else None


def main(argv: list[str]) -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--config", type=str, default=None)
    ap.add_argument("--input_dir", type=str, default=None)
    ap.add_argument("--image_dir", type=str, default=None)
    ap.add_argument("--out_root", type=str, default=None)
    ap.add_argument("--num_files", type=int, default=None)
    ap.add_argument("--max_clusters", type=int, default=None)
    ap.add_argument("--projection", choices=["top_left", "center"], default=None)
    ap.add_argument("--workers", type=int, default=None)
    ap.add_argument("--strict", action="store_true")
    ap.add_argument("--display", action="store_true")
    ap.add_argument("--verbose", action="store_true")
    args = ap.parse_args(argv)

    cfg = load_config(Path(args.config)) if args.config else ConsolidateConfig()
    cfg = apply_overrides(
        cfg,
        max_clusters=_env_int("MAX_CLUSTERS"),
        projection=os.environ.get("PROJECTION") or None,
        seed=_env_int("KMEANS_SEED"),
    )
    cfg = apply_overrides(
        cfg,
        input_dir=args.input_dir,
        image_dir=args.image_dir,
        out_root=args.out_root,
        num_files=args.num_files,
        max_clusters=args.max_clusters,
        projection=args.projection,
        max_workers=args.workers,
        strict_parse=True if args.strict else None,
        display=True if args.display else None,
    )

    input_dir = cfg.paths.input_dir.expanduser().resolve()
    if not input_dir.is_dir():
        raise SystemExit(f"--input_dir is not a directory: {input_dir}")
    image_dir = cfg.paths.image_dir
    if image_dir is not None:
        image_dir = image_dir.expanduser().resolve()
        if not image_dir.is_dir():
            image_dir = None

    units = iter_units(input_dir, image_dir=image_dir, num_files=cfg.num_files)
    if not units:
        raise SystemExit(f"No detection files found under: {input_dir}")

    _, failures = run_consolidate_batch(
        units=units,
        out_root=cfg.paths.out_root.expanduser().resolve(),
        params=cfg.to_params(),
        display=cfg.display,
        max_workers=cfg.max_workers,
        verbose=bool(args.verbose),
    )
    return 1 if failures else 0


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
