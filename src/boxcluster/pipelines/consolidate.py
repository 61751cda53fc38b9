"""Detection consolidation pipeline: box file → clusters → one box per object.

A unit of work is one detection file (plus an optional source image). Units
are independent; within a unit the k-means trials run sequentially.
"""

import logging
from collections.abc import Sequence
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from boxcluster.clustering.elbow import select_clusters
from boxcluster.clustering.errors import ClusteringFailedError, InvalidInputError
from boxcluster.clustering.kmeans import KMeansCriteria, OpenCVKMeans, SupportsClustering
from boxcluster.clustering.representatives import best_boxes
from boxcluster.io.box_files import read_detections, write_results
from boxcluster.vision.geometry import project_points
from boxcluster.vision.types import Detection, Labeling
from boxcluster.vision.vis import draw_boxes, read_image, show_image

LOG = logging.getLogger(__name__)

# Failures that are reported per unit without stopping a batch.
UNIT_ERRORS = (OSError, InvalidInputError, ClusteringFailedError)


@dataclass(frozen=True, slots=True, kw_only=True)
class ConsolidateParams:
    """Clustering parameters shared by every unit of a run."""

    max_clusters: int = 10
    projection: str = "top_left"
    criteria: KMeansCriteria = KMeansCriteria()
    strict_parse: bool = False
    seed: int | None = 0


@dataclass(frozen=True, slots=True, kw_only=True)
class ConsolidateRun:
    """Run configuration for a single detection file."""

    boxes_path: Path
    out_path: Path
    image_path: Path | None = None
    out_image_path: Path | None = None
    params: ConsolidateParams = ConsolidateParams()
    display: bool = False
    verbose: bool = False


@dataclass(frozen=True, slots=True)
class ConsolidateResult:
    labeling: Labeling
    boxes: list[Detection]


@dataclass(frozen=True, slots=True)
class BatchUnit:
    """One detection file and the image it was produced from."""

    name: str
    boxes_path: Path
    image_path: Path | None = None


def consolidate_detections(
    detections: Sequence[Detection],
    *,
    params: ConsolidateParams,
    clusterer: SupportsClustering,
) -> ConsolidateResult:
    """Cluster `detections` and keep the most confident box of each cluster."""
    points = project_points(detections, params.projection)
    labeling = select_clusters(
        points,
        int(params.max_clusters),
        clusterer,
        criteria=params.criteria,
    )
    boxes = best_boxes(detections, labeling.labels, labeling.k)
    return ConsolidateResult(labeling=labeling, boxes=boxes)


def _box_payload(b: Detection) -> dict[str, Any]:
    return {
        "confidence": float(b.confidence),
        "x": int(b.x),
        "y": int(b.y),
        "width": int(b.width),
        "height": int(b.height),
    }


def run_consolidate(
    cfg: ConsolidateRun,
    *,
    clusterer: SupportsClustering | None = None,
) -> dict[str, Any]:
    """Consolidate one detection file and write its outputs.

    Outputs:
      - `cfg.out_path`: one `x y width height` line per cluster
      - `cfg.out_image_path`: the source image with the chosen boxes drawn
        (only when both image paths are set)

    Returns:
        A summary payload with the chosen k, compactness trace and boxes.
    """
    if cfg.verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")

    if clusterer is None:
        clusterer = OpenCVKMeans(seed=cfg.params.seed)

    detections = read_detections(cfg.boxes_path, strict=bool(cfg.params.strict_parse))
    render = cfg.image_path is not None and cfg.out_image_path is not None
    img = read_image(cfg.image_path) if render else None

    result = consolidate_detections(detections, params=cfg.params, clusterer=clusterer)
    LOG.info(
        "%s: %d detections -> %d boxes",
        cfg.boxes_path,
        len(detections),
        result.labeling.k,
    )

    write_results(result.boxes, cfg.out_path)

    if img is not None:
        vis = draw_boxes(img, result.boxes, cfg.out_image_path)
        if cfg.display:
            show_image(vis, title=str(cfg.image_path))

    return {
        "boxes_path": str(cfg.boxes_path),
        "out_path": str(cfg.out_path),
        "image_path": str(cfg.image_path) if cfg.image_path is not None else None,
        "out_image_path": (
            str(cfg.out_image_path) if cfg.out_image_path is not None else None
        ),
        "num_detections": len(detections),
        "k": int(result.labeling.k),
        "compactness": [[int(k), float(c)] for k, c in result.labeling.trace],
        "results": [_box_payload(b) for b in result.boxes],
    }


def iter_units(
    input_dir: Path,
    *,
    image_dir: Path | None = None,
    num_files: int | None = None,
    image_ext: str = ".png",
) -> list[BatchUnit]:
    """List the units of a batch.

    With `num_files`, units are the numbered files `0 .. num_files-1` in
    `input_dir`; otherwise every regular file in `input_dir`, sorted by name.
    The image of unit `name` is `<image_dir>/<name><image_ext>`.
    """
    if num_files is not None:
        names = [str(j) for j in range(int(num_files))]
    else:
        names = sorted(p.name for p in input_dir.iterdir() if p.is_file())

    return [
        BatchUnit(
            name=name,
            boxes_path=input_dir / name,
            image_path=(image_dir / f"{name}{image_ext}") if image_dir is not None else None,
        )
        for name in names
    ]


def _run_unit(
    unit: BatchUnit,
    out_root: Path,
    params: ConsolidateParams,
    display: bool,
    clusterer: SupportsClustering | None,
) -> dict[str, object]:
    out_path = out_root / unit.name
    out_image_path = out_root / f"{unit.name}.png" if unit.image_path is not None else None
    try:
        payload = run_consolidate(
            ConsolidateRun(
                boxes_path=unit.boxes_path,
                out_path=out_path,
                image_path=unit.image_path,
                out_image_path=out_image_path,
                params=params,
                display=display,
            ),
            clusterer=clusterer,
        )
        return {"name": unit.name, **payload}
    except UNIT_ERRORS as e:
        LOG.exception("Consolidation failed for unit=%s", unit.name)
        return {
            "name": unit.name,
            "boxes_path": str(unit.boxes_path),
            "out_path": str(out_path),
            "error": f"{type(e).__name__}: {e}",
        }


def run_consolidate_batch(
    *,
    units: Sequence[BatchUnit],
    out_root: Path,
    params: ConsolidateParams | None = None,
    display: bool = False,
    max_workers: int = 1,
    clusterer: SupportsClustering | None = None,
    verbose: bool = False,
) -> tuple[list[dict[str, object]], int]:
    """Consolidate every unit and write `summary.yaml` in `out_root`.

    A failing unit is logged and recorded in the summary; the others still run.
    With `max_workers > 1` units run in worker processes (an injected
    `clusterer` must then be picklable).

    Returns:
        (summary_units, failures)
    """
    if verbose:
        logging.basicConfig(level=logging.INFO, format="%(asctime)s | %(levelname)s | %(message)s")

    out_root.mkdir(parents=True, exist_ok=True)
    params = params or ConsolidateParams()

    if max_workers > 1 and len(units) > 1:
        with ProcessPoolExecutor(max_workers=int(max_workers)) as executor:
            futures = [
                executor.submit(_run_unit, unit, out_root, params, display, clusterer)
                for unit in units
            ]
            summary = [f.result() for f in futures]
    else:
        summary = [_run_unit(unit, out_root, params, display, clusterer) for unit in units]

    failures = sum(1 for s in summary if "error" in s)

    dumped = yaml.safe_dump({"units": summary}, sort_keys=False)
    (out_root / "summary.yaml").write_text(dumped, encoding="utf-8")
    return summary, failures
