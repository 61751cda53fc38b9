"""Cluster-count selection with an elbow heuristic on k-means compactness.

k-means is run for every k in 1..k_max and the compactness differentials are
inspected. If the improvement from adding a cluster collapses by a large factor
compared with the previous improvement, the k shared by both differentials is
the "elbow". A strict factor (100) is tried first and the first elbow wins; if
none is found a lenient factor (10) is tried and the largest elbow wins. With
no elbow at all, every detection is treated as a single object.

Only k <= k_max - 2 can be chosen this way: the scan stops before the last
differential.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Iterator

import numpy as np

from boxcluster.vision.types import CompactnessTrace, Labeling

from .errors import ClusteringFailedError, InvalidInputError
from .kmeans import KMeansCriteria, SupportsClustering

LOG = logging.getLogger(__name__)

STRICT_ELBOW_FACTOR = 100.0
LENIENT_ELBOW_FACTOR = 10.0


def _run_trial(
    points: np.ndarray,
    k: int,
    clusterer: SupportsClustering,
    criteria: KMeansCriteria,
) -> tuple[tuple[int, ...], float]:
    """Run the primitive once and check its output against the labeling contract."""
    try:
        labels, compactness = clusterer.cluster(
            points,
            k,
            max_iterations=int(criteria.max_iterations),
            convergence_tolerance=float(criteria.convergence_tolerance),
            restarts=int(criteria.restarts),
        )
    except ClusteringFailedError:
        raise
    except Exception as exc:
        raise ClusteringFailedError(k, f"{type(exc).__name__}: {exc}") from exc

    flat = tuple(int(v) for v in np.asarray(labels).reshape(-1))
    if len(flat) != len(points):
        raise ClusteringFailedError(k, f"expected {len(points)} labels, got {len(flat)}")
    if any(lab < 0 or lab >= k for lab in flat):
        raise ClusteringFailedError(k, "label outside [0, k)")
    compactness = float(compactness)
    if not math.isfinite(compactness):
        raise ClusteringFailedError(k, f"non-finite compactness {compactness!r}")
    return flat, compactness


def compactness_trace(
    points: np.ndarray,
    k_max: int,
    clusterer: SupportsClustering,
    *,
    criteria: KMeansCriteria = KMeansCriteria(),
) -> tuple[CompactnessTrace, tuple[int, ...]]:
    """Run k-means for k = 1..k_max in order.

    Returns:
        (trace, labels_at_k1): the (k, compactness) pairs and the labels of the
        k=1 trial.
    """
    trace: list[tuple[int, float]] = []
    labels_k1: tuple[int, ...] = ()
    for k in range(1, k_max + 1):
        labels, compactness = _run_trial(points, k, clusterer, criteria)
        if k == 1:
            labels_k1 = labels
        trace.append((k, compactness))
    return tuple(trace), labels_k1


def elbow_candidates(trace: CompactnessTrace, k_max: int, factor: float) -> Iterator[int]:
    """Yield each k where the next compactness improvement collapses by `factor`.

    `prev_diff` starts at 0 and only advances when the test fails, so the first
    differential can never trigger on a non-increasing trace.
    """
    values = dict(trace)
    prev_diff = 0.0
    for i in range(2, k_max - 1):
        diff = values[i - 1] - values[i]
        if prev_diff > factor * diff:
            yield i - 1
        else:
            prev_diff = diff


def select_clusters(
    points: np.ndarray,
    k_max: int,
    clusterer: SupportsClustering,
    *,
    criteria: KMeansCriteria = KMeansCriteria(),
) -> Labeling:
    """Choose the number of clusters and the per-point labels.

    Args:
        points: (n, 2) array of 2D points.
        k_max: Upper bound on the number of objects expected.
        clusterer: k-means backend.
        criteria: Termination settings passed to every k-means call.

    Returns:
        The chosen labeling, with the compactness trace that led to it.

    Raises:
        InvalidInputError: If `points` is empty or `k_max < 1`.
        ClusteringFailedError: If any k-means call fails.
    """
    if k_max < 1:
        raise InvalidInputError(f"k_max must be >= 1, got {k_max}")
    pts = np.asarray(points, dtype=np.float32).reshape(-1, 2)
    n = int(pts.shape[0])
    if n == 0:
        raise InvalidInputError("Cannot cluster an empty point set")
    if n == 1:
        return Labeling(labels=(0,), k=1)

    trace, labels_k1 = compactness_trace(pts, k_max, clusterer, criteria=criteria)
    LOG.debug("Compactness trace: %s", trace)

    best_k = next(elbow_candidates(trace, k_max, STRICT_ELBOW_FACTOR), None)
    if best_k is not None:
        labels, _ = _run_trial(pts, best_k, clusterer, criteria)
        LOG.info("Elbow at k=%d (factor %.0f)", best_k, STRICT_ELBOW_FACTOR)
        return Labeling(labels=labels, k=best_k, trace=trace)

    labeling = Labeling(labels=labels_k1, k=1, trace=trace)
    found = False
    for k in elbow_candidates(trace, k_max, LENIENT_ELBOW_FACTOR):
        labels, _ = _run_trial(pts, k, clusterer, criteria)
        labeling = Labeling(labels=labels, k=k, trace=trace)
        found = True

    if found:
        LOG.info("Elbow at k=%d (factor %.0f)", labeling.k, LENIENT_ELBOW_FACTOR)
    else:
        LOG.info("No elbow found among %d detections; using k=1", n)
    return labeling
