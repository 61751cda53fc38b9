"""Reduce each cluster to its highest-confidence detection."""

from __future__ import annotations

from collections.abc import Sequence

from boxcluster.vision.types import ZERO_DETECTION, Detection

from .errors import InvalidInputError


def best_boxes(
    detections: Sequence[Detection],
    labels: Sequence[int],
    k: int,
) -> list[Detection]:
    """Return one detection per cluster, in cluster-id order.

    Every slot starts as `ZERO_DETECTION`. A detection replaces its slot only
    when its confidence is strictly higher, so the first one seen wins ties.
    Clusters that receive no detection keep the zero placeholder.
    """
    if k < 1:
        raise InvalidInputError(f"k must be >= 1, got {k}")
    if len(labels) != len(detections):
        raise InvalidInputError(
            f"Got {len(labels)} labels for {len(detections)} detections"
        )

    best: list[Detection] = [ZERO_DETECTION] * k
    for det, label in zip(detections, labels, strict=True):
        cluster_id = int(label)
        if not 0 <= cluster_id < k:
            raise InvalidInputError(f"Label {cluster_id} outside [0, {k})")
        if best[cluster_id].confidence < det.confidence:
            best[cluster_id] = det
    return best
