"""Core data types shared across the consolidation pipeline."""

from __future__ import annotations

from dataclasses import dataclass

# (k, compactness) pairs for k = 1..k_max, in trial order.
CompactnessTrace = tuple[tuple[int, float], ...]


@dataclass(frozen=True, slots=True)
class Detection:
    """One raw detector output: a scored, axis-aligned box.

    Attributes:
        confidence: Detector confidence, non-negative.
        x, y: Top-left corner in pixel coordinates.
        width, height: Box size in pixels, non-negative.
    """

    confidence: float
    x: int
    y: int
    width: int
    height: int

    def __post_init__(self) -> None:
        if not self.confidence >= 0.0:
            raise ValueError(f"confidence must be >= 0, got {self.confidence!r}")
        if self.width < 0 or self.height < 0:
            raise ValueError(f"width/height must be >= 0, got {self.width}x{self.height}")

    def top_left(self) -> tuple[float, float]:
        return float(self.x), float(self.y)

    def center(self) -> tuple[float, float]:
        return self.x + self.width / 2.0, self.y + self.height / 2.0

    def corners(self) -> tuple[int, int, int, int]:
        """Return (x1, y1, x2, y2) pixel corners."""
        return self.x, self.y, self.x + self.width, self.y + self.height


# Placeholder for a cluster that received no detection.
ZERO_DETECTION = Detection(confidence=0.0, x=0, y=0, width=0, height=0)


@dataclass(frozen=True, slots=True)
class Labeling:
    """Cluster assignment for a set of detections.

    Attributes:
        labels: `labels[i]` is the cluster id in [0, k) of detection i.
        k: Number of clusters chosen.
        trace: Compactness per trial k (empty when no trial was needed).
    """

    labels: tuple[int, ...]
    k: int
    trace: CompactnessTrace = ()

    def members(self, cluster_id: int) -> list[int]:
        """Return the detection indices assigned to `cluster_id`."""
        return [i for i, lab in enumerate(self.labels) if lab == cluster_id]
