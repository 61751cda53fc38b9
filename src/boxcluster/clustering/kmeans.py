"""k-means clustering primitive behind a small protocol.

The selector only needs labels and a compactness score per trial, so any
backend satisfying `SupportsClustering` can stand in (tests use scripted fakes).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Protocol

import cv2
import numpy as np

from .errors import ClusteringFailedError

LOG = logging.getLogger(__name__)


class SupportsClustering(Protocol):
    """Protocol for a k-means-like clustering backend."""

    def cluster(
        self,
        points: np.ndarray,
        k: int,
        *,
        max_iterations: int,
        convergence_tolerance: float,
        restarts: int,
    ) -> tuple[np.ndarray, float]:
        """Partition `points` into `k` groups.

        Returns:
            (labels, compactness) where labels has one int per point in [0, k)
            and compactness is the sum of squared distances to the centers.
        """
        ...


@dataclass(frozen=True, slots=True, kw_only=True)
class KMeansCriteria:
    """Termination and restart settings for one k-means call."""

    max_iterations: int = 10
    convergence_tolerance: float = 1.0
    restarts: int = 3


@dataclass
class OpenCVKMeans:
    """`cv2.kmeans` with k-means++ seeding.

    Attributes:
        seed: Seed for OpenCV's RNG, applied before the first call from this
            instance and again before every k=1 trial. Each cluster-count
            selection starts at k=1, so a shared instance gives every unit
            the same RNG state. OpenCV's default RNG is per thread, so the
            seed takes effect in whichever thread runs the trials. None
            leaves the RNG untouched.
    """

    seed: int | None = 0
    _seeded: bool = field(default=False, init=False, repr=False)

    def cluster(
        self,
        points: np.ndarray,
        k: int,
        *,
        max_iterations: int = 10,
        convergence_tolerance: float = 1.0,
        restarts: int = 3,
    ) -> tuple[np.ndarray, float]:
        data = np.asarray(points, dtype=np.float32).reshape(-1, 2)
        n = int(data.shape[0])
        if k < 1:
            raise ClusteringFailedError(k, "k must be >= 1")
        if n == 0:
            raise ClusteringFailedError(k, "no points to cluster")
        if k >= n:
            # One point per cluster; extra clusters stay empty.
            return np.arange(n, dtype=np.int32), 0.0

        if self.seed is not None and (k == 1 or not self._seeded):
            cv2.setRNGSeed(int(self.seed))
            self._seeded = True

        criteria = (
            cv2.TERM_CRITERIA_EPS + cv2.TERM_CRITERIA_MAX_ITER,
            int(max_iterations),
            float(convergence_tolerance),
        )
        try:
            compactness, labels, _centers = cv2.kmeans(
                data,
                int(k),
                None,
                criteria,
                int(restarts),
                cv2.KMEANS_PP_CENTERS,
            )
        except cv2.error as exc:
            raise ClusteringFailedError(k, str(exc).strip()) from exc

        LOG.debug("kmeans k=%d n=%d compactness=%.6g", k, n, compactness)
        return labels.reshape(-1).astype(np.int32), float(compactness)
