"""Point projections used as clustering input."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from typing import Final

import numpy as np

from .types import Detection

Projection = Callable[[Detection], tuple[float, float]]

PROJECTIONS: Final[dict[str, Projection]] = {
    "top_left": Detection.top_left,
    "center": Detection.center,
}


def project_points(detections: Sequence[Detection], projection: str = "top_left") -> np.ndarray:
    """Project detections to an (n, 2) float32 array of 2D points.

    The top-left corner is the default. "center" tends to land closer to the
    object itself when box sizes vary.
    """
    try:
        fn = PROJECTIONS[projection]
    except KeyError as exc:
        raise ValueError(
            f"Unknown projection {projection!r}. Allowed: {sorted(PROJECTIONS)}"
        ) from exc
    pts = np.array([fn(d) for d in detections], dtype=np.float32)
    return pts.reshape(-1, 2)
