"""Box repository: detection records in, chosen boxes out.

Input is one record per line, `<confidence> <x> <y> <width> <height>`.
Output is one line per chosen box, `<x> <y> <width> <height>`.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from boxcluster.clustering.errors import InvalidInputError
from boxcluster.vision.types import ZERO_DETECTION, Detection

LOG = logging.getLogger(__name__)

_FIELDS = 5


def parse_detection_line(line: str, *, strict: bool = False) -> Detection:
    """Parse one detection record.

    Blank or malformed lines become `ZERO_DETECTION` (with a warning) unless
    `strict` is set, in which case they raise `InvalidInputError`.
    """
    parts = line.split()
    try:
        if len(parts) != _FIELDS:
            raise ValueError(f"expected {_FIELDS} fields, got {len(parts)}")
        confidence = float(parts[0])
        x, y, width, height = (int(p) for p in parts[1:])
        return Detection(confidence=confidence, x=x, y=y, width=width, height=height)
    except ValueError as exc:
        if strict:
            raise InvalidInputError(f"Malformed detection record {line!r}: {exc}") from exc
        LOG.warning("Malformed detection record %r (%s); using a zero box", line, exc)
        return ZERO_DETECTION


def read_detections(path: Path, *, strict: bool = False) -> list[Detection]:
    """Read every detection record in `path`, one per line.

    Raises:
        OSError: If the file cannot be read.
        InvalidInputError: If the file is not UTF-8 text, or on a malformed
            record when `strict` is set.
    """
    try:
        text = path.read_text(encoding="utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidInputError(f"{path}: not a UTF-8 text file ({exc.reason})") from exc
    detections: list[Detection] = []
    for lineno, line in enumerate(text.splitlines(), start=1):
        try:
            detections.append(parse_detection_line(line, strict=strict))
        except InvalidInputError as exc:
            raise InvalidInputError(f"{path}:{lineno}: {exc}") from exc
    LOG.debug("Read %d detections from %s", len(detections), path)
    return detections


def format_result(box: Detection) -> str:
    return f"{box.x} {box.y} {box.width} {box.height}"


def write_results(boxes: Sequence[Detection], path: Path) -> None:
    """Write chosen boxes to `path` in cluster order; confidence is dropped."""
    path.parent.mkdir(parents=True, exist_ok=True)
    lines = [format_result(b) for b in boxes]
    path.write_text("".join(f"{ln}\n" for ln in lines), encoding="utf-8")
