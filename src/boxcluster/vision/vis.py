"""Visualization helpers: load the source image, draw chosen boxes, show the result."""

from __future__ import annotations

from collections.abc import Sequence
from pathlib import Path

from PIL import Image, ImageDraw

from .types import Detection

HIGHLIGHT_COLOR: tuple[int, int, int] = (255, 255, 0)  # yellow


def read_image(path: Path) -> Image.Image:
    """Load a source image as RGB, whatever its mode on disk."""
    with Image.open(path) as im:
        return im.convert("RGB")


def draw_boxes(
    img: Image.Image,
    boxes: Sequence[Detection],
    out_path: Path | None = None,
    *,
    color: tuple[int, int, int] = HIGHLIGHT_COLOR,
    thickness: int = 1,
) -> Image.Image:
    """Outline each box on a copy of `img`, optionally saving it to `out_path`.

    Zero placeholder boxes are drawn like any other box.
    """
    vis = img.copy()
    dr = ImageDraw.Draw(vis)
    for b in boxes:
        dr.rectangle(list(b.corners()), outline=color, width=thickness)
    if out_path is not None:
        out_path.parent.mkdir(parents=True, exist_ok=True)
        vis.save(out_path)
    return vis


def show_image(img: Image.Image, title: str | None = None) -> None:
    """Open `img` in the platform image viewer."""
    img.show(title=title)
