from pathlib import Path

from PIL import Image

from boxcluster.vision.types import ZERO_DETECTION, Detection
from boxcluster.vision.vis import HIGHLIGHT_COLOR, draw_boxes, read_image


def test_draw_boxes_outlines_and_saves(tmp_path: Path) -> None:
    img = Image.new("RGB", (50, 40), color=(0, 0, 0))
    out_path = tmp_path / "nested" / "0.png"
    vis = draw_boxes(img, [Detection(0.9, 10, 5, 20, 15)], out_path)

    assert out_path.is_file()
    assert vis.getpixel((10, 5)) == HIGHLIGHT_COLOR
    assert vis.getpixel((30, 20)) == HIGHLIGHT_COLOR
    assert vis.getpixel((20, 12)) == (0, 0, 0)  # outline only
    # Source image is untouched.
    assert img.getpixel((10, 5)) == (0, 0, 0)

    reread = read_image(out_path)
    assert reread.size == (50, 40)
    assert reread.getpixel((10, 5)) == HIGHLIGHT_COLOR


def test_draw_boxes_keeps_zero_placeholder() -> None:
    img = Image.new("RGB", (8, 8), color=(0, 0, 0))
    vis = draw_boxes(img, [ZERO_DETECTION])
    assert vis.getpixel((0, 0)) == HIGHLIGHT_COLOR


def test_read_image_converts_to_rgb(tmp_path: Path) -> None:
    path = tmp_path / "gray.png"
    Image.new("L", (6, 4), color=128).save(path)
    img = read_image(path)
    assert img.mode == "RGB"
    assert img.getpixel((0, 0)) == (128, 128, 128)
