from pathlib import Path

import cv2
import pytest

from imageclipper.config import MAIN_WINDOW, PREVIEW_WINDOW
from imageclipper.render import Renderer
from tests.helpers import make_image


@pytest.fixture
def image_dir(tmp_path: Path) -> Path:
    """Directory with three small images plus a non-image file."""
    for i, name in enumerate(["b.png", "a.png", "c.jpg"]):
        cv2.imwrite(str(tmp_path / name), make_image(40 + i * 10, 30, value=i * 50))
    (tmp_path / "notes.txt").write_text("not an image")
    return tmp_path


@pytest.fixture
def headless_renderer() -> Renderer:
    return Renderer(MAIN_WINDOW, PREVIEW_WINDOW, show=False)
