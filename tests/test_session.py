import os

import cv2
import numpy as np
import pytest

from imageclipper.config import build_config
from imageclipper.errors import UnsupportedFormat
from imageclipper.media import open_reference
from imageclipper.selection import Idle
from imageclipper.session import KEY_ESC, KEY_SPACE, ClipperSession
from tests.helpers import make_image


def _session(reference, headless_renderer, **options):
    config = build_config(reference=str(reference), **options)
    return ClipperSession(config, open_reference(config.reference, config.frame), headless_renderer)


def press(session, keys):
    for key in keys:
        assert session.handle_key(ord(key))


def test_backward_at_first_frame_is_noop(image_dir, headless_renderer):
    session = _session(image_dir, headless_renderer)
    frame = session.frame
    display = headless_renderer.display
    assert session.handle_key(ord("b"))
    assert session.frame is frame
    assert session.source.index == 0
    assert headless_renderer.display is display


def test_forward_keeps_region(image_dir, headless_renderer):
    session = _session(image_dir, headless_renderer)
    session.on_mouse(cv2.EVENT_LBUTTONDOWN, 2, 3, 0)
    session.on_mouse(cv2.EVENT_MOUSEMOVE, 12, 13, 0)
    session.on_mouse(cv2.EVENT_LBUTTONUP, 12, 13, 0)
    assert isinstance(session.machine.state, Idle)

    press(session, "f")
    assert os.path.basename(session.frame.path) == "b.png"
    assert session.region.rect.width == 10
    assert headless_renderer.preview.shape == (10, 10, 3)

    press(session, "fff")
    assert os.path.basename(session.frame.path) == "c.jpg"


def test_quit_keys(image_dir, headless_renderer):
    session = _session(image_dir, headless_renderer)
    assert session.handle_key(ord("q")) is False
    assert session.handle_key(KEY_ESC) is False


def test_save_writes_with_default_template(image_dir, headless_renderer):
    session = _session(image_dir, headless_renderer)
    session.on_mouse(cv2.EVENT_LBUTTONDOWN, 4, 2, 0)
    session.on_mouse(cv2.EVENT_MOUSEMOVE, 14, 22, 0)
    press(session, "r")
    press(session, "s")
    out = image_dir / "imageclipper" / "a.png_0001_0004_0002_0010_0020.png"
    assert out.is_file()
    assert cv2.imread(str(out)).shape == (20, 10, 3)


def test_save_without_region_is_noop(image_dir, headless_renderer):
    session = _session(image_dir, headless_renderer)
    assert session.save() is None
    assert not (image_dir / "imageclipper").exists()


def test_space_saves_then_moves_forward(image_dir, headless_renderer):
    session = _session(image_dir, headless_renderer, output_format="%d/out/%i_%f.png")
    session.on_mouse(cv2.EVENT_LBUTTONDOWN, 0, 0, 0)
    session.on_mouse(cv2.EVENT_MOUSEMOVE, 5, 5, 0)
    assert session.handle_key(KEY_SPACE)
    assert (image_dir / "out" / "a_1.png").is_file()
    assert os.path.basename(session.frame.path) == "b.png"


def test_save_unsupported_extension_is_fatal(image_dir, headless_renderer):
    session = _session(image_dir, headless_renderer, output_format="%d/%i.txt")
    session.on_mouse(cv2.EVENT_LBUTTONDOWN, 0, 0, 0)
    session.on_mouse(cv2.EVENT_MOUSEMOVE, 5, 5, 0)
    with pytest.raises(UnsupportedFormat):
        session.handle_key(ord("s"))


def test_large_frame_is_fit_to_screen(tmp_path, headless_renderer):
    cv2.imwrite(str(tmp_path / "big.png"), make_image(1920, 1080))
    session = _session(tmp_path / "big.png", headless_renderer)
    assert session.scale == 0.5
    assert headless_renderer.display_size == (960, 540)
    assert session.machine.bounds == (960, 540)

    session.on_mouse(cv2.EVENT_LBUTTONDOWN, 100, 50, 0)
    session.on_mouse(cv2.EVENT_MOUSEMOVE, 300, 150, 0)
    out = session.save()
    assert out.endswith("big.png_0000_0200_0100_0400_0200.png")
    np.testing.assert_array_equal(cv2.imread(out), session.frame.image[100:300, 200:600])


def test_zoom_keys_rescale_display(image_dir, headless_renderer):
    session = _session(image_dir, headless_renderer)
    press(session, "z")
    assert session.scale == pytest.approx(1.05)
    press(session, "xx")
    assert session.scale == pytest.approx(1.05 * 0.95 * 0.95)
    h, w = session.frame.image.shape[:2]
    assert headless_renderer.display_size == (int(w * session.scale), int(h * session.scale))


def test_increment_applies_to_keys(image_dir, headless_renderer):
    session = _session(image_dir, headless_renderer)
    press(session, "++l")
    assert session.region.x == 3


def test_watershed_drag_derives_region(tmp_path, headless_renderer):
    img = np.full((120, 120, 3), 20, dtype=np.uint8)
    cv2.circle(img, (60, 60), 25, (240, 240, 240), -1)
    cv2.imwrite(str(tmp_path / "disc.png"), img)
    session = _session(tmp_path / "disc.png", headless_renderer)

    session.on_mouse(cv2.EVENT_MBUTTONDOWN, 60, 60, 0)
    session.on_mouse(cv2.EVENT_MOUSEMOVE, 105, 60, 0)
    session.on_mouse(cv2.EVENT_MBUTTONUP, 105, 60, 0)
    region = session.region
    assert session.machine.watershed
    assert 28 <= region.x <= 40 and 28 <= region.y <= 40
    assert 45 <= region.width <= 60
    assert headless_renderer.preview.shape[:2] == (region.height, region.width)
