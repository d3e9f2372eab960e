import cv2
import numpy as np

from imageclipper.render import fit_to_screen, resize_for_display, watershed_rect
from imageclipper.selection import RectangleSelection, Region, WatershedSeed, WatershedSelection
from tests.helpers import make_image


def test_fit_to_screen_full_hd_on_laptop():
    scale, size = fit_to_screen(1920, 1080, (1366, 768))
    assert scale == 0.5
    assert size == (960, 540)


def test_fit_to_screen_small_frame_unscaled():
    assert fit_to_screen(640, 480, (1366, 768)) == (1.0, (640, 480))


def test_fit_to_screen_halves_until_it_fits():
    scale, size = fit_to_screen(6000, 1000, (1366, 768))
    assert scale == 0.125
    assert size == (750, 125)


def test_resize_for_display():
    img = make_image(1920, 1080)
    assert resize_for_display(img, 0.5).shape == (540, 960, 3)
    assert resize_for_display(img, 1.0) is not img


def _disc_image():
    img = np.full((200, 200, 3), 30, dtype=np.uint8)
    cv2.circle(img, (100, 100), 40, (220, 220, 220), -1)
    return img


def test_watershed_finds_object_around_seed():
    rect, mask = watershed_rect(_disc_image(), WatershedSeed(100, 100, 70))
    assert mask is not None
    # the bright disc spans 60..140; the derived box hugs it
    assert 50 <= rect.x <= 65 and 50 <= rect.y <= 65
    assert 135 <= rect.right <= 150 and 135 <= rect.bottom <= 150


def test_watershed_zero_radius_is_empty():
    rect, mask = watershed_rect(_disc_image(), WatershedSeed(10, 10, 0))
    assert rect.is_empty()
    assert mask is None


def test_watershed_small_radius_keeps_background_ring():
    seed = WatershedSeed(100, 100, 2)
    rect, mask = watershed_rect(_disc_image(), seed)
    assert mask is not None
    assert not rect.is_empty()
    assert 98 <= rect.x and rect.right <= 103
    assert 98 <= rect.y and rect.bottom <= 103


def test_watershed_seed_outside_frame():
    rect, mask = watershed_rect(_disc_image(), WatershedSeed(-500, -500, 10))
    assert rect.is_empty()
    assert mask is None


def test_renderer_preview_uses_source_coordinates(headless_renderer):
    img = make_image(400, 200)
    headless_renderer.set_frame(img, 0.5)
    assert headless_renderer.display_size == (200, 100)

    headless_renderer.redraw(RectangleSelection(Region(x=10, y=20, width=30, height=15)))
    np.testing.assert_array_equal(headless_renderer.preview, img[40:70, 20:80])


def test_renderer_empty_region_has_no_preview(headless_renderer):
    headless_renderer.set_frame(make_image(50, 50), 1.0)
    headless_renderer.redraw(RectangleSelection())
    assert headless_renderer.preview is None


def test_renderer_segments_on_display_image(headless_renderer):
    big = cv2.resize(_disc_image(), (400, 400), interpolation=cv2.INTER_NEAREST)
    headless_renderer.set_frame(big, 0.5)
    seed = WatershedSeed(100, 100, 70)
    rect = headless_renderer.segment(seed)
    assert 50 <= rect.x <= 65
    region = Region()
    region.set_rect(rect)
    headless_renderer.redraw(WatershedSelection(seed=seed, region=region))
    assert headless_renderer.preview.shape[:2] == (int(rect.height / 0.5), int(rect.width / 0.5))
