"""Display scaling, selection overlay, watershed segmentation and cropped preview."""

from __future__ import annotations

from typing import Optional, Tuple

import cv2
import numpy as np

from imageclipper.export import crop_region
from imageclipper.geometry import Rect, RotatedRect, quad_corners, to_source
from imageclipper.selection import Region, Selection, WatershedSeed, WatershedSelection

_BACKGROUND = 1
_FOREGROUND = 2


def fit_to_screen(width: int, height: int, screen: Tuple[int, int]) -> Tuple[float, Tuple[int, int]]:
    """Halve the frame until it fits the screen. Returns (scale, display size)."""
    screen_w, screen_h = screen
    scale = 1.0
    while width > screen_w or height > screen_h:
        width //= 2
        height //= 2
        scale /= 2
    return scale, (width, height)


def resize_for_display(image: np.ndarray, scale: float) -> np.ndarray:
    """Resample the source at the display scale."""
    if scale == 1.0:
        return image.copy()
    h, w = image.shape[:2]
    size = (max(1, int(w * scale)), max(1, int(h * scale)))
    interpolation = cv2.INTER_AREA if scale < 1.0 else cv2.INTER_LINEAR
    return cv2.resize(image, size, interpolation=interpolation)


def watershed_rect(image: np.ndarray, seed: WatershedSeed) -> Tuple[Rect, Optional[np.ndarray]]:
    """
    Grow the region around a seed marker with the watershed transform.

    The seed circle outline marks background and a disc at its centre marks
    foreground. Returns the bounding box of the foreground and its mask.
    """
    if seed.radius <= 0:
        return Rect(seed.center_x, seed.center_y, 0, 0), None
    h, w = image.shape[:2]
    markers = np.zeros((h, w), dtype=np.int32)
    cv2.circle(markers, seed.center, seed.radius, _BACKGROUND, 1)
    cv2.circle(markers, seed.center, seed.radius // 4, _FOREGROUND, -1)
    if 0 <= seed.center_x < w and 0 <= seed.center_y < h:
        markers[seed.center_y, seed.center_x] = _FOREGROUND
    if not (markers == _FOREGROUND).any():
        # marker entirely outside the frame
        return Rect(seed.center_x, seed.center_y, 0, 0), None
    cv2.watershed(np.ascontiguousarray(image), markers)
    mask = (markers == _FOREGROUND).astype(np.uint8)
    x, y, rw, rh = cv2.boundingRect(mask)
    return Rect(int(x), int(y), int(rw), int(rh)), mask


def draw_region(image: np.ndarray, region: Region) -> None:
    """Draw the rotated/sheared region outline with a contrast border."""
    corners = quad_corners(RotatedRect.from_rect(region.rect, region.rotation), region.shear)
    pts = [np.round(corners).astype(np.int32)]
    cv2.polylines(image, pts, isClosed=True, color=(0, 0, 0), thickness=3)
    cv2.polylines(image, pts, isClosed=True, color=(0, 255, 255), thickness=1)


def draw_watershed(image: np.ndarray, seed: WatershedSeed, mask: Optional[np.ndarray]) -> None:
    """Tint the segmented foreground and draw the seed circle."""
    if mask is not None:
        tint = np.zeros_like(image)
        tint[:] = (0, 0, 255)
        blended = cv2.addWeighted(image, 0.6, tint, 0.4, 0)
        image[mask > 0] = blended[mask > 0]
    cv2.circle(image, seed.center, seed.radius, (255, 255, 255), 1, cv2.LINE_AA)


class Renderer:
    """
    Owns the display image and the cropped preview of the current frame.

    Both buffers are replaced on every frame or scale change. With
    `show=False` nothing is sent to HighGUI, which keeps tests headless.
    """

    def __init__(self, main_window: str, preview_window: str, show: bool = True) -> None:
        self.main_window = main_window
        self.preview_window = preview_window
        self.show = show
        self.source: Optional[np.ndarray] = None
        self.display: Optional[np.ndarray] = None
        self.preview: Optional[np.ndarray] = None
        self.scale = 1.0
        self._mask: Optional[np.ndarray] = None

    @property
    def display_size(self) -> Tuple[int, int]:
        if self.display is None:
            return 0, 0
        h, w = self.display.shape[:2]
        return w, h

    def open_windows(self) -> None:
        cv2.namedWindow(self.main_window, cv2.WINDOW_AUTOSIZE)
        cv2.namedWindow(self.preview_window, cv2.WINDOW_AUTOSIZE)

    def close_windows(self) -> None:
        cv2.destroyWindow(self.main_window)
        cv2.destroyWindow(self.preview_window)

    def set_frame(self, image: np.ndarray, scale: float) -> None:
        """Regenerate the display image for a new frame or scale."""
        self.source = image
        self.scale = scale
        self.display = resize_for_display(image, scale)
        self._mask = None
        print(f"Scale factor changed to {scale}")

    def segment(self, seed: WatershedSeed) -> Rect:
        """Watershed on the display image; used as the state machine's segmenter."""
        if self.display is None:
            return Rect()
        rect, self._mask = watershed_rect(self.display, seed)
        return rect

    def source_rect(self, region: Region) -> RotatedRect:
        return to_source(region.rect, self.scale, region.rotation)

    def redraw(self, selection: Selection) -> None:
        """Draw the frame with the selection overlay and refresh the preview."""
        if self.display is None or self.source is None:
            return
        canvas = self.display.copy()
        region = selection.region
        if isinstance(selection, WatershedSelection):
            draw_watershed(canvas, selection.seed, self._mask)
        draw_region(canvas, region)
        self.preview = crop_region(self.source, self.source_rect(region), region.shear)
        if self.show:
            cv2.imshow(self.main_window, canvas)
            if self.preview is not None:
                cv2.imshow(self.preview_window, self.preview)
