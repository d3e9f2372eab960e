"""
Crop the selected region out of the full-resolution source and write it.

Output path template expressions:
  %d  dirname of the original
  %i  filename of the original without extension
  %e  filename extension of the original
  %x %y %w %h  upper-left x, y, width, height in source pixels
  %r  rotation degree
  %.  %,  shear deformation in x, y
  %f  frame number (for video)
Numeric expressions take a printf-style width, e.g. %04x.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Optional, Tuple

import cv2
import numpy as np

from imageclipper.config import IMAGE_TYPES, is_image_type
from imageclipper.errors import ExportError, UnsupportedFormat
from imageclipper.geometry import RotatedRect, Shear, quad_corners, to_source
from imageclipper.selection import Region

# OpenCV only writes EXR when this is set before the first EXR call.
os.environ.setdefault("OPENCV_IO_ENABLE_OPENEXR", "1")

_TOKEN = re.compile(r"%(\d*)([diexywhr.,f%])")


def format_output_path(
    template: str,
    source_path: str,
    rect: Tuple[int, int, int, int],
    rotation: int = 0,
    shear: Tuple[int, int] = (0, 0),
    frame: int = 0,
) -> str:
    """Substitute the template expressions for one crop."""
    path = Path(source_path)
    strings = {
        "d": str(path.parent),
        "i": path.stem,
        "e": path.suffix.lstrip("."),
        "%": "%",
    }
    x, y, w, h = rect
    numbers = {
        "x": x,
        "y": y,
        "w": w,
        "h": h,
        "r": rotation,
        ".": shear[0],
        ",": shear[1],
        "f": frame,
    }

    def substitute(match: re.Match) -> str:
        width, token = match.group(1), match.group(2)
        if token in strings:
            return strings[token]
        return format(int(numbers[token]), f"{width}d")

    return _TOKEN.sub(substitute, template)


def crop_region(image: np.ndarray, rect: RotatedRect, shear: Shear = (0.0, 0.0)) -> Optional[np.ndarray]:
    """
    Sample the (possibly rotated and sheared) quadrilateral into an upright crop.

    The output is int(width) x int(height); pixels outside the source are black.
    """
    w, h = int(rect.width), int(rect.height)
    if w <= 0 or h <= 0:
        return None
    corners = quad_corners(rect, shear)
    src = np.array([corners[0], corners[1], corners[3]], dtype=np.float32)
    dst = np.array([[0, 0], [w, 0], [0, h]], dtype=np.float32)
    matrix = cv2.getAffineTransform(src, dst)
    axis_aligned = rect.angle % 360 == 0 and shear[0] == 0 and shear[1] == 0
    interpolation = cv2.INTER_NEAREST if axis_aligned else cv2.INTER_LINEAR
    return cv2.warpAffine(
        image,
        matrix,
        (w, h),
        flags=interpolation,
        borderMode=cv2.BORDER_CONSTANT,
        borderValue=0,
    )


def _prepare_for_codec(ext: str, image: np.ndarray) -> np.ndarray:
    """Convert a BGR crop to the layout the codec for `ext` accepts."""
    if ext in ("pbm", "pgm") and image.ndim == 3:
        return cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
    if ext == "exr" and image.dtype != np.float32:
        return image.astype(np.float32) / 255.0
    return image


def encode_image(path: str, image: np.ndarray) -> np.ndarray:
    """Encode the crop for the extension of `path`, without touching the disk."""
    suffix = Path(path).suffix
    ext = suffix.lstrip(".").lower()
    try:
        ok, buf = cv2.imencode(suffix, _prepare_for_codec(ext, image))
    except cv2.error as e:
        raise ExportError(f"The image type {ext} is not available in this OpenCV build: {e}") from e
    if not ok:
        raise ExportError(f"The image type {ext} could not be encoded.")
    return buf


def write_image(path: str, image: np.ndarray) -> None:
    """Image writer counterpart of the unicode-safe loader."""
    buf = encode_image(path, image)
    try:
        Path(path).parent.mkdir(parents=True, exist_ok=True)
        buf.tofile(path)
    except OSError as e:
        raise ExportError(f"Could not write {path}: {e}") from e


def export_selection(
    image: np.ndarray,
    source_path: str,
    region: Region,
    scale: float,
    template: str,
    frame: int = 0,
) -> Optional[str]:
    """Crop the region (display coordinates) from the source and write it.

    Returns the written path, or None when the region has no area.
    """
    if region.is_empty():
        return None
    src_rect = to_source(region.rect, scale, region.rotation)
    rect_fields = (int(src_rect.x), int(src_rect.y), int(src_rect.width), int(src_rect.height))
    print(f"Scale factor is {scale}, source rect is {', '.join(str(v) for v in rect_fields)}")

    output_path = format_output_path(
        template, source_path, rect_fields, region.rotation, region.shear, frame
    )
    if not is_image_type(output_path):
        ext = Path(output_path).suffix.lstrip(".")
        raise UnsupportedFormat(
            f"The image type {ext} is not supported. Supported: {'|'.join(IMAGE_TYPES)}"
        )

    crop = crop_region(image, src_rect, region.shear)
    if crop is None:
        return None
    write_image(output_path, crop)
    print(os.path.realpath(output_path))
    return output_path
