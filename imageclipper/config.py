"""Runtime configuration for a clipping session."""

from __future__ import annotations

from pathlib import Path
from typing import Optional, Tuple

from pydantic import BaseModel, Field, ValidationError

from imageclipper.errors import ConfigError

IMAGE_TYPES: Tuple[str, ...] = (
    "bmp",
    "dib",
    "jpeg",
    "jpg",
    "jpe",
    "png",
    "pbm",
    "pgm",
    "ppm",
    "sr",
    "ras",
    "tiff",
    "exr",
    "jp2",
)

DEFAULT_IMGOUT_FORMAT = "%d/imageclipper/%i.%e_%04r_%04x_%04y_%04w_%04h.png"
DEFAULT_VIDOUT_FORMAT = "%d/imageclipper/%i.%e_%04f_%04r_%04x_%04y_%04w_%04h.png"

MAIN_WINDOW = "<S> Save <F> Forward <SPACE> s and f <B> Backward <ESC> Exit"
PREVIEW_WINDOW = "Cropped"


class ClipperConfig(BaseModel):
    reference: str = "."
    output_format: Optional[str] = None
    imgout_format: str = DEFAULT_IMGOUT_FORMAT
    vidout_format: str = DEFAULT_VIDOUT_FORMAT
    frame: int = Field(1, ge=1)  # first video frame, 1-based
    screen_width: int = Field(1366, gt=0)
    screen_height: int = Field(768, gt=0)
    increment: int = Field(1, ge=1)

    @property
    def screen_size(self) -> Tuple[int, int]:
        return self.screen_width, self.screen_height

    def resolve_output_format(self, is_video: bool) -> str:
        """`-o` wins; otherwise the video or image template."""
        if self.output_format is not None:
            return self.output_format
        return self.vidout_format if is_video else self.imgout_format


def build_config(**values) -> ClipperConfig:
    """Validate option values, dropping the ones that were not given."""
    given = {k: v for k, v in values.items() if v is not None}
    try:
        return ClipperConfig(**given)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigError(f"Invalid option value ({problems})") from e


def is_image_type(path: str) -> bool:
    """Judge a path as an image by its filename extension."""
    return Path(path).suffix.lstrip(".").lower() in IMAGE_TYPES
