"""
Media sources: successive frames from a directory of images or a video.

A reference is classified as
  - a directory: every supported image file in it, sorted by path
  - an image (judged by extension): its directory, starting at that file
  - anything else: a video, read frame by frame
"""

from __future__ import annotations

import os
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np

from imageclipper.config import is_image_type
from imageclipper.errors import EmptyDirectory, ReferenceNotFound


@dataclass
class Frame:
    image: np.ndarray
    path: str  # file the frame came from (the video file for videos)
    number: int  # 1-based position in the listing or video


def load_image(path: str) -> np.ndarray:
    """Robust image loader that supports unicode paths.

    Returns a BGR `np.ndarray`.
    """
    try:
        data = np.fromfile(path, dtype=np.uint8)
    except OSError as e:
        raise ReferenceNotFound(f"The image file {path} is not readable.") from e
    img = cv2.imdecode(data, cv2.IMREAD_COLOR)
    if img is None or img.size == 0:
        raise ReferenceNotFound(f"Failed to load image: {path}")
    return img


def list_images(directory: str) -> List[str]:
    """Supported image files directly under a directory, sorted by path."""
    return sorted(
        str(p) for p in Path(directory).iterdir() if p.is_file() and is_image_type(p.name)
    )


class MediaSource(ABC):
    """Cursor over an ordered sequence of frames."""

    is_video = False

    @abstractmethod
    def current(self) -> Frame:
        ...

    @abstractmethod
    def advance(self) -> Optional[Frame]:
        """Step to the next frame, or return None at the end."""

    @abstractmethod
    def retreat(self) -> Optional[Frame]:
        """Step to the previous frame, or return None at the start."""

    def close(self) -> None:
        pass


class DirectorySource(MediaSource):
    def __init__(self, files: List[str], start: int = 0) -> None:
        if not files:
            raise EmptyDirectory("No image files to show")
        self.files = files
        self.index = start
        self._frame = self._load(start)

    @classmethod
    def from_directory(cls, directory: str) -> "DirectorySource":
        files = list_images(directory)
        if not files:
            raise EmptyDirectory(f"No image file exist under a directory {os.path.realpath(directory)}")
        return cls(files)

    @classmethod
    def from_image(cls, image_path: str) -> "DirectorySource":
        if not os.path.isfile(image_path):
            raise ReferenceNotFound(f"The image file {os.path.realpath(image_path)} does not exist.")
        target = os.path.realpath(image_path)
        files = list_images(os.path.dirname(image_path) or ".")
        start = 0
        for i, f in enumerate(files):
            if os.path.realpath(f) == target:
                start = i
                break
        return cls(files, start)

    def _load(self, index: int) -> Frame:
        path = self.files[index]
        image = load_image(path)
        print(f"Now showing {os.path.realpath(path)}")
        return Frame(image=image, path=path, number=index + 1)

    def current(self) -> Frame:
        return self._frame

    def advance(self) -> Optional[Frame]:
        if self.index + 1 >= len(self.files):
            return None
        self._frame = self._load(self.index + 1)
        self.index += 1
        return self._frame

    def retreat(self) -> Optional[Frame]:
        if self.index == 0:
            return None
        self._frame = self._load(self.index - 1)
        self.index -= 1
        return self._frame


class VideoSource(MediaSource):
    """
    Frame-indexed cursor over a video.

    Captures cannot step backward, so `retreat` seeks to the previous frame
    index and reads it again.
    """

    is_video = True

    def __init__(self, path: str, frame: int = 1) -> None:
        if not os.path.exists(path):
            raise ReferenceNotFound(f"The file {os.path.realpath(path)} does not exist or is not readable.")
        self.path = path
        self.capture = cv2.VideoCapture(os.path.realpath(path))
        if not self.capture.isOpened():
            raise ReferenceNotFound(f"The file {os.path.realpath(path)} was assumed as a video, but not loadable.")
        self.frame = frame
        image = self._read_at(frame)
        if image is None:
            self.capture.release()
            raise ReferenceNotFound(f"The file {os.path.realpath(path)} was assumed as a video, but not loadable.")
        self._frame = Frame(image=image, path=path, number=frame)
        total = int(self.capture.get(cv2.CAP_PROP_FRAME_COUNT))
        print(f"{total} frames totally.")
        print(f"Now showing {os.path.realpath(path)} {frame}")

    def _read_at(self, frame: int) -> Optional[np.ndarray]:
        self.capture.set(cv2.CAP_PROP_POS_FRAMES, frame - 1)
        ok, image = self.capture.read()
        return image if ok else None

    def current(self) -> Frame:
        return self._frame

    def advance(self) -> Optional[Frame]:
        ok, image = self.capture.read()
        if not ok or image is None:
            return None
        self.frame += 1
        self._frame = Frame(image=image, path=self.path, number=self.frame)
        print(f"Now showing {os.path.realpath(self.path)} {self.frame}")
        return self._frame

    def retreat(self) -> Optional[Frame]:
        self.frame = max(1, self.frame - 1)
        image = self._read_at(self.frame)
        if image is None:
            return None
        self._frame = Frame(image=image, path=self.path, number=self.frame)
        print(f"Now showing {os.path.realpath(self.path)} {self.frame}")
        return self._frame

    def close(self) -> None:
        self.capture.release()


def open_reference(reference: str, frame: int = 1) -> MediaSource:
    """Pick the media source for a directory, image or video reference."""
    if os.path.isdir(reference):
        print("Now reading a directory.....")
        return DirectorySource.from_directory(reference)
    if is_image_type(reference):
        print("Now reading a directory.....")
        return DirectorySource.from_image(reference)
    print("Now reading a video.....")
    return VideoSource(reference, frame)
