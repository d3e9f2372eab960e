"""
Region-of-interest state machine.

Mouse:
  Left drag                 select a rectangle
  Middle or Shift+Left drag place a watershed marker and grow it
  Right drag                move (inside) or resize (outside) the rectangle,
                            move (inside) or resize (on the circle) the marker

Keyboard (vi-like, by the current increment):
  h j k l  move      y u i o  resize      n m , .  shear
  r R      rotate    e E      expand / shrink
  + -      change the increment
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Optional, Set, Tuple, Union

import cv2

from imageclipper.geometry import Point, Rect, bounding_rect, point_distance


@dataclass
class Region:
    """The crop rectangle in display coordinates, with rotation and shear."""

    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    rotation: int = 0  # degrees in [0, 360)
    shear_x: int = 0
    shear_y: int = 0

    @property
    def rect(self) -> Rect:
        return Rect(self.x, self.y, self.width, self.height)

    @property
    def shear(self) -> Tuple[int, int]:
        return self.shear_x, self.shear_y

    def set_rect(self, rect: Rect) -> None:
        self.x, self.y, self.width, self.height = rect.x, rect.y, rect.width, rect.height

    def clear_transform(self) -> None:
        self.rotation = 0
        self.shear_x = self.shear_y = 0

    def is_empty(self) -> bool:
        return self.width <= 0 or self.height <= 0


@dataclass
class WatershedSeed:
    center_x: int = 0
    center_y: int = 0
    radius: int = 0

    @property
    def center(self) -> Point:
        return self.center_x, self.center_y


@dataclass
class RectangleSelection:
    region: Region = field(default_factory=Region)


@dataclass
class WatershedSelection:
    seed: WatershedSeed
    region: Region = field(default_factory=Region)  # derived from the segmentation


Selection = Union[RectangleSelection, WatershedSelection]


# Interaction states. Anchors are the pointer position of the previous event.


@dataclass
class Idle:
    pass


@dataclass
class DraggingRect:
    anchor: Point


@dataclass
class MovingRect:
    anchor: Point


@dataclass
class ResizingRect:
    anchor: Point
    edges: Set[str]  # subset of {"left", "right", "top", "bottom"}


@dataclass
class DraggingWatershedSeed:
    pass


@dataclass
class MovingWatershedSeed:
    anchor: Point


@dataclass
class ResizingWatershedSeed:
    anchor: Point


InteractionState = Union[
    Idle,
    DraggingRect,
    MovingRect,
    ResizingRect,
    DraggingWatershedSeed,
    MovingWatershedSeed,
    ResizingWatershedSeed,
]

Segmenter = Callable[[WatershedSeed], Rect]

_BUTTON_UP = (cv2.EVENT_LBUTTONUP, cv2.EVENT_MBUTTONUP, cv2.EVENT_RBUTTONUP)


def _wrap_coordinate(v: int) -> int:
    # HighGUI reports positions left of / above the window as unsigned 16-bit.
    return v - 65536 if v >= 32768 else v


class RoiStateMachine:
    """Owns the active selection and mutates it from pointer and key events."""

    def __init__(self, segmenter: Optional[Segmenter] = None, increment: int = 1) -> None:
        self.selection: Selection = RectangleSelection()
        self.state: InteractionState = Idle()
        self.segmenter = segmenter
        self.increment = max(1, increment)
        self.bounds: Tuple[int, int] = (0, 0)  # display image (width, height)

    @property
    def region(self) -> Region:
        return self.selection.region

    @property
    def watershed(self) -> bool:
        return isinstance(self.selection, WatershedSelection)

    # ------------------------------------------------------------------ mouse

    def on_pointer(self, event: int, x: int, y: int, flags: int) -> bool:
        """Feed one OpenCV mouse event. Returns True when the selection changed."""
        point = (_wrap_coordinate(x), _wrap_coordinate(y))

        if event == cv2.EVENT_MBUTTONDOWN or (
            event == cv2.EVENT_LBUTTONDOWN and flags & cv2.EVENT_FLAG_SHIFTKEY
        ):
            self._begin_watershed(point)
            return True
        if event == cv2.EVENT_LBUTTONDOWN:
            self._begin_rectangle(point)
            return True
        if event == cv2.EVENT_RBUTTONDOWN:
            was_watershed = self.watershed
            self._classify_move_resize(point)
            return was_watershed != self.watershed
        if event in _BUTTON_UP:
            self.state = Idle()
            return False
        if event == cv2.EVENT_MOUSEMOVE:
            return self._on_move(point)
        return False

    def _begin_rectangle(self, point: Point) -> None:
        region = self.region
        region.clear_transform()
        self.selection = RectangleSelection(region)
        self.state = DraggingRect(anchor=point)

    def _begin_watershed(self, point: Point) -> None:
        region = self.region
        region.clear_transform()
        self.selection = WatershedSelection(seed=WatershedSeed(point[0], point[1], 0), region=region)
        self.state = DraggingWatershedSeed()
        self.resegment()

    def _classify_move_resize(self, point: Point) -> None:
        if isinstance(self.selection, WatershedSelection):
            seed = self.selection.seed
            distance = int(point_distance(seed.center, point))
            if seed.radius - 1 <= distance <= seed.radius:
                self.state = ResizingWatershedSeed(anchor=point)
                return
            if distance <= seed.radius:
                self.state = MovingWatershedSeed(anchor=point)
                return
            self.selection = RectangleSelection(self.selection.region)

        rect = self.region.rect
        if rect.contains_strictly(point):
            self.state = MovingRect(anchor=point)
            return
        px, py = point
        edges: Set[str] = set()
        if px <= rect.x:
            edges.add("left")
        elif px >= rect.right:
            edges.add("right")
        if py <= rect.y:
            edges.add("top")
        elif py >= rect.bottom:
            edges.add("bottom")
        self.state = ResizingRect(anchor=point, edges=edges)

    def _on_move(self, point: Point) -> bool:
        state = self.state
        region = self.region
        if isinstance(state, DraggingRect):
            region.set_rect(bounding_rect(state.anchor, point))
            return True
        if isinstance(state, MovingRect):
            region.x += point[0] - state.anchor[0]
            region.y += point[1] - state.anchor[1]
            state.anchor = point
            return True
        if isinstance(state, ResizingRect):
            self._resize(state, point)
            return True
        if isinstance(self.selection, WatershedSelection):
            seed = self.selection.seed
            if isinstance(state, (DraggingWatershedSeed, ResizingWatershedSeed)):
                seed.radius = int(point_distance(seed.center, point))
            elif isinstance(state, MovingWatershedSeed):
                seed.center_x += point[0] - state.anchor[0]
                seed.center_y += point[1] - state.anchor[1]
                state.anchor = point
            else:
                return False
            self.resegment()
            return True
        return False

    def _resize(self, state: ResizingRect, point: Point) -> None:
        region = self.region
        dx = point[0] - state.anchor[0]
        dy = point[1] - state.anchor[1]
        edges = state.edges
        if "left" in edges:
            region.x += dx
            region.width -= dx
        elif "right" in edges:
            region.width += dx
        if "top" in edges:
            region.y += dy
            region.height -= dy
        elif "bottom" in edges:
            region.height += dy

        # dragged past the opposite edge: flip and track with the other edge
        if region.width <= 0:
            region.x += region.width
            region.width = -region.width
            _swap(edges, "left", "right")
        if region.height <= 0:
            region.y += region.height
            region.height = -region.height
            _swap(edges, "top", "bottom")
        state.anchor = point

    def resegment(self) -> None:
        """Re-derive the watershed region, e.g. after the display image changed."""
        if not isinstance(self.selection, WatershedSelection) or self.segmenter is None:
            return
        self.selection.region.set_rect(self.segmenter(self.selection.seed))

    # --------------------------------------------------------------- keyboard

    def on_key(self, key: str) -> bool:
        """Apply a keyboard edit to the selection. Returns True when handled."""
        inc = self.increment
        if key == "+":
            self.increment += 1
            print(f"Inc: {self.increment}")
            return True
        if key == "-":
            self.increment = max(1, self.increment - 1)
            print(f"Inc: {self.increment}")
            return True

        region = self.region
        if key == "n":
            region.shear_x -= inc
        elif key == ".":
            region.shear_x += inc
        elif key == "m":
            region.shear_y += inc
        elif key == ",":
            region.shear_y -= inc
        elif key == "r":
            region.rotation = (region.rotation + inc) % 360
        elif key == "R":
            region.rotation = (region.rotation - inc) % 360
        elif isinstance(self.selection, WatershedSelection):
            if not self._edit_seed(self.selection.seed, key, inc):
                return False
            self.resegment()
        elif not self._edit_rect(region, key, inc):
            return False
        return True

    @staticmethod
    def _edit_seed(seed: WatershedSeed, key: str, inc: int) -> bool:
        if key == "h":
            seed.center_x -= inc
        elif key == "l":
            seed.center_x += inc
        elif key == "k":
            seed.center_y -= inc
        elif key == "j":
            seed.center_y += inc
        elif key in ("u", "o", "e"):
            seed.radius += inc
        elif key in ("y", "i", "E"):
            seed.radius = max(0, seed.radius - inc)
        else:
            return False
        return True

    def _edit_rect(self, region: Region, key: str, inc: int) -> bool:
        bound_w, bound_h = self.bounds
        if key == "h":
            region.x -= inc
        elif key == "l":
            region.x += inc
        elif key == "k":
            region.y -= inc
        elif key == "j":
            region.y += inc
        elif key == "y":
            region.width = max(0, region.width - inc)
        elif key == "o":
            region.width += inc
        elif key == "i":
            region.height = max(0, region.height - inc)
        elif key == "u":
            region.height += inc
        elif key == "e":
            region.x = max(0, region.x - inc)
            region.width += 2 * inc
            region.y = max(0, region.y - inc)
            region.height += 2 * inc
        elif key == "E":
            region.x = min(bound_w, region.x + inc)
            region.width = max(0, region.width - 2 * inc)
            region.y = min(bound_h, region.y + inc)
            region.height = max(0, region.height - 2 * inc)
        else:
            return False
        return True


def _swap(edges: Set[str], a: str, b: str) -> None:
    has_a, has_b = a in edges, b in edges
    edges.discard(a)
    edges.discard(b)
    if has_a:
        edges.add(b)
    if has_b:
        edges.add(a)
