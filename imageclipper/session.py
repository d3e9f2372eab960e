"""Interactive clipping session: the frame, selection and scale, plus the event loop."""

from __future__ import annotations

from typing import Optional

import cv2

from imageclipper.config import MAIN_WINDOW, PREVIEW_WINDOW, ClipperConfig
from imageclipper.export import export_selection
from imageclipper.media import Frame, MediaSource
from imageclipper.render import Renderer, fit_to_screen
from imageclipper.selection import Region, RoiStateMachine

KEY_ESC = 27
KEY_SPACE = 32
ZOOM_IN = 1.05
ZOOM_OUT = 0.95


class ClipperSession:
    """
    Aggregate of the current frame, active selection, scale factor, increment
    and media cursor. All mutation happens on the thread running `run`.
    """

    def __init__(self, config: ClipperConfig, source: MediaSource, renderer: Optional[Renderer] = None) -> None:
        self.config = config
        self.source = source
        self.renderer = renderer if renderer is not None else Renderer(MAIN_WINDOW, PREVIEW_WINDOW)
        self.template = config.resolve_output_format(source.is_video)
        self.machine = RoiStateMachine(segmenter=self.renderer.segment, increment=config.increment)
        self.frame: Frame = source.current()
        self.scale = 1.0
        self._show_frame(self.frame)

    @property
    def region(self) -> Region:
        return self.machine.region

    def _show_frame(self, frame: Frame, scale: Optional[float] = None) -> None:
        if scale is None:
            h, w = frame.image.shape[:2]
            scale, _ = fit_to_screen(w, h, self.config.screen_size)
        self.frame = frame
        self.scale = scale
        self.renderer.set_frame(frame.image, scale)
        self.machine.bounds = self.renderer.display_size
        self.machine.resegment()

    def redraw(self) -> None:
        self.renderer.redraw(self.machine.selection)

    # ------------------------------------------------------------- operations

    def zoom(self, factor: float) -> None:
        self._show_frame(self.frame, self.scale * factor)

    def save(self) -> Optional[str]:
        """Write the current crop; zero-area regions are ignored."""
        return export_selection(
            self.frame.image,
            self.frame.path,
            self.region,
            self.scale,
            self.template,
            self.frame.number,
        )

    def forward(self) -> bool:
        frame = self.source.advance()
        if frame is None:
            return False
        self._show_frame(frame)
        return True

    def backward(self) -> bool:
        frame = self.source.retreat()
        if frame is None:
            return False
        self._show_frame(frame)
        return True

    # ----------------------------------------------------------------- events

    def on_mouse(self, event: int, x: int, y: int, flags: int, userdata=None) -> None:  # noqa: ARG002
        """HighGUI mouse callback."""
        if self.machine.on_pointer(event, x, y, flags):
            self.redraw()

    def handle_key(self, key: int) -> bool:
        """Handle one key code. Returns False when the session should end."""
        if key in (ord("q"), KEY_ESC):
            return False
        ch = chr(key)
        if ch == "z":
            self.zoom(ZOOM_IN)
        elif ch == "x":
            self.zoom(ZOOM_OUT)

        # SPACE saves, then moves forward
        if ch == "s" or key == KEY_SPACE:
            self.save()
        if ch == "f" or key == KEY_SPACE:
            self.forward()
        elif ch == "b":
            self.backward()
        else:
            self.machine.on_key(ch)
        self.redraw()
        return True

    def run(self) -> None:
        """Block on key presses until the user quits."""
        self.renderer.open_windows()
        cv2.setMouseCallback(self.renderer.main_window, self.on_mouse)
        self.redraw()
        try:
            while True:
                key = cv2.waitKey(0) & 0xFF
                if not self.handle_key(key):
                    break
        finally:
            self.renderer.close_windows()
            self.source.close()
