"""
ImageClipper: interactive image clipping helper.

Pipeline:
  Media source: directory of images, single image within its directory, or video
  Selection:    mouse/keyboard driven rectangle or watershed marker
  Render:       display image fit to screen, overlay and cropped preview
  Export:       rotated/sheared crop written to a templated output path
"""

__version__ = "1.0.0"

__all__ = ["__version__"]
