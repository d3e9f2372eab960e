"""
Command line entry point.

Usage:
    imageclipper [option]... [reference]
"""

from __future__ import annotations

import argparse
import sys
from typing import List, Optional

from imageclipper.config import (
    DEFAULT_IMGOUT_FORMAT,
    DEFAULT_VIDOUT_FORMAT,
    IMAGE_TYPES,
    ClipperConfig,
    build_config,
)
from imageclipper.errors import ClipperError
from imageclipper.media import open_reference
from imageclipper.session import ClipperSession

USAGE = f"""\
ImageClipper - image clipping helper tool.
Command Usage: imageclipper [option]... [arg_reference]
  <arg_reference = .>
    <arg_reference> would be a directory or an image or a video filename.
    For a directory, image files in the directory will be read sequentially.
    For an image, it starts to read a directory from the specified image file.
    (A file is judged as an image based on its filename extension.)
    A file except images is tried to be read as a video and read frame by frame.

  Options
    -o <output_format = imgout_format or vidout_format>
        Determine the output file path format.
        This is a syntax sugar for -i and -v.
        Format Expression)
            %d - dirname of the original
            %i - filename of the original without extension
            %e - filename extension of the original
            %x - upper-left x coord
            %y - upper-left y coord
            %w - width
            %h - height
            %r - rotation degree
            %. - shear deformation in x coord
            %, - shear deformation in y coord
            %f - frame number (for video)
        Example) ./%i_%04x_%04y_%04w_%04h.%e
            Store into software directory and use image type of the original.
    -i <imgout_format = {DEFAULT_IMGOUT_FORMAT}>
        Determine the output file path format for image inputs.
    -v <vidout_format = {DEFAULT_VIDOUT_FORMAT}>
        Determine the output file path format for a video input.
    -f
    --frame <frame = 1> (video)
        Determine the frame number of video to start to read.
    -h
    --help
        Show this help

  Supported Image Types
      {'|'.join(IMAGE_TYPES)}
"""

GUI_USAGE = """\
Application Usage:
  Mouse Usage:
    Left  (select)          : Select or initialize a rectangle region.
    Right (move or resize)  : Move by dragging inside the rectangle.
                              Resize by dragging outside the rectangle.
    Middle or SHIFT + Left  : Initialize the watershed marker. Drag it.
  Keyboard Usage:
    s (save)                : Save the selected region as an image.
    f (forward)             : Forward. Show next image.
    SPACE                   : Save and Forward.
    b (backward)            : Backward.
    q (quit) or ESC         : Quit.
    r (rotate) R (opposite) : Rotate rectangle in counter-clockwise.
    e (expand) E (shrink)   : Expand the rectangle size.
    + (incl)   - (decl)     : Increment the step size to increment.
    z (zoom in) x (zoom out): Change the display scale.
    h (left) j (down) k (up) l (right) : Move rectangle. (vi-like keybinds)
    y (left) u (down) i (up) o (right) : Resize rectangle. (Move boundaries)
    n (left) m (down) , (up) . (right) : Shear deformation.
"""


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="imageclipper", add_help=False)
    p.add_argument("reference", nargs="?", default=None)
    p.add_argument("-o", "--output_format", default=None)
    p.add_argument("-i", "--imgout_format", default=None)
    p.add_argument("-v", "--vidout_format", default=None)
    p.add_argument("-f", "--frame", default=None)
    p.add_argument("-h", "--help", action="store_true")
    return p


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse options; unrecognized flags are ignored."""
    args, _unknown = build_parser().parse_known_args(argv)
    return args


def config_from_args(args: argparse.Namespace) -> ClipperConfig:
    return build_config(
        reference=args.reference,
        output_format=args.output_format,
        imgout_format=args.imgout_format,
        vidout_format=args.vidout_format,
        frame=args.frame,
    )


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.help:
        print(USAGE)
        return 0
    try:
        config = config_from_args(args)
        print(GUI_USAGE)
        source = open_reference(config.reference, config.frame)
        session = ClipperSession(config, source)
        session.run()
    except ClipperError as e:
        print(e, file=sys.stderr)
        if e.show_usage:
            print(file=sys.stderr)
            print(USAGE, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
