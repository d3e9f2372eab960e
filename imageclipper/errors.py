"""Error types raised by the clipper. All of them are fatal for the CLI."""


class ClipperError(Exception):
    """Base class for errors that abort the clipping session."""

    show_usage = False


class ConfigError(ClipperError, ValueError):
    """Invalid option value."""

    show_usage = True


class ReferenceNotFound(ClipperError, FileNotFoundError):
    """The directory, image or video reference does not exist or is not readable."""

    show_usage = True


class EmptyDirectory(ClipperError):
    """A directory reference holds no supported image files."""

    show_usage = True


class UnsupportedFormat(ClipperError, ValueError):
    """The resolved output extension is not a supported image type."""


class ExportError(ClipperError):
    """The crop could not be encoded or written."""
