"""
Exceptions raised while reading GIF data. These are part of the public API.
"""

__all__ = (
    "GifStreamException",
    "FormatError",
    "DataTruncatedError",
    "UnsupportedFeatureError",
)


class GifStreamException(Exception):
    """
    Raised on errors parsing a GIF file. Base class of every error in this package.
    """
    pass


class FormatError(GifStreamException):
    """
    The data is not a GIF, or is broken beyond recovery. Aborts the decode.
    """
    pass


class DataTruncatedError(GifStreamException):
    """
    Ran out of bytes (or bits) before a block was complete. The decoder stops, but frames already produced are
    kept.
    """
    pass


class UnsupportedFeatureError(GifStreamException):
    """
    An unrecognized block flag or extension label. The block is skipped and decoding continues.
    """
    pass
