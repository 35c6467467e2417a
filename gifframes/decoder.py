"""
The decode driver: walks the block stream of a complete GIF buffer and produces composited frames lazily.

Every call builds its own cursor, LZW table and canvas, so independent decodes can run side by side.
"""

import logging
import typing as t

from .compositor import Compositor, Frame
from .errors import DataTruncatedError, FormatError, UnsupportedFeatureError
from .gif import (
    HEADER_SIZE,
    SCREEN_DESCRIPTOR_SIZE,
    GraphicControlExtension,
    _BlockType,
    _GifStream,
    load_file,
    open_file,
)
from .interlace import deinterlace
from .lzw import lzw_decompress

__all__ = (
    "decode",
    "decode_all",
    "decode_steps",
    "decode_file",
    "probe_size",
    "probe_size_file",
)

logger = logging.getLogger(__name__)


def decode_steps(data: bytes) -> t.Iterator[t.Optional[Frame]]:
    """
    Walk the GIF block by block. Yields None after every block that doesn't finish a frame, and a Frame after
    every image. The None steps are the points where a host can do other work before resuming.

    Stops early, without raising, if the data is truncated.

    Raises:
        `FormatError`: If the data isn't a GIF, or an image's LZW stream is corrupt.
    """
    gifstream = _GifStream(data)
    header = gifstream.consume_gif_header()

    compositor = Compositor(header.width, header.height, header.background_color)
    graphic_control: t.Optional[GraphicControlExtension] = None
    frame_count = 0

    yield None

    while True:
        try:
            blocktype = gifstream.check_blocktype()

            if blocktype == _BlockType.TRAILER:
                break
            elif blocktype == _BlockType.EXTENSION:
                ext = gifstream.consume_extension()
                if isinstance(ext, GraphicControlExtension):
                    if graphic_control is not None:
                        logger.debug("graphic control block replaces an unused one")
                    graphic_control = ext
                yield None
                continue

            block = gifstream.consume_image_block()
        except UnsupportedFeatureError as e:
            logger.warning("%s, skipping", e)
            continue
        except DataTruncatedError as e:
            logger.warning("GIF data is truncated after %d frames: %s", frame_count, e)
            break

        indices = lzw_decompress(block.data, block.lzw_min_code_size, block.expected_pixels)
        if len(indices) < block.expected_pixels:
            logger.debug("image %d decoded to %d of %d pixels", frame_count, len(indices), block.expected_pixels)

        if block.descriptor.interlaced:
            indices = deinterlace(indices, block.descriptor.width, block.descriptor.height)

        colortable = block.colortable if block.colortable is not None else header.colortable
        frame = compositor.composite(block, indices, colortable, graphic_control)

        # a control block only ever applies to the next image
        graphic_control = None
        frame_count += 1

        yield frame


def decode(data: bytes) -> t.Iterator[Frame]:
    """
    Decode a GIF into its frames, in file order. Lazy: each frame is decoded as it's requested. To start over,
    call decode again.
    """
    for step in decode_steps(data):
        if step is not None:
            yield step


def decode_all(data: bytes) -> t.List[Frame]:
    return list(decode(data))


def probe_size(data: bytes) -> t.Tuple[int, int]:
    """
    Logical screen size of a GIF. Only the header and screen descriptor are read, so `data` may be just the
    first 13 bytes of the file.
    """
    gifstream = _GifStream(data)
    try:
        gifstream.consume_header()
        screen = gifstream.consume_screen_descriptor()
    except DataTruncatedError as e:
        raise FormatError("GIF header is incomplete: {}".format(e)) from e

    return screen.width, screen.height


def decode_file(path: str) -> t.Iterator[Frame]:
    return decode(load_file(path))


def probe_size_file(path: str) -> t.Tuple[int, int]:
    with open_file(path) as cursor:
        return probe_size(cursor.read(HEADER_SIZE + SCREEN_DESCRIPTOR_SIZE))
