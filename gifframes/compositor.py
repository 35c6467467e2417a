"""
Frame compositing. Each decoded image is drawn onto a persistent, screen-sized RGBA canvas according to the
disposal method of the graphic control block that preceded it, and a snapshot of the canvas becomes the frame.
"""

import logging
import typing as t

from PIL import Image

from .constants import DisposalMethod
from .gif import Colortable, GraphicControlExtension, ImageBlock

__all__ = (
    "Frame",
    "Compositor",
)

logger = logging.getLogger(__name__)

RGBA = t.Tuple[int, int, int, int]

# bytes per canvas pixel
PIXEL_SIZE = 4


class Frame:
    """
    One composited animation frame. Immutable once created.

    Args:
        delay_seconds: How long to show the frame.
        width: Logical screen width.
        height: Logical screen height.
        pixels: width * height RGBA pixels, row-major, 4 bytes each.
    """

    __slots__ = (
        "_delay_seconds",
        "_width",
        "_height",
        "_pixels",
    )

    def __init__(self, delay_seconds: float, width: int, height: int, pixels: bytes):
        if len(pixels) != width * height * PIXEL_SIZE:
            msg = "{} bytes of pixels for a {}x{} frame"
            raise ValueError(msg.format(len(pixels), width, height))

        self._delay_seconds = float(delay_seconds)
        self._width = width
        self._height = height
        self._pixels = bytes(pixels)

    def __repr__(self) -> str:
        return "Frame({}x{}, delay={}s)".format(self._width, self._height, self._delay_seconds)

    @property
    def delay_seconds(self) -> float:
        return self._delay_seconds

    @property
    def width(self) -> int:
        return self._width

    @property
    def height(self) -> int:
        return self._height

    @property
    def size(self) -> t.Tuple[int, int]:
        return self._width, self._height

    @property
    def pixels(self) -> bytes:
        return self._pixels

    def pixel(self, x: int, y: int) -> RGBA:
        if not (0 <= x < self._width and 0 <= y < self._height):
            raise IndexError("pixel ({}, {}) outside {}x{} frame".format(x, y, self._width, self._height))

        pos = (y * self._width + x) * PIXEL_SIZE
        r, g, b, a = self._pixels[pos:pos + PIXEL_SIZE]
        return r, g, b, a

    def to_image(self) -> Image.Image:
        """
        The frame as a Pillow image in RGBA mode.
        """
        return Image.frombytes("RGBA", self.size, self._pixels)


class Compositor:
    """
    Owns the canvas for one decode. Not shared between decodes.

    Args:
        width: Logical screen width.
        height: Logical screen height.
        background_color: RGBA used by RESTORE_BACKGROUND, and for indices the color table doesn't cover.
    """
    def __init__(self, width: int, height: int, background_color: RGBA = (0, 0, 0, 0)):
        self.width = width
        self.height = height
        self.background_color = tuple(background_color)

        # starts out fully transparent
        self.canvas = bytearray(width * height * PIXEL_SIZE)

        # spare buffer for RESTORE_PREVIOUS, allocated on first use
        self._snapshot: t.Optional[bytearray] = None

    def _palette(self, colortable: t.Optional[Colortable],
                 transparent_index: t.Optional[int]) -> t.List[bytes]:
        """
        Turn a color table into 256 RGBA entries, one per possible index.
        """
        background = bytes(self.background_color)
        palette = [background] * 256

        for i, (r, g, b) in enumerate(colortable or ()):
            palette[i] = bytes((r, g, b, 255))

        if transparent_index is not None:
            palette[transparent_index] = palette[transparent_index][:3] + b"\0"

        return palette

    def fill_background(self) -> None:
        self.canvas[:] = bytes(self.background_color) * (self.width * self.height)

    def _draw(self, block: ImageBlock, indices: t.Sequence[t.Optional[int]],
              palette: t.List[bytes], blend: bool) -> None:
        """
        Draw the image's pixels onto the canvas, clipped to the logical screen. None indices are skipped.
        """
        d = block.descriptor
        canvas = self.canvas

        # visible columns of the sub-image
        x_start = d.leftpos
        x_end = min(d.leftpos + d.width, self.width)
        if x_start >= x_end:
            return

        for row in range(d.height):
            y = d.toppos + row
            if y >= self.height:
                break

            src = row * d.width
            if src >= len(indices):
                break

            dst = (y * self.width + x_start) * PIXEL_SIZE
            for i in indices[src:src + x_end - x_start]:
                if i is not None:
                    color = palette[i]
                    if blend:
                        _blend_into(canvas, dst, color)
                    else:
                        canvas[dst:dst + PIXEL_SIZE] = color
                dst += PIXEL_SIZE

    def composite(
        self,
        block: ImageBlock,
        indices: t.Sequence[t.Optional[int]],
        colortable: t.Optional[Colortable],
        graphic_control: t.Optional[GraphicControlExtension] = None
    ) -> Frame:
        """
        Draw one decoded image and return the resulting frame.

        Args:
            block: The image, for its position and size.
            indices: Its decoded, de-interlaced color indices. May be short, or contain None for missing pixels.
            colortable: The local color table if the image has one, otherwise the global one.
            graphic_control: The control block that came right before the image, if any.
        """
        if colortable is None:
            logger.warning("image has no color table, drawing it in the background color")

        transparent_index = graphic_control.transparent_index if graphic_control else None
        palette = self._palette(colortable, transparent_index)

        if graphic_control is None:
            disposal = DisposalMethod.NONE
            delay = 0.0
        else:
            disposal = graphic_control.disposal_method
            delay = graphic_control.delay_seconds()

        if disposal is DisposalMethod.NO_DISPOSE:
            self._draw(block, indices, palette, blend=True)
            pixels = bytes(self.canvas)
        elif disposal is DisposalMethod.RESTORE_BACKGROUND:
            self.fill_background()
            self._draw(block, indices, palette, blend=False)
            pixels = bytes(self.canvas)
        elif disposal is DisposalMethod.RESTORE_PREVIOUS:
            if self._snapshot is None:
                self._snapshot = bytearray(len(self.canvas))
            self._snapshot[:] = self.canvas

            self._draw(block, indices, palette, blend=False)
            pixels = bytes(self.canvas)

            # the next frame starts from the canvas as it was before this one
            self.canvas, self._snapshot = self._snapshot, self.canvas
        else:
            self._draw(block, indices, palette, blend=False)
            pixels = bytes(self.canvas)

        return Frame(delay, self.width, self.height, pixels)


def _blend_into(canvas: bytearray, pos: int, color: bytes) -> None:
    """
    Alpha-weighted linear interpolation of `color` over the canvas pixel at `pos`, alpha channel included.
    """
    alpha = color[3]
    if alpha == 255:
        canvas[pos:pos + PIXEL_SIZE] = color
    elif alpha:
        for c in range(PIXEL_SIZE):
            dst = canvas[pos + c]
            canvas[pos + c] = dst + ((color[c] - dst) * alpha + 127) // 255
