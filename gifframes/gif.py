from enum import Enum
import logging
from mmaputils import MmapCursor
import os
import struct
import typing as t

from .constants import *
from .cursor import ByteCursor
from .errors import *

__all__ = (
    "Colortable",
    "Gif",
    "GifHeader",
    "GifImage",
    "ImageBlock",
    "LogicalScreenDescriptor",
    "ImageDescriptor",
    "GraphicControlExtension",
    "CommentExtension",
    "PlainTextExtension",
    "ApplicationExtension",
    "load_file",
    "open_file",
    "parse_header",
)

logger = logging.getLogger(__name__)

# A type alias for color tables.
Colortable = t.Tuple[t.Tuple[int, int, int], ...]

# An extension block model, as returned by _GifStream.consume_extension().
Extension = t.Union[
    "GraphicControlExtension",
    "CommentExtension",
    "PlainTextExtension",
    "ApplicationExtension",
]

# Internal constants for reading GIF files.

# Size of "GIF" + version, and of the logical screen descriptor that must follow.
HEADER_SIZE = 6
SCREEN_DESCRIPTOR_SIZE = 7

# Image descriptor size, not counting the separator byte.
IMAGE_DESCRIPTOR_SIZE = 9

# Fixed block sizes of the extensions that have one.
GRAPHIC_CONTROL_SIZE = 4
PLAINTEXT_SIZE = 12
APPLICATION_SIZE = 11

# GIF versions.
GIF_SIGNATURE = "GIF"
GIF_87a = "87a"
GIF_89a = "89a"
VALID_GIF_REVS = {
    GIF_87a: GifVersion.GIF87a,
    GIF_89a: GifVersion.GIF89a
}

# Application extensions that carry the animation loop count.
LOOPING_APPLICATIONS = [
    ("NETSCAPE", b"2.0"),
    ("ANIMEXTS", b"1.0")
]

TRANSPARENT = (0, 0, 0, 0)


def open_file(path: str) -> MmapCursor:
    """
    Map a GIF file for reading.

    Raises:
        `FormatError`: If the file is empty, which can not be mapped.
        `OSError`: If the file can not be opened. MmapCursor opens read-write, so this includes read-only files.
    """
    if os.path.getsize(path) == 0:
        raise FormatError("0 bytes is too short for a GIF header")

    return MmapCursor(path, byteorder="little")


def load_file(path: str) -> bytes:
    """
    Read a whole GIF file into memory. The decoder always works on a complete buffer.
    """
    with open_file(path) as cursor:
        return cursor.read(len(cursor.m))


# Formatting helpers
def _yesno(pred: bool) -> str:
    return "yes" if pred else "no"


def _sortyesno(is_sorted: bool) -> str:
    return "sorted" if is_sorted else "unsorted"


def _print_colortable(table: Colortable, title: str, verbose: bool = False) -> None:
    print("-- {} ({} colors)".format(title, len(table)))

    if not verbose:
        print("    (pass --verbose to list them)")
        return

    for n, (r, g, b) in enumerate(table):
        print("    {:3d}: ({}, {}, {})".format(n, r, g, b))


def _colortable_string(exists: bool, num_colors: int, is_sorted: bool, background: t.Optional[int] = None) -> str:
    if not exists:
        return "absent"

    s = "present, {} colors, {}".format(num_colors, _sortyesno(is_sorted))
    if background is not None:
        s += "\n    background index: {}".format(background)
    return s


SCREEN_DESCRIPTOR_TEMPLATE = """
-- Logical Screen Descriptor
screen size:        {d.width}x{d.height}
pixel aspect ratio: {d.pixel_aspect_ratio}
color resolution:   {d.color_resolution}
global colortable:  {colortable_string}"""

IMAGE_DESCRIPTOR_TEMPLATE = """
-- Image Descriptor
image coords:     {d.width}x{d.height}@({d.leftpos}, {d.toppos})
interlaced:       {yesno_interlaced}
local colortable: {colortable_string}"""

GRAPHIC_CONTROL_EXTENSION_TEMPLATE = """
-- Graphic Control Extension Block
disposal method: {e.disposal_method.name}
delay time:      {delay_ms} ms
transparency:    {transparency_string}
user input flag: {yesno_userinput}"""

COMMENT_EXTENSION_TEMPLATE = """
-- Comment Extension Block
{text!r}"""

PLAINTEXT_EXTENSION_TEMPLATE = """
-- Plain Text Extension Block
text grid:   {e.grid_width}x{e.grid_height}@({e.grid_left}, {e.grid_top})
cell size:   {e.cell_width}x{e.cell_height}
colors:      fg {e.foreground_color_index}, bg {e.background_color_index}
text:        {e.text!r}"""

APPLICATION_EXTENSION_TEMPLATE = """
-- Application Extension Block
application: {e.identifier} {auth}
data size:   {data_size}
loop count:  {loop_count}"""


class LogicalScreenDescriptor:
    """
    The 7 bytes after the signature: screen size, background color index, and how the global color table (if
    any) is laid out. Present in every GIF.
    """
    def __init__(self):
        self.width = 0
        self.height = 0
        self.background_color_index = 0
        self.pixel_aspect_ratio = 0

        # packed fields
        self.colortable_exists = False
        self.color_resolution = 0
        self.colortable_is_sorted = False
        self.colortable_size = 0

    def num_colors(self) -> int:
        return 2 << self.colortable_size

    def pretty_print(self) -> None:
        colortable_string = _colortable_string(self.colortable_exists, self.num_colors(),
                                               self.colortable_is_sorted, self.background_color_index)
        print(SCREEN_DESCRIPTOR_TEMPLATE.format(d=self, colortable_string=colortable_string))


class ImageDescriptor:
    """
    Where an image sits on the logical screen, whether its rows are interlaced, and how its local color table
    (if any) is laid out. One per image.
    """
    def __init__(self):
        self.leftpos = 0
        self.toppos = 0
        self.width = 0
        self.height = 0

        # packed fields
        self.interlaced = False
        self.colortable_exists = False
        self.colortable_is_sorted = False
        self.colortable_size = 0

    def num_colors(self) -> int:
        return 2 << self.colortable_size

    def pretty_print(self) -> None:
        colortable_string = _colortable_string(self.colortable_exists, self.num_colors(),
                                               self.colortable_is_sorted)
        print(IMAGE_DESCRIPTOR_TEMPLATE.format(
            d=self,
            yesno_interlaced=_yesno(self.interlaced),
            colortable_string=colortable_string))


class GraphicControlExtension:
    """
    Per-image animation controls: delay, disposal method and transparent index. GIF89a only, and optional even
    there. Applies to the next image in the stream and no other.
    """
    def __init__(self):
        self.disposal_method = DisposalMethod.NONE
        self.user_input_flag = False
        self.transparent_flag = False
        self.transparent_color = 0
        self.delay = 0  # centiseconds

    @property
    def transparent_index(self) -> t.Optional[int]:
        """
        The transparent color index, or None if this block doesn't declare one.
        """
        return self.transparent_color if self.transparent_flag else None

    def delay_ms(self) -> int:
        return self.delay * 10

    def delay_seconds(self) -> float:
        return self.delay / 100

    def pretty_print(self) -> None:
        transparency_string = _yesno(self.transparent_flag)
        if self.transparent_flag:
            transparency_string += " (index {})".format(self.transparent_color)

        print(GRAPHIC_CONTROL_EXTENSION_TEMPLATE.format(
            e=self,
            delay_ms=self.delay_ms(),
            transparency_string=transparency_string,
            yesno_userinput=_yesno(self.user_input_flag)))


class CommentExtension:
    """
    Free-form text embedded in the file. Has no effect on rendering.
    """
    def __init__(self, text: str = ""):
        self.text = text

    def pretty_print(self) -> None:
        print(COMMENT_EXTENSION_TEMPLATE.format(text=self.text))


class PlainTextExtension:
    """
    Model of a plain text extension block: text to be drawn on a character grid over the logical screen. Almost no
    software renders these, and neither do we, but the fields are kept for inspection.
    """
    def __init__(self):
        self.grid_left = 0
        self.grid_top = 0
        self.grid_width = 0
        self.grid_height = 0
        self.cell_width = 0
        self.cell_height = 0
        self.foreground_color_index = 0
        self.background_color_index = 0
        self.text = ""

    def pretty_print(self) -> None:
        print(PLAINTEXT_EXTENSION_TEMPLATE.format(e=self))


class ApplicationExtension:
    """
    Model of an application extension block. The payload is opaque, except for the NETSCAPE2.0 looping block
    that nearly every animated GIF carries.
    """
    def __init__(self):
        self.identifier = ""
        self.auth_code = b""
        self.data = b""

    @property
    def loop_count(self) -> t.Optional[int]:
        """
        Number of times to loop the animation (0 means forever), or None if this isn't a looping block.
        """
        if (self.identifier, self.auth_code) not in LOOPING_APPLICATIONS:
            return None

        # sub-block id 1, then a 2 byte loop count
        if len(self.data) < 3 or self.data[0] != 1:
            return None

        return int.from_bytes(self.data[1:3], byteorder="little")

    def pretty_print(self) -> None:
        loop_count = self.loop_count
        print(APPLICATION_EXTENSION_TEMPLATE.format(
            e=self,
            auth=self.auth_code.decode("ascii", errors="replace"),
            data_size=len(self.data),
            loop_count="n/a" if loop_count is None else (loop_count or "forever")))


class ImageBlock:
    """
    One table based image, still compressed: the descriptor, the optional local color table, and the LZW data
    with the sub-block length bytes stripped out.
    """
    def __init__(self):
        self.descriptor = ImageDescriptor()
        self.colortable: t.Optional[Colortable] = None
        self.lzw_min_code_size = 0
        self.data = b""

    @property
    def expected_pixels(self) -> int:
        return self.descriptor.width * self.descriptor.height


class GifHeader:
    """
    Everything before the first block: version, logical screen descriptor and global color table.
    """
    def __init__(
        self,
        version: GifVersion,
        screen: LogicalScreenDescriptor,
        colortable: t.Optional[Colortable] = None
    ):
        self.version = version
        self.screen = screen
        self.colortable = colortable

    @property
    def width(self) -> int:
        return self.screen.width

    @property
    def height(self) -> int:
        return self.screen.height

    @property
    def background_color_index(self) -> int:
        return self.screen.background_color_index

    @property
    def pixel_aspect_ratio(self) -> int:
        return self.screen.pixel_aspect_ratio

    @property
    def background_color(self) -> t.Tuple[int, int, int, int]:
        """
        Background color as RGBA. Fully transparent when there is no global color table to look it up in.
        """
        if not self.colortable or self.background_color_index >= len(self.colortable):
            return TRANSPARENT

        r, g, b = self.colortable[self.background_color_index]
        return r, g, b, 255


class _BlockType(Enum):
    """
    What kind of block the next flag byte starts.
    """
    IMAGE_DATA = 0
    EXTENSION = 1
    TRAILER = 2


BLOCK_FLAGS = {
    IMAGE_SEPARATOR: _BlockType.IMAGE_DATA,
    EXT_INTRODUCER: _BlockType.EXTENSION,
    TRAILER_LABEL: _BlockType.TRAILER,
}


class _GifStream:
    """
    Walks a GIF buffer block by block, returning the model of each block it reads.
    """
    def __init__(self, data: bytes):
        # gif is little endian
        self.stream = ByteCursor(data, byteorder="little")

        self._extension_readers = {
            EXT_GRAPHIC_CONTROL_LABEL: self.consume_graphic_control_extension,
            EXT_COMMENT_LABEL: self.consume_comment_extension,
            EXT_PLAINTEXT_LABEL: self.consume_plaintext_extension,
            EXT_APPLICATION_LABEL: self.consume_application_extension,
        }

    @property
    def position(self) -> int:
        return self.stream.position

    def consume_header(self) -> GifVersion:
        """
        Check the 6 byte signature and return the version it names.
        """
        if len(self.stream) < HEADER_SIZE + SCREEN_DESCRIPTOR_SIZE:
            msg = "{} bytes is too short for a GIF header"
            raise FormatError(msg.format(len(self.stream)))

        signature = self.stream.next_ascii(3)
        if signature != GIF_SIGNATURE:
            raise FormatError("Bad signature " + repr(signature))

        version = self.stream.next_ascii(3)
        if version not in VALID_GIF_REVS:
            raise FormatError("Invalid GIF version " + repr(version))

        return VALID_GIF_REVS[version]

    def consume_screen_descriptor(self) -> LogicalScreenDescriptor:
        """
        Read the logical screen descriptor. The global color table, if the descriptor announces one, comes next.
        """
        desc = LogicalScreenDescriptor()

        (desc.width, desc.height, packed_fields,
         desc.background_color_index, desc.pixel_aspect_ratio) = struct.unpack(
            "<HHBBB", self.stream.next(SCREEN_DESCRIPTOR_SIZE))

        # 1 bit table flag, 3 bits color resolution, 1 bit sort flag, 3 bits table size
        desc.colortable_exists = bool(packed_fields & 0x80)
        desc.color_resolution = ((packed_fields >> 4) & 0x7) + 1
        desc.colortable_is_sorted = bool(packed_fields & 0x08)
        desc.colortable_size = packed_fields & 0x7

        return desc

    def consume_color_table(self, num_colors: int) -> Colortable:
        """
        Read `num_colors` RGB triples. Global and local tables share the layout.
        """
        raw = self.stream.next(num_colors * 3)
        return tuple(struct.iter_unpack("3B", raw))

    def consume_gif_header(self) -> GifHeader:
        """
        Consume the header, screen descriptor and global color table. Any shortfall here is a format error, since
        there is nothing to salvage yet.
        """
        try:
            version = self.consume_header()
            screen = self.consume_screen_descriptor()

            colortable = None
            if screen.colortable_exists:
                colortable = self.consume_color_table(screen.num_colors())
        except DataTruncatedError as e:
            raise FormatError("GIF header is incomplete: {}".format(e)) from e

        logger.debug("%s screen %dx%d, global colortable: %s", version, screen.width, screen.height,
                     len(colortable) if colortable else "absent")

        return GifHeader(version, screen, colortable)

    def consume_image_descriptor(self) -> ImageDescriptor:
        """
        Read an image descriptor, separator included. A local color table, if announced, comes next.
        """
        desc = ImageDescriptor()

        separator = self.stream.next_byte()
        if separator != IMAGE_SEPARATOR:
            msg = "could not read image descriptor: bad separator {:02X}"
            raise FormatError(msg.format(separator))

        (desc.leftpos, desc.toppos, desc.width, desc.height,
         packed_fields) = struct.unpack("<4HB", self.stream.next(IMAGE_DESCRIPTOR_SIZE))

        # 1 bit table flag, 1 bit interlace, 1 bit sort flag, 2 reserved bits, 3 bits table size
        desc.colortable_exists = bool(packed_fields & 0x80)
        desc.interlaced = bool(packed_fields & 0x40)
        desc.colortable_is_sorted = bool(packed_fields & 0x20)
        desc.colortable_size = packed_fields & 0x7

        return desc

    def consume_image_block(self) -> ImageBlock:
        """
        Consume a whole image: descriptor, local color table, LZW minimum code size, and the data sub-blocks.
        """
        block = ImageBlock()
        block.descriptor = self.consume_image_descriptor()

        if block.descriptor.colortable_exists:
            block.colortable = self.consume_color_table(block.descriptor.num_colors())

        block.lzw_min_code_size = self.stream.next_byte()
        block.data = self.read_data()

        d = block.descriptor
        logger.debug("image %dx%d@(%d, %d), interlaced: %s, %d bytes of LZW data", d.width, d.height,
                     d.leftpos, d.toppos, d.interlaced, len(block.data))

        return block

    def check_blocktype(self) -> _BlockType:
        """
        Look at the flag byte under the cursor and say what kind of block starts there. Known flags are left in
        place for the block reader.

        Raises:
            `DataTruncatedError`: If the data ends without a trailer.
            `UnsupportedFeatureError`: If the flag byte isn't a known block. The byte is consumed, so the caller
                may keep going from the next one.
        """
        flag = self.stream.peek_byte()
        if flag is None:
            raise DataTruncatedError("end of data at offset {}, no trailer".format(self.stream.position))

        blocktype = BLOCK_FLAGS.get(flag)
        if blocktype is not None:
            return blocktype

        msg = "Unknown block with signature {:02X} at offset {}"
        position = self.stream.position
        self.stream.position += 1
        raise UnsupportedFeatureError(msg.format(flag, position))

    def read_data(self) -> bytes:
        """
        Read a chain of data sub-blocks (a size byte, then that many bytes, until a size of zero) and return the
        payload joined together.
        """
        chunks = []
        data_size = self.stream.next_byte()
        while data_size != 0:
            chunks.append(self.stream.next(data_size))
            data_size = self.stream.next_byte()

        return b"".join(chunks)

    def skip_data(self) -> int:
        """
        Step over a chain of data sub-blocks, leaving the stream just past the terminator. Returns the payload size.
        """
        total_data = 0
        data_size = self.stream.next_byte()
        while data_size != 0:
            self.stream.skip(data_size)
            total_data += data_size
            data_size = self.stream.next_byte()

        return total_data

    def consume_extension(self) -> Extension:
        """
        Consume any extension block and return its model.

        All extension blocks consist of:
        - Extension Introducer
        - Extension Label
        - Data Sub-blocks...
        - Terminator block.

        Raises:
            `UnsupportedFeatureError`: For an unknown label. The block has been skipped by then.
        """
        introducer = self.stream.next_byte()
        if introducer != EXT_INTRODUCER:
            msg = "Unexpected byte {:02X} while reading an extension"
            raise FormatError(msg.format(introducer))

        label = self.stream.next_byte()
        reader = self._extension_readers.get(label)

        if reader is None:
            skipped = self.skip_data()
            msg = "Unknown extension label {:02X} ({} bytes skipped)"
            raise UnsupportedFeatureError(msg.format(label, skipped))

        return reader()

    def _consume_fixed_block(self, expected_size: int, name: str) -> bytes:
        """
        Read the size-prefixed fixed part of an extension. Encoders occasionally get the size wrong, so whatever
        was declared is read, then cut or zero padded to what we expected.
        """
        block_size = self.stream.next_byte()
        if block_size != expected_size:
            logger.debug("%s block size is %d, expected %d", name, block_size, expected_size)

        return self.stream.next(block_size)[:expected_size].ljust(expected_size, b"\0")

    def consume_graphic_control_extension(self) -> GraphicControlExtension:
        """
        Consume the rest of a graphic control extension, after its label.
        """
        ext = GraphicControlExtension()

        fields = self._consume_fixed_block(GRAPHIC_CONTROL_SIZE, "graphic control")
        packed_fields, ext.delay, ext.transparent_color = struct.unpack("<BHB", fields)

        # normally just the terminator
        self.skip_data()

        disposal = (packed_fields >> 2) & 0x7
        if DisposalMethod.is_reserved(disposal):
            logger.debug("reserved disposal method %d, using RESTORE_BACKGROUND", disposal)

        ext.transparent_flag = bool(packed_fields & 0x1)
        ext.user_input_flag = bool((packed_fields >> 1) & 0x1)
        ext.disposal_method = DisposalMethod.from_packed(disposal)

        return ext

    def consume_comment_extension(self) -> CommentExtension:
        return CommentExtension(self.read_data().decode("latin-1"))

    def consume_plaintext_extension(self) -> PlainTextExtension:
        ext = PlainTextExtension()

        fields = self._consume_fixed_block(PLAINTEXT_SIZE, "plain text")
        (ext.grid_left, ext.grid_top, ext.grid_width, ext.grid_height,
         ext.cell_width, ext.cell_height,
         ext.foreground_color_index, ext.background_color_index) = struct.unpack("<4H4B", fields)

        ext.text = self.read_data().decode("latin-1")
        return ext

    def consume_application_extension(self) -> ApplicationExtension:
        ext = ApplicationExtension()

        fields = self._consume_fixed_block(APPLICATION_SIZE, "application")
        ext.identifier = fields[:8].decode("ascii", errors="replace")
        ext.auth_code = fields[8:]
        ext.data = self.read_data()

        return ext


def parse_header(data: bytes) -> t.Tuple[GifHeader, int]:
    """
    Parse the header, logical screen descriptor and global color table.

    Returns the header and the offset of the first block after it.

    Raises:
        `FormatError`: If this isn't a GIF87a/GIF89a file, or the data ends inside the header.
    """
    gifstream = _GifStream(data)
    header = gifstream.consume_gif_header()
    return header, gifstream.position


class Gif:
    """
    Everything in a GIF except the pixels: header, color tables, control blocks and extensions, in file order.
    Image data is read past but never decompressed, so this is cheap even for long animations.

    A file that ends before its trailer still gives a model of what came before; `truncated` is set.

    Args:
        data: The complete GIF file contents.
        path: Where the data came from, if anywhere. Only used for naming output.
    """
    def __init__(self, data: bytes, path: t.Optional[str] = None):
        self.path = path

        gifstream = _GifStream(data)
        self.header = gifstream.consume_gif_header()

        self.images: t.List[GifImage] = []
        self.extensions: t.List[Extension] = []  # everything but graphic control blocks
        self.truncated = False

        if self.colortable is None:
            logger.warning("no global color table")

        try:
            self.__read_blocks(gifstream)
        except DataTruncatedError as e:
            logger.warning("GIF data is truncated: %s", e)
            self.truncated = True

    @classmethod
    def from_file(cls, path: str) -> "Gif":
        return cls(load_file(path), path=path)

    @property
    def version(self) -> GifVersion:
        return self.header.version

    @property
    def colortable(self) -> t.Optional[Colortable]:
        return self.header.colortable

    @property
    def logical_screen_descriptor(self) -> LogicalScreenDescriptor:
        return self.header.screen

    @property
    def screen_width(self) -> int:
        return self.header.width

    @property
    def screen_height(self) -> int:
        return self.header.height

    @property
    def loop_count(self) -> t.Optional[int]:
        """
        Loop count from the first looping application block, or None if the file has none.
        """
        for ext in self.extensions:
            if isinstance(ext, ApplicationExtension) and ext.loop_count is not None:
                return ext.loop_count

        return None

    def __read_blocks(self, gifstream: _GifStream) -> None:
        # a control block waits here until the image it belongs to turns up
        graphic_control = None

        while True:
            try:
                blocktype = gifstream.check_blocktype()

                if blocktype == _BlockType.TRAILER:
                    return

                if blocktype == _BlockType.IMAGE_DATA:
                    block = gifstream.consume_image_block()
                    self.images.append(GifImage(block, graphic_control))
                    graphic_control = None
                    continue

                ext = gifstream.consume_extension()
            except UnsupportedFeatureError as e:
                logger.warning("%s, skipping", e)
                continue

            if not isinstance(ext, GraphicControlExtension):
                self.extensions.append(ext)
                continue

            if graphic_control is not None:
                logger.debug("two graphic control blocks for one image, keeping the last")
            graphic_control = ext

    def name(self) -> str:
        """
        Base name for output files: the file name without its extension, or "gif" for data without a path.
        """
        if self.path is None:
            return "gif"

        return os.path.splitext(os.path.basename(self.path))[0]

    def pretty_print(self, verbose: bool) -> None:
        print("{} ({}):".format(self.path or "<bytes>", self.version))
        self.logical_screen_descriptor.pretty_print()

        if self.colortable:
            print()
            _print_colortable(self.colortable, "Global Color Table", verbose)

        for ext in self.extensions:
            ext.pretty_print()

        for n, img in enumerate(self.images):
            print()
            print("== Image {}".format(n))
            img.pretty_print(verbose)

        if self.truncated:
            print()
            print("-- Data ends before the trailer")


class GifImage:
    """
    One image as `Gif` sees it: descriptor, local color table, the control block that preceded it, and the size
    of its compressed data.
    """
    def __init__(self, block: ImageBlock, graphic_control: t.Optional[GraphicControlExtension] = None):
        self.graphic_control = graphic_control
        self.image_descriptor = block.descriptor
        self.colortable = block.colortable
        self.lzw_min_code_size = block.lzw_min_code_size
        self.image_data_size = len(block.data)

    def pretty_print(self, verbose: bool) -> None:
        if self.graphic_control is not None:
            self.graphic_control.pretty_print()

        self.image_descriptor.pretty_print()

        if self.colortable:
            _print_colortable(self.colortable, "Local Color Table", verbose)

        print("-- Table Based Image Data")
        print("    LZW minimum code size {}, {} bytes compressed".format(
            self.lzw_min_code_size, self.image_data_size))
