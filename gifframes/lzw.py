"""
Variable-width LZW decompression for GIF image data.

The code table is kept as an arena of (prefix code, appended index) pairs. Strings are only spelled out when a code
is emitted, by walking the prefix chain backwards, so long runs never cost more than one table slot each.
"""

import logging
import typing as t

from .constants import MAX_CODE_SIZE, MAX_CODE_TABLE_SIZE
from .cursor import BitReader
from .errors import DataTruncatedError, FormatError

__all__ = (
    "lzw_decompress",
)

logger = logging.getLogger(__name__)

# Valid range for the minimum code size byte. One bit images still use 2 (appendix F), and color indices are
# single bytes.
MIN_CODE_SIZE_RANGE = range(2, 9)


class _CodeTable:
    """
    Growing LZW dictionary. Entries below the clear code are single-index literals, entries past the end code
    point at an earlier entry and add one index.
    """

    __slots__ = (
        "clear_code",
        "end_code",
        "min_code_size",
        "code_size",
        "next_code",
        "prefix",
        "suffix",
        "first",
    )

    def __init__(self, min_code_size: int):
        self.min_code_size = min_code_size
        self.clear_code = 1 << min_code_size
        self.end_code = self.clear_code + 1

        self.prefix = [0] * MAX_CODE_TABLE_SIZE
        self.suffix = bytearray(MAX_CODE_TABLE_SIZE)
        self.first = bytearray(MAX_CODE_TABLE_SIZE)

        for i in range(self.clear_code):
            self.suffix[i] = i
            self.first[i] = i

        self.reset()

    def reset(self) -> None:
        # Learned entries are not wiped: next_code going back makes them unreachable until overwritten.
        self.code_size = self.min_code_size + 1
        self.next_code = self.end_code + 1

    def add(self, prefix_code: int, index: int) -> None:
        """
        Learn `prefix_code`'s string plus `index`. Once the table holds 4096 entries it stops growing until the next
        clear code.
        """
        code = self.next_code
        if code >= MAX_CODE_TABLE_SIZE:
            return

        self.prefix[code] = prefix_code
        self.suffix[code] = index
        self.first[code] = self.first[prefix_code]
        self.next_code = code + 1

        if self.next_code >= 1 << self.code_size and self.code_size < MAX_CODE_SIZE:
            self.code_size += 1

    def emit(self, code: int, out: bytearray) -> None:
        """
        Append the string for `code` to `out`.
        """
        clear_code = self.clear_code
        prefix = self.prefix
        suffix = self.suffix

        stack = bytearray()
        while code > clear_code:
            stack.append(suffix[code])
            code = prefix[code]
        stack.append(suffix[code])
        stack.reverse()
        out.extend(stack)


def lzw_decompress(data: bytes, min_code_size: int, expected: t.Optional[int] = None) -> bytearray:
    """
    Decode one image's LZW data into color table indices.

    Args:
        data: The image's data sub-blocks, concatenated without their length bytes.
        min_code_size: The LZW minimum code size byte that precedes the sub-blocks.
        expected: The number of indices the image needs (width * height). Decoding stops once this many have been
            produced, and the result never exceeds it.

    Returns:
        The decoded indices. May be shorter than `expected` if the stream ends early, either because the bits ran
        out or because an end code came too soon.

    Raises:
        `FormatError`: If the minimum code size is out of range, or a code refers to an entry that can not exist
            yet: past the next free code, or with no previous code to build it from.
    """
    if min_code_size not in MIN_CODE_SIZE_RANGE:
        raise FormatError("invalid LZW minimum code size {}".format(min_code_size))

    table = _CodeTable(min_code_size)
    clear_code = table.clear_code
    end_code = table.end_code

    reader = BitReader(data)
    out = bytearray()
    prev_code: t.Optional[int] = None

    while expected is None or len(out) < expected:
        try:
            code = reader.read(table.code_size)
        except DataTruncatedError:
            logger.debug("LZW stream ended without an end code after %d indices", len(out))
            break

        if code == clear_code:
            table.reset()
            prev_code = None
            continue

        if code == end_code:
            break

        if code < table.next_code:
            # known code
            table.emit(code, out)
            if prev_code is not None:
                table.add(prev_code, table.first[code])
        else:
            # code not yet in the table; only valid as the next free code, meaning previous string + its own
            # first index
            if prev_code is None:
                msg = "LZW code {} is not in the table and there is no previous code (table size {})"
                raise FormatError(msg.format(code, table.next_code))

            if code != table.next_code:
                msg = "LZW code {} skips ahead of the table (next free code {})"
                raise FormatError(msg.format(code, table.next_code))

            first = table.first[prev_code]
            table.emit(prev_code, out)
            out.append(first)
            table.add(prev_code, first)
            code = table.next_code - 1

        prev_code = code

    if expected is not None and len(out) > expected:
        del out[expected:]

    return out
