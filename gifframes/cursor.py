"""
Cursors over an in-memory GIF buffer. ByteCursor walks whole bytes and follows the MmapCursor interface used for
files, BitReader pulls LZW codes out of the concatenated image data.
"""

import typing as t

from .errors import DataTruncatedError

__all__ = (
    "ByteCursor",
    "BitReader",
)


class ByteCursor:
    """
    Sequential reader over a byte buffer. Unlike a file cursor, every `next*` read is exact: asking for more bytes
    than remain raises DataTruncatedError instead of returning a short read.

    Args:
        data: The complete buffer. Not copied.
        byteorder: Byte order for integer reads. GIF is little endian.
    """
    def __init__(self, data: bytes, byteorder: t.Literal["big", "little"] = "little"):
        self.data = memoryview(data)
        self._position = 0
        self.byteorder = byteorder

    def __len__(self) -> int:
        return len(self.data)

    @property
    def position(self) -> int:
        """
        The position in the buffer, in bytes. Zero-indexed. To advance the cursor, you can use `+=`.

        Raises:
            `ValueError`: If the set position is negative.
        """
        return self._position

    @position.setter
    def position(self, p: int) -> None:
        if p < 0:
            raise ValueError("Position shifted to a negative value ({})".format(p))

        self._position = p

    @property
    def remaining(self) -> int:
        return max(0, len(self.data) - self._position)

    def at_end(self) -> bool:
        return self._position >= len(self.data)

    def read(self, size: int) -> bytes:
        """
        Reads at most `size` bytes starting at the current position. Does not advance the cursor.
        """
        return bytes(self.data[self._position:self._position + size])

    def peek_byte(self) -> t.Optional[int]:
        """
        The byte under the cursor, or None at the end of the buffer.
        """
        if self.at_end():
            return None

        return self.data[self._position]

    def next(self, size: int) -> bytes:
        """
        Reads exactly `size` bytes and advances the cursor after them.
        """
        if size > self.remaining:
            msg = "wanted {} bytes at offset {}, only {} left"
            raise DataTruncatedError(msg.format(size, self._position, self.remaining))

        data = self.read(size)
        self._position += size
        return data

    def next_byte(self) -> int:
        if self.at_end():
            raise DataTruncatedError("unexpected end of data at offset {}".format(self._position))

        b = self.data[self._position]
        self._position += 1
        return b

    def next_int(self, size: int, signed: bool = False) -> int:
        return int.from_bytes(self.next(size), byteorder=self.byteorder, signed=signed)

    def next_ascii(self, size: int) -> str:
        return str(self.next(size), "ascii", errors="replace")

    def skip(self, size: int) -> None:
        """
        Advance past `size` bytes, which must exist.
        """
        if size > self.remaining:
            msg = "cannot skip {} bytes at offset {}, only {} left"
            raise DataTruncatedError(msg.format(size, self._position, self.remaining))

        self._position += size


class BitReader:
    """
    Reads fixed-width integers from a byte string, least significant bit first, as the GIF LZW stream packs them.
    """

    __slots__ = (
        "_data",
        "_pos",
        "_buf",
        "_nbits",
    )

    def __init__(self, data: bytes):
        self._data = data
        self._pos = 0
        self._buf = 0
        self._nbits = 0

    @property
    def bits_remaining(self) -> int:
        return self._nbits + (len(self._data) - self._pos) * 8

    def read(self, amount: int) -> int:
        """
        Read `amount` bits and return them as an int.

        Raises:
            `DataTruncatedError`: If fewer than `amount` bits are left. Nothing is consumed in that case.
        """
        data = self._data
        while self._nbits < amount:
            if self._pos >= len(data):
                msg = "bit stream exhausted: wanted {} bits, {} left"
                raise DataTruncatedError(msg.format(amount, self._nbits))

            self._buf |= data[self._pos] << self._nbits
            self._pos += 1
            self._nbits += 8

        value = self._buf & ((1 << amount) - 1)
        self._buf >>= amount
        self._nbits -= amount
        return value
