import pytest

from gifframes.cursor import BitReader, ByteCursor
from gifframes.errors import DataTruncatedError


def test_byte_cursor_reads_little_endian():
    cursor = ByteCursor(b"\x34\x12\xff")

    assert cursor.next_int(2) == 0x1234
    assert cursor.position == 2
    assert cursor.next_byte() == 0xFF
    assert cursor.at_end()


def test_byte_cursor_read_does_not_advance():
    cursor = ByteCursor(b"GIF89a")

    assert cursor.read(3) == b"GIF"
    assert cursor.position == 0
    assert cursor.next_ascii(6) == "GIF89a"
    assert cursor.peek_byte() is None


def test_byte_cursor_exact_reads_raise_on_truncation():
    cursor = ByteCursor(b"\x01\x02")

    with pytest.raises(DataTruncatedError):
        cursor.next(3)

    # nothing consumed by the failed read
    assert cursor.position == 0
    cursor.skip(2)

    with pytest.raises(DataTruncatedError):
        cursor.next_byte()
    with pytest.raises(DataTruncatedError):
        cursor.skip(1)


def test_byte_cursor_rejects_negative_position():
    cursor = ByteCursor(b"abc")
    with pytest.raises(ValueError):
        cursor.position -= 1


def test_bit_reader_is_low_bit_first():
    reader = BitReader(bytes([0b10001100, 0b00101101]))

    assert reader.read(3) == 0b100
    assert reader.read(3) == 0b001
    # two bits left in the first byte, then the low two bits of the second
    assert reader.read(4) == 0b0110
    assert reader.bits_remaining == 6


def test_bit_reader_spans_several_bytes():
    reader = BitReader(bytes([0xFF, 0x0F, 0xA0]))

    assert reader.read(12) == 0xFFF
    assert reader.read(12) == 0xA00


def test_bit_reader_raises_when_exhausted():
    reader = BitReader(b"\xff")
    reader.read(5)

    with pytest.raises(DataTruncatedError):
        reader.read(4)

    # the remaining bits are still there
    assert reader.read(3) == 0b111
