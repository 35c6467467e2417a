import pytest

from gifbuilder import interleave
from gifframes.interlace import deinterlace, interlaced_row_order


def make_rows(width, height):
    return [[(r * width + c) % 256 for c in range(width)] for r in range(height)]


def flatten(rows):
    return [i for row in rows for i in row]


@pytest.mark.parametrize("height", [1, 2, 7, 8, 9, 100])
def test_deinterlace_undoes_interleave(height):
    width = 3
    rows = make_rows(width, height)

    stored = flatten(interleave(rows))

    assert list(deinterlace(stored, width, height)) == flatten(rows)


def test_row_order_of_eight_rows():
    assert interlaced_row_order(8) == [0, 4, 2, 6, 1, 3, 5, 7]


def test_row_order_covers_every_row_once():
    for height in range(1, 40):
        assert sorted(interlaced_row_order(height)) == list(range(height))


def test_single_row_is_untouched():
    data = bytearray([1, 2, 3])
    assert deinterlace(data, 3, 1) is data


def test_less_than_a_row_is_untouched():
    data = bytearray([1, 2])
    assert deinterlace(data, 3, 4) is data


def test_truncated_data_leaves_missing_rows_empty():
    width, height = 2, 4
    rows = make_rows(width, height)
    stored = flatten(interleave(rows))  # rows 0, 2, 1, 3

    out = deinterlace(stored[:5], width, height)

    assert list(out) == rows[0] + rows[1][:1] + [None] + rows[2] + [None, None]
