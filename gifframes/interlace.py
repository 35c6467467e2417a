"""
Interlaced images store their rows in four passes:

    pass 1: every 8th row, starting at row 0
    pass 2: every 8th row, starting at row 4
    pass 3: every 4th row, starting at row 2
    pass 4: every 2nd row, starting at row 1

See appendix E of the GIF89a spec.
"""

import typing as t

__all__ = (
    "interlaced_row_order",
    "deinterlace",
)

# (first row, step) for each pass
INTERLACE_PASSES = (
    (0, 8),
    (4, 8),
    (2, 4),
    (1, 2),
)


def interlaced_row_order(height: int) -> t.List[int]:
    """
    The destination row of each stored row, in storage order.
    """
    order = []
    for start, step in INTERLACE_PASSES:
        order.extend(range(start, height, step))
    return order


def deinterlace(indices: t.Sequence[int], width: int, height: int) -> t.Sequence[t.Optional[int]]:
    """
    Put interlaced rows back in top-to-bottom order.

    Returns the input unchanged when there is nothing to reorder (one row or less). If the data stops short of
    width * height, the rows that did arrive are still moved to their place and every missing pixel is None.
    """
    if height <= 1 or width <= 0 or len(indices) < width:
        return indices

    order = interlaced_row_order(height)
    complete = len(indices) >= width * height

    if complete:
        out = bytearray(width * height)
    else:
        out = [None] * (width * height)

    for src_row, dst_row in enumerate(order):
        src = src_row * width
        row = indices[src:src + width]
        if not row:
            break

        dst = dst_row * width
        out[dst:dst + len(row)] = row

    return out
