"""
Shared fixtures. Synthetic GIFs are assembled with the gifbuilder helpers, real-world ones are produced with Pillow.
"""

import pytest
from PIL import Image

import gifbuilder

BLACK_WHITE = [(0, 0, 0), (255, 255, 255)]

FOUR_COLORS = [
    (255, 0, 0),
    (0, 255, 0),
    (0, 0, 255),
    (255, 255, 0),
]


@pytest.fixture
def checkerboard_gif():
    """A single 2x2 checkerboard frame with a 2 entry global color table."""
    return gifbuilder.gif(
        gifbuilder.header(2, 2, BLACK_WHITE, version=b"87a"),
        gifbuilder.image([0, 1, 1, 0], 2, 2),
    )


@pytest.fixture
def write_gif(tmp_path):
    """Write GIF bytes to a file and return its path."""
    def write(data, name="test.gif"):
        path = tmp_path / name
        path.write_bytes(data)
        return str(path)
    return write


@pytest.fixture
def pillow_multiframe_gif(tmp_path):
    """A 10x10 4-frame GIF saved by Pillow, 100ms per frame, looping forever."""
    path = tmp_path / "tiny_multi.gif"
    frames = []
    for i in range(4):
        val = int(i * 255 / 3)
        frames.append(Image.new("RGB", (10, 10), (val, 0, 255 - val)))
    frames[0].save(
        path, save_all=True, append_images=frames[1:], duration=100, loop=0
    )
    return path
