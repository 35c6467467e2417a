"""
Decode files written by Pillow's GIF encoder and compare against Pillow's own decoder.
"""

import random

from PIL import Image

from gifframes import Gif, decode_all, decode_file


def test_random_palette_image(tmp_path):
    rng = random.Random(1234)
    palette = [rng.randrange(256) for _ in range(256 * 3)]
    indices = bytes(rng.randrange(256) for _ in range(32 * 32))

    img = Image.frombytes("P", (32, 32), indices)
    img.putpalette(palette)
    path = tmp_path / "noise.gif"
    img.save(path)

    frames = decode_all(path.read_bytes())

    assert len(frames) == 1
    with Image.open(path) as expected:
        assert frames[0].pixels == expected.convert("RGBA").tobytes()


def test_pillow_animation(pillow_multiframe_gif):
    frames = list(decode_file(str(pillow_multiframe_gif)))

    assert len(frames) == 4
    assert all(frame.size == (10, 10) for frame in frames)
    assert all(frame.delay_seconds == 0.1 for frame in frames)
    assert frames[0].pixel(0, 0) == (0, 0, 255, 255)

    with Image.open(pillow_multiframe_gif) as expected:
        expected.seek(3)
        assert frames[3].pixel(5, 5) == expected.convert("RGBA").getpixel((5, 5))


def test_pillow_animation_metadata(pillow_multiframe_gif):
    gif = Gif.from_file(str(pillow_multiframe_gif))

    assert gif.loop_count == 0
    assert len(gif.images) == 4
    assert gif.images[1].graphic_control.delay == 10
