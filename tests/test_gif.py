import struct

import pytest

import gifbuilder
from conftest import BLACK_WHITE, FOUR_COLORS
from gifframes import (
    ApplicationExtension,
    CommentExtension,
    DisposalMethod,
    FormatError,
    Gif,
    GifVersion,
    PlainTextExtension,
    parse_header,
)


def test_parse_header(checkerboard_gif):
    header, offset = parse_header(checkerboard_gif)

    assert header.version is GifVersion.GIF87a
    assert (header.width, header.height) == (2, 2)
    assert header.colortable == ((0, 0, 0), (255, 255, 255))
    assert header.background_color == (0, 0, 0, 255)
    # signature, screen descriptor, 2 colors
    assert offset == 6 + 7 + 6
    assert checkerboard_gif[offset] == 0x2C


def test_parse_header_without_global_table():
    header, offset = parse_header(gifbuilder.header(5, 3) + b"\x3b")

    assert header.colortable is None
    assert header.background_color == (0, 0, 0, 0)
    assert offset == 13


def test_background_index_outside_table_is_transparent():
    header, _ = parse_header(gifbuilder.header(1, 1, BLACK_WHITE, background=9))
    assert header.background_color == (0, 0, 0, 0)


def test_color_table_size_is_power_of_two():
    three = [(1, 1, 1), (2, 2, 2), (3, 3, 3)]
    header, _ = parse_header(gifbuilder.header(1, 1, three))

    assert len(header.colortable) == 4
    assert header.colortable[:3] == tuple(three)


@pytest.mark.parametrize("data", [
    b"GIF89a",
    b"PNG89a" + bytes(7),
    b"GIF90a" + bytes(7),
    b"",
])
def test_bad_header(data):
    with pytest.raises(FormatError):
        parse_header(data)


def test_truncated_global_table():
    data = gifbuilder.header(2, 2, FOUR_COLORS)
    with pytest.raises(FormatError):
        parse_header(data[:-3])


def test_graphic_control_metadata():
    data = gifbuilder.gif(
        gifbuilder.header(2, 2, FOUR_COLORS),
        gifbuilder.graphic_control(disposal=3, delay=25, transparent=2, user_input=True),
        gifbuilder.image([0, 1, 2, 3], 2, 2),
    )

    gif = Gif(data)
    gce = gif.images[0].graphic_control

    assert gce.disposal_method is DisposalMethod.RESTORE_PREVIOUS
    assert gce.delay == 25
    assert gce.delay_seconds() == 0.25
    assert gce.delay_ms() == 250
    assert gce.transparent_flag
    assert gce.transparent_index == 2
    assert gce.user_input_flag


@pytest.mark.parametrize("value", [4, 5, 6, 7])
def test_reserved_disposal_is_restore_background(value):
    data = gifbuilder.gif(
        gifbuilder.header(1, 1, BLACK_WHITE),
        gifbuilder.graphic_control(disposal=value),
        gifbuilder.image([0], 1, 1),
    )

    gce = Gif(data).images[0].graphic_control
    assert gce.disposal_method is DisposalMethod.RESTORE_BACKGROUND


def test_graphic_control_with_odd_block_size():
    # block size 5 with a padding byte, then the terminator
    odd = struct.pack("<BBBBHBBB", 0x21, 0xF9, 5, 0x01, 7, 1, 0xAA, 0)
    data = gifbuilder.gif(
        gifbuilder.header(1, 1, BLACK_WHITE),
        odd,
        gifbuilder.image([0], 1, 1),
    )

    gif = Gif(data)
    gce = gif.images[0].graphic_control

    assert gce.delay == 7
    assert gce.transparent_index == 1
    assert not gif.truncated


def test_only_the_next_image_gets_the_graphic_control():
    data = gifbuilder.gif(
        gifbuilder.header(1, 1, BLACK_WHITE),
        gifbuilder.graphic_control(delay=10),
        gifbuilder.image([0], 1, 1),
        gifbuilder.image([1], 1, 1),
    )

    first, second = Gif(data).images
    assert first.graphic_control.delay == 10
    assert second.graphic_control is None


def test_other_extensions():
    data = gifbuilder.gif(
        gifbuilder.header(8, 8, BLACK_WHITE),
        gifbuilder.netscape_loop(3),
        gifbuilder.comment(b"made by hand"),
        gifbuilder.plain_text(b"hi", left=1, top=2),
        gifbuilder.image([0] * 64, 8, 8),
    )

    gif = Gif(data)
    app, comment, text = gif.extensions

    assert isinstance(app, ApplicationExtension)
    assert app.identifier == "NETSCAPE"
    assert app.auth_code == b"2.0"
    assert app.loop_count == 3
    assert gif.loop_count == 3

    assert isinstance(comment, CommentExtension)
    assert comment.text == "made by hand"

    assert isinstance(text, PlainTextExtension)
    assert text.text == "hi"
    assert (text.grid_left, text.grid_top) == (1, 2)
    assert (text.cell_width, text.cell_height) == (8, 8)
    assert text.foreground_color_index == 1

    assert len(gif.images) == 1


def test_unknown_application_has_no_loop_count():
    data = gifbuilder.gif(
        gifbuilder.header(1, 1, BLACK_WHITE),
        gifbuilder.application(b"XMP Data", b"XMP", b"<xml/>"),
        gifbuilder.image([0], 1, 1),
    )

    gif = Gif(data)
    assert gif.extensions[0].loop_count is None
    assert gif.loop_count is None


def test_unknown_extension_and_block_are_skipped():
    data = gifbuilder.gif(
        gifbuilder.header(1, 1, BLACK_WHITE),
        b"\x21\x42" + gifbuilder.block_join(b"mystery"),
        b"\x00\x99",
        gifbuilder.image([1], 1, 1),
    )

    gif = Gif(data)
    assert len(gif.images) == 1
    assert not gif.truncated


def test_image_metadata():
    data = gifbuilder.gif(
        gifbuilder.header(10, 10, BLACK_WHITE),
        gifbuilder.image([0, 1, 2, 3] * 4, 4, 4, left=3, top=5, colortable=FOUR_COLORS, interlaced=True),
    )

    image = Gif(data).images[0]
    desc = image.image_descriptor

    assert (desc.leftpos, desc.toppos, desc.width, desc.height) == (3, 5, 4, 4)
    assert desc.interlaced
    assert desc.colortable_exists
    assert image.colortable == tuple(FOUR_COLORS)
    assert image.lzw_min_code_size == 2
    assert image.image_data_size > 0


def test_truncated_metadata(checkerboard_gif):
    gif = Gif(checkerboard_gif[:-4])

    assert gif.truncated
    assert gif.images == []


def test_from_file(checkerboard_gif, write_gif):
    path = write_gif(checkerboard_gif, name="board.gif")

    gif = Gif.from_file(path)

    assert gif.name() == "board"
    assert (gif.screen_width, gif.screen_height) == (2, 2)
    assert len(gif.images) == 1


def test_pretty_print(capsys):
    data = gifbuilder.gif(
        gifbuilder.header(2, 2, FOUR_COLORS),
        gifbuilder.netscape_loop(0),
        gifbuilder.graphic_control(disposal=1, delay=5, transparent=0),
        gifbuilder.image([0, 1, 2, 3], 2, 2),
    )

    Gif(data, path="anim.gif").pretty_print(verbose=True)
    out = capsys.readouterr().out

    assert "anim.gif (GIF89a):" in out
    assert "screen size:        2x2" in out
    assert "(255, 255, 0)" in out
    assert "disposal method: NO_DISPOSE" in out
    assert "loop count:  forever" in out


def test_from_empty_file(write_gif):
    with pytest.raises(FormatError):
        Gif.from_file(write_gif(b"", name="empty.gif"))
