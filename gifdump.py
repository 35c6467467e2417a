import argparse
import logging
import os
import math

from gifframes import Colortable, Gif, GifStreamException, decode, load_file
from PIL import Image


VALID_MODES = [
    "info",
    "palette",
    "frames",
    "help"
]


def prepare_argparser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=(
        "A tool for dumping GIF metadata and frames. Set mode with --mode/-m. "
        "Any arguments given that do not apply to the current mode will be "
        "ignored."
    ))

    parser.add_argument("--mode", "-m", type=str, choices=VALID_MODES, default="info", help=(
        "Set operation mode. Default is \"info\". Use mode \"help\" for more "
        "information on each mode."
    ))

    parser.add_argument("--path", "-i", type=str, default=None, help=(
        "The path to the GIF file to operate on."
    ))

    parser.add_argument("--verbose", "-v", action="store_true", help=(
        "Explicitly print long lists of data, which are otherwise omitted for "
        "brevity."
    ))
    parser.add_argument("--add-local", dest="add_local", action="store_true", help=(
        "Add local color tables to the output of palette mode. This will "
        "create a directory instead of a single image."
    ))
    parser.add_argument("--output", "-o", type=str, default=None, help=(
        "Directory to write frames to in frames mode. Defaults to "
        "<name>_frames in the current directory."
    ))
    parser.add_argument("--debug", action="store_true", help=(
        "Log every block as it is parsed."
    ))

    return parser


MODE_HELP = """Available modes:
help -
    Print this help text.

info -
    The default mode. Prints various metadata parsed from the GIF file
    passed through --path.

palette -
    Generate an image visualizing the palette of a GIF file. By default this
    only generates an image for the global color palette, but local palettes
    may be added to the output with --add-local. This will create a directory
    containing all color tables in the GIF.

frames -
    Decode the animation and write every composited frame as a PNG into the
    directory given with --output.
"""


def mode_help() -> None:
    print(MODE_HELP)


def mode_info(gif: Gif, args: argparse.Namespace) -> None:
    gif.pretty_print(verbose=args.verbose)


# each palette entry is drawn as a square swatch of this many pixels
SWATCH_SIZE = 25

# "missing texture purple", fills the unused part of the last swatch row
EMPTY_SWATCH = (249, 11, 243)


def _index_width(count: int) -> int:
    """
    Digits needed to zero-pad output names numbered 0 to count - 1.
    """
    return len(str(max(count - 1, 0)))


def _make_output_dir(path: str, parser: argparse.ArgumentParser) -> None:
    try:
        os.makedirs(path)
    except FileExistsError:
        msg = "{} already exists, please delete or move and try again"
        parser.error(msg.format(path))


def generate_palette_img(colortable: Colortable) -> Image.Image:
    """
    Lay a color table out as a near-square grid of swatches, row by row.
    """
    num_colors = len(colortable)

    rows = int(math.sqrt(num_colors))
    columns = rows if rows * rows == num_colors else rows + 1

    img = Image.new("RGB", (SWATCH_SIZE * columns, SWATCH_SIZE * rows), color=EMPTY_SWATCH)

    for n, color in enumerate(colortable):
        row, column = divmod(n, columns)
        swatch = Image.new("RGB", (SWATCH_SIZE, SWATCH_SIZE), color=tuple(color))
        img.paste(swatch, (column * SWATCH_SIZE, row * SWATCH_SIZE))

    return img


def write_global_palette(gif: Gif, parser: argparse.ArgumentParser) -> None:
    if not gif.colortable:
        parser.error("GIF has no global colortable. Abort.")

    output_name = gif.name() + "_palette.png"
    generate_palette_img(gif.colortable).save(output_name)

    print("Palette written to {}".format(output_name))


def mode_palette(gif: Gif, parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    if not args.add_local:
        write_global_palette(gif, parser)
        return

    # image number -> its local table
    local_tables = {n: img.colortable for n, img in enumerate(gif.images) if img.colortable is not None}

    if not local_tables:
        print("warn: no local color tables, only outputting global table.")
        write_global_palette(gif, parser)
        return

    output_dir = gif.name() + "_palette"
    _make_output_dir(output_dir, parser)

    if gif.colortable:
        generate_palette_img(gif.colortable).save(os.path.join(output_dir, "__global.png"))
    else:
        print("warn: no global colortable")

    # numbered by image, so the names line up with frames mode output
    width = _index_width(len(gif.images))
    for n, table in local_tables.items():
        generate_palette_img(table).save(os.path.join(output_dir, str(n).zfill(width) + ".png"))

    print("{} palettes written to {}".format(len(local_tables), output_dir))


def mode_frames(data: bytes, gif: Gif, parser: argparse.ArgumentParser, args: argparse.Namespace) -> None:
    output_dir = args.output or gif.name() + "_frames"
    _make_output_dir(output_dir, parser)

    # images in the file is an upper bound on the frame count
    width = _index_width(len(gif.images))
    count = 0

    for n, frame in enumerate(decode(data)):
        frame_name = str(n).zfill(width) + ".png"
        frame.to_image().save(os.path.join(output_dir, frame_name))
        print("{}: {}x{}, delay {}s".format(frame_name, frame.width, frame.height, frame.delay_seconds))
        count += 1

    print("{} frames written to {}".format(count, output_dir))


def main() -> None:
    parser = prepare_argparser()
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")

    if args.mode == "help":
        mode_help()
        parser.exit()

    if args.path is None:
        parser.error("Must specify --path for non-help mode.")

    try:
        data = load_file(args.path)
        gif = Gif(data, path=args.path)

        if args.mode == "info":
            mode_info(gif, args)
        elif args.mode == "palette":
            mode_palette(gif, parser, args)
        elif args.mode == "frames":
            mode_frames(data, gif, parser, args)
        else:
            raise Exception("internal error: invalid mode")
    except GifStreamException as e:
        parser.exit(1, "{}: error: {}\n".format(args.path, e))
    except OSError as e:
        parser.exit(1, "{}: error: {}\n".format(args.path, e.strerror or e))


if __name__ == "__main__":
    main()
