"""
Constants and enums relating to GIF files. These are part of the public API.

There aren't actually many enumerations in the GIF format, mainly boolean flags and small integers.
"""

__all__ = (
    "GifVersion",
    "DisposalMethod",
    "EXT_INTRODUCER",
    "IMAGE_SEPARATOR",
    "TRAILER_LABEL",
    "EXT_GRAPHIC_CONTROL_LABEL",
    "EXT_COMMENT_LABEL",
    "EXT_PLAINTEXT_LABEL",
    "EXT_APPLICATION_LABEL",
    "MAX_CODE_SIZE",
    "MAX_CODE_TABLE_SIZE",
)


from enum import Enum


# Introduces an extension block. The byte after this is the extension label.
EXT_INTRODUCER = 0x21

# Introduces a new image.
IMAGE_SEPARATOR = 0x2C

# Terminates a GIF file.
TRAILER_LABEL = 0x3B

# Extension labels.
EXT_GRAPHIC_CONTROL_LABEL = 0xF9
EXT_COMMENT_LABEL = 0xFE
EXT_PLAINTEXT_LABEL = 0x01
EXT_APPLICATION_LABEL = 0xFF

# LZW codes never grow past 12 bits.
MAX_CODE_SIZE = 12
MAX_CODE_TABLE_SIZE = 1 << MAX_CODE_SIZE


class GifVersion(Enum):
    """
    Gif version. Note that this is not how it's represented in the file, where it's represented as three ascii characters.
    However, since there are only two valid GIF versions, we can just use an Enum.
    """
    GIF87a = 0
    GIF89a = 1

    def __str__(self) -> str:
        if self is GifVersion.GIF87a:
            return "GIF87a"
        elif self is GifVersion.GIF89a:
            return "GIF89a"
        else:
            raise TypeError("GifVersion must be either 87a or 89a.")


class DisposalMethod(Enum):
    """
    Disposal method for animation frames. Tells how to treat the canvas around the frame it belongs to.

    See section 23.c.iv, under Graphic Control Extension.
    """
    NONE = 0
    NO_DISPOSE = 1
    RESTORE_BACKGROUND = 2
    RESTORE_PREVIOUS = 3

    @classmethod
    def from_packed(cls, value: int) -> "DisposalMethod":
        """
        Map the 3-bit disposal field to a method. Values 4-7 are reserved, and are read as RESTORE_BACKGROUND
        like most decoders do.
        """
        if value > cls.RESTORE_PREVIOUS.value:
            return cls.RESTORE_BACKGROUND

        return cls(value)

    @staticmethod
    def is_reserved(value: int) -> bool:
        return value > DisposalMethod.RESTORE_PREVIOUS.value
