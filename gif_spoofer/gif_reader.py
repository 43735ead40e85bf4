"""
Minimal GIF reader used to verify encoder output.
Decodes the first image of a GIF into its palette and index buffer.
"""

import struct
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from .lzw import lzw_decode
from .quantizer import Color

EXTENSION_INTRODUCER = 0x21
IMAGE_SEPARATOR = 0x2C
TRAILER = 0x3B
GRAPHIC_CONTROL_LABEL = 0xF9


@dataclass(frozen=True)
class DecodedGif:
    """First image of a GIF file, as palette indices."""

    width: int
    height: int
    palette: Tuple[Color, ...]
    indices: bytes
    transparency_flag: bool = False
    transparent_index: int = 0
    delay: int = 0

    def pixels(self) -> List[Color]:
        """Dereference every index through the palette."""
        return [self.palette[index] for index in self.indices]


def _require(data: bytes, offset: int, length: int) -> None:
    if offset + length > len(data):
        raise ValueError(f"Unexpected end of GIF data at offset {offset}")


def _read_color_table(data: bytes, offset: int, flags: int) -> Tuple[Tuple[Color, ...], int]:
    size = 2 << (flags & 0x07)
    _require(data, offset, size * 3)
    table = tuple(
        (data[i], data[i + 1], data[i + 2])
        for i in range(offset, offset + size * 3, 3)
    )
    return table, offset + size * 3


def iter_sub_blocks(data: bytes, offset: int) -> Iterator[Tuple[bytes, int]]:
    """
    Yield (payload, next_offset) for each sub-block starting at offset.

    Stops at the zero-length terminator. The last next_offset points at the
    terminator itself, so callers skipping the data add one.
    """
    while True:
        _require(data, offset, 1)
        length = data[offset]
        offset += 1
        if length == 0:
            return
        _require(data, offset, length)
        yield data[offset:offset + length], offset + length
        offset += length


def _skip_sub_blocks(data: bytes, offset: int) -> int:
    for _payload, offset in iter_sub_blocks(data, offset):
        pass
    _require(data, offset, 1)
    return offset + 1


def read_gif(data: bytes) -> DecodedGif:
    """
    Parse GIF bytes and decode the first image.

    Args:
        data: Complete GIF file

    Returns:
        DecodedGif with the active colour table and de-compressed indices
    """
    if data[:6] not in (b"GIF87a", b"GIF89a"):
        raise ValueError("Not a GIF file: bad signature")
    _require(data, 6, 7)
    width, height, flags = struct.unpack("<HHB", data[6:11])
    offset = 13

    palette: Tuple[Color, ...] = ()
    if flags & 0x80:
        palette, offset = _read_color_table(data, offset, flags)

    transparency_flag = False
    transparent_index = 0
    delay = 0

    while True:
        _require(data, offset, 1)
        introducer = data[offset]
        offset += 1

        if introducer == TRAILER:
            raise ValueError("GIF contains no image")

        if introducer == EXTENSION_INTRODUCER:
            _require(data, offset, 1)
            label = data[offset]
            offset += 1
            if label == GRAPHIC_CONTROL_LABEL:
                _require(data, offset, 6)
                packed, delay, transparent_index = struct.unpack("<BHB", data[offset + 1:offset + 5])
                transparency_flag = bool(packed & 0x01)
            offset = _skip_sub_blocks(data, offset)
            continue

        if introducer != IMAGE_SEPARATOR:
            raise ValueError(f"Unexpected block 0x{introducer:02X} at offset {offset - 1}")

        _require(data, offset, 9)
        _left, _top, image_width, image_height, image_flags = struct.unpack("<HHHHB", data[offset:offset + 9])
        offset += 9
        if image_flags & 0x40:
            raise ValueError("Interlaced images are not supported")
        if image_flags & 0x80:
            palette, offset = _read_color_table(data, offset, image_flags)

        _require(data, offset, 1)
        min_code_size = data[offset]
        offset += 1
        compressed = b"".join(payload for payload, _next in iter_sub_blocks(data, offset))
        indices = lzw_decode(compressed, min_code_size)
        pixel_count = image_width * image_height

        return DecodedGif(
            width=width,
            height=height,
            palette=palette,
            indices=indices[:pixel_count],
            transparency_flag=transparency_flag,
            transparent_index=transparent_index,
            delay=delay,
        )
