"""
Core GIF encoding logic.
Turns any decoded raster image into a single-frame, opaque GIF89a file using
the in-house quantizer and LZW compressor.

Version: 1.0.0
"""

import logging
import struct
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from typing import BinaryIO, Optional, Sequence, Union

from PIL import Image, UnidentifiedImageError

from .lzw import lzw_encode
from .quantizer import (
    PALETTE_SIZE,
    SAMPLE_TARGET,
    SAMPLE_THRESHOLD,
    Color,
    quantize,
    validate_pixel_buffer,
)

logger = logging.getLogger(__name__)

GIF_MIME_TYPE = "image/gif"
GIF_SIGNATURE = b"GIF89a"
GIF_TRAILER = 0x3B
MIN_CODE_SIZE = 8
MAX_DIMENSION = 0xFFFF
SUB_BLOCK_SIZE = 255

# Global colour table present, 8-bit colour resolution, unsorted, 256 entries.
SCREEN_FLAGS = 0xF7

# Graphic Control Extension with the transparency flag and index both zeroed,
# so viewers never treat background index 0 as transparent.
GRAPHIC_CONTROL_EXTENSION = bytes((0x21, 0xF9, 0x04, 0x00, 0x00, 0x00, 0x00, 0x00))


@dataclass(frozen=True)
class GifConfig:
    """Configuration for GIF encoding."""

    sample_threshold: int = SAMPLE_THRESHOLD
    sample_target: int = SAMPLE_TARGET
    max_pixels: Optional[int] = None  # None disables the size guard


DEFAULT_CONFIG = GifConfig()


class ImageTooLargeError(ValueError):
    """Raised when an image exceeds the configured pixel limit."""


def parse_max_pixels(text: Optional[str]) -> Optional[int]:
    """Parse a pixel limit. Empty or 'none' means no limit."""
    if not text or text.strip().lower() == "none":
        return None
    try:
        value = int(text)
        if value <= 0:
            raise ValueError("Pixel limit must be positive")
        return value
    except ValueError as exc:
        raise ValueError(
            f"Pixel limit must be a positive integer or 'none'. Got: {text}"
        ) from exc


def check_dimensions(width: int, height: int, max_pixels: Optional[int] = None) -> None:
    """Raise ValueError if the image cannot or should not be encoded."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive. Got: {width}x{height}")
    if width > MAX_DIMENSION or height > MAX_DIMENSION:
        raise ValueError(f"Maximum GIF dimension is {MAX_DIMENSION}px. Got: {width}x{height}")
    if max_pixels is not None and width * height > max_pixels:
        raise ImageTooLargeError(
            f"Image too large: {width * height} pixels, above the limit of {max_pixels}"
        )


def split_sub_blocks(data: bytes) -> bytes:
    """Frame data as length-prefixed sub-blocks followed by a zero terminator."""
    framed = bytearray()
    for offset in range(0, len(data), SUB_BLOCK_SIZE):
        chunk = data[offset:offset + SUB_BLOCK_SIZE]
        framed.append(len(chunk))
        framed.extend(chunk)
    framed.append(0)
    return bytes(framed)


def assemble_gif(palette: Sequence[Color], indices: bytes, width: int, height: int) -> bytes:
    """
    Wrap a 256-colour palette and index buffer in a GIF89a container.

    Args:
        palette: Exactly 256 RGB triples
        indices: One palette index per pixel, row-major
        width: Image width in pixels
        height: Image height in pixels

    Returns:
        Complete GIF file bytes
    """
    check_dimensions(width, height)
    if len(palette) != PALETTE_SIZE:
        raise ValueError(f"Palette must have exactly {PALETTE_SIZE} colours. Got: {len(palette)}")
    if len(indices) != width * height:
        raise ValueError(
            f"Index buffer length {len(indices)} does not match {width}x{height}"
        )
    return _write_gif(palette, indices, width, height)


def _write_gif(palette: Sequence[Color], indices: bytes, width: int, height: int) -> bytes:
    data = bytearray(GIF_SIGNATURE)

    # Logical Screen Descriptor
    data.extend(struct.pack("<HHBBB", width, height, SCREEN_FLAGS, 0, 0))

    # Global Colour Table
    for r, g, b in palette:
        data.extend((r, g, b))

    data.extend(GRAPHIC_CONTROL_EXTENSION)

    # Image Descriptor: origin 0,0, no local table, not interlaced
    data.extend(struct.pack("<BHHHHB", 0x2C, 0, 0, width, height, 0x00))

    data.append(MIN_CODE_SIZE)
    compressed = lzw_encode(indices, MIN_CODE_SIZE)
    data.extend(split_sub_blocks(compressed))

    data.append(GIF_TRAILER)
    logger.debug("Assembled %dx%d GIF: %d bytes (%d compressed)", width, height, len(data), len(compressed))
    return bytes(data)


def _encode_rgba(pixels: Sequence[int], width: int, height: int, config: GifConfig) -> bytes:
    result = quantize(
        pixels,
        width,
        height,
        sample_threshold=config.sample_threshold,
        sample_target=config.sample_target,
        validate=False,
    )
    return _write_gif(result.palette, result.indices, width, height)


def build_gif(pixels: Sequence[int], width: int, height: int, config: GifConfig = DEFAULT_CONFIG) -> bytes:
    """
    Encode an RGBA pixel buffer as a single-frame GIF89a.

    Args:
        pixels: Row-major RGBA bytes, width*height*4 long. Not modified.
        width: Image width in pixels
        height: Image height in pixels
        config: Sampling parameters and optional pixel limit

    Returns:
        Complete GIF file bytes
    """
    check_dimensions(width, height, config.max_pixels)
    validate_pixel_buffer(pixels, width, height)
    return _encode_rgba(pixels, width, height, config)


def load_image(source: Union[str, Path, BinaryIO], max_pixels: Optional[int] = None) -> Image.Image:
    """
    Open an image and convert it to RGBA.

    The size declared in the image header is checked against max_pixels
    before any pixel data is decoded.

    Args:
        source: File path or binary file object
        max_pixels: Optional upper bound on width*height

    Returns:
        Image in RGBA mode
    """
    try:
        with Image.open(source) as image:
            check_dimensions(image.width, image.height, max_pixels)
            return image.convert("RGBA")
    except Image.DecompressionBombError as exc:
        raise ImageTooLargeError(f"Image too large to decode: {exc}") from exc
    except FileNotFoundError:
        raise
    except (UnidentifiedImageError, OSError) as exc:
        raise ValueError(f"Unsupported or corrupt image: {exc}") from exc


def load_image_from_bytes(image_data: bytes, max_pixels: Optional[int] = None) -> Image.Image:
    """Decode any Pillow-readable image bytes to RGBA, refusing oversized images early."""
    return load_image(BytesIO(image_data), max_pixels)


def encode_image(image: Image.Image, config: GifConfig = DEFAULT_CONFIG) -> bytes:
    """Encode a Pillow image as a single-frame GIF."""
    width, height = image.size
    check_dimensions(width, height, config.max_pixels)
    if image.mode != "RGBA":
        image = image.convert("RGBA")
    return _encode_rgba(image.tobytes(), width, height, config)


def convert_image_bytes(image_data: bytes, config: GifConfig = DEFAULT_CONFIG) -> bytes:
    """Convert encoded image bytes (PNG, JPEG, ...) into GIF bytes."""
    image = load_image_from_bytes(image_data, config.max_pixels)
    return _encode_rgba(image.tobytes(), image.width, image.height, config)
