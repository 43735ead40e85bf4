"""
GIF Spoofer core.
Converts any raster image into a minimal, opaque, single-frame GIF89a file
with an in-house median-cut quantizer and LZW compressor.
"""

from .gif_encoder import (
    DEFAULT_CONFIG,
    GIF_MIME_TYPE,
    GifConfig,
    ImageTooLargeError,
    assemble_gif,
    build_gif,
    convert_image_bytes,
    encode_image,
    load_image,
    load_image_from_bytes,
    parse_max_pixels,
)
from .gif_reader import DecodedGif, read_gif
from .lzw import lzw_decode, lzw_encode
from .quantizer import Quantization, quantize

__all__ = [
    "GifConfig",
    "DEFAULT_CONFIG",
    "GIF_MIME_TYPE",
    "ImageTooLargeError",
    "Quantization",
    "DecodedGif",
    "quantize",
    "lzw_encode",
    "lzw_decode",
    "assemble_gif",
    "build_gif",
    "encode_image",
    "convert_image_bytes",
    "load_image",
    "load_image_from_bytes",
    "parse_max_pixels",
    "read_gif",
]
