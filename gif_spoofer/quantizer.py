"""
Median-cut colour quantization.
Reduces an RGBA pixel buffer to a fixed 256-entry palette plus one palette
index per pixel.
"""

import logging
from dataclasses import dataclass
from operator import itemgetter
from typing import Dict, List, Sequence, Tuple

logger = logging.getLogger(__name__)

Color = Tuple[int, int, int]

PALETTE_SIZE = 256
CUT_DEPTH = 8
SAMPLE_THRESHOLD = 100_000
SAMPLE_TARGET = 50_000
BLACK: Color = (0, 0, 0)


@dataclass(frozen=True)
class Quantization:
    """Result of quantizing a pixel buffer."""

    palette: Tuple[Color, ...]
    indices: bytes


def validate_pixel_buffer(pixels: Sequence[int], width: int, height: int) -> None:
    """Raise ValueError unless pixels holds exactly width*height RGBA pixels."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Image dimensions must be positive. Got: {width}x{height}")
    expected = width * height * 4
    if len(pixels) != expected:
        raise ValueError(
            f"Pixel buffer length {len(pixels)} does not match {width}x{height} RGBA "
            f"(expected {expected} bytes)"
        )


def sample_step(pixel_count: int, threshold: int = SAMPLE_THRESHOLD, target: int = SAMPLE_TARGET) -> int:
    """Return the stride used when collecting colours for palette derivation."""
    if pixel_count > threshold:
        return max(1, pixel_count // target)
    return 1


def collect_samples(pixels: Sequence[int], pixel_count: int, step: int) -> List[Color]:
    """Gather RGB triples from every step-th pixel, ignoring alpha."""
    return [
        (pixels[offset], pixels[offset + 1], pixels[offset + 2])
        for offset in range(0, pixel_count * 4, step * 4)
    ]


def _mean_color(colors: List[Color], start: int, end: int) -> Color:
    count = end - start
    if count <= 0:
        return BLACK
    red = green = blue = 0
    for r, g, b in colors[start:end]:
        red += r
        green += g
        blue += b
    # Half-up rounding on integers.
    return (
        (red * 2 + count) // (count * 2),
        (green * 2 + count) // (count * 2),
        (blue * 2 + count) // (count * 2),
    )


def _widest_channel(colors: List[Color], start: int, end: int) -> int:
    ranges = []
    for channel in range(3):
        values = [color[channel] for color in colors[start:end]]
        ranges.append(max(values) - min(values))
    red_range, green_range, blue_range = ranges
    if red_range >= green_range and red_range >= blue_range:
        return 0
    if green_range >= blue_range:
        return 1
    return 2


def _median_cut(colors: List[Color], start: int, end: int, depth: int, out: List[Color]) -> None:
    if depth == 0 or start >= end:
        out.append(_mean_color(colors, start, end))
        return

    channel = _widest_channel(colors, start, end)
    colors[start:end] = sorted(colors[start:end], key=itemgetter(channel))
    mid = start + (end - start) // 2

    _median_cut(colors, start, mid, depth - 1, out)
    _median_cut(colors, mid, end, depth - 1, out)


def median_cut(colors: List[Color], depth: int = CUT_DEPTH) -> List[Color]:
    """
    Split colors along their widest channel until depth is exhausted.

    Each leaf bucket contributes its mean colour (black when empty), so the
    result holds at most 2**depth colours. The list is sorted in place.
    """
    palette: List[Color] = []
    _median_cut(colors, 0, len(colors), depth, palette)
    return palette


def pad_palette(colors: Sequence[Color], size: int = PALETTE_SIZE) -> Tuple[Color, ...]:
    """Pad or truncate colors to exactly size entries, filling with black."""
    padded = list(colors[:size])
    padded.extend([BLACK] * (size - len(padded)))
    return tuple(padded)


def nearest_index(palette: Sequence[Color], r: int, g: int, b: int) -> int:
    """Index of the palette colour closest in squared RGB distance; first wins ties."""
    best_index = 0
    best_distance = None
    for index, (pr, pg, pb) in enumerate(palette):
        dr = r - pr
        dg = g - pg
        db = b - pb
        distance = dr * dr + dg * dg + db * db
        if best_distance is None or distance < best_distance:
            best_distance = distance
            best_index = index
            if distance == 0:
                break
    return best_index


def map_to_palette(pixels: Sequence[int], pixel_count: int, palette: Sequence[Color]) -> bytes:
    """Assign every pixel its nearest palette index."""
    indices = bytearray(pixel_count)
    cache: Dict[Color, int] = {}
    for i in range(pixel_count):
        offset = i * 4
        key = (pixels[offset], pixels[offset + 1], pixels[offset + 2])
        index = cache.get(key)
        if index is None:
            index = nearest_index(palette, *key)
            cache[key] = index
        indices[i] = index
    return bytes(indices)


def quantize(
    pixels: Sequence[int],
    width: int,
    height: int,
    sample_threshold: int = SAMPLE_THRESHOLD,
    sample_target: int = SAMPLE_TARGET,
    validate: bool = True,
) -> Quantization:
    """
    Reduce an RGBA pixel buffer to a 256-colour palette and an index buffer.

    Args:
        pixels: Row-major RGBA bytes (or ints), width*height*4 long. Not modified.
        width: Image width in pixels
        height: Image height in pixels
        sample_threshold: Pixel count above which only a subset feeds the palette
        sample_target: Approximate number of samples taken above the threshold
        validate: Check the buffer shape first; callers that already did may skip it

    Returns:
        Quantization with exactly 256 palette entries and width*height indices
    """
    if validate:
        validate_pixel_buffer(pixels, width, height)
    pixel_count = width * height

    step = sample_step(pixel_count, sample_threshold, sample_target)
    samples = collect_samples(pixels, pixel_count, step)
    colors = median_cut(samples)
    palette = pad_palette(colors)
    logger.debug(
        "Quantized %dx%d image: step=%d samples=%d colours=%d",
        width, height, step, len(samples), len(colors),
    )

    return Quantization(palette=palette, indices=map_to_palette(pixels, pixel_count, palette))
