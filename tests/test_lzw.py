"""
Tests for the GIF LZW compressor and decompressor.
"""

import random
from io import BytesIO

import pytest
from PIL import Image

from gif_spoofer.gif_encoder import assemble_gif
from gif_spoofer.lzw import BitReader, BitWriter, lzw_decode, lzw_encode

GRAYSCALE = tuple((value, value, value) for value in range(256))


def decode_with_pillow(indices: bytes, width: int, height: int) -> bytes:
    """Wrap indices in a GIF and let Pillow decompress them."""
    gif = Image.open(BytesIO(assemble_gif(GRAYSCALE, indices, width, height)))
    gif.load()
    return gif.tobytes()


class TestBitPacking:
    """Tests for BitWriter and BitReader."""

    def test_lsb_first(self):
        writer = BitWriter()
        writer.write(0b101, 3)
        writer.write(0b11111, 5)
        assert writer.flush() == bytes([0b11111101])

    def test_partial_byte_zero_padded(self):
        writer = BitWriter()
        writer.write(0x1FF, 9)
        assert writer.flush() == b"\xff\x01"

    def test_reader_matches_writer(self):
        writer = BitWriter()
        for code in (256, 3, 511, 257):
            writer.write(code, 9)
        reader = BitReader(writer.flush())
        assert [reader.read(9) for _ in range(4)] == [256, 3, 511, 257]

    def test_reader_returns_none_at_end(self):
        assert BitReader(b"\x01").read(9) is None


class TestLzwEncode:
    """Tests for lzw_encode function."""

    def test_single_index(self):
        # Clear (256), 7, End-of-Information (257), 9 bits each.
        assert lzw_encode([7], 8) == b"\x00\x0f\x04\x04"

    def test_empty_input(self):
        assert lzw_encode([], 8) == b"\x00\x03\x02"

    def test_reference_sequence_round_trip(self):
        indices = bytes([0, 0, 0, 1, 1, 0, 0, 0, 0, 1, 1])
        assert lzw_decode(lzw_encode(indices, 8), 8) == indices

    def test_repeated_run_round_trip(self):
        indices = bytes([5] * 1000)
        encoded = lzw_encode(indices, 8)
        assert len(encoded) < 100
        assert lzw_decode(encoded, 8) == indices

    def test_small_code_size_round_trip(self):
        indices = bytes([0, 1, 2, 3, 0, 1, 2, 3, 3, 3, 3])
        assert lzw_decode(lzw_encode(indices, 2), 2) == indices

    def test_table_reset_round_trip(self):
        rng = random.Random(1234)
        indices = bytes(rng.randrange(256) for _ in range(20000))
        assert lzw_decode(lzw_encode(indices, 8), 8) == indices

    def test_deterministic(self):
        indices = bytes(range(256)) * 4
        assert lzw_encode(indices, 8) == lzw_encode(indices, 8)

    def test_index_out_of_range_raises(self):
        with pytest.raises(ValueError, match="out of range"):
            lzw_encode([0, 4], 2)

    def test_invalid_code_size_raises(self):
        with pytest.raises(ValueError, match="between 2 and 8"):
            lzw_encode([0], 9)


class TestLzwDecode:
    """Tests for lzw_decode function."""

    def test_stops_at_end_code(self):
        encoded = lzw_encode([1, 2, 3], 8) + b"\xff\xff"
        assert lzw_decode(encoded, 8) == bytes([1, 2, 3])

    def test_invalid_code_raises(self):
        writer = BitWriter()
        writer.write(256, 9)
        writer.write(1, 9)
        writer.write(400, 9)
        with pytest.raises(ValueError, match="Invalid LZW code"):
            lzw_decode(writer.flush(), 8)


class TestPillowCompatibility:
    """Pillow decodes our code stream back to the original indices."""

    def test_reference_sequence(self):
        indices = bytes([0, 0, 0, 1, 1, 0, 0, 0, 0, 1, 1])
        assert decode_with_pillow(indices, 11, 1) == indices

    def test_code_width_growth_and_reset(self):
        rng = random.Random(99)
        indices = bytes(rng.randrange(256) for _ in range(160 * 120))
        assert decode_with_pillow(indices, 160, 120) == indices

    def test_gradient(self):
        indices = bytes((x + y) % 256 for y in range(64) for x in range(64))
        assert decode_with_pillow(indices, 64, 64) == indices
