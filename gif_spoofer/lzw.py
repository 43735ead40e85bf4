"""
Variable-width LZW as used by GIF image data.
Codes grow from min_code_size + 1 up to 12 bits and are packed LSB-first.
"""

import logging
from typing import Dict, Iterable, List, Optional, Tuple

logger = logging.getLogger(__name__)

MAX_CODE_SIZE = 12
MAX_TABLE_SIZE = 1 << MAX_CODE_SIZE


class BitWriter:
    """Packs variable-width codes into bytes, least significant bit first."""

    def __init__(self) -> None:
        self.output = bytearray()
        self._buffer = 0
        self._length = 0

    def write(self, code: int, size: int) -> None:
        self._buffer |= code << self._length
        self._length += size
        while self._length >= 8:
            self.output.append(self._buffer & 0xFF)
            self._buffer >>= 8
            self._length -= 8

    def flush(self) -> bytes:
        if self._length > 0:
            self.output.append(self._buffer & 0xFF)
            self._buffer = 0
            self._length = 0
        return bytes(self.output)


class BitReader:
    """Reads LSB-first variable-width codes from a byte string."""

    def __init__(self, data: bytes) -> None:
        self._data = data
        self._position = 0
        self._buffer = 0
        self._length = 0

    def read(self, size: int) -> Optional[int]:
        """Return the next code, or None once the data runs out."""
        while self._length < size:
            if self._position >= len(self._data):
                return None
            self._buffer |= self._data[self._position] << self._length
            self._position += 1
            self._length += 8
        code = self._buffer & ((1 << size) - 1)
        self._buffer >>= size
        self._length -= size
        return code


def _check_min_code_size(min_code_size: int) -> None:
    if not 2 <= min_code_size <= 8:
        raise ValueError(f"LZW minimum code size must be between 2 and 8. Got: {min_code_size}")


def lzw_encode(indices: Iterable[int], min_code_size: int = 8) -> bytes:
    """
    Compress palette indices into a GIF LZW code stream.

    The table is keyed by (prefix code, next index) pairs. When it reaches
    4096 entries a Clear code is emitted and the table starts over.

    Args:
        indices: Palette indices, each below 1 << min_code_size
        min_code_size: LZW minimum code size written alongside the image data

    Returns:
        The packed code stream, without sub-block framing
    """
    _check_min_code_size(min_code_size)
    clear_code = 1 << min_code_size
    end_code = clear_code + 1

    writer = BitWriter()
    code_size = min_code_size + 1
    next_code = end_code + 1
    table: Dict[Tuple[int, int], int] = {}

    writer.write(clear_code, code_size)

    prefix: Optional[int] = None
    for index in indices:
        if not 0 <= index < clear_code:
            raise ValueError(f"Index {index} out of range for minimum code size {min_code_size}")
        if prefix is None:
            prefix = index
            continue

        code = table.get((prefix, index))
        if code is not None:
            prefix = code
            continue

        writer.write(prefix, code_size)
        if next_code < MAX_TABLE_SIZE:
            table[(prefix, index)] = next_code
            next_code += 1
            if next_code > (1 << code_size) and code_size < MAX_CODE_SIZE:
                code_size += 1
        else:
            writer.write(clear_code, code_size)
            table = {}
            next_code = end_code + 1
            code_size = min_code_size + 1
        prefix = index

    if prefix is not None:
        writer.write(prefix, code_size)
    writer.write(end_code, code_size)

    data = writer.flush()
    logger.debug("LZW encoded %d bytes with %d table entries", len(data), next_code)
    return data


def lzw_decode(data: bytes, min_code_size: int = 8) -> bytes:
    """Decompress a GIF LZW code stream back into palette indices."""
    _check_min_code_size(min_code_size)
    clear_code = 1 << min_code_size
    end_code = clear_code + 1

    reader = BitReader(data)
    output = bytearray()
    code_size = min_code_size + 1
    previous: Optional[bytes] = None

    def reset() -> List[bytes]:
        return [bytes((value,)) for value in range(clear_code)] + [b"", b""]

    table = reset()
    while True:
        code = reader.read(code_size)
        if code is None or code == end_code:
            break
        if code == clear_code:
            table = reset()
            code_size = min_code_size + 1
            previous = None
            continue

        if previous is None:
            if code >= clear_code:
                raise ValueError(f"Invalid first LZW code {code}")
            entry = table[code]
            output.extend(entry)
            previous = entry
            continue

        if code < len(table):
            entry = table[code]
        elif code == len(table):
            entry = previous + previous[:1]
        else:
            raise ValueError(f"Invalid LZW code {code} with table size {len(table)}")

        output.extend(entry)
        if len(table) < MAX_TABLE_SIZE:
            table.append(previous + entry[:1])
            if len(table) == (1 << code_size) and code_size < MAX_CODE_SIZE:
                code_size += 1
        previous = entry

    return bytes(output)
