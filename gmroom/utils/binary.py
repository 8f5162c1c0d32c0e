"""
Binary File Utilities

Reading and writing helpers for the little-endian data file format.

BinaryCursor is the read side: one contiguous buffer with a movable absolute
position and an offset stack, because pointers may target any place in the
file, before or after the current position.

BinaryWriter is the write side: an io.BytesIO with reserved slots that are
backpatched once the pointed-to data has been written.
"""

import struct
import io
from contextlib import contextmanager
from typing import Iterator, List, Tuple

from gmroom.errors import CorruptDataError, TruncatedDataError

_U8 = struct.Struct('<B')
_U16 = struct.Struct('<H')
_U32 = struct.Struct('<I')
_I32 = struct.Struct('<i')
_F32 = struct.Struct('<f')


class BinaryCursor:
    """
    Read cursor over an in-memory data file.

    All positions are absolute offsets into the buffer.

    Usage:
        cursor = BinaryCursor(data)
        count = cursor.read_u32()
        with cursor.jump(pointer):
            name_offset = cursor.read_u32()
    """

    def __init__(self, data: bytes, position: int = 0):
        self.data = data
        self._position = position
        self._stack: List[int] = []

    @property
    def position(self) -> int:
        return self._position

    def seek(self, offset: int):
        """Move to an absolute offset."""
        if not 0 <= offset <= len(self.data):
            raise CorruptDataError(f"Offset 0x{offset:X} is outside the {len(self.data)}-byte buffer",
                                   self._position, "offset-in-range")
        self._position = offset

    def skip(self, size: int):
        self._require(size)
        self._position += size

    def push(self, offset: int):
        """Remember the current position and move to offset."""
        self._stack.append(self._position)
        self.seek(offset)

    def pop(self):
        """Return to the position saved by the matching push()."""
        self._position = self._stack.pop()

    @contextmanager
    def jump(self, offset: int) -> Iterator['BinaryCursor']:
        """Read somewhere else, then come back."""
        self.push(offset)
        try:
            yield self
        finally:
            self.pop()

    @property
    def remaining_bytes(self) -> int:
        return max(0, len(self.data) - self._position)

    def _require(self, size: int):
        if self._position + size > len(self.data):
            raise TruncatedDataError(f"Need {size} bytes, {self.remaining_bytes} left",
                                     self._position, "buffer-bounds")

    def _unpack(self, fmt: struct.Struct):
        self._require(fmt.size)
        value = fmt.unpack_from(self.data, self._position)[0]
        self._position += fmt.size
        return value

    def read_u8(self) -> int:
        return self._unpack(_U8)

    def read_u16(self) -> int:
        return self._unpack(_U16)

    def read_u32(self) -> int:
        return self._unpack(_U32)

    def read_i32(self) -> int:
        return self._unpack(_I32)

    def read_f32(self) -> float:
        return self._unpack(_F32)

    def read_bool(self) -> bool:
        """32-bit boolean; any non-zero word is true."""
        return self._unpack(_U32) != 0

    def peek_u32(self) -> int:
        self._require(4)
        return _U32.unpack_from(self.data, self._position)[0]

    def read_bytes(self, size: int) -> bytes:
        self._require(size)
        chunk = self.data[self._position:self._position + size]
        self._position += size
        return bytes(chunk)

    def read_u32_array(self, count: int) -> Tuple[int, ...]:
        """Read count consecutive u32 values (e.g. a pointer table)."""
        self._require(count * 4)
        values = struct.unpack_from(f'<{count}I', self.data, self._position)
        self._position += count * 4
        return values

    def align(self, alignment: int):
        """Skip zero padding up to the next multiple of alignment."""
        while self._position % alignment != 0:
            start = self._position
            if self.read_u8() != 0:
                raise CorruptDataError("Non-zero alignment padding", start, "zero-padding")


class BinaryWriter:
    """
    Write buffer with pointer backpatching.

    Usage:
        writer = BinaryWriter()
        slot = writer.reserve_u32()      # pointer to something written later
        ...
        writer.patch_here(slot)          # slot now holds the current position
        data = writer.getvalue()
    """

    def __init__(self):
        self._buffer = io.BytesIO()

    @property
    def position(self) -> int:
        return self._buffer.tell()

    def write_u8(self, value: int):
        self._buffer.write(_U8.pack(value))

    def write_u16(self, value: int):
        self._buffer.write(_U16.pack(value))

    def write_u32(self, value: int):
        self._buffer.write(_U32.pack(value & 0xFFFFFFFF))

    def write_i32(self, value: int):
        self._buffer.write(_I32.pack(value))

    def write_f32(self, value: float):
        self._buffer.write(_F32.pack(value))

    def write_bool(self, value: bool):
        self._buffer.write(_U32.pack(1 if value else 0))

    def write_bytes(self, data: bytes):
        self._buffer.write(data)

    def reserve_u32(self) -> int:
        """Write a zero placeholder and return its position."""
        position = self.position
        self._buffer.write(b'\x00\x00\x00\x00')
        return position

    def patch_u32(self, position: int, value: int):
        """Overwrite a previously written u32 without moving the cursor."""
        end = self.position
        self._buffer.seek(position)
        self._buffer.write(_U32.pack(value & 0xFFFFFFFF))
        self._buffer.seek(end)

    def patch_here(self, position: int):
        """Point a reserved slot at the current position."""
        self.patch_u32(position, self.position)

    def align(self, alignment: int):
        """Zero-pad up to the next multiple of alignment."""
        padding = (-self.position) % alignment
        if padding:
            self._buffer.write(b'\x00' * padding)

    def begin_chunk(self, name: str) -> int:
        """
        Start a chunk: 4-char name + u32 size placeholder.

        Returns:
            Handle to pass to end_chunk()
        """
        encoded = name.encode('ascii')
        if len(encoded) != 4:
            raise ValueError(f"Chunk name must be 4 ASCII characters: {name!r}")
        self._buffer.write(encoded)
        return self.reserve_u32()

    def end_chunk(self, handle: int):
        """Fill in the size of the chunk started at handle."""
        self.patch_u32(handle, self.position - (handle + 4))

    def getvalue(self) -> bytes:
        return self._buffer.getvalue()


def read_chunk_header(data: bytes, offset: int) -> Tuple[str, int, int]:
    """
    Read a chunk header.

    Args:
        data: Whole file buffer
        offset: Offset of the chunk name

    Returns:
        Tuple of (chunk_name, chunk_size, body_offset)
    """
    if offset + 8 > len(data):
        raise TruncatedDataError("Not enough data for chunk header", offset, "chunk-header")
    raw_name = data[offset:offset + 4]
    try:
        name = raw_name.decode('ascii')
    except UnicodeDecodeError:
        raise CorruptDataError(f"Invalid chunk name {raw_name!r}", offset, "chunk-name") from None
    size = _U32.unpack_from(data, offset + 4)[0]
    return name, size, offset + 8
