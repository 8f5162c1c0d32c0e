"""
Tile Grid Codec

Tiles layers store a (tiles_y, tiles_x) grid of u32 tile IDs.

Before 2024.2 the grid is raw rows:
- u32 tile[tiles_y][tiles_x]

From 2024.2 it is a row-major run-length stream:
- u8 header
  - 0..127:   verbatim run, header raw u32 IDs follow
  - 0x80 | n: repeat run of n+1 copies of the single u32 ID that follows
- If the last two cells differ (or the grid has a single cell) the stream
  ends with an extra repeat run 0x81 FFFFFFFF. The runtime expects it.
- From 2024.4 the stream is zero-padded to a 4-byte file offset.

A grid with zero cells writes nothing at all, not even alignment.
"""

import struct
from typing import Tuple

import numpy as np

from gmroom.constants import (
    MAX_REPEAT_RUN,
    MAX_VERBATIM_RUN,
    PADDING_RUN_HEADER,
    PADDING_TILE,
    REPEAT_RUN_FLAG,
    VERSION_ALIGNED_TILES,
    VERSION_COMPRESSED_TILES,
)
from gmroom.errors import CorruptDataError, TileGridShapeError, WriterPreconditionError
from gmroom.format.version import VersionContext
from gmroom.utils.binary import BinaryCursor, BinaryWriter

_U32 = struct.Struct('<I')


def encode_runs(flat: np.ndarray) -> bytes:
    """
    Run-length encode a flat tile array (without alignment).

    Equal neighbours form repeat runs, split at 128; lone tiles collect into
    verbatim runs, split at 127, flushed before the next repeat run.
    """
    count = len(flat)
    if count == 0:
        return b''

    out = bytearray()
    pending = []

    def flush_verbatim():
        for start in range(0, len(pending), MAX_VERBATIM_RUN):
            chunk = pending[start:start + MAX_VERBATIM_RUN]
            out.append(len(chunk))
            out.extend(struct.pack(f'<{len(chunk)}I', *chunk))
        pending.clear()

    boundaries = np.flatnonzero(flat[1:] != flat[:-1]) + 1
    starts = np.concatenate(([0], boundaries))
    ends = np.concatenate((boundaries, [count]))
    for start, end in zip(starts.tolist(), ends.tolist()):
        length = end - start
        value = int(flat[start])
        if length == 1:
            pending.append(value)
            continue
        flush_verbatim()
        while length > 0:
            chunk = min(MAX_REPEAT_RUN, length)
            out.append(REPEAT_RUN_FLAG | (chunk - 1))
            out.extend(_U32.pack(value))
            length -= chunk

    if pending:
        # Last cell is a lone tile: the runtime wants two sentinel tiles after it
        flush_verbatim()
        out.append(PADDING_RUN_HEADER)
        out.extend(_U32.pack(PADDING_TILE))

    return bytes(out)


def decode_runs(cursor: BinaryCursor, count: int) -> np.ndarray:
    """Decode count tiles from a run stream, including the trailing padding run."""
    flat = np.zeros(count, dtype=np.uint32)
    if count == 0:
        return flat

    filled = 0
    while filled < count:
        header_offset = cursor.position
        header = cursor.read_u8()
        if header & REPEAT_RUN_FLAG:
            length = (header & 0x7F) + 1
            _check_run(filled, length, count, header_offset)
            flat[filled:filled + length] = cursor.read_u32()
        else:
            length = header
            _check_run(filled, length, count, header_offset)
            flat[filled:filled + length] = cursor.read_u32_array(length)
        filled += length

    if count == 1 or flat[-1] != flat[-2]:
        _read_padding_run(cursor)
    return flat


def _check_run(filled: int, length: int, count: int, offset: int):
    if filled + length > count:
        raise CorruptDataError(f"Tile run of {length} overflows grid ({filled}/{count} cells filled)",
                               offset, "run-overflow")


def _read_padding_run(cursor: BinaryCursor):
    offset = cursor.position
    header = cursor.read_u8()
    if header != PADDING_RUN_HEADER:
        raise CorruptDataError(f"Expected padding run 0x{PADDING_RUN_HEADER:02X}, got 0x{header:02X}",
                               offset, "rle-padding")
    tile = cursor.read_u32()
    if tile != PADDING_TILE:
        raise CorruptDataError(f"Expected padding tile 0x{PADDING_TILE:08X}, got 0x{tile:08X}",
                               offset + 1, "rle-padding")


class TileGridCodec:
    """
    Reads, writes and skips tile grids for the version of one load or save.

    The version is consulted on every call, so an upgrade earlier in the
    same load applies.
    """

    def __init__(self, version: VersionContext):
        self.version = version

    @property
    def compressed(self) -> bool:
        return self.version.is_version_at_least(*VERSION_COMPRESSED_TILES)

    @property
    def aligned(self) -> bool:
        return self.version.is_version_at_least(*VERSION_ALIGNED_TILES)

    def read(self, cursor: BinaryCursor, tiles_x: int, tiles_y: int) -> np.ndarray:
        count = tiles_x * tiles_y
        if not self.compressed:
            raw = cursor.read_bytes(count * 4)
            return np.frombuffer(raw, dtype='<u4').astype(np.uint32).reshape((tiles_y, tiles_x))

        flat = decode_runs(cursor, count)
        if count and self.aligned:
            cursor.align(4)
        return flat.reshape((tiles_y, tiles_x))

    def write(self, writer: BinaryWriter, grid, tiles_x: int, tiles_y: int):
        grid = np.asarray(grid, dtype=np.uint32)
        rows, cols = _grid_shape(grid)
        if rows != tiles_y:
            raise TileGridShapeError(f"Tile grid has {rows} rows, tiles_y is {tiles_y}",
                                     writer.position, "grid-shape")
        if cols != tiles_x:
            raise TileGridShapeError(f"Tile grid has {cols} columns, tiles_x is {tiles_x}",
                                     writer.position, "grid-shape")

        if not self.compressed:
            writer.write_bytes(grid.astype('<u4').tobytes())
            return

        if grid.size == 0:
            return
        flat = grid.reshape(-1)
        if np.any(flat == PADDING_TILE):
            raise WriterPreconditionError(f"Tile grid contains the reserved tile value 0x{PADDING_TILE:08X}",
                                          writer.position, "no-sentinel-tile")
        writer.write_bytes(encode_runs(flat))
        if self.aligned:
            writer.align(4)

    def skip(self, cursor: BinaryCursor, tiles_x: int, tiles_y: int):
        """Advance past a grid without building it."""
        count = tiles_x * tiles_y
        if not self.compressed:
            cursor.skip(count * 4)
            return
        if count == 0:
            return

        filled = 0
        previous = last = None
        while filled < count:
            header_offset = cursor.position
            header = cursor.read_u8()
            if header & REPEAT_RUN_FLAG:
                length = (header & 0x7F) + 1
                _check_run(filled, length, count, header_offset)
                value = cursor.read_u32()
                previous, last = (value if length > 1 else last), value
            else:
                length = header
                _check_run(filled, length, count, header_offset)
                if length >= 2:
                    cursor.skip((length - 2) * 4)
                    previous = cursor.read_u32()
                    last = cursor.read_u32()
                elif length == 1:
                    previous, last = last, cursor.read_u32()
            filled += length

        if count == 1 or previous != last:
            _read_padding_run(cursor)
        if self.aligned:
            cursor.align(4)


def _grid_shape(grid: np.ndarray) -> Tuple[int, int]:
    if grid.ndim == 2:
        return grid.shape[0], grid.shape[1]
    if grid.ndim == 1 and grid.size == 0:
        return 0, 0
    raise TileGridShapeError(f"Tile grid must be 2-dimensional, got shape {grid.shape}",
                             None, "grid-shape")
