"""Tests for tiles layer grids, raw and run-length encoded."""

import itertools
import struct

import numpy as np
import pytest

from gmroom.errors import CorruptDataError, TileGridShapeError, WriterPreconditionError
from gmroom.format import VersionContext
from gmroom.room.tile_grid import TileGridCodec, decode_runs, encode_runs
from gmroom.utils.binary import BinaryCursor, BinaryWriter

PADDING = bytes([0x81]) + struct.pack('<I', 0xFFFFFFFF)

RAW = VersionContext(2024, 0)
COMPRESSED = VersionContext(2024, 2)
ALIGNED = VersionContext(2024, 4)

GRID_SIDES = [0, 1, 2, 17, 64]


def u32s(*values):
    return struct.pack(f'<{len(values)}I', *values)


def encode(*values):
    return encode_runs(np.array(values, dtype=np.uint32))


class TestEncodeRuns:
    """Byte layout of the run stream."""

    def test_empty(self):
        assert encode() == b''

    def test_single_cell_gets_padding(self):
        assert encode(7) == bytes([1]) + u32s(7) + PADDING

    def test_all_equal(self):
        assert encode(5, 5, 5) == bytes([0x82]) + u32s(5)

    def test_all_different(self):
        assert encode(1, 2, 3) == bytes([3]) + u32s(1, 2, 3) + PADDING

    def test_last_two_equal_has_no_padding(self):
        assert encode(1, 2, 2) == bytes([1]) + u32s(1) + bytes([0x81]) + u32s(2)

    def test_last_two_differ_has_padding(self):
        assert encode(1, 1, 2) == bytes([0x81]) + u32s(1) + bytes([1]) + u32s(2) + PADDING

    def test_repeat_run_limit(self):
        assert encode(*[9] * 128) == bytes([0xFF]) + u32s(9)
        assert encode(*[9] * 129) == bytes([0xFF]) + u32s(9) + bytes([0x80]) + u32s(9)

    def test_verbatim_run_limit(self):
        values = list(range(1, 128))
        assert encode(*values) == bytes([127]) + u32s(*values) + PADDING

        values = list(range(1, 129))
        expected = bytes([127]) + u32s(*values[:127]) + bytes([1]) + u32s(128) + PADDING
        assert encode(*values) == expected


class TestDecodeRuns:
    """Reading run streams back."""

    @pytest.mark.parametrize("values", [
        [7],
        [5, 5, 5],
        [1, 2, 3],
        [1, 2, 2],
        [1, 1, 2],
        [9] * 129,
        list(range(1, 129)),
        [4] * 127 + [1],
    ])
    def test_decode_consumes_whole_stream(self, values):
        stream = encode(*values)
        cursor = BinaryCursor(stream + b'\xAA')
        flat = decode_runs(cursor, len(values))
        assert flat.tolist() == values
        assert cursor.position == len(stream)

    def test_run_overflow(self):
        with pytest.raises(CorruptDataError):
            decode_runs(BinaryCursor(bytes([0x83]) + u32s(1)), 2)

    def test_verbatim_overflow(self):
        with pytest.raises(CorruptDataError):
            decode_runs(BinaryCursor(bytes([3]) + u32s(1, 2, 3)), 2)

    def test_missing_padding(self):
        with pytest.raises(CorruptDataError):
            decode_runs(BinaryCursor(bytes([1]) + u32s(1) + bytes([0x80]) + u32s(0xFFFFFFFF)), 1)

    def test_wrong_padding_tile(self):
        with pytest.raises(CorruptDataError):
            decode_runs(BinaryCursor(bytes([1]) + u32s(1) + bytes([0x81]) + u32s(0)), 1)


def sample_grid(tiles_x, tiles_y, pattern):
    count = tiles_x * tiles_y
    if pattern == "equal":
        flat = np.full(count, 3, dtype=np.uint32)
    elif pattern == "distinct":
        flat = np.arange(1, count + 1, dtype=np.uint32)
    elif pattern == "last-two-differ":
        flat = np.full(count, 3, dtype=np.uint32)
        if count:
            flat[-1] = 4
    elif pattern == "random":
        rng = np.random.default_rng(tiles_x * 1000 + tiles_y)
        palette = np.array([0, 1, 0x80000007, 0x7FFFFFFF, 42], dtype=np.uint32)
        flat = palette[rng.integers(0, len(palette), count)]
    else:
        flat = np.arange(count, dtype=np.uint32) // 3
    return flat.reshape((tiles_y, tiles_x))


class TestTileGridCodec:
    """Grids through the version-selected layout."""

    @pytest.mark.parametrize("version", [RAW, COMPRESSED, ALIGNED], ids=["raw", "rle", "rle-aligned"])
    @pytest.mark.parametrize("size", list(itertools.product(GRID_SIDES, repeat=2)))
    @pytest.mark.parametrize("pattern", ["equal", "distinct", "last-two-differ", "triples", "random"])
    def test_grid_survives_write_read_and_skip(self, version, size, pattern):
        tiles_x, tiles_y = size
        grid = sample_grid(tiles_x, tiles_y, pattern)
        codec = TileGridCodec(version)

        writer = BinaryWriter()
        writer.write_u8(0xEE)  # start off-alignment
        codec.write(writer, grid, tiles_x, tiles_y)
        data = writer.getvalue()

        cursor = BinaryCursor(data, 1)
        result = codec.read(cursor, tiles_x, tiles_y)
        assert result.shape == (tiles_y, tiles_x)
        assert np.array_equal(result, grid)
        assert cursor.position == len(data)

        skipper = BinaryCursor(data, 1)
        codec.skip(skipper, tiles_x, tiles_y)
        assert skipper.position == len(data)

    @pytest.mark.parametrize("seed", range(5))
    def test_random_tile_values(self, seed):
        rng = np.random.default_rng(seed)
        tiles_x, tiles_y = (int(side) for side in rng.integers(1, 65, 2))
        grid = rng.integers(0, 0xFFFFFFFF, (tiles_y, tiles_x), dtype=np.uint32)
        grid[:, : tiles_x // 2] = grid[0, 0]  # long runs alongside verbatim stretches
        codec = TileGridCodec(ALIGNED)

        writer = BinaryWriter()
        codec.write(writer, grid, tiles_x, tiles_y)
        cursor = BinaryCursor(writer.getvalue())
        assert np.array_equal(codec.read(cursor, tiles_x, tiles_y), grid)
        assert cursor.position == writer.position

    def test_raw_layout(self):
        writer = BinaryWriter()
        TileGridCodec(RAW).write(writer, np.array([[1, 2], [3, 4]], dtype=np.uint32), 2, 2)
        assert writer.getvalue() == u32s(1, 2, 3, 4)

    def test_alignment_is_absolute(self):
        writer = BinaryWriter()
        writer.write_u8(0)
        TileGridCodec(ALIGNED).write(writer, np.array([[7]], dtype=np.uint32), 1, 1)
        # 1 + 5 + 5 bytes, padded to 12
        assert writer.position == 12

    def test_empty_grid_writes_nothing(self):
        writer = BinaryWriter()
        writer.write_u8(0)
        TileGridCodec(ALIGNED).write(writer, np.zeros((0, 4), dtype=np.uint32), 4, 0)
        assert writer.position == 1

    def test_version_upgrade_applies_to_later_grids(self):
        version = VersionContext(2023, 2)
        codec = TileGridCodec(version)
        assert not codec.compressed
        version.upgrade(2024, 6)
        assert codec.compressed and codec.aligned

    def test_reserved_tile_value_rejected(self):
        grid = np.array([[1, 0xFFFFFFFF]], dtype=np.uint32)
        with pytest.raises(WriterPreconditionError):
            TileGridCodec(COMPRESSED).write(BinaryWriter(), grid, 2, 1)

    def test_shape_mismatch_rows_first(self):
        grid = np.zeros((3, 2), dtype=np.uint32)
        with pytest.raises(TileGridShapeError, match="rows"):
            TileGridCodec(RAW).write(BinaryWriter(), grid, 5, 5)
        with pytest.raises(TileGridShapeError, match="columns"):
            TileGridCodec(RAW).write(BinaryWriter(), grid, 5, 3)

    def test_one_dimensional_grid_rejected(self):
        with pytest.raises(TileGridShapeError):
            TileGridCodec(RAW).write(BinaryWriter(), np.zeros(4, dtype=np.uint32), 4, 1)
