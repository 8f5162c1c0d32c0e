"""
Data File Writer

Serializes GameData back into a FORM data file.

Strings are referenced by absolute offset, and the string pool may be
written before or after the chunks that point into it. Saving therefore
takes two passes over the same graph:

1. Sizing pass into a throwaway buffer: every string field interns its
   value, so the pool is complete before anything is emitted.
2. Real pass: fields pointing at strings not yet emitted reserve their slot,
   and STRG backpatches them when it lands; fields after STRG write offsets
   directly.

Chunks keep their loaded order. Opaque chunks are copied verbatim.
"""

from pathlib import Path
from typing import List, Union

from gmroom.constants import GENERAL_INFO_CHUNK, FORM_MAGIC, POOL_CHUNKS, ROOMS_CHUNK, SEQUENCES_CHUNK, STRINGS_CHUNK
from gmroom.container.reader import GameData
from gmroom.errors import WriterPreconditionError
from gmroom.format.chunks import write_general_info, write_named_pool, write_string_pool
from gmroom.format.context import CodecContext
from gmroom.room.writer import RoomWriter
from gmroom.utils import log, logDebug
from gmroom.utils.binary import BinaryWriter

_POOL_KINDS = {chunk: kind for kind, chunk in POOL_CHUNKS.items()}


class GameDataWriter:
    """
    Writer for FORM data files.

    Usage:
        GameDataWriter(game).write("data.win")
    """

    def __init__(self, game: GameData):
        self.game = game

    def chunk_order(self) -> List[str]:
        """Loaded chunk order, plus any modeled chunk the graph needs that the file lacked."""
        game = self.game
        order = list(game.chunk_order)
        wanted = [GENERAL_INFO_CHUNK]
        wanted += [POOL_CHUNKS[kind] for kind in game.pools.kinds()]
        if game.rooms:
            wanted.append(ROOMS_CHUNK)
        wanted.append(STRINGS_CHUNK)
        for name in wanted:
            if name not in order:
                order.append(name)
        return order

    def serialize(self) -> bytes:
        order = self.chunk_order()

        # Sizing pass; only its side effect on the string pool is kept
        self._write_form(order, self._context(order, sizing=True))

        ctx = self._context(order)
        data = self._write_form(order, ctx)
        if ctx.unpatched_string_count():
            raise WriterPreconditionError(f"{ctx.unpatched_string_count()} string field(s) never patched",
                                          None, "strings-complete")
        logDebug(f"Serialized {len(data)} bytes, {len(self.game.strings)} strings")
        return data

    def write(self, filepath: Union[str, Path]):
        data = self.serialize()
        path = Path(filepath)
        with open(path, 'wb') as f:
            f.write(data)
        log(f"Wrote {len(data)} bytes to {path}")

    def _context(self, order: List[str], sizing: bool = False) -> CodecContext:
        return CodecContext(self.game.version.copy(), self.game.strings,
                            has_sequence_chunk=SEQUENCES_CHUNK in order, sizing=sizing)

    def _write_form(self, order: List[str], ctx: CodecContext) -> bytes:
        game = self.game
        writer = BinaryWriter()
        form = writer.begin_chunk(FORM_MAGIC)
        for name in order:
            handle = writer.begin_chunk(name)
            if name == GENERAL_INFO_CHUNK:
                write_general_info(writer, ctx, game.general_info)
            elif name == STRINGS_CHUNK:
                write_string_pool(writer, ctx)
            elif name == ROOMS_CHUNK:
                RoomWriter(ctx).write_rooms(writer, game.rooms)
            elif name in _POOL_KINDS:
                write_named_pool(writer, ctx, game.pools.pool(_POOL_KINDS[name]))
            elif name in game.opaque_chunks:
                writer.write_bytes(game.opaque_chunks[name])
            else:
                raise WriterPreconditionError(f"Chunk {name} has no data to write", writer.position,
                                              "known-chunk")
            writer.end_chunk(handle)
        writer.end_chunk(form)
        return writer.getvalue()
