"""
Counting Pass

Walks the ROOM chunk exactly the way RoomReader does, over raw bytes, without
building any objects, and returns how many addressable objects a full read
would register. It shares the record schemas and slot functions of
gmroom.room.layout with the reader, and performs the same version inference
on its own context.

Used to size object tables up front, and as a cross-check of the reader.
"""

from typing import Optional

from gmroom.constants import GENERAL_INFO_CHUNK, ROOMS_CHUNK, SEQUENCES_CHUNK
from gmroom.config.codec_config import CodecConfig
from gmroom.errors import CorruptDataError
from gmroom.format.chunks import ChunkReader, read_general_info
from gmroom.format.context import CodecContext
from gmroom.format.lists import count_pointer_list, count_simple_list
from gmroom.format.schema import RecordSchema
from gmroom.room.data_types import LayerType
from gmroom.room.layout import (
    ASSETS_ELEMENTS,
    EFFECT_PROPERTY,
    LAYER_BACKGROUND,
    LAYER_BASE,
    LAYER_EFFECT_HEAD,
    LAYER_TILES_HEAD,
    ROOM_HEAD,
    ROOM_LIST_ELEMENTS,
    ROOM_TAIL,
    layer_has_effect_properties,
    layer_payload_serialized,
    parse_layer_type,
    read_assets_pointer_table,
    room_head_slots,
    room_tail_slots,
)
from gmroom.room.tile_grid import TileGridCodec
from gmroom.utils import logDebug
from gmroom.utils.binary import BinaryCursor


def _seek_body(cursor: BinaryCursor, pointer: int, what: str, slot_offset: int):
    if pointer == 0:
        raise CorruptDataError(f"Null {what} pointer", slot_offset, "non-null-pointer")
    cursor.seek(pointer)


class CountingPass:
    """
    Object counter for the room layout.

    Usage:
        total = CountingPass(CodecContext(version)).count_rooms(cursor)
    """

    def __init__(self, ctx: CodecContext):
        self.ctx = ctx
        self.tile_grid = TileGridCodec(ctx.version)

    def count_rooms(self, cursor: BinaryCursor) -> int:
        return count_pointer_list(cursor, self.count_room)

    def count_room(self, cursor: BinaryCursor) -> int:
        ctx = self.ctx
        total = 1 + ROOM_HEAD.skip(cursor, ctx)

        pointers = []
        for slot in room_head_slots(ctx.version):
            pointers.append((slot, cursor.position, cursor.read_u32()))
        total += ROOM_TAIL.skip(cursor, ctx)
        for slot in room_tail_slots(ctx):
            pointers.append((slot, cursor.position, cursor.read_u32()))

        for slot, slot_offset, pointer in pointers:
            _seek_body(cursor, pointer, f"room {slot}", slot_offset)
            total += self._count_room_body(cursor, slot)
        return total

    def _count_room_body(self, cursor: BinaryCursor, slot: str) -> int:
        if slot in ROOM_LIST_ELEMENTS:
            return count_pointer_list(cursor, self._record_counter(ROOM_LIST_ELEMENTS[slot]))
        if slot == 'instance_creation_order_ids':
            cursor.skip(cursor.read_u32() * 4)
            return 1
        if slot == 'layers':
            return count_pointer_list(cursor, self.count_layer)
        if slot == 'sequences':
            return count_simple_list(cursor, _skip_ref)
        raise AssertionError(f"Unhandled room slot {slot}")

    def _record_counter(self, schema: RecordSchema):
        return lambda cursor: 1 + schema.skip(cursor, self.ctx)

    def count_layer(self, cursor: BinaryCursor) -> int:
        ctx = self.ctx
        type_offset = cursor.position + LAYER_BASE.offset_of('layer_type', ctx.version)
        layer_type = parse_layer_type(LAYER_BASE.peek_u32(cursor, 'layer_type', ctx.version), type_offset)
        total = 1 + LAYER_BASE.skip(cursor, ctx)

        if layer_has_effect_properties(ctx.version):
            total += count_simple_list(cursor, self._record_counter(EFFECT_PROPERTY))

        if layer_payload_serialized(ctx.version, layer_type):
            total += 1 + self._count_payload(cursor, layer_type)
        return total

    def _count_payload(self, cursor: BinaryCursor, layer_type: LayerType) -> int:
        ctx = self.ctx
        if layer_type == LayerType.INSTANCES:
            cursor.skip(cursor.read_u32() * 4)
            return 0

        if layer_type == LayerType.TILES:
            tiles_x = LAYER_TILES_HEAD.peek_u32(cursor, 'tiles_x', ctx.version)
            tiles_y = LAYER_TILES_HEAD.peek_u32(cursor, 'tiles_y', ctx.version)
            refs = LAYER_TILES_HEAD.skip(cursor, ctx)
            self.tile_grid.skip(cursor, tiles_x, tiles_y)
            return refs

        if layer_type == LayerType.BACKGROUND:
            return LAYER_BACKGROUND.skip(cursor, ctx)

        if layer_type == LayerType.ASSETS:
            table_offset = cursor.position
            total = 0
            for index, (slot, pointer) in enumerate(read_assets_pointer_table(cursor, ctx).items()):
                _seek_body(cursor, pointer, f"assets {slot}", table_offset + index * 4)
                total += count_pointer_list(cursor, self._record_counter(ASSETS_ELEMENTS[slot]))
            return total

        if layer_type == LayerType.EFFECT:
            refs = LAYER_EFFECT_HEAD.skip(cursor, ctx)
            return refs + count_simple_list(cursor, self._record_counter(EFFECT_PROPERTY))

        raise AssertionError(f"Layer type {layer_type!r} has no payload")


def _skip_ref(cursor: BinaryCursor) -> int:
    cursor.skip(4)
    return 1


def count_room_objects(data: bytes, config: Optional[CodecConfig] = None) -> int:
    """
    Count the room objects of a whole data file.

    The version is seeded from GEN8 (raised to the configured minimum, as a
    full load does), so the result equals GameData.room_object_count.
    """
    chunks = {chunk.name: chunk for chunk in ChunkReader(data)}
    if ROOMS_CHUNK not in chunks:
        return 0
    if GENERAL_INFO_CHUNK not in chunks:
        raise CorruptDataError(f"Missing {GENERAL_INFO_CHUNK} chunk", None, "general-info")

    info = read_general_info(data, chunks[GENERAL_INFO_CHUNK])
    config = config or CodecConfig()
    ctx = CodecContext(config.version_context(info.version_context()),
                       has_sequence_chunk=SEQUENCES_CHUNK in chunks)
    total = CountingPass(ctx).count_rooms(BinaryCursor(data, chunks[ROOMS_CHUNK].body_offset))
    logDebug(f"Counted {total} room objects (version {ctx.version})")
    return total
