"""
Room Reader

Materializes rooms from the ROOM chunk.

Every addressable object is registered on the CodecContext as it is read
(rooms, list containers, list elements, resource refs, layers, layer payloads,
effect properties, instance ID lists); CountingPass walks the same layout and
must arrive at the same total.

References are stored unresolved; instance IDs of instances layers are kept
raw. Both are bound by gmroom.room.resolve once all pools are loaded.
"""

from typing import Callable, List

from gmroom.errors import CorruptDataError
from gmroom.format.context import CodecContext
from gmroom.format.lists import read_pointer_list, read_simple_list
from gmroom.format.pools import PoolKind
from gmroom.format.schema import RecordSchema
from gmroom.room.data_types import (
    Background,
    EffectProperty,
    GameObject,
    InstanceIDList,
    Layer,
    LayerAssetsData,
    LayerBackgroundData,
    LayerEffectData,
    LayerInstancesData,
    LayerTilesData,
    LayerType,
    ParticleSystemInstance,
    Room,
    RoomFlags,
    SequenceInstance,
    SpriteInstance,
    TextItemInstance,
    Tile,
    View,
)
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

ROOM_LIST_TYPES = {
    'backgrounds': Background,
    'views': View,
    'game_objects': GameObject,
    'tiles': Tile,
}

ASSETS_TYPES = {
    'legacy_tiles': Tile,
    'sprites': SpriteInstance,
    'sequences': SequenceInstance,
    'nine_slices': SpriteInstance,
    'particle_systems': ParticleSystemInstance,
    'text_items': TextItemInstance,
}


def _seek_body(cursor: BinaryCursor, pointer: int, what: str, slot_offset: int):
    if pointer == 0:
        raise CorruptDataError(f"Null {what} pointer", slot_offset, "non-null-pointer")
    cursor.seek(pointer)


class RoomReader:
    """
    Reads rooms for one load.

    Usage:
        ctx = CodecContext(version, strings, has_sequence_chunk=True)
        rooms = RoomReader(ctx).read_rooms(cursor)
        print(ctx.object_count)
    """

    def __init__(self, ctx: CodecContext):
        self.ctx = ctx
        self.tile_grid = TileGridCodec(ctx.version)

    def read_rooms(self, cursor: BinaryCursor) -> List[Room]:
        """Read the ROOM chunk body (a pointer list of rooms)."""
        return read_pointer_list(cursor, self.ctx, self.read_room)

    def read_room(self, cursor: BinaryCursor) -> Room:
        ctx = self.ctx
        ctx.register()
        room = Room()
        ROOM_HEAD.read(cursor, ctx, room)
        room.flags = RoomFlags(room.flags)

        pointers = []
        for slot in room_head_slots(ctx.version):
            pointers.append((slot, cursor.position, cursor.read_u32()))
        ROOM_TAIL.read(cursor, ctx, room)
        for slot in room_tail_slots(ctx):
            pointers.append((slot, cursor.position, cursor.read_u32()))

        for slot, slot_offset, pointer in pointers:
            _seek_body(cursor, pointer, f"room {slot}", slot_offset)
            setattr(room, slot, self._read_room_body(cursor, slot))

        room.setup_room()
        logDebug(f"Room {room.name}: {len(room.game_objects)} objects, {len(room.tiles)} tiles, "
                 f"{len(room.layers)} layers")
        return room

    def _read_room_body(self, cursor: BinaryCursor, slot: str):
        ctx = self.ctx
        if slot in ROOM_LIST_ELEMENTS:
            return read_pointer_list(cursor, ctx, self._record_reader(ROOM_LIST_ELEMENTS[slot],
                                                                      ROOM_LIST_TYPES[slot]))
        if slot == 'instance_creation_order_ids':
            ctx.register()
            count = cursor.read_u32()
            return InstanceIDList([cursor.read_i32() for _ in range(count)])
        if slot == 'layers':
            return read_pointer_list(cursor, ctx, self.read_layer)
        if slot == 'sequences':
            return read_simple_list(cursor, ctx, lambda c: ctx.read_ref(c, PoolKind.SEQUENCES))
        raise AssertionError(f"Unhandled room slot {slot}")

    def _record_reader(self, schema: RecordSchema, factory: Callable) -> Callable[[BinaryCursor], object]:
        def read(cursor: BinaryCursor):
            self.ctx.register()
            item = schema.read(cursor, self.ctx, factory())
            if isinstance(item, Tile):
                item.sprite_mode = self.ctx.version.is_gm2()
            return item
        return read

    # =========================================================================
    # Layers
    # =========================================================================

    def read_layer(self, cursor: BinaryCursor) -> Layer:
        ctx = self.ctx
        ctx.register()
        type_offset = cursor.position + LAYER_BASE.offset_of('layer_type', ctx.version)
        layer = LAYER_BASE.read(cursor, ctx, Layer())
        layer.layer_type = parse_layer_type(layer.layer_type, type_offset)

        if layer_has_effect_properties(ctx.version):
            layer.effect_properties = read_simple_list(cursor, ctx, self._read_effect_property)

        if layer_payload_serialized(ctx.version, layer.layer_type):
            ctx.register()
            layer.data = self._read_payload(cursor, layer.layer_type)
        elif layer.layer_type == LayerType.EFFECT:
            # 2022.1+: the effect lives in the base record; not a separate object
            layer.data = LayerEffectData(effect_type=layer.effect_type, properties=layer.effect_properties)

        if layer.data is not None:
            layer.data.layer = layer
        return layer

    def _read_effect_property(self, cursor: BinaryCursor) -> EffectProperty:
        self.ctx.register()
        return EFFECT_PROPERTY.read(cursor, self.ctx, EffectProperty())

    def _read_payload(self, cursor: BinaryCursor, layer_type: LayerType):
        ctx = self.ctx
        if layer_type == LayerType.INSTANCES:
            count = cursor.read_u32()
            return LayerInstancesData(instance_ids=list(cursor.read_u32_array(count)))

        if layer_type == LayerType.TILES:
            data = LAYER_TILES_HEAD.read(cursor, ctx, LayerTilesData())
            data.tile_data = self.tile_grid.read(cursor, data.tiles_x, data.tiles_y)
            return data

        if layer_type == LayerType.BACKGROUND:
            return LAYER_BACKGROUND.read(cursor, ctx, LayerBackgroundData())

        if layer_type == LayerType.ASSETS:
            return self._read_assets(cursor)

        if layer_type == LayerType.EFFECT:
            data = LAYER_EFFECT_HEAD.read(cursor, ctx, LayerEffectData())
            data.properties = read_simple_list(cursor, ctx, self._read_effect_property)
            return data

        raise AssertionError(f"Layer type {layer_type!r} has no payload")

    def _read_assets(self, cursor: BinaryCursor) -> LayerAssetsData:
        ctx = self.ctx
        table_offset = cursor.position
        data = LayerAssetsData()
        for index, (slot, pointer) in enumerate(read_assets_pointer_table(cursor, ctx).items()):
            _seek_body(cursor, pointer, f"assets {slot}", table_offset + index * 4)
            items = read_pointer_list(cursor, ctx, self._record_reader(ASSETS_ELEMENTS[slot], ASSETS_TYPES[slot]))
            setattr(data, slot, items)
        return data
