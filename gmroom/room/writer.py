"""
Room Writer

Serializes rooms into a ROOM chunk body, mirroring RoomReader field for
field. Sub-list pointers are reserved in the record and backpatched as each
body is written, so bodies always follow their record in slot order.

Writer preconditions (WriterPreconditionError):
- layers can only be written for GMS2+ targets
- a tile's sprite mode must match the target's engine generation
- a layer's payload must match its layer type
- tile grids must match their declared size (TileGridShapeError)

Legacy tiles left in a GMS2 room are still written, with a warning.
"""

from typing import List

from gmroom.errors import WriterPreconditionError
from gmroom.format.context import CodecContext
from gmroom.format.lists import write_pointer_list, write_simple_list
from gmroom.format.schema import RecordSchema
from gmroom.room.data_types import (
    InstanceIDList,
    Layer,
    LayerAssetsData,
    LayerBackgroundData,
    LayerEffectData,
    LayerInstancesData,
    LayerTilesData,
    LayerType,
    Room,
    Tile,
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
    assets_slots,
    layer_has_effect_properties,
    layer_payload_serialized,
    room_head_slots,
    room_tail_slots,
)
from gmroom.room.tile_grid import TileGridCodec
from gmroom.utils import logWarning
from gmroom.utils.binary import BinaryWriter

PAYLOAD_TYPES = {
    LayerType.INSTANCES: LayerInstancesData,
    LayerType.TILES: LayerTilesData,
    LayerType.BACKGROUND: LayerBackgroundData,
    LayerType.ASSETS: LayerAssetsData,
    LayerType.EFFECT: LayerEffectData,
}


class RoomWriter:
    """
    Writes rooms for one save.

    Usage:
        ctx = CodecContext(version, strings, has_sequence_chunk=True)
        RoomWriter(ctx).write_rooms(writer, rooms)
    """

    def __init__(self, ctx: CodecContext):
        self.ctx = ctx
        self.tile_grid = TileGridCodec(ctx.version)

    def write_rooms(self, writer: BinaryWriter, rooms: List[Room]):
        write_pointer_list(writer, rooms, self.write_room)

    def write_room(self, writer: BinaryWriter, room: Room):
        ctx = self.ctx
        if room.layers and not ctx.version.is_gm2():
            raise WriterPreconditionError(f"Room {room.name} has layers but the target version "
                                          f"{ctx.version} predates GMS2", writer.position, "layers-need-gms2")
        if room.tiles and ctx.version.is_gm2() and not ctx.sizing:
            logWarning(f"Room {room.name}: {len(room.tiles)} legacy tile(s) in a GMS2 room, "
                       f"written alongside its layers")

        ROOM_HEAD.write(writer, ctx, room)
        slots = [(slot, writer.reserve_u32()) for slot in room_head_slots(ctx.version)]
        ROOM_TAIL.write(writer, ctx, room)
        slots.extend((slot, writer.reserve_u32()) for slot in room_tail_slots(ctx))

        for slot, position in slots:
            writer.patch_here(position)
            self._write_room_body(writer, room, slot)

    def _write_room_body(self, writer: BinaryWriter, room: Room, slot: str):
        if slot in ROOM_LIST_ELEMENTS:
            write_pointer_list(writer, getattr(room, slot), self._record_writer(ROOM_LIST_ELEMENTS[slot]))
        elif slot == 'instance_creation_order_ids':
            ids = room.instance_creation_order_ids or InstanceIDList()
            writer.write_u32(len(ids.instance_ids))
            for instance_id in ids.instance_ids:
                writer.write_i32(instance_id)
        elif slot == 'layers':
            write_pointer_list(writer, room.layers, self.write_layer)
        elif slot == 'sequences':
            write_simple_list(writer, room.sequences, lambda w, ref: w.write_i32(ref.id))
        else:
            raise AssertionError(f"Unhandled room slot {slot}")

    def _record_writer(self, schema: RecordSchema):
        def write(writer: BinaryWriter, item):
            if isinstance(item, Tile):
                self._check_tile(writer, item)
            schema.write(writer, self.ctx, item)
        return write

    def _check_tile(self, writer: BinaryWriter, tile: Tile):
        gm2 = self.ctx.version.is_gm2()
        if tile.sprite_mode != gm2:
            mode = "sprite" if tile.sprite_mode else "background"
            raise WriterPreconditionError(f"Tile {tile.instance_id} is in {mode} mode, target version "
                                          f"{self.ctx.version} expects {'sprite' if gm2 else 'background'} mode",
                                          writer.position, "tile-sprite-mode")

    # =========================================================================
    # Layers
    # =========================================================================

    def write_layer(self, writer: BinaryWriter, layer: Layer):
        ctx = self.ctx
        try:
            layer_type = LayerType(layer.layer_type)
        except ValueError:
            raise WriterPreconditionError(f"Layer {layer.name} has unknown type {layer.layer_type}",
                                          writer.position, "layer-type") from None

        LAYER_BASE.write(writer, ctx, layer)
        if layer_has_effect_properties(ctx.version):
            write_simple_list(writer, layer.effect_properties, self._record_writer(EFFECT_PROPERTY))

        if layer_payload_serialized(ctx.version, layer_type):
            expected = PAYLOAD_TYPES[layer_type]
            if not isinstance(layer.data, expected):
                raise WriterPreconditionError(f"Layer {layer.name} of type {layer_type.name} needs "
                                              f"{expected.__name__}, has {type(layer.data).__name__}",
                                              writer.position, "layer-payload")
            self._write_payload(writer, layer_type, layer.data)

    def _write_payload(self, writer: BinaryWriter, layer_type: LayerType, data):
        ctx = self.ctx
        if layer_type == LayerType.INSTANCES:
            ids = data.ids_to_write()
            writer.write_u32(len(ids))
            for instance_id in ids:
                writer.write_u32(instance_id)
        elif layer_type == LayerType.TILES:
            LAYER_TILES_HEAD.write(writer, ctx, data)
            self.tile_grid.write(writer, data.tile_data, data.tiles_x, data.tiles_y)
        elif layer_type == LayerType.BACKGROUND:
            LAYER_BACKGROUND.write(writer, ctx, data)
        elif layer_type == LayerType.ASSETS:
            self._write_assets(writer, data)
        elif layer_type == LayerType.EFFECT:
            LAYER_EFFECT_HEAD.write(writer, ctx, data)
            write_simple_list(writer, data.properties, self._record_writer(EFFECT_PROPERTY))
        else:
            raise AssertionError(f"Layer type {layer_type!r} has no payload")

    def _write_assets(self, writer: BinaryWriter, data: LayerAssetsData):
        slots = [(slot, writer.reserve_u32()) for slot in assets_slots(self.ctx.version)]
        for slot, position in slots:
            writer.patch_here(position)
            write_pointer_list(writer, getattr(data, slot), self._record_writer(ASSETS_ELEMENTS[slot]))
