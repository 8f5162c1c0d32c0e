"""
Room Resources

- data_types: Room, Layer, payloads and room objects
- layout: record schemas and pointer-slot orders shared by all paths
- tile_grid: TileGridCodec for tiles layer grids
- reader: RoomReader
- writer: RoomWriter
- counting: CountingPass and count_room_objects
- resolve: reference and layer instance resolution

Usage:
    from gmroom.room import RoomReader, RoomWriter

    rooms = RoomReader(ctx).read_rooms(cursor)
    RoomWriter(ctx).write_rooms(writer, rooms)
"""

from .data_types import (
    RoomFlags,
    LayerType,
    AnimationSpeedType,
    EffectPropertyType,
    Room,
    Background,
    View,
    GameObject,
    Tile,
    InstanceIDList,
    Layer,
    LayerData,
    LayerInstancesData,
    LayerTilesData,
    LayerBackgroundData,
    LayerAssetsData,
    LayerEffectData,
    EffectProperty,
    SpriteInstance,
    SequenceInstance,
    ParticleSystemInstance,
    TextItemInstance,
)
from .tile_grid import TileGridCodec, encode_runs, decode_runs
from .reader import RoomReader
from .writer import RoomWriter
from .counting import CountingPass, count_room_objects
from .resolve import ResolutionReport, resolve_references, resolve_room_instances, resolve_rooms
