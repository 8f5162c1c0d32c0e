"""Shared builders for room codec tests."""

import numpy as np
import pytest

from gmroom.config import CodecConfig
from gmroom.container import GameData, GameDataReader, GameDataWriter
from gmroom.format import GeneralInfo, PoolKind, ResourceRef, VersionContext
from gmroom.room import (
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
)
from gmroom.utils import reset_counts

# (label, version, lts, bytecode)
VERSION_MATRIX = [
    ("1.4-bc16", "1.4", False, 16),
    ("1.4-bc15", "1.4", False, 15),
    ("2.0", "2.0", False, 17),
    ("2.2.2.302", "2.2.2.302", False, 17),
    ("2.3", "2.3", False, 17),
    ("2.3.2", "2.3.2", False, 17),
    ("2022.1", "2022.1", False, 17),
    ("2022.lts", "2022.0", True, 17),
    ("2023.2", "2023.2", False, 17),
    ("2024.2", "2024.2", False, 17),
    ("2024.4", "2024.4", False, 17),
    ("2024.6", "2024.6", False, 17),
    ("2024.13", "2024.13", False, 17),
]

INSTANCE_IDS = [100001, 100002, 100003]


def ref(pool: str, resource_id: int = -1) -> ResourceRef:
    return ResourceRef(pool, resource_id)


def make_game(version_text: str, lts: bool = False, bytecode: int = 17,
              sequences: bool = None) -> GameData:
    """
    Empty GameData for a target version, with a few named resources in each pool.

    GEN8 declares the same version as the model targets.
    """
    version = VersionContext.parse(version_text, lts=lts, bytecode_version=bytecode)
    info = GeneralInfo(name="TestGame", bytecode_version=bytecode)
    info.set_version(version)
    game = GameData(general_info=info, version=version)

    if sequences is None:
        sequences = version.is_version_at_least(2, 3)
    names = {
        PoolKind.SPRITES: ["spr_player", "spr_wall", "spr_sky"],
        PoolKind.BACKGROUNDS: ["bg_tiles"],
        PoolKind.CODE: ["gml_RoomCC_room_main_Create", "gml_Object_obj_player_PreCreate_0"],
        PoolKind.OBJECTS: ["obj_player", "obj_wall"],
        PoolKind.FONTS: ["fnt_main"],
        PoolKind.PARTICLE_SYSTEMS: ["ps_smoke"],
    }
    if sequences:
        names[PoolKind.SEQUENCES] = ["seq_intro"]
    for kind, entries in names.items():
        pool = game.pools.pool(kind)
        for name in entries:
            pool.add(name)
    return game


def make_tile(version: VersionContext, x: int = 32, y: int = 64, size: int = 16,
              instance_id: int = 10000001) -> Tile:
    tile = Tile(x=x, y=y, source_x=16, source_y=0, width=size, height=size,
                depth=1000000, instance_id=instance_id, scale_x=1.0, scale_y=1.0)
    tile.set_sprite_mode(version.is_gm2())
    tile.definition = ref(tile.definition.pool, 0)
    return tile


def make_game_objects():
    objects = []
    for index, instance_id in enumerate(INSTANCE_IDS[:2]):
        game_object = GameObject(x=64 * index, y=128, object=ref(PoolKind.OBJECTS, index),
                                 instance_id=instance_id, scale_x=1.5, scale_y=0.5,
                                 image_speed=1.0, image_index=index, color=0xFFFFFFFF,
                                 pre_create_code=ref(PoolKind.CODE, 1 if index else -1))
        game_object.rotation = 45.0 * index
        objects.append(game_object)
    return objects


def make_tile_grid(tiles_x: int, tiles_y: int) -> np.ndarray:
    """Grid with repeat runs, lone tiles and a flipped-tile bit."""
    grid = np.zeros((tiles_y, tiles_x), dtype=np.uint32)
    if grid.size:
        grid[0, :] = 3
        grid[-1, -1] = 7 | 0x10000000
        grid[tiles_y // 2, :tiles_x // 2] = 12
    return grid


def make_assets_layer(version: VersionContext, depth: int = 300, name: str = "Assets") -> Layer:
    assets = LayerAssetsData()
    assets.legacy_tiles = [make_tile(version, instance_id=10000010)]
    assets.sprites = [SpriteInstance(name="graphic_1A2B3C4D", sprite=ref(PoolKind.SPRITES, 0),
                                     x=10, y=20, scale_x=2.0, scale_y=2.0, animation_speed=1.0,
                                     frame_index=1.0, rotation=90.0)]
    if version.is_version_at_least(2, 3):
        assets.sequences = [SequenceInstance(name="graphic_0000BEEF", sequence=ref(PoolKind.SEQUENCES, 0),
                                             x=5, y=5, scale_x=1.0, scale_y=1.0, color=0xFFFFFFFF,
                                             animation_speed=1.0)]
        if not version.is_version_at_least(2, 3, 2):
            assets.nine_slices = [SpriteInstance(name="graphic_00C0FFEE", sprite=ref(PoolKind.SPRITES, 1))]
    if version.is_non_lts_version_at_least(2023, 2):
        assets.particle_systems = [ParticleSystemInstance(name="particle_5EED5EED",
                                                          particle_system=ref(PoolKind.PARTICLE_SYSTEMS, 0),
                                                          x=100, y=100, scale_x=1.0, scale_y=1.0,
                                                          color=0xFFFFFFFF)]
    if version.is_version_at_least(2024, 6):
        assets.text_items = [TextItemInstance(name="textitem_0BADF00D", x=8, y=8, font=ref(PoolKind.FONTS, 0),
                                              scale_x=1.0, scale_y=1.0, color=0xFFFFFFFF,
                                              text="Hello room", alignment=1, frame_width=200.0,
                                              frame_height=40.0, wrap=True)]
    return Layer(name=name, layer_id=depth, layer_type=LayerType.ASSETS, depth=depth, data=assets)


def make_effect_layer(version: VersionContext) -> Layer:
    properties = [EffectProperty(kind=1, name="g_TintCol", value="#FF00FF00")]
    layer = Layer(name="Effect", layer_id=5, layer_type=LayerType.EFFECT, depth=50)
    if version.is_version_at_least(2022, 1):
        layer.effect_enabled = True
        layer.effect_type = "_filter_tintable"
        layer.effect_properties = properties
        layer.data = LayerEffectData(effect_type=layer.effect_type, properties=properties)
    else:
        layer.data = LayerEffectData(effect_type="_filter_tintable", properties=properties)
    return layer


def make_layers(version: VersionContext):
    background = Layer(name="Background", layer_id=1, layer_type=LayerType.BACKGROUND, depth=1000,
                       data=LayerBackgroundData(sprite=ref(PoolKind.SPRITES, 2), tiled_horizontally=True,
                                                color=0xFF202020, animation_speed=15.0))
    instances = Layer(name="Instances", layer_id=2, layer_type=LayerType.INSTANCES, depth=100,
                      data=LayerInstancesData(instance_ids=list(INSTANCE_IDS[:2])))
    tiles = Layer(name="Tiles", layer_id=3, layer_type=LayerType.TILES, depth=200,
                  data=LayerTilesData(tileset=ref(PoolKind.BACKGROUNDS, 0), tiles_x=5, tiles_y=3,
                                      tile_data=make_tile_grid(5, 3)))
    path = Layer(name="Path", layer_id=4, layer_type=LayerType.PATH, depth=400)
    layers = [background, instances, tiles, make_assets_layer(version), path]
    if version.is_version_at_least(2, 3):
        layers.append(make_effect_layer(version))
    if version.is_version_at_least(2022, 1):
        background.effect_properties = [EffectProperty(kind=0, name="g_Intensity", value="0.5")]
    return layers


def make_room(version: VersionContext, sequences: bool, name: str = "room_main") -> Room:
    """A room exercising every record the target version serializes."""
    room = Room(name=name, caption="Main room", width=640, height=480, speed=60,
                background_color=0xFF336699, creation_code=ref(PoolKind.CODE, 0))
    room.game_objects = make_game_objects()
    if version.is_gm2():
        room.flags = RoomFlags.ENABLE_VIEWS | RoomFlags.IS_GMS2
        room.layers = make_layers(version)
        if sequences:
            room.sequences = [ref(PoolKind.SEQUENCES, 0)]
        if version.is_version_at_least(2024, 13):
            room.flags |= RoomFlags.IS_GM2024_13
            room.instance_creation_order_ids = InstanceIDList(list(INSTANCE_IDS[:2]))
    else:
        room.tiles = [make_tile(version)]
        room.backgrounds[0].enabled = True
        room.backgrounds[0].definition = ref(PoolKind.BACKGROUNDS, 0)
        room.views[0].object = ref(PoolKind.OBJECTS, 0)
    room.setup_room()
    return room


def build_game(version_text: str, lts: bool = False, bytecode: int = 17, room_count: int = 2) -> GameData:
    game = make_game(version_text, lts=lts, bytecode=bytecode)
    sequences = game.pools.has_pool(PoolKind.SEQUENCES)
    game.rooms = [make_room(game.version, sequences, name=f"room_{index}") for index in range(room_count)]
    return game


def load(data: bytes, lts: bool = False, **kwargs) -> GameData:
    return GameDataReader.from_bytes(data, CodecConfig(lts=lts, **kwargs))


def serialize(game: GameData) -> bytes:
    return GameDataWriter(game).serialize()


@pytest.fixture(autouse=True)
def _reset_log_counts():
    reset_counts()
    yield
    reset_counts()
