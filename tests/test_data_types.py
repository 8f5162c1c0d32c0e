"""Tests for the room model helpers."""

import gc

import numpy as np
import pytest

from gmroom.format import PoolKind, ResourceRef
from gmroom.room import (
    Background,
    GameObject,
    Layer,
    LayerAssetsData,
    LayerBackgroundData,
    LayerInstancesData,
    LayerTilesData,
    LayerType,
    Room,
    RoomFlags,
    Tile,
)


def background_layer(depth, sprite=-1, color=0xFF000000, name="Background"):
    return Layer(name=name, layer_type=LayerType.BACKGROUND, depth=depth,
                 data=LayerBackgroundData(sprite=ResourceRef(PoolKind.SPRITES, sprite), color=color))


class TestRoomDefaults:

    def test_eight_backgrounds_and_views(self):
        room = Room()
        assert len(room.backgrounds) == 8
        assert len(room.views) == 8
        assert room.views[0].enabled and not room.views[1].enabled
        assert room.background_color >> 24 == 0xFF


class TestSetupRoom:
    """Back-references and the editor grid size."""

    def test_back_references(self):
        room = Room(layers=[background_layer(10)])
        room.setup_room()
        layer = room.layers[0]
        assert layer.room is room
        assert layer.data.layer is layer
        assert room.backgrounds[0].room is room

    def test_back_references_are_weak(self):
        room = Room(layers=[background_layer(10)])
        room.setup_room()
        layer = room.layers[0]
        del room
        gc.collect()
        assert layer.room is None

    def test_grid_defaults_to_16(self):
        room = Room()
        room.setup_room()
        assert (room.grid_width, room.grid_height) == (16, 16)

    def test_grid_from_legacy_tiles(self):
        room = Room(tiles=[Tile(width=32, height=32), Tile(width=32, height=32), Tile(width=8, height=8)])
        room.setup_room()
        assert (room.grid_width, room.grid_height) == (32, 32)

    def test_grid_from_assets_layer_tiles(self):
        assets = LayerAssetsData(legacy_tiles=[Tile(width=24, height=12)])
        room = Room(tiles=[Tile(width=64, height=64)],
                    layers=[Layer(layer_type=LayerType.ASSETS, data=assets)])
        room.setup_room()
        assert (room.grid_width, room.grid_height) == (24, 12)

    def test_grid_from_tiles_layers_needs_tileset_sizes(self):
        tiles = LayerTilesData(tileset=ResourceRef(PoolKind.BACKGROUNDS, 0), tiles_x=4, tiles_y=4,
                               tile_data=np.zeros((4, 4), dtype=np.uint32))
        room = Room(layers=[Layer(layer_type=LayerType.TILES, data=tiles)])
        room.setup_room()
        assert (room.grid_width, room.grid_height) == (16, 16)
        room.setup_room(tileset_tile_sizes={0: (48, 48)})
        assert (room.grid_width, room.grid_height) == (48, 48)

    def test_grid_width_only(self):
        room = Room(tiles=[Tile(width=32, height=8)])
        room.setup_room(calculate_grid_height=False)
        assert (room.grid_width, room.grid_height) == (32, 16)


class TestLayerOrdering:
    """Depth order and the background color layer."""

    def test_bg_color_layer_is_shallowest_plain_background(self):
        deep = background_layer(500, color=0xFF0000FF, name="Deep")
        shallow = background_layer(100, color=0xFF00FF00, name="Shallow")
        sprite = background_layer(50, sprite=0, color=0xFFFFFFFF, name="Sprite")
        room = Room(layers=[deep, shallow, sprite])
        assert room.bg_color_layer is shallow

    def test_no_bg_color_layer(self):
        assert Room(layers=[background_layer(10, color=0)]).bg_color_layer is None

    def test_rearrange_layers(self):
        room = Room(layers=[background_layer(300), background_layer(100), background_layer(200)])
        assert not room.check_layers_depth_order()
        room.rearrange_layers()
        assert [layer.depth for layer in room.layers] == [100, 200, 300]
        assert room.check_layers_depth_order()

    def test_set_layer_depth(self):
        background = background_layer(100)
        instances = Layer(layer_type=LayerType.INSTANCES, depth=0, data=LayerInstancesData())
        room = Room(layers=[background, instances])
        assert room.set_layer_depth(background, 50) is True
        assert room.set_layer_depth(background, 50) is False
        assert room.set_layer_depth(instances, 10) is False
        assert background.depth == 50


class TestMutators:
    """Explicit setters report when derived state must be recomputed."""

    def test_background_set_sprite(self):
        data = LayerBackgroundData()
        assert data.set_sprite(3) is True
        assert data.sprite.id == 3
        assert data.set_sprite(3) is False

    def test_background_stretch_scale(self):
        room = Room(width=640, height=480)
        room.setup_room()
        background = room.backgrounds[0]
        assert background.calc_scale(320, 240) == (1.0, 1.0)
        assert background.set_stretch(True) is True
        assert background.calc_scale(320, 240) == (2.0, 2.0)
        assert background.set_stretch(True) is False

    def test_detached_background_is_unscaled(self):
        background = Background(stretch=True)
        assert background.calc_scale(10, 10) == (1.0, 1.0)

    def test_resize_keeps_overlap(self):
        data = LayerTilesData(tiles_x=3, tiles_y=2,
                              tile_data=np.arange(1, 7, dtype=np.uint32).reshape((2, 3)))
        assert data.resize(2, 3) is True
        assert data.tile_data.tolist() == [[1, 2], [4, 5], [0, 0]]
        assert (data.tiles_x, data.tiles_y) == (2, 3)
        assert data.resize(2, 3) is False

    def test_resize_rejects_negative(self):
        with pytest.raises(ValueError):
            LayerTilesData().resize(-1, 2)

    def test_tiles_equality_compares_grids(self):
        a = LayerTilesData(tiles_x=1, tiles_y=1, tile_data=np.array([[5]], dtype=np.uint32))
        b = LayerTilesData(tiles_x=1, tiles_y=1, tile_data=np.array([[5]], dtype=np.uint32))
        assert a == b
        b.tile_data[0, 0] = 6
        assert a != b

    def test_tile_sprite_mode_switches_pool(self):
        tile = Tile(definition=ResourceRef(PoolKind.BACKGROUNDS, 2))
        tile.set_sprite_mode(True)
        assert tile.sprite_mode
        assert tile.definition.pool == PoolKind.SPRITES
        assert tile.definition.is_null


class TestGameObject:

    def test_rotation_bits(self):
        game_object = GameObject()
        game_object.rotation = 90.0
        assert game_object.rotation_bits == 0x42B40000
        assert game_object.rotation == 90.0

    def test_opposite_rotation(self):
        game_object = GameObject()
        game_object.rotation = 450.0
        assert game_object.opposite_rotation == 270.0


class TestClear:
    """Teardown depends on the engine generation."""

    def test_gms2_room(self):
        room = Room(name="r", flags=RoomFlags.IS_GMS2, layers=[background_layer(1)],
                    sequences=[ResourceRef(PoolKind.SEQUENCES, 0)], game_objects=[GameObject()])
        room.setup_room()
        layer = room.layers[0]
        room.clear()
        assert room.layers == [] and room.sequences == [] and room.game_objects == []
        assert room.name is None
        assert layer.room is None
        assert layer.data.layer is None
        assert len(room.backgrounds) == 8

    def test_legacy_room(self):
        room = Room(name="r", flags=RoomFlags.ENABLE_VIEWS, tiles=[Tile()])
        room.setup_room()
        background = room.backgrounds[0]
        room.clear()
        assert room.backgrounds == [] and room.views == [] and room.tiles == []
        assert background.room is None
