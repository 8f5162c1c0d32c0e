"""
Data types for rooms.

A room owns its child collections and layers, a layer owns its payload, and
ResourceRefs own nothing. Back-references (layer -> room, payload -> layer,
background -> room) are weak so a dropped room is freed as a whole.

Pre-GMS2 rooms populate `backgrounds`/`tiles`; GMS2+ rooms populate `layers`
and `sequences`. Which one gets serialized depends on the target version, not
on which lists are filled in.
"""

import struct
import weakref
from collections import Counter
from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import List, Optional, Tuple

import numpy as np

from gmroom.format.pools import PoolKind, ResourceRef


class RoomFlags(IntFlag):
    ENABLE_VIEWS = 1
    SHOW_COLOR = 2
    DO_NOT_CLEAR_DISPLAY_BUFFER = 4
    IS_GMS2_3 = 0x10000
    IS_GMS2 = 0x20000
    IS_GM2024_13 = 0x40000


class LayerType(IntEnum):
    PATH = 0
    BACKGROUND = 1
    INSTANCES = 2
    ASSETS = 3
    TILES = 4
    EFFECT = 6
    PATH2 = 7


class AnimationSpeedType(IntEnum):
    FPS = 0
    FRAMES_PER_GAME_FRAME = 1


class EffectPropertyType(IntEnum):
    REAL = 0
    COLOR = 1
    SAMPLER = 2


def _ref(pool: str):
    return field(default_factory=lambda: ResourceRef(pool))


def _deref(reference):
    return reference() if reference is not None else None


# =============================================================================
# Pre-GMS2 room objects
# =============================================================================

@dataclass
class Background:
    """Room background slot (pre-GMS2)."""
    enabled: bool = False
    foreground: bool = False
    definition: ResourceRef = _ref(PoolKind.BACKGROUNDS)
    x: int = 0
    y: int = 0
    tile_x: int = 1  # tiled horizontally, 0/1
    tile_y: int = 1  # tiled vertically, 0/1
    speed_x: int = 0
    speed_y: int = 0
    stretch: bool = False

    # Editor-only render scale, derived from stretch and the room size
    calc_scale_x: float = field(default=1.0, compare=False)
    calc_scale_y: float = field(default=1.0, compare=False)
    _room: Optional[weakref.ref] = field(default=None, init=False, repr=False, compare=False)

    @property
    def room(self) -> Optional['Room']:
        return _deref(self._room)

    @room.setter
    def room(self, room: Optional['Room']):
        self._room = weakref.ref(room) if room is not None else None

    def set_stretch(self, stretch: bool) -> bool:
        """Returns True if the render scale must be recomputed."""
        changed = stretch != self.stretch
        self.stretch = stretch
        return changed

    def calc_scale(self, texture_width: int, texture_height: int) -> Tuple[float, float]:
        """
        Compute the editor render scale for a texture of the given size.

        Scale is 1 unless the background is stretched and belongs to a room.
        """
        room = self.room
        if room is not None and self.stretch and texture_width > 0 and texture_height > 0:
            self.calc_scale_x = room.width / texture_width
            self.calc_scale_y = room.height / texture_height
        else:
            self.calc_scale_x = 1.0
            self.calc_scale_y = 1.0
        return self.calc_scale_x, self.calc_scale_y


@dataclass
class View:
    enabled: bool = False
    view_x: int = 0
    view_y: int = 0
    view_width: int = 640
    view_height: int = 480
    port_x: int = 0
    port_y: int = 0
    port_width: int = 640
    port_height: int = 480
    border_x: int = 32
    border_y: int = 32
    speed_x: int = -1
    speed_y: int = -1
    object: ResourceRef = _ref(PoolKind.OBJECTS)


@dataclass
class GameObject:
    """Object instance placed in a room."""
    x: int = 0
    y: int = 0
    object: ResourceRef = _ref(PoolKind.OBJECTS)
    instance_id: int = 0
    creation_code: ResourceRef = _ref(PoolKind.CODE)
    scale_x: float = 1.0
    scale_y: float = 1.0
    image_speed: float = 0.0
    image_index: int = 0
    color: int = 0xFFFFFFFF
    rotation_bits: int = 0  # raw f32 bits, kept for exact round-trip
    pre_create_code: ResourceRef = _ref(PoolKind.CODE)

    # Stand-in for an instance ID a layer lists but the room does not define
    nonexistent: bool = False

    @property
    def rotation(self) -> float:
        return struct.unpack('<f', struct.pack('<I', self.rotation_bits))[0]

    @rotation.setter
    def rotation(self, value: float):
        self.rotation_bits = struct.unpack('<I', struct.pack('<f', value))[0]

    @property
    def opposite_rotation(self) -> float:
        return 360.0 - (self.rotation % 360)


@dataclass
class Tile:
    """
    Legacy tile (pre-GMS2 rooms and GMS2 assets layers).

    `definition` points into the sprite pool in sprite mode (GMS2) and into
    the background pool otherwise.
    """
    x: int = 0
    y: int = 0
    definition: ResourceRef = _ref(PoolKind.BACKGROUNDS)
    source_x: int = 0
    source_y: int = 0
    width: int = 0
    height: int = 0
    depth: int = 0
    instance_id: int = 0
    scale_x: float = 1.0
    scale_y: float = 1.0
    color: int = 0xFFFFFFFF
    sprite_mode: bool = False

    def set_sprite_mode(self, sprite_mode: bool):
        """Switch definition pool; the current definition is dropped."""
        if sprite_mode != self.sprite_mode:
            self.sprite_mode = sprite_mode
            self.definition = ResourceRef(PoolKind.SPRITES if sprite_mode else PoolKind.BACKGROUNDS)


@dataclass
class InstanceIDList:
    """Instance creation order of the first room (2024.13+)."""
    instance_ids: List[int] = field(default_factory=list)


# =============================================================================
# Assets layer instances
# =============================================================================

@dataclass
class SpriteInstance:
    name: Optional[str] = None
    sprite: ResourceRef = _ref(PoolKind.SPRITES)
    x: int = 0
    y: int = 0
    scale_x: float = 1.0
    scale_y: float = 1.0
    color: int = 0xFFFFFFFF
    animation_speed: float = 1.0
    animation_speed_type: int = AnimationSpeedType.FPS
    frame_index: float = 0.0
    rotation: float = 0.0

    @property
    def opposite_rotation(self) -> float:
        return 360.0 - self.rotation


@dataclass
class SequenceInstance:
    name: Optional[str] = None
    sequence: ResourceRef = _ref(PoolKind.SEQUENCES)
    x: int = 0
    y: int = 0
    scale_x: float = 0.0
    scale_y: float = 0.0
    color: int = 0
    animation_speed: float = 0.0
    animation_speed_type: int = AnimationSpeedType.FPS
    frame_index: float = 0.0
    rotation: float = 0.0


@dataclass
class ParticleSystemInstance:
    name: Optional[str] = None
    particle_system: ResourceRef = _ref(PoolKind.PARTICLE_SYSTEMS)
    x: int = 0
    y: int = 0
    scale_x: float = 0.0
    scale_y: float = 0.0
    color: int = 0
    rotation: float = 0.0

    @property
    def opposite_rotation(self) -> float:
        return 360.0 - self.rotation


@dataclass
class TextItemInstance:
    name: Optional[str] = None
    x: int = 0
    y: int = 0
    font: ResourceRef = _ref(PoolKind.FONTS)
    scale_x: float = 0.0
    scale_y: float = 0.0
    rotation: float = 0.0
    color: int = 0
    origin_x: float = 0.0
    origin_y: float = 0.0
    text: Optional[str] = None
    alignment: int = 0
    char_spacing: float = 0.0
    line_spacing: float = 0.0
    frame_width: float = 0.0
    frame_height: float = 0.0
    wrap: bool = False


@dataclass
class EffectProperty:
    kind: int = EffectPropertyType.REAL
    name: Optional[str] = None
    value: Optional[str] = None


# =============================================================================
# Layer payloads
# =============================================================================

class LayerData:
    """Base for layer payloads; holds the weak back-reference to the layer."""

    _layer: Optional[weakref.ref] = None

    @property
    def layer(self) -> Optional['Layer']:
        return _deref(self._layer)

    @layer.setter
    def layer(self, layer: Optional['Layer']):
        self._layer = weakref.ref(layer) if layer is not None else None


@dataclass
class LayerInstancesData(LayerData):
    """
    Instances layer.

    `instance_ids` is what the file holds; `instances` is filled in by the
    resolution pass with the room's GameObjects (or placeholders). Once a
    layer is resolved, `instances` alone is written back, so emptying it
    empties the layer.
    """
    instance_ids: List[int] = field(default_factory=list)
    instances: List[GameObject] = field(default_factory=list)
    resolved: bool = field(default=False, compare=False)

    def are_instances_unresolved(self) -> bool:
        return not self.resolved and not self.instances

    def ids_to_write(self) -> List[int]:
        if self.are_instances_unresolved():
            return list(self.instance_ids)
        return [instance.instance_id for instance in self.instances]


@dataclass(eq=False)
class LayerTilesData(LayerData):
    """Tiles layer: tileset reference plus a (tiles_y, tiles_x) uint32 grid."""
    tileset: ResourceRef = _ref(PoolKind.BACKGROUNDS)
    tiles_x: int = 0
    tiles_y: int = 0
    tile_data: np.ndarray = field(default_factory=lambda: np.zeros((0, 0), dtype=np.uint32))

    def resize(self, tiles_x: int, tiles_y: int) -> bool:
        """
        Change grid dimensions, keeping the overlapping cells.

        Returns:
            True if the dimensions changed
        """
        if tiles_x < 0 or tiles_y < 0:
            raise ValueError(f"Invalid tile grid size {tiles_x}x{tiles_y}")
        if (tiles_x, tiles_y) == (self.tiles_x, self.tiles_y) and self.tile_data.shape == (tiles_y, tiles_x):
            return False
        grid = np.zeros((tiles_y, tiles_x), dtype=np.uint32)
        rows = min(tiles_y, self.tile_data.shape[0])
        cols = min(tiles_x, self.tile_data.shape[1]) if self.tile_data.ndim == 2 else 0
        grid[:rows, :cols] = self.tile_data[:rows, :cols]
        self.tiles_x = tiles_x
        self.tiles_y = tiles_y
        self.tile_data = grid
        return True

    def __eq__(self, other) -> bool:
        if not isinstance(other, LayerTilesData):
            return NotImplemented
        return (self.tileset == other.tileset
                and self.tiles_x == other.tiles_x
                and self.tiles_y == other.tiles_y
                and np.array_equal(self.tile_data, other.tile_data))


@dataclass
class LayerBackgroundData(LayerData):
    visible: bool = True
    foreground: bool = False
    sprite: ResourceRef = _ref(PoolKind.SPRITES)
    tiled_horizontally: bool = False
    tiled_vertically: bool = False
    stretch: bool = False
    color: int = 0xFF000000
    first_frame: float = 0.0
    animation_speed: float = 0.0
    animation_speed_type: int = AnimationSpeedType.FPS

    def set_sprite(self, sprite_id: int) -> bool:
        """
        Point the background at a sprite (-1 for none).

        Returns:
            True if the room's background color layer must be recomputed
        """
        changed = sprite_id != self.sprite.id
        self.sprite = ResourceRef(PoolKind.SPRITES, sprite_id)
        return changed


@dataclass
class LayerAssetsData(LayerData):
    legacy_tiles: List[Tile] = field(default_factory=list)
    sprites: List[SpriteInstance] = field(default_factory=list)
    sequences: List[SequenceInstance] = field(default_factory=list)
    nine_slices: List[SpriteInstance] = field(default_factory=list)  # 2.3 to 2.3.2 only
    particle_systems: List[ParticleSystemInstance] = field(default_factory=list)
    text_items: List[TextItemInstance] = field(default_factory=list)


@dataclass
class LayerEffectData(LayerData):
    effect_type: Optional[str] = None
    properties: List[EffectProperty] = field(default_factory=list)


@dataclass
class Layer:
    name: Optional[str] = None
    layer_id: int = 0
    layer_type: LayerType = LayerType.INSTANCES
    depth: int = 0
    x_offset: float = 0.0
    y_offset: float = 0.0
    h_speed: float = 0.0
    v_speed: float = 0.0
    is_visible: bool = True
    # 2022.1+
    effect_enabled: bool = False
    effect_type: Optional[str] = None
    effect_properties: List[EffectProperty] = field(default_factory=list)
    data: Optional[LayerData] = None

    _room: Optional[weakref.ref] = field(default=None, init=False, repr=False, compare=False)

    @property
    def room(self) -> Optional['Room']:
        return _deref(self._room)

    @room.setter
    def room(self, room: Optional['Room']):
        self._room = weakref.ref(room) if room is not None else None
        if self.data is not None:
            self.data.layer = self

    @property
    def instances_data(self) -> Optional[LayerInstancesData]:
        return self.data if isinstance(self.data, LayerInstancesData) else None

    @property
    def tiles_data(self) -> Optional[LayerTilesData]:
        return self.data if isinstance(self.data, LayerTilesData) else None

    @property
    def background_data(self) -> Optional[LayerBackgroundData]:
        return self.data if isinstance(self.data, LayerBackgroundData) else None

    @property
    def assets_data(self) -> Optional[LayerAssetsData]:
        return self.data if isinstance(self.data, LayerAssetsData) else None

    @property
    def effect_data(self) -> Optional[LayerEffectData]:
        return self.data if isinstance(self.data, LayerEffectData) else None


# =============================================================================
# Room
# =============================================================================

def _default_backgrounds() -> List[Background]:
    return [Background() for _ in range(8)]


def _default_views() -> List[View]:
    views = [View() for _ in range(8)]
    views[0].enabled = True
    return views


@dataclass
class Room:
    name: Optional[str] = None
    caption: Optional[str] = None
    width: int = 320
    height: int = 240
    speed: int = 30
    persistent: bool = False
    background_color: int = 0xFF000000
    draw_background_color: bool = True
    creation_code: ResourceRef = _ref(PoolKind.CODE)
    flags: RoomFlags = RoomFlags.ENABLE_VIEWS
    world: bool = False
    top: int = 0
    left: int = 0
    right: int = 1024
    bottom: int = 768
    gravity_x: float = 0.0
    gravity_y: float = 10.0
    meters_per_pixel: float = 0.1

    # Editor-only, derived by setup_room()
    grid_width: float = field(default=16.0, compare=False)
    grid_height: float = field(default=16.0, compare=False)

    backgrounds: List[Background] = field(default_factory=_default_backgrounds)
    views: List[View] = field(default_factory=_default_views)
    game_objects: List[GameObject] = field(default_factory=list)
    tiles: List[Tile] = field(default_factory=list)
    instance_creation_order_ids: Optional[InstanceIDList] = None
    layers: List[Layer] = field(default_factory=list)
    sequences: List[ResourceRef] = field(default_factory=list)

    def game_object_by_instance_id(self, instance_id: int) -> Optional[GameObject]:
        for game_object in self.game_objects:
            if game_object.instance_id == instance_id:
                return game_object
        return None

    def set_layer_depth(self, layer: Layer, depth: int) -> bool:
        """
        Move a layer to another depth.

        Returns:
            True if the background color layer must be recomputed
        """
        if layer.depth == depth:
            return False
        layer.depth = depth
        return layer.layer_type == LayerType.BACKGROUND

    @property
    def bg_color_layer(self) -> Optional[Layer]:
        """Shallowest background layer with no sprite and a non-zero color."""
        candidates = [layer for layer in self.layers
                      if layer.layer_type == LayerType.BACKGROUND
                      and layer.background_data is not None
                      and layer.background_data.sprite.is_null
                      and layer.background_data.color != 0]
        if not candidates:
            return None
        return min(candidates, key=lambda layer: layer.depth)

    def check_layers_depth_order(self) -> bool:
        return all(a.depth <= b.depth for a, b in zip(self.layers, self.layers[1:]))

    def rearrange_layers(self):
        """Order layers by depth (stable)."""
        self.layers.sort(key=lambda layer: layer.depth)

    def setup_room(self, tileset_tile_sizes: Optional[dict] = None,
                   calculate_grid_width: bool = True, calculate_grid_height: bool = True):
        """
        Attach back-references and derive the editor grid size.

        The grid becomes the most common tile size in the room (16x16 when
        the room has no tiles).

        Args:
            tileset_tile_sizes: Background ID -> (tile_width, tile_height) used
                                to weigh tiles layers; tiles layers of unknown
                                tilesets are ignored
        """
        for layer in self.layers:
            layer.room = self
        for background in self.backgrounds:
            background.room = self

        if not (calculate_grid_width or calculate_grid_height):
            return

        tile_sizes = Counter()
        if self.layers:
            tile_list = []
            for layer in self.layers:
                if layer.assets_data is not None:
                    tile_list.extend(layer.assets_data.legacy_tiles)
                elif layer.tiles_data is not None and tileset_tile_sizes:
                    tiles = layer.tiles_data
                    size = tileset_tile_sizes.get(tiles.tileset.id)
                    if size is not None and tiles.tile_data.size:
                        tile_sizes[size] += tiles.tiles_x * tiles.tiles_y
        else:
            tile_list = self.tiles

        for tile in tile_list:
            tile_sizes[(tile.width, tile.height)] += 1

        if tile_sizes:
            width, height = tile_sizes.most_common(1)[0][0]
        else:
            width, height = 16, 16
        if calculate_grid_width:
            self.grid_width = width
        if calculate_grid_height:
            self.grid_height = height

    def clear(self):
        """Drop the room's contents, keeping only the fields of its generation."""
        self.creation_code = ResourceRef(PoolKind.CODE)
        if self.flags & (RoomFlags.IS_GMS2 | RoomFlags.IS_GM2024_13):
            for layer in self.layers:
                layer.room = None
                if layer.data is not None:
                    layer.data.layer = None
            self.instance_creation_order_ids = None
            self.layers = []
            self.sequences = []
        else:
            for background in self.backgrounds:
                background.room = None
            self.backgrounds = []
            self.views = []
            self.tiles = []
        self.name = None
        self.caption = None
        self.game_objects = []
