"""
Room Layout

Field layouts and pointer-slot orders of every room record, shared by the
reader, the writer and the counting pass.

Room record:
- ROOM_HEAD fields
- ptr backgrounds, views, game_objects, tiles
- [2024.13+] ptr instance_creation_order_ids
- ROOM_TAIL fields
- [GMS2+] ptr layers, [sequences present] ptr sequences
- bodies, in slot order

Layer record:
- LAYER_BASE fields
- [2022.1+] simple list of EFFECT_PROPERTY
- payload selected by layer_type

Assets payload:
- ptr legacy_tiles, sprites
- [2.3+] ptr sequences, [< 2.3.2] nine_slices, [non-LTS 2023.2+]
  particle_systems, [2024.6+] text_items
- bodies, in slot order
"""

from collections import OrderedDict
from typing import Dict, List

from gmroom.constants import (
    BYTECODE_PRE_CREATE_CODE,
    VERSION_GAMEOBJECT_IMAGE_PROPS,
    VERSION_INSTANCE_CREATION_ORDER,
    VERSION_LAYER_EFFECTS,
    VERSION_NINE_SLICES_REMOVED,
    VERSION_PARTICLE_SYSTEMS,
    VERSION_SEQUENCES,
    VERSION_TEXT_ITEMS,
)
from gmroom.errors import UnsupportedLayerTypeError
from gmroom.format.context import CodecContext
from gmroom.format.pools import PoolKind
from gmroom.format.schema import (
    Field,
    FieldKind,
    RecordSchema,
    boolean,
    bytecode_since,
    f32,
    i32,
    ref,
    since,
    string,
    u32,
)
from gmroom.format.version import VersionContext
from gmroom.room.data_types import LayerType
from gmroom.utils.binary import BinaryCursor

ROOM_HEAD = RecordSchema('Room', [
    string('name'),
    string('caption'),
    u32('width'),
    u32('height'),
    u32('speed'),
    boolean('persistent'),
    Field('background_color', FieldKind.RGB),
    boolean('draw_background_color'),
    ref('creation_code', PoolKind.CODE),
    u32('flags'),
])

ROOM_TAIL = RecordSchema('RoomTail', [
    boolean('world'),
    u32('top'),
    u32('left'),
    u32('right'),
    u32('bottom'),
    f32('gravity_x'),
    f32('gravity_y'),
    f32('meters_per_pixel'),
])

BACKGROUND = RecordSchema('Background', [
    boolean('enabled'),
    boolean('foreground'),
    ref('definition', PoolKind.BACKGROUNDS),
    i32('x'),
    i32('y'),
    i32('tile_x'),
    i32('tile_y'),
    i32('speed_x'),
    i32('speed_y'),
    boolean('stretch'),
])

VIEW = RecordSchema('View', [
    boolean('enabled'),
    i32('view_x'),
    i32('view_y'),
    i32('view_width'),
    i32('view_height'),
    i32('port_x'),
    i32('port_y'),
    i32('port_width'),
    i32('port_height'),
    u32('border_x'),
    u32('border_y'),
    i32('speed_x'),
    i32('speed_y'),
    ref('object', PoolKind.OBJECTS),
])

_image_props = since(*VERSION_GAMEOBJECT_IMAGE_PROPS)

GAME_OBJECT = RecordSchema('GameObject', [
    i32('x'),
    i32('y'),
    ref('object', PoolKind.OBJECTS),
    u32('instance_id'),
    ref('creation_code', PoolKind.CODE),
    f32('scale_x'),
    f32('scale_y'),
    f32('image_speed', _image_props),
    i32('image_index', _image_props),
    u32('color'),
    Field('rotation_bits', FieldKind.F32_BITS),
    ref('pre_create_code', PoolKind.CODE, bytecode_since(BYTECODE_PRE_CREATE_CODE)),
])


def tile_definition_pool(version: VersionContext) -> str:
    """GMS2 tiles draw from sprites, earlier ones from backgrounds."""
    return PoolKind.SPRITES if version.is_gm2() else PoolKind.BACKGROUNDS


TILE = RecordSchema('Tile', [
    i32('x'),
    i32('y'),
    ref('definition', tile_definition_pool),
    i32('source_x'),
    i32('source_y'),
    u32('width'),
    u32('height'),
    i32('depth'),
    u32('instance_id'),
    f32('scale_x'),
    f32('scale_y'),
    u32('color'),
])

_layer_effects = since(*VERSION_LAYER_EFFECTS)

LAYER_BASE = RecordSchema('Layer', [
    string('name'),
    u32('layer_id'),
    u32('layer_type'),
    i32('depth'),
    f32('x_offset'),
    f32('y_offset'),
    f32('h_speed'),
    f32('v_speed'),
    boolean('is_visible'),
    boolean('effect_enabled', _layer_effects),
    string('effect_type', _layer_effects),
])

EFFECT_PROPERTY = RecordSchema('EffectProperty', [
    i32('kind'),
    string('name'),
    string('value'),
])

LAYER_BACKGROUND = RecordSchema('LayerBackgroundData', [
    boolean('visible'),
    boolean('foreground'),
    ref('sprite', PoolKind.SPRITES),
    boolean('tiled_horizontally'),
    boolean('tiled_vertically'),
    boolean('stretch'),
    u32('color'),
    f32('first_frame'),
    f32('animation_speed'),
    u32('animation_speed_type'),
])

# Followed by the tile grid
LAYER_TILES_HEAD = RecordSchema('LayerTilesData', [
    ref('tileset', PoolKind.BACKGROUNDS),
    u32('tiles_x'),
    u32('tiles_y'),
])

# Pre-2022.1 only; followed by a simple list of EFFECT_PROPERTY
LAYER_EFFECT_HEAD = RecordSchema('LayerEffectData', [
    string('effect_type'),
])

SPRITE_INSTANCE = RecordSchema('SpriteInstance', [
    string('name'),
    ref('sprite', PoolKind.SPRITES),
    i32('x'),
    i32('y'),
    f32('scale_x'),
    f32('scale_y'),
    u32('color'),
    f32('animation_speed'),
    u32('animation_speed_type'),
    f32('frame_index'),
    f32('rotation'),
])

SEQUENCE_INSTANCE = RecordSchema('SequenceInstance', [
    string('name'),
    ref('sequence', PoolKind.SEQUENCES),
    i32('x'),
    i32('y'),
    f32('scale_x'),
    f32('scale_y'),
    u32('color'),
    f32('animation_speed'),
    u32('animation_speed_type'),
    f32('frame_index'),
    f32('rotation'),
])

PARTICLE_SYSTEM_INSTANCE = RecordSchema('ParticleSystemInstance', [
    string('name'),
    ref('particle_system', PoolKind.PARTICLE_SYSTEMS),
    i32('x'),
    i32('y'),
    f32('scale_x'),
    f32('scale_y'),
    u32('color'),
    f32('rotation'),
])

TEXT_ITEM_INSTANCE = RecordSchema('TextItemInstance', [
    string('name'),
    i32('x'),
    i32('y'),
    ref('font', PoolKind.FONTS),
    f32('scale_x'),
    f32('scale_y'),
    f32('rotation'),
    u32('color'),
    f32('origin_x'),
    f32('origin_y'),
    string('text'),
    i32('alignment'),
    f32('char_spacing'),
    f32('line_spacing'),
    f32('frame_width'),
    f32('frame_height'),
    boolean('wrap'),
])

# Assets slot -> element schema
ASSETS_ELEMENTS = {
    'legacy_tiles': TILE,
    'sprites': SPRITE_INSTANCE,
    'sequences': SEQUENCE_INSTANCE,
    'nine_slices': SPRITE_INSTANCE,
    'particle_systems': PARTICLE_SYSTEM_INSTANCE,
    'text_items': TEXT_ITEM_INSTANCE,
}

# Room pointer slot -> element schema (pointer lists only)
ROOM_LIST_ELEMENTS = {
    'backgrounds': BACKGROUND,
    'views': VIEW,
    'game_objects': GAME_OBJECT,
    'tiles': TILE,
}


# =============================================================================
# Pointer slots
# =============================================================================

def room_head_slots(version: VersionContext) -> List[str]:
    """Pointer slots between ROOM_HEAD and ROOM_TAIL."""
    slots = ['backgrounds', 'views', 'game_objects', 'tiles']
    if version.is_version_at_least(*VERSION_INSTANCE_CREATION_ORDER):
        slots.append('instance_creation_order_ids')
    return slots


def room_tail_slots(ctx: CodecContext) -> List[str]:
    """Pointer slots after ROOM_TAIL."""
    slots = []
    if ctx.version.is_gm2():
        slots.append('layers')
        if ctx.room_has_sequences():
            slots.append('sequences')
    return slots


def assets_slots(version: VersionContext) -> List[str]:
    slots = ['legacy_tiles', 'sprites']
    if version.is_version_at_least(*VERSION_SEQUENCES):
        slots.append('sequences')
        if not version.is_version_at_least(*VERSION_NINE_SLICES_REMOVED):
            slots.append('nine_slices')
        if version.is_non_lts_version_at_least(*VERSION_PARTICLE_SYSTEMS):
            slots.append('particle_systems')
        if version.is_version_at_least(*VERSION_TEXT_ITEMS):
            slots.append('text_items')
    return slots


def read_assets_pointer_table(cursor: BinaryCursor, ctx: CodecContext) -> Dict[str, int]:
    """
    Read the pointer slots of an Assets payload.

    Assets bodies follow their pointer table, so when the first body starts
    beyond the pointers known for the current version, the file was written
    by 2024.6 or later and carries a text items pointer. The version is
    upgraded before that pointer is read, and stays upgraded for the rest of
    the load.
    """
    version = ctx.version
    pointers = OrderedDict()
    pointers['legacy_tiles'] = cursor.read_u32()
    pointers['sprites'] = cursor.read_u32()
    if not version.is_version_at_least(*VERSION_SEQUENCES):
        return pointers

    pointers['sequences'] = cursor.read_u32()
    if not version.is_version_at_least(*VERSION_NINE_SLICES_REMOVED):
        pointers['nine_slices'] = cursor.read_u32()
    if version.is_non_lts_version_at_least(*VERSION_PARTICLE_SYSTEMS):
        pointers['particle_systems'] = cursor.read_u32()
    if pointers['legacy_tiles'] > cursor.position and not version.is_version_at_least(*VERSION_TEXT_ITEMS):
        version.upgrade(*VERSION_TEXT_ITEMS,
                        reason=f"assets layer pointer table continues at 0x{cursor.position:X}")
    if version.is_version_at_least(*VERSION_TEXT_ITEMS):
        pointers['text_items'] = cursor.read_u32()
    return pointers


# =============================================================================
# Layer payload dispatch
# =============================================================================

def parse_layer_type(value: int, offset: int = None) -> LayerType:
    try:
        return LayerType(value)
    except ValueError:
        raise UnsupportedLayerTypeError(value, offset) from None


def layer_payload_serialized(version: VersionContext, layer_type: LayerType) -> bool:
    """Whether a layer of this type carries a payload after its base record."""
    if layer_type in (LayerType.PATH, LayerType.PATH2):
        return False
    if layer_type == LayerType.EFFECT:
        # Moved into the layer base record
        return not version.is_version_at_least(*VERSION_LAYER_EFFECTS)
    if layer_type in (LayerType.BACKGROUND, LayerType.INSTANCES, LayerType.ASSETS, LayerType.TILES):
        return True
    raise UnsupportedLayerTypeError(int(layer_type))


def layer_has_effect_properties(version: VersionContext) -> bool:
    return version.is_version_at_least(*VERSION_LAYER_EFFECTS)
