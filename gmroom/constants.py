"""
Constants used across the codec modules.

Consolidates chunk names, sentinels and the version thresholds that gate
optional fields.
"""

# Container
FORM_MAGIC = 'FORM'
GENERAL_INFO_CHUNK = 'GEN8'
STRINGS_CHUNK = 'STRG'
ROOMS_CHUNK = 'ROOM'
SEQUENCES_CHUNK = 'SEQN'

# Resource pool kind -> chunk holding its named resources (chunk order on save)
POOL_CHUNKS = {
    'sprites': 'SPRT',
    'backgrounds': 'BGND',
    'code': 'CODE',
    'objects': 'OBJT',
    'fonts': 'FONT',
    'sequences': SEQUENCES_CHUNK,
    'particle_systems': 'PSYS',
}

# Serialized "no resource" ID
NULL_RESOURCE_ID = -1

# Room background color is stored without alpha
BACKGROUND_ALPHA_MASK = 0xFF000000

# Tile grid run-length encoding
MAX_VERBATIM_RUN = 127
MAX_REPEAT_RUN = 128
REPEAT_RUN_FLAG = 0x80
# Trailing run of 2 sentinel tiles emitted when the last two cells differ
PADDING_RUN_HEADER = 0x81
PADDING_TILE = 0xFFFFFFFF

# Version gates
VERSION_GAMEOBJECT_IMAGE_PROPS = (2, 2, 2, 302)
VERSION_SEQUENCES = (2, 3)
VERSION_NINE_SLICES_REMOVED = (2, 3, 2)
VERSION_LAYER_EFFECTS = (2022, 1)
VERSION_PARTICLE_SYSTEMS = (2023, 2)        # non-LTS
VERSION_COMPRESSED_TILES = (2024, 2)
VERSION_ALIGNED_TILES = (2024, 4)
VERSION_TEXT_ITEMS = (2024, 6)
VERSION_INSTANCE_CREATION_ORDER = (2024, 13)
BYTECODE_PRE_CREATE_CODE = 16
