"""
Format Building Blocks

Pieces shared by every resource codec:

- version: VersionContext and its version predicates
- pools: StringPool, ResourcePool(s), ResourceRef
- context: CodecContext, the per-load/per-save state
- lists: pointer list and simple list codecs
- schema: version-gated record layouts driving read, write and count
- chunks: FORM chunk table, STRG, GEN8 and named-resource chunks
"""

from .version import VersionContext, Branch
from .pools import (
    PoolKind,
    RefStatus,
    ResourceRef,
    NamedResource,
    ResourcePool,
    ResourcePools,
    StringPool,
    generate_random_name,
)
from .context import CodecContext
from .lists import (
    read_pointer_list,
    write_pointer_list,
    count_pointer_list,
    read_simple_list,
    write_simple_list,
    count_simple_list,
)
from .schema import Field, FieldKind, RecordSchema
from .chunks import (
    Chunk,
    ChunkReader,
    GeneralInfo,
    read_string_pool,
    write_string_pool,
    read_general_info,
    write_general_info,
    read_named_pool,
    write_named_pool,
)

__all__ = [
    'VersionContext',
    'Branch',
    'PoolKind',
    'RefStatus',
    'ResourceRef',
    'NamedResource',
    'ResourcePool',
    'ResourcePools',
    'StringPool',
    'generate_random_name',
    'CodecContext',
    'read_pointer_list',
    'write_pointer_list',
    'count_pointer_list',
    'read_simple_list',
    'write_simple_list',
    'count_simple_list',
    'Field',
    'FieldKind',
    'RecordSchema',
    'Chunk',
    'ChunkReader',
    'GeneralInfo',
    'read_string_pool',
    'write_string_pool',
    'read_general_info',
    'write_general_info',
    'read_named_pool',
    'write_named_pool',
]
