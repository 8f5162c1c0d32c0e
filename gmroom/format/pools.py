"""
String and Resource Pools

Every cross-reference in a data file ends up in one of these tables:

- StringPool: interned strings from the STRG chunk. String fields store the
  absolute offset of the character data, which follows a u32 length.
- ResourcePool: named resources of one kind (sprites, objects, code...),
  addressed by their index, which is the resource ID.
- ResourceRef: a serialized resource ID. It owns nothing; it is bound to a
  pool entry by the resolution pass once all pools are loaded.

STRG entry format:
- u32 length (bytes, without terminator)
- UTF-8 bytes
- u8 0
"""

import random
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterator, List, Optional

from gmroom.constants import NULL_RESOURCE_ID, POOL_CHUNKS


class PoolKind:
    """Names of the resource pools a reference can point into."""
    SPRITES = 'sprites'
    BACKGROUNDS = 'backgrounds'
    OBJECTS = 'objects'
    CODE = 'code'
    SEQUENCES = 'sequences'
    PARTICLE_SYSTEMS = 'particle_systems'
    FONTS = 'fonts'


class RefStatus(Enum):
    UNRESOLVED = 'unresolved'  # read from file, resolution pass not run yet
    NONE = 'none'              # explicit "no resource" (-1)
    RESOLVED = 'resolved'
    DANGLING = 'dangling'      # ID has no entry in its pool


@dataclass
class ResourceRef:
    """Weak reference to a pool entry, serialized as an int32 ID."""
    pool: str
    id: int = NULL_RESOURCE_ID
    status: RefStatus = RefStatus.NONE

    @property
    def is_null(self) -> bool:
        return self.id == NULL_RESOURCE_ID

    def bind(self, resource: Optional['NamedResource']):
        """Point at a resource (or at nothing)."""
        if resource is None:
            self.id = NULL_RESOURCE_ID
            self.status = RefStatus.NONE
            return
        if resource.pool != self.pool:
            raise ValueError(f"Cannot bind a {resource.pool} resource to a {self.pool} reference")
        self.id = resource.id
        self.status = RefStatus.RESOLVED


@dataclass
class NamedResource:
    """Stub for a resource defined in a sibling chunk: just its name and ID."""
    pool: str
    id: int
    name: Optional[str]


@dataclass
class ResourcePool:
    """
    Append-only table of named resources of one kind.

    A pool read from a file also keeps its chunk body: the records carry far
    more than a name, and the writer emits them back with only the entry
    table and the name fields rewritten.
    """
    kind: str
    entries: List[NamedResource] = field(default_factory=list)

    # Chunk body as loaded, its file offset, and each entry's record offset within it
    raw_body: Optional[bytes] = field(default=None, compare=False, repr=False)
    raw_offset: int = field(default=0, compare=False, repr=False)
    record_offsets: List[int] = field(default_factory=list, compare=False, repr=False)

    @property
    def has_records(self) -> bool:
        """Whether the loaded records still line up with the entries."""
        return self.raw_body is not None and len(self.record_offsets) == len(self.entries)

    def add(self, name: Optional[str]) -> NamedResource:
        resource = NamedResource(self.kind, len(self.entries), name)
        self.entries.append(resource)
        return resource

    def get(self, resource_id: int) -> Optional[NamedResource]:
        if 0 <= resource_id < len(self.entries):
            return self.entries[resource_id]
        return None

    def by_name(self, name: str) -> Optional[NamedResource]:
        for resource in self.entries:
            if resource.name == name:
                return resource
        return None

    def __len__(self) -> int:
        return len(self.entries)

    def __iter__(self) -> Iterator[NamedResource]:
        return iter(self.entries)


class ResourcePools:
    """All resource pools of one data file, keyed by PoolKind."""

    def __init__(self):
        self._pools: Dict[str, ResourcePool] = {}

    def pool(self, kind: str, create: bool = True) -> Optional[ResourcePool]:
        if kind not in POOL_CHUNKS:
            raise KeyError(f"Unknown resource pool: {kind}")
        if kind not in self._pools and create:
            self._pools[kind] = ResourcePool(kind)
        return self._pools.get(kind)

    def add_pool(self, pool: ResourcePool):
        """Install a pool read from its chunk, replacing any existing one."""
        self.pool(pool.kind, create=False)  # validates the kind
        self._pools[pool.kind] = pool

    def has_pool(self, kind: str) -> bool:
        return kind in self._pools

    def lookup(self, ref: ResourceRef) -> Optional[NamedResource]:
        """The resource a reference points to, or None."""
        if ref.is_null:
            return None
        pool = self._pools.get(ref.pool)
        return pool.get(ref.id) if pool is not None else None

    def kinds(self) -> List[str]:
        """Pool kinds present, in chunk order."""
        return [kind for kind in POOL_CHUNKS if kind in self._pools]


class StringPool:
    """
    Interned strings, in file order.

    Lookups from the read side use the absolute offset of the character data;
    writers intern values and let the container writer lay out the chunk.
    """

    def __init__(self, strings: Optional[List[str]] = None):
        self.strings: List[str] = []
        self._index: Dict[str, int] = {}
        self._by_offset: Dict[int, int] = {}
        for value in strings or []:
            self.append(value)

    def append(self, value: str, data_offset: Optional[int] = None) -> int:
        """Add an entry, even if the value already exists (files may hold duplicates)."""
        index = len(self.strings)
        self.strings.append(value)
        self._index.setdefault(value, index)
        if data_offset is not None:
            self._by_offset[data_offset] = index
        return index

    def intern(self, value: str) -> int:
        """Index of value, adding it if new."""
        index = self._index.get(value)
        if index is None:
            index = self.append(value)
        return index

    def make_string(self, value: str) -> str:
        """Intern and return the value, for model fields."""
        self.intern(value)
        return value

    def index_at(self, data_offset: int) -> Optional[int]:
        return self._by_offset.get(data_offset)

    def at_offset(self, data_offset: int) -> Optional[str]:
        index = self._by_offset.get(data_offset)
        return self.strings[index] if index is not None else None

    def __len__(self) -> int:
        return len(self.strings)

    def __iter__(self) -> Iterator[str]:
        return iter(self.strings)

    def __contains__(self, value: str) -> bool:
        return value in self._index


def generate_random_name(strings: StringPool, prefix: str, rng: Optional[random.Random] = None) -> str:
    """
    Make an instance name the way the IDE does: prefix + 8 uppercase hex digits.

    Args:
        strings: Pool the name is interned into
        prefix: 'graphic_', 'particle_' or 'textitem_'
        rng: Random source (module random if None)
    """
    rng = rng or random
    value = rng.randint(-0x7FFFFFFF, 0x7FFFFFFE) & 0xFFFFFFFF
    return strings.make_string(f"{prefix}{value:08X}")
