"""
Codec Context

State threaded through every read, write and counting call of one load or
save. Nothing here is shared between loads, so independent files can be
processed on separate threads.
"""

from typing import Dict, List, Optional

from gmroom.constants import VERSION_SEQUENCES
from gmroom.errors import CorruptDataError, WriterPreconditionError
from gmroom.format.pools import RefStatus, ResourceRef, StringPool
from gmroom.format.version import VersionContext
from gmroom.utils.binary import BinaryCursor, BinaryWriter


class CodecContext:
    """
    Per-operation context.

    Attributes:
        version: Detected version; the only state that changes mid-parse
        strings: String pool (read: offset lookups, write: interning)
        has_sequence_chunk: Whether the container has a SEQN chunk
                            (None = unknown, decided by version)
        object_count: Addressable objects materialized (read) or walked (count)
        refs: Every ResourceRef read, in file order, for the resolution pass
    """

    def __init__(self, version: VersionContext, strings: Optional[StringPool] = None,
                 has_sequence_chunk: Optional[bool] = None, sizing: bool = False):
        self.version = version
        # Sizing pass: strings may still be interned after STRG was emitted
        self.sizing = sizing
        self.strings = strings if strings is not None else StringPool()
        self.has_sequence_chunk = has_sequence_chunk
        self.object_count = 0
        self.refs: List[ResourceRef] = []

        # Write side: string index -> data offset, and slots waiting for it
        self._string_offsets: Dict[int, int] = {}
        self._string_slots: Dict[int, List[int]] = {}
        self._strings_emitted = False

    def room_has_sequences(self) -> bool:
        """Whether GMS2 rooms carry a sequences pointer."""
        if self.has_sequence_chunk is not None:
            return self.has_sequence_chunk
        return self.version.is_version_at_least(*VERSION_SEQUENCES)

    def register(self, count: int = 1):
        self.object_count += count

    # =========================================================================
    # Read side
    # =========================================================================

    def read_string(self, cursor: BinaryCursor) -> Optional[str]:
        offset = cursor.read_u32()
        if offset == 0:
            return None
        value = self.strings.at_offset(offset)
        if value is None:
            raise CorruptDataError(f"String pointer 0x{offset:X} does not address a string entry",
                                   cursor.position - 4, "string-in-pool")
        return value

    def read_ref(self, cursor: BinaryCursor, pool: str) -> ResourceRef:
        resource_id = cursor.read_i32()
        ref = ResourceRef(pool, resource_id, RefStatus.UNRESOLVED)
        self.refs.append(ref)
        self.register()
        return ref

    # =========================================================================
    # Write side
    # =========================================================================

    def write_string(self, writer: BinaryWriter, value: Optional[str]):
        if value is None:
            writer.write_u32(0)
            return
        index = self.strings.intern(value)
        offset = self._string_offsets.get(index)
        if offset is not None:
            writer.write_u32(offset)
            return
        if self._strings_emitted and not self.sizing:
            raise WriterPreconditionError(f"String {value!r} was added after the string pool was written",
                                          writer.position, "strings-complete")
        self._string_slots.setdefault(index, []).append(writer.reserve_u32())

    def string_emitted(self, writer: BinaryWriter, index: int, data_offset: int):
        """Record where a pool entry's characters landed and backpatch waiting slots."""
        self._string_offsets[index] = data_offset
        for slot in self._string_slots.pop(index, []):
            writer.patch_u32(slot, data_offset)

    def finish_strings(self):
        self._strings_emitted = True

    def unpatched_string_count(self) -> int:
        return sum(len(slots) for slots in self._string_slots.values())
