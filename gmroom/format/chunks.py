"""
FORM Container Chunks

Data files are a single FORM chunk holding named chunks:
- 'FORM'
- u32 form_size
- chunks, each:
  - char[4] name
  - u32 size
  - [size bytes of body]

This module reads the chunk table and the chunks every other chunk depends
on: STRG (string pool), GEN8 (general info, which seeds the version) and the
named-resource chunks that references resolve against.

GEN8 (general info):
- u8 debugger_disabled
- u8 bytecode_version
- u16 unknown
- u32 name (string pointer)
- u32 major, minor, release, build

STRG (string pool):
- pointer list of entries: u32 length, UTF-8 bytes, u8 0
- string fields point at the bytes, 4 past the entry start

Named-resource chunks (SPRT, BGND, CODE, OBJT, FONT, SEQN, PSYS):
- pointer list of records; the first field of each record is its name
- only names are modeled; the rest of each record is kept as loaded
"""

import struct
from dataclasses import dataclass
from typing import Iterator, Optional

from gmroom.constants import FORM_MAGIC
from gmroom.errors import CorruptDataError
from gmroom.format.context import CodecContext
from gmroom.format.lists import write_pointer_list
from gmroom.format.pools import ResourcePool, StringPool
from gmroom.format.version import VersionContext
from gmroom.utils import logWarning
from gmroom.utils.binary import BinaryCursor, BinaryWriter, read_chunk_header

FORM_HEADER_SIZE = 8


@dataclass
class Chunk:
    """A single chunk inside the FORM."""
    name: str
    size: int
    offset: int       # Offset of the chunk header
    body_offset: int

    @property
    def end(self) -> int:
        return self.body_offset + self.size


class ChunkReader:
    """
    Iterator over the chunks of a FORM file.

    Usage:
        for chunk in ChunkReader(data):
            if chunk.name == 'GEN8':
                ...
    """

    def __init__(self, data: bytes):
        name, form_size, body_offset = read_chunk_header(data, 0)
        if name != FORM_MAGIC:
            raise CorruptDataError(f"Expected {FORM_MAGIC} magic, got {name!r}", 0, "form-magic")
        if body_offset + form_size > len(data):
            raise CorruptDataError(f"FORM declares {form_size} bytes, file holds {len(data) - body_offset}",
                                   4, "form-size")
        self.data = data
        self.offset = body_offset
        self.end = body_offset + form_size

    def __iter__(self) -> Iterator[Chunk]:
        return self

    def __next__(self) -> Chunk:
        if self.offset >= self.end:
            raise StopIteration
        name, size, body_offset = read_chunk_header(self.data, self.offset)
        if body_offset + size > self.end:
            raise CorruptDataError(f"Chunk {name} overruns the FORM ({size} bytes)",
                                   self.offset, "chunk-size")
        chunk = Chunk(name=name, size=size, offset=self.offset, body_offset=body_offset)
        self.offset = chunk.end
        return chunk

    @property
    def has_more(self) -> bool:
        return self.offset < self.end


# =============================================================================
# STRG
# =============================================================================

def read_string_pool(data: bytes, chunk: Chunk) -> StringPool:
    cursor = BinaryCursor(data, chunk.body_offset)
    count = cursor.read_u32()
    strings = StringPool()
    for index, entry in enumerate(cursor.read_u32_array(count)):
        if entry == 0:
            raise CorruptDataError(f"String entry {index} is null", chunk.body_offset + 4 + index * 4,
                                   "non-null-list-entry")
        with cursor.jump(entry):
            length = cursor.read_u32()
            raw = cursor.read_bytes(length)
            if cursor.read_u8() != 0:
                raise CorruptDataError(f"String entry {index} is not NUL-terminated",
                                       cursor.position - 1, "string-terminator")
        try:
            value = raw.decode('utf-8')
        except UnicodeDecodeError:
            raise CorruptDataError(f"String entry {index} is not valid UTF-8", entry + 4, "string-utf8") from None
        strings.append(value, data_offset=entry + 4)
    return strings


def write_string_pool(writer: BinaryWriter, ctx: CodecContext):
    """Emit every interned string and backpatch the fields that point at them."""
    def write_entry(w: BinaryWriter, index: int):
        encoded = ctx.strings.strings[index].encode('utf-8')
        w.write_u32(len(encoded))
        ctx.string_emitted(w, index, w.position)
        w.write_bytes(encoded)
        w.write_u8(0)

    write_pointer_list(writer, list(range(len(ctx.strings))), write_entry)
    ctx.finish_strings()


# =============================================================================
# GEN8
# =============================================================================

_GEN8_HEAD = struct.Struct('<BBH')


@dataclass
class GeneralInfo:
    """The parts of GEN8 the codec needs."""
    name: Optional[str] = None
    debugger_disabled: int = 0
    bytecode_version: int = 17
    unknown: int = 0
    major: int = 2
    minor: int = 0
    release: int = 0
    build: int = 0

    def version_context(self, lts: bool = False) -> VersionContext:
        return VersionContext(self.major, self.minor, self.release, self.build,
                              lts=lts, bytecode_version=self.bytecode_version)

    def set_version(self, version: VersionContext):
        self.major, self.minor, self.release, self.build = version.as_tuple


def read_general_info(data: bytes, chunk: Chunk, strings: Optional[StringPool] = None) -> GeneralInfo:
    """
    Read GEN8.

    Args:
        strings: Pool to resolve the name against; the name stays None without it
    """
    cursor = BinaryCursor(data, chunk.body_offset)
    debugger_disabled, bytecode_version, unknown = _GEN8_HEAD.unpack(cursor.read_bytes(_GEN8_HEAD.size))
    info = GeneralInfo(debugger_disabled=debugger_disabled, bytecode_version=bytecode_version, unknown=unknown)
    if strings is not None:
        info.name = CodecContext(info.version_context(), strings).read_string(cursor)
    else:
        cursor.skip(4)
    info.major = cursor.read_u32()
    info.minor = cursor.read_u32()
    info.release = cursor.read_u32()
    info.build = cursor.read_u32()
    return info


def write_general_info(writer: BinaryWriter, ctx: CodecContext, info: GeneralInfo):
    writer.write_bytes(_GEN8_HEAD.pack(info.debugger_disabled, info.bytecode_version, info.unknown))
    ctx.write_string(writer, info.name)
    for part in (info.major, info.minor, info.release, info.build):
        writer.write_u32(part)


# =============================================================================
# Named-resource chunks
# =============================================================================

def read_named_pool(data: bytes, chunk: Chunk, kind: str, strings: StringPool) -> ResourcePool:
    """Read a named-resource chunk as stubs, without counting objects. The chunk body is kept."""
    cursor = BinaryCursor(data, chunk.body_offset)
    count = cursor.read_u32()
    names = CodecContext(VersionContext(), strings)
    pool = ResourcePool(kind, raw_body=data[chunk.body_offset:chunk.end], raw_offset=chunk.body_offset)
    table_end = cursor.position + count * 4
    for index, entry in enumerate(cursor.read_u32_array(count)):
        slot = chunk.body_offset + 4 + index * 4
        if entry == 0:
            raise CorruptDataError(f"{chunk.name} entry {index} is null", slot, "non-null-list-entry")
        if not table_end <= entry <= chunk.end - 4:
            raise CorruptDataError(f"{chunk.name} entry {index} points outside its records (0x{entry:X})",
                                   slot, "record-in-chunk")
        with cursor.jump(entry):
            pool.add(names.read_string(cursor))
        pool.record_offsets.append(entry - chunk.body_offset)
    return pool


def write_named_pool(writer: BinaryWriter, ctx: CodecContext, pool: ResourcePool):
    """
    Write a named-resource chunk body.

    Loaded records are emitted as they were read, with the entry table and
    the name fields rewritten for the new position. Other absolute pointers
    inside a record are not relocated. Pools built in memory, or grown since
    the load, are written as name-only stubs.
    """
    if not pool.has_records:
        if pool.raw_body is not None and not ctx.sizing:
            logWarning(f"{pool.kind}: {len(pool.entries) - len(pool.record_offsets)} entries added since load, "
                       f"records rebuilt as name-only stubs")
        write_pointer_list(writer, pool.entries, lambda w, resource: ctx.write_string(w, resource.name))
        return

    body = writer.position
    delta = body - pool.raw_offset
    count = len(pool.entries)
    if delta and not ctx.sizing and len(pool.raw_body) > 4 + count * 8:
        logWarning(f"{pool.kind}: records moved by {delta} bytes, pointers inside them are not relocated")

    writer.write_u32(count)
    for offset in pool.record_offsets:
        writer.write_u32(body + offset)

    names = dict(zip(pool.record_offsets, pool.entries))
    position = 4 + count * 4
    for offset in sorted(names):
        writer.write_bytes(pool.raw_body[position:offset])
        ctx.write_string(writer, names[offset].name)
        position = offset + 4
    writer.write_bytes(pool.raw_body[position:])
