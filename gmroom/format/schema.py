"""
Record Schemas

Fixed-layout records are described once, as an ordered list of fields with an
optional version predicate, and that description drives all three paths:

- read():  materialize field values onto a model object
- write(): emit the same fields in the same order
- skip():  advance past the record and report how many objects it holds

Keeping the shape in one place is what keeps the counting pass in step with
the real reader when a version gate changes.

Every field kind occupies 4 bytes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Sequence, Union

from gmroom.constants import BACKGROUND_ALPHA_MASK
from gmroom.format.context import CodecContext
from gmroom.format.version import VersionContext
from gmroom.utils.binary import BinaryCursor, BinaryWriter

Predicate = Callable[[VersionContext], bool]
PoolSelector = Union[str, Callable[[VersionContext], str]]

FIELD_SIZE = 4


class FieldKind(Enum):
    I32 = 'i32'
    U32 = 'u32'
    F32 = 'f32'
    F32_BITS = 'f32_bits'  # float kept as its raw u32 bits
    BOOL = 'bool'
    STRING = 'string'
    REF = 'ref'
    RGB = 'rgb'            # color stored without alpha


@dataclass(frozen=True)
class Field:
    name: str
    kind: FieldKind
    pool: Optional[PoolSelector] = None
    present: Optional[Predicate] = None

    def is_present(self, version: VersionContext) -> bool:
        return self.present is None or self.present(version)

    def pool_for(self, version: VersionContext) -> str:
        return self.pool(version) if callable(self.pool) else self.pool


def since(*version: int) -> Predicate:
    return lambda v: v.is_version_at_least(*version)


def before(*version: int) -> Predicate:
    return lambda v: not v.is_version_at_least(*version)


def non_lts_since(*version: int) -> Predicate:
    return lambda v: v.is_non_lts_version_at_least(*version)


def bytecode_since(bytecode_version: int) -> Predicate:
    return lambda v: v.bytecode_version >= bytecode_version


def i32(name: str, present: Optional[Predicate] = None) -> Field:
    return Field(name, FieldKind.I32, present=present)


def u32(name: str, present: Optional[Predicate] = None) -> Field:
    return Field(name, FieldKind.U32, present=present)


def f32(name: str, present: Optional[Predicate] = None) -> Field:
    return Field(name, FieldKind.F32, present=present)


def boolean(name: str, present: Optional[Predicate] = None) -> Field:
    return Field(name, FieldKind.BOOL, present=present)


def string(name: str, present: Optional[Predicate] = None) -> Field:
    return Field(name, FieldKind.STRING, present=present)


def ref(name: str, pool: PoolSelector, present: Optional[Predicate] = None) -> Field:
    return Field(name, FieldKind.REF, pool=pool, present=present)


class RecordSchema:
    """Ordered, version-gated field layout of one record type."""

    def __init__(self, name: str, fields: Sequence[Field]):
        self.name = name
        self.fields = tuple(fields)

    def fields_for(self, version: VersionContext) -> List[Field]:
        return [f for f in self.fields if f.is_present(version)]

    def size(self, version: VersionContext) -> int:
        return FIELD_SIZE * len(self.fields_for(version))

    def ref_count(self, version: VersionContext) -> int:
        return sum(1 for f in self.fields_for(version) if f.kind is FieldKind.REF)

    def offset_of(self, name: str, version: VersionContext) -> int:
        """Byte offset of a field from the start of the record."""
        for index, f in enumerate(self.fields_for(version)):
            if f.name == name:
                return index * FIELD_SIZE
        raise KeyError(f"{self.name} has no field {name!r} in version {version}")

    def peek_u32(self, cursor: BinaryCursor, name: str, version: VersionContext) -> int:
        """Raw value of one field of the record at the cursor, without moving it."""
        with cursor.jump(cursor.position + self.offset_of(name, version)):
            return cursor.read_u32()

    def read(self, cursor: BinaryCursor, ctx: CodecContext, target):
        for f in self.fields_for(ctx.version):
            setattr(target, f.name, _read_value(cursor, ctx, f))
        return target

    def write(self, writer: BinaryWriter, ctx: CodecContext, source):
        for f in self.fields_for(ctx.version):
            _write_value(writer, ctx, f, getattr(source, f.name))

    def skip(self, cursor: BinaryCursor, ctx: CodecContext) -> int:
        """Advance past the record; returns the number of refs it holds."""
        cursor.skip(self.size(ctx.version))
        return self.ref_count(ctx.version)

    def __repr__(self) -> str:
        return f"RecordSchema({self.name}, {len(self.fields)} fields)"


def _read_value(cursor: BinaryCursor, ctx: CodecContext, f: Field):
    kind = f.kind
    if kind is FieldKind.I32:
        return cursor.read_i32()
    if kind is FieldKind.U32 or kind is FieldKind.F32_BITS:
        return cursor.read_u32()
    if kind is FieldKind.F32:
        return cursor.read_f32()
    if kind is FieldKind.BOOL:
        return cursor.read_bool()
    if kind is FieldKind.STRING:
        return ctx.read_string(cursor)
    if kind is FieldKind.REF:
        return ctx.read_ref(cursor, f.pool_for(ctx.version))
    if kind is FieldKind.RGB:
        return cursor.read_u32() | BACKGROUND_ALPHA_MASK
    raise AssertionError(f"Unhandled field kind {kind}")


def _write_value(writer: BinaryWriter, ctx: CodecContext, f: Field, value):
    kind = f.kind
    if kind is FieldKind.I32:
        writer.write_i32(value)
    elif kind is FieldKind.U32 or kind is FieldKind.F32_BITS:
        writer.write_u32(value)
    elif kind is FieldKind.F32:
        writer.write_f32(value)
    elif kind is FieldKind.BOOL:
        writer.write_bool(value)
    elif kind is FieldKind.STRING:
        ctx.write_string(writer, value)
    elif kind is FieldKind.REF:
        writer.write_i32(value.id)
    elif kind is FieldKind.RGB:
        writer.write_u32(value ^ BACKGROUND_ALPHA_MASK)
    else:
        raise AssertionError(f"Unhandled field kind {kind}")
