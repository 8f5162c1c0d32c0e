"""
List Codecs

Two list layouts are used throughout the format:

Pointer list:
- u32 count
- u32 offset[count]      absolute offset of each element
- element bodies, written one after another following the table

Simple list:
- u32 count
- elements inline

Each layout has a read, write and count function. Element callbacks receive
the cursor (or writer) positioned at the element.
"""

from typing import Callable, List, Sequence, TypeVar

from gmroom.errors import CorruptDataError
from gmroom.format.context import CodecContext
from gmroom.utils.binary import BinaryCursor, BinaryWriter

T = TypeVar('T')

ReadElement = Callable[[BinaryCursor], T]
WriteElement = Callable[[BinaryWriter, T], None]
CountElement = Callable[[BinaryCursor], int]


def _read_offsets(cursor: BinaryCursor) -> Sequence[int]:
    table_start = cursor.position
    count = cursor.read_u32()
    offsets = cursor.read_u32_array(count)
    for index, offset in enumerate(offsets):
        if offset == 0:
            raise CorruptDataError(f"Pointer list entry {index} of {count} is null",
                                   table_start + 4 + index * 4, "non-null-list-entry")
    return offsets


def read_pointer_list(cursor: BinaryCursor, ctx: CodecContext, read_element: ReadElement) -> List[T]:
    """
    Read a pointer list.

    The cursor ends just past the offset table; each element is read at its
    recorded offset.
    """
    offsets = _read_offsets(cursor)
    ctx.register()
    items = []
    for offset in offsets:
        with cursor.jump(offset):
            items.append(read_element(cursor))
    return items


def write_pointer_list(writer: BinaryWriter, items: Sequence[T], write_element: WriteElement):
    """Write count, a placeholder table, then each element, backpatching the table."""
    writer.write_u32(len(items))
    table = writer.position
    for _ in items:
        writer.reserve_u32()
    for index, item in enumerate(items):
        writer.patch_here(table + index * 4)
        write_element(writer, item)


def count_pointer_list(cursor: BinaryCursor, count_element: CountElement) -> int:
    """Objects a pointer list holds: the list itself plus whatever each element counts."""
    total = 1
    for offset in _read_offsets(cursor):
        with cursor.jump(offset):
            total += count_element(cursor)
    return total


def read_simple_list(cursor: BinaryCursor, ctx: CodecContext, read_element: ReadElement) -> List[T]:
    count = cursor.read_u32()
    ctx.register()
    return [read_element(cursor) for _ in range(count)]


def write_simple_list(writer: BinaryWriter, items: Sequence[T], write_element: WriteElement):
    writer.write_u32(len(items))
    for item in items:
        write_element(writer, item)


def count_simple_list(cursor: BinaryCursor, count_element: CountElement) -> int:
    count = cursor.read_u32()
    total = 1
    for _ in range(count):
        total += count_element(cursor)
    return total
