"""
Codec Errors

Exception types raised while loading or saving a data file.

Every error carries the absolute byte offset where the problem was detected
(or None when no single offset applies) and a short name of the rule that was
broken, so callers can report failures without parsing messages.

- CorruptDataError: the input bytes do not follow the format
- WriterPreconditionError: the in-memory graph cannot be written as requested
"""

from typing import Optional


class CodecError(ValueError):
    """Base class for all load/save failures."""

    def __init__(self, message: str, offset: Optional[int] = None, invariant: str = ""):
        self.offset = offset
        self.invariant = invariant
        if offset is not None:
            message = f"{message} (at offset 0x{offset:X})"
        super().__init__(message)


class CorruptDataError(CodecError):
    """The input does not follow the binary format."""


class TruncatedDataError(CorruptDataError):
    """A read ran past the end of the buffer."""


class UnsupportedLayerTypeError(CorruptDataError):
    """A layer declares a type tag this codec does not know."""

    def __init__(self, layer_type: int, offset: Optional[int] = None):
        self.layer_type = layer_type
        super().__init__(f"Unsupported layer type {layer_type}", offset, "layer-type")


class WriterPreconditionError(CodecError):
    """The object graph violates a rule the writer depends on."""


class TileGridShapeError(WriterPreconditionError):
    """Tile grid dimensions do not match TilesX/TilesY."""
