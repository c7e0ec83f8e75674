"""
Primitive Record Codecs
=======================

Fixed-shape leaf records consumed by the store data and asset records.

| Record               | Layout                                        |
|----------------------|-----------------------------------------------|
| NameReference        | [u32 index][u32 number]                       |
| DisplayNameEntryId   | [u32 index]                                   |
| ValueId              | [u32: index << 3 | kind]                      |
| NumberedPair         | NameReference + ValueId                       |
| NumberlessPair       | DisplayNameEntryId + ValueId                  |
| ExportPath           | 3 x NameReference (class, object, package)    |
| NumberlessExportPath | 3 x DisplayNameEntryId (class, object, package)|
| TextBlob             | [u32 len incl. NUL][len bytes ending in 0x00] |
| legacy bool          | [u32 0 or 1]                                  |

Name references are opaque indices into a name table owned elsewhere
(normally the registry's NamesBatch); nothing here resolves them except
format_name, which takes the lookup as an argument.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Callable

from .binary import BinaryReader, BinaryWriter
from .errors import (EncodeError, InvalidEncoding, InvalidTermination,
                     InvalidValue, OversizedField, UnknownTag)
from .fstring import MAX_STRING_SERIALIZATION_SIZE


# =============================================================================
# LEGACY BOOL
# =============================================================================

def read_legacy_bool(reader: BinaryReader, field: str = "bool") -> bool:
    """Read a bool serialized as a 32-bit integer."""
    pos = reader.tell()
    raw = reader.read_u32(field)
    if raw not in (0, 1):
        raise InvalidValue("legacy bool must be 0 or 1", field=field,
                           actual=raw, offset=pos)
    return raw == 1


def write_legacy_bool(writer: BinaryWriter, value: bool):
    writer.write_u32(1 if value else 0)


# =============================================================================
# NAMES
# =============================================================================

@dataclass(frozen=True)
class NameReference:
    """Index into the batch name table plus an instance number (0 = none)."""
    index: int
    number: int = 0

    def write(self, writer: BinaryWriter):
        writer.write_u32(self.index)
        writer.write_u32(self.number)

    @classmethod
    def read(cls, reader: BinaryReader) -> 'NameReference':
        index = reader.read_u32("name.index")
        number = reader.read_u32("name.number")
        return cls(index, number)


@dataclass(frozen=True)
class DisplayNameEntryId:
    """Name table index without an instance number."""
    index: int

    def write(self, writer: BinaryWriter):
        writer.write_u32(self.index)

    @classmethod
    def read(cls, reader: BinaryReader) -> 'DisplayNameEntryId':
        return cls(reader.read_u32("display_name.index"))


def format_name(lookup: Callable[[int], str], ref: NameReference) -> str:
    """
    Render a name reference the way the engine prints it.

    The stored number is one more than the printed suffix, so number 0 means
    "no suffix" and number 1 prints as "_0".

    Args:
        lookup: Maps a name table index to its string, e.g. NamesBatch.lookup.
        ref: Reference to render.
    """
    base = lookup(ref.index)
    if ref.number == 0:
        return base
    return f"{base}_{ref.number - 1}"


# =============================================================================
# VALUE IDS AND PAIRS
# =============================================================================

class ValueKind(IntEnum):
    """Closed set of value kinds a packed ValueId may carry."""
    NONE = 0
    POINTER = 1
    NAME = 2


VALUE_KIND_BITS = 3
VALUE_KIND_MASK = (1 << VALUE_KIND_BITS) - 1
VALUE_INDEX_BITS = 32 - VALUE_KIND_BITS
MAX_VALUE_INDEX = (1 << VALUE_INDEX_BITS) - 1


@dataclass(frozen=True)
class ValueId:
    """
    Packed value reference: a 3-bit kind and a 29-bit index into the
    kind-specific array. A NONE value never carries an index.
    """
    kind: ValueKind
    index: int = 0

    def __post_init__(self):
        if not isinstance(self.kind, ValueKind):
            raise EncodeError(f"value kind must be a ValueKind, got {self.kind!r}")
        if not 0 <= self.index <= MAX_VALUE_INDEX:
            raise EncodeError(f"value index {self.index} does not fit in "
                              f"{VALUE_INDEX_BITS} bits")
        if self.kind is ValueKind.NONE and self.index:
            raise EncodeError("a NONE value cannot carry an index")

    @classmethod
    def none(cls) -> 'ValueId':
        return cls(ValueKind.NONE)

    def pack(self) -> int:
        return (self.index << VALUE_KIND_BITS) | int(self.kind)

    @classmethod
    def unpack(cls, packed: int, offset: int = None) -> 'ValueId':
        raw_kind = packed & VALUE_KIND_MASK
        index = packed >> VALUE_KIND_BITS
        try:
            kind = ValueKind(raw_kind)
        except ValueError:
            raise UnknownTag("unknown value kind", field="value_id.kind",
                             expected=[k.value for k in ValueKind],
                             actual=raw_kind, offset=offset) from None
        if kind is ValueKind.NONE and index:
            raise InvalidValue("NONE value carries an index",
                               field="value_id.index", expected=0,
                               actual=index, offset=offset)
        return cls(kind, index)

    def write(self, writer: BinaryWriter):
        writer.write_u32(self.pack())

    @classmethod
    def read(cls, reader: BinaryReader) -> 'ValueId':
        pos = reader.tell()
        return cls.unpack(reader.read_u32("value_id"), offset=pos)


@dataclass(frozen=True)
class NumberedPair:
    key: NameReference
    value: ValueId

    def write(self, writer: BinaryWriter):
        self.key.write(writer)
        self.value.write(writer)

    @classmethod
    def read(cls, reader: BinaryReader) -> 'NumberedPair':
        key = NameReference.read(reader)
        value = ValueId.read(reader)
        return cls(key, value)


@dataclass(frozen=True)
class NumberlessPair:
    key: DisplayNameEntryId
    value: ValueId

    def write(self, writer: BinaryWriter):
        self.key.write(writer)
        self.value.write(writer)

    @classmethod
    def read(cls, reader: BinaryReader) -> 'NumberlessPair':
        key = DisplayNameEntryId.read(reader)
        value = ValueId.read(reader)
        return cls(key, value)


# =============================================================================
# EXPORT PATHS
# =============================================================================

@dataclass(frozen=True)
class ExportPath:
    class_name: NameReference
    object_name: NameReference
    package_name: NameReference

    def write(self, writer: BinaryWriter):
        self.class_name.write(writer)
        self.object_name.write(writer)
        self.package_name.write(writer)

    @classmethod
    def read(cls, reader: BinaryReader) -> 'ExportPath':
        class_name = NameReference.read(reader)
        object_name = NameReference.read(reader)
        package_name = NameReference.read(reader)
        return cls(class_name, object_name, package_name)


@dataclass(frozen=True)
class NumberlessExportPath:
    class_name: DisplayNameEntryId
    object_name: DisplayNameEntryId
    package_name: DisplayNameEntryId

    def write(self, writer: BinaryWriter):
        self.class_name.write(writer)
        self.object_name.write(writer)
        self.package_name.write(writer)

    @classmethod
    def read(cls, reader: BinaryReader) -> 'NumberlessExportPath':
        class_name = DisplayNameEntryId.read(reader)
        object_name = DisplayNameEntryId.read(reader)
        package_name = DisplayNameEntryId.read(reader)
        return cls(class_name, object_name, package_name)


# =============================================================================
# TEXT BLOB
# =============================================================================

@dataclass(frozen=True)
class TextBlob:
    """
    Length-prefixed raw text. `raw` keeps the trailing NUL so the blob
    re-encodes to the exact bytes it was read from.
    """
    raw: bytes

    @classmethod
    def from_text(cls, text: str) -> 'TextBlob':
        return cls(text.encode('utf-8') + b'\x00')

    @property
    def text(self) -> str:
        """Decode the blob as UTF-8, without its terminator."""
        try:
            return self.raw[:-1].decode('utf-8')
        except UnicodeDecodeError as e:
            raise InvalidEncoding(f"text blob is not valid UTF-8: {e.reason}",
                                  field="text") from e

    def write(self, writer: BinaryWriter):
        if not self.raw or self.raw[-1] != 0:
            raise EncodeError("text blob must end with a NUL terminator")
        writer.write_u32(len(self.raw))
        writer.write_bytes(self.raw)

    @classmethod
    def read(cls, reader: BinaryReader) -> 'TextBlob':
        pos = reader.tell()
        length = reader.read_u32("text.length")
        if length == 0:
            raise InvalidTermination("text blob has no room for its terminator",
                                     field="text.length", actual=0, offset=pos)
        if length > MAX_STRING_SERIALIZATION_SIZE:
            raise OversizedField("text blob too large", field="text.length",
                                 expected=MAX_STRING_SERIALIZATION_SIZE,
                                 actual=length, offset=pos)
        raw = reader.read_bytes(length, "text")
        if raw[-1] != 0:
            raise InvalidTermination("text blob not NUL-terminated", field="text",
                                     expected=0, actual=raw[-1],
                                     offset=pos + 4 + length - 1)
        return cls(raw)
