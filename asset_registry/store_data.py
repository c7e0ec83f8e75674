"""
Store Data
==========

The tag/value property store shared by every asset in a registry. One
linear pass, no branching:

    [u32 BEGIN_MAGIC = 0x12345679]
    [11 x u32 counts]       see COUNT_FIELDS for the order
    [texts]                 TextBlob array
    [numberless names]      u32 each
    [names]                 NameReference each
    [numberless export paths]
    [export paths]
    [ANSI string offsets]   u32 each
    [wide string offsets]   u32 each
    [ANSI string blob]      one byte per unit
    [wide string blob]      two bytes per unit
    [numberless pairs]
    [numbered pairs]
    [u32 END_MAGIC = 0x87654321]

String pools
------------
Each pool is one contiguous buffer of NUL-terminated strings plus one offset
per string. Lengths are never stored: string i spans
[offsets[i], offsets[i+1]) and the last string runs to the pool total.
Offsets and totals count pool units, which are bytes for the ANSI pool and
UTF-16 units for the wide pool.
"""

import logging
from dataclasses import InitVar, dataclass, field
from typing import List, Optional, Sequence, Tuple, Union

from .binary import BinaryReader, BinaryWriter
from .errors import (EncodeError, InconsistentLength, InvalidEncoding,
                     InvalidTermination, MalformedMagic, OversizedField)
from .fstring import MAX_STRING_SERIALIZATION_SIZE
from .primitives import (DisplayNameEntryId, ExportPath, NameReference,
                         NumberedPair, NumberlessExportPath, NumberlessPair,
                         TextBlob)

logger = logging.getLogger(__name__)

BEGIN_MAGIC = 0x12345679
END_MAGIC = 0x87654321

# Order of the count header; the array bodies follow the module docstring.
COUNT_FIELDS = (
    "numberless_names",
    "names",
    "numberless_export_paths",
    "export_paths",
    "texts",
    "ansi_string_offsets",
    "wide_string_offsets",
    "ansi_string_units",
    "wide_string_units",
    "numberless_pairs",
    "pairs",
)


# =============================================================================
# STRING POOL
# =============================================================================

def derive_ranges(offsets: Sequence[int], total: int, pool: str = "strings",
                  offsets_pos: Optional[int] = None) -> List[Tuple[int, int]]:
    """
    Turn a string pool's offsets into half-open [start, end) unit ranges.

    Args:
        offsets: One start offset per string, no sentinel.
        total: Total number of units in the pool; closes the last range.
        pool: Name used in error messages.
        offsets_pos: Input position of the offset array, when decoding.
            Errors then point at the offending offset.

    Raises:
        InconsistentLength: offsets not starting at 0, not strictly
            increasing, or beyond the total.
        OversizedField: a single string longer than the string size bound.
    """
    def at(i: int) -> Optional[int]:
        return None if offsets_pos is None else offsets_pos + 4 * i

    if not offsets:
        if total:
            raise InconsistentLength(f"{pool} pool has bytes but no strings",
                                     field=f"{pool}.total", expected=0,
                                     actual=total, offset=offsets_pos)
        return []
    if offsets[0] != 0:
        raise InconsistentLength(f"{pool} pool does not start at offset 0",
                                 field=f"{pool}.offsets[0]", expected=0,
                                 actual=offsets[0], offset=at(0))

    ranges = []
    for i, start in enumerate(offsets):
        end = offsets[i + 1] if i + 1 < len(offsets) else total
        if start > total or end > total:
            raise InconsistentLength(f"{pool} offset beyond pool total",
                                     field=f"{pool}.offsets[{i}]",
                                     expected=total, actual=max(start, end),
                                     offset=at(i if start > total else i + 1))
        if end <= start:
            raise InconsistentLength(f"{pool} offsets not strictly increasing",
                                     field=f"{pool}.offsets[{i}]",
                                     expected=f"> {start}", actual=end,
                                     offset=at(i + 1))
        if end - start > MAX_STRING_SERIALIZATION_SIZE:
            raise OversizedField(f"{pool} string too large",
                                 field=f"{pool}.offsets[{i}]",
                                 expected=MAX_STRING_SERIALIZATION_SIZE,
                                 actual=end - start, offset=at(i))
        ranges.append((start, end))
    return ranges


@dataclass(frozen=True)
class StringPool:
    """
    Offset-table string pool. Holds the contiguous buffer and one offset per
    string; lengths are derived and checked once, at construction.

    `offsets_pos` and `data_pos` are the input positions of the offset array
    and the buffer when the pool is being decoded; they only locate errors.
    """
    is_wide: bool
    offsets: Tuple[int, ...] = ()
    data: bytes = b''
    _strings: Tuple[str, ...] = field(init=False, repr=False, compare=False)
    offsets_pos: InitVar[Optional[int]] = None
    data_pos: InitVar[Optional[int]] = None

    def __post_init__(self, offsets_pos: Optional[int], data_pos: Optional[int]):
        object.__setattr__(self, 'offsets', tuple(self.offsets))
        object.__setattr__(self, 'data', bytes(self.data))
        object.__setattr__(self, '_strings',
                           tuple(self._decode_all(offsets_pos, data_pos)))

    @property
    def unit_size(self) -> int:
        return 2 if self.is_wide else 1

    @property
    def total(self) -> int:
        """Pool size in units."""
        return len(self.data) // self.unit_size

    @property
    def name(self) -> str:
        return "wide_strings" if self.is_wide else "ansi_strings"

    def _decode_all(self, offsets_pos: Optional[int],
                    data_pos: Optional[int]) -> List[str]:
        unit = self.unit_size

        def at(units: int) -> Optional[int]:
            return None if data_pos is None else data_pos + units * unit

        if len(self.data) % unit:
            raise InconsistentLength(f"{self.name} blob is not whole units",
                                     field=self.name, actual=len(self.data),
                                     offset=data_pos)

        strings = []
        ranges = derive_ranges(self.offsets, self.total, self.name, offsets_pos)
        for i, (start, end) in enumerate(ranges):
            raw = self.data[start * unit:end * unit]
            body, nul = raw[:-unit], raw[-unit:]
            if any(nul):
                raise InvalidTermination(f"{self.name} entry not NUL-terminated",
                                         field=f"{self.name}[{i}]", expected=0,
                                         actual=int.from_bytes(nul, 'little'),
                                         offset=at(end - 1))
            if self.is_wide:
                try:
                    strings.append(body.decode('utf-16-le'))
                except UnicodeDecodeError as e:
                    raise InvalidEncoding(f"wide string is not valid UTF-16: {e.reason}",
                                          field=f"{self.name}[{i}]",
                                          offset=at(start)) from e
            else:
                strings.append(body.decode('latin-1'))
        return strings

    @classmethod
    def from_strings(cls, strings: Sequence[str], is_wide: bool) -> 'StringPool':
        """Pack strings into one pool, each followed by a terminator unit."""
        offsets = []
        data = bytearray()
        units = 0
        for s in strings:
            try:
                raw = s.encode('utf-16-le' if is_wide else 'latin-1')
            except UnicodeEncodeError as e:
                raise EncodeError(f"string {s!r} cannot be stored in the "
                                  f"{'wide' if is_wide else 'ANSI'} pool") from e
            offsets.append(units)
            data += raw
            data += b'\x00\x00' if is_wide else b'\x00'
            units = len(data) // (2 if is_wide else 1)
        return cls(is_wide=is_wide, offsets=tuple(offsets), data=bytes(data))

    def __len__(self) -> int:
        return len(self._strings)

    def __getitem__(self, index: int) -> str:
        return self._strings[index]

    def __iter__(self):
        return iter(self._strings)

    @property
    def strings(self) -> List[str]:
        return list(self._strings)


# =============================================================================
# STORE DATA
# =============================================================================

def _read_array(reader: BinaryReader, count: int, min_size: int, name: str, read_one):
    reader.require(count, min_size, name)
    return [read_one(reader) for _ in range(count)]


@dataclass
class StoreData:
    """Every array of the tag/value store, in memory."""
    pairs: List[NumberedPair] = field(default_factory=list)
    numberless_pairs: List[NumberlessPair] = field(default_factory=list)
    ansi_strings: StringPool = field(default_factory=lambda: StringPool(is_wide=False))
    wide_strings: StringPool = field(default_factory=lambda: StringPool(is_wide=True))
    numberless_names: List[DisplayNameEntryId] = field(default_factory=list)
    names: List[NameReference] = field(default_factory=list)
    numberless_export_paths: List[NumberlessExportPath] = field(default_factory=list)
    export_paths: List[ExportPath] = field(default_factory=list)
    texts: List[TextBlob] = field(default_factory=list)

    def counts(self) -> dict:
        """Values of the count header, keyed by COUNT_FIELDS name."""
        return {
            "numberless_names": len(self.numberless_names),
            "names": len(self.names),
            "numberless_export_paths": len(self.numberless_export_paths),
            "export_paths": len(self.export_paths),
            "texts": len(self.texts),
            "ansi_string_offsets": len(self.ansi_strings.offsets),
            "wide_string_offsets": len(self.wide_strings.offsets),
            "ansi_string_units": self.ansi_strings.total,
            "wide_string_units": self.wide_strings.total,
            "numberless_pairs": len(self.numberless_pairs),
            "pairs": len(self.pairs),
        }

    def write(self, writer: BinaryWriter):
        if self.ansi_strings.is_wide or not self.wide_strings.is_wide:
            raise EncodeError("ansi_strings must be a narrow pool and "
                              "wide_strings a wide pool")

        writer.write_u32(BEGIN_MAGIC)
        counts = self.counts()
        for name in COUNT_FIELDS:
            writer.write_u32(counts[name])

        for text in self.texts:
            text.write(writer)
        for entry in self.numberless_names:
            entry.write(writer)
        for entry in self.names:
            entry.write(writer)
        for entry in self.numberless_export_paths:
            entry.write(writer)
        for entry in self.export_paths:
            entry.write(writer)
        for offset in self.ansi_strings.offsets:
            writer.write_u32(offset)
        for offset in self.wide_strings.offsets:
            writer.write_u32(offset)
        writer.write_bytes(self.ansi_strings.data)
        writer.write_bytes(self.wide_strings.data)
        for entry in self.numberless_pairs:
            entry.write(writer)
        for entry in self.pairs:
            entry.write(writer)

        writer.write_u32(END_MAGIC)

    def to_bytes(self) -> bytes:
        writer = BinaryWriter()
        self.write(writer)
        return writer.get_bytes()

    @classmethod
    def read(cls, reader: BinaryReader) -> 'StoreData':
        pos = reader.tell()
        magic = reader.read_u32("store.begin_magic")
        if magic != BEGIN_MAGIC:
            raise MalformedMagic("store data begin magic mismatch",
                                 field="store.begin_magic", expected=BEGIN_MAGIC,
                                 actual=magic, offset=pos)

        counts = {name: reader.read_u32(f"store.count.{name}") for name in COUNT_FIELDS}
        logger.debug("StoreData counts: %s", counts)

        texts = _read_array(reader, counts["texts"], 5, "store.texts", TextBlob.read)
        numberless_names = _read_array(reader, counts["numberless_names"], 4,
                                       "store.numberless_names", DisplayNameEntryId.read)
        names = _read_array(reader, counts["names"], 8, "store.names", NameReference.read)
        numberless_export_paths = _read_array(
            reader, counts["numberless_export_paths"], 12,
            "store.numberless_export_paths", NumberlessExportPath.read)
        export_paths = _read_array(reader, counts["export_paths"], 24,
                                   "store.export_paths", ExportPath.read)

        ansi_offsets_pos = reader.tell()
        ansi_offsets = _read_array(reader, counts["ansi_string_offsets"], 4,
                                   "store.ansi_string_offsets",
                                   lambda r: r.read_u32("store.ansi_string_offset"))
        wide_offsets_pos = reader.tell()
        wide_offsets = _read_array(reader, counts["wide_string_offsets"], 4,
                                   "store.wide_string_offsets",
                                   lambda r: r.read_u32("store.wide_string_offset"))

        reader.require(counts["ansi_string_units"], 1, "store.ansi_string_units")
        ansi_data_pos = reader.tell()
        ansi_data = reader.read_bytes(counts["ansi_string_units"], "store.ansi_strings")
        reader.require(counts["wide_string_units"], 2, "store.wide_string_units")
        wide_data_pos = reader.tell()
        wide_data = reader.read_bytes(counts["wide_string_units"] * 2, "store.wide_strings")
        ansi_strings = StringPool(is_wide=False, offsets=ansi_offsets, data=ansi_data,
                                  offsets_pos=ansi_offsets_pos, data_pos=ansi_data_pos)
        wide_strings = StringPool(is_wide=True, offsets=wide_offsets, data=wide_data,
                                  offsets_pos=wide_offsets_pos, data_pos=wide_data_pos)

        numberless_pairs = _read_array(reader, counts["numberless_pairs"], 8,
                                       "store.numberless_pairs", NumberlessPair.read)
        pairs = _read_array(reader, counts["pairs"], 12, "store.pairs", NumberedPair.read)

        pos = reader.tell()
        magic = reader.read_u32("store.end_magic")
        if magic != END_MAGIC:
            raise MalformedMagic("store data end magic mismatch",
                                 field="store.end_magic", expected=END_MAGIC,
                                 actual=magic, offset=pos)

        return cls(pairs=pairs, numberless_pairs=numberless_pairs,
                   ansi_strings=ansi_strings, wide_strings=wide_strings,
                   numberless_names=numberless_names, names=names,
                   numberless_export_paths=numberless_export_paths,
                   export_paths=export_paths, texts=texts)

    @classmethod
    def from_bytes(cls, data: Union[bytes, bytearray]) -> 'StoreData':
        return cls.read(BinaryReader(data))
