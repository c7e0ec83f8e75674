"""
Names Batch
===========

The deduplicated name table that every NameReference in a registry indexes
into. Layout:

    [u32 count]
    [u32 string bytes]          sum of every header's n_bytes
    [u64 hash version]
    [count x u64 hash]
    [count x 2-byte packed header]
    [count x NUL-terminated string, width and length dictated by its header]

The strings are not self-describing: a header is the sole authority for its
string's width and length. Hashes and the hash version are carried through
unchanged; nothing here recomputes them.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Sequence, Union

from .binary import BinaryReader, BinaryWriter
from .errors import (EncodeError, InconsistentLength, InvalidEncoding,
                     InvalidTermination)
from .fstring import is_pure_ansi
from .name_header import SerializedNameHeader

logger = logging.getLogger(__name__)

# hash (8) + packed header (2)
_ENTRY_FIXED_SIZE = 10


def _encode_name(text: str, header: SerializedNameHeader) -> bytes:
    """Encode `text` at the width its header claims, terminator included."""
    try:
        if header.is_wide:
            raw = text.encode('utf-16-le') + b'\x00\x00'
        else:
            raw = text.encode('latin-1') + b'\x00'
    except UnicodeEncodeError as e:
        raise EncodeError(f"name {text!r} cannot be stored "
                          f"{'wide' if header.is_wide else 'narrow'}") from e
    if len(raw) != header.n_bytes:
        raise EncodeError(
            f"name {text!r} needs {len(raw)} bytes but its header declares "
            f"{header.n_bytes}")
    return raw


@dataclass
class NamesBatch:
    """Parallel hashes, headers and strings of a serialized name table."""
    hash_version: int = 0
    hashes: List[int] = field(default_factory=list)
    headers: List[SerializedNameHeader] = field(default_factory=list)
    strings: List[str] = field(default_factory=list)

    @classmethod
    def from_names(cls, strings: Sequence[str], hashes: Sequence[int],
                   hash_version: int = 0) -> 'NamesBatch':
        """
        Build a batch from plain strings, deriving each packed header.

        A name is stored wide when any code point is at or above 0x80.

        Args:
            strings: Names in table order.
            hashes: One opaque hash per name, same order.
            hash_version: Opaque hash algorithm identifier.
        """
        headers = []
        for s in strings:
            if is_pure_ansi(s):
                headers.append(SerializedNameHeader(False, len(s) + 1))
            else:
                units = len(s.encode('utf-16-le')) // 2
                headers.append(SerializedNameHeader(True, units + 1))
        return cls(hash_version=hash_version, hashes=list(hashes),
                   headers=headers, strings=list(strings))

    def __len__(self) -> int:
        return len(self.strings)

    def lookup(self, index: int) -> str:
        """Return the name stored at `index`."""
        return self.strings[index]

    @property
    def string_bytes(self) -> int:
        return sum(h.n_bytes for h in self.headers)

    def write(self, writer: BinaryWriter):
        count = len(self.strings)
        if len(self.hashes) != count or len(self.headers) != count:
            raise EncodeError(
                f"NamesBatch sequences differ in length: hashes={len(self.hashes)}, "
                f"headers={len(self.headers)}, strings={count}")

        if any(header.length == 0 for header in self.headers):
            raise EncodeError("NamesBatch header with zero length")
        encoded = [_encode_name(s, h) for s, h in zip(self.strings, self.headers)]

        writer.write_u32(count)
        writer.write_u32(sum(len(raw) for raw in encoded))
        writer.write_u64(self.hash_version)
        for h in self.hashes:
            writer.write_u64(h)
        for header in self.headers:
            header.write(writer)
        for raw in encoded:
            writer.write_bytes(raw)

    def to_bytes(self) -> bytes:
        writer = BinaryWriter()
        self.write(writer)
        return writer.get_bytes()

    @classmethod
    def read(cls, reader: BinaryReader) -> 'NamesBatch':
        count = reader.read_u32("names.count")
        expected_string_bytes = reader.read_u32("names.string_bytes")
        hash_version = reader.read_u64("names.hash_version")
        logger.debug("NamesBatch: count=%d string_bytes=%d hash_version=0x%X",
                     count, expected_string_bytes, hash_version)

        reader.require(count, _ENTRY_FIXED_SIZE, "names.count")
        hashes = [reader.read_u64("names.hash") for _ in range(count)]
        headers = [SerializedNameHeader.read(reader) for _ in range(count)]
        reader.require(expected_string_bytes, 1, "names.string_bytes")

        strings = []
        processed = 0
        for i, header in enumerate(headers):
            pos = reader.tell()
            if header.length == 0:
                raise InconsistentLength(
                    "zero-length NUL-terminated name", field=f"names.headers[{i}]",
                    actual=0, offset=pos)
            if processed + header.n_bytes > expected_string_bytes:
                raise InconsistentLength(
                    "names batch strings overrun the declared byte count",
                    field="names.string_bytes", expected=expected_string_bytes,
                    actual=processed + header.n_bytes, offset=pos)

            raw = reader.read_bytes(header.n_bytes, f"names.strings[{i}]")
            body, nul = raw[:-header.unit_size], raw[-header.unit_size:]
            if any(nul):
                raise InvalidTermination(
                    "name not NUL-terminated", field=f"names.strings[{i}]",
                    expected=0, actual=int.from_bytes(nul, 'little'),
                    offset=pos + len(body))
            if header.is_wide:
                try:
                    strings.append(body.decode('utf-16-le'))
                except UnicodeDecodeError as e:
                    raise InvalidEncoding(
                        f"wide name is not valid UTF-16: {e.reason}",
                        field=f"names.strings[{i}]", offset=pos) from e
            else:
                strings.append(body.decode('latin-1'))
            processed += header.n_bytes

        if processed != expected_string_bytes:
            raise InconsistentLength(
                "names batch string bytes do not match the declared count",
                field="names.string_bytes", expected=expected_string_bytes,
                actual=processed, offset=reader.tell())

        return cls(hash_version=hash_version, hashes=hashes,
                   headers=headers, strings=strings)

    @classmethod
    def from_bytes(cls, data: Union[bytes, bytearray]) -> 'NamesBatch':
        return cls.read(BinaryReader(data))
