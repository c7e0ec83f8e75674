"""
Packed name header used by the names batch.

Two bytes, most significant bit first:

    byte 0: [is_wide:1][length bits 14..8:7]
    byte 1: [length bits 7..0:8]

`length` counts characters (bytes or UTF-16 units) including the NUL.
"""

from dataclasses import dataclass

from .binary import BinaryReader, BinaryWriter
from .errors import EncodeError

MAX_NAME_LENGTH = 0x7FFF


@dataclass(frozen=True)
class SerializedNameHeader:
    """Width flag and character count of one names-batch entry."""
    is_wide: bool
    length: int

    @property
    def unit_size(self) -> int:
        return 2 if self.is_wide else 1

    @property
    def n_bytes(self) -> int:
        """Number of string bytes this entry occupies, terminator included."""
        return self.length * self.unit_size

    def to_bytes(self) -> bytes:
        if not 0 <= self.length <= MAX_NAME_LENGTH:
            raise EncodeError(
                f"name length {self.length} does not fit in 15 bits")
        b0 = (int(self.is_wide) << 7) | (self.length >> 8)
        b1 = self.length & 0xFF
        return bytes((b0, b1))

    @classmethod
    def from_bytes(cls, raw: bytes) -> 'SerializedNameHeader':
        """Unpack two header bytes. Every bit pattern is accepted here."""
        return cls(is_wide=bool(raw[0] & 0x80),
                   length=((raw[0] & 0x7F) << 8) | raw[1])

    def write(self, writer: BinaryWriter):
        writer.write_bytes(self.to_bytes())

    @classmethod
    def read(cls, reader: BinaryReader) -> 'SerializedNameHeader':
        return cls.from_bytes(reader.read_bytes(2, "name_header"))
