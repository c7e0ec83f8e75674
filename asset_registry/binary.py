"""
Binary reader/writer primitives shared by every codec in the package.

All integers are little-endian. Reads never go past the end of the buffer:
running out of bytes raises UnexpectedEof instead of returning a short slice.
"""

import struct
from typing import Union

from .errors import EncodeError, OversizedField, UnexpectedEof


# =============================================================================
# BINARY READER
# =============================================================================
class BinaryReader:
    """
    Sequential binary data reader with little-endian support.

    Wraps a bytes object and provides methods to read primitive types
    while automatically advancing the read position.
    """

    def __init__(self, data: Union[bytes, bytearray, memoryview], offset: int = 0):
        """
        Initialize reader with binary data.

        Args:
            data: The binary data to read from.
            offset: Starting position (default 0).
        """
        self.data = bytes(data)
        self.pos = offset

    def _take(self, n: int, field: str) -> bytes:
        if n < 0:
            raise OversizedField("negative read size", field=field,
                                 actual=n, offset=self.pos)
        end = self.pos + n
        if end > len(self.data):
            raise UnexpectedEof(f"input ends inside {field}", field=field,
                                expected=n, actual=self.remaining(),
                                offset=self.pos)
        val = self.data[self.pos:end]
        self.pos = end
        return val

    def read_u8(self, field: str = "u8") -> int:
        """Read 1-byte unsigned integer and advance position."""
        return self._take(1, field)[0]

    def read_u16(self, field: str = "u16") -> int:
        """Read 2-byte little-endian unsigned integer and advance position."""
        return struct.unpack('<H', self._take(2, field))[0]

    def read_u32(self, field: str = "u32") -> int:
        """Read 4-byte little-endian unsigned integer and advance position."""
        return struct.unpack('<I', self._take(4, field))[0]

    def read_i32(self, field: str = "i32") -> int:
        """Read 4-byte little-endian signed integer and advance position."""
        return struct.unpack('<i', self._take(4, field))[0]

    def read_u64(self, field: str = "u64") -> int:
        """Read 8-byte little-endian unsigned integer and advance position."""
        return struct.unpack('<Q', self._take(8, field))[0]

    def read_bytes(self, n: int, field: str = "bytes") -> bytes:
        """Read n bytes and advance position."""
        return self._take(n, field)

    def require(self, count: int, element_size: int, field: str):
        """
        Check that `count` elements of `element_size` bytes can still be read.

        Used before sizing a list or loop from a count found in the input.

        Raises:
            OversizedField: if the input cannot possibly hold that many elements.
        """
        needed = count * element_size
        if needed > self.remaining():
            raise OversizedField(
                f"{field} count does not fit in the remaining input",
                field=field, expected=self.remaining(), actual=needed,
                offset=self.pos)

    def remaining(self) -> int:
        """Return number of bytes remaining from current position to end."""
        return len(self.data) - self.pos

    def tell(self) -> int:
        """Return current read position."""
        return self.pos


# =============================================================================
# BINARY WRITER
# =============================================================================
class BinaryWriter:
    """
    Binary data writer with little-endian support.

    Out-of-range values raise EncodeError instead of being masked.
    """

    def __init__(self):
        """Initialize empty writer."""
        self.data = bytearray()

    def _pack(self, fmt: str, val: int, lo: int, hi: int, kind: str):
        if not isinstance(val, int) or not lo <= val <= hi:
            raise EncodeError(f"value {val!r} does not fit in {kind}")
        self.data.extend(struct.pack(fmt, val))

    def write_u8(self, val: int):
        """Write 1-byte unsigned integer."""
        self._pack('<B', val, 0, 0xFF, "u8")

    def write_u16(self, val: int):
        """Write 2-byte little-endian unsigned integer."""
        self._pack('<H', val, 0, 0xFFFF, "u16")

    def write_u32(self, val: int):
        """Write 4-byte little-endian unsigned integer."""
        self._pack('<I', val, 0, 0xFFFFFFFF, "u32")

    def write_i32(self, val: int):
        """Write 4-byte little-endian signed integer."""
        self._pack('<i', val, -0x80000000, 0x7FFFFFFF, "i32")

    def write_u64(self, val: int):
        """Write 8-byte little-endian unsigned integer."""
        self._pack('<Q', val, 0, 0xFFFFFFFFFFFFFFFF, "u64")

    def write_bytes(self, data: bytes):
        """Write raw bytes."""
        self.data.extend(data)

    def tell(self) -> int:
        """Return number of bytes written so far."""
        return len(self.data)

    def get_bytes(self) -> bytes:
        """Return the accumulated data as bytes."""
        return bytes(self.data)
