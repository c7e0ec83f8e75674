"""
Variable-Width String Codec
===========================

The engine's FString primitive picks its character width with the sign of
its length prefix instead of a type tag:

| Length   | Payload                                                  |
|----------|----------------------------------------------------------|
| n > 0    | n ASCII bytes, stored verbatim (no terminator added)      |
| n < 0    | -n little-endian UTF-16 units, the last one always 0      |
| n == 0   | invalid                                                   |

A string goes narrow only when every code point is below 0x80. A single
code point at or above 0x80 sends the *whole* string down the wide path.

Narrow payloads are returned exactly as stored and must be ASCII; a byte at
or above 0x80 raises InvalidEncoding. Files written by the engine
usually keep a NUL inside the positive length, so such strings decode with a
trailing "\\x00" and re-encode to the identical bytes.
"""

import logging
from typing import Union

from .binary import BinaryReader, BinaryWriter
from .errors import (EncodeError, InconsistentLength, InvalidEncoding,
                     InvalidTermination, OversizedField)

logger = logging.getLogger(__name__)

# Upper bound on a single string, in characters.
MAX_STRING_SERIALIZATION_SIZE = 16 * 1024 * 1024

I32_MIN = -0x80000000


def is_pure_ansi(text: str) -> bool:
    """Return True if every code point of `text` is below 0x80."""
    return all(ord(ch) < 0x80 for ch in text)


def write_fstring(writer: BinaryWriter, text: str):
    """
    Write `text` as a sign-length FString.

    Raises:
        EncodeError: for the empty string (a zero length cannot be decoded)
            or a string too long for the format.
    """
    if not text:
        raise EncodeError("cannot encode an empty FString: zero length is invalid")

    if is_pure_ansi(text):
        payload = text.encode('ascii')
        if len(payload) > MAX_STRING_SERIALIZATION_SIZE:
            raise EncodeError(f"FString too long: {len(payload)} bytes")
        writer.write_i32(len(payload))
        writer.write_bytes(payload)
    else:
        payload = text.encode('utf-16-le') + b'\x00\x00'
        units = len(payload) // 2
        if units > MAX_STRING_SERIALIZATION_SIZE:
            raise EncodeError(f"FString too long: {units} UTF-16 units")
        writer.write_i32(-units)
        writer.write_bytes(payload)


def encode_fstring(text: str) -> bytes:
    """Encode `text` as a standalone FString buffer."""
    writer = BinaryWriter()
    write_fstring(writer, text)
    return writer.get_bytes()


def read_fstring(reader: BinaryReader, field: str = "fstring") -> str:
    """
    Read one sign-length FString.

    Args:
        reader: Source positioned at the length prefix.
        field: Name used in error messages.

    Returns:
        The decoded text. Wide strings lose their terminator unit; narrow
        strings are returned byte-for-byte.

    Raises:
        InvalidEncoding: a narrow byte >= 0x80 or a wide body that is not
            valid UTF-16.
    """
    start = reader.tell()
    n = reader.read_i32(field)
    logger.debug("FString at 0x%X: len=%d", start, n)

    if n == 0:
        raise InconsistentLength("FString length cannot be 0", field=field,
                                 actual=n, offset=start)
    if n == I32_MIN:
        raise OversizedField("FString length cannot be negated", field=field,
                             actual=n, offset=start)

    count = -n if n < 0 else n
    if count > MAX_STRING_SERIALIZATION_SIZE:
        raise OversizedField("FString too large", field=field,
                             expected=MAX_STRING_SERIALIZATION_SIZE,
                             actual=count, offset=start)

    if n > 0:
        raw = reader.read_bytes(count, field)
        try:
            return raw.decode('ascii')
        except UnicodeDecodeError as e:
            # Narrow text is ASCII only, matching is_pure_ansi on encode.
            raise InvalidEncoding("narrow FString holds a non-ASCII byte",
                                  field=field, actual=raw[e.start],
                                  offset=start + 4 + e.start) from e

    raw = reader.read_bytes(count * 2, field)
    if raw[-2:] != b'\x00\x00':
        raise InvalidTermination("wide FString not NUL-terminated", field=field,
                                 expected=0,
                                 actual=int.from_bytes(raw[-2:], 'little'),
                                 offset=start)
    try:
        return raw[:-2].decode('utf-16-le')
    except UnicodeDecodeError as e:
        raise InvalidEncoding(f"wide FString is not valid UTF-16: {e.reason}",
                              field=field, offset=start) from e


def decode_fstring(data: Union[bytes, bytearray]) -> str:
    """Decode a standalone FString buffer produced by encode_fstring."""
    return read_fstring(BinaryReader(data))
