"""
Asset Registry Codec - Error Types
==================================

Every decode failure raises exactly one of the classes below. Nothing is
recovered from: a bad field aborts the record that holds it, and that abort
propagates up to whoever called the top-level decode.

Taxonomy:
---------
| Class              | Raised when                                          |
|--------------------|------------------------------------------------------|
| MalformedMagic     | GUID or begin/end magic does not match the constant  |
| UnsupportedVersion | version ordinal is unknown or too old to read        |
| InconsistentLength | a derived/accumulated length disagrees with a total  |
| InvalidTermination | an expected NUL terminator is missing or non-zero    |
| InvalidEncoding    | text bytes are not valid for the claimed width       |
| OversizedField     | a length/count fails its sanity bound before reading |
| UnknownTag         | a closed-set discriminant is outside its legal range |
| InvalidValue       | a legal tag carries an illegal payload               |
| UnexpectedEof      | the input ends in the middle of a field              |

Encode-time precondition violations raise EncodeError, which is also a
ValueError.
"""

from typing import Any, Optional


class AssetRegistryError(Exception):
    """Base class for every error raised by this package."""


class DecodeError(AssetRegistryError):
    """
    Base class for all decode failures.

    Args:
        message: Human readable description.
        field: Name of the field being decoded, if known.
        expected: The value the format requires.
        actual: The value found in the input.
        offset: Reader position where the problem was detected.
    """

    def __init__(self, message: str, field: Optional[str] = None,
                 expected: Any = None, actual: Any = None,
                 offset: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.field = field
        self.expected = expected
        self.actual = actual
        self.offset = offset

    def __str__(self):
        parts = [self.message]
        if self.field is not None:
            parts.append(f"field={self.field}")
        if self.expected is not None:
            parts.append(f"expected={_fmt(self.expected)}")
        if self.actual is not None:
            parts.append(f"actual={_fmt(self.actual)}")
        if self.offset is not None:
            parts.append(f"offset=0x{self.offset:X}")
        return " | ".join(parts)


class MalformedMagic(DecodeError):
    """A fixed constant (GUID or store magic) did not match."""


class UnsupportedVersion(DecodeError):
    """The version ordinal is not one this codec can read."""


class InconsistentLength(DecodeError):
    """A derived or accumulated length disagrees with a declared one."""


class InvalidTermination(DecodeError):
    """An expected NUL terminator is missing or non-zero."""


class InvalidEncoding(DecodeError):
    """Text bytes are not valid under the claimed width."""


class OversizedField(DecodeError):
    """A length or count exceeds its bound before anything was read."""


class UnknownTag(DecodeError):
    """A closed-set discriminant is outside its legal range."""


class InvalidValue(DecodeError):
    """A field with a legal tag carries a payload the tag forbids."""


class UnexpectedEof(DecodeError):
    """The input ended in the middle of a field."""


class EncodeError(AssetRegistryError, ValueError):
    """A value handed to an encoder cannot be represented in the format."""


def _fmt(value: Any) -> str:
    if isinstance(value, bool):
        return str(value)
    if isinstance(value, int):
        return f"0x{value:X}" if value >= 0 else str(value)
    if isinstance(value, (bytes, bytearray)):
        return value.hex()
    return repr(value)
